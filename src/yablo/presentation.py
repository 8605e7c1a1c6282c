"""Terminal rendering of system state, applied decisions and suggestions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from yablo.engine.models import Decision, LoadState, Snapshot

WIDTH = 50

_OK = "[[green]+[/green]]"
_WARN = "[[yellow]![/yellow]]"

_LOAD_LABELS: dict[LoadState, str] = {
    LoadState.OPTIMAL: "Load optimal",
    LoadState.HIGH_SYSTEM_LOAD: "High system load",
    LoadState.HIGH_CPU_USAGE: "High CPU usage",
}


def _banner(title: str, fill: str = ":", style: str | None = None) -> list[str]:
    side = max(WIDTH - len(title) - 2, 0)
    left = fill * (side // 2)
    right = fill * (side - side // 2)
    lines = [fill * WIDTH, f"{left} {title} {right}", fill * WIDTH]
    if style is None:
        return lines
    return [f"[{style}]{line}[/{style}]" for line in lines]


@dataclass(slots=True)
class TerminalPresenter:
    """Render optimizer output on a :class:`rich.console.Console`.

    Attributes:
        console: Destination console. Inject a recording console in tests.
        clear: Clear the screen before each system block, as interactive
            modes do. The daemon appends to its log instead.
    """

    console: Console = field(default_factory=Console)
    clear: bool = True

    def render_system(self, snapshot: Snapshot, *, turbo_available: bool) -> None:
        """Render the system state block for ``snapshot``."""

        if self.clear:
            self.console.clear()
        lines = _banner("System state")
        lines.append("")
        if not turbo_available:
            lines.append(f"{_WARN} No turbo found!")
        source = "AC" if snapshot.ac_power else "battery"
        lines.append(f"{_OK} Currently running on {source} power")
        if snapshot.battery_capacity is not None:
            lines.append(f"{_OK} Battery capacity: {snapshot.battery_capacity}%")
        if snapshot.temperature_c is not None:
            lines.append(f"{_OK} CPU temp       : {snapshot.temperature_c:.1f}°C")
        if snapshot.memory_total_bytes:
            used_gb = snapshot.memory_used_bytes / 1e9
            total_gb = snapshot.memory_total_bytes / 1e9
            lines.append(f"{_OK} Memory usage   : {used_gb:.2f}GB/{total_gb:.2f}GB")
        lines.append(f"{_OK} System load    : {snapshot.load_average:.2f}")
        lines.append(f"{_OK} CPU usage      : {snapshot.cpu_user_percent:.2f}%")
        if snapshot.core_frequencies_mhz:
            lines.append(f"{_OK} CPU frequencies: ")
            for cpu, mhz in enumerate(snapshot.core_frequencies_mhz):
                lines.append(f"    [blue]∘[/blue] CPU{cpu}: {mhz:4}MHz")
        self._emit(lines)

    def render_applied(self, decision: Decision) -> None:
        """Render the block describing an applied decision."""

        lines = _banner("Apply optimizations", fill="░", style="blue")
        lines.append("")
        lines.extend(self._decision_lines(decision, verb="Using"))
        if decision.turbo:
            lines.append(f"{_OK} Turbo activated")
        else:
            lines.append(f"{_OK} Turbo deactivated")
        self._emit(lines)

    def render_suggestion(
        self,
        decision: Decision,
        *,
        current_governor: str,
        current_turbo: bool | None,
    ) -> None:
        """Render the advisory block comparing suggestion and current state.

        Args:
            decision: Decision the daemon would apply.
            current_governor: Governor active on the system.
            current_turbo: Current turbo state, ``None`` without turbo support.
        """

        lines = _banner("Suggest optimizations")
        lines.append("")
        lines.extend(self._decision_lines(decision, verb="Suggesting use of"))
        lines.append(f"{_OK} Currently using '{escape(current_governor)}' governor")
        state = "on" if decision.turbo else "off"
        lines.append(f"{_OK} Suggesting setting Turbo {state}")
        if current_turbo is not None:
            current = "on" if current_turbo else "off"
            lines.append(f"{_OK} Turbo is currently {current}")
        self._emit(lines)

    def render_lines(self, lines: Iterable[str]) -> None:
        """Render raw text lines, such as the tail of the daemon log."""

        if self.clear:
            self.console.clear()
        for line in lines:
            self.console.print(line, markup=False, highlight=False)

    def error(self, message: str) -> None:
        """Render an error line."""

        self.console.print(f"[[red]![/red]] Error: {escape(message)}", highlight=False)

    def _decision_lines(self, decision: Decision, *, verb: str) -> list[str]:
        lines = [f"{_OK} {_LOAD_LABELS[decision.load_state]}"]
        if decision.low_battery:
            lines.append(f"{_WARN} Low battery capacity")
        lines.append(f"{_OK} {verb} '{escape(decision.governor)}' governor")
        if decision.turbo_delayed:
            lines.append(
                f"{_OK} Turbo delayed ({decision.counter_ticks} ticks of sustained load)"
            )
        return lines

    def _emit(self, lines: list[str]) -> None:
        for line in lines:
            self.console.print(line, highlight=False)
        self.console.print()
