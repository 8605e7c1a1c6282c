"""Tests for the rich terminal presenter."""

from __future__ import annotations

import io

from rich.console import Console

from yablo.config_loader.models import PowerSource
from yablo.engine import Decision, LoadState, Snapshot
from yablo.presentation import TerminalPresenter


def _presenter() -> tuple[TerminalPresenter, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=80, color_system=None, force_terminal=False)
    return TerminalPresenter(console=console), buffer


def _snapshot(**overrides: object) -> Snapshot:
    values: dict[str, object] = {
        "load_average": 0.75,
        "cpu_user_percent": 12.5,
        "battery_capacity": 57,
        "ac_power": False,
        "core_count": 2,
        "temperature_c": 48.0,
        "memory_total_bytes": 8_000_000_000,
        "memory_used_bytes": 2_000_000_000,
        "core_frequencies_mhz": (1800, 2400),
    }
    values.update(overrides)
    return Snapshot(**values)  # type: ignore[arg-type]


def test_render_system_lists_metrics() -> None:
    presenter, buffer = _presenter()
    presenter.render_system(_snapshot(), turbo_available=True)
    output = buffer.getvalue()

    assert "System state" in output
    assert "[+] Currently running on battery power" in output
    assert "Battery capacity: 57%" in output
    assert "CPU temp       : 48.0°C" in output
    assert "Memory usage   : 2.00GB/8.00GB" in output
    assert "System load    : 0.75" in output
    assert "CPU usage      : 12.50%" in output
    assert "CPU1: 2400MHz" in output
    assert "No turbo found!" not in output


def test_render_system_without_battery_or_turbo() -> None:
    presenter, buffer = _presenter()
    presenter.render_system(
        _snapshot(battery_capacity=None, ac_power=True, core_frequencies_mhz=()),
        turbo_available=False,
    )
    output = buffer.getvalue()

    assert "[!] No turbo found!" in output
    assert "Currently running on AC power" in output
    assert "Battery capacity" not in output
    assert "CPU frequencies" not in output


def test_render_applied_low_battery() -> None:
    presenter, buffer = _presenter()
    decision = Decision(
        power_source=PowerSource.BATTERY,
        load_state=LoadState.HIGH_SYSTEM_LOAD,
        governor="conservative",
        turbo=False,
        low_battery=True,
    )
    presenter.render_applied(decision)
    output = buffer.getvalue()

    assert "Apply optimizations" in output
    assert "[+] High system load" in output
    assert "[!] Low battery capacity" in output
    assert "Using 'conservative' governor" in output
    assert "Turbo deactivated" in output


def test_render_applied_turbo_delayed() -> None:
    presenter, buffer = _presenter()
    decision = Decision(
        power_source=PowerSource.BATTERY,
        load_state=LoadState.HIGH_CPU_USAGE,
        governor="powersave",
        turbo=False,
        turbo_delayed=True,
        counter_ticks=4,
    )
    presenter.render_applied(decision)
    output = buffer.getvalue()

    assert "High CPU usage" in output
    assert "Turbo delayed (4 ticks of sustained load)" in output


def test_render_suggestion_compares_with_current_state() -> None:
    presenter, buffer = _presenter()
    decision = Decision(
        power_source=PowerSource.AC,
        load_state=LoadState.HIGH_CPU_USAGE,
        governor="performance",
        turbo=True,
    )
    presenter.render_suggestion(decision, current_governor="powersave", current_turbo=False)
    output = buffer.getvalue()

    assert "Suggesting use of 'performance' governor" in output
    assert "Currently using 'powersave' governor" in output
    assert "Suggesting setting Turbo on" in output
    assert "Turbo is currently off" in output


def test_render_lines_does_not_interpret_markup() -> None:
    presenter, buffer = _presenter()
    presenter.render_lines(["[+] Load optimal", "[bold]raw[/bold]"])
    output = buffer.getvalue()

    assert "[+] Load optimal" in output
    assert "[bold]raw[/bold]" in output


def test_error_escapes_message() -> None:
    presenter, buffer = _presenter()
    presenter.error("bad value [red]")
    assert "[!] Error: bad value [red]" in buffer.getvalue()
