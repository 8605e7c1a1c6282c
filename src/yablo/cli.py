"""Command-line entrypoint for yablo."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
from collections.abc import Coroutine, Sequence
from pathlib import Path
from typing import Any

from rich.console import Console

from yablo import __version__
from yablo.config_loader import (
    ConfigError,
    ensure_default_config,
    load_config,
    validate_governors,
)
from yablo.config_loader.sources import resolve_config_path
from yablo.cpufreq import CpufreqActuator, CpufreqError, CpufreqSysfs
from yablo.logging_pipeline import parse_level
from yablo.logview import LOG_VIEW_INTERVAL, follow_log, log_view_line_count
from yablo.presentation import TerminalPresenter
from yablo.runtime import OptimizerRuntime, RunMode, run_optimizer
from yablo.service import (
    RootRequiredError,
    ServiceController,
    ServiceError,
    ensure_log_file,
    require_root,
)
from yablo.settings import YabloSettings, get_settings
from yablo.telemetry.power_supply import PowerSupply, TelemetryError
from yablo.telemetry.reader import TelemetryReader

LOGGER = logging.getLogger("yablo.cli")

_FATAL_ERRORS: tuple[type[BaseException], ...] = (
    ConfigError,
    CpufreqError,
    RootRequiredError,
    ServiceError,
    TelemetryError,
    OSError,
)


def _positive_float(value: str) -> float:
    """Parse a strictly positive float.

    Raises:
        argparse.ArgumentTypeError: If ``value`` is not a positive number.
    """

    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid number: {value}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Value must be positive: {value}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the yablo CLI.

    Returns:
        Configured :class:`argparse.ArgumentParser` instance.
    """

    parser = argparse.ArgumentParser(
        prog="yablo",
        description=(
            "Yet Another Battery Life Optimizer for Linux (yablo) automatically "
            "sets cpu governor and turbo boost to save energy."
        ),
    )
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("--daemon", action="store_true", help=argparse.SUPPRESS)
    modes.add_argument(
        "-d", "--debug", action="store_true", help="Shows debug/system info"
    )
    modes.add_argument(
        "-l",
        "--live",
        action="store_true",
        help="Prints information and applies suggested CPU optimizations",
    )
    modes.add_argument(
        "--log", action="store_true", help="View live CPU optimization made by daemon"
    )
    modes.add_argument(
        "-m",
        "--monitor",
        action="store_true",
        help="Suggests CPU optimizations for the current load",
    )
    modes.add_argument(
        "-u",
        "--update-config",
        action="store_true",
        help="Reloads the systemd daemon",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (default: $YABLO_CONFIG_PATH or /etc/yablo/config.toml)",
    )
    parser.add_argument(
        "--poll-interval",
        type=_positive_float,
        default=None,
        help="Seconds between optimization cycles (default: 3)",
    )
    parser.add_argument("--version", action="version", version=f"yablo {__version__}")
    return parser


def _selected_mode(args: argparse.Namespace) -> RunMode | None:
    if args.daemon:
        return RunMode.DAEMON
    if args.live:
        return RunMode.LIVE
    if args.monitor:
        return RunMode.MONITOR
    if args.debug:
        return RunMode.DEBUG
    return None


def build_runtime(
    mode: RunMode,
    settings: YabloSettings,
    *,
    console: Console,
    config_path: Path | None = None,
    poll_interval: float | None = None,
) -> OptimizerRuntime:
    """Assemble telemetry, configuration and actuator for ``mode``.

    Checks run in the order the daemon needs them: privileges first, then
    configuration, then the governors offered by the platform.

    Raises:
        RootRequiredError: If an applying mode runs without root.
        ServiceError: If live mode starts while the daemon is active.
        ConfigError: If the configuration is missing, malformed or names
            unavailable governors.
        CpufreqError: If cpufreq sysfs cannot be read.
        TelemetryError: If the CPU count cannot be determined.
    """

    if mode.applies:
        require_root()

    sysfs_root = Path(settings.sysfs_root)
    cpufreq = CpufreqSysfs(base_path=sysfs_root / "devices" / "system" / "cpu")
    telemetry = TelemetryReader(
        power_supply=PowerSupply(base_path=sysfs_root / "class" / "power_supply"),
        cpufreq=cpufreq,
    )
    core_count = telemetry.core_count()

    config = None
    if mode.decides:
        path = resolve_config_path(config_path, settings)
        ensure_default_config(path)
        config = load_config(path, core_count=core_count, settings=settings)
        validate_governors(config, cpufreq.available_governors())

    turbo = cpufreq.turbo_control()

    actuator = None
    if mode.applies:
        if mode is RunMode.LIVE:
            ServiceController(settings.service_name).ensure_inactive()
        else:
            ensure_log_file(Path(settings.log_path))
        actuator = CpufreqActuator(sysfs=cpufreq, core_count=core_count, turbo=turbo)

    if poll_interval is None:
        poll_interval = (
            LOG_VIEW_INTERVAL if mode is RunMode.DEBUG else settings.poll_interval
        )

    return OptimizerRuntime(
        mode=mode,
        telemetry=telemetry,
        cpufreq=cpufreq,
        config=config,
        actuator=actuator,
        turbo=turbo,
        presenter=TerminalPresenter(console=console, clear=mode.interactive),
        poll_interval=poll_interval,
    )


def _run_until_signalled(coro: Coroutine[Any, Any, None]) -> None:
    """Run ``coro`` until it finishes or SIGINT/SIGTERM arrives.

    Raises:
        Exception: Whatever error ended ``coro``.
    """

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    stop_event = asyncio.Event()

    def _handle_signal(
        signum: int, _frame: object | None
    ) -> None:  # pragma: no cover - signal handling
        LOGGER.info("Received signal", extra={"signal": signum})
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):  # pragma: no cover - not triggered in tests
        try:
            loop.add_signal_handler(sig, _handle_signal, sig, None)
        except NotImplementedError:
            signal.signal(sig, _handle_signal)

    async def runner() -> None:
        main_task = asyncio.create_task(coro, name="yablo-main")
        stop_task = asyncio.create_task(stop_event.wait(), name="yablo-stop")

        done, pending = await asyncio.wait(
            {main_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if main_task in done:
            main_task.result()

    try:
        loop.run_until_complete(runner())
    except KeyboardInterrupt:  # pragma: no cover - already handled by signal handler
        pass
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        asyncio.set_event_loop(None)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``yablo`` console script.

    Args:
        argv: Optional argument list override.

    Returns:
        Exit status code (``0`` for success).
    """

    parser = build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:  # pragma: no cover - controlled via tests
        return int(exc.code) if isinstance(exc.code, int) else 1

    settings = get_settings()
    console = Console()
    errors = TerminalPresenter(console=Console(stderr=True), clear=False)

    try:
        if args.update_config:
            require_root()
            ServiceController(settings.service_name).reload_config()
            console.print(
                "[[green]+[/green]] Successfully restarted daemon. New config loaded.",
                highlight=False,
            )
            return 0

        if args.log:
            line_count = log_view_line_count(TelemetryReader().core_count())
            presenter = TerminalPresenter(console=console)
            with console.screen():
                _run_until_signalled(
                    follow_log(Path(settings.log_path), presenter, line_count=line_count)
                )
            return 0

        mode = _selected_mode(args)
        if mode is None:
            console.print("Type 'yablo --help' to get available options")
            return 0

        runtime = build_runtime(
            mode,
            settings,
            console=console,
            config_path=args.config,
            poll_interval=args.poll_interval,
        )
        optimizer = run_optimizer(runtime, log_level=parse_level(settings.log_level))
        if mode.interactive:
            with console.screen():
                _run_until_signalled(optimizer)
        else:
            _run_until_signalled(optimizer)
    except _FATAL_ERRORS as exc:
        LOGGER.debug("yablo terminated with error", exc_info=exc)
        errors.error(str(exc))
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
