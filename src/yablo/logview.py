"""Tail the daemon log for the interactive log view."""

from __future__ import annotations

import asyncio
from collections import deque
from pathlib import Path

from yablo.presentation import TerminalPresenter

LOG_VIEW_EXTRA_LINES = 25
LOG_VIEW_INTERVAL = 0.5


def log_view_line_count(core_count: int) -> int:
    """Return how many log lines cover one full daemon cycle."""

    return core_count + LOG_VIEW_EXTRA_LINES


def tail_lines(path: Path, count: int) -> list[str]:
    """Return the last ``count`` lines of ``path`` without trailing newlines.

    Raises:
        OSError: If the log file cannot be read.
    """

    if count <= 0:
        return []
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        tail = deque(handle, maxlen=count)
    return [line.rstrip("\n") for line in tail]


async def follow_log(
    path: Path,
    presenter: TerminalPresenter,
    *,
    line_count: int,
    interval: float = LOG_VIEW_INTERVAL,
) -> None:
    """Re-render the tail of ``path`` every ``interval`` seconds until cancelled.

    Raises:
        OSError: If the log file cannot be read.
    """

    while True:
        lines = await asyncio.to_thread(tail_lines, path, line_count)
        presenter.render_lines(lines)
        await asyncio.sleep(interval)
