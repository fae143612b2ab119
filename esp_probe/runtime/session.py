"""Runtime helpers shared by the esp_probe client sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from esp_probe.runtime.exit_codes import ExitCode

logger = logging.getLogger(__name__)


def run_session(
    session: Callable[[list[str]], Awaitable[ExitCode]],
    *,
    log_prefix: str,
) -> ExitCode:
    """Run one client session on a fresh event loop and emit the final run summary."""

    run_notes: list[str] = []
    exit_reason = ExitCode.UNRESOLVED
    try:
        exit_reason = asyncio.run(session(run_notes))
    except KeyboardInterrupt:
        exit_reason = ExitCode.INTERRUPTED
        run_notes.append("interrupted=keyboard")
    return shutdown(log_prefix=log_prefix, run_notes=run_notes, exit_reason=exit_reason)


def shutdown(*, log_prefix: str, run_notes: list[str], exit_reason: ExitCode) -> ExitCode:
    """Resolve the exit reason and print the RUN_NOTES / EXIT_REASON lines."""

    prefix = f"[{log_prefix}]"
    if exit_reason is ExitCode.UNRESOLVED:
        exit_reason = ExitCode.COMPLETED
    if run_notes:
        print(f"{prefix} RUN_NOTES={';'.join(run_notes)}")
    print(f"{prefix} EXIT_REASON={exit_reason.value}")
    logger.debug("session finished prefix=%s exit_reason=%s", log_prefix, exit_reason.value)
    return exit_reason
