"""Console monitor: print every chunk the device sends, tagged with a client label."""
from __future__ import annotations

import asyncio
import codecs
import logging
from typing import Optional

from esp_probe.config.loader import MonitorConfig
from esp_probe.runtime.exit_codes import ExitCode

logger = logging.getLogger(__name__)


class ConsoleMonitor(asyncio.Protocol):
    def __init__(self, label: str, greeting: Optional[str] = None):
        self.label = label
        self.greeting = greeting
        self.received: list[str] = []
        self.error: Optional[BaseException] = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._closed = asyncio.Event()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        peer = transport.get_extra_info("peername")
        where = f"{peer[0]}:{peer[1]}" if peer else "device"
        print(f"[{self.label}] connected to {where}")
        if self.greeting:
            transport.write((self.greeting + "\n").encode("utf-8"))  # type: ignore[attr-defined]

    def data_received(self, data: bytes) -> None:
        decoded = self._decoder.decode(data)
        if not decoded:
            # chunk ended inside a multibyte character
            return
        text = decoded.strip()
        self.received.append(text)
        print(f"[{self.label}] received: {text}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            self.error = exc
            logger.error("[%s] error: %s", self.label, exc)
        print(f"[{self.label}] disconnected")
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()


async def run_monitor_session(cfg: MonitorConfig, run_notes: Optional[list[str]] = None) -> ExitCode:
    notes = run_notes if run_notes is not None else []
    loop = asyncio.get_running_loop()
    monitor = ConsoleMonitor(cfg.label, cfg.greeting)
    connect = loop.create_connection(lambda: monitor, cfg.host, cfg.port)
    try:
        if cfg.connect_timeout:
            await asyncio.wait_for(connect, cfg.connect_timeout)
        else:
            await connect
    except (OSError, asyncio.TimeoutError) as exc:
        logger.error("[%s] error: %s", cfg.label, str(exc) or type(exc).__name__)
        notes.append("connect=failed")
        return ExitCode.CONNECT_FAILED

    await monitor.wait_closed()
    notes.append(f"chunks={len(monitor.received)}")
    if monitor.error is not None:
        return ExitCode.CONNECTION_ERROR
    return ExitCode.PEER_CLOSED
