"""CSV recorder: append every received chunk to a semicolon-separated log, reconnect on close.

Row layout (header written once when the file is created):
    Data;Hora;DadoBruto;IP_Conexao
    18/10/2026;14:03:07;{"peso": 12.5};10.128.32.178
"""
from __future__ import annotations

import asyncio
import codecs
import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

from esp_probe.config import defaults
from esp_probe.config.loader import RecorderConfig
from esp_probe.runtime.exit_codes import ExitCode

logger = logging.getLogger(__name__)


class CsvLog:
    def __init__(self, path: str | Path, *, now: Callable[[], datetime] = datetime.now):
        self.path = Path(path)
        self._now = now
        self.rows_written = 0

    def ensure_header(self) -> bool:
        """Create the file with its header row if missing. Returns True when created."""
        if self.path.exists():
            return False
        logger.info("%s not found, creating it with header", self.path.name)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", newline="", encoding="utf-8") as f:
            csv.writer(f, delimiter=defaults.CSV_DELIMITER).writerow(defaults.CSV_HEADER)
        return True

    def append(self, raw: str, peer_ip: Optional[str]) -> None:
        stamp = self._now()
        row = [stamp.strftime("%d/%m/%Y"), stamp.strftime("%H:%M:%S"), raw, peer_ip or ""]
        with self.path.open("a", newline="", encoding="utf-8") as f:
            csv.writer(f, delimiter=defaults.CSV_DELIMITER).writerow(row)
        self.rows_written += 1


class RecorderProtocol(asyncio.Protocol):
    def __init__(self, log: CsvLog):
        self.log = log
        self.peer_ip: Optional[str] = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._closed = asyncio.Event()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        peer = transport.get_extra_info("peername")
        self.peer_ip = peer[0] if peer else None
        print(f"[recorder] connected to {self.peer_ip or 'device'}")

    def data_received(self, data: bytes) -> None:
        decoded = self._decoder.decode(data)
        if not decoded:
            return
        raw = decoded.strip()
        print(f"[recorder] received: {raw}")
        try:
            self.log.append(raw, self.peer_ip)
        except OSError as exc:
            logger.error("failed to append to %s: %s", self.log.path, exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            logger.error("connection error: %s", exc)
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()


async def run_recorder_session(
    cfg: RecorderConfig,
    run_notes: Optional[list[str]] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    now: Callable[[], datetime] = datetime.now,
) -> ExitCode:
    """Record until ``max_reconnects`` is exhausted (forever when None)."""

    notes = run_notes if run_notes is not None else []
    log = CsvLog(cfg.csv_path, now=now)
    if log.ensure_header():
        notes.append("csv=created")
    loop = asyncio.get_running_loop()
    reconnects = 0
    connections = 0

    while True:
        proto = RecorderProtocol(log)
        connect = loop.create_connection(lambda: proto, cfg.host, cfg.port)
        try:
            if cfg.connect_timeout:
                await asyncio.wait_for(connect, cfg.connect_timeout)
            else:
                await connect
        except (OSError, asyncio.TimeoutError) as exc:
            logger.error("connection error: %s", str(exc) or type(exc).__name__)
        else:
            connections += 1
            await proto.wait_closed()

        if cfg.max_reconnects is not None and reconnects >= cfg.max_reconnects:
            notes.append(f"connections={connections}")
            notes.append(f"rows={log.rows_written}")
            return ExitCode.RECONNECT_LIMIT_REACHED
        print(f"[recorder] connection closed, reconnecting in {cfg.reconnect_delay:g} seconds...")
        await sleep(cfg.reconnect_delay)
        reconnects += 1
