"""Latency sampler: connect to the device, timestamp JSON lines, summarize.

Protocol (line-delimited JSON, device -> client):
  {"timestamp_ms": <sender epoch ms>, ...any other fields...}

For each record the sampler computes ``receive_ms - timestamp_ms``. After
``max_samples`` records it prints a summary and closes the connection.
"""
from __future__ import annotations

import asyncio
import csv
import json
import logging
import math
import time
from pathlib import Path
from typing import Any, Callable, List, Optional

from esp_probe.config.loader import LatencyConfig
from esp_probe.latency.line_buffer import LineBuffer
from esp_probe.latency.stats import LatencySummary, compute_statistics
from esp_probe.runtime.exit_codes import ExitCode

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


def _fmt_ms(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    return f"{value:.2f}"


class LatencySampler(asyncio.Protocol):
    def __init__(
        self,
        max_samples: int,
        *,
        timestamp_field: str = "timestamp_ms",
        clock: Callable[[], float] = wall_clock_ms,
        log_prefix: str = "latency",
    ):
        if max_samples < 1:
            raise ValueError("max_samples must be >= 1")
        self.max_samples = max_samples
        self.timestamp_field = timestamp_field
        self.samples: List[float] = []
        self.summary: Optional[LatencySummary] = None
        self.exit_reason = ExitCode.UNRESOLVED
        self.connected = False
        self.malformed_lines = 0
        self._clock = clock
        self._prefix = f"[{log_prefix}]"
        self._buffer = LineBuffer()
        self._transport: Optional[asyncio.BaseTransport] = None
        self._closed = asyncio.Event()

    @property
    def finished(self) -> bool:
        return len(self.samples) >= self.max_samples

    # transport callbacks
    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport
        self.connected = True
        peer = transport.get_extra_info("peername")
        where = f"{peer[0]}:{peer[1]}" if peer else "device"
        print(f"{self._prefix} connected to {where}")
        print(f"{self._prefix} collecting {self.max_samples} latency samples...")

    def data_received(self, data: bytes) -> None:
        self.on_data(data)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            self.on_error(exc)
        self.on_close()

    # session logic
    def on_data(self, chunk: bytes | str) -> None:
        if self.finished:
            return
        for line in self._buffer.feed(chunk):
            self._handle_line(line)
            if self.finished:
                # remaining buffered input is dropped along with the connection
                self._buffer.clear()
                return

    def _handle_line(self, line: str) -> None:
        # U+FEFF is not whitespace for str.strip
        text = line.strip().strip("\ufeff").strip()
        if not text:
            return
        received_ms = self._clock()
        try:
            payload = json.loads(text, parse_constant=_reject_constant)
            if payload is None:
                raise ValueError("null payload")
        except ValueError:
            self.malformed_lines += 1
            logger.warning("could not parse received line as JSON; line=%r", text)
            return

        origin_ms = self._origin_timestamp(payload)
        if origin_ms is None or self.finished:
            return

        latency = received_ms - origin_ms
        self.samples.append(latency)
        print(f"> sample {len(self.samples)}/{self.max_samples} | latency: {_fmt_ms(latency)} ms")
        if self.finished:
            self._complete()

    def _origin_timestamp(self, payload: Any) -> Optional[float]:
        if not isinstance(payload, dict):
            return None
        value = payload.get(self.timestamp_field)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
            return None
        if not math.isfinite(value):
            return None
        return value

    def _complete(self) -> None:
        self.summary = compute_statistics(self.samples)
        self.exit_reason = ExitCode.SAMPLES_COLLECTED
        print("\n--- COLLECTION FINISHED ---")
        for line in self.summary.lines():
            print(line)
        if self._transport is not None:
            self._transport.close()

    def on_error(self, exc: BaseException) -> None:
        detail = str(exc) or type(exc).__name__
        logger.error("connection error: %s", detail)
        if self.exit_reason is ExitCode.UNRESOLVED:
            self.exit_reason = ExitCode.CONNECTION_ERROR

    def on_close(self) -> None:
        self.connected = False
        self._transport = None
        if self.exit_reason is ExitCode.UNRESOLVED:
            self.exit_reason = ExitCode.PEER_CLOSED
        print(f"{self._prefix} connection closed")
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()


def write_samples_csv(path: str | Path, samples: List[float]) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["idx", "latency_ms"])
        for i, v in enumerate(samples):
            w.writerow([i, v])
    return out


async def run_latency_session(
    cfg: LatencyConfig,
    *,
    clock: Callable[[], float] = wall_clock_ms,
    run_notes: Optional[list[str]] = None,
) -> ExitCode:
    """Connect, sample until the cap or until the peer closes, return the exit reason."""

    notes = run_notes if run_notes is not None else []
    loop = asyncio.get_running_loop()
    sampler = LatencySampler(cfg.max_samples, timestamp_field=cfg.timestamp_field, clock=clock)

    connect = loop.create_connection(lambda: sampler, cfg.host, cfg.port)
    try:
        if cfg.connect_timeout:
            await asyncio.wait_for(connect, cfg.connect_timeout)
        else:
            await connect
    except (OSError, asyncio.TimeoutError) as exc:
        logger.error(
            "could not connect to %s:%s, check the address and that the device is on the same network",
            cfg.host,
            cfg.port,
        )
        sampler.on_error(exc)
        sampler.on_close()
        notes.append("connect=failed")
        return ExitCode.CONNECT_FAILED

    await sampler.wait_closed()

    notes.append(f"samples={len(sampler.samples)}/{cfg.max_samples}")
    if sampler.malformed_lines:
        notes.append(f"malformed_lines={sampler.malformed_lines}")
    if cfg.samples_csv and sampler.samples:
        out = write_samples_csv(cfg.samples_csv, sampler.samples)
        notes.append(f"samples_csv={out}")
    return sampler.exit_reason
