"""Local stand-in for the ESP32 data server.

Streams one JSON line per ``interval`` seconds to every connected client:
  {"seq": 1, "timestamp_ms": 1760796187123, "weight_g": 512.4}

With ``malformed_every=N`` every N-th line is replaced by ``not json`` to
exercise the clients' parse-error path.
"""
from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Callable, Optional, Tuple

from esp_probe.config.loader import EmulatorConfig
from esp_probe.latency.sampler import wall_clock_ms
from esp_probe.runtime.exit_codes import ExitCode

logger = logging.getLogger(__name__)


class DeviceEmulator:
    def __init__(
        self,
        cfg: EmulatorConfig,
        *,
        clock: Callable[[], float] = wall_clock_ms,
        rng: Optional[random.Random] = None,
    ):
        self.cfg = cfg
        self._clock = clock
        self._rng = rng or random.Random()
        self._server: Optional[asyncio.AbstractServer] = None
        self.clients_served = 0

    def make_line(self, seq: int) -> bytes:
        if self.cfg.malformed_every and seq % self.cfg.malformed_every == 0:
            return b"not json\n"
        payload = {
            "seq": seq,
            "timestamp_ms": self._clock(),
            "weight_g": round(self._rng.uniform(0.0, 1000.0), 1),
        }
        return (json.dumps(payload) + "\n").encode("utf-8")

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        self.clients_served += 1
        logger.info("client connected peer=%s", peer)
        seq = 0
        try:
            while self.cfg.lines_per_client is None or seq < self.cfg.lines_per_client:
                if writer.is_closing():
                    break
                seq += 1
                writer.write(self.make_line(seq))
                await writer.drain()
                if self.cfg.interval:
                    await asyncio.sleep(self.cfg.interval)
        except (ConnectionResetError, BrokenPipeError) as exc:
            logger.info("client went away peer=%s detail=%s", peer, exc)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionResetError, BrokenPipeError):
                pass
            logger.info("client closed peer=%s lines=%d", peer, seq)

    async def start(self) -> Tuple[str, int]:
        self._server = await asyncio.start_server(self.handle_client, self.cfg.host, self.cfg.port)
        sock = self._server.sockets[0]
        host, port = sock.getsockname()[:2]
        print(f"[emulator] listening on {host}:{port}")
        return host, port

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None


async def run_emulator_session(cfg: EmulatorConfig, run_notes: Optional[list[str]] = None) -> ExitCode:
    notes = run_notes if run_notes is not None else []
    emulator = DeviceEmulator(cfg)
    try:
        await emulator.serve_forever()
    except asyncio.CancelledError:
        notes.append(f"clients={emulator.clients_served}")
        raise
    return ExitCode.COMPLETED
