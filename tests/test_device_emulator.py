import asyncio
import json
import random

from esp_probe.config.loader import EmulatorConfig, LatencyConfig
from esp_probe.device.emulator import DeviceEmulator
from esp_probe.latency.sampler import run_latency_session
from esp_probe.runtime.exit_codes import ExitCode


def test_make_line_payload_shape():
    emu = DeviceEmulator(EmulatorConfig(), clock=lambda: 1234, rng=random.Random(0))
    payload = json.loads(emu.make_line(7))
    assert payload["seq"] == 7
    assert payload["timestamp_ms"] == 1234
    assert 0.0 <= payload["weight_g"] <= 1000.0


def test_make_line_malformed_every():
    emu = DeviceEmulator(EmulatorConfig(malformed_every=3))
    assert emu.make_line(3) == b"not json\n"
    assert emu.make_line(6) == b"not json\n"
    json.loads(emu.make_line(4))


def test_sampler_against_emulator_skips_malformed_lines():
    async def scenario():
        emu = DeviceEmulator(
            EmulatorConfig(host="127.0.0.1", port=0, interval=0.01, lines_per_client=10, malformed_every=2)
        )
        _, port = await emu.start()
        try:
            cfg = LatencyConfig(host="127.0.0.1", port=port, max_samples=3)
            notes = []
            reason = await asyncio.wait_for(run_latency_session(cfg, run_notes=notes), 5)
            return reason, notes, emu.clients_served
        finally:
            await emu.close()

    reason, notes, served = asyncio.run(scenario())
    assert reason is ExitCode.SAMPLES_COLLECTED
    assert "samples=3/3" in notes
    assert served == 1
    # lines 2 and 4 are malformed before the third valid line (seq 5) arrives
    assert "malformed_lines=2" in notes


def test_emulator_closes_client_after_line_budget():
    async def scenario():
        emu = DeviceEmulator(EmulatorConfig(host="127.0.0.1", port=0, interval=0, lines_per_client=3))
        _, port = await emu.start()
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            data = await asyncio.wait_for(reader.read(), 5)
            writer.close()
            return data
        finally:
            await emu.close()

    data = asyncio.run(scenario())
    lines = data.decode().splitlines()
    assert [json.loads(l)["seq"] for l in lines] == [1, 2, 3]
