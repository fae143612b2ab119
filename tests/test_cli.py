import socket
import subprocess
import sys
import time
from pathlib import Path

import pytest

from esp_probe import cli

LAUNCHER = Path(__file__).resolve().parent.parent / "scripts" / "run_esp_probe.py"


def pick_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def wait_ready(port):
    start = time.time()
    while time.time() - start < 10:
        try:
            with socket.create_connection(("127.0.0.1", port), timeout=0.3):
                return
        except OSError:
            time.sleep(0.05)
    raise RuntimeError("not_ready")


def test_parse_args_maps_command_to_config_section():
    args = cli.parse_args(["record", "--host", "1.2.3.4", "--csv", "x.csv", "--max-reconnects", "2"])
    ov = cli._overrides(args)
    assert list(ov) == ["recorder"]
    assert ov["recorder"]["host"] == "1.2.3.4"
    assert ov["recorder"]["csv_path"] == "x.csv"
    assert ov["recorder"]["max_reconnects"] == 2


def test_invalid_config_exits_with_message():
    with pytest.raises(SystemExit) as exc:
        cli.main(["latency", "--max-samples", "0"])
    assert "invalid configuration" in str(exc.value)


def test_connect_failure_still_exits_zero(capsys):
    port = pick_port()
    assert cli.main(["latency", "--host", "127.0.0.1", "--port", str(port), "--connect-timeout", "2"]) == 0
    out = capsys.readouterr().out
    assert "EXIT_REASON=connect_failed" in out


def test_latency_command_against_emulator_subprocess(capsys):
    port = pick_port()
    proc = subprocess.Popen(
        [sys.executable, str(LAUNCHER), "emulate", "--port", str(port), "--interval", "0.02"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    try:
        wait_ready(port)
        rc = cli.main(["latency", "--host", "127.0.0.1", "--port", str(port), "--max-samples", "4"])
        assert rc == 0
        out = capsys.readouterr().out
        assert "> sample 4/4 | latency:" in out
        assert "--- COLLECTION FINISHED ---" in out
        assert "EXIT_REASON=samples_collected" in out
    finally:
        proc.terminate()
        try:
            proc.wait(timeout=2)
        except Exception:
            proc.kill()
