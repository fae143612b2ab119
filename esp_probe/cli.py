"""Command-line entry point for the esp_probe test clients."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Any, Dict, Optional, Sequence

import yaml

from esp_probe.clients.monitor import run_monitor_session
from esp_probe.clients.recorder import run_recorder_session
from esp_probe.config.loader import ConfigError, ProbeConfig, load_probe_config
from esp_probe.device.emulator import run_emulator_session
from esp_probe.latency.sampler import run_latency_session
from esp_probe.runtime.session import run_session


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _add_endpoint_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", default=None, help="Device IP or hostname.")
    parser.add_argument("--port", type=int, default=None, help="Device TCP port.")
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=None,
        help="Seconds to wait for the TCP connect (default: no timeout).",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments for the probe clients."""

    parser = argparse.ArgumentParser(
        prog="esp-probe",
        description="TCP test clients for an ESP32 data server.",
    )
    parser.add_argument("--config", default=None, help="YAML config file (see configs/probe.example.yaml).")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_lat = sub.add_parser("latency", help="Measure one-way latency from timestamped JSON lines.")
    _add_endpoint_args(p_lat)
    p_lat.add_argument("--max-samples", type=int, default=None, help="Samples to collect before summarizing.")
    p_lat.add_argument("--timestamp-field", default=None, help="JSON field holding the origin timestamp (ms).")
    p_lat.add_argument("--csv", dest="samples_csv", default=None, help="Write raw samples (idx,latency_ms) here.")

    p_mon = sub.add_parser("monitor", help="Print every chunk received from the device.")
    _add_endpoint_args(p_mon)
    p_mon.add_argument("--label", default=None, help="Client label printed before each line.")
    p_mon.add_argument("--greeting", default=None, help="Line sent right after connecting.")
    p_mon.add_argument("--no-greeting", action="store_true", help="Do not send a greeting line.")

    p_rec = sub.add_parser("record", help="Append received chunks to a CSV log, reconnecting on close.")
    _add_endpoint_args(p_rec)
    p_rec.add_argument("--csv", dest="csv_path", default=None, help="CSV file to append to.")
    p_rec.add_argument("--reconnect-delay", type=float, default=None, help="Seconds between reconnect attempts.")
    p_rec.add_argument("--max-reconnects", type=int, default=None, help="Stop after N reconnects (default: never).")

    p_emu = sub.add_parser("emulate", help="Run a local fake device streaming timestamped JSON lines.")
    p_emu.add_argument("--host", default=None)
    p_emu.add_argument("--port", type=int, default=None)
    p_emu.add_argument("--interval", type=float, default=None, help="Seconds between lines.")
    p_emu.add_argument("--lines", dest="lines_per_client", type=int, default=None, help="Close each client after N lines.")
    p_emu.add_argument("--malformed-every", type=int, default=None, help="Replace every N-th line with invalid JSON.")
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    values = {k: v for k, v in vars(args).items() if k not in ("command", "config", "verbose", "no_greeting")}
    section = {"latency": "latency", "monitor": "monitor", "record": "recorder", "emulate": "emulator"}[args.command]
    return {section: values}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Execute the CLI entry point."""

    args = parse_args(argv)
    _configure_logging(args.verbose)

    try:
        cfg: ProbeConfig = load_probe_config(args.config, override=_overrides(args))
    except (ConfigError, OSError, yaml.YAMLError) as exc:
        raise SystemExit(f"esp-probe: invalid configuration: {exc}") from exc

    if args.command == "latency":
        run_session(lambda notes: run_latency_session(cfg.latency, run_notes=notes), log_prefix="latency")
    elif args.command == "monitor":
        monitor_cfg = cfg.monitor
        if args.no_greeting:
            monitor_cfg = replace(monitor_cfg, greeting=None)
        run_session(lambda notes: run_monitor_session(monitor_cfg, notes), log_prefix=monitor_cfg.label)
    elif args.command == "record":
        run_session(lambda notes: run_recorder_session(cfg.recorder, notes), log_prefix="recorder")
    else:
        run_session(lambda notes: run_emulator_session(cfg.emulator, notes), log_prefix="emulator")

    # the session ending (samples collected, peer closed, connect failure) is a normal exit
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
