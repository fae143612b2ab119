"""Load ProbeConfig from defaults, YAML, environment and CLI overrides.

YAML layout (every key optional):

    latency:
      host: 10.128.32.12
      port: 9001
      max_samples: 20
    monitor:
      host: 10.128.32.93
      label: cliente2
    recorder:
      csv_path: logs/log_bruto.csv
      reconnect_delay: 5.0
    emulator:
      interval: 0.25

Precedence: defaults < YAML < ESP_PROBE_* environment < overrides.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml

from esp_probe.config import defaults


class ConfigError(ValueError):
    """Raised when a configuration value is missing or out of range."""


@dataclass(frozen=True)
class LatencyConfig:
    host: str = defaults.DEFAULT_LATENCY_HOST
    port: int = defaults.DEFAULT_LATENCY_PORT
    max_samples: int = defaults.DEFAULT_MAX_SAMPLES
    timestamp_field: str = defaults.DEFAULT_TIMESTAMP_FIELD
    connect_timeout: Optional[float] = defaults.DEFAULT_CONNECT_TIMEOUT
    samples_csv: Optional[str] = None


@dataclass(frozen=True)
class MonitorConfig:
    host: str = defaults.DEFAULT_MONITOR_HOST
    port: int = defaults.DEFAULT_MONITOR_PORT
    label: str = defaults.DEFAULT_MONITOR_LABEL
    greeting: Optional[str] = defaults.DEFAULT_MONITOR_GREETING
    connect_timeout: Optional[float] = defaults.DEFAULT_CONNECT_TIMEOUT


@dataclass(frozen=True)
class RecorderConfig:
    host: str = defaults.DEFAULT_RECORDER_HOST
    port: int = defaults.DEFAULT_RECORDER_PORT
    csv_path: str = defaults.DEFAULT_CSV_PATH
    reconnect_delay: float = defaults.DEFAULT_RECONNECT_DELAY
    max_reconnects: Optional[int] = defaults.DEFAULT_MAX_RECONNECTS
    connect_timeout: Optional[float] = defaults.DEFAULT_CONNECT_TIMEOUT


@dataclass(frozen=True)
class EmulatorConfig:
    host: str = defaults.DEFAULT_EMULATOR_HOST
    port: int = defaults.DEFAULT_EMULATOR_PORT
    interval: float = defaults.DEFAULT_EMULATOR_INTERVAL
    lines_per_client: Optional[int] = None
    malformed_every: int = 0


@dataclass(frozen=True)
class ProbeConfig:
    latency: LatencyConfig = field(default_factory=LatencyConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    recorder: RecorderConfig = field(default_factory=RecorderConfig)
    emulator: EmulatorConfig = field(default_factory=EmulatorConfig)


_SECTIONS = ("latency", "monitor", "recorder", "emulator")
_CLIENT_SECTIONS = ("latency", "monitor", "recorder")


def _merge_section(section: Any, data: Mapping[str, Any]) -> Any:
    known = {f.name for f in fields(section)}
    updates = {k: v for k, v in data.items() if k in known and v is not None}
    return replace(section, **updates) if updates else section


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    host = environ.get(f"{defaults.ENV_PREFIX}HOST")
    port = environ.get(f"{defaults.ENV_PREFIX}PORT")
    max_samples = environ.get(f"{defaults.ENV_PREFIX}MAX_SAMPLES")
    for name in _CLIENT_SECTIONS:
        if host:
            out.setdefault(name, {})["host"] = host
        if port:
            try:
                out.setdefault(name, {})["port"] = int(port)
            except ValueError as exc:
                raise ConfigError(f"{defaults.ENV_PREFIX}PORT is not an integer: {port!r}") from exc
    if max_samples:
        try:
            out.setdefault("latency", {})["max_samples"] = int(max_samples)
        except ValueError as exc:
            raise ConfigError(
                f"{defaults.ENV_PREFIX}MAX_SAMPLES is not an integer: {max_samples!r}"
            ) from exc
    return out


def validate_config(cfg: ProbeConfig) -> ProbeConfig:
    for name in _SECTIONS:
        section = getattr(cfg, name)
        port = section.port
        if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
            raise ConfigError(f"{name}.port out of range: {port!r}")
        if not section.host:
            raise ConfigError(f"{name}.host must not be empty")
    max_samples = cfg.latency.max_samples
    if not isinstance(max_samples, int) or isinstance(max_samples, bool) or max_samples < 1:
        raise ConfigError(f"latency.max_samples must be >= 1 (got {cfg.latency.max_samples})")
    if not cfg.latency.timestamp_field:
        raise ConfigError("latency.timestamp_field must not be empty")
    if cfg.recorder.reconnect_delay < 0:
        raise ConfigError("recorder.reconnect_delay must be >= 0")
    if cfg.recorder.max_reconnects is not None and cfg.recorder.max_reconnects < 0:
        raise ConfigError("recorder.max_reconnects must be >= 0")
    if cfg.emulator.interval < 0:
        raise ConfigError("emulator.interval must be >= 0")
    return cfg


def load_probe_config(
    path: str | None = None,
    override: Dict[str, Dict[str, Any]] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProbeConfig:
    data: Dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"config root must be a mapping: {path}")

    cfg = ProbeConfig()
    layers = [data, _env_overrides(os.environ if environ is None else environ), override or {}]
    for layer in layers:
        for name in _SECTIONS:
            section_data = layer.get(name)
            if not section_data:
                continue
            if not isinstance(section_data, dict):
                raise ConfigError(f"section '{name}' must be a mapping")
            cfg = replace(cfg, **{name: _merge_section(getattr(cfg, name), section_data)})
    return validate_config(cfg)
