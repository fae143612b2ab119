import textwrap

import pytest

from esp_probe.config import defaults
from esp_probe.config.loader import ConfigError, ProbeConfig, load_probe_config


def test_defaults_without_file_or_env():
    cfg = load_probe_config(environ={})
    assert cfg == ProbeConfig()
    assert cfg.latency.host == defaults.DEFAULT_LATENCY_HOST
    assert cfg.latency.port == 9001
    assert cfg.latency.max_samples == 20
    assert cfg.recorder.reconnect_delay == 5.0
    assert cfg.recorder.max_reconnects is None


def test_yaml_file_overrides_defaults_and_ignores_unknown_keys(tmp_path):
    path = tmp_path / "probe.yaml"
    path.write_text(textwrap.dedent(
        """
        latency:
          host: 192.168.4.1
          max_samples: 5
          not_a_field: 1
        monitor:
          label: cliente3
          greeting: null
        """
    ), encoding="utf-8")
    cfg = load_probe_config(str(path), environ={})
    assert cfg.latency.host == "192.168.4.1"
    assert cfg.latency.max_samples == 5
    assert cfg.latency.port == defaults.DEFAULT_LATENCY_PORT
    assert cfg.monitor.label == "cliente3"
    # null means "not set", the default greeting stays
    assert cfg.monitor.greeting == defaults.DEFAULT_MONITOR_GREETING


def test_empty_yaml_file_is_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_probe_config(str(path), environ={}) == ProbeConfig()


def test_precedence_yaml_env_override(tmp_path):
    path = tmp_path / "probe.yaml"
    path.write_text("latency:\n  host: from-yaml\n  port: 1111\n  max_samples: 7\n", encoding="utf-8")
    env = {"ESP_PROBE_HOST": "from-env", "ESP_PROBE_MAX_SAMPLES": "9"}
    cfg = load_probe_config(str(path), override={"latency": {"port": 2222, "host": None}}, environ=env)
    assert cfg.latency.host == "from-env"
    assert cfg.latency.port == 2222
    assert cfg.latency.max_samples == 9
    # host/port env vars apply to every client, not the emulator
    assert cfg.monitor.host == "from-env"
    assert cfg.recorder.host == "from-env"
    assert cfg.emulator.host == defaults.DEFAULT_EMULATOR_HOST


@pytest.mark.parametrize(
    "override",
    [
        {"latency": {"max_samples": 0}},
        {"latency": {"port": 70000}},
        {"recorder": {"reconnect_delay": -1.0}},
        {"recorder": {"max_reconnects": -2}},
        {"monitor": {"host": ""}},
    ],
)
def test_invalid_values_raise_config_error(override):
    with pytest.raises(ConfigError):
        load_probe_config(override=override, environ={})


def test_bad_env_port_raises_config_error():
    with pytest.raises(ConfigError):
        load_probe_config(environ={"ESP_PROBE_PORT": "ninety"})


def test_non_mapping_root_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_probe_config(str(path), environ={})


def test_example_config_loads():
    from pathlib import Path

    example = Path(__file__).resolve().parent.parent / "configs" / "probe.example.yaml"
    cfg = load_probe_config(str(example), environ={})
    assert cfg.monitor.label == "cliente2"
    assert cfg.recorder.csv_path == "log_bruto.csv"
