"""Central location for default probe configuration values."""

from __future__ import annotations

DEFAULT_LATENCY_HOST = "10.128.32.12"
DEFAULT_LATENCY_PORT = 9001
DEFAULT_MAX_SAMPLES = 20
DEFAULT_TIMESTAMP_FIELD = "timestamp_ms"
DEFAULT_CONNECT_TIMEOUT = None  # None == wait for the OS connect timeout

DEFAULT_MONITOR_HOST = "10.128.32.93"
DEFAULT_MONITOR_PORT = 9000
DEFAULT_MONITOR_LABEL = "client"
DEFAULT_MONITOR_GREETING = "Ping"

DEFAULT_RECORDER_HOST = "10.128.32.178"
DEFAULT_RECORDER_PORT = 9000
DEFAULT_CSV_PATH = "log_bruto.csv"
DEFAULT_RECONNECT_DELAY = 5.0
DEFAULT_MAX_RECONNECTS = None  # None == reconnect forever
CSV_HEADER = ("Data", "Hora", "DadoBruto", "IP_Conexao")
CSV_DELIMITER = ";"

DEFAULT_EMULATOR_HOST = "127.0.0.1"
DEFAULT_EMULATOR_PORT = 9001
DEFAULT_EMULATOR_INTERVAL = 0.5

ENV_PREFIX = "ESP_PROBE_"
