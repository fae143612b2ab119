"""Test configuration: ensure the project root is on sys.path for imports.
If editable install is not performed, this still allows importing esp_probe.
"""
from __future__ import annotations
import socket
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def closed_port() -> int:
    """A localhost port nobody is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
