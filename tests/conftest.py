import os
import sys

import pytest

# Ensure project root is on sys.path so tests run without installing the package
ROOT = os.path.dirname(os.path.abspath(__file__))
PROJ = os.path.abspath(os.path.join(ROOT, os.pardir))
if PROJ not in sys.path:
    sys.path.insert(0, PROJ)


@pytest.fixture(autouse=True)
def _clear_bridge_env(monkeypatch):
    for name in (
        "TRANSCRIPT_BRIDGE_TOOL_PROTOCOL",
        "TRANSCRIPT_BRIDGE_TOOL_CACHE_DIR",
        "TRANSCRIPT_BRIDGE_TELEMETRY_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
