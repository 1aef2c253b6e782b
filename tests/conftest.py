from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "LITESPLIT_ENABLED",
        "LITESPLIT_CHUNK_SIZE",
        "LITESPLIT_MATERIAL_LISTS",
        "LITESPLIT_OVERWRITE",
        "LITESPLIT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
