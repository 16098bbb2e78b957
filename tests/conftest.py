from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("INCIDENTLEDGER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INCIDENTLEDGER_CONFIG", str(tmp_path / "config.json"))
