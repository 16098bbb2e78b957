from __future__ import annotations

from .engine import DEFAULT_FANOUT, SyncEngine

__all__ = ["DEFAULT_FANOUT", "SyncEngine"]
