from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

HIGH_SEVERITY_THRESHOLD = 4
MIN_SEVERITY = 1
MAX_SEVERITY = 5


@dataclass(frozen=True)
class Record:
    id: str
    encoded_payload: str
    timestamp: int
    submitter_id: str
    severity: int
    impact_category: str
    location: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "encoded_payload": self.encoded_payload,
            "timestamp": self.timestamp,
            "submitter_id": self.submitter_id,
            "severity": self.severity,
            "impact_category": self.impact_category,
            "location": self.location,
        }


@dataclass(frozen=True)
class Draft:
    severity: int
    impact_category: str
    location: str
    # Only ever stored inside the protected payload.
    details: str = ""


@dataclass(frozen=True)
class Decoded:
    record: Record


@dataclass(frozen=True)
class Malformed:
    record_id: str
    reason: str


DecodeResult = Decoded | Malformed


@dataclass(frozen=True)
class SkippedItem:
    record_id: str
    reason: str


@dataclass(frozen=True)
class Snapshot:
    records: tuple[Record, ...] = ()
    skipped: tuple[SkippedItem, ...] = ()
    index_size: int = 0
    synced_at: str = field(default="", compare=False)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class Stats:
    total: int = 0
    high_severity_count: int = 0
    per_category_counts: dict[str, int] = field(default_factory=dict)

    @property
    def high_severity_share(self) -> float:
        return _share(self.high_severity_count, self.total)

    def category_share(self, category: str) -> float:
        return _share(self.per_category_counts.get(category, 0), self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "high_severity_count": self.high_severity_count,
            "high_severity_share": self.high_severity_share,
            "per_category_counts": dict(self.per_category_counts),
            "category_shares": {
                category: self.category_share(category) for category in self.per_category_counts
            },
        }


def _share(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return count / total
