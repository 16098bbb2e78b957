from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum

from .models import HIGH_SEVERITY_THRESHOLD, Record, Snapshot, Stats


class Tab(str, Enum):
    ALL = "all"
    MINE = "mine"


def _matches_search(record: Record, term: str) -> bool:
    if not term:
        return True
    return term in record.location.lower() or term in record.impact_category.lower()


def _matches_tab(record: Record, tab: Tab, identity: str) -> bool:
    if tab is Tab.ALL:
        return True
    if not identity:
        return False
    return record.submitter_id.lower() == identity.lower()


def filter_records(
    snapshot: Snapshot,
    search_term: str = "",
    tab: Tab = Tab.ALL,
    current_identity: str = "",
) -> list[Record]:
    term = (search_term or "").lower()
    tab = Tab(tab)
    return [
        record
        for record in snapshot.records
        if _matches_search(record, term) and _matches_tab(record, tab, current_identity or "")
    ]


def partition_tabs(snapshot: Snapshot, current_identity: str = "") -> dict[Tab, list[Record]]:
    return {tab: filter_records(snapshot, "", tab, current_identity) for tab in Tab}


def aggregate(snapshot: Snapshot) -> Stats:
    """Counts over the whole snapshot; search and tab never apply here."""

    records = snapshot.records
    return Stats(
        total=len(records),
        high_severity_count=sum(1 for r in records if r.severity >= HIGH_SEVERITY_THRESHOLD),
        per_category_counts=dict(Counter(r.impact_category for r in records)),
    )


def count_matching_category(snapshot: Snapshot, needle: str) -> int:
    """Case-sensitive substring count, e.g. "Power" also matches "Power Grid"."""

    return sum(1 for record in snapshot.records if needle in record.impact_category)


@dataclass(frozen=True)
class RenderModel:
    records: list[Record]
    stats: Stats
    search_term: str
    tab: Tab


def build_render_model(
    snapshot: Snapshot,
    search_term: str = "",
    tab: Tab = Tab.ALL,
    current_identity: str = "",
) -> RenderModel:
    return RenderModel(
        records=filter_records(snapshot, search_term, tab, current_identity),
        stats=aggregate(snapshot),
        search_term=search_term,
        tab=Tab(tab),
    )
