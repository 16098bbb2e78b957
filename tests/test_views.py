from __future__ import annotations

import pytest

from incidentledger.models import Record, Snapshot, Stats
from incidentledger.views import (
    Tab,
    aggregate,
    build_render_model,
    count_matching_category,
    filter_records,
    partition_tabs,
)


def _record(record_id: str, **overrides) -> Record:
    fields = {
        "id": record_id,
        "encoded_payload": "FHE-e30=",
        "timestamp": 0,
        "submitter_id": "0xAAA",
        "severity": 1,
        "impact_category": "Power Grid",
        "location": "Texas",
    }
    fields.update(overrides)
    return Record(**fields)


SNAPSHOT = Snapshot(
    records=(
        _record("tx", location="Texas", impact_category="Power Grid", severity=1),
        _record(
            "on",
            location="Ontario",
            impact_category="Communication",
            submitter_id="0xbbb",
            severity=4,
        ),
        _record("ak", location="Alaska", impact_category="GPS", severity=5),
        _record("qc", location="Quebec", impact_category="Power Grid", severity=2),
    )
)


@pytest.mark.parametrize("term", ["tex", "TEX", "Tex"])
def test_search_matches_location_case_insensitively(term: str) -> None:
    assert [r.id for r in filter_records(SNAPSHOT, term)] == ["tx"]


def test_search_matches_impact_category() -> None:
    assert [r.id for r in filter_records(SNAPSHOT, "power")] == ["tx", "qc"]


def test_empty_search_matches_everything() -> None:
    assert len(filter_records(SNAPSHOT, "")) == 4


def test_mine_tab_compares_identity_case_insensitively() -> None:
    assert [r.id for r in filter_records(SNAPSHOT, "", Tab.MINE, "0xBBB")] == ["on"]
    assert [r.id for r in filter_records(SNAPSHOT, "", "mine", "0xaaa")] == ["tx", "ak", "qc"]


def test_mine_tab_without_identity_is_empty() -> None:
    assert filter_records(SNAPSHOT, "", Tab.MINE, "") == []


def test_search_and_tab_combine() -> None:
    assert [r.id for r in filter_records(SNAPSHOT, "a", Tab.MINE, "0xaaa")] == ["tx", "ak"]
    assert [r.id for r in filter_records(SNAPSHOT, "gps", Tab.MINE, "0xbbb")] == []


def test_partition_tabs() -> None:
    tabs = partition_tabs(SNAPSHOT, "0xbbb")
    assert len(tabs[Tab.ALL]) == 4
    assert [r.id for r in tabs[Tab.MINE]] == ["on"]


def test_aggregate_counts() -> None:
    severities = [1, 4, 5, 2]
    snapshot = Snapshot(
        records=tuple(_record(str(i), severity=s) for i, s in enumerate(severities))
    )

    stats = aggregate(snapshot)

    assert stats.total == 4
    assert stats.high_severity_count == 2
    assert stats.high_severity_share == 0.5


def test_aggregate_ignores_filters() -> None:
    model = build_render_model(SNAPSHOT, "texas", Tab.MINE, "0xaaa")

    assert [r.id for r in model.records] == ["tx"]
    assert model.stats.total == 4
    assert model.stats.per_category_counts == {
        "Power Grid": 2,
        "Communication": 1,
        "GPS": 1,
    }
    assert model.stats.category_share("Power Grid") == 0.5


def test_empty_snapshot_shares_are_zero() -> None:
    stats = aggregate(Snapshot())

    assert stats == Stats()
    assert stats.high_severity_share == 0.0
    assert stats.category_share("Power Grid") == 0.0
    assert stats.to_dict()["high_severity_share"] == 0.0


def test_count_matching_category_uses_substring() -> None:
    assert count_matching_category(SNAPSHOT, "Power") == 2
    assert count_matching_category(SNAPSHOT, "Communication") == 1
    assert count_matching_category(Snapshot(), "Power") == 0
