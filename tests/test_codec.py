from __future__ import annotations

import json

import pytest

from incidentledger.codec import MarkerCipher, RecordCodec
from incidentledger.errors import DecodeError
from incidentledger.models import Decoded, Draft, Malformed, Record


def _record(**overrides) -> Record:
    fields = {
        "id": "sw-1-abc",
        "encoded_payload": "FHE-e30=",
        "timestamp": 1700000000,
        "submitter_id": "0xAbC",
        "severity": 3,
        "impact_category": "Power Grid",
        "location": "Texas",
    }
    fields.update(overrides)
    return Record(**fields)


@pytest.mark.parametrize(
    "draft",
    [
        Draft(severity=1, impact_category="Power Grid", location="Texas"),
        Draft(severity=5, impact_category="Communication", location="Ontario", details="HF blackout"),
        Draft(severity=3, impact_category="Résumé ünïcode", location="北海道", details="a\nb"),
    ],
)
def test_payload_round_trip(draft: Draft) -> None:
    codec = RecordCodec()
    payload = codec.encode_payload(draft)

    assert payload.startswith("FHE-")
    assert codec.decode_payload(payload) == draft


def test_envelope_round_trip_uses_ledger_wire_keys() -> None:
    codec = RecordCodec()
    record = _record()

    raw = codec.encode(record)
    envelope = json.loads(raw.decode("utf-8"))

    assert envelope == {
        "data": "FHE-e30=",
        "timestamp": 1700000000,
        "provider": "0xAbC",
        "severity": 3,
        "impactType": "Power Grid",
        "location": "Texas",
    }
    assert codec.decode("sw-1-abc", raw) == Decoded(record)


@pytest.mark.parametrize(
    ("raw", "reason_fragment"),
    [
        (b"", "empty"),
        (b"\xff\xfe", "utf-8"),
        (b"{not json", "invalid json"),
        (b"[1, 2]", "not object"),
        (b'{"data": "x"}', "missing fields"),
        (
            json.dumps(
                {
                    "data": "x",
                    "timestamp": "yesterday",
                    "provider": "p",
                    "severity": 2,
                    "impactType": "Power",
                    "location": "Texas",
                }
            ).encode(),
            "timestamp must be an integer",
        ),
        (
            json.dumps(
                {
                    "data": "x",
                    "timestamp": 1,
                    "provider": "p",
                    "severity": True,
                    "impactType": "Power",
                    "location": "Texas",
                }
            ).encode(),
            "severity must be an integer",
        ),
        (
            json.dumps(
                {
                    "data": "x",
                    "timestamp": 1,
                    "provider": None,
                    "severity": 2,
                    "impactType": "Power",
                    "location": "Texas",
                }
            ).encode(),
            "provider must be a string",
        ),
    ],
)
def test_decode_reports_malformed_without_raising(raw: bytes, reason_fragment: str) -> None:
    result = RecordCodec().decode("bad", raw)

    assert isinstance(result, Malformed)
    assert result.record_id == "bad"
    assert reason_fragment in result.reason


def test_decode_tolerates_open_vocabulary_and_out_of_range_severity() -> None:
    codec = RecordCodec()
    raw = codec.encode(_record(impact_category="Satellite drag", severity=9))

    result = codec.decode("sw-1-abc", raw)

    assert isinstance(result, Decoded)
    assert result.record.impact_category == "Satellite drag"
    assert result.record.severity == 9


def test_decode_or_raise() -> None:
    codec = RecordCodec()
    with pytest.raises(DecodeError, match="bad: invalid json"):
        codec.decode_or_raise("bad", b"{")
    assert codec.decode_or_raise("sw-1-abc", codec.encode(_record())) == _record()


@pytest.mark.parametrize("payload", ["eyJhIjogMX0=", "FHE-not base64!", "FHE-WzFd"])
def test_marker_cipher_rejects_unprotected_or_garbled_payloads(payload: str) -> None:
    with pytest.raises(DecodeError):
        MarkerCipher().decode(payload)


def test_codec_accepts_pluggable_cipher() -> None:
    class ReversingCipher:
        def encode(self, fields: dict) -> str:
            return json.dumps(fields, sort_keys=True)[::-1]

        def decode(self, payload: str) -> dict:
            return json.loads(payload[::-1])

    codec = RecordCodec(ReversingCipher())
    draft = Draft(severity=2, impact_category="GPS", location="Alaska")

    payload = codec.encode_payload(draft)

    assert not payload.startswith("FHE-")
    assert codec.decode_payload(payload) == draft
