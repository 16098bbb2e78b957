from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Protocol

from .errors import DecodeError
from .models import Decoded, DecodeResult, Draft, Malformed, Record

PROTECTED_MARKER = "FHE-"

# Envelope keys as laid out on the ledger by the browser client.
ENVELOPE_FIELDS = {
    "encoded_payload": "data",
    "timestamp": "timestamp",
    "submitter_id": "provider",
    "severity": "severity",
    "impact_category": "impactType",
    "location": "location",
}


class PayloadCipher(Protocol):
    def encode(self, fields: dict[str, Any]) -> str: ...

    def decode(self, payload: str) -> dict[str, Any]: ...


class MarkerCipher:
    """Placeholder confidentiality boundary.

    Tags the payload with ``FHE-`` and stores the fields as base64 JSON. It
    provides no secrecy; substitute a real cipher with the same
    ``encode``/``decode`` pair.
    """

    def __init__(self, marker: str = PROTECTED_MARKER) -> None:
        self.marker = marker

    def encode(self, fields: dict[str, Any]) -> str:
        raw = json.dumps(fields, ensure_ascii=False, sort_keys=True).encode("utf-8")
        return f"{self.marker}{base64.b64encode(raw).decode('ascii')}"

    def decode(self, payload: str) -> dict[str, Any]:
        if not payload.startswith(self.marker):
            raise DecodeError("payload missing protection marker")
        body = payload[len(self.marker) :]
        try:
            raw = base64.b64decode(body.encode("ascii"), validate=True)
            data = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeError, ValueError) as exc:
            raise DecodeError(f"payload not decodable: {exc}") from exc
        if not isinstance(data, dict):
            raise DecodeError("payload is not an object")
        return data


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RecordCodec:
    def __init__(self, cipher: PayloadCipher | None = None) -> None:
        self.cipher: PayloadCipher = cipher or MarkerCipher()

    def encode_payload(self, draft: Draft) -> str:
        return self.cipher.encode(
            {
                "severity": draft.severity,
                "impactType": draft.impact_category,
                "location": draft.location,
                "details": draft.details,
            }
        )

    def decode_payload(self, payload: str) -> Draft:
        fields = self.cipher.decode(payload)
        severity = fields.get("severity")
        impact = fields.get("impactType")
        location = fields.get("location")
        details = fields.get("details", "")
        if not _is_int(severity):
            raise DecodeError("payload severity must be an integer")
        if not isinstance(impact, str) or not isinstance(location, str):
            raise DecodeError("payload impactType/location must be strings")
        if not isinstance(details, str):
            raise DecodeError("payload details must be a string")
        return Draft(
            severity=int(severity),  # type: ignore[arg-type]
            impact_category=impact,
            location=location,
            details=details,
        )

    def encode(self, record: Record) -> bytes:
        envelope = {
            wire_key: getattr(record, attr) for attr, wire_key in ENVELOPE_FIELDS.items()
        }
        return json.dumps(envelope, ensure_ascii=False).encode("utf-8")

    def decode(self, record_id: str, raw: bytes) -> DecodeResult:
        if not raw:
            return Malformed(record_id, "empty value")
        try:
            envelope = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError:
            return Malformed(record_id, "value is not utf-8")
        except json.JSONDecodeError as exc:
            return Malformed(record_id, f"invalid json: {exc.msg}")
        if not isinstance(envelope, dict):
            return Malformed(record_id, f"envelope is {type(envelope).__name__}, not object")

        missing = [key for key in ENVELOPE_FIELDS.values() if key not in envelope]
        if missing:
            return Malformed(record_id, f"missing fields: {', '.join(sorted(missing))}")

        values = {attr: envelope[wire_key] for attr, wire_key in ENVELOPE_FIELDS.items()}
        for attr in ("timestamp", "severity"):
            if not _is_int(values[attr]):
                return Malformed(record_id, f"{ENVELOPE_FIELDS[attr]} must be an integer")
        for attr in ("encoded_payload", "submitter_id", "impact_category", "location"):
            if not isinstance(values[attr], str):
                return Malformed(record_id, f"{ENVELOPE_FIELDS[attr]} must be a string")
        return Decoded(Record(id=record_id, **values))

    def decode_or_raise(self, record_id: str, raw: bytes) -> Record:
        result = self.decode(record_id, raw)
        if isinstance(result, Malformed):
            raise DecodeError(f"{record_id}: {result.reason}")
        return result.record
