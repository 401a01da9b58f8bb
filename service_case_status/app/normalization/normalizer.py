"""
Normalization of upstream case status payloads.

USCIS has returned the same data under camelCase and snake_case names. Callers
always receive the ``{"caseStatus": {...}}`` envelope described by
``CaseStatusEnvelope``. Each output field is filled from the first candidate
upstream key holding a non-empty value.

Normalization never fails a request. If a payload cannot be mapped, the
result is a ``RawPassthrough`` that carries the original body unchanged.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from shared.logging import get_logger
from ..models import CaseStatus, CaseStatusEnvelope, HistoryEntry

logger = get_logger("case_status.normalizer")

# Keys that mark a body as already normalized
ENVELOPE_KEYS: Tuple[str, ...] = ("caseStatus", "case_status")

FIELD_ALIASES: Mapping[str, Sequence[str]] = {
    "receipt_number": ("receiptNumber", "receipt_number"),
    "form_type": ("formType", "form_type", "applicationTypeCode"),
    "submitted_date": ("receivedDate", "received_date", "createdDate"),
    "modified_date": ("lastUpdatedDate", "last_updated_date", "updatedDate"),
    "current_status_text": ("status", "case_status"),
    "current_status_description": ("statusDescription", "status_description"),
}

HISTORY_KEY = "caseHistory"
HISTORY_TEXT_ALIASES: Sequence[str] = ("description", "status_description")


@dataclass(frozen=True)
class NormalizedCaseStatus:
    """Body in the stable output schema (or one that already was)."""

    payload: Any


@dataclass(frozen=True)
class RawPassthrough:
    """Body that could not be mapped, returned to callers as-is."""

    payload: Any
    reason: str


NormalizationResult = Union[NormalizedCaseStatus, RawPassthrough]


def _first(source: Mapping[str, Any], keys: Sequence[str]) -> Optional[Any]:
    for key in keys:
        value = source.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def is_normalized(body: Any) -> bool:
    """True when ``body`` already carries a non-empty normalized envelope object."""
    return isinstance(body, Mapping) and any(
        isinstance(body.get(key), Mapping) and body.get(key) for key in ENVELOPE_KEYS
    )


def _map_history(entries: Any) -> list:
    if not isinstance(entries, list):
        return []
    return [
        HistoryEntry(
            date=entry.get("date"),
            completed_text=_first(entry, HISTORY_TEXT_ALIASES),
        )
        for entry in entries
    ]


def _map_case_status(body: Mapping[str, Any]) -> dict:
    fields = {name: _first(body, aliases) for name, aliases in FIELD_ALIASES.items()}
    case_status = CaseStatus(history=_map_history(body.get(HISTORY_KEY)), **fields)
    return CaseStatusEnvelope(case_status=case_status).model_dump(by_alias=True)


def normalize_case_status(body: Any) -> NormalizationResult:
    """Map an upstream body into the stable schema.

    An already-normalized body is returned as the very same object.
    """
    if is_normalized(body):
        return NormalizedCaseStatus(body)

    try:
        if not isinstance(body, Mapping):
            raise TypeError(f"expected a JSON object, got {type(body).__name__}")
        return NormalizedCaseStatus(_map_case_status(body))
    except Exception as e:
        logger.warning("Error processing API response", error=str(e))
        return RawPassthrough(body, reason=str(e))
