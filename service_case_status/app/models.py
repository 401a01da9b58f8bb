"""
Wire models for the Case Status service.
"""

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Three uppercase letters followed by ten digits, e.g. EAC9999103403
RECEIPT_NUMBER_PATTERN = re.compile(r"^[A-Z]{3}[0-9]{10}$")


class CamelModel(BaseModel):
    """Model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenResponse(BaseModel):
    """Upstream client-credentials token response."""

    model_config = ConfigDict(extra="allow")

    access_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class HistoryEntry(CamelModel):
    """One past status of a case."""

    date: Any = None
    completed_text: Any = None


class CaseStatus(CamelModel):
    """Stable case status shape returned to callers."""

    receipt_number: Any = None
    form_type: Any = None
    submitted_date: Any = None
    modified_date: Any = None
    current_status_text: Any = None
    current_status_description: Any = None
    history: List[HistoryEntry] = Field(default_factory=list)


class CaseStatusEnvelope(CamelModel):
    """Top-level normalized response body."""

    case_status: CaseStatus


class ConnectivityResult(CamelModel):
    """Outcome of probing the token and case status endpoints."""

    success: bool
    message: str
    token_status: str
    case_status_endpoint: str
    status_code: Union[int, str] = "Unknown"
    error: Optional[str] = None
    details: Any = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, omitting empty error fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
