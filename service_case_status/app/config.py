"""
Configuration for the Case Status service.
"""

from pathlib import Path

from pydantic import Field, SecretStr, field_validator

from shared.config import ServiceConfig
from .models import RECEIPT_NUMBER_PATTERN

DEFAULT_STATIC_DIR = Path(__file__).resolve().parent / "public"


class CaseStatusConfig(ServiceConfig):
    """Upstream endpoints, credentials and timeouts.

    The client credentials have no default on purpose: loading the config
    without ``USCIS_CLIENT_ID`` and ``USCIS_CLIENT_SECRET`` fails.
    """

    service_name: str = Field(default="case_status")

    # Upstream endpoints
    uscis_token_url: str = Field(default="https://api-int.uscis.gov/oauth/accesstoken")
    uscis_case_status_url: str = Field(default="https://api-int.uscis.gov/case-status")

    # Credentials
    uscis_client_id: str
    uscis_client_secret: SecretStr

    # Token cache
    token_expiry_margin_seconds: int = Field(default=60, ge=0)
    default_token_lifetime_seconds: int = Field(default=3600, gt=0)

    # Outbound calls
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)
    connectivity_probe_receipt: str = Field(default="EAC9999103403")

    # Front end
    static_dir: Path = Field(default=DEFAULT_STATIC_DIR)

    @field_validator("uscis_client_id")
    @classmethod
    def _client_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("USCIS_CLIENT_ID must be set")
        return value.strip()

    @field_validator("uscis_client_secret")
    @classmethod
    def _client_secret_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("USCIS_CLIENT_SECRET must be set")
        return value

    @field_validator("connectivity_probe_receipt")
    @classmethod
    def _probe_receipt_is_well_formed(cls, value: str) -> str:
        if not RECEIPT_NUMBER_PATTERN.fullmatch(value):
            raise ValueError("CONNECTIVITY_PROBE_RECEIPT must be three uppercase letters and ten digits")
        return value


def get_config(**overrides) -> CaseStatusConfig:
    """Load configuration from the environment (and ``.env``)."""
    return CaseStatusConfig(**overrides)
