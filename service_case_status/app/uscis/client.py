"""
USCIS case status client.
"""

from contextlib import nullcontext
from typing import Optional

import httpx

from shared.errors import AuthError, NotFoundError, UpstreamError, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..auth.token_provider import TokenProvider, bearer_headers, response_body
from ..models import RECEIPT_NUMBER_PATTERN, ConnectivityResult
from ..normalization import NormalizationResult, normalize_case_status

UPSTREAM_SERVICE = "uscis_case_status"

CONNECT_OK = "Successfully connected to USCIS API"
CONNECT_FAILED = "Failed to connect to USCIS API"


def validate_receipt_number(receipt_number: str) -> str:
    """Return ``receipt_number`` if it is three uppercase letters and ten digits."""
    if not isinstance(receipt_number, str) or not RECEIPT_NUMBER_PATTERN.fullmatch(receipt_number):
        raise ValidationError(
            f"Invalid receipt number format: {receipt_number!r}",
            details={"receipt_number": receipt_number}
        )
    return receipt_number


class CaseStatusClient:
    """Looks up case status through the USCIS REST API."""

    def __init__(
        self,
        case_status_url: str,
        token_provider: TokenProvider,
        timeout: float = 10.0,
        probe_receipt_number: str = "EAC9999103403",
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = case_status_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self.probe_receipt_number = probe_receipt_number
        self._metrics = metrics
        self._transport = transport
        self.logger = get_logger("case_status.uscis_client")

    def case_url(self, receipt_number: str) -> str:
        return f"{self.base_url}/{receipt_number}"

    async def _fetch(self, receipt_number: str, token: str, operation: str) -> httpx.Response:
        url = self.case_url(receipt_number)
        self.logger.info("Requesting case status", url=url, operation=operation)

        timer = (
            self._metrics.time_operation("upstream_request_duration_seconds", operation=operation)
            if self._metrics is not None else nullcontext()
        )
        with timer:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                return await client.get(url, headers=bearer_headers(token))

    async def get_case_status(self, receipt_number: str) -> NormalizationResult:
        """Fetch and normalize the status of one case.

        Raises ValidationError before any network activity when the receipt
        number is malformed, NotFoundError on an upstream 404 and
        UpstreamError for everything else that goes wrong upstream.
        """
        validate_receipt_number(receipt_number)

        try:
            token = await self.token_provider.get_access_token()
        except AuthError as e:
            self._count("lookup", "auth_failed")
            raise UpstreamError(
                UPSTREAM_SERVICE,
                "Unable to obtain access token",
                details={"receipt_number": receipt_number, **e.details}
            ) from e

        try:
            response = await self._fetch(receipt_number, token, "lookup")
        except httpx.HTTPError as e:
            self._count("lookup", "transport_error")
            self.logger.error("Case status request failed", receipt_number=receipt_number, error=str(e))
            raise UpstreamError(
                UPSTREAM_SERVICE,
                str(e) or type(e).__name__,
                details={"receipt_number": receipt_number}
            ) from e

        if response.status_code == 404:
            self._count("lookup", "not_found")
            self.logger.info("Case not found", receipt_number=receipt_number)
            raise NotFoundError(
                f"Case {receipt_number} not found",
                details={"receipt_number": receipt_number, "body": response_body(response)}
            )

        if not response.is_success:
            self._count("lookup", "error")
            body = response_body(response)
            self.logger.error(
                "Case status request rejected",
                receipt_number=receipt_number,
                status_code=response.status_code,
                body=body
            )
            raise UpstreamError(
                UPSTREAM_SERVICE,
                f"Unexpected status {response.status_code}",
                details={"receipt_number": receipt_number, "status_code": response.status_code, "body": body}
            )

        try:
            body = response.json()
        except ValueError as e:
            self._count("lookup", "error")
            self.logger.error("Case status response is not JSON", receipt_number=receipt_number)
            raise UpstreamError(
                UPSTREAM_SERVICE,
                "Response body is not JSON",
                details={"receipt_number": receipt_number, "status_code": response.status_code}
            ) from e

        self._count("lookup", "ok")
        self.logger.info("Case status received", receipt_number=receipt_number, status_code=response.status_code)
        return normalize_case_status(body)

    async def check_connection(self) -> ConnectivityResult:
        """Probe the token and case status endpoints. Never raises."""
        try:
            token = await self.token_provider.get_access_token()
        except AuthError as e:
            self.logger.error("Test connection failed", stage="token", error=e.message)
            return ConnectivityResult(
                success=False,
                message=CONNECT_FAILED,
                token_status="Token request failed",
                case_status_endpoint="Not tested",
                status_code=e.details.get("status_code", "Unknown"),
                error=e.message,
                details=e.details.get("body", {})
            )

        receipt_number = self.probe_receipt_number
        try:
            response = await self._fetch(receipt_number, token, "probe")
        except httpx.HTTPError as e:
            self._count("probe", "transport_error")
            self.logger.error("Test connection failed", stage="case_status", error=str(e))
            return ConnectivityResult(
                success=False,
                message=CONNECT_FAILED,
                token_status="Valid token obtained",
                case_status_endpoint="Unreachable",
                error=str(e) or type(e).__name__,
                details={}
            )

        if response.is_success:
            self._count("probe", "ok")
            endpoint_status = "Working correctly"
        elif response.status_code == 404:
            # Endpoint reachable, the sample receipt simply does not exist
            self._count("probe", "not_found")
            endpoint_status = "Working correctly (test receipt not found)"
        else:
            self._count("probe", "error")
            body = response_body(response)
            self.logger.error("Test connection failed", stage="case_status", status_code=response.status_code)
            return ConnectivityResult(
                success=False,
                message=CONNECT_FAILED,
                token_status="Valid token obtained",
                case_status_endpoint="Error response",
                status_code=response.status_code,
                error=f"Case status endpoint returned {response.status_code}",
                details=body
            )

        self.logger.info("Case status endpoint is working", status_code=response.status_code)
        return ConnectivityResult(
            success=True,
            message=CONNECT_OK,
            token_status="Valid token obtained",
            case_status_endpoint=endpoint_status,
            status_code=response.status_code
        )

    def _count(self, operation: str, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter("upstream_requests_total", operation=operation, outcome=outcome)
