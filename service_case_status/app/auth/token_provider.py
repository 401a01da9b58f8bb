"""
OAuth2 client-credentials token provider for the USCIS API.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.errors import AuthError
from shared.logging import get_logger, preview, REDACTED
from shared.metrics import MetricsCollector
from ..models import TokenResponse


@dataclass(frozen=True)
class CachedToken:
    """A bearer token and the epoch millisecond at which it stops being served."""

    token: str
    expires_at_ms: int

    def is_valid(self, now_ms: int) -> bool:
        return now_ms < self.expires_at_ms


class TokenProvider:
    """Exchanges client credentials for a bearer token and caches it.

    The cached token is served until ``expires_at_ms``, which is computed at
    write time as the reported lifetime minus ``expiry_margin_seconds``.
    Refreshes are single-flight: concurrent callers that miss the cache wait
    on one exchange instead of each starting their own.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        timeout: float = 10.0,
        expiry_margin_seconds: int = 60,
        default_lifetime_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_url = token_url
        self.client_id = client_id
        self._client_secret = client_secret
        self.timeout = timeout
        self.expiry_margin_ms = expiry_margin_seconds * 1000
        self.default_lifetime_seconds = default_lifetime_seconds
        self._clock = clock
        self._metrics = metrics
        self._transport = transport
        self.logger = get_logger("case_status.token_provider")

        self._cached: Optional[CachedToken] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def cached_token(self) -> Optional[CachedToken]:
        return self._cached

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _cache_hit(self) -> Optional[str]:
        cached = self._cached
        if cached is not None and cached.is_valid(self._now_ms()):
            return cached.token
        return None

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs an exchange."""
        self._cached = None

    async def get_access_token(self) -> str:
        """Return a valid bearer token, exchanging credentials on a cache miss."""
        token = self._cache_hit()
        if token is not None:
            self.logger.debug("Using cached token")
            self._count("cache_hit")
            return token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            token = self._cache_hit()
            if token is not None:
                self._count("cache_hit")
                return token

            try:
                token = await self._exchange()
            except AuthError:
                self._count("failed")
                raise

            self._count("exchanged")
            return token

    async def _exchange(self) -> str:
        """Perform the client-credentials grant and cache the result."""
        self.logger.info(
            "Requesting new access token",
            url=self.token_url,
            client_id=self.client_id,
            client_secret=REDACTED
        )

        form = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
        }

        now_ms = self._now_ms()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_url,
                    data=form,
                    headers={"Content-Type": "application/x-www-form-urlencoded"}
                )
        except httpx.HTTPError as e:
            self.logger.error("Token request failed", url=self.token_url, error=str(e))
            raise AuthError(details={"url": self.token_url, "http_error": str(e)})

        if not response.is_success:
            body = response_body(response)
            self.logger.error(
                "Token request rejected",
                url=self.token_url,
                status_code=response.status_code,
                body=body
            )
            raise AuthError(details={"url": self.token_url, "status_code": response.status_code, "body": body})

        try:
            payload = TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            self.logger.error("Token response unreadable", url=self.token_url, error=str(e))
            raise AuthError(details={"url": self.token_url, "status_code": response.status_code, "error": str(e)})

        if not payload.access_token:
            self.logger.error("Token response missing access_token", url=self.token_url)
            raise AuthError(details={"url": self.token_url, "status_code": response.status_code})

        lifetime_seconds = payload.expires_in or self.default_lifetime_seconds
        self._cached = CachedToken(
            token=payload.access_token,
            expires_at_ms=now_ms + lifetime_seconds * 1000 - self.expiry_margin_ms
        )

        self.logger.info(
            "Access token received",
            status_code=response.status_code,
            token=preview(payload.access_token),
            token_type=payload.token_type,
            expires_in=payload.expires_in
        )

        return self._cached.token

    def _count(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter("token_requests_total", result=result)


def response_body(response: httpx.Response) -> Any:
    """Decoded JSON body when possible, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text


def bearer_headers(token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
