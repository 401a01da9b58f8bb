"""
Unit tests for the client-credentials TokenProvider.
"""

import asyncio

import httpx
import pytest
from structlog.testing import capture_logs

from service_case_status.app.auth.token_provider import CachedToken, TokenProvider
from shared.errors import AuthError
from shared.logging import REDACTED
from shared.metrics import MetricsCollector

TOKEN_URL = "https://uscis.test/oauth/accesstoken"


class TestTokenProvider:
    """Test cases for TokenProvider."""

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("test")

    @pytest.fixture
    def provider(self, fake_uscis, clock, metrics):
        return TokenProvider(
            TOKEN_URL,
            "test-client",
            "test-secret",
            clock=clock,
            metrics=metrics,
            transport=fake_uscis.transport,
        )

    @pytest.mark.asyncio
    async def test_exchange_sends_client_credentials_form(self, provider, fake_uscis):
        """The grant is a form-encoded client_credentials POST."""
        token = await provider.get_access_token()

        assert token == "token-1"
        assert len(fake_uscis.token_calls) == 1
        call = fake_uscis.token_calls[0]
        assert call["form"] == {
            "grant_type": "client_credentials",
            "client_id": "test-client",
            "client_secret": "test-secret",
        }
        assert call["headers"]["content-type"] == "application/x-www-form-urlencoded"

    @pytest.mark.asyncio
    async def test_cached_token_is_reused(self, provider, fake_uscis, clock):
        """Two sequential calls inside the window share one exchange."""
        first = await provider.get_access_token()
        clock.advance(60)
        second = await provider.get_access_token()

        assert first == second
        assert len(fake_uscis.token_calls) == 1

    @pytest.mark.asyncio
    async def test_expiry_subtracts_safety_margin(self, provider, clock):
        """expires_at_ms = now + expires_in * 1000 - 60000."""
        await provider.get_access_token()

        now_ms = int(clock.now * 1000)
        assert provider.cached_token == CachedToken("token-1", now_ms + 1800 * 1000 - 60000)

    @pytest.mark.asyncio
    async def test_missing_expires_in_defaults_to_one_hour(self, provider, fake_uscis, clock):
        fake_uscis.token_body = {"token_type": "BearerToken"}

        await provider.get_access_token()

        now_ms = int(clock.now * 1000)
        assert provider.cached_token.expires_at_ms == now_ms + 3600 * 1000 - 60000

    @pytest.mark.asyncio
    async def test_token_at_expiry_boundary_is_refreshed(self, provider, fake_uscis, clock):
        """A token whose expiry equals now is not served."""
        await provider.get_access_token()
        expires_at_ms = provider.cached_token.expires_at_ms

        clock.now = (expires_at_ms - 1) / 1000
        assert await provider.get_access_token() == "token-1"

        clock.now = expires_at_ms / 1000
        assert await provider.get_access_token() == "token-2"
        assert len(fake_uscis.token_calls) == 2

    @pytest.mark.asyncio
    async def test_rejected_exchange_raises_auth_error(self, provider, fake_uscis):
        fake_uscis.token_status = 401
        fake_uscis.token_body = {"error": "invalid_client"}

        with pytest.raises(AuthError) as exc_info:
            await provider.get_access_token()

        assert exc_info.value.details["status_code"] == 401
        assert exc_info.value.details["body"] == {"error": "invalid_client"}
        assert provider.cached_token is None

    @pytest.mark.asyncio
    async def test_no_fallback_to_expired_token(self, provider, fake_uscis, clock):
        """An expired token is never returned when the refresh fails."""
        await provider.get_access_token()
        clock.advance(3600)
        fake_uscis.token_status = 503
        fake_uscis.token_body = {"error": "unavailable"}

        with pytest.raises(AuthError):
            await provider.get_access_token()

        assert len(fake_uscis.token_calls) == 2

    @pytest.mark.asyncio
    async def test_transport_error_raises_auth_error(self, provider, fake_uscis):
        fake_uscis.token_error = httpx.ConnectError("connection refused")

        with pytest.raises(AuthError) as exc_info:
            await provider.get_access_token()

        assert "connection refused" in exc_info.value.details["http_error"]

    @pytest.mark.asyncio
    async def test_missing_access_token_raises_auth_error(self, provider, fake_uscis):
        fake_uscis.token_body = {"access_token": "", "expires_in": 1800}

        with pytest.raises(AuthError):
            await provider.get_access_token()

    @pytest.mark.asyncio
    async def test_non_json_response_raises_auth_error(self, clock):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        provider = TokenProvider(TOKEN_URL, "id", "secret", clock=clock, transport=transport)

        with pytest.raises(AuthError):
            await provider.get_access_token()

    @pytest.mark.asyncio
    async def test_invalidate_forces_exchange(self, provider, fake_uscis):
        await provider.get_access_token()
        provider.invalidate()

        assert await provider.get_access_token() == "token-2"

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_exchange(self, provider, fake_uscis):
        tokens = await asyncio.gather(*(provider.get_access_token() for _ in range(5)))

        assert set(tokens) == {"token-1"}
        assert len(fake_uscis.token_calls) == 1

    @pytest.mark.asyncio
    async def test_metrics_record_results(self, provider, fake_uscis, metrics):
        await provider.get_access_token()
        await provider.get_access_token()
        provider.invalidate()
        fake_uscis.token_status = 500
        with pytest.raises(AuthError):
            await provider.get_access_token()

        assert metrics.get_sample_value("token_requests_total", {"result": "exchanged"}) == 1.0
        assert metrics.get_sample_value("token_requests_total", {"result": "cache_hit"}) == 1.0
        assert metrics.get_sample_value("token_requests_total", {"result": "failed"}) == 1.0

    @pytest.mark.asyncio
    async def test_client_secret_is_never_logged(self, provider):
        with capture_logs() as logs:
            await provider.get_access_token()

        request_event = next(e for e in logs if e["event"] == "Requesting new access token")
        assert request_event["client_secret"] == REDACTED
        assert "test-secret" not in repr(logs)


def test_cached_token_validity():
    token = CachedToken("abc", expires_at_ms=1000)

    assert token.is_valid(999)
    assert not token.is_valid(1000)
    assert not token.is_valid(1001)
