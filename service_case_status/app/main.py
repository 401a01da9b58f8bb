"""
Case Status service for the USCIS case status proxy.
"""

from pathlib import Path
from typing import Optional

import httpx
from fastapi.responses import FileResponse, JSONResponse

from shared.base_service import BaseService
from .auth.token_provider import TokenProvider
from .config import CaseStatusConfig, get_config
from .normalization import RawPassthrough
from .uscis.client import CaseStatusClient

INDEX_FILE = "index.html"


class CaseStatusService(BaseService):
    """Case Status service implementation."""

    def __init__(
        self,
        config: Optional[CaseStatusConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or get_config()
        super().__init__(config.service_name, config)

        self.token_provider = TokenProvider(
            token_url=config.uscis_token_url,
            client_id=config.uscis_client_id,
            client_secret=config.uscis_client_secret.get_secret_value(),
            timeout=config.upstream_timeout_seconds,
            expiry_margin_seconds=config.token_expiry_margin_seconds,
            default_lifetime_seconds=config.default_token_lifetime_seconds,
            metrics=self.metrics,
            transport=transport,
        )
        self.case_status_client = CaseStatusClient(
            case_status_url=config.uscis_case_status_url,
            token_provider=self.token_provider,
            timeout=config.upstream_timeout_seconds,
            probe_receipt_number=config.connectivity_probe_receipt,
            metrics=self.metrics,
            transport=transport,
        )
        self.static_dir = Path(config.static_dir).resolve()

        self._setup_case_status_routes()
        self._setup_static_routes()

        self.app.state.case_status_service = self

    def _setup_case_status_routes(self):
        """Set up case status API routes."""

        @self.app.get("/api/case-status/{receipt_number}")
        async def get_case_status(receipt_number: str):
            """Look up and normalize the status of one case."""
            result = await self.case_status_client.get_case_status(receipt_number)

            if isinstance(result, RawPassthrough):
                self.logger.warning(
                    "Returning unnormalized upstream body",
                    receipt_number=receipt_number,
                    reason=result.reason
                )
            return JSONResponse(content=result.payload)

        @self.app.get("/api/test-connection")
        async def connection_check():
            """Verify token exchange and case status endpoint reachability."""
            result = await self.case_status_client.check_connection()
            return JSONResponse(
                status_code=200 if result.success else 500,
                content=result.to_payload()
            )

    def _setup_static_routes(self):
        """Serve the front end. Must be registered after every API route."""

        @self.app.get("/api/{rest:path}", include_in_schema=False)
        async def unknown_api_route(rest: str):
            return JSONResponse(
                status_code=404,
                content={"error": "Not found", "message": f"No API route for /api/{rest}", "code": "NOT_FOUND"}
            )

        @self.app.get("/{full_path:path}", include_in_schema=False)
        async def static_fallback(full_path: str):
            candidate = self._resolve_static(full_path)
            if candidate is not None:
                return FileResponse(candidate)

            index = self.static_dir / INDEX_FILE
            if not index.is_file():
                self.logger.error("Front end entry page missing", path=str(index))
                return JSONResponse(
                    status_code=404,
                    content={"error": "Not found", "message": "Front end is not installed", "code": "NOT_FOUND"}
                )
            return FileResponse(index)

    def _resolve_static(self, full_path: str) -> Optional[Path]:
        """Map a URL path onto a file inside the static directory, if one exists."""
        if not full_path:
            return None
        candidate = (self.static_dir / full_path).resolve()
        if self.static_dir not in candidate.parents or not candidate.is_file():
            return None
        return candidate

    async def _check_dependencies(self):
        """Report token cache state without calling upstream."""
        cached = self.token_provider.cached_token
        return {"token_cache": "warm" if cached is not None else "empty"}


def create_app(
    config: Optional[CaseStatusConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
):
    """Create FastAPI application."""
    service = CaseStatusService(config, transport=transport)
    return service.app


if __name__ == "__main__":
    service = CaseStatusService()
    service.run()
