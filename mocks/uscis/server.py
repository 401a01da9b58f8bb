"""
Mock USCIS server providing the client-credentials token endpoint and the
case status endpoint.
"""

import time
import jwt
from typing import Dict, Any, Optional
from urllib.parse import parse_qs
from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.logging import get_logger


class MockUscisServer:
    """Mock USCIS server implementation."""

    def __init__(
        self,
        client_id: str = "mock-client",
        client_secret: str = "mock-secret",
        expires_in: int = 1800,
    ):
        self.logger = get_logger("mock.uscis")
        self.app = FastAPI(title="Mock USCIS", version="1.0.0")

        self.client_id = client_id
        self.client_secret = client_secret
        self.expires_in = expires_in
        self.signing_key = "mock-signing-key"
        self.tokens_issued = 0

        # Cases in the camelCase shape
        self.cases: Dict[str, Dict[str, Any]] = {
            "EAC2190000001": {
                "receiptNumber": "EAC2190000001",
                "formType": "I-765",
                "receivedDate": "2024-01-05",
                "lastUpdatedDate": "2024-03-18",
                "status": "Case Was Approved",
                "statusDescription": "We approved your Form I-765.",
                "caseHistory": [
                    {"date": "2024-01-05", "description": "Case Was Received"},
                    {"date": "2024-03-18", "description": "Case Was Approved"}
                ]
            },
            # Same data under the snake_case names
            "WAC2190000002": {
                "receipt_number": "WAC2190000002",
                "form_type": "I-130",
                "received_date": "2023-11-20",
                "last_updated_date": "2024-02-01",
                "status": "Case Is Being Actively Reviewed",
                "status_description": "We are reviewing your Form I-130.",
                "caseHistory": [
                    {"date": "2023-11-20", "status_description": "Case Was Received"}
                ]
            },
            # Already in the normalized envelope
            "LIN2190000003": {
                "case_status": {
                    "receiptNumber": "LIN2190000003",
                    "formType": "I-485",
                    "submittedDate": "2023-06-01",
                    "modifiedDate": "2024-01-10",
                    "current_case_status_text_en": "Interview Was Scheduled",
                    "current_case_status_desc_en": "We scheduled an interview.",
                    "hist_case_status": []
                }
            }
        }

        self._setup_routes()

    def _setup_routes(self):
        """Set up mock USCIS routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "mock-uscis",
                "message": "Mock USCIS API for the case status proxy",
                "version": "1.0.0"
            }

        @self.app.post("/oauth/accesstoken")
        async def token_endpoint(request: Request):
            """Client-credentials token endpoint (form encoded)."""
            form = parse_qs((await request.body()).decode("utf-8"))
            grant_type = _single(form, "grant_type")
            client_id = _single(form, "client_id")
            client_secret = _single(form, "client_secret")

            if grant_type != "client_credentials":
                raise HTTPException(status_code=400, detail="Unsupported grant type")

            if client_id != self.client_id or client_secret != self.client_secret:
                self.logger.warning("Rejected client credentials", client_id=client_id)
                raise HTTPException(status_code=401, detail="Invalid client")

            return self._issue_token()

        @self.app.get("/case-status/{receipt_number}")
        async def case_status(
            receipt_number: str,
            credentials: HTTPAuthorizationCredentials = Depends(HTTPBearer())
        ):
            """Case status endpoint."""
            self._verify(credentials.credentials)

            case = self.cases.get(receipt_number)
            if case is None:
                raise HTTPException(status_code=404, detail="Case not found")
            return case

    def _issue_token(self) -> Dict[str, Any]:
        now = int(time.time())
        payload = {
            "sub": self.client_id,
            "iat": now,
            "exp": now + self.expires_in,
            # Keeps tokens distinct when several are minted in one second
            "jti": f"{now}-{self.tokens_issued}",
        }
        self.tokens_issued += 1

        return {
            "access_token": jwt.encode(payload, self.signing_key, algorithm="HS256"),
            "token_type": "BearerToken",
            "expires_in": self.expires_in
        }

    def _verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.signing_key, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")


def _single(form: Dict[str, list], key: str) -> Optional[str]:
    values = form.get(key)
    return values[0] if values else None


def create_app():
    """Create mock USCIS application."""
    server = MockUscisServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
