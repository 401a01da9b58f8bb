#!/usr/bin/env python3
"""
Check connectivity to the USCIS API from a developer workstation.

This helper mirrors the service's /api/test-connection endpoint without
starting the HTTP server. Credentials come from the same environment
variables (or .env file) the service reads.
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional
import sys

from pydantic import ValidationError as SettingsError

from service_case_status.app.auth.token_provider import TokenProvider
from service_case_status.app.config import get_config
from service_case_status.app.uscis.client import CaseStatusClient
from shared.logging import configure_logging


async def check(receipt_number: Optional[str], timeout: Optional[float]) -> Dict[str, Any]:
    """Run the connectivity probe and return its payload."""
    overrides: Dict[str, Any] = {}
    if receipt_number:
        overrides["connectivity_probe_receipt"] = receipt_number
    if timeout:
        overrides["upstream_timeout_seconds"] = timeout
    config = get_config(**overrides)

    token_provider = TokenProvider(
        token_url=config.uscis_token_url,
        client_id=config.uscis_client_id,
        client_secret=config.uscis_client_secret.get_secret_value(),
        timeout=config.upstream_timeout_seconds,
        expiry_margin_seconds=config.token_expiry_margin_seconds,
        default_lifetime_seconds=config.default_token_lifetime_seconds,
    )
    client = CaseStatusClient(
        config.uscis_case_status_url,
        token_provider,
        timeout=config.upstream_timeout_seconds,
        probe_receipt_number=config.connectivity_probe_receipt,
    )
    result = await client.check_connection()
    return result.to_payload()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe the USCIS token and case status endpoints.")
    parser.add_argument("--receipt", default=None, help="Receipt number to probe (defaults to CONNECTIVITY_PROBE_RECEIPT)")
    parser.add_argument("--timeout", type=float, default=None, help="Upstream timeout in seconds")
    parser.add_argument("--log-level", default="warning", help="Log level for the probe run")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write the JSON result")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    configure_logging("check_connection", args.log_level)

    try:
        payload = asyncio.run(check(args.receipt, args.timeout))
    except KeyboardInterrupt:
        return 130
    except SettingsError as exc:
        print(f"[check-connection] invalid configuration: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(payload, indent=2))

    if args.output:
        args.output.write_text(json.dumps(payload, indent=2))

    return 0 if payload.get("success") else 1


if __name__ == "__main__":
    raise SystemExit(main())
