"""
USCIS upstream adapters.

Keep adapters thin: request shapes, status-code mapping to shared errors,
and logging. Normalization lives in app.normalization.
"""

from .client import CaseStatusClient, RECEIPT_NUMBER_PATTERN, validate_receipt_number

__all__ = ["CaseStatusClient", "RECEIPT_NUMBER_PATTERN", "validate_receipt_number"]
