"""
Upstream authentication for the Case Status service.
"""

from .token_provider import CachedToken, TokenProvider

__all__ = ["CachedToken", "TokenProvider"]
