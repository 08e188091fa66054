"""API key authentication for the HTTP surface."""

import hashlib
import logging
import secrets
from typing import Any

from remote_mcp.middleware.base import MCPMiddleware

logger = logging.getLogger(__name__)


def key_fingerprint(key: str) -> str:
    """Short SHA-256 fingerprint identifying a key without revealing it."""
    return hashlib.sha256(key.encode()).hexdigest()[:8]


class APIKeyMiddleware(MCPMiddleware):
    """Require one of the configured API keys (``X-API-Key`` header).

    Keys are compared in constant time. With no keys configured, or with
    enabled=False, every request passes.
    """

    def __init__(self, api_keys: list[str], enabled: bool = True):
        self.api_keys = [k for k in api_keys if k]
        self.enabled = enabled

    @property
    def enforcing(self) -> bool:
        return self.enabled and bool(self.api_keys)

    async def process_request(
        self,
        method: str,
        params: dict[str, Any],
        context: dict[str, Any],
    ) -> dict[str, Any]:
        if not self.enforcing:
            return context

        api_key = context.get("api_key")
        if not api_key:
            raise PermissionError("Missing API key")

        if not self.is_valid(api_key):
            logger.warning(
                "Rejected API key %s from %s",
                key_fingerprint(api_key),
                context.get("client_ip", "unknown"),
            )
            raise PermissionError("Invalid API key")

        context["authenticated"] = True
        return context

    def is_valid(self, provided_key: str) -> bool:
        """Constant-time membership test against the configured keys."""
        matched = False
        for valid_key in self.api_keys:
            if secrets.compare_digest(provided_key.encode(), valid_key.encode()):
                matched = True
        return matched
