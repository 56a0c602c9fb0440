"""Gateway access token generation."""

from __future__ import annotations

import secrets

GATEWAY_TOKEN_BYTES = 32


def generate_gateway_token() -> str:
    """Return a fresh 256-bit hex-encoded gateway token."""
    return secrets.token_hex(GATEWAY_TOKEN_BYTES)
