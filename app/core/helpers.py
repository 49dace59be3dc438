"""
Small helpers shared across apps.

Usage:
    from core.helpers import generate_token, get_client_ip

    ip = get_client_ip(request)
    token = generate_token()  # 64 hex characters
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest


def generate_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure random token.

    Args:
        length: Number of bytes (resulting string is 2x length in hex)
    """
    return secrets.token_hex(length)


def get_client_ip(request: HttpRequest) -> str | None:
    """
    Extract the client IP from a request, honouring X-Forwarded-For.

    Returns:
        The first address in the proxy chain, REMOTE_ADDR otherwise,
        or None when neither is present.
    """
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or None
