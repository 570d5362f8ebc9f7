"""Bearer token lookup for outbound calls."""

from typing import Optional

from plantcare.errors import MissingCredential


def bearer_from_header(authorization: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def resolve_token(authorization: Optional[str], fallback: Optional[str] = None) -> Optional[str]:
    """Header token first, then the configured fallback."""
    return bearer_from_header(authorization) or fallback or None


def require_token(token: Optional[str]) -> str:
    if not token:
        raise MissingCredential()
    return token
