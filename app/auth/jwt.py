"""HS256 bearer tokens identifying the acting user of a contract request.

Only access tokens are handled here; issuing them at login belongs to the
identity service. ``create_access_token`` exists for scripts and tests.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
import uuid
from typing import Any

from app.core.exceptions import AuthenticationError

ALGORITHM = "HS256"
ACCESS_TOKEN_USE = "access"
_HEADER = {"alg": ALGORITHM, "typ": "JWT"}


def _encode_segment(obj: dict[str, Any]) -> str:
    raw = json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_segment(segment: str) -> dict[str, Any]:
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        value = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise AuthenticationError("Invalid token payload.") from exc
    if not isinstance(value, dict):
        raise AuthenticationError("Invalid token payload.")
    return value


def _signature(signing_input: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def encode_jwt(claims: dict[str, Any], secret: str, ttl_seconds: int) -> str:
    if not secret:
        raise AuthenticationError("JWT secret must be configured.")
    issued_at = int(time.time())
    body = {"iat": issued_at, "exp": issued_at + ttl_seconds, "jti": uuid.uuid4().hex, **claims}
    signing_input = f"{_encode_segment(_HEADER)}.{_encode_segment(body)}"
    return f"{signing_input}.{_signature(signing_input, secret)}"


def decode_jwt(token: str, secret: str, verify_exp: bool = True) -> dict[str, Any]:
    """Verify signature, algorithm and expiry; return the claims."""
    if not secret:
        raise AuthenticationError("JWT secret must be configured.")
    segments = token.split(".")
    if len(segments) != 3:
        raise AuthenticationError("Invalid token format.")
    header_segment, body_segment, signature = segments

    expected = _signature(f"{header_segment}.{body_segment}", secret)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        raise AuthenticationError("Invalid token signature.")
    if _decode_segment(header_segment).get("alg") != ALGORITHM:
        raise AuthenticationError("Unsupported token algorithm.")

    claims = _decode_segment(body_segment)
    if verify_exp:
        if "exp" not in claims:
            raise AuthenticationError("Token is missing exp claim.")
        if int(claims["exp"]) < int(time.time()):
            raise AuthenticationError("Token has expired.")
    if claims.get("token_use", ACCESS_TOKEN_USE) != ACCESS_TOKEN_USE:
        raise AuthenticationError("Token is not an access token.")
    return claims


def create_access_token(
    user_id: int,
    tenant_id: int,
    role: str,
    secret: str,
    permissions_version: int = 1,
    ttl_minutes: int = 15,
) -> str:
    claims = {
        "sub": str(user_id),
        "tenant_id": tenant_id,
        "role": role,
        "permissions_version": permissions_version,
        "token_use": ACCESS_TOKEN_USE,
    }
    return encode_jwt(claims, secret=secret, ttl_seconds=ttl_minutes * 60)
