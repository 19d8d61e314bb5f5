"""Pure functions for creating and decoding JWT session tokens.

No classes with state, just encode/decode. ``decode_token`` distinguishes
expired tokens from otherwise invalid ones so the resolver can report
the two cases separately.
"""

import hashlib
import hmac
import base64
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ISSUER = "dashgate"


class TokenError(Exception):
    """Token could not be accepted. ``expired`` is True only for a good
    signature whose ``exp`` lies in the past."""

    def __init__(self, reason: str, expired: bool = False):
        super().__init__(reason)
        self.reason = reason
        self.expired = expired


@dataclass(frozen=True)
class TokenPayload:
    """Decoded JWT payload. Immutable."""
    sub: str
    email: str
    role: str
    name: Optional[str]
    exp: datetime


def create_token(
    subject: str,
    email: str,
    role: str,
    secret: str,
    name: Optional[str] = None,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
) -> str:
    """Create a signed JWT token.

    Args:
        subject: Token subject, the user id as a string.
        email: The user's email at issue time.
        role: Role claim (``"Admin"`` or ``"User"``).
        secret: HMAC signing key.
        name: Display name (optional).
        algorithm: Only HS256 supported.
        expires_minutes: Minutes until expiry. Negative values produce an
            already-expired token.

    Returns:
        Encoded JWT string.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = time.time()
    payload = {
        "sub": subject,
        "email": email,
        "role": role,
        "name": name,
        "iat": int(now),
        "exp": int(now + expires_minutes * 60),
        "iss": ISSUER,
    }

    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64encode(json.dumps(header).encode()),
        _b64encode(json.dumps(payload).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> TokenPayload:
    """Decode and validate a JWT token.

    The signature is checked before the expiry, so a forged token is always
    reported as invalid even when its ``exp`` is in the past.

    Raises:
        TokenError: ``expired=True`` for an expired token, ``expired=False``
            for a malformed token, a bad signature, or missing claims.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            raise TokenError("malformed token")

        header = json.loads(_b64decode(parts[0]))
        if header.get("alg") != "HS256":
            raise TokenError("unexpected signing algorithm")

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
        actual_sig = _b64decode(parts[2])

        if not hmac.compare_digest(expected_sig, actual_sig):
            raise TokenError("bad signature")

        payload = json.loads(_b64decode(parts[1]))
    except (ValueError, AttributeError) as e:
        # binascii.Error, JSONDecodeError and UnicodeDecodeError are ValueErrors
        raise TokenError("malformed token") from e

    if not isinstance(payload, dict):
        raise TokenError("malformed payload")

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        raise TokenError("missing exp claim")
    if time.time() > exp:
        raise TokenError("token expired", expired=True)

    sub = payload.get("sub")
    if not sub or not payload.get("role"):
        raise TokenError("missing identity claims")

    return TokenPayload(
        sub=str(sub),
        email=payload.get("email") or "",
        role=payload["role"],
        name=payload.get("name"),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc),
    )


# --- base64url helpers (no padding, URL-safe) ---

def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
