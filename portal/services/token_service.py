"""Bearer token verification (ES256).

Tokens are issued by the portal's identity service; this module only
needs to verify them, against the EC public key in JWT_PUBLIC_KEY.

Without that setting (dev and test only, config refuses it in prod) an
ephemeral key pair is generated on import and create_access_token signs
with it, so local runs and tests can mint their own tokens.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from portal.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "portal-identity"
AUDIENCE = "assessment-portal"
ACCESS_TOKEN_TTL_MIN = 15


def load_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Parse a PEM public key; only P-256 EC keys can verify ES256."""
    key = load_pem_public_key(pem.encode())
    if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(
        key.curve, ec.SECP256R1
    ):
        raise ValueError("JWT_PUBLIC_KEY must be a P-256 EC public key")
    return key


_private_key: ec.EllipticCurvePrivateKey | None
if SETTINGS.jwt_public_key is not None:
    _private_key = None
    _public_key = load_public_key(SETTINGS.jwt_public_key)
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    name: str = "",
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    if _private_key is None:
        raise RuntimeError("tokens are issued externally when JWT_PUBLIC_KEY is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["student"],
        "name": name,
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Algorithm is pinned to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
