"""
portal_gateway.auth.jwt

Bearer JWT verification.

Responsibilities:
- Verify signature and registered claims (iss/aud/exp/iat/sub) of identity-service tokens.
- Return the token subject; nothing else in the payload is trusted.

Notes:
- Tokens are minted by the identity service; this module never issues them.
"""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from jwt import InvalidTokenError

from portal_gateway.settings import Settings

_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str = ""
    # Tolerated clock skew against the identity service.
    leeway_seconds: float = 0.0

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
            leeway_seconds=settings.jwt_leeway_seconds,
        )


class JwtValidationError(Exception):
    pass


def verify_subject(*, cfg: JwtConfig, token: str) -> str:
    try:
        claims = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            leeway=cfg.leeway_seconds,
            options={"require": _REQUIRED_CLAIMS},
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e

    subject = claims["sub"]
    if not isinstance(subject, str) or not subject.strip():
        raise JwtValidationError("empty subject")
    return subject


# --- Module Notes -----------------------------------------------------------
# Used by `auth.identity.JwtIdentityProvider` for both the gateway and the admin routes.
