# Overview: Resolves a request's bearer credential to a stable user identifier.

"""
Identity Resolver

The identity provider is external: it issues signed JWTs whose `sub` claim
is the stable user id. This service only verifies them.

Outcomes:
- ANONYMOUS: no Authorization header, or one that is not "Bearer <token>".
  The request continues unauthenticated; protected routes reject it.
- INVALID: a bearer token was presented but failed verification (signature,
  expiry, issuer/audience, missing `sub`). The request hook rejects it with
  401 immediately. A bad token is never downgraded to anonymous access.
- AUTHENTICATED: verified token; user_id is the `sub` claim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"
AUTHENTICATED = "authenticated"
INVALID = "invalid"


@dataclass(frozen=True)
class Identity:
    status: str
    user_id: str | None = None
    reason: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == AUTHENTICATED

    @property
    def is_invalid(self) -> bool:
        return self.status == INVALID


class IdentityResolver:
    """Verifies bearer JWTs with a fixed key. Built once per process in create_app."""

    def __init__(
        self,
        key: str | None,
        algorithms: list[str],
        *,
        issuer: str | None = None,
        audience: str | None = None,
        leeway_seconds: int = 0,
    ):
        self.key = key
        self.algorithms = list(algorithms)
        self.issuer = issuer
        self.audience = audience
        self.leeway_seconds = leeway_seconds

    @classmethod
    def from_config(cls, config) -> "IdentityResolver":
        return cls(
            config.get("AUTH_JWT_KEY"),
            config.get("AUTH_JWT_ALGORITHMS") or ["RS256"],
            issuer=config.get("AUTH_JWT_ISSUER"),
            audience=config.get("AUTH_JWT_AUDIENCE"),
            leeway_seconds=int(config.get("AUTH_JWT_LEEWAY_SECONDS") or 0),
        )

    def resolve(self, authorization_header: str | None) -> Identity:
        token = _extract_bearer_token(authorization_header)
        if token is None:
            return Identity(ANONYMOUS)

        if not self.key:
            logger.warning("Bearer token presented but no AUTH_JWT_KEY is configured")
            return Identity(INVALID, reason="Token verification is not configured")

        options = {
            "leeway": self.leeway_seconds,
            "verify_aud": self.audience is not None,
        }
        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options=options,
            )
        except JWTError as e:
            logger.warning("Token verification failed: %s", e)
            return Identity(INVALID, reason="Invalid or expired token")

        subject = claims.get("sub")
        if not subject or not isinstance(subject, str):
            logger.warning("Verified token carries no subject claim")
            return Identity(INVALID, reason="Token has no subject")

        return Identity(AUTHENTICATED, user_id=subject)


def _extract_bearer_token(header: str | None) -> str | None:
    if not header or not header.startswith("Bearer "):
        return None
    token = header[len("Bearer "):].strip()
    return token or None
