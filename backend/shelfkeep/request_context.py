# Overview: Per-request identity and rate-limit hooks installed on the Flask app.

"""
Request pipeline: Identity Resolver -> Rate Limiter -> route handler.

Each request gets one immutable RequestContext stored on flask.g. Route
handlers read it (via current_request_context()) and pass the owner id into
services explicitly; services never look at flask.g themselves.

The resolver and limiter are process-scoped objects built in create_app and
kept in app.extensions, never module globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app, g, request

from .errors import RateLimited, Unauthorized
from .services.identity_service import IdentityResolver
from .services.rate_limit_service import RateLimiter, RateLimitDecision, identity_key

RESOLVER_EXTENSION = "shelfkeep.identity_resolver"
LIMITER_EXTENSION = "shelfkeep.rate_limiter"


@dataclass(frozen=True)
class RequestContext:
    user_id: str | None
    client_ip: str | None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


def current_request_context() -> RequestContext:
    ctx = getattr(g, "request_context", None)
    if ctx is None:
        return RequestContext(user_id=None, client_ip=request.remote_addr)
    return ctx


def _admit(user_id: str | None, client_ip: str | None) -> None:
    """Count the request against its identity's quota; raise RateLimited when over."""
    rate_limiter = current_app.extensions.get(LIMITER_EXTENSION)
    if rate_limiter is None:
        return
    if request.endpoint in current_app.config.get("RATE_LIMIT_EXEMPT_ENDPOINTS", set()):
        return

    decision = rate_limiter.admit(identity_key(user_id, client_ip))
    g.rate_limit = decision
    if not decision.allowed:
        raise RateLimited("Too many requests. Please slow down and try again later.")


def install_request_hooks(app: Flask, resolver: IdentityResolver, limiter: RateLimiter | None) -> None:
    app.extensions[RESOLVER_EXTENSION] = resolver
    app.extensions[LIMITER_EXTENSION] = limiter

    @app.before_request
    def resolve_identity_and_admit():
        g.pop("rate_limit", None)
        client_ip = request.remote_addr
        g.request_context = RequestContext(user_id=None, client_ip=client_ip)
        if request.method == "OPTIONS":
            return None

        identity = current_app.extensions[RESOLVER_EXTENSION].resolve(
            request.headers.get("Authorization")
        )
        if identity.is_invalid:
            # Rejected credentials still consume the caller's address quota.
            _admit(None, client_ip)
            current_app.logger.warning(
                "Rejected request to %s: %s", request.path, identity.reason
            )
            raise Unauthorized(f"Unauthorized: {identity.reason}")

        g.request_context = RequestContext(user_id=identity.user_id, client_ip=client_ip)
        _admit(identity.user_id, client_ip)
        return None

    @app.after_request
    def add_rate_limit_headers(response):
        decision: RateLimitDecision | None = getattr(g, "rate_limit", None)
        if decision is not None:
            response.headers.update(decision.headers())
        return response

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = set(current_app.config.get("CORS_ALLOWED_ORIGINS", []))
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = (
                "X-RateLimit-Limit, X-RateLimit-Remaining, X-RateLimit-Reset"
            )
        return response
