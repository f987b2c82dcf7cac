# Overview: Service error taxonomy and the single adapter that turns errors into JSON responses.

"""
Every failure a service can report is a ServiceError subclass with a
machine-readable ``kind`` and an HTTP status. Route handlers never format
errors themselves: they let the exception propagate and the handlers
registered by ``register_error_handlers`` produce exactly one response.

Datastore failures (SQLAlchemyError) are reported as ``dependency_error``
after rolling back the session. They are never retried.
"""

from __future__ import annotations

from flask import Flask, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class ServiceError(Exception):
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        body.update(self.details)
        return body


class Unauthorized(ServiceError):
    """401: missing or invalid identity on a protected operation."""
    kind = "unauthorized"
    status_code = 401


class ValidationError(ServiceError):
    """400-level input problem, naming the offending fields."""
    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message, {"fields": list(fields)} if fields else None)
        self.fields = list(fields or [])


class NotFound(ServiceError):
    kind = "not_found"
    status_code = 404


class Conflict(ServiceError):
    """409-level uniqueness or business rule conflict."""
    kind = "conflict"
    status_code = 409


class InsufficientStock(Conflict):
    kind = "insufficient_stock"


class InvalidReference(ServiceError):
    """A referenced row (e.g. category_id) does not exist."""
    kind = "invalid_reference"
    status_code = 422


class RateLimited(ServiceError):
    kind = "rate_limited"
    status_code = 429


class DependencyError(ServiceError):
    """Storage or limiter backend failure."""
    kind = "dependency_error"
    status_code = 503


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(err: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Datastore operation failed")
        wrapped = DependencyError("Database unavailable, please retry later")
        return jsonify(wrapped.to_dict()), wrapped.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        kind = "not_found" if err.code == 404 else "http_error"
        return jsonify({"error": err.description, "kind": kind}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error", "kind": "internal_error"}), 500
