# Overview: Typed failure taxonomy shared by services and the HTTP boundary.

"""
Every failure that leaves a service is one of these types. Routes never
build error payloads by hand for business failures: the handler registered
in create_app() renders them.

- InvalidRequest  (400): malformed input or violated business precondition
- Unauthenticated (401): missing, invalid, or expired session
- Forbidden       (403): valid session, insufficient role or inactive owner
- NotFound        (404): entity does not exist or is soft-deleted
- StoreConflict   (409): concurrent conflicting write aborted the transaction
"""

from __future__ import annotations

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException


class CustodyError(Exception):
    """Base class for all typed custody failures."""
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.field:
            body["field"] = self.field
        if self.retryable:
            body["retryable"] = True
        return body


class InvalidRequest(CustodyError):
    status_code = 400


class Unauthenticated(CustodyError):
    status_code = 401


class Forbidden(CustodyError):
    status_code = 403


class NotFound(CustodyError):
    status_code = 404


class StoreConflict(CustodyError):
    """Transaction lost a race. Safe for the caller to retry; never retried here."""
    status_code = 409
    retryable = True


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CustodyError)
    def _handle_custody_error(exc: CustodyError):
        if exc.status_code >= 500:
            app.logger.error("Unclassified custody failure: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        # Werkzeug routing errors (unknown route, wrong method) as JSON
        return jsonify({"error": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        app.logger.exception("Unhandled error on request")
        return jsonify({"error": "Internal server error"}), 500
