"""
HTTP blueprints and the shared JSON error mapping.

Application errors map to status codes as follows: validation 400,
authorization 403, unknown entity 404, data store failure 502.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, Response, jsonify, request

from ..errors import AuthorizationError, NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> dict[str, Any]:
    """
    Return the request's JSON object body.

    Raises:
        ValidationError: If the body is missing or not a JSON object.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def register_error_handlers(app: Flask) -> None:
    """Attach JSON error handlers for application and HTTP errors."""

    @app.errorhandler(ValidationError)
    def validation_error(error: ValidationError) -> tuple[Response, int]:
        body = {"error": error.message}
        if error.field:
            body["field"] = error.field
        return jsonify(body), 400

    @app.errorhandler(AuthorizationError)
    def authorization_error(error: AuthorizationError) -> tuple[Response, int]:
        return jsonify({"error": error.message}), 403

    @app.errorhandler(NotFoundError)
    def not_found_error(error: NotFoundError) -> tuple[Response, int]:
        logger.warning("Not found: %s", error.message)
        return jsonify({"error": error.message}), 404

    @app.errorhandler(PersistenceError)
    def persistence_error(error: PersistenceError) -> tuple[Response, int]:
        if error.status_code == 404:
            logger.warning("Not found in data store: %s", error.message)
            return jsonify({"error": error.message}), 404
        logger.warning("Data store failure during %s: %s", error.operation, error.message)
        return jsonify({"error": error.message}), 502

    @app.errorhandler(400)
    def bad_request(_: Exception) -> tuple[Response, int]:
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(404)
    def not_found(_: Exception) -> tuple[Response, int]:
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_: Exception) -> tuple[Response, int]:
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error: Exception) -> tuple[Response, int]:
        logger.error("Internal server error: %s", error)
        return jsonify({"error": "Internal server error"}), 500
