from __future__ import annotations

import logging

from flask import Flask, jsonify

from .core.exceptions import (
    ConfigurationError,
    ConflictError,
    DomainError,
    NotFoundError,
    UpstreamIOError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (UpstreamIOError, 502),
    (ConfigurationError, 500),
)


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS:
        if isinstance(error, cls):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = status_for(error)
        if status >= 500:
            logger.error("%s: %s", type(error).__name__, error)
        else:
            logger.info("%s: %s", type(error).__name__, error)
        return jsonify({"error": str(error)}), status
