from __future__ import annotations

import logging

from flask import jsonify

from ..core.exceptions import (
    AuthorizationError,
    BannedError,
    DomainError,
    DuplicateVisitorError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def status_for(error: DomainError) -> int:
    # BannedError is a NotFoundError, check it first.
    if isinstance(error, (BannedError, AuthorizationError)):
        return 403
    if isinstance(error, DuplicateVisitorError):
        return 409
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 400
    return 400


def error_response(error: DomainError):
    """JSON body + status for a domain error; the message is safe to show."""
    return jsonify({"message": str(error)}), status_for(error)


def server_error(message: str):
    """Generic 500 body; details only go to the log."""
    logger.exception(message)
    return jsonify({"error": message}), 500
