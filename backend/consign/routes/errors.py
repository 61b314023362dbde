# Overview: Maps service exceptions to JSON error responses.

from flask import current_app

from ..services.concurrency import TransactionFailedError
from ..services.permission_service import PermissionDeniedError
from ..validation import ConflictError, InsufficientInventoryError, NotFoundError, ValidationError


# Exceptions a route catches around a service call
DOMAIN_ERRORS = (
    ValidationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransactionFailedError,
)


def error_response(exc: Exception):
    """(body, status) for a service exception."""
    if isinstance(exc, InsufficientInventoryError):
        return {"error": str(exc), "on_hand": exc.on_hand, "requested": exc.requested}, 400
    if isinstance(exc, ValidationError):
        return {"error": str(exc)}, 400
    if isinstance(exc, ConflictError):
        return {"error": str(exc)}, 409
    if isinstance(exc, NotFoundError):
        return {"error": str(exc)}, 404
    if isinstance(exc, PermissionDeniedError):
        return {"error": "Permission denied", "message": str(exc)}, 403
    if isinstance(exc, TransactionFailedError):
        current_app.logger.error("transaction failed: %s", exc)
        return {"error": "Temporary failure, please retry"}, 503
    current_app.logger.exception("unexpected error")
    return {"error": "Internal server error"}, 500
