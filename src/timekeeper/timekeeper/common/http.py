from __future__ import annotations

import logging

from flask import jsonify

from ..core.exceptions import (
    ConcurrentModification,
    DomainError,
    InvalidTransition,
    ReportUnavailable,
    StoreUnavailable,
    ValidationError,
)
from ..core.result import OperationResult

logger = logging.getLogger(__name__)


def status_for(error: Exception) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, (InvalidTransition, ConcurrentModification)):
        return 409
    if isinstance(error, (ReportUnavailable, StoreUnavailable)):
        return 503
    if isinstance(error, DomainError):
        return 400
    return 500


def error_response(error: Exception):
    status = status_for(error)
    body = {"success": False, "message": str(error), "error": type(error).__name__}
    return jsonify(body), status


def result_response(result: OperationResult, **extra):
    if not result.ok:
        return error_response(result.error)
    body = {"success": True, "entry": result.entry.to_dict() if result.entry else None}
    body.update(extra)
    return jsonify(body), 200


def register_error_handlers(app) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return error_response(e)

    @app.errorhandler(StoreUnavailable)
    def _store_unavailable(e: StoreUnavailable):
        logger.error("request failed, store unavailable: %s", e)
        return error_response(e)
