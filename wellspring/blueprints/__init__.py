"""
Wellspring chapter workflow service
Blueprint registry and shared blueprint helpers.
"""

import logging

from flask import request

from wellspring.core.exceptions import ConflictError, NotFoundError, ValidationError
from wellspring.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Translate the service exceptions into the standard error envelope."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.UNPROCESSABLE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")


def parse_bool(value, default=True):
    """JSON/query flag → bool; strings like "false"/"0" are False."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("false", "0", "no", "off", "")


def text_field(data, name):
    """Stripped string value of ``data[name]``; missing or null gives ""."""
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", details={name: type(value).__name__})
    return value.strip()
