"""
Service-wide exception hierarchy.

The workflow core itself never raises for normal business conditions
(unknown steps degrade to ``None``/0, missing chapters are logged).  These
types are raised by the thin "require" helpers that the HTTP layer uses when
an absent resource must become a 404/422.

Usage:
    from wellspring.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Chapter", resource_id="arizona_ch6_policy")
    raise ValidationError("owner is required", details={"owner": "missing"})
"""


class NotFoundError(Exception):
    """Raised when a requested chapter, step or chapter type does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Chapter", "WorkflowStep").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique key (HTTP 409).

    Args:
        resource: Entity name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
