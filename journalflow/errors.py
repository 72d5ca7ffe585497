"""
Domain errors raised by the workflow services.

Each error carries the HTTP status it maps to; the API layer turns any
``JournalflowError`` into a JSON body built from ``to_dict()``.
"""

from typing import Any


class JournalflowError(Exception):
    """Base error for the review workflow."""

    status_code = 500
    default_code = "JOURNALFLOW_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class NotFound(JournalflowError):
    """A referenced entity does not exist."""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, message: str, entity: str | None = None, key: Any = None):
        details = {"entity": entity, "key": key} if entity else {}
        super().__init__(message, details=details)


class Forbidden(JournalflowError):
    """The actor lacks the role or relationship the operation needs."""

    status_code = 403
    default_code = "FORBIDDEN"

    def __init__(self, message: str, actor_id: int | None = None, resource: str | None = None):
        details = {"actor_id": actor_id, "resource": resource} if resource else {}
        super().__init__(message, details=details)


class ValidationFailed(JournalflowError):
    """A required field is missing or a value is outside its allowed set."""

    status_code = 400
    default_code = "VALIDATION_FAILED"

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {"field": field, "value": value} if field else {}
        super().__init__(message, details=details)


class Conflict(JournalflowError):
    """A write collided with a uniqueness constraint that has no upsert path."""

    status_code = 409
    default_code = "CONFLICT"

    def __init__(self, message: str, collection: str | None = None):
        details = {"collection": collection} if collection else {}
        super().__init__(message, details=details)


class NotificationError(JournalflowError):
    """The mail provider refused or could not be reached."""

    status_code = 502
    default_code = "NOTIFICATION_FAILED"

    def __init__(self, message: str, recipient: str | None = None, template_kind: str | None = None):
        details = {"recipient": recipient, "template_kind": template_kind} if recipient else {}
        super().__init__(message, details=details)
