"""Domain exceptions raised by the service layer.

The global handlers in ``academy.middleware.error_handler`` turn these into
JSON errors. Only these classes are mapped; a builtin ``KeyError`` or
``ValueError`` escaping a service is a bug and surfaces as a 500.

- ``NotFoundError`` -> 404
- ``ForbiddenError`` -> 403
- ``ConflictError`` -> 409
- ``BadRequestError`` -> 400
"""

from __future__ import annotations


class NotFoundError(LookupError):
    """A referenced row does not exist (or is not visible to the caller)."""

    def __init__(self, entity: str, key: str | None = None) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found")


class ForbiddenError(PermissionError):
    """The caller may not touch this resource."""


class BadRequestError(ValueError):
    """The request breaks a business rule."""


class ConflictError(BadRequestError):
    """The operation collides with existing state."""


class AlreadyEnrolledError(ConflictError):
    """Student is already enrolled in the course."""


class AlreadyMemberError(ConflictError):
    """Student is already a member of the group."""


class SubscriptionExistsError(ConflictError):
    """Student already has a session balance."""


class InsufficientSessionsError(ConflictError):
    """No remaining sessions to consume."""
