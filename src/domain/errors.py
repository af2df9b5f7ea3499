"""Typed failures raised by the core services.

Every invariant check either passes or raises one of these; the HTTP layer
maps the four top-level classes onto status codes and nothing in the core
catches them.
"""

from __future__ import annotations


class CoreError(Exception):
    """Base class for all core failures."""

    code = "core_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class AccessDeniedError(CoreError):
    """Caller is authenticated but not entitled to the requested data."""

    code = "access_denied"


class UnresolvableActorError(AccessDeniedError):
    """Actor has no partner/center assignment (administrative data problem)."""

    code = "actor_unresolvable"


class NoActiveScopeError(AccessDeniedError):
    """The actor's center has no active cohort."""

    code = "no_active_cohort"


class ScopeMismatchError(AccessDeniedError):
    """The loaded active cohort disagrees with the one stored in the context."""

    code = "cohort_mismatch"


class NotFoundError(CoreError):
    """Referenced entity does not exist."""

    code = "not_found"


class ConflictError(CoreError):
    """A uniqueness rule would be violated."""

    code = "conflict"


class AmbiguousScopeError(ConflictError):
    """More than one active cohort exists for a center."""

    code = "ambiguous_cohort"


class DuplicateEnrollmentError(ConflictError):
    """Participant is already enrolled in the cohort."""

    code = "duplicate_enrollment"


class InvalidInputError(CoreError):
    """Input is well-formed JSON but violates a business rule."""

    code = "invalid_input"


__all__ = [
    "AccessDeniedError",
    "AmbiguousScopeError",
    "ConflictError",
    "CoreError",
    "DuplicateEnrollmentError",
    "InvalidInputError",
    "NoActiveScopeError",
    "NotFoundError",
    "ScopeMismatchError",
    "UnresolvableActorError",
]
