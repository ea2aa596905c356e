"""
Error taxonomy for access resolution, invitations and provisioning.

Every service error carries an ``ErrorKind`` so that shells and the HTTP
layer can report it without string matching. Store adapters raise the
``StoreError`` family, which services translate into service errors.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from uuid import UUID


class ErrorKind(StrEnum):
    UNKNOWN_ROLE = "unknown_role"
    INVALID_EMAIL = "invalid_email"
    INVALID_PASSWORD = "invalid_password"
    INVALID_PROFILE = "invalid_profile"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ALREADY_ACCEPTED = "already_accepted"
    CONFLICT = "conflict"
    TOKEN_GENERATION_EXHAUSTED = "token_generation_exhausted"
    UNAUTHORIZED = "unauthorized"
    INVALID_STATE = "invalid_state"
    PROVISIONING_FAILURE = "provisioning_failure"
    PROVISIONING_INCONSISTENT = "provisioning_inconsistent"
    PARTIAL_FAILURE = "partial_failure"
    TIMEOUT = "timeout"
    STORE_FAILURE = "store_error"


# --- Service errors ---


class UHubError(Exception):
    """Base service error."""

    kind: ErrorKind
    retryable: bool = False

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class UnknownRoleError(UHubError):
    kind = ErrorKind.UNKNOWN_ROLE

    def __init__(self, role: str) -> None:
        super().__init__(f"Unknown role '{role}'", role=role)


class InvalidEmailError(UHubError):
    kind = ErrorKind.INVALID_EMAIL

    def __init__(self, email: str, reason: str) -> None:
        super().__init__(f"Invalid email '{email}': {reason}", email=email, reason=reason)


class InvalidPasswordError(UHubError):
    kind = ErrorKind.INVALID_PASSWORD

    def __init__(self, min_length: int) -> None:
        super().__init__(
            f"Password must be at least {min_length} characters", min_length=min_length
        )


class InvalidProfileError(UHubError):
    kind = ErrorKind.INVALID_PROFILE

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}", field=field)


class NotFoundError(UHubError):
    kind = ErrorKind.NOT_FOUND


class ExpiredError(UHubError):
    kind = ErrorKind.EXPIRED

    def __init__(self) -> None:
        super().__init__("Invitation has expired")


class AlreadyAcceptedError(UHubError):
    kind = ErrorKind.ALREADY_ACCEPTED

    def __init__(self) -> None:
        super().__init__("Invitation has already been accepted")


class ConflictError(UHubError):
    kind = ErrorKind.CONFLICT


class TokenGenerationExhaustedError(UHubError):
    kind = ErrorKind.TOKEN_GENERATION_EXHAUSTED

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Could not generate a unique token after {attempts} attempts", attempts=attempts
        )


class UnauthorizedError(UHubError):
    kind = ErrorKind.UNAUTHORIZED


class InvalidStateError(UHubError):
    kind = ErrorKind.INVALID_STATE

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot move invitation from {current} to {requested}",
            current=current,
            requested=requested,
        )


class ProvisioningFailureError(UHubError):
    """The saga failed and nothing it created is left behind."""

    kind = ErrorKind.PROVISIONING_FAILURE

    def __init__(self, step: str, cause: Exception) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Provisioning failed at {step}: {cause}", step=step)


class ProvisioningInconsistentError(UHubError):
    """
    A compensating delete failed. The identity record exists without a
    matching profile (or vice versa) and needs manual reconciliation.
    """

    kind = ErrorKind.PROVISIONING_INCONSISTENT

    def __init__(self, identity_id: UUID, cause: Exception, compensation_error: Exception) -> None:
        self.identity_id = identity_id
        self.cause = cause
        self.compensation_error = compensation_error
        super().__init__(
            f"Identity {identity_id} left without a profile: {cause} "
            f"(compensation failed: {compensation_error})",
            identity_id=str(identity_id),
            cause=str(cause),
            compensation_error=str(compensation_error),
        )


class PartialFailureError(UHubError):
    kind = ErrorKind.PARTIAL_FAILURE

    def __init__(self, failed: int, total: int) -> None:
        super().__init__(f"{failed} of {total} items failed", failed=failed, total=total)


class OperationTimeoutError(UHubError):
    kind = ErrorKind.TIMEOUT
    retryable = True

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(
            f"{operation} timed out after {timeout:g}s", operation=operation, timeout=timeout
        )


class StoreFailureError(UHubError):
    """A store failed in a way that is neither a refusal we expect nor a timeout."""

    kind = ErrorKind.STORE_FAILURE

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"{operation} failed: {cause}", operation=operation)


# --- Store errors ---


class StoreError(Exception):
    """Base error raised by store adapters."""

    def __init__(self, store: str, reason: str) -> None:
        self.store = store
        self.reason = reason
        super().__init__(f"{store}: {reason}")


class StoreRejected(StoreError):
    """The store answered and refused the request. Retrying will not help."""


class StoreTimeout(StoreError):
    """The store did not answer in time. The outcome is unknown."""

    def __init__(self, store: str, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(store, f"{operation} timed out after {timeout:g}s")


class DuplicateToken(StoreRejected):
    def __init__(self) -> None:
        super().__init__("invitations", "token already exists")


class DuplicatePendingInvitation(StoreRejected):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("invitations", f"a pending invitation already exists for {email}")


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """Re-raise adapter errors escaping the block as service errors."""
    try:
        yield
    except StoreTimeout as e:
        raise OperationTimeoutError(operation, e.timeout) from e
    except StoreError as e:
        raise StoreFailureError(operation, e) from e


# --- Shell-layer error shape ---


@dataclass(frozen=True)
class ServiceError:
    """Structured error carried by component outputs and HTTP responses."""

    code: str
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: UHubError) -> ServiceError:
        return cls(
            code=exc.kind.value,
            message=exc.message,
            retryable=exc.retryable,
            details=dict(exc.details),
        )
