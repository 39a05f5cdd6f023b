"""Error taxonomy shared by every lifecycle operation.

Capability methods signal failure by raising one of the ``ServiceError``
subclasses below. Lower level failures are folded into the taxonomy by the
``service_error_from_*`` helpers, which keep the original error on ``cause``.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from .cmd import CmdError


class ServiceError(Exception):
    """Base class for every failure a service lifecycle method can raise."""

    kind: str = "ServiceError"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.kind)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        # Wrapping variants are only equal when they wrap the same failure.
        return (self.args, getattr(self, "cause", None)) == (
            other.args,
            getattr(other, "cause", None),
        )

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class OnCreateFailed(ServiceError):
    """Creation failed without a more specific reason."""

    kind = "OnCreateFailed"


class CheckFailed(ServiceError):
    """A post-operation check found the resource in the wrong state."""

    kind = "CheckFailed"


class CmdFailed(ServiceError):
    """An external command failed; the ``CmdError`` is kept on ``cause``."""

    kind = "Cmd"

    def __init__(self, cause: CmdError) -> None:
        self.cause = cause
        super().__init__(str(cause))


class IoFailed(ServiceError):
    """A host I/O call failed; the ``OSError`` is kept on ``cause``."""

    kind = "Io"

    def __init__(self, cause: OSError) -> None:
        self.cause = cause
        super().__init__(str(cause))


class NotEnoughResources(ServiceError):
    """The target lacks the capacity or quota the service needs."""

    kind = "NotEnoughResources"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class Unexpected(ServiceError):
    """Catch-all failure carrying a human readable reason."""

    kind = "Unexpected"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class CompensationFailed(ServiceError):
    """An error hook failed while compensating for a primary failure.

    Both errors stay retrievable: ``primary`` is the failure of the operation
    or its check, ``hook_error`` the failure of the ``on_<op>_error`` hook.
    """

    kind = "CompensationFailed"

    def __init__(self, operation: str, primary: ServiceError, hook_error: ServiceError) -> None:
        self.operation = operation
        self.primary = primary
        self.hook_error = hook_error
        super().__init__(
            f"{operation} failed ({primary}) and its error hook failed too ({hook_error})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompensationFailed):
            return NotImplemented
        return (self.operation, self.primary, self.hook_error) == (
            other.operation,
            other.primary,
            other.hook_error,
        )

    def __hash__(self) -> int:
        return hash((self.operation, self.primary, self.hook_error))


# ---------------------------------------------------------------- conversions


def service_error_from_io(err: OSError) -> IoFailed:
    return IoFailed(err)


def service_error_from_cmd(err: CmdError) -> CmdFailed:
    return CmdFailed(err)


def as_service_error(err: BaseException) -> ServiceError:
    """Fold any supported exception into the taxonomy.

    ``ServiceError`` instances pass through untouched. Anything else that is
    neither a ``CmdError`` nor an ``OSError`` becomes ``Unexpected``.
    """
    if isinstance(err, ServiceError):
        return err
    if isinstance(err, CmdError):
        return service_error_from_cmd(err)
    if isinstance(err, OSError):
        return service_error_from_io(err)
    return Unexpected(f"{err.__class__.__name__}: {err}")


# ------------------------------------------------------------ commit errors


class CommitErrorKind(str, Enum):
    not_valid_service = "NotValidService"
    delete_environment = "DeleteEnvironment"
    pause_environment = "PauseEnvironment"
    deploy_environment = "DeployEnvironment"
    delete_kubernetes = "DeleteKubernetes"
    create_kubernetes = "CreateKubernetes"
    build_image = "BuildImage"
    push_image = "PushImage"
    rollback_not_allowed = "RollbackNotAllowed"
    rollback_failed = "RollbackFailed"


# Transaction phases whose failure is reported through the service error they carry.
ENVIRONMENT_PHASE_KINDS = frozenset(
    {
        CommitErrorKind.delete_environment,
        CommitErrorKind.pause_environment,
        CommitErrorKind.deploy_environment,
        CommitErrorKind.delete_kubernetes,
        CommitErrorKind.create_kubernetes,
    }
)


class CommitError(Exception):
    """Failure raised by the transaction engine that sequences services."""

    def __init__(
        self,
        kind: CommitErrorKind,
        service_error: Optional[ServiceError] = None,
        detail: str = "",
    ) -> None:
        self.kind = CommitErrorKind(kind)
        self.service_error = service_error
        self.detail = detail
        message = detail or (str(service_error) if service_error else "")
        super().__init__(f"{self.kind.value}: {message}" if message else self.kind.value)


def service_error_from_commit(err: CommitError) -> Optional[ServiceError]:
    """Collapse a transaction failure into the service error behind it, if any."""
    if err.kind in ENVIRONMENT_PHASE_KINDS:
        return err.service_error
    if err.kind is CommitErrorKind.not_valid_service:
        if err.service_error is not None:
            return err.service_error
        return Unexpected(err.detail or "not a valid service")
    return None
