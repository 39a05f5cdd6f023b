"""Service contract, capability protocols and action dispatch.

Every deployable unit implements ``Service`` plus a set of capability
protocols. Each capability names an attempt/verify/compensate triad::

    on_<op>(target)        perform the operation
    on_<op>_check()        read-only check that it really happened
    on_<op>_error(target)  compensating hook run when either of the above fails

Failures are signalled by raising ``ServiceError``.

The behaviour shared by all services (``is_listening``, ``is_valid``,
``default_template_context``, ``progress_scope``, ``exec_action``) lives in
module level functions. Concrete services call them explicitly, usually
through ``DescribedService``.
"""
from __future__ import annotations

import logging
import socket
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .cloud import Context, DeploymentTarget, Environment, Kubernetes
from .cmd import does_binary_exist
from .constants import DEFAULT_PROBE_TIMEOUT, REQUIRED_BINARIES
from .errors import Unexpected
from .models import (
    Action,
    Image,
    ProgressScope,
    ProgressScopeKind,
    ServiceKind,
    ServiceSpec,
    ServiceType,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------- base contract


@runtime_checkable
class Service(Protocol):
    """Identity, sizing and network exposure of a deployable unit."""

    def context(self) -> Context:
        ...

    def service_type(self) -> ServiceType:
        ...

    @property
    def id(self) -> str:
        ...

    @property
    def name(self) -> str:
        ...

    @property
    def version(self) -> str:
        ...

    @property
    def action(self) -> Action:
        ...

    @property
    def private_port(self) -> Optional[int]:
        ...

    @property
    def total_cpus(self) -> str:
        ...

    @property
    def total_ram_in_mib(self) -> int:
        ...

    @property
    def total_instances(self) -> int:
        ...


# ------------------------------------------------------------- capabilities


@runtime_checkable
class Create(Protocol):
    def on_create(self, target: DeploymentTarget) -> None:
        ...

    def on_create_check(self) -> None:
        ...

    def on_create_error(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class Pause(Protocol):
    def on_pause(self, target: DeploymentTarget) -> None:
        ...

    def on_pause_check(self) -> None:
        ...

    def on_pause_error(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class Delete(Protocol):
    def on_delete(self, target: DeploymentTarget) -> None:
        ...

    def on_delete_check(self) -> None:
        ...

    def on_delete_error(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class Backup(Protocol):
    """Backup and its paired restore triad."""

    def on_backup(self, target: DeploymentTarget) -> None:
        ...

    def on_backup_check(self) -> None:
        ...

    def on_backup_error(self, target: DeploymentTarget) -> None:
        ...

    def on_restore(self, target: DeploymentTarget) -> None:
        ...

    def on_restore_check(self) -> None:
        ...

    def on_restore_error(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class Clone(Protocol):
    def on_clone(self, target: DeploymentTarget) -> None:
        ...

    def on_clone_check(self) -> None:
        ...

    def on_clone_error(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class Upgrade(Protocol):
    def on_upgrade(self, target: DeploymentTarget) -> None:
        ...

    def on_upgrade_check(self) -> None:
        ...

    def on_upgrade_error(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class Downgrade(Protocol):
    def on_downgrade(self, target: DeploymentTarget) -> None:
        ...

    def on_downgrade_check(self) -> None:
        ...

    def on_downgrade_error(self, target: DeploymentTarget) -> None:
        ...


# ---------------------------------------------------------------- composites


@runtime_checkable
class StatelessService(Service, Create, Pause, Delete, Protocol):
    def exec_action(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class StatefulService(
    Service, Create, Pause, Delete, Backup, Clone, Upgrade, Downgrade, Protocol
):
    def exec_action(self, target: DeploymentTarget) -> None:
        ...


@runtime_checkable
class Application(StatelessService, Protocol):
    @property
    def image(self) -> Image:
        ...

    def set_image(self, image: Image) -> None:
        ...


@runtime_checkable
class ExternalService(Application, Protocol):
    """An application-shaped service reachable outside the cluster."""


@runtime_checkable
class Router(StatelessService, Protocol):
    def check_domains(self) -> None:
        ...


@runtime_checkable
class Database(StatefulService, Protocol):
    pass


# Capability protocols keyed by the operation names they define.
CAPABILITIES: Dict[str, type] = {
    "create": Create,
    "pause": Pause,
    "delete": Delete,
    "backup": Backup,
    "restore": Backup,
    "clone": Clone,
    "upgrade": Upgrade,
    "downgrade": Downgrade,
}


# --------------------------------------------------------- shared behaviour


def is_listening(service: Service, ip: str, timeout: Optional[float] = DEFAULT_PROBE_TIMEOUT) -> bool:
    """Return True if something accepts TCP connections on ``ip:private_port``.

    A service without a private port is never listening. Connection failures
    are reported as False, never raised.
    """
    port = service.private_port
    if port is None:
        return False

    try:
        with socket.create_connection((ip, port), timeout=timeout):
            return True
    except (OSError, ValueError) as exc:
        log.debug("Service %s not listening on %s:%s (%s)", service.id, ip, port, exc)
        return False


def is_valid(service: Service) -> None:
    """Fail fast on the first required host binary that is missing."""
    for binary in REQUIRED_BINARIES:
        if not does_binary_exist(binary):
            log.warning("Service %s cannot be deployed: %s binary not found", service.id, binary)
            raise Unexpected(f"{binary} binary not found")


def default_template_context(
    service: Service,
    kubernetes: Kubernetes,
    environment: Environment,
) -> Dict[str, Any]:
    """Flat projection of a service and its environment for manifest templates."""
    context: Dict[str, Any] = {
        "id": service.id,
        "owner_id": environment.owner_id,
        "project_id": environment.project_id,
        "organization_id": environment.organization_id,
        "environment_id": environment.id,
        "region": kubernetes.region(),
        "name": service.name,
        "namespace": environment.namespace(),
        "cluster_name": kubernetes.name(),
        "total_cpus": service.total_cpus,
        "total_ram_in_mib": service.total_ram_in_mib,
        "total_instances": service.total_instances,
    }

    private_port = service.private_port
    context["is_private_port"] = private_port is not None
    if private_port is not None:
        context["private_port"] = private_port

    context["version"] = service.version
    return context


_SCOPE_BY_KIND = {
    ServiceKind.application: ProgressScopeKind.application,
    ServiceKind.external_service: ProgressScopeKind.external_service,
    ServiceKind.database: ProgressScopeKind.database,
    ServiceKind.router: ProgressScopeKind.router,
}


def progress_scope(service: Service) -> ProgressScope:
    return ProgressScope(kind=_SCOPE_BY_KIND[service.service_type().kind], id=service.id)


def exec_action(service: Any, target: DeploymentTarget) -> None:
    """Route the service's requested action to the matching ``on_*`` method.

    Only the attempt step runs. Checks and error hooks are left to the caller,
    see ``deploy_engine.lifecycle.run_triad``. Errors propagate unchanged.
    """
    try:
        action = Action(service.action)
    except ValueError as exc:
        raise Unexpected(f"Unsupported action {service.action!r} for service {service.id}") from exc

    if action is Action.create:
        service.on_create(target)
    elif action is Action.delete:
        service.on_delete(target)
    elif action is Action.pause:
        service.on_pause(target)
    elif action is Action.nothing:
        return


def check_classification(service: Any) -> None:
    """Raise ``Unexpected`` if the service type disagrees with its capabilities."""
    kind = service.service_type().kind
    if kind is ServiceKind.database:
        expected: type = StatefulService
    elif kind is ServiceKind.router:
        expected = Router
    else:
        expected = Application

    if not isinstance(service, expected):
        raise Unexpected(
            f"Service {service.id} is classified as {kind.value} "
            f"but does not implement {expected.__name__}"
        )


# ------------------------------------------------------------ helper base


class DescribedService:
    """Helper base for concrete services described by a ``ServiceSpec``.

    Provides the ``Service`` accessors and delegates the shared behaviour to
    the module functions. Subclasses add the capability methods.
    """

    def __init__(self, spec: ServiceSpec, context: Context) -> None:
        self.spec = spec
        self._context = context

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.spec.id!r}, action={self.spec.action.value!r})"

    def context(self) -> Context:
        return self._context

    def service_type(self) -> ServiceType:
        return self.spec.service_type()

    @property
    def id(self) -> str:
        return self.spec.id

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def version(self) -> str:
        return self.spec.version

    @property
    def action(self) -> Action:
        return self.spec.action

    @property
    def private_port(self) -> Optional[int]:
        return self.spec.private_port

    @property
    def total_cpus(self) -> str:
        return self.spec.total_cpus

    @property
    def total_ram_in_mib(self) -> int:
        return self.spec.total_ram_in_mib

    @property
    def total_instances(self) -> int:
        return self.spec.total_instances

    def is_listening(self, ip: str, timeout: Optional[float] = DEFAULT_PROBE_TIMEOUT) -> bool:
        return is_listening(self, ip, timeout=timeout)

    def is_valid(self) -> None:
        is_valid(self)

    def default_template_context(
        self, kubernetes: Kubernetes, environment: Environment
    ) -> Dict[str, Any]:
        return default_template_context(self, kubernetes, environment)

    def progress_scope(self) -> ProgressScope:
        return progress_scope(self)

    def exec_action(self, target: DeploymentTarget) -> None:
        exec_action(self, target)
