"""Attempt, verify and compensate: running capability triads for one service."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional
from uuid import uuid4

from .cloud import DeploymentTarget
from .errors import CompensationFailed, ServiceError, Unexpected, as_service_error
from .models import LifecycleEvent
from .service import CAPABILITIES, check_classification, exec_action, is_valid
from .storage import PlanRepository

log = logging.getLogger(__name__)


def run_triad(service: Any, operation: str, target: DeploymentTarget) -> None:
    """Run ``on_<operation>``, then ``on_<operation>_check``.

    If either fails, ``on_<operation>_error`` runs and the original failure is
    raised again. When the hook fails too, ``CompensationFailed`` carrying both
    errors is raised instead.
    """
    capability = CAPABILITIES.get(operation)
    if capability is None:
        raise Unexpected(f"Unknown lifecycle operation: {operation}")
    if not isinstance(service, capability):
        raise Unexpected(
            f"Service {service.id} does not implement the {capability.__name__} capability"
        )

    attempt = getattr(service, f"on_{operation}")
    verify = getattr(service, f"on_{operation}_check")
    compensate = getattr(service, f"on_{operation}_error")

    try:
        attempt(target)
        verify()
    except Exception as exc:
        primary = as_service_error(exc)
        log.warning("%s of service %s failed: %s", operation, service.id, primary)
        try:
            compensate(target)
        except Exception as hook_exc:
            hook_error = as_service_error(hook_exc)
            log.error("%s error hook of service %s failed: %s", operation, service.id, hook_error)
            raise CompensationFailed(operation, primary, hook_error) from hook_exc
        if primary is exc:
            raise
        raise primary from exc


@dataclass
class LifecycleOutcome:
    """Result of running a lifecycle step through ``LifecycleRunner``."""

    run_id: str
    ok: bool
    events: List[LifecycleEvent] = field(default_factory=list)
    error: Optional[ServiceError] = None


@dataclass
class LifecycleRunner:
    """Runs lifecycle steps for single services and records what happened.

    Events are kept on the returned outcome and, when a repository is given,
    persisted as a run in its state file.
    """

    target: DeploymentTarget
    repo: Optional[PlanRepository] = None
    validate: bool = True

    def execute(self, service: Any, run_id: Optional[str] = None) -> LifecycleOutcome:
        """Validate the service, then dispatch its requested action."""
        stage = getattr(service.action, "value", str(service.action))
        return self._run(service, stage, lambda: exec_action(service, self.target), run_id)

    def run_operation(
        self, service: Any, operation: str, run_id: Optional[str] = None
    ) -> LifecycleOutcome:
        """Validate the service, then run the full triad for ``operation``."""
        return self._run(
            service, operation, lambda: run_triad(service, operation, self.target), run_id
        )

    # ------------------------------------------------------------------ helpers

    def _run(
        self, service: Any, stage: str, step: Callable[[], None], run_id: Optional[str]
    ) -> LifecycleOutcome:
        outcome = LifecycleOutcome(run_id=run_id or uuid4().hex, ok=False)
        if self.repo is not None:
            self.repo.start_run(outcome.run_id)

        if self.validate:
            self._record(outcome, service.id, "validate", "started")
            try:
                is_valid(service)
                check_classification(service)
            except ServiceError as exc:
                return self._fail(outcome, service.id, "validate", exc)
            self._record(outcome, service.id, "validate", "ok")

        self._record(outcome, service.id, stage, "started")
        log.info("Running %s for service %s", stage, service.id)
        try:
            step()
        except Exception as exc:
            return self._fail(outcome, service.id, stage, as_service_error(exc))

        self._record(outcome, service.id, stage, "ok")
        outcome.ok = True
        if self.repo is not None:
            self.repo.finalize_run(outcome.run_id, ok=True, summary=f"{stage} {service.id}")
        return outcome

    def _fail(
        self, outcome: LifecycleOutcome, service_id: str, stage: str, error: ServiceError
    ) -> LifecycleOutcome:
        log.error("%s failed for service %s: %s", stage, service_id, error)
        self._record(outcome, service_id, stage, "failed", f"{error.kind}: {error}")
        outcome.error = error
        if self.repo is not None:
            self.repo.finalize_run(outcome.run_id, ok=False, summary=f"{stage} {service_id} failed")
        return outcome

    def _record(
        self,
        outcome: LifecycleOutcome,
        service_id: str,
        stage: str,
        status: str,
        detail: str | None = None,
    ) -> None:
        event = LifecycleEvent(service_id=service_id, stage=stage, status=status, detail=detail)
        outcome.events.append(event)
        if self.repo is not None:
            self.repo.append_run_event(outcome.run_id, event)
