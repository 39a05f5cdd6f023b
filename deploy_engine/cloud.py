"""Cluster and environment context handed to every lifecycle call.

These objects are owned by the caller. Services read them while building
template contexts or executing actions and never mutate them.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


@runtime_checkable
class Kubernetes(Protocol):
    """What the service layer needs to know about the target cluster."""

    def region(self) -> str:
        ...

    def name(self) -> str:
        ...


class KubernetesCluster(BaseModel):
    """Plain description of a managed cluster, loadable from a plan file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    cluster_name: str = Field(alias="name", min_length=1)
    cluster_region: str = Field(alias="region", min_length=1)
    provider: str = "aws"

    def region(self) -> str:
        return self.cluster_region

    def name(self) -> str:
        return self.cluster_name


class Environment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)

    def namespace(self) -> str:
        """Kubernetes namespace every service of this environment lives in."""
        return f"{self.project_id}-{self.id}"


class DeploymentTargetKind(str, Enum):
    managed_services = "managed_services"
    self_hosted = "self_hosted"


@dataclass(frozen=True)
class DeploymentTarget:
    """Opaque handle to where an action runs.

    The core only forwards it. Concrete services decide how to use the cluster
    and environment it carries.
    """

    kubernetes: Kubernetes
    environment: Environment
    kind: DeploymentTargetKind = DeploymentTargetKind.managed_services

    @property
    def is_managed_services(self) -> bool:
        return self.kind is DeploymentTargetKind.managed_services


class Context(BaseModel):
    """Execution context a service carries for the duration of a deployment pass."""

    model_config = ConfigDict(frozen=True)

    organization_id: str
    cluster_id: str
    execution_id: str
    workspace_root: Path = Path("/tmp/deploy-engine")
    dry_run: bool = False

    def workspace_dir(self, service_id: str) -> Path:
        return self.workspace_root / self.execution_id / service_id
