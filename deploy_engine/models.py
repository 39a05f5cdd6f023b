"""Pydantic models for services, their classification and deployment plans."""
from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .cloud import Environment, KubernetesCluster


class Action(str, Enum):
    """What should happen to a service during one deployment pass."""

    create = "create"
    pause = "pause"
    delete = "delete"
    nothing = "nothing"


class DatabaseOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    login: str = Field(min_length=1)
    password: str = Field(min_length=1)
    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    disk_size_in_gib: int = Field(ge=1)
    database_disk_type: str = Field(min_length=1)


class DatabaseKind(str, Enum):
    postgresql = "PostgreSQL"
    mongodb = "MongoDB"
    mysql = "MySQL"


class DatabaseType(BaseModel):
    """Database sub-classification. Equality is structural (kind and options)."""

    model_config = ConfigDict(frozen=True)

    kind: DatabaseKind
    options: DatabaseOptions

    @classmethod
    def postgresql(cls, options: DatabaseOptions) -> "DatabaseType":
        return cls(kind=DatabaseKind.postgresql, options=options)

    @classmethod
    def mongodb(cls, options: DatabaseOptions) -> "DatabaseType":
        return cls(kind=DatabaseKind.mongodb, options=options)

    @classmethod
    def mysql(cls, options: DatabaseOptions) -> "DatabaseType":
        return cls(kind=DatabaseKind.mysql, options=options)


class ServiceKind(str, Enum):
    application = "Application"
    external_service = "ExternalService"
    database = "Database"
    router = "Router"


class ServiceType(BaseModel):
    """Closed classification of a deployable unit.

    ``database`` is set exactly when ``kind`` is ``ServiceKind.database``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ServiceKind
    database: Optional[DatabaseType] = None

    @model_validator(mode="after")
    def check_database_payload(self) -> "ServiceType":
        if self.kind is ServiceKind.database and self.database is None:
            raise ValueError("Database service type requires a DatabaseType")
        if self.kind is not ServiceKind.database and self.database is not None:
            raise ValueError(f"{self.kind.value} service type cannot carry a DatabaseType")
        return self

    @classmethod
    def application(cls) -> "ServiceType":
        return cls(kind=ServiceKind.application)

    @classmethod
    def external_service(cls) -> "ServiceType":
        return cls(kind=ServiceKind.external_service)

    @classmethod
    def for_database(cls, database: DatabaseType) -> "ServiceType":
        return cls(kind=ServiceKind.database, database=database)

    @classmethod
    def router(cls) -> "ServiceType":
        return cls(kind=ServiceKind.router)

    def name(self) -> str:
        return self.kind.value


class ProgressScopeKind(str, Enum):
    application = "Application"
    external_service = "ExternalService"
    database = "Database"
    router = "Router"


class ProgressScope(BaseModel):
    """Reporting scope tagging ongoing work with a service kind and id."""

    model_config = ConfigDict(frozen=True)

    kind: ProgressScopeKind
    id: str


class Image(BaseModel):
    """Container image reference an application runs."""

    name: str = Field(min_length=1)
    tag: str = "latest"
    commit_id: str = ""
    registry_url: Optional[str] = None

    def name_with_tag(self) -> str:
        return f"{self.name}:{self.tag}"

    def full_name(self) -> str:
        if not self.registry_url:
            return self.name_with_tag()
        return f"{self.registry_url.rstrip('/')}/{self.name_with_tag()}"


class ServiceSpec(BaseModel):
    """Declarative description of one deployable unit in a plan."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    kind: ServiceKind
    action: Action = Action.nothing
    private_port: Optional[int] = Field(default=None, ge=1, le=65535)
    total_cpus: str = "1"
    total_ram_in_mib: int = Field(default=512, ge=1)
    total_instances: int = Field(default=1, ge=1)
    image: Optional[Image] = None
    database_kind: Optional[DatabaseKind] = None
    database: Optional[DatabaseOptions] = None

    @field_validator("total_cpus")
    def ensure_cpus_set(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("total_cpus must not be empty")
        return value

    @model_validator(mode="after")
    def check_database_fields(self) -> "ServiceSpec":
        has_database = self.database_kind is not None or self.database is not None
        if self.kind is ServiceKind.database:
            if self.database_kind is None or self.database is None:
                raise ValueError(f"Database service {self.id} needs database_kind and database")
        elif has_database:
            raise ValueError(f"{self.kind.value} service {self.id} cannot declare database options")
        return self

    def service_type(self) -> ServiceType:
        if self.kind is ServiceKind.database:
            return ServiceType.for_database(
                DatabaseType(kind=self.database_kind, options=self.database)
            )
        return ServiceType(kind=self.kind)


class EnvironmentPlan(BaseModel):
    """Every service of one environment and the cluster they deploy to."""

    version: int = 1
    environment: Environment
    kubernetes: KubernetesCluster
    services: List[ServiceSpec] = Field(default_factory=list)

    @field_validator("services")
    def ensure_unique_ids(cls, value: List[ServiceSpec]) -> List[ServiceSpec]:
        seen: set[str] = set()
        for spec in value:
            if spec.id in seen:
                raise ValueError(f"Duplicate service id: {spec.id}")
            seen.add(spec.id)
        return value

    def get(self, service_id: str) -> Optional[ServiceSpec]:
        for spec in self.services:
            if spec.id == service_id:
                return spec
        return None


class LifecycleEvent(BaseModel):
    service_id: str
    stage: str
    status: Literal["started", "ok", "failed"]
    detail: Optional[str] = None


class RunRecord(BaseModel):
    run_id: str
    ok: Optional[bool] = None
    events: List[LifecycleEvent] = Field(default_factory=list)
    summary: Optional[str] = None
