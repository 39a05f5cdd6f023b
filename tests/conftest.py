"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import patch

import pytest

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from deploy_engine.cloud import Context, DeploymentTarget, Environment, KubernetesCluster
from deploy_engine.models import DatabaseOptions, Image, ServiceSpec
from deploy_engine.service import DescribedService


# ---------------------------------------------------------------- fake services


class _Recorder(DescribedService):
    """Records every lifecycle call and raises the configured failures."""

    def __init__(
        self,
        spec: ServiceSpec,
        context: Context,
        failures: Optional[Dict[str, BaseException]] = None,
        calls: Optional[List[str]] = None,
    ) -> None:
        super().__init__(spec, context)
        self.failures = failures or {}
        self.calls = calls if calls is not None else []
        self.targets: List[DeploymentTarget] = []

    def _step(self, name: str, target: Optional[DeploymentTarget] = None) -> None:
        self.calls.append(name)
        if target is not None:
            self.targets.append(target)
        failure = self.failures.get(name)
        if failure is not None:
            raise failure


class _StatelessRecorder(_Recorder):
    def on_create(self, target):
        self._step("on_create", target)

    def on_create_check(self):
        self._step("on_create_check")

    def on_create_error(self, target):
        self._step("on_create_error", target)

    def on_pause(self, target):
        self._step("on_pause", target)

    def on_pause_check(self):
        self._step("on_pause_check")

    def on_pause_error(self, target):
        self._step("on_pause_error", target)

    def on_delete(self, target):
        self._step("on_delete", target)

    def on_delete_check(self):
        self._step("on_delete_check")

    def on_delete_error(self, target):
        self._step("on_delete_error", target)


class RecordingApplication(_StatelessRecorder):
    def __init__(self, spec: ServiceSpec, context: Context, **kwargs: Any) -> None:
        super().__init__(spec, context, **kwargs)
        self._image = spec.image or Image(name=spec.name)

    @property
    def image(self) -> Image:
        return self._image

    def set_image(self, image: Image) -> None:
        self._image = image


class RecordingRouter(_StatelessRecorder):
    def check_domains(self) -> None:
        self._step("check_domains")


class RecordingDatabase(_StatelessRecorder):
    def on_backup(self, target):
        self._step("on_backup", target)

    def on_backup_check(self):
        self._step("on_backup_check")

    def on_backup_error(self, target):
        self._step("on_backup_error", target)

    def on_restore(self, target):
        self._step("on_restore", target)

    def on_restore_check(self):
        self._step("on_restore_check")

    def on_restore_error(self, target):
        self._step("on_restore_error", target)

    def on_clone(self, target):
        self._step("on_clone", target)

    def on_clone_check(self):
        self._step("on_clone_check")

    def on_clone_error(self, target):
        self._step("on_clone_error", target)

    def on_upgrade(self, target):
        self._step("on_upgrade", target)

    def on_upgrade_check(self):
        self._step("on_upgrade_check")

    def on_upgrade_error(self, target):
        self._step("on_upgrade_error", target)

    def on_downgrade(self, target):
        self._step("on_downgrade", target)

    def on_downgrade_check(self):
        self._step("on_downgrade_check")

    def on_downgrade_error(self, target):
        self._step("on_downgrade_error", target)


# -------------------------------------------------------------------- fixtures


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def environment() -> Environment:
    return Environment(
        id="env-1",
        project_id="proj-1",
        owner_id="owner-1",
        organization_id="org-1",
    )


@pytest.fixture
def kubernetes() -> KubernetesCluster:
    return KubernetesCluster(id="k8s-1", name="prod-cluster", region="eu-west-3")


@pytest.fixture
def target(kubernetes: KubernetesCluster, environment: Environment) -> DeploymentTarget:
    return DeploymentTarget(kubernetes=kubernetes, environment=environment)


@pytest.fixture
def context(temp_dir: Path) -> Context:
    return Context(
        organization_id="org-1",
        cluster_id="k8s-1",
        execution_id="exec-1",
        workspace_root=temp_dir,
    )


@pytest.fixture
def database_options() -> DatabaseOptions:
    return DatabaseOptions(
        login="superuser",
        password="s3cret",
        host="postgres-db1.internal",
        port=5432,
        disk_size_in_gib=10,
        database_disk_type="gp2",
    )


@pytest.fixture
def sample_plan(database_options: DatabaseOptions) -> Dict[str, Any]:
    """Return a valid plan payload as it would appear in plan.yaml."""
    return {
        "version": 1,
        "environment": {
            "id": "env-1",
            "project_id": "proj-1",
            "owner_id": "owner-1",
            "organization_id": "org-1",
        },
        "kubernetes": {"id": "k8s-1", "name": "prod-cluster", "region": "eu-west-3"},
        "services": [
            {
                "id": "app-1",
                "name": "api",
                "version": "1.4.2",
                "kind": "Application",
                "action": "create",
                "private_port": 8080,
                "total_cpus": "500m",
                "total_ram_in_mib": 256,
                "total_instances": 2,
                "image": {"name": "api", "tag": "1.4.2"},
            },
            {
                "id": "db-1",
                "name": "main-db",
                "version": "13",
                "kind": "Database",
                "action": "create",
                "private_port": 5432,
                "database_kind": "PostgreSQL",
                "database": database_options.model_dump(mode="json"),
            },
            {
                "id": "router-1",
                "name": "edge",
                "version": "1",
                "kind": "Router",
                "action": "nothing",
            },
        ],
    }


@pytest.fixture
def app_spec() -> ServiceSpec:
    return ServiceSpec(
        id="app-1",
        name="api",
        version="1.4.2",
        kind="Application",
        action="create",
        private_port=8080,
        total_cpus="500m",
        total_ram_in_mib=256,
        total_instances=2,
    )


@pytest.fixture
def database_spec(database_options: DatabaseOptions) -> ServiceSpec:
    return ServiceSpec(
        id="db-1",
        name="main-db",
        version="13",
        kind="Database",
        action="create",
        private_port=5432,
        database_kind="PostgreSQL",
        database=database_options,
    )


@pytest.fixture
def router_spec() -> ServiceSpec:
    return ServiceSpec(id="router-1", name="edge", version="1", kind="Router")


@pytest.fixture
def make_application(context: Context) -> Callable[..., RecordingApplication]:
    def factory(spec: ServiceSpec, **kwargs: Any) -> RecordingApplication:
        return RecordingApplication(spec, context, **kwargs)

    return factory


@pytest.fixture
def make_database(context: Context) -> Callable[..., RecordingDatabase]:
    def factory(spec: ServiceSpec, **kwargs: Any) -> RecordingDatabase:
        return RecordingDatabase(spec, context, **kwargs)

    return factory


@pytest.fixture
def make_router(context: Context) -> Callable[..., RecordingRouter]:
    def factory(spec: ServiceSpec, **kwargs: Any) -> RecordingRouter:
        return RecordingRouter(spec, context, **kwargs)

    return factory


@pytest.fixture
def all_binaries_present() -> Generator[None, None, None]:
    """Pretend every required host binary is on PATH."""
    with patch("deploy_engine.cmd.shutil.which", return_value="/usr/local/bin/tool"):
        yield
