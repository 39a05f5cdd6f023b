"""Centralized constants for the deployment engine.

Binary requirements, probe defaults and the fixed schema of the template
context live here rather than in the modules that consume them.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Executables that must be present on the host before any service is deployed.
# Order matters: validation reports the first missing entry.
# ---------------------------------------------------------------------------
REQUIRED_BINARIES: tuple[str, ...] = (
    "kubectl",
    "helm",
    "terraform",
    "aws-iam-authenticator",
)

# ---------------------------------------------------------------------------
# Readiness probe
# None means the host default socket timeout.
# ---------------------------------------------------------------------------
DEFAULT_PROBE_TIMEOUT: float | None = None

# ---------------------------------------------------------------------------
# Keys always present in the default template context. ``private_port`` is
# added only when the service declares one.
# ---------------------------------------------------------------------------
TEMPLATE_CONTEXT_KEYS: tuple[str, ...] = (
    "id",
    "owner_id",
    "project_id",
    "organization_id",
    "environment_id",
    "region",
    "name",
    "namespace",
    "cluster_name",
    "total_cpus",
    "total_ram_in_mib",
    "total_instances",
    "is_private_port",
    "version",
)

# ---------------------------------------------------------------------------
# Persistence layout used by PlanRepository
# ---------------------------------------------------------------------------
PLAN_FILENAME = "plan.yaml"
STATE_FILENAME = "state.json"
GENERATED_DIRNAME = "generated"
