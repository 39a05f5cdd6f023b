"""Helpers for reading and writing deployment plans and lifecycle run state."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import yaml

from .constants import GENERATED_DIRNAME, PLAN_FILENAME, STATE_FILENAME
from .models import EnvironmentPlan, LifecycleEvent, RunRecord


class PlanRepository:
    """File-backed persistence for an environment plan and its run history."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.plan_path = root / PLAN_FILENAME
        self.state_path = root / STATE_FILENAME
        self.generated_dir = root / GENERATED_DIRNAME
        self.generated_dir.mkdir(parents=True, exist_ok=True)

    def load_plan(self) -> EnvironmentPlan:
        if not self.plan_path.exists():
            raise FileNotFoundError(f"Missing deployment plan at {self.plan_path}")
        data = yaml.safe_load(self.plan_path.read_text())
        return EnvironmentPlan.model_validate(data)

    def save_plan(self, plan: EnvironmentPlan) -> None:
        payload = plan.model_dump(mode="json", by_alias=True)
        with self.plan_path.open("w") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)

    def load_state(self) -> dict[str, Any]:
        if not self.state_path.exists():
            return {}
        return json.loads(self.state_path.read_text())

    def save_state(self, state: dict[str, Any]) -> None:
        self.state_path.write_text(json.dumps(state, indent=2))

    # Run history ---------------------------------------------------------

    def start_run(self, run_id: str) -> None:
        self._update_run(run_id, lambda record: None)

    def append_run_event(self, run_id: str, event: LifecycleEvent) -> None:
        payload = event.model_dump(mode="json")
        self._update_run(run_id, lambda record: record["events"].append(payload))

    def finalize_run(self, run_id: str, ok: bool, summary: str | None = None) -> None:
        def close(record: dict[str, Any]) -> None:
            record["ok"] = ok
            if summary:
                record["summary"] = summary

        self._update_run(run_id, close)

    def get_run(self, run_id: str) -> RunRecord | None:
        for record in self.load_state().get("runs", []):
            if record.get("run_id") == run_id:
                return RunRecord.model_validate(record)
        return None

    def _update_run(self, run_id: str, mutate: Callable[[dict[str, Any]], None]) -> None:
        """Apply ``mutate`` to the stored run, creating it on first use."""
        state = self.load_state()
        runs = state.setdefault("runs", [])
        record = next((item for item in runs if item.get("run_id") == run_id), None)
        if record is None:
            record = {"run_id": run_id, "ok": None, "events": []}
            runs.append(record)
        record.setdefault("events", [])
        mutate(record)
        self.save_state(state)
