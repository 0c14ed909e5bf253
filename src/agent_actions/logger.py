# logger.py
# Append-only step recorder for one execution.
#
# Steps are appended in causal order and never reordered or removed.
# to_log() snapshots the steps into an immutable ExecutionLog stamped with
# the time the execution started.

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from agent_actions.models import Coercion, ExecutionLog, LogStep


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_session_id() -> str:
    return f"s_{uuid.uuid4().hex[:12]}"


class ExecutionLogger:
    def __init__(self, action: str, mode: Literal["ui", "direct"] = "ui", session_id: str | None = None) -> None:
        self.session_id = session_id or new_session_id()
        self.action = action
        self.mode = mode
        self._steps: list[LogStep] = []
        self.started_at = _utc_now()

    @property
    def steps(self) -> tuple[LogStep, ...]:
        return tuple(self._steps)

    def _append(self, step: LogStep) -> None:
        self._steps.append(step)

    def navigate(self, url: str) -> None:
        self._append(LogStep(type="navigate", url=url))

    def fill(self, field: str, value: Any) -> None:
        self._append(LogStep(type="fill", field=field, value=value))

    def click(self, action: str) -> None:
        self._append(LogStep(type="click", action=action))

    def read_status(self, output: str, value: Any) -> None:
        self._append(LogStep(type="read_status", output=output, value=value))

    def validate(self, result: str, error: str | None = None) -> None:
        self._append(LogStep(type="validate", result=result, error=error))

    def policy_check(self, result: str, error: str | None = None) -> None:
        self._append(LogStep(type="policy_check", result=result, error=error))

    def coerce(self, coercions: list[Coercion]) -> None:
        if coercions:
            self._append(LogStep(type="coerce", coercions=tuple(coercions)))

    def to_log(self) -> ExecutionLog:
        return ExecutionLog(
            session_id=self.session_id,
            action=self.action,
            mode=self.mode,
            steps=tuple(self._steps),
            timestamp=self.started_at,
        )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def save_log(log: ExecutionLog, directory: str | Path) -> Path:
    """Write ``log`` to ``<directory>/<session_id>.json`` and return the path."""
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    path = target / f"{log.session_id}.json"
    path.write_text(log.to_json(), encoding="utf-8")
    return path


def load_log(path: str | Path) -> ExecutionLog:
    return ExecutionLog.model_validate_json(Path(path).read_text(encoding="utf-8"))
