"""Structured execution trace for simulated workflow runs.

Each run produces a PipelineLog: one StepLog per executed or skipped step,
the conditional branches that were chosen, and wall-clock timing. The log
serializes to JSON and renders a short text summary for the CLI.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StepStatus(Enum):
    """Lifecycle of a step inside one run."""
    STARTED = "started"
    COMPLETED = "completed"
    SKIPPED = "skipped"


_STATUS_ICONS = {
    StepStatus.STARTED: "…",
    StepStatus.COMPLETED: "✅",
    StepStatus.SKIPPED: "⏭️",
}


@dataclass
class StepLog:
    """What happened to one step."""
    step_number: int
    command: str
    status: StepStatus
    timestamp: float = field(default_factory=time.time)
    elapsed_ms: float | None = None
    arguments: list[Any] | None = None
    result: Any = None
    reason: str | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "step_number": self.step_number,
            "command": self.command,
            "status": self.status.value,
            "timestamp": self.timestamp,
        }
        optional = {
            "elapsed_ms": None if self.elapsed_ms is None else round(self.elapsed_ms, 3),
            "arguments": self.arguments,
            "result": self.result,
            "reason": self.reason,
        }
        d.update({k: v for k, v in optional.items() if v is not None})
        return d


@dataclass
class PipelineLog:
    """Trace of a single workflow run."""
    workflow_name: str
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    status: str = "running"
    steps: list[StepLog] = field(default_factory=list)
    branches: list[str] = field(default_factory=list)

    @property
    def total_duration_ms(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at) * 1000

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def completed_count(self) -> int:
        return self._count(StepStatus.COMPLETED)

    @property
    def skipped_count(self) -> int:
        return self._count(StepStatus.SKIPPED)

    def _count(self, status: StepStatus) -> int:
        return sum(1 for s in self.steps if s.status is status)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "workflow_name": self.workflow_name,
            "status": self.status,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "steps": [s.to_dict() for s in self.steps],
            "branches": list(self.branches),
        }
        if self.total_duration_ms is not None:
            d["total_duration_ms"] = round(self.total_duration_ms, 3)
        return d

    def to_json(self, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), indent=2 if pretty else None, default=str)

    def summary(self) -> str:
        """Multi-line, human-readable rendering of the run."""
        total = self.total_duration_ms
        out = [
            f"Workflow: {self.workflow_name} [{self.status}]",
            f"Duration: {'running' if total is None else f'{total:.1f}ms'}",
            f"Steps: {self.completed_count}/{self.step_count} completed",
        ]
        rule = "─" * 50
        out.append(rule)
        for s in self.steps:
            line = f"  {_STATUS_ICONS[s.status]} step {s.step_number} ({s.command})"
            if s.elapsed_ms is not None:
                line += f" [{s.elapsed_ms:.1f}ms]"
            if s.reason:
                line += f" - {s.reason}"
            out.append(line)
            if s.result is not None:
                out.append(f"     └─ {json.dumps(s.result, default=str)}")
        if self.branches:
            out.append(rule)
            out.extend(f"  → {b}" for b in self.branches)
        return "\n".join(out)


class ExecutionLogger:
    """Builds the PipelineLog for one workflow run, step by step."""

    def __init__(self, workflow_name: str):
        self.pipeline = PipelineLog(workflow_name=workflow_name)
        self._clock: dict[int, float] = {}

    def start_step(self, step_number: int, command: str,
                   arguments: list[Any] | None = None) -> StepLog:
        self._clock[step_number] = time.perf_counter()
        entry = StepLog(step_number, command, StepStatus.STARTED, arguments=arguments)
        self.pipeline.steps.append(entry)
        return entry

    def complete_step(self, step_number: int, output: Any = None) -> None:
        """Mark the latest started entry for ``step_number`` as completed."""
        entry = next(
            (s for s in reversed(self.pipeline.steps)
             if s.step_number == step_number and s.status is StepStatus.STARTED),
            None,
        )
        if entry is None:
            return
        entry.status = StepStatus.COMPLETED
        began = self._clock.pop(step_number, None)
        if began is not None:
            entry.elapsed_ms = (time.perf_counter() - began) * 1000
        entry.result = output

    def skip_step(self, step_number: int, command: str, reason: str = "") -> None:
        self.pipeline.steps.append(
            StepLog(step_number, command, StepStatus.SKIPPED, reason=reason or None)
        )

    def branch(self, description: str) -> None:
        self.pipeline.branches.append(description)

    def finish(self, status: str = "completed") -> PipelineLog:
        self.pipeline.finished_at = time.time()
        self.pipeline.status = status
        return self.pipeline
