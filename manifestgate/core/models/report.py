"""
Validation verdicts and the aggregate run report.

A report is built incrementally by the orchestrator: one verdict per
processed file, in locator order, stopping after the first failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from manifestgate.core.errors import ValidationFailure


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class RunPhase(str, Enum):
    """Orchestrator phases, in the order a run moves through them."""

    BUILD_LOCATIONS = "build_locations"
    SELECT_PIPELINE = "select_pipeline"
    INVOKE = "invoke"
    AGGREGATE = "aggregate"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ValidationVerdict:
    """Outcome of validating one manifest file."""

    path: str
    outcome: Outcome
    message: str = ""
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "outcome": self.outcome.value,
            "message": self.message,
            "output": self.output,
        }


@dataclass
class ValidationReport:
    """Result of a whole validation run."""

    schema_locations: list[str] = field(default_factory=list)
    verdicts: list[ValidationVerdict] = field(default_factory=list)
    phase: RunPhase = RunPhase.BUILD_LOCATIONS

    @property
    def total(self) -> int:
        return len(self.verdicts)

    @property
    def succeeded(self) -> int:
        return sum(1 for v in self.verdicts if v.ok)

    @property
    def failure(self) -> ValidationVerdict | None:
        """The verdict that stopped the run, if any."""
        for verdict in self.verdicts:
            if not verdict.ok:
                return verdict
        return None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def output(self) -> str:
        """Concatenated per-file output, in processing order."""
        return "".join(v.output for v in self.verdicts)

    def raise_for_status(self) -> None:
        """Raise ValidationFailure if any file failed."""
        failed = self.failure
        if failed is not None:
            raise ValidationFailure(failed.path, failed.message)

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "phase": self.phase.value,
            "total": self.total,
            "succeeded": self.succeeded,
            "schema_locations": list(self.schema_locations),
            "verdicts": [v.to_dict() for v in self.verdicts],
        }
