"""
Outcome tracking for state migration runs.

Each candidate moves through :class:`TransferStep` values in order; a
:class:`TransferResult` records where it stopped and why.  The
:class:`MigrationReport` aggregates results for the whole run.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from spacebridge.core.planner import MigrationPlan
from spacebridge.exceptions import AggregateFailure


class TransferStep(str, Enum):
    """Progress of one candidate's state transfer."""

    PENDING = "pending"
    DOWNLOAD_URL_OBTAINED = "download_url_obtained"
    UPLOAD_TARGET_OBTAINED = "upload_target_obtained"
    STREAMED = "streamed"
    LOCKED = "locked"
    IMPORTED = "imported"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class TransferResult:
    """What happened to one candidate."""

    stack_name: str
    source_stack_id: str
    destination_stack_id: str
    step: TransferStep = TransferStep.PENDING
    failed_step: str | None = None
    error: str | None = None
    unlock_error: str | None = None
    bytes_transferred: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.step is TransferStep.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.step is TransferStep.FAILED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stack": self.stack_name,
            "source_stack_id": self.source_stack_id,
            "destination_stack_id": self.destination_stack_id,
            "status": self.step.value,
        }
        if self.bytes_transferred is not None:
            data["bytes"] = self.bytes_transferred
        if self.failed_step:
            data["failed_step"] = self.failed_step
        if self.error:
            data["error"] = self.error
        if self.unlock_error:
            data["unlock_error"] = self.unlock_error
        return data


@dataclass
class MigrationReport:
    """Aggregate outcome of a state migration run."""

    plan: MigrationPlan
    dry_run: bool = False
    results: list[TransferResult] = field(default_factory=list)
    started_at: datetime.datetime = field(default_factory=datetime.datetime.now)
    finished_at: datetime.datetime | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.failed)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def failures(self) -> list[TransferResult]:
        return [r for r in self.results if r.failed]

    def finish(self) -> None:
        self.finished_at = datetime.datetime.now()

    def raise_for_failures(self) -> None:
        """Raise :class:`AggregateFailure` if any candidate failed.

        Succeeded transfers are not undone.
        """
        if self.has_failures:
            raise AggregateFailure(
                f"state migration failed for {self.failed} of "
                f"{len(self.results)} stacks",
                succeeded=self.succeeded,
                failed=self.failed,
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "state_migration": {
                "started_at": self.started_at.isoformat(),
                "finished_at": self.finished_at.isoformat()
                if self.finished_at
                else None,
                "dry_run": self.dry_run,
                "plan": self.plan.counts(),
                "succeeded": self.succeeded,
                "failed": self.failed,
            },
            "candidates": [c.name for c in self.plan.candidates],
            "blocked": [
                {"stack": c.name, "reason": c.disposition.value}
                for c in self.plan.blocked
            ],
            "skipped": [
                {"stack": c.name, "reason": c.disposition.value}
                for c in self.plan.skipped
            ],
            "results": [r.to_dict() for r in self.results],
        }


# ---------------------------------------------------------------------------
# Per-stack batch operations (enable access, enable stacks)
# ---------------------------------------------------------------------------


@dataclass
class StackOperationResult:
    """Outcome of one stack update in a batch."""

    stack_name: str
    stack_id: str
    error: str | None = None
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Outcome of applying one operation to many stacks."""

    operation: str
    dry_run: bool = False
    results: list[StackOperationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    def raise_for_failures(self) -> None:
        """Raise :class:`AggregateFailure` if any stack failed."""
        if self.failed:
            raise AggregateFailure(
                f"{self.operation} failed for {self.failed} of "
                f"{len(self.results)} stacks",
                succeeded=self.succeeded,
                failed=self.failed,
            )
