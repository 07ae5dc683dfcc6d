"""
State migration pipeline.

For each candidate pair (source stack, destination stack) the state is
moved in strictly sequential steps:

    download URL -> upload URL -> stream -> lock -> import -> unlock

Nothing is retried.  A failing step marks that candidate failed and the
run moves on to the next one; transfers that already succeeded are kept.
Once the destination stack is locked, an unlock is always attempted.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, TypeVar

from tqdm import tqdm

from spacebridge.core.context import RunContext
from spacebridge.core.planner import MigrationPlan, StackClassification
from spacebridge.core.state import (
    BatchReport,
    MigrationReport,
    StackOperationResult,
    TransferResult,
    TransferStep,
)
from spacebridge.exceptions import TransferError
from spacebridge.models import Stack
from spacebridge.services.spacelift_adapter import SpaceliftAdapter
from spacebridge.services.state_transfer import stream_state
from spacebridge.utils.logging import log_with_context

T = TypeVar("T")


class StateMigrator:
    """Moves managed Terraform state from one account to another.

    Args:
        source: Adapter for the account the state is read from.
        destination: Adapter for the account the state is imported into.
        context: Run flags; in dry-run mode no remote call is made.
        transfer: Callable streaming bytes from a download URL to an upload
            URL and returning the byte count.
    """

    def __init__(
        self,
        source: SpaceliftAdapter,
        destination: SpaceliftAdapter,
        context: RunContext | None = None,
        transfer: Callable[[str, str], int] = stream_state,
    ) -> None:
        self.source = source
        self.destination = destination
        self.context = context or RunContext()
        self._transfer = transfer

    def migrate(self, plan: MigrationPlan) -> MigrationReport:
        """Transfer state for every candidate in ``plan``.

        Args:
            plan: Classifications from :func:`~spacebridge.core.planner.build_plan`.

        Returns:
            The report.  Call ``raise_for_failures`` on it to turn failed
            candidates into an error.
        """
        report = MigrationReport(plan=plan, dry_run=self.context.dry_run)
        candidates = [c for c in plan.candidates if c.destination is not None]

        if self.context.dry_run:
            for candidate in candidates:
                log_with_context(
                    logging.INFO,
                    f"{self.context.log_prefix}Would migrate state for "
                    f"{candidate.name}",
                    stack=candidate.name,
                )
            report.finish()
            return report

        log_with_context(
            logging.INFO, f"Migrating state for {len(candidates)} stacks"
        )
        for candidate in tqdm(
            candidates,
            desc="Migrating state",
            unit="stack",
            # None lets tqdm hide itself when stderr is not a terminal
            disable=None if self.context.show_progress else True,
        ):
            report.results.append(self.transfer(candidate))

        report.finish()
        log_with_context(
            logging.INFO,
            f"State migration finished: {report.succeeded} succeeded, "
            f"{report.failed} failed",
        )
        return report

    def transfer(self, candidate: StackClassification) -> TransferResult:
        """Run the transfer state machine for one candidate.

        Never raises for a failed step; the failure is recorded on the
        returned result.  ``KeyboardInterrupt`` still propagates.
        """
        if candidate.destination is None:
            raise ValueError(f"stack {candidate.name} has no destination pair")

        result = TransferResult(
            stack_name=candidate.name,
            source_stack_id=candidate.source.id,
            destination_stack_id=candidate.destination.id,
        )
        try:
            self._run(candidate.source, candidate.destination, result)
        except TransferError as e:
            result.step = TransferStep.FAILED
            result.failed_step = e.step
            result.error = str(e)
            log_with_context(
                logging.ERROR,
                f"State migration failed for {candidate.name}: {e}",
                stack=candidate.name,
                step=e.step,
            )
        # One candidate must not stop the others
        except Exception as e:
            result.step = TransferStep.FAILED
            result.error = str(e)
            log_with_context(
                logging.ERROR,
                f"Unexpected error migrating state for {candidate.name}: {e}",
                stack=candidate.name,
                exc_info=True,
            )
        return result

    def _run(self, source: Stack, destination: Stack, result: TransferResult) -> None:
        download_url = self._attempt(
            "download_url", source, self.source.get_state_download_url, source.id
        )
        result.step = TransferStep.DOWNLOAD_URL_OBTAINED

        target = self._attempt(
            "upload_url",
            source,
            self.destination.get_state_upload_url,
            destination.id,
        )
        result.step = TransferStep.UPLOAD_TARGET_OBTAINED

        result.bytes_transferred = self._attempt(
            "stream", source, self._transfer, download_url, target["url"]
        )
        result.step = TransferStep.STREAMED

        with self._stack_lock(source, destination, result):
            self._attempt(
                "import",
                source,
                self.destination.import_managed_state,
                destination.id,
                target["objectId"],
            )
            result.step = TransferStep.IMPORTED

        result.step = TransferStep.SUCCEEDED
        log_with_context(
            logging.INFO,
            f"Migrated state for {source.name}",
            stack=source.name,
            bytes=result.bytes_transferred,
        )

    @staticmethod
    def _attempt(step: str, stack: Stack, fn: Callable[..., T], *args: Any) -> T:
        log_with_context(logging.DEBUG, f"{stack.name}: {step}", stack=stack.name)
        try:
            return fn(*args)
        except Exception as e:
            raise TransferError(f"{step} failed: {e}", step=step, stack=stack.name) from e

    @contextmanager
    def _stack_lock(
        self, source: Stack, destination: Stack, result: TransferResult
    ) -> Iterator[None]:
        """Hold the destination stack lock for the body of the block.

        Unlock is attempted on every exit path.  Its failure is recorded on
        ``result`` and logged, but does not change the outcome.
        """
        self._attempt("lock", source, self.destination.lock_stack, destination.id)
        result.step = TransferStep.LOCKED
        try:
            yield
        finally:
            try:
                self.destination.unlock_stack(destination.id)
            except Exception as e:
                result.unlock_error = str(e)
                log_with_context(
                    logging.WARNING,
                    f"Failed to unlock destination stack {destination.name} "
                    f"({destination.id}): {e}",
                    stack=source.name,
                    step="unlock",
                )


# ---------------------------------------------------------------------------
# Batch stack updates
# ---------------------------------------------------------------------------


def _apply_to_stacks(
    operation: str,
    stacks: Iterable[Stack],
    fn: Callable[[Stack], None],
    context: RunContext,
) -> BatchReport:
    report = BatchReport(operation=operation, dry_run=context.dry_run)
    for stack in stacks:
        result = StackOperationResult(stack.name, stack.id, dry_run=context.dry_run)
        if context.dry_run:
            log_with_context(
                logging.INFO,
                f"{context.log_prefix}Would {operation} for {stack.name}",
                stack=stack.name,
            )
        else:
            try:
                fn(stack)
            # Each stack is independent
            except Exception as e:
                result.error = str(e)
                log_with_context(
                    logging.ERROR,
                    f"Failed to {operation} for {stack.name}: {e}",
                    stack=stack.name,
                )
            else:
                log_with_context(
                    logging.DEBUG, f"{operation} done for {stack.name}", stack=stack.name
                )
        report.results.append(result)
    return report


def stacks_needing_access(stacks: Iterable[Stack]) -> list[Stack]:
    """Managed-state Terraform stacks whose state cannot be downloaded yet."""
    return [s for s in stacks if s.has_managed_state and not s.external_state_access_enabled]


def enable_external_state_access(
    adapter: SpaceliftAdapter,
    stacks: Iterable[Stack],
    context: RunContext | None = None,
) -> BatchReport:
    """Enable external state access on each stack in ``stacks``."""
    return _apply_to_stacks(
        "enable external state access",
        stacks,
        adapter.enable_external_state_access,
        context or RunContext(),
    )


def enable_stacks(
    adapter: SpaceliftAdapter,
    stacks: Iterable[Stack],
    context: RunContext | None = None,
) -> BatchReport:
    """Clear the disabled flag on each disabled stack in ``stacks``."""
    return _apply_to_stacks(
        "enable stack",
        [s for s in stacks if s.is_disabled],
        adapter.enable_stack,
        context or RunContext(),
    )
