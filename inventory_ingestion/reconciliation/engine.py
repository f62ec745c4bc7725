"""
Reconciliation engine: decide and apply the effective action per SKU.

Two steps:
    plan_batch()  -- pure. Collapses intra-file duplicates (last occurrence
                     wins) before anything touches the store.
    ReconciliationEngine.apply() -- one upsert per planned SKU, in plan
                     order, recording inserted/updated per SKU.

Failure semantics:
    ConflictError / UnavailableError stop the batch. Upserts already applied
    stay applied; re-running the same file is safe because upsert is
    idempotent and the plan is deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from inventory_kernel.exceptions import IngestionCancelledError, PersistenceError
from inventory_kernel.logging_config import get_logger

from inventory_ingestion.domain.types import StockRecord, SupersededRow, UpsertAction, ValidRow
from inventory_ingestion.persistence.base import PersistenceCapability

if TYPE_CHECKING:
    from inventory_ingestion.services.cancellation import CancellationToken

logger = get_logger("ingestion.reconciliation")


# -----------------------------------------------------------------------------
# Planning (pure)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class PlannedUpsert:
    row_index: int  # Row of the winning occurrence
    record: StockRecord

    @property
    def sku(self) -> str:
        return self.record.sku


@dataclass(frozen=True)
class ReconciliationPlan:
    """Exactly one PlannedUpsert per SKU, ordered by winning row index."""

    upserts: tuple[PlannedUpsert, ...] = ()
    superseded: tuple[SupersededRow, ...] = ()

    def __len__(self) -> int:
        return len(self.upserts)


def plan_batch(valid_rows: Iterable[ValidRow]) -> ReconciliationPlan:
    """
    Collapse duplicate SKUs: the last occurrence in the file wins.

    Earlier occurrences are reported as SupersededRow pointing at the
    winning row; they never reach the store.
    """
    occurrences: dict[str, list[ValidRow]] = {}
    for row in valid_rows:
        occurrences.setdefault(row.record.sku, []).append(row)

    upserts: list[PlannedUpsert] = []
    superseded: list[SupersededRow] = []
    for sku, rows in occurrences.items():
        winner = max(rows, key=lambda r: r.row_index)
        upserts.append(PlannedUpsert(row_index=winner.row_index, record=winner.record))
        superseded.extend(
            SupersededRow(row_index=r.row_index, sku=sku, superseded_by=winner.row_index)
            for r in rows
            if r is not winner
        )

    upserts.sort(key=lambda u: u.row_index)
    superseded.sort(key=lambda s: s.row_index)
    return ReconciliationPlan(upserts=tuple(upserts), superseded=tuple(superseded))


# -----------------------------------------------------------------------------
# Application
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of applying a plan. ``actions`` holds only committed SKUs."""

    actions: dict[str, UpsertAction] = field(default_factory=dict)
    failure: PersistenceError | None = None
    cancellation: IngestionCancelledError | None = None

    @property
    def inserted(self) -> int:
        return sum(1 for a in self.actions.values() if a is UpsertAction.INSERTED)

    @property
    def updated(self) -> int:
        return sum(1 for a in self.actions.values() if a is UpsertAction.UPDATED)

    @property
    def complete(self) -> bool:
        return self.failure is None and self.cancellation is None


class ReconciliationEngine:
    """Applies a ReconciliationPlan against a PersistenceCapability."""

    def __init__(self, store: PersistenceCapability):
        self._store = store

    def apply(
        self,
        plan: ReconciliationPlan,
        cancel_token: CancellationToken | None = None,
    ) -> ReconciliationResult:
        actions: dict[str, UpsertAction] = {}
        for planned in plan.upserts:
            try:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                action = self._store.upsert(planned.sku, planned.record.upsert_fields())
            except IngestionCancelledError as exc:
                logger.info(
                    "reconciliation_cancelled",
                    extra={"committed": len(actions), "remaining": len(plan) - len(actions)},
                )
                return ReconciliationResult(actions=actions, cancellation=exc)
            except PersistenceError as exc:
                logger.warning(
                    "persistence_failed",
                    extra={
                        "sku": planned.sku,
                        "source_row": planned.row_index,
                        "error_code": exc.code,
                        "error_msg": str(exc),
                        "committed": len(actions),
                    },
                )
                return ReconciliationResult(actions=actions, failure=exc)
            actions[planned.sku] = action
            logger.debug(
                "record_upserted",
                extra={"sku": planned.sku, "source_row": planned.row_index, "action": action.value},
            )
        return ReconciliationResult(actions=actions)
