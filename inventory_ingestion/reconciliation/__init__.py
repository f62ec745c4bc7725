"""Intra-file deduplication and keyed upsert of validated records."""

from inventory_ingestion.reconciliation.engine import (
    PlannedUpsert,
    ReconciliationEngine,
    ReconciliationPlan,
    ReconciliationResult,
    plan_batch,
)

__all__ = [
    "PlannedUpsert",
    "ReconciliationEngine",
    "ReconciliationPlan",
    "ReconciliationResult",
    "plan_batch",
]
