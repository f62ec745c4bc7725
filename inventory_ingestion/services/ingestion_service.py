"""
Ingestion service: stream -> resolve header -> decode/validate -> reconcile.

Responsibility:
    Orchestrates one ingestion call over a StreamSource and a
    PersistenceCapability and returns an IngestionReport.

Architecture:
    inventory_ingestion/services. Uses structured logging (LogContext bound
    to the batch id, get_logger("ingestion.*")) and an injected Clock for
    report timestamps.

Commit policy:
    - Unresolved header: SchemaError, before any persistence call.
    - Invalid rows are excluded and reported; valid rows are committed.
    - Stream failure mid-file: TRUNCATED, nothing committed. Last occurrence
      wins cannot be decided on a partial file, and re-running is safe.
    - Store failure mid-batch: PARTIAL_FAILURE, committed upserts stay.
    - Cancellation is checked before each row and before each upsert.

The source is closed on every exit path.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from inventory_config.schema import IngestionConfig
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import IngestionCancelledError, SchemaError, StreamReadError
from inventory_kernel.logging_config import LogContext, get_logger

from inventory_ingestion.adapters.base import StreamSource
from inventory_ingestion.adapters.csv_adapter import CsvStreamSource
from inventory_ingestion.domain.types import (
    IngestionReport,
    IngestionStatus,
    RowRejection,
    ValidRow,
)
from inventory_ingestion.domain.validators import validate_row
from inventory_ingestion.mapping.decoder import decode_row
from inventory_ingestion.mapping.headers import HeaderMapping, HeaderSynonyms, resolve_headers
from inventory_ingestion.persistence.base import PersistenceCapability
from inventory_ingestion.persistence.serialized import SerializedStore
from inventory_ingestion.reconciliation.engine import ReconciliationEngine, plan_batch
from inventory_ingestion.services.cancellation import CancellationToken

logger = get_logger("ingestion.ingestion_service")


class IngestionService:
    """Runs ingestion calls against one store with one configuration."""

    def __init__(
        self,
        store: PersistenceCapability,
        config: IngestionConfig | None = None,
        clock: Clock | None = None,
        synonyms: HeaderSynonyms | None = None,
    ):
        self._config = config or IngestionConfig()
        self._store = SerializedStore(store) if self._config.serialize_upserts else store
        self._clock = clock or SystemClock()
        self._synonyms = (synonyms or HeaderSynonyms.default()).extended(self._config.header_synonyms)
        self._engine = ReconciliationEngine(self._store)

    @property
    def store(self) -> PersistenceCapability:
        return self._store

    @property
    def config(self) -> IngestionConfig:
        return self._config

    def ingest(
        self,
        source: StreamSource,
        cancel_token: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> IngestionReport:
        """
        Ingest every record of ``source``.

        Raises SchemaError when the header cannot be resolved. Every other
        outcome, including cancellation and store failure, is a report.
        """
        batch_id = uuid4()
        token = CancellationToken.linked(
            cancel_token,
            timeout if timeout is not None else self._config.timeout_seconds,
            monotonic=self._clock.monotonic,
        )
        started_at = self._clock.now()

        with LogContext.bind(correlation_id=str(batch_id), source=source.name, producer="ingestion"), source:
            logger.info(
                "ingestion_started",
                extra={"numeric_policy": self._config.numeric_policy.value, "deadline": token.deadline},
            )
            report = self._run(source, token, batch_id, started_at)
            logger.info(
                "ingestion_completed",
                extra={
                    "status": report.status.value,
                    "rows_seen": report.rows_seen,
                    "inserted": report.inserted,
                    "updated": report.updated,
                    "skipped": report.skipped,
                    "rejected": report.rejected,
                },
            )
            return report

    def ingest_path(
        self,
        path: str | os.PathLike[str],
        cancel_token: CancellationToken | None = None,
        timeout: float | None = None,
        delete_after: bool | None = None,
    ) -> IngestionReport:
        """
        Ingest a CSV file from disk.

        Enforces the configured size limit. The file is deleted afterwards
        when ``delete_after`` (or, if None, ``delete_after_processing``) is set.
        """
        source = CsvStreamSource.open(
            path,
            encoding=self._config.encoding,
            delimiter=self._config.delimiter,
            max_bytes=self._config.max_file_bytes,
            delete_on_close=(
                self._config.delete_after_processing if delete_after is None else delete_after
            ),
        )
        return self.ingest(source, cancel_token=cancel_token, timeout=timeout)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run(
        self,
        source: StreamSource,
        token: CancellationToken,
        batch_id: UUID,
        started_at: datetime,
    ) -> IngestionReport:
        def report(status: IngestionStatus, **kwargs: Any) -> IngestionReport:
            return IngestionReport(
                batch_id=batch_id,
                source_name=source.name,
                status=status,
                started_at=started_at,
                completed_at=self._clock.now(),
                **kwargs,
            )

        try:
            token.raise_if_cancelled()
            headers = source.header()
        except IngestionCancelledError as exc:
            logger.info("ingestion_cancelled", extra={"reason": exc.reason, "rows_seen": 0})
            return report(IngestionStatus.CANCELLED, error_code=exc.code, error_message=str(exc))
        except StreamReadError as exc:
            logger.warning("stream_truncated", extra={"rows_read": 0, "error_msg": exc.reason})
            return report(
                IngestionStatus.TRUNCATED, truncated=True, error_code=exc.code, error_message=str(exc)
            )

        mapping = self._resolve(headers)

        rows_seen = 0
        valid: list[ValidRow] = []
        rejections: list[RowRejection] = []
        rows = source.rows()
        try:
            while True:
                token.raise_if_cancelled()
                raw = next(rows, None)
                if raw is None:
                    break
                rows_seen += 1
                decoded = decode_row(raw, mapping, self._config.numeric_policy)
                outcome = validate_row(decoded, rows_seen)
                if isinstance(outcome, ValidRow):
                    valid.append(outcome)
                else:
                    rejections.append(outcome)
                    logger.info(
                        "row_rejected",
                        extra={
                            "source_row": outcome.row_index,
                            "sku": outcome.sku,
                            "fields": outcome.fields,
                            "reason": outcome.reason,
                        },
                    )
        except IngestionCancelledError as exc:
            logger.info("ingestion_cancelled", extra={"reason": exc.reason, "rows_seen": rows_seen})
            return report(
                IngestionStatus.CANCELLED,
                rows_seen=rows_seen,
                rejected=len(rejections),
                rejections=tuple(rejections),
                error_code=exc.code,
                error_message=str(exc),
            )
        except StreamReadError as exc:
            logger.warning("stream_truncated", extra={"rows_read": rows_seen, "error_msg": exc.reason})
            return report(
                IngestionStatus.TRUNCATED,
                rows_seen=rows_seen,
                rejected=len(rejections),
                rejections=tuple(rejections),
                truncated=True,
                error_code=exc.code,
                error_message=str(exc),
            )

        if rows_seen == 0:
            return report(IngestionStatus.EMPTY)
        if not valid:
            return report(
                IngestionStatus.NO_VALID_ROWS,
                rows_seen=rows_seen,
                rejected=len(rejections),
                rejections=tuple(rejections),
            )

        plan = plan_batch(valid)
        logger.info(
            "batch_planned",
            extra={"valid_rows": len(valid), "planned": len(plan), "superseded": len(plan.superseded)},
        )
        result = self._engine.apply(plan, token)

        status = IngestionStatus.COMPLETED
        error = None
        if result.cancellation is not None:
            status, error = IngestionStatus.CANCELLED, result.cancellation
            logger.info("ingestion_cancelled", extra={"reason": result.cancellation.reason, "rows_seen": rows_seen})
        elif result.failure is not None:
            status, error = IngestionStatus.PARTIAL_FAILURE, result.failure

        return report(
            status,
            rows_seen=rows_seen,
            inserted=result.inserted,
            updated=result.updated,
            skipped=len(plan.superseded),
            rejected=len(rejections),
            rejections=tuple(rejections),
            superseded=plan.superseded,
            actions=dict(result.actions),
            error_code=error.code if error is not None else None,
            error_message=str(error) if error is not None else None,
        )

    def _resolve(self, headers: tuple[str, ...] | None) -> HeaderMapping:
        try:
            mapping = resolve_headers(headers, self._synonyms)
        except SchemaError as exc:
            logger.warning(
                "schema_rejected",
                extra={"missing_fields": exc.missing_fields, "headers": headers},
            )
            raise
        logger.info(
            "header_resolved",
            extra={
                "columns": {c.value: col.label for c, col in mapping.columns.items()},
                "ignored": mapping.ignored,
                "unrecognized": mapping.unrecognized,
            },
        )
        return mapping
