"""
Tests for IngestionService: the end-to-end pipeline over a stream source.

Covers commit policy (schema error, partial success, empty input), last-wins
deduplication, idempotence, cancellation, stream truncation and store
failure.
"""

from datetime import datetime, timezone

import pytest

from inventory_config.schema import IngestionConfig, NumericPolicy
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.exceptions import ConflictError, SchemaError, StreamReadError

from inventory_ingestion import ingest
from inventory_ingestion.adapters import CsvStreamSource
from inventory_ingestion.domain.types import IngestionStatus, UpsertAction
from inventory_ingestion.persistence import InMemoryStockStore, SerializedStore
from inventory_ingestion.services import CancellationToken, IngestionService

from tests.conftest import HEADER, stock_row, to_csv


class ScriptedSource:
    """
    StreamSource yielding prepared rows, with hooks for failure and cancellation.

    ``on_row(index)`` runs before each row is yielded; ``fail_after`` raises
    StreamReadError once that many rows have been yielded.
    """

    def __init__(self, rows, header=HEADER, fail_after=None, on_row=None, name="scripted.csv"):
        self.name = name
        self._header = tuple(header) if header is not None else None
        self._rows = [dict(zip(self._header, r)) for r in rows] if self._header else []
        self._fail_after = fail_after
        self._on_row = on_row
        self.closed = False
        self.pulled = 0

    def header(self):
        return self._header

    def rows(self):
        for index, row in enumerate(self._rows, start=1):
            if self._fail_after is not None and index > self._fail_after:
                raise StreamReadError(self.name, index - 1, "connection reset")
            if self._on_row is not None:
                self._on_row(index)
            self.pulled += 1
            yield row

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FailingStore(InMemoryStockStore):
    """In-memory store that raises ConflictError for one SKU."""

    def __init__(self, failing_sku):
        super().__init__()
        self._failing_sku = failing_sku

    def upsert(self, sku, fields):
        if sku == self._failing_sku:
            raise ConflictError(sku, "could not obtain lock")
        return super().upsert(sku, fields)


class TestIngestHappyPath:
    """Valid files insert, re-ingestion updates."""

    def test_inserts_every_valid_row(self, service, memory_store, make_source):
        report = service.ingest(make_source([stock_row("A1"), stock_row("B2"), stock_row("C3")]))
        assert report.status is IngestionStatus.COMPLETED
        assert report.rows_seen == 3
        assert report.inserted == 3
        assert report.updated == 0
        assert report.rejected == 0
        assert memory_store.count() == 3
        assert report.is_success

    def test_reingest_is_idempotent(self, service, memory_store, make_source):
        rows = [stock_row("A1", stock="4"), stock_row("B2", stock="8")]
        service.ingest(make_source(rows))
        before = memory_store.snapshot()

        report = service.ingest(make_source(rows))
        assert report.inserted == 0
        assert report.updated == 2
        assert report.actions == {"A1": UpsertAction.UPDATED, "B2": UpsertAction.UPDATED}
        assert memory_store.snapshot() == before

    def test_updates_non_key_fields(self, service, memory_store, make_source):
        service.ingest(make_source([stock_row("A1", stock="4", status="Active")]))
        service.ingest(make_source([stock_row("A1", stock="0", status="Discontinued")]))
        record = memory_store.get("A1")
        assert record.current_stock == 0.0
        assert record.status == "Discontinued"
        assert memory_store.count() == 1

    @pytest.mark.parametrize("label", ["Current Stock", "CurrentStock", "current_stock"])
    def test_header_variants_produce_same_records(self, label, clock, make_source):
        header = ("Item Name", "sku", "Category", "unit", label, "reorder level", "STATUS")
        store = InMemoryStockStore()
        IngestionService(store, clock=clock).ingest(make_source([stock_row("A1", stock="12")], header=header))
        assert store.get("A1").current_stock == 12.0
        assert store.get("A1").item_name == "Item A1"

    def test_bom_and_quoted_header_in_text_input(self, service, memory_store):
        header = ",".join(f'"{label}"' for label in HEADER)
        text = "\ufeff" + header + "\r\n" + ",".join(stock_row("A1")) + "\r\n"
        report = service.ingest(CsvStreamSource.from_text(text))
        assert report.status is IngestionStatus.COMPLETED
        assert memory_store.get("A1") is not None

    def test_report_timestamps_come_from_clock(self, memory_store, make_source):
        fixed = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
        service = IngestionService(memory_store, clock=DeterministicClock(fixed))
        report = service.ingest(make_source([stock_row("A1")]))
        assert report.started_at == fixed
        assert report.completed_at == fixed

    def test_module_level_ingest(self, memory_store, make_source):
        report = ingest(make_source([stock_row("A1")]), memory_store)
        assert report.inserted == 1

    def test_report_to_dict(self, service, make_source):
        report = service.ingest(make_source([stock_row("A1"), stock_row("B2", name="")]))
        data = report.to_dict()
        assert data["status"] == "completed"
        assert data["committed"] == 1
        assert data["rejections"][0]["row"] == 2
        assert data["actions"] == {"A1": "inserted"}


class TestCommitPolicy:
    """Schema errors are fatal; row errors are reported; valid rows commit."""

    def test_missing_sku_column_raises_before_any_persistence(self, service, memory_store, make_source):
        header = [h for h in HEADER if h != "SKU"]
        source = make_source(text=",".join(header) + "\nWidget,Hardware,pcs,1,1,Active\n")
        with pytest.raises(SchemaError) as exc_info:
            service.ingest(source)
        assert "SKU" in exc_info.value.missing_fields
        assert memory_store.upsert_calls == []
        assert source.closed

    def test_five_rows_with_empty_item_name_on_row_three(self, service, memory_store, make_source):
        rows = [stock_row(f"S{i}") for i in range(1, 6)]
        rows[2] = stock_row("S3", name="")
        report = service.ingest(make_source(rows))

        assert memory_store.count() == 4
        assert memory_store.get("S3") is None
        assert report.rejected == 1
        rejection = report.rejections[0]
        assert rejection.row_index == 3
        assert rejection.fields == ("ItemName",)
        assert rejection.reason == "Row 3: Missing required field 'ItemName'"

    def test_non_numeric_stock_rejected_not_zeroed(self, service, memory_store, make_source):
        report = service.ingest(make_source([stock_row("A1"), stock_row("B2", stock="abc")]))
        assert memory_store.get("B2") is None
        assert report.rejections[0].reason == "Row 2: Invalid value for CurrentStock ('abc')"
        assert report.status is IngestionStatus.COMPLETED

    def test_default_zero_policy_is_opt_in(self, memory_store, clock, make_source):
        config = IngestionConfig(numeric_policy=NumericPolicy.DEFAULT_ZERO)
        service = IngestionService(memory_store, config=config, clock=clock)
        report = service.ingest(make_source([stock_row("B2", stock="abc")]))
        assert report.rejected == 0
        assert memory_store.get("B2").current_stock == 0.0

    def test_header_only_is_empty(self, service, memory_store, make_source):
        report = service.ingest(make_source([]))
        assert report.status is IngestionStatus.EMPTY
        assert (report.rows_seen, report.inserted, report.updated, report.rejected) == (0, 0, 0, 0)
        assert report.is_success
        assert memory_store.upsert_calls == []

    def test_no_header_row_is_schema_error(self, service, make_source):
        with pytest.raises(SchemaError):
            service.ingest(make_source(text=""))

    def test_all_rows_invalid(self, service, memory_store, make_source):
        report = service.ingest(make_source([stock_row("", name=""), stock_row("B2", unit="")]))
        assert report.status is IngestionStatus.NO_VALID_ROWS
        assert report.rejected == 2
        assert memory_store.upsert_calls == []
        assert not report.is_success

    def test_rejections_in_input_order(self, service, make_source):
        rows = [stock_row("A", stock="x"), stock_row("B"), stock_row("C", status=""), stock_row("D", name="")]
        report = service.ingest(make_source(rows))
        assert [r.row_index for r in report.rejections] == [1, 3, 4]

    def test_configured_synonyms_are_honoured(self, memory_store, clock, make_source):
        config = IngestionConfig(header_synonyms={"CurrentStock": ("qty on hand",)})
        header = ("ItemName", "SKU", "Category", "Unit", "Qty On Hand", "ReorderLevel", "Status")
        service = IngestionService(memory_store, config=config, clock=clock)
        service.ingest(make_source([stock_row("A1", stock="3")], header=header))
        assert memory_store.get("A1").current_stock == 3.0


class TestDuplicates:
    """Intra-file duplicates: the later row wins."""

    def test_later_row_wins(self, service, memory_store, make_source):
        rows = [stock_row("A1", stock="1"), stock_row("B2"), stock_row("A1", stock="9")]
        report = service.ingest(make_source(rows))
        assert memory_store.get("A1").current_stock == 9.0
        assert report.inserted == 2
        assert report.skipped == 1
        assert report.superseded[0].row_index == 1
        assert report.superseded[0].superseded_by == 3
        assert memory_store.upsert_calls == ["B2", "A1"]

    def test_invalid_later_duplicate_does_not_supersede(self, service, memory_store, make_source):
        rows = [stock_row("A1", stock="1"), stock_row("A1", stock="abc")]
        report = service.ingest(make_source(rows))
        assert memory_store.get("A1").current_stock == 1.0
        assert report.skipped == 0
        assert report.rejected == 1


class TestFailures:
    """Cancellation, truncated streams and store failures."""

    def test_cancel_mid_stream_releases_source_and_commits_nothing(self, memory_store, clock):
        token = CancellationToken()

        def cancel_on_third(index):
            if index == 3:
                token.cancel("user aborted")

        source = ScriptedSource([stock_row(f"S{i}") for i in range(1, 6)], on_row=cancel_on_third)
        report = IngestionService(memory_store, clock=clock).ingest(source, cancel_token=token)

        assert report.status is IngestionStatus.CANCELLED
        assert report.rows_seen == 3
        assert report.committed == 0
        assert report.error_code == "INGESTION_CANCELLED"
        assert source.closed
        assert source.pulled == 3
        assert memory_store.upsert_calls == []

    def test_cancel_during_reconciliation_reports_committed_only(self, clock, make_source):
        token = CancellationToken()

        class CancellingStore(InMemoryStockStore):
            def upsert(self, sku, fields):
                action = super().upsert(sku, fields)
                if len(self.upsert_calls) == 2:
                    token.cancel()
                return action

        store = CancellingStore()
        source = make_source([stock_row(f"S{i}") for i in range(1, 6)])
        report = IngestionService(store, clock=clock).ingest(source, cancel_token=token)

        assert report.status is IngestionStatus.CANCELLED
        assert report.inserted == 2
        assert set(report.actions) == {"S1", "S2"}
        assert store.count() == 2
        assert source.closed

    def test_expired_timeout_cancels_before_reading(self, service, memory_store):
        source = ScriptedSource([stock_row("A1")])
        report = service.ingest(source, timeout=0)
        assert report.status is IngestionStatus.CANCELLED
        assert source.pulled == 0
        assert memory_store.upsert_calls == []

    def test_deadline_reached_mid_stream(self, service, memory_store, clock):
        def slow_row(index):
            clock.advance(4)

        source = ScriptedSource([stock_row(f"S{i}") for i in range(1, 6)], on_row=slow_row)
        report = service.ingest(source, timeout=10)

        assert report.status is IngestionStatus.CANCELLED
        assert report.rows_seen == 3
        assert report.error_message == "Ingestion cancelled: timeout exceeded"
        assert memory_store.upsert_calls == []

    def test_truncated_stream_commits_nothing(self, service, memory_store):
        source = ScriptedSource([stock_row(f"S{i}") for i in range(1, 6)], fail_after=2)
        report = service.ingest(source)
        assert report.status is IngestionStatus.TRUNCATED
        assert report.truncated
        assert report.rows_seen == 2
        assert report.error_code == "STREAM_READ_ERROR"
        assert memory_store.upsert_calls == []
        assert source.closed

    def test_store_failure_is_partial(self, clock, make_source):
        store = FailingStore("B2")
        report = IngestionService(store, clock=clock).ingest(
            make_source([stock_row("A1"), stock_row("B2"), stock_row("C3")])
        )
        assert report.status is IngestionStatus.PARTIAL_FAILURE
        assert report.inserted == 1
        assert report.error_code == "PERSISTENCE_CONFLICT"
        assert store.get("A1") is not None
        assert store.get("C3") is None

    def test_serialize_upserts_wraps_store(self, memory_store, clock, make_source):
        service = IngestionService(memory_store, config=IngestionConfig(serialize_upserts=True), clock=clock)
        assert isinstance(service.store, SerializedStore)
        service.ingest(make_source([stock_row("A1")]))
        assert memory_store.count() == 1


class TestIngestPath:
    """ingest_path: file sources with size limit and deletion."""

    def _write(self, tmp_path, rows):
        path = tmp_path / "upload.csv"
        path.write_text(to_csv(rows), encoding="utf-8")
        return path

    def test_ingest_path_keeps_file_by_default(self, service, memory_store, tmp_path):
        path = self._write(tmp_path, [stock_row("A1")])
        report = service.ingest_path(path)
        assert report.source_name == "upload.csv"
        assert memory_store.count() == 1
        assert path.exists()

    def test_delete_after_processing(self, memory_store, clock, tmp_path):
        path = self._write(tmp_path, [stock_row("A1")])
        service = IngestionService(memory_store, config=IngestionConfig(delete_after_processing=True), clock=clock)
        service.ingest_path(path)
        assert not path.exists()

    def test_file_deleted_even_on_schema_error(self, memory_store, clock, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("foo,bar\n1,2\n", encoding="utf-8")
        service = IngestionService(memory_store, config=IngestionConfig(delete_after_processing=True), clock=clock)
        with pytest.raises(SchemaError):
            service.ingest_path(path)
        assert not path.exists()

    def test_keep_file_override(self, memory_store, clock, tmp_path):
        path = self._write(tmp_path, [stock_row("A1")])
        service = IngestionService(memory_store, config=IngestionConfig(delete_after_processing=True), clock=clock)
        service.ingest_path(path, delete_after=False)
        assert path.exists()


class TestLogging:
    """Structured events carry the batch id as correlation id."""

    def test_lifecycle_events(self, service, make_source, captured_logs):
        report = service.ingest(make_source([stock_row("A1"), stock_row("B2", name="")]))
        logs = captured_logs()
        messages = [r["message"] for r in logs]
        for event in ("ingestion_started", "header_resolved", "row_rejected", "batch_planned", "ingestion_completed"):
            assert event in messages

        started = next(r for r in logs if r["message"] == "ingestion_started")
        assert started["correlation_id"] == str(report.batch_id)
        assert started["source"] == "stock.csv"

        rejected = next(r for r in logs if r["message"] == "row_rejected")
        assert rejected["source_row"] == 2
        assert rejected["fields"] == ["ItemName"]

    def test_schema_error_logged(self, service, make_source, captured_logs):
        with pytest.raises(SchemaError):
            service.ingest(make_source(text="ItemName\nx\n"))
        assert any(r["message"] == "schema_rejected" for r in captured_logs())
