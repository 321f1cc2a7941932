"""
tests/test_export_workflow_helper.py

Per-date snapshot state machine against an in-memory cluster.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError
from opensearchpy.exceptions import TransportError

from conftest import REPO
from errors import OperationTimedOut, PreconditionError
from export_workflow_helper import ExportWorkflowHelper
from models import AuditRecord, Outcome


@pytest.fixture()
def workflow(source, logger) -> ExportWorkflowHelper:
    return ExportWorkflowHelper(source, logger, snapshot_repo=REPO)


def history(logger):
    return [AuditRecord.from_line(line) for line in logger.read_history()]


class TestPreflight:
    def test_registered_repository(self, workflow) -> None:
        workflow.preflight()

    def test_missing_repository_aborts(self, source, logger) -> None:
        source.repositories.clear()
        with pytest.raises(PreconditionError):
            ExportWorkflowHelper(source, logger, snapshot_repo=REPO).preflight()


class TestExportUnit:
    def test_creates_snapshot(self, workflow, source, logger) -> None:
        unit = workflow.process_unit("2025-01-01")

        assert unit.outcome is Outcome.SUCCESS
        assert unit.reason_code == "SNAPSHOT_CREATED"
        assert unit.expected_doc_count == 720660
        assert source.repository["snapshot_logs_2025_01_01"]["index"] == "logs-2025-01-01"
        assert history(logger)[0].to_line() == (
            "SUCCESS|logs-2025-01-01|snapshot_logs_2025_01_01|720660|SNAPSHOT_CREATED"
        )

    def test_second_run_skips_existing_snapshot(self, workflow, source, logger) -> None:
        first = workflow.process_unit("2025-01-01")
        second = workflow.process_unit("2025-01-01")

        assert first.outcome is Outcome.SUCCESS
        assert second.outcome is Outcome.SKIPPED_ALREADY_EXISTS
        assert len(source.called("create_snapshot")) == 1
        assert [r.reason_code for r in history(logger)] == ["SNAPSHOT_CREATED", "SNAPSHOT_ALREADY_EXISTS"]

    def test_missing_index_is_skipped(self, workflow, source) -> None:
        unit = workflow.process_unit("2024-12-31")

        assert unit.outcome is Outcome.SKIPPED_NOT_FOUND
        assert unit.reason_code == "INDEX_NOT_FOUND"
        assert source.called("create_snapshot") == []

    def test_partial_snapshot_fails(self, workflow, source, logger) -> None:
        source.create_state = "PARTIAL"
        unit = workflow.process_unit("2025-01-02")

        assert unit.outcome is Outcome.FAILED
        assert history(logger)[0].to_line() == "FAILED|logs-2025-01-02|snapshot_logs_2025_01_02|1500|SNAPSHOT_FAILED"

    def test_failed_snapshot_is_retried_by_next_run(self, workflow, source) -> None:
        source.create_state = "FAILED"
        workflow.process_unit("2025-01-02")
        source.create_state = "SUCCESS"

        assert workflow.process_unit("2025-01-02").outcome is Outcome.SUCCESS

    def test_cluster_error_fails_unit(self, workflow, source) -> None:
        source.create_error = TransportError(500, "snapshot_exception", {})
        unit = workflow.process_unit("2025-01-02")

        assert unit.outcome is Outcome.FAILED
        assert unit.reason_code == "SNAPSHOT_FAILED"

    def test_timeout_fails_unit(self, workflow, source) -> None:
        source.create_error = OperationTimedOut("Snapshot snapshot_logs_2025_01_02", 5)
        unit = workflow.process_unit("2025-01-02")

        assert unit.outcome is Outcome.FAILED
        assert unit.reason_code == "SNAPSHOT_TIMEOUT"

    def test_failed_verification_keeps_snapshot(self, logger) -> None:
        helper = MagicMock()
        helper.index_exists.return_value = True
        helper.get_doc_count.return_value = 10
        helper.get_snapshot_state.side_effect = [None, "IN_PROGRESS"]
        helper.create_snapshot.return_value = "SUCCESS"

        unit = ExportWorkflowHelper(helper, logger).process_unit("2025-01-01")

        assert unit.outcome is Outcome.SUCCESS
        assert unit.reason_code == "SNAPSHOT_CREATED_UNVERIFIED"
        helper.delete_snapshot.assert_not_called()

    def test_unreachable_recheck_keeps_success(self, logger) -> None:
        helper = MagicMock()
        helper.index_exists.return_value = True
        helper.get_doc_count.return_value = 10
        helper.get_snapshot_state.side_effect = [None, OpenSearchConnectionError("N/A", "connection reset", None)]
        helper.create_snapshot.return_value = "SUCCESS"

        unit = ExportWorkflowHelper(helper, logger).process_unit("2025-01-01")

        assert unit.outcome is Outcome.SUCCESS
        assert history(logger)[0].reason_code == "SNAPSHOT_CREATED_UNVERIFIED"

    def test_unexpected_error_never_escapes(self, logger) -> None:
        helper = MagicMock()
        helper.index_exists.side_effect = RuntimeError("boom")

        unit = ExportWorkflowHelper(helper, logger).process_unit("2025-01-01")

        assert unit.outcome is Outcome.FAILED
        assert history(logger)[0].reason_code == "UNEXPECTED_ERROR"

    def test_one_record_per_unit(self, workflow, logger) -> None:
        for day in ("2025-01-01", "2025-01-02", "2025-01-05"):
            workflow.process_unit(day)
        assert len(logger.read_history()) == 3
