#!/usr/bin/env python3
"""
ExportWorkflowHelper - Per-date snapshot creation on the source cluster

Purpose:
- Verify the snapshot repository is registered before any work starts
- For one date: skip missing indices, skip snapshots that already succeeded,
  otherwise snapshot the single index and re-check its state
- Classify every result into an Outcome and write exactly one audit record
"""

from opensearchpy.exceptions import OpenSearchException

from config import INDEX_PREFIX, SNAPSHOT_DIR, SNAPSHOT_PREFIX, SNAPSHOT_REPO
from errors import OperationTimedOut, PreconditionError
from models import MigrationUnit, Outcome

SNAPSHOT_SUCCESS = "SUCCESS"


class ExportWorkflowHelper:
    title = "SNAPSHOT CREATION"

    def __init__(self, source_helper, logger, snapshot_repo=SNAPSHOT_REPO,
                 index_prefix=INDEX_PREFIX, snapshot_prefix=SNAPSHOT_PREFIX, snapshot_dir=SNAPSHOT_DIR):
        self.source_helper = source_helper
        self.logger = logger
        self.snapshot_repo = snapshot_repo
        self.index_prefix = index_prefix
        self.snapshot_prefix = snapshot_prefix
        self.snapshot_dir = snapshot_dir

    def preflight(self):
        """Raise PreconditionError unless the snapshot repository is registered."""
        self.logger.info("Verifying snapshot repository...")
        if not self.source_helper.repository_exists(self.snapshot_repo):
            self.logger.error(f"Snapshot repository '{self.snapshot_repo}' not found")
            self.logger.info("Please run the repository setup first")
            self.logger.log("ERROR: Snapshot repository not found")
            raise PreconditionError(f"Snapshot repository '{self.snapshot_repo}' is not registered")
        self.logger.success(f"Snapshot repository '{self.snapshot_repo}' is registered")
        self.logger.log("Snapshot repository verified")

    def unit_for(self, day):
        return MigrationUnit.for_date(day, self.index_prefix, self.snapshot_prefix)

    def process_unit(self, day):
        """Run the export state machine for one date. Never raises; returns the finished unit."""
        unit = self.unit_for(day)
        try:
            record = self._export(unit)
        except Exception as e:
            self.logger.error(f"Unexpected error while exporting {unit.index_name}: {e}")
            self.logger.log(f"ERROR: {unit.index_name} failed unexpectedly: {e}")
            record = unit.finish(Outcome.FAILED, "UNEXPECTED_ERROR", unit.expected_doc_count)
        self.logger.history(record)
        return unit

    def _export(self, unit):
        helper = self.source_helper

        if not helper.index_exists(unit.index_name):
            self.logger.warning(f"Index '{unit.index_name}' does not exist, skipping...")
            self.logger.log(f"SKIPPED: Index {unit.index_name} does not exist")
            return unit.finish(Outcome.SKIPPED_NOT_FOUND, "INDEX_NOT_FOUND", 0)

        self.logger.info(f"Creating snapshot '{unit.snapshot_name}' for index '{unit.index_name}'...")
        self.logger.log(f"Creating snapshot: {unit.snapshot_name} for index: {unit.index_name}")

        existing_state = helper.get_snapshot_state(self.snapshot_repo, unit.snapshot_name)
        if existing_state == SNAPSHOT_SUCCESS:
            self.logger.warning(f"Snapshot '{unit.snapshot_name}' already exists, skipping creation")
            self.logger.log(f"SKIPPED: Snapshot {unit.snapshot_name} already exists")
            return unit.finish(Outcome.SKIPPED_ALREADY_EXISTS, "SNAPSHOT_ALREADY_EXISTS", 0)
        if existing_state is not None:
            self.logger.warning(f"Snapshot '{unit.snapshot_name}' exists with state {existing_state}; "
                                f"delete it from '{self.snapshot_repo}' to retry")

        unit.expected_doc_count = helper.get_doc_count(unit.index_name)
        self.logger.info(f"Index contains {unit.expected_doc_count} documents")

        try:
            state = helper.create_snapshot(self.snapshot_repo, unit.snapshot_name, unit.index_name)
        except OperationTimedOut as e:
            self.logger.error(str(e))
            self.logger.log(f"ERROR: Snapshot {unit.snapshot_name} timed out")
            return unit.finish(Outcome.FAILED, "SNAPSHOT_TIMEOUT", unit.expected_doc_count)
        except OpenSearchException as e:
            self.logger.error(f"Snapshot creation failed: {e}")
            self.logger.log(f"ERROR: Snapshot {unit.snapshot_name} failed: {e}")
            return unit.finish(Outcome.FAILED, "SNAPSHOT_FAILED", unit.expected_doc_count)

        if state != SNAPSHOT_SUCCESS:
            self.logger.error(f"Snapshot creation failed (state: {state})")
            self.logger.log(f"ERROR: Snapshot {unit.snapshot_name} failed")
            return unit.finish(Outcome.FAILED, "SNAPSHOT_FAILED", unit.expected_doc_count)

        self.logger.success("Snapshot created successfully")
        self.logger.log(f"SUCCESS: Snapshot {unit.snapshot_name} created")

        # The snapshot stays in place even if the re-check disagrees.
        self.logger.info(f"Verifying snapshot '{unit.snapshot_name}'...")
        try:
            state = helper.get_snapshot_state(self.snapshot_repo, unit.snapshot_name)
        except OpenSearchException as e:
            self.logger.warning(f"Snapshot re-check unavailable: {e}")
            state = None
        if state != SNAPSHOT_SUCCESS:
            self.logger.warning("Snapshot created but verification failed, continuing anyway...")
            self.logger.log(f"WARNING: Snapshot {unit.snapshot_name} verification failed")
            return unit.finish(Outcome.SUCCESS, "SNAPSHOT_CREATED_UNVERIFIED", unit.expected_doc_count)

        self.logger.success("Snapshot verification passed")
        return unit.finish(Outcome.SUCCESS, "SNAPSHOT_CREATED", unit.expected_doc_count)

    def summary_lines(self):
        return [f"Snapshot Repository: {self.snapshot_repo}", f"Snapshot Directory: {self.snapshot_dir}"]
