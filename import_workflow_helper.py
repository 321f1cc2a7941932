#!/usr/bin/env python3
"""
ImportWorkflowHelper - Per-date snapshot restore on the target cluster

Purpose:
- Verify the snapshot repository is registered and list what it holds
- For one date: resolve conflicts with an existing target index (skip, delete, skip-all),
  restore the single index, wait for it to become queryable
- Check index health (advisory) and compare the restored document count with
  the source cluster's current count (soft check)
- Classify every result into an Outcome and write exactly one audit record
"""

from opensearchpy.exceptions import OpenSearchException

from config import (
    INDEX_PREFIX, SNAPSHOT_PREFIX, SNAPSHOT_REPO, READINESS_TIMEOUT, POLL_INTERVAL
)
from conflict_resolver import ConflictChoice, FixedPolicyResolver
from errors import OperationTimedOut, PreconditionError
from models import MigrationUnit, Outcome

SNAPSHOT_LIST_LIMIT = 10


class ImportWorkflowHelper:
    title = "RESTORE PROCESS"

    def __init__(self, target_helper, logger, source_helper=None, resolver=None,
                 snapshot_repo=SNAPSHOT_REPO, index_prefix=INDEX_PREFIX, snapshot_prefix=SNAPSHOT_PREFIX,
                 readiness_timeout=READINESS_TIMEOUT, poll_interval=POLL_INTERVAL, auto_skip=False):
        self.target_helper = target_helper
        self.source_helper = source_helper
        self.logger = logger
        self.resolver = resolver or FixedPolicyResolver(ConflictChoice.SKIP)
        self.snapshot_repo = snapshot_repo
        self.index_prefix = index_prefix
        self.snapshot_prefix = snapshot_prefix
        self.readiness_timeout = readiness_timeout
        self.poll_interval = poll_interval
        self.auto_skip = auto_skip

    def preflight(self):
        """Raise PreconditionError unless the repository is registered, then list its snapshots."""
        self.logger.info("Verifying snapshot repository...")
        if not self.target_helper.repository_exists(self.snapshot_repo):
            self.logger.error(f"Snapshot repository '{self.snapshot_repo}' not found")
            self.logger.info("Please run the repository setup first")
            self.logger.log("ERROR: Snapshot repository not found")
            raise PreconditionError(f"Snapshot repository '{self.snapshot_repo}' is not registered")
        self.logger.success(f"Snapshot repository '{self.snapshot_repo}' is registered")
        self.logger.log("Snapshot repository verified")
        self.list_available_snapshots()

    def list_available_snapshots(self):
        self.logger.info("Listing available snapshots...")
        snapshots = self.target_helper.list_snapshots(self.snapshot_repo)
        if not snapshots:
            self.logger.warning("No snapshots found")
            return snapshots

        self.logger.success(f"Found {len(snapshots)} snapshots")
        for name, state in snapshots[:SNAPSHOT_LIST_LIMIT]:
            self.logger.echo(f"{name} - {state}")
        if len(snapshots) > SNAPSHOT_LIST_LIMIT:
            self.logger.info(f"... and {len(snapshots) - SNAPSHOT_LIST_LIMIT} more")
        return snapshots

    def unit_for(self, day):
        return MigrationUnit.for_date(day, self.index_prefix, self.snapshot_prefix)

    def process_unit(self, day):
        """Run the import state machine for one date. Never raises; returns the finished unit."""
        unit = self.unit_for(day)
        try:
            record = self._import(unit)
        except Exception as e:
            self.logger.error(f"Unexpected error while restoring {unit.index_name}: {e}")
            self.logger.log(f"ERROR: {unit.index_name} failed unexpectedly: {e}")
            record = unit.finish(Outcome.FAILED, "UNEXPECTED_ERROR", 0)
        self.logger.history(record)
        return unit

    def _import(self, unit):
        target = self.target_helper

        self.logger.info(f"Restoring snapshot '{unit.snapshot_name}' for index '{unit.index_name}'...")
        self.logger.log(f"Restoring snapshot: {unit.snapshot_name} for index: {unit.index_name}")

        if target.index_exists(unit.index_name):
            skipped = self._resolve_conflict(unit)
            if skipped is not None:
                return skipped

        try:
            shards = target.restore_snapshot(self.snapshot_repo, unit.snapshot_name, unit.index_name)
        except OperationTimedOut as e:
            self.logger.error(str(e))
            self.logger.log(f"ERROR: Restore {unit.snapshot_name} timed out")
            return unit.finish(Outcome.FAILED, "RESTORE_TIMEOUT", 0)
        except OpenSearchException as e:
            self.logger.error(f"Restore failed: {e}")
            self.logger.log(f"ERROR: Restore {unit.snapshot_name} failed: {e}")
            return unit.finish(Outcome.FAILED, "RESTORE_FAILED", 0)

        if not shards or shards.get("failed") != 0:
            self.logger.error(f"Restore failed (shards: {shards})")
            self.logger.log(f"ERROR: Restore {unit.snapshot_name} failed")
            return unit.finish(Outcome.FAILED, "RESTORE_FAILED", 0)

        self.logger.success("Restore completed successfully")
        try:
            if not target.wait_for_index_ready(unit.index_name, self.readiness_timeout, self.poll_interval):
                self.logger.warning(f"Index '{unit.index_name}' not settled after {self.readiness_timeout}s, verifying anyway")
            self.verify_health(unit.index_name)
        except OpenSearchException as e:
            self.logger.warning(f"Index restored but health check failed ({e}), counting as success")
        return self.verify_count(unit)

    def _resolve_conflict(self, unit):
        """Returns a skip audit record, or None once the existing index has been deleted."""
        target = self.target_helper
        existing_count = target.get_doc_count(unit.index_name)
        self.logger.warning(f"Index '{unit.index_name}' already exists with {existing_count} documents")

        if self.auto_skip:
            self.logger.info(f"Auto-skip enabled, skipping restore for {unit.index_name}")
            return unit.finish(Outcome.SKIPPED_BY_POLICY, "INDEX_ALREADY_EXISTS", existing_count)

        choice = self.resolver.resolve(unit, existing_count)
        if choice is ConflictChoice.SKIP_ALL:
            self.logger.info("Will skip all existing indices from now on")
            self.auto_skip = True
            return unit.finish(Outcome.SKIPPED_BY_POLICY, "USER_SKIP_ALL", existing_count)
        if choice is not ConflictChoice.DELETE:
            self.logger.warning(f"Skipping restore for {unit.index_name}")
            return unit.finish(Outcome.SKIPPED_BY_POLICY, "USER_SKIP", existing_count)

        self.logger.info("Deleting existing index...")
        try:
            target.delete_index(unit.index_name)
        except OpenSearchException as e:
            self.logger.error(f"Failed to delete {unit.index_name}: {e}")
            self.logger.log(f"ERROR: Delete {unit.index_name} failed: {e}")
            return unit.finish(Outcome.FAILED, "DELETE_FAILED", existing_count)
        self.logger.log(f"Deleted existing index {unit.index_name} before restore")
        if not target.wait_for_index_absent(unit.index_name, self.readiness_timeout, self.poll_interval):
            self.logger.warning(f"Index '{unit.index_name}' still visible after delete, restoring anyway")
        return None

    def verify_health(self, index):
        """Advisory only. Returns True for green or yellow."""
        self.logger.info(f"Verifying index '{index}'...")
        health = self.target_helper.get_index_health(index)
        if health == "green":
            self.logger.success("Index health: GREEN")
            return True
        if health == "yellow":
            self.logger.warning("Index health: YELLOW (acceptable for single-node)")
            return True
        self.logger.error(f"Index health: {health}")
        self.logger.warning("Index restored but health check failed, counting as success")
        return False

    def expected_count(self, index):
        """Current source document count, or None when it is unknown (unreachable, missing or zero)."""
        if self.source_helper is None:
            return None
        self.logger.info("Checking document count on source server...")
        try:
            count = self.source_helper.get_doc_count(index)
        except OpenSearchException as e:
            self.logger.warning(f"Source count unavailable: {e}")
            return None
        if not count:
            self.logger.warning("Cannot get document count from source server (index may not exist)")
            return None
        self.logger.info(f"Expected document count: {count}")
        return count

    def verify_count(self, unit):
        unit.expected_doc_count = self.expected_count(unit.index_name)
        unit.actual_doc_count = self.target_helper.get_doc_count(unit.index_name)
        self.logger.info(f"Restored index contains {unit.actual_doc_count} documents")

        if unit.expected_doc_count is not None and unit.actual_doc_count == unit.expected_doc_count:
            self.logger.success(f"Document count matches! ({unit.actual_doc_count} = {unit.expected_doc_count})")
            self.logger.log(f"SUCCESS: Index {unit.index_name} restored with matching doc count")
            return unit.finish(Outcome.SUCCESS, "RESTORE_SUCCESS_VERIFIED", unit.actual_doc_count)

        expected = unit.expected_doc_count if unit.expected_doc_count is not None else "unknown"
        self.logger.warning(f"Document count mismatch! ({unit.actual_doc_count} != {expected})")
        self.logger.info("This might be due to ongoing indexing on the source server")
        self.logger.log(f"WARNING: Index {unit.index_name} restored but doc count mismatch")
        return unit.finish(Outcome.SUCCESS_WITH_MISMATCH, "DOC_COUNT_MISMATCH", unit.actual_doc_count)

    def summary_lines(self):
        return [f"Snapshot Repository: {self.snapshot_repo}"]
