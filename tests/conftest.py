"""
Shared pytest fixtures for the migration tool tests.

FakeCluster stands in for OpenSearchMigrationHelper: it keeps indices and
snapshots in dictionaries, records every call, and lets a test inject
failures. Source and target clusters built from the same repository dict
share snapshot artifacts the way two clusters sharing a filesystem
repository do.
"""

from __future__ import annotations

import pytest

from log_helper import MigrationLogHelper

REPO = "backup_repo"


class FakeCluster:
    def __init__(self, indices=None, repository=None, repositories=(REPO,)):
        self.indices = dict(indices or {})
        self.repository = repository if repository is not None else {}
        self.repositories = set(repositories)
        self.health = {}
        self.calls = []
        self.create_state = "SUCCESS"
        self.create_error = None
        self.restore_error = None
        self.restore_failed_shards = 0
        self.restored_counts = {}
        self.delete_error = None
        self.ready = True

    # -- queries ------------------------------------------------------------

    def repository_exists(self, snapshot_repo):
        return snapshot_repo in self.repositories

    def list_snapshots(self, snapshot_repo):
        return [(name, snap["state"]) for name, snap in self.repository.items()]

    def index_exists(self, index):
        self.calls.append(("index_exists", index))
        return index in self.indices

    def get_doc_count(self, index):
        self.calls.append(("get_doc_count", index))
        return self.indices.get(index)

    def get_index_health(self, index):
        if index not in self.indices:
            return None
        return self.health.get(index, "green")

    def get_snapshot_state(self, snapshot_repo, snapshot):
        self.calls.append(("get_snapshot_state", snapshot))
        snap = self.repository.get(snapshot)
        return snap["state"] if snap else None

    # -- mutations ----------------------------------------------------------

    def delete_index(self, index):
        self.calls.append(("delete_index", index))
        if self.delete_error is not None:
            raise self.delete_error
        self.indices.pop(index, None)

    def create_snapshot(self, snapshot_repo, snapshot, index):
        self.calls.append(("create_snapshot", snapshot))
        if self.create_error is not None:
            raise self.create_error
        self.repository[snapshot] = {
            "state": self.create_state,
            "index": index,
            "count": self.indices[index],
        }
        return self.create_state

    def restore_snapshot(self, snapshot_repo, snapshot, index):
        self.calls.append(("restore_snapshot", snapshot))
        if self.restore_error is not None:
            raise self.restore_error
        if self.restore_failed_shards:
            return {"total": 1, "failed": self.restore_failed_shards, "successful": 0}
        snap = self.repository[snapshot]
        self.indices[index] = self.restored_counts.get(index, snap["count"])
        return {"total": 1, "failed": 0, "successful": 1}

    def wait_for_index_absent(self, index, timeout, interval):
        self.calls.append(("wait_for_index_absent", index))
        return index not in self.indices

    def wait_for_index_ready(self, index, timeout, interval):
        self.calls.append(("wait_for_index_ready", index))
        return self.ready

    def called(self, name):
        return [args for call, *args in self.calls if call == name]


@pytest.fixture()
def repository() -> dict:
    """Snapshot repository contents shared by source and target."""
    return {}


@pytest.fixture()
def source(repository) -> FakeCluster:
    return FakeCluster(
        indices={"logs-2025-01-01": 720660, "logs-2025-01-02": 1500, "logs-2025-01-03": 42},
        repository=repository,
    )


@pytest.fixture()
def target(repository) -> FakeCluster:
    return FakeCluster(repository=repository)


@pytest.fixture()
def echoed() -> list:
    return []


@pytest.fixture()
def logger(tmp_path, echoed) -> MigrationLogHelper:
    helper = MigrationLogHelper(
        str(tmp_path / "migration.log"),
        str(tmp_path / "history.log"),
        echo=echoed.append,
    )
    helper.reset()
    return helper
