#!/usr/bin/env python3
"""
OpenSearchMigrationHelper - OpenSearch cluster connection and snapshot API helper class

Purpose:
- Create and manage OpenSearch client connections (supports AWS IAM auth and username/password auth)
- Check cluster health and snapshot repository registration
- Query index existence, document counts and index health
- Create, inspect and restore single-index snapshots with a client-side timeout
- Poll for index readiness instead of sleeping a fixed amount of time
"""

import time
from urllib.parse import urlparse

import boto3
from opensearchpy import AWSV4SignerAuth, OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import ConnectionTimeout, NotFoundError, OpenSearchException

from config import OPERATION_TIMEOUT
from errors import OperationTimedOut, PreconditionError

READY_HEALTH = ("green", "yellow")


class OpenSearchMigrationHelper:
    def __init__(self, es_url, aws_region=None, auth=None, client=None, check_health=True,
                 operation_timeout=OPERATION_TIMEOUT, echo=print, sleep=time.sleep, clock=time.monotonic):
        self.es_url = es_url
        self.aws_region = aws_region
        self.auth = auth
        self.operation_timeout = operation_timeout
        self.echo = echo
        self._sleep = sleep
        self._clock = clock
        self.client = client if client is not None else self._create_client()
        if check_health:
            self.check_cluster_health()

    def _create_client(self):
        """Create OpenSearch client with auto-detection of AWS/standard connection."""
        parsed_url = urlparse(self.es_url)
        host = parsed_url.hostname
        port = parsed_url.port or (443 if parsed_url.scheme == 'https' else 9200)
        use_ssl = parsed_url.scheme == 'https'

        # Detect if it's AWS OpenSearch
        is_aws_opensearch = 'es.amazonaws.com' in host

        if is_aws_opensearch:
            try:
                credentials = boto3.Session().get_credentials()
                auth = AWSV4SignerAuth(credentials, self.aws_region or 'us-east-1', 'es')

                client = OpenSearch(
                    hosts=[{'host': host, 'port': port}],
                    http_auth=auth,
                    use_ssl=True,
                    verify_certs=True,
                    connection_class=RequestsHttpConnection,
                    pool_maxsize=20,
                    max_retries=0,
                    retry_on_timeout=False
                )
                self.echo(f"Connected to {host} using AWS IAM authentication")
                return client
            except Exception as e:
                self.echo(f"AWS IAM authentication failed: {e}")
                if self.auth:
                    self.echo("Trying username/password authentication...")
                else:
                    raise PreconditionError("AWS OpenSearch connection failed, please check IAM permissions or provide username/password")

        # Standard OpenSearch connection or AWS fallback connection
        client = OpenSearch(
            hosts=[{'host': host, 'port': port}],
            http_auth=self.auth,
            http_compress=True,
            use_ssl=use_ssl,
            verify_certs=use_ssl,
            ssl_assert_hostname=False,
            ssl_show_warn=False,
            max_retries=0,
            retry_on_timeout=False
        )

        auth_type = "username/password" if self.auth else "no authentication"
        self.echo(f"Connected to {host} using {auth_type}")
        return client

    def check_cluster_health(self):
        """Check cluster health. Returns status string. Raises PreconditionError if red or unreachable."""
        try:
            health = self.client.cluster.health(timeout=10)
        except OpenSearchException as e:
            raise PreconditionError(f"Unable to connect to cluster {self.es_url}: {e}")
        if health["status"] == "red":
            raise PreconditionError(f"Cluster status abnormal: {health['status']}")
        self.echo(f"Cluster {self.es_url} health status: {health['status']}")
        return health["status"]

    def repository_exists(self, snapshot_repo):
        """True if the snapshot repository is registered on this cluster."""
        try:
            self.client.snapshot.get_repository(repository=snapshot_repo)
            return True
        except NotFoundError:
            return False

    def list_snapshots(self, snapshot_repo):
        """Return [(snapshot_name, state), ...] for every snapshot in the repository."""
        try:
            response = self.client.snapshot.get(repository=snapshot_repo, snapshot="_all")
        except NotFoundError:
            return []
        return [(s["snapshot"], s.get("state")) for s in response.get("snapshots", [])]

    def index_exists(self, index):
        return bool(self.client.indices.exists(index=index))

    def get_doc_count(self, index):
        """Document count of an index, or None if it cannot be read."""
        try:
            return int(self.client.count(index=index)["count"])
        except (OpenSearchException, KeyError, TypeError, ValueError) as e:
            self.echo(f"Warning: Failed to count documents in {index}: {e}")
            return None

    def get_index_health(self, index):
        """Return 'green'/'yellow'/'red' for an index, or None if it is missing or unreadable."""
        try:
            rows = self.client.cat.indices(index=index, h="health", format="json")
        except NotFoundError:
            return None
        except OpenSearchException as e:
            self.echo(f"Warning: Failed to read health of {index}: {e}")
            return None
        if not rows:
            return None
        return (rows[0].get("health") or "").strip() or None

    def delete_index(self, index):
        self.client.indices.delete(index=index)

    def get_snapshot_state(self, snapshot_repo, snapshot):
        """State of a snapshot ('SUCCESS', 'PARTIAL', ...) or None if it does not exist."""
        try:
            response = self.client.snapshot.get(repository=snapshot_repo, snapshot=snapshot)
        except NotFoundError:
            return None
        snapshots = response.get("snapshots", [])
        if not snapshots:
            return None
        return snapshots[0].get("state")

    def create_snapshot(self, snapshot_repo, snapshot, index):
        """
        Snapshot exactly one index and block until the cluster finishes.
        Usage: helper.create_snapshot('backup_repo', 'snapshot_logs_2025_01_31', 'logs-2025-01-31')
        Returns the snapshot state string. Raises OperationTimedOut on client-side timeout.
        """
        body = {
            "indices": index,
            "ignore_unavailable": True,
            "include_global_state": False,
        }
        try:
            response = self.client.snapshot.create(
                repository=snapshot_repo,
                snapshot=snapshot,
                body=body,
                wait_for_completion=True,
                request_timeout=self.operation_timeout
            )
        except ConnectionTimeout:
            raise OperationTimedOut(f"Snapshot {snapshot}", self.operation_timeout)
        return response.get("snapshot", {}).get("state")

    def restore_snapshot(self, snapshot_repo, snapshot, index):
        """
        Restore exactly one index from a snapshot and block until the cluster finishes.
        Returns the shard summary dict ({'total', 'failed', 'successful'}).
        Raises OperationTimedOut on client-side timeout.
        """
        body = {
            "indices": index,
            "ignore_unavailable": True,
            "include_global_state": False,
        }
        try:
            response = self.client.snapshot.restore(
                repository=snapshot_repo,
                snapshot=snapshot,
                body=body,
                wait_for_completion=True,
                request_timeout=self.operation_timeout
            )
        except ConnectionTimeout:
            raise OperationTimedOut(f"Restore {snapshot}", self.operation_timeout)
        return response.get("snapshot", {}).get("shards", {})

    def _poll(self, predicate, timeout, interval):
        deadline = self._clock() + timeout
        while True:
            if predicate():
                return True
            if self._clock() >= deadline:
                return False
            self._sleep(interval)

    def wait_for_index_absent(self, index, timeout, interval):
        """Poll until the index no longer exists. Returns False on timeout."""
        return self._poll(lambda: not self.index_exists(index), timeout, interval)

    def wait_for_index_ready(self, index, timeout, interval):
        """Poll until the index is green/yellow and its document count is stable across two reads."""
        last_count = []

        def ready():
            if self.get_index_health(index) not in READY_HEALTH:
                return False
            count = self.get_doc_count(index)
            stable = count is not None and last_count == [count]
            last_count[:] = [count]
            return stable

        return self._poll(ready, timeout, interval)
