#!/usr/bin/env python3
"""
Centralized configuration for the OpenSearch snapshot migration tool.
Defaults live here as module constants; MigrationConfig carries them
(optionally overridden from the environment or CLI) into every helper.
"""

import os
from dataclasses import dataclass, field, fields, replace
from urllib.parse import urlparse

# OpenSearch Endpoints
SOURCE_ES = "http://192.168.1.12:9200"
TARGET_ES = "http://192.168.1.70:9200"

# Snapshot Repository
SNAPSHOT_REPO = "backup_repo"
SNAPSHOT_DIR = "/opt/opensearch-snapshots"
STAGING_DIR = "/tmp/opensearch-snapshots-temp"
SOURCE_SSH_USER = "soc"
SNAPSHOT_OWNER = "1000:1000"
SNAPSHOT_MODE = "755"

# Naming
INDEX_PREFIX = "logs-"
SNAPSHOT_PREFIX = "snapshot_logs_"

# File Paths
EXPORT_LOG_FILE = "/tmp/opensearch_migration_sender.log"
IMPORT_LOG_FILE = "/tmp/opensearch_migration_receiver.log"
HISTORY_FILE = "/tmp/opensearch_migration_history.log"

# Timing (seconds)
OPERATION_TIMEOUT = 3600
TRANSFER_TIMEOUT = None  # rsync runs until it finishes
READINESS_TIMEOUT = 60
POLL_INTERVAL = 1
INTER_UNIT_PAUSE = 2

# AWS Settings
AWS_DEFAULT_REGION = "ap-southeast-1"

ENV_PREFIX = "OSM_"


@dataclass
class MigrationConfig:
    source_url: str = SOURCE_ES
    target_url: str = TARGET_ES
    snapshot_repo: str = SNAPSHOT_REPO
    snapshot_dir: str = SNAPSHOT_DIR
    staging_dir: str = STAGING_DIR
    source_ssh_user: str = SOURCE_SSH_USER
    snapshot_owner: str = SNAPSHOT_OWNER
    snapshot_mode: str = SNAPSHOT_MODE
    use_sudo: bool = True
    index_prefix: str = INDEX_PREFIX
    snapshot_prefix: str = SNAPSHOT_PREFIX
    export_log_file: str = EXPORT_LOG_FILE
    import_log_file: str = IMPORT_LOG_FILE
    history_file: str = HISTORY_FILE
    operation_timeout: float = OPERATION_TIMEOUT
    transfer_timeout: float = TRANSFER_TIMEOUT
    readiness_timeout: float = READINESS_TIMEOUT
    poll_interval: float = POLL_INTERVAL
    inter_unit_pause: float = INTER_UNIT_PAUSE
    aws_region: str = AWS_DEFAULT_REGION
    http_auth: tuple = field(default=None)

    @classmethod
    def from_env(cls, environ=None):
        """Build config from defaults, overlaid with OSM_<FIELD> environment variables.

        AWS_DEFAULT_REGION is honoured as well; OSM_HTTP_AUTH takes "user:password".
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        if "AWS_DEFAULT_REGION" in environ:
            overrides["aws_region"] = environ["AWS_DEFAULT_REGION"]

        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _coerce(f.name, raw)

        return cls(**overrides)

    def with_overrides(self, **overrides):
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def source_host(self):
        return urlparse(self.source_url).hostname


def _coerce(name, raw):
    default = getattr(MigrationConfig, name, None)
    if name == "http_auth":
        user, _, password = raw.partition(":")
        return (user, password)
    if name == "transfer_timeout" and raw.strip().lower() in ("", "none", "0"):
        return None
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "y")
    if isinstance(default, (int, float)) or name == "transfer_timeout":
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"Invalid numeric value for {ENV_PREFIX}{name.upper()}: {raw!r}")
    return raw
