"""
tests/test_config.py
"""

from __future__ import annotations

import pytest

import config
from config import MigrationConfig


class TestMigrationConfig:
    def test_defaults(self) -> None:
        cfg = MigrationConfig.from_env({})
        assert cfg.snapshot_repo == config.SNAPSHOT_REPO
        assert cfg.source_url == config.SOURCE_ES
        assert cfg.http_auth is None
        assert cfg.use_sudo is True

    def test_env_overrides(self) -> None:
        cfg = MigrationConfig.from_env({
            "OSM_SNAPSHOT_REPO": "nightly",
            "OSM_OPERATION_TIMEOUT": "90",
            "OSM_USE_SUDO": "no",
            "OSM_HTTP_AUTH": "admin:s3:cret",
            "AWS_DEFAULT_REGION": "eu-west-1",
        })
        assert cfg.snapshot_repo == "nightly"
        assert cfg.operation_timeout == 90.0
        assert cfg.use_sudo is False
        assert cfg.http_auth == ("admin", "s3:cret")
        assert cfg.aws_region == "eu-west-1"

    def test_bad_number(self) -> None:
        with pytest.raises(ValueError):
            MigrationConfig.from_env({"OSM_POLL_INTERVAL": "soon"})

    def test_with_overrides_ignores_none(self) -> None:
        cfg = MigrationConfig().with_overrides(snapshot_repo=None, target_url="http://new:9200")
        assert cfg.snapshot_repo == config.SNAPSHOT_REPO
        assert cfg.target_url == "http://new:9200"

    def test_source_host(self) -> None:
        assert MigrationConfig(source_url="http://10.0.0.5:9200").source_host == "10.0.0.5"

    def test_transfer_timeout_unbounded_by_default(self) -> None:
        cfg = MigrationConfig.from_env({"OSM_OPERATION_TIMEOUT": "90"})
        assert cfg.transfer_timeout is None
        assert MigrationConfig.from_env({"OSM_TRANSFER_TIMEOUT": "none"}).transfer_timeout is None
        assert MigrationConfig.from_env({"OSM_TRANSFER_TIMEOUT": "7200"}).transfer_timeout == 7200.0
