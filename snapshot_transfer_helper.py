#!/usr/bin/env python3
"""
SnapshotTransferHelper - Snapshot artifact replication helper class

Purpose:
- Pull snapshot files from the source host into a local staging directory (rsync over ssh)
- Move staged files into the directory the target repository reads from, never overwriting
- Fix ownership and permission bits required by the OpenSearch process
- Remove the staging directory afterwards
"""

import shutil
import subprocess
from pathlib import Path

from config import TRANSFER_TIMEOUT
from errors import PreconditionError


class SnapshotTransferHelper:
    def __init__(self, source_host, source_user, snapshot_dir, staging_dir, owner, mode,
                 use_sudo=True, timeout=TRANSFER_TIMEOUT, logger=None, runner=subprocess.run):
        self.source_host = source_host
        self.source_user = source_user
        self.snapshot_dir = snapshot_dir
        self.staging_dir = staging_dir
        self.owner = owner
        self.mode = mode
        self.use_sudo = use_sudo
        self.timeout = timeout
        self.logger = logger
        self._run = runner

    @classmethod
    def from_config(cls, config, logger=None):
        return cls(
            source_host=config.source_host,
            source_user=config.source_ssh_user,
            snapshot_dir=config.snapshot_dir,
            staging_dir=config.staging_dir,
            owner=config.snapshot_owner,
            mode=config.snapshot_mode,
            use_sudo=config.use_sudo,
            timeout=config.transfer_timeout,
            logger=logger,
        )

    def _privileged(self, cmd):
        return (["sudo"] + cmd) if self.use_sudo else cmd

    def _execute(self, cmd):
        """Run a command. Returns (ok, stderr tail)."""
        try:
            result = self._run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            return False, f"timed out after {self.timeout} seconds"
        except OSError as e:
            return False, str(e)
        stderr = (result.stderr or "")[-500:]  # Only keep last 500 characters
        return result.returncode == 0, stderr

    @property
    def remote_source(self):
        return f"{self.source_user}@{self.source_host}:{self.snapshot_dir}/"

    def transfer_from_source(self):
        """Mirror the source host's snapshot directory into staging. Raises PreconditionError on failure."""
        self.logger.header("SNAPSHOT TRANSFER")
        self.logger.info(f"Running rsync from {self.remote_source}...")
        Path(self.staging_dir).mkdir(parents=True, exist_ok=True)

        ok, stderr = self._execute(["rsync", "-avz", "--progress", self.remote_source, f"{self.staging_dir}/"])
        if not ok:
            self.logger.error("Failed to transfer snapshots")
            self.logger.log(f"ERROR: Snapshot transfer failed: {stderr}")
            raise PreconditionError(f"Snapshot transfer from {self.source_host} failed: {stderr}")

        self.logger.success("Snapshots transferred successfully")
        self.logger.log("Snapshots transferred from source server")

    def move_to_final_location(self):
        """
        Copy staged files into the repository directory (skipping existing files),
        fix ownership/permissions and remove staging. Returns False if any step warned.
        """
        self.logger.info("Moving snapshots to final location...")
        clean = True

        ok, stderr = self._execute(self._privileged(["mkdir", "-p", self.snapshot_dir]))
        if ok:
            ok, stderr = self._execute(self._privileged(
                ["rsync", "-av", "--ignore-existing", f"{self.staging_dir}/", f"{self.snapshot_dir}/"]))
        if ok:
            self.logger.success(f"Snapshots moved to {self.snapshot_dir}")
        else:
            self.logger.warning(f"Some files may have been skipped (already exist), continuing... {stderr}")
            clean = False

        self.logger.info("Setting correct ownership and permissions...")
        for cmd in (["chown", "-R", self.owner, self.snapshot_dir], ["chmod", "-R", self.mode, self.snapshot_dir]):
            ok, stderr = self._execute(self._privileged(cmd))
            if not ok:
                self.logger.warning(f"{cmd[0]} failed on {self.snapshot_dir}: {stderr}")
                clean = False
        if clean:
            self.logger.success(f"Permissions set: owner {self.owner}, mode {self.mode}")

        shutil.rmtree(self.staging_dir, ignore_errors=True)
        self.logger.log("Snapshots moved and permissions set")
        return clean

    def run(self):
        """Transfer then relocate. Relocation problems are warnings, transfer problems are fatal."""
        self.transfer_from_source()
        if not self.move_to_final_location():
            self.logger.warning("Some files couldn't be moved (may already exist), continuing anyway...")
