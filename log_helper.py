#!/usr/bin/env python3
"""
MigrationLogHelper - Operator output, operational log and migration history

Purpose:
- Print progress to the console with a status prefix
- Append timestamped lines to the operational log
- Append pipe-delimited audit records to the history log
- Reset both files at the start of every run
"""

from datetime import datetime
from pathlib import Path

RULE = "=" * 76


class MigrationLogHelper:
    def __init__(self, log_file, history_file, echo=print):
        self.log_file = log_file
        self.history_file = history_file
        self.echo = echo

    @staticmethod
    def _timestamp():
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def reset(self):
        """Truncate both log files and write the run banner."""
        started = datetime.now().strftime("%a %b %d %H:%M:%S %Y")
        self._write(self.log_file, f"=== Migration Started: {started} ===", mode="w")
        self._write(self.history_file, f"=== Migration History: {started} ===", mode="w")

    def _write(self, path, line, mode="a"):
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, mode) as f:
                f.write(line + "\n")
        except OSError as e:
            self.echo(f"Failed to write to log file {path}: {e}")

    def log(self, msg):
        """Write to the operational log only."""
        self._write(self.log_file, f"[{self._timestamp()}] {msg}")

    def history(self, record):
        """Append one audit record to the history log."""
        self._write(self.history_file, f"[{self._timestamp()}] {record.to_line()}")

    def header(self, title):
        self.echo(RULE)
        self.echo(title)
        self.echo(RULE)

    def info(self, msg):
        self.echo(f"INFO    {msg}")

    def success(self, msg):
        self.echo(f"OK      {msg}")

    def warning(self, msg):
        self.echo(f"WARNING {msg}")

    def error(self, msg):
        self.echo(f"ERROR   {msg}")

    def read_history(self):
        """Return the raw audit lines written so far (banner excluded)."""
        try:
            with open(self.history_file, "r") as f:
                return [line.rstrip("\n") for line in f if not line.startswith("===")]
        except FileNotFoundError:
            return []
