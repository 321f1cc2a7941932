#!/usr/bin/env python3
"""
Migration data model

Purpose:
- Expand an inclusive date range into the ordered list of migration dates
- Derive index and snapshot names from a date (shared by exporter and importer)
- Describe per-unit outcomes and the audit record written for each of them
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from config import INDEX_PREFIX, SNAPSHOT_PREFIX
from errors import InvalidDateRange

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value):
    """Parse a strict YYYY-MM-DD string into a date. Raises InvalidDateRange."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidDateRange(f"Invalid date format: {value!r}. Please use YYYY-MM-DD")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidDateRange(f"Invalid calendar date: {value!r}")


def expand_date_range(start, end):
    """
    Return every calendar date from start to end, both inclusive, ascending by one day.
    Usage: expand_date_range('2025-12-30', '2026-01-01') -> [2025-12-30, 2025-12-31, 2026-01-01]
    """
    start_date = parse_date(start)
    end_date = parse_date(end)
    if end_date < start_date:
        raise InvalidDateRange("End date must be after or equal to start date")

    days = (end_date - start_date).days
    return [start_date + timedelta(days=offset) for offset in range(days + 1)]


def index_name_for(day, prefix=INDEX_PREFIX):
    """logs-2025-01-31"""
    return f"{prefix}{parse_date(day).isoformat()}"


def snapshot_name_for(day, prefix=SNAPSHOT_PREFIX):
    """snapshot_logs_2025_01_31"""
    return f"{prefix}{parse_date(day).isoformat().replace('-', '_')}"


class Outcome(Enum):
    SUCCESS = "success"
    SUCCESS_WITH_MISMATCH = "success-with-mismatch"
    SKIPPED_ALREADY_EXISTS = "skipped-already-exists"
    SKIPPED_NOT_FOUND = "skipped-not-found"
    SKIPPED_BY_POLICY = "skipped-by-policy"
    FAILED = "failed"

    @property
    def history_label(self):
        if self is Outcome.SUCCESS:
            return "SUCCESS"
        if self is Outcome.SUCCESS_WITH_MISMATCH:
            return "WARNING"
        if self is Outcome.FAILED:
            return "FAILED"
        return "SKIPPED"

    @property
    def tally(self):
        """Counter bucket the run controller adds this outcome to."""
        if self in (Outcome.SUCCESS, Outcome.SUCCESS_WITH_MISMATCH):
            return "succeeded"
        if self is Outcome.FAILED:
            return "failed"
        return "skipped"


@dataclass
class MigrationUnit:
    """One date's worth of work: one index, one snapshot, one restore."""
    logical_date: date
    index_name: str
    snapshot_name: str
    expected_doc_count: int = None
    actual_doc_count: int = None
    outcome: Outcome = None
    reason_code: str = None

    @classmethod
    def for_date(cls, day, index_prefix=INDEX_PREFIX, snapshot_prefix=SNAPSHOT_PREFIX):
        day = parse_date(day)
        return cls(
            logical_date=day,
            index_name=index_name_for(day, index_prefix),
            snapshot_name=snapshot_name_for(day, snapshot_prefix),
        )

    def finish(self, outcome, reason_code, doc_count=None):
        """Record the terminal outcome and return the matching audit record."""
        self.outcome = outcome
        self.reason_code = reason_code
        return AuditRecord(
            outcome=outcome,
            unit_id=self.index_name,
            snapshot_id=self.snapshot_name,
            doc_count=doc_count,
            reason_code=reason_code,
        )


@dataclass(frozen=True)
class AuditRecord:
    outcome: Outcome
    unit_id: str
    snapshot_id: str
    doc_count: int
    reason_code: str

    def to_line(self):
        """SUCCESS|logs-2025-01-31|snapshot_logs_2025_01_31|720660|SNAPSHOT_CREATED"""
        count = self.doc_count if self.doc_count is not None else 0
        return "|".join([
            self.outcome.history_label, self.unit_id, self.snapshot_id,
            str(count), self.reason_code,
        ])

    @classmethod
    def from_line(cls, line):
        """Parse a history line (timestamp prefix optional). Raises ValueError on bad input."""
        body = line.strip()
        if body.startswith("["):
            body = body.split("] ", 1)[-1]
        parts = body.split("|")
        if len(parts) != 5:
            raise ValueError(f"Malformed history record: {line!r}")
        label, unit_id, snapshot_id, count, reason_code = parts
        outcome = _outcome_from_history(label, reason_code)
        return cls(outcome, unit_id, snapshot_id, int(count), reason_code)


SKIP_REASONS = {
    "SNAPSHOT_ALREADY_EXISTS": Outcome.SKIPPED_ALREADY_EXISTS,
    "INDEX_NOT_FOUND": Outcome.SKIPPED_NOT_FOUND,
}


def _outcome_from_history(label, reason_code):
    if label == "SUCCESS":
        return Outcome.SUCCESS
    if label == "WARNING":
        return Outcome.SUCCESS_WITH_MISMATCH
    if label == "FAILED":
        return Outcome.FAILED
    if label == "SKIPPED":
        return SKIP_REASONS.get(reason_code, Outcome.SKIPPED_BY_POLICY)
    raise ValueError(f"Unknown history label: {label!r}")
