#!/usr/bin/env python3
"""
MigrationRunController - Drives an export or import workflow across a date range

Purpose:
- Expand the requested date range into migration units
- Print the run summary before the operator confirms
- Process units strictly in ascending date order, one at a time
- Keep going after a unit fails and tally succeeded / failed / skipped
- Pause between units so the cluster is not hammered
"""

import time
from dataclasses import dataclass

from config import INTER_UNIT_PAUSE
from models import expand_date_range


@dataclass
class RunTally:
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    def add(self, outcome):
        bucket = outcome.tally
        setattr(self, bucket, getattr(self, bucket) + 1)

    @property
    def total(self):
        return self.succeeded + self.failed + self.skipped


class MigrationRunController:
    def __init__(self, workflow, logger, inter_unit_pause=INTER_UNIT_PAUSE, sleep=time.sleep):
        self.workflow = workflow
        self.logger = logger
        self.inter_unit_pause = inter_unit_pause
        self._sleep = sleep

    def plan(self, start_date, end_date):
        """Expand the range and print what is about to happen. Returns the list of dates."""
        dates = expand_date_range(start_date, end_date)

        self.logger.header("MIGRATION SUMMARY")
        self.logger.echo(f"Start Date: {dates[0].isoformat()}")
        self.logger.echo(f"End Date: {dates[-1].isoformat()}")
        for line in self.workflow.summary_lines():
            self.logger.echo(line)
        self.logger.echo("")
        self.logger.info(f"Total indices to process: {len(dates)}")
        return dates

    def execute(self, dates):
        """Run the workflow once per date. Returns (RunTally, finished units)."""
        self.logger.header(f"STARTING {self.workflow.title}")
        tally = RunTally()
        units = []

        for position, day in enumerate(dates, start=1):
            unit = self.workflow.unit_for(day)
            self.logger.echo("")
            self.logger.header(f"Processing {position}/{len(dates)}: {unit.index_name}")

            unit = self.workflow.process_unit(day)
            tally.add(unit.outcome)
            units.append(unit)

            if unit.outcome.tally == "failed":
                self.logger.warning(f"Failed to process {unit.index_name}, but continuing with next index...")

            if position < len(dates) and self.inter_unit_pause:
                self._sleep(self.inter_unit_pause)

        self.report(tally, len(dates))
        return tally, units

    def run(self, start_date, end_date):
        return self.execute(self.plan(start_date, end_date))

    def report(self, tally, total):
        self.logger.echo("")
        self.logger.header("MIGRATION COMPLETED")
        self.logger.echo(f"Total Indices: {total}")
        self.logger.success(f"Successful: {tally.succeeded}")
        self.logger.error(f"Failed: {tally.failed}")
        self.logger.warning(f"Skipped: {tally.skipped}")
        self.logger.echo("")
        self.logger.info(f"Log file: {self.logger.log_file}")
        self.logger.info(f"History file: {self.logger.history_file}")
        self.logger.log(f"Migration completed - Success: {tally.succeeded}, "
                        f"Failed: {tally.failed}, Skipped: {tally.skipped}")
