#!/usr/bin/env python3
"""
OpenSearch Snapshot Migration Tool - Main Entry

Purpose:
- export: snapshot daily indices on the source cluster, one snapshot per date
- import: optionally pull snapshot files from the source host, then restore
  and verify each date's index on the target cluster
- Prompt for anything not given on the command line
"""

import argparse
import sys

from config import MigrationConfig
from conflict_resolver import ConflictChoice, FixedPolicyResolver, InteractivePromptResolver
from errors import InvalidDateRange, MigrationError, PreconditionError
from export_workflow_helper import ExportWorkflowHelper
from import_workflow_helper import ImportWorkflowHelper
from log_helper import MigrationLogHelper
from migration_workflow_helper import MigrationRunController
from models import parse_date
from opensearch_helper import OpenSearchMigrationHelper
from snapshot_transfer_helper import SnapshotTransferHelper


def build_parser():
    parser = argparse.ArgumentParser(description="Migrate daily OpenSearch indices via snapshot/restore")
    sub = parser.add_subparsers(dest="command", required=True)

    def common(p):
        p.add_argument("--start", help="First date to migrate (YYYY-MM-DD)")
        p.add_argument("--end", help="Last date to migrate, inclusive (YYYY-MM-DD)")
        p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
        p.add_argument("--repository", dest="snapshot_repo", help="Snapshot repository name")
        p.add_argument("--source-url", help="Source cluster URL")
        p.add_argument("--target-url", help="Target cluster URL")
        p.add_argument("--history-file", help="Migration history log path")
        p.add_argument("--timeout", dest="operation_timeout", type=float,
                       help="Client-side timeout for snapshot/restore calls (seconds)")
        p.add_argument("--pause", dest="inter_unit_pause", type=float, help="Pause between dates (seconds)")

    export = sub.add_parser("export", help="Create snapshots on the source cluster")
    common(export)
    export.add_argument("--log-file", dest="export_log_file", help="Operational log path")

    restore = sub.add_parser("import", help="Restore snapshots on the target cluster")
    common(restore)
    restore.add_argument("--log-file", dest="import_log_file", help="Operational log path")
    transfer = restore.add_mutually_exclusive_group()
    transfer.add_argument("--transfer", dest="transfer", action="store_true", default=None,
                          help="Pull snapshot files from the source host first")
    transfer.add_argument("--no-transfer", dest="transfer", action="store_false",
                          help="Snapshot files were already transferred")
    conflict = restore.add_mutually_exclusive_group()
    conflict.add_argument("--auto-skip", action="store_true", help="Skip dates whose index already exists")
    conflict.add_argument("--overwrite", action="store_true", help="Delete and re-restore existing indices")
    return parser


def config_from_args(args, environ=None):
    overrides = {
        name: getattr(args, name, None)
        for name in ("snapshot_repo", "source_url", "target_url", "history_file", "operation_timeout",
                     "inter_unit_pause", "export_log_file", "import_log_file")
    }
    return MigrationConfig.from_env(environ).with_overrides(**overrides)


def ask_date(label, given, prompt=input, echo=print, not_before=None):
    """Validate a date given on the command line (raises), or keep asking until one is valid."""
    while True:
        value = given if given is not None else prompt(f"Enter {label} date (YYYY-MM-DD): ").strip()
        try:
            day = parse_date(value)
            if not_before is not None and day < not_before:
                raise InvalidDateRange("End date must be after or equal to start date")
            return day
        except InvalidDateRange as e:
            if given is not None:
                raise
            echo(f"ERROR   {e}")


def prompt_dates(args, prompt=input, echo=print):
    start_date = ask_date("START", args.start, prompt, echo)
    end_date = ask_date("END", args.end, prompt, echo, not_before=start_date)
    return start_date, end_date


def confirm(question, args, prompt=input):
    if args.yes:
        return True
    return prompt(f"{question} (yes/no): ").strip().lower() == "yes"


def choose_transfer(args, logger, prompt=input):
    if args.transfer is not None:
        return args.transfer
    logger.header("SNAPSHOT TRANSFER OPTIONS")
    logger.echo("1. Transfer snapshots from source server now")
    logger.echo("2. Skip transfer (snapshots already transferred manually)")
    logger.echo("")
    return prompt("Select option (1/2): ").strip() == "1"


def build_resolver(args, prompt=input):
    if args.overwrite:
        return FixedPolicyResolver(ConflictChoice.DELETE)
    return InteractivePromptResolver(prompt)


def connect(url, config, logger):
    """Connect and health-check a cluster, logging the outcome. Raises PreconditionError."""
    logger.info("Checking OpenSearch connection...")
    try:
        helper = OpenSearchMigrationHelper(url, aws_region=config.aws_region, auth=config.http_auth,
                                           operation_timeout=config.operation_timeout)
    except PreconditionError:
        logger.error(f"Cannot connect to OpenSearch at {url}")
        logger.log("ERROR: OpenSearch connection failed")
        raise
    logger.success(f"OpenSearch is reachable at {url}")
    logger.log("OpenSearch connection successful")
    return helper


def run_export(args, config, prompt=input):
    logger = MigrationLogHelper(config.export_log_file, config.history_file)
    logger.header("OpenSearch Migration - EXPORT")
    logger.echo("Purpose: Create snapshots of daily indices")
    logger.echo("")
    logger.reset()

    source_helper = connect(config.source_url, config, logger)

    workflow = ExportWorkflowHelper(source_helper, logger, snapshot_repo=config.snapshot_repo,
                                    index_prefix=config.index_prefix, snapshot_prefix=config.snapshot_prefix,
                                    snapshot_dir=config.snapshot_dir)
    workflow.preflight()

    logger.header("DATE RANGE SELECTION")
    start_date, end_date = prompt_dates(args, prompt, logger.echo)

    controller = MigrationRunController(workflow, logger, inter_unit_pause=config.inter_unit_pause)
    dates = controller.plan(start_date, end_date)
    if not confirm("Do you want to proceed?", args, prompt):
        logger.warning("Migration cancelled by user")
        return 0

    controller.execute(dates)
    logger.success("EXPORT COMPLETED")
    logger.info("Next step: Transfer snapshots to the target server using the import command")
    logger.info(f"Or manually: rsync -avz --progress {config.snapshot_dir}/ "
                f"<user>@<target host>:{config.staging_dir}/")
    return 0


def run_import(args, config, prompt=input):
    logger = MigrationLogHelper(config.import_log_file, config.history_file)
    logger.header("OpenSearch Migration - IMPORT")
    logger.echo("Purpose: Restore snapshots to the target OpenSearch cluster")
    logger.echo("")
    logger.reset()

    target_helper = connect(config.target_url, config, logger)
    # Only used for document counts; an unreachable source makes counts "unknown".
    try:
        source_helper = OpenSearchMigrationHelper(config.source_url, aws_region=config.aws_region,
                                                  auth=config.http_auth, check_health=False)
    except PreconditionError as e:
        logger.warning(f"Source cluster unavailable, document counts will be unknown: {e}")
        source_helper = None

    if choose_transfer(args, logger, prompt):
        SnapshotTransferHelper.from_config(config, logger=logger).run()

    workflow = ImportWorkflowHelper(
        target_helper, logger,
        source_helper=source_helper,
        resolver=build_resolver(args, prompt),
        snapshot_repo=config.snapshot_repo,
        index_prefix=config.index_prefix,
        snapshot_prefix=config.snapshot_prefix,
        readiness_timeout=config.readiness_timeout,
        poll_interval=config.poll_interval,
        auto_skip=args.auto_skip,
    )
    workflow.preflight()

    logger.header("DATE RANGE SELECTION")
    start_date, end_date = prompt_dates(args, prompt, logger.echo)

    controller = MigrationRunController(workflow, logger, inter_unit_pause=config.inter_unit_pause)
    dates = controller.plan(start_date, end_date)
    if not confirm("Do you want to proceed with restore?", args, prompt):
        logger.warning("Migration cancelled by user")
        return 0

    controller.execute(dates)
    logger.success("IMPORT COMPLETED")
    logger.info(f"Check {config.history_file} for complete migration history")
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
        if args.command == "export":
            return run_export(args, config)
        return run_import(args, config)
    except KeyboardInterrupt:
        print("\nMigration interrupted")
        return 1
    except MigrationError as e:
        print(f"ERROR   Cannot proceed: {e}")
        return 1
    except Exception as e:
        print(f"Migration initialization failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
