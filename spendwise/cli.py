"""
Command-line entry point.

    spendwise init-db [--drop]
    spendwise seed-catalog
    spendwise recompute [--user USER_ID ...] [--as-of YYYY-MM-DD]
    spendwise consent USER_ID (--grant | --revoke)
    spendwise evaluate [--output report.json]
    spendwise export-traces OUTPUT_DIR
"""

import argparse
import json
import logging
import sys

from spendwise.config import configure_logging, get_settings
from spendwise.eval.metrics import generate_evaluation_report
from spendwise.eval.report import export_decision_traces, export_report_json, format_summary
from spendwise.exceptions import SpendWiseError
from spendwise.features.window_utils import to_date
from spendwise.guardrails.consent import update_consent
from spendwise.ingest.database import get_engine, get_session_factory, init_database
from spendwise.ingest.store import SqlAlchemyStore
from spendwise.recommend.catalog import seed_catalog
from spendwise.recommend.engine import BatchRunner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spendwise", description="SpendWise recommendation pipeline")
    parser.add_argument("--database-url", help="Override the configured database URL")
    parser.add_argument("--log-level", help="Logging level (default from settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Create database tables")
    init.add_argument("--drop", action="store_true", help="Drop existing tables first")

    sub.add_parser("seed-catalog", help="Load the default content and offer catalog")

    recompute = sub.add_parser("recompute", help="Recompute signals, personas and recommendations")
    recompute.add_argument("--user", action="append", dest="users", help="User ID (repeatable; default all)")
    recompute.add_argument("--as-of", help="Reference date YYYY-MM-DD (default today)")

    consent = sub.add_parser("consent", help="Grant or revoke a user's consent")
    consent.add_argument("user_id")
    group = consent.add_mutually_exclusive_group(required=True)
    group.add_argument("--grant", action="store_true")
    group.add_argument("--revoke", action="store_true")

    evaluate = sub.add_parser("evaluate", help="Compute evaluation metrics")
    evaluate.add_argument("--output", help="Write the JSON report to this path")

    export = sub.add_parser("export-traces", help="Export per-user decision traces")
    export.add_argument("output_dir")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or get_settings().LOG_LEVEL)

    if args.command == "init-db":
        init_database(args.database_url, drop_existing=args.drop)
        return 0

    engine = get_engine(args.database_url)
    session_factory = get_session_factory(engine)

    def store_factory():
        return SqlAlchemyStore(session_factory())

    if args.command == "recompute":
        reference_date = to_date(args.as_of) if args.as_of else None
        result = BatchRunner(store_factory).run(args.users, reference_date)
        print(json.dumps(result.to_dict(), indent=2))
        return 1 if result.failed else 0

    store = store_factory()
    try:
        if args.command == "seed-catalog":
            seed_catalog(store.session)
        elif args.command == "consent":
            hidden = update_consent(store, args.user_id, bool(args.grant), source="cli")
            print(f"Consent {'granted' if args.grant else 'revoked'} for {args.user_id}; {hidden} recommendations hidden")
        elif args.command == "evaluate":
            report = generate_evaluation_report(store)
            if args.output:
                export_report_json(report, args.output)
            print(format_summary(report))
        elif args.command == "export-traces":
            count = export_decision_traces(store, args.output_dir)
            print(f"Exported {count} trace files")
    except SpendWiseError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
