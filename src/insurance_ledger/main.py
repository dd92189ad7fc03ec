"""Command-line entry point."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from insurance_ledger.core.config import load_config
from insurance_ledger.core.container import build_container
from insurance_ledger.core.logging_setup import setup_logging
from insurance_ledger.gateway.dispatcher import Dispatcher, to_json_value
from insurance_ledger.gateway.operations import Role


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="insurance-ledger",
        description="Contract, claim and repair order ledger.",
    )
    parser.add_argument("--config", default=None, help="Path to ledger.yaml.")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create tables and indexes.")

    invoke = commands.add_parser("invoke", help="Run one operation as a role.")
    invoke.add_argument("role", choices=[role.value for role in Role])
    invoke.add_argument("operation")
    invoke.add_argument("parameters", nargs="?", default="{}", help="JSON object of parameters.")

    check = commands.add_parser("check-indices", help="Compare index arrays with the derived view.")
    check.add_argument("--rebuild", action="store_true", help="Rewrite drifted index arrays.")

    commands.add_parser("cleanup-logs", help="Delete audit logs past the retention window.")

    audit = commands.add_parser("audit-ls", help="Print audit log rows, newest first.")
    audit.add_argument("--action", default=None)
    audit.add_argument("--entity", default=None)
    audit.add_argument("--entity-id", default=None)
    audit.add_argument("--limit", type=int, default=200)
    audit.add_argument("--offset", type=int, default=0)
    return parser


def run(argv: list[str] | None = None) -> int:
    """Parse arguments, run one command and return the exit code."""
    args = _build_parser().parse_args(argv)
    config = load_config(Path(args.config) if args.config else None)
    setup_logging(config.logging)
    container = build_container(config)

    if args.command == "init-db":
        logger.info("Schema ready at {}", config.database.path)
        return 0

    if args.command == "invoke":
        try:
            parameters = json.loads(args.parameters)
        except json.JSONDecodeError as error:
            print(json.dumps({"ok": False, "error": {"kind": "InvalidInput", "message": error.msg}}))
            return 2
        response = Dispatcher(container).dispatch(args.role, args.operation, parameters)
        print(json.dumps(response, ensure_ascii=False, indent=2))
        return 0 if response["ok"] else 1

    if args.command == "check-indices":
        if args.rebuild:
            fixed = container.index_service.rebuild()
            print(json.dumps({"rebuilt": fixed}))
            return 0
        discrepancies = container.index_service.check()
        print(json.dumps(to_json_value(discrepancies), indent=2))
        return 1 if discrepancies else 0

    if args.command == "audit-ls":
        logs = container.audit_repo.list_logs(
            limit=args.limit,
            offset=args.offset,
            action=args.action,
            entity=args.entity,
            entity_id=args.entity_id,
        )
        for log in logs:
            log["detail"] = json.loads(log["detail"])
        print(json.dumps(logs, ensure_ascii=False, indent=2))
        return 0

    removed = container.audit_repo.cleanup_old_logs(config.logging.retention_days)
    logger.info("Cleaned old logs: {}", removed)
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
