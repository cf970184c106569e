"""
Command line entry point.

Usage:
    order-sheet-sync serve [--watch]   # webhook + operator API
    order-sheet-sync scan              # one reconciliation pass, JSON report
    order-sheet-sync watch             # poll the sheet until interrupted
    order-sheet-sync check             # connections, header, key extraction
"""

import argparse
import asyncio
import json
import logging
import sys

from .config import configure_logging, load_settings
from .errors import ConfigurationError, StructureValidationError
from .models import RowStatus
from .order_sequencer import extract_key
from .sheets_service import check_sheet_structure
from .watcher import start_in_background
from .webhook_server import build_services, create_app, run_options

logger = logging.getLogger(__name__)

SAMPLE_IDENTIFIERS = ["#TCO10842", "#TCO10867", "#TCO11834", "RMP", "ORDER123"]


def cmd_serve(services, settings, args):
    app = create_app(services)
    if args.watch:
        start_in_background(services.watcher)
    options = run_options(settings, host=args.host)
    if args.port:
        options["port"] = args.port
    app.run(**options)
    return 0


def cmd_scan(services, settings, args):
    try:
        report = asyncio.run(services.scanner.run_pass())
    except StructureValidationError as e:
        logger.error("%s (found %s)", e, e.headers)
        return 2
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return 1 if report.by_status(RowStatus.FAILED) else 0


def cmd_watch(services, settings, args):
    try:
        asyncio.run(services.watcher.watch())
    except KeyboardInterrupt:
        services.watcher.stop()
    return 0


def cmd_check(services, settings, args):
    result = {
        "shopify": services.orders.test_connection(),
        "googleSheets": services.sheets.test_connection(),
        "structure": check_sheet_structure(services.sheets.read_all_rows()),
        "orderKeys": {identifier: extract_key(identifier) for identifier in SAMPLE_IDENTIFIERS},
    }
    print(json.dumps(result, indent=2, ensure_ascii=False))
    ok = result["shopify"]["success"] and result["googleSheets"]["success"] and result["structure"]["isValid"]
    return 0 if ok else 1


COMMANDS = {
    "serve": cmd_serve,
    "scan": cmd_scan,
    "watch": cmd_watch,
    "check": cmd_check,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="order-sheet-sync", description="Shopify orders to Google Sheets")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the webhook and operator API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--watch", action="store_true", help="also poll the sheet in the background")

    sub.add_parser("scan", help="run one reconciliation pass")
    sub.add_parser("watch", help="poll the sheet until interrupted")
    sub.add_parser("check", help="test connections and sheet structure")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        services = build_services(settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    return COMMANDS[args.command](services, settings, args)


if __name__ == "__main__":
    sys.exit(main())
