"""
Command-line interface for LedgerScope.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from decimal import Decimal

from ledgerscope import __version__
from ledgerscope.core.buckets import Granularity, TimeBucketAggregator
from ledgerscope.core.collapse import CollapseController
from ledgerscope.core.errors import LedgerScopeError
from ledgerscope.core.hierarchy import Hierarchy, HierarchyBuilder, Sizing
from ledgerscope.core.settings import Settings, load_settings
from ledgerscope.layout import (
    SunburstView,
    TidyTreeLayout,
    pack_layout,
    partition_layout,
    treemap_layout,
)
from ledgerscope.sources import convert, dump_book, is_book_document, load_book, load_document
from ledgerscope.summary import ledger_summary, search_ledgers

logger = logging.getLogger("ledgerscope.cli")

# Sizing each layout kind uses by default.
KIND_SIZING = {
    "pack": Sizing.LOG,
    "treemap": Sizing.NORMALIZED,
    "sunburst": Sizing.ACTIVITY,
    "tree": Sizing.LOG,
}


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that writes Decimals as numbers."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        return super().default(obj)


def _dump(data, path: str | None = None) -> None:
    """Write JSON to a file, or to stdout when no path is given."""
    if path:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, cls=DecimalEncoder, ensure_ascii=False)
            f.write("\n")
    else:
        json.dump(data, sys.stdout, indent=2, cls=DecimalEncoder, ensure_ascii=False)
        sys.stdout.write("\n")


def _settings(args) -> Settings:
    return load_settings(getattr(args, "settings", None))


def cmd_convert(args) -> int:
    """Convert a ledger export into the ledger JSON document."""
    try:
        settings = _settings(args)
        result = convert(args.input, settings.parser, sheet=args.sheet)
        dump_book(result, args.output)

        if result.report:
            print(str(result.report), file=sys.stderr)
        print(
            f"Wrote {len(result.ledgers)} ledgers "
            f"({sum(len(lg.transactions) for lg in result.ledgers)} transactions) "
            f"to {args.output}"
        )
        return result.report.get_exit_code()

    except (LedgerScopeError, OSError) as e:
        print(f"Error converting export: {e}", file=sys.stderr)
        return 1


def cmd_summary(args) -> int:
    """Print the per-ledger summary table."""
    try:
        book = load_book(args.input)
        summary = search_ledgers(ledger_summary(book.ledgers), args.search)

        if args.json:
            _dump(summary.to_dict("records"))
        elif summary.empty:
            print("No matching ledgers")
        else:
            print(summary.to_string(index=False))
        return 0 if book.ledgers else 2

    except (LedgerScopeError, OSError) as e:
        print(f"Error summarizing ledgers: {e}", file=sys.stderr)
        return 1


def cmd_buckets(args) -> int:
    """Print credit per time bucket and ledger."""
    try:
        book = load_book(args.input)
        series = TimeBucketAggregator.from_book(book).aggregate(args.granularity)

        if series.report:
            print(str(series.report), file=sys.stderr)
        if args.json:
            _dump(
                {
                    "granularity": series.granularity.value,
                    "ledgers": list(series.ledgers),
                    "rows": [
                        {"bucket": row.key, "start": row.start.isoformat(), **row.values}
                        for row in series
                    ],
                }
            )
        else:
            frame = series.to_frame()
            print(frame.to_string() if len(frame) else "No dated transactions")
        return 0 if book.ledgers else 2

    except (LedgerScopeError, OSError) as e:
        print(f"Error aggregating buckets: {e}", file=sys.stderr)
        return 1


def _build_hierarchy(args, settings: Settings) -> Hierarchy:
    data = load_document(args.input)
    builder = HierarchyBuilder(settings.hierarchy)
    if is_book_document(data):
        logger.debug("%s is a ledger document", args.input)
        sizing = Sizing(args.sizing) if args.sizing else KIND_SIZING[args.kind]
        book = load_book(args.input)
        return builder.from_book(book, sizing=sizing, fan_out=args.fan_out)

    logger.debug("%s is a nested hierarchy document", args.input)
    sizing = Sizing(args.sizing) if args.sizing else Sizing.ACTIVITY
    fan_out = True if args.fan_out is None else args.fan_out
    return builder.from_nested(data, sizing=sizing, fan_out=fan_out)


def cmd_layout(args) -> int:
    """Compute a layout and export its records as JSON."""
    try:
        settings = _settings(args)
        hierarchy = _build_hierarchy(args, settings)
        controller = CollapseController(hierarchy)
        if args.collapse_depth is not None:
            controller.collapse_below_depth(args.collapse_depth)

        root = hierarchy.root
        output: dict = {"kind": args.kind, "sizing": hierarchy.sizing.value}
        if args.kind == "pack":
            result = pack_layout(root, settings.layout)
        elif args.kind == "treemap":
            result = treemap_layout(root, settings.layout)
        elif args.kind == "sunburst":
            result = partition_layout(root)
            view = SunburstView.from_settings(settings.layout)
            output["arcs"] = {rec.node_id: asdict(view.arc(rec)) for rec in result}
        else:
            result = TidyTreeLayout(settings.layout).layout(
                root, collapsed_ids=controller.collapsed_ids()
            )
            output["links"] = [asdict(link) for link in result.links]

        output["records"] = [asdict(rec) for rec in result]
        output["collapsed"] = controller.collapsed_ids()
        if hierarchy.report:
            output["issues"] = hierarchy.report.to_dict()["issues"]
        _dump(output, args.output)

        if args.output:
            print(f"Wrote {len(result)} {args.kind} records to {args.output}")
        return 0 if len(hierarchy) > 1 else 2

    except (LedgerScopeError, OSError) as e:
        print(f"Error computing layout: {e}", file=sys.stderr)
        return 1


def cmd_example(_) -> int:
    """Print a small ledger document."""
    example = {
        "name": "Creditors",
        "children": [
            {
                "ledger_name": "Acme Traders",
                "opening_balance": 1000,
                "closing_balance": 1200,
                "value": 1200,
                "transactions": [
                    {
                        "date": "05-Jan-2023",
                        "party_name": "Purchase Account",
                        "vno": "P-101",
                        "debit_amt": 0,
                        "credit_amt": 500,
                        "cheque_no": "",
                        "narration": "Invoice 17 steel rods",
                        "type": "Purchase",
                    },
                    {
                        "date": "20-Feb-2023",
                        "party_name": "Bank Account",
                        "vno": "PY-12",
                        "debit_amt": 300,
                        "credit_amt": 0,
                        "cheque_no": "004512",
                        "narration": "Part payment",
                        "type": "Payment",
                    },
                ],
            },
            {
                "ledger_name": "Bright Paper Co",
                "opening_balance": 0,
                "closing_balance": 250.5,
                "value": 250.5,
                "transactions": [
                    {
                        "date": "11-Apr-2023",
                        "party_name": "Purchase Account",
                        "vno": "P-140",
                        "debit_amt": 0,
                        "credit_amt": 250.5,
                        "cheque_no": "",
                        "narration": "Printer paper",
                        "type": "Purchase",
                    }
                ],
            },
        ],
    }
    _dump(example)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledgerscope",
        description="LedgerScope - ledger hierarchies and layouts for accounting exports",
    )

    # Version argument
    parser.add_argument("--version", action="version", version=f"LedgerScope {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True, help="Available commands")

    # Example command
    example_parser = subparsers.add_parser("example", help="Print a small ledger JSON document")
    example_parser.set_defaults(func=cmd_example)

    # Convert command
    convert_parser = subparsers.add_parser(
        "convert", help="Convert an .xlsx/.csv ledger export into ledger JSON"
    )
    convert_parser.add_argument("-i", "--input", required=True, help="Export file")
    convert_parser.add_argument("-o", "--output", required=True, help="Output ledger JSON file")
    convert_parser.add_argument("--settings", help="Settings file (YAML or JSON)")
    convert_parser.add_argument(
        "--sheet", default=0, help="Worksheet index or name (default: first sheet)"
    )
    convert_parser.set_defaults(func=cmd_convert)

    # Summary command
    summary_parser = subparsers.add_parser("summary", help="Per-ledger summary table")
    summary_parser.add_argument("-i", "--input", required=True, help="Ledger JSON file")
    summary_parser.add_argument("--search", help="Case-insensitive ledger name filter")
    summary_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    summary_parser.set_defaults(func=cmd_summary)

    # Buckets command
    buckets_parser = subparsers.add_parser("buckets", help="Credit per time bucket and ledger")
    buckets_parser.add_argument("-i", "--input", required=True, help="Ledger JSON file")
    buckets_parser.add_argument(
        "--granularity",
        choices=[g.value for g in Granularity],
        default=Granularity.MONTHLY.value,
        help="Bucket size (default: Monthly)",
    )
    buckets_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    buckets_parser.set_defaults(func=cmd_buckets)

    # Layout command
    layout_parser = subparsers.add_parser("layout", help="Compute layout records as JSON")
    layout_parser.add_argument(
        "-i", "--input", required=True, help="Ledger JSON or nested {name, children} JSON"
    )
    layout_parser.add_argument(
        "--kind", choices=list(KIND_SIZING), default="pack", help="Layout engine (default: pack)"
    )
    layout_parser.add_argument("-o", "--output", help="Output JSON file (default: stdout)")
    layout_parser.add_argument(
        "--sizing",
        choices=[s.value for s in Sizing],
        help="Override the sizing metric of the layout kind",
    )
    layout_parser.add_argument("--fan-out", type=int, help="Maximum children per node")
    layout_parser.add_argument(
        "--collapse-depth", type=int, help="Collapse every node at or below this depth"
    )
    layout_parser.add_argument("--settings", help="Settings file (YAML or JSON)")
    layout_parser.set_defaults(func=cmd_layout)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.cmd == "convert" and isinstance(args.sheet, str) and args.sheet.isdigit():
        args.sheet = int(args.sheet)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
