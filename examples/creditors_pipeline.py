"""
Walk through the full LedgerScope pipeline on the bundled creditors export.

Run from the repository root:

    python examples/creditors_pipeline.py
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from ledgerscope import (
    CollapseController,
    HierarchyBuilder,
    LayoutSettings,
    Sizing,
    SunburstView,
    TidyTreeLayout,
    TimeBucketAggregator,
    convert,
    ledger_summary,
    pack_layout,
    partition_layout,
    treemap_layout,
)

DATA = Path(__file__).parent / "data" / "creditors_suppliers.csv"


def pretty(data: dict) -> str:
    """Return JSON formatted output."""
    return json.dumps(data, indent=2, default=str)


def main() -> None:
    result = convert(DATA)
    print(f"Parsed {len(result.ledgers)} ledgers")
    print(result.report)

    book = result.book
    print("\nLedger summary:")
    print(ledger_summary(book.ledgers).to_string(index=False))

    print("\nQuarterly credit per ledger:")
    quarterly = TimeBucketAggregator.from_book(book).aggregate("Quarterly")
    print(quarterly.to_frame().to_string())

    settings = LayoutSettings(width=600, height=420)
    builder = HierarchyBuilder()

    packing = builder.from_book(book, sizing=Sizing.LOG)
    circles = pack_layout(packing.root, settings)
    print("\nPacked circles:")
    print(circles.to_frame()[["name", "x", "y", "r"]].round(1).to_string(index=False))

    treemap = builder.from_book(book, sizing=Sizing.NORMALIZED)
    cells = treemap_layout(treemap.root, settings)
    print("\nTreemap cells:")
    print(cells.to_frame()[["name", "x0", "y0", "x1", "y1"]].round(1).to_string(index=False))

    activity = builder.from_book(
        book, sizing=Sizing.ACTIVITY, include_transactions=True, fan_out=3
    )
    arcs = partition_layout(activity.root)
    view = SunburstView.from_settings(settings)
    focus = next(rec for rec in arcs if rec.depth == 1)
    zoomed = view.interpolate(view.zoom_target(focus), 1.0)
    print(f"\nSunburst zoomed on {focus.name!r}:")
    for rec in arcs.children(focus.node_id):
        print(f"  {rec.name}: {pretty(asdict(zoomed.arc(rec)))}")

    controller = CollapseController(activity)
    tree = TidyTreeLayout(settings)
    first = tree.layout(activity.root)
    controller.toggle(focus.node_id)
    second = tree.layout(activity.root, source_id=focus.node_id)
    print(
        f"\nTree: {len(first)} nodes, then {len(second)} after collapsing "
        f"{focus.name!r} ({len(second.exiting)} exiting)"
    )


if __name__ == "__main__":
    main()
