"""
End-to-end pipeline test on the bundled creditors export.

This test exercises every stage together:
- Parsing the ragged CSV export into ledgers
- Persisting and reloading the ledger document
- Time buckets at every granularity
- Hierarchies under each sizing, fan-out and collapse
- All four layout engines on the same hierarchy
"""

from __future__ import annotations

import math
from decimal import Decimal
from pathlib import Path

import pytest
from ledgerscope import (
    CollapseController,
    Granularity,
    HierarchyBuilder,
    LayoutSettings,
    Sizing,
    SunburstView,
    TidyTreeLayout,
    TimeBucketAggregator,
    convert,
    dump_book,
    ledger_summary,
    load_book,
    pack_layout,
    partition_layout,
    treemap_layout,
)

EXPORT = Path(__file__).resolve().parents[2] / "examples" / "data" / "creditors_suppliers.csv"


@pytest.fixture(scope="module")
def result():
    return convert(EXPORT)


@pytest.fixture(scope="module")
def book(result):
    return result.book


class TestCreditorsPipeline:
    """Full pipeline on a realistic export."""

    def test_parse(self, result):
        assert not result.report.has_errors()
        assert len(result.report) == 0
        assert [lg.name for lg in result.ledgers] == [
            "Acme Traders",
            "Bright Paper Co",
            "Coastal Logistics",
            "Delta Hardware",
            "Evergreen Supplies",
        ]
        acme = result.ledgers[0]
        assert acme.opening_balance == Decimal("1000")
        assert acme.closing_balance == Decimal("1200")
        assert acme.transactions[0].narration == "Invoice 17 steel rods 12mm"
        assert acme.transactions[1].cheque_no == "004512"
        assert result.ledgers[3].transactions == ()

    def test_document_round_trip(self, book, tmp_path):
        path = dump_book(book, tmp_path / "creditors.json")

        assert load_book(path) == book

    def test_summary_matches_ledgers(self, book):
        summary = ledger_summary(book.ledgers)

        assert summary["aggregate_credit"].sum() == pytest.approx(500 + 1375.5 + 1450 + 4200)
        assert summary["aggregate_debit"].sum() == pytest.approx(300 + 2000)

    @pytest.mark.parametrize("granularity", list(Granularity))
    def test_buckets_conserve_credit(self, book, granularity):
        series = TimeBucketAggregator.from_book(book).aggregate(granularity)

        total = sum((row.total for row in series), Decimal(0))
        assert total == sum((lg.aggregate_credit for lg in book.ledgers), Decimal(0))
        assert series.keys() == sorted(series.keys())
        assert series.ledgers == tuple(lg.name for lg in book.ledgers)

    def test_yearly_buckets(self, book):
        series = TimeBucketAggregator.from_book(book).aggregate("Yearly")

        assert series.keys() == ["2023", "2024"]
        assert series.row("2024").values["Evergreen Supplies"] == Decimal("4200")
        assert series.row("2024").values["Acme Traders"] == 0

    def test_hierarchy_fold(self, book):
        hierarchy = HierarchyBuilder().from_book(book, sizing=Sizing.ACTIVITY, include_transactions=True)

        assert hierarchy.check_fold()
        assert hierarchy.root.total_credit == Decimal("7525.50")
        assert hierarchy.root.total_debit == Decimal("2300")
        assert len(hierarchy) == 1 + 5 + 8

    def test_log_sizing_values(self, book):
        hierarchy = HierarchyBuilder().from_book(book, sizing=Sizing.LOG)

        values = {n.name: n.value for n in hierarchy.root.children}
        assert values["Evergreen Supplies"] == pytest.approx(math.log(4551))
        assert values["Delta Hardware"] == 0

    def test_all_layouts_on_one_hierarchy(self, book):
        settings = LayoutSettings(width=600, height=400)
        hierarchy = HierarchyBuilder().from_book(book, sizing=Sizing.LOG)
        ids = [n.node_id for n in hierarchy.visible_nodes()]

        circles = pack_layout(hierarchy.root, settings)
        cells = treemap_layout(hierarchy.root, settings)
        arcs = partition_layout(hierarchy.root)
        points = TidyTreeLayout(settings).layout(hierarchy.root)

        for result in (circles, cells, arcs, points):
            assert {rec.node_id for rec in result} == set(ids)
            assert result.root.node_id == "Creditors"
        assert circles.root.r == pytest.approx(200)
        assert (cells.root.x1, cells.root.y1) == (600, 400)
        assert arcs.root.y1 == pytest.approx(0.5)
        assert {rec.y for rec in points.leaves()} == {180}

    def test_fan_out_and_collapse(self, book):
        hierarchy = HierarchyBuilder().from_book(book, sizing=Sizing.ACTIVITY, include_transactions=True, fan_out=3)
        controller = CollapseController(hierarchy)

        overflow = hierarchy.root.children[-1]
        assert overflow.overflow_count == 2
        assert overflow.total_credit == Decimal("4200")

        controller.collapse_below_depth(1)
        assert [n.depth for n in hierarchy.visible_nodes()] == [0, 1, 1, 1, 1]
        controller.check_invariants()

        hierarchy.refold(controller.full_children)
        assert hierarchy.root.total_credit == Decimal("7525.50")

    def test_sunburst_zoom(self, book):
        hierarchy = HierarchyBuilder().from_book(book, sizing=Sizing.ACTIVITY, include_transactions=True)
        arcs = partition_layout(hierarchy.root)
        view = SunburstView.from_settings(LayoutSettings(width=600, height=400))
        focus = arcs["Creditors/Coastal Logistics"]

        frames = [view.interpolate(view.zoom_target(focus), t / 4) for t in range(5)]

        spans = [f.arc(focus).end_angle - f.arc(focus).start_angle for f in frames]
        assert spans == sorted(spans)
        assert spans[-1] == pytest.approx(2 * math.pi)
        children = arcs.children(focus.node_id)
        assert len(children) == 3
        assert all(frames[-1].is_visible(rec) for rec in children)
