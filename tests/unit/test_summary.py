"""
Tests for the drill-down summary tables.
"""

from __future__ import annotations

from decimal import Decimal

import pandas as pd
import pytest
from ledgerscope.core.models import Ledger, Transaction
from ledgerscope.summary import detail_max, ledger_detail, ledger_summary, search_ledgers


@pytest.fixture
def ledgers():
    return [
        Ledger(
            name="Acme Traders",
            transactions=(
                Transaction(date="20-Feb-2023", debit=Decimal("300"), narration="second"),
                Transaction(date="05-Jan-2023", credit=Decimal("500"), narration="first"),
                Transaction(date="not a date", credit=Decimal("1"), narration="undated"),
                Transaction(date="05-Jan-2023", credit=Decimal("70.5"), narration="same day"),
            ),
        ),
        Ledger(name="Bright Paper Co", transactions=(Transaction(date="11-Apr-2023", credit=Decimal("250.5")),)),
        Ledger(name="Delta Hardware"),
    ]


class TestLedgerSummary:
    def test_one_row_per_ledger(self, ledgers):
        summary = ledger_summary(ledgers)

        assert list(summary.columns) == ["ledger_name", "count", "aggregate_credit", "aggregate_debit"]
        assert list(summary["ledger_name"]) == ["Acme Traders", "Bright Paper Co", "Delta Hardware"]
        assert list(summary["count"]) == [4, 1, 0]
        assert summary.loc[0, "aggregate_credit"] == pytest.approx(571.5)
        assert summary.loc[0, "aggregate_debit"] == 300.0
        assert summary.loc[2, "aggregate_credit"] == 0.0

    def test_empty(self):
        summary = ledger_summary([])

        assert summary.empty
        assert list(summary.columns) == ["ledger_name", "count", "aggregate_credit", "aggregate_debit"]

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("paper", ["Bright Paper Co"]),
            ("A", ["Acme Traders", "Bright Paper Co", "Delta Hardware"]),
            ("zzz", []),
            ("", ["Acme Traders", "Bright Paper Co", "Delta Hardware"]),
            (None, ["Acme Traders", "Bright Paper Co", "Delta Hardware"]),
            ("co (", []),
        ],
    )
    def test_search(self, ledgers, text, expected):
        """Search is a case-insensitive literal substring match."""
        result = search_ledgers(ledger_summary(ledgers), text)

        assert list(result["ledger_name"]) == expected


class TestLedgerDetail:
    def test_sorted_by_date_with_undated_last(self, ledgers):
        detail = ledger_detail(ledgers[0])

        assert list(detail.columns) == ["date", "label", "credit", "debit", "narration"]
        assert list(detail["narration"]) == ["first", "same day", "second", "undated"]
        assert list(detail["label"]) == ["05-Jan", "05-Jan", "20-Feb", ""]
        assert pd.isna(detail.loc[3, "date"])
        assert detail.loc[0, "date"] == pd.Timestamp("2023-01-05")

    def test_amounts_are_floats(self, ledgers):
        detail = ledger_detail(ledgers[0])

        assert detail["credit"].dtype == "float64"
        assert list(detail["debit"]) == [0.0, 0.0, 300.0, 0.0]

    def test_ledger_without_transactions(self, ledgers):
        detail = ledger_detail(ledgers[2])

        assert detail.empty
        assert detail_max(detail) == 0.0

    def test_detail_max(self, ledgers):
        assert detail_max(ledger_detail(ledgers[0])) == 500.0
