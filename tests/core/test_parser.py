"""
Tests for the ledger statement parser.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from ledgerscope.core.models import Transaction
from ledgerscope.core.parser import (
    LedgerStatementParser,
    ScannerState,
    ScanState,
    normalize_row,
    parse_rows,
)
from ledgerscope.core.report import IssueKind
from ledgerscope.core.settings import ParserSettings

MARKER = "[Creditors / Suppliers]"
HEADER = [
    ["Date", "Particulars", "Vch No", "Debit", "Credit", "Chq No", "Narration", "Vch Type"],
    ["", "", "", "Dr", "Cr"],
]


def _block(name, opening, rows, closing, total=True):
    block = [[f"{name} {MARKER}"], *HEADER, ["Opening Balance", "", "", "", "", "", "", opening]]
    block.extend(rows)
    if total:
        block.append(["Total", "", "", "", "", "", "", closing])
    block.append(["Closing Balance", "", "", "", "", "", "", closing])
    return block


class TestScannerState:
    def test_header_countdown_reaches_in_ledger(self):
        state = ScannerState.skipping_header(2)
        assert state.kind is ScanState.SKIPPING_HEADER
        assert state.remaining == 2
        state = ScannerState.skipping_header(state.remaining - 1)
        assert state.kind is ScanState.SKIPPING_HEADER
        state = ScannerState.skipping_header(state.remaining - 1)
        assert state.kind is ScanState.IN_LEDGER

    def test_zero_header_rows_enter_ledger_directly(self):
        assert ScannerState.skipping_header(0).kind is ScanState.IN_LEDGER


class TestNormalizeRow:
    def test_trims_and_drops_trailing_empty_cells(self):
        assert normalize_row([" a ", None, "b", "", None]) == ["a", "", "b"]

    def test_dates_are_rendered_in_export_format(self):
        assert normalize_row([datetime(2023, 1, 5), 12]) == ["05-Jan-2023", "12"]

    def test_empty_row(self):
        assert normalize_row([]) == []
        assert normalize_row(None) == []


class TestLedgerStatementParser:
    def test_end_to_end_single_ledger(self):
        rows = _block(
            "Acme Traders",
            "1,000.00",
            [
                ["05-Jan-2023", "Purchase", "P-1", "", "500.00", "", "Invoice 17", "Purchase"],
                ["20-Feb-2023", "Bank", "PY-2", "300.00", "", "0045", "Payment", "Payment"],
            ],
            "1,200.00",
        )

        result = parse_rows(rows)

        assert not result.is_empty
        assert len(result.ledgers) == 1
        ledger = result.ledgers[0]
        assert ledger.name == "Acme Traders"
        assert ledger.opening_balance == Decimal("1000")
        assert ledger.closing_balance == Decimal("1200")
        assert len(ledger.transactions) == 2
        assert ledger.transactions[0] == Transaction(
            date="05-Jan-2023",
            counterparty="Purchase",
            voucher_no="P-1",
            debit=Decimal("0"),
            credit=Decimal("500.00"),
            cheque_no="",
            narration="Invoice 17",
            type="Purchase",
        )
        assert len(result.report) == 0

    def test_continuation_row_appends_to_narration(self):
        rows = _block(
            "Acme",
            "0",
            [
                ["01-Jan-2023", "Party", "V1", "", "10", "", "note one", "Purchase"],
                ["continued text"],
            ],
            "10",
        )

        ledger = parse_rows(rows).ledgers[0]

        assert len(ledger.transactions) == 1
        assert ledger.transactions[0].narration == "note one continued text"

    def test_continuation_joins_all_cells(self):
        rows = _block(
            "Acme",
            "0",
            [
                ["01-Jan-2023", "Party", "V1", "", "10", "", "note", "Purchase"],
                ["", "more", "", "text"],
            ],
            "10",
        )

        ledger = parse_rows(rows).ledgers[0]

        # Leading empty cells are kept, so the join carries their separators.
        assert ledger.transactions[0].narration == "note  more  text"

    def test_ledger_without_transactions(self):
        rows = _block("Delta Hardware", "0.00", [], "0.00")

        result = parse_rows(rows)

        assert len(result.ledgers) == 1
        assert result.ledgers[0].transactions == ()
        assert result.ledgers[0].closing_balance == 0

    def test_multiple_ledgers_keep_source_order(self):
        rows = [
            ["Statement for 2023"],
            *_block("B Ledger", "1", [], "1"),
            *_block("A Ledger", "2", [], "2"),
        ]

        result = parse_rows(rows)

        assert [lg.name for lg in result.ledgers] == ["B Ledger", "A Ledger"]

    def test_rows_outside_blocks_are_ignored(self):
        rows = [
            ["Opening Balance", "999"],
            ["01-Jan-2023", "Stray", "", "", "5"],
            *_block("Only", "1", [], "1"),
            ["Closing Balance", "7"],
        ]

        result = parse_rows(rows)

        assert len(result.ledgers) == 1
        assert result.ledgers[0].opening_balance == 1
        assert len(result.report) == 0

    def test_rows_after_a_closed_block_leave_it_untouched(self):
        rows = [
            *_block(
                "Done",
                "2",
                [["03-Jan-2023", "Acme", "V1", "", "4", "", "", "Purchase"]],
                "6",
                total=False,
            ),
            ["04-Jan-2023", "Late", "V2", "", "9", "", "", "Purchase"],
            ["trailing narration"],
            ["Opening Balance", "", "", "", "", "", "", "77"],
            ["Closing Balance", "", "", "", "", "", "", "88"],
        ]

        result = parse_rows(rows)

        [ledger] = result.ledgers
        assert ledger.opening_balance == 2
        assert ledger.closing_balance == 6
        assert [t.voucher_no for t in ledger.transactions] == ["V1"]
        assert len(result.report) == 0

    def test_blank_rows_do_not_count_as_headers(self):
        rows = _block("Acme", "5", [], "5")
        rows.insert(1, ["", "", ""])

        result = parse_rows(rows)

        assert result.ledgers[0].opening_balance == 5

    def test_malformed_amount_defaults_to_zero_with_issue(self):
        rows = _block(
            "Acme",
            "n/a",
            [["01-Jan-2023", "Party", "V1", "abc", "12.5", "", "x", "Purchase"]],
            "12.50 Cr",
        )

        result = parse_rows(rows)

        ledger = result.ledgers[0]
        assert ledger.opening_balance == 0
        assert ledger.transactions[0].debit == 0
        assert ledger.transactions[0].credit == Decimal("12.5")
        # A leading numeric prefix is accepted.
        assert ledger.closing_balance == Decimal("12.50")
        malformed = result.report.of_kind(IssueKind.MALFORMED_ROW)
        assert len(malformed) == 2
        assert all(issue.ledger == "Acme" for issue in malformed)
        assert not result.report.has_errors()
        assert result.report.has_warnings()

    def test_short_transaction_row_gets_defaults(self):
        rows = _block("Acme", "0", [["01-Jan-2023", "Party"]], "0")

        txn = parse_rows(rows).ledgers[0].transactions[0]

        assert txn.counterparty == "Party"
        assert txn.voucher_no == ""
        assert txn.credit == 0
        assert txn.type == ""

    def test_empty_source_is_reported_not_raised(self):
        result = parse_rows([["nothing here"], ["Opening Balance", "1"]])

        assert result.is_empty
        assert result.ledgers == ()
        assert result.report.has_errors()
        assert result.report.get_exit_code() == 2
        assert result.report.of_kind(IssueKind.EMPTY_SOURCE)

    def test_unclosed_ledger_is_flushed(self):
        rows = _block("First", "1", [], "1")[:-1]  # drop the closing row
        rows += _block("Second", "2", [], "2")

        result = parse_rows(rows)

        assert [lg.name for lg in result.ledgers] == ["First", "Second"]
        issues = result.report.of_kind(IssueKind.UNCLOSED_LEDGER)
        assert len(issues) == 1
        assert issues[0].ledger == "First"

    def test_unclosed_ledger_at_end_of_input(self):
        rows = _block("Last", "3", [["01-Jan-2023", "P", "V", "", "4"]], "7")[:-1]

        result = parse_rows(rows)

        assert len(result.ledgers) == 1
        assert len(result.ledgers[0].transactions) == 1
        assert result.report.of_kind(IssueKind.UNCLOSED_LEDGER)

    def test_orphan_continuation_is_dropped(self):
        rows = _block("Acme", "0", [["a loose note"]], "0")

        result = parse_rows(rows)

        assert result.ledgers[0].transactions == ()
        assert result.report.of_kind(IssueKind.ORPHAN_CONTINUATION)

    def test_custom_marker_and_header_rows(self):
        settings = ParserSettings(marker="[Debtors]", header_rows=1, root_name="Debtors")
        rows = [
            ["Zeta Retail [Debtors]"],
            ["Date", "Particulars"],
            ["Opening Balance", "10"],
            ["Closing Balance", "20"],
        ]

        result = LedgerStatementParser(settings).parse(rows)

        assert result.root_name == "Debtors"
        assert result.ledgers[0].name == "Zeta Retail"
        assert result.ledgers[0].closing_balance == 20

    def test_parse_result_book_round_trip(self):
        rows = _block(
            "Acme", "1,000.00", [["05-Jan-2023", "P", "V1", "", "200"]], "1,200.00"
        )

        data = parse_rows(rows).to_dict()

        assert data["name"] == "Creditors"
        ledger = data["children"][0]
        assert ledger["ledger_name"] == "Acme"
        assert ledger["opening_balance"] == 1000
        assert ledger["closing_balance"] == 1200
        assert ledger["value"] == 1200
        assert ledger["transactions"][0]["credit_amt"] == 200


@pytest.mark.parametrize(
    "line",
    [
        ["Grand Total", "", "1"],
        ["", "", "total", "5"],
    ],
)
def test_total_rows_are_discarded(line):
    rows = _block("Acme", "0", [line], "0", total=False)

    result = parse_rows(rows)

    assert result.ledgers[0].transactions == ()
    assert len(result.report) == 0
