"""
Tests for the ledger data model and its JSON document form.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st
from ledgerscope.core.errors import SourceFormatError
from ledgerscope.core.models import (
    Ledger,
    LedgerBook,
    Transaction,
    amount_to_json,
    parse_amount,
    parse_date,
)


@pytest.mark.parametrize(
    "text,expected,ok",
    [
        ("1,000.00", Decimal("1000.00"), True),
        ("  2,400 ", Decimal("2400"), True),
        ("1,200.00 Cr", Decimal("1200.00"), True),
        ("-35.5", Decimal("-35.5"), True),
        ("", Decimal("0"), True),
        (None, Decimal("0"), True),
        (12, Decimal("12"), True),
        (12.25, Decimal("12.25"), True),
        ("abc", Decimal("0"), False),
        ("Dr 15", Decimal("0"), False),
    ],
)
def test_parse_amount(text, expected, ok):
    assert parse_amount(text) == (expected, ok)


def test_parse_date():
    assert parse_date("05-Jan-2023") == date(2023, 1, 5)
    assert parse_date(" 5-feb-2024 ") == date(2024, 2, 5)
    assert parse_date("2023-01-05") is None
    assert parse_date("") is None


def test_amount_to_json_uses_integers_when_integral():
    assert amount_to_json(Decimal("1200.00")) == 1200
    assert isinstance(amount_to_json(Decimal("1200.00")), int)
    assert amount_to_json(Decimal("250.50")) == 250.5


class TestLedger:
    @pytest.fixture()
    def ledger(self):
        return Ledger(
            name="Acme",
            opening_balance=Decimal("1000"),
            closing_balance=Decimal("1200"),
            transactions=(
                Transaction(date="05-Jan-2023", credit=Decimal("500"), narration="Invoice"),
                Transaction(date="20-Feb-2023", debit=Decimal("300"), cheque_no="004512"),
                Transaction(date="21-Feb-2023", credit=Decimal("0.25"), debit=Decimal("1")),
            ),
        )

    def test_aggregates(self, ledger):
        assert ledger.aggregate_credit == Decimal("500.25")
        assert ledger.aggregate_debit == Decimal("301")

    def test_aggregates_of_empty_ledger_are_zero(self):
        ledger = Ledger(name="Empty")
        assert ledger.aggregate_credit == 0
        assert ledger.aggregate_debit == 0

    def test_posted_on_is_parsed_once(self, ledger):
        txn = ledger.transactions[0]
        assert txn.posted_on == date(2023, 1, 5)
        assert txn.posted_on is txn.posted_on

    def test_document_field_names(self, ledger):
        data = ledger.to_dict()

        assert list(data) == [
            "ledger_name",
            "opening_balance",
            "closing_balance",
            "value",
            "transactions",
        ]
        assert data["value"] == data["closing_balance"] == 1200
        assert list(data["transactions"][1]) == [
            "date",
            "party_name",
            "vno",
            "debit_amt",
            "credit_amt",
            "cheque_no",
            "narration",
            "type",
        ]
        assert data["transactions"][1]["debit_amt"] == 300
        assert data["transactions"][1]["cheque_no"] == "004512"

    def test_round_trip(self, ledger):
        assert Ledger.from_dict(ledger.to_dict()) == ledger

    def test_from_dict_requires_ledger_name(self):
        with pytest.raises(SourceFormatError, match="ledger_name"):
            Ledger.from_dict({"opening_balance": 1}, source="book.json")

    def test_from_dict_rejects_non_list_transactions(self):
        with pytest.raises(SourceFormatError, match="must be a list"):
            Ledger.from_dict({"ledger_name": "x", "transactions": {"a": 1}})

    def test_from_dict_ignores_value(self):
        ledger = Ledger.from_dict({"ledger_name": "x", "closing_balance": 5, "value": 99})
        assert ledger.closing_balance == 5


class TestLedgerBook:
    def test_iter_transactions_attaches_ledger_names(self):
        book = LedgerBook(
            name="Creditors",
            ledgers=(
                Ledger(name="A", transactions=(Transaction(date="01-Jan-2023"),)),
                Ledger(name="B"),
                Ledger(name="C", transactions=(Transaction(date="02-Jan-2023"),) * 2),
            ),
        )

        assert [name for name, _ in book.iter_transactions()] == ["A", "C", "C"]
        assert book.ledger("B").name == "B"
        with pytest.raises(KeyError):
            book.ledger("missing")

    def test_from_dict_requires_children(self):
        with pytest.raises(SourceFormatError, match="children"):
            LedgerBook.from_dict({"name": "Creditors"})
        with pytest.raises(SourceFormatError, match="object"):
            LedgerBook.from_dict(["not", "a", "dict"])

    def test_empty_book_round_trip(self):
        book = LedgerBook(name="Creditors")
        assert book.to_dict() == {"name": "Creditors", "children": []}
        assert LedgerBook.from_dict(book.to_dict()) == book


amounts = st.decimals(min_value=0, max_value=10**9, places=2, allow_nan=False)


@given(credits=st.lists(amounts, max_size=20), debits=st.lists(amounts, max_size=20))
def test_aggregate_credit_is_sum_of_transactions(credits, debits):
    transactions = tuple(
        Transaction(date="01-Jan-2023", credit=c, debit=d) for c, d in zip(credits, debits)
    )
    ledger = Ledger(name="L", transactions=transactions)

    assert ledger.aggregate_credit == sum((t.credit for t in transactions), Decimal(0))
    assert ledger.aggregate_debit == sum((t.debit for t in transactions), Decimal(0))
