"""
Ledger data model for LedgerScope.

A :class:`LedgerBook` is the canonical, persisted form of a ledger export: a
named collection of :class:`Ledger` blocks, each holding its opening/closing
balance and the ordered :class:`Transaction` rows between them.

The JSON field names used by :meth:`LedgerBook.to_dict` are a compatibility
contract with existing consumers and must not change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import cached_property
from typing import Any

from .errors import SourceFormatError

DATE_FORMAT = "%d-%b-%Y"
ZERO = Decimal("0")

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_amount(text: object) -> tuple[Decimal, bool]:
    """
    Parse a monetary cell into a Decimal.

    Thousands separators are stripped and the longest leading numeric prefix is
    used, so ``"1,200.00 Cr"`` reads as ``1200.00``. Unparseable text yields
    zero.

    Args:
        text: Cell content (string, number or None)

    Returns:
        Tuple of (amount, ok) where ``ok`` is False when the cell held text
        that could not be read as a number. Empty cells are ``(0, True)``.
    """
    if text is None:
        return ZERO, True
    if isinstance(text, Decimal):
        return text, True
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        try:
            return Decimal(str(text)), True
        except InvalidOperation:
            return ZERO, False
    cleaned = str(text).replace(",", "").strip()
    if not cleaned:
        return ZERO, True
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return ZERO, False
    try:
        return Decimal(match.group(0)), True
    except InvalidOperation:
        return ZERO, False


def parse_date(text: str) -> date | None:
    """Parse a ``DD-Mon-YYYY`` date, returning None when it does not match."""
    try:
        return datetime.strptime(text.strip(), DATE_FORMAT).date()
    except (ValueError, AttributeError):
        return None


def amount_to_json(value: Decimal) -> int | float:
    """Render a Decimal as a JSON number, using an integer when it is integral."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class Transaction:
    """
    A single dated row of a ledger.

    Debit and credit are independent, non-negative amounts as exported; they
    are never netted. ``date`` keeps the source text so documents round-trip
    exactly; :attr:`posted_on` is the parsed calendar date, computed once.
    """

    date: str
    counterparty: str = ""
    voucher_no: str = ""
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    cheque_no: str = ""
    narration: str = ""
    type: str = ""

    @cached_property
    def posted_on(self) -> date | None:
        return parse_date(self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "party_name": self.counterparty,
            "vno": self.voucher_no,
            "debit_amt": amount_to_json(self.debit),
            "credit_amt": amount_to_json(self.credit),
            "cheque_no": self.cheque_no,
            "narration": self.narration,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transaction:
        debit, _ = parse_amount(data.get("debit_amt"))
        credit, _ = parse_amount(data.get("credit_amt"))
        return cls(
            date=str(data.get("date", "")),
            counterparty=str(data.get("party_name", "")),
            voucher_no=str(data.get("vno", "")),
            debit=debit,
            credit=credit,
            cheque_no=str(data.get("cheque_no", "")),
            narration=str(data.get("narration", "")),
            type=str(data.get("type", "")),
        )


@dataclass(frozen=True)
class Ledger:
    """
    A named sub-account (one creditor or supplier) and its transactions.

    Ledgers are immutable once the parser emits them. Aggregates are derived
    on demand and never written back.
    """

    name: str
    opening_balance: Decimal = ZERO
    closing_balance: Decimal = ZERO
    transactions: tuple[Transaction, ...] = ()

    @property
    def aggregate_credit(self) -> Decimal:
        return sum((t.credit for t in self.transactions), ZERO)

    @property
    def aggregate_debit(self) -> Decimal:
        return sum((t.debit for t in self.transactions), ZERO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ledger_name": self.name,
            "opening_balance": amount_to_json(self.opening_balance),
            "closing_balance": amount_to_json(self.closing_balance),
            # Treemap consumers size rectangles by this key.
            "value": amount_to_json(self.closing_balance),
            "transactions": [t.to_dict() for t in self.transactions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source: str = "<mapping>") -> Ledger:
        if not isinstance(data, dict) or "ledger_name" not in data:
            raise SourceFormatError(source, "ledger entry is missing 'ledger_name'")
        transactions = data.get("transactions") or []
        if not isinstance(transactions, list):
            raise SourceFormatError(
                source, f"'transactions' of ledger {data['ledger_name']!r} must be a list"
            )
        opening, _ = parse_amount(data.get("opening_balance"))
        closing, _ = parse_amount(data.get("closing_balance"))
        return cls(
            name=str(data["ledger_name"]),
            opening_balance=opening,
            closing_balance=closing,
            transactions=tuple(Transaction.from_dict(t) for t in transactions),
        )


@dataclass(frozen=True)
class LedgerBook:
    """The persisted document: a root name and its ledgers in source order."""

    name: str
    ledgers: tuple[Ledger, ...] = field(default_factory=tuple)

    def iter_transactions(self):
        """Yield ``(ledger_name, transaction)`` pairs in source order."""
        for ledger in self.ledgers:
            for txn in ledger.transactions:
                yield ledger.name, txn

    def ledger(self, name: str) -> Ledger:
        for ledger in self.ledgers:
            if ledger.name == name:
                return ledger
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "children": [lg.to_dict() for lg in self.ledgers]}

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source: str = "<mapping>") -> LedgerBook:
        if not isinstance(data, dict):
            raise SourceFormatError(source, "document root must be an object")
        children = data.get("children")
        if not isinstance(children, list):
            raise SourceFormatError(source, "document is missing a 'children' list")
        return cls(
            name=str(data.get("name", "")),
            ledgers=tuple(Ledger.from_dict(c, source=source) for c in children),
        )
