"""
Ledger statement parser.

Turns the rows of a ledger export into a :class:`~ledgerscope.core.models.LedgerBook`.
The export is a sequence of repeating per-ledger blocks::

    Acme Traders [Creditors / Suppliers]          <- marker row
    Date | Particulars | Vch No | Debit | ...     <- header rows (skipped)
    ...                                           <-
    Opening Balance ............... 1,000.00
    01-Jan-2023 | Party | V1 | | 200.00 | | Invoice 17 | Purchase
    continued narration text                      <- continuation row
    Total ......................... 1,200.00      <- discarded
    Closing Balance ............... 1,200.00      <- ends the block

The scanner is lenient: malformed cells are coerced and recorded as issues,
never raised.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from .models import ZERO, Ledger, LedgerBook, Transaction, parse_amount
from .report import IssueKind, IssueReport
from .settings import ParserSettings

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"\d{1,2}-[A-Za-z]{3}-\d{4}")

# Positional layout of a transaction row.
_TXN_FIELDS = (
    "date",
    "counterparty",
    "voucher_no",
    "debit",
    "credit",
    "cheque_no",
    "narration",
    "type",
)


class ScanState(Enum):
    """Scanner states."""

    IDLE = "idle"
    SKIPPING_HEADER = "skipping_header"
    IN_LEDGER = "in_ledger"


@dataclass(frozen=True)
class ScannerState:
    """Current scanner state; ``remaining`` is only meaningful while skipping headers."""

    kind: ScanState
    remaining: int = 0

    @classmethod
    def idle(cls) -> ScannerState:
        return cls(ScanState.IDLE)

    @classmethod
    def skipping_header(cls, remaining: int) -> ScannerState:
        if remaining <= 0:
            return cls(ScanState.IN_LEDGER)
        return cls(ScanState.SKIPPING_HEADER, remaining)

    @classmethod
    def in_ledger(cls) -> ScannerState:
        return cls(ScanState.IN_LEDGER)


@dataclass
class _LedgerDraft:
    name: str
    opening_balance: Decimal = ZERO
    closing_balance: Decimal = ZERO
    transactions: list[Transaction] = field(default_factory=list)

    def freeze(self) -> Ledger:
        return Ledger(
            name=self.name,
            opening_balance=self.opening_balance,
            closing_balance=self.closing_balance,
            transactions=tuple(self.transactions),
        )


@dataclass
class ParseResult:
    """
    Output of a parse run: the ledgers found and the issues met on the way.

    An empty result is a normal outcome (``is_empty``), reported through an
    ``EMPTY_SOURCE`` issue rather than an exception.
    """

    root_name: str
    ledgers: tuple[Ledger, ...]
    report: IssueReport = field(default_factory=IssueReport)

    @property
    def is_empty(self) -> bool:
        return not self.ledgers

    @property
    def book(self) -> LedgerBook:
        return LedgerBook(name=self.root_name, ledgers=self.ledgers)

    def to_dict(self) -> dict:
        return self.book.to_dict()


def normalize_row(row: Sequence[object] | None) -> list[str]:
    """Stringify and trim every cell, dropping trailing empty cells."""
    if not row:
        return []
    cells = []
    for cell in row:
        if cell is None:
            cells.append("")
        elif isinstance(cell, (datetime, date)):
            cells.append(cell.strftime("%d-%b-%Y"))
        else:
            cells.append(str(cell).strip())
    while cells and cells[-1] == "":
        cells.pop()
    return cells


class LedgerStatementParser:
    """
    Finite-state scanner over the rows of a ledger export.

    **Args:**
        settings: Format constants (block marker, header row count, root name)

    **Example:**
        ```python
        from ledgerscope.core.parser import LedgerStatementParser

        result = LedgerStatementParser().parse(rows)
        if result.is_empty:
            print("no ledgers found")
        for ledger in result.ledgers:
            print(ledger.name, ledger.closing_balance)
        ```
    """

    def __init__(self, settings: ParserSettings | None = None):
        self.settings = settings or ParserSettings()

    def parse(self, rows: Iterable[Sequence[object]]) -> ParseResult:
        marker = self.settings.marker
        report = IssueReport()
        ledgers: list[Ledger] = []
        state = ScannerState.idle()
        current: _LedgerDraft | None = None

        for index, raw in enumerate(rows):
            row = normalize_row(raw)
            if not row:
                continue
            line = " ".join(row)
            lower = line.lower()

            if marker in line:
                if current is not None:
                    report.add(
                        IssueKind.UNCLOSED_LEDGER,
                        "ledger block ended without a closing balance row",
                        row=index,
                        ledger=current.name,
                    )
                    ledgers.append(current.freeze())
                current = _LedgerDraft(name=line.partition(marker)[0].strip())
                logger.debug("Row %d: ledger %r starts", index, current.name)
                state = ScannerState.skipping_header(self.settings.header_rows)
                continue

            if state.kind is ScanState.IDLE or current is None:
                continue

            if state.kind is ScanState.SKIPPING_HEADER:
                state = ScannerState.skipping_header(state.remaining - 1)
                continue

            if "opening balance" in lower:
                current.opening_balance = self._read_amount(
                    row[-1], report, index, current.name, "opening balance"
                )
                continue

            if "total" in lower:
                continue

            if "closing balance" in lower:
                current.closing_balance = self._read_amount(
                    row[-1], report, index, current.name, "closing balance"
                )
                ledgers.append(current.freeze())
                logger.debug(
                    "Row %d: ledger %r closed with %d transactions",
                    index,
                    current.name,
                    len(current.transactions),
                )
                current = None
                state = ScannerState.idle()
                continue

            if DATE_PATTERN.search(row[0]):
                current.transactions.append(
                    self._read_transaction(row, report, index, current.name)
                )
                continue

            if current.transactions:
                last = current.transactions[-1]
                current.transactions[-1] = replace(
                    last, narration=f"{last.narration} {line}"
                )
            else:
                report.add(
                    IssueKind.ORPHAN_CONTINUATION,
                    "continuation row before any transaction was dropped",
                    row=index,
                    ledger=current.name,
                )

        if current is not None:
            report.add(
                IssueKind.UNCLOSED_LEDGER,
                "input ended without a closing balance row",
                ledger=current.name,
            )
            ledgers.append(current.freeze())

        if not ledgers:
            report.add(
                IssueKind.EMPTY_SOURCE,
                f"no ledger blocks marked {marker!r} were found",
            )

        logger.info(
            "Parsed %d ledgers (%d transactions, %d issues)",
            len(ledgers),
            sum(len(lg.transactions) for lg in ledgers),
            len(report),
        )
        return ParseResult(
            root_name=self.settings.root_name, ledgers=tuple(ledgers), report=report
        )

    def _read_amount(
        self,
        cell: str,
        report: IssueReport,
        index: int,
        ledger: str,
        what: str,
    ) -> Decimal:
        amount, ok = parse_amount(cell)
        if not ok:
            report.add(
                IssueKind.MALFORMED_ROW,
                f"{what} {cell!r} is not a number, using 0",
                row=index,
                ledger=ledger,
            )
        return amount

    def _read_transaction(
        self, row: list[str], report: IssueReport, index: int, ledger: str
    ) -> Transaction:
        cells = dict(zip(_TXN_FIELDS, row))
        values: dict[str, object] = {}
        for name in _TXN_FIELDS:
            cell = cells.get(name, "")
            if name in ("debit", "credit"):
                values[name] = self._read_amount(cell, report, index, ledger, name)
            else:
                values[name] = cell
        return Transaction(**values)


def parse_rows(
    rows: Iterable[Sequence[object]], settings: ParserSettings | None = None
) -> ParseResult:
    """Parse export rows with the given (or default) format settings."""
    return LedgerStatementParser(settings).parse(rows)
