"""
Reading ledger exports and the persisted ledger document.

Spreadsheet exports (``.xlsx``/``.xlsm``) are read with pandas through the
openpyxl engine; CSV exports are read with the standard ``csv`` module since
their rows are ragged (marker rows hold one cell, transaction rows eight).
Either way the result is a list of rows of strings ready for
:class:`~ledgerscope.core.parser.LedgerStatementParser`.

The ledger document is the JSON form of a
:class:`~ledgerscope.core.models.LedgerBook` (``{name, children}``).
"""

from __future__ import annotations

import csv
import json
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from .core.errors import SourceFormatError
from .core.models import DATE_FORMAT, LedgerBook
from .core.parser import ParseResult, parse_rows
from .core.settings import ParserSettings

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv", ".txt"}


def normalize_cell(cell: object) -> str:
    """
    Render one spreadsheet cell as text.

    Missing cells become ``""``, timestamps ``DD-Mon-YYYY`` and integral
    floats plain integers (``1200.0`` -> ``"1200"``).
    """
    if cell is None:
        return ""
    if isinstance(cell, float):
        if math.isnan(cell):
            return ""
        if cell.is_integer():
            return str(int(cell))
        return repr(cell)
    if isinstance(cell, (pd.Timestamp, datetime, date)):
        if pd.isna(cell):
            return ""
        return cell.strftime(DATE_FORMAT)
    return str(cell).strip()


def read_rows(path: str | Path, sheet: int | str = 0) -> list[list[str]]:
    """
    Read an export file into rows of text cells.

    Args:
        path: ``.xlsx``/``.xlsm`` workbook or ``.csv`` file
        sheet: Worksheet index or name (workbooks only)

    Returns:
        One list of cells per row, in file order

    Raises:
        FileNotFoundError: if the file does not exist
        SourceFormatError: for an unsupported suffix or an unreadable file
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    suffix = path.suffix.lower()

    if suffix in SPREADSHEET_SUFFIXES:
        try:
            frame = pd.read_excel(
                path, sheet_name=sheet, header=None, dtype=object, engine="openpyxl"
            )
        except (ValueError, KeyError, OSError) as exc:
            raise SourceFormatError(str(path), f"cannot read worksheet {sheet!r}: {exc}") from exc
        rows = [[normalize_cell(cell) for cell in record] for record in frame.itertuples(index=False)]
    elif suffix in CSV_SUFFIXES:
        try:
            with open(path, newline="", encoding="utf-8-sig") as f:
                rows = [[cell.strip() for cell in record] for record in csv.reader(f)]
        except (UnicodeDecodeError, csv.Error) as exc:
            raise SourceFormatError(str(path), f"cannot read CSV: {exc}") from exc
    else:
        raise SourceFormatError(
            str(path),
            f"unsupported export type {suffix!r} "
            f"(expected one of {', '.join(sorted(SPREADSHEET_SUFFIXES | CSV_SUFFIXES))})",
        )

    logger.debug("Read %d rows from %s", len(rows), path)
    return rows


def convert(
    path: str | Path,
    settings: ParserSettings | None = None,
    sheet: int | str = 0,
) -> ParseResult:
    """
    Parse an export file into ledgers.

    **Example:**
        ```python
        result = convert("exports/creditors.xlsx")
        dump_book(result, "data/creditors.json")
        print(result.report)
        ```
    """
    result = parse_rows(read_rows(path, sheet=sheet), settings)
    logger.info("Converted %s: %d ledgers", path, len(result.ledgers))
    return result


def load_document(path: str | Path) -> dict[str, Any]:
    """Load a JSON document, raising :class:`SourceFormatError` on bad JSON."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise SourceFormatError(str(path), f"invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise SourceFormatError(str(path), "document root must be an object")
    return data


def is_book_document(data: dict[str, Any]) -> bool:
    """True when a document's children are ledgers rather than nested groups."""
    children = data.get("children")
    return isinstance(children, list) and all(
        isinstance(c, dict) and "ledger_name" in c for c in children
    )


def load_book(path: str | Path) -> LedgerBook:
    """Load a persisted ledger document."""
    return LedgerBook.from_dict(load_document(path), source=str(path))


def dump_book(book: LedgerBook | ParseResult, path: str | Path, indent: int = 2) -> Path:
    """Write a ledger document and return its path."""
    if isinstance(book, ParseResult):
        book = book.book
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(book.to_dict(), f, indent=indent, ensure_ascii=False)
        f.write("\n")
    logger.info("Wrote %d ledgers to %s", len(book.ledgers), path)
    return path
