"""
Drill-down summary tables for ledger books.

This module provides standalone functions that turn ledgers into pandas
DataFrames for tabular display: one summary row per ledger, a text search
over that summary, and the per-transaction detail of a single ledger.
Amounts are converted to floats; use the ledger objects for exact Decimal
arithmetic.
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
import pandas as pd

from .core.models import Ledger

SUMMARY_COLUMNS = ["ledger_name", "count", "aggregate_credit", "aggregate_debit"]
DETAIL_COLUMNS = ["date", "label", "credit", "debit", "narration"]


def ledger_summary(ledgers: Iterable[Ledger]) -> pd.DataFrame:
    """
    Summarize ledgers, one row each, in ledger order.

    Args:
        ledgers: Ledgers to summarize (e.g. ``book.ledgers``)

    Returns:
        DataFrame with columns ``ledger_name``, ``count`` (transactions),
        ``aggregate_credit`` and ``aggregate_debit``
    """
    rows = [
        {
            "ledger_name": ledger.name,
            "count": len(ledger.transactions),
            "aggregate_credit": float(ledger.aggregate_credit),
            "aggregate_debit": float(ledger.aggregate_debit),
        }
        for ledger in ledgers
    ]
    summary = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    return summary.astype({"count": "int64", "aggregate_credit": "float64", "aggregate_debit": "float64"})


def search_ledgers(summary: pd.DataFrame, text: str | None) -> pd.DataFrame:
    """
    Filter a summary table by a case-insensitive substring of the ledger name.

    Empty or missing text returns the table unchanged.
    """
    if not text:
        return summary
    mask = summary["ledger_name"].str.lower().str.contains(text.lower(), regex=False)
    return summary[mask]


def ledger_detail(ledger: Ledger) -> pd.DataFrame:
    """
    Per-transaction detail of one ledger for a grouped bar chart.

    Transactions are sorted by date (stable, so same-day rows keep their
    source order). Rows whose date cannot be parsed sort last, with an
    empty label.

    Args:
        ledger: Ledger to expand

    Returns:
        DataFrame with columns ``date`` (Timestamp or NaT), ``label``
        (``DD-Mon``), ``credit``, ``debit`` and ``narration``
    """
    rows = [
        {
            "date": pd.Timestamp(txn.posted_on) if txn.posted_on else pd.NaT,
            "credit": float(txn.credit),
            "debit": float(txn.debit),
            "narration": txn.narration,
        }
        for txn in ledger.transactions
    ]
    detail = pd.DataFrame(rows, columns=["date", "credit", "debit", "narration"])
    detail["date"] = pd.to_datetime(detail["date"])
    detail = detail.sort_values("date", kind="stable", na_position="last").reset_index(drop=True)
    detail["label"] = np.where(
        detail["date"].notna(), detail["date"].dt.strftime("%d-%b"), ""
    )
    return detail[DETAIL_COLUMNS]


def detail_max(detail: pd.DataFrame) -> float:
    """Largest single credit or debit amount, the top of the y domain."""
    if detail.empty:
        return 0.0
    return float(max(detail["credit"].max(), detail["debit"].max()))
