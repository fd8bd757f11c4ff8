"""
Time-bucketed rollups of ledger credits.

Regroups the flat transaction stream of a ledger book by a time granularity
and by ledger, summing credit amounts. The result is dense: every bucket row
carries a value for every ledger, so stacked-series layouts never meet a
missing key.

Bucket keys are zero-padded strings (``2023``, ``2023-01``, ``2023-Q1``,
``2023-01-31``), so lexicographic order is chronological order for every
granularity.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from functools import cached_property

import numpy as np
import pandas as pd

from .errors import UnknownGranularityError
from .models import ZERO, LedgerBook, Transaction
from .report import IssueKind, IssueReport

logger = logging.getLogger(__name__)


class Granularity(Enum):
    """Supported bucket sizes."""

    DAILY = "Daily"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEARLY = "Yearly"

    @classmethod
    def parse(cls, value: Granularity | str) -> Granularity:
        """
        Resolve a granularity from an enum member or its name (case-insensitive).

        Raises:
            UnknownGranularityError: for anything else
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if wanted in (member.value.lower(), member.name.lower()):
                    return member
        raise UnknownGranularityError(value, [m.value for m in cls])


_PERIOD_FREQ = {
    Granularity.DAILY: "D",
    Granularity.MONTHLY: "M",
    Granularity.QUARTERLY: "Q",
    Granularity.YEARLY: "Y",
}

_KEY_FORMAT = {
    Granularity.DAILY: "%Y-%m-%d",
    Granularity.MONTHLY: "%Y-%m",
    Granularity.QUARTERLY: "%Y-Q%q",
    Granularity.YEARLY: "%Y",
}


def _period(day: date, granularity: Granularity | str) -> tuple[pd.Period, Granularity]:
    granularity = Granularity.parse(granularity)
    return pd.Timestamp(day).to_period(_PERIOD_FREQ[granularity]), granularity


def bucket_key(day: date, granularity: Granularity | str) -> str:
    """Bucket key of a calendar date."""
    period, granularity = _period(day, granularity)
    return period.strftime(_KEY_FORMAT[granularity])


def bucket_start(day: date, granularity: Granularity | str) -> date:
    """First calendar day of the bucket containing ``day``."""
    period, _ = _period(day, granularity)
    return period.start_time.date()


@dataclass(frozen=True)
class BucketRow:
    """One bucket: its key, first day and the credit sum of every ledger."""

    key: str
    start: date
    values: Mapping[str, Decimal]

    @property
    def total(self) -> Decimal:
        return sum(self.values.values(), ZERO)


def _empty_table(ledgers: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(
        columns=["start", *ledgers], index=pd.Index([], name="bucket", dtype=object)
    )


@dataclass
class BucketedSeries:
    """
    Dense bucket table ordered ascending by key.

    **Attributes:**
        granularity: Bucket size used
        ledgers: Stack keys, in dataset order
        table: Wide frame indexed by bucket key: a ``start`` column, then one
            Decimal column per ledger
        report: Transactions skipped for unreadable dates
    """

    granularity: Granularity
    ledgers: tuple[str, ...]
    table: pd.DataFrame = field(default_factory=lambda: _empty_table(()))
    report: IssueReport = field(default_factory=IssueReport)

    def __len__(self) -> int:
        return len(self.table)

    def __iter__(self) -> Iterator[BucketRow]:
        return iter(self.rows)

    @cached_property
    def rows(self) -> list[BucketRow]:
        """One :class:`BucketRow` per bucket with activity."""
        return [
            BucketRow(
                key=key,
                start=record["start"],
                values={name: record[name] for name in self.ledgers},
            )
            for key, record in self.table.iterrows()
        ]

    def keys(self) -> list[str]:
        return list(self.table.index)

    def row(self, key: str) -> BucketRow:
        for row in self.rows:
            if row.key == key:
                return row
        raise KeyError(key)

    def to_frame(self, as_float: bool = True) -> pd.DataFrame:
        """
        Wide table: one row per bucket, one column per ledger.

        Args:
            as_float: Convert Decimal sums to floats for plotting

        Returns:
            DataFrame indexed by bucket key with a ``start`` column first
        """
        frame = self.table.copy()
        if as_float and self.ledgers:
            columns = list(self.ledgers)
            frame[columns] = frame[columns].astype(float)
        return frame

    def stack(self) -> pd.DataFrame:
        """
        Stacked bands for an area chart.

        Ledgers stack in dataset order from zero with no offset; every band
        has ``y0`` (lower edge) and ``y1`` (upper edge).

        Returns:
            Long DataFrame with columns ``bucket, start, ledger, y0, y1``
        """
        values = self.to_frame()[list(self.ledgers)]
        upper = values.cumsum(axis=1)
        lower = upper.shift(1, axis=1, fill_value=0.0)
        width = len(self.ledgers)
        return pd.DataFrame(
            {
                "bucket": np.repeat(values.index.to_numpy(dtype=object), width),
                "start": np.repeat(self.table["start"].to_numpy(dtype=object), width),
                "ledger": np.tile(np.asarray(self.ledgers, dtype=object), len(values)),
                "y0": lower.to_numpy(dtype=float).ravel(),
                "y1": upper.to_numpy(dtype=float).ravel(),
            },
            columns=["bucket", "start", "ledger", "y0", "y1"],
        )

    def max_total(self) -> float:
        """Largest stacked height, the upper end of the y domain."""
        if not len(self) or not self.ledgers:
            return 0.0
        return float(self.to_frame()[list(self.ledgers)].sum(axis=1).max())


class TimeBucketAggregator:
    """
    Aggregates a transaction stream into :class:`BucketedSeries`.

    The stream is materialized once; :meth:`aggregate` can be called with any
    granularity, any number of times, without touching the transactions
    (beyond each transaction's cached parsed date).

    **Args:**
        transactions: ``(ledger_name, transaction)`` pairs
        ledger_names: Stack keys. Defaults to ledger names in order of first
            appearance in the stream.

    **Example:**
        ```python
        aggregator = TimeBucketAggregator.from_book(book)
        monthly = aggregator.aggregate("Monthly")
        quarterly = aggregator.aggregate(Granularity.QUARTERLY)
        ```
    """

    def __init__(
        self,
        transactions: Iterable[tuple[str, Transaction]],
        ledger_names: Sequence[str] | None = None,
    ):
        self._stream = list(transactions)
        if ledger_names is None:
            ledger_names = [name for name, _ in self._stream]
        self.ledgers: tuple[str, ...] = tuple(dict.fromkeys(ledger_names))

    @classmethod
    def from_book(cls, book: LedgerBook) -> TimeBucketAggregator:
        """Use every ledger of the book as a stack key, active or not."""
        return cls(book.iter_transactions(), [lg.name for lg in book.ledgers])

    def aggregate(self, granularity: Granularity | str) -> BucketedSeries:
        granularity = Granularity.parse(granularity)
        report = IssueReport()
        records = []
        for ledger, txn in self._stream:
            day = txn.posted_on
            if day is None:
                report.add(
                    IssueKind.UNPARSEABLE_DATE,
                    f"transaction dated {txn.date!r} left out of buckets",
                    ledger=ledger,
                )
                continue
            records.append((ledger, day, txn.credit))

        # Ledgers only seen in the stream still become stack keys.
        ledgers = tuple(dict.fromkeys([*self.ledgers, *(n for n, _ in self._stream)]))
        table = _bucket_table(records, ledgers, granularity)
        logger.debug(
            "Aggregated %d transactions into %d %s buckets",
            len(self._stream),
            len(table),
            granularity.value,
        )
        return BucketedSeries(
            granularity=granularity, ledgers=ledgers, table=table, report=report
        )


def _bucket_table(
    records: Sequence[tuple[str, date, Decimal]],
    ledgers: Sequence[str],
    granularity: Granularity,
) -> pd.DataFrame:
    if not records:
        return _empty_table(ledgers)
    frame = pd.DataFrame.from_records(records, columns=["ledger", "posted_on", "credit"])
    periods = pd.DatetimeIndex(pd.to_datetime(frame["posted_on"])).to_period(
        _PERIOD_FREQ[granularity]
    )
    frame["bucket"] = periods.strftime(_KEY_FORMAT[granularity])
    frame["start"] = periods.start_time.date

    table = frame.pivot_table(
        index="bucket",
        columns="ledger",
        values="credit",
        aggfunc=lambda credits: sum(credits, ZERO),
        fill_value=ZERO,
    ).reindex(columns=list(ledgers), fill_value=ZERO)
    table.columns.name = None
    table.insert(0, "start", frame.groupby("bucket")["start"].first().reindex(table.index))
    return table
