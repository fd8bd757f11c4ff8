"""
Issue reporting for LedgerScope.

The ledger export is a human-oriented report, not a strict grammar, so the
pipeline never aborts on a bad row. Every coercion or dropped row is recorded
as an :class:`Issue` and returned next to the best-effort result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class IssueKind(Enum):
    """Categories of non-fatal data problems."""

    MALFORMED_ROW = "malformed_row"
    EMPTY_SOURCE = "empty_source"
    DIVISION_DEGENERATE = "division_degenerate"
    ORPHAN_CONTINUATION = "orphan_continuation"
    UNCLOSED_LEDGER = "unclosed_ledger"
    UNPARSEABLE_DATE = "unparseable_date"


# Kinds that leave the caller with nothing to show.
_ERROR_KINDS = frozenset({IssueKind.EMPTY_SOURCE})


@dataclass(frozen=True)
class Issue:
    """A single non-fatal problem found while processing ledger data."""

    kind: IssueKind
    message: str
    row: int | None = None
    ledger: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "row": self.row,
            "ledger": self.ledger,
        }

    def __str__(self) -> str:
        where = []
        if self.row is not None:
            where.append(f"row {self.row}")
        if self.ledger:
            where.append(f"ledger '{self.ledger}'")
        prefix = f"[{', '.join(where)}] " if where else ""
        return f"{self.kind.value}: {prefix}{self.message}"


@dataclass
class IssueReport:
    """
    Accumulated issues for a parse or aggregation run.

    Provides machine-readable results with an error/warning split, in the
    same shape the CLI uses for its exit codes.
    """

    issues: list[Issue] = field(default_factory=list)

    def add(
        self,
        kind: IssueKind,
        message: str,
        *,
        row: int | None = None,
        ledger: str | None = None,
    ) -> Issue:
        issue = Issue(kind=kind, message=message, row=row, ledger=ledger)
        self.issues.append(issue)
        logger.warning("%s", issue)
        return issue

    def extend(self, other: IssueReport) -> None:
        self.issues.extend(other.issues)

    def of_kind(self, kind: IssueKind) -> list[Issue]:
        return [issue for issue in self.issues if issue.kind is kind]

    def has_errors(self) -> bool:
        """Check if there are issues that leave no usable result."""
        return any(issue.kind in _ERROR_KINDS for issue in self.issues)

    def has_warnings(self) -> bool:
        """Check if there are recoverable issues (defaults applied, rows dropped)."""
        return any(issue.kind not in _ERROR_KINDS for issue in self.issues)

    def get_exit_code(self) -> int:
        """
        Get appropriate CLI exit code.

        Returns:
            0: Clean run, or warnings only
            2: Empty source
        """
        return 2 if self.has_errors() else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "issues": [issue.to_dict() for issue in self.issues],
            "has_errors": self.has_errors(),
            "has_warnings": self.has_warnings(),
            "exit_code": self.get_exit_code(),
        }

    def __len__(self) -> int:
        return len(self.issues)

    def __iter__(self):
        return iter(self.issues)

    def __str__(self) -> str:
        if not self.issues:
            return "No issues"
        return "\n".join(str(issue) for issue in self.issues)
