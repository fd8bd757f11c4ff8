"""
Core module for LedgerScope.

Data model, statement parser, hierarchy builder, collapse state and
time-bucket aggregation. Nothing in here depends on a layout or a renderer.
"""

from .buckets import (
    BucketedSeries,
    BucketRow,
    Granularity,
    TimeBucketAggregator,
    bucket_key,
    bucket_start,
)
from .collapse import CollapseController, CollapseEntry
from .errors import (
    ConfigError,
    LayoutError,
    LedgerScopeError,
    SourceFormatError,
    UnknownGranularityError,
    UnknownNodeError,
)
from .hierarchy import (
    Hierarchy,
    HierarchyBuilder,
    HierarchyNode,
    NodeKind,
    Sizing,
)
from .models import Ledger, LedgerBook, Transaction, parse_amount, parse_date
from .parser import LedgerStatementParser, ParseResult, ScannerState, ScanState, parse_rows
from .report import Issue, IssueKind, IssueReport
from .settings import (
    HierarchySettings,
    LayoutSettings,
    ParserSettings,
    Settings,
    load_settings,
)

__all__ = [
    # Errors
    "LedgerScopeError",
    "ConfigError",
    "SourceFormatError",
    "UnknownGranularityError",
    "LayoutError",
    "UnknownNodeError",
    # Issues
    "Issue",
    "IssueKind",
    "IssueReport",
    # Settings
    "ParserSettings",
    "HierarchySettings",
    "LayoutSettings",
    "Settings",
    "load_settings",
    # Data model
    "Transaction",
    "Ledger",
    "LedgerBook",
    "parse_amount",
    "parse_date",
    # Parser
    "LedgerStatementParser",
    "ParseResult",
    "ScanState",
    "ScannerState",
    "parse_rows",
    # Hierarchy
    "Hierarchy",
    "HierarchyBuilder",
    "HierarchyNode",
    "NodeKind",
    "Sizing",
    # Collapse
    "CollapseController",
    "CollapseEntry",
    # Buckets
    "Granularity",
    "BucketRow",
    "BucketedSeries",
    "TimeBucketAggregator",
    "bucket_key",
    "bucket_start",
]
