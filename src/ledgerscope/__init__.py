"""
LedgerScope - Ledger Hierarchies and Layouts for Accounting Exports

LedgerScope turns the per-ledger statement exports of an accounting package
(creditors, suppliers) into a canonical ledger document, derived hierarchies
with bottom-up credit/debit totals, time-bucketed credit series, and layout
geometry for circle packing, treemaps, sunbursts and tidy trees.

Key Features:
- **Lenient Parsing**: Malformed rows become issues in a report, never crashes
- **Derived Hierarchies**: Fan-out control, bottom-up totals, pluggable sizing
- **Collapse State**: Reversible collapse/expand keyed by stable node ids
- **Time Buckets**: Dense daily/monthly/quarterly/yearly rollups per ledger
- **Pure Layouts**: Geometry returned as records, never written onto nodes
- **Charts**: Plotly figures for every layout and the drill-down table

Pipeline Overview:
- **LedgerStatementParser**: rows -> ledgers (+ IssueReport)
- **HierarchyBuilder**: ledgers -> Hierarchy (totals, values, shares)
- **CollapseController**: hides and restores subtrees
- **TimeBucketAggregator**: transactions -> BucketedSeries
- **Layout engines**: visible hierarchy -> LayoutResult

Quick Start:
    ```python
    from ledgerscope import (
        HierarchyBuilder,
        LayoutSettings,
        Sizing,
        TimeBucketAggregator,
        convert,
        pack_layout,
    )

    result = convert("exports/creditors.xlsx")
    book = result.book

    hierarchy = HierarchyBuilder().from_book(book, sizing=Sizing.LOG)
    circles = pack_layout(hierarchy.root, LayoutSettings(width=800, height=600))

    monthly = TimeBucketAggregator.from_book(book).aggregate("Monthly")
    print(monthly.to_frame())
    ```
"""

# Version information
__version__ = "0.1.0"
__description__ = "Ledger hierarchies, time buckets and layouts for accounting exports"

from .core import (
    BucketedSeries,
    BucketRow,
    CollapseController,
    ConfigError,
    Granularity,
    Hierarchy,
    HierarchyBuilder,
    HierarchyNode,
    HierarchySettings,
    Issue,
    IssueKind,
    IssueReport,
    LayoutError,
    LayoutSettings,
    Ledger,
    LedgerBook,
    LedgerScopeError,
    LedgerStatementParser,
    NodeKind,
    ParseResult,
    ParserSettings,
    Settings,
    Sizing,
    SourceFormatError,
    TimeBucketAggregator,
    Transaction,
    UnknownGranularityError,
    UnknownNodeError,
    load_settings,
    parse_rows,
)
from .layout import (
    SunburstView,
    TidyTreeLayout,
    legend_nodes,
    pack_layout,
    partition_layout,
    treemap_layout,
)
from .sources import convert, dump_book, load_book, read_rows
from .summary import ledger_detail, ledger_summary, search_ledgers

# Import chart functions (optional - requires plotly)
try:
    from .charts import (
        bubble_chart,
        ledger_detail_chart,
        save_chart,
        stacked_area_chart,
        sunburst_chart,
        tree_chart,
        treemap_chart,
    )

    CHARTS_AVAILABLE = True
except ImportError:
    CHARTS_AVAILABLE = False

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
    # Data model and parsing
    "Transaction",
    "Ledger",
    "LedgerBook",
    "LedgerStatementParser",
    "ParseResult",
    "parse_rows",
    # Sources
    "read_rows",
    "convert",
    "load_book",
    "dump_book",
    # Hierarchy
    "Hierarchy",
    "HierarchyBuilder",
    "HierarchyNode",
    "NodeKind",
    "Sizing",
    "CollapseController",
    # Buckets
    "Granularity",
    "BucketRow",
    "BucketedSeries",
    "TimeBucketAggregator",
    # Layouts
    "pack_layout",
    "treemap_layout",
    "partition_layout",
    "SunburstView",
    "legend_nodes",
    "TidyTreeLayout",
    # Summary tables
    "ledger_summary",
    "search_ledgers",
    "ledger_detail",
    # Version info
    "__version__",
    "__description__",
]

# Add chart functions to __all__ if available
if CHARTS_AVAILABLE:
    __all__.extend(
        [
            "stacked_area_chart",
            "bubble_chart",
            "treemap_chart",
            "sunburst_chart",
            "tree_chart",
            "ledger_detail_chart",
            "save_chart",
        ]
    )
