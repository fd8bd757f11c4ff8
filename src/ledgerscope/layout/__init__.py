"""
Layout engines for LedgerScope.

Every engine reads the visible part of a hierarchy (collapsed subtrees are
skipped) and returns a :class:`LayoutResult` of immutable records keyed by
``node_id``. Nothing is written back onto the hierarchy nodes.

- :func:`pack_layout`: nested circles
- :func:`treemap_layout`: squarified rectangles
- :func:`partition_layout` + :class:`SunburstView`: zoomable sunburst
- :class:`TidyTreeLayout`: dendrogram with transition positions
"""

from .pack import pack_layout
from .partition import ArcGeometry, SunburstView, color_key, legend_nodes, partition_layout
from .records import Arc, Circle, LayoutRecord, LayoutResult, Rect, TreePoint
from .tree import TidyTreeLayout, TreeLayout, TreeLink, diagonal, tidy_positions
from .treemap import treemap_layout

__all__ = [
    # Records
    "LayoutRecord",
    "LayoutResult",
    "Circle",
    "Rect",
    "Arc",
    "TreePoint",
    # Engines
    "pack_layout",
    "treemap_layout",
    "partition_layout",
    "TidyTreeLayout",
    "tidy_positions",
    # Sunburst
    "SunburstView",
    "ArcGeometry",
    "legend_nodes",
    "color_key",
    # Tree
    "TreeLayout",
    "TreeLink",
    "diagonal",
]
