"""
Radial partition (sunburst) layout and its zoomable view.

:func:`partition_layout` assigns every visible node a cell in unit
coordinates: ``x0..x1`` is the angular fraction of the full circle and
``y0..y1`` the radial band of its depth. It knows nothing about pixels.

:class:`SunburstView` maps unit cells to angles and radii. A zoom is a pure
interpolation of four scalar ranges (angular domain, radial domain, radial
range); the layout itself is never recomputed while zooming.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from ..core.hierarchy import Hierarchy, HierarchyNode
from ..core.settings import LayoutSettings
from .records import Arc, LayoutResult, check_values, ordered_children

TAU = 2 * math.pi


def partition_layout(root: HierarchyNode) -> LayoutResult[Arc]:
    """
    Partition the visible hierarchy under ``root`` into unit cells.

    The root spans ``x`` in ``[0, 1]`` and the first radial band; children
    split their parent's angular span in proportion to ``value`` and take
    the next band. With ``n = height + 1`` bands, depth ``d`` (relative to
    ``root``) occupies ``[d / n, (d + 1) / n]``.

    A parent whose own declared activity is part of its value leaves that
    share of its span empty.
    """
    check_values(root)
    n = root.height() + 1
    base = root.depth
    records: list[Arc] = []

    def visit(node: HierarchyNode, parent_id: str | None, x0: float, x1: float) -> None:
        depth = node.depth - base
        children = ordered_children(node)
        records.append(
            Arc(
                node_id=node.node_id,
                name=node.name,
                depth=node.depth,
                value=node.value,
                parent_id=parent_id,
                is_leaf=not children,
                x0=x0,
                x1=x1,
                y0=depth / n,
                y1=(depth + 1) / n,
            )
        )
        k = (x1 - x0) / node.value if node.value else 0.0
        cursor = x0
        for child in children:
            end = cursor + child.value * k
            visit(child, node.node_id, cursor, end)
            cursor = end

    visit(root, None, 0.0, 1.0)
    return LayoutResult("partition", records)


@dataclass(frozen=True)
class ArcGeometry:
    """Angles in radians, radii in canvas units."""

    start_angle: float
    end_angle: float
    inner_radius: float
    outer_radius: float

    @property
    def mid_angle(self) -> float:
        return (self.start_angle + self.end_angle) / 2


def _normalize(value: float, lo: float, hi: float) -> float:
    if hi == lo:
        return 0.5
    return (value - lo) / (hi - lo)


def _lerp(a: float, b: float, t: float) -> float:
    return a * (1 - t) + b * t


def _lerp_pair(a: tuple[float, float], b: tuple[float, float], t: float) -> tuple[float, float]:
    return (_lerp(a[0], b[0], t), _lerp(a[1], b[1], t))


@dataclass(frozen=True)
class SunburstView:
    """
    Scales of a sunburst chart.

    Angles use a linear scale from ``x_domain`` onto ``[0, 2π]``; radii use a
    square-root scale from ``y_domain`` onto ``y_range``. The unzoomed view
    has both domains at ``[0, 1]`` and the range at ``[0, radius]``.

    **Example:**
        ```python
        view = SunburstView.from_settings(settings)
        target = view.zoom_target(arcs["Creditors/Acme Traders"])
        frames = [view.interpolate(target, t / 10) for t in range(11)]
        geometry = frames[-1].arc(arcs["Creditors/Acme Traders/INV-1"])
        ```
    """

    radius: float
    inner_offset: float = 20.0
    x_domain: tuple[float, float] = (0.0, 1.0)
    y_domain: tuple[float, float] = (0.0, 1.0)
    y_range: tuple[float, float] | None = None

    def __post_init__(self):
        if self.y_range is None:
            object.__setattr__(self, "y_range", (0.0, self.radius))

    @classmethod
    def from_settings(cls, settings: LayoutSettings | None = None) -> SunburstView:
        settings = settings or LayoutSettings()
        return cls(radius=settings.radius, inner_offset=settings.sunburst_inner_offset)

    def x(self, value: float) -> float:
        return TAU * _normalize(value, *self.x_domain)

    def y(self, value: float) -> float:
        lo, hi = self.y_domain
        t = _normalize(math.sqrt(max(value, 0.0)), math.sqrt(max(lo, 0.0)), math.sqrt(max(hi, 0.0)))
        r0, r1 = self.y_range
        return r0 + (r1 - r0) * t

    def arc(self, record: Arc) -> ArcGeometry:
        """Angles clamped to ``[0, 2π]``, radii clamped to ``>= 0``."""
        return ArcGeometry(
            start_angle=max(0.0, min(TAU, self.x(record.x0))),
            end_angle=max(0.0, min(TAU, self.x(record.x1))),
            inner_radius=max(0.0, self.y(record.y0)),
            outer_radius=max(0.0, self.y(record.y1)),
        )

    def zoom_target(self, record: Arc) -> SunburstView:
        """View that shows ``record`` as the full circle."""
        return replace(
            self,
            x_domain=(record.x0, record.x1),
            y_domain=(record.y0, 1.0),
            y_range=(self.inner_offset if record.y0 else 0.0, self.radius),
        )

    def reset(self) -> SunburstView:
        return replace(self, x_domain=(0.0, 1.0), y_domain=(0.0, 1.0), y_range=(0.0, self.radius))

    def interpolate(self, target: SunburstView, t: float) -> SunburstView:
        """Intermediate view at ``t`` in ``[0, 1]`` between this view and ``target``."""
        t = max(0.0, min(1.0, t))
        return replace(
            self,
            x_domain=_lerp_pair(self.x_domain, target.x_domain, t),
            y_domain=_lerp_pair(self.y_domain, target.y_domain, t),
            y_range=_lerp_pair(self.y_range, target.y_range, t),
        )

    def is_visible(self, record: Arc) -> bool:
        """Whether any part of ``record`` survives the clamping."""
        geometry = self.arc(record)
        return (
            geometry.end_angle > geometry.start_angle
            and geometry.outer_radius > geometry.inner_radius
        )


def legend_nodes(hierarchy: Hierarchy, node_id: str) -> list[HierarchyNode]:
    """
    Nodes listed in the legend while ``node_id`` is the zoom focus.

    The focus node's children, or its siblings (the parent's children) when
    the focus is a leaf. A childless root gives an empty legend.
    """
    node = hierarchy.node(node_id)
    if node.children:
        return list(node.children)
    parent = hierarchy.parent(node_id)
    if parent is not None:
        return list(parent.children)
    return []


def color_key(record: Arc, result: LayoutResult[Arc]) -> str:
    """Leaves share their parent's color; other nodes use their own name."""
    if record.is_leaf and record.parent_id is not None:
        return result[record.parent_id].name
    return record.name
