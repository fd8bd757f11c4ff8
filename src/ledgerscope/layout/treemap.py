"""
Squarified treemap layout.

Each node's rectangle is split among its children in proportion to their
``value``, row by row, keeping cell aspect ratios close to the golden ratio.
``treemap_padding`` is inner padding: the gap between sibling cells.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..core.hierarchy import HierarchyNode
from ..core.settings import LayoutSettings
from .records import LayoutResult, Rect, check_canvas, check_values, ordered_children

PHI = (1 + math.sqrt(5)) / 2


@dataclass(eq=False)
class _Cell:
    node: HierarchyNode
    parent: _Cell | None
    children: list[_Cell] = field(default_factory=list)
    value: float = 0.0
    x0: float = 0.0
    y0: float = 0.0
    x1: float = 0.0
    y1: float = 0.0


def _build(node: HierarchyNode, parent: _Cell | None) -> _Cell:
    cell = _Cell(node=node, parent=parent, value=node.value)
    cell.children = [_build(child, cell) for child in ordered_children(node)]
    return cell


def _dice(cells: list[_Cell], total: float, x0: float, y0: float, x1: float, y1: float) -> None:
    """Split horizontally: cells side by side across ``[x0, x1]``."""
    k = (x1 - x0) / total if total else 0.0
    for cell in cells:
        cell.y0, cell.y1 = y0, y1
        cell.x0 = x0
        x0 += cell.value * k
        cell.x1 = x0


def _slice(cells: list[_Cell], total: float, x0: float, y0: float, x1: float, y1: float) -> None:
    """Split vertically: cells stacked across ``[y0, y1]``."""
    k = (y1 - y0) / total if total else 0.0
    for cell in cells:
        cell.x0, cell.x1 = x0, x1
        cell.y0 = y0
        y0 += cell.value * k
        cell.y1 = y0


def squarify(
    parent: _Cell, x0: float, y0: float, x1: float, y1: float, ratio: float = PHI
) -> None:
    """
    Lay the children of ``parent`` out inside the given bounds.

    Children are consumed in order; each row grows while its worst aspect
    ratio keeps improving, then is diced or sliced along the short side.
    """
    nodes = parent.children
    n = len(nodes)
    # A parent's own declared activity gets no cell, so tile by the children.
    value = sum(node.value for node in nodes)
    i0 = 0
    while i0 < n:
        dx, dy = x1 - x0, y1 - y0

        # First non-empty child of the row.
        i1 = i0
        sum_value = nodes[i1].value
        i1 += 1
        while not sum_value and i1 < n:
            sum_value = nodes[i1].value
            i1 += 1
        min_value = max_value = sum_value
        alpha = max(dy / dx, dx / dy) / (value * ratio) if dx > 0 and dy > 0 and value else 0.0
        beta = sum_value * sum_value * alpha
        min_ratio = max(max_value / beta, beta / min_value) if beta and min_value else math.inf

        while i1 < n:
            node_value = nodes[i1].value
            sum_value += node_value
            min_value = min(min_value, node_value)
            max_value = max(max_value, node_value)
            beta = sum_value * sum_value * alpha
            if beta and min_value:
                new_ratio = max(max_value / beta, beta / min_value)
            else:
                new_ratio = math.inf
            if new_ratio > min_ratio:
                sum_value -= node_value
                break
            min_ratio = new_ratio
            i1 += 1

        row = nodes[i0:i1]
        if dx < dy:
            bottom = y1 if not value else y0 + dy * sum_value / value
            _dice(row, sum_value, x0, y0, x1, bottom)
            y0 = bottom
        else:
            right = x1 if not value else x0 + dx * sum_value / value
            _slice(row, sum_value, x0, y0, right, y1)
            x0 = right
        value -= sum_value
        i0 = i1


def _pre_order(cell: _Cell):
    yield cell
    for child in cell.children:
        yield from _pre_order(child)


def treemap_layout(
    root: HierarchyNode, settings: LayoutSettings | None = None
) -> LayoutResult[Rect]:
    """
    Lay out the visible hierarchy under ``root`` as nested rectangles.

    The root fills ``[0, width] x [0, height]``. Sibling cells are separated
    by ``treemap_padding``; a cell too small for its padding collapses to a
    zero-size rectangle at its center instead of inverting.

    **Returns:**
        LayoutResult of :class:`Rect` records
    """
    settings = settings or LayoutSettings()
    check_canvas(settings.width, settings.height)
    check_values(root)
    padding = float(settings.treemap_padding)

    half = padding / 2

    tree = _build(root, None)
    tree.x1, tree.y1 = float(settings.width), float(settings.height)

    for cell in _pre_order(tree):
        # Every cell below the root gives back half the inner padding, and
        # every parent tiles a box grown by that half, so outermost cells
        # touch the parent edge and siblings end up ``padding`` apart.
        p = half if cell.parent is not None else 0.0
        x0, y0 = cell.x0 + p, cell.y0 + p
        x1, y1 = cell.x1 - p, cell.y1 - p
        if x1 < x0:
            x0 = x1 = (x0 + x1) / 2
        if y1 < y0:
            y0 = y1 = (y0 + y1) / 2
        cell.x0, cell.y0, cell.x1, cell.y1 = x0, y0, x1, y1
        if cell.children:
            squarify(cell, x0 - half, y0 - half, x1 + half, y1 + half)

    records = []
    for cell in _pre_order(tree):
        node = cell.node
        records.append(
            Rect(
                node_id=node.node_id,
                name=node.name,
                depth=node.depth,
                value=node.value,
                parent_id=cell.parent.node.node_id if cell.parent else None,
                is_leaf=not cell.children,
                x0=cell.x0,
                y0=cell.y0,
                x1=cell.x1,
                y1=cell.y1,
            )
        )
    return LayoutResult("treemap", records)
