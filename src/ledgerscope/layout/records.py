"""
Layout records shared by the layout engines.

Engines never write geometry onto hierarchy nodes. Each run returns a
:class:`LayoutResult`: an arena of immutable records keyed by ``node_id``, in
pre-order of the visible tree, so several views can share one hierarchy.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import asdict, dataclass
from typing import Generic, TypeVar

import pandas as pd

from ..core.errors import LayoutError
from ..core.hierarchy import HierarchyNode


@dataclass(frozen=True)
class LayoutRecord:
    node_id: str
    name: str
    depth: int
    value: float
    parent_id: str | None
    is_leaf: bool


@dataclass(frozen=True)
class Circle(LayoutRecord):
    """Packed circle: center and radius in canvas units."""

    x: float
    y: float
    r: float


@dataclass(frozen=True)
class Rect(LayoutRecord):
    """Treemap cell bounds."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0


@dataclass(frozen=True)
class Arc(LayoutRecord):
    """Partition cell in unit coordinates: ``x`` is angular, ``y`` radial."""

    x0: float
    x1: float
    y0: float
    y1: float


@dataclass(frozen=True)
class TreePoint(LayoutRecord):
    """Tidy tree position with the position the node had in the previous pass."""

    x: float
    y: float
    x_prev: float
    y_prev: float
    collapsed: bool


R = TypeVar("R", bound=LayoutRecord)


class LayoutResult(Generic[R]):
    """Records of one layout pass, keyed by ``node_id``."""

    def __init__(self, kind: str, records: Sequence[R]):
        self.kind = kind
        self.records: dict[str, R] = {rec.node_id: rec for rec in records}

    def __getitem__(self, node_id: str) -> R:
        return self.records[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.records

    def __iter__(self) -> Iterator[R]:
        return iter(self.records.values())

    def __len__(self) -> int:
        return len(self.records)

    def get(self, node_id: str) -> R | None:
        return self.records.get(node_id)

    @property
    def root(self) -> R:
        return next(iter(self.records.values()))

    def leaves(self) -> list[R]:
        return [rec for rec in self.records.values() if rec.is_leaf]

    def children(self, node_id: str) -> list[R]:
        return [rec for rec in self.records.values() if rec.parent_id == node_id]

    def to_frame(self) -> pd.DataFrame:
        """Tidy DataFrame with one row per record."""
        return pd.DataFrame([asdict(rec) for rec in self.records.values()])


def ordered_children(node: HierarchyNode) -> list[HierarchyNode]:
    """Live children by value descending; ties keep their original order."""
    return sorted(node.children, key=lambda c: -c.value)


def check_values(root: HierarchyNode) -> None:
    """
    Reject hierarchies a layout cannot size.

    Raises:
        LayoutError: if any visible node has a negative or non-finite value
    """
    bad = [
        node.node_id
        for node in root.iter_preorder()
        if not math.isfinite(node.value) or node.value < 0
    ]
    if bad:
        raise LayoutError("node values must be finite and non-negative", bad)


def check_canvas(width: float, height: float) -> None:
    if not (width > 0 and height > 0):
        raise LayoutError(f"canvas must have a positive size, got {width}x{height}")
