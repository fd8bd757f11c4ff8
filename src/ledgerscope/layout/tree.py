"""
Tidy tree (dendrogram) layout with transition bookkeeping.

Positions come from the Buchheim/Walker linear-time variant of the
Reingold-Tilford algorithm: a post-order walk places every subtree as
compactly as possible without overlap, a pre-order walk accumulates the
modifiers into final breadth positions. Breadth (``x``) is then scaled to
the canvas height and depth becomes a horizontal offset (``y``) at a fixed
level spacing, so the tree grows left to right.

:class:`TidyTreeLayout` keeps the position of every node from the previous
pass, keyed by ``node_id``, so a renderer can animate from old to new
positions after a collapse or expand.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass

from ..core.hierarchy import HierarchyNode
from ..core.settings import LayoutSettings
from .records import LayoutResult, TreePoint, check_canvas

logger = logging.getLogger(__name__)


class _Walker:
    """Per-node scratch state of the tidy tree walk."""

    __slots__ = ("node", "parent", "children", "ancestor", "a", "z", "m", "c", "s", "thread", "i")

    def __init__(self, node: HierarchyNode | None, i: int):
        self.node = node
        self.parent: _Walker | None = None
        self.children: list[_Walker] = []
        self.ancestor: _Walker | None = None  # default ancestor of the children
        self.a: _Walker = self
        self.z = 0.0  # prelim
        self.m = 0.0  # mod
        self.c = 0.0  # change
        self.s = 0.0  # shift
        self.thread: _Walker | None = None
        self.i = i


def _separation(a: _Walker, b: _Walker) -> float:
    return 1.0 if a.parent is b.parent else 2.0


def _next_left(v: _Walker) -> _Walker | None:
    return v.children[0] if v.children else v.thread


def _next_right(v: _Walker) -> _Walker | None:
    return v.children[-1] if v.children else v.thread


def _move_subtree(wm: _Walker, wp: _Walker, shift: float) -> None:
    change = shift / (wp.i - wm.i)
    wp.c -= change
    wp.s += shift
    wm.c += change
    wp.z += shift
    wp.m += shift


def _execute_shifts(v: _Walker) -> None:
    shift = change = 0.0
    for w in reversed(v.children):
        w.z += shift
        w.m += shift
        change += w.c
        shift += w.s + change


def _next_ancestor(vim: _Walker, v: _Walker, ancestor: _Walker) -> _Walker:
    return vim.a if vim.a.parent is v.parent else ancestor


def _apportion(v: _Walker, w: _Walker | None, ancestor: _Walker) -> _Walker:
    if w is None:
        return ancestor
    vip = vop = v
    vim = w
    vom = v.parent.children[0]
    sip, sop, sim, som = vip.m, vop.m, vim.m, vom.m
    while True:
        vim = _next_right(vim)
        vip = _next_left(vip)
        if vim is None or vip is None:
            break
        vom = _next_left(vom)
        vop = _next_right(vop)
        vop.a = v
        shift = vim.z + sim - vip.z - sip + _separation(vim, vip)
        if shift > 0:
            _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
            sip += shift
            sop += shift
        sim += vim.m
        sip += vip.m
        som += vom.m
        sop += vop.m
    if vim is not None and _next_right(vop) is None:
        vop.thread = vim
        vop.m += sim - sop
    if vip is not None and _next_left(vom) is None:
        vom.thread = vip
        vom.m += sip - som
        ancestor = v
    return ancestor


def _first_walk(v: _Walker) -> None:
    for child in v.children:
        _first_walk(child)
    siblings = v.parent.children
    w = siblings[v.i - 1] if v.i else None
    if v.children:
        _execute_shifts(v)
        midpoint = (v.children[0].z + v.children[-1].z) / 2
        if w is not None:
            v.z = w.z + _separation(v, w)
            v.m = v.z - midpoint
        else:
            v.z = midpoint
    elif w is not None:
        v.z = w.z + _separation(v, w)
    v.parent.ancestor = _apportion(v, w, v.parent.ancestor or siblings[0])


def _second_walk(v: _Walker, positions: dict[int, float]) -> None:
    positions[id(v)] = v.z + v.parent.m
    v.m += v.parent.m
    for child in v.children:
        _second_walk(child, positions)


def _build(node: HierarchyNode, i: int, parent: _Walker) -> _Walker:
    walker = _Walker(node, i)
    walker.parent = parent
    walker.children = [_build(child, j, walker) for j, child in enumerate(node.children)]
    return walker


def _pre_order(v: _Walker):
    yield v
    for child in v.children:
        yield from _pre_order(child)


def tidy_positions(root: HierarchyNode, breadth: float) -> dict[str, float]:
    """
    Breadth positions of the visible tree under ``root``, scaled to ``[0, breadth]``.

    Leaf neighbours that share a parent are one unit apart, cousins two; the
    outermost nodes sit half a separation inside the bounds.
    """
    holder = _Walker(None, 0)
    top = _build(root, 0, holder)
    holder.children = [top]
    _first_walk(top)
    holder.m = -top.z
    raw: dict[int, float] = {}
    _second_walk(top, raw)

    walkers = list(_pre_order(top))
    left = min(walkers, key=lambda w: raw[id(w)])
    right = max(walkers, key=lambda w: raw[id(w)])
    s = 1.0 if left is right else _separation(left, right) / 2
    tx = s - raw[id(left)]
    kx = breadth / (raw[id(right)] + s + tx)
    return {w.node.node_id: (raw[id(w)] + tx) * kx for w in walkers}


@dataclass(frozen=True)
class TreeLink:
    source_id: str
    target_id: str


class TreeLayout(LayoutResult[TreePoint]):
    """
    One pass of :class:`TidyTreeLayout`.

    **Attributes:**
        links: Parent-child edges of the visible tree
        entering: Node ids that were not visible in the previous pass
        exiting: Node ids visible in the previous pass but not in this one
        source_id: Node the transition originates from
        exit_point: ``(x, y)`` that exiting nodes and links move to
    """

    def __init__(
        self,
        records: Sequence[TreePoint],
        *,
        links: list[TreeLink],
        entering: list[str],
        exiting: list[str],
        source_id: str,
        exit_point: tuple[float, float],
    ):
        super().__init__("tree", records)
        self.links = links
        self.entering = entering
        self.exiting = exiting
        self.source_id = source_id
        self.exit_point = exit_point


def diagonal(source: tuple[float, float], target: tuple[float, float]) -> str:
    """
    SVG path of a horizontal cubic link between two ``(x, y)`` tree points.

    Tree points are breadth-first (``x`` is vertical on screen), so the path
    is drawn in ``(y, x)`` screen order.
    """
    sx, sy = source
    tx, ty = target
    mid = (sy + ty) / 2
    return f"M {sy} {sx} C {mid} {sx}, {mid} {tx}, {ty} {tx}"


class TidyTreeLayout:
    """
    Stateful tidy tree layout that remembers positions between passes.

    **Args:**
        settings: ``height`` is the breadth span, ``tree_level_spacing`` the
            horizontal distance between depths

    **Example:**
        ```python
        tree = TidyTreeLayout(settings)
        first = tree.layout(hierarchy.root)
        controller.toggle("Creditors/Acme Traders")
        second = tree.layout(hierarchy.root, source_id="Creditors/Acme Traders")
        second.entering, second.exiting   # ids to animate in / out
        ```
    """

    def __init__(self, settings: LayoutSettings | None = None):
        self.settings = settings or LayoutSettings()
        check_canvas(self.settings.width, self.settings.height)
        self._previous: dict[str, tuple[float, float]] = {}
        self._visible: set[str] = set()

    @property
    def initial_position(self) -> tuple[float, float]:
        return (self.settings.height / 2, 0.0)

    def previous_position(self, node_id: str) -> tuple[float, float] | None:
        return self._previous.get(node_id)

    def forget(self) -> None:
        """Drop remembered positions; the next pass starts from scratch."""
        self._previous.clear()
        self._visible.clear()

    def layout(
        self,
        root: HierarchyNode,
        source_id: str | None = None,
        collapsed_ids: Collection[str] = (),
    ) -> TreeLayout:
        """
        Lay out the visible tree under ``root``.

        Args:
            root: Tree to lay out (collapsed subtrees are skipped)
            source_id: Node whose toggle triggered this pass; defaults to
                the root
            collapsed_ids: Ids to flag as collapsed in the records

        Returns:
            TreeLayout whose points carry both the new position and the
            position each node starts its transition from
        """
        source_id = source_id or root.node_id
        breadth = tidy_positions(root, float(self.settings.height))
        spacing = float(self.settings.tree_level_spacing)
        collapsed = set(collapsed_ids)

        if root.node_id not in self._previous:
            self._previous[root.node_id] = self.initial_position
        source_prev = self._previous.get(source_id, self._previous[root.node_id])

        records: list[TreePoint] = []
        links: list[TreeLink] = []
        entering: list[str] = []
        stack: list[tuple[HierarchyNode, str | None]] = [(root, None)]
        while stack:
            node, parent_id = stack.pop()
            nid = node.node_id
            if nid in self._visible:
                prev = self._previous[nid]
            else:
                # Entering nodes grow out of where the source node was.
                entering.append(nid)
                prev = source_prev
            records.append(
                TreePoint(
                    node_id=nid,
                    name=node.name,
                    depth=node.depth,
                    value=node.value,
                    parent_id=parent_id,
                    is_leaf=not node.children,
                    x=breadth[nid],
                    y=(node.depth - root.depth) * spacing,
                    x_prev=prev[0],
                    y_prev=prev[1],
                    collapsed=nid in collapsed,
                )
            )
            if parent_id is not None:
                links.append(TreeLink(parent_id, nid))
            stack.extend((child, nid) for child in reversed(node.children))

        current = {rec.node_id for rec in records}
        exiting = [nid for nid in self._visible if nid not in current]
        source = next((rec for rec in records if rec.node_id == source_id), records[0])
        result = TreeLayout(
            records,
            links=links,
            entering=entering,
            exiting=sorted(exiting),
            source_id=source_id,
            exit_point=(source.x, source.y),
        )

        for rec in records:
            self._previous[rec.node_id] = (rec.x, rec.y)
        self._visible = current
        logger.debug(
            "Tree pass from %s: %d nodes, %d entering, %d exiting",
            source_id,
            len(records),
            len(entering),
            len(exiting),
        )
        return result
