"""
Collapse/expand state for hierarchy views.

Collapsing a node moves its children out of ``HierarchyNode.children`` into
the controller's saved storage, which hides the whole subtree from every
layout engine. Expanding moves the same list back. State is keyed by
``node_id`` and kept in the controller, never flagged on the nodes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .errors import UnknownNodeError
from .hierarchy import Hierarchy, HierarchyNode

logger = logging.getLogger(__name__)


@dataclass
class CollapseEntry:
    """Saved state of one node."""

    collapsed: bool
    saved_children: list[HierarchyNode] | None = None


class CollapseController:
    """
    Owns the collapse state of one hierarchy.

    Invariant: a node is either expanded (children live on the node) or
    collapsed (children held here, live list empty), never both.

    **Example:**
        ```python
        controller = CollapseController(hierarchy)
        controller.collapse_below_depth(1)   # show only the top level
        controller.toggle("Creditors/Acme Traders")
        layout = pack_layout(hierarchy.root, settings)
        ```
    """

    def __init__(self, hierarchy: Hierarchy):
        self.hierarchy = hierarchy
        self._state: dict[str, CollapseEntry] = {}

    def reset(self, hierarchy: Hierarchy | None = None) -> None:
        """
        Forget all collapse state.

        Pass a new hierarchy when the source data was rebuilt; the old saved
        children are dropped together with the old tree. Without an argument
        every collapsed node is expanded first.
        """
        if hierarchy is None:
            self.expand_all()
        else:
            self.hierarchy = hierarchy
        self._state.clear()

    def is_collapsed(self, node_id: str) -> bool:
        self.hierarchy.node(node_id)
        entry = self._state.get(node_id)
        return bool(entry and entry.collapsed)

    def collapsed_ids(self) -> list[str]:
        return [node_id for node_id, entry in self._state.items() if entry.collapsed]

    def full_children(self, node: HierarchyNode) -> Sequence[HierarchyNode]:
        """A node's children whether it is expanded or collapsed."""
        entry = self._state.get(node.node_id)
        if entry is not None and entry.collapsed:
            return entry.saved_children or []
        return node.children

    def has_hidden_children(self, node_id: str) -> bool:
        entry = self._state.get(node_id)
        return bool(entry and entry.collapsed and entry.saved_children)

    def collapse(self, node_id: str) -> bool:
        """Collapse a node; returns False when there was nothing to hide."""
        node = self.hierarchy.node(node_id)
        entry = self._state.get(node_id)
        if entry is not None and entry.collapsed:
            return False
        if not node.children:
            return False
        self._state[node_id] = CollapseEntry(collapsed=True, saved_children=node.children)
        node.children = []
        logger.debug("Collapsed %s", node_id)
        return True

    def expand(self, node_id: str) -> bool:
        """Expand a collapsed node; returns False when it was not collapsed."""
        node = self.hierarchy.node(node_id)
        entry = self._state.get(node_id)
        if entry is None or not entry.collapsed:
            return False
        node.children = entry.saved_children or []
        del self._state[node_id]
        logger.debug("Expanded %s", node_id)
        return True

    def toggle(self, node_id: str) -> bool:
        """
        Flip a node between expanded and collapsed.

        Leaves have nothing to hide and are left untouched.

        Returns:
            True if the node is collapsed after the call
        """
        if self.is_collapsed(node_id):
            self.expand(node_id)
            return False
        return self.collapse(node_id)

    def collapse_below_depth(self, depth: int, root: HierarchyNode | str | None = None) -> int:
        """
        Collapse every node whose depth is at least ``depth``.

        Descendants are collapsed first, so expanding a node later reveals
        its children still collapsed. With ``depth=1`` only the root's
        children remain visible.

        Returns:
            Number of nodes newly collapsed
        """
        if isinstance(root, str):
            root = self.hierarchy.node(root)
        start = root or self.hierarchy.root
        return self._collapse_from(start, depth)

    def _collapse_from(self, node: HierarchyNode, depth: int) -> int:
        count = 0
        for child in list(self.full_children(node)):
            count += self._collapse_from(child, depth)
        if node.depth >= depth and self.collapse(node.node_id):
            count += 1
        return count

    def expand_all(self) -> None:
        for node_id in list(self._state):
            self.expand(node_id)

    def check_invariants(self) -> None:
        """
        Assert the collapse invariant for every node of the hierarchy.

        Raises:
            AssertionError: if a node is marked collapsed while it still has
                live children, or a saved list leaked back without its marker
        """
        for node in self.hierarchy.all_nodes():
            entry = self._state.get(node.node_id)
            if entry is None:
                continue
            assert entry.collapsed, f"{node.node_id}: stale expanded entry"
            assert not node.children, (
                f"{node.node_id}: collapsed with {len(node.children)} live children"
            )
        unknown = [node_id for node_id in self._state if node_id not in self.hierarchy]
        if unknown:
            raise UnknownNodeError(unknown[0])
