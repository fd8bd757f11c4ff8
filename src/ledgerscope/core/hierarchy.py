"""
Hierarchy construction for LedgerScope.

The :class:`HierarchyBuilder` assembles ledgers (or a nested grouping) into a
rooted tree of :class:`HierarchyNode` objects and computes the derived numbers
every view needs:

- ``total_credit`` / ``total_debit``: a strict post-order fold. Each node adds
  the totals of its children to the amounts it declares itself.
- ``value``: the sizing metric, chosen by the consumer through :class:`Sizing`.
- ``share``: closing balance over the sum of sibling balances (color only).

Nodes with more children than the fan-out threshold keep the first N children
and get a synthetic overflow node holding the aggregate of the rest. The
truncation runs top-down before the fold, so overflow totals take part in it.

Every node gets a ``node_id`` built from its name path. Collapse state and
layout records are keyed by that id, so it stays stable across rebuilds of
the same data.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

import numpy as np

from .errors import ConfigError, UnknownNodeError
from .models import ZERO, Ledger, LedgerBook, parse_amount
from .report import IssueKind, IssueReport
from .settings import HierarchySettings

logger = logging.getLogger(__name__)

ChildrenOf = Callable[["HierarchyNode"], Sequence["HierarchyNode"]]


class NodeKind(Enum):
    """Node roles inside a hierarchy."""

    ROOT = "root"
    GROUP = "group"
    LEDGER = "ledger"
    ENTRY = "entry"
    OVERFLOW = "overflow"


class Sizing(Enum):
    """
    Sizing strategies for the ``value`` of leaf nodes.

    - ``LOG``: ``ln(closing_balance + 1)``, keeps small ledgers visible (packing)
    - ``NORMALIZED``: min-max normalized square root of the balance over
      sibling ledgers, in ``[0, 1]`` (treemap area)
    - ``ACTIVITY``: ``credit + debit`` where declared, otherwise 1 (sunburst)
    - ``BALANCE``: the raw closing balance
    """

    LOG = "log"
    NORMALIZED = "normalized"
    ACTIVITY = "activity"
    BALANCE = "balance"


@dataclass(eq=False)
class HierarchyNode:
    """
    A node of a ledger hierarchy.

    Nodes compare by identity. ``credit``/``debit`` are the amounts the node
    declares itself; ``total_credit``/``total_debit`` include the subtree.
    ``balance`` is the closing balance for ledgers and overflow nodes.
    """

    name: str
    kind: NodeKind
    children: list[HierarchyNode] = field(default_factory=list)
    credit: Decimal = ZERO
    debit: Decimal = ZERO
    declares_activity: bool = False
    balance: Decimal | None = None
    ledger: Ledger | None = None
    overflow_count: int = 0
    node_id: str = ""
    depth: int = 0
    value: float = 0.0
    total_credit: Decimal = ZERO
    total_debit: Decimal = ZERO
    share: float | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def iter_preorder(self) -> Iterator[HierarchyNode]:
        """Yield this node and its live descendants, parents first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> list[HierarchyNode]:
        return [n for n in self.iter_preorder() if n.is_leaf]

    def height(self) -> int:
        """Depth of the deepest live descendant below this node."""
        return max((n.depth for n in self.iter_preorder()), default=self.depth) - self.depth

    def __repr__(self) -> str:
        return (
            f"HierarchyNode({self.node_id!r}, kind={self.kind.value}, "
            f"children={len(self.children)}, value={self.value:g})"
        )


def _live_children(node: HierarchyNode) -> Sequence[HierarchyNode]:
    return node.children


def _segment(name: str) -> str:
    return name.replace("%", "%25").replace("/", "%2F").replace("#", "%23")


class Hierarchy:
    """
    A built hierarchy plus a lookup of every node by ``node_id``.

    The index covers the full tree as built, including nodes that are later
    hidden by a collapse, so collapse operations can always find them.
    """

    def __init__(self, root: HierarchyNode, sizing: Sizing, report: IssueReport):
        self.root = root
        self.sizing = sizing
        self.report = report
        self._index: dict[str, HierarchyNode] = {}
        self._parents: dict[str, str | None] = {}
        for node in root.iter_preorder():
            self._index[node.node_id] = node
            for child in node.children:
                self._parents[child.node_id] = node.node_id
        self._parents[root.node_id] = None

    def node(self, node_id: str) -> HierarchyNode:
        try:
            return self._index[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def parent(self, node_id: str) -> HierarchyNode | None:
        if node_id not in self._parents:
            raise UnknownNodeError(node_id)
        parent_id = self._parents[node_id]
        return self._index[parent_id] if parent_id is not None else None

    def all_nodes(self) -> list[HierarchyNode]:
        """Every node of the built tree in pre-order, visible or not."""
        return list(self._index.values())

    def visible_nodes(self) -> list[HierarchyNode]:
        return list(self.root.iter_preorder())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[HierarchyNode]:
        return self.root.iter_preorder()

    def refold(self, children_of: ChildrenOf | None = None) -> None:
        """
        Recompute totals and values from the leaves.

        Args:
            children_of: How to find a node's full child list. Pass
                ``CollapseController.full_children`` to include collapsed
                subtrees; defaults to the live children.
        """
        children_of = children_of or _live_children
        fold_totals(self.root, children_of)
        assign_values(self.root, self.sizing, children_of, IssueReport())

    def check_fold(self, children_of: ChildrenOf | None = None) -> bool:
        """Verify the bottom-up fold invariant on every node."""
        children_of = children_of or _live_children
        stack = [self.root]
        while stack:
            node = stack.pop()
            kids = list(children_of(node))
            credit = node.credit + sum((c.total_credit for c in kids), ZERO)
            debit = node.debit + sum((c.total_debit for c in kids), ZERO)
            if credit != node.total_credit or debit != node.total_debit:
                return False
            stack.extend(kids)
        return True

    def to_dict(self, node: HierarchyNode | None = None) -> dict[str, Any]:
        """Nested ``{name, children, ...}`` view of the live tree."""
        node = node or self.root
        out: dict[str, Any] = {
            "id": node.node_id,
            "name": node.name,
            "kind": node.kind.value,
            "value": node.value,
            "total_credit": float(node.total_credit),
            "total_debit": float(node.total_debit),
        }
        if node.share is not None:
            out["share"] = node.share
        if node.balance is not None:
            out["balance"] = float(node.balance)
        if node.children:
            out["children"] = [self.to_dict(c) for c in node.children]
        return out


def subtree_totals(
    node: HierarchyNode, children_of: ChildrenOf = _live_children
) -> tuple[Decimal, Decimal]:
    """Credit and debit of a subtree, without touching the nodes."""
    credit, debit = node.credit, node.debit
    for child in children_of(node):
        c, d = subtree_totals(child, children_of)
        credit += c
        debit += d
    return credit, debit


def subtree_balance(
    node: HierarchyNode, children_of: ChildrenOf = _live_children
) -> Decimal | None:
    """Sum of the balances found in a subtree (None when none is declared)."""
    if node.balance is not None:
        return node.balance
    found = [subtree_balance(c, children_of) for c in children_of(node)]
    found = [b for b in found if b is not None]
    return sum(found, ZERO) if found else None


def truncate_fan_out(node: HierarchyNode, limit: int, label: str) -> None:
    """
    Bound the number of children per node, top-down.

    Keeps the first ``limit`` children in their current order and appends one
    overflow node carrying the aggregate totals and balance of the rest.
    """
    if len(node.children) > limit:
        kept, excluded = node.children[:limit], node.children[limit:]
        credit = debit = ZERO
        for child in excluded:
            c, d = subtree_totals(child)
            credit += c
            debit += d
        balances = [b for b in (subtree_balance(c) for c in excluded) if b is not None]
        overflow = HierarchyNode(
            name=label,
            kind=NodeKind.OVERFLOW,
            credit=credit,
            debit=debit,
            declares_activity=True,
            balance=sum(balances, ZERO) if balances else None,
            overflow_count=len(excluded),
        )
        node.children = kept + [overflow]
        logger.debug(
            "Truncated %r to %d children (+%d in overflow)",
            node.name,
            limit,
            len(excluded),
        )
    for child in node.children:
        truncate_fan_out(child, limit, label)


def assign_ids(
    node: HierarchyNode,
    parent_id: str | None = None,
    depth: int = 0,
    segment: str | None = None,
) -> None:
    """Assign path-based ``node_id`` and ``depth``; duplicate sibling names get ``#n``."""
    segment = segment or _segment(node.name)
    node.node_id = segment if parent_id is None else f"{parent_id}/{segment}"
    node.depth = depth
    seen: dict[str, int] = {}
    for child in node.children:
        seen[child.name] = seen.get(child.name, 0) + 1
        child_segment = _segment(child.name)
        if seen[child.name] > 1:
            child_segment = f"{child_segment}#{seen[child.name]}"
        assign_ids(child, node.node_id, depth + 1, child_segment)


def fold_totals(node: HierarchyNode, children_of: ChildrenOf = _live_children) -> None:
    """Post-order fold of credit/debit totals."""
    node.total_credit = node.credit
    node.total_debit = node.debit
    for child in children_of(node):
        fold_totals(child, children_of)
        node.total_credit += child.total_credit
        node.total_debit += child.total_debit


def _leaf_value(node: HierarchyNode, sizing: Sizing) -> float:
    if sizing is Sizing.ACTIVITY:
        if node.declares_activity:
            return float(node.credit + node.debit)
        return 1.0
    balance = max(float(node.balance), 0.0) if node.balance is not None else 0.0
    if sizing is Sizing.LOG:
        return math.log1p(balance)
    # NORMALIZED leaves are rescaled per sibling set afterwards.
    return balance


def _normalize_siblings(
    parent: HierarchyNode,
    kids: Sequence[HierarchyNode],
    children_of: ChildrenOf,
    report: IssueReport,
) -> None:
    sized = [c for c in kids if c.balance is not None and not children_of(c)]
    if not sized:
        return
    roots = np.sqrt(np.maximum([float(c.balance) for c in sized], 0.0))
    lo, hi = float(roots.min()), float(roots.max())
    if hi == lo:
        report.add(
            IssueKind.DIVISION_DEGENERATE,
            f"all {len(sized)} balances under {parent.name!r} are equal, sizing them 0",
            ledger=parent.name,
        )
        normalized = np.zeros_like(roots)
    else:
        normalized = (roots - lo) / (hi - lo)
    for child, value in zip(sized, normalized):
        child.value = float(value)


def assign_values(
    node: HierarchyNode,
    sizing: Sizing,
    children_of: ChildrenOf = _live_children,
    report: IssueReport | None = None,
) -> None:
    """Compute ``value`` bottom-up and ``share`` per sibling set."""
    report = report if report is not None else IssueReport()
    kids = list(children_of(node))
    for child in kids:
        assign_values(child, sizing, children_of, report)

    if not kids:
        node.value = _leaf_value(node, sizing)
        return
    if sizing is Sizing.NORMALIZED:
        _normalize_siblings(node, kids, children_of, report)
    own = 0.0
    if sizing is Sizing.ACTIVITY and node.declares_activity:
        own = float(node.credit + node.debit)
    node.value = own + sum(c.value for c in kids)
    _assign_shares(node, kids, report)


def _assign_shares(
    parent: HierarchyNode, kids: Sequence[HierarchyNode], report: IssueReport
) -> None:
    balanced = [c for c in kids if c.balance is not None]
    if not balanced:
        return
    total = sum((c.balance for c in balanced), ZERO)
    if total == 0:
        report.add(
            IssueKind.DIVISION_DEGENERATE,
            f"balances under {parent.name!r} sum to zero, shares set to 0",
            ledger=parent.name,
        )
        for child in balanced:
            child.share = 0.0
        return
    for child in balanced:
        child.share = float(child.balance / total)


class HierarchyBuilder:
    """
    Builds :class:`Hierarchy` objects from ledgers or nested groupings.

    **Args:**
        settings: Fan-out threshold and overflow label

    **Example:**
        ```python
        from ledgerscope.core.hierarchy import HierarchyBuilder, Sizing

        builder = HierarchyBuilder()
        packing = builder.from_book(book, sizing=Sizing.LOG)
        treemap = builder.from_book(book, sizing=Sizing.NORMALIZED)
        sunburst = builder.from_nested(ledger_tree, sizing=Sizing.ACTIVITY)
        ```
    """

    def __init__(self, settings: HierarchySettings | None = None):
        self.settings = settings or HierarchySettings()

    def from_book(
        self,
        book: LedgerBook,
        *,
        sizing: Sizing = Sizing.LOG,
        include_transactions: bool = False,
        fan_out: int | None = None,
    ) -> Hierarchy:
        return self.from_ledgers(
            book.name,
            book.ledgers,
            sizing=sizing,
            include_transactions=include_transactions,
            fan_out=fan_out,
        )

    def from_ledgers(
        self,
        root_name: str,
        ledgers: Sequence[Ledger],
        *,
        sizing: Sizing = Sizing.LOG,
        include_transactions: bool = False,
        fan_out: int | None = None,
    ) -> Hierarchy:
        """
        Build ``root -> ledgers`` (optionally ``-> transactions``).

        Ledger lists are not truncated unless ``fan_out`` is given.
        """
        self._check_transactions(sizing, include_transactions)
        root = HierarchyNode(name=root_name, kind=NodeKind.ROOT)
        root.children = [self._ledger_node(lg, include_transactions) for lg in ledgers]
        return self._finish(root, sizing, fan_out)

    def from_groups(
        self,
        root_name: str,
        groups: Mapping[str, Sequence[Ledger]],
        *,
        sizing: Sizing = Sizing.LOG,
        include_transactions: bool = False,
        fan_out: int | None = None,
    ) -> Hierarchy:
        """Build ``root -> groups -> ledgers`` from several ledger lists."""
        self._check_transactions(sizing, include_transactions)
        root = HierarchyNode(name=root_name, kind=NodeKind.ROOT)
        for group_name, ledgers in groups.items():
            group = HierarchyNode(name=group_name, kind=NodeKind.GROUP)
            group.children = [
                self._ledger_node(lg, include_transactions) for lg in ledgers
            ]
            root.children.append(group)
        return self._finish(root, sizing, fan_out)

    def from_nested(
        self,
        data: Mapping[str, Any],
        *,
        sizing: Sizing = Sizing.ACTIVITY,
        fan_out: int | None | bool = True,
    ) -> Hierarchy:
        """
        Build from a nested ``{name, children, credit?, debit?}`` mapping.

        ``fan_out=True`` (the default) applies the configured threshold,
        ``None``/``False`` disables truncation, an integer overrides it.
        """
        root = self._nested_node(data, depth=0)
        root.kind = NodeKind.ROOT
        if fan_out is True:
            limit = self.settings.fan_out
        elif fan_out is False:
            limit = None
        else:
            limit = fan_out
        return self._finish(root, sizing, limit)

    def _check_transactions(self, sizing: Sizing, include_transactions: bool) -> None:
        if include_transactions and sizing is not Sizing.ACTIVITY:
            raise ConfigError(
                "include_transactions requires Sizing.ACTIVITY; "
                f"balance-based sizing {sizing.value!r} has no meaning for transactions"
            )

    def _ledger_node(self, ledger: Ledger, include_transactions: bool) -> HierarchyNode:
        node = HierarchyNode(
            name=ledger.name,
            kind=NodeKind.LEDGER,
            balance=ledger.closing_balance,
            ledger=ledger,
        )
        if include_transactions:
            node.children = [
                HierarchyNode(
                    name=txn.voucher_no or txn.date,
                    kind=NodeKind.ENTRY,
                    credit=txn.credit,
                    debit=txn.debit,
                    declares_activity=True,
                )
                for txn in ledger.transactions
            ]
        if not node.children:
            node.credit = ledger.aggregate_credit
            node.debit = ledger.aggregate_debit
            node.declares_activity = True
        return node

    def _nested_node(self, data: Mapping[str, Any], depth: int) -> HierarchyNode:
        if not isinstance(data, Mapping):
            raise ConfigError(f"nested hierarchy entries must be mappings, got {type(data).__name__}")
        credit_raw, debit_raw = data.get("credit"), data.get("debit")
        credit, _ = parse_amount(credit_raw)
        debit, _ = parse_amount(debit_raw)
        balance = None
        if data.get("closing_balance") is not None:
            balance, _ = parse_amount(data["closing_balance"])
        node = HierarchyNode(
            name=str(data.get("name", data.get("ledger_name", ""))),
            kind=NodeKind.GROUP,
            credit=credit,
            debit=debit,
            declares_activity=credit_raw is not None or debit_raw is not None,
            balance=balance,
        )
        children = data.get("children") or []
        node.children = [self._nested_node(c, depth + 1) for c in children]
        if not node.children and depth > 0:
            node.kind = NodeKind.LEDGER
        return node

    def _finish(
        self, root: HierarchyNode, sizing: Sizing, fan_out: int | None
    ) -> Hierarchy:
        report = IssueReport()
        if fan_out is not None:
            if fan_out < 1:
                raise ConfigError("fan_out must be >= 1")
            truncate_fan_out(root, fan_out, self.settings.overflow_label)
        assign_ids(root)
        fold_totals(root)
        assign_values(root, sizing, report=report)
        hierarchy = Hierarchy(root, sizing, report)
        logger.info(
            "Built %s hierarchy %r with %d nodes", sizing.value, root.name, len(hierarchy)
        )
        return hierarchy
