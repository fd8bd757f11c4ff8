"""
Tests for collapse/expand state over a built hierarchy.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from ledgerscope.core.collapse import CollapseController
from ledgerscope.core.errors import UnknownNodeError
from ledgerscope.core.hierarchy import HierarchyBuilder, Sizing


def _tree():
    return {
        "name": "root",
        "children": [
            {
                "name": "a",
                "children": [
                    {"name": "a1", "credit": 2},
                    {"name": "a2", "children": [{"name": "a2x", "debit": 5}]},
                ],
            },
            {"name": "b", "credit": 3},
            {"name": "c", "children": [{"name": "c1", "credit": 1}]},
        ],
    }


def _shape(node):
    return (node.node_id, [_shape(c) for c in node.children])


@pytest.fixture()
def hierarchy():
    return HierarchyBuilder().from_nested(_tree(), sizing=Sizing.ACTIVITY, fan_out=False)


@pytest.fixture()
def controller(hierarchy):
    return CollapseController(hierarchy)


class TestToggle:
    def test_collapse_hides_subtree(self, hierarchy, controller):
        assert controller.toggle("root/a") is True

        assert controller.is_collapsed("root/a")
        assert hierarchy.node("root/a").children == []
        assert controller.has_hidden_children("root/a")
        visible = [n.node_id for n in hierarchy.visible_nodes()]
        assert "root/a/a1" not in visible
        assert "root/a/a1" in hierarchy  # still indexed
        controller.check_invariants()

    def test_double_toggle_restores_tree(self, hierarchy, controller):
        before = _shape(hierarchy.root)

        controller.toggle("root/a")
        controller.toggle("root/a")

        assert _shape(hierarchy.root) == before
        assert not controller.is_collapsed("root/a")
        assert controller.collapsed_ids() == []

    def test_expand_restores_the_same_list(self, hierarchy, controller):
        kids = hierarchy.node("root/a").children

        controller.collapse("root/a")
        controller.expand("root/a")

        assert hierarchy.node("root/a").children is kids

    def test_leaf_toggle_is_noop(self, hierarchy, controller):
        assert controller.toggle("root/b") is False
        assert not controller.is_collapsed("root/b")
        assert controller.collapsed_ids() == []

    def test_collapse_and_expand_report_changes(self, controller):
        assert controller.collapse("root/c") is True
        assert controller.collapse("root/c") is False
        assert controller.expand("root/c") is True
        assert controller.expand("root/c") is False

    def test_unknown_node(self, controller):
        with pytest.raises(UnknownNodeError):
            controller.toggle("root/zzz")
        with pytest.raises(KeyError):
            controller.is_collapsed("nope")

    def test_full_children_sees_through_collapse(self, hierarchy, controller):
        node = hierarchy.node("root/a")
        kids = list(node.children)

        controller.collapse("root/a")

        assert list(controller.full_children(node)) == kids

    def test_refold_with_full_children_keeps_totals(self, hierarchy, controller):
        total = hierarchy.root.total_credit

        controller.collapse("root/a")
        hierarchy.refold(controller.full_children)

        assert hierarchy.root.total_credit == total
        assert hierarchy.check_fold(controller.full_children)

    def test_refold_on_live_children_drops_hidden_amounts(self, hierarchy, controller):
        controller.collapse("root/a")
        hierarchy.refold()

        assert hierarchy.node("root/a").total_credit == 0
        assert hierarchy.check_fold()


class TestCollapseBelowDepth:
    def test_depth_one_shows_only_top_level(self, hierarchy, controller):
        count = controller.collapse_below_depth(1)

        assert [n.node_id for n in hierarchy.visible_nodes()] == [
            "root",
            "root/a",
            "root/b",
            "root/c",
        ]
        assert count == 3  # a, a/a2, c
        controller.check_invariants()

    def test_descendants_stay_collapsed_after_expand(self, hierarchy, controller):
        controller.collapse_below_depth(1)

        controller.expand("root/a")

        assert [c.name for c in hierarchy.node("root/a").children] == ["a1", "a2"]
        assert controller.is_collapsed("root/a/a2")

    def test_depth_zero_collapses_root(self, hierarchy, controller):
        controller.collapse_below_depth(0)

        assert hierarchy.visible_nodes() == [hierarchy.root]

    def test_subtree_root_by_id(self, hierarchy, controller):
        controller.collapse_below_depth(2, root="root/a")

        assert controller.collapsed_ids() == ["root/a/a2"]

    def test_expand_all(self, hierarchy, controller):
        before = _shape(hierarchy.root)
        controller.collapse_below_depth(1)

        controller.expand_all()

        assert _shape(hierarchy.root) == before
        assert controller.collapsed_ids() == []

    def test_reset_with_rebuilt_hierarchy(self, controller):
        controller.collapse_below_depth(1)
        rebuilt = HierarchyBuilder().from_nested(_tree(), fan_out=False)

        controller.reset(rebuilt)

        assert controller.hierarchy is rebuilt
        assert controller.collapsed_ids() == []
        assert len(rebuilt.root.children) == 3


@settings(max_examples=50, deadline=None)
@given(st.lists(st.sampled_from(["root", "root/a", "root/a/a2", "root/b", "root/c"]), max_size=20))
def test_toggle_sequences_keep_invariants(ids):
    hierarchy = HierarchyBuilder().from_nested(_tree(), fan_out=False)
    controller = CollapseController(hierarchy)
    before = _shape(hierarchy.root)

    for node_id in ids:
        controller.toggle(node_id)
        controller.check_invariants()

    controller.expand_all()
    assert _shape(hierarchy.root) == before
