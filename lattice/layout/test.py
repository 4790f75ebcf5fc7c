"""Tests for the BoxTree layout model."""

import random

import pytest

from lattice.ir import BoxSpec, InteractionStates

from .lib import BoxTree

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def tree() -> BoxTree:
    return BoxTree()


@pytest.fixture
def nested(tree: BoxTree) -> tuple[BoxTree, str, list[str]]:
    """A root box with three children."""
    root = tree.add()
    kids = [tree.add(root) for _ in range(3)]
    return tree, root, kids


def assert_links_consistent(tree: BoxTree) -> None:
    """Parent/child back-references agree in both directions."""
    for box in tree.boxes.values():
        for child_id in box.child_ids:
            assert child_id in tree, f"dangling child {child_id}"
            assert tree.get(child_id).parent_id == box.id
        if box.parent_id is not None:
            parent = tree.get(box.parent_id)
            assert parent is not None, f"dangling parent of {box.id}"
            assert parent.child_ids.count(box.id) == 1
    all_children = [c for b in tree.boxes.values() for c in b.child_ids]
    assert len(all_children) == len(set(all_children))


def assert_dense(tree: BoxTree, box_ids: list[str]) -> None:
    orders = sorted(tree.get(i).order for i in box_ids)
    assert orders == list(range(len(box_ids)))


# =============================================================================
# add
# =============================================================================


class TestAdd:
    """Tests for BoxTree.add."""

    @pytest.mark.unit
    def test_root_defaults(self, tree):
        box = tree.get(tree.add())
        assert box.parent_id is None
        assert (box.x, box.y) == (80, 80)
        assert (box.width, box.height) == (320, 200)
        assert box.spec is None
        assert box.order == 0

    @pytest.mark.unit
    def test_roots_are_staggered(self, tree):
        tree.add()
        second = tree.get(tree.add())
        third = tree.get(tree.add())
        assert (second.x, second.y) == (120, 120)
        assert (third.x, third.y) == (160, 160)
        assert third.order == 2

    @pytest.mark.unit
    def test_stagger_uses_root_group(self, tree):
        """Only the given page's roots count towards the stagger."""
        tree.add()
        tree.add()
        box = tree.get(tree.add(root_group=[]))
        assert (box.x, box.y) == (80, 80)
        assert box.order == 0

    @pytest.mark.unit
    def test_child_appended(self, nested):
        tree, root, kids = nested
        assert tree.get(root).child_ids == kids
        assert [tree.get(k).order for k in kids] == [0, 1, 2]
        assert all(tree.get(k).parent_id == root for k in kids)

    @pytest.mark.unit
    def test_unknown_parent_is_noop(self, tree):
        assert tree.add("missing") is None
        assert len(tree) == 0

    @pytest.mark.unit
    def test_fresh_ids(self, tree):
        ids = {tree.add() for _ in range(50)}
        assert len(ids) == 50


# =============================================================================
# remove
# =============================================================================


class TestRemove:
    """Tests for BoxTree.remove."""

    @pytest.mark.unit
    def test_removes_descendant_closure_only(self, tree):
        a = tree.add()
        b = tree.add()
        a1 = tree.add(a)
        a1x = tree.add(a1)
        b1 = tree.add(b)

        removed = tree.remove(a)

        assert set(removed) == {a, a1, a1x}
        assert set(tree.boxes) == {b, b1}
        assert_links_consistent(tree)

    @pytest.mark.unit
    def test_relinks_parent_and_renumbers(self, nested):
        tree, root, kids = nested
        tree.remove(kids[1])
        assert tree.get(root).child_ids == [kids[0], kids[2]]
        assert tree.get(kids[2]).order == 1
        assert_dense(tree, tree.get(root).child_ids)

    @pytest.mark.unit
    def test_renumbers_root_group(self, tree):
        roots = [tree.add() for _ in range(3)]
        tree.remove(roots[0], root_group=roots)
        assert tree.get(roots[1]).order == 0
        assert tree.get(roots[2]).order == 1

    @pytest.mark.unit
    def test_unknown_is_noop(self, nested):
        tree, _, _ = nested
        before = dict(tree.boxes)
        assert tree.remove("missing") == []
        assert tree.boxes == before


# =============================================================================
# move
# =============================================================================


class TestMove:
    """Tests for BoxTree.move."""

    @pytest.mark.unit
    def test_reparent(self, nested):
        tree, root, kids = nested
        other = tree.add()
        assert tree.move(kids[0], other, 0)
        assert tree.get(kids[0]).parent_id == other
        assert tree.get(other).child_ids == [kids[0]]
        assert kids[0] not in tree.get(root).child_ids
        assert_links_consistent(tree)

    @pytest.mark.unit
    def test_splices_at_index(self, nested):
        tree, root, kids = nested
        other = tree.add()
        a = tree.add(other)
        b = tree.add(other)
        tree.move(kids[2], other, 1)
        assert tree.get(other).child_ids == [a, kids[2], b]
        assert tree.get(kids[2]).order == 1

    @pytest.mark.unit
    def test_siblings_left_behind_keep_order(self, nested):
        tree, root, kids = nested
        tree.move(kids[0], None, 0)
        assert tree.get(kids[1]).order == 1
        assert tree.get(kids[2]).order == 2

    @pytest.mark.unit
    def test_index_clamped(self, nested):
        tree, root, kids = nested
        other = tree.add()
        tree.move(kids[0], other, 99)
        assert tree.get(kids[0]).order == 0
        tree.move(kids[1], other, -5)
        assert tree.get(other).child_ids[0] == kids[1]

    @pytest.mark.unit
    def test_into_own_subtree_rejected(self, nested):
        tree, root, kids = nested
        grandchild = tree.add(kids[0])
        assert not tree.move(root, grandchild, 0)
        assert not tree.move(root, root, 0)
        assert tree.get(root).parent_id is None
        assert_links_consistent(tree)

    @pytest.mark.unit
    def test_unknown_ids_are_noops(self, nested):
        tree, root, kids = nested
        assert not tree.move("missing", root, 0)
        assert not tree.move(kids[0], "missing", 0)
        assert tree.get(kids[0]).parent_id == root


# =============================================================================
# update / duplicate
# =============================================================================


class TestUpdates:
    """Tests for attribute updates."""

    @pytest.mark.unit
    def test_size_is_clamped(self, tree):
        box_id = tree.add()
        tree.update_size(box_id, 10, 5)
        box = tree.get(box_id)
        assert (box.width, box.height) == (120, 60)
        tree.update_size(box_id, 500, 400)
        assert (box.width, box.height) == (500, 400)

    @pytest.mark.unit
    def test_position_free(self, tree):
        box_id = tree.add()
        tree.update_position(box_id, -20, 5000)
        assert (tree.get(box_id).x, tree.get(box_id).y) == (-20, 5000)

    @pytest.mark.unit
    def test_update_never_changes_id(self, tree):
        box_id = tree.add()
        tree.update(box_id, id="hijack", label="Hero", not_a_field=1)
        box = tree.get(box_id)
        assert box.id == box_id
        assert box.label == "Hero"

    @pytest.mark.unit
    def test_update_spec(self, tree):
        box_id = tree.add()
        tree.update_spec(box_id, BoxSpec(intent="greet"))
        assert tree.get(box_id).spec.intent == "greet"
        tree.update_spec(box_id, None)
        assert tree.get(box_id).spec is None

    @pytest.mark.unit
    def test_unknown_ids(self, tree):
        assert not tree.update("x", label="a")
        assert not tree.update_size("x", 1, 1)
        assert not tree.update_position("x", 1, 1)
        assert not tree.update_spec("x", None)


class TestDuplicate:
    """Tests for shallow duplication."""

    @pytest.mark.unit
    def test_root_copy(self, tree):
        box_id = tree.add()
        tree.update(box_id, label="Hero")
        tree.add(box_id)
        tree.update_spec(
            box_id,
            BoxSpec(intent="hi", interactions=InteractionStates(hover="glow")),
        )

        copy_id = tree.duplicate(box_id)
        original, copy = tree.get(box_id), tree.get(copy_id)

        assert copy.label == "Hero (copy)"
        assert copy.child_ids == []
        assert (copy.x, copy.y) == (original.x + 40, original.y + 40)
        assert copy.order == 1
        assert copy.spec == original.spec
        assert copy.spec is not original.spec

    @pytest.mark.unit
    def test_spec_is_independent(self, tree):
        box_id = tree.add()
        tree.update_spec(box_id, BoxSpec(refinements=["one"]))
        copy_id = tree.duplicate(box_id)
        tree.get(copy_id).spec.refinements.append("two")
        assert tree.get(box_id).spec.refinements == ["one"]

    @pytest.mark.unit
    def test_nested_copy(self, nested):
        tree, root, kids = nested
        copy_id = tree.duplicate(kids[0])
        copy = tree.get(copy_id)
        assert copy.parent_id == root
        assert tree.get(root).child_ids[-1] == copy_id
        assert copy.order == 3
        assert (copy.x, copy.y) == (tree.get(kids[0]).x, tree.get(kids[0]).y)
        assert copy.label == ""

    @pytest.mark.unit
    def test_unknown(self, tree):
        assert tree.duplicate("missing") is None


# =============================================================================
# Randomized invariants
# =============================================================================


class TestInvariants:
    """Back-references hold after any operation sequence."""

    @pytest.mark.unit
    @pytest.mark.parametrize("seed", range(10))
    def test_random_operations(self, seed):
        rng = random.Random(seed)
        tree = BoxTree()
        for _ in range(200):
            ids = list(tree.boxes)
            op = rng.choice(["add", "add_child", "remove", "move"])
            if op == "add" or not ids:
                tree.add()
            elif op == "add_child":
                tree.add(rng.choice(ids))
            elif op == "remove":
                target = rng.choice(ids)
                parent_id = tree.get(target).parent_id
                expected = set(tree.subtree(target))
                removed = set(tree.remove(target))
                assert removed == expected
                assert not expected & set(tree.boxes)
                if parent_id is not None:
                    assert_dense(tree, tree.get(parent_id).child_ids)
            else:
                parent = rng.choice(ids + [None])
                tree.move(rng.choice(ids), parent, rng.randint(0, 5))
            assert_links_consistent(tree)
