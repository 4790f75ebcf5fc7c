"""Box tree: the hierarchical layout model.

A BoxTree owns every Box of a project as a flat id-indexed store. Boxes
form a forest: root boxes are placed freeform on a page canvas, nested
boxes flow inside their parent. The tree knows nothing about pages or
shared components; callers that hold those (see ``lattice.editor``) pass
the page's root list in where sibling counting needs it and keep the
cross-entity links consistent.

Every operation that references an unknown id is a no-op.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from lattice.ir import (
    MIN_HEIGHT,
    MIN_WIDTH,
    STAGGER_OFFSET,
    STAGGER_ORIGIN,
    Box,
    BoxSpec,
    new_id,
)

logger = logging.getLogger(__name__)

# Fields a generic patch may never touch
_PROTECTED_FIELDS = frozenset({"id"})


class BoxTree:
    """Mutable store of boxes with parent/child bookkeeping.

    Invariants maintained by every operation:
    - ``child.parent_id == parent.id`` for every id in ``parent.child_ids``.
    - ``parent.child_ids`` lists exactly the boxes whose ``parent_id`` is it.
    - ``order`` is dense per sibling group after ``add``, ``remove`` and
      ``duplicate``. ``move`` only rewrites the moved box's order.

    Example:
        >>> tree = BoxTree()
        >>> header = tree.add()
        >>> button = tree.add(header)
        >>> tree.children(header)[0].id == button
        True

    Args:
        boxes: Existing boxes to load, keyed by id.
    """

    def __init__(self, boxes: dict[str, Box] | None = None):
        self._boxes: dict[str, Box] = dict(boxes or {})

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def boxes(self) -> dict[str, Box]:
        """All boxes keyed by id. Mutate only through BoxTree operations."""
        return self._boxes

    def __contains__(self, box_id: object) -> bool:
        return box_id in self._boxes

    def __len__(self) -> int:
        return len(self._boxes)

    def get(self, box_id: str | None) -> Box | None:
        if box_id is None:
            return None
        return self._boxes.get(box_id)

    def children(self, box_id: str) -> list[Box]:
        """Children of a box sorted by ``order``. Empty for unknown ids."""
        box = self._boxes.get(box_id)
        if box is None:
            return []
        return self.boxes_for(box.child_ids)

    def boxes_for(self, box_ids: Iterable[str]) -> list[Box]:
        """Resolve ids to boxes sorted by ``order``, skipping unknown ids.

        The sort is stable, so ties keep the order of ``box_ids``.
        """
        found = [self._boxes[i] for i in box_ids if i in self._boxes]
        return sorted(found, key=lambda b: b.order)

    def roots(self) -> list[Box]:
        """All root boxes in the tree sorted by ``order``."""
        return sorted(
            (b for b in self._boxes.values() if b.parent_id is None),
            key=lambda b: b.order,
        )

    def descendants(self, box_id: str) -> list[str]:
        """Ids of every descendant of a box, pre-order, excluding the box."""
        result: list[str] = []
        box = self._boxes.get(box_id)
        if box is None:
            return result

        stack = list(reversed(box.child_ids))
        while stack:
            current = stack.pop()
            if current in result or current not in self._boxes:
                continue
            result.append(current)
            stack.extend(reversed(self._boxes[current].child_ids))
        return result

    def subtree(self, box_id: str) -> list[str]:
        """The box id followed by its descendants. Empty for unknown ids."""
        if box_id not in self._boxes:
            return []
        return [box_id, *self.descendants(box_id)]

    # =========================================================================
    # Structural Mutations
    # =========================================================================

    def add(
        self,
        parent_id: str | None = None,
        *,
        root_group: Sequence[str] | None = None,
    ) -> str | None:
        """Create an empty leaf box after its existing siblings.

        Root boxes get a staggered canvas position derived from how many
        roots already exist so new boxes never land exactly on top of one
        another.

        Args:
            parent_id: Container box, or None for a root box.
            root_group: Root box ids of the target page. Defaults to every
                root in the tree.

        Returns:
            The new box id, or None when ``parent_id`` is unknown.
        """
        box_id = self._fresh_id()

        if parent_id is not None:
            parent = self._boxes.get(parent_id)
            if parent is None:
                logger.debug(f"add: unknown parent {parent_id}")
                return None
            box = Box(id=box_id, parent_id=parent_id, order=len(parent.child_ids))
            parent.child_ids.append(box_id)
        else:
            order = self._root_count(root_group)
            offset = STAGGER_ORIGIN + order * STAGGER_OFFSET
            box = Box(id=box_id, order=order, x=offset, y=offset)

        self._boxes[box_id] = box
        return box_id

    def remove(
        self,
        box_id: str,
        *,
        root_group: Sequence[str] | None = None,
    ) -> list[str]:
        """Remove a box and its whole subtree.

        The parent's child list is re-linked and the surviving siblings are
        renumbered densely. For a root box the survivors of ``root_group``
        (or of all roots) are renumbered instead.

        Returns:
            Ids of every removed box (empty for unknown ids). Callers use it
            to unlink page membership and shared-component instances.
        """
        box = self._boxes.get(box_id)
        if box is None:
            return []

        removed = self.subtree(box_id)
        for rid in removed:
            del self._boxes[rid]

        if box.parent_id is not None and box.parent_id in self._boxes:
            parent = self._boxes[box.parent_id]
            survivors = [c for c in parent.child_ids if c != box_id]
            parent.child_ids = self._renumber(survivors)
        elif box.parent_id is None:
            if root_group is not None:
                self._renumber([i for i in root_group if i in self._boxes])
            else:
                self._renumber([b.id for b in self.roots()])

        logger.debug(f"Removed {len(removed)} box(es) rooted at {box_id}")
        return removed

    def move(
        self,
        box_id: str,
        new_parent_id: str | None,
        index: int,
        *,
        root_group: Sequence[str] | None = None,
    ) -> bool:
        """Reparent a box and place it at ``index`` among its new siblings.

        Only the moved box's ``order`` is rewritten; siblings left behind are
        not renumbered. Moving a box under itself or one of its descendants
        is rejected.

        Args:
            box_id: Box to move.
            new_parent_id: New container, or None to make it a root.
            index: Position among the new siblings, clamped to range.
            root_group: Root ids of the target page when moving to the root.

        Returns:
            True when the move happened.
        """
        box = self._boxes.get(box_id)
        if box is None:
            return False

        if new_parent_id is not None:
            if new_parent_id not in self._boxes:
                return False
            if new_parent_id == box_id or new_parent_id in self.descendants(box_id):
                logger.debug(f"move: {box_id} cannot move under its own subtree")
                return False

        if box.parent_id is not None and box.parent_id in self._boxes:
            old_parent = self._boxes[box.parent_id]
            old_parent.child_ids = [c for c in old_parent.child_ids if c != box_id]

        if new_parent_id is not None:
            siblings = self._boxes[new_parent_id].child_ids
            index = max(0, min(index, len(siblings)))
            siblings.insert(index, box_id)
        else:
            if root_group is not None:
                count = len([i for i in root_group if i != box_id and i in self._boxes])
            else:
                count = len([b for b in self.roots() if b.id != box_id])
            index = max(0, min(index, count))

        box.parent_id = new_parent_id
        box.order = index
        return True

    def duplicate(
        self,
        box_id: str,
        *,
        root_group: Sequence[str] | None = None,
    ) -> str | None:
        """Copy a single box (children are not copied).

        The copy keeps every attribute except its id, gets a ``(copy)``
        label suffix, a deep-copied spec, the next order in its sibling
        group, and a staggered position when it is a root.

        Returns:
            The copy's id, or None for unknown ids.
        """
        original = self._boxes.get(box_id)
        if original is None:
            return None

        copy_id = self._fresh_id()
        if original.parent_id is not None and original.parent_id in self._boxes:
            parent = self._boxes[original.parent_id]
            order = len(parent.child_ids)
            parent.child_ids.append(copy_id)
        else:
            order = self._root_count(root_group)

        offset = STAGGER_OFFSET if original.parent_id is None else 0
        copy = original.model_copy(
            deep=True,
            update={
                "id": copy_id,
                "label": f"{original.label} (copy)" if original.label else "",
                "order": order,
                "x": original.x + offset,
                "y": original.y + offset,
                "child_ids": [],
            },
        )
        self._boxes[copy_id] = copy
        return copy_id

    # =========================================================================
    # Attribute Mutations
    # =========================================================================

    def update(self, box_id: str, **patch: Any) -> bool:
        """Apply a generic attribute patch. The id is never overwritten.

        Unknown attribute names are ignored.
        """
        box = self._boxes.get(box_id)
        if box is None:
            return False

        for name, value in patch.items():
            if name in _PROTECTED_FIELDS or name not in Box.model_fields:
                continue
            setattr(box, name, value)
        return True

    def update_position(self, box_id: str, x: float, y: float) -> bool:
        box = self._boxes.get(box_id)
        if box is None:
            return False
        box.x = x
        box.y = y
        return True

    def update_size(self, box_id: str, width: float, height: float) -> bool:
        """Resize a box, clamping to the minimum usable size."""
        box = self._boxes.get(box_id)
        if box is None:
            return False
        box.width = max(MIN_WIDTH, width)
        box.height = max(MIN_HEIGHT, height)
        return True

    def update_spec(self, box_id: str, spec: BoxSpec | None) -> bool:
        box = self._boxes.get(box_id)
        if box is None:
            return False
        box.spec = spec
        return True

    def clear(self) -> None:
        self._boxes.clear()

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _fresh_id(self) -> str:
        box_id = new_id()
        while box_id in self._boxes:
            box_id = new_id()
        return box_id

    def _root_count(self, root_group: Sequence[str] | None) -> int:
        if root_group is not None:
            return len([i for i in root_group if i in self._boxes])
        return len(self.roots())

    def _renumber(self, box_ids: Sequence[str]) -> list[str]:
        """Assign dense orders following the current order (stable on ties).

        Returns:
            The ids in their new order.
        """
        ordered = self.boxes_for(box_ids)
        for index, box in enumerate(ordered):
            box.order = index
        return [b.id for b in ordered]


__all__ = ["BoxTree"]
