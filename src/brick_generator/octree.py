"""
Sparse Octree

This module provides:
- SparseOctree: growable cubic index over signed integer voxel coordinates
- Branch / Leaf: the node types held in child slots (an empty slot is None)
- Slot: an in-place handle on one child slot

Coordinate system: voxel (x, y, z) is the unit cell [x, x+1] x [y, y+1] x [z, z+1].
A tree of size s spans [-2^(s-1), 2^(s-1)] on every axis.

Within a branch, children are addressed by a 3-bit octant code relative to
the branch center: bit2 is set for x >= cx, bit1 for y >= cy, bit0 for z >= cz.
The same code order drives the depth-first leaf search used by the merger.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Coord = Tuple[int, int, int]


class OutOfBoundsError(IndexError):
    """Raised when a coordinate outside the current tree span is accessed."""


@dataclass
class Leaf:
    """Terminal node holding one voxel's payload."""

    data: Any


class Branch:
    """Interior node with eight child slots."""

    __slots__ = ("children",)

    def __init__(self):
        self.children: List[Any] = [None] * 8

    def is_empty(self) -> bool:
        """Check if every child slot is empty."""
        return all(child is None for child in self.children)

    def __repr__(self) -> str:
        filled = sum(child is not None for child in self.children)
        return f"Branch(filled={filled})"


class Slot:
    """
    Handle on a single child slot of a branch.

    Reads and writes go straight to the owning branch, so a Slot can be
    held while the surrounding tree is walked.
    """

    __slots__ = ("branch", "index")

    def __init__(self, branch: Branch, index: int):
        self.branch = branch
        self.index = index

    @property
    def body(self):
        """The slot content: None, a Leaf, or a Branch."""
        return self.branch.children[self.index]

    @body.setter
    def body(self, value):
        self.branch.children[self.index] = value

    @property
    def is_leaf(self) -> bool:
        return isinstance(self.body, Leaf)

    @property
    def is_empty(self) -> bool:
        return self.body is None

    @property
    def data(self) -> Any:
        """Leaf payload, or None if the slot holds no leaf."""
        body = self.body
        return body.data if isinstance(body, Leaf) else None

    def set(self, data: Any):
        """Store a leaf payload in the slot."""
        if data is None:
            raise ValueError("Leaf payload cannot be None")
        self.branch.children[self.index] = Leaf(data)

    def clear(self):
        """Empty the slot."""
        self.branch.children[self.index] = None


def octant(coord: Sequence[float], center: Sequence[float]) -> int:
    """Get the octant code of a coordinate relative to a center."""
    return (
        ((coord[0] >= center[0]) << 2)
        | ((coord[1] >= center[1]) << 1)
        | (coord[2] >= center[2])
    )


def octant_offset(index: int, half: float) -> Tuple[float, float, float]:
    """Get the offset from a branch center to the center of child `index`."""
    return (
        half if index & 4 else -half,
        half if index & 2 else -half,
        half if index & 1 else -half,
    )


class SparseOctree:
    """
    Growable sparse octree over signed integer voxel coordinates.

    The root is always a Branch. Nodes are created lazily on write, so
    the tree only holds branches along paths leading to voxels that
    were written at some point. Access and creation cost O(size).
    """

    def __init__(self, size: int = 1):
        """
        Initialize an empty tree.

        Args:
            size: Initial depth, at least 1 (root spans [-1, 1])
        """
        if size < 1:
            raise ValueError(f"Octree size must be at least 1, got {size}")
        self.size = size
        self.root = Branch()

    @property
    def half_extent(self) -> int:
        """Half the edge length of the root cube."""
        return 1 << (self.size - 1)

    @property
    def bounds(self) -> Tuple[int, int]:
        """Valid voxel coordinate range [low, high) on every axis."""
        half = self.half_extent
        return (-half, half)

    def contains_bounds(self, coord: Sequence[int]) -> bool:
        """Check if a voxel lies inside the root span on all axes."""
        half = self.half_extent
        return all(-half <= c < half for c in coord)

    def grow(self):
        """
        Double the span of the tree.

        Each top-level octant of the old root becomes the child nearest
        to the origin inside the new top-level octant with the same code,
        so every stored voxel keeps its coordinate.
        """
        new_root = Branch()
        for i, child in enumerate(self.root.children):
            if child is None:
                continue
            wrapper = Branch()
            wrapper.children[7 - i] = child
            new_root.children[i] = wrapper

        self.root = new_root
        self.size += 1
        logger.debug("Grew octree to size %d", self.size)

    def grow_to_contain(self, *coords: Sequence[int]):
        """Grow until every given voxel coordinate is in bounds."""
        while not all(self.contains_bounds(c) for c in coords):
            self.grow()

    def get_or_create(self, coord: Sequence[int]) -> Slot:
        """
        Walk to the slot of a voxel, creating empty branches on the way.

        No leaf is ever created here; the returned slot may be empty.

        Args:
            coord: Voxel coordinate (x, y, z)

        Returns:
            Slot holding the voxel

        Raises:
            OutOfBoundsError: If the coordinate is outside the tree;
                grow() the tree first
        """
        if not self.contains_bounds(coord):
            raise OutOfBoundsError(
                f"Voxel {tuple(coord)} outside octree bounds {self.bounds}"
            )

        branch = self.root
        center = [0, 0, 0]
        half = self.half_extent
        while True:
            index = octant(coord, center)
            if half == 1:
                return Slot(branch, index)

            half >>= 1
            offset = octant_offset(index, half)
            center = [center[0] + offset[0], center[1] + offset[1], center[2] + offset[2]]

            child = branch.children[index]
            if child is None:
                child = Branch()
                branch.children[index] = child
            elif not isinstance(child, Branch):
                raise TypeError(f"Unexpected {type(child).__name__} above voxel level")
            branch = child

    def get(self, coord: Sequence[int]) -> Any:
        """
        Read a voxel without creating nodes.

        Returns:
            Leaf payload, or None if the voxel is empty or out of bounds
        """
        if not self.contains_bounds(coord):
            return None

        node = self.root
        center = [0, 0, 0]
        half = self.half_extent
        while True:
            index = octant(coord, center)
            child = node.children[index]
            if half == 1 or child is None:
                return child.data if isinstance(child, Leaf) else None

            half >>= 1
            offset = octant_offset(index, half)
            center = [center[0] + offset[0], center[1] + offset[1], center[2] + offset[2]]
            node = child

    def is_leaf(self, coord: Sequence[int]) -> bool:
        """Check if a voxel holds a leaf."""
        return self.get(coord) is not None

    def set(self, coord: Sequence[int], data: Any):
        """Store a leaf payload at a voxel."""
        self.get_or_create(coord).set(data)

    def clear(self, coord: Sequence[int]):
        """Empty a voxel."""
        self.get_or_create(coord).clear()

    def take_any_leaf(self) -> Optional[Tuple[Coord, Slot]]:
        """
        Find some remaining leaf.

        The walk is depth-first with an explicit stack, visiting children
        in octant-code order and fully descending one octant before the
        next. Branches found empty along the way are detached, so repeated
        calls while the caller clears leaves do not rescan drained regions.

        Returns:
            (coordinate, slot) of the first leaf found, or None when the
            tree holds no leaves
        """
        stack = [(self.root, (0, 0, 0), self.half_extent, 0)]
        while stack:
            branch, center, half, index = stack.pop()

            if index == 8:
                if stack and branch.is_empty():
                    parent, _, _, next_index = stack[-1]
                    parent.children[next_index - 1] = None
                continue

            stack.append((branch, center, half, index + 1))
            child = branch.children[index]
            if child is None:
                continue

            if half == 1:
                if isinstance(child, Leaf):
                    coord = (
                        center[0] if index & 4 else center[0] - 1,
                        center[1] if index & 2 else center[1] - 1,
                        center[2] if index & 1 else center[2] - 1,
                    )
                    return coord, Slot(branch, index)
                continue

            child_half = half >> 1
            offset = octant_offset(index, child_half)
            child_center = (
                center[0] + offset[0],
                center[1] + offset[1],
                center[2] + offset[2],
            )
            stack.append((child, child_center, child_half, 0))

        return None

    def iterate_leaves(self) -> Iterator[Tuple[Coord, Any]]:
        """
        Iterate over all leaves in octant-code depth-first order.

        The tree must not be modified while iterating.

        Yields:
            Tuples of ((x, y, z), data)
        """
        stack = [(self.root, (0, 0, 0), self.half_extent)]
        while stack:
            branch, center, half = stack.pop()

            if half == 1:
                for index, child in enumerate(branch.children):
                    if isinstance(child, Leaf):
                        yield (
                            (
                                center[0] if index & 4 else center[0] - 1,
                                center[1] if index & 2 else center[1] - 1,
                                center[2] if index & 1 else center[2] - 1,
                            ),
                            child.data,
                        )
                continue

            child_half = half >> 1
            # Pushed in reverse so octant 0 is popped first
            for index in range(7, -1, -1):
                child = branch.children[index]
                if child is None:
                    continue
                offset = octant_offset(index, child_half)
                stack.append((
                    child,
                    (center[0] + offset[0], center[1] + offset[1], center[2] + offset[2]),
                    child_half,
                ))

    def count_leaves(self) -> int:
        """Count the number of stored leaves."""
        return sum(1 for _ in self.iterate_leaves())

    def __len__(self) -> int:
        return self.count_leaves()

    def occupied_bounds(self) -> Tuple[Coord, Coord]:
        """
        Get tight bounds around stored leaves.

        Returns:
            (min_xyz, max_xyz) with an exclusive upper bound, or
            ((0, 0, 0), (0, 0, 0)) for an empty tree
        """
        low = None
        high = None
        for coord, _ in self.iterate_leaves():
            if low is None:
                low = list(coord)
                high = [c + 1 for c in coord]
            else:
                for axis in range(3):
                    low[axis] = min(low[axis], coord[axis])
                    high[axis] = max(high[axis], coord[axis] + 1)
        if low is None:
            return ((0, 0, 0), (0, 0, 0))
        return (tuple(low), tuple(high))
