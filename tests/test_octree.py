"""
Unit tests for the sparse octree.
"""

import sys
from pathlib import Path
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from brick_generator.octree import (
    Branch,
    Leaf,
    OutOfBoundsError,
    SparseOctree,
    octant,
)


class TestOctreeBounds(unittest.TestCase):
    """Tests for bounds and growth."""

    def test_initial_bounds(self):
        """Test that a size 1 tree spans [-1, 1]."""
        tree = SparseOctree()
        assert tree.size == 1
        assert tree.bounds == (-1, 1)
        assert tree.contains_bounds((0, 0, 0))
        assert tree.contains_bounds((-1, -1, -1))
        assert not tree.contains_bounds((1, 0, 0))
        assert not tree.contains_bounds((0, -2, 0))

    def test_invalid_size(self):
        """Test that sizes below 1 are rejected."""
        with self.assertRaises(ValueError):
            SparseOctree(0)

    def test_grow_doubles_span(self):
        """Test that grow() increments size and doubles the span."""
        tree = SparseOctree()
        tree.grow()
        assert tree.size == 2
        assert tree.contains_bounds((1, 1, 1))
        assert tree.contains_bounds((-2, -2, -2))
        assert not tree.contains_bounds((2, 0, 0))

    def test_grow_to_contain(self):
        """Test growing until coordinates fit."""
        tree = SparseOctree()
        tree.grow_to_contain((-5, 0, 0), (0, 9, 0))
        assert tree.contains_bounds((-5, 0, 0))
        assert tree.contains_bounds((0, 9, 0))
        assert tree.size == 5

    def test_growth_preserves_content(self):
        """Test that every coordinate keeps its leaf across growth."""
        tree = SparseOctree(2)
        voxels = {
            (-2, -2, -2): (1, 0, 0, 255),
            (1, 1, 1): (2, 0, 0, 255),
            (-1, 0, 1): (3, 0, 0, 255),
            (0, -2, 1): (4, 0, 0, 255),
        }
        for coord, color in voxels.items():
            tree.set(coord, color)

        tree.grow()
        tree.grow()

        assert tree.size == 4
        for coord, color in voxels.items():
            assert tree.get(coord) == color
        assert tree.count_leaves() == len(voxels)

    def test_growth_from_size_one(self):
        """Test growth when leaves sit directly under the root."""
        tree = SparseOctree()
        tree.set((0, 0, 0), "a")
        tree.set((-1, 0, -1), "b")

        tree.grow()

        assert tree.get((0, 0, 0)) == "a"
        assert tree.get((-1, 0, -1)) == "b"
        assert tree.get((1, 0, 0)) is None


class TestOctreeAccess(unittest.TestCase):
    """Tests for reading and writing voxels."""

    def test_set_get(self):
        """Test setting and getting a voxel."""
        tree = SparseOctree(3)
        tree.set((2, -3, 0), (255, 128, 64, 255))
        assert tree.get((2, -3, 0)) == (255, 128, 64, 255)
        assert tree.is_leaf((2, -3, 0))
        assert tree.get((2, -3, 1)) is None

    def test_get_does_not_create(self):
        """Test that reads never allocate nodes."""
        tree = SparseOctree(4)
        assert tree.get((3, 3, 3)) is None
        assert tree.root.is_empty()

    def test_get_out_of_bounds(self):
        """Test that reads outside the tree return None."""
        tree = SparseOctree()
        assert tree.get((100, 0, 0)) is None

    def test_get_or_create_out_of_bounds(self):
        """Test that slot access outside the tree raises."""
        tree = SparseOctree()
        with self.assertRaises(OutOfBoundsError):
            tree.get_or_create((1, 0, 0))
        with self.assertRaises(IndexError):
            tree.set((0, 0, -2), (0, 0, 0, 255))

    def test_get_or_create_makes_branches_only(self):
        """Test that walking creates empty branches but no leaf."""
        tree = SparseOctree(3)
        slot = tree.get_or_create((1, 2, 3))

        assert slot.is_empty
        assert not slot.is_leaf
        assert isinstance(tree.root.children[octant((1, 2, 3), (0, 0, 0))], Branch)
        assert tree.count_leaves() == 0

        slot.set((9, 9, 9, 255))
        assert tree.get((1, 2, 3)) == (9, 9, 9, 255)
        assert isinstance(slot.body, Leaf)

    def test_clear(self):
        """Test clearing a voxel."""
        tree = SparseOctree(2)
        tree.set((0, 1, 0), (1, 2, 3, 4))
        tree.clear((0, 1, 0))
        assert tree.get((0, 1, 0)) is None

    def test_none_payload_rejected(self):
        """Test that None cannot be stored as a leaf."""
        tree = SparseOctree()
        with self.assertRaises(ValueError):
            tree.set((0, 0, 0), None)

    def test_octant_code(self):
        """Test the bit layout of octant codes."""
        assert octant((-1, -1, -1), (0, 0, 0)) == 0
        assert octant((0, -1, -1), (0, 0, 0)) == 4
        assert octant((-1, 0, -1), (0, 0, 0)) == 2
        assert octant((-1, -1, 0), (0, 0, 0)) == 1
        assert octant((5, 5, 5), (0, 0, 0)) == 7


class TestLeafTraversal(unittest.TestCase):
    """Tests for leaf search and iteration."""

    def test_take_any_leaf_empty(self):
        """Test that an empty tree yields nothing."""
        assert SparseOctree(3).take_any_leaf() is None

    def test_take_any_leaf_order(self):
        """Test that lower octant codes are visited first."""
        tree = SparseOctree(2)
        tree.set((1, 1, 1), "last")
        tree.set((-1, -1, -1), "first")
        tree.set((-2, -2, 1), "middle")

        seen = []
        while True:
            found = tree.take_any_leaf()
            if found is None:
                break
            coord, slot = found
            seen.append((coord, slot.data))
            slot.clear()

        assert seen == [
            ((-1, -1, -1), "first"),
            ((-2, -2, 1), "middle"),
            ((1, 1, 1), "last"),
        ]

    def test_take_any_leaf_prunes(self):
        """Test that drained branches are detached."""
        tree = SparseOctree(4)
        tree.set((3, -4, 2), (1, 1, 1, 255))

        coord, slot = tree.take_any_leaf()
        assert coord == (3, -4, 2)
        slot.clear()

        assert tree.take_any_leaf() is None
        assert tree.root.is_empty()

    def test_take_any_leaf_skips_empty_branches(self):
        """Test that branches created by get_or_create are skipped."""
        tree = SparseOctree(3)
        tree.get_or_create((-3, -3, -3))
        tree.set((2, 2, 2), "x")

        coord, slot = tree.take_any_leaf()
        assert coord == (2, 2, 2)
        assert slot.data == "x"

    def test_iterate_leaves(self):
        """Test iterating over all leaves."""
        tree = SparseOctree(3)
        voxels = {(x, 0, -x): (x, 0, 0, 255) for x in range(-3, 4)}
        for coord, color in voxels.items():
            tree.set(coord, color)

        found = dict(tree.iterate_leaves())
        assert found == voxels
        assert len(tree) == 7

    def test_occupied_bounds(self):
        """Test tight bounds around leaves."""
        tree = SparseOctree(3)
        assert tree.occupied_bounds() == ((0, 0, 0), (0, 0, 0))

        tree.set((-2, 0, 1), 1)
        tree.set((3, -1, 1), 2)
        assert tree.occupied_bounds() == ((-2, -1, 1), (4, 1, 2))


if __name__ == "__main__":
    unittest.main(verbosity=2)
