"""
Unit tests for triangle voxelization.
"""

import sys
from pathlib import Path
import unittest

import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from brick_generator.mesh import Material, Mesh
from brick_generator.octree import OutOfBoundsError, SparseOctree
from brick_generator.voxelizer import (
    TriangleVoxelizer,
    closest_point_weights,
    tri_box_overlap,
)

BOX_FACES = [
    0, 1, 2, 0, 2, 3,
    4, 6, 5, 4, 7, 6,
    0, 4, 5, 0, 5, 1,
    3, 2, 6, 3, 6, 7,
    0, 3, 7, 0, 7, 4,
    1, 5, 6, 1, 6, 2,
]


def make_box(low, high, **kwargs):
    """Closed triangulated box between two corners."""
    x0, y0, z0 = low
    x1, y1, z1 = high
    positions = [
        (x0, y0, z0), (x1, y0, z0), (x1, y1, z0), (x0, y1, z0),
        (x0, y0, z1), (x1, y0, z1), (x1, y1, z1), (x0, y1, z1),
    ]
    return Mesh(positions, BOX_FACES, **kwargs)


def make_quad(low, high, z, **kwargs):
    """Two triangles spanning a rectangle in the plane at height z."""
    x0, y0 = low
    x1, y1 = high
    positions = [(x0, y0, z), (x1, y0, z), (x1, y1, z), (x0, y1, z)]
    return Mesh(positions, [0, 1, 2, 0, 2, 3], **kwargs)


class TestTriBoxOverlap(unittest.TestCase):
    """Tests for the separating axis test."""

    def test_crossing(self):
        """Test a triangle cutting through the cube."""
        tri = [(-2, -2, 0), (2, -2, 0), (0, 2, 0)]
        assert tri_box_overlap(tri, (0, 0, 0), 1.0)

    def test_contained(self):
        """Test a small triangle inside the cube."""
        tri = [(0.1, 0.1, 0.1), (0.2, 0.1, 0.1), (0.1, 0.2, 0.1)]
        assert tri_box_overlap(tri, (0, 0, 0), 0.5)

    def test_far_away(self):
        """Test a triangle separated along a cube axis."""
        tri = [(5, 0, 0), (6, 0, 0), (5, 1, 0)]
        assert not tri_box_overlap(tri, (0, 0, 0), 1.0)

    def test_touching_counts(self):
        """Test that a triangle lying on a cube face overlaps."""
        tri = [(1, -0.5, -0.5), (1, 0.5, -0.5), (1, 0, 0.5)]
        assert tri_box_overlap(tri, (0, 0, 0), 1.0)
        assert tri_box_overlap(tri, (2, 0, 0), 1.0)

    def test_separated_by_plane(self):
        """Test a triangle past a cube corner, separated by its normal."""
        tri = [(2.5, 0, -1), (0, 2.5, -1), (0, 2.5, 1)]
        assert not tri_box_overlap(tri, (0, 0, 0), 1.0)

    def test_separated_by_edge_axis(self):
        """Test a triangle whose plane cuts the cube but which misses it."""
        tri = [(1.5, 0.8, 0), (0.8, 1.5, 0), (1.5, 1.5, 0)]
        assert not tri_box_overlap(tri, (0, 0, 0), 1.0)


class TestClosestPoint(unittest.TestCase):
    """Tests for barycentric closest point weights."""

    def test_interior(self):
        """Test a point projecting into the face."""
        a = np.array([-1.0, -1.0, 1.0])
        b = np.array([2.0, -1.0, 1.0])
        c = np.array([-1.0, 2.0, 1.0])
        weights = closest_point_weights(a, b, c)
        point = weights @ np.array([a, b, c])

        assert abs(weights.sum() - 1.0) < 1e-12
        assert np.allclose(point, (0.0, 0.0, 1.0))

    def test_vertex_region(self):
        """Test a point nearest to a vertex."""
        weights = closest_point_weights(
            np.array([1.0, 1.0, 0.0]),
            np.array([2.0, 1.0, 0.0]),
            np.array([1.0, 2.0, 0.0]),
        )
        assert weights.tolist() == [1.0, 0.0, 0.0]

    def test_edge_region(self):
        """Test a point nearest to an edge."""
        a = np.array([-1.0, 1.0, 0.0])
        b = np.array([1.0, 1.0, 0.0])
        c = np.array([0.0, 3.0, 0.0])
        point = closest_point_weights(a, b, c) @ np.array([a, b, c])
        assert np.allclose(point, (0.0, 1.0, 0.0))

    def test_degenerate(self):
        """Test that a collapsed triangle still yields valid weights."""
        p = np.array([0.3, 0.3, 0.3])
        weights = closest_point_weights(p, p, p)
        assert abs(weights.sum() - 1.0) < 1e-12


class TestTriangleVoxelizer(unittest.TestCase):
    """Tests for TriangleVoxelizer."""

    def voxelize(self, meshes, materials=(), size=3, tree=None):
        tree = tree or SparseOctree(size)
        triangles = [t for mesh in meshes for t in mesh.triangles()]
        written = TriangleVoxelizer(materials).voxelize(tree, triangles)
        return tree, written

    def test_inset_cube_single_voxel(self):
        """Test that a cube inside one voxel fills exactly that voxel."""
        cube = make_box((0.25, 0.25, 0.25), (0.75, 0.75, 0.75), material_id=0)
        tree, written = self.voxelize([cube], [Material.flat(255, 0, 0)])

        assert written == 1
        assert dict(tree.iterate_leaves()) == {(0, 0, 0): (255, 0, 0, 255)}

    def test_quad_footprint(self):
        """Test that a flat quad fills the voxels it crosses."""
        quad = make_quad((0.5, -1.5), (3.5, 1.5), 0.5, material_id=0)
        tree, written = self.voxelize([quad], [Material.flat(0, 0, 255)])

        expected = {(x, y, 0) for x in range(0, 4) for y in range(-2, 2)}
        leaves = dict(tree.iterate_leaves())
        assert set(leaves) == expected
        assert written == len(expected)
        assert all(color == (0, 0, 255, 255) for color in leaves.values())

    def test_texture_sample(self):
        """Test that textured triangles sample at their UVs."""
        image = np.zeros((3, 3, 4), dtype=np.uint8)
        image[1, 1] = (40, 80, 120, 255)
        quad = make_quad(
            (0.25, 0.25), (0.75, 0.75), 0.5,
            texcoords=[(0.6, 0.4)] * 4,
            material_id=0,
        )
        tree, _ = self.voxelize([quad], [Material(image=image)])

        color = tree.get((0, 0, 0))
        for got, want in zip(color, (40, 80, 120, 255)):
            assert abs(got - want) <= 1

    def test_vertex_colors(self):
        """Test that vertex colors are used without a material."""
        cube = make_box(
            (0.25, 0.25, 0.25), (0.75, 0.75, 0.75),
            colors=[(0.0, 1.0, 0.0)] * 8,
        )
        tree, _ = self.voxelize([cube])
        r, g, b, a = tree.get((0, 0, 0))
        assert r <= 1 and b <= 1
        assert g == 255 and a == 255

    def test_default_color(self):
        """Test that bare geometry gets the default color."""
        cube = make_box((0.25, 0.25, 0.25), (0.75, 0.75, 0.75))
        tree = SparseOctree(2)
        voxelizer = TriangleVoxelizer(default_color=(9, 9, 9, 255))
        voxelizer.voxelize(tree, list(cube.triangles()))
        color = tree.get((0, 0, 0))
        assert all(abs(got - want) <= 1 for got, want in zip(color, (9, 9, 9, 255)))

    def test_transparent_leaves_no_voxel(self):
        """Test that fully transparent samples do not create voxels."""
        cube = make_box((0.25, 0.25, 0.25), (0.75, 0.75, 0.75), material_id=0)
        tree, written = self.voxelize([cube], [Material.flat(255, 0, 0, 0)])

        assert written == 0
        assert tree.count_leaves() == 0
        assert tree.root.is_empty()

    def test_existing_voxels_kept(self):
        """Test that voxelizing again does not overwrite leaves."""
        tree = SparseOctree(2)
        tree.set((0, 0, 0), (1, 2, 3, 255))
        cube = make_box((0.25, 0.25, 0.25), (0.75, 0.75, 0.75), material_id=0)
        _, written = self.voxelize([cube], [Material.flat(255, 0, 0)], tree=tree)

        assert written == 0
        assert tree.get((0, 0, 0)) == (1, 2, 3, 255)

    def test_negative_coordinates(self):
        """Test geometry below the origin."""
        cube = make_box((-2.75, -0.75, -3.75), (-2.25, -0.25, -3.25), material_id=0)
        tree, _ = self.voxelize([cube], [Material.flat(0, 255, 0)])
        assert list(dict(tree.iterate_leaves())) == [(-3, -1, -4)]

    def test_empty_space_not_allocated(self):
        """Test that octants without triangles stay empty."""
        cube = make_box((0.25, 0.25, 0.25), (0.75, 0.75, 0.75), material_id=0)
        tree, _ = self.voxelize([cube], [Material.flat(255, 0, 0)], size=4)
        filled = [child for child in tree.root.children if child is not None]
        assert len(filled) == 1

    def test_bad_material_id(self):
        """Test that unknown material ids raise."""
        cube = make_box((0.25, 0.25, 0.25), (0.75, 0.75, 0.75), material_id=3)
        with self.assertRaises(ValueError):
            self.voxelize([cube], [Material.flat(255, 0, 0)])

    def test_outside_tree_raises(self):
        """Test that geometry beyond the root span is an error."""
        cube = make_box((5.25, 5.25, 5.0), (5.75, 5.75, 5.5), material_id=0)
        tree = SparseOctree(1)
        with self.assertRaises(OutOfBoundsError):
            self.voxelize([cube], [Material.flat(255, 0, 0)], tree=tree)
        assert tree.root.is_empty()

    def test_touching_outer_face_raises(self):
        """Test that a triangle on the root's outer face needs a larger tree."""
        quad = make_quad((0.25, 0.25), (0.75, 0.75), 1.0, material_id=0)
        with self.assertRaises(OutOfBoundsError):
            self.voxelize([quad], [Material.flat(255, 0, 0)], size=1)

        tree, written = self.voxelize([quad], [Material.flat(255, 0, 0)], size=2)
        assert set(dict(tree.iterate_leaves())) == {(0, 0, 0), (0, 0, 1)}
        assert written == 2

    def test_unit_cube_touches_neighbours(self):
        """Test that a cube on voxel faces also fills the voxels it touches."""
        cube = make_box((0, 0, 0), (1, 1, 1), material_id=0)
        tree, written = self.voxelize([cube], [Material.flat(255, 0, 0)])

        expected = {
            (x, y, z) for x in range(-1, 2) for y in range(-1, 2) for z in range(-1, 2)
        }
        leaves = dict(tree.iterate_leaves())
        assert set(leaves) == expected
        assert written == 27
        assert all(color == (255, 0, 0, 255) for color in leaves.values())


if __name__ == "__main__":
    unittest.main(verbosity=2)
