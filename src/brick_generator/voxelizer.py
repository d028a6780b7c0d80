"""
Triangle Voxelization Engine

This module provides:
- tri_box_overlap: exact triangle / axis-aligned cube intersection test
- TriangleVoxelizer: rasterizes mesh triangles into SparseOctree leaves

Algorithm Overview:
1. Start at the octree root with every triangle as a candidate
2. For each of the 8 child cubes, keep the triangles that intersect it
   (separating axis test) and re-center them on the child
3. Recurse until the cubes are single voxels, then sample and average
   the colors of the surviving triangles into a leaf

Cubes without candidate triangles end the recursion immediately, so
empty space never allocates nodes.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np
from numba import njit

from .color import RGBA, hsv2rgb, hsv_average
from .mesh import Material, Triangle
from .octree import Branch, Leaf, OutOfBoundsError, SparseOctree, octant_offset

logger = logging.getLogger(__name__)

VOXEL_HALF_EXTENT = 0.5


@njit(cache=True)
def _separated(
    ax: float, ay: float, az: float,
    v0x: float, v0y: float, v0z: float,
    v1x: float, v1y: float, v1z: float,
    v2x: float, v2y: float, v2z: float,
    h: float
) -> bool:
    """Check if an axis separates the triangle from a cube of half-extent h."""
    p0 = ax * v0x + ay * v0y + az * v0z
    p1 = ax * v1x + ay * v1y + az * v1z
    p2 = ax * v2x + ay * v2y + az * v2z
    r = h * (abs(ax) + abs(ay) + abs(az))
    return min(p0, p1, p2) > r or max(p0, p1, p2) < -r


@njit(cache=True)
def _tri_box_overlap(
    tri: np.ndarray,
    cx: float, cy: float, cz: float,
    h: float
) -> bool:
    """
    Separating axis test between a triangle and a cube.

    Tests the 3 cube axes, the 9 cross products of cube axes with
    triangle edges, and the triangle normal. Touching counts as
    overlapping.

    Args:
        tri: (3, 3) triangle vertices
        cx, cy, cz: Cube center
        h: Cube half-extent
    """
    v0x = tri[0, 0] - cx
    v0y = tri[0, 1] - cy
    v0z = tri[0, 2] - cz
    v1x = tri[1, 0] - cx
    v1y = tri[1, 1] - cy
    v1z = tri[1, 2] - cz
    v2x = tri[2, 0] - cx
    v2y = tri[2, 1] - cy
    v2z = tri[2, 2] - cz

    # Cube face normals
    if min(v0x, v1x, v2x) > h or max(v0x, v1x, v2x) < -h:
        return False
    if min(v0y, v1y, v2y) > h or max(v0y, v1y, v2y) < -h:
        return False
    if min(v0z, v1z, v2z) > h or max(v0z, v1z, v2z) < -h:
        return False

    e0x = v1x - v0x
    e0y = v1y - v0y
    e0z = v1z - v0z
    e1x = v2x - v1x
    e1y = v2y - v1y
    e1z = v2z - v1z
    e2x = v0x - v2x
    e2y = v0y - v2y
    e2z = v0z - v2z

    edges = (
        (e0x, e0y, e0z),
        (e1x, e1y, e1z),
        (e2x, e2y, e2z),
    )
    for ex, ey, ez in edges:
        # X x e
        if _separated(0.0, -ez, ey, v0x, v0y, v0z, v1x, v1y, v1z, v2x, v2y, v2z, h):
            return False
        # Y x e
        if _separated(ez, 0.0, -ex, v0x, v0y, v0z, v1x, v1y, v1z, v2x, v2y, v2z, h):
            return False
        # Z x e
        if _separated(-ey, ex, 0.0, v0x, v0y, v0z, v1x, v1y, v1z, v2x, v2y, v2z, h):
            return False

    # Triangle plane
    nx = e0y * e1z - e0z * e1y
    ny = e0z * e1x - e0x * e1z
    nz = e0x * e1y - e0y * e1x
    d = nx * v0x + ny * v0y + nz * v0z
    r = h * (abs(nx) + abs(ny) + abs(nz))
    if abs(d) > r:
        return False

    return True


@njit(cache=True)
def _overlap_mask(
    triangles: np.ndarray,
    cx: float, cy: float, cz: float,
    h: float
) -> np.ndarray:
    """Run the overlap test for every triangle of an (N, 3, 3) array."""
    n = triangles.shape[0]
    result = np.empty(n, dtype=np.bool_)
    for i in range(n):
        result[i] = _tri_box_overlap(triangles[i], cx, cy, cz, h)
    return result


def tri_box_overlap(
    vertices: Sequence[Sequence[float]],
    center: Sequence[float],
    half_extent: float
) -> bool:
    """
    Test a triangle against an axis-aligned cube.

    Args:
        vertices: Three (x, y, z) vertices
        center: Cube center
        half_extent: Half the cube edge length

    Returns:
        True if they intersect or touch
    """
    tri = np.ascontiguousarray(vertices, dtype=np.float64).reshape(3, 3)
    return bool(_tri_box_overlap(
        tri, float(center[0]), float(center[1]), float(center[2]), float(half_extent)
    ))


def closest_point_weights(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """
    Barycentric weights of the triangle point closest to the origin.

    Walks the Voronoi regions of the vertices and edges before falling
    back to the face interior. Degenerate triangles resolve to a vertex
    or edge instead of dividing by zero.

    Returns:
        Array (wa, wb, wc) summing to 1
    """
    ab = b - a
    ac = c - a
    ap = -a

    d1 = ab.dot(ap)
    d2 = ac.dot(ap)
    if d1 <= 0.0 and d2 <= 0.0:
        return np.array([1.0, 0.0, 0.0])

    bp = -b
    d3 = ab.dot(bp)
    d4 = ac.dot(bp)
    if d3 >= 0.0 and d4 <= d3:
        return np.array([0.0, 1.0, 0.0])

    vc = d1 * d4 - d3 * d2
    if vc <= 0.0 and d1 >= 0.0 and d3 <= 0.0 and d1 != d3:
        v = d1 / (d1 - d3)
        return np.array([1.0 - v, v, 0.0])

    cp = -c
    d5 = ab.dot(cp)
    d6 = ac.dot(cp)
    if d6 >= 0.0 and d5 <= d6:
        return np.array([0.0, 0.0, 1.0])

    vb = d5 * d2 - d1 * d6
    if vb <= 0.0 and d2 >= 0.0 and d6 <= 0.0 and d2 != d6:
        w = d2 / (d2 - d6)
        return np.array([1.0 - w, 0.0, w])

    va = d3 * d6 - d5 * d4
    edge = (d4 - d3) + (d5 - d6)
    if va <= 0.0 and (d4 - d3) >= 0.0 and (d5 - d6) >= 0.0 and edge != 0.0:
        w = (d4 - d3) / edge
        return np.array([0.0, 1.0 - w, w])

    total = va + vb + vc
    if total == 0.0:
        return np.array([1.0, 1.0, 1.0]) / 3.0
    v = vb / total
    w = vc / total
    return np.array([1.0 - v - w, v, w])


class TriangleVoxelizer:
    """
    Engine for rasterizing triangles into a sparse octree.

    The voxelizer handles:
    - Recursive octant subdivision with exact triangle/cube culling
    - UV and vertex color interpolation at the voxel center
    - Material sampling and per-voxel color averaging
    """

    def __init__(
        self,
        materials: Sequence[Material] = (),
        default_color: RGBA = (255, 255, 255, 255)
    ):
        """
        Initialize the voxelizer.

        Args:
            materials: Material table indexed by Triangle.material_id
            default_color: Color of triangles with neither a material
                nor vertex colors
        """
        self.materials = list(materials)
        self.default_color = tuple(int(c) for c in default_color)

    def voxelize(self, tree: SparseOctree, triangles: Sequence[Triangle]) -> int:
        """
        Rasterize triangles into the tree.

        The tree must already be grown to contain every voxel the
        triangles touch. Voxels that already hold a leaf keep their color.

        Args:
            tree: Target octree, modified in place
            triangles: Triangles in voxel units

        Returns:
            Number of leaves written

        Raises:
            OutOfBoundsError: If a triangle reaches outside the tree span
        """
        triangles = list(triangles)
        if not triangles:
            return 0

        for triangle in triangles:
            material_id = triangle.material_id
            if material_id is not None and not 0 <= material_id < len(self.materials):
                raise ValueError(
                    f"Material id {material_id} out of range "
                    f"({len(self.materials)} materials)"
                )

        vertices = np.ascontiguousarray(
            [triangle.vertices for triangle in triangles], dtype=np.float64
        ).reshape(-1, 3, 3)

        # Vertices on a voxel face also touch the neighbouring voxel
        low = np.ceil(vertices.min(axis=(0, 1))).astype(int) - 1
        high = np.floor(vertices.max(axis=(0, 1))).astype(int)
        if not (tree.contains_bounds(low) and tree.contains_bounds(high)):
            raise OutOfBoundsError(
                f"Triangles span voxels {low.tolist()} to {high.tolist()}, "
                f"outside octree bounds {tree.bounds}; grow the tree first"
            )

        ids = np.arange(len(triangles))

        logger.info(
            "Voxelizing %d triangles into octree of size %d",
            len(triangles), tree.size
        )
        written = self._recurse(
            tree.root, vertices, ids, tree.half_extent / 2.0, triangles
        )
        logger.info("Wrote %d voxels", written)
        return written

    def _recurse(
        self,
        branch: Branch,
        local: np.ndarray,
        ids: np.ndarray,
        half: float,
        triangles: List[Triangle]
    ) -> int:
        """
        Subdivide one branch.

        Args:
            branch: Branch whose children are being filled
            local: Candidate triangles relative to the branch center
            ids: Index of each candidate in `triangles`
            half: Half-extent of the branch's children
            triangles: Full triangle list, for attribute lookup
        """
        written = 0
        for index in range(8):
            offset = octant_offset(index, half)
            mask = _overlap_mask(local, offset[0], offset[1], offset[2], half)
            if not mask.any():
                continue

            child_local = local[mask] - np.array(offset)
            child_ids = ids[mask]
            child = branch.children[index]

            if half == VOXEL_HALF_EXTENT:
                if child is not None:
                    continue
                color = self._voxel_color(child_local, child_ids, triangles)
                if color is not None:
                    branch.children[index] = Leaf(color)
                    written += 1
                continue

            created = child is None
            if created:
                child = Branch()
            written += self._recurse(child, child_local, child_ids, half / 2.0, triangles)
            if created and not child.is_empty():
                branch.children[index] = child

        return written

    def _voxel_color(
        self,
        local: np.ndarray,
        ids: np.ndarray,
        triangles: List[Triangle]
    ) -> Optional[RGBA]:
        """Average the samples of all triangles crossing one voxel."""
        samples = []
        for tri_local, tri_id in zip(local, ids):
            weights = closest_point_weights(tri_local[0], tri_local[1], tri_local[2])
            sample = self._sample(triangles[tri_id], weights)
            # Fully transparent texels do not contribute
            if sample[3] == 0:
                continue
            samples.append(sample)

        if not samples:
            return None
        return hsv2rgb(hsv_average(samples))

    def _sample(self, triangle: Triangle, weights: np.ndarray) -> RGBA:
        """Sample a triangle's color at barycentric `weights`."""
        if triangle.material_id is not None:
            material = self.materials[triangle.material_id]
            uv = None
            if material.is_textured and triangle.uvs is not None:
                uv = weights @ triangle.uvs
            return material.sample(uv)

        if triangle.colors is not None:
            rgba = weights @ triangle.colors
            return tuple(min(255, int(c + 0.5)) for c in rgba)

        return self.default_color
