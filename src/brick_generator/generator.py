"""
Main BrickGenerator Class

This is the primary interface for the brick conversion pipeline.
It orchestrates:
1. Mesh scaling and octree sizing
2. Voxelization (triangles -> octree leaves)
3. Greedy merging (octree leaves -> bricks)
4. Optional raising of the build above ground

Loading meshes and textures from disk and writing the save file are left
to the caller.

Example Usage:
    generator = BrickGenerator(ConversionOptions(scale=2.0, mode="approximate"))
    generator.load_meshes(meshes, materials)
    generator.voxelize()
    generator.merge()
    bricks = generator.bricks
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from .bricks import Brick, BrickFamily, raise_bricks
from .color import RGBA
from .greedy_merge import FidelityMode, GreedyMerger, merge_stats
from .mesh import Material, Mesh, mesh_bounds
from .octree import SparseOctree
from .palette import DEFAULT_PALETTE, validate_palette
from .voxelizer import TriangleVoxelizer

logger = logging.getLogger(__name__)


@dataclass
class ConversionOptions:
    """
    Parameters of one conversion.

    Attributes:
        scale: Uniform mesh scale, voxels per mesh unit
        max_merge: Maximum brick length along each axis
        mode: Merge fidelity, "approximate" or "exact"
        match_palette: Emit palette indices instead of RGBA colors
        family: Brick family, "micro", "default" or "tile"
        raise_to_ground: Shift the result so no brick is below y = 0
        default_color: Color of triangles with no material or vertex colors
    """

    scale: float = 1.0
    max_merge: int = 200
    mode: Union[str, FidelityMode] = FidelityMode.EXACT
    match_palette: bool = False
    family: Union[str, BrickFamily] = BrickFamily.MICRO
    raise_to_ground: bool = False
    default_color: RGBA = (255, 255, 255, 255)

    def __post_init__(self):
        self.mode = FidelityMode(self.mode)
        self.family = BrickFamily(self.family)
        if not self.scale > 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if self.max_merge < 1:
            raise ValueError(f"max_merge must be at least 1, got {self.max_merge}")

    @property
    def axis_scale(self):
        """Per-axis mesh scale, including the family's vertical stretch."""
        return (
            self.scale,
            self.scale * self.family.vertical_stretch,
            self.scale,
        )


class BrickGenerator:
    """
    High-level interface for mesh to brick conversion.

    Each generator owns a private octree, so separate generators can run
    in separate processes without sharing state.

    Attributes:
        options: Conversion parameters
        palette: Palette that indexed brick colors refer to
        tree: The current voxel octree
        bricks: The current brick list
    """

    def __init__(
        self,
        options: Optional[ConversionOptions] = None,
        palette: Sequence[Sequence[int]] = DEFAULT_PALETTE
    ):
        """
        Initialize the BrickGenerator.

        Args:
            options: Conversion parameters (defaults if None)
            palette: Ordered RGBA palette, at least one entry
        """
        self.options = options or ConversionOptions()
        self.palette = validate_palette(palette)

        self._meshes: List[Mesh] = []
        self._materials: List[Material] = []
        self._tree: Optional[SparseOctree] = None
        self._bricks: Optional[List[Brick]] = None
        self._voxel_count = 0

    def load_meshes(
        self,
        meshes: Sequence[Mesh],
        materials: Sequence[Material] = ()
    ) -> "BrickGenerator":
        """
        Set the meshes to convert.

        Args:
            meshes: Triangle meshes, in loader order
            materials: Material table referenced by Mesh.material_id

        Returns:
            self for method chaining
        """
        self._meshes = list(meshes)
        self._materials = list(materials)
        self._tree = None
        self._bricks = None
        self._voxel_count = 0
        return self

    def voxelize(self) -> "BrickGenerator":
        """
        Rasterize the loaded meshes into a fresh octree.

        The octree is grown to hold the scaled bounding box with one
        voxel of padding on each side.

        Returns:
            self for method chaining
        """
        if not self._meshes:
            raise RuntimeError("No meshes loaded. Call load_meshes() first.")

        axis_scale = self.options.axis_scale
        low, high = mesh_bounds(self._meshes, axis_scale)
        logger.info("Scaled mesh bounds %s to %s", low.tolist(), high.tolist())

        tree = SparseOctree()
        tree.grow_to_contain(
            tuple(math.floor(c) - 1 for c in low),
            tuple(math.ceil(c) + 1 for c in high),
        )
        logger.info("Octree size %d", tree.size)

        triangles = [
            triangle
            for mesh in self._meshes
            for triangle in mesh.triangles(axis_scale)
        ]
        voxelizer = TriangleVoxelizer(self._materials, self.options.default_color)
        self._voxel_count = voxelizer.voxelize(tree, triangles)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Occupied voxel bounds %s", tree.occupied_bounds())

        self._tree = tree
        self._bricks = None
        return self

    def merge(self) -> "BrickGenerator":
        """
        Merge the voxels into bricks.

        This empties the octree.

        Returns:
            self for method chaining
        """
        if self._tree is None:
            raise RuntimeError("No voxel tree. Call voxelize() first.")

        merger = GreedyMerger(
            palette=self.palette,
            mode=self.options.mode,
            max_merge=self.options.max_merge,
            match_palette=self.options.match_palette,
            family=self.options.family,
        )
        bricks = merger.merge(self._tree)

        if self.options.raise_to_ground:
            logger.info("Raising bricks above ground")
            bricks = raise_bricks(bricks)

        self._bricks = bricks
        return self

    def run(self) -> List[Brick]:
        """Voxelize and merge in one call."""
        return self.voxelize().merge().bricks

    @property
    def tree(self) -> Optional[SparseOctree]:
        """Get the current voxel octree."""
        return self._tree

    @property
    def bricks(self) -> Optional[List[Brick]]:
        """Get the current brick list."""
        return self._bricks

    @property
    def voxel_count(self) -> int:
        """Get the number of voxels written by the last voxelize()."""
        return self._voxel_count

    @property
    def brick_count(self) -> int:
        if self._bricks is None:
            return 0
        return len(self._bricks)

    def get_stats(self) -> dict:
        """
        Get conversion statistics including merge effectiveness.

        Returns:
            Dictionary with conversion statistics
        """
        if self._tree is None:
            return {"error": "No voxel tree"}

        stats = merge_stats(self._voxel_count, self._bricks or [])
        stats["octree_size"] = self._tree.size
        stats["mode"] = self.options.mode.value
        stats["family"] = self.options.family.value
        return stats

    def preview(self) -> dict:
        """
        Get a preview of the current state.

        Returns:
            Dictionary with current state information
        """
        info = {
            "meshes_loaded": len(self._meshes),
            "voxelized": self._tree is not None,
            "merged": self._bricks is not None,
        }

        if self._meshes:
            info["triangle_count"] = sum(mesh.triangle_count for mesh in self._meshes)
            info["material_count"] = len(self._materials)

        if self._tree is not None:
            info["octree_size"] = self._tree.size
            info["voxel_count"] = self._voxel_count

        if self._bricks is not None:
            info["brick_count"] = len(self._bricks)

        return info


def convert(
    meshes: Sequence[Mesh],
    materials: Sequence[Material] = (),
    palette: Sequence[Sequence[int]] = DEFAULT_PALETTE,
    options: Optional[ConversionOptions] = None,
    **kwargs
) -> List[Brick]:
    """
    Convert meshes to bricks.

    Args:
        meshes: Triangle meshes
        materials: Material table referenced by Mesh.material_id
        palette: Ordered RGBA palette, at least one entry
        options: Conversion parameters
        **kwargs: ConversionOptions fields, used when options is None

    Returns:
        Brick list, ready for the save writer together with `palette`
    """
    if options is None:
        options = ConversionOptions(**kwargs)
    elif kwargs:
        raise TypeError("Pass either options or keyword options, not both")

    generator = BrickGenerator(options, palette)
    generator.load_meshes(meshes, materials)
    return generator.run()
