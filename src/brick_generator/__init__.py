"""
Brick Generator
===============

Conversion of triangulated 3D meshes into colored bricks for voxel-brick
building games.

This package voxelizes textured or flat-colored meshes into a sparse octree
and merges the voxels into a small set of axis-aligned boxes, each with a
palette index or an explicit color, ready for a save writer.

Key Features:
- Growable sparse octree over signed integer coordinates
- Exact triangle/voxel intersection with Numba JIT kernels
- Greedy box merging with approximate (averaged) or exact (palette class
  preserving) color fidelity
- Hue-safe HSV palette matching against the game's default colorset

Example Usage:
    from brick_generator import BrickGenerator, ConversionOptions, Mesh, Material

    mesh = Mesh(positions, indices, material_id=0)
    generator = BrickGenerator(ConversionOptions(scale=4.0, match_palette=True))
    generator.load_meshes([mesh], [Material.flat(255, 0, 0)])
    bricks = generator.run()
"""

__version__ = "1.0.0"
__author__ = "Brick Generator Team"

from .generator import BrickGenerator, ConversionOptions, convert
from .octree import SparseOctree, OutOfBoundsError
from .voxelizer import TriangleVoxelizer, tri_box_overlap
from .greedy_merge import GreedyMerger, FidelityMode
from .bricks import Brick, BrickColor, BrickFamily, raise_bricks
from .mesh import Mesh, Material, Triangle
from .palette import DEFAULT_PALETTE
from .color import (
    EmptyPaletteError,
    gamma_correct,
    hsv2rgb,
    hsv_average,
    hsv_distance,
    nearest_hsv_index,
    nearest_palette_index,
    rgb2hsv,
)

__all__ = [
    "BrickGenerator",
    "ConversionOptions",
    "convert",
    "SparseOctree",
    "OutOfBoundsError",
    "TriangleVoxelizer",
    "tri_box_overlap",
    "GreedyMerger",
    "FidelityMode",
    "Brick",
    "BrickColor",
    "BrickFamily",
    "raise_bricks",
    "Mesh",
    "Material",
    "Triangle",
    "DEFAULT_PALETTE",
    "EmptyPaletteError",
    "gamma_correct",
    "hsv2rgb",
    "hsv_average",
    "hsv_distance",
    "nearest_hsv_index",
    "nearest_palette_index",
    "rgb2hsv",
]
