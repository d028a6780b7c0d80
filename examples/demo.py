#!/usr/bin/env python3
"""
Brick Generator Demo Script

This script demonstrates the full brick conversion pipeline by:
1. Creating synthetic test meshes (no external models needed)
2. Voxelizing and merging them in both fidelity modes
3. Printing statistics and comparisons

Run with: python examples/demo.py
"""

import logging
import sys
from pathlib import Path
import numpy as np
import time

from PIL import Image

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from brick_generator import BrickGenerator, ConversionOptions, Material, Mesh
from brick_generator.greedy_merge import FidelityMode, GreedyMerger
from brick_generator.octree import SparseOctree


def create_test_sphere(segments: int = 16, radius: float = 1.0) -> Mesh:
    """
    Create a UV sphere with texture coordinates.

    Returns:
        Mesh using material 0
    """
    positions = []
    texcoords = []
    for i in range(segments + 1):
        theta = np.pi * i / segments
        for j in range(segments + 1):
            phi = 2 * np.pi * j / segments
            positions.append((
                radius * np.sin(theta) * np.cos(phi),
                radius * np.cos(theta),
                radius * np.sin(theta) * np.sin(phi),
            ))
            texcoords.append((j / segments, 1 - i / segments))

    indices = []
    row = segments + 1
    for i in range(segments):
        for j in range(segments):
            a = i * row + j
            b = a + row
            indices.extend([a, b, a + 1, a + 1, b, b + 1])

    return Mesh(positions, indices, texcoords=texcoords, material_id=0, name="sphere")


def create_test_texture(size: int = 64) -> Image.Image:
    """
    Create a striped texture.

    Returns:
        RGB Pillow image
    """
    rgb = np.zeros((size, size, 3), dtype=np.uint8)
    for y in range(size):
        band = (y * 4) // size
        rgb[y, :] = [(200, 40, 40), (240, 200, 60), (40, 120, 200), (60, 160, 80)][band]
    return Image.fromarray(rgb)


def create_test_tower(levels: int = 4) -> Mesh:
    """
    Create a stack of shrinking boxes with vertex colors.

    Returns:
        Mesh without material
    """
    faces = [
        0, 1, 2, 0, 2, 3, 4, 6, 5, 4, 7, 6,
        0, 4, 5, 0, 5, 1, 3, 2, 6, 3, 6, 7,
        0, 3, 7, 0, 7, 4, 1, 5, 6, 1, 6, 2,
    ]
    positions = []
    colors = []
    indices = []
    for level in range(levels):
        half = (levels - level) * 0.5
        y0, y1 = float(level), float(level + 1)
        shade = 0.3 + 0.7 * level / max(1, levels - 1)
        base = len(positions)
        positions.extend([
            (-half, y0, -half), (half, y0, -half), (half, y1, -half), (-half, y1, -half),
            (-half, y0, half), (half, y0, half), (half, y1, half), (-half, y1, half),
        ])
        colors.extend([(shade, shade * 0.8, 0.2)] * 8)
        indices.extend(base + f for f in faces)

    return Mesh(positions, indices, colors=colors, name="tower")


def run_demo():
    """Run the demonstration."""
    print("=" * 60)
    print("Brick Generator - Demo")
    print("=" * 60)
    print()

    test_meshes = [
        ("sphere", [create_test_sphere(24)], [Material.from_image(create_test_texture())], 8.0),
        ("tower", [create_test_tower(5)], [], 3.0),
    ]

    total_start = time.time()

    for name, meshes, materials, scale in test_meshes:
        print(f"\n--- Processing: {name} ---")
        print(f"Triangles: {sum(mesh.triangle_count for mesh in meshes)}")

        print("\nTesting fidelity modes:")

        for mode in [FidelityMode.APPROXIMATE, FidelityMode.EXACT]:
            generator = BrickGenerator(ConversionOptions(
                scale=scale,
                mode=mode,
                match_palette=True,
                raise_to_ground=True,
            ))
            generator.load_meshes(meshes, materials)

            vox_start = time.time()
            generator.voxelize()
            vox_time = time.time() - vox_start

            merge_start = time.time()
            generator.merge()
            merge_time = time.time() - merge_start

            stats = generator.get_stats()
            print(f"  {mode.value}:")
            print(f"    Voxelization: {vox_time*1000:.1f}ms")
            print(f"    Octree size: {stats['octree_size']}")
            print(f"    Voxel count: {stats['voxel_count']}")
            print(f"    Merging: {merge_time*1000:.1f}ms")
            print(f"    Bricks: {stats['brick_count']}")
            print(f"    Brick reduction: {stats['brick_reduction_percent']:.1f}%")

        bricks = generator.bricks
        used = sorted({brick.color.index for brick in bricks})
        print(f"\n  Palette entries used: {used}")

    total_time = time.time() - total_start

    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print("=" * 60)

    return 0


def benchmark_greedy_merging():
    """Benchmark greedy merging performance."""
    print("\n--- Greedy Merging Benchmark ---\n")

    sizes = [8, 16, 32]

    for size in sizes:
        # Create a solid cube
        tree = SparseOctree()
        tree.grow_to_contain((size, size, size))
        for x in range(size):
            for y in range(size):
                for z in range(size):
                    tree.set((x, y, z), (100, 150, 200, 255))

        start = time.time()
        bricks = GreedyMerger().merge(tree)
        merge_time = time.time() - start

        print(f"Grid size: {size}x{size}x{size}")
        print(f"  Merge: {merge_time*1000:.1f}ms, {len(bricks)} bricks")
        print()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    run_demo()

    # Uncomment to run benchmark
    # benchmark_greedy_merging()
