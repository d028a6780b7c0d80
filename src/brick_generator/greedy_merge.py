"""
Greedy Box Merging

This module drains a voxel octree into a list of axis-aligned bricks.
Every non-empty voxel ends up in exactly one brick and bricks never
overlap.

Algorithm Overview:
1. Anchor: take any remaining leaf from the octree
2. Grow: extend the box along z, then y, then x; each step tests the
   whole next face and stops at the first voxel that is missing or not
   mergeable, at the octree bound, or at the max merge length
3. Emit: clear the covered voxels and emit one brick
4. Repeat until the octree is empty

Growth order matches the octree's octant bits: z is the lowest bit and
is extended first.

Fidelity modes:
- APPROXIMATE: any adjacent leaves merge; the brick gets the HSV average
- EXACT: leaves merge only when they match the same palette entry; the
  brick gets that entry or the anchor's own color
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from .bricks import Brick, BrickColor, BrickFamily
from .color import RGBA, PaletteMatcher, gamma_correct, hsv2rgb, hsv_average
from .octree import SparseOctree
from .palette import DEFAULT_PALETTE, validate_palette

logger = logging.getLogger(__name__)


class FidelityMode(Enum):
    """Color contract for merged bricks."""

    APPROXIMATE = "approximate"
    EXACT = "exact"


class GreedyMerger:
    """
    Greedy merging of octree voxels into colored bricks.

    The merger consumes the tree: after merge() returns, every voxel
    has been cleared.
    """

    def __init__(
        self,
        palette: Sequence[Sequence[int]] = DEFAULT_PALETTE,
        mode: Union[str, FidelityMode] = FidelityMode.EXACT,
        max_merge: int = 200,
        match_palette: bool = False,
        family: Union[str, BrickFamily] = BrickFamily.MICRO
    ):
        """
        Initialize the merger.

        Args:
            palette: Ordered RGBA palette, at least one entry
            mode: APPROXIMATE or EXACT (or their string values)
            max_merge: Maximum brick length along each axis, at least 1
            match_palette: Emit palette indices instead of RGBA colors
            family: Brick family tag for emitted bricks
        """
        if max_merge < 1:
            raise ValueError(f"max_merge must be at least 1, got {max_merge}")

        self.mode = FidelityMode(mode)
        self.family = BrickFamily(family)
        self.max_merge = int(max_merge)
        self.match_palette = match_palette
        self.matcher = PaletteMatcher(validate_palette(palette))

    @property
    def palette(self) -> List[RGBA]:
        return self.matcher.palette

    def merge(self, tree: SparseOctree) -> List[Brick]:
        """
        Drain all voxels of a tree into bricks.

        Args:
            tree: Octree with RGBA leaves, emptied in place

        Returns:
            Bricks in emission order
        """
        bricks: List[Brick] = []
        voxel_count = 0

        while True:
            found = tree.take_any_leaf()
            if found is None:
                break

            anchor, slot = found
            anchor_color = slot.data
            brick = self._merge_from(tree, anchor, anchor_color)

            for coord in brick.voxels():
                tree.clear(coord)

            bricks.append(brick)
            voxel_count += brick.volume

        logger.info(
            "Merged %d voxels into %d bricks (%s mode)",
            voxel_count, len(bricks), self.mode.value
        )
        return bricks

    def _merge_from(self, tree: SparseOctree, anchor, anchor_color: RGBA) -> Brick:
        """Grow the largest box from an anchor and build its brick."""
        x, y, z = anchor

        if self.mode is FidelityMode.EXACT:
            anchor_index = self.matcher.match(anchor_color)
            colors = None

            def accept(color) -> bool:
                return self.matcher.match(color) == anchor_index
        else:
            colors = [anchor_color]

            def accept(color) -> bool:
                return True

        dx = dy = dz = 1

        while dz < self.max_merge:
            face = [(x, y, z + dz)]
            if not self._face_mergeable(tree, face, accept, colors):
                break
            dz += 1

        while dy < self.max_merge:
            face = [(x, y + dy, sz) for sz in range(z, z + dz)]
            if not self._face_mergeable(tree, face, accept, colors):
                break
            dy += 1

        while dx < self.max_merge:
            face = [
                (x + dx, sy, sz)
                for sy in range(y, y + dy)
                for sz in range(z, z + dz)
            ]
            if not self._face_mergeable(tree, face, accept, colors):
                break
            dx += 1

        if self.mode is FidelityMode.EXACT:
            if self.match_palette:
                color = BrickColor.indexed(anchor_index)
            else:
                color = BrickColor.unique(gamma_correct(anchor_color))
        else:
            average = hsv_average(colors)
            if self.match_palette:
                # Snapped averages are matched as-is, only unique colors are decoded
                color = BrickColor.indexed(self.matcher.match_hsv(average))
            else:
                color = BrickColor.unique(gamma_correct(hsv2rgb(average)))

        logger.debug("Brick at %s extent %s", anchor, (dx, dy, dz))
        return Brick((x, y, z), (dx, dy, dz), color, self.family)

    @staticmethod
    def _face_mergeable(
        tree: SparseOctree,
        face: Sequence,
        accept: Callable[[RGBA], bool],
        colors: Optional[list]
    ) -> bool:
        """
        Check that every voxel of a face is present and mergeable.

        Colors of an accepted face are appended to `colors` when given;
        a rejected face contributes nothing.
        """
        found = []
        for coord in face:
            color = tree.get(coord)
            if color is None or not accept(color):
                return False
            found.append(color)

        if colors is not None:
            colors.extend(found)
        return True


def merge_stats(voxel_count: int, bricks: Sequence[Brick]) -> dict:
    """
    Summarize how much merging reduced the part count.

    Args:
        voxel_count: Number of voxels before merging
        bricks: Bricks emitted for those voxels

    Returns:
        Dictionary with merge statistics
    """
    brick_count = len(bricks)
    reduction = (1 - brick_count / voxel_count) * 100 if voxel_count > 0 else 0
    largest = max((brick.volume for brick in bricks), default=0)

    return {
        "voxel_count": voxel_count,
        "brick_count": brick_count,
        "largest_brick": largest,
        "brick_reduction_percent": reduction,
    }
