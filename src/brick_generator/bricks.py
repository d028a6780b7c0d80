"""
Brick Output Types

A Brick is an axis-aligned box of voxels with one color. Bricks are what
the save writer consumes, together with the palette their indices refer to.

Coordinate system: voxel axes, Y-up (the mesh's up axis). Physical values
are in save units: `position` is the box center and `size` its half-extent,
both scaled by the brick family factor.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .color import RGBA


class BrickFamily(Enum):
    """Brick shape family used to fill the boxes."""

    MICRO = "micro"      # 1x1x1 cubes
    DEFAULT = "default"  # studded bricks, plate height
    TILE = "tile"        # smooth bricks, plate height

    @property
    def scale(self) -> Tuple[int, int, int]:
        """Save units per voxel along (x, y, z)."""
        if self is BrickFamily.MICRO:
            return (1, 1, 1)
        return (5, 2, 5)

    @property
    def vertical_stretch(self) -> float:
        """Factor applied to mesh Y before voxelizing, so plates keep proportion."""
        if self is BrickFamily.MICRO:
            return 1.0
        return 2.5


class BrickColor(NamedTuple):
    """Brick color: a palette index or an explicit RGBA value."""

    index: Optional[int] = None
    rgba: Optional[RGBA] = None

    @classmethod
    def indexed(cls, index: int) -> "BrickColor":
        return cls(index=int(index))

    @classmethod
    def unique(cls, rgba: Sequence[int]) -> "BrickColor":
        return cls(rgba=tuple(int(c) for c in rgba))

    @property
    def is_indexed(self) -> bool:
        return self.index is not None

    def resolve(self, palette: Sequence[Sequence[int]]) -> RGBA:
        """Get the RGBA value, looking indices up in `palette`."""
        if self.index is not None:
            return tuple(int(c) for c in palette[self.index])
        return self.rgba


@dataclass(frozen=True)
class Brick:
    """
    One emitted box.

    Attributes:
        origin: Minimum voxel corner (x, y, z)
        extent: Voxel counts along (x, y, z), each at least 1
        color: Palette index or RGBA
        family: Brick family the box is built from
    """

    origin: Tuple[int, int, int]
    extent: Tuple[int, int, int]
    color: BrickColor
    family: BrickFamily = BrickFamily.MICRO

    @property
    def volume(self) -> int:
        """Number of voxels covered."""
        return self.extent[0] * self.extent[1] * self.extent[2]

    @property
    def position(self) -> Tuple[int, int, int]:
        """Box center in save units."""
        scale = self.family.scale
        return tuple(
            scale[axis] * (2 * self.origin[axis] + self.extent[axis])
            for axis in range(3)
        )

    @property
    def size(self) -> Tuple[int, int, int]:
        """Box half-extent in save units."""
        scale = self.family.scale
        return tuple(scale[axis] * self.extent[axis] for axis in range(3))

    def voxels(self):
        """Iterate over the voxel coordinates covered by the box."""
        x0, y0, z0 = self.origin
        dx, dy, dz = self.extent
        for x in range(x0, x0 + dx):
            for y in range(y0, y0 + dy):
                for z in range(z0, z0 + dz):
                    yield (x, y, z)

    def shifted(self, dx: int = 0, dy: int = 0, dz: int = 0) -> "Brick":
        """Get a copy moved by a voxel offset."""
        x, y, z = self.origin
        return Brick((x + dx, y + dy, z + dz), self.extent, self.color, self.family)


def raise_bricks(bricks: Sequence[Brick]) -> List[Brick]:
    """
    Move bricks up so that none extends below y = 0.

    Bricks already above ground are returned unchanged.

    Args:
        bricks: Brick list

    Returns:
        New brick list in the same order
    """
    if not bricks:
        return []
    lowest = min(brick.origin[1] for brick in bricks)
    if lowest >= 0:
        return list(bricks)
    return [brick.shifted(dy=-lowest) for brick in bricks]
