"""
Mesh Input Types

This module handles:
- Mesh: indexed triangle geometry as produced by an OBJ-style loader
- Material: flat diffuse color or decoded RGBA texture
- Triangle: one scaled triangle with its per-vertex attributes

Files are parsed and textures decoded by the caller; everything here
works on arrays already in memory.
"""

import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from .color import RGBA, ftoi


@dataclass
class Material:
    """
    Diffuse material: a flat RGBA color or a row-major RGBA image.

    Exactly one of `color` and `image` is set.
    """

    color: Optional[RGBA] = None
    image: Optional[np.ndarray] = field(default=None, repr=False)
    name: str = ""

    def __post_init__(self):
        if (self.color is None) == (self.image is None):
            raise ValueError("Material needs exactly one of color or image")
        if self.color is not None:
            self.color = tuple(int(c) for c in self.color)
            if len(self.color) != 4:
                raise ValueError(f"Material color must be RGBA, got {self.color}")
        if self.image is not None:
            if self.image.ndim != 3 or self.image.shape[2] != 4:
                raise ValueError("Material image must have shape (H, W, 4)")
            if self.image.shape[0] == 0 or self.image.shape[1] == 0:
                raise ValueError("Material image is empty")

    @classmethod
    def flat(cls, r: int, g: int, b: int, a: int = 255, name: str = "") -> "Material":
        """Create a flat-color material."""
        return cls(color=(r, g, b, a), name=name)

    @classmethod
    def from_diffuse(
        cls,
        diffuse: Sequence[float],
        dissolve: float = 1.0,
        name: str = ""
    ) -> "Material":
        """
        Create a flat material from MTL-style float values.

        Args:
            diffuse: Kd color, channels in [0, 1]
            dissolve: d (opacity) in [0, 1]
        """
        return cls(
            color=(ftoi(diffuse[0]), ftoi(diffuse[1]), ftoi(diffuse[2]), ftoi(dissolve)),
            name=name
        )

    @classmethod
    def from_image(
        cls,
        image: Union[Image.Image, np.ndarray],
        name: str = ""
    ) -> "Material":
        """
        Create a textured material from a decoded image.

        Args:
            image: PIL image (any mode) or uint8 array of shape (H, W, 3|4)
        """
        if isinstance(image, Image.Image):
            # Ensure RGBA format
            if image.mode != "RGBA":
                image = image.convert("RGBA")
            array = np.array(image, dtype=np.uint8)
        else:
            array = np.asarray(image, dtype=np.uint8)
            if array.ndim == 3 and array.shape[2] == 3:
                alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
                array = np.concatenate([array, alpha], axis=2)
        return cls(image=array, name=name)

    @property
    def is_textured(self) -> bool:
        return self.image is not None

    def sample(self, uv: Optional[Sequence[float]]) -> RGBA:
        """
        Sample the material color.

        UVs outside [0, 1) wrap by subtracting their floor. V runs
        bottom-up, image rows top-down.

        Args:
            uv: Texture coordinate, ignored for flat materials; a textured
                material without UVs samples its first texel
        """
        if self.image is None:
            return self.color

        h, w = self.image.shape[:2]
        if uv is None:
            texel = self.image[0, 0]
        else:
            u = int((uv[0] - math.floor(uv[0])) * (w - 1))
            v = int((1.0 - uv[1] + math.floor(uv[1])) * (h - 1))
            texel = self.image[v, u]
        return (int(texel[0]), int(texel[1]), int(texel[2]), int(texel[3]))


@dataclass
class Triangle:
    """A single triangle in scaled mesh space."""

    vertices: np.ndarray                    # (3, 3) float64
    uvs: Optional[np.ndarray] = None        # (3, 2) float64
    colors: Optional[np.ndarray] = None     # (3, 4) float64, 0-255
    material_id: Optional[int] = None


@dataclass
class Mesh:
    """
    Indexed triangle mesh.

    Attribute arrays share the position indexing: vertex i uses
    positions[i], texcoords[i] and colors[i].

    Attributes:
        positions: (N, 3) vertex positions
        indices: (M,) flat triangle indices, M divisible by 3
        texcoords: Optional (N, 2) UVs
        colors: Optional (N, 3|4) vertex colors, floats in [0, 1] or uint8
        material_id: Index into the material table, or None
    """

    positions: np.ndarray
    indices: np.ndarray
    texcoords: Optional[np.ndarray] = None
    colors: Optional[np.ndarray] = None
    material_id: Optional[int] = None
    name: str = ""

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
        self.indices = np.asarray(self.indices, dtype=np.int64).reshape(-1)

        if len(self.indices) % 3 != 0:
            raise ValueError(
                f"Mesh '{self.name}' has {len(self.indices)} indices; "
                "input must be triangulated"
            )
        if len(self.indices) and (
            self.indices.min() < 0 or self.indices.max() >= len(self.positions)
        ):
            raise ValueError(f"Mesh '{self.name}' has indices out of range")

        if self.texcoords is not None:
            self.texcoords = np.asarray(self.texcoords, dtype=np.float64).reshape(-1, 2)
            if len(self.texcoords) == 0:
                self.texcoords = None
            elif len(self.texcoords) < len(self.positions):
                raise ValueError(f"Mesh '{self.name}' has fewer texcoords than positions")

        if self.colors is not None:
            self.colors = self._normalize_colors(np.asarray(self.colors))
            if len(self.colors) == 0:
                self.colors = None
            elif len(self.colors) < len(self.positions):
                raise ValueError(f"Mesh '{self.name}' has fewer colors than positions")

    @staticmethod
    def _normalize_colors(colors: np.ndarray) -> np.ndarray:
        """Convert vertex colors to float64 RGBA in 0-255."""
        if colors.size == 0:
            return colors.reshape(0, 4).astype(np.float64)
        if colors.ndim != 2 or colors.shape[1] not in (3, 4):
            raise ValueError("Vertex colors must have shape (N, 3) or (N, 4)")

        result = colors.astype(np.float64)
        if np.issubdtype(colors.dtype, np.floating):
            result *= 255.0

        if result.shape[1] == 3:
            result = np.column_stack([result, np.full(len(result), 255.0)])
        return np.clip(result, 0.0, 255.0)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    def scaled_positions(self, scale: Sequence[float]) -> np.ndarray:
        """Get positions multiplied per axis by `scale`."""
        return self.positions * np.asarray(scale, dtype=np.float64)

    def triangles(self, scale: Sequence[float] = (1.0, 1.0, 1.0)) -> Iterator[Triangle]:
        """
        Iterate over the mesh triangles.

        Args:
            scale: Per-axis scale applied to positions

        Yields:
            Triangle objects with copied, scaled vertex data
        """
        positions = self.scaled_positions(scale)
        faces = self.indices.reshape(-1, 3)
        for face in faces:
            yield Triangle(
                vertices=positions[face].copy(),
                uvs=self.texcoords[face].copy() if self.texcoords is not None else None,
                colors=self.colors[face].copy() if self.colors is not None else None,
                material_id=self.material_id,
            )


def mesh_bounds(
    meshes: Sequence[Mesh],
    scale: Sequence[float] = (1.0, 1.0, 1.0)
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Get the axis-aligned bounding box of scaled meshes.

    Returns:
        (min_xyz, max_xyz) float arrays

    Raises:
        ValueError: If no mesh has any vertex
    """
    points: List[np.ndarray] = [
        mesh.scaled_positions(scale) for mesh in meshes if len(mesh.positions)
    ]
    if not points:
        raise ValueError("No vertices to bound")
    stacked = np.vstack(points)
    return stacked.min(axis=0), stacked.max(axis=0)
