"""
Color Model Module

Handles:
- RGB <-> HSV conversion (hue in radians)
- The hue-safe HSV distance used for palette matching
- sRGB gamma decoding for colors emitted outside the palette
- Multi-sample averaging in HSV space

Color Space Background:
- Texture samples and flat material colors are sRGB, 8 bits per channel
- Brick colors that are not palette indices are written linearized,
  so they pass through gamma_correct() first
- Palette matching happens in HSV with hue projected onto the unit
  circle, so reds near 0 and 2*pi stay close to each other
"""

import math
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np
from numba import njit

RGBA = Tuple[int, int, int, int]
HSVA = Tuple[float, float, float, float]

TWO_PI = 2.0 * math.pi


class EmptyPaletteError(ValueError):
    """Raised when a palette with no entries is used for matching."""


def itof(value: int) -> float:
    """Normalize an 8-bit channel to [0, 1]."""
    return value / 255.0


def ftoi(value: float) -> int:
    """Convert a [0, 1] channel back to 8 bits, rounding half up."""
    return int(value * 255.0 + 0.5)


@njit(cache=True)
def _srgb_to_linear_component(c: float) -> float:
    """
    Convert a single sRGB component to Linear.

    The sRGB standard uses a piecewise function:
    - Linear below threshold (0.04045)
    - Gamma curve above threshold

    Args:
        c: sRGB value normalized to [0, 1]

    Returns:
        Linear value
    """
    if c <= 0.04045:
        return c / 12.92
    else:
        return ((c + 0.055) / 1.055) ** 2.4


@njit(cache=True)
def _hsv_distance(
    h1: float, s1: float, v1: float, a1: float,
    h2: float, s2: float, v2: float, a2: float
) -> float:
    """Squared distance with hue/saturation projected to cartesian."""
    dx = math.sin(h1) * s1 - math.sin(h2) * s2
    dy = math.cos(h1) * s1 - math.cos(h2) * s2
    dv = v1 - v2
    da = a1 - a2
    return dx * dx + dy * dy + dv * dv + da * da


@njit(cache=True)
def _nearest_index(
    palette_hsv: np.ndarray,
    h: float, s: float, v: float, a: float
) -> int:
    """
    Linear scan for the closest palette entry.

    Index 0 is the initial best guess and only a strictly smaller
    distance replaces it, so the first of several equidistant
    entries wins.
    """
    best = 0
    best_distance = _hsv_distance(
        palette_hsv[0, 0], palette_hsv[0, 1], palette_hsv[0, 2], palette_hsv[0, 3],
        h, s, v, a
    )
    for i in range(1, palette_hsv.shape[0]):
        distance = _hsv_distance(
            palette_hsv[i, 0], palette_hsv[i, 1], palette_hsv[i, 2], palette_hsv[i, 3],
            h, s, v, a
        )
        if distance < best_distance:
            best_distance = distance
            best = i
    return best


def rgb2hsv(rgba: Sequence[int]) -> HSVA:
    """
    Convert an 8-bit RGBA color to HSVA.

    Args:
        rgba: (r, g, b, a) with channels in 0-255

    Returns:
        (hue, saturation, value, alpha) with hue in radians [0, 2*pi)
        and the other channels in [0, 1]
    """
    r, g, b, a = itof(rgba[0]), itof(rgba[1]), itof(rgba[2]), itof(rgba[3])

    max_c = max(r, g, b)
    min_c = min(r, g, b)
    chroma = max_c - min_c

    if chroma == 0.0:
        hue = 0.0
    elif max_c == r:
        hue = ((g - b) / chroma) % 6.0
    elif max_c == g:
        hue = (b - r) / chroma + 2.0
    else:
        hue = (r - g) / chroma + 4.0

    hue *= math.pi / 3.0
    if hue < 0.0:
        hue += TWO_PI

    saturation = 0.0 if max_c == 0.0 else chroma / max_c

    return (hue, saturation, max_c, a)


def hsv2rgb(hsva: Sequence[float]) -> RGBA:
    """
    Convert HSVA back to 8-bit RGBA.

    Channels are truncated, so a round trip through rgb2hsv() can land
    one step below the input. A hue at or past 360 degrees maps to black.
    """
    hue = math.degrees(hsva[0])
    saturation = hsva[1]
    value = hsva[2]

    chroma = value * saturation
    x = chroma * (1.0 - abs((hue / 60.0) % 2.0 - 1.0))
    match_value = value - chroma

    if hue < 60.0:
        r, g, b = chroma, x, 0.0
    elif hue < 120.0:
        r, g, b = x, chroma, 0.0
    elif hue < 180.0:
        r, g, b = 0.0, chroma, x
    elif hue < 240.0:
        r, g, b = 0.0, x, chroma
    elif hue < 300.0:
        r, g, b = x, 0.0, chroma
    elif hue < 360.0:
        r, g, b = chroma, 0.0, x
    else:
        r, g, b = 0.0, 0.0, 0.0

    return (
        _to_byte((r + match_value) * 255.0),
        _to_byte((g + match_value) * 255.0),
        _to_byte((b + match_value) * 255.0),
        _to_byte(hsva[3] * 255.0),
    )


def _to_byte(value: float) -> int:
    return min(255, max(0, int(value)))


def hsv_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Distance between two HSVA colors.

    Hue and saturation are projected to (sin(h) * s, cos(h) * s) so the
    hue wraparound has no discontinuity; value and alpha differences are
    added as plain squares.
    """
    return _hsv_distance(
        float(a[0]), float(a[1]), float(a[2]), float(a[3]),
        float(b[0]), float(b[1]), float(b[2]), float(b[3])
    )


def hsv_average(colors: Iterable[Sequence[int]]) -> HSVA:
    """
    Average RGBA samples in HSV space.

    Every channel is an arithmetic mean, hue included: no circular
    correction is applied, so 1 and 359 degrees average to 180.

    Args:
        colors: RGBA samples

    Returns:
        Mean (hue, saturation, value, alpha)
    """
    h_sum = s_sum = v_sum = a_sum = 0.0
    n = 0
    for color in colors:
        h, s, v, a = rgb2hsv(color)
        h_sum += h
        s_sum += s
        v_sum += v
        a_sum += a
        n += 1

    if n == 0:
        raise ValueError("Cannot average an empty color list")

    return (h_sum / n, s_sum / n, v_sum / n, a_sum / n)


def gamma_correct(rgba: Sequence[int]) -> RGBA:
    """
    Decode sRGB to linear per channel, keeping alpha as-is.

    Args:
        rgba: 8-bit sRGB color

    Returns:
        8-bit linear color
    """
    return (
        ftoi(_srgb_to_linear_component(itof(rgba[0]))),
        ftoi(_srgb_to_linear_component(itof(rgba[1]))),
        ftoi(_srgb_to_linear_component(itof(rgba[2]))),
        int(rgba[3]),
    )


def palette_to_hsv(palette: Sequence[Sequence[int]]) -> np.ndarray:
    """
    Convert a palette to an (N, 4) float64 HSVA array.

    Raises:
        EmptyPaletteError: If the palette has no entries
    """
    if len(palette) == 0:
        raise EmptyPaletteError("Palette must contain at least one color")
    return np.array([rgb2hsv(color) for color in palette], dtype=np.float64)


def nearest_hsv_index(palette_hsv: np.ndarray, hsv: Sequence[float]) -> int:
    """
    Find the closest entry of a precomputed HSVA palette.

    Args:
        palette_hsv: Float (N, 4) array from palette_to_hsv()
        hsv: Color to match

    Returns:
        Index of the first palette entry with minimal distance
    """
    if not isinstance(palette_hsv, np.ndarray) or palette_hsv.dtype != np.float64:
        raise TypeError("palette_hsv must be a float64 array from palette_to_hsv()")
    if palette_hsv.ndim != 2 or palette_hsv.shape[1] != 4:
        raise ValueError(f"palette_hsv must have shape (N, 4), got {palette_hsv.shape}")
    if palette_hsv.shape[0] == 0:
        raise EmptyPaletteError("Palette must contain at least one color")
    return int(_nearest_index(
        np.ascontiguousarray(palette_hsv),
        float(hsv[0]), float(hsv[1]), float(hsv[2]), float(hsv[3])
    ))


def nearest_palette_index(palette: Sequence[Sequence[int]], hsv: Sequence[float]) -> int:
    """
    Find the palette entry closest to an HSVA color.

    Args:
        palette: Ordered 8-bit RGBA palette
        hsv: Color to match

    Returns:
        Index of the first palette entry with minimal distance
    """
    return nearest_hsv_index(palette_to_hsv(palette), hsv)


class PaletteMatcher:
    """
    Palette lookup with memoization.

    Voxel colors repeat heavily within a model, so every RGBA color is
    matched once and cached. Colors are gamma corrected before matching,
    which puts them in the same space as the palette.
    """

    def __init__(self, palette: Sequence[Sequence[int]]):
        """
        Initialize the matcher.

        Args:
            palette: Ordered RGBA palette, at least one entry
        """
        self.palette = [tuple(int(c) for c in color) for color in palette]
        self.palette_hsv = palette_to_hsv(self.palette)
        self._cache: Dict[RGBA, int] = {}

    def __len__(self) -> int:
        return len(self.palette)

    def match_hsv(self, hsv: Sequence[float]) -> int:
        """Match an HSVA color without gamma correction or caching."""
        return nearest_hsv_index(self.palette_hsv, hsv)

    def match(self, rgba: Sequence[int]) -> int:
        """Match the gamma-corrected form of an sRGB color."""
        key = tuple(int(c) for c in rgba)
        index: Optional[int] = self._cache.get(key)
        if index is None:
            index = self.match_hsv(rgb2hsv(gamma_correct(key)))
            self._cache[key] = index
        return index
