"""Brush paint engine: circular stamps and strokes on the paint surface.

Two paint modes exist:

- **erase** (erase-mark): composites a translucent marker colour with
  source-over alpha blending. Marked pixels are the region the external
  inpainting call will regenerate.
- **restore** (restore-mark): destination-out compositing with a fully
  opaque source, which clears whatever marker lies under the circle.

A stroke is modelled as a tiny state machine, ``idle -> stroking -> idle``.
:meth:`BrushEngine.begin_stroke` enters ``stroking`` and stamps the first
point; :meth:`BrushEngine.extend_stroke` only stamps while stroking;
:meth:`BrushEngine.end_stroke` returns to ``idle``. A second begin while a
stroke is active is rejected, since only one pointer may paint at a time.

Sparse pointer samples leave gaps between stamps on fast strokes. With
``interpolate=True`` the engine stamps along the segment between consecutive
samples at a spacing of a quarter diameter.
"""

import logging
import math

import numpy as np

from .models import PaintMode, StrokeState
from .surface import RasterSurface

logger = logging.getLogger(__name__)


def circle_coverage(
    width: int, height: int, x: float, y: float, diameter: float
) -> tuple[tuple[slice, slice], np.ndarray] | None:
    """Compute the pixels covered by a filled circle.

    A pixel is covered when its centre lies within the circle.

    Args:
        width: Surface width
        height: Surface height
        x: Circle centre X in display pixels
        y: Circle centre Y in display pixels
        diameter: Circle diameter in display pixels

    Returns:
        ``(region, inside)`` where ``region`` slices the surface's bounding box
        and ``inside`` is a boolean array of that box, or None when the circle
        misses the surface entirely
    """
    if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(diameter)):
        return None
    radius = diameter / 2.0
    x0 = max(0, int(math.floor(x - radius)))
    x1 = min(width, int(math.ceil(x + radius)) + 1)
    y0 = max(0, int(math.floor(y - radius)))
    y1 = min(height, int(math.ceil(y + radius)) + 1)
    if x0 >= x1 or y0 >= y1:
        return None

    ys = np.arange(y0, y1, dtype=np.float64)[:, None] + 0.5
    xs = np.arange(x0, x1, dtype=np.float64)[None, :] + 0.5
    inside = (xs - x) ** 2 + (ys - y) ** 2 <= radius * radius
    if not inside.any():
        return None
    return (slice(y0, y1), slice(x0, x1)), inside


def stamp(
    surface: RasterSurface,
    x: float,
    y: float,
    diameter: float,
    mode: PaintMode,
    color: tuple[int, int, int] = (255, 50, 50),
    opacity: float = 0.5,
) -> bool:
    """Draw one filled circle onto the surface.

    Args:
        surface: Paint surface to modify in place
        x: Centre X in display pixels
        y: Centre Y in display pixels
        diameter: Circle diameter in display pixels
        mode: "erase" to add marker, "restore" to clear it
        color: Marker RGB used in erase mode
        opacity: Marker opacity used in erase mode

    Returns:
        True if any pixel was covered
    """
    coverage = circle_coverage(surface.width, surface.height, x, y, diameter)
    if coverage is None:
        return False
    region, inside = coverage
    block = surface.pixels[region]

    if mode == "restore":
        block[inside] = 0
        return True

    # Source-over with straight alpha: out_a = sa + da * (1 - sa)
    dst = block[inside].astype(np.float64)
    src_a = float(opacity)
    dst_a = dst[:, 3] / 255.0
    out_a = src_a + dst_a * (1.0 - src_a)
    src_rgb = np.asarray(color, dtype=np.float64)[None, :]
    out_rgb = (src_rgb * src_a + dst[:, :3] * (dst_a * (1.0 - src_a))[:, None]) / out_a[:, None]

    result = np.empty_like(dst)
    result[:, :3] = out_rgb
    result[:, 3] = out_a * 255.0
    block[inside] = np.clip(np.rint(result), 0, 255).astype(np.uint8)
    return True


class BrushEngine:
    """Turns pointer paths into stamped strokes on a paint surface.

    The engine holds only stroke state; the surface and brush parameters
    are passed in on each call so the host's live settings apply.
    """

    def __init__(
        self,
        color: tuple[int, int, int] = (255, 50, 50),
        opacity: float = 0.5,
        interpolate: bool = True,
    ) -> None:
        self.color = color
        self.opacity = opacity
        self.interpolate = interpolate
        self.state: StrokeState = "idle"
        self._last_point: tuple[float, float] | None = None

    @property
    def is_stroking(self) -> bool:
        """Whether a stroke is in progress."""
        return self.state == "stroking"

    def stamp(
        self, surface: RasterSurface, x: float, y: float, diameter: float, mode: PaintMode
    ) -> bool:
        """Stamp a single circle with the engine's marker settings."""
        return stamp(surface, x, y, diameter, mode, color=self.color, opacity=self.opacity)

    def begin_stroke(
        self, surface: RasterSurface, x: float, y: float, diameter: float, mode: PaintMode
    ) -> bool:
        """Enter the stroking state and stamp the first point.

        Returns:
            False if a stroke was already active or the point is not finite
        """
        if not (math.isfinite(x) and math.isfinite(y)):
            return False
        if self.is_stroking:
            logger.warning("Ignoring stroke start while another stroke is active")
            return False
        self.state = "stroking"
        self._last_point = (x, y)
        self.stamp(surface, x, y, diameter, mode)
        return True

    def extend_stroke(
        self, surface: RasterSurface, x: float, y: float, diameter: float, mode: PaintMode
    ) -> bool:
        """Stamp the next sample of the active stroke.

        Returns:
            False if no stroke is active or the point is not finite
        """
        if not self.is_stroking:
            return False
        if not (math.isfinite(x) and math.isfinite(y)):
            logger.debug(f"Ignoring non-finite stroke point ({x}, {y})")
            return False

        if self.interpolate and self._last_point is not None:
            for px, py in interpolate_points(self._last_point, (x, y), diameter):
                self.stamp(surface, px, py, diameter, mode)
        else:
            self.stamp(surface, x, y, diameter, mode)

        self._last_point = (x, y)
        return True

    def end_stroke(self) -> bool:
        """Leave the stroking state (pointer up, leave, or touch end).

        Returns:
            True if a stroke was active
        """
        was_stroking = self.is_stroking
        self.state = "idle"
        self._last_point = None
        return was_stroking


def interpolate_points(
    start: tuple[float, float], end: tuple[float, float], diameter: float
) -> list[tuple[float, float]]:
    """Points along a segment spaced at most a quarter diameter apart.

    The start point is excluded (already stamped); the end point is included.
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    distance = math.hypot(dx, dy)
    spacing = max(1.0, diameter / 4.0)
    steps = max(1, int(math.ceil(distance / spacing)))
    return [(start[0] + dx * i / steps, start[1] + dy * i / steps) for i in range(1, steps + 1)]
