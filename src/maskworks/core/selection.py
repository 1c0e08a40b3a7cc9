"""Flood-fill "smart select" and the persistent selection mask.

The selector grows a 4-connected region of similar colour from a seed
point. Colour similarity is measured against the seed colour only::

    |dR| + |dG| + |dB| <= 3 * tolerance        (tolerance defaults to 32)

so a pixel at a channel-difference sum of exactly 96 joins the region and
one at 97 does not.

The fill runs on the source image rasterised at display resolution, so the
seed, the region, and the selection mask share one coordinate space.

Traversal is iterative with an explicit stack of span seeds: each popped
seed is widened into the maximal run of unvisited candidate pixels on its
row, and the rows above and below contribute one new seed per run they
touch. Every pixel is claimed at most once and recursion depth never grows
with region size.

Selection Mask
--------------
:class:`SelectionMask` keeps a boolean array at display resolution, or
nothing when no selection is active. A merge that leaves no pixel selected
drops the array, so "nothing selected" has a single representation and
inverting it is a no-op rather than "select everything".
"""

import logging

import numpy as np
from PIL import Image, ImageDraw

from .models import HATCH_FILL_RGBA, HATCH_STRIPE_RGBA, HATCH_TILE_SIZE, SelectMode
from .surface import RasterSurface

logger = logging.getLogger(__name__)


def color_distance(pixels: np.ndarray, seed_color: np.ndarray) -> np.ndarray:
    """Sum of absolute RGB differences of every pixel against one colour.

    Args:
        pixels: ``(height, width, 3+)`` uint8 array
        seed_color: RGB triple

    Returns:
        ``(height, width)`` int32 array of channel-difference sums
    """
    diff = pixels[..., :3].astype(np.int32) - np.asarray(seed_color[:3], dtype=np.int32)
    return np.abs(diff).sum(axis=2)


def flood_fill(
    pixels: np.ndarray, seed_x: float, seed_y: float, tolerance: int = 32
) -> np.ndarray | None:
    """Select the 4-connected region of similar colour around a seed point.

    Args:
        pixels: ``(height, width, 3+)`` uint8 source raster
        seed_x: Seed X in raster coordinates (rounded to the nearest pixel)
        seed_y: Seed Y in raster coordinates (rounded to the nearest pixel)
        tolerance: Per-channel tolerance; the 3-channel sum limit is 3x this

    Returns:
        Boolean ``(height, width)`` region mask, or None if the seed is out of bounds
    """
    height, width = pixels.shape[:2]
    if not (np.isfinite(seed_x) and np.isfinite(seed_y)):
        return None
    x0 = int(np.floor(seed_x + 0.5))
    y0 = int(np.floor(seed_y + 0.5))
    if x0 < 0 or x0 >= width or y0 < 0 or y0 >= height:
        return None

    candidate = color_distance(pixels, pixels[y0, x0]) <= tolerance * 3
    region = np.zeros((height, width), dtype=bool)

    stack = [(x0, y0)]
    while stack:
        x, y = stack.pop()
        if region[y, x] or not candidate[y, x]:
            continue

        open_row = candidate[y] & ~region[y]
        left = x
        while left > 0 and open_row[left - 1]:
            left -= 1
        right = x
        while right < width - 1 and open_row[right + 1]:
            right += 1
        region[y, left : right + 1] = True

        for ny in (y - 1, y + 1):
            if ny < 0 or ny >= height:
                continue
            open_span = candidate[ny, left : right + 1] & ~region[ny, left : right + 1]
            columns = np.flatnonzero(open_span)
            if columns.size == 0:
                continue
            # one seed per contiguous run
            run_starts = columns[np.concatenate(([True], np.diff(columns) > 1))]
            stack.extend((int(left + c), ny) for c in run_starts)

    return region


def hatch_tile() -> np.ndarray:
    """Build the tileable diagonal hatch used by the selection overlay.

    Returns:
        ``(8, 8, 4)`` uint8 RGBA tile
    """
    size = HATCH_TILE_SIZE
    tile = Image.new("RGBA", (size, size), HATCH_FILL_RGBA)
    stripes = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(stripes)
    draw.line([(-1, size + 1), (size + 1, -1)], fill=HATCH_STRIPE_RGBA, width=2)
    draw.line([(-1, 1), (1, -1)], fill=HATCH_STRIPE_RGBA, width=2)
    draw.line([(size - 1, size + 1), (size + 1, size - 1)], fill=HATCH_STRIPE_RGBA, width=2)
    return np.asarray(Image.alpha_composite(tile, stripes), dtype=np.uint8)


class SelectionMask:
    """Persistent smart-select region at display resolution.

    Attributes
    ----------
    width : int
        Mask width (matches the paint surface)
    height : int
        Mask height (matches the paint surface)
    data : np.ndarray | None
        Boolean ``(height, width)`` array, None when nothing is selected
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.data: np.ndarray | None = None

    @property
    def has_selection(self) -> bool:
        """Whether any pixel is selected."""
        return self.data is not None and bool(self.data.any())

    def merge(self, region: np.ndarray, mode: SelectMode) -> None:
        """Merge a fill region into the selection.

        Args:
            region: Boolean array at mask resolution
            mode: "include" ORs the region in, "exclude" subtracts it
        """
        if region.shape != (self.height, self.width):
            raise ValueError(
                f"Region shape {region.shape} does not match mask {(self.height, self.width)}"
            )
        if self.data is None:
            self.data = np.zeros((self.height, self.width), dtype=bool)

        if mode == "include":
            self.data |= region
        else:
            self.data &= ~region

        self._normalise()

    def invert(self) -> None:
        """Flip every pixel of an active selection; no-op without one."""
        if self.data is None:
            return
        np.logical_not(self.data, out=self.data)
        self._normalise()

    def clear(self) -> None:
        """Discard the selection entirely."""
        self.data = None

    def selected_count(self) -> int:
        """Number of selected pixels."""
        return 0 if self.data is None else int(self.data.sum())

    def _normalise(self) -> None:
        if self.data is not None and not self.data.any():
            self.data = None

    def render_overlay(self, overlay: RasterSurface) -> None:
        """Draw the hatch pattern onto the overlay wherever the mask is set.

        The hatch is tiled across the whole surface and then clipped to the
        mask, so stripes stay aligned regardless of the region's shape.
        """
        overlay.clear()
        if self.data is None:
            return
        tile = hatch_tile()
        reps_y = -(-overlay.height // tile.shape[0])
        reps_x = -(-overlay.width // tile.shape[1])
        pattern = np.tile(tile, (reps_y, reps_x, 1))[: overlay.height, : overlay.width]
        overlay.pixels[self.data] = pattern[self.data]


class FloodFillSelector:
    """Runs flood fills against a source raster and merges them into a mask."""

    def __init__(self, tolerance: int = 32) -> None:
        self.tolerance = tolerance

    def select(
        self,
        pixels: np.ndarray,
        mask: SelectionMask,
        x: float,
        y: float,
        mode: SelectMode = "include",
    ) -> bool:
        """Fill from a seed point and merge the region into the mask.

        Args:
            pixels: Source raster at mask resolution
            mask: Selection to update in place
            x: Seed X in display pixels
            y: Seed Y in display pixels
            mode: Merge policy

        Returns:
            False if the seed was out of bounds (nothing changed)
        """
        region = flood_fill(pixels, x, y, self.tolerance)
        if region is None:
            logger.debug(f"Flood fill seed ({x}, {y}) outside {mask.width}x{mask.height}")
            return False
        mask.merge(region, mode)
        logger.debug(
            f"Flood fill ({mode}) at ({x:.1f}, {y:.1f}) matched {int(region.sum())} px, "
            f"selection now {mask.selected_count()} px"
        )
        return True
