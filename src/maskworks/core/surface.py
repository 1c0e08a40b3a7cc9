"""Raster surfaces owned by an editor session.

A :class:`RasterSurface` is a mutable RGBA pixel arena (a ``(height, width,
4)`` uint8 numpy array, straight alpha). The brush engine and the selection
overlay write into it in place; everything else goes through
:meth:`RasterSurface.snapshot` and :meth:`RasterSurface.restore`, which
always copy, so a stored snapshot never aliases the live buffer.

:class:`SourceImage` wraps the borrowed, read-only bitmap being edited and
provides its display-resolution rasterisation for the flood-fill selector.
"""

import logging

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class RasterSurface:
    """Mutable RGBA pixel buffer at display resolution.

    Attributes
    ----------
    width : int
        Surface width in pixels
    height : int
        Surface height in pixels
    pixels : np.ndarray
        Live ``(height, width, 4)`` uint8 buffer
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid surface size {width}x{height}")
        self.width = width
        self.height = height
        self.pixels = np.zeros((height, width, 4), dtype=np.uint8)

    @property
    def size(self) -> tuple[int, int]:
        """Surface dimensions as (width, height)."""
        return (self.width, self.height)

    @property
    def alpha(self) -> np.ndarray:
        """View of the alpha channel."""
        return self.pixels[..., 3]

    def clear(self) -> None:
        """Reset every pixel to fully transparent."""
        self.pixels.fill(0)

    def snapshot(self) -> np.ndarray:
        """Return a deep copy of the current pixels."""
        return self.pixels.copy()

    def restore(self, snapshot: np.ndarray) -> None:
        """Overwrite the live buffer with a previously taken snapshot.

        Raises:
            ValueError: If the snapshot was taken from a surface of another size
        """
        if snapshot.shape != self.pixels.shape:
            raise ValueError(
                f"Snapshot shape {snapshot.shape} does not match surface {self.pixels.shape}"
            )
        np.copyto(self.pixels, snapshot)

    def is_blank(self) -> bool:
        """Check whether nothing has been painted."""
        return not self.alpha.any()

    def to_image(self) -> Image.Image:
        """Return a PIL copy of the surface for display or encoding."""
        return Image.fromarray(self.pixels.copy())

    def __repr__(self) -> str:
        return f"RasterSurface({self.width}x{self.height})"


class SourceImage:
    """The bitmap being edited, borrowed read-only from the host.

    The display-resolution rasterisation used by the flood-fill selector is
    cached per display size and discarded when a different size is requested.
    """

    def __init__(self, image: Image.Image) -> None:
        if image.width <= 0 or image.height <= 0:
            raise ValueError("Source image has no pixels")
        self._image = image.convert("RGBA") if image.mode != "RGBA" else image.copy()
        self._raster_size: tuple[int, int] | None = None
        self._raster: np.ndarray | None = None

    @property
    def width(self) -> int:
        """Native width in pixels."""
        return self._image.width

    @property
    def height(self) -> int:
        """Native height in pixels."""
        return self._image.height

    @property
    def size(self) -> tuple[int, int]:
        """Native dimensions as (width, height)."""
        return self._image.size

    @property
    def image(self) -> Image.Image:
        """Copy of the native image."""
        return self._image.copy()

    def raster_at(self, width: int, height: int) -> np.ndarray:
        """Return the RGB pixels resampled to the given display size.

        Args:
            width: Target width in pixels
            height: Target height in pixels

        Fully transparent pixels read as black, whatever colour they hide.

        Returns:
            Read-only ``(height, width, 3)`` uint8 array
        """
        if self._raster is None or self._raster_size != (width, height):
            resized = self._image.resize((width, height), Image.Resampling.BILINEAR)
            rgba = np.asarray(resized, dtype=np.uint8)
            raster = rgba[..., :3].copy()
            raster[rgba[..., 3] == 0] = 0
            raster.setflags(write=False)
            self._raster = raster
            self._raster_size = (width, height)
            logger.debug(f"Rasterised source {self.size} at {width}x{height}")
        return self._raster
