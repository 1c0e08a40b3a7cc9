"""Display geometry: mapping between native and display resolution.

The editor paints on a display-resolution canvas that fits the host
container, while the mask it exports lives at the source image's native
resolution. :func:`compute_display_geometry` is the single place where the
display size is derived; every other component reads the resulting
:class:`DisplayGeometry`.

Sizing Rule
-----------
With ``ratio = H / W``::

    displayW = min(maxW, cap)
    displayH = displayW * ratio
    if displayH > maxH:
        displayH = maxH
        displayW = displayH / ratio

Both values are then rounded to whole pixels (minimum 1). Because the
reflow branch only ever shrinks the width, the rounded result never exceeds
the container bounds.

When no cap is given (embedded edit panel) the width is bounded by the
container and by the native width, so small images are never upscaled.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisplayGeometry:
    """Native and display dimensions of one editing session.

    Attributes
    ----------
    native_width : int
        Source image width in pixels
    native_height : int
        Source image height in pixels
    display_width : int
        Paint surface width in pixels
    display_height : int
        Paint surface height in pixels
    """

    native_width: int
    native_height: int
    display_width: int
    display_height: int

    @property
    def display_size(self) -> tuple[int, int]:
        """Display dimensions as a PIL-style (width, height) tuple."""
        return (self.display_width, self.display_height)

    @property
    def native_size(self) -> tuple[int, int]:
        """Native dimensions as a PIL-style (width, height) tuple."""
        return (self.native_width, self.native_height)

    @property
    def scale_x(self) -> float:
        """Native pixels per display pixel along X."""
        return self.native_width / self.display_width

    @property
    def scale_y(self) -> float:
        """Native pixels per display pixel along Y."""
        return self.native_height / self.display_height

    def to_native(self, x: float, y: float) -> tuple[float, float]:
        """Map a display-space point to native space."""
        return (x * self.scale_x, y * self.scale_y)

    def to_display(self, x: float, y: float) -> tuple[float, float]:
        """Map a native-space point to display space."""
        return (x / self.scale_x, y / self.scale_y)

    def to_dict(self) -> dict:
        """Serialise geometry for host responses."""
        return {
            "native_width": self.native_width,
            "native_height": self.native_height,
            "display_width": self.display_width,
            "display_height": self.display_height,
            "scale_x": self.scale_x,
            "scale_y": self.scale_y,
        }


def compute_display_geometry(
    native_width: int,
    native_height: int,
    max_width: int,
    max_height: int,
    cap: int | None = None,
) -> DisplayGeometry:
    """Compute the aspect-locked display size for a source image.

    Args:
        native_width: Source image width in pixels
        native_height: Source image height in pixels
        max_width: Available container width
        max_height: Available container height
        cap: Maximum display width; None bounds by the native width instead

    Returns:
        DisplayGeometry with integer display dimensions within the container

    Raises:
        ValueError: If any dimension is not positive
    """
    if native_width <= 0 or native_height <= 0:
        raise ValueError(f"Invalid image size {native_width}x{native_height}")
    if max_width <= 0 or max_height <= 0:
        raise ValueError(f"Invalid container size {max_width}x{max_height}")

    ratio = native_height / native_width
    width_limit = cap if cap is not None else native_width

    display_w = float(min(max_width, width_limit))
    display_h = display_w * ratio
    if display_h > max_height:
        display_h = float(max_height)
        display_w = display_h / ratio

    geometry = DisplayGeometry(
        native_width=native_width,
        native_height=native_height,
        display_width=max(1, int(round(display_w))),
        display_height=max(1, int(round(display_h))),
    )
    logger.debug(
        f"Display geometry {native_width}x{native_height} -> "
        f"{geometry.display_width}x{geometry.display_height} "
        f"(container {max_width}x{max_height}, cap {cap})"
    )
    return geometry
