"""Mask export: display-resolution paint surface to native-resolution mask.

The exported mask follows the inpainting convention of the external edit
endpoint: an RGBA image at the source's native resolution, opaque black
where the image must be kept and fully transparent where it should be
regenerated.

Resampling
----------
Each display pixel whose alpha exceeds the noise threshold (default 10)
clears the alpha of a whole native block::

    x range: floor(dx * scaleX) .. + max(1, ceil(scaleX))   (clamped)
    y range: floor(dy * scaleY) .. + max(1, ceil(scaleY))   (clamped)

Using ``ceil`` for the block size over-covers slightly when the scale is
not an integer, so no native pixel under a painted display pixel is missed.
"""

import base64
import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from .geometry import DisplayGeometry
from .surface import RasterSurface

logger = logging.getLogger(__name__)


@dataclass
class MaskArtifact:
    """Native-resolution binary-alpha mask ready for an inpainting call.

    Attributes
    ----------
    image : Image.Image
        RGBA mask (alpha 255 = keep, alpha 0 = edit)
    """

    image: Image.Image

    @property
    def size(self) -> tuple[int, int]:
        """Mask dimensions as (width, height)."""
        return self.image.size

    @property
    def alpha(self) -> np.ndarray:
        """Alpha channel as a ``(height, width)`` uint8 array."""
        return np.asarray(self.image.getchannel("A"))

    def edit_pixel_count(self) -> int:
        """Number of transparent (to be edited) pixels."""
        return int((self.alpha == 0).sum())

    def transparent_bbox(self) -> tuple[int, int, int, int] | None:
        """Bounding box of the edit region as (left, top, right, bottom), exclusive.

        Returns:
            The box, or None if nothing is marked for editing
        """
        ys, xs = np.nonzero(self.alpha == 0)
        if xs.size == 0:
            return None
        return (int(xs.min()), int(ys.min()), int(xs.max()) + 1, int(ys.max()) + 1)

    def to_png_bytes(self) -> bytes:
        """Encode the mask as a lossless PNG."""
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self) -> str:
        """Encode the mask as a ``data:image/png;base64,...`` URL."""
        encoded = base64.b64encode(self.to_png_bytes()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def save(self, path: Path) -> Path:
        """Write the mask to disk as PNG.

        Args:
            path: Destination file path

        Returns:
            The path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.image.save(path, format="PNG")
        logger.info(f"Saved mask {self.size[0]}x{self.size[1]} to {path}")
        return path


class MaskExporter:
    """Resamples painted display pixels into a native-resolution mask."""

    def __init__(self, alpha_threshold: int = 10) -> None:
        self.alpha_threshold = alpha_threshold

    def export(
        self, surface: RasterSurface | None, geometry: DisplayGeometry | None
    ) -> MaskArtifact | None:
        """Build the mask artifact for the current paint surface.

        Args:
            surface: Display-resolution paint surface, None if not yet allocated
            geometry: Native/display geometry of the session

        Returns:
            MaskArtifact, or None when the editor has no surface yet
        """
        if surface is None or geometry is None:
            logger.debug("Mask export requested before a surface was allocated")
            return None
        if surface.size != geometry.display_size:
            raise ValueError(
                f"Surface {surface.size} does not match display geometry {geometry.display_size}"
            )

        native_w, native_h = geometry.native_size
        alpha = np.full((native_h, native_w), 255, dtype=np.uint8)

        scale_x = geometry.scale_x
        scale_y = geometry.scale_y
        block_w = max(1, math.ceil(scale_x))
        block_h = max(1, math.ceil(scale_y))

        painted_y, painted_x = np.nonzero(surface.alpha > self.alpha_threshold)
        if painted_x.size:
            target_x = np.floor(painted_x * scale_x).astype(np.int64)
            target_y = np.floor(painted_y * scale_y).astype(np.int64)
            for by in range(block_h):
                fill_y = np.minimum(target_y + by, native_h - 1)
                for bx in range(block_w):
                    fill_x = np.minimum(target_x + bx, native_w - 1)
                    alpha[fill_y, fill_x] = 0

        rgba = np.zeros((native_h, native_w, 4), dtype=np.uint8)
        rgba[..., 3] = alpha
        artifact = MaskArtifact(image=Image.fromarray(rgba))
        logger.info(
            f"Exported mask {native_w}x{native_h} from {surface.width}x{surface.height} "
            f"({painted_x.size} painted display px, {artifact.edit_pixel_count()} edit px)"
        )
        return artifact
