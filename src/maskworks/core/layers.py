"""Image layer stack shown beneath the selection overlay and paint surface.

Layers are plain z-order stacking: the list is kept top-first, newly added
layers go on top, and hidden layers are skipped when compositing. The
bottom layer is the active version of the edited image. Above all layers
sit the selection overlay and then the paint surface.

Layers are a viewing aid only. Flood fill reads the edited image itself and
mask export reads the paint surface, so neither depends on the stack.
"""

import logging
from dataclasses import dataclass, field

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)


@dataclass
class LayerEntry:
    """One image layer.

    Attributes
    ----------
    id : str
        Stable identifier (``layer-1``, ``layer-2``, ...)
    name : str
        Display name ("Layer 1", ...)
    image : Image.Image
        RGBA layer image at its own resolution
    visible : bool
        Hidden layers are not composited
    """

    id: str
    name: str
    image: Image.Image = field(repr=False)
    visible: bool = True

    def to_dict(self, active: bool = False) -> dict:
        """Serialise the layer for host responses (without pixels)."""
        return {
            "id": self.id,
            "name": self.name,
            "visible": self.visible,
            "width": self.image.width,
            "height": self.image.height,
            "active": active,
        }


class LayerStack:
    """Top-first list of image layers with one active entry."""

    def __init__(self) -> None:
        self.layers: list[LayerEntry] = []
        self.active_id: str | None = None
        self._counter = 0

    def __len__(self) -> int:
        return len(self.layers)

    def get(self, layer_id: str) -> LayerEntry:
        """Look up a layer by ID.

        Raises:
            KeyError: If no layer has this ID
        """
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        raise KeyError(f"Unknown layer: {layer_id}")

    def reset(self, image: Image.Image) -> LayerEntry:
        """Replace the stack with a single base layer."""
        self._counter = 1
        base = LayerEntry(id="layer-1", name="Layer 1", image=image)
        self.layers = [base]
        self.active_id = base.id
        return base

    def add(self, image: Image.Image) -> LayerEntry:
        """Put a new layer on top of the stack and make it active."""
        self._counter += 1
        layer = LayerEntry(
            id=f"layer-{self._counter}",
            name=f"Layer {self._counter}",
            image=image,
        )
        self.layers.insert(0, layer)
        self.active_id = layer.id
        logger.info(f"Added {layer.name} ({image.width}x{image.height})")
        return layer

    def toggle_visibility(self, layer_id: str) -> bool:
        """Flip a layer's visibility.

        Returns:
            The new visibility

        Raises:
            KeyError: If no layer has this ID
        """
        layer = self.get(layer_id)
        layer.visible = not layer.visible
        return layer.visible

    def activate(self, layer_id: str) -> LayerEntry:
        """Make a layer the active one.

        Raises:
            KeyError: If no layer has this ID
        """
        layer = self.get(layer_id)
        self.active_id = layer.id
        return layer

    def remove(self, layer_id: str) -> bool:
        """Delete a layer; the last remaining layer cannot be removed.

        When the active layer is removed, the new top layer becomes active.

        Returns:
            False if this was the only layer

        Raises:
            KeyError: If no layer has this ID
        """
        layer = self.get(layer_id)
        if len(self.layers) <= 1:
            return False
        self.layers.remove(layer)
        if self.active_id == layer_id:
            self.active_id = self.layers[0].id
        logger.info(f"Removed {layer.name}")
        return True

    def clear(self) -> None:
        """Forget every layer."""
        self.layers = []
        self.active_id = None
        self._counter = 0

    def bottom_to_top(self) -> list[LayerEntry]:
        """Visible layers in compositing order."""
        return [layer for layer in reversed(self.layers) if layer.visible]

    def composite(self, width: int, height: int) -> Image.Image:
        """Stack the visible layers at display size.

        Each layer is scaled to fit inside the canvas, keeping its aspect
        ratio, and centred.

        Returns:
            RGBA image of the given size
        """
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        for layer in self.bottom_to_top():
            fitted = ImageOps.contain(layer.image, (width, height))
            placed = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            placed.paste(fitted, ((width - fitted.width) // 2, (height - fitted.height) // 2))
            canvas = Image.alpha_composite(canvas, placed)
        return canvas

    def to_list(self) -> list[dict]:
        """Serialise all layers top-first."""
        return [layer.to_dict(active=layer.id == self.active_id) for layer in self.layers]
