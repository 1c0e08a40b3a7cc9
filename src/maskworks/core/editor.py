"""Editor session: the mask editor's single entry point for hosts.

An :class:`EditorSession` owns the paint surface, the selection overlay,
the selection mask, the brush engine, and the history for one editing
session, and borrows the :class:`~maskworks.core.surface.SourceImage` from
the host. Both presentations of the editor (the standalone editor page and
the embedded edit panel) are the same session with a different
:class:`~maskworks.core.models.EditorProfile`.

Gesture Flow
------------
- ``pointer_down`` in paint mode records a history snapshot, then starts a
  stroke; in select mode it runs a flood fill; in move mode it does nothing.
- ``pointer_move`` stamps only while a stroke is active.
- ``pointer_up`` and ``pointer_leave`` end the stroke identically.

Every gesture is a no-op until an image is loaded, and ``export_mask``
returns None in that state.

Usage Example
-------------
    >>> session = EditorSession.standalone()
    >>> session.load_image(image, container_width=1200, container_height=900)
    >>> session.pointer_down(450, 450)
    >>> session.pointer_up(450, 450)
    >>> artifact = session.export_mask()
    >>> artifact.to_data_url()[:22]
    'data:image/png;base64,'
"""

import logging
import math

from PIL import Image

from .brush import BrushEngine
from .config import MaskworksConfig, config as default_config
from .exporter import MaskArtifact, MaskExporter
from .geometry import DisplayGeometry, compute_display_geometry
from .history import HistoryManager
from .layers import LayerEntry, LayerStack
from .models import EditorProfile, PaintMode, SelectMode, ToolMode, ToolSettings
from .selection import FloodFillSelector, SelectionMask
from .surface import RasterSurface, SourceImage
from .validation import (
    clamp_brush_size,
    validate_paint_mode,
    validate_select_mode,
    validate_tool,
)
from .versions import VersionHistory

logger = logging.getLogger(__name__)


def standalone_profile(cfg: MaskworksConfig) -> EditorProfile:
    """Profile of the full-page editor: capped width, smart select enabled."""
    return EditorProfile(
        name="standalone",
        display_cap=cfg.display_cap,
        default_brush_size=cfg.default_brush_size,
        allow_select=True,
    )


def embedded_profile(cfg: MaskworksConfig) -> EditorProfile:
    """Profile of the embedded edit panel: container-bound, paint only."""
    return EditorProfile(
        name="embedded",
        display_cap=None,
        default_brush_size=cfg.embedded_brush_size,
        allow_select=False,
    )


def resolve_shortcut(
    key: str, ctrl: bool = False, meta: bool = False, shift: bool = False
) -> str | None:
    """Map a key press to a history action.

    Mod+Z undoes, Mod+Shift+Z and Mod+Y redo, where Mod is Ctrl or Meta.

    Returns:
        "undo", "redo", or None if the key press is not a shortcut
    """
    if not (ctrl or meta):
        return None
    key = key.lower()
    if key == "z":
        return "redo" if shift else "undo"
    if key == "y":
        return "redo"
    return None


class EditorSession:
    """One mask-editing session over a single source image at a time.

    Attributes
    ----------
    config : MaskworksConfig
        Limits and defaults used by the session
    profile : EditorProfile
        Presentation preset
    settings : ToolSettings
        Live tool configuration
    source : SourceImage | None
        Image being edited
    geometry : DisplayGeometry | None
        Current native/display mapping
    surface : RasterSurface | None
        Paint surface (None until an image is loaded)
    overlay : RasterSurface | None
        Selection overlay surface
    selection : SelectionMask | None
        Smart-select mask
    history : HistoryManager
        Undo/redo stacks
    versions : VersionHistory
        Original image and accepted edit results
    layers : LayerStack
        Image layers stacked beneath the overlay and paint surface
    """

    def __init__(
        self,
        cfg: MaskworksConfig | None = None,
        profile: EditorProfile | None = None,
    ) -> None:
        self.config = cfg or default_config
        self.profile = profile or standalone_profile(self.config)
        self.settings = ToolSettings(
            brush_size=clamp_brush_size(
                self.profile.default_brush_size,
                self.config.brush_min_size,
                self.config.brush_max_size,
            )
        )

        self.brush = BrushEngine(
            color=self.config.marker_color,
            opacity=self.config.marker_opacity,
            interpolate=self.config.interpolate_strokes,
        )
        self.selector = FloodFillSelector(tolerance=self.config.fill_tolerance)
        self.exporter = MaskExporter(alpha_threshold=self.config.alpha_threshold)
        self.history = HistoryManager(limit=self.config.history_limit)

        self.source: SourceImage | None = None
        self.geometry: DisplayGeometry | None = None
        self.surface: RasterSurface | None = None
        self.overlay: RasterSurface | None = None
        self.selection: SelectionMask | None = None
        self.container: tuple[int, int] | None = None
        self.versions = VersionHistory()
        self.layers = LayerStack()

    @classmethod
    def standalone(cls, cfg: MaskworksConfig | None = None) -> "EditorSession":
        """Create a session configured like the standalone editor page."""
        cfg = cfg or default_config
        return cls(cfg, standalone_profile(cfg))

    @classmethod
    def embedded(cls, cfg: MaskworksConfig | None = None) -> "EditorSession":
        """Create a session configured like the embedded edit panel."""
        cfg = cfg or default_config
        return cls(cfg, embedded_profile(cfg))

    # ------------------------------------------------------------------
    # Display surface management
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        """Whether an image is loaded and surfaces are allocated."""
        return self.surface is not None

    def load_image(
        self, image: Image.Image, container_width: int, container_height: int = 0
    ) -> DisplayGeometry:
        """Open the editor on a new image.

        The image becomes the "Original" version and the single base layer.
        Both surfaces are reallocated, the selection is dropped, any stroke
        ends, and the history is cleared. If the image or container is
        invalid, nothing about the session changes.

        Args:
            image: Fully decoded image
            container_width: Available width in display pixels
            container_height: Available height; 0 uses the configured default

        Returns:
            The new display geometry

        Raises:
            ValueError: If the image or container has no pixels
        """
        geometry = self._switch_source(image, container_width, container_height)
        self.versions.start(self.source.image)
        return geometry

    def load_version(self, image: Image.Image) -> DisplayGeometry:
        """Add an edit result as a new version and continue editing it.

        Raises:
            ValueError: If no image was ever loaded (container unknown)
        """
        if self.container is None:
            raise ValueError("Cannot add a version before an image is loaded")
        geometry = self._switch_source(image, *self.container)
        self.versions.add_result(self.source.image)
        return geometry

    def select_version(self, version_id: str) -> DisplayGeometry:
        """Switch back to an earlier (or later) version.

        Raises:
            KeyError: If no version has this ID
        """
        entry = self.versions.get(version_id)
        geometry = self._switch_source(entry.image, *self.container)
        self.versions.activate(entry.id)
        return geometry

    def resize(self, container_width: int, container_height: int = 0) -> bool:
        """React to a container size change.

        Surfaces are reallocated only when the computed display size changes.
        Reallocation clears the paint, the selection, and the history, since
        snapshots at the old size can no longer be restored.

        Returns:
            True if the surfaces were reallocated
        """
        if self.source is None:
            return False

        candidate = self._compute_geometry(self.source, container_width, container_height)
        self.container = (container_width, container_height)
        if self.geometry is not None and candidate.display_size == self.geometry.display_size:
            return False

        self.brush.end_stroke()
        self.history.reset()
        self._allocate(candidate, container_width, container_height)
        return True

    def _switch_source(
        self, image: Image.Image, container_width: int, container_height: int
    ) -> DisplayGeometry:
        # Validate everything before touching session state.
        source = SourceImage(image)
        geometry = self._compute_geometry(source, container_width, container_height)

        self.source = source
        self.brush.end_stroke()
        self.history.reset()
        self.layers.reset(source.image)
        self._allocate(geometry, container_width, container_height)
        logger.info(
            f"Loaded {source.width}x{source.height} image into "
            f"{self.profile.name} editor at {geometry.display_width}x{geometry.display_height}"
        )
        return geometry

    def _compute_geometry(
        self, source: SourceImage, container_width: int, container_height: int
    ) -> DisplayGeometry:
        height = container_height or self.config.default_container_height
        return compute_display_geometry(
            source.width,
            source.height,
            container_width,
            height,
            cap=self.profile.display_cap,
        )

    def _allocate(
        self, geometry: DisplayGeometry, container_width: int, container_height: int
    ) -> None:
        width, height = geometry.display_size
        self.geometry = geometry
        self.surface = RasterSurface(width, height)
        self.overlay = RasterSurface(width, height)
        self.selection = SelectionMask(width, height)
        self.container = (container_width, container_height)
        logger.debug(f"Allocated surfaces {width}x{height}")

    # ------------------------------------------------------------------
    # Tool settings
    # ------------------------------------------------------------------

    def set_tool(self, tool: ToolMode) -> None:
        """Switch the active tool; ends any stroke in progress."""
        self.settings.tool = validate_tool(tool, allow_select=self.profile.allow_select)
        self.brush.end_stroke()

    def set_paint_mode(self, mode: PaintMode) -> None:
        """Switch between erase-mark and restore-mark."""
        self.settings.paint_mode = validate_paint_mode(mode)

    def set_select_mode(self, mode: SelectMode) -> None:
        """Switch between include and exclude merging."""
        self.settings.select_mode = validate_select_mode(mode)

    def set_brush_size(self, size: float) -> int:
        """Set the brush diameter, clamped to the configured range.

        Returns:
            The diameter actually applied
        """
        self.settings.brush_size = clamp_brush_size(
            size, self.config.brush_min_size, self.config.brush_max_size
        )
        return self.settings.brush_size

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    @property
    def is_stroking(self) -> bool:
        """Whether a paint stroke is in progress."""
        return self.brush.is_stroking

    def pointer_down(self, x: float, y: float) -> bool:
        """Handle pointer-down / touch-start at a display-space point.

        Returns:
            True if the gesture changed editor state
        """
        if not self.is_ready or not (math.isfinite(x) and math.isfinite(y)):
            return False
        if self.settings.tool == "select":
            return self.select_at(x, y)
        if self.settings.tool != "paint":
            return False
        if self.brush.is_stroking:
            logger.warning("Ignoring pointer-down while a stroke is active")
            return False

        self.history.record_before_change(self.surface)
        return self.brush.begin_stroke(
            self.surface, x, y, self.settings.brush_size, self.settings.paint_mode
        )

    def pointer_move(self, x: float, y: float) -> bool:
        """Handle pointer-move / touch-move; stamps only while stroking."""
        if not self.is_ready or self.settings.tool != "paint":
            return False
        return self.brush.extend_stroke(
            self.surface, x, y, self.settings.brush_size, self.settings.paint_mode
        )

    def pointer_up(self, x: float | None = None, y: float | None = None) -> bool:
        """Handle pointer-up / touch-end; ends the stroke."""
        return self.brush.end_stroke()

    def pointer_leave(self, x: float | None = None, y: float | None = None) -> bool:
        """Handle the pointer leaving the canvas; identical to pointer-up."""
        return self.brush.end_stroke()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        """Whether the undo affordance should be enabled."""
        return self.is_ready and self.history.can_undo

    @property
    def can_redo(self) -> bool:
        """Whether the redo affordance should be enabled."""
        return self.is_ready and self.history.can_redo

    def undo(self) -> bool:
        """Revert the most recent stroke or clear."""
        if not self.is_ready or self.brush.is_stroking:
            return False
        return self.history.undo(self.surface)

    def redo(self) -> bool:
        """Reapply the most recently undone action."""
        if not self.is_ready or self.brush.is_stroking:
            return False
        return self.history.redo(self.surface)

    def clear(self) -> bool:
        """Erase all paint as one undoable action."""
        if not self.is_ready:
            return False
        self.brush.end_stroke()
        self.history.record_before_change(self.surface)
        self.surface.clear()
        return True

    def handle_shortcut(
        self, key: str, ctrl: bool = False, meta: bool = False, shift: bool = False
    ) -> str | None:
        """Apply a keyboard shortcut.

        Returns:
            The action performed ("undo" or "redo"), or None
        """
        action = resolve_shortcut(key, ctrl=ctrl, meta=meta, shift=shift)
        if action == "undo":
            return action if self.undo() else None
        if action == "redo":
            return action if self.redo() else None
        return None

    # ------------------------------------------------------------------
    # Smart select
    # ------------------------------------------------------------------

    @property
    def has_selection(self) -> bool:
        """Whether a smart selection is active."""
        return self.selection is not None and self.selection.has_selection

    def select_at(self, x: float, y: float) -> bool:
        """Flood-fill from a display point and merge using the select mode.

        Returns:
            False when not ready, select is unavailable, or the seed is out of bounds
        """
        if not self.is_ready or not self.profile.allow_select:
            return False
        width, height = self.geometry.display_size
        pixels = self.source.raster_at(width, height)
        changed = self.selector.select(pixels, self.selection, x, y, self.settings.select_mode)
        if changed:
            self.render_overlay()
        return changed

    def invert_selection(self) -> bool:
        """Flip the active selection; without one this is a no-op."""
        if not self.has_selection:
            return False
        self.selection.invert()
        self.render_overlay()
        return True

    def clear_selection(self) -> bool:
        """Discard the selection and clear its overlay."""
        if self.selection is None:
            return False
        had_selection = self.selection.has_selection
        self.selection.clear()
        self.overlay.clear()
        return had_selection

    def erase_background(self) -> bool:
        """Erase-mark everything outside the selection as one undoable action.

        The exported mask then marks the unselected background for
        regeneration while the selected subject is kept.

        Returns:
            False without an active selection
        """
        if not self.is_ready or not self.has_selection:
            return False
        self.brush.end_stroke()
        self.history.record_before_change(self.surface)

        background = ~self.selection.data
        pixels = self.surface.pixels
        red, green, blue = self.config.marker_color
        pixels[background] = (red, green, blue, int(round(self.config.marker_opacity * 255)))
        logger.info(f"Marked {int(background.sum())} background px for editing")
        return True

    def render_overlay(self) -> None:
        """Redraw the selection overlay from the current mask."""
        if self.overlay is None or self.selection is None:
            return
        self.selection.render_overlay(self.overlay)

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def add_layer(self, image: Image.Image) -> LayerEntry:
        """Stack another image on top of the layers and make it active.

        Raises:
            ValueError: If no image is loaded yet
        """
        if not self.is_ready:
            raise ValueError("Cannot add a layer before an image is loaded")
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return self.layers.add(image)

    def toggle_layer(self, layer_id: str) -> bool:
        """Show or hide a layer; returns the new visibility."""
        return self.layers.toggle_visibility(layer_id)

    def select_layer(self, layer_id: str) -> LayerEntry:
        """Make a layer the active one."""
        return self.layers.activate(layer_id)

    def remove_layer(self, layer_id: str) -> bool:
        """Delete a layer; the last layer is kept."""
        return self.layers.remove(layer_id)

    def render_view(self) -> Image.Image | None:
        """Composite what the user sees: layers, selection overlay, paint.

        Returns:
            RGBA image at display size, or None before an image is loaded
        """
        if not self.is_ready:
            return None
        width, height = self.geometry.display_size
        view = self.layers.composite(width, height)
        view = Image.alpha_composite(view, self.overlay.to_image())
        return Image.alpha_composite(view, self.surface.to_image())

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_mask(self) -> MaskArtifact | None:
        """Export the native-resolution mask, or None before an image is loaded."""
        return self.exporter.export(self.surface, self.geometry)

    def state(self) -> dict:
        """Summarise the session for host UIs (affordance gating)."""
        return {
            "ready": self.is_ready,
            "profile": self.profile.name,
            "settings": self.settings.to_dict(),
            "geometry": self.geometry.to_dict() if self.geometry else None,
            "stroking": self.is_stroking,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
            "has_selection": self.has_selection,
            "versions": self.versions.to_list(),
            "active_version": self.versions.active_id,
            "layers": self.layers.to_list(),
            "active_layer": self.layers.active_id,
        }
