"""Core functionality of the mask editor.

This package contains the editor components used to build an inpainting
mask over a source image:

- **geometry.py**: Display Surface Manager sizing (native <-> display mapping)
- **surface.py**: Mutable RGBA paint/overlay surfaces and the source image
- **brush.py**: Brush Paint Engine (erase-mark / restore-mark strokes)
- **selection.py**: Flood-Fill Selector and the persistent selection mask
- **history.py**: History Manager (bounded undo/redo of surface snapshots)
- **exporter.py**: Mask Exporter and the MaskArtifact it produces
- **versions.py**: Version history of the edited image (Original, Edit N)
- **layers.py**: Image layer stack composited beneath the mask
- **editor.py**: EditorSession, which composes all of the above for hosts
- **config.py**: Configuration via Pydantic Settings (MASKWORKS_ prefix)
- **validation.py**: Host input validation (image data URLs, tool names)

Architecture Overview
---------------------
Components depend on each other leaves-first:

1. geometry / surface: allocate display-resolution buffers
2. brush / selection: mutate the buffers the session owns
3. history: wraps each paint or clear action with one snapshot
4. exporter: reads the final paint surface state

All operations are synchronous and single-threaded; a session is driven by
one host event loop at a time.

Usage Example
-------------
    from PIL import Image
    from maskworks.core import EditorSession

    session = EditorSession.standalone()
    session.load_image(Image.open("photo.png"), container_width=1200)
    session.pointer_down(300, 200)
    session.pointer_move(340, 220)
    session.pointer_up()
    mask = session.export_mask()
    mask.save("mask.png")
"""

from maskworks.core.config import MaskworksConfig, config
from maskworks.core.editor import EditorSession, resolve_shortcut
from maskworks.core.exporter import MaskArtifact, MaskExporter
from maskworks.core.geometry import DisplayGeometry, compute_display_geometry
from maskworks.core.history import HistoryManager
from maskworks.core.layers import LayerEntry, LayerStack
from maskworks.core.selection import FloodFillSelector, SelectionMask, flood_fill
from maskworks.core.surface import RasterSurface, SourceImage
from maskworks.core.versions import VersionEntry, VersionHistory

__all__ = [
    "DisplayGeometry",
    "EditorSession",
    "FloodFillSelector",
    "HistoryManager",
    "LayerEntry",
    "LayerStack",
    "MaskArtifact",
    "MaskExporter",
    "MaskworksConfig",
    "RasterSurface",
    "SelectionMask",
    "SourceImage",
    "VersionEntry",
    "VersionHistory",
    "compute_display_geometry",
    "config",
    "flood_fill",
    "resolve_shortcut",
]
