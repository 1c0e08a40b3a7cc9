"""Maskworks - mask-based inpainting editor core."""

__version__ = "0.1.0"

from maskworks.core.config import MaskworksConfig, config
from maskworks.core.editor import EditorSession
from maskworks.core.exporter import MaskArtifact

__all__ = [
    "EditorSession",
    "MaskArtifact",
    "MaskworksConfig",
    "config",
]
