"""Configuration management for the Maskworks mask editor.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the MASKWORKS_ prefix,
allowing the editor's limits and defaults to be tuned without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (MASKWORKS_* prefix)
2. .env file in the project root
3. Default values defined in MaskworksConfig

Example .env file:
    MASKWORKS_DISPLAY_CAP=900
    MASKWORKS_HISTORY_LIMIT=30
    MASKWORKS_FILL_TOLERANCE=32
    MASKWORKS_EXPORTS_DIR=exports

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Editor sessions read it when no explicit configuration is passed in.

Usage Example
-------------
    from maskworks.core.config import config

    print(config.display_cap)
    print(config.fill_tolerance)

Editor Constants
----------------
Several defaults are behavioural constants of the editor and are covered by
tests; change them deliberately:
- fill_tolerance: 32 (a neighbour joins the fill when |dR|+|dG|+|dB| <= 96)
- alpha_threshold: 10 (display alpha above this marks the native block)
- history_limit: 30 (undo snapshots kept; the oldest is dropped on overflow)
- display_cap: 900 (standalone editor width cap in display pixels)
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MaskworksConfig(BaseSettings):
    """Main configuration for the Maskworks editor core and its host shell.

    Values are loaded from environment variables with the MASKWORKS_ prefix,
    with fallback to the defaults defined here.

    Attributes
    ----------
    Display Settings:
        display_cap : int
            Maximum display width of the standalone editor canvas
        default_container_height : int
            Height used when the host reports a zero-height container

    Brush Settings:
        brush_min_size : int
            Smallest brush diameter in display pixels
        brush_max_size : int
            Largest brush diameter in display pixels
        default_brush_size : int
            Initial brush diameter of the standalone editor
        embedded_brush_size : int
            Initial brush diameter of the embedded edit panel
        marker_color : tuple[int, int, int]
            RGB colour of the erase-mark brush
        marker_opacity : float
            Opacity of a single erase-mark stamp
        interpolate_strokes : bool
            Fill gaps between sparse pointer samples within one stroke

    Selection and History:
        fill_tolerance : int
            Per-channel flood fill tolerance (compared as a 3-channel sum)
        history_limit : int
            Number of undo snapshots kept

    Export:
        alpha_threshold : int
            Display alpha above which a pixel counts as painted
        exports_dir : Path
            Directory where exported masks are saved on request

    Host Shell:
        max_upload_bytes : int
            Largest accepted decoded image payload
        max_sessions : int
            Editor sessions kept in memory before the oldest is evicted
        server_host : str
            Server bind address
        server_port : int
            Server port (1024-65535)

    Examples
    --------
        >>> custom = MaskworksConfig(display_cap=640, interpolate_strokes=False)
        >>> custom.history_limit
        30
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MASKWORKS_",
        case_sensitive=False,
    )

    # Display settings
    display_cap: int = Field(
        default=900,
        description="Maximum display width of the standalone editor canvas",
        ge=16,
        le=8192,
    )
    default_container_height: int = Field(
        default=600,
        description="Container height used when the host reports zero",
        ge=16,
    )

    # Brush settings
    brush_min_size: int = Field(default=5, ge=1)
    brush_max_size: int = Field(default=200, ge=1)
    default_brush_size: int = Field(default=78, ge=1)
    embedded_brush_size: int = Field(default=40, ge=1)
    marker_color: tuple[int, int, int] = Field(
        default=(255, 50, 50),
        description="RGB colour of the erase-mark brush",
    )
    marker_opacity: float = Field(
        default=0.5,
        description="Opacity of a single erase-mark stamp",
        gt=0.0,
        le=1.0,
    )
    interpolate_strokes: bool = Field(
        default=True,
        description="Stamp along the segment between consecutive pointer samples",
    )

    # Selection and history
    fill_tolerance: int = Field(
        default=32,
        description="Flood fill tolerance per channel (compared as a 3-channel sum)",
        ge=0,
        le=255,
    )
    history_limit: int = Field(
        default=30,
        description="Number of undo snapshots kept",
        ge=1,
        le=500,
    )

    # Export
    alpha_threshold: int = Field(
        default=10,
        description="Display alpha above which a pixel counts as painted",
        ge=0,
        le=254,
    )
    exports_dir: Path = Field(
        default=Path("exports"),
        description="Directory for saved mask exports",
    )

    # Host shell
    max_upload_bytes: int = Field(
        default=15 * 1024 * 1024,
        description="Largest accepted image payload in bytes",
        ge=1,
    )
    max_sessions: int = Field(
        default=32,
        description="Editor sessions kept in memory",
        ge=1,
    )
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        if self.brush_min_size > self.brush_max_size:
            raise ValueError(
                f"brush_min_size ({self.brush_min_size}) exceeds "
                f"brush_max_size ({self.brush_max_size})"
            )

        self.exports_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance, loaded from MASKWORKS_* variables and .env.
config = MaskworksConfig()
