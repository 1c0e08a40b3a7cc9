"""Data models and constants shared by the Maskworks editor components."""

from dataclasses import dataclass
from typing import Literal


ToolMode = Literal["paint", "select", "move"]
PaintMode = Literal["erase", "restore"]
SelectMode = Literal["include", "exclude"]
StrokeState = Literal["idle", "stroking"]
PointerEvent = Literal["down", "move", "up", "leave"]

TOOL_MODES: tuple[str, ...] = ("paint", "select", "move")
PAINT_MODES: tuple[str, ...] = ("erase", "restore")
SELECT_MODES: tuple[str, ...] = ("include", "exclude")

# Selection overlay hatch: translucent green fill with darker diagonal stripes
HATCH_TILE_SIZE = 8
HATCH_FILL_RGBA = (80, 200, 80, 115)
HATCH_STRIPE_RGBA = (40, 140, 40, 153)


@dataclass(frozen=True)
class EditorProfile:
    """Presentation preset for an editor session.

    The standalone editor page and the embedded edit panel share one editor
    core; they differ only in these parameters.

    Attributes
    ----------
    name : str
        Profile identifier ("standalone" or "embedded")
    display_cap : int | None
        Maximum display width. None means the container bound, never
        upscaling past the image's native width.
    default_brush_size : int
        Brush diameter a new session starts with
    allow_select : bool
        Whether the smart-select tool is available
    """

    name: str
    display_cap: int | None
    default_brush_size: int
    allow_select: bool = True


@dataclass
class ToolSettings:
    """Live tool configuration read on every gesture."""

    tool: ToolMode = "paint"
    paint_mode: PaintMode = "erase"
    select_mode: SelectMode = "include"
    brush_size: int = 78

    def to_dict(self) -> dict:
        """Serialise settings for host responses."""
        return {
            "tool": self.tool,
            "paint_mode": self.paint_mode,
            "select_mode": self.select_mode,
            "brush_size": self.brush_size,
        }
