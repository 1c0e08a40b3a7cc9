"""Pydantic request models for the editor session API.

These models define the JSON schema for every endpoint that takes a body.
FastAPI uses them for automatic request validation and OpenAPI docs.

Models
------
CreateSessionRequest
    Payload for ``POST /api/sessions``: the image and container bounds.
LoadImageRequest
    Payload for ``POST /api/sessions/{id}/versions`` and
    ``POST /api/sessions/{id}/layers``: an image data URL.
ResizeRequest
    Payload for ``PUT /api/sessions/{id}/container``.
ToolRequest
    Payload for ``PUT /api/sessions/{id}/tool``: any subset of settings.
PointerRequest
    Payload for ``POST /api/sessions/{id}/pointer``.
ShortcutRequest
    Payload for ``POST /api/sessions/{id}/shortcut``.
ExportRequest
    Payload for ``POST /api/sessions/{id}/mask``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from maskworks.core.models import PointerEvent


class CreateSessionRequest(BaseModel):
    """Request body for ``POST /api/sessions``.

    Attributes:
        image: Base64 data URL of the image to edit.
        profile: ``"standalone"`` (editor page) or ``"embedded"`` (edit panel).
        container_width: Available canvas width in display pixels.
        container_height: Available canvas height; 0 uses the configured default.
    """

    image: str = Field(
        ...,
        description="Image as a data URL (data:image/...;base64,...).",
    )
    profile: Literal["standalone", "embedded"] = Field(
        default="standalone",
        description="Editor presentation preset.",
    )
    container_width: int = Field(
        ...,
        gt=0,
        description="Available canvas width in display pixels.",
    )
    container_height: int = Field(
        default=0,
        ge=0,
        description="Available canvas height (0 = configured default).",
    )


class LoadImageRequest(BaseModel):
    """Request body carrying one image (a new version or a new layer).

    Attributes:
        image: Base64 data URL of the image.
    """

    image: str = Field(
        ...,
        description="Image as a data URL (data:image/...;base64,...).",
    )


class ResizeRequest(BaseModel):
    """Request body for ``PUT /api/sessions/{id}/container``."""

    container_width: int = Field(..., gt=0)
    container_height: int = Field(default=0, ge=0)


class ToolRequest(BaseModel):
    """Request body for ``PUT /api/sessions/{id}/tool``.

    Every field is optional; only the supplied ones are applied.
    """

    tool: str | None = Field(default=None, description="paint, select, or move.")
    paint_mode: str | None = Field(default=None, description="erase or restore.")
    select_mode: str | None = Field(default=None, description="include or exclude.")
    brush_size: float | None = Field(
        default=None,
        allow_inf_nan=False,
        description="Brush diameter in display pixels (clamped to the allowed range).",
    )


class PointerRequest(BaseModel):
    """Request body for ``POST /api/sessions/{id}/pointer``.

    Attributes:
        event: ``down``, ``move``, ``up``, or ``leave``.  Touch start, move,
            and end map onto down, move, and up.
        x: Pointer X in display pixels.
        y: Pointer Y in display pixels.

    Coordinates must be finite numbers.
    """

    event: PointerEvent
    x: float = Field(default=0.0, allow_inf_nan=False)
    y: float = Field(default=0.0, allow_inf_nan=False)


class ShortcutRequest(BaseModel):
    """Request body for ``POST /api/sessions/{id}/shortcut``."""

    key: str = Field(..., min_length=1)
    ctrl: bool = False
    meta: bool = False
    shift: bool = False


class ExportRequest(BaseModel):
    """Request body for ``POST /api/sessions/{id}/mask``.

    Attributes:
        save: Also write the mask PNG to the exports directory.
    """

    save: bool = False
