"""Maskworks FastAPI host shell for mask editor sessions.

This module defines the FastAPI ``app`` instance, the REST routes that
forward host gestures to :class:`~maskworks.core.editor.EditorSession`
objects, and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Sessions** live in a bounded in-memory
  :class:`~maskworks.api.session_store.SessionStore` created at startup.
  Nothing is persisted.
- **Gestures** (pointer events, tool changes, shortcuts) are applied
  synchronously, in request order, to the session's editor core.
- **Mask export** returns the native-resolution mask as a PNG data URL,
  the form the external inpainting endpoint accepts.  Transporting it to
  that endpoint is the front end's job.

Endpoints
---------
========  ========================================  ================================
Method    Path                                      Purpose
========  ========================================  ================================
GET       ``/api/config``                           Editor limits and defaults
POST      ``/api/sessions``                         Open a session on an image
GET       ``/api/sessions/{id}``                    Session state
DELETE    ``/api/sessions/{id}``                    Close a session
POST      ``/api/sessions/{id}/versions``           Add an edit result as a version
POST      ``/api/sessions/{id}/versions/{v}/activate``  Switch to a version
POST      ``/api/sessions/{id}/layers``             Add an image layer
POST      ``/api/sessions/{id}/layers/{l}/visibility``  Show / hide a layer
POST      ``/api/sessions/{id}/layers/{l}/activate``  Make a layer active
DELETE    ``/api/sessions/{id}/layers/{l}``         Remove a layer
PUT       ``/api/sessions/{id}/container``          Container resized
PUT       ``/api/sessions/{id}/tool``               Tool / brush settings
POST      ``/api/sessions/{id}/pointer``            Pointer or touch event
POST      ``/api/sessions/{id}/shortcut``           Keyboard shortcut
POST      ``/api/sessions/{id}/undo``               Undo
POST      ``/api/sessions/{id}/redo``               Redo
POST      ``/api/sessions/{id}/clear``              Clear all paint (undoable)
POST      ``/api/sessions/{id}/selection/invert``   Invert the selection
DELETE    ``/api/sessions/{id}/selection``          Clear the selection
POST      ``/api/sessions/{id}/selection/erase-background``  Mark the background
GET       ``/api/sessions/{id}/surface.png``        Paint surface raster
GET       ``/api/sessions/{id}/overlay.png``        Selection overlay raster
GET       ``/api/sessions/{id}/view.png``           Layers, overlay, and paint
POST      ``/api/sessions/{id}/mask``               Export the mask
========  ========================================  ================================

Usage
-----
CLI (installed entry point)::

    maskworks

Direct invocation::

    python -m maskworks.api.main
"""

from __future__ import annotations

import io
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from PIL import Image

from maskworks import __version__
from maskworks.api.models import (
    CreateSessionRequest,
    ExportRequest,
    LoadImageRequest,
    PointerRequest,
    ResizeRequest,
    ShortcutRequest,
    ToolRequest,
)
from maskworks.api.session_store import SessionStore
from maskworks.core.config import config
from maskworks.core.editor import EditorSession, embedded_profile, standalone_profile
from maskworks.core.surface import RasterSurface
from maskworks.core.validation import ValidationError, decode_image_data_url

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle: session store setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the session store on startup and drop all sessions on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.sessions = SessionStore(max_sessions=config.max_sessions)
    logger.info(f"SessionStore initialised (max {config.max_sessions} sessions).")

    yield

    app.state.sessions.clear()
    logger.info("SessionStore cleared on shutdown.")


app = FastAPI(
    title="Maskworks",
    description="Mask-based inpainting editor sessions.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so the front end can be served from a different
# port during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


def _get_session(session_id: str) -> EditorSession:
    """Look up a session or raise 404.

    Raises:
        HTTPException: 404 if the session does not exist (or was evicted).
    """
    session = app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _decode_image(data_url: str) -> Image.Image:
    """Decode an image data URL, mapping validation failures to 400."""
    try:
        return decode_image_data_url(data_url, config.max_upload_bytes)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _encode_png(image: Image.Image) -> Response:
    """Encode an image as a PNG response."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return Response(content=buffer.getvalue(), media_type="image/png")


def _png_response(surface: RasterSurface | None) -> Response:
    """Encode a surface as a PNG response, or 409 if not allocated."""
    if surface is None:
        raise HTTPException(status_code=409, detail="No image loaded")
    return _encode_png(surface.to_image())


def _result(session_id: str, session: EditorSession, **extra) -> dict:
    """Standard response body: session ID, state, and any extra fields."""
    return {"id": session_id, **extra, "state": session.state()}


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config() -> dict:
    """Return editor limits and defaults for the front end.

    Returns:
        Dictionary with ``version``, brush range, per-profile defaults,
        the fill tolerance, history limit, and upload limit.
    """
    return {
        "version": __version__,
        "brush": {
            "min": config.brush_min_size,
            "max": config.brush_max_size,
        },
        "profiles": {
            "standalone": {
                "display_cap": config.display_cap,
                "brush_size": config.default_brush_size,
                "smart_select": True,
            },
            "embedded": {
                "display_cap": None,
                "brush_size": config.embedded_brush_size,
                "smart_select": False,
            },
        },
        "fill_tolerance": config.fill_tolerance,
        "history_limit": config.history_limit,
        "max_upload_bytes": config.max_upload_bytes,
    }


@app.post("/api/sessions")
async def create_session(req: CreateSessionRequest) -> dict:
    """Open an editor session on a decoded image.

    Raises:
        HTTPException: 400 if the image data is invalid or too large.
    """
    image = _decode_image(req.image)
    profile = embedded_profile(config) if req.profile == "embedded" else standalone_profile(config)
    session = EditorSession(config, profile)
    session.load_image(image, req.container_width, req.container_height)
    session_id = app.state.sessions.add(session)
    return _result(session_id, session)


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str) -> dict:
    """Return the state of a session."""
    session = _get_session(session_id)
    return _result(session_id, session)


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str) -> dict:
    """Close a session.

    Raises:
        HTTPException: 404 if the session does not exist.
    """
    if not app.state.sessions.remove(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True, "deleted": session_id}


@app.post("/api/sessions/{session_id}/versions")
async def add_version(session_id: str, req: LoadImageRequest) -> dict:
    """Add an edit result as the new active version.

    History, selection, and layers reset for the new version.
    """
    session = _get_session(session_id)
    image = _decode_image(req.image)
    session.load_version(image)
    return _result(session_id, session, version=session.versions.active_id)


@app.post("/api/sessions/{session_id}/versions/{version_id}/activate")
async def activate_version(session_id: str, version_id: str) -> dict:
    """Switch editing to an existing version.

    Raises:
        HTTPException: 404 if the version does not exist.
    """
    session = _get_session(session_id)
    try:
        session.select_version(version_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail="Version not found") from e
    return _result(session_id, session, version=version_id)


@app.post("/api/sessions/{session_id}/layers")
async def add_layer(session_id: str, req: LoadImageRequest) -> dict:
    """Stack an image layer on top and make it active."""
    session = _get_session(session_id)
    image = _decode_image(req.image)
    layer = session.add_layer(image)
    return _result(session_id, session, layer=layer.id)


@app.post("/api/sessions/{session_id}/layers/{layer_id}/visibility")
async def toggle_layer(session_id: str, layer_id: str) -> dict:
    """Show or hide a layer.

    Raises:
        HTTPException: 404 if the layer does not exist.
    """
    session = _get_session(session_id)
    try:
        visible = session.toggle_layer(layer_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail="Layer not found") from e
    return _result(session_id, session, layer=layer_id, visible=visible)


@app.post("/api/sessions/{session_id}/layers/{layer_id}/activate")
async def activate_layer(session_id: str, layer_id: str) -> dict:
    """Make a layer the active one."""
    session = _get_session(session_id)
    try:
        session.select_layer(layer_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail="Layer not found") from e
    return _result(session_id, session, layer=layer_id)


@app.delete("/api/sessions/{session_id}/layers/{layer_id}")
async def remove_layer(session_id: str, layer_id: str) -> dict:
    """Delete a layer; ``changed`` is False when it is the last one."""
    session = _get_session(session_id)
    try:
        changed = session.remove_layer(layer_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail="Layer not found") from e
    return _result(session_id, session, changed=changed)


@app.put("/api/sessions/{session_id}/container")
async def resize_container(session_id: str, req: ResizeRequest) -> dict:
    """Apply a container size change."""
    session = _get_session(session_id)
    resized = session.resize(req.container_width, req.container_height)
    return _result(session_id, session, resized=resized)


@app.put("/api/sessions/{session_id}/tool")
async def update_tool(session_id: str, req: ToolRequest) -> dict:
    """Update any subset of the tool settings.

    Raises:
        HTTPException: 400 for unknown tool or mode names.
    """
    session = _get_session(session_id)
    try:
        if req.tool is not None:
            session.set_tool(req.tool)
        if req.paint_mode is not None:
            session.set_paint_mode(req.paint_mode)
        if req.select_mode is not None:
            session.set_select_mode(req.select_mode)
        if req.brush_size is not None:
            session.set_brush_size(req.brush_size)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _result(session_id, session)


@app.post("/api/sessions/{session_id}/pointer")
async def pointer_event(session_id: str, req: PointerRequest) -> dict:
    """Forward a pointer or touch event to the editor."""
    session = _get_session(session_id)
    handlers = {
        "down": session.pointer_down,
        "move": session.pointer_move,
        "up": session.pointer_up,
        "leave": session.pointer_leave,
    }
    changed = handlers[req.event](req.x, req.y)
    return _result(session_id, session, changed=changed)


@app.post("/api/sessions/{session_id}/shortcut")
async def keyboard_shortcut(session_id: str, req: ShortcutRequest) -> dict:
    """Apply a keyboard shortcut (Mod+Z, Mod+Shift+Z, Mod+Y)."""
    session = _get_session(session_id)
    action = session.handle_shortcut(req.key, ctrl=req.ctrl, meta=req.meta, shift=req.shift)
    return _result(session_id, session, action=action)


@app.post("/api/sessions/{session_id}/undo")
async def undo(session_id: str) -> dict:
    """Undo the most recent stroke or clear; a no-op on empty history."""
    session = _get_session(session_id)
    return _result(session_id, session, changed=session.undo())


@app.post("/api/sessions/{session_id}/redo")
async def redo(session_id: str) -> dict:
    """Redo the most recently undone action; a no-op on empty history."""
    session = _get_session(session_id)
    return _result(session_id, session, changed=session.redo())


@app.post("/api/sessions/{session_id}/clear")
async def clear_canvas(session_id: str) -> dict:
    """Clear all paint as one undoable action."""
    session = _get_session(session_id)
    return _result(session_id, session, changed=session.clear())


@app.post("/api/sessions/{session_id}/selection/invert")
async def invert_selection(session_id: str) -> dict:
    """Invert the smart selection; a no-op when nothing is selected."""
    session = _get_session(session_id)
    return _result(session_id, session, changed=session.invert_selection())


@app.delete("/api/sessions/{session_id}/selection")
async def clear_selection(session_id: str) -> dict:
    """Discard the smart selection."""
    session = _get_session(session_id)
    return _result(session_id, session, changed=session.clear_selection())


@app.post("/api/sessions/{session_id}/selection/erase-background")
async def erase_background(session_id: str) -> dict:
    """Mark everything outside the selection for editing."""
    session = _get_session(session_id)
    return _result(session_id, session, changed=session.erase_background())


@app.get("/api/sessions/{session_id}/surface.png")
async def get_surface(session_id: str) -> Response:
    """Return the paint surface as a PNG."""
    return _png_response(_get_session(session_id).surface)


@app.get("/api/sessions/{session_id}/overlay.png")
async def get_overlay(session_id: str) -> Response:
    """Return the selection overlay as a PNG."""
    return _png_response(_get_session(session_id).overlay)


@app.get("/api/sessions/{session_id}/view.png")
async def get_view(session_id: str) -> Response:
    """Return the visible layers with the overlay and paint on top, as a PNG."""
    view = _get_session(session_id).render_view()
    if view is None:
        raise HTTPException(status_code=409, detail="No image loaded")
    return _encode_png(view)


@app.post("/api/sessions/{session_id}/mask")
async def export_mask(session_id: str, req: ExportRequest | None = None) -> dict:
    """Export the native-resolution mask as a PNG data URL.

    Returns:
        Dictionary with ``mask`` (data URL), ``width``, ``height``,
        ``edit_pixels``, and ``path`` when ``save`` was requested.

    Raises:
        HTTPException: 409 if the session has no image loaded yet.
    """
    session = _get_session(session_id)
    artifact = session.export_mask()
    if artifact is None:
        raise HTTPException(status_code=409, detail="Cannot export mask before an image is loaded")

    path = None
    if req is not None and req.save:
        path = artifact.save(config.exports_dir / f"{session_id}-{uuid.uuid4().hex[:8]}.png")

    width, height = artifact.size
    return {
        "id": session_id,
        "mask": artifact.to_data_url(),
        "width": width,
        "height": height,
        "edit_pixels": artifact.edit_pixel_count(),
        "path": str(path) if path else None,
    }


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~maskworks.core.config.config` (which
    loads from ``MASKWORKS_SERVER_HOST`` and ``MASKWORKS_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``maskworks`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    uvicorn.run(
        "maskworks.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
