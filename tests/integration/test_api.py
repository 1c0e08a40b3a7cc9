"""Integration tests for maskworks.api.main: the session API host shell.

Tests cover:
- GET /api/config returns the editor limits.
- Session creation, lookup and deletion (including 400/404 paths).
- Pointer, tool, shortcut, history and selection endpoints.
- Version and layer routes and the composited view.
- Rejection of oversized or non-finite input.
- Raster previews and mask export (with and without saving).

All tests use the shared ``test_client`` fixture, whose configuration
writes exports to a temporary directory.
"""

from __future__ import annotations

import base64
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from maskworks.core.config import MaskworksConfig


@pytest.fixture
def session_id(test_client, square_image, data_url_factory) -> str:
    """Create a standalone session on the 1024x1024 test image."""
    resp = test_client.post(
        "/api/sessions",
        json={
            "image": data_url_factory(square_image),
            "container_width": 1200,
            "container_height": 1200,
        },
    )
    assert resp.status_code == 200
    return resp.json()["id"]


def _stroke(client, session_id: str, points) -> None:
    first, *rest = points
    url = f"/api/sessions/{session_id}/pointer"
    client.post(url, json={"event": "down", "x": first[0], "y": first[1]})
    for x, y in rest:
        client.post(url, json={"event": "move", "x": x, "y": y})
    client.post(url, json={"event": "up"})


class TestConfigEndpoint:
    """Tests for GET /api/config."""

    def test_returns_limits(self, test_client):
        """Config exposes brush range and per-profile defaults."""
        data = test_client.get("/api/config").json()
        assert data["brush"] == {"min": 5, "max": 200}
        assert data["profiles"]["standalone"]["display_cap"] == 900
        assert data["profiles"]["embedded"]["smart_select"] is False
        assert data["fill_tolerance"] == 32
        assert data["history_limit"] == 30


class TestSessionLifecycle:
    """Tests for creating, reading and deleting sessions."""

    def test_create_standalone(self, test_client, square_image, data_url_factory):
        """A standalone session fits the 1024 image at 900x900."""
        resp = test_client.post(
            "/api/sessions",
            json={
                "image": data_url_factory(square_image),
                "container_width": 1200,
                "container_height": 1200,
            },
        )
        assert resp.status_code == 200
        state = resp.json()["state"]
        assert state["ready"] is True
        assert state["geometry"]["display_width"] == 900
        assert state["settings"]["brush_size"] == 78

    def test_create_embedded(self, test_client, data_url_factory):
        """An embedded session never upscales past native width."""
        image = Image.new("RGB", (300, 200), (5, 5, 5))
        resp = test_client.post(
            "/api/sessions",
            json={
                "image": data_url_factory(image),
                "profile": "embedded",
                "container_width": 800,
                "container_height": 800,
            },
        )
        state = resp.json()["state"]
        assert state["geometry"]["display_width"] == 300
        assert state["settings"]["brush_size"] == 40

    def test_invalid_image_data(self, test_client):
        """Malformed data URLs are rejected with 400."""
        resp = test_client.post(
            "/api/sessions", json={"image": "not-a-data-url", "container_width": 800}
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid image data format"

    def test_non_image_mime(self, test_client):
        """Non-image payloads are rejected with 400."""
        resp = test_client.post(
            "/api/sessions",
            json={"image": "data:text/plain;base64,aGVsbG8=", "container_width": 800},
        )
        assert resp.status_code == 400
        assert "image file" in resp.json()["detail"]

    def test_oversized_image(
        self, test_client, test_config: MaskworksConfig, square_image, data_url_factory
    ):
        """Payloads over the upload limit are rejected with 400."""
        test_config.max_upload_bytes = 10
        resp = test_client.post(
            "/api/sessions",
            json={"image": data_url_factory(square_image), "container_width": 800},
        )
        assert resp.status_code == 400

    def test_decompression_bomb_rejected(self, test_client, monkeypatch, data_url_factory):
        """Images over Pillow's pixel budget are rejected with 400, not 500."""
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        resp = test_client.post(
            "/api/sessions",
            json={"image": data_url_factory(Image.new("RGB", (64, 64))), "container_width": 800},
        )
        assert resp.status_code == 400
        assert "too large" in resp.json()["detail"]

    def test_invalid_container(self, test_client, square_image, data_url_factory):
        """A zero container width fails request validation."""
        resp = test_client.post(
            "/api/sessions",
            json={"image": data_url_factory(square_image), "container_width": 0},
        )
        assert resp.status_code == 422

    def test_get_and_delete(self, test_client, session_id):
        """Sessions can be read and closed; closed sessions 404."""
        assert test_client.get(f"/api/sessions/{session_id}").status_code == 200
        resp = test_client.delete(f"/api/sessions/{session_id}")
        assert resp.json() == {"success": True, "deleted": session_id}
        assert test_client.get(f"/api/sessions/{session_id}").status_code == 404
        assert test_client.delete(f"/api/sessions/{session_id}").status_code == 404

    def test_unknown_session(self, test_client):
        """Operations on unknown sessions return 404."""
        assert test_client.post("/api/sessions/nope/undo").status_code == 404
        assert test_client.post("/api/sessions/nope/mask").status_code == 404


class TestEditing:
    """Tests for gesture and history endpoints."""

    def test_stroke_and_undo(self, test_client, session_id):
        """A stroke enables undo; undo then enables redo."""
        _stroke(test_client, session_id, [(100, 100), (200, 100)])
        state = test_client.get(f"/api/sessions/{session_id}").json()["state"]
        assert state["can_undo"] is True
        assert state["stroking"] is False

        data = test_client.post(f"/api/sessions/{session_id}/undo").json()
        assert data["changed"] is True
        assert data["state"]["can_redo"] is True

        data = test_client.post(f"/api/sessions/{session_id}/redo").json()
        assert data["changed"] is True

    def test_undo_on_empty_history(self, test_client, session_id):
        """Undo without history reports no change."""
        data = test_client.post(f"/api/sessions/{session_id}/undo").json()
        assert data["changed"] is False

    def test_shortcut(self, test_client, session_id):
        """Keyboard shortcuts drive history."""
        _stroke(test_client, session_id, [(100, 100)])
        data = test_client.post(
            f"/api/sessions/{session_id}/shortcut", json={"key": "z", "ctrl": True}
        ).json()
        assert data["action"] == "undo"

    def test_invalid_pointer_event(self, test_client, session_id):
        """Unknown pointer events fail request validation."""
        resp = test_client.post(f"/api/sessions/{session_id}/pointer", json={"event": "hover"})
        assert resp.status_code == 422

    def test_tool_update(self, test_client, session_id):
        """Tool settings are applied and clamped."""
        data = test_client.put(
            f"/api/sessions/{session_id}/tool",
            json={"tool": "select", "select_mode": "exclude", "brush_size": 999},
        ).json()
        settings = data["state"]["settings"]
        assert settings["tool"] == "select"
        assert settings["select_mode"] == "exclude"
        assert settings["brush_size"] == 200

    def test_invalid_tool(self, test_client, session_id):
        """Unknown tools are rejected with 400."""
        resp = test_client.put(f"/api/sessions/{session_id}/tool", json={"tool": "lasso"})
        assert resp.status_code == 400

    def test_clear(self, test_client, session_id):
        """Clear is undoable."""
        _stroke(test_client, session_id, [(100, 100)])
        assert test_client.post(f"/api/sessions/{session_id}/clear").json()["changed"] is True
        assert test_client.post(f"/api/sessions/{session_id}/undo").json()["changed"] is True

    def test_resize(self, test_client, session_id):
        """Container changes reallocate only when the display size changes."""
        data = test_client.put(
            f"/api/sessions/{session_id}/container",
            json={"container_width": 1300, "container_height": 1300},
        ).json()
        assert data["resized"] is False
        data = test_client.put(
            f"/api/sessions/{session_id}/container",
            json={"container_width": 400, "container_height": 400},
        ).json()
        assert data["resized"] is True
        assert data["state"]["geometry"]["display_width"] == 400

    def test_version_switch(self, test_client, session_id, data_url_factory):
        """Adding a result version resets history; the Original can be reactivated."""
        _stroke(test_client, session_id, [(100, 100)])
        image = Image.new("RGB", (512, 256), (1, 2, 3))
        data = test_client.post(
            f"/api/sessions/{session_id}/versions", json={"image": data_url_factory(image)}
        ).json()
        assert data["version"] == "v-2"
        assert data["state"]["can_undo"] is False
        assert data["state"]["geometry"]["native_width"] == 512
        assert [v["label"] for v in data["state"]["versions"]] == ["Original", "Edit 1"]

        data = test_client.post(f"/api/sessions/{session_id}/versions/v-1/activate").json()
        assert data["state"]["active_version"] == "v-1"
        assert data["state"]["geometry"]["native_width"] == 1024

    def test_unknown_version(self, test_client, session_id):
        """Activating an unknown version returns 404."""
        resp = test_client.post(f"/api/sessions/{session_id}/versions/v-7/activate")
        assert resp.status_code == 404

    def test_non_finite_pointer(self, test_client, session_id):
        """NaN or infinite coordinates fail request validation."""
        url = f"/api/sessions/{session_id}/pointer"
        bodies = (
            '{"event": "down", "x": NaN, "y": 0}',
            '{"event": "move", "x": 0, "y": Infinity}',
        )
        for body in bodies:
            resp = test_client.post(url, content=body, headers={"Content-Type": "application/json"})
            assert resp.status_code == 422
        state = test_client.get(f"/api/sessions/{session_id}").json()["state"]
        assert state["can_undo"] is False

    def test_non_finite_brush_size(self, test_client, session_id):
        """A NaN brush size fails request validation."""
        resp = test_client.put(
            f"/api/sessions/{session_id}/tool",
            content='{"brush_size": NaN}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 422


class TestLayerEndpoints:
    """Tests for the layer stack routes and the composited view."""

    def test_layer_lifecycle(self, test_client, session_id, data_url_factory):
        """Layers can be added, hidden, activated and removed down to one."""
        base = f"/api/sessions/{session_id}/layers"
        data = test_client.post(
            base, json={"image": data_url_factory(Image.new("RGB", (64, 64), (0, 200, 0)))}
        ).json()
        assert data["layer"] == "layer-2"
        assert [layer["name"] for layer in data["state"]["layers"]] == ["Layer 2", "Layer 1"]
        assert data["state"]["active_layer"] == "layer-2"

        data = test_client.post(f"{base}/layer-2/visibility").json()
        assert data["visible"] is False
        assert data["state"]["layers"][0]["visible"] is False

        data = test_client.post(f"{base}/layer-1/activate").json()
        assert data["state"]["active_layer"] == "layer-1"

        data = test_client.delete(f"{base}/layer-1").json()
        assert data["changed"] is True
        assert data["state"]["active_layer"] == "layer-2"

        data = test_client.delete(f"{base}/layer-2").json()
        assert data["changed"] is False

    def test_unknown_layer(self, test_client, session_id):
        """Operations on unknown layers return 404."""
        base = f"/api/sessions/{session_id}/layers/layer-9"
        assert test_client.post(f"{base}/visibility").status_code == 404
        assert test_client.post(f"{base}/activate").status_code == 404
        assert test_client.delete(base).status_code == 404

    def test_invalid_layer_image(self, test_client, session_id):
        """Malformed layer images are rejected with 400."""
        resp = test_client.post(f"/api/sessions/{session_id}/layers", json={"image": "nope"})
        assert resp.status_code == 400

    def test_view_png(self, test_client, session_id, data_url_factory):
        """The view shows the top visible layer at display size."""
        test_client.post(
            f"/api/sessions/{session_id}/layers",
            json={"image": data_url_factory(Image.new("RGB", (1024, 1024), (0, 200, 0)))},
        )
        resp = test_client.get(f"/api/sessions/{session_id}/view.png")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        view = Image.open(io.BytesIO(resp.content))
        assert view.size == (900, 900)
        assert view.getpixel((450, 450)) == (0, 200, 0, 255)


class TestSelectionEndpoints:
    """Tests for the selection endpoints."""

    def test_select_invert_and_erase_background(
        self, test_client, two_tone_image, data_url_factory
    ):
        """Selecting, inverting and marking the background flow end to end."""
        session_id = test_client.post(
            "/api/sessions",
            json={
                "image": data_url_factory(two_tone_image),
                "container_width": 200,
                "container_height": 100,
            },
        ).json()["id"]
        base = f"/api/sessions/{session_id}"

        assert test_client.post(f"{base}/selection/invert").json()["changed"] is False

        test_client.put(f"{base}/tool", json={"tool": "select"})
        data = test_client.post(f"{base}/pointer", json={"event": "down", "x": 20, "y": 50}).json()
        assert data["state"]["has_selection"] is True

        assert test_client.post(f"{base}/selection/invert").json()["changed"] is True
        assert test_client.post(f"{base}/selection/erase-background").json()["changed"] is True

        mask = test_client.post(f"{base}/mask").json()
        assert mask["edit_pixels"] == 100 * 100

        data = test_client.delete(f"{base}/selection").json()
        assert data["changed"] is True
        assert data["state"]["has_selection"] is False

    def test_embedded_rejects_select(self, test_client, square_image, data_url_factory):
        """The embedded panel has no smart select."""
        session_id = test_client.post(
            "/api/sessions",
            json={
                "image": data_url_factory(square_image),
                "profile": "embedded",
                "container_width": 400,
            },
        ).json()["id"]
        resp = test_client.put(f"/api/sessions/{session_id}/tool", json={"tool": "select"})
        assert resp.status_code == 400


class TestRastersAndExport:
    """Tests for raster previews and mask export."""

    def test_surface_png(self, test_client, session_id):
        """The paint surface is served as a display-size PNG."""
        resp = test_client.get(f"/api/sessions/{session_id}/surface.png")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert Image.open(io.BytesIO(resp.content)).size == (900, 900)

    def test_overlay_png(self, test_client, session_id):
        """The selection overlay is served as a PNG."""
        resp = test_client.get(f"/api/sessions/{session_id}/overlay.png")
        assert resp.status_code == 200

    def test_export_blank(self, test_client, session_id):
        """An unpainted session exports an all-keep native mask."""
        data = test_client.post(f"/api/sessions/{session_id}/mask").json()
        assert data["width"] == 1024
        assert data["height"] == 1024
        assert data["edit_pixels"] == 0
        assert data["path"] is None
        assert data["mask"].startswith("data:image/png;base64,")

    def test_export_painted(self, test_client, session_id):
        """Painted areas are transparent in the exported mask."""
        _stroke(test_client, session_id, [(450, 450)])
        data = test_client.post(f"/api/sessions/{session_id}/mask").json()
        payload = base64.b64decode(data["mask"].split(",", 1)[1])
        alpha = np.asarray(Image.open(io.BytesIO(payload)).getchannel("A"))
        assert alpha[512, 512] == 0
        assert alpha[0, 0] == 255
        assert data["edit_pixels"] > 0

    def test_export_and_save(self, test_client, session_id, test_config: MaskworksConfig):
        """Saved masks land in the exports directory."""
        data = test_client.post(f"/api/sessions/{session_id}/mask", json={"save": True}).json()
        path = Path(data["path"])
        assert path.exists()
        assert path.parent == test_config.exports_dir
        assert path.name.startswith(session_id)
