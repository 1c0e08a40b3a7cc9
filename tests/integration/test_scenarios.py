"""End-to-end editing scenarios through EditorSession.

Tests cover:
- A single erase stroke on a 1024x1024 image edited at 900x900.
- Export containment of the painted display area.
- History inverse behaviour across many strokes, including the limit.
- Selection edge cases (inverting nothing, include/exclude round trips).
"""

from __future__ import annotations

import math

import numpy as np
from PIL import Image

from maskworks.core.config import MaskworksConfig
from maskworks.core.editor import EditorSession


def _painted_bbox(alpha: np.ndarray, threshold: int = 10):
    ys, xs = np.nonzero(alpha > threshold)
    return int(xs.min()), int(ys.min()), int(xs.max()) + 1, int(ys.max()) + 1


class TestSingleStrokeScenario:
    """A 78 px erase dab at (450, 450) on a 1024 image displayed at 900."""

    def test_disc_maps_to_native_centre(self, standalone_session: EditorSession):
        """The exported hole is a ~89 px disc centred near (512, 512)."""
        session = standalone_session
        session.pointer_down(450, 450)
        session.pointer_up(450, 450)

        artifact = session.export_mask()
        assert artifact.size == (1024, 1024)
        assert artifact.alpha[512, 512] == 0
        for corner in [(0, 0), (0, 1023), (1023, 0), (1023, 1023)]:
            assert artifact.alpha[corner] == 255

        left, top, right, bottom = artifact.transparent_bbox()
        assert 85 <= right - left <= 95
        assert 85 <= bottom - top <= 95
        assert abs((left + right) / 2 - 512) <= 2
        assert abs((top + bottom) / 2 - 512) <= 2

    def test_export_contains_projected_stroke(self, standalone_session: EditorSession):
        """Every native pixel starting inside the painted display box is transparent."""
        session = standalone_session
        session.pointer_down(120, 300)
        session.pointer_move(400, 340)
        session.pointer_move(610, 200)
        session.pointer_up()

        x0, y0, x1, y1 = _painted_bbox(session.surface.alpha)
        geometry = session.geometry
        projected = (
            math.floor(x0 * geometry.scale_x),
            math.floor(y0 * geometry.scale_y),
            math.floor(x1 * geometry.scale_x),
            math.floor(y1 * geometry.scale_y),
        )
        left, top, right, bottom = session.export_mask().transparent_bbox()
        assert left <= projected[0]
        assert top <= projected[1]
        assert right >= projected[2]
        assert bottom >= projected[3]

    def test_restore_reverts_mask(self, standalone_session: EditorSession):
        """Restoring over a mark returns the mask to all-keep."""
        session = standalone_session
        session.pointer_down(450, 450)
        session.pointer_up()
        session.set_paint_mode("restore")
        session.set_brush_size(120)
        session.pointer_down(450, 450)
        session.pointer_up()
        assert session.export_mask().edit_pixel_count() == 0


class TestHistoryScenario:
    """History behaviour across a longer editing session."""

    def test_undo_all_then_redo_all(self, standalone_session: EditorSession):
        """Undoing and redoing every stroke reproduces the final surface."""
        session = standalone_session
        session.set_brush_size(20)
        for i in range(6):
            session.pointer_down(50 + i * 100, 100)
            session.pointer_move(50 + i * 100, 300)
            session.pointer_up()
        final = session.surface.snapshot()

        while session.undo():
            pass
        assert session.surface.is_blank()
        while session.redo():
            pass
        assert np.array_equal(session.surface.pixels, final)

    def test_history_limit(self, standalone_session: EditorSession):
        """After 40 strokes only 30 can be undone."""
        session = standalone_session
        session.set_brush_size(10)
        for i in range(40):
            session.pointer_down(20 + i * 20, 450)
            session.pointer_up()

        undone = 0
        while session.undo():
            undone += 1
        assert undone == 30
        # the first ten strokes remain
        assert session.surface.alpha[450, 20] > 0
        assert session.surface.alpha[450, 200] > 0
        assert session.surface.alpha[450, 220] == 0

    def test_new_stroke_after_undo_drops_redo(self, standalone_session: EditorSession):
        """Painting after an undo starts a new branch."""
        session = standalone_session
        session.pointer_down(100, 100)
        session.pointer_up()
        session.undo()
        session.pointer_down(600, 600)
        session.pointer_up()
        assert not session.can_redo


class TestSelectionScenario:
    """Selection edge cases end to end."""

    def test_invert_nothing_stays_nothing(
        self, test_config: MaskworksConfig, two_tone_image: Image.Image
    ):
        """Inverting with no selection leaves the mask export untouched."""
        session = EditorSession.standalone(test_config)
        session.load_image(two_tone_image, container_width=200, container_height=100)
        session.set_tool("select")
        session.invert_selection()
        assert not session.has_selection
        assert not session.erase_background()
        assert session.export_mask().edit_pixel_count() == 0

    def test_include_exclude_round_trip(self, select_session: EditorSession):
        """Including then excluding the same region selects nothing."""
        session = select_session
        session.select_at(150, 50)
        session.set_select_mode("exclude")
        session.select_at(150, 50)
        assert not session.has_selection

    def test_select_both_regions(self, select_session: EditorSession):
        """Two includes cover the union of both regions."""
        session = select_session
        session.select_at(20, 50)
        session.select_at(180, 50)
        assert session.selection.selected_count() == 200 * 100
