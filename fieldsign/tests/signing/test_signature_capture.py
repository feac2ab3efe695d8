from __future__ import annotations

import pytest

from fieldsign.signing.signature_capture import (
    PenWidth,
    SignatureCapture,
    SignatureRegion,
    stage_size_for_width,
)
from fieldsign.signing.viewport import Rect


def test_stage_size_respects_minimums_and_aspect():
    assert stage_size_for_width(200) == (320, 360)
    assert stage_size_for_width(800) == (800, 512)
    assert stage_size_for_width(1000.7) == (1000, 640)


def test_region_occupies_bottom_of_stage():
    region = SignatureRegion.for_stage(800, 512)
    assert region.rect == Rect(40, 297, 720, 199)
    assert region.to_local(50, 300) == (10, 3)


def test_overlay_is_sized_by_device_pixel_ratio():
    cap = SignatureCapture(SignatureRegion.for_stage(800, 512), device_pixel_ratio=2)
    assert cap.overlay.size == (1440, 398)
    assert cap.overlay.mode == "RGBA"
    assert cap.is_blank


@pytest.mark.parametrize("pen,dpr,expected", [(PenWidth.THIN, 1, 2), (PenWidth.MEDIUM, 1.5, 6), (PenWidth.THICK, 2, 12)])
def test_pen_presets_scale_with_dpr(pen, dpr, expected):
    cap = SignatureCapture(SignatureRegion(Rect(0, 0, 100, 50)), device_pixel_ratio=dpr, pen=pen)
    assert cap.stroke_width_px == expected


def test_stroke_draws_ink_and_commits_on_end():
    cap = SignatureCapture(SignatureRegion(Rect(0, 0, 100, 50)))
    cap.begin_stroke(10, 10)
    assert cap.drawing
    cap.extend_stroke(40, 20)
    cap.extend_stroke(80, 30)
    cap.end_stroke()

    assert not cap.drawing
    assert not cap.is_blank
    assert len(cap.strokes) == 1
    assert cap.strokes[0].points == ((10, 10), (40, 20), (80, 30))
    assert cap.strokes[0].width_px == PenWidth.MEDIUM
    assert cap.overlay.getpixel((40, 20))[3] == 255


def test_tap_without_movement_is_not_committed():
    cap = SignatureCapture(SignatureRegion(Rect(0, 0, 100, 50)))
    cap.begin_stroke(10, 10)
    cap.end_stroke()
    assert cap.strokes == []
    assert cap.is_blank


def test_pen_change_applies_to_next_stroke():
    cap = SignatureCapture(SignatureRegion(Rect(0, 0, 100, 50)))
    cap.begin_stroke(1, 1)
    cap.set_pen(PenWidth.THICK)
    cap.extend_stroke(5, 5)
    cap.end_stroke()
    cap.begin_stroke(10, 10)
    cap.extend_stroke(20, 20)
    cap.end_stroke()
    assert [s.width_px for s in cap.strokes] == [4, 6]


def test_clear_blanks_overlay():
    cap = SignatureCapture(SignatureRegion(Rect(0, 0, 100, 50)))
    cap.begin_stroke(10, 10)
    cap.extend_stroke(90, 40)
    cap.end_stroke()
    cap.clear()
    assert cap.is_blank
    assert cap.strokes == []
    assert cap.to_png().startswith(b"\x89PNG")
