"""
Gesture classification tests.

Pure core (`apply_gesture`) and the stateful `GestureController`:
- one pointer pans, two pointers pinch (first frame is reference only);
- the wheel zooms around the cursor;
- once locked, pointer input becomes strokes and the viewport is frozen.
"""
from __future__ import annotations

import pytest

from fieldsign.signing.gestures import (
    GestureController,
    GestureState,
    Pan,
    Phase,
    PointerEvent,
    PointerKind,
    StrokeBegin,
    StrokeEnd,
    StrokeExtend,
    WheelEvent,
    Zoom,
    apply_gesture,
    lock,
)
from fieldsign.signing.signature_capture import SignatureCapture, SignatureRegion
from fieldsign.signing.viewport import Viewport

CENTER = (400.0, 256.0)


def _down(pid, x, y, **kw):
    return PointerEvent(PointerKind.DOWN, pid, x, y, **kw)


def _move(pid, x, y):
    return PointerEvent(PointerKind.MOVE, pid, x, y)


def _up(pid, x=0, y=0):
    return PointerEvent(PointerKind.UP, pid, x, y)


def _run(state, *events, region=None):
    actions = []
    for ev in events:
        state, action = apply_gesture(state, ev, stage_center=CENTER, region=region)
        actions.append(action)
    return state, actions


def test_single_pointer_pans_by_delta():
    state, actions = _run(GestureState(), _down(1, 10, 10), _move(1, 15, 20), _move(1, 12, 20))
    assert actions == [None, Pan(5, 10), Pan(-3, 0)]
    assert state.panning is True


def test_pinch_first_frame_only_records_reference_distance():
    state, actions = _run(
        GestureState(),
        _down(1, 0, 0),
        _down(2, 100, 0),
        _move(2, 100, 0),
        _move(2, 130, 0),
    )
    assert actions[:3] == [None, None, None]
    zoom = actions[3]
    assert isinstance(zoom, Zoom)
    assert zoom.factor == pytest.approx(1 + 30 / 300)
    assert (zoom.pivot_x, zoom.pivot_y) == CENTER
    assert state.pinch_distance == pytest.approx(130)


def test_dropping_to_one_pointer_clears_pinch_and_resumes_pan_without_jump():
    state, _ = _run(GestureState(), _down(1, 0, 0), _down(2, 100, 0), _move(2, 100, 0), _move(2, 120, 0))
    state, actions = _run(state, _up(2), _move(1, 4, 6))
    assert state.pinch_distance is None
    assert actions == [None, Pan(4, 6)]


def test_wheel_zooms_around_cursor():
    _, actions = _run(GestureState(), WheelEvent(50, 60, -3), WheelEvent(50, 60, 3))
    assert actions == [Zoom(1.08, 50, 60), Zoom(0.92, 50, 60)]


def test_cancel_clears_pointers_and_pinch():
    state, _ = _run(GestureState(), _down(1, 0, 0), _down(2, 10, 0), _move(2, 10, 0))
    state, actions = _run(state, PointerEvent(PointerKind.CANCEL, 1, 0, 0))
    assert actions == [None]
    assert state.pointers == ()
    assert state.pinch_distance is None


def test_lock_is_one_directional():
    locked = lock(GestureState())
    assert locked.phase is Phase.SIGNING
    assert lock(locked) is locked
    # No gesture leads back to aligning.
    state, _ = _run(locked, _down(1, 0, 0), _move(1, 5, 5), WheelEvent(0, 0, -1), _up(1))
    assert state.phase is Phase.SIGNING


def test_signing_routes_pointers_to_strokes_inside_region_only():
    region = SignatureRegion.for_stage(800, 512).rect
    state = lock(GestureState())

    _, outside = _run(state, _down(1, 5, 5), _move(1, 6, 6), _up(1), region=region)
    assert outside == [None, None, None]

    _, inside = _run(state, _down(1, 100, 350), _move(1, 120, 360), _up(1), region=region)
    assert inside == [StrokeBegin(100, 350), StrokeExtend(120, 360), StrokeEnd()]


def test_signing_ignores_secondary_mouse_buttons():
    state = lock(GestureState())
    _, actions = _run(state, _down(1, 100, 350, pointer_type="mouse", button=2))
    assert actions == [None]


def test_controller_freezes_viewport_after_lock():
    vp = Viewport()
    vp.fit_to_stage(1000, 1400, 800, 512)
    ctl = GestureController(vp, stage_w=800, stage_h=512)

    ctl.handle(_down(1, 10, 10))
    ctl.handle(_move(1, 30, 10))
    assert vp.offset_x == 217 + 20

    capture = SignatureCapture(SignatureRegion.for_stage(800, 512))
    ctl.lock(capture)
    frozen = (vp.scale, vp.offset_x, vp.offset_y)

    ctl.handle(WheelEvent(400, 256, -1))
    ctl.zoom_step(1.12)
    ctl.handle(_down(1, 100, 350))
    ctl.handle(_move(1, 200, 400))
    ctl.handle(_up(1))

    assert (vp.scale, vp.offset_x, vp.offset_y) == frozen
    assert len(capture.strokes) == 1
    # Stroke points are stored relative to the region, in overlay pixels.
    assert capture.strokes[0].points[0] == (100 - 40, 350 - 297)


def test_controller_zoom_step_pivots_at_stage_center():
    vp = Viewport()
    vp.fit_to_stage(1000, 1400, 800, 512)
    ctl = GestureController(vp, stage_w=800, stage_h=512)
    before = vp.to_image(*ctl.stage_center)
    ctl.zoom_step(1.12)
    after = vp.to_image(*ctl.stage_center)
    assert after == pytest.approx(before)
