"""
Pointer gesture classification for the alignment/signing stage.

Phases:
    ALIGNING  one pointer pans, two pointers pinch-zoom around the stage
              center, the wheel zooms around the cursor.
    SIGNING   every pointer event is a signature stroke; the viewport is
              frozen.

The only transition is `lock()` (ALIGNING -> SIGNING). Going back requires a
fresh state (session reset), which keeps the transform used for signature
placement stable.

`apply_gesture` is the pure core: it maps (state, event) to a new state and
at most one action. `GestureController` applies those actions to a Viewport
and a SignatureCapture.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Union

from fieldsign.signing.viewport import Rect, Viewport

PINCH_SENSITIVITY = 300.0
WHEEL_ZOOM_IN = 1.08
WHEEL_ZOOM_OUT = 0.92


class Phase(str, Enum):
    ALIGNING = "aligning"
    SIGNING = "signing"


class PointerKind(str, Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CANCEL = "cancel"


@dataclass(frozen=True)
class PointerEvent:
    kind: PointerKind
    pointer_id: int
    x: float
    y: float
    pointer_type: str = "touch"
    button: int = 0


@dataclass(frozen=True)
class WheelEvent:
    x: float
    y: float
    delta_y: float


GestureEvent = Union[PointerEvent, WheelEvent]


# -- actions ---------------------------------------------------------------


@dataclass(frozen=True)
class Pan:
    dx: float
    dy: float


@dataclass(frozen=True)
class Zoom:
    factor: float
    pivot_x: float
    pivot_y: float


@dataclass(frozen=True)
class StrokeBegin:
    x: float
    y: float


@dataclass(frozen=True)
class StrokeExtend:
    x: float
    y: float


@dataclass(frozen=True)
class StrokeEnd:
    pass


GestureAction = Union[Pan, Zoom, StrokeBegin, StrokeExtend, StrokeEnd]


@dataclass(frozen=True)
class GestureState:
    phase: Phase = Phase.ALIGNING
    pointers: Tuple[Tuple[int, float, float], ...] = field(default_factory=tuple)
    last_x: float = 0.0
    last_y: float = 0.0
    panning: bool = False
    pinch_distance: Optional[float] = None
    drawing: bool = False

    @property
    def locked(self) -> bool:
        return self.phase is Phase.SIGNING

    def pointer_ids(self) -> list[int]:
        return [pid for pid, _x, _y in self.pointers]

    def _with_pointer(self, pid: int, x: float, y: float) -> Tuple[Tuple[int, float, float], ...]:
        if pid in self.pointer_ids():
            return tuple((p, x, y) if p == pid else (p, px, py) for p, px, py in self.pointers)
        return self.pointers + ((pid, x, y),)

    def _without_pointer(self, pid: int) -> Tuple[Tuple[int, float, float], ...]:
        return tuple((p, x, y) for p, x, y in self.pointers if p != pid)


def lock(state: GestureState) -> GestureState:
    """ALIGNING -> SIGNING; drops tracked pointers. No reverse transition."""
    if state.locked:
        return state
    return GestureState(phase=Phase.SIGNING)


def _contains(region: Optional[Rect], x: float, y: float) -> bool:
    if region is None:
        return True
    return region.x <= x <= region.right and region.y <= y <= region.bottom


def _apply_signing(state: GestureState, event: GestureEvent, region: Optional[Rect]):
    if isinstance(event, WheelEvent):
        return state, None
    if event.kind is PointerKind.DOWN:
        if event.pointer_type == "mouse" and event.button != 0:
            return state, None
        if not _contains(region, event.x, event.y):
            return state, None
        return replace(state, drawing=True), StrokeBegin(event.x, event.y)
    if event.kind is PointerKind.MOVE:
        if not state.drawing:
            return state, None
        return state, StrokeExtend(event.x, event.y)
    # UP / CANCEL
    if not state.drawing:
        return state, None
    return replace(state, drawing=False), StrokeEnd()


def _apply_aligning(state: GestureState, event: GestureEvent, stage_center: Tuple[float, float]):
    if isinstance(event, WheelEvent):
        factor = WHEEL_ZOOM_IN if event.delta_y < 0 else WHEEL_ZOOM_OUT
        return state, Zoom(factor, event.x, event.y)

    if event.kind is PointerKind.CANCEL:
        return replace(state, pointers=(), panning=False, pinch_distance=None), None

    if event.kind is PointerKind.DOWN:
        pointers = state._with_pointer(event.pointer_id, event.x, event.y)
        if len(pointers) == 1:
            return replace(state, pointers=pointers, panning=True, last_x=event.x, last_y=event.y), None
        return replace(state, pointers=pointers), None

    if event.kind is PointerKind.MOVE:
        if event.pointer_id not in state.pointer_ids():
            return state, None
        pointers = state._with_pointer(event.pointer_id, event.x, event.y)
        if len(pointers) == 1 and state.panning:
            dx, dy = event.x - state.last_x, event.y - state.last_y
            return replace(state, pointers=pointers, last_x=event.x, last_y=event.y), Pan(dx, dy)
        if len(pointers) == 2:
            (_, x0, y0), (_, x1, y1) = pointers
            d = math.hypot(x0 - x1, y0 - y1)
            if state.pinch_distance is None:
                return replace(state, pointers=pointers, pinch_distance=d), None
            factor = 1 + (d - state.pinch_distance) / PINCH_SENSITIVITY
            cx, cy = stage_center
            return replace(state, pointers=pointers, pinch_distance=d), Zoom(factor, cx, cy)
        return replace(state, pointers=pointers), None

    # UP
    pointers = state._without_pointer(event.pointer_id)
    new_state = replace(state, pointers=pointers)
    if len(pointers) < 2:
        new_state = replace(new_state, pinch_distance=None)
    if len(pointers) == 1:
        # Continue panning from the remaining finger without a jump.
        _, rx, ry = pointers[0]
        new_state = replace(new_state, last_x=rx, last_y=ry)
    if not pointers:
        new_state = replace(new_state, panning=False)
    return new_state, None


def apply_gesture(
    state: GestureState,
    event: GestureEvent,
    *,
    stage_center: Tuple[float, float],
    region: Optional[Rect] = None,
) -> Tuple[GestureState, Optional[GestureAction]]:
    """Pure transition function: (state, event) -> (state', action or None)."""
    if state.locked:
        return _apply_signing(state, event, region)
    return _apply_aligning(state, event, stage_center)


class GestureController:
    """Stateful wrapper routing actions to the viewport or the signature pad."""

    def __init__(self, viewport: Viewport, *, stage_w: int = 0, stage_h: int = 0, capture=None) -> None:
        self.viewport = viewport
        self.capture = capture
        self.state = GestureState()
        self.stage_w = stage_w
        self.stage_h = stage_h

    @property
    def locked(self) -> bool:
        return self.state.locked

    @property
    def stage_center(self) -> Tuple[float, float]:
        return (self.stage_w / 2, self.stage_h / 2)

    def resize(self, stage_w: int, stage_h: int) -> None:
        self.stage_w = stage_w
        self.stage_h = stage_h

    def lock(self, capture=None) -> None:
        if capture is not None:
            self.capture = capture
        self.state = lock(self.state)

    def handle(self, event: GestureEvent) -> Optional[GestureAction]:
        region = self.capture.region.rect if (self.locked and self.capture is not None) else None
        self.state, action = apply_gesture(self.state, event, stage_center=self.stage_center, region=region)
        if action is None:
            return None
        if isinstance(action, Pan):
            self.viewport.pan(action.dx, action.dy)
        elif isinstance(action, Zoom):
            self.viewport.zoom_around(action.factor, action.pivot_x, action.pivot_y)
        elif self.capture is not None:
            if isinstance(action, StrokeBegin):
                self.capture.begin_stroke(*self.capture.region.to_local(action.x, action.y))
            elif isinstance(action, StrokeExtend):
                self.capture.extend_stroke(*self.capture.region.to_local(action.x, action.y))
            else:
                self.capture.end_stroke()
        return action

    def zoom_step(self, factor: float) -> None:
        """Toolbar zoom around the stage center; ignored while signing."""
        if self.locked:
            return
        cx, cy = self.stage_center
        self.viewport.zoom_around(factor, cx, cy)


__all__ = [
    "PINCH_SENSITIVITY",
    "WHEEL_ZOOM_IN",
    "WHEEL_ZOOM_OUT",
    "Phase",
    "PointerKind",
    "PointerEvent",
    "WheelEvent",
    "Pan",
    "Zoom",
    "StrokeBegin",
    "StrokeExtend",
    "StrokeEnd",
    "GestureState",
    "lock",
    "apply_gesture",
    "GestureController",
]
