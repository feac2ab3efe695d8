"""
Freehand signature capture into an overlay raster confined to a fixed region.

The overlay is sized to the region's on-screen rectangle multiplied by the
device pixel ratio, so stroke fidelity does not depend on how far the
document underneath is zoomed. Inputs arrive in CSS pixels relative to the
region's top-left corner; they are stored and drawn in overlay pixels.
"""
from __future__ import annotations

import io
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Tuple

from PIL import Image, ImageDraw

from fieldsign.signing.viewport import Rect

MIN_STAGE_W = 320
MIN_STAGE_H = 360
STAGE_ASPECT = 0.64

REGION_WIDTH_RATIO = 0.9
REGION_HEIGHT_RATIO = 0.39
REGION_BOTTOM_MARGIN = 16

INK = (0, 0, 0, 255)
TRANSPARENT = (0, 0, 0, 0)


class PenWidth(IntEnum):
    """Pen presets in CSS pixels."""

    THIN = 2
    MEDIUM = 4
    THICK = 6


def stage_size_for_width(width: float) -> Tuple[int, int]:
    """Stage dimensions for a container `width` wide (aspect 0.64, floored)."""
    w = max(MIN_STAGE_W, math.floor(width))
    h = max(MIN_STAGE_H, math.floor(width * STAGE_ASPECT))
    return w, h


@dataclass(frozen=True)
class SignatureRegion:
    """Signature box in stage-relative display pixels; never pans or zooms."""

    rect: Rect

    @classmethod
    def for_stage(cls, stage_w: int, stage_h: int) -> "SignatureRegion":
        w = math.floor(stage_w * REGION_WIDTH_RATIO)
        h = math.floor(stage_h * REGION_HEIGHT_RATIO)
        x = math.floor((stage_w - w) / 2)
        y = math.floor(stage_h - h - REGION_BOTTOM_MARGIN)
        return cls(Rect(x, y, w, h))

    def to_local(self, x: float, y: float) -> Tuple[float, float]:
        return (x - self.rect.x, y - self.rect.y)


@dataclass(frozen=True)
class Stroke:
    """Polyline in overlay pixels with the line width it was drawn with."""

    points: Tuple[Tuple[float, float], ...]
    width_px: int


class SignatureCapture:
    def __init__(self, region: SignatureRegion, *, device_pixel_ratio: float = 1.0, pen: PenWidth = PenWidth.MEDIUM) -> None:
        self.region = region
        self.dpr = float(device_pixel_ratio or 1.0)
        self.pen = PenWidth(pen)
        size = (
            max(1, round(region.rect.w * self.dpr)),
            max(1, round(region.rect.h * self.dpr)),
        )
        self.overlay = Image.new("RGBA", size, TRANSPARENT)
        self._draw = ImageDraw.Draw(self.overlay)
        self._strokes: List[Stroke] = []
        self._current: List[Tuple[float, float]] | None = None
        self._current_width = self.stroke_width_px

    @property
    def stroke_width_px(self) -> int:
        return max(1, round(int(self.pen) * self.dpr))

    @property
    def strokes(self) -> List[Stroke]:
        return list(self._strokes)

    @property
    def drawing(self) -> bool:
        return self._current is not None

    @property
    def is_blank(self) -> bool:
        return self.overlay.getchannel("A").getbbox() is None

    def set_pen(self, pen: PenWidth) -> None:
        """Select a preset; applies from the next stroke on."""
        self.pen = PenWidth(pen)

    def begin_stroke(self, x: float, y: float) -> None:
        if self._current is not None:
            self.end_stroke()
        self._current = [(x * self.dpr, y * self.dpr)]
        self._current_width = self.stroke_width_px

    def extend_stroke(self, x: float, y: float) -> None:
        if self._current is None:
            return
        point = (x * self.dpr, y * self.dpr)
        self._segment(self._current[-1], point, self._current_width)
        self._current.append(point)

    def end_stroke(self) -> None:
        if self._current is None:
            return
        if len(self._current) > 1:
            self._strokes.append(Stroke(points=tuple(self._current), width_px=self._current_width))
        self._current = None

    def clear(self) -> None:
        self._current = None
        self._strokes.clear()
        self._draw.rectangle((0, 0, self.overlay.width, self.overlay.height), fill=TRANSPARENT)

    def _segment(self, a: Tuple[float, float], b: Tuple[float, float], width: int) -> None:
        self._draw.line([a, b], fill=INK, width=width)
        # Round caps/joins: a disc at each end of the segment.
        r = width / 2
        for (cx, cy) in (a, b):
            self._draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=INK)

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.overlay.save(buf, format="PNG")
        return buf.getvalue()


__all__ = [
    "PenWidth",
    "stage_size_for_width",
    "SignatureRegion",
    "Stroke",
    "SignatureCapture",
]
