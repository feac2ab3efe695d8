"""
Pan/zoom state and the affine mapping between display and image space.

The model is strictly uniform scale + translate:

    display = image * scale + offset
    image   = (display - offset) / scale

No rotation or shear is ever introduced, so one scalar and one offset pair
fully describe the transform.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

MIN_SCALE_RATIO = 0.35
MAX_SCALE_RATIO = 6.0

# Toolbar buttons zoom around the stage center.
ZOOM_IN_STEP = 1.12
ZOOM_OUT_STEP = 0.9


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    def scaled(self, factor: float) -> "Rect":
        return Rect(self.x * factor, self.y * factor, self.w * factor, self.h * factor)

    def rounded(self) -> tuple[int, int, int, int]:
        return (round(self.x), round(self.y), round(self.w), round(self.h))


@dataclass
class Viewport:
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    min_scale: float = 0.2
    max_scale: float = 6.0

    # -- transform ---------------------------------------------------------

    def to_display(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y)

    def to_image(self, x: float, y: float) -> tuple[float, float]:
        return ((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)

    def rect_to_image(self, rect: Rect) -> Rect:
        x, y = self.to_image(rect.x, rect.y)
        return Rect(x, y, rect.w / self.scale, rect.h / self.scale)

    def rect_to_display(self, rect: Rect) -> Rect:
        x, y = self.to_display(rect.x, rect.y)
        return Rect(x, y, rect.w * self.scale, rect.h * self.scale)

    # -- mutation ----------------------------------------------------------

    def fit_to_stage(self, image_w: int, image_h: int, stage_w: int, stage_h: int) -> None:
        """Fit the whole image into the stage, centered, and derive zoom limits."""
        if image_w <= 0 or image_h <= 0:
            raise ValueError("image dimensions must be positive")
        s = min(stage_w / image_w, stage_h / image_h)
        self.scale = s
        self.offset_x = math.floor((stage_w - image_w * s) / 2)
        self.offset_y = math.floor((stage_h - image_h * s) / 2)
        self.min_scale = s * MIN_SCALE_RATIO
        self.max_scale = s * MAX_SCALE_RATIO

    def zoom_around(self, factor: float, pivot_x: float, pivot_y: float) -> None:
        """Zoom by `factor` keeping the image point under the pivot in place."""
        new_scale = max(self.min_scale, min(self.max_scale, self.scale * factor))
        k = new_scale / self.scale
        self.offset_x = pivot_x - k * (pivot_x - self.offset_x)
        self.offset_y = pivot_y - k * (pivot_y - self.offset_y)
        self.scale = new_scale

    def pan(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy

    def snapshot(self) -> "ViewportSnapshot":
        return ViewportSnapshot(
            scale=self.scale,
            offset_x=self.offset_x,
            offset_y=self.offset_y,
            min_scale=self.min_scale,
            max_scale=self.max_scale,
        )


@dataclass(frozen=True)
class ViewportSnapshot:
    """Immutable transform captured when signing begins."""

    scale: float
    offset_x: float
    offset_y: float
    min_scale: float
    max_scale: float

    def to_image(self, x: float, y: float) -> tuple[float, float]:
        return ((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)

    def rect_to_image(self, rect: Rect) -> Rect:
        x, y = self.to_image(rect.x, rect.y)
        return Rect(x, y, rect.w / self.scale, rect.h / self.scale)


__all__ = [
    "MIN_SCALE_RATIO",
    "MAX_SCALE_RATIO",
    "ZOOM_IN_STEP",
    "ZOOM_OUT_STEP",
    "Rect",
    "Viewport",
    "ViewportSnapshot",
]
