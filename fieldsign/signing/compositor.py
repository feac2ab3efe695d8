"""
High-resolution compositing of the document and the signature overlay.

The export is always computed from the document's natural size times
EXPORT_SCALE; nothing from the live display zoom leaks into the output
dimensions. The only display-derived input is the signature box, mapped to
image space through the transform frozen when signing began.
"""
from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from fieldsign.errors import DocumentNotReady, PreviewLoadFailure
from fieldsign.signing.signature_capture import SignatureRegion
from fieldsign.signing.viewport import Viewport, ViewportSnapshot

EXPORT_SCALE = 3
EXPORT_JPEG_QUALITY = 92

_RESAMPLE = Image.Resampling.LANCZOS


@dataclass(frozen=True, eq=False)
class DocumentAsset:
    """Decoded source document; immutable once loaded."""

    image: Image.Image

    @property
    def natural_width(self) -> int:
        return self.image.width

    @property
    def natural_height(self) -> int:
        return self.image.height

    @classmethod
    def from_bytes(cls, data: bytes) -> "DocumentAsset":
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise PreviewLoadFailure(f"Error loading image for alignment: {exc}") from exc
        return cls(image=img.convert("RGB"))


@dataclass(frozen=True)
class Composition:
    data: bytes
    width: int
    height: int
    signature_rect: Tuple[int, int, int, int]
    mime_type: str = "image/jpeg"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"


def signature_destination(
    region: SignatureRegion,
    viewport_at_lock: Union[Viewport, ViewportSnapshot],
    export_scale: float = EXPORT_SCALE,
) -> Tuple[int, int, int, int]:
    """Destination (x, y, w, h) of the signature box in the export raster."""
    image_rect = viewport_at_lock.rect_to_image(region.rect)
    return image_rect.scaled(export_scale).rounded()


def compose(
    document: Optional[DocumentAsset],
    overlay: Image.Image,
    viewport_at_lock: Union[Viewport, ViewportSnapshot],
    region: SignatureRegion,
    export_scale: float = EXPORT_SCALE,
    *,
    quality: int = EXPORT_JPEG_QUALITY,
) -> Composition:
    if document is None:
        raise DocumentNotReady()

    out_w = max(1, round(document.natural_width * export_scale))
    out_h = max(1, round(document.natural_height * export_scale))
    canvas = document.image.convert("RGB").resize((out_w, out_h), _RESAMPLE)

    sx, sy, sw, sh = signature_destination(region, viewport_at_lock, export_scale)
    if sw > 0 and sh > 0:
        sig = overlay.convert("RGBA").resize((sw, sh), _RESAMPLE)
        # paste() clips boxes that hang over the canvas edge.
        canvas.paste(sig, (sx, sy), sig)

    buf = io.BytesIO()
    canvas.save(buf, format="JPEG", quality=quality)
    return Composition(data=buf.getvalue(), width=out_w, height=out_h, signature_rect=(sx, sy, sw, sh))


__all__ = [
    "EXPORT_SCALE",
    "EXPORT_JPEG_QUALITY",
    "DocumentAsset",
    "Composition",
    "signature_destination",
    "compose",
]
