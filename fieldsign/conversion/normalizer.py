"""
Re-encoding of converter output into one canonical JPEG artifact.

Design:
- Pillow only; every writer goes through `encode_jpeg` so quality and color
  handling (RGB, alpha flattened onto white) stay identical across the
  preview, the final composition and multipart image uploads.
- Preview normalization degrades instead of failing: when re-encoding
  breaks, the raw converter output is copied under the canonical name.
"""
from __future__ import annotations

import io
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError

from fieldsign.errors import NormalizationFailure
from fieldsign.storage.config import PREVIEW_JPEG_QUALITY

_log = logging.getLogger("fieldsign.conversion.normalizer")

PREVIEW_SUFFIX = "-preview.jpg"

ImageSource = Union[Path, str, bytes]


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img if img.mode == "RGB" else img.convert("RGB")


def encode_jpeg(source: ImageSource, dest: Path, *, quality: int) -> tuple[int, int]:
    """Decode `source` (path or bytes) and write it to `dest` as JPEG.

    Returns the (width, height) written. Raises NormalizationFailure when the
    source cannot be decoded or written.
    """
    try:
        fp = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else str(source)
        with Image.open(fp) as img:
            img.load()
            out = _flatten_to_rgb(img)
            out.save(str(dest), format="JPEG", quality=quality)
            return out.size
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise NormalizationFailure(f"jpeg encode failed: {exc}") from exc


def preview_name(base_name: str) -> str:
    return f"{base_name}{PREVIEW_SUFFIX}"


@dataclass(frozen=True)
class NormalizedArtifact:
    path: Path
    degraded: bool


class ArtifactNormalizer:
    """Write `<base>-preview.jpg` next to the raw converter output."""

    def __init__(self, *, quality: int = PREVIEW_JPEG_QUALITY) -> None:
        self._quality = quality

    def normalize(self, raw_path: Path, out_dir: Path, base_name: str) -> NormalizedArtifact:
        final = Path(out_dir) / preview_name(base_name)
        try:
            encode_jpeg(Path(raw_path), final, quality=self._quality)
            return NormalizedArtifact(path=final, degraded=False)
        except NormalizationFailure as exc:
            _log.warning("normalization failed, falling back to converted file: %s", exc)

        if not Path(raw_path).is_file():
            raise NormalizationFailure("Normalization failed and converted file missing")
        try:
            shutil.copyfile(raw_path, final)
        except OSError as exc:
            _log.error("fallback copy error: %s", exc)
            raise NormalizationFailure("Failed to create final preview file") from exc
        return NormalizedArtifact(path=final, degraded=True)


__all__ = [
    "PREVIEW_SUFFIX",
    "encode_jpeg",
    "preview_name",
    "NormalizedArtifact",
    "ArtifactNormalizer",
]
