"""
ArtifactNormalizer: re-encode to `<base>-preview.jpg`, degrade to a raw copy
when the encoder fails, and fail only when no fallback is possible.
"""
from __future__ import annotations

import pytest
from PIL import Image

from fieldsign.conversion import normalizer as norm_mod
from fieldsign.conversion.normalizer import ArtifactNormalizer, encode_jpeg
from fieldsign.errors import NormalizationFailure


def test_normalize_reencodes_to_preview(tmp_path):
    raw = tmp_path / "base-1.jpg"
    Image.new("RGB", (20, 10), "white").save(raw, format="JPEG")

    result = ArtifactNormalizer().normalize(raw, tmp_path, "base")

    assert result.path == tmp_path / "base-preview.jpg"
    assert result.degraded is False
    with Image.open(result.path) as img:
        assert img.format == "JPEG"
        assert img.size == (20, 10)


def test_encoder_failure_falls_back_to_raw_copy(tmp_path):
    raw = tmp_path / "base-1.jpg"
    raw.write_bytes(b"not really a jpeg")

    result = ArtifactNormalizer().normalize(raw, tmp_path, "base")

    assert result.degraded is True
    assert result.path.read_bytes() == b"not really a jpeg"


def test_missing_raw_file_is_fatal(tmp_path):
    with pytest.raises(NormalizationFailure, match="converted file missing"):
        ArtifactNormalizer().normalize(tmp_path / "gone.jpg", tmp_path, "gone")


def test_copy_failure_is_fatal(monkeypatch, tmp_path):
    raw = tmp_path / "base-1.jpg"
    raw.write_bytes(b"junk")

    def _deny(*_a, **_kw):
        raise PermissionError("read-only volume")

    monkeypatch.setattr(norm_mod.shutil, "copyfile", _deny)
    with pytest.raises(NormalizationFailure, match="Failed to create final preview file"):
        ArtifactNormalizer().normalize(raw, tmp_path, "base")


def test_encode_jpeg_flattens_transparency_onto_white(tmp_path):
    src = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    dest = tmp_path / "flat.jpg"
    encode_jpeg(_png_bytes(src), dest, quality=95)
    with Image.open(dest) as img:
        assert img.mode == "RGB"
        assert min(img.getpixel((1, 1))) > 240


def _png_bytes(img):
    from io import BytesIO

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
