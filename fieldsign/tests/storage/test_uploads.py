"""
Multipart staging: deterministic names under the customer folder, size
limits and empty uploads rejected without leftovers.
"""
from __future__ import annotations

import pytest

from fieldsign.errors import InputError
from fieldsign.storage.config import get_convert_timeout_seconds, get_max_upload_bytes
from fieldsign.storage.uploads import stage_upload

pytestmark = pytest.mark.anyio("asyncio")

TS = "2025-03-01_14-05-09"


class _FakeUpload:
    def __init__(self, data: bytes, filename="scan.pdf", content_type="application/pdf"):
        self._data = data
        self.filename = filename
        self.content_type = content_type

    async def read(self, size: int = -1) -> bytes:
        if size < 0:
            size = len(self._data)
        chunk, self._data = self._data[:size], self._data[size:]
        return chunk


async def test_stage_upload_writes_deterministic_name(upload_base):
    staged = await stage_upload(_FakeUpload(b"%PDF-1.4"), customer_id="12-34", terms="PAN Peri", stamp=TS)

    assert staged.path == upload_base / "1234" / f"1234-PAN-Peri-{TS}.pdf"
    assert staged.path.read_bytes() == b"%PDF-1.4"
    assert staged.filename == f"1234-PAN-Peri-{TS}.pdf"
    assert staged.originalname == "scan.pdf"
    assert staged.mimetype == "application/pdf"
    assert staged.extension == ".pdf"


async def test_stage_upload_guesses_extension_from_mimetype(upload_base):
    up = _FakeUpload(b"\x89PNG", filename="blob", content_type="image/png")
    staged = await stage_upload(up, customer_id="1", terms="", stamp=TS)
    assert staged.filename == f"1-{TS}.png"


async def test_oversized_upload_is_rejected_and_removed(upload_base):
    with pytest.raises(InputError, match="size limit"):
        await stage_upload(_FakeUpload(b"x" * 11), customer_id="1", terms="", stamp=TS, max_bytes=10)
    assert list((upload_base / "1").iterdir()) == []


async def test_empty_or_missing_upload_is_rejected(upload_base):
    with pytest.raises(InputError, match="empty"):
        await stage_upload(_FakeUpload(b""), customer_id="1", terms="", stamp=TS)
    with pytest.raises(InputError, match="No file uploaded"):
        await stage_upload(None, customer_id="1", terms="")


async def test_env_overrides_are_clamped(monkeypatch):
    monkeypatch.setenv("FIELDSIGN_CONVERT_TIMEOUT_SECONDS", "9999")
    monkeypatch.setenv("FIELDSIGN_MAX_UPLOAD_BYTES", "not-a-number")
    assert get_convert_timeout_seconds() == 600
    assert get_max_upload_bytes() == 50 * 1024 * 1024
