"""
Staging of multipart uploads under the customer's folder.

Intent:
    Persist an incoming multipart file to
    `<upload_base>/<customerId>/<customerId>[-<terms>]-<stamp><ext>` and
    describe it with the same fields the routes consume
    (`path, filename, originalname, mimetype`).

Security:
    - Only the extension of the client filename is used; the name itself is
      derived from sanitized form fields.
    - Writes stop with `InputError` once the configured byte limit is
      exceeded and the partial file is removed.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from fieldsign.errors import InputError
from fieldsign.storage.config import customer_upload_dir, get_max_upload_bytes
from fieldsign.storage.naming import make_filename, normalize_extension, sanitize_customer_id, timestamp_now

_CHUNK = 1024 * 1024


class UploadLike(Protocol):
    """Subset of `starlette.datastructures.UploadFile` used for staging."""

    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class StagedUpload:
    path: Path
    filename: str
    originalname: str
    mimetype: str

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()


async def stage_upload(
    upload: UploadLike,
    *,
    customer_id: object,
    terms: object,
    stamp: str | None = None,
    max_bytes: int | None = None,
) -> StagedUpload:
    """Write `upload` to the customer folder under a deterministic name."""
    if upload is None or not getattr(upload, "filename", None):
        raise InputError("No file uploaded")
    cid = sanitize_customer_id(customer_id)
    original = str(upload.filename)
    mimetype = str(upload.content_type or "application/octet-stream")
    ext = normalize_extension(original, mimetype=mimetype)
    name = make_filename(cid, terms, stamp or timestamp_now(), ext)
    target = customer_upload_dir(cid) / name
    limit = max_bytes or get_max_upload_bytes()

    written = 0
    with open(target, "wb") as fh:
        while True:
            chunk = await upload.read(_CHUNK)
            if not chunk:
                break
            written += len(chunk)
            if written > limit:
                break
            fh.write(chunk)
    if written > limit:
        target.unlink(missing_ok=True)
        raise InputError("Upload exceeds configured size limit")
    if written == 0:
        target.unlink(missing_ok=True)
        raise InputError("Uploaded file is empty")
    return StagedUpload(path=target, filename=name, originalname=original, mimetype=mimetype)


__all__ = ["StagedUpload", "UploadLike", "stage_upload"]
