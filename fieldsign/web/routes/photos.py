"""Field photo endpoint: store a captured photo plus a JSON metadata sidecar."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile

from fieldsign.errors import InputError
from fieldsign.storage.naming import sanitize_customer_id, sanitize_terms
from fieldsign.storage.uploads import stage_upload
from fieldsign.web.responses import private_response

photos_router = APIRouter(tags=["Photos"])

_log = logging.getLogger("fieldsign.web.photos")

META_SUFFIX = ".meta.json"


@photos_router.post("/save-photo")
async def save_photo(
    customerId: str = Form(""),
    terms: str = Form(""),
    termsRaw: str = Form(""),
    extra: str = Form(""),
    photo: Optional[UploadFile] = File(None),
):
    """
    Store `photo` under the customer folder with a `<filename>.meta.json`.

    A failing sidecar write is logged; the photo itself is still reported as
    saved.
    """
    if photo is None or not photo.filename:
        return private_response({"success": False, "error": "No photo uploaded"}, status_code=400)

    raw_terms = terms or termsRaw
    try:
        staged = await stage_upload(photo, customer_id=customerId, terms=raw_terms)
    except InputError as exc:
        return private_response({"success": False, "error": str(exc)}, status_code=400)
    except OSError:
        _log.exception("save-photo error")
        return private_response({"success": False, "error": "Error saving photo"}, status_code=500)

    meta = {
        "customerId": sanitize_customer_id(customerId),
        "terms": sanitize_terms(raw_terms),
        "extra": extra or "",
        "filename": staged.filename,
        "savedAt": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }
    meta_path = staged.path.parent / f"{staged.filename}{META_SUFFIX}"
    try:
        meta_path.write_text(json.dumps(meta, indent=2), encoding="utf-8")
    except OSError as exc:
        _log.warning("save-photo metadata write failed: %s", exc)

    return private_response({"success": True, "filename": staged.filename, "path": str(staged.path)})


__all__ = ["photos_router", "META_SUFFIX"]
