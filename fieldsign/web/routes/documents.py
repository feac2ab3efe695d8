"""
Document endpoints: PDF preview conversion and final document persistence.

Endpoints:
    POST /convert-pdf   multipart `customerId`, `terms`, `doc`
    POST /save-doc      multipart `customerId`, `terms`, `doc`
                        or JSON `{customerId, terms, imageData, originalUploadedFilename?}`

Behavior:
    - Uploads land in `<upload_base>/<customerId>/` under deterministic names.
    - `/convert-pdf` keeps the uploaded PDF and the preview; `/save-doc`
      (JSON) removes both once the final composition is written.
    - Responses carry `Cache-Control: private, no-store`.

Security:
    - Customer ids are reduced to digits before touching the filesystem.
    - Cleanup only uses the basename of `originalUploadedFilename`.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from typing import Callable, Optional
from urllib.parse import quote

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile as StarletteUploadFile

from fieldsign.conversion.converters import default_converters
from fieldsign.conversion.normalizer import encode_jpeg
from fieldsign.conversion.pipeline import ConversionPipeline
from fieldsign.errors import ConversionFailure, FieldSignError, InputError, NormalizationFailure
from fieldsign.storage.cleanup import CleanupManager
from fieldsign.storage.config import (
    FINAL_JPEG_QUALITY,
    MULTIPART_JPEG_QUALITY,
    SAVE_DOC_RENDER_DPI,
    get_app_root,
    get_upload_base_dir,
)
from fieldsign.storage.naming import ArtifactRecord
from fieldsign.storage.uploads import StagedUpload, stage_upload
from fieldsign.web.responses import private_response

documents_router = APIRouter(tags=["Documents"])

_log = logging.getLogger("fieldsign.web.documents")

_DATA_URL_RE = re.compile(r"^data:(image/jpeg|image/png);base64,(.+)$", re.DOTALL)
_ANY_DATA_URL_PREFIX_RE = re.compile(r"^data:.*?;base64,", re.DOTALL)

_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg"}


def _error(message: str, *, status_code: int, **extra) -> JSONResponse:
    body = {"success": False, "error": message}
    body.update(extra)
    return private_response(body, status_code=status_code)


# Pipeline construction is deferred so env overrides (tests, .env) apply.
# Tests replace the factory via set_pipeline_factory().
PipelineFactory = Callable[[Optional[int]], ConversionPipeline]


def _default_pipeline(dpi: Optional[int] = None) -> ConversionPipeline:
    return ConversionPipeline(default_converters(get_app_root(), dpi=dpi))


_PIPELINE_FACTORY: PipelineFactory = _default_pipeline
CLEANUP = CleanupManager()


def set_pipeline_factory(factory: PipelineFactory | None) -> None:  # pragma: no cover - used in tests
    """Install a pipeline factory; `None` restores the default chain."""
    global _PIPELINE_FACTORY
    _PIPELINE_FACTORY = factory or _default_pipeline


def web_path(customer_id: str, filename: str) -> str:
    """Public URL of a stored artifact under the `/uploads` mount."""
    return f"/uploads/{customer_id}/{quote(filename)}"


def decode_image_data(data: object) -> bytes:
    """Extract the binary payload from an `image/jpeg|png` data URL.

    Unknown `data:*;base64,` prefixes are stripped leniently; anything that
    does not decode raises `InputError`.
    """
    text = str(data or "")
    match = _DATA_URL_RE.match(text)
    payload = match.group(2) if match else _ANY_DATA_URL_PREFIX_RE.sub("", text, count=1)
    try:
        raw = base64.b64decode(payload)
    except (binascii.Error, ValueError) as exc:
        raise InputError(f"imageData is not valid base64: {exc}") from exc
    if not raw:
        raise InputError("imageData is empty")
    return raw


# --- /convert-pdf -------------------------------------------------------------


@documents_router.post("/convert-pdf")
async def convert_pdf(
    customerId: str = Form(""),
    terms: str = Form(""),
    doc: Optional[UploadFile] = File(None),
):
    """
    Stage an upload and produce the canonical preview of its first page.

    Responses:
        200 `{success, imagePath, filename, fullPath, uploadedFilename}`
        400 `{success:false, error}` when no file was uploaded
        500 `{success:false, error, dirListing}` when every converter failed
    """
    try:
        staged = await stage_upload(doc, customer_id=customerId, terms=terms)
    except InputError as exc:
        _log.warning("convert-pdf rejected upload: %s", exc)
        return _error(str(exc), status_code=400)

    _log.info("convert-pdf uploaded file: %s", staged.path)
    cid = staged.path.parent.name

    if staged.extension != ".pdf":
        return private_response(
            {
                "success": True,
                "imagePath": web_path(cid, staged.filename),
                "filename": staged.filename,
                "fullPath": str(staged.path),
                "uploadedFilename": staged.filename,
            }
        )

    out_dir = staged.path.parent
    base = staged.path.stem
    try:
        result = await _PIPELINE_FACTORY(None).build_preview(staged.path, out_dir, base)
    except ConversionFailure as exc:
        return _error(str(exc), status_code=500, dirListing=list(exc.listing))
    except NormalizationFailure as exc:
        return _error(str(exc), status_code=500)
    except Exception as exc:
        _log.exception("convert-pdf unexpected error")
        return _error(str(exc), status_code=500)

    preview = result.preview_path
    _log.info("convert-pdf success -> %s (degraded=%s)", preview, result.degraded)
    return private_response(
        {
            "success": True,
            "imagePath": web_path(cid, preview.name),
            "filename": preview.name,
            "fullPath": str(preview),
            "uploadedFilename": staged.filename,
        }
    )


# --- /save-doc ----------------------------------------------------------------


async def _save_staged_document(staged: StagedUpload) -> JSONResponse:
    upload_dir = staged.path.parent
    base = staged.path.stem
    jpg_path = upload_dir / f"{base}.jpg"
    ext = staged.extension

    if ext == ".pdf":
        pipeline = _PIPELINE_FACTORY(SAVE_DOC_RENDER_DPI)
        raw = await pipeline.rasterize_first_page(staged.path, upload_dir, base)
        await asyncio.to_thread(encode_jpeg, raw, jpg_path, quality=MULTIPART_JPEG_QUALITY)
    elif ext in _IMAGE_EXTENSIONS:
        try:
            await asyncio.to_thread(encode_jpeg, staged.path, jpg_path, quality=MULTIPART_JPEG_QUALITY)
        except NormalizationFailure as exc:
            CLEANUP.discard(staged.path)
            raise InputError(f"Uploaded image could not be decoded: {exc}") from exc
    else:
        # Nothing is kept for unsupported types.
        CLEANUP.discard(staged.path)
        raise InputError("Unsupported file type")

    # Upload and intermediate rasters go; the normalized JPEG stays.
    CLEANUP.remove_after_save(upload_dir, staged.filename, keep=jpg_path)
    return private_response({"success": True, "filename": jpg_path.name, "path": str(jpg_path)})


async def _save_composition(body: dict) -> JSONResponse:
    if not body.get("imageData") or not body.get("customerId"):
        raise InputError("Missing imageData or customerId")

    raw = decode_image_data(body.get("imageData"))
    record = ArtifactRecord.create(
        base_dir=get_upload_base_dir(),
        customer_id=body.get("customerId"),
        terms=body.get("terms") or "",
        extension=".jpg",
    )
    record.path.parent.mkdir(parents=True, exist_ok=True)
    try:
        await asyncio.to_thread(encode_jpeg, raw, record.path, quality=FINAL_JPEG_QUALITY)
    except NormalizationFailure as exc:
        raise InputError(f"imageData is not a decodable image: {exc}") from exc
    _log.info("save-doc wrote final document %s", record.path)

    CLEANUP.remove_after_save(record.path.parent, body.get("originalUploadedFilename"), keep=record.path)
    return private_response({"success": True, "filename": record.filename, "path": str(record.path)})


@documents_router.post("/save-doc")
async def save_doc(request: Request):
    """
    Persist a final document.

    Modes:
        multipart with `doc`: PDF page 1 or PNG/JPEG normalized to JPEG q90.
        JSON (or multipart fields) with `imageData`: client composition
        stored as JPEG q95, followed by cleanup of the source upload.
    """
    content_type = (request.headers.get("content-type") or "").lower()
    try:
        if content_type.startswith("multipart/form-data") or content_type.startswith(
            "application/x-www-form-urlencoded"
        ):
            form = await request.form()
            doc = form.get("doc")
            if isinstance(doc, StarletteUploadFile) and doc.filename:
                staged = await stage_upload(doc, customer_id=form.get("customerId"), terms=form.get("terms"))
                return await _save_staged_document(staged)
            body = {k: v for k, v in form.items() if not isinstance(v, StarletteUploadFile)}
        else:
            try:
                body = await request.json()
            except ValueError as exc:
                raise InputError("Request body must be JSON or multipart") from exc
            if not isinstance(body, dict):
                raise InputError("Request body must be a JSON object")
        return await _save_composition(body)
    except InputError as exc:
        _log.warning("save-doc rejected request: %s", exc)
        return _error(str(exc), status_code=400)
    except ConversionFailure as exc:
        return _error(str(exc), status_code=500, dirListing=list(exc.listing))
    except FieldSignError as exc:
        return _error(str(exc), status_code=500)
    except Exception as exc:
        _log.exception("save-doc error")
        return _error(str(exc), status_code=500)


__all__ = ["documents_router", "set_pipeline_factory", "decode_image_data", "web_path"]
