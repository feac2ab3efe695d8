"FieldSign server"
from __future__ import annotations

import html
import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import FileResponse, HTMLResponse
from fastapi.staticfiles import StaticFiles

from fieldsign.storage.config import get_app_root, get_upload_base_dir
from fieldsign.web import config as _cfg
from fieldsign.web.responses import private_response
from fieldsign.web.routes.documents import documents_router
from fieldsign.web.routes.photos import photos_router


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out/opt-in via FIELDSIGN_ENABLE_DOTENV (default true
      outside pytest).
    """
    # Under pytest, do not load .env – tests provide their own env.
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("FIELDSIGN_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

logger = logging.getLogger("fieldsign.web")

# Pages served from the application root when present.
PAGES = {
    "/photo-capture": "photo-capture.html",
    "/upload-doc": "upload-doc.html",
}


def _page_response(filename: str):
    path = get_app_root() / filename
    if path.is_file():
        return FileResponse(str(path), media_type="text/html")
    return HTMLResponse(f"{html.escape(filename)} not found", status_code=404)


def _index_response():
    root = get_app_root()
    index = root / "index.html"
    if index.is_file():
        return FileResponse(str(index), media_type="text/html")
    try:
        entries = sorted(os.listdir(root))
    except OSError:
        entries = []
    listing = "<br>".join(html.escape(name) for name in entries)
    return HTMLResponse(f"<h3>index.html not found</h3><div>{listing}</div>")


def create_app() -> FastAPI:
    """Build the ASGI app against the current environment.

    The `/uploads` mount is bound to the upload directory at construction
    time; tests that point FIELDSIGN_UPLOAD_BASE_DIR elsewhere build a fresh
    app.
    """
    # Minimal production safety checks (fail-fast on unsafe config)
    _cfg.ensure_secure_config_on_startup()

    application = FastAPI(title="FieldSign", description="Field document signing server", version="0.1.0")

    uploads_dir = get_upload_base_dir()
    uploads_dir.mkdir(parents=True, exist_ok=True)
    application.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")
    logger.info("serving uploads from %s (app root %s)", uploads_dir, get_app_root())

    application.include_router(documents_router)
    application.include_router(photos_router)

    @application.get("/health")
    async def health_check():
        # Security: include no-store to avoid caching any runtime status.
        return private_response({"status": "healthy"})

    @application.get("/photo-capture")
    async def photo_capture_page():
        return _page_response(PAGES["/photo-capture"])

    @application.get("/upload-doc")
    async def upload_doc_page():
        return _page_response(PAGES["/upload-doc"])

    @application.get("/")
    async def index_page():
        return _index_response()

    return application


app = create_app()
