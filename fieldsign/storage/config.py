"""
Centralized configuration for upload locations, limits and encoder settings.

Intent:
    Provide a single source of truth for where artifacts land on disk and how
    long external converters may run. Keeps the web routes and the conversion
    pipeline free of ad-hoc `os.getenv` calls and makes overrides testable.

Behavior:
    - FIELDSIGN_APP_ROOT: directory holding bundled binaries and HTML pages
      (defaults to the current working directory).
    - FIELDSIGN_UPLOAD_BASE_DIR: root of per-customer upload folders
      (defaults to `<app_root>/uploads`).
    - FIELDSIGN_CONVERT_TIMEOUT_SECONDS: bound for one external converter
      invocation (default 120, clamped to 600).
    - FIELDSIGN_MAX_UPLOAD_BYTES: maximum accepted upload size (default and
      clamp 50 MiB).

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os
from pathlib import Path


UPLOADS_DIRNAME = "uploads"

# Encoder qualities (Pillow JPEG quality scale 1..95)
PREVIEW_JPEG_QUALITY = 95
FINAL_JPEG_QUALITY = 95
MULTIPART_JPEG_QUALITY = 90

# pdftoppm fallback resolution and the primary renderer's DPI equivalent
BINARY_RENDER_DPI = 300
PRIMARY_RENDER_DPI = 300
# Lower resolution used when a multipart /save-doc PDF is stored directly.
SAVE_DOC_RENDER_DPI = 150


def _parse_int_env(name: str, default: int, *, contract_max: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_app_root() -> Path:
    """Return the application root (bundled `bin/`, `poppler/`, HTML pages)."""
    raw = (os.getenv("FIELDSIGN_APP_ROOT") or "").strip()
    return Path(raw) if raw else Path.cwd()


def get_upload_base_dir() -> Path:
    """Return the base directory holding one folder per customer id.

    Env:
        FIELDSIGN_UPLOAD_BASE_DIR – optional override; otherwise
        `<app_root>/uploads`.
    """
    raw = (os.getenv("FIELDSIGN_UPLOAD_BASE_DIR") or "").strip()
    if raw:
        return Path(raw)
    return get_app_root() / UPLOADS_DIRNAME


def customer_upload_dir(customer_id: str, *, create: bool = True) -> Path:
    """Folder for one (already sanitized) customer id."""
    path = get_upload_base_dir() / customer_id
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def get_convert_timeout_seconds() -> int:
    return _parse_int_env("FIELDSIGN_CONVERT_TIMEOUT_SECONDS", 120, contract_max=600)


def get_max_upload_bytes() -> int:
    """Maximum accepted upload size (default/clamped 50 MiB)."""
    contract_max = 50 * 1024 * 1024
    return _parse_int_env("FIELDSIGN_MAX_UPLOAD_BYTES", contract_max, contract_max=contract_max)


__all__ = [
    "UPLOADS_DIRNAME",
    "PREVIEW_JPEG_QUALITY",
    "FINAL_JPEG_QUALITY",
    "MULTIPART_JPEG_QUALITY",
    "BINARY_RENDER_DPI",
    "PRIMARY_RENDER_DPI",
    "SAVE_DOC_RENDER_DPI",
    "get_app_root",
    "get_upload_base_dir",
    "customer_upload_dir",
    "get_convert_timeout_seconds",
    "get_max_upload_bytes",
]
