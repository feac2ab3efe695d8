"""
Configuration and startup safety checks for the FieldSign server.

Why: The server writes customer documents to disk. A production deployment
must not silently fall back to a working-directory `uploads/` folder or start
against a directory it cannot write to.

Permissions: The caller needs no special privileges. The function reads
environment variables, probes the upload directory and raises `SystemExit`
on fatal misconfiguration.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def ensure_secure_config_on_startup() -> None:
    """Fail fast on unsafe production configuration.

    Intent: Abort process startup when obviously unsafe settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - FIELDSIGN_UPLOAD_BASE_DIR must be set explicitly.
    - The upload directory must exist (or be creatable) and be writable.
    - FIELDSIGN_MAX_UPLOAD_BYTES, when set, must be a positive integer.
    """

    env = os.getenv("FIELDSIGN_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    # 1) Explicit upload location
    raw = (os.getenv("FIELDSIGN_UPLOAD_BASE_DIR") or "").strip()
    if not raw:
        raise SystemExit(
            "Refusing to start: FIELDSIGN_UPLOAD_BASE_DIR is unset in production."
        )

    # 2) Directory must be writable
    base = Path(raw)
    try:
        base.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=base, prefix=".probe-"):
            pass
    except OSError as exc:
        raise SystemExit(
            f"Refusing to start: FIELDSIGN_UPLOAD_BASE_DIR is not writable ({exc})."
        )

    # 3) Upload limit must parse when provided
    limit = (os.getenv("FIELDSIGN_MAX_UPLOAD_BYTES") or "").strip()
    if limit:
        try:
            ok = int(limit) > 0
        except ValueError:
            ok = False
        if not ok:
            raise SystemExit(
                "Refusing to start: FIELDSIGN_MAX_UPLOAD_BYTES must be a positive integer."
            )
