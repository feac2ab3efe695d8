"""
Pytest configuration for FieldSign tests.

Why: Force AnyIO to use the asyncio backend and keep every test's filesystem
side effects inside a temporary upload directory. The module-level ASGI app
in `fieldsign.web.main` is built at import time, so the process-wide upload
directory is pointed at a scratch folder before anything imports it.
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

_SESSION_UPLOADS = tempfile.mkdtemp(prefix="fieldsign-uploads-")
os.environ.setdefault("FIELDSIGN_UPLOAD_BASE_DIR", _SESSION_UPLOADS)
os.environ.pop("FIELDSIGN_ENV", None)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def _fieldsign_roots(tmp_path_factory: pytest.TempPathFactory) -> Path:
    # Kept apart from `tmp_path` so tests that inspect `tmp_path` see only their own files.
    return tmp_path_factory.mktemp("fieldsign-roots")


@pytest.fixture(autouse=True)
def _isolate_fieldsign_env(monkeypatch: pytest.MonkeyPatch, _fieldsign_roots: Path):
    """Per-test upload/app roots and a dev environment.

    Behavior:
        - FIELDSIGN_UPLOAD_BASE_DIR -> `<tmp>/uploads`
        - FIELDSIGN_APP_ROOT -> `<tmp>/app` (no bundled binaries)
        - FIELDSIGN_ENV and size/timeout overrides cleared
    """
    uploads = _fieldsign_roots / "uploads"
    app_root = _fieldsign_roots / "app"
    uploads.mkdir()
    app_root.mkdir()
    monkeypatch.setenv("FIELDSIGN_UPLOAD_BASE_DIR", str(uploads))
    monkeypatch.setenv("FIELDSIGN_APP_ROOT", str(app_root))
    for var in ("FIELDSIGN_ENV", "FIELDSIGN_MAX_UPLOAD_BYTES", "FIELDSIGN_CONVERT_TIMEOUT_SECONDS"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def upload_base(_fieldsign_roots: Path) -> Path:
    return _fieldsign_roots / "uploads"


@pytest.fixture
def app_root(_fieldsign_roots: Path) -> Path:
    return _fieldsign_roots / "app"
