"""
Startup guard tests.

Production/staging must refuse to start without an explicit, writable
upload directory; development stays permissive.
"""
from __future__ import annotations

import importlib

import pytest


def _cfg():
    from fieldsign.web import config as cfg

    return importlib.reload(cfg)


def test_dev_allows_default_upload_dir(monkeypatch):
    monkeypatch.setenv("FIELDSIGN_ENV", "dev")
    monkeypatch.delenv("FIELDSIGN_UPLOAD_BASE_DIR", raising=False)
    _cfg().ensure_secure_config_on_startup()


def test_prod_requires_explicit_upload_dir(monkeypatch):
    monkeypatch.setenv("FIELDSIGN_ENV", "prod")
    monkeypatch.delenv("FIELDSIGN_UPLOAD_BASE_DIR", raising=False)
    with pytest.raises(SystemExit, match="FIELDSIGN_UPLOAD_BASE_DIR is unset"):
        _cfg().ensure_secure_config_on_startup()


def test_prod_rejects_unwritable_upload_dir(monkeypatch, tmp_path):
    blocker = tmp_path / "a-file"
    blocker.write_text("x", encoding="utf-8")
    monkeypatch.setenv("FIELDSIGN_ENV", "staging")
    monkeypatch.setenv("FIELDSIGN_UPLOAD_BASE_DIR", str(blocker / "uploads"))
    with pytest.raises(SystemExit, match="not writable"):
        _cfg().ensure_secure_config_on_startup()


def test_prod_rejects_bad_upload_limit(monkeypatch, tmp_path):
    monkeypatch.setenv("FIELDSIGN_ENV", "production")
    monkeypatch.setenv("FIELDSIGN_UPLOAD_BASE_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("FIELDSIGN_MAX_UPLOAD_BYTES", "-5")
    with pytest.raises(SystemExit, match="FIELDSIGN_MAX_UPLOAD_BYTES"):
        _cfg().ensure_secure_config_on_startup()


def test_prod_with_valid_settings_starts(monkeypatch, tmp_path):
    monkeypatch.setenv("FIELDSIGN_ENV", "prod")
    monkeypatch.setenv("FIELDSIGN_UPLOAD_BASE_DIR", str(tmp_path / "uploads"))
    _cfg().ensure_secure_config_on_startup()
    assert (tmp_path / "uploads").is_dir()
    assert list((tmp_path / "uploads").iterdir()) == []
