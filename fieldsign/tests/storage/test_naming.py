"""
Deterministic artifact naming.

`<customerId>[-<terms>]-<YYYY-MM-DD_HH-MM-SS><ext>`, with customer ids
reduced to at most 8 digits and terms reduced to word characters and dashes.
"""
from __future__ import annotations

from datetime import datetime

import pytest

from fieldsign.storage.naming import (
    ArtifactRecord,
    make_filename,
    normalize_extension,
    sanitize_customer_id,
    sanitize_terms,
    timestamp_now,
)

TS = "2025-03-01_14-05-09"


def test_make_filename_with_terms():
    assert make_filename("123", "PAN-Peri", TS, ".jpg") == f"123-PAN-Peri-{TS}.jpg"


def test_make_filename_strips_non_digits_from_customer_id():
    assert make_filename("abc123", "", TS) == f"123-{TS}.jpg"


@pytest.mark.parametrize(
    "raw,expected",
    [("12 34-56", "123456"), ("1234567890", "12345678"), ("", "unknown"), (None, "unknown"), ("abc", "unknown")],
)
def test_sanitize_customer_id(raw, expected):
    assert sanitize_customer_id(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [("  PAN  Peri ", "PAN-Peri"), ("a/b\\c", "abc"), ("x.y;z", "xyz"), ("", ""), (None, "")],
)
def test_sanitize_terms(raw, expected):
    assert sanitize_terms(raw) == expected


def test_timestamp_format():
    assert timestamp_now(datetime(2025, 3, 1, 14, 5, 9)) == TS


def test_normalize_extension_prefers_filename_then_mimetype():
    assert normalize_extension("Scan.PDF") == ".pdf"
    assert normalize_extension("photo", mimetype="image/png") == ".png"
    assert normalize_extension(None, mimetype="image/jpeg") == ".jpg"


def test_artifact_record_places_file_under_customer_folder(tmp_path):
    rec = ArtifactRecord.create(base_dir=tmp_path, customer_id="c-42", terms="A B", stamp=TS)
    assert rec.customer_id == "42"
    assert rec.path == tmp_path / "42" / f"42-A-B-{TS}.jpg"
    assert rec.filename == f"42-A-B-{TS}.jpg"


def test_same_second_saves_share_a_name(tmp_path):
    """Known limitation: names carry no disambiguator below one second."""
    a = ArtifactRecord.create(base_dir=tmp_path, customer_id="1", terms="", stamp=TS)
    b = ArtifactRecord.create(base_dir=tmp_path, customer_id="1", terms="", stamp=TS)
    assert a.path == b.path


def test_staged_base_shape():
    from fieldsign.storage.naming import is_staged_base

    assert is_staged_base("123-PAN-2025-01-01_10-00-00")
    assert is_staged_base("unknown-2025-01-01_10-00-00")
    assert not is_staged_base("1")
    assert not is_staged_base("123-PAN")
    assert not is_staged_base("123456789-2025-01-01_10-00-00")
