"""
Deterministic artifact naming for saved documents, photos and previews.

Why:
    Operators locate files by customer id and the checked terms, so names
    must be human-readable and reproducible from the request fields alone.

Conventions:
    - `<customerId>[-<terms>]-<YYYY-MM-DD_HH-MM-SS><ext>`
    - Customer ids keep digits only (max 8); an empty result becomes
      "unknown".
    - Terms fold whitespace runs into "-" and drop anything outside word
      characters and hyphens.

Known limitation:
    Timestamps have second resolution and there is no disambiguator. Two
    saves for the same customer/terms within one second produce the same
    name and the later write replaces the earlier file.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

_NON_DIGIT_RE = re.compile(r"\D")
_WHITESPACE_RE = re.compile(r"\s+")
_NON_TERM_RE = re.compile(r"[^\w\-]")
_STAGED_BASE_RE = re.compile(r"(?:\d{1,8}|unknown)(?:-[\w-]+)?-\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}")

CUSTOMER_ID_MAX_DIGITS = 8
UNKNOWN_CUSTOMER = "unknown"


def sanitize_customer_id(raw: object) -> str:
    digits = _NON_DIGIT_RE.sub("", str(raw or ""))[:CUSTOMER_ID_MAX_DIGITS]
    return digits or UNKNOWN_CUSTOMER


def sanitize_terms(raw: object) -> str:
    if not raw:
        return ""
    folded = _WHITESPACE_RE.sub("-", str(raw).strip())
    return _NON_TERM_RE.sub("", folded)


def timestamp_now(now: datetime | None = None) -> str:
    """Local-time stamp with second resolution, e.g. `2025-03-01_14-05-09`."""
    d = now or datetime.now()
    return d.strftime("%Y-%m-%d_%H-%M-%S")


def make_filename(customer_id: object, terms: object, stamp: str, ext: str = ".jpg") -> str:
    cid = sanitize_customer_id(customer_id)
    t = sanitize_terms(terms)
    if t:
        return f"{cid}-{t}-{stamp}{ext}"
    return f"{cid}-{stamp}{ext}"


def normalize_extension(filename: str | None, *, mimetype: str | None = None) -> str:
    """Lowercased extension of `filename`; guess from MIME type when absent."""
    _, ext = os.path.splitext(os.path.basename(filename or ""))
    ext = ext.lower()
    if ext:
        return ext
    return ".png" if mimetype == "image/png" else ".jpg"


def is_staged_base(base: str) -> bool:
    """True when `base` (no extension) has the shape `make_filename` produces."""
    return bool(_STAGED_BASE_RE.fullmatch(base or ""))


@dataclass(frozen=True)
class ArtifactRecord:
    """Naming contract for one persisted file; written once, never updated."""

    customer_id: str
    terms: str
    timestamp: str
    extension: str
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    @classmethod
    def create(
        cls,
        *,
        base_dir: Path,
        customer_id: object,
        terms: object,
        extension: str = ".jpg",
        stamp: str | None = None,
    ) -> "ArtifactRecord":
        cid = sanitize_customer_id(customer_id)
        t = sanitize_terms(terms)
        ts = stamp or timestamp_now()
        name = make_filename(cid, t, ts, extension)
        return cls(customer_id=cid, terms=t, timestamp=ts, extension=extension, path=Path(base_dir) / cid / name)


__all__ = [
    "CUSTOMER_ID_MAX_DIGITS",
    "UNKNOWN_CUSTOMER",
    "sanitize_customer_id",
    "sanitize_terms",
    "timestamp_now",
    "make_filename",
    "normalize_extension",
    "is_staged_base",
    "ArtifactRecord",
]
