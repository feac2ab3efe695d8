"""
Error taxonomy shared by the signing engine, the conversion pipeline and the
web layer.

Propagation:
    - Stage-local failures (`PdfRenderError`, a converter that produced no
      file, `NormalizationFailure` with a working fallback) are absorbed by
      the component that owns the fallback.
    - Only failures without a further fallback reach the HTTP caller.
    - `CleanupFailure` is never raised out of the cleanup manager; it exists
      so log records and tests can name the failure class.
"""
from __future__ import annotations

from typing import Sequence


class FieldSignError(Exception):
    pass


class InputError(FieldSignError):
    """Missing file, unsupported MIME type/extension or malformed data URL."""


class PdfRenderError(FieldSignError):
    pass


class ConversionFailure(FieldSignError):
    """Every converter in the chain was exhausted without producing a raster."""

    def __init__(self, message: str, *, listing: Sequence[str] = (), attempts: Sequence[object] = ()) -> None:
        super().__init__(message)
        self.listing = list(listing)
        self.attempts = list(attempts)


class NormalizationFailure(FieldSignError):
    pass


class CleanupFailure(FieldSignError):
    pass


class PreviewLoadFailure(FieldSignError):
    """The preview raster could not be decoded on the client side."""


class DocumentNotReady(FieldSignError):
    def __init__(self, message: str = "document not ready") -> None:
        super().__init__(message)


class SessionPhaseError(FieldSignError):
    pass


__all__ = [
    "FieldSignError",
    "InputError",
    "PdfRenderError",
    "ConversionFailure",
    "NormalizationFailure",
    "CleanupFailure",
    "PreviewLoadFailure",
    "DocumentNotReady",
    "SessionPhaseError",
]
