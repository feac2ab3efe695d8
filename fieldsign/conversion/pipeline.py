"""
PDF -> preview orchestration.

This module provides the framework-agnostic use case behind `/convert-pdf`
and the multipart `/save-doc` path: walk the converter chain until one
produces a raster of page 1, then normalize it into the canonical preview.

Design goals:
- Strictly sequential attempts, one per tool, first success wins.
- Failures local to a stage are absorbed; only an exhausted chain raises
  (`ConversionFailure`, carrying the directory listing for operators).
- Normalization failure is degraded, not fatal (see normalizer).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from fieldsign.conversion.converters import (
    ConversionAttempt,
    ConversionRequest,
    Converter,
    OUTCOME_FAILED,
    default_converters,
)
from fieldsign.conversion.discovery import list_directory
from fieldsign.conversion.normalizer import ArtifactNormalizer, NormalizedArtifact
from fieldsign.errors import ConversionFailure
from fieldsign.storage.config import get_app_root, get_convert_timeout_seconds

_log = logging.getLogger("fieldsign.conversion")


@dataclass
class PreviewResult:
    preview_path: Path
    raw_path: Path
    degraded: bool
    attempts: List[ConversionAttempt] = field(default_factory=list)


class ConversionPipeline:
    """Ordered converter chain with a single canonical output."""

    def __init__(
        self,
        converters: Optional[Sequence[Converter]] = None,
        *,
        normalizer: Optional[ArtifactNormalizer] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._converters = list(converters) if converters is not None else default_converters(get_app_root())
        self._normalizer = normalizer or ArtifactNormalizer()
        self._timeout = float(timeout_seconds or get_convert_timeout_seconds())

    @property
    def converters(self) -> List[Converter]:
        return list(self._converters)

    async def rasterize_first_page(
        self,
        pdf_path: Path,
        out_dir: Path,
        base_name: str,
        *,
        attempts: Optional[List[ConversionAttempt]] = None,
    ) -> Path:
        """Return the raw raster of page 1 or raise ConversionFailure."""
        log = attempts if attempts is not None else []
        request = ConversionRequest(
            pdf_path=Path(pdf_path),
            out_dir=Path(out_dir),
            base_name=base_name,
            timeout_seconds=self._timeout,
        )
        for converter in self._converters:
            try:
                attempt = await converter.attempt_convert(request)
            except Exception as exc:
                # A strategy that raises counts as a failed attempt.
                _log.warning("%s raised (continuing to fallback): %s", getattr(converter, "name", converter), exc)
                attempt = ConversionAttempt(str(getattr(converter, "name", "unknown")), (), OUTCOME_FAILED, detail=str(exc)[:300])
            log.append(attempt)
            if attempt.succeeded:
                return attempt.produced_path  # type: ignore[return-value]

        listing = list_directory(out_dir)
        _log.error("conversion failed, outDir listing: %s", listing)
        raise ConversionFailure("Conversion failed: no JPG produced", listing=listing, attempts=log)

    async def build_preview(self, pdf_path: Path, out_dir: Path, base_name: str) -> PreviewResult:
        attempts: List[ConversionAttempt] = []
        raw = await self.rasterize_first_page(pdf_path, out_dir, base_name, attempts=attempts)
        normalized: NormalizedArtifact = await asyncio.to_thread(self._normalizer.normalize, raw, Path(out_dir), base_name)
        return PreviewResult(preview_path=normalized.path, raw_path=raw, degraded=normalized.degraded, attempts=attempts)


__all__ = ["PreviewResult", "ConversionPipeline"]
