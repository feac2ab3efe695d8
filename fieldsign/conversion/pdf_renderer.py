"""
First-page PDF rendering via pypdfium2 (primary library converter).

Intent:
- Render exactly one page (the first) of an uploaded PDF to a JPEG file on
  disk, mirroring what the external `pdftoppm` fallbacks produce.
- Keep memory bounded: the document is opened once and only page 0 is
  rasterized; multi-page inputs never produce a composite.

Security/Permissions:
- This module performs pure computation on a caller-provided path. Callers
  must ensure the PDF originates from a staged upload inside the customer's
  folder.

Note:
- pypdfium2 is imported lazily so tests can substitute a fake module and so
  a missing wheel surfaces as `PdfRenderError` (the pipeline then falls back
  to the pdftoppm binaries).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fieldsign.errors import PdfRenderError
from fieldsign.storage.config import PREVIEW_JPEG_QUALITY, PRIMARY_RENDER_DPI


@dataclass
class RenderedPage:
    index: int
    width: int
    height: int
    mode: str
    path: Path


@dataclass
class RenderMeta:
    page_count: int
    dpi: int
    used_annotations: bool


def _import_pdfium():
    try:
        import pypdfium2 as pdfium  # type: ignore
        return pdfium
    except Exception as exc:  # pragma: no cover - surfaced in tests via mocking
        raise PdfRenderError("pypdfium2 is required for PDF rendering") from exc


def _scale_for_dpi(dpi: int) -> float:
    # PDF user space is 72 units per inch
    try:
        scale = float(dpi) / 72.0
    except (TypeError, ValueError):
        return PRIMARY_RENDER_DPI / 72.0
    return scale if scale > 0 else 1.0


def render_first_page(
    pdf_path: Path,
    out_path: Path,
    *,
    dpi: int = PRIMARY_RENDER_DPI,
    include_annotations: bool = True,
    quality: int = PREVIEW_JPEG_QUALITY,
    password: Optional[str] = None,
) -> tuple[RenderedPage, RenderMeta]:
    """Render page 1 of `pdf_path` to `out_path` as JPEG.

    - Opens the document from the filesystem path (no full read into memory).
    - Renders with a scale derived from `dpi` (72 DPI base).
    - Converts to RGB because JPEG has no alpha channel.

    Returns (page, meta) on success or raises PdfRenderError.
    """
    pdfium = _import_pdfium()

    try:
        doc = pdfium.PdfDocument(str(pdf_path), password=password)
    except Exception as exc:
        raise PdfRenderError("failed_to_open_pdf") from exc

    try:
        total_pages = len(doc)
        if total_pages < 1:
            raise PdfRenderError("pdf_has_no_pages")
        try:
            page = doc[0]
            bitmap = page.render(
                scale=_scale_for_dpi(dpi),
                draw_annots=bool(include_annotations),
            )
            pil = bitmap.to_pil()
            if pil.mode != "RGB":
                pil = pil.convert("RGB")
            out_path = Path(out_path)
            pil.save(str(out_path), format="JPEG", quality=quality)
            rendered = RenderedPage(index=0, width=pil.width, height=pil.height, mode=pil.mode, path=out_path)
        except PdfRenderError:
            raise
        except Exception as exc:
            raise PdfRenderError("render_failed_on_page_0") from exc
    finally:
        close = getattr(doc, "close", None)
        if callable(close):
            close()

    meta = RenderMeta(page_count=total_pages, dpi=dpi, used_annotations=include_annotations)
    return rendered, meta
