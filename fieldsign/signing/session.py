"""
One explicit signing session: document, viewport, signature box, strokes and
the ALIGNING -> SIGNING phase, owned together for the session's lifetime.

Intent:
    Replace loose shared state with a single object every handler receives.
    The session enforces the phase rules:
    - the viewport only moves while ALIGNING;
    - `lock()` freezes the transform used to place the signature;
    - `retake()` is the only way back, and it discards everything.
"""
from __future__ import annotations

from typing import Iterable, List, Optional

from fieldsign.errors import DocumentNotReady, InputError, SessionPhaseError
from fieldsign.signing.compositor import EXPORT_SCALE, Composition, DocumentAsset, compose
from fieldsign.signing.gestures import GestureController, GestureEvent, Phase
from fieldsign.signing.signature_capture import (
    PenWidth,
    SignatureCapture,
    SignatureRegion,
    stage_size_for_width,
)
from fieldsign.signing.viewport import ZOOM_IN_STEP, ZOOM_OUT_STEP, Viewport, ViewportSnapshot


class SigningSession:
    def __init__(
        self,
        *,
        customer_id: str,
        terms: Iterable[str] = (),
        device_pixel_ratio: float = 1.0,
        export_scale: float = EXPORT_SCALE,
        container_width: float = 0,
    ) -> None:
        self.customer_id = customer_id
        self.terms: List[str] = []
        for term in terms:
            if term and term not in self.terms:
                self.terms.append(term)
        self.device_pixel_ratio = device_pixel_ratio
        self.export_scale = export_scale

        self.document: Optional[DocumentAsset] = None
        self.uploaded_filename: Optional[str] = None
        self.viewport = Viewport()
        self.controller = GestureController(self.viewport)
        self.capture: Optional[SignatureCapture] = None
        self.locked_viewport: Optional[ViewportSnapshot] = None
        self.pen = PenWidth.MEDIUM
        self.final: Optional[Composition] = None

        self.stage_w, self.stage_h = stage_size_for_width(container_width)
        self.region = SignatureRegion.for_stage(self.stage_w, self.stage_h)
        self.controller.resize(self.stage_w, self.stage_h)

    # -- state ---------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return Phase.SIGNING if self.controller.locked else Phase.ALIGNING

    @property
    def terms_joined(self) -> str:
        return "-".join(self.terms)

    # -- stage & document ----------------------------------------------------

    def resize_stage(self, container_width: float) -> None:
        """Recompute stage and signature box; refit the document while aligning.

        While signing, the stage keeps its size so the signature box stays
        where the operator is drawing.
        """
        if self.controller.locked:
            return
        self.stage_w, self.stage_h = stage_size_for_width(container_width)
        self.region = SignatureRegion.for_stage(self.stage_w, self.stage_h)
        self.controller.resize(self.stage_w, self.stage_h)
        if self.document is not None:
            self.fit()

    def fit(self) -> None:
        if self.document is None:
            return
        self.viewport.fit_to_stage(
            self.document.natural_width, self.document.natural_height, self.stage_w, self.stage_h
        )

    def load_document(self, document: DocumentAsset, *, uploaded_filename: Optional[str] = None) -> None:
        """Replace the document wholesale; viewport and strokes are reset."""
        self._discard_work()
        self.document = document
        self.uploaded_filename = uploaded_filename
        self.fit()

    def load_document_bytes(self, data: bytes, *, uploaded_filename: Optional[str] = None) -> None:
        # Decode first: a PreviewLoadFailure leaves the session untouched.
        document = DocumentAsset.from_bytes(data)
        self.load_document(document, uploaded_filename=uploaded_filename)

    # -- input ---------------------------------------------------------------

    def handle(self, event: GestureEvent):
        return self.controller.handle(event)

    def zoom_in(self) -> None:
        self.controller.zoom_step(ZOOM_IN_STEP)

    def zoom_out(self) -> None:
        self.controller.zoom_step(ZOOM_OUT_STEP)

    def reset_view(self) -> None:
        """Refit while aligning; the signature pad is cleared in both phases."""
        if not self.controller.locked:
            self.fit()
        if self.capture is not None:
            self.capture.clear()

    def set_pen(self, pen: PenWidth) -> None:
        self.pen = PenWidth(pen)
        if self.capture is not None:
            self.capture.set_pen(self.pen)

    # -- phase transition ----------------------------------------------------

    def lock(self) -> None:
        """ALIGNING -> SIGNING. Freezes the viewport transform."""
        if self.document is None:
            raise SessionPhaseError("select a document first")
        if self.controller.locked:
            return
        self.locked_viewport = self.viewport.snapshot()
        self.capture = SignatureCapture(self.region, device_pixel_ratio=self.device_pixel_ratio, pen=self.pen)
        self.controller.lock(self.capture)

    # -- output --------------------------------------------------------------

    def build_preview(self) -> Composition:
        """Composite document + signature; recomputed idempotently per call."""
        if self.document is None:
            raise DocumentNotReady()
        if self.capture is None or self.locked_viewport is None:
            raise SessionPhaseError("lock the document before previewing")
        self.final = compose(
            self.document,
            self.capture.overlay,
            self.locked_viewport,
            self.region,
            self.export_scale,
        )
        return self.final

    def save_payload(self) -> dict:
        """JSON body for `POST /save-doc`."""
        if self.final is None:
            raise InputError("Nothing to save")
        return {
            "customerId": self.customer_id,
            "fileName": None,
            "imageData": self.final.to_data_url(),
            "terms": self.terms_joined,
            "originalUploadedFilename": self.uploaded_filename,
        }

    def retake(self) -> None:
        """Discard document, transform, strokes and lock; keep customer/terms."""
        self._discard_work()
        self.document = None
        self.uploaded_filename = None

    def _discard_work(self) -> None:
        self.viewport = Viewport()
        self.controller = GestureController(self.viewport, stage_w=self.stage_w, stage_h=self.stage_h)
        self.capture = None
        self.locked_viewport = None
        self.final = None


__all__ = ["SigningSession"]
