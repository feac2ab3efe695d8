"""
Removal of intermediate artifacts once the final composition is saved.

Behavior:
    - Deletes the uploaded file (`<upload_dir>/<uploaded_filename>`).
    - When the uploaded base name has the staged shape
      (`<cid>[-<terms>]-<YYYY-MM-DD_HH-MM-SS>`), deletes every `.jpg` named
      `<base>.jpg` or `<base>-*.jpg`, except the final artifact.
    - Any other base name is client-controlled and too loose for a prefix
      scan; only the exact intermediates `<base>.jpg`, `<base>-1.jpg` and
      `<base>-preview.jpg` are removed.
    - Each deletion is attempted independently; failures are logged and
      never raised. Saving does not depend on cleanup succeeding.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, List

from fieldsign.errors import CleanupFailure
from fieldsign.storage.naming import is_staged_base

_log = logging.getLogger("fieldsign.storage.cleanup")

_EXACT_INTERMEDIATE_SUFFIXES = (".jpg", "-1.jpg", "-preview.jpg")


class CleanupManager:
    """Best-effort, non-transactional removal of upload leftovers."""

    def __init__(self, *, unlink: Callable[[Path], None] | None = None) -> None:
        self._unlink = unlink or (lambda p: p.unlink())

    def _remove(self, path: Path) -> bool:
        try:
            self._unlink(path)
        except Exception as exc:
            failure = CleanupFailure(f"could not remove {path.name}: {exc}")
            _log.warning("cleanup failed: %s", failure)
            return False
        _log.info("removed intermediate artifact %s", path)
        return True

    def discard(self, path: Path) -> bool:
        """Remove a single staged file; missing files count as removed."""
        path = Path(path)
        if not path.exists():
            return True
        return self._remove(path)

    @staticmethod
    def _intermediate_names(upload_dir: Path, base: str) -> List[str]:
        if not is_staged_base(base):
            return [f"{base}{suffix}" for suffix in _EXACT_INTERMEDIATE_SUFFIXES]
        try:
            entries = sorted(os.listdir(upload_dir))
        except OSError as exc:
            _log.warning("cleanup could not list %s: %s", upload_dir, exc)
            return []
        return [
            entry
            for entry in entries
            if entry.startswith((f"{base}.", f"{base}-")) and entry.lower().endswith(".jpg")
        ]

    def remove_after_save(self, upload_dir: Path, uploaded_filename: str | None, *, keep: Path) -> List[Path]:
        """Remove the original upload and its previews; return removed paths."""
        if not uploaded_filename:
            return []
        upload_dir = Path(upload_dir)
        # Never follow a client-supplied name outside the customer folder.
        name = os.path.basename(uploaded_filename)
        if not name:
            return []
        removed: List[Path] = []
        keep_resolved = Path(keep).resolve()

        base = os.path.splitext(name)[0]
        for entry in [name, *self._intermediate_names(upload_dir, base)]:
            path = upload_dir / entry
            if path in removed or not path.is_file() or path.resolve() == keep_resolved:
                continue
            if self._remove(path):
                removed.append(path)
        return removed


__all__ = ["CleanupManager"]
