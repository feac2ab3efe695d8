"""
Output discovery for converters whose exact output filename is not ours.

pdftoppm and friends append page suffixes (`-1`, `-01`, ...) depending on
version and flags, so callers treat "the newest file in the directory that
starts with the prefix and carries the expected extension" as the return
value of a conversion.

Scoping: a caller takes `snapshot_matches()` before invoking its tool and
passes it as `baseline`; files that already existed with the same mtime are
not the tool's product and are ignored.

Tie-break: most recent modification time wins; equal mtimes pick the
lexicographically greatest name so repeated scans are reproducible.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple


def _matches(directory: Path, prefix: str, ext: str) -> Iterator[Tuple[str, int]]:
    ext_l = ext.lower()
    try:
        names = os.listdir(directory)
    except OSError:
        return
    for name in names:
        if not name.startswith(prefix) or not name.lower().endswith(ext_l):
            continue
        path = directory / name
        try:
            if not path.is_file():
                continue
            mtime_ns = path.stat().st_mtime_ns
        except OSError:
            continue
        yield name, mtime_ns


def snapshot_matches(directory: Path | str, prefix: str, ext: str) -> Dict[str, int]:
    """Map of matching names to their mtime (ns) as they are right now."""
    return dict(_matches(Path(directory), prefix, ext))


def locate_newest_match(
    directory: Path | str,
    prefix: str,
    ext: str,
    *,
    baseline: Optional[Mapping[str, int]] = None,
) -> Optional[Path]:
    directory = Path(directory)
    best: tuple[int, str] | None = None
    for name, mtime_ns in _matches(directory, prefix, ext):
        if baseline is not None and baseline.get(name) == mtime_ns:
            continue
        key = (mtime_ns, name)
        if best is None or key > best:
            best = key
    return directory / best[1] if best else None


def list_directory(directory: Path | str) -> List[str]:
    """Sorted directory listing for diagnostics (empty when unreadable)."""
    try:
        return sorted(os.listdir(directory))
    except OSError:
        return []


__all__ = ["locate_newest_match", "snapshot_matches", "list_directory"]
