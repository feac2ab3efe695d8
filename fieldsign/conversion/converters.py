"""
Converter strategies for the first-page PDF -> JPEG fallback chain.

Each strategy implements one capability, `attempt_convert(request)`, and
reports a `ConversionAttempt` instead of raising: the pipeline decides what
to try next. Strategies never retry and never run concurrently: an attempt
returns only once its work has stopped, and discovery ignores files that
were already present before the tool ran.

Order used by `default_converters()`:
    1. PdfiumConverter        - pypdfium2 in-process render
    2. LocalBinaryConverter   - pdftoppm bundled with the application
    3. PathBinaryConverter    - pdftoppm resolved on PATH, only when no
                                local binary is bundled
"""
from __future__ import annotations

import abc
import asyncio
import logging
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from fieldsign.conversion.discovery import locate_newest_match, snapshot_matches
from fieldsign.conversion.pdf_renderer import render_first_page
from fieldsign.errors import PdfRenderError
from fieldsign.storage.config import BINARY_RENDER_DPI, PRIMARY_RENDER_DPI

_log = logging.getLogger("fieldsign.conversion")

OUTPUT_EXT = ".jpg"

OUTCOME_PRODUCED = "produced"
OUTCOME_NO_OUTPUT = "no_output"
OUTCOME_FAILED = "failed"
OUTCOME_UNAVAILABLE = "unavailable"
OUTCOME_SKIPPED = "skipped"


@dataclass(frozen=True)
class ConversionRequest:
    pdf_path: Path
    out_dir: Path
    base_name: str
    timeout_seconds: float = 120.0


@dataclass(frozen=True)
class ConversionAttempt:
    """Transient record of one tool invocation; used only for fallback order."""

    tool: str
    args: tuple[str, ...]
    outcome: str
    produced_path: Optional[Path] = None
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome == OUTCOME_PRODUCED and self.produced_path is not None


class Converter(Protocol):
    name: str

    async def attempt_convert(self, request: ConversionRequest) -> ConversionAttempt: ...


BinaryRunner = Callable[[Sequence[str], float], Awaitable[None]]


class BinaryExecutionError(RuntimeError):
    pass


async def run_binary(argv: Sequence[str], timeout_seconds: float) -> None:
    """Run an external binary, bounded by `timeout_seconds`.

    Raises BinaryExecutionError on non-zero exit or timeout; the process is
    killed when the bound is exceeded.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        _stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise BinaryExecutionError(f"{Path(argv[0]).name} timed out after {timeout_seconds}s")
    if proc.returncode != 0:
        tail = (stderr or b"").decode("utf-8", "replace").strip()[-300:]
        raise BinaryExecutionError(f"{Path(argv[0]).name} exited with {proc.returncode}: {tail}")


def pdftoppm_executable_name(platform: str | None = None) -> str:
    return "pdftoppm.exe" if (platform or sys.platform) == "win32" else "pdftoppm"


def pdftoppm_args(request: ConversionRequest, *, dpi: int = BINARY_RENDER_DPI) -> list[str]:
    out_prefix = str(Path(request.out_dir) / request.base_name)
    return [
        "-r", str(dpi),
        "-jpeg",
        "-singlefile",
        "-f", "1",
        "-l", "1",
        str(request.pdf_path),
        out_prefix,
    ]


class PdfiumConverter:
    """Primary converter: in-process pypdfium2 render of page 1."""

    name = "pypdfium2"

    def __init__(self, *, dpi: int = PRIMARY_RENDER_DPI) -> None:
        self._dpi = dpi

    @staticmethod
    def _discard(target: Path) -> None:
        try:
            target.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            _log.warning("could not remove partial render %s: %s", target, exc)

    async def attempt_convert(self, request: ConversionRequest) -> ConversionAttempt:
        target = Path(request.out_dir) / f"{request.base_name}-1{OUTPUT_EXT}"
        args = (str(request.pdf_path), str(target), f"dpi={self._dpi}")
        # A render thread cannot be interrupted; on timeout it is awaited and
        # its output dropped before the next converter may run.
        worker = asyncio.ensure_future(
            asyncio.to_thread(render_first_page, Path(request.pdf_path), target, dpi=self._dpi)
        )
        try:
            await asyncio.wait_for(asyncio.shield(worker), timeout=request.timeout_seconds)
        except asyncio.TimeoutError:
            _log.warning(
                "%s timed out after %ss; waiting for the render thread before falling back",
                self.name,
                request.timeout_seconds,
            )
            await asyncio.gather(worker, return_exceptions=True)
            self._discard(target)
            detail = f"timed out after {request.timeout_seconds}s"
            return ConversionAttempt(self.name, args, OUTCOME_FAILED, detail=detail)
        except (PdfRenderError, OSError) as exc:
            _log.warning("%s failed (continuing to fallback): %s", self.name, str(exc)[:300] or type(exc).__name__)
            self._discard(target)
            return ConversionAttempt(self.name, args, OUTCOME_FAILED, detail=str(exc)[:300])

        if not target.is_file():
            _log.warning("%s returned but %s is missing", self.name, target)
            return ConversionAttempt(self.name, args, OUTCOME_NO_OUTPUT)
        _log.info("%s produced %s", self.name, target)
        return ConversionAttempt(self.name, args, OUTCOME_PRODUCED, produced_path=target)


class _PdftoppmConverter(abc.ABC):
    name = "pdftoppm"

    def __init__(self, *, runner: BinaryRunner | None = None, dpi: int = BINARY_RENDER_DPI) -> None:
        self._runner = runner or run_binary
        self._dpi = dpi

    @abc.abstractmethod
    def locate(self) -> Optional[Path]:
        """Path of the executable to run, or None when it is not installed."""

    async def attempt_convert(self, request: ConversionRequest) -> ConversionAttempt:
        binary = self.locate()
        if binary is None:
            return ConversionAttempt(self.name, (), OUTCOME_UNAVAILABLE, detail="binary not found")
        args = pdftoppm_args(request, dpi=self._dpi)
        _log.info("using %s at %s", self.name, binary)
        baseline = snapshot_matches(request.out_dir, request.base_name, OUTPUT_EXT)
        try:
            await self._runner([str(binary), *args], request.timeout_seconds)
        except (BinaryExecutionError, OSError) as exc:
            _log.error("%s execution error: %s", self.name, exc)
            return ConversionAttempt(self.name, tuple(args), OUTCOME_FAILED, detail=str(exc)[:300])

        produced = locate_newest_match(request.out_dir, request.base_name, OUTPUT_EXT, baseline=baseline)
        if produced is None:
            _log.warning("%s ran but no jpg found in %s", self.name, request.out_dir)
            return ConversionAttempt(self.name, tuple(args), OUTCOME_NO_OUTPUT)
        _log.info("%s produced %s", self.name, produced)
        return ConversionAttempt(self.name, tuple(args), OUTCOME_PRODUCED, produced_path=produced)


class LocalBinaryConverter(_PdftoppmConverter):
    """pdftoppm shipped next to the application (Windows installs bundle it)."""

    name = "pdftoppm-local"

    def __init__(self, app_root: Path, *, platform: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._app_root = Path(app_root)
        self._exe = pdftoppm_executable_name(platform)

    def candidates(self) -> list[Path]:
        root = self._app_root
        return [
            root / "bin" / self._exe,
            root / "poppler" / "bin" / self._exe,
            root / "poppler" / self._exe,
            root / self._exe,
        ]

    def locate(self) -> Optional[Path]:
        for candidate in self.candidates():
            if candidate.is_file():
                return candidate
        return None


class PathBinaryConverter(_PdftoppmConverter):
    """pdftoppm resolved through PATH; skipped when a local binary is bundled."""

    name = "pdftoppm-path"

    def __init__(
        self,
        *,
        local: LocalBinaryConverter | None = None,
        which: Callable[[str], Optional[str]] | None = None,
        platform: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._local = local
        self._which = which or shutil.which
        self._exe = pdftoppm_executable_name(platform)

    def locate(self) -> Optional[Path]:
        resolved = self._which(self._exe)
        if not resolved:
            _log.warning("%s not found in PATH", self._exe)
            return None
        return Path(resolved)

    async def attempt_convert(self, request: ConversionRequest) -> ConversionAttempt:
        if self._local is not None and self._local.locate() is not None:
            return ConversionAttempt(self.name, (), OUTCOME_SKIPPED, detail="local binary bundled")
        return await super().attempt_convert(request)


def default_converters(
    app_root: Path,
    *,
    runner: BinaryRunner | None = None,
    dpi: int | None = None,
) -> list[Converter]:
    """Standard chain; `dpi` overrides both the primary and binary resolution."""
    primary = PdfiumConverter(dpi=dpi or PRIMARY_RENDER_DPI)
    local = LocalBinaryConverter(app_root, runner=runner, dpi=dpi or BINARY_RENDER_DPI)
    fallback = PathBinaryConverter(local=local, runner=runner, dpi=dpi or BINARY_RENDER_DPI)
    return [primary, local, fallback]


__all__ = [
    "OUTPUT_EXT",
    "OUTCOME_PRODUCED",
    "OUTCOME_NO_OUTPUT",
    "OUTCOME_FAILED",
    "OUTCOME_UNAVAILABLE",
    "OUTCOME_SKIPPED",
    "ConversionRequest",
    "ConversionAttempt",
    "Converter",
    "BinaryExecutionError",
    "run_binary",
    "pdftoppm_executable_name",
    "pdftoppm_args",
    "PdfiumConverter",
    "LocalBinaryConverter",
    "PathBinaryConverter",
    "default_converters",
]
