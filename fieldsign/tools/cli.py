"""Operator command line for the FieldSign server.

Usage:
    fieldsign serve --port 3000 [--https]
    fieldsign convert path/to/document.pdf [--out-dir DIR] [--dpi 300]

`serve` runs the ASGI app under uvicorn. With `--https` it looks for a
mkcert-style certificate pair in the application root
(`<prefix>-key.pem` next to `<prefix>.pem`) and falls back to plain HTTP when
none is found.

`convert` runs the same first-page preview pipeline the `/convert-pdf`
endpoint uses, which is handy for checking which converters are available on
a field laptop.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from fieldsign.conversion.converters import default_converters
from fieldsign.conversion.pipeline import ConversionPipeline
from fieldsign.errors import ConversionFailure, NormalizationFailure
from fieldsign.storage.config import get_app_root

KEY_SUFFIX = "-key.pem"


@dataclass(frozen=True)
class CertPair:
    key: Path
    cert: Path
    prefix: str


def find_cert_pair(root: Path) -> Optional[CertPair]:
    """Return the first `<prefix>-key.pem` with a matching `<prefix>.pem`."""
    try:
        names = sorted(os.listdir(root))
    except OSError:
        return None
    key_name = next((n for n in names if n.endswith(KEY_SUFFIX)), None)
    if key_name is None:
        return None
    prefix = key_name[: -len(KEY_SUFFIX)]
    cert_name = f"{prefix}.pem"
    if cert_name not in names:
        return None
    return CertPair(key=Path(root) / key_name, cert=Path(root) / cert_name, prefix=prefix)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """FieldSign operator tools."""


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to bind.")
@click.option("--port", type=int, default=lambda: int(os.getenv("PORT", "3000")), show_default="3000 or $PORT")
@click.option("--https", "use_https", is_flag=True, help="Serve TLS using a cert pair found in the app root.")
def serve(host: str, port: int, use_https: bool) -> None:
    """Run the HTTP server."""
    import uvicorn

    ssl_kwargs = {}
    if use_https:
        pair = find_cert_pair(get_app_root())
        if pair is None:
            click.echo("No certificate pair found; serving plain HTTP.")
        else:
            ssl_kwargs = {"ssl_keyfile": str(pair.key), "ssl_certfile": str(pair.cert)}
            click.echo(f"HTTPS active at https://{pair.prefix}:{port}")
    if not ssl_kwargs:
        click.echo(f"HTTP active at http://{host}:{port}")
    uvicorn.run("fieldsign.web.main:app", host=host, port=port, **ssl_kwargs)


@cli.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--out-dir", type=click.Path(file_okay=False, path_type=Path), help="Defaults to the PDF's folder.")
@click.option("--dpi", type=int, default=None, help="Override render resolution for every converter.")
def convert(pdf: Path, out_dir: Optional[Path], dpi: Optional[int]) -> None:
    """Render page 1 of PDF to `<name>-preview.jpg`."""
    target_dir = out_dir or pdf.parent
    target_dir.mkdir(parents=True, exist_ok=True)
    pipeline = ConversionPipeline(default_converters(get_app_root(), dpi=dpi))
    try:
        result = asyncio.run(pipeline.build_preview(pdf, target_dir, pdf.stem))
    except ConversionFailure as exc:
        for attempt in exc.attempts:
            click.echo(f"  {attempt.tool}: {attempt.outcome} {attempt.detail}".rstrip(), err=True)
        raise click.ClickException(f"{exc} (dir: {', '.join(exc.listing) or 'empty'})")
    except NormalizationFailure as exc:
        raise click.ClickException(str(exc))

    for attempt in result.attempts:
        click.echo(f"  {attempt.tool}: {attempt.outcome}")
    suffix = " (copied without re-encoding)" if result.degraded else ""
    click.echo(f"{result.preview_path}{suffix}")


if __name__ == "__main__":  # pragma: no cover - manual entry
    cli()
