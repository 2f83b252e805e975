"""
CLI convert command — run the upload converter on files already on disk.

Usage:
    upload-converter convert photo.jpg [--type image/jpeg] [--url URL]
    upload-converter convert a.png b.heic --enable --max-width 2560 --quality 75 --json
"""

from __future__ import annotations

import dataclasses
import json
import mimetypes
from typing import Optional, Tuple

import click

mimetypes.add_type("image/heic", ".heic")


@click.command("convert")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--type", "mime_type", default=None, help="Declared MIME type (guessed from extension if omitted)")
@click.option("--url", default=None, help="Public URL of the upload (single file only)")
@click.option("--enable/--disable", "enabled", default=None, help="Override the enabled setting")
@click.option("--max-width", type=click.IntRange(1, 9999), default=None)
@click.option("--max-height", type=click.IntRange(1, 9999), default=None)
@click.option("--quality", type=click.IntRange(1, 100, clamp=True), default=None)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def convert_cmd(
    ctx: click.Context,
    files: Tuple[str, ...],
    mime_type: Optional[str],
    url: Optional[str],
    enabled: Optional[bool],
    max_width: Optional[int],
    max_height: Optional[int],
    quality: Optional[int],
    as_json: bool,
) -> None:
    """Convert uploaded images to WebP, replacing them only if smaller."""
    from ..content.convert import convert_upload
    from ..models.upload import ConversionStatus, UploadRequest

    if url and len(files) > 1:
        raise click.UsageError("--url can only be used with a single file")

    overrides = {
        "enabled": enabled,
        "max_width": max_width,
        "max_height": max_height,
        "quality": quality,
    }
    settings = dataclasses.replace(
        ctx.obj["settings"],
        **{k: v for k, v in overrides.items() if v is not None},
    )
    config = settings.conversion_config()

    outcomes = []
    for path in files:
        declared = mime_type or mimetypes.guess_type(path)[0] or "application/octet-stream"
        request = UploadRequest(file=path, type=declared, url=url or "")
        outcomes.append(
            convert_upload(request, config, debug=settings.debug or ctx.obj.get("debug", False))
        )

    if as_json:
        click.echo(json.dumps([o.to_dict() for o in outcomes], indent=2))
        return

    colors = {
        ConversionStatus.CONVERTED: "green",
        ConversionStatus.KEPT_ORIGINAL: "cyan",
        ConversionStatus.FAILED: "red",
        ConversionStatus.CAPABILITY_MISSING: "yellow",
    }
    for path, outcome in zip(files, outcomes):
        click.secho(f"  {outcome.status.value:18}", fg=colors.get(outcome.status), nl=False)
        if outcome.replaced:
            click.echo(
                f" {path} → {outcome.result.file} "
                f"({outcome.original_size:,} → {outcome.converted_size:,} bytes)"
            )
        elif outcome.message:
            click.echo(f" {path} — {outcome.message}")
        else:
            click.echo(f" {path}")

    converted = sum(1 for o in outcomes if o.replaced)
    saved = sum(o.bytes_saved for o in outcomes)
    click.echo()
    click.secho(f"Summary: {converted}/{len(outcomes)} converted, {saved:,} bytes saved", bold=True)
