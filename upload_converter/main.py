"""
Upload Converter — CLI Entry Point

Usage:
    upload-converter convert FILE... [--enable] [--max-width N] [--quality N]
    upload-converter status
    upload-converter serve --port 8000
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import click

from .cli.convert import convert_cmd
from .cli.ops import generate_config, metrics_cmd, serve, status_cmd
from .config.loader import load_config
from .logging_config import setup_logging
from .validation import ValidationError


@click.group()
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
@click.option("--debug", is_flag=True, help="Operator debug mode (shows codec warnings)")
@click.pass_context
def cli(ctx: click.Context, log_level: str, debug: bool) -> None:
    """Upload Converter — WebP conversion for uploaded images."""
    setup_logging(level=log_level or ("DEBUG" if debug else None))

    ctx.ensure_object(dict)
    try:
        ctx.obj["settings"] = load_config()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration — {e}")
    ctx.obj["debug"] = debug


cli.add_command(convert_cmd)
cli.add_command(status_cmd)
cli.add_command(metrics_cmd)
cli.add_command(generate_config)
cli.add_command(serve)


if __name__ == "__main__":
    cli()
