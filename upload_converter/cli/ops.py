"""
CLI ops commands — converter status, metrics, config template, server.

Usage:
    upload-converter status [--json]
    upload-converter metrics [--format prometheus|json]
    upload-converter generate-config
    upload-converter serve [--host HOST] [--port PORT]
"""

from __future__ import annotations

import json

import click


@click.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show whether conversion is enabled and the codecs it needs."""
    from ..config.system_status import get_converter_status

    status = get_converter_status(ctx.obj["settings"])

    if as_json:
        click.echo(json.dumps(status.to_dict(), indent=2))
        return

    color = "yellow" if status.level == "warning" else "green" if status.state == "enabled" else "cyan"
    click.echo()
    click.secho(f"  {status.message}", fg=color, bold=True)
    click.echo()

    settings = status.settings
    click.echo(f"  Max width:    {settings['max_width']} px")
    click.echo(f"  Max height:   {settings['max_height']} px")
    click.echo(f"  Quality:      {settings['quality']}")
    click.echo(f"  Upload dir:   {settings['upload_dir']}")
    click.echo()
    for name, available in status.capabilities.items():
        mark, fg = ("✓", "green") if available else ("✗", "red")
        click.secho(f"  {mark} {name}", fg=fg)


@click.command("metrics")
@click.option("--format", "output_format", type=click.Choice(["prometheus", "json"]), default="prometheus")
def metrics_cmd(output_format: str) -> None:
    """Export conversion metrics for monitoring."""
    from ..observability.metrics import metrics

    if output_format == "json":
        click.echo(json.dumps(metrics.export_json(), indent=2))
    else:
        click.echo(metrics.export_prometheus())


@click.command("generate-config")
def generate_config() -> None:
    """Print a template for UPLOAD_CONVERTER_CONFIG."""
    from ..config.loader import generate_master_config_template

    click.echo(generate_master_config_template())


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the upload server."""
    from ..admin.server import run_server

    run_server(host=host, port=port, debug=ctx.obj.get("debug", False))
