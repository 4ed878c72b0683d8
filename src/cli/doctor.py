"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client, content_api_url
from adapters.renderers import build_renderer
from cli.ui_components import build_settings_table, print_settings_error
from core.config import CONFIG_ENV_VAR, AppSettings, load_settings
from core.domain.models import OutputFormat, RenderContext

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()

# Spec mínimo: un único rect, sin datos remotos.
_PROBE_SPEC: dict[str, object] = {
    "$schema": "https://vega.github.io/schema/vega/v5.json",
    "width": 20,
    "height": 20,
    "marks": [
        {
            "type": "rect",
            "encode": {"enter": {"x": {"value": 0}, "y": {"value": 0}, "width": {"value": 20}, "height": {"value": 20}}},
        }
    ],
}


async def _check_http(settings: AppSettings, url: str) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url, params={"action": "query", "meta": "siteinfo", "format": "json"})
        return response.status_code == 200, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc) or type(exc).__name__


async def _check_renderer(settings: AppSettings) -> tuple[bool, str]:
    """Render the probe spec to SVG with the configured renderer."""

    try:
        renderer = build_renderer(settings)
        context = RenderContext(domain=_probe_domain(settings), protocol=settings.default_protocol)
        svg = await renderer.render(_PROBE_SPEC, context, OutputFormat.SVG)
        return True, f"{len(svg)} bytes of SVG"
    except Exception as exc:
        return False, str(exc) or type(exc).__name__


def _probe_domain(settings: AppSettings) -> str:
    if settings.domain_map:
        return next(iter(settings.domain_map.values()))
    return settings.domains[0]


def _probe_hosts(settings: AppSettings) -> list[str]:
    """Hosts reachable upstream: alias targets plus plain domains, deduplicated."""

    hosts: list[str] = []
    for host in [*settings.domains, *settings.domain_map.values()]:
        if host not in hosts:
            hosts.append(host)
    return hosts


@app.command()
def run(
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar=CONFIG_ENV_VAR,
        exists=True,
        dir_okay=False,
        help="JSON config file.",
    ),
    network: bool = typer.Option(True, help="Probe the content API of each configured domain."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    try:
        settings = load_settings(config)
    except (ValidationError, ValueError) as exc:
        print_settings_error(_console, exc)
        raise typer.Exit(code=1) from exc

    _console.print(build_settings_table(settings))

    table = Table(title="graphoid doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    failures = 0
    if network:
        for host in _probe_hosts(settings):
            url = content_api_url(settings, host)
            ok_http, detail_http = asyncio.run(_check_http(settings, url))
            failures += not ok_http
            table.add_row(f"Content API {host}", "OK" if ok_http else "FAIL", f"{url} -> {detail_http}")
    else:
        table.add_row("Content API", "SKIPPED", "--no-network")

    ok_render, detail_render = asyncio.run(_check_renderer(settings))
    failures += not ok_render
    table.add_row(f"Renderer ({settings.renderer})", "OK" if ok_render else "FAIL", detail_render)

    _console.print(table)

    if not ok_render and settings.renderer == "vega":
        _console.print("\n[yellow]Note:[/yellow] the vega renderer needs the `vl-convert-python` package.")
    if failures:
        raise typer.Exit(code=1)
