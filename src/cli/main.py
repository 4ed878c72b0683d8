"""CLI de graphoid (Typer + Rich).

Comandos:
- `serve`:   arranca la API con uvicorn.
- `render`:  obtiene un spec de una página y lo renderiza a fichero.
- `resolve`: muestra cómo se normaliza un dominio.
- `doctor`:  diagnósticos de entorno (ver `cli/doctor.py`).
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import typer
import uvicorn
from pydantic import ValidationError
from rich.console import Console

from cli import doctor
from cli.ui_components import build_resolution_table, print_banner, print_settings_error
from core.config import CONFIG_ENV_VAR, AppSettings, load_settings
from core.domain.errors import PipelineError
from core.domain.models import OutputFormat
from core.logging_config import configure_logging
from core.services.domain_resolver import DomainResolver
from core.services.request_validator import RawGraphRequest

app = typer.Typer(no_args_is_help=True, help="Graph rendering service for wiki-hosted visualization specs.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    envvar=CONFIG_ENV_VAR,
    exists=True,
    dir_okay=False,
    help="JSON config file (domains, domain_map, default_protocol, timeout_ms, ...).",
)


def _settings_or_exit(config: Path | None, **overrides: object) -> AppSettings:
    try:
        return load_settings(config, **overrides)
    except (ValidationError, ValueError) as exc:
        print_settings_error(_console, exc)
        raise typer.Exit(code=1) from exc


def _parse_api_params(values: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {value!r}")
        params[key] = val
    return params


@app.command()
def serve(
    config: Path | None = ConfigOption,
    host: str | None = typer.Option(None, help="Bind address (default from settings)."),
    port: int | None = typer.Option(None, help="Port (default from settings)."),
    workers: int | None = typer.Option(None, help="Worker processes (default from settings)."),
    banner: bool = typer.Option(True, help="Show the startup banner."),
) -> None:
    """Run the HTTP service."""

    settings = _settings_or_exit(config)
    configure_logging(settings.log_level)
    if banner:
        print_banner(_console)
    if config is not None:
        # Los workers de uvicorn vuelven a llamar a la factory en su propio proceso.
        os.environ[CONFIG_ENV_VAR] = str(config)

    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        workers=workers or settings.workers,
        log_config=None,
    )


@app.command()
def render(
    domain: str = typer.Argument(..., help="Wiki domain, e.g. en.wikipedia.org"),
    graph_id: str = typer.Argument(..., help="Graph spec id (hex)."),
    title: str | None = typer.Option(None, "--title", "-t", help="Page title."),
    revid: str | None = typer.Option(None, "--revid", "-r", help="Page revision id."),
    output_format: OutputFormat = typer.Option(OutputFormat.PNG, "--format", "-f"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file (default: <id>.<format>)."),
    api_param: list[str] = typer.Option([], "--api-param", help="Extra content API parameter key=value."),
    config: Path | None = ConfigOption,
) -> None:
    """Fetch a graph spec from a page and render it to a file."""

    api_params = _parse_api_params(api_param)
    settings = _settings_or_exit(config)
    configure_logging(settings.log_level)

    from api.app import build_pipeline  # noqa: PLC0415

    pipeline = build_pipeline(settings)
    raw = RawGraphRequest(
        domain=domain,
        format=output_format.value,
        graph_id=graph_id,
        title=title,
        revid=revid,
        raw_query=api_params,
    )
    try:
        rendered = asyncio.run(pipeline.render_stored(raw))
    except PipelineError as exc:
        _console.print(f"[red]{exc.kind.value}[/red] {exc.detail}")
        raise typer.Exit(code=2) from exc

    extension = "json" if output_format is OutputFormat.ALL else output_format.value
    out_path = output or Path(f"{graph_id}.{extension}")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(rendered.content)
    _console.print(f"[green]Saved[/green] {rendered.media_type} ({len(rendered.content)} bytes) to {out_path}")


@app.command()
def resolve(
    hosts: list[str] = typer.Argument(..., help="Host strings to resolve."),
    config: Path | None = ConfigOption,
) -> None:
    """Show the canonical and backend domain for each host."""

    settings = _settings_or_exit(config)
    resolver = DomainResolver.from_settings(settings)
    _console.print(build_resolution_table(resolver, hosts))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
