"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos (main/doctor).
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import ValidationError
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import AppSettings
from core.domain.errors import PipelineError
from core.services.domain_resolver import DomainResolver


def print_banner(console: Console) -> None:
    """Imprime el banner de arranque."""

    title = Text("graphoid", style="bold cyan")
    subtitle = Text("Wiki graph specs • Vega rendering • PNG/SVG", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def print_settings_error(console: Console, exc: Exception) -> None:
    """Muestra por qué la configuración no es válida (el proceso no arranca)."""

    lines: list[str]
    if isinstance(exc, ValidationError):
        lines = [f"- {'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}" for err in exc.errors()]
    else:
        lines = [f"- {exc}"]
    body = Text("\n".join(lines))
    console.print(Panel(body, title=Text("Invalid configuration", style="bold red"), border_style="red"))


def build_settings_table(settings: AppSettings) -> Table:
    table = Table(title="Settings")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("domains", ", ".join(settings.domains) or "-")
    table.add_row(
        "domain_map",
        ", ".join(f"{k} -> {v}" for k, v in settings.domain_map.items()) or "-",
    )
    table.add_row("default_protocol", settings.default_protocol)
    table.add_row("timeout_ms", str(settings.timeout_ms) if settings.timeout_ms > 0 else "disabled")
    table.add_row("max_continuations", str(settings.max_continuations))
    table.add_row("renderer", settings.renderer)
    if settings.render_service_url:
        table.add_row("render_service_url", settings.render_service_url)
    return table


def build_resolution_table(resolver: DomainResolver, hosts: Iterable[str]) -> Table:
    """Tabla host -> canonical -> backend (o el error de validación)."""

    table = Table(title="Domain resolution")
    table.add_column("Host", style="cyan", no_wrap=True)
    table.add_column("Canonical", style="white")
    table.add_column("Backend", style="magenta")
    table.add_column("Error", style="red")

    for host in hosts:
        try:
            resolved = resolver.resolve(host)
        except PipelineError as exc:
            table.add_row(host, "-", "-", exc.kind.value)
            continue
        table.add_row(host, resolved.canonical, resolved.backend, "")
    return table
