"""Logging del servicio.

Por qué aquí:
- El pipeline solo emite eventos estructurados (`logger.info(msg, extra={"context": {...}})`);
  el sink es lo que se configure en el arranque (CLI o factory de la API).
- Rich ya es dependencia de la CLI, así que la consola usa `RichHandler`.
"""

from __future__ import annotations

import json
import logging

from rich.console import Console
from rich.logging import RichHandler

CONTEXT_KEY = "context"


class ContextFormatter(logging.Formatter):
    """Añade el dict `context` del record como JSON al final del mensaje."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, CONTEXT_KEY, None)
        if context:
            message = f"{message} {json.dumps(context, default=str, ensure_ascii=False, sort_keys=True)}"
        return message


def configure_logging(level: str | int = "INFO", *, rich: bool = True) -> None:
    """Instala un único handler en el root logger (idempotente)."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_graphoid", False):
            root.removeHandler(handler)

    handler: logging.Handler
    if rich:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(ContextFormatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._graphoid = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    # httpx loguea cada request a INFO; el pipeline ya registra sus llamadas.
    logging.getLogger("httpx").setLevel(logging.WARNING)
