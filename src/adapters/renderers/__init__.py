"""Motores de render (implementaciones de `core.interfaces.renderer.SpecRenderer`).

Por qué un paquete:
- Agrupa un módulo por backend (vl-convert local, servidor remoto).
- Los imports son perezosos: la API y los tests no cargan vl-convert si no
  lo usan.
"""

from __future__ import annotations

from core.config import AppSettings
from core.interfaces.renderer import SpecRenderer


def build_renderer(settings: AppSettings) -> SpecRenderer:
    """Crea el renderer configurado en `settings.renderer`."""

    if settings.renderer == "remote":
        from adapters.renderers.remote import RemoteRenderer  # noqa: PLC0415

        assert settings.render_service_url is not None
        return RemoteRenderer(settings.render_service_url, settings=settings)

    from adapters.renderers.vega import VegaRenderer  # noqa: PLC0415

    return VegaRenderer(png_scale=settings.png_scale)


__all__ = ["build_renderer"]
