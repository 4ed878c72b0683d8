"""Renderer local: specs Vega -> PNG/SVG con vl-convert.

Implementación:
- `vl_convert` es síncrono y usa CPU; se ejecuta en un hilo con
  `asyncio.to_thread` para no bloquear el event loop.
- Si el deadline del pipeline vence, el hilo sigue hasta terminar y su
  resultado se descarta.

Nota:
- Las URLs estáticas del spec ya llegan absolutas y filtradas por
  `core.services.spec_urls`. Las que Vega calcula al renderizar quedan
  limitadas por `allowed_base_urls` del contexto, que vl-convert aplica a
  cada carga.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import vl_convert as vlc

from core.domain.models import OutputFormat, RenderContext

logger = logging.getLogger(__name__)


class VegaRenderer:
    def __init__(self, *, png_scale: float = 1.0) -> None:
        self._png_scale = png_scale

    async def render(
        self,
        spec: dict[str, Any],
        context: RenderContext,
        output_format: OutputFormat,
    ) -> bytes:
        allowed = context.load_prefixes
        logger.debug(
            "vega render",
            extra={"context": {"domain": context.domain, "format": output_format.value, "allowed": allowed}},
        )
        if output_format is OutputFormat.PNG:
            return await asyncio.to_thread(
                vlc.vega_to_png,
                spec,
                scale=self._png_scale,
                allowed_base_urls=allowed,
            )
        if output_format is OutputFormat.SVG:
            svg = await asyncio.to_thread(vlc.vega_to_svg, spec, allowed_base_urls=allowed)
            return svg.encode("utf-8")
        raise ValueError(f"VegaRenderer cannot produce {output_format.value!r} directly")
