"""Contrato del motor de render.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que los renderers (vl-convert local, servidor remoto, stubs de test)
  sean intercambiables sin acoplar el pipeline a implementaciones concretas.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import OutputFormat, RenderContext


@runtime_checkable
class SpecRenderer(Protocol):
    """Contrato mínimo para un motor de render.

    Reglas de diseño:
    - `render` es asíncrono: puede hacer I/O o delegar en un hilo.
    - El contexto (dominio/protocolo) es un argumento de cada llamada; un
      renderer no guarda estado por request.
    - `output_format` es siempre PNG o SVG; el pipeline compone `all`.
    """

    async def render(
        self,
        spec: dict[str, Any],
        context: RenderContext,
        output_format: OutputFormat,
    ) -> bytes:
        """Renderiza `spec` y devuelve los bytes de la imagen."""

        ...
