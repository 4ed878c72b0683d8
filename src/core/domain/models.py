"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Los descriptores de request son inmutables: se crean por request y se
  descartan al terminar (éxito o fallo).

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

SPEC_ID_PATTERN = r"^[0-9a-f]+$"
TITLE_SEPARATOR = "|"


class OutputFormat(str, Enum):
    """Formatos de salida soportados."""

    PNG = "png"
    SVG = "svg"
    ALL = "all"

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]


_MEDIA_TYPES: dict[OutputFormat, str] = {
    OutputFormat.PNG: "image/png",
    OutputFormat.SVG: "image/svg+xml",
    OutputFormat.ALL: "application/json",
}


class ResolvedDomain(BaseModel):
    """Resultado de validar un host contra la allow-list.

    - `requested`: el host tal como llegó (se conserva para logs).
    - `canonical`: sin marcador móvil/zero, con el prefijo de idioma.
    - `backend`: `canonical` tras aplicar el mapa de alias; es el que se usa
      para llamar a la API de contenido.
    """

    model_config = ConfigDict(frozen=True)

    requested: str = Field(..., min_length=1)
    canonical: str = Field(..., min_length=1)
    backend: str = Field(..., min_length=1)

    @property
    def rewritten(self) -> bool:
        return self.requested != self.backend


class RenderContext(BaseModel):
    """Dominio y protocolo con los que se resuelven URLs relativas de un spec.

    `allowed_base_urls` es la lista de prefijos que el motor de render puede
    cargar; vacía equivale a "solo el dominio del contexto".
    """

    model_config = ConfigDict(frozen=True)

    domain: str = Field(..., min_length=1)
    protocol: str = Field(default="https", pattern=r"^https?$")
    allowed_base_urls: tuple[str, ...] = ()

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.domain}"

    @property
    def load_prefixes(self) -> list[str]:
        return list(self.allowed_base_urls) or [self.base_url + "/"]


class RequestDescriptor(BaseModel):
    """Request validada en modo "fetch" (spec guardado en una página)."""

    model_config = ConfigDict(frozen=True)

    domain: ResolvedDomain
    spec_id: str = Field(..., pattern=SPEC_ID_PATTERN)
    output_format: OutputFormat
    revision_id: int | None = Field(default=None, gt=0)
    page_title: str | None = Field(default=None, min_length=1)
    raw_query: dict[str, str] = Field(
        default_factory=dict,
        description="Parámetros extra para la API de contenido.",
    )

    @model_validator(mode="after")
    def _check_page_selector(self) -> "RequestDescriptor":
        if (self.revision_id is None) == (self.page_title is None):
            raise ValueError("exactly one of revision_id / page_title must be set")
        if self.page_title is not None and TITLE_SEPARATOR in self.page_title:
            raise ValueError("page_title must not contain '|'")
        return self

    def api_query(self) -> dict[str, str]:
        """Query inicial para `prop=pageprops&ppprop=graph_specs`."""

        query: dict[str, str] = {
            "format": "json",
            "action": "query",
            "prop": "pageprops",
            "ppprop": "graph_specs",
            "continue": "",
        }
        query.update(self.raw_query)
        if self.revision_id is not None:
            query["revids"] = str(self.revision_id)
        else:
            assert self.page_title is not None
            query["titles"] = self.page_title
        return query

    def render_context(self, protocol: str) -> RenderContext:
        return RenderContext(domain=self.domain.backend, protocol=protocol)


class RenderOnlyDescriptor(BaseModel):
    """Request validada en modo "render" (el spec viene en el body)."""

    model_config = ConfigDict(frozen=True)

    domain: ResolvedDomain
    output_format: OutputFormat
    spec: dict[str, Any]
    revision_id: int | None = Field(default=None, gt=0)
    page_title: str | None = None

    def render_context(self, protocol: str) -> RenderContext:
        return RenderContext(domain=self.domain.backend, protocol=protocol)


class RenderedGraph(BaseModel):
    content: bytes
    media_type: str


class GraphResponse(BaseModel):
    """Respuesta final del orquestador, lista para la capa HTTP."""

    status_code: int = Field(..., ge=100, le=599)
    media_type: str
    body: bytes
    headers: dict[str, str] = Field(default_factory=dict)
