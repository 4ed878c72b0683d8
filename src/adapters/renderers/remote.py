"""Renderer remoto: delega el render en un servidor HTTP.

Protocolo:
- `POST {base_url}/{png|svg}` con
  `{"spec": ..., "domain": ..., "protocol": ..., "allowed_base_urls": [...]}`;
  el servidor debe limitar sus cargas a esos prefijos.
- 200 => cuerpo = bytes de la imagen; cualquier otro status => `RenderError`.
"""

from __future__ import annotations

from typing import Any

import httpx

from adapters.http_client import ClientFactory, build_async_client
from core.config import AppSettings
from core.domain.errors import ErrorKind, PipelineError
from core.domain.models import OutputFormat, RenderContext

_MAX_ERROR_SNIPPET = 300
_ACCEPT = "image/png, image/svg+xml"


class RemoteRenderer:
    def __init__(
        self,
        base_url: str,
        *,
        settings: AppSettings,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client_factory = client_factory or self._default_factory(settings)

    @staticmethod
    def _default_factory(settings: AppSettings) -> ClientFactory:
        def factory() -> httpx.AsyncClient:
            return build_async_client(settings, extra_headers={"Accept": _ACCEPT})

        return factory

    async def render(
        self,
        spec: dict[str, Any],
        context: RenderContext,
        output_format: OutputFormat,
    ) -> bytes:
        url = f"{self._base_url}/{output_format.value}"
        payload = {
            "spec": spec,
            "domain": context.domain,
            "protocol": context.protocol,
            "allowed_base_urls": context.load_prefixes,
        }

        async with self._client_factory() as client:
            response = await client.post(url, json=payload)

        if response.status_code != 200:
            snippet = (response.text or "").strip()
            if len(snippet) > _MAX_ERROR_SNIPPET:
                snippet = snippet[:_MAX_ERROR_SNIPPET] + "..."
            raise PipelineError(
                ErrorKind.RENDER_ERROR,
                url=url,
                status=response.status_code,
                body=snippet,
            )
        return response.content
