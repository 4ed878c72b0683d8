"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers (User-Agent) y redirects para todas las
  llamadas salientes (API de contenido, servidor de render).
- Facilita testeo: el pipeline recibe una factory y los tests inyectan un
  `httpx.MockTransport`.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx

from core.config import AppSettings

ClientFactory = Callable[[], httpx.AsyncClient]


def build_async_client(
    settings: AppSettings,
    *,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todas las llamadas se comporten igual.
    - Un cliente por request: nada mutable se comparte entre requests.
    """

    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
    )


def client_factory(settings: AppSettings) -> ClientFactory:
    """Factory sin argumentos que el pipeline llama una vez por request."""

    def factory() -> httpx.AsyncClient:
        return build_async_client(settings)

    return factory


def content_api_url(settings: AppSettings, domain: str) -> str:
    return f"{settings.default_protocol}://{domain}{settings.api_path}"
