"""Graph rendering orchestration.

Composes validation, the page-props fetch, URL rewriting and the render call
into one coroutine raced against the configured deadline. This is the only
place where a failure becomes a response: every stage raises
`PipelineError`, `GraphPipeline` turns it into a `GraphResponse` and logs it
together with everything the request accumulated on the way.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import time
from collections.abc import Awaitable
from typing import Any, TypeVar

from adapters import http_client
from adapters.http_client import ClientFactory, content_api_url
from adapters.page_props import fetch_graph_spec
from core.config import AppSettings
from core.domain.errors import ErrorKind, PipelineError
from core.domain.models import (
    GraphResponse,
    OutputFormat,
    RenderContext,
    RenderedGraph,
)
from core.interfaces.renderer import SpecRenderer
from core.services.domain_resolver import DomainResolver
from core.services.request_validator import (
    RawGraphRequest,
    validate_graph_request,
    validate_render_request,
)
from core.services.spec_urls import allowed_base_urls, rewrite_spec_urls

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)


class GraphPipeline:
    """Validate → fetch → render, under a deadline.

    Two entry points share the same core:
    - `handle_stored`: the spec lives in a page's `graph_specs` property.
    - `handle_posted`: the spec is the request body (render-only mode).

    The `render_*` variants raise `PipelineError` instead of building a
    response; the CLI uses them.
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        resolver: DomainResolver,
        renderer: SpecRenderer,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings
        self._resolver = resolver
        self._renderer = renderer
        self._client_factory = client_factory or http_client.client_factory(settings)

    @property
    def resolver(self) -> DomainResolver:
        return self._resolver

    async def handle_stored(self, raw: RawGraphRequest) -> GraphResponse:
        request_log = raw.log_fields()
        return await self._respond(self._render_stored(raw, request_log), request_log)

    async def handle_posted(self, raw: RawGraphRequest, body: Any) -> GraphResponse:
        request_log = raw.log_fields()
        return await self._respond(self._render_posted(raw, body, request_log), request_log)

    async def render_stored(self, raw: RawGraphRequest) -> RenderedGraph:
        return await self._with_deadline(self._render_stored(raw, raw.log_fields()))

    async def render_posted(self, raw: RawGraphRequest, body: Any) -> RenderedGraph:
        return await self._with_deadline(self._render_posted(raw, body, raw.log_fields()))

    # --- stages ---

    async def _render_stored(self, raw: RawGraphRequest, request_log: dict[str, Any]) -> RenderedGraph:
        descriptor = validate_graph_request(raw, self._resolver)
        if descriptor.domain.rewritten:
            request_log["backend"] = descriptor.domain.backend

        api_url = content_api_url(self._settings, descriptor.domain.backend)
        started = time.perf_counter()
        async with self._client_factory() as client:
            spec = await fetch_graph_spec(
                client,
                api_url,
                descriptor.api_query(),
                descriptor.spec_id,
                max_iterations=self._settings.max_continuations,
                request_log=request_log,
            )
        request_log["fetch_ms"] = _elapsed_ms(started)

        context = descriptor.render_context(self._settings.default_protocol)
        return await self._render(spec, context, descriptor.output_format, request_log)

    async def _render_posted(
        self,
        raw: RawGraphRequest,
        body: Any,
        request_log: dict[str, Any],
    ) -> RenderedGraph:
        descriptor = validate_render_request(raw, body, self._resolver)
        if descriptor.domain.rewritten:
            request_log["backend"] = descriptor.domain.backend

        context = descriptor.render_context(self._settings.default_protocol)
        return await self._render(descriptor.spec, context, descriptor.output_format, request_log)

    async def _render(
        self,
        spec: dict[str, Any],
        context: RenderContext,
        output_format: OutputFormat,
        request_log: dict[str, Any],
    ) -> RenderedGraph:
        prepared = rewrite_spec_urls(spec, context=context, resolver=self._resolver)
        context = context.model_copy(
            update={"allowed_base_urls": allowed_base_urls(prepared, context=context, resolver=self._resolver)}
        )
        started = time.perf_counter()
        try:
            if output_format is OutputFormat.ALL:
                png = await self._renderer.render(prepared, context, OutputFormat.PNG)
                svg = await self._renderer.render(prepared, context, OutputFormat.SVG)
                content = json.dumps(
                    {
                        "png": base64.b64encode(png).decode("ascii"),
                        "svg": svg.decode("utf-8"),
                    }
                ).encode("utf-8")
            else:
                content = await self._renderer.render(prepared, context, output_format)
        except PipelineError as exc:
            request_log["render_error"] = exc.detail
            raise
        except Exception as exc:
            request_log["render_error"] = repr(exc)
            raise PipelineError(ErrorKind.RENDER_ERROR, error=str(exc) or type(exc).__name__) from exc

        request_log["render_ms"] = _elapsed_ms(started)
        return RenderedGraph(content=content, media_type=output_format.media_type)

    # --- deadline & response mapping ---

    async def _with_deadline(self, work: Awaitable[T]) -> T:
        timeout_ms = self._settings.timeout_ms
        if timeout_ms <= 0:
            return await work
        try:
            return await asyncio.wait_for(work, timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            raise PipelineError(ErrorKind.TIMEOUT, timeout_ms=timeout_ms) from exc

    async def _respond(self, work: Awaitable[RenderedGraph], request_log: dict[str, Any]) -> GraphResponse:
        started = time.perf_counter()
        try:
            rendered = await self._with_deadline(work)
        except PipelineError as exc:
            request_log["total_ms"] = _elapsed_ms(started)
            return self._failure(exc, request_log)
        except Exception as exc:
            request_log["total_ms"] = _elapsed_ms(started)
            logger.exception("unexpected pipeline failure", extra={"context": request_log})
            return self._failure(PipelineError(ErrorKind.UNKNOWN, error=repr(exc)), request_log, logged=True)

        request_log["total_ms"] = _elapsed_ms(started)
        logger.debug("graph rendered", extra={"context": request_log})
        return GraphResponse(
            status_code=200,
            media_type=rendered.media_type,
            body=rendered.content,
            headers=self.cache_headers(),
        )

    def _failure(
        self,
        error: PipelineError,
        request_log: dict[str, Any],
        *,
        logged: bool = False,
    ) -> GraphResponse:
        if not logged:
            context = {**request_log, **error.detail, "metric": error.kind.metric}
            level = logging.INFO if error.kind.is_client_error else logging.WARNING
            logger.log(level, error.kind.value, extra={"context": context})
        return GraphResponse(
            status_code=400,
            media_type="application/json",
            body=json.dumps(error.kind.value).encode("utf-8"),
            headers=self.cache_headers(),
        )

    def cache_headers(self) -> dict[str, str]:
        max_age = self._settings.cache_max_age_seconds
        return {"Cache-Control": f"public, s-maxage={max_age}, max-age={max_age}"}
