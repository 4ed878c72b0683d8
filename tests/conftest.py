from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from core.config import AppSettings
from core.domain.models import OutputFormat, RenderContext
from core.services.domain_resolver import DomainResolver
from core.services.render_pipeline import GraphPipeline


class EchoRenderer:
    """Returns the spec's `marker` field as the image bytes and records each call."""

    def __init__(self) -> None:
        self.calls: list[tuple[dict[str, Any], RenderContext, OutputFormat]] = []

    async def render(self, spec: dict[str, Any], context: RenderContext, output_format: OutputFormat) -> bytes:
        self.calls.append((spec, context, output_format))
        return f"{output_format.value}:{spec.get('marker', '')}".encode("utf-8")


class HangingRenderer:
    async def render(self, spec: dict[str, Any], context: RenderContext, output_format: OutputFormat) -> bytes:
        await asyncio.Event().wait()
        return b""


class FailingRenderer:
    async def render(self, spec: dict[str, Any], context: RenderContext, output_format: OutputFormat) -> bytes:
        raise RuntimeError("spec has no marks")


class FakeContentApi:
    """Serves canned content API payloads in order and records every request."""

    def __init__(self, *responses: httpx.Response | dict[str, Any]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"unexpected request {request.url}")
        item = self._responses.pop(0)
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)

    def factory(self) -> Callable[[], httpx.AsyncClient]:
        def build() -> httpx.AsyncClient:
            return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

        return build

    @property
    def params(self) -> list[dict[str, str]]:
        return [dict(r.url.params) for r in self.requests]


def page_payload(specs: dict[str, Any], *, as_json: bool = True, **extra: Any) -> dict[str, Any]:
    props = json.dumps(specs) if as_json else specs
    payload: dict[str, Any] = {"query": {"pages": {"1": {"pageid": 1, "pageprops": {"graph_specs": props}}}}}
    payload.update(extra)
    return payload


def empty_page_payload(**extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"query": {"pages": {"2": {"pageid": 2}}}}
    payload.update(extra)
    return payload


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        domains=["wikipedia.org", "mediawiki.org"],
        domain_map={"oldwiki.org": "newwiki.org"},
        timeout_ms=2000,
        _env_file=None,
    )


@pytest.fixture
def resolver(settings: AppSettings) -> DomainResolver:
    return DomainResolver.from_settings(settings)


@pytest.fixture
def make_pipeline(settings: AppSettings, resolver: DomainResolver):
    def build(api: FakeContentApi | None = None, renderer: Any = None, **overrides: Any) -> GraphPipeline:
        effective = settings.model_copy(update=overrides) if overrides else settings
        return GraphPipeline(
            settings=effective,
            resolver=resolver,
            renderer=renderer or EchoRenderer(),
            client_factory=(api or FakeContentApi()).factory(),
        )

    return build
