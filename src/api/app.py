"""REST API server (FastAPI).

Routes:
- `GET  /{domain}/v1/{format}/{title}/{revid}/{id[.ext]}`  spec stored in a page, explicit format.
- `GET  /{domain}/{title}/{revid}/{id.ext}`                spec stored in a page, format from the extension.
- `POST /{domain}/v2/{format}[/{title}[/{revid}]]`         render the posted spec.

Every graph route hands a `RawGraphRequest` to `GraphPipeline` and returns
whatever `GraphResponse` it produces; the routes never build error
responses themselves. `{title}` may contain slashes (`Extension:Graph/Demo`).
"""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from adapters.renderers import build_renderer
from core.config import AppSettings, load_settings
from core.domain.models import GraphResponse
from core.logging_config import configure_logging
from core.services.domain_resolver import DomainResolver
from core.services.render_pipeline import GraphPipeline
from core.services.request_validator import RawGraphRequest, split_graph_id

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"
DEFAULT_FORMAT = "png"


def build_pipeline(settings: AppSettings) -> GraphPipeline:
    return GraphPipeline(
        settings=settings,
        resolver=DomainResolver.from_settings(settings),
        renderer=build_renderer(settings),
    )


def _to_response(result: GraphResponse) -> Response:
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )


def create_app(settings: AppSettings | None = None, *, pipeline: GraphPipeline | None = None) -> FastAPI:
    """Application factory (`uvicorn api.app:create_app --factory`).

    Without arguments, settings come from the environment / `GRAPHOID_CONFIG`
    and logging is configured here, since every uvicorn worker calls the
    factory in its own process.
    """

    if settings is None:
        settings = load_settings()
        configure_logging(settings.log_level)
    if pipeline is None:
        pipeline = build_pipeline(settings)

    app = FastAPI(title="graphoid", version=API_VERSION)
    app.state.pipeline = pipeline

    @app.get("/robots.txt", response_class=PlainTextResponse)
    async def robots() -> str:
        return "User-agent: *\nDisallow: /\n"

    @app.get("/_health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/{domain}/v1/{format}/{title:path}/{revid}/{graph_id}")
    async def stored_graph_with_format(
        domain: str,
        format: str,
        title: str,
        revid: str,
        graph_id: str,
    ) -> Response:
        raw = RawGraphRequest(domain=domain, format=format, title=title, revid=revid, graph_id=graph_id)
        return _to_response(await pipeline.handle_stored(raw))

    @app.get("/{domain}/{title:path}/{revid}/{graph_file}")
    async def stored_graph(domain: str, title: str, revid: str, graph_file: str) -> Response:
        _, extension = split_graph_id(graph_file)
        raw = RawGraphRequest(
            domain=domain,
            format=extension or DEFAULT_FORMAT,
            title=title,
            revid=revid,
            graph_id=graph_file,
        )
        return _to_response(await pipeline.handle_stored(raw))

    async def render_posted(request: Request, raw: RawGraphRequest) -> Response:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        return _to_response(await pipeline.handle_posted(raw, body))

    @app.post("/{domain}/v2/{format}")
    async def posted_graph(request: Request, domain: str, format: str) -> Response:
        return await render_posted(request, RawGraphRequest(domain=domain, format=format))

    @app.post("/{domain}/v2/{format}/{title}")
    async def posted_graph_with_title(request: Request, domain: str, format: str, title: str) -> Response:
        return await render_posted(request, RawGraphRequest(domain=domain, format=format, title=title))

    @app.post("/{domain}/v2/{format}/{title}/{revid}")
    async def posted_graph_with_revision(
        request: Request,
        domain: str,
        format: str,
        title: str,
        revid: str,
    ) -> Response:
        raw = RawGraphRequest(domain=domain, format=format, title=title, revid=revid)
        return await render_posted(request, raw)

    logger.info(
        "graphoid api ready",
        extra={"context": {"domains": settings.domains, "renderer": settings.renderer}},
    )
    return app
