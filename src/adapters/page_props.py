"""Descarga de specs desde la API de contenido (pageprops/graph_specs).

Está en adapters porque es I/O puro (HTTP): recorre las páginas de resultados
siguiendo los tokens `continue` hasta encontrar el spec pedido.

Respuesta esperada:
    {"query": {"pages": {"<pageid>": {"pageprops": {"graph_specs": "<json>"}}}},
     "continue": {...}, "warnings": {...}, "error": {...}}
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from core.domain.errors import ErrorKind, PipelineError

logger = logging.getLogger(__name__)

GRAPH_SPECS_PROP = "graph_specs"


async def fetch_graph_spec(
    client: httpx.AsyncClient,
    api_url: str,
    query: Mapping[str, str],
    spec_id: str,
    *,
    max_iterations: int = 200,
    request_log: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return the spec object stored under `spec_id`.

    One upstream call per iteration; iteration N+1 is built from iteration
    N's `continue` object, so the loop is strictly sequential. Every query
    sent is appended to `request_log["calls"]`.
    """

    request_log = request_log if request_log is not None else {}
    calls: list[dict[str, str]] = request_log.setdefault("calls", [])
    current = dict(query)

    for _ in range(max_iterations):
        calls.append(dict(current))
        payload = await _call_api(client, api_url, current, request_log)

        if "error" in payload:
            request_log["api_error"] = payload["error"]
            raise PipelineError(ErrorKind.UPSTREAM_ERROR, url=api_url, error=payload["error"])

        if "warnings" in payload:
            request_log["api_warning"] = payload["warnings"]
            # Los warnings no son fatales.
            logger.info("content api warning", extra={"context": dict(request_log)})

        spec = find_spec(payload, spec_id)
        if spec is not None:
            return spec

        continuation = payload.get("continue")
        if continuation is None:
            raise PipelineError(ErrorKind.SPEC_NOT_FOUND, id=spec_id, calls=len(calls))
        if not isinstance(continuation, dict):
            raise PipelineError(ErrorKind.MALFORMED_PAYLOAD, reason="continue is not an object")
        current = {**current, **{str(k): str(v) for k, v in continuation.items()}}

    raise PipelineError(
        ErrorKind.UPSTREAM_ERROR,
        url=api_url,
        reason="continuation limit exceeded",
        limit=max_iterations,
    )


async def _call_api(
    client: httpx.AsyncClient,
    api_url: str,
    query: Mapping[str, str],
    request_log: dict[str, Any],
) -> dict[str, Any]:
    started = time.perf_counter()
    try:
        response = await client.get(api_url, params=dict(query))
    except httpx.HTTPError as exc:
        raise PipelineError(
            ErrorKind.UPSTREAM_ERROR,
            url=api_url,
            error=str(exc) or type(exc).__name__,
        ) from exc

    logger.debug(
        "content api call",
        extra={
            "context": {
                "url": api_url,
                "status": response.status_code,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
            }
        },
    )

    if response.status_code != 200:
        request_log["api_status"] = response.status_code
        raise PipelineError(ErrorKind.UPSTREAM_STATUS, url=api_url, status=response.status_code)

    try:
        payload = response.json()
    except ValueError as exc:
        raise PipelineError(ErrorKind.MALFORMED_PAYLOAD, url=api_url, reason="response is not JSON") from exc
    if not isinstance(payload, dict):
        raise PipelineError(ErrorKind.MALFORMED_PAYLOAD, url=api_url, reason="response is not an object")
    return payload


def iter_pages(payload: Mapping[str, Any]) -> Iterable[Mapping[str, Any]]:
    """Pages in upstream order (`formatversion=1` dict or `formatversion=2` list)."""

    query = payload.get("query")
    if not isinstance(query, dict):
        return []
    pages = query.get("pages")
    if isinstance(pages, dict):
        entries: Iterable[Any] = pages.values()
    elif isinstance(pages, list):
        entries = pages
    else:
        return []
    return [page for page in entries if isinstance(page, dict)]


def parse_graph_specs(raw: Any) -> dict[str, Any] | None:
    """Decode a page's `graph_specs`; None when it decodes to something that is not an object."""

    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, (str, bytes)):
        return None
    try:
        specs = json.loads(raw)
    except ValueError as exc:
        raise PipelineError(ErrorKind.MALFORMED_PAYLOAD, reason=f"bad {GRAPH_SPECS_PROP} JSON") from exc
    if not isinstance(specs, dict):
        return None
    return specs


def find_spec(payload: Mapping[str, Any], spec_id: str) -> dict[str, Any] | None:
    """First page whose `graph_specs` holds `spec_id` wins."""

    for page in iter_pages(payload):
        props = page.get("pageprops")
        if not isinstance(props, dict) or GRAPH_SPECS_PROP not in props:
            continue
        specs = parse_graph_specs(props[GRAPH_SPECS_PROP])
        if specs is None or spec_id not in specs:
            continue
        spec = specs[spec_id]
        if not isinstance(spec, dict):
            raise PipelineError(ErrorKind.MALFORMED_PAYLOAD, id=spec_id, reason="spec is not an object")
        return spec
    return None
