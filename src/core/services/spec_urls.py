"""Per-request rewriting of URLs referenced by a visualization spec.

Data sources and image marks reference remote resources through `url`
fields. Before a spec reaches the renderer every such URL is made absolute
against the request's render context, checked against the domain allow-list
and passed through the alias map. URLs that fail the policy are removed.
URLs computed at render time (signals, data fields) cannot be checked
statically; the renderer additionally receives `allowed_base_urls` and
refuses any load outside them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any
from urllib.parse import urljoin, urlsplit, urlunsplit

from core.domain.models import RenderContext
from core.services.domain_resolver import DomainResolver

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = ("http", "https")


def sanitize_url(url: str, context: RenderContext, resolver: DomainResolver) -> str | None:
    """Return the URL the renderer may load, or None when it must be denied."""

    if url.startswith("//"):
        absolute = f"{context.protocol}:{url}"
    else:
        parts = urlsplit(url)
        if not parts.scheme and not parts.netloc:
            absolute = urljoin(context.base_url + "/", url)
        else:
            absolute = url

    parts = urlsplit(absolute)
    host = parts.hostname
    if parts.scheme not in _ALLOWED_SCHEMES or not host or "@" in parts.netloc:
        return None
    if not resolver.is_allowed(host):
        return None

    alias = resolver.alias_for(host)
    if alias != host:
        netloc = alias if parts.port is None else f"{alias}:{parts.port}"
        absolute = urlunsplit(parts._replace(netloc=netloc))
    return absolute


def rewrite_spec_urls(
    spec: dict[str, Any],
    *,
    context: RenderContext,
    resolver: DomainResolver,
) -> dict[str, Any]:
    """Return a copy of `spec` with every `url` field sanitized.

    Handles both plain strings (`{"url": "..."}`) and value references
    (`{"url": {"value": "..."}}`). Any other `url` object (`signal`, `field`)
    is computed at render time and cannot be checked here, so it is removed.
    The input is not modified.
    """

    def fix(url: str) -> str | None:
        fixed = sanitize_url(url, context, resolver)
        if fixed is None:
            logger.debug("spec url denied", extra={"context": {"url": url, "domain": context.domain}})
        elif fixed != url:
            logger.debug("spec url rewritten", extra={"context": {"url": url, "replacement": fixed}})
        return fixed

    def walk(node: Any) -> Any:
        if isinstance(node, list):
            return [walk(item) for item in node]
        if not isinstance(node, dict):
            return node

        out: dict[str, Any] = {}
        for key, value in node.items():
            if key == "url" and isinstance(value, str):
                fixed = fix(value)
                if fixed is not None:
                    out[key] = fixed
            elif key == "url" and isinstance(value, dict) and isinstance(value.get("value"), str):
                fixed = fix(value["value"])
                if fixed is not None:
                    out[key] = {**value, "value": fixed}
            elif key == "url" and isinstance(value, dict):
                logger.debug(
                    "dynamic spec url denied",
                    extra={"context": {"url": value, "domain": context.domain}},
                )
            else:
                out[key] = walk(value)
        return out

    return walk(spec)


def _iter_urls(node: Any) -> Iterator[str]:
    if isinstance(node, list):
        for item in node:
            yield from _iter_urls(item)
    elif isinstance(node, dict):
        for key, value in node.items():
            if key == "url" and isinstance(value, str):
                yield value
            elif key == "url" and isinstance(value, dict) and isinstance(value.get("value"), str):
                yield value["value"]
            else:
                yield from _iter_urls(value)


def allowed_base_urls(
    spec: dict[str, Any],
    *,
    context: RenderContext,
    resolver: DomainResolver,
) -> tuple[str, ...]:
    """Origins the renderer may load from while rendering `spec`.

    `spec` must already have been through `rewrite_spec_urls`: the origins of
    its surviving URLs are trusted, plus the context domain and every plain
    configured domain or alias target. Each entry ends with `/` so that
    `https://wiki.org` does not also admit `https://wiki.org.evil.com`.
    """

    origins = [context.base_url + "/"]
    origins += [f"{context.protocol}://{host}/" for host in resolver.hosts]
    for url in _iter_urls(spec):
        parts = urlsplit(url)
        if parts.scheme in _ALLOWED_SCHEMES and parts.netloc:
            origins.append(f"{parts.scheme}://{parts.netloc}/")
    return tuple(dict.fromkeys(origins))
