"""Request parameter validation.

Turns raw route parameters into the immutable descriptors the rest of the
pipeline works with. Checks run in a fixed order (extension, format,
revision, title, spec id, domain) so the same bad request always yields the
same error kind.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from core.domain.errors import ErrorKind, PipelineError
from core.domain.models import (
    SPEC_ID_PATTERN,
    TITLE_SEPARATOR,
    OutputFormat,
    RenderOnlyDescriptor,
    RequestDescriptor,
)
from core.services.domain_resolver import DomainResolver

logger = logging.getLogger(__name__)

_REVISION_RE = re.compile(r"[0-9]+")
_SPEC_ID_RE = re.compile(SPEC_ID_PATTERN)


@dataclass
class RawGraphRequest:
    """Route parameters exactly as they arrived (all strings, all optional)."""

    domain: str
    format: str
    graph_id: str | None = None
    title: str | None = None
    revid: str | None = None
    raw_query: dict[str, str] = field(default_factory=dict)

    def log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"domain": self.domain, "format": self.format}
        if self.graph_id is not None:
            fields["id"] = self.graph_id
        if self.title is not None:
            fields["title"] = self.title
        if self.revid is not None:
            fields["revid"] = self.revid
        return fields


def split_graph_id(graph_id: str) -> tuple[str, str | None]:
    """Split `abc123.png` into `("abc123", "png")`; an empty suffix counts as none.

    Only the first two dot-separated segments count: `abc123.png.x` is
    `("abc123", "png")`.
    """

    spec_id, *rest = graph_id.split(".")[:2]
    return spec_id, (rest[0] if rest else None) or None


def parse_format(value: str) -> OutputFormat:
    try:
        return OutputFormat(value)
    except ValueError:
        raise PipelineError(ErrorKind.INVALID_FORMAT, format=value) from None


def parse_revision(value: str | None) -> int | None:
    """Return the revision id, or None when absent or zero.

    Zero is the "not supplied" value: callers fall back to the page title.
    """

    if not value:
        return None
    if not _REVISION_RE.fullmatch(value):
        raise PipelineError(ErrorKind.INVALID_REVISION, revid=value)
    revision = int(value)
    return revision or None


def check_title(value: str) -> str:
    if TITLE_SEPARATOR in value:
        raise PipelineError(ErrorKind.INVALID_TITLE, title=value)
    return value


def validate_graph_request(raw: RawGraphRequest, resolver: DomainResolver) -> RequestDescriptor:
    """Validate a "fetch from page" request."""

    spec_id, extension = split_graph_id(raw.graph_id or "")
    if extension is not None and extension != raw.format:
        raise PipelineError(ErrorKind.INVALID_EXTENSION, extension=extension, format=raw.format)
    output_format = parse_format(raw.format)

    revision_id = parse_revision(raw.revid)
    page_title: str | None = None
    if revision_id is None:
        if not raw.title:
            raise PipelineError(ErrorKind.MISSING_PAGE_SELECTOR)
        page_title = check_title(raw.title)

    if not _SPEC_ID_RE.fullmatch(spec_id):
        raise PipelineError(ErrorKind.INVALID_SPEC_ID, id=spec_id)

    domain = resolver.resolve(raw.domain)

    descriptor = RequestDescriptor(
        domain=domain,
        spec_id=spec_id,
        output_format=output_format,
        revision_id=revision_id,
        page_title=page_title,
        raw_query=dict(raw.raw_query),
    )
    _log_accepted(raw, descriptor.domain.backend if descriptor.domain.rewritten else None)
    return descriptor


def validate_render_request(
    raw: RawGraphRequest,
    body: Any,
    resolver: DomainResolver,
) -> RenderOnlyDescriptor:
    """Validate a "render the posted spec" request.

    Title and revision are optional here and only used for logging, but when
    present they follow the same rules as in fetch mode.
    """

    output_format = parse_format(raw.format)
    revision_id = parse_revision(raw.revid)
    page_title = check_title(raw.title) if raw.title else None
    domain = resolver.resolve(raw.domain)

    if not isinstance(body, dict):
        raise PipelineError(ErrorKind.MISSING_SPEC, body_type=type(body).__name__)

    descriptor = RenderOnlyDescriptor(
        domain=domain,
        output_format=output_format,
        spec=body,
        revision_id=revision_id,
        page_title=page_title,
    )
    _log_accepted(raw, descriptor.domain.backend if descriptor.domain.rewritten else None)
    return descriptor


def _log_accepted(raw: RawGraphRequest, backend: str | None) -> None:
    context = raw.log_fields()
    if backend is not None:
        context["backend"] = backend
    logger.info("graph request accepted", extra={"context": context})
