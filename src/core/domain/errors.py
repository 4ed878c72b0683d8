"""Taxonomía de errores del pipeline.

Por qué un enum cerrado:
- Cada fallo (validación, API de contenido, render, deadline) termina en un
  único `ErrorKind`, así los llamadores pueden tratarlos de forma exhaustiva.
- El valor del enum es el cuerpo que ve el cliente; no cambia entre versiones.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Stable failure codes surfaced to clients."""

    INVALID_FORMAT = "InvalidFormat"
    INVALID_EXTENSION = "InvalidExtension"
    INVALID_REVISION = "InvalidRevision"
    INVALID_TITLE = "InvalidTitle"
    MISSING_PAGE_SELECTOR = "MissingPageSelector"
    INVALID_SPEC_ID = "InvalidSpecId"
    INVALID_DOMAIN = "InvalidDomain"
    MISSING_SPEC = "MissingSpec"
    UPSTREAM_STATUS = "UpstreamStatus"
    UPSTREAM_ERROR = "UpstreamError"
    MALFORMED_PAYLOAD = "MalformedPayload"
    SPEC_NOT_FOUND = "SpecNotFound"
    RENDER_ERROR = "RenderError"
    TIMEOUT = "Timeout"
    UNKNOWN = "Unknown"

    @property
    def metric(self) -> str:
        """Metric key emitted alongside the failure event."""

        return _METRICS[self]

    @property
    def is_client_error(self) -> bool:
        return self in _CLIENT_ERRORS


_METRICS: dict[ErrorKind, str] = {
    ErrorKind.INVALID_FORMAT: "req.format",
    ErrorKind.INVALID_EXTENSION: "req.ext",
    ErrorKind.INVALID_REVISION: "req.revid",
    ErrorKind.INVALID_TITLE: "req.title",
    ErrorKind.MISSING_PAGE_SELECTOR: "req.page",
    ErrorKind.INVALID_SPEC_ID: "req.id",
    ErrorKind.INVALID_DOMAIN: "req.domain",
    ErrorKind.MISSING_SPEC: "req.body",
    ErrorKind.UPSTREAM_STATUS: "mwapi.bad-status",
    ErrorKind.UPSTREAM_ERROR: "mwapi.error",
    ErrorKind.MALFORMED_PAYLOAD: "mwapi.bad-json",
    ErrorKind.SPEC_NOT_FOUND: "mwapi.no-graph",
    ErrorKind.RENDER_ERROR: "vega.error",
    ErrorKind.TIMEOUT: "timeout",
    ErrorKind.UNKNOWN: "error.unknown",
}

_CLIENT_ERRORS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.INVALID_FORMAT,
        ErrorKind.INVALID_EXTENSION,
        ErrorKind.INVALID_REVISION,
        ErrorKind.INVALID_TITLE,
        ErrorKind.MISSING_PAGE_SELECTOR,
        ErrorKind.INVALID_SPEC_ID,
        ErrorKind.INVALID_DOMAIN,
        ErrorKind.MISSING_SPEC,
    }
)


class PipelineError(Exception):
    """A failure at any pipeline stage.

    `detail` holds whatever helps an operator (the offending parameter, the
    upstream status code or error payload); it is logged, never sent to the
    client.
    """

    def __init__(self, kind: ErrorKind, **detail: Any) -> None:
        super().__init__(kind.value)
        self.kind = kind
        self.detail: dict[str, Any] = detail

    def __repr__(self) -> str:
        return f"PipelineError({self.kind.value!r}, {self.detail!r})"
