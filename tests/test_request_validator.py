from __future__ import annotations

import pytest

from core.domain.errors import ErrorKind, PipelineError
from core.domain.models import OutputFormat
from core.services.request_validator import (
    RawGraphRequest,
    parse_revision,
    split_graph_id,
    validate_graph_request,
    validate_render_request,
)


def _raw(**kwargs):
    values = {"domain": "en.wikipedia.org", "format": "png", "graph_id": "abc123.png", "title": "Page", "revid": "12"}
    values.update(kwargs)
    return RawGraphRequest(**values)


def _kind(raw, resolver):
    with pytest.raises(PipelineError) as info:
        validate_graph_request(raw, resolver)
    return info.value.kind


def test_valid_request_prefers_revision(resolver):
    descriptor = validate_graph_request(_raw(), resolver)

    assert descriptor.spec_id == "abc123"
    assert descriptor.output_format is OutputFormat.PNG
    assert descriptor.revision_id == 12
    assert descriptor.page_title is None
    query = descriptor.api_query()
    assert query["revids"] == "12"
    assert "titles" not in query
    assert query["ppprop"] == "graph_specs"
    assert query["continue"] == ""


def test_zero_revision_falls_back_to_title(resolver):
    descriptor = validate_graph_request(_raw(revid="0", title="Extension:Graph/Demo"), resolver)

    assert descriptor.revision_id is None
    assert descriptor.api_query()["titles"] == "Extension:Graph/Demo"


def test_graph_id_without_extension(resolver):
    descriptor = validate_graph_request(_raw(graph_id="abc123", format="svg"), resolver)

    assert descriptor.output_format is OutputFormat.SVG


def test_raw_query_is_forwarded(resolver):
    descriptor = validate_graph_request(_raw(raw_query={"formatversion": "2"}), resolver)

    assert descriptor.api_query()["formatversion"] == "2"


@pytest.mark.parametrize(
    ("overrides", "kind"),
    [
        ({"graph_id": "abc123.svg"}, ErrorKind.INVALID_EXTENSION),
        ({"format": "jpeg", "graph_id": "abc123"}, ErrorKind.INVALID_FORMAT),
        ({"revid": "12a"}, ErrorKind.INVALID_REVISION),
        ({"revid": "-1"}, ErrorKind.INVALID_REVISION),
        ({"revid": "0", "title": "A|B"}, ErrorKind.INVALID_TITLE),
        ({"revid": "0", "title": ""}, ErrorKind.MISSING_PAGE_SELECTOR),
        ({"revid": None, "title": None}, ErrorKind.MISSING_PAGE_SELECTOR),
        ({"graph_id": "ABC.png"}, ErrorKind.INVALID_SPEC_ID),
        ({"graph_id": ".png"}, ErrorKind.INVALID_SPEC_ID),
        ({"domain": "example.com"}, ErrorKind.INVALID_DOMAIN),
    ],
)
def test_rejections(resolver, overrides, kind):
    assert _kind(_raw(**overrides), resolver) is kind


def test_checks_run_in_fixed_order(resolver):
    # Everything is wrong; the extension check comes first.
    raw = _raw(domain="example.com", format="jpeg", graph_id="XYZ.gif", revid="x", title="a|b")
    assert _kind(raw, resolver) is ErrorKind.INVALID_EXTENSION

    raw = _raw(domain="example.com", format="jpeg", graph_id="XYZ", revid="x", title="a|b")
    assert _kind(raw, resolver) is ErrorKind.INVALID_FORMAT

    raw = _raw(domain="example.com", graph_id="XYZ", revid="x", title="a|b")
    assert _kind(raw, resolver) is ErrorKind.INVALID_REVISION

    raw = _raw(domain="example.com", graph_id="XYZ", revid="0", title="a|b")
    assert _kind(raw, resolver) is ErrorKind.INVALID_TITLE

    raw = _raw(domain="example.com", graph_id="XYZ")
    assert _kind(raw, resolver) is ErrorKind.INVALID_SPEC_ID


def test_title_is_ignored_when_revision_present(resolver):
    descriptor = validate_graph_request(_raw(title="A|B"), resolver)

    assert descriptor.revision_id == 12


def test_helpers():
    assert split_graph_id("abc.png") == ("abc", "png")
    assert split_graph_id("abc.") == ("abc", None)
    assert split_graph_id("abc") == ("abc", None)
    assert split_graph_id("abc.png.x") == ("abc", "png")
    assert parse_revision(None) is None
    assert parse_revision("0") is None
    assert parse_revision("007") == 7


def test_render_request_accepts_spec_body(resolver):
    raw = RawGraphRequest(domain="en.m.wikipedia.org", format="svg")

    descriptor = validate_render_request(raw, {"marks": []}, resolver)

    assert descriptor.spec == {"marks": []}
    assert descriptor.render_context("https").domain == "en.wikipedia.org"


@pytest.mark.parametrize("body", [None, [], "spec", 3])
def test_render_request_requires_object_body(resolver, body):
    raw = RawGraphRequest(domain="en.wikipedia.org", format="png")

    with pytest.raises(PipelineError) as info:
        validate_render_request(raw, body, resolver)

    assert info.value.kind is ErrorKind.MISSING_SPEC


def test_render_request_validates_optional_title(resolver):
    raw = RawGraphRequest(domain="en.wikipedia.org", format="png", title="A|B")

    with pytest.raises(PipelineError) as info:
        validate_render_request(raw, {}, resolver)

    assert info.value.kind is ErrorKind.INVALID_TITLE


def test_trailing_segments_after_extension_are_ignored(resolver):
    descriptor = validate_graph_request(_raw(graph_id="abc123.png.x"), resolver)

    assert descriptor.spec_id == "abc123"
    assert descriptor.output_format is OutputFormat.PNG
