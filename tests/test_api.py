from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from conftest import EchoRenderer, FakeContentApi, page_payload


@pytest.fixture
def api() -> FakeContentApi:
    return FakeContentApi(page_payload({"abc123": {"marker": "page"}}))


@pytest.fixture
def renderer() -> EchoRenderer:
    return EchoRenderer()


@pytest.fixture
def client(settings, make_pipeline, api, renderer) -> TestClient:
    return TestClient(create_app(settings, pipeline=make_pipeline(api, renderer)))


def test_stored_graph_round_trip(client, api):
    response = client.get("/en.wikipedia.org/SomePage/12345/abc123.png")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "public, s-maxage=30, max-age=30"
    assert response.content == b"png:page"
    assert api.params[0]["revids"] == "12345"


def test_title_with_slashes(client, api):
    response = client.get("/en.wikipedia.org/Extension:Graph/Demo/0/abc123.svg")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert api.params[0]["titles"] == "Extension:Graph/Demo"


def test_v1_route_with_explicit_format(client, api):
    response = client.get("/en.wikipedia.org/v1/svg/SomePage/0/abc123")

    assert response.status_code == 200
    assert response.content == b"svg:page"
    assert api.params[0]["titles"] == "SomePage"


@pytest.mark.parametrize(
    ("path", "kind"),
    [
        ("/example.com/SomePage/1/abc123.png", "InvalidDomain"),
        ("/en.wikipedia.org/SomePage/1/abc123.gif", "InvalidFormat"),
        ("/en.wikipedia.org/v1/png/SomePage/1/abc123.svg", "InvalidExtension"),
        ("/en.wikipedia.org/v1/png/A|B/0/abc123", "InvalidTitle"),
        ("/en.wikipedia.org/SomePage/x1/abc123.png", "InvalidRevision"),
        ("/en.wikipedia.org/SomePage/1/XYZ.png", "InvalidSpecId"),
    ],
)
def test_validation_failures(client, api, path, kind):
    response = client.get(path)

    assert response.status_code == 400
    assert response.headers["content-type"] == "application/json"
    assert response.headers["cache-control"] == "public, s-maxage=30, max-age=30"
    assert response.json() == kind
    assert api.requests == []


def test_posted_spec(client, api, renderer):
    response = client.post("/en.wikipedia.org/v2/png/SomePage/42", json={"marker": "body"})

    assert response.status_code == 200
    assert response.content == b"png:body"
    assert api.requests == []
    assert renderer.calls[0][0] == {"marker": "body"}


def test_posted_without_json_body(client):
    response = client.post("/en.wikipedia.org/v2/svg", content=b"not json")

    assert response.status_code == 400
    assert response.json() == "MissingSpec"


def test_robots_and_health(client):
    robots = client.get("/robots.txt")
    assert robots.status_code == 200
    assert "Disallow: /" in robots.text

    assert client.get("/_health").json() == {"status": "ok"}
