from __future__ import annotations

import pytest

from core.domain.errors import ErrorKind, PipelineError
from core.services.domain_resolver import DomainResolver, build_domain_pattern


def test_pattern_escapes_dots():
    pattern = build_domain_pattern(["wikipedia.org"])

    assert pattern.match("en.wikipedia.org")
    assert not pattern.match("en.wikipediaxorg")


def test_language_prefix_is_kept(resolver):
    resolved = resolver.resolve("en.wikipedia.org")

    assert resolved.canonical == "en.wikipedia.org"
    assert resolved.backend == "en.wikipedia.org"
    assert not resolved.rewritten


@pytest.mark.parametrize("host", ["en.m.wikipedia.org", "en.zero.wikipedia.org"])
def test_mobile_marker_is_dropped(resolver, host):
    resolved = resolver.resolve(host)

    assert resolved.requested == host
    assert resolved.canonical == "en.wikipedia.org"
    assert resolved.rewritten


def test_bare_domain_matches(resolver):
    assert resolver.resolve("mediawiki.org").canonical == "mediawiki.org"


def test_alias_maps_to_backend(resolver):
    resolved = resolver.resolve("oldwiki.org")

    assert resolved.canonical == "oldwiki.org"
    assert resolved.backend == "newwiki.org"
    assert resolved.rewritten


@pytest.mark.parametrize("host", ["example.com", "wikipedia.org.evil.com", "", "EN.wikipedia.org"])
def test_unknown_hosts_are_rejected(resolver, host):
    with pytest.raises(PipelineError) as info:
        resolver.resolve(host)

    assert info.value.kind is ErrorKind.INVALID_DOMAIN


def test_alias_keys_alone_are_enough():
    resolver = DomainResolver([], {"a.org": "b.org"})

    assert resolver.resolve("a.org").backend == "b.org"


def test_empty_configuration_is_rejected():
    with pytest.raises(ValueError):
        DomainResolver([], {})


def test_alias_targets_are_allowed_for_spec_urls(resolver):
    assert resolver.is_allowed("newwiki.org")
    assert resolver.is_allowed("upload.wikipedia.org")
    assert not resolver.is_allowed("example.com")
    assert resolver.alias_for("oldwiki.org") == "newwiki.org"
    assert resolver.alias_for("en.wikipedia.org") == "en.wikipedia.org"


@pytest.mark.parametrize("host", ["en.m.wikipedia.org", "de.zero.mediawiki.org", "oldwiki.org"])
def test_resolution_is_idempotent(resolver, host):
    canonical = resolver.resolve(host).canonical

    assert resolver.resolve(canonical).canonical == canonical
