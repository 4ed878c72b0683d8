"""Domain allow-listing and alias rewriting.

A resolver is built once at startup from the configured allow-list and alias
map and is shared, read-only, by every request afterwards.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from core.config import AppSettings
from core.domain.errors import ErrorKind, PipelineError
from core.domain.models import ResolvedDomain


def build_domain_pattern(domains: Iterable[str]) -> re.Pattern[str]:
    """Compile `^([-a-z0-9]+\\.)?(m\\.|zero\\.)?(d1|d2|...)$`.

    Group 1 keeps an arbitrary language prefix (`en.`), group 2 is the
    mobile/zero-rated marker, group 3 the allow-listed base domain.
    """

    alternatives = "|".join(re.escape(d) for d in domains)
    return re.compile(r"^([-a-z0-9]+\.)?(m\.|zero\.)?(" + alternatives + r")$")


class DomainResolver:
    """Validates host strings and maps them to the domain used upstream."""

    def __init__(self, domains: Iterable[str], domain_map: Mapping[str, str] | None = None) -> None:
        self._domains = tuple(d for d in domains if d)
        self._domain_map: Mapping[str, str] = MappingProxyType(dict(domain_map or {}))

        valid = list(self._domains) + [d for d in self._domain_map if d not in self._domains]
        if not valid:
            raise ValueError('Config must have non-empty "domains" (list) and/or "domain_map" (dict)')
        self._pattern = build_domain_pattern(valid)
        self._alias_targets = frozenset(self._domain_map.values())

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "DomainResolver":
        return cls(settings.domains, settings.domain_map)

    @property
    def pattern(self) -> re.Pattern[str]:
        return self._pattern

    @property
    def domain_map(self) -> Mapping[str, str]:
        return self._domain_map

    @property
    def hosts(self) -> tuple[str, ...]:
        """Plain allow-listed domains plus alias targets (no alias sources)."""

        targets = [t for t in sorted(self._alias_targets) if t not in self._domains]
        return (*self._domains, *targets)

    def resolve(self, host: str) -> ResolvedDomain:
        """Return the canonical and backend domain for `host`.

        The mobile/zero marker is always dropped so that `en.m.wikipedia.org`
        and `en.wikipedia.org` share a cache key.
        """

        match = self._pattern.match(host or "")
        if match is None:
            raise PipelineError(ErrorKind.INVALID_DOMAIN, domain=host)

        prefix, _marker, base = match.groups()
        canonical = (prefix or "") + base
        return ResolvedDomain(
            requested=host,
            canonical=canonical,
            backend=self._domain_map.get(canonical, canonical),
        )

    def is_allowed(self, host: str) -> bool:
        """True for allow-listed hosts and for alias targets."""

        if not host:
            return False
        return host in self._alias_targets or self._pattern.match(host) is not None

    def alias_for(self, host: str) -> str:
        return self._domain_map.get(host, host)
