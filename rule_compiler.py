"""Derivation of network match patterns from active groups."""

from typing import Iterable, Optional
from urllib.parse import urlsplit

from group_store import Group

MATCHED_SCHEMES = frozenset({"http", "https", "ws", "wss"})


def site_patterns(site: str) -> tuple[str, str]:
    """The two patterns for a blocked site: the site itself and any subdomain."""
    return f"*://{site}/*", f"*://*.{site}/*"


def compile_patterns(groups: Iterable[Group]) -> frozenset[str]:
    """
    Build the set of match patterns for all active groups.

    e.g., an active group with "x.com" yields
    {"*://x.com/*", "*://*.x.com/*"}
    """
    patterns: set[str] = set()
    for group in groups:
        if not group.active:
            continue
        for site in group.websites:
            patterns.update(site_patterns(site))
    return frozenset(patterns)


def split_pattern(pattern: str) -> tuple[str, str, str]:
    """
    Split "<scheme>://<host>/<path>" into its three parts.

    Raises:
        ValueError: If the pattern does not have that shape.
    """
    scheme, sep, rest = pattern.partition("://")
    if not sep or not scheme:
        raise ValueError(f"Invalid match pattern: {pattern!r}")
    host, slash, path = rest.partition("/")
    if not slash or not host:
        raise ValueError(f"Invalid match pattern: {pattern!r}")
    return scheme, host.lower(), "/" + path


def _host_matches(pattern_host: str, host: str) -> bool:
    if pattern_host == "*":
        return True
    if pattern_host.startswith("*."):
        base = pattern_host[2:]
        return host == base or host.endswith("." + base)
    return host == pattern_host


def _path_matches(pattern_path: str, path: str) -> bool:
    if pattern_path.endswith("*"):
        return path.startswith(pattern_path[:-1])
    return path == pattern_path


def pattern_matches(pattern: str, url: str) -> bool:
    """Check a URL against a single match pattern."""
    scheme, pattern_host, pattern_path = split_pattern(pattern)
    parts = urlsplit(url)
    host = (parts.hostname or "").rstrip(".")
    if not host:
        return False

    if scheme == "*":
        if parts.scheme not in MATCHED_SCHEMES:
            return False
    elif parts.scheme != scheme:
        return False

    return _host_matches(pattern_host, host) and _path_matches(
        pattern_path, parts.path or "/"
    )


class RuleSet:
    """
    Immutable, indexed form of a pattern set.

    Patterns produced by compile_patterns() cover any scheme and any path,
    so they are reduced to host lookups: exact hosts, and base domains
    whose subdomains also match. Any other pattern is checked in full.
    """

    def __init__(self, patterns: Iterable[str]):
        self.patterns = frozenset(patterns)
        exact: set[str] = set()
        wildcard: set[str] = set()
        general: list[str] = []

        for pattern in self.patterns:
            scheme, host, path = split_pattern(pattern)
            if scheme != "*" or path != "/*" or host == "*":
                general.append(pattern)
            elif host.startswith("*."):
                wildcard.add(host[2:])
            else:
                exact.add(host)

        self._exact = frozenset(exact)
        self._wildcard = frozenset(wildcard)
        self._general = tuple(general)

    def __len__(self) -> int:
        return len(self.patterns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return self.patterns == other.patterns

    def __hash__(self) -> int:
        return hash(self.patterns)

    def matches_host(self, host: str) -> bool:
        """
        Check whether any request to this host is covered.

        Walks up the labels, e.g. "a.b.example.com" -> "b.example.com"
        -> "example.com", against the subdomain set.
        """
        host = host.rstrip(".").lower()
        if not host:
            return False
        if host in self._exact or self._matches_wildcard(host):
            return True
        return any(
            pattern_matches(p, f"http://{host}/") for p in self._general
        )

    def matches_url(self, url: str) -> bool:
        """Check a full URL against the rule set."""
        parts = urlsplit(url)
        host = parts.hostname
        if not host:
            return False
        if parts.scheme in MATCHED_SCHEMES and (
            host.rstrip(".") in self._exact or self._matches_wildcard(host)
        ):
            return True
        return any(pattern_matches(p, url) for p in self._general)

    def _matches_wildcard(self, host: str) -> bool:
        labels = host.rstrip(".").split(".")
        return any(".".join(labels[i:]) in self._wildcard for i in range(len(labels)))


def first_match(patterns: Iterable[str], url: str) -> Optional[str]:
    """Return the first pattern (in sorted order) that matches the URL."""
    for pattern in sorted(patterns):
        if pattern_matches(pattern, url):
            return pattern
    return None
