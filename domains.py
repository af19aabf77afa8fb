"""Parsing of user-entered URLs into canonical base domains."""

import re
from urllib.parse import urlsplit

DEFAULT_SCHEME = "http"

DOMAIN_PATTERN = re.compile(r"^([a-zA-Z0-9_-]+\.)+[a-zA-Z]{2,11}$")


def hostname(raw: str) -> str:
    """
    Extract the lower-cased hostname from a URL or bare domain.

    A scheme is assumed when the input has none, so "example.com/path"
    and "https://example.com/path" both yield "example.com".

    Raises:
        ValueError: If the input cannot be parsed or has no hostname.
    """
    raw = raw.strip()
    url = raw if "://" in raw else f"{DEFAULT_SCHEME}://{raw}"
    parts = urlsplit(url)
    # Accessing .port validates it and raises ValueError when malformed
    parts.port
    host = parts.hostname
    if not host:
        raise ValueError(f"No hostname in {raw!r}")
    return host


def validate(raw: str) -> bool:
    """Check that the input names a syntactically valid domain."""
    try:
        host = hostname(raw)
    except (ValueError, AttributeError, TypeError):
        return False
    return DOMAIN_PATTERN.match(host) is not None


def normalize(raw: str) -> str:
    """
    Reduce a URL to its base domain: the last two labels of the hostname.

    e.g., "https://sub.example.com/path" -> "example.com"

    Multi-part public suffixes are not special-cased, so
    "www.example.co.uk" yields "co.uk".
    """
    labels = hostname(raw).split(".")
    return ".".join(labels[-2:])
