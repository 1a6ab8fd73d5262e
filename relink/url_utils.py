"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

url_utils.py - Small URL helpers shared by the parser and resolver
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional
from urllib.parse import quote, unquote, urlsplit, urlunsplit


SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")

# RFC 3986 URI-reference characters; anything else makes a URL unparseable
VALID_URI_PATTERN = re.compile(
    r"^(?:[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=]|%[0-9A-Fa-f]{2})*$"
)

# Characters kept as-is when escaping a path (matches the URI "unsafe" set)
PATH_SAFE_CHARS = "/:@!$&'()*+,;=-._~?#[]"


def is_valid_uri(url: str) -> bool:
    return bool(VALID_URI_PATTERN.match(url))


def relative_url(url: str) -> bool:
    """
    True for a parseable URL with no scheme and no host.

    Unparseable strings (spaces, stray '%', '^' ...) are not treated as
    relative, so they are left alone rather than rewritten as file paths.
    """
    if not url or not is_valid_uri(url):
        return False
    if SCHEME_PATTERN.match(url):
        return False
    return not url.startswith("//")


def unescape(value: str) -> str:
    return unquote(value)


def escape_path(value: str) -> str:
    return quote(value, safe=PATH_SAFE_CHARS)


def join_path(base: str, rel_path: str) -> str:
    """Join two path fragments with exactly one slash between them."""
    return f"{base.rstrip('/')}/{rel_path.lstrip('/')}"


def split_keep_leading(value: str, sep: str) -> List[str]:
    """str.split, minus trailing empty pieces ("a.png?" -> ["a.png"])."""
    parts = value.split(sep)
    while len(parts) > 1 and parts[-1] == "":
        parts.pop()
    return parts


def path_components(rel_path: str) -> List[str]:
    return [part for part in rel_path.split("/") if part]


def add_query_param(url: str, name: str, value: str) -> str:
    """
    Set a single query parameter, replacing any existing value.

    The rest of the query string is kept byte-for-byte. URLs that cannot be
    split are returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    pairs = [p for p in parts.query.split("&") if p and p.split("=", 1)[0] != name]
    pairs.append(f"{name}={quote(str(value), safe='')}")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(pairs), parts.fragment))


def strip_host(url: str, hosts: Iterable[str]) -> str:
    """
    Make an absolute URL relative when its host is one of ``hosts``.

    Host entries may carry a port ("example.edu:8080"); only the host part is
    compared. Malformed URLs are returned unchanged.
    """
    allowed = {h.split(":")[0].lower() for h in hosts if h}
    if not allowed:
        return url
    try:
        parts = urlsplit(url)
        host: Optional[str] = parts.hostname
    except ValueError:
        return url
    if host and host.lower() in allowed:
        return urlunsplit(("", "", parts.path, parts.query, parts.fragment))
    return url
