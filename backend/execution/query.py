"""
Query string edits that leave untouched parameters byte-for-byte as they were.

The helpers work on the raw `&`-separated segments: `flag` stays `flag` and
`%20` stays `%20`.
"""

from typing import Iterable, List, Tuple
from urllib.parse import quote, unquote_plus, urlsplit, urlunsplit


def encode_pair(name: str, value: str) -> str:
    return f"{quote(str(name), safe='')}={quote(str(value), safe='')}"


def _segments(query: str) -> List[str]:
    return [segment for segment in query.split("&") if segment]


def segment_name(segment: str) -> str:
    """Decoded parameter name of one raw `name=value` segment."""
    return unquote_plus(segment.partition("=")[0])


def append_query_params(url: str, params: Iterable[Tuple[str, str]]) -> str:
    """Append encoded `name=value` pairs after the existing query."""
    added = [encode_pair(name, value) for name, value in params]
    if not added:
        return url
    parts = urlsplit(url)
    query = "&".join(_segments(parts.query) + added)
    return urlunsplit(parts._replace(query=query))


def set_query_param(url: str, name: str, value: str) -> str:
    """Set `name=value`, dropping only the existing segments named `name`."""
    parts = urlsplit(url)
    kept = [segment for segment in _segments(parts.query) if segment_name(segment) != name]
    query = "&".join(kept + [encode_pair(name, value)])
    return urlunsplit(parts._replace(query=query))
