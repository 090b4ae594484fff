"""Set-Cookie parsing for execution results."""

from typing import Iterable, List

from .models import Cookie


def parse_set_cookie(header: str) -> Cookie:
    """
    Parse one Set-Cookie header value.

    The first `name=value` pair is the cookie, everything after the first `;`
    is an attribute. Attributes without a value (HttpOnly, Secure) map to "".
    """
    first, *rest = header.split(";")
    name, _, value = first.strip().partition("=")

    attributes = {}
    for part in rest:
        part = part.strip()
        if not part:
            continue
        attr_name, _, attr_value = part.partition("=")
        attributes[attr_name.strip()] = attr_value.strip()

    return Cookie(name=name.strip(), value=value.strip(), attributes=attributes)


def extract_cookies(set_cookie_headers: Iterable[str]) -> List[Cookie]:
    """One Cookie per Set-Cookie header occurrence, in response order."""
    return [parse_set_cookie(h) for h in set_cookie_headers if h.strip()]
