from __future__ import annotations

import re
from urllib.parse import urlparse, urlunparse

from webglue_mirror.core.models import InvalidTargetURL

ALLOWED_SCHEMES = {"http", "https"}
DEFAULT_SCHEME = "http"

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def uniform_url(url: str) -> str:
    """Canonicalize an absolute http(s) url.

    Lowercases scheme and host, collapses repeated slashes in the path,
    defaults the path to ``/`` and drops the fragment.
    """

    if not url or re.search(r"\s", url):
        raise InvalidTargetURL(f"Invalid target url: {url!r}")
    try:
        parsed = urlparse(url)
        # .port raises ValueError on a malformed port.
        hostname, _port = parsed.hostname, parsed.port
    except ValueError as e:
        raise InvalidTargetURL(f"Invalid target url: {url!r}") from e
    scheme = (parsed.scheme or "").lower()
    if scheme not in ALLOWED_SCHEMES or not hostname:
        raise InvalidTargetURL(f"Invalid target url: {url!r}")
    netloc = parsed.netloc.lower()
    path = re.sub(r"//+", "/", parsed.path) or "/"
    return urlunparse((scheme, netloc, path, parsed.params, parsed.query, ""))


def resolve_target_url(url_param: str | None, raw_query: str = "") -> str:
    """Build the canonical target url from the inbound ``url`` parameter.

    An unencoded target such as ``?url=http://a.com/p?x=1&y=2`` is split by
    the query parser into ``url`` and ``y``; the target's own query is
    recovered from the raw query string in that case.
    """

    url = (url_param or "").strip()
    if not url:
        raise InvalidTargetURL("`url` must be a url.")
    if not _SCHEME_RE.match(url):
        url = f"{DEFAULT_SCHEME}://{url}"
    url = uniform_url(url)

    if raw_query.startswith("url="):
        _, sep, own_query = raw_query[len("url="):].partition("?")
        if sep:
            base = url.split("?", 1)[0]
            url = f"{base}?{own_query}" if own_query else base
    return url
