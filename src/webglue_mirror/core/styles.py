from __future__ import annotations

import re

from webglue_mirror.core.models import TargetURL
from webglue_mirror.core.paths import absolutize

STYLE_URL_RE = re.compile(r"url\((['\"]?)([^'\"()]+?)['\"]?\)")


def has_style_url(css: str | None) -> bool:
    return bool(css) and "url(" in css


def rewrite_style_urls(target: TargetURL, css: str) -> str:
    """Absolutize every ``url(...)`` in a CSS fragment, keeping its quote style."""

    def _replace(m: re.Match[str]) -> str:
        quote = m.group(1)
        return f"url({quote}{absolutize(target, m.group(2))}{quote})"

    return STYLE_URL_RE.sub(_replace, css)
