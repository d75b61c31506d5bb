from __future__ import annotations

import re

from bs4 import BeautifulSoup

PARSER = "lxml"

_INSECURE_RE = re.compile(r"http://")


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, PARSER)


def serialize_document(soup: BeautifulSoup) -> str:
    return str(soup)


def upgrade_insecure_urls(soup: BeautifulSoup) -> BeautifulSoup:
    """Replace every literal ``http://`` in the serialized page with ``https://``.

    This is a plain text substitution, so it also touches visible text,
    comments and scripts. The tree is rebuilt from the substituted markup.
    """

    markup = serialize_document(soup)
    upgraded = _INSECURE_RE.sub("https://", markup)
    if upgraded == markup:
        return soup
    return parse_document(upgraded)
