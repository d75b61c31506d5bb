from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag
from bs4.element import NavigableString, Stylesheet

from webglue_mirror.core.models import AssetKind, AssetReference, TargetURL
from webglue_mirror.core.paths import absolutize
from webglue_mirror.core.styles import has_style_url, rewrite_style_urls

logger = logging.getLogger(__name__)

_ATTRIBUTE_KINDS = (AssetKind.HREF, AssetKind.SRC, AssetKind.SRCSET)


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        # Multi-valued attributes come back as token lists.
        return " ".join(value)
    return value or ""


def locate_assets(soup: BeautifulSoup) -> list[AssetReference]:
    """Find every place in the document that can point at a resource.

    The attribute is not checked against the element it sits on, so an
    ``href`` on a ``div`` is collected just like one on a ``link``.
    """

    refs: list[AssetReference] = []
    for kind in _ATTRIBUTE_KINDS:
        for tag in soup.find_all(attrs={kind.value: True}):
            refs.append(AssetReference(element=tag, kind=kind, raw=_attr(tag, kind.value)))

    for tag in soup.find_all(style=True):
        css = _attr(tag, "style")
        if has_style_url(css):
            refs.append(AssetReference(element=tag, kind=AssetKind.STYLE_ATTR, raw=css))

    for tag in soup.find_all("style"):
        css = tag.get_text()
        if has_style_url(css):
            refs.append(AssetReference(element=tag, kind=AssetKind.STYLE_ELEMENT, raw=css))

    return refs


def rewrite_srcset(target: TargetURL, srcset: str) -> str:
    candidates: list[str] = []
    for candidate in srcset.split(","):
        candidate = candidate.lstrip()
        if not candidate:
            candidates.append(candidate)
            continue
        path, sep, descriptor = candidate.partition(" ")
        candidates.append(absolutize(target, path) + sep + descriptor)
    return ",".join(candidates)


def rewrite_asset(target: TargetURL, ref: AssetReference) -> None:
    tag = ref.element
    if ref.kind in (AssetKind.HREF, AssetKind.SRC):
        tag[ref.kind.value] = absolutize(target, ref.raw)
    elif ref.kind is AssetKind.SRCSET:
        tag["srcset"] = rewrite_srcset(target, ref.raw)
    elif ref.kind is AssetKind.STYLE_ATTR:
        tag["style"] = rewrite_style_urls(target, ref.raw)
    elif ref.kind is AssetKind.STYLE_ELEMENT:
        # Keep the Stylesheet string type so get_text() on the tag still finds it.
        string_cls = type(tag.string) if isinstance(tag.string, NavigableString) else Stylesheet
        tag.string = string_cls(rewrite_style_urls(target, ref.raw))
    else:  # pragma: no cover
        logger.warning("Unknown asset kind: %s", ref.kind)
