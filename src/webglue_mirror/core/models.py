from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from bs4 import Tag


class MirrorError(RuntimeError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidTargetURL(MirrorError):
    pass


class FetchError(MirrorError):
    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url


class DecodeError(MirrorError):
    pass


@dataclass(frozen=True)
class TargetURL:
    """Absolute URL of the page being mirrored.

    `host` keeps an explicit port (``example.com:8080``) but never userinfo.
    """

    href: str
    scheme: str
    host: str
    path: str
    query: str
    fragment: str

    @classmethod
    def parse(cls, url: str) -> TargetURL:
        p = urlparse(url)
        host = (p.netloc or "").rpartition("@")[2]
        if not p.scheme or not host:
            raise InvalidTargetURL(f"Not an absolute url: {url!r}")
        return cls(
            href=url,
            scheme=p.scheme,
            host=host,
            path=p.path or "/",
            query=p.query,
            fragment=p.fragment,
        )

    @property
    def segments(self) -> list[str]:
        return self.path.split("/")


class PathClass(Enum):
    ROOT_RELATIVE = "root"
    CURRENT_RELATIVE = "current"
    PARENT_RELATIVE = "parent"
    OPAQUE_OR_ABSOLUTE = "opaque"


class AssetKind(Enum):
    HREF = "href"
    SRC = "src"
    SRCSET = "srcset"
    STYLE_ATTR = "style"
    STYLE_ELEMENT = "style-element"


@dataclass(frozen=True)
class AssetReference:
    element: Tag
    kind: AssetKind
    raw: str
