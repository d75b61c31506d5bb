from __future__ import annotations

import re

from webglue_mirror.core.models import PathClass, TargetURL

# Unreserved and percent-encoded path characters, plus the sub-delims,
# query and fragment markers that show up in real asset references.
_CHAR = r"[A-Za-z0-9\-%._~()'!*:@,;+&=?#]"
_SEGMENTS = rf"(?:{_CHAR}+/)*{_CHAR}*"

ROOT_PATH_RE = re.compile(rf"^/{_SEGMENTS}$")
CURRENT_PATH_RE = re.compile(rf"^(?![A-Za-z][A-Za-z0-9+.\-]*:)(?!\.\./){_SEGMENTS}$")
PARENT_PATH_RE = re.compile(rf"^\.\./{_SEGMENTS}$")

OPAQUE_PREFIXES = ("data:", "javascript:")


def classify_path(path: str) -> PathClass:
    if path.startswith(OPAQUE_PREFIXES):
        return PathClass.OPAQUE_OR_ABSOLUTE
    if ROOT_PATH_RE.match(path):
        return PathClass.ROOT_RELATIVE
    if CURRENT_PATH_RE.match(path):
        return PathClass.CURRENT_RELATIVE
    if PARENT_PATH_RE.match(path):
        return PathClass.PARENT_RELATIVE
    # Schemes, protocol-relative urls and anything outside the grammar.
    return PathClass.OPAQUE_OR_ABSOLUTE


def absolutize(target: TargetURL, path: str) -> str:
    """Rewrite a resource reference into an absolute https url on the target host.

    root:    /foo/bar    -> https://host/foo/bar
    current: foo/bar     -> https://host/<dir of target>/foo/bar
    parent:  ../foo/bar  -> https://host/<parent dir of target>/foo/bar

    Anything else is returned unchanged.
    """

    kind = classify_path(path)
    if kind is PathClass.ROOT_RELATIVE:
        return f"https://{target.host}{path}"
    if kind is PathClass.CURRENT_RELATIVE:
        base = target.segments[:-1] or [""]
        return f"https://{target.host}" + "/".join(base + path.split("/"))
    if kind is PathClass.PARENT_RELATIVE:
        # Going above the root stays at the root.
        base = target.segments[:-2] or [""]
        return f"https://{target.host}" + "/".join(base + path.split("/")[1:])
    return path
