"""Number and image-URL helpers for FANZA product IDs."""

from __future__ import annotations

import posixpath
import re
from urllib.parse import urlsplit

__all__ = ["parse_number", "preview_src", "parse_score_from_url"]

_NUMBER = re.compile(r"([A-Z]+)([0-9]+)")
_SMALL_IMAGE = re.compile(r"(p[a-z]\.)jpg")
_JS_IMAGE = re.compile(r"js-([0-9]+)\.jpg\Z")
_TS_IMAGE = re.compile(r"ts-([0-9]+)\.jpg\Z")
_NUMBERED_IMAGE = re.compile(r"(-[0-9]+\.)jpg\Z")


def parse_number(s: str) -> str:
    """Turn a FANZA-style ID such as '48midv00123' into 'MIDV-123'."""
    m = _NUMBER.search(s.upper())
    if not m:
        return s
    return f"{m[1]}-{int(m[2]):03d}"


def preview_src(s: str) -> str:
    """Rewrite a preview image URL to its largest version."""
    if _SMALL_IMAGE.search(s):
        return _SMALL_IMAGE.sub("pl.jpg", s)
    if "consumer_game" in s:
        return s.replace("js-", "-")
    if _JS_IMAGE.search(s):
        return s.replace("js-", "jp-")
    if _TS_IMAGE.search(s):
        return s.replace("ts-", "tl-")
    if _NUMBERED_IMAGE.search(s):
        return _NUMBERED_IMAGE.sub(r"jp\g<1>jpg", s)
    return s.replace("-", "jp-")


def parse_score_from_url(s: str) -> float:
    """Read a score from a rating image URL such as '.../45.gif'."""
    try:
        path = urlsplit(s).path
    except ValueError:
        return 0.0
    name = posixpath.basename(path) or "."
    dot = name.rfind(".")
    stem = name[:dot] if dot >= 0 else name
    if not re.fullmatch(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)", stem):
        return 0.0
    score = float(stem)
    if score > 5.0:
        score /= 10.0
    return score