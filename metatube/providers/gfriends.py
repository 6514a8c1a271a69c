"""Actor images from the gfriends image collection."""

from __future__ import annotations

import re
import threading
import time
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit, urlunsplit

import requests

from metatube.provider import (
    ActorInfo,
    ActorSearchResult,
    InfoNotFoundError,
    InvalidURLError,
    register_actor_factory,
)

__all__ = ["GFriends"]

NAME = "GFriends"
PRIORITY = 1000 - 1

GFRIENDS_ID = "gfriends-id"

BASE_URL = "https://github.com/gfriends/gfriends"
CONTENT_URL = "https://raw.githubusercontent.com/gfriends/gfriends/master/Content/{}/{}"
JSON_URL = "https://raw.githubusercontent.com/gfriends/gfriends/master/Filetree.json"

_UPDATE_INTERVAL = 2 * 60 * 60
_TIMEOUT = 60
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _strip_ext(name: str) -> str:
    dot = name.rfind(".")
    if dot < 0 or "/" in name[dot:]:
        return name
    return name[:dot]


def _normalize_url(raw: str) -> str | None:
    """Percent-encode the path of a URL; None if it cannot be parsed."""
    try:
        parts = urlsplit(raw)
    except ValueError:
        return None
    if _BAD_ESCAPE.search(parts.path):
        return None
    path = quote(unquote(parts.path), safe="/$&+,:;=@")
    return urlunsplit(parts._replace(path=path))


class _FileTree:
    """Index of the collection's files, refreshed at most once per interval."""

    def __init__(self, wait: float):
        self._wait = wait
        self._lock = threading.Lock()
        self._last: float | None = None
        self._content: dict[str, dict[str, str]] = {}

    def query(self, name: str) -> tuple[list[str], Exception | None]:
        error = self._refresh()
        images = []
        for category, files in self._content.items():
            for file_name, file_path in files.items():
                if _strip_ext(file_name) != name:
                    continue
                if (url := _normalize_url(CONTENT_URL.format(category, file_path))):
                    images.append(url)
        images.reverse()
        return images, error

    def _refresh(self) -> Exception | None:
        with self._lock:
            now = time.monotonic()
            if self._last is not None and now < self._last + self._wait:
                return None
            try:
                self._update()
                error = None
            except (requests.RequestException, ValueError) as exc:
                error = exc
            self._last = now
            return error

    def _update(self) -> None:
        response = requests.get(JSON_URL, timeout=_TIMEOUT)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("file tree is not an object")
        content = data.get("Content") or {}
        if not isinstance(content, dict):
            raise ValueError("file tree content is not an object")
        self._content = {
            category: {k: v for k, v in files.items() if isinstance(v, str)}
            for category, files in content.items()
            if isinstance(files, dict)
        }


_default_tree = _FileTree(_UPDATE_INTERVAL)


class GFriends:
    """Actor provider backed by the gfriends file tree."""

    NAME = NAME
    PRIORITY = PRIORITY

    def __init__(self):
        self.name = NAME
        self.priority = PRIORITY
        self.url = BASE_URL

    def normalize_actor_id(self, actor_id: str) -> str:
        return actor_id

    def get_actor_info_by_id(self, actor_id: str) -> ActorInfo:
        images, error = _default_tree.query(actor_id)
        if not images:
            if error is not None:
                raise error
            raise InfoNotFoundError()
        return ActorInfo(
            id=actor_id,
            name=actor_id,
            provider=self.name,
            homepage=self._format_url(actor_id),
            aliases=[],
            images=images,
        )

    @staticmethod
    def _format_url(actor_id: str) -> str:
        return f"{BASE_URL}?{urlencode({GFRIENDS_ID: actor_id})}"

    def parse_actor_id_from_url(self, raw_url: str) -> str:
        try:
            query = urlsplit(raw_url).query
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        values = parse_qs(query, keep_blank_values=True).get(GFRIENDS_ID)
        return values[0] if values else ""

    def get_actor_info_by_url(self, raw_url: str) -> ActorInfo:
        return self.get_actor_info_by_id(self.parse_actor_id_from_url(raw_url))

    def search_actor(self, keyword: str) -> list[ActorSearchResult]:
        info = self.get_actor_info_by_id(keyword)
        return [info.to_search_result()] if info.is_valid() else []


register_actor_factory(GFriends.NAME, GFriends)