"""Shared provider infrastructure: errors, data models, HTTP scraping,
text parsing helpers and the provider factory registry."""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from http import HTTPStatus
from typing import Any
from urllib.parse import urlsplit

import lxml.html
import requests

__all__ = [
    "ProviderError",
    "InvalidIDError",
    "InvalidURLError",
    "InvalidKeywordError",
    "InfoNotFoundError",
    "ImageNotFoundError",
    "ProviderNotFoundError",
    "IncompleteMetadataError",
    "MovieInfo",
    "MovieSearchResult",
    "MovieReviewDetail",
    "ActorInfo",
    "ActorSearchResult",
    "Scraper",
    "register_movie_factory",
    "iter_movie_factories",
    "register_actor_factory",
    "iter_actor_factories",
    "parse_date",
    "parse_runtime",
    "parse_score",
    "parse_texts",
    "parse_id_to_number",
]


# ---------------------------------------------------------------- errors


class ProviderError(Exception):
    """Base error of all providers, carrying an HTTP-style status code."""

    default_status: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "provider error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message if message is not None else self.default_message
        self.status_code = int(
            status_code if status_code is not None else self.default_status
        )
        super().__init__(self.message)


class InvalidIDError(ProviderError):
    default_status = HTTPStatus.BAD_REQUEST
    default_message = "invalid id"


class InvalidURLError(ProviderError):
    default_status = HTTPStatus.BAD_REQUEST
    default_message = "invalid url"


class InvalidKeywordError(ProviderError):
    default_status = HTTPStatus.BAD_REQUEST
    default_message = "invalid keyword"


class InfoNotFoundError(ProviderError):
    default_status = HTTPStatus.NOT_FOUND
    default_message = "info not found"


class ImageNotFoundError(ProviderError):
    default_status = HTTPStatus.NOT_FOUND
    default_message = "image not found"


class ProviderNotFoundError(ProviderError):
    default_status = HTTPStatus.NOT_FOUND
    default_message = "provider not found"


class IncompleteMetadataError(ProviderError):
    default_status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "incomplete metadata"


# ---------------------------------------------------------------- models


@dataclass
class MovieSearchResult:
    """A short movie entry as returned by a search."""

    id: str = ""
    number: str = ""
    title: str = ""
    provider: str = ""
    homepage: str = ""
    thumb_url: str = ""
    cover_url: str = ""
    actors: list[str] = field(default_factory=list)
    score: float = 0.0
    release_date: date | None = None

    def is_valid(self) -> bool:
        return all((self.id, self.number, self.title, self.provider, self.homepage))


@dataclass
class MovieInfo:
    """Full metadata of one movie."""

    id: str = ""
    number: str = ""
    title: str = ""
    summary: str = ""
    provider: str = ""
    homepage: str = ""
    director: str = ""
    actors: list[str] = field(default_factory=list)
    thumb_url: str = ""
    big_thumb_url: str = ""
    cover_url: str = ""
    big_cover_url: str = ""
    preview_video_url: str = ""
    preview_video_hls_url: str = ""
    preview_images: list[str] = field(default_factory=list)
    maker: str = ""
    label: str = ""
    series: str = ""
    genres: list[str] = field(default_factory=list)
    score: float = 0.0
    runtime: int = 0
    release_date: date | None = None

    def is_valid(self) -> bool:
        return all(
            (
                self.id,
                self.number,
                self.title,
                self.cover_url,
                self.provider,
                self.homepage,
            )
        )

    def to_search_result(self) -> MovieSearchResult:
        return MovieSearchResult(
            id=self.id,
            number=self.number,
            title=self.title,
            provider=self.provider,
            homepage=self.homepage,
            thumb_url=self.thumb_url,
            cover_url=self.cover_url,
            actors=list(self.actors),
            score=self.score,
            release_date=self.release_date,
        )


@dataclass
class MovieReviewDetail:
    """One user review of a movie."""

    title: str = ""
    author: str = ""
    comment: str = ""
    score: float = 0.0
    date: date | None = None

    def is_valid(self) -> bool:
        return bool(self.author and self.comment)


@dataclass
class ActorSearchResult:
    """A short actor entry as returned by a search."""

    id: str = ""
    name: str = ""
    provider: str = ""
    homepage: str = ""
    aliases: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def is_valid(self) -> bool:
        return all((self.id, self.name, self.provider, self.homepage))


@dataclass
class ActorInfo:
    """Full metadata of one actor."""

    id: str = ""
    name: str = ""
    provider: str = ""
    homepage: str = ""
    summary: str = ""
    hobby: str = ""
    skill: str = ""
    blood_type: str = ""
    cup_size: str = ""
    measurements: str = ""
    nationality: str = ""
    height: int = 0
    aliases: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    birthday: date | None = None
    debut_date: date | None = None

    def is_valid(self) -> bool:
        return all((self.id, self.name, self.provider, self.homepage))

    def to_search_result(self) -> ActorSearchResult:
        return ActorSearchResult(
            id=self.id,
            name=self.name,
            provider=self.provider,
            homepage=self.homepage,
            aliases=list(self.aliases),
            images=list(self.images),
        )


# ---------------------------------------------------------------- scraping

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 60.0

_HEADER_CHARSET = re.compile(r"charset\s*=\s*[\"']?([\w.:-]+)", re.I)
_META_CHARSET = re.compile(rb"<meta[^>]+charset\s*=\s*[\"']?([\w.:-]+)", re.I)


class Scraper:
    """An HTTP client bound to one provider site."""

    def __init__(
        self,
        name: str,
        base_url: str,
        priority: int,
        *,
        headers: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        detect_charset: bool = False,
    ):
        self.name = name
        self.base_url = base_url
        self.priority = priority
        self.detect_charset = detect_charset
        self.session = requests.Session()
        self.session.headers["User-Agent"] = DEFAULT_USER_AGENT
        if headers:
            self.session.headers.update(headers)
        domain = urlsplit(base_url).hostname or ""
        for key, value in (cookies or {}).items():
            self.session.cookies.set(key, value, domain=domain, path="/")

    def fetch(
        self,
        url: str,
        *,
        data: Mapping[str, str] | None = None,
        allow_redirects: bool = True,
    ) -> requests.Response:
        """GET the URL, or POST the form data when given.

        With redirects followed, an error status raises ProviderError; with
        redirects disabled the response is returned whatever its status.
        """
        if data is None:
            response = self.session.get(
                url, timeout=DEFAULT_TIMEOUT, allow_redirects=allow_redirects
            )
        else:
            response = self.session.post(
                url, data=data, timeout=DEFAULT_TIMEOUT, allow_redirects=allow_redirects
            )
        if allow_redirects and response.status_code >= 400:
            raise ProviderError(
                f"http status {response.status_code}: {url}", response.status_code
            )
        return response

    def fetch_html(self, url: str) -> lxml.html.HtmlElement:
        """Fetch a page and parse it; the document's base_url is the final URL."""
        response = self.fetch(url)
        text = self._decode(response)
        if not text.strip():
            text = "<html></html>"
        return lxml.html.document_fromstring(text, base_url=response.url)

    def _decode(self, response: requests.Response) -> str:
        content = response.content
        encoding = None
        match = _HEADER_CHARSET.search(response.headers.get("Content-Type", ""))
        if match:
            encoding = match.group(1)
        elif self.detect_charset:
            meta = _META_CHARSET.search(content[:4096])
            if meta:
                encoding = meta.group(1).decode("ascii", "replace")
            else:
                encoding = response.apparent_encoding
        try:
            return content.decode(encoding or "utf-8", errors="replace")
        except LookupError:
            return content.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"


# ---------------------------------------------------------------- factories

MovieFactory = Callable[[], Any]
ActorFactory = Callable[[], Any]

_movie_lock = threading.RLock()
_actor_lock = threading.RLock()
_movie_factories: dict[str, MovieFactory] = {}
_actor_factories: dict[str, ActorFactory] = {}


def register_movie_factory(name: str, factory: MovieFactory) -> None:
    with _movie_lock:
        _movie_factories[name] = factory


def iter_movie_factories() -> Iterator[tuple[str, MovieFactory]]:
    with _movie_lock:
        items = list(_movie_factories.items())
    yield from items


def register_actor_factory(name: str, factory: ActorFactory) -> None:
    with _actor_lock:
        _actor_factories[name] = factory


def iter_actor_factories() -> Iterator[tuple[str, ActorFactory]]:
    with _actor_lock:
        items = list(_actor_factories.items())
    yield from items


# ---------------------------------------------------------------- parsers

_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_YMD = re.compile(r"(\d{4})\s*[-/.年]\s*(\d{1,2})\s*[-/.月]\s*(\d{1,2})")
_MDY = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_NAMED = re.compile(r"([A-Za-z]{3})[A-Za-z]*\.?\s+(\d{1,2}),?\s+(\d{4})")


def parse_date(text: str | None) -> date | None:
    """Parse a date in one of the common site formats; None when there is none."""
    text = (text or "").strip()
    if not text:
        return None
    candidates = []
    if m := _YMD.search(text):
        candidates.append((int(m[1]), int(m[2]), int(m[3])))
    if m := _MDY.search(text):
        candidates.append((int(m[3]), int(m[1]), int(m[2])))
    if (m := _NAMED.search(text)) and m[1].lower() in _MONTHS:
        candidates.append((int(m[3]), _MONTHS[m[1].lower()], int(m[2])))
    for year, month, day in candidates:
        try:
            return date(year, month, day)
        except ValueError:
            continue
    return None


_ISO_DURATION = re.compile(
    r"P(?:\d+D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?", re.I
)
_HMS = re.compile(r"(\d+):(\d{1,2}):(\d{1,2})")
_MS = re.compile(r"(\d+):(\d{1,2})")
_JP_HOURS = re.compile(r"(\d+)\s*時間(?:\s*(\d+)\s*分)?")


def parse_runtime(text: str | None) -> int:
    """Parse a running time into whole minutes; 0 when there is none."""
    text = (text or "").strip()
    if not text:
        return 0
    m = _ISO_DURATION.fullmatch(text)
    if m and any(m.groups()):
        hours = int(m[1] or 0)
        minutes = int(m[2] or 0)
        seconds = float(m[3] or 0)
        return hours * 60 + minutes + int(seconds // 60)
    if m := _HMS.search(text):
        return int(m[1]) * 60 + int(m[2])
    if m := _MS.search(text):
        return int(m[1])
    if m := _JP_HOURS.search(text):
        return int(m[1]) * 60 + int(m[2] or 0)
    if m := re.search(r"\d+", text):
        return int(m[0])
    return 0


_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def parse_score(text: str | None) -> float:
    """Parse the first number in the text as a score; 0.0 when there is none."""
    m = _NUMBER.search((text or "").strip())
    return float(m[0]) if m else 0.0


def parse_texts(node: Any) -> list[str]:
    """Return every non-blank text node below the element, stripped."""
    if node is None:
        return []
    texts = (str(t).strip() for t in node.xpath(".//text()"))
    return [t for t in texts if t]


_ID_NUMBER = re.compile(r"([a-z]+)[-_]?(\d+)", re.I | re.ASCII)


def parse_id_to_number(movie_id: str) -> str:
    """Turn a site ID such as 'abc123' into a number such as 'ABC-123'."""
    m = _ID_NUMBER.search(movie_id)
    if not m:
        return movie_id.upper()
    return f"{m[1].upper()}-{m[2]}"