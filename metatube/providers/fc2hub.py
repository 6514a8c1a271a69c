"""fc2hub movie provider."""

from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import quote, quote_plus, urldefrag, urljoin, urlsplit

from metatube.provider import (
    InvalidIDError,
    InvalidURLError,
    MovieInfo,
    MovieSearchResult,
    Scraper,
    parse_date,
    parse_runtime,
    register_movie_factory,
)
from metatube.providers.fc2 import parse_number

__all__ = ["FC2Hub"]

_VIDEO_PATH = re.compile(r"/video/([0-9]+)/id([0-9]+)")
_VIDEO_LINK = re.compile(r"/video/[0-9]+/id[0-9]+")

_CONTENT = '//*[@id="content"]/div/div[2]/div[1]'
_TITLE = _CONTENT + "/div[1]/div[2]/h1"
_SUMMARY = _CONTENT + "/div[1]/div[2]/div[2]/div"
_NUMBER = _CONTENT + "/div[1]/div[2]/div[1]/div[2]/h1"
_GENRES = _CONTENT + "/div[1]/div[2]/p/a"
_MAKER = _CONTENT + "/div[3]/div/div[2]/div/div[2]"
_PREVIEWS = _CONTENT + '/div[2]/div[3]/div/div//a[@data-fancybox="gallery"]'

# Characters that a URL path segment keeps unescaped.
_PATH_SAFE = "$&+,;=:@"


def _absolute(base: str, url: str) -> str:
    if url.startswith("#"):
        return ""
    return urldefrag(urljoin(base, url))[0]


def _remove_empty(items: list[str]) -> list[str]:
    return [item for item in items if item.strip()]


def _json_field(data: dict, key: str, kind: type, default: Any) -> Any:
    """Read one JSON value; null or absent gives the default, a wrong type raises."""
    value = data.get(key)
    if value is None:
        return default
    if kind is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(key)
        return float(value)
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(key)
        return value
    if not isinstance(value, kind):
        raise TypeError(key)
    return value


def _string_list(data: dict, key: str) -> list[str]:
    values = []
    for value in _json_field(data, key, list, []):
        if value is not None and not isinstance(value, str):
            raise TypeError(key)
        values.append(value or "")
    return values


def _rating(data: dict) -> float:
    rating = data.get("aggregateRating")
    if rating is None:
        rating = next(
            (v for k, v in data.items() if k.lower() == "aggregaterating"), None
        )
    if rating is None:
        return 0.0
    if not isinstance(rating, dict):
        raise TypeError("aggregateRating")
    _json_field(rating, "bestRating", float, 0.0)
    _json_field(rating, "worstRating", float, 0.0)
    _json_field(rating, "ratingCount", int, 0)
    return _json_field(rating, "ratingValue", float, 0.0)


class FC2Hub(Scraper):
    """Scraper for fc2hub, whose IDs join the site ID and the FC2 number."""

    NAME = "fc2hub"
    PRIORITY = 1000 - 1
    BASE_URL = "https://fc2hub.com/"
    MOVIE_URL = "https://fc2hub.com/video/{}/id{}/{}"
    SEARCH_URL = "https://fc2hub.com/search?kw={}"

    def __init__(self):
        super().__init__(self.NAME, self.BASE_URL, self.PRIORITY)

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        parts = movie_id.split("-", 1)
        if len(parts) != 2:
            raise InvalidIDError()
        # A padded trailing segment keeps the path in the form the site expects.
        return self.get_movie_info_by_url(self.MOVIE_URL.format(parts[0], parts[1], "%20"))

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        try:
            path = urlsplit(raw_url).path
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        m = _VIDEO_PATH.search(path)
        if not m:
            raise InvalidURLError()
        return f"{m[1]}-{m[2]}"

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(id=movie_id, provider=self.name, homepage=raw_url)

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for node in doc.xpath(_TITLE):
            info.title = node.text_content().strip()

        for node in doc.xpath(_SUMMARY):
            info.summary = node.text_content().strip()

        for node in doc.xpath(_NUMBER):
            if number := parse_number(node.text_content().strip()):
                info.number = f"FC2-{number}"

        for node in doc.xpath(_GENRES):
            if genre := node.text_content().strip():
                info.genres.append(genre)

        for node in doc.xpath(_MAKER):
            texts = node.xpath("./text()")
            if texts:
                info.maker = str(texts[0]).strip()

        for node in doc.xpath(_PREVIEWS):
            if href := node.get("href", ""):
                info.preview_images.append(_absolute(base, href))

        for script in doc.xpath('/html/head/script[@type="application/ld+json"]'):
            self._apply_ld_json(info, script.text_content())

        if not info.cover_url and info.preview_images:
            info.cover_url = info.preview_images[0]
        info.thumb_url = info.cover_url

        if info.id and len(info.number) > 4 and info.title:
            info.homepage = self.MOVIE_URL.format(
                info.id.split("-", 1)[0],
                info.number[4:],
                quote(info.title, safe=_PATH_SAFE),
            )

        return info

    @staticmethod
    def _apply_ld_json(info: MovieInfo, text: str) -> None:
        try:
            data = json.loads(text)
        except ValueError:
            return
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return
        try:
            kind = _json_field(data, "@type", str, "")
            name = _json_field(data, "name", str, "")
            description = _json_field(data, "description", str, "")
            image = _json_field(data, "image", str, "")
            identifiers = _string_list(data, "identifier")
            published = _json_field(data, "datePublished", str, "")
            duration = _json_field(data, "duration", str, "")
            actors = _string_list(data, "actor")
            genres = _string_list(data, "genre")
            director = _json_field(data, "director", str, "")
            rating = _rating(data)
            _json_field(data, "url", str, "")
        except TypeError:
            return

        if kind == "Movie":
            if name:
                info.title = name
            if not info.summary:
                info.summary = description
            if director:
                info.maker = director
            if not info.genres:
                info.genres = _remove_empty(genres)
            if actors:
                info.actors = _remove_empty(actors)
            for identifier in identifiers:
                if number := parse_number(identifier):
                    info.number = f"FC2-{number}"
                    break
            info.cover_url = image
            info.release_date = parse_date(published)
            info.runtime = parse_runtime(duration)
        elif kind == "CreativeWorkSeries":
            info.score = rating

    def normalize_movie_keyword(self, keyword: str) -> str:
        return parse_number(keyword)

    def search_movie(self, keyword: str) -> list[MovieSearchResult]:
        url = self.SEARCH_URL.format(quote_plus(keyword))
        response = self.fetch(url, allow_redirects=False)
        location = _absolute(response.url or url, response.headers.get("Location", ""))
        if not _VIDEO_LINK.search(urlsplit(location).path):
            return []
        return [self.get_movie_info_by_url(location).to_search_result()]


register_movie_factory(FC2Hub.NAME, FC2Hub)