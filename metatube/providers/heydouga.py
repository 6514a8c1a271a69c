"""HeyDouga movie provider."""

from __future__ import annotations

import json
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any
from urllib.parse import urldefrag, urljoin, urlsplit

import lxml.html
import requests

from metatube.provider import (
    InvalidIDError,
    InvalidURLError,
    MovieInfo,
    ProviderError,
    Scraper,
    parse_date,
    parse_runtime,
    parse_score,
    register_movie_factory,
)

__all__ = ["HeyDouga"]

_FETCH_ERRORS = (ProviderError, requests.RequestException)

_ID = re.compile(r"(?:heydouga[-_])?([0-9]{4}-[a-z0-9]+)", re.I | re.ASCII)
_URL_ID = re.compile(r"/([0-9]+)/([0-9]+)/index\.html", re.ASCII)
_POSTER = re.compile(r"player_poster\s*=\s*'(http.+?)';", re.I)
_HLS_SOURCE = re.compile(r"source\s*=\s*'(.+\.m3.*?)';")
_RATING_URL = re.compile(r'url_get_movie_rating\s*=\s*"(.+?)";')
_PROVIDER_ID = re.compile(r"provider_id\s*=\s*([0-9]+);", re.ASCII)
_MOVIE_SEQ = re.compile(r"data\s*:\s*\{\s*movie_seq\s*:\s*([0-9]+),", re.ASCII)


def _inner_text(node: Any) -> str:
    return str(node) if isinstance(node, str) else node.text_content()


def _child_text(element: Any, xpath: str) -> str:
    found = element.xpath(xpath)
    return _inner_text(found[0]).strip() if found else ""


def _absolute(base: str, url: str) -> str:
    if url.startswith("#"):
        return ""
    return urldefrag(urljoin(base, url))[0]


def _load_json(response: requests.Response) -> dict | None:
    try:
        data = json.loads(response.content)
    except ValueError:
        return None
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


class HeyDouga(Scraper):
    """Scraper for the HeyDouga video site."""

    NAME = "HeyDouga"
    PRIORITY = 1000
    BASE_URL = "https://www.heydouga.com/"
    MOVIE_URL = "https://www.heydouga.com/moviepages/{}/{}/index.html"
    MOVIE_TAG_URL = "https://www.heydouga.com/get_movie_tag_all/"

    def __init__(self):
        super().__init__(self.NAME, self.BASE_URL, self.PRIORITY)

    def normalize_movie_id(self, movie_id: str) -> str:
        m = _ID.fullmatch(movie_id)
        return m[1] if m else ""

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        parts = movie_id.split("-", 1)
        if len(parts) != 2:
            raise InvalidIDError()
        return self.get_movie_info_by_url(self.MOVIE_URL.format(*parts))

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        try:
            path = urlsplit(raw_url).path
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        m = _URL_ID.search(path)
        return f"{m[1]}-{m[2]}" if m else ""

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(
            id=movie_id,
            number=f"HEYDOUGA-{movie_id}",
            provider=self.name,
            homepage=raw_url,
        )

        response = self.fetch(raw_url)
        body = self._decode(response)
        base = response.url or raw_url
        doc = lxml.html.document_fromstring(
            body if body.strip() else "<html></html>", base_url=base
        )

        for h1 in doc.xpath('//*[@id="title-bg"]/h1'):
            title = next(
                (t.strip() for t in h1.xpath("./text()") if str(t).strip()), ""
            )
            info.title = str(title) if title else h1.text_content().strip()

        for node in doc.xpath('//*[@id="movie-detail-mobile"]/div/p[1]'):
            info.summary = node.text_content().strip()

        for script in doc.xpath('//section[@class="movie-player"]//script'):
            if m := _POSTER.search(script.text_content()):
                info.cover_url = _absolute(base, m[1])
                info.thumb_url = info.cover_url

        for item in doc.xpath('//*[@id="movie-info"]/ul/li'):
            self._apply_field(info, item)

        if m := _HLS_SOURCE.search(body):
            info.preview_video_hls_url = _absolute(base, m[1])

        with ThreadPoolExecutor(max_workers=2) as pool:
            jobs = [
                pool.submit(self._load_score, info, body, base),
                pool.submit(self._load_genres, info, body),
            ]
            for job in jobs:
                job.result()

        return info

    @staticmethod
    def _apply_field(info: MovieInfo, item: Any) -> None:
        label = _child_text(item, ".//span[1]")
        value = _child_text(item, ".//span[2]")
        if label == "配信日：":
            info.release_date = parse_date(value)
        elif label == "主演：":
            info.actors = value.split()
        elif label == "提供元：":
            info.maker = _child_text(item, ".//span[2]/a[1]") or value
        elif label == "動画再生時間：":
            info.runtime = parse_runtime(value)

    def _load_score(self, info: MovieInfo, body: str, base: str) -> None:
        m = _RATING_URL.search(body)
        if not m:
            return
        try:
            response = self.fetch(_absolute(base, m[1]))
        except _FETCH_ERRORS:
            return
        data = _load_json(response)
        if data is None:
            return
        average = data.get("movie_rating_average")
        count = data.get("movie_rating_count")
        if not isinstance(average, (str, type(None))) or not isinstance(
            count, (str, type(None))
        ):
            return
        info.score = parse_score(average or "")

    def _load_genres(self, info: MovieInfo, body: str) -> None:
        provider_id = _PROVIDER_ID.search(body)
        movie_seq = _MOVIE_SEQ.search(body)
        if not provider_id or not movie_seq:
            return
        try:
            response = self.fetch(
                self.MOVIE_TAG_URL,
                data={"movie_seq": movie_seq[1], "provider_id": provider_id[1]},
            )
        except _FETCH_ERRORS:
            return
        data = _load_json(response)
        if data is None:
            return
        tags = data.get("tag") or []
        if not isinstance(tags, list):
            return
        names = []
        for tag in tags:
            if tag is None:
                names.append("")
                continue
            if not isinstance(tag, dict):
                return
            name = tag.get("tag_name")
            if name is not None and not isinstance(name, str):
                return
            names.append(name or "")
        info.genres.extend(names)


register_movie_factory(HeyDouga.NAME, HeyDouga)