"""DUGA movie provider."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any
from urllib.parse import urldefrag, urljoin, urlsplit

import requests

from metatube.provider import (
    InvalidURLError,
    MovieInfo,
    MovieSearchResult,
    ProviderError,
    Scraper,
    parse_date,
    parse_runtime,
    parse_score,
    register_movie_factory,
)

__all__ = ["Duga"]

_FETCH_ERRORS = (ProviderError, requests.RequestException)

# How many search hits are looked up in detail.
_SEARCH_LIMIT = 3


def _inner_text(node: Any) -> str:
    return str(node) if isinstance(node, str) else node.text_content()


def _child_text(element: Any, xpath: str) -> str:
    found = element.xpath(xpath)
    return _inner_text(found[0]).strip() if found else ""


def _child_attr(element: Any, xpath: str, name: str) -> str:
    for node in element.xpath(xpath):
        if not isinstance(node, str):
            return node.get(name, "").strip()
    return ""


def _absolute(base: str, url: str) -> str:
    if url.startswith("#"):
        return ""
    return urldefrag(urljoin(base, url))[0]


def _path_base(path: str) -> str:
    if not path:
        return "."
    path = path.rstrip("/")
    if not path:
        return "/"
    return path[path.rfind("/") + 1 :]


class Duga(Scraper):
    """Scraper for the DUGA store."""

    NAME = "DUGA"
    PRIORITY = 1000 - 2
    BASE_URL = "https://duga.jp/"
    MOVIE_URL = "https://duga.jp/ppv/{}/"
    SEARCH_URL = "https://duga.jp/search/=/q={}/"

    def __init__(self):
        super().__init__(self.NAME, self.BASE_URL, self.PRIORITY)

    def normalize_movie_id(self, movie_id: str) -> str:
        return movie_id.lower()

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        return self.get_movie_info_by_url(self.MOVIE_URL.format(movie_id))

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        try:
            path = urlsplit(raw_url).path
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        return self.normalize_movie_id(_path_base(path))

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(id=movie_id, provider=self.name, homepage=raw_url)

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for node in doc.xpath('//*[@id="contentsname"]'):
            info.title = node.text_content()

        for script in doc.xpath('//script[@type="application/ld+json"]'):
            self._apply_ld_json(info, script.text_content())

        for img in doc.xpath('//div[@class="imagebox"]//img[@id="productjpg"]'):
            info.thumb_url = _absolute(base, img.get("src", "").strip())

        for link in doc.xpath('//div[@class="imagebox"]/a'):
            info.cover_url = _absolute(base, link.get("href", "").strip())

        for row in doc.xpath('//div[@class="summaryinner"]//table//tr'):
            self._apply_field(info, row)

        for link in doc.xpath('//ul[@class="director"]//li//a'):
            if not info.director:
                info.director = link.text_content()

        for link in doc.xpath('//ul[@class="performer"]//li//a'):
            info.actors.append(link.text_content())

        for link in doc.xpath('//ul[@class="categorylist"]//li//a'):
            info.genres.append(link.text_content())

        for meta in doc.xpath('//meta[@property="og:title"]'):
            if not info.title:
                info.title = meta.get("content", "")

        for meta in doc.xpath('//meta[@property="og:description"]'):
            if not info.summary:
                info.summary = meta.get("content", "")

        for meta in doc.xpath('//meta[@property="og:image"]'):
            if not info.thumb_url:
                info.thumb_url = _absolute(base, meta.get("content", "").strip())

        for node in doc.xpath(
            '//div[@class="summaryinner"]//div[@class="ratingstar-total"]'
        ):
            info.score = parse_score(_child_attr(node, ".//img", "alt"))

        for row in doc.xpath('//div[@class="downloadbox"]//table//tr'):
            if info.runtime > 0:
                break
            if _child_text(row, ".//th") == "再生時間":
                info.runtime = parse_runtime(_child_text(row, ".//td"))

        for video in doc.xpath('//video[@class="play-video"]'):
            info.preview_video_url = _absolute(base, video.get("src", "").strip())

        for item in doc.xpath('//*[@id="digestthumbbox"]/li'):
            info.preview_images.append(
                _absolute(base, _child_attr(item, ".//a", "href"))
            )

        if not info.cover_url:
            info.cover_url = info.thumb_url
        if not info.id:
            info.id = movie_id
        if not info.number:
            info.number = info.id.upper()

        return info

    @staticmethod
    def _apply_ld_json(info: MovieInfo, text: str) -> None:
        try:
            data, _ = json.JSONDecoder().raw_decode(text.strip())
        except ValueError:
            return
        if data is None:
            info.summary = ""
            return
        if not isinstance(data, dict):
            return
        description = data.get("description")
        if description is None:
            description = ""
        if not isinstance(description, str):
            return
        info.summary = description

    @staticmethod
    def _apply_field(info: MovieInfo, row: Any) -> None:
        label = _child_text(row, ".//th")
        value = _child_text(row, ".//td")
        if label in ("配信開始日", "発売日"):
            if info.release_date is None:
                info.release_date = parse_date(value)
        elif label == "メーカー":
            info.maker = value
        elif label == "レーベル":
            info.label = value
        elif label == "作品ID":
            info.id = value
        elif label == "メーカー品番":
            info.number = value
        elif label == "シリーズ":
            info.series = value

    def search_movie(self, keyword: str) -> list[MovieSearchResult]:
        doc = self.fetch_html(self.SEARCH_URL.format(keyword))
        base = doc.base_url or self.SEARCH_URL.format(keyword)

        ids = []
        for item in doc.xpath('//*[@id="searchresultarea"]//div[@class="contentslist"]'):
            try:
                ids.append(
                    self.parse_movie_id_from_url(
                        _absolute(base, _child_attr(item, ".//a", "href"))
                    )
                )
            except InvalidURLError:
                ids.append("")

        def lookup(movie_id: str) -> MovieInfo | None:
            try:
                info = self.get_movie_info_by_id(movie_id)
            except _FETCH_ERRORS:
                return None
            return info if info.is_valid() else None

        selected = ids[:_SEARCH_LIMIT]
        if not selected:
            return []
        with ThreadPoolExecutor(max_workers=len(selected)) as pool:
            infos = list(pool.map(lookup, selected))
        return [info.to_search_result() for info in infos if info is not None]


register_movie_factory(Duga.NAME, Duga)