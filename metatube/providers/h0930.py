"""Providers for the H0930 family of sites (H0930, C0930, H4610)."""

from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import urljoin, urlsplit
import posixpath

from metatube.provider import (
    MovieInfo,
    Scraper,
    parse_date,
    parse_runtime,
    parse_score,
    register_movie_factory,
)

__all__ = ["H0930Core", "H0930", "C0930", "H4610"]


def _inner_text(node: Any) -> str:
    return str(node) if isinstance(node, str) else node.text_content()


def _child_text(element: Any, xpath: str) -> str:
    found = element.xpath(xpath)
    return _inner_text(found[0]).strip() if found else ""


def _child_attr(element: Any, xpath: str, name: str) -> str:
    for node in element.xpath(xpath):
        if not isinstance(node, str):
            return node.get(name, "")
    return ""


def _json_str(obj: dict, *path: str) -> str:
    """Walk a JSON object; missing values read as empty, wrong types raise TypeError."""
    value: Any = obj
    for key in path:
        if value is None:
            return ""
        if not isinstance(value, dict):
            raise TypeError(key)
        value = value.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(path[-1])
    return value


class H0930Core(Scraper):
    """Scraper shared by the sites built on the same page layout."""

    def __init__(
        self,
        name: str,
        base_url: str,
        movie_url: str,
        priority: int,
        default_maker: str,
    ):
        super().__init__(name, base_url, priority, detect_charset=True)
        self.movie_url = movie_url
        self.default_maker = default_maker

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        return self.get_movie_info_by_url(self.movie_url.format(movie_id))

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        return posixpath.basename(posixpath.dirname(urlsplit(raw_url).path))

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(
            id=movie_id,
            number=f"{self.name}-{movie_id}".lower(),
            provider=self.name,
            homepage=raw_url,
            maker=self.default_maker,
        )

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for script in doc.xpath('//script[@type="application/ld+json"]'):
            self._apply_ld_json(info, script.text_content(), base)

        for span in doc.xpath(
            '//*[@id="moviePlay"]//div[@class="moviePlay_title"]/h1/span'
        ):
            if title := span.text_content().strip():
                info.title = title

        for dl in doc.xpath('//*[@id="movieInfo"]//section/dl'):
            self._apply_fields(info, dl)

        for content in doc.xpath('//*[@id="movieContent"]'):
            if poster := content.get("poster", ""):
                info.cover_url = urljoin(base, poster)
                info.thumb_url = info.cover_url
            if src := _child_attr(content, "./source", "src"):
                info.preview_video_url = urljoin(base, src)

        for script in doc.xpath(
            '//*[@id="movieGallery"]//script[@type="text/javascript"]'
        ):
            for href in re.findall(r'href="(.+?)"', script.text_content()):
                if "member" not in href:
                    info.preview_images.append(href)

        return info

    @staticmethod
    def _apply_ld_json(info: MovieInfo, text: str, base: str) -> None:
        try:
            data = json.loads(text.replace("\n", ""))
        except ValueError:
            return
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return
        try:
            name = _json_str(data, "name")
            image = _json_str(data, "image")
            description = _json_str(data, "description")
            start_date = _json_str(data, "releasedEvent", "startDate")
            duration = _json_str(data, "video", "duration")
            actor = _json_str(data, "video", "actor")
            maker = _json_str(data, "video", "provider")
            rating = _json_str(data, "aggregateRating", "ratingValue")
        except TypeError:
            return
        info.title = name
        info.summary = description
        if image:
            info.cover_url = urljoin(base, image)
            info.thumb_url = info.cover_url
        info.release_date = parse_date(start_date)
        info.runtime = parse_runtime(duration)
        info.score = parse_score(rating)
        if maker:
            info.maker = maker
        if actor:
            info.actors = [actor]

    @staticmethod
    def _apply_fields(info: MovieInfo, dl: Any) -> None:
        terms = [_inner_text(node).strip() for node in dl.xpath(".//dt")]
        for position, term in enumerate(terms, start=1):
            value = _child_text(dl, f".//dd[{position}]")
            if term == "動画":
                if info.runtime == 0:
                    info.runtime = parse_runtime(value)
            elif term == "公開日":
                if info.release_date is None:
                    info.release_date = parse_date(value)
            elif term == "プレイ内容":
                info.genres.extend(
                    genre.strip() for genre in value.split("\u00a0") if genre.strip()
                )


def _normalize(prefix: str, movie_id: str) -> str:
    m = re.fullmatch(rf"(?:{prefix}[-_])?([a-z\d]+)", movie_id, re.I | re.ASCII)
    return m[1].lower() if m else ""


class H0930(H0930Core):
    NAME = "H0930"
    PRIORITY = 1000
    BASE_URL = "https://www.h0930.com/"
    MOVIE_URL = "https://www.h0930.com/moviepages/{}/index.html"

    def __init__(self):
        super().__init__(
            self.NAME, self.BASE_URL, self.MOVIE_URL, self.PRIORITY, "エッチな0930"
        )

    def normalize_movie_id(self, movie_id: str) -> str:
        return _normalize("h0930", movie_id)


class C0930(H0930Core):
    NAME = "C0930"
    PRIORITY = 1000
    BASE_URL = "https://www.c0930.com/"
    MOVIE_URL = "https://www.c0930.com/moviepages/{}/index.html"

    def __init__(self):
        super().__init__(
            self.NAME, self.BASE_URL, self.MOVIE_URL, self.PRIORITY, "人妻斬り"
        )

    def normalize_movie_id(self, movie_id: str) -> str:
        return _normalize("c0930", movie_id)


class H4610(H0930Core):
    NAME = "H4610"
    PRIORITY = 1000
    BASE_URL = "https://www.h4610.com/"
    MOVIE_URL = "https://www.h4610.com/moviepages/{}/index.html"

    def __init__(self):
        super().__init__(
            self.NAME, self.BASE_URL, self.MOVIE_URL, self.PRIORITY, "エッチな4610"
        )

    def normalize_movie_id(self, movie_id: str) -> str:
        return _normalize("h4610", movie_id)


register_movie_factory(H0930.NAME, H0930)
register_movie_factory(C0930.NAME, C0930)
register_movie_factory(H4610.NAME, H4610)