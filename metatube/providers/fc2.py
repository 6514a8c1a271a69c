"""FC2 Contents Market movie provider."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urldefrag, urljoin, urlsplit

import requests

from metatube.provider import (
    InvalidURLError,
    MovieInfo,
    ProviderError,
    Scraper,
    parse_date,
    parse_score,
    register_movie_factory,
)

__all__ = ["FC2", "parse_number"]

_NUMBER = re.compile(r"(?:FC2(?:[-_]?PPV)?[-_]?)?([0-9]+)", re.I | re.ASCII)
_TRAILING_DIGITS = re.compile(r"[0-9]+\Z")

_FETCH_ERRORS = (ProviderError, requests.RequestException)


def parse_number(s: str) -> str:
    """Extract the bare FC2 number from forms such as 'FC2-PPV-123456'."""
    m = _NUMBER.fullmatch(s)
    return m[1] if m else ""


def _inner_text(node: Any) -> str:
    return str(node) if isinstance(node, str) else node.text_content()


def _child_text(element: Any, xpath: str) -> str:
    found = element.xpath(xpath)
    return _inner_text(found[0]).strip() if found else ""


def _child_texts(element: Any, xpath: str) -> list[str]:
    return [_inner_text(node).strip() for node in element.xpath(xpath)]


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


class FC2(Scraper):
    """Scraper for the FC2 adult contents market."""

    NAME = "FC2"
    PRIORITY = 1000
    BASE_URL = "https://adult.contents.fc2.com/"
    MOVIE_URL = "https://adult.contents.fc2.com/article/{}/"

    def __init__(self):
        super().__init__(self.NAME, self.BASE_URL, self.PRIORITY)

    def normalize_movie_id(self, movie_id: str) -> str:
        return parse_number(movie_id)

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        return self.get_movie_info_by_url(self.MOVIE_URL.format(movie_id))

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        try:
            path = urlsplit(raw_url).path
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        return _path_base(path)

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(
            id=movie_id,
            number=f"FC2-{movie_id}",
            provider=self.name,
            homepage=raw_url,
        )

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for header in doc.xpath('//div[@class="items_article_headerInfo"]'):
            info.title = "".join(_child_texts(header, "./h3/text()"))
            info.genres = _child_texts(
                header, './/section[@class="items_article_TagArea"]/div/a'
            )
            info.maker = _child_text(header, ".//ul/li[last()]/a")
            star_class = _child_attr(
                header, './/li[@class="items_article_StarA"]/a/p/span', "class"
            )
            m = _TRAILING_DIGITS.search(star_class)
            info.score = parse_score(m[0] if m else "")
            released = _child_text(
                header, './/div[@class="items_article_Releasedate"]/p'
            ).split(":")
            info.release_date = parse_date(released[-1])

        for iframe in doc.xpath('//section[@class="items_article_Contents"]/iframe'):
            self._load_summary(info, _absolute(base, iframe.get("src", "")))

        for img in doc.xpath('//div[@class="items_article_MainitemThumb"]/span/img'):
            info.thumb_url = _absolute(base, img.get("src", ""))

        for item in doc.xpath('//section[@class="items_article_SampleImages"]/ul/li'):
            info.preview_images.append(
                _absolute(base, _child_attr(item, ".//a", "href"))
            )

        if info.thumb_url:
            info.cover_url = info.thumb_url
        elif info.preview_images:
            # The thumbnail is low resolution, so the first sample stands in.
            info.cover_url = info.preview_images[0]

        return info

    def _load_summary(self, info: MovieInfo, url: str) -> None:
        try:
            page = self.fetch_html(url)
        except _FETCH_ERRORS:
            return
        for div in page.xpath("//html/body/div"):
            info.summary = div.text_content().strip()


register_movie_factory(FC2.NAME, FC2)