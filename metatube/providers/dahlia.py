"""Providers for the DAHLIA family of sites (DAHLIA, FALENO)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus, urljoin, urlsplit

import lxml.html

from metatube.provider import (
    InvalidURLError,
    MovieInfo,
    MovieSearchResult,
    Scraper,
    parse_date,
    parse_id_to_number,
    parse_runtime,
    register_movie_factory,
)

__all__ = ["DahliaCore", "Dahlia", "Faleno"]

_FIELDS = (
    '//div[contains(@class, "box_works01_list")]/ul/*[child::span or '
    '(@class="view_timer" and not(contains(@style,\'display: none\')))]'
    "//span/parent::*"
)
_DELIVERY_DATE = (
    '//div[contains(@class, "box_works01_list")]/ul/div[@class="view_timer" and '
    "not(contains(@style,'display: none'))]/li/span[text()=\"配信開始日\"]"
    "/following-sibling::p"
)


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
    return urljoin(base, url)


def _path_base(path: str) -> str:
    if not path:
        return "."
    path = path.rstrip("/")
    if not path:
        return "/"
    return path[path.rfind("/") + 1 :]


class DahliaCore(Scraper):
    """Scraper shared by the sites built on the same works layout."""

    def __init__(
        self,
        name: str,
        base_url: str,
        movie_url: str,
        search_url: str,
        priority: int,
    ):
        super().__init__(name, base_url, priority, cookies={"modal": "off"})
        self.movie_url = movie_url
        self.search_url = search_url

    def normalize_movie_id(self, movie_id: str) -> str:
        return movie_id.lower()

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        return self.get_movie_info_by_url(self.movie_url.format(movie_id))

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        try:
            path = urlsplit(raw_url).path
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        return self.normalize_movie_id(_path_base(path))

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(
            id=movie_id,
            number=parse_id_to_number(movie_id),
            provider=self.name,
            homepage=raw_url,
            maker=self.name,
            label=self.name,
        )

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for text in doc.xpath('//div[@class="bar02_works"]/h1/text()'):
            info.title = str(text).strip()

        for text in doc.xpath('//div[@class="bar02"]/h1/text()'):
            if not info.title:
                info.title = str(text).strip()

        for img in doc.xpath('//div[@class="box_works01_img"]/a/img'):
            info.cover_url = _absolute(base, img.get("src", "")).split("?")[0]

        for link in doc.xpath('//div[@class="box_works01_img"]/a'):
            info.preview_video_url = _absolute(base, link.get("href", ""))

        for link in doc.xpath('//div[@class="box_works01_ga"]//li/a'):
            info.preview_images.append(_absolute(base, link.get("href", "")))

        for block in doc.xpath('//div[@class="box_works01_text"]'):
            if info.summary:
                continue
            if summary := block.text_content().strip():
                info.summary = summary.replace("\n", "<br />")

        for item in doc.xpath(_FIELDS):
            self._apply_field(info, item)

        for node in doc.xpath(_DELIVERY_DATE):
            if info.release_date is None:
                info.release_date = parse_date(_inner_text(node))

        return info

    @staticmethod
    def _apply_field(info: MovieInfo, item: Any) -> None:
        label = _child_text(item, ".//span")
        value = _child_text(item, ".//p")
        if label == "出演女優":
            if value:
                info.actors = value.split("/")
        elif label == "収録時間":
            info.runtime = parse_runtime(value)
        elif label == "配信開始日":
            info.release_date = parse_date(value)
        elif label == "発売日":
            if info.release_date is None:
                info.release_date = parse_date(value)

    def normalize_movie_keyword(self, keyword: str) -> str:
        return keyword.replace("-", "").lower()

    def search_movie(self, keyword: str) -> list[MovieSearchResult]:
        url = self.search_url.format(quote_plus(keyword))
        response = self.fetch(url, allow_redirects=False)
        text = self._decode(response)
        if not text.strip():
            text = "<html></html>"
        base = response.url or url
        doc = lxml.html.document_fromstring(text, base_url=base)

        results = []
        for item in doc.xpath('//div[@class="box_kanren01"]//li'):
            cover = _absolute(base, _child_attr(item, ".//img", "src"))
            homepage = _absolute(base, _child_attr(item, ".//a", "href"))
            movie_id = self.parse_movie_id_from_url(homepage)
            title = _child_text(item, './/div[@class="text_name"]/a').split("\n", 1)[0]
            released = _child_text(item, './/div[contains(text(), "発売開始")]').split()
            results.append(
                MovieSearchResult(
                    id=movie_id,
                    number=parse_id_to_number(movie_id),
                    title=title,
                    provider=self.name,
                    homepage=homepage,
                    cover_url=cover,
                    release_date=parse_date(released[0] if released else ""),
                )
            )
        return results


class Dahlia(DahliaCore):
    NAME = "DAHLIA"
    PRIORITY = 1000 - 5
    BASE_URL = "https://dahlia-av.jp/"
    MOVIE_URL = "https://dahlia-av.jp/works/{}/"
    SEARCH_URL = "https://dahlia-av.jp/?s={}"

    def __init__(self):
        super().__init__(
            self.NAME, self.BASE_URL, self.MOVIE_URL, self.SEARCH_URL, self.PRIORITY
        )


class Faleno(DahliaCore):
    NAME = "FALENO"
    PRIORITY = 1000 - 5
    BASE_URL = "https://faleno.jp/top/"
    MOVIE_URL = "https://faleno.jp/top/works/{}/"
    SEARCH_URL = "https://faleno.jp/top/?s={}"

    def __init__(self):
        super().__init__(
            self.NAME, self.BASE_URL, self.MOVIE_URL, self.SEARCH_URL, self.PRIORITY
        )


register_movie_factory(Dahlia.NAME, Dahlia)
register_movie_factory(Faleno.NAME, Faleno)