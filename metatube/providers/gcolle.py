"""Gcolle movie provider."""

from __future__ import annotations

import json
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
    register_movie_factory,
)

__all__ = ["Gcolle"]

_FETCH_ERRORS = (ProviderError, requests.RequestException)

_ID = re.compile(r"(?:GCOLLE[-_])?([0-9]+)", re.I | re.ASCII)

_AGE_CHECK = (
    '//*[@id="main_content"]/*[5][self::table]/tbody/tr/*[2][self::td]'
    "/table/tbody/tr/td/h4/*[2][self::a]"
)
_CART = '//*[@id="cart_quantity"]/table/tbody'


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


def _ensure_tbody(doc: Any) -> None:
    """Wrap rows placed straight under a table in a tbody, as browsers do."""
    for table in list(doc.iter("table")):
        rows = [child for child in table if child.tag == "tr"]
        if not rows:
            continue
        tbody = table.makeelement("tbody", {})
        table.insert(table.index(rows[0]), tbody)
        for row in rows:
            tbody.append(row)


class Gcolle(Scraper):
    """Scraper for the Gcolle marketplace."""

    NAME = "Gcolle"
    PRIORITY = 1000
    BASE_URL = "https://gcolle.net/"
    MOVIE_URL = "https://gcolle.net/product_info.php/products_id/{}"
    SCORE_URL = "https://rating.gcolle.net/ratings/products/{}.js"

    def __init__(self):
        super().__init__(self.NAME, self.BASE_URL, self.PRIORITY, detect_charset=True)

    def normalize_movie_id(self, movie_id: str) -> str:
        m = _ID.fullmatch(movie_id)
        return m[1] if m else ""

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
            number=f"GCOLLE-{movie_id}",
            provider=self.name,
            homepage=raw_url,
        )

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url
        _ensure_tbody(doc)
        doc = self._pass_age_check(doc, base)

        for node in doc.xpath(_CART + "/tr[1]/td/h1"):
            info.title = node.text_content().strip()

        for node in doc.xpath(_CART + "/tr[3]/td/p"):
            info.summary = node.text_content().strip()

        for node in doc.xpath(_CART + "/tr[4]/td/a"):
            info.genres.append(node.text_content().strip())

        for link in doc.xpath(_CART + "/tr[3]/td/table/tbody/tr/td/a"):
            info.cover_url = _absolute(base, link.get("href", "").strip())
            info.thumb_url = _absolute(base, _child_attr(link, ".//img", "src"))

        for img in doc.xpath(_CART + "/tr[3]/td/div/img"):
            info.preview_images.append(_absolute(base, img.get("src", "").strip()))

        for img in doc.xpath(_CART + "/tr[3]/td/div/a/img"):
            info.preview_images.append(_absolute(base, img.get("src", "").strip()))

        for row in doc.xpath('//table[@class="filesetumei"]//tr'):
            if _child_text(row, ".//td[1]") == "商品登録日":
                info.release_date = parse_date(_child_text(row, ".//td[2]"))

        for cell in doc.xpath('//table[@class="contentBoxContentsManufactureInfo"]//td'):
            if info.maker:
                break
            if "アップロード会員名" in cell.text_content():
                info.maker = _child_text(cell, ".//b")

        self._load_score(info, movie_id)
        return info

    def _pass_age_check(self, doc: Any, base: str) -> Any:
        for link in doc.xpath(_AGE_CHECK):
            href = link.get("href", "")
            if "age_check" not in href:
                continue
            try:
                page = self.fetch_html(_absolute(base, href.strip()))
            except _FETCH_ERRORS:
                continue
            _ensure_tbody(page)
            doc = page
        return doc

    def _load_score(self, info: MovieInfo, movie_id: str) -> None:
        try:
            response = self.fetch(self.SCORE_URL.format(movie_id))
            data = json.loads(response.content)
        except (*_FETCH_ERRORS, ValueError):
            return
        if data is None:
            info.score = 0.0
            return
        if not isinstance(data, dict):
            return
        rating = data.get("rating")
        if rating is None:
            info.score = 0.0
        elif isinstance(rating, (int, float)) and not isinstance(rating, bool):
            info.score = float(rating)


register_movie_factory(Gcolle.NAME, Gcolle)