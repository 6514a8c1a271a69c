"""AV Entertainments movie provider."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qs, quote_plus, urldefrag, urljoin, urlsplit

from metatube.provider import (
    InvalidURLError,
    MovieInfo,
    MovieSearchResult,
    Scraper,
    parse_date,
    parse_runtime,
    parse_texts,
    register_movie_factory,
)

__all__ = ["AVE"]

_NEW_PATH = re.compile(r"/([0-9]+)/[0-9]+/[0-9]+", re.ASCII)
_IMAGE_NUMBER = re.compile(
    r"/(?:dvd[0-9])?([a-z0-9_-]+)\.(?:jpe?g|png|gif|webp)", re.I | re.ASCII
)

_FIELDS = (
    '//*[@id="MyBody"]//div[@class="product-info-block-rev mt-20"]'
    '/div[@class="single-info"]'
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
    return urldefrag(urljoin(base, url))[0]


def _parse_number(src: str) -> str:
    m = _IMAGE_NUMBER.search(src)
    return m[1].upper() if m else ""


def _parse_summary(element: Any) -> str:
    """Join the element's own text nodes, turning <br> into line breaks."""
    parts = [(element.text or "").strip()]
    for child in element:
        if child.tag == "br":
            parts.append("\n")
        parts.append((child.tail or "").strip())
    return "".join(parts)


class AVE(Scraper):
    """Scraper for the AV Entertainments store."""

    NAME = "AVE"
    PRIORITY = 1000 - 2
    BASE_URL = "https://www.aventertainments.com/"
    MOVIE_URL = "https://www.aventertainments.com/{}/2/29/product_lists"
    SEARCH_URL = (
        "https://www.aventertainments.com/search_Products.aspx"
        "?languageID=2&dept_id=29&keyword={}&searchby=keyword"
    )

    def __init__(self):
        super().__init__(self.NAME, self.BASE_URL, self.PRIORITY)

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        return self.get_movie_info_by_url(self.MOVIE_URL.format(quote_plus(movie_id)))

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        try:
            parts = urlsplit(raw_url)
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        # Old style links carry the ID in the query.
        values = parse_qs(parts.query).get("product_id")
        if values and values[0]:
            return values[0]
        if m := _NEW_PATH.match(parts.path):
            return m[1]
        raise InvalidURLError(f"parse id failed: {raw_url}")

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(id=movie_id, provider=self.name, homepage=raw_url)

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for node in doc.xpath('//*[@id="MyBody"]//div[@class="section-title"]/h3'):
            info.title = node.text_content().strip()

        for node in doc.xpath(
            '//*[@id="MyBody"]//div[@class="product-description mt-20"]'
        ):
            info.summary += _parse_summary(node).strip()

        for node in doc.xpath('//div[@id="category"]'):
            info.summary += _parse_summary(node).strip()

        for img in doc.xpath('//*[@id="PlayerCover"]/img'):
            info.cover_url = _absolute(base, img.get("src", ""))
            info.thumb_url = info.cover_url.replace("bigcover", "jacket_images")

        for link in doc.xpath('//link[@rel="image_src"]'):
            if not info.thumb_url:
                info.thumb_url = _absolute(base, link.get("href", ""))

        for link in doc.xpath('//span[@class="grid-gallery"]/a'):
            if not info.cover_url:
                info.cover_url = _absolute(base, link.get("href", ""))

        for img in doc.xpath('//*[@id="sscontainerppv123"]/img'):
            if src := img.get("src", ""):
                info.preview_images = [_absolute(base, src)]

        for link in doc.xpath(
            '//div[@class="gallery-block grid-gallery"]//a[@class="lightbox"]'
        ):
            if href := link.get("href", ""):
                info.preview_images.append(_absolute(base, href))

        for source in doc.xpath('//*[@id="player1"]/source'):
            info.preview_video_hls_url = _absolute(base, source.get("src", ""))

        for item in doc.xpath(_FIELDS):
            self._apply_field(info, item)

        return info

    @staticmethod
    def _apply_field(info: MovieInfo, item: Any) -> None:
        label = _child_text(item, ".//span[1]")
        value = _child_text(item, ".//span[2]")
        cells = item.xpath(".//span[2]")
        cell = cells[0] if cells else None
        if label == "商品番号":
            info.number = value
        elif label == "主演女優":
            info.actors.extend(parse_texts(cell))
        elif label == "スタジオ":
            info.maker = value
        elif label == "シリーズ":
            info.series = value
        elif label == "カテゴリ":
            info.genres.extend(parse_texts(cell))
        elif label == "発売日":
            fields = value.split()
            info.release_date = parse_date(fields[0] if fields else "")
        elif label == "収録時間":
            info.runtime = parse_runtime(value)

    def search_movie(self, keyword: str) -> list[MovieSearchResult]:
        url = self.SEARCH_URL.format(quote_plus(keyword))
        doc = self.fetch_html(url)
        base = doc.base_url or url

        results = []
        for item in doc.xpath(
            '//div[@class="single-slider-product grid-view-product"]'
        ):
            href = _child_attr(item, ".//div[1]/a", "href")
            thumb = _child_attr(item, ".//div[1]/a/img", "src")
            homepage = _absolute(base, href)
            try:
                movie_id = self.parse_movie_id_from_url(homepage)
            except InvalidURLError:
                movie_id = ""
            results.append(
                MovieSearchResult(
                    id=movie_id,
                    number=_parse_number(thumb),
                    title=_child_text(item, './/div[2]/p[@class="product-title"]/a'),
                    provider=self.name,
                    homepage=homepage,
                    thumb_url=_absolute(base, thumb),
                    cover_url=_absolute(
                        base, thumb.replace("jacket_images", "bigcover")
                    ),
                )
            )
        return results


register_movie_factory(AVE.NAME, AVE)