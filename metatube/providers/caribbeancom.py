"""Providers for Caribbeancom and Caribbeancom Premium."""

from __future__ import annotations

import json
import posixpath
import re
from datetime import date
from typing import Any
from urllib.parse import urljoin, urlsplit

from metatube.provider import (
    InvalidURLError,
    MovieInfo,
    MovieReviewDetail,
    Scraper,
    parse_date,
    parse_runtime,
    parse_texts,
    register_movie_factory,
)

__all__ = ["CaribbeancomCore", "Caribbeancom", "CaribbeancomPremium"]

_EMIMG = re.compile(r"emimg\s*=\s*'(.+?)';")
_POSTER_IMAGE = re.compile(r"posterImage\s*=\s*'(.+?)'\+movie_id\+'(.+?)';")
_MOVIE_JSON = re.compile(r"Movie\s*=\s*(\{.+?});")
_ID_DATE = re.compile(r"([0-9]{6})[-_][0-9]+")

_REVIEWS_STANDARD = '//div[@class="movie-review section"]/div[@class="section is-dense"]'
_REVIEWS_PREMIUM = '//div[@class="movie-review"]//div[@class="section"]'


def _inner_text(node: Any) -> str:
    return str(node) if isinstance(node, str) else node.text_content()


def _child_text(element: Any, xpath: str) -> str:
    found = element.xpath(xpath)
    return _inner_text(found[0]).strip() if found else ""


def _absolute(base: str, url: str) -> str:
    if url.startswith("#"):
        return ""
    return urljoin(base, url)


def _path_dir(path: str) -> str:
    head = path[: path.rfind("/") + 1]
    cleaned = posixpath.normpath(head) if head else "."
    return "/" + cleaned.lstrip("/") if cleaned.startswith("//") else cleaned


def _path_base(path: str) -> str:
    if not path:
        return "."
    path = path.rstrip("/")
    if not path:
        return "/"
    return path[path.rfind("/") + 1 :]


def _date_from_id(movie_id: str) -> date | None:
    """Read an MMDDYY date out of an ID such as '050422-001'."""
    m = _ID_DATE.search(movie_id)
    if not m:
        return None
    digits = m[1]
    month, day, year = int(digits[0:2]), int(digits[2:4]), int(digits[4:6])
    year += 1900 if year >= 69 else 2000
    try:
        return date(year, month, day)
    except ValueError:
        return None


class CaribbeancomCore(Scraper):
    """Scraper shared by Caribbeancom and its premium site."""

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
        try:
            path = urlsplit(raw_url).path
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        return _path_base(_path_dir(path))

    def get_movie_reviews_by_url(self, raw_url: str) -> list[MovieReviewDetail]:
        return self.get_movie_reviews_by_id(self.parse_movie_id_from_url(raw_url))

    def get_movie_reviews_by_id(self, movie_id: str) -> list[MovieReviewDetail]:
        doc = self.fetch_html(self.movie_url.format(movie_id))
        reviews = [
            review
            for element in doc.xpath(_REVIEWS_STANDARD)
            if (review := self._parse_review(element)) is not None
        ]
        if not reviews:
            reviews = [
                review
                for element in doc.xpath(_REVIEWS_PREMIUM)
                if (review := self._parse_review(element)) is not None
            ]
        return reviews

    @staticmethod
    def _parse_review(element: Any) -> MovieReviewDetail | None:
        comment = _child_text(element, './/div[@class="review-comment"]')
        reviewer = _child_text(
            element, './/div[@class="review-info"]/span[@class="review-info__user"]'
        )
        reviewer = reviewer.removeprefix("by ").strip()
        if not comment or not reviewer:
            return None
        return MovieReviewDetail(
            author=reviewer,
            comment=comment,
            score=float(len(_child_text(element, './/div[@class="rating"]'))),
            date=parse_date(
                _child_text(
                    element,
                    './/div[@class="review-info"]/span[@class="review-info__date"]',
                )
            ),
        )

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(
            id=movie_id,
            number=movie_id,
            provider=self.name,
            homepage=raw_url,
            maker=self.default_maker,
        )

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for h1 in doc.xpath('//h1[@itemprop="name"]'):
            info.title = h1.text_content().strip()

        for p in doc.xpath('//p[@itemprop="description"]'):
            info.summary = p.text_content().strip()

        for page in doc.xpath('//div[@id="moviepages"]'):
            if not info.title:
                info.title = _child_text(page, ".//h1[1]")
            if not info.summary:
                info.summary = _child_text(page, ".//p[1]")

        for item in doc.xpath('//*[@id="moviepages"]//li'):
            self._apply_field(info, item)

        for script in doc.xpath("//script"):
            self._apply_script(info, script.text_content(), base, movie_id)

        for link in doc.xpath('//div[@class="gallery-ratio"]/a'):
            href = link.get("href", "")
            if "member" not in href:
                info.preview_images.append(_absolute(base, href))

        if info.release_date is None:
            info.release_date = _date_from_id(info.id)

        return info

    @staticmethod
    def _apply_field(info: MovieInfo, item: Any) -> None:
        label = _child_text(item, ".//span[1]")
        value_nodes = item.xpath(".//span[2]")
        value_node = value_nodes[0] if value_nodes else None
        if label == "出演":
            for actor in parse_texts(value_node):
                if actor := actor.strip("-"):
                    info.actors.append(actor)
        elif label in ("配信日", "販売日"):
            info.release_date = parse_date(_child_text(item, ".//span[2]"))
        elif label == "再生時間":
            info.runtime = parse_runtime(_child_text(item, ".//span[2]"))
        elif label == "シリーズ":
            info.series = _child_text(item, ".//span[2]/a[1]")
        elif label == "スタジオ":
            info.maker = _child_text(item, ".//span[2]/a[1]")
        elif label == "タグ":
            info.genres.extend(parse_texts(value_node))
        elif label == "ユーザー評価":
            info.score = float(len(_child_text(item, ".//span[2]")))

    @staticmethod
    def _apply_script(info: MovieInfo, text: str, base: str, movie_id: str) -> None:
        if m := _EMIMG.search(text):
            info.thumb_url = _absolute(base, m[1])
            info.cover_url = info.thumb_url
        elif m := _POSTER_IMAGE.search(text):
            info.thumb_url = _absolute(base, m[1] + movie_id + m[2])
            info.cover_url = info.thumb_url
        elif m := _MOVIE_JSON.search(text):
            try:
                data = json.loads(m[1])
            except ValueError:
                return
            if not isinstance(data, dict):
                return
            for key in ("sample_flash_url", "sample_m_flash_url"):
                sample = data.get(key)
                if isinstance(sample, str) and sample:
                    info.preview_video_url = _absolute(base, sample)
                    break


class Caribbeancom(CaribbeancomCore):
    NAME = "Caribbeancom"
    PRIORITY = 1000
    BASE_URL = "https://www.caribbeancom.com/"
    MOVIE_URL = "https://www.caribbeancom.com/moviepages/{}/index.html"

    def __init__(self):
        super().__init__(
            self.NAME, self.BASE_URL, self.MOVIE_URL, self.PRIORITY, "カリビアンコム"
        )

    def normalize_movie_id(self, movie_id: str) -> str:
        return movie_id if re.fullmatch(r"\d{6}-\d{3}", movie_id, re.ASCII) else ""


class CaribbeancomPremium(CaribbeancomCore):
    NAME = "CaribbeancomPR"
    PRIORITY = 1000 - 1
    BASE_URL = "https://www.caribbeancompr.com/"
    MOVIE_URL = "https://www.caribbeancompr.com/moviepages/{}/index.html"

    def __init__(self):
        super().__init__(
            self.NAME,
            self.BASE_URL,
            self.MOVIE_URL,
            self.PRIORITY,
            "カリビアンコムプレミアム",
        )

    def normalize_movie_id(self, movie_id: str) -> str:
        return movie_id if re.fullmatch(r"\d{6}_\d{3}", movie_id, re.ASCII) else ""


register_movie_factory(Caribbeancom.NAME, Caribbeancom)
register_movie_factory(CaribbeancomPremium.NAME, CaribbeancomPremium)