"""FANZA (DMM) movie provider."""

from __future__ import annotations

import difflib
import json
import re
from typing import Any
from urllib.parse import quote_plus, urldefrag, urljoin, urlsplit

import lxml.html
import requests

from metatube.provider import (
    InfoNotFoundError,
    InvalidURLError,
    MovieInfo,
    MovieReviewDetail,
    MovieSearchResult,
    ProviderError,
    Scraper,
    parse_date,
    parse_runtime,
    parse_score,
    register_movie_factory,
)
from metatube.providers.fanza_number import (
    parse_number,
    parse_score_from_url,
    preview_src,
)

__all__ = ["RegionNotAvailableError", "Fanza"]

BASE_URL = "https://www.dmm.co.jp/"
BASE_DIGITAL_URL = "https://www.dmm.co.jp/digital/"
BASE_MONO_URL = "https://www.dmm.co.jp/mono/"
SEARCH_URL = "https://www.dmm.co.jp/search/=/searchstr={}/limit=120/sort=date/"
MOVIE_DIGITAL_VIDEOA_URL = "https://www.dmm.co.jp/digital/videoa/-/detail/=/cid={}/"
MOVIE_DIGITAL_VIDEOC_URL = "https://www.dmm.co.jp/digital/videoc/-/detail/=/cid={}/"
MOVIE_DIGITAL_ANIME_URL = "https://www.dmm.co.jp/digital/anime/-/detail/=/cid={}/"
MOVIE_DIGITAL_NIKKATSU_URL = (
    "https://www.dmm.co.jp/digital/nikkatsu/-/detail/=/cid={}/"
)
MOVIE_MONO_DVD_URL = "https://www.dmm.co.jp/mono/dvd/-/detail/=/cid={}/"
MOVIE_MONO_ANIME_URL = "https://www.dmm.co.jp/mono/anime/-/detail/=/cid={}/"

REGION_NOT_AVAILABLE = "not-available-in-your-region"

_FETCH_ERRORS = (ProviderError, requests.RequestException)

_DIGITAL_ID = re.compile(r"[a-z]+00\d{3,}", re.I)
_CID = re.compile(r"/cid=(.*?)/")
_SMALL_THUMB = re.compile(r"(p[a-z]\.)jpg")
_DATE_PREFIX = re.compile(r"(配信日|発売日|貸出日)：\s*")
_ID_KEY = re.compile(r"([A-Z]+)0*([1-9]*)", re.I)
_ONCLICK_PATH = re.compile(r"/(.+)/")
_PLAYER_ARGS = re.compile(r"const args = (\{.+});")
_VR_SAMPLE = re.compile(r'var sampleUrl = "(.+?)";')
_AJAX_URL = re.compile(r"url:\s*'(.+?)',")
_REVIEWER_SUFFIX = re.compile(r"(さん)?(のレビュー)?")


class RegionNotAvailableError(ProviderError):
    """The site refused the request because of the client's region."""

    default_message = REGION_NOT_AVAILABLE


def _ends_with(attr: str, suffix: str) -> str:
    return (
        f"substring({attr}, string-length({attr}) - string-length('{suffix}') + 1)"
        f" = '{suffix}'"
    )


_REVIEW_ITEMS = (
    "//*[starts-with(@id, 'review')]//div["
    + _ends_with("@class", "review__list")
    + "]/ul/li"
)
_REVIEWER = (
    ".//div[2]/p/span[" + _ends_with("@class", "review__unit__reviewer") + "]"
)
_REVIEW_TITLE = ".//p/span[" + _ends_with("@class", "review__unit__title") + "]"
_REVIEW_DATE = (
    ".//div[2]/p/span[" + _ends_with("@class", "review__unit__postdate") + "]"
)


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


def _parse_actors(element: Any) -> list[str]:
    """Collect performer names, leaving out the 'show more' link."""
    texts: list[str] = []

    def add(text: str | None) -> None:
        if text and (name := text.strip().strip("-/")):
            texts.append(name)

    def walk(node: Any) -> None:
        add(node.text)
        for child in node:
            if isinstance(child.tag, str) and not (
                child.tag == "a" and child.get("id") == "a_performer"
            ):
                walk(child)
            add(child.tail)

    walk(element)
    return texts


def _json_value(obj: dict, path: tuple[str, ...], kind: type, default: Any) -> Any:
    """Walk a JSON object; absent or null values give the default."""
    value: Any = obj
    for key in path:
        if value is None:
            return default
        if not isinstance(value, dict):
            raise TypeError(key)
        value = value.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise TypeError(path[-1])
    return value


def _similarity(a: str, b: str) -> float:
    return difflib.SequenceMatcher(None, a.lower(), b.lower()).ratio()


class Fanza(Scraper):
    """Scraper for the FANZA store."""

    NAME = "FANZA"
    PRIORITY = 1000 + 1

    def __init__(self):
        super().__init__(
            self.NAME, BASE_URL, self.PRIORITY, cookies={"age_check_done": "1"}
        )

    def normalize_movie_id(self, movie_id: str) -> str:
        return movie_id.lower()

    def _homepages_by_id(self, movie_id: str) -> list[str]:
        homepages = [
            pattern.format(movie_id)
            for pattern in (
                MOVIE_MONO_DVD_URL,
                MOVIE_DIGITAL_VIDEOA_URL,
                MOVIE_DIGITAL_VIDEOC_URL,
                MOVIE_DIGITAL_ANIME_URL,
                MOVIE_MONO_ANIME_URL,
                MOVIE_DIGITAL_NIKKATSU_URL,
            )
        ]
        if _DIGITAL_ID.search(movie_id):
            homepages[0], homepages[1] = homepages[1], homepages[0]
        return homepages

    def get_movie_info_by_id(self, movie_id: str) -> MovieInfo:
        for homepage in self._homepages_by_id(movie_id):
            try:
                info = self.get_movie_info_by_url(homepage)
            except _FETCH_ERRORS:
                continue
            if info.is_valid():
                return info
        raise InfoNotFoundError()

    def parse_movie_id_from_url(self, raw_url: str) -> str:
        try:
            path = urlsplit(raw_url).path
        except ValueError as exc:
            raise InvalidURLError(str(exc)) from exc
        m = _CID.search(path)
        return self.normalize_movie_id(m[1]) if m else ""

    def get_movie_info_by_url(self, raw_url: str) -> MovieInfo:
        movie_id = self.parse_movie_id_from_url(raw_url)
        info = MovieInfo(provider=self.name, homepage=raw_url)

        doc = self.fetch_html(raw_url)
        base = doc.base_url or raw_url

        for node in doc.xpath('//*[@id="title"]'):
            info.title = node.text_content().strip()

        for img in doc.xpath("//*[@id=$v]", v=f"package-src-{movie_id}"):
            info.thumb_url = _absolute(base, img.get("src", "").strip())

        for link in doc.xpath("//*[@id=$v]", v=movie_id):
            info.cover_url = _absolute(base, preview_src(link.get("href", "").strip()))

        for row in doc.xpath("//tr"):
            self._apply_field(info, row)

        has_a_performer = bool(doc.xpath('//a[@id="a_performer"]'))

        for span in doc.xpath('//span[@id="performer"]'):
            info.actors.extend(_parse_actors(span))

        for script in doc.xpath('//script[@type="application/ld+json"]'):
            self._apply_ld_json(info, script.text_content(), base)

        for meta in doc.xpath('//meta[@property="og:title"]'):
            if not info.title:
                info.title = meta.get("content", "").strip()

        for block in doc.xpath('//div[@class="mg-b20 lh4"]'):
            if info.summary:
                continue
            info.summary = (
                _child_text(block, './/p[@class="mg-b20"]')
                or _child_text(block, ".//p")
                or block.text_content().strip()
            )

        for meta in doc.xpath('//meta[@property="og:description"]'):
            if not info.summary:
                info.summary = meta.get("content", "").strip()

        for img in doc.xpath('//*[@id="sample-video"]//img'):
            if info.thumb_url or not img.get("id", "").startswith("package-src"):
                continue
            info.thumb_url = _absolute(base, img.get("src", "").strip())

        for link in doc.xpath('//*[@id="sample-video"]//a[@name="package-image"]'):
            if info.cover_url:
                continue
            if (href := link.get("href", "").strip()).endswith(".jpg"):
                info.cover_url = _absolute(base, href)

        for meta in doc.xpath('//meta[@property="og:image"]'):
            if not info.thumb_url:
                info.thumb_url = _absolute(base, meta.get("content", "").strip())

        for link in doc.xpath('//*[@id="detail-sample-movie"]/div/a'):
            if m := _ONCLICK_PATH.search(link.get("onclick", "")):
                self._load_sample_movie(info, _absolute(base, m[0]))

        for link in doc.xpath('//*[@id="detail-sample-vr-movie"]/div/a'):
            if m := _ONCLICK_PATH.search(link.get("onclick", "")):
                self._load_vr_sample(info, _absolute(base, m[0]), base)

        preview_images: dict[str, None] = {}
        for link in doc.xpath('//*[@id="sample-image-block"]//a[@name="sample-image"]'):
            src = preview_src(_child_attr(link, ".//img", "src"))
            preview_images[_absolute(base, src)] = None
        for link in doc.xpath('//*[@id="sample-image-block"]/a'):
            if not preview_images:
                continue
            src = preview_src(_child_attr(link, ".//img", "src"))
            preview_images[_absolute(base, src)] = None
        info.preview_images.extend(preview_images)

        if not info.cover_url:
            info.cover_url = preview_src(info.thumb_url)

        if has_a_performer:
            self._load_all_actors(info, doc, base)

        return info

    @staticmethod
    def _apply_field(info: MovieInfo, row: Any) -> None:
        label = _child_text(row, ".//td[1]")
        value = _child_text(row, ".//td[2]")
        if label == "品番：":
            info.id = value
            info.number = parse_number(value)
        elif label == "シリーズ：":
            info.series = value.strip("-")
        elif label == "メーカー：":
            info.maker = value.strip("-")
        elif label == "レーベル：":
            info.label = value.strip("-")
        elif label == "ジャンル：":
            info.genres = _child_texts(row, ".//td[2]/a")
        elif label == "名前：":
            info.actors = _child_texts(row, ".//td[2]")
        elif label == "平均評価：":
            info.score = parse_score_from_url(_child_attr(row, ".//td[2]/img", "src"))
        elif label == "収録時間：":
            info.runtime = parse_runtime(value)
        elif label == "監督：":
            info.director = value.strip("-")
        elif label in ("配信開始日：", "商品発売日：", "発売日：", "貸出開始日："):
            if info.release_date is None:
                info.release_date = parse_date(value)

    @staticmethod
    def _apply_ld_json(info: MovieInfo, text: str, base: str) -> None:
        try:
            data = json.loads(text)
        except ValueError:
            return
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return
        try:
            name = _json_value(data, ("name",), str, info.title)
            image = _json_value(data, ("image",), str, info.thumb_url)
            description = _json_value(data, ("description",), str, info.summary)
            sku = _json_value(data, ("sku",), str, info.id)
            content_url = _json_value(data, ("subjectOf", "contentUrl"), str, "")
            raw_genres = _json_value(data, ("subjectOf", "genre"), list, [])
            rating = _json_value(data, ("aggregateRating", "ratingValue"), str, "")
            genres = []
            for genre in raw_genres:
                if genre is not None and not isinstance(genre, str):
                    raise TypeError("genre")
                genres.append(genre or "")
        except TypeError:
            return
        info.id = sku
        info.number = parse_number(sku)
        info.title = name
        info.summary = description
        info.thumb_url = _absolute(base, image)
        if genres:
            info.genres = genres
        if rating:
            info.score = parse_score(rating)
        if content_url:
            info.preview_video_url = content_url

    def _load_sample_movie(self, info: MovieInfo, url: str) -> None:
        try:
            page = self.fetch_html(url)
        except _FETCH_ERRORS:
            return
        page_base = page.base_url or url
        for iframe in page.xpath("//iframe"):
            src = _absolute(page_base, iframe.get("src", "").strip())
            try:
                response = self.fetch(src)
            except _FETCH_ERRORS:
                continue
            m = _PLAYER_ARGS.search(self._decode(response))
            if not m:
                continue
            try:
                data = json.loads(m[1])
            except ValueError:
                continue
            bitrates = data.get("bitrates") if isinstance(data, dict) else None
            if isinstance(bitrates, list) and bitrates and isinstance(bitrates[0], dict):
                sample = bitrates[0].get("src")
                info.preview_video_url = _absolute(
                    page_base, sample if isinstance(sample, str) else ""
                )

    def _load_vr_sample(self, info: MovieInfo, url: str, base: str) -> None:
        try:
            response = self.fetch(url)
        except _FETCH_ERRORS:
            return
        if m := _VR_SAMPLE.search(self._decode(response)):
            info.preview_video_url = _absolute(base, m[1])

    def _load_all_actors(self, info: MovieInfo, doc: Any, base: str) -> None:
        scripts = doc.xpath('//script[contains(text(),"a#a_performer")]/text()')
        if not scripts:
            return
        m = _AJAX_URL.search(str(scripts[0]))
        if not m or not m[1].strip():
            return
        try:
            page = self.fetch_html(_absolute(base, m[1]))
        except _FETCH_ERRORS:
            return
        if actors := _parse_actors(page):
            info.actors = actors

    def search_movie(self, keyword: str) -> list[MovieSearchResult]:
        if "-" in keyword:
            try:
                results = self._search_movie(keyword.replace("-", "00", 1) + "#")
            except _FETCH_ERRORS:
                results = []
            if results:
                return results
        return self._search_movie(keyword.replace("-", "", 1))

    def _search_movie(self, keyword: str) -> list[MovieSearchResult]:
        url = SEARCH_URL.format(quote_plus(keyword))
        response = self.fetch(url)
        text = self._decode(response)
        if not text.strip():
            text = "<html></html>"
        base = response.url or url
        doc = lxml.html.document_fromstring(text, base_url=base)

        results = [
            result
            for item in doc.xpath('//*[@id="list"]/li')
            if (result := self._parse_search_item(item, base)) is not None
        ]

        if REGION_NOT_AVAILABLE in urlsplit(base).path:
            raise RegionNotAvailableError()

        if results:
            target = _ID_KEY.sub(r"\1\2", keyword)

            def rank(result: MovieSearchResult) -> tuple[float, bool]:
                key = _ID_KEY.sub(r"\1\2", result.id)
                return (-_similarity(key, target), "/digital/" not in result.homepage)

            results.sort(key=rank)
        return results

    def _parse_search_item(self, item: Any, base: str) -> MovieSearchResult | None:
        homepage = _absolute(base, _child_attr(item, './/p[@class="tmb"]/a', "href"))
        if not homepage.startswith((BASE_DIGITAL_URL, BASE_MONO_URL)):
            return None
        try:
            movie_id = self.parse_movie_id_from_url(homepage)
        except InvalidURLError:
            movie_id = ""

        image_path = './/p[@class="tmb"]/a/span[1]/img'
        thumb = _child_attr(item, image_path, "src")
        if _SMALL_THUMB.search(thumb):
            thumb = _SMALL_THUMB.sub("ps.jpg", thumb)

        release = ""
        rate = _child_text(item, './/p[@class="rate"]')
        if _DATE_PREFIX.search(rate):
            release = _DATE_PREFIX.sub("", rate)
            rate = ""

        return MovieSearchResult(
            id=movie_id,
            number=parse_number(movie_id),
            title=_child_attr(item, image_path, "alt"),
            provider=self.name,
            homepage=homepage,
            thumb_url=_absolute(base, thumb),
            cover_url=_absolute(base, preview_src(thumb)),
            score=parse_score(rate),
            release_date=parse_date(release),
        )

    def get_movie_reviews_by_id(self, movie_id: str) -> list[MovieReviewDetail]:
        for homepage in self._homepages_by_id(movie_id):
            try:
                reviews = self.get_movie_reviews_by_url(homepage)
            except _FETCH_ERRORS:
                continue
            if reviews:
                return reviews
        raise InfoNotFoundError()

    def get_movie_reviews_by_url(self, raw_url: str) -> list[MovieReviewDetail]:
        doc = self.fetch_html(raw_url)
        return [
            review
            for item in doc.xpath(_REVIEW_ITEMS)
            if (review := self._parse_review(item)) is not None
        ]

    @staticmethod
    def _parse_review(item: Any) -> MovieReviewDetail | None:
        comment = _child_text(item, ".//div[1]")

        name = ""
        links = item.xpath(_REVIEWER + "/a")
        if links and links[0].text:
            name = links[0].text.strip()
        if not name:
            name = _REVIEWER_SUFFIX.sub("", _child_text(item, _REVIEWER)).strip()

        if not name or not comment:
            return None

        ratings = _child_attr(item, ".//p/span[1]", "class").split("-")
        score = parse_score(ratings[-1]) / 10
        if score > 5.0:
            score = 0.0

        return MovieReviewDetail(
            author=name,
            comment=comment,
            score=score,
            title=_child_text(item, _REVIEW_TITLE),
            date=parse_date(_child_text(item, _REVIEW_DATE).strip("- ")),
        )


register_movie_factory(Fanza.NAME, Fanza)