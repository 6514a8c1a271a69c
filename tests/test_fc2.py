import datetime

import pytest
import responses

from metatube.provider import ProviderError
from metatube.providers.fc2 import FC2, parse_number

ARTICLE_PAGE = """<html><head><title>t</title></head><body>
<div class="items_article_headerInfo">
<h3>Sample Title</h3>
<section class="items_article_TagArea"><div><a>tag1</a><a>tag2</a></div></section>
<ul><li>first</li><li><a href="/users/maker">MakerName</a></li></ul>
<div class="items_article_Releasedate"><p>販売日 : 2019/01/08</p></div>
</div>
<section class="items_article_Contents"><iframe src="/widget/article/{id}/description"></iframe></section>
<div class="items_article_MainitemThumb"><span><img src="/thumb/{id}.jpg"></span></div>
<section class="items_article_SampleImages"><ul>
<li><a href="/sample/{id}-1.jpg">1</a></li>
<li><a href="/sample/{id}-2.jpg">2</a></li>
</ul></section>
</body></html>"""

SUMMARY_PAGE = "<html><body><div>  Summary text  </div></body></html>"

BASE = "https://adult.contents.fc2.com"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


def _register(rsps, movie_id, summary_status=200):
    rsps.add(
        responses.GET,
        f"{BASE}/article/{movie_id}/",
        body=ARTICLE_PAGE.replace("{id}", movie_id),
        content_type="text/html; charset=utf-8",
    )
    rsps.add(
        responses.GET,
        f"{BASE}/widget/article/{movie_id}/description",
        body=SUMMARY_PAGE,
        status=summary_status,
        content_type="text/html; charset=utf-8",
    )


@pytest.mark.parametrize(
    "orig, want",
    [
        ("738573", "738573"),
        ("FC2-738573", "738573"),
        ("FC2_738573", "738573"),
        ("FC2-PPV-738573", "738573"),
        ("FC2PPV-738573", "738573"),
        ("FC2_PPV738573", "738573"),
        ("FC2PPV738573", "738573"),
        ("FC2PPV_738573", "738573"),
    ],
)
def test_parse_number(orig, want):
    assert parse_number(orig) == want


@pytest.mark.parametrize("orig", ["", "FC2-", "ABC-123", "738573x"])
def test_parse_number_rejects(orig):
    assert parse_number(orig) == ""


def test_normalize_movie_id():
    assert FC2().normalize_movie_id("fc2-ppv-406996") == "406996"


def test_parse_movie_id_from_url():
    assert FC2().parse_movie_id_from_url(f"{BASE}/article/2812904/") == "2812904"


@pytest.mark.parametrize("movie_id", ["406996", "2812904", "2676371"])
def test_get_movie_info_by_id_is_valid(rsps, movie_id):
    _register(rsps, movie_id)
    info = FC2().get_movie_info_by_id(movie_id)
    assert info.is_valid()
    assert info.id == movie_id
    assert info.number == f"FC2-{movie_id}"


def test_get_movie_info_fields(rsps):
    _register(rsps, "406996")
    info = FC2().get_movie_info_by_id("406996")
    assert info.title == "Sample Title"
    assert info.genres == ["tag1", "tag2"]
    assert info.maker == "MakerName"
    assert info.release_date == datetime.date(2019, 1, 8)
    assert info.summary == "Summary text"
    assert info.thumb_url == f"{BASE}/thumb/406996.jpg"
    assert info.cover_url == info.thumb_url
    assert info.preview_images == [
        f"{BASE}/sample/406996-1.jpg",
        f"{BASE}/sample/406996-2.jpg",
    ]
    assert info.provider == "FC2"
    assert info.homepage == f"{BASE}/article/406996/"


def test_summary_failure_is_ignored(rsps):
    _register(rsps, "406996", summary_status=404)
    info = FC2().get_movie_info_by_id("406996")
    assert info.summary == ""
    assert info.title == "Sample Title"


def test_cover_falls_back_to_first_preview(rsps):
    page = """<html><body>
<section class="items_article_SampleImages"><ul>
<li><a href="/sample/a.jpg">1</a></li></ul></section></body></html>"""
    rsps.add(responses.GET, f"{BASE}/article/1/", body=page, content_type="text/html")
    info = FC2().get_movie_info_by_id("1")
    assert info.cover_url == f"{BASE}/sample/a.jpg"
    assert info.thumb_url == ""


def test_missing_page_raises(rsps):
    rsps.add(responses.GET, f"{BASE}/article/9/", status=404)
    with pytest.raises(ProviderError):
        FC2().get_movie_info_by_id("9")