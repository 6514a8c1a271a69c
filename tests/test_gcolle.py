from datetime import date

import pytest
import responses

from metatube.providers.gcolle import Gcolle


def _detail_page(movie_id: str) -> str:
    return f"""<html><head><meta charset="utf-8"></head><body>
<form id="cart_quantity"><table>
<tr><td><h1> Title {movie_id} </h1></td></tr>
<tr><td>spacer</td></tr>
<tr><td><p> Summary text </p>
<table><tr><td><a href="/images/cover.jpg"><img src="/images/thumb.jpg"></a></td></tr></table>
<div><img src="/images/p1.jpg"><a href="/x"><img src="/images/p2.jpg"></a></div>
</td></tr>
<tr><td><a>tagA</a><a> tagB </a></td></tr>
</table></form>
<table class="filesetumei"><tr><td>商品登録日</td><td>2022-03-01</td></tr></table>
<table class="contentBoxContentsManufactureInfo"><tr><td>アップロード会員名：<b>uploader</b></td></tr></table>
</body></html>"""


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _add_page(mocked, url, body):
    mocked.add(responses.GET, url, body=body, content_type="text/html; charset=utf-8")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("847256", "847256"),
        ("GCOLLE-848234", "848234"),
        ("gcolle_845371", "845371"),
        ("abc", ""),
    ],
)
def test_normalize_movie_id(raw, expected):
    assert Gcolle().normalize_movie_id(raw) == expected


def test_parse_movie_id_from_url():
    url = "https://gcolle.net/product_info.php/products_id/839979"
    assert Gcolle().parse_movie_id_from_url(url) == "839979"


@pytest.mark.parametrize("movie_id", ["847256", "848234", "845371", "839979", "848315"])
def test_get_movie_info_by_id(mocked, movie_id):
    _add_page(
        mocked,
        f"https://gcolle.net/product_info.php/products_id/{movie_id}",
        _detail_page(movie_id),
    )
    mocked.add(
        responses.GET,
        f"https://rating.gcolle.net/ratings/products/{movie_id}.js",
        json={"rating": 4.5},
    )
    info = Gcolle().get_movie_info_by_id(movie_id)
    assert info.is_valid()
    assert info.id == movie_id
    assert info.number == f"GCOLLE-{movie_id}"
    assert info.title == f"Title {movie_id}"
    assert info.summary == "Summary text"
    assert info.genres == ["tagA", "tagB"]
    assert info.cover_url == "https://gcolle.net/images/cover.jpg"
    assert info.thumb_url == "https://gcolle.net/images/thumb.jpg"
    assert info.preview_images == [
        "https://gcolle.net/images/p1.jpg",
        "https://gcolle.net/images/p2.jpg",
    ]
    assert info.release_date == date(2022, 3, 1)
    assert info.maker == "uploader"
    assert info.score == 4.5


def test_missing_score_leaves_zero(mocked):
    _add_page(
        mocked,
        "https://gcolle.net/product_info.php/products_id/847256",
        _detail_page("847256"),
    )
    info = Gcolle().get_movie_info_by_id("847256")
    assert info.score == 0.0
    assert info.title == "Title 847256"


def test_age_check_page_is_followed(mocked):
    gate = """<html><head><meta charset="utf-8"></head><body>
<div id="main_content"><div>a</div><div>b</div><div>c</div><div>d</div>
<table><tr><td>x</td><td><table><tr><td><h4><a href="/">top</a><a href="/age_check/847256">enter</a></h4></td></tr></table></td></tr></table>
</div></body></html>"""
    _add_page(mocked, "https://gcolle.net/product_info.php/products_id/847256", gate)
    _add_page(mocked, "https://gcolle.net/age_check/847256", _detail_page("847256"))
    info = Gcolle().get_movie_info_by_id("847256")
    assert info.title == "Title 847256"
    assert info.cover_url == "https://gcolle.net/images/cover.jpg"