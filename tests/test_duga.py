from datetime import date

import pytest
import responses

from metatube.providers.duga import Duga


def _detail_page(work_id: str) -> str:
    return f"""<html><head><meta charset="utf-8">
<meta property="og:title" content="OG Title">
<script type="application/ld+json">{{"name": "x", "description": "A summary."}}</script>
</head><body>
<h1 id="contentsname">Title {work_id}</h1>
<div class="imagebox"><a href="/images/cover.jpg"><img id="productjpg" src="/images/thumb.jpg"></a></div>
<div class="summaryinner">
<table>
<tr><th>配信開始日</th><td>2022-03-01</td></tr>
<tr><th>発売日</th><td>2021-01-01</td></tr>
<tr><th>メーカー</th><td> Glory Quest </td></tr>
<tr><th>レーベル</th><td>GQ</td></tr>
<tr><th>作品ID</th><td>{work_id}</td></tr>
<tr><th>メーカー品番</th><td>{work_id.upper()}</td></tr>
<tr><th>シリーズ</th><td>Series</td></tr>
</table>
<div class="ratingstar-total"><img alt="4.5"></div>
</div>
<ul class="director"><li><a>Dir A</a></li><li><a>Dir B</a></li></ul>
<ul class="performer"><li><a>Actor A</a></li><li><a>Actor B</a></li></ul>
<ul class="categorylist"><li><a>G1</a></li><li><a>G2</a></li></ul>
<div class="downloadbox"><table><tr><th>再生時間</th><td>120分</td></tr></table></div>
<video class="play-video" src="/sample.mp4"></video>
<ul id="digestthumbbox"><li><a href="/p1.jpg">1</a></li><li><a href="/p2.jpg">2</a></li></ul>
</body></html>"""


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _add_page(mocked, url, body):
    mocked.add(responses.GET, url, body=body, content_type="text/html; charset=utf-8")


def test_normalize_movie_id_lowercases():
    assert Duga().normalize_movie_id("GLORY-4262") == "glory-4262"


def test_parse_movie_id_from_url():
    assert Duga().parse_movie_id_from_url("https://duga.jp/ppv/WAAP-1294/") == "waap-1294"


@pytest.mark.parametrize("work_id", ["glory-4262", "waap-1294"])
def test_get_movie_info_by_id(mocked, work_id):
    _add_page(mocked, f"https://duga.jp/ppv/{work_id}/", _detail_page(work_id))
    info = Duga().get_movie_info_by_id(work_id)
    assert info.is_valid()
    assert info.id == work_id
    assert info.number == work_id.upper()
    assert info.title == f"Title {work_id}"
    assert info.summary == "A summary."
    assert info.provider == "DUGA"
    assert info.thumb_url == "https://duga.jp/images/thumb.jpg"
    assert info.cover_url == "https://duga.jp/images/cover.jpg"
    assert info.maker == "Glory Quest"
    assert info.label == "GQ"
    assert info.series == "Series"
    assert info.director == "Dir A"
    assert info.actors == ["Actor A", "Actor B"]
    assert info.genres == ["G1", "G2"]
    assert info.release_date == date(2022, 3, 1)
    assert info.score == 4.5
    assert info.runtime == 120
    assert info.preview_video_url == "https://duga.jp/sample.mp4"
    assert info.preview_images == ["https://duga.jp/p1.jpg", "https://duga.jp/p2.jpg"]


def test_get_movie_info_fallbacks(mocked):
    page = """<html><head><meta charset="utf-8">
<meta property="og:title" content="OG Title">
<meta property="og:description" content="OG summary">
<meta property="og:image" content="/og.jpg">
</head><body></body></html>"""
    _add_page(mocked, "https://duga.jp/ppv/waap-1294/", page)
    info = Duga().get_movie_info_by_url("https://duga.jp/ppv/waap-1294/")
    assert info.title == "OG Title"
    assert info.summary == "OG summary"
    assert info.thumb_url == "https://duga.jp/og.jpg"
    assert info.cover_url == info.thumb_url
    assert info.id == "waap-1294"
    assert info.number == "WAAP-1294"


def test_search_movie_looks_up_first_three(mocked):
    items = "".join(
        f'<div class="contentslist"><a href="/ppv/dinm-00{n}/">x</a></div>'
        for n in range(1, 5)
    )
    search = f'<html><body><div id="searchresultarea">{items}</div></body></html>'
    _add_page(mocked, "https://duga.jp/search/=/q=DINM/", search)
    for n in range(1, 4):
        _add_page(
            mocked, f"https://duga.jp/ppv/dinm-00{n}/", _detail_page(f"dinm-00{n}")
        )

    results = Duga().search_movie("DINM")
    assert [r.id for r in results] == ["dinm-001", "dinm-002", "dinm-003"]
    assert all(r.is_valid() for r in results)
    assert all("dinm-004" not in call.request.url for call in mocked.calls)


def test_search_movie_without_hits(mocked):
    _add_page(mocked, "https://duga.jp/search/=/q=NONE/", "<html><body></body></html>")
    assert Duga().search_movie("NONE") == []