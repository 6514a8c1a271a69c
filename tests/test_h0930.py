import pytest
import responses

from metatube.provider import ProviderError, iter_movie_factories, parse_runtime
from metatube.providers.h0930 import C0930, H0930, H4610

PAGE = """<html><head><meta charset="utf-8">
<script type="application/ld+json">
{"name": "JSON Title", "image": "/moviepages/{id}/images/main.jpg",
 "description": "A summary.", "releasedEvent": {"startDate": "2022-09-13"},
 "video": {"duration": "PT1H2M", "actor": "Actor A", "provider": ""},
 "aggregateRating": {"ratingValue": "4.5"}}
</script>
</head><body>
<div id="moviePlay"><div class="moviePlay_title"><h1><span>Page Title</span></h1></div></div>
<div id="movieInfo"><section><dl>
<dt>年齢</dt><dd>25</dd>
<dt>プレイ内容</dt><dd>Kiss&nbsp;Hug&nbsp;</dd>
<dt>動画</dt><dd>70分</dd>
</dl></section></div>
<video id="movieContent" poster="/moviepages/{id}/images/poster.jpg"><source src="/moviepages/{id}/sample.mp4"></video>
<div id="movieGallery"><script type="text/javascript">
a href="/moviepages/{id}/images/g1.jpg" b href="/member/x.jpg"
</script></div>
</body></html>"""


def _page(movie_id):
    return PAGE.replace("{id}", movie_id).encode("utf-8")


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.mark.parametrize(
    "movie_id", ["ori1643", "ori1492", "ori1396", "orijuku823", "orimrs695"]
)
def test_h0930_get_movie_info_by_id(rsps, movie_id):
    url = f"https://www.h0930.com/moviepages/{movie_id}/index.html"
    rsps.add(responses.GET, url, body=_page(movie_id), content_type="text/html")
    info = H0930().get_movie_info_by_id(movie_id)
    assert info.is_valid()
    assert info.id == movie_id
    assert info.homepage == url
    assert info.number == f"h0930-{movie_id}"


@pytest.mark.parametrize("movie_id", ["ki220913", "hitozuma1391", "hitozuma1371"])
def test_c0930_get_movie_info_by_id(rsps, movie_id):
    url = f"https://www.c0930.com/moviepages/{movie_id}/index.html"
    rsps.add(responses.GET, url, body=_page(movie_id), content_type="text/html")
    info = C0930().get_movie_info_by_id(movie_id)
    assert info.is_valid()
    assert info.id == movie_id
    assert info.homepage == url
    assert info.number == f"c0930-{movie_id}"


@pytest.mark.parametrize("movie_id", ["tk0047", "pla0051", "tk0062", "tk0050"])
def test_h4610_get_movie_info_by_id(rsps, movie_id):
    url = f"https://www.h4610.com/moviepages/{movie_id}/index.html"
    rsps.add(responses.GET, url, body=_page(movie_id), content_type="text/html")
    info = H4610().get_movie_info_by_id(movie_id)
    assert info.is_valid()
    assert info.id == movie_id
    assert info.homepage == url
    assert info.number == f"h4610-{movie_id}"


def test_fields_are_parsed(rsps):
    url = "https://www.h0930.com/moviepages/ori1643/index.html"
    rsps.add(responses.GET, url, body=_page("ori1643"), content_type="text/html")
    info = H0930().get_movie_info_by_url(url)
    assert info.title == "Page Title"
    assert info.summary == "A summary."
    assert info.provider == "H0930"
    assert info.maker == "エッチな0930"
    assert info.actors == ["Actor A"]
    assert info.genres == ["Kiss", "Hug"]
    assert info.runtime == parse_runtime("PT1H2M")
    assert info.score == 4.5
    assert info.release_date.isoformat() == "2022-09-13"
    assert info.cover_url == "https://www.h0930.com/moviepages/ori1643/images/poster.jpg"
    assert info.thumb_url == info.cover_url
    assert info.preview_video_url == "https://www.h0930.com/moviepages/ori1643/sample.mp4"
    assert info.preview_images == ["/moviepages/ori1643/images/g1.jpg"]


def test_missing_page_raises(rsps):
    url = "https://www.h4610.com/moviepages/tk0047/index.html"
    rsps.add(responses.GET, url, status=404)
    with pytest.raises(ProviderError):
        H4610().get_movie_info_by_id("tk0047")


def test_parse_movie_id_from_url():
    provider = C0930()
    url = "https://www.c0930.com/moviepages/ki220913/index.html"
    assert provider.parse_movie_id_from_url(url) == "ki220913"


@pytest.mark.parametrize(
    "cls, raw, want",
    [
        (H0930, "ori1643", "ori1643"),
        (H0930, "H0930-ORI1643", "ori1643"),
        (H0930, "h0930_orijuku823", "orijuku823"),
        (C0930, "C0930-ki220913", "ki220913"),
        (H4610, "H4610_TK0047", "tk0047"),
        (H4610, "tk-0047", ""),
        (H0930, "", ""),
    ],
)
def test_normalize_movie_id(cls, raw, want):
    assert cls().normalize_movie_id(raw) == want


def test_factories_registered():
    factories = dict(iter_movie_factories())
    assert factories["H0930"]().normalize_movie_id("H0930-ORI1643") == "ori1643"
    assert factories["C0930"]().normalize_movie_id("C0930-ki220913") == "ki220913"
    assert factories["H4610"]().normalize_movie_id("H4610_TK0047") == "tk0047"