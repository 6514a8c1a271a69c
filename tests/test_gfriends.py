from urllib.parse import unquote

import pytest
import requests
import responses

from metatube.provider import InfoNotFoundError
from metatube.providers.gfriends import JSON_URL, GFriends, _FileTree

CONTENT = "https://raw.githubusercontent.com/gfriends/gfriends/master/Content/"

TREE = {
    "Content": {
        "z-Others": {
            "小澤マリア.jpg": "小澤マリア.jpg?t=1",
            "Jane Doe.jpg": "Jane Doe.jpg",
        },
        "a-Studio": {
            "小澤マリア.png": "AI-Fix-小澤マリア.png?t=2",
            "小松凛花.jpg": "小松凛花.jpg",
            "谷あづさ.jpg": "谷あづさ.jpg",
            "若宮はずき.jpg": "若宮はずき.jpg",
            "美竹すず.jpg": "美竹すず.jpg",
        },
    }
}


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.GET, JSON_URL, json=TREE)
        yield rsps


@pytest.mark.parametrize("name", ["小澤マリア", "小松凛花", "谷あづさ", "若宮はずき"])
def test_get_actor_info_by_id(mocked, name):
    info = GFriends().get_actor_info_by_id(name)
    assert info.is_valid()
    assert info.id == name
    assert info.name == name
    assert info.provider == "GFriends"
    assert info.images
    assert all(unquote(image).startswith(CONTENT) for image in info.images)


def test_images_are_in_reverse_order(mocked):
    info = GFriends().get_actor_info_by_id("小澤マリア")
    assert [unquote(image) for image in info.images] == [
        CONTENT + "a-Studio/AI-Fix-小澤マリア.png?t=2",
        CONTENT + "z-Others/小澤マリア.jpg?t=1",
    ]


def test_image_path_is_escaped(mocked):
    info = GFriends().get_actor_info_by_id("Jane Doe")
    assert info.images == [CONTENT + "z-Others/Jane%20Doe.jpg"]


def test_homepage_carries_encoded_id(mocked):
    info = GFriends().get_actor_info_by_id("小松凛花")
    assert info.homepage == (
        "https://github.com/gfriends/gfriends"
        "?gfriends-id=%E5%B0%8F%E6%9D%BE%E5%87%9B%E8%8A%B1"
    )


@pytest.mark.parametrize(
    "url, expected",
    [
        (
            "https://github.com/gfriends/gfriends?gfriends-id=%E5%B0%8F%E6%9D%BE%E5%87%9B%E8%8A%B1",
            "小松凛花",
        ),
        (
            "https://github.com/gfriends/gfriends?gfriends-id=%E8%B0%B7%E3%81%82%E3%81%A5%E3%81%95",
            "谷あづさ",
        ),
    ],
)
def test_get_actor_info_by_url(mocked, url, expected):
    assert GFriends().parse_actor_id_from_url(url) == expected
    info = GFriends().get_actor_info_by_url(url)
    assert info.is_valid()
    assert info.id == expected


def test_parse_actor_id_without_query():
    assert GFriends().parse_actor_id_from_url("https://github.com/gfriends/gfriends") == ""


def test_unknown_actor_raises(mocked):
    with pytest.raises(InfoNotFoundError):
        GFriends().get_actor_info_by_id("Nobody Here")


def test_search_actor(mocked):
    results = GFriends().search_actor("美竹すず")
    assert len(results) == 1
    assert results[0].id == "美竹すず"
    assert results[0].is_valid()


def test_normalize_actor_id_keeps_input():
    assert GFriends().normalize_actor_id("Jane Doe") == "Jane Doe"


def test_file_tree_is_cached(mocked):
    tree = _FileTree(3600)
    first, error = tree.query("小松凛花")
    second, _ = tree.query("小松凛花")
    assert error is None
    assert first == second
    assert len(first) == 1
    assert sum(call.request.url == JSON_URL for call in mocked.calls) == 1


def test_file_tree_reports_fetch_failure():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, JSON_URL, status=500)
        images, error = _FileTree(3600).query("小松凛花")
    assert images == []
    assert isinstance(error, requests.HTTPError)