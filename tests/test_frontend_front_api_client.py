from __future__ import annotations

import asyncio
import http.client
import io
import urllib.error

import pytest

from frontend.front_api_client import (
    ActorLensApiClient,
    ApiClientError,
    CatalogApiClient,
    index_by_normalized_id,
)

HEX = "0123456789abcdef0123456789abcdef"


def test_index_by_normalized_id_skips_non_dict_entries() -> None:
    out = index_by_normalized_id({"0123-4567": {"ageText": "40"}, "x": None, "y": 3})
    assert out == {"01234567": {"ageText": "40"}}
    assert index_by_normalized_id(["nope"]) == {}


def test_fetch_ages_posts_ids_and_indexes_response(urlopen_mock) -> None:
    mock = urlopen_mock(lambda url: {HEX.upper(): {"ageText": "44"}})
    client = ActorLensApiClient(base_url="http://api.local/", timeout_s=3.0)

    out = client.fetch_ages_sync([HEX])

    assert out == {HEX: {"ageText": "44"}}
    call = mock.calls[0]
    assert call.url == "http://api.local/people/ages"
    assert call.method == "POST"
    assert call.body == {"personIds": [HEX]}
    assert call.timeout == 3.0


def test_fetch_ages_empty_list_makes_no_request(urlopen_mock) -> None:
    mock = urlopen_mock(lambda url: {})
    client = ActorLensApiClient(base_url="http://api.local")

    assert asyncio.run(client.fetch_ages([])) == {}
    assert mock.calls == []


def test_async_status_runs_in_thread(urlopen_mock) -> None:
    urlopen_mock(lambda url: {"enabled": True})
    client = ActorLensApiClient(base_url="http://api.local")

    assert asyncio.run(client.fetch_status()) == {"enabled": True}


def test_http_errors_become_api_client_error(urlopen_mock) -> None:
    def router(url: str) -> object:
        raise urllib.error.HTTPError(url, 503, "unavailable", {}, io.BytesIO(b"busy"))

    urlopen_mock(router)
    client = ActorLensApiClient(base_url="http://api.local")

    with pytest.raises(ApiClientError, match="HTTP 503"):
        client.fetch_status_sync()


def test_non_json_body_is_an_error(urlopen_mock) -> None:
    urlopen_mock(lambda url: b"<html>")
    client = ActorLensApiClient(base_url="http://api.local")

    with pytest.raises(ApiClientError):
        client.fetch_status_sync()


@pytest.mark.parametrize(
    "failure",
    [ConnectionResetError(104, "reset by peer"), http.client.IncompleteRead(b"{\"ena")],
)
def test_dropped_connections_become_api_client_error(urlopen_mock, failure) -> None:
    def router(url: str) -> object:
        raise failure

    urlopen_mock(router)
    client = ActorLensApiClient(base_url="http://api.local")

    with pytest.raises(ApiClientError, match="transporte"):
        asyncio.run(client.fetch_ages([HEX]))


def test_undecodable_body_is_an_error(urlopen_mock) -> None:
    urlopen_mock(lambda url: b"\xff\xfe\x00garbage")
    client = ActorLensApiClient(base_url="http://api.local")

    with pytest.raises(ApiClientError, match="no-JSON"):
        client.fetch_status_sync()


def test_catalog_requires_user_id() -> None:
    client = CatalogApiClient(base_url="http://catalog.local", api_key="k", user_id=None)
    with pytest.raises(ApiClientError):
        client.get_item_sync(HEX)


def test_catalog_item_and_query_urls(urlopen_mock) -> None:
    mock = urlopen_mock(lambda url: {"Items": [], "TotalRecordCount": 0} if "PersonIds" in url else {"Name": "X"})
    client = CatalogApiClient(base_url="http://catalog.local", api_key="secret", user_id="u1")

    item = client.get_item_sync(HEX, fields="People")
    page = client.query_items_sync({"PersonIds": HEX, "Limit": "1"})

    assert item == {"Name": "X"}
    assert page == {"Items": [], "TotalRecordCount": 0}
    assert mock.calls[0].url == f"http://catalog.local/Users/u1/Items/{HEX}?Fields=People"
    assert mock.calls[0].headers["x-emby-token"] == "secret"
    assert mock.calls[1].url.startswith("http://catalog.local/Users/u1/Items?PersonIds=")


def test_primary_image_url() -> None:
    client = CatalogApiClient(base_url="http://catalog.local/", user_id="u1")
    assert client.primary_image_url("", width=10, height=20) is None
    url = client.primary_image_url(HEX, width=80, height=120)
    assert url == f"http://catalog.local/Items/{HEX}/Images/Primary?fillWidth=80&fillHeight=120&quality=90"
