"""Tests for the tracker API client."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from source_verifier.errors import TrackerApiError
from source_verifier.tracker import TrackerClient
from tests.helpers import AJAX_URL, TORRENT_BUFFER, TRACKER_URL, torrent_response


async def call(method: str, *args):
    async with TrackerClient(TRACKER_URL, "secret-key", rate_limit_seconds=0) as client:
        return await getattr(client, method)(*args)


def test_get_torrent(httpx_mock):
    httpx_mock.add_response(url=f"{AJAX_URL}?action=torrent&id=123", json=torrent_response())

    response = asyncio.run(call("get_torrent", 123))

    assert response["torrent"]["id"] == 123
    assert response["group"]["id"] == 45
    request = httpx_mock.get_requests()[0]
    assert request.headers["Authorization"] == "secret-key"
    assert request.headers["User-Agent"].startswith("source-verifier/")


def test_get_torrent_group(httpx_mock):
    httpx_mock.add_response(
        url=f"{AJAX_URL}?action=torrentgroup&id=45",
        json={"status": "success", "response": {"group": {"id": 45}, "torrents": []}},
    )
    response = asyncio.run(call("get_torrent_group", 45))
    assert response == {"group": {"id": 45}, "torrents": []}


def test_api_failure_status(httpx_mock):
    httpx_mock.add_response(json={"status": "failure", "error": "bad id parameter"})
    with pytest.raises(TrackerApiError, match="bad id parameter"):
        asyncio.run(call("get_torrent", 1))


def test_http_error_status(httpx_mock):
    httpx_mock.add_response(status_code=502)
    with pytest.raises(TrackerApiError) as exc_info:
        asyncio.run(call("get_torrent", 1))
    assert exc_info.value.status_code == 502


def test_invalid_json(httpx_mock):
    httpx_mock.add_response(text="<html>maintenance</html>")
    with pytest.raises(TrackerApiError, match="invalid JSON"):
        asyncio.run(call("get_torrent", 1))


def test_transport_error(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    with pytest.raises(TrackerApiError, match="connection refused"):
        asyncio.run(call("get_torrent", 1))


def test_download_torrent_file(httpx_mock):
    httpx_mock.add_response(
        url=f"{AJAX_URL}?action=download&id=123",
        content=TORRENT_BUFFER,
        headers={"Content-Type": "application/x-bittorrent"},
    )
    assert asyncio.run(call("get_torrent_file_as_buffer", 123)) == TORRENT_BUFFER


def test_download_failure_reported_as_json(httpx_mock):
    httpx_mock.add_response(json={"status": "failure", "error": "not found"})
    with pytest.raises(TrackerApiError, match="not found"):
        asyncio.run(call("get_torrent_file_as_buffer", 123))


def test_download_failure_with_invalid_json(httpx_mock):
    httpx_mock.add_response(
        content=b'{"status": "fail', headers={"Content-Type": "application/json"}
    )
    with pytest.raises(TrackerApiError, match="invalid JSON"):
        asyncio.run(call("get_torrent_file_as_buffer", 123))


def test_download_failure_with_non_object_json(httpx_mock):
    httpx_mock.add_response(json=["not", "an", "object"])
    with pytest.raises(TrackerApiError, match="unknown error"):
        asyncio.run(call("get_torrent_file_as_buffer", 123))


def test_rate_limit_waits_between_requests(httpx_mock, monkeypatch):
    httpx_mock.add_response(url=f"{AJAX_URL}?action=torrent&id=1", json=torrent_response(1))
    httpx_mock.add_response(url=f"{AJAX_URL}?action=torrent&id=2", json=torrent_response(2))
    sleeps: list[float] = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr("source_verifier.tracker.asyncio.sleep", fake_sleep)

    async def run():
        async with TrackerClient(TRACKER_URL, "key", rate_limit_seconds=60) as client:
            await client.get_torrent(1)
            await client.get_torrent(2)

    asyncio.run(run())

    # The first request goes out immediately
    waits = [seconds for seconds in sleeps if seconds > 0]
    assert len(waits) == 1
    assert waits[0] <= 60
