from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from reddit_fetch.adapters.reddit_client import RedditClient
from reddit_fetch.adapters.reddit_mapper import parse_listing
from reddit_fetch.core.errors import TransientFetchError


def _listing(*posts: dict) -> dict:
    return {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": post} for post in posts]}}


IMAGE_POST = {
    "id": "abc123",
    "title": "Sunrise over the lake [OC]",
    "url": "https://i.redd.it/abc123.jpg",
    "post_hint": "image",
    "created_utc": 1717232400.0,
    "is_video": False,
}


def test_parse_listing_maps_image_post() -> None:
    [candidate] = parse_listing(_listing(IMAGE_POST))
    assert candidate.post_id == "abc123"
    assert candidate.title == "Sunrise over the lake [OC]"
    assert candidate.url == "https://i.redd.it/abc123.jpg"
    assert candidate.created_at == datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
    assert candidate.is_image_post


def test_parse_listing_flags_videos_and_links() -> None:
    video = {**IMAGE_POST, "id": "vid", "post_hint": "hosted:video", "is_video": True}
    link = {**IMAGE_POST, "id": "lnk", "post_hint": "link"}
    candidates = parse_listing(_listing(video, link))
    assert [candidate.is_image_post for candidate in candidates] == [False, False]


def test_parse_listing_unescapes_urls() -> None:
    post = {**IMAGE_POST, "url": "https://preview.redd.it/x.jpg?width=640&amp;s=abc"}
    [candidate] = parse_listing(_listing(post))
    assert candidate.url == "https://preview.redd.it/x.jpg?width=640&s=abc"


def test_parse_listing_drops_entries_without_timestamp() -> None:
    broken = {key: value for key, value in IMAGE_POST.items() if key != "created_utc"}
    assert parse_listing(_listing(broken)) == []


def test_parse_listing_rejects_non_listing_payload() -> None:
    with pytest.raises(ValueError):
        parse_listing({"error": 403})


class _Recorder:
    def __init__(self, listing_status: int = 200, token_body: object = None) -> None:
        self.listing_status = listing_status
        self.token_body = token_body if token_body is not None else {"access_token": "tok", "expires_in": 3600}
        self.token_requests = 0
        self.listing_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/access_token":
            self.token_requests += 1
            return httpx.Response(200, json=self.token_body)
        if request.url.path.startswith("/r/"):
            self.listing_requests.append(request)
            return httpx.Response(self.listing_status, json=_listing(IMAGE_POST))
        if request.url.host == "i.redd.it":
            return httpx.Response(200, content=b"jpeg-bytes", headers={"Content-Type": "image/jpeg"})
        return httpx.Response(404)


def _client(handler) -> RedditClient:
    return RedditClient(
        client_id="id",
        client_secret="secret",
        user_agent="reddit-fetch/test",
        posts_per_source=10,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_fetch_candidates_reuses_token() -> None:
    recorder = _Recorder()

    async def scenario():
        async with _client(recorder) as client:
            first = await client.fetch_candidates("EarthPorn")
            second = await client.fetch_candidates("wallpapers")
        return first, second

    first, second = asyncio.run(scenario())

    assert recorder.token_requests == 1
    assert [c.post_id for c in first] == ["abc123"]
    assert len(second) == 1
    request = recorder.listing_requests[0]
    assert request.url.path == "/r/EarthPorn/new"
    assert request.url.params["limit"] == "10"
    assert request.headers["Authorization"] == "Bearer tok"
    assert request.headers["User-Agent"] == "reddit-fetch/test"


def test_server_error_is_transient() -> None:
    async def scenario():
        async with _client(_Recorder(listing_status=503)) as client:
            await client.fetch_candidates("EarthPorn")

    with pytest.raises(TransientFetchError):
        asyncio.run(scenario())


def test_timeout_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async def scenario():
        async with _client(handler) as client:
            await client.fetch_candidates("EarthPorn")

    with pytest.raises(TransientFetchError):
        asyncio.run(scenario())


def test_download_reports_content_type() -> None:
    async def scenario():
        async with _client(_Recorder()) as client:
            return await client.download("https://i.redd.it/abc123.jpg")

    media = asyncio.run(scenario())

    assert media.content == b"jpeg-bytes"
    assert media.media_type == "image/jpeg"


def test_download_not_found_is_transient() -> None:
    async def scenario():
        async with _client(_Recorder()) as client:
            await client.download("https://example.com/gone.jpg")

    with pytest.raises(TransientFetchError):
        asyncio.run(scenario())


def test_token_payload_that_is_not_an_object_is_transient() -> None:
    recorder = _Recorder(token_body=[])

    async def scenario():
        async with _client(recorder) as client:
            await client.fetch_candidates("EarthPorn")

    with pytest.raises(TransientFetchError):
        asyncio.run(scenario())
    assert recorder.listing_requests == []


def test_token_with_bad_expiry_is_transient() -> None:
    async def scenario():
        async with _client(_Recorder(token_body={"access_token": "tok", "expires_in": "soon"})) as client:
            await client.fetch_candidates("EarthPorn")

    with pytest.raises(TransientFetchError):
        asyncio.run(scenario())


def test_token_without_expiry_uses_default() -> None:
    recorder = _Recorder(token_body={"access_token": "tok", "expires_in": None})

    async def scenario():
        async with _client(recorder) as client:
            await client.fetch_candidates("EarthPorn")
            await client.fetch_candidates("wallpapers")

    asyncio.run(scenario())

    assert recorder.token_requests == 1
