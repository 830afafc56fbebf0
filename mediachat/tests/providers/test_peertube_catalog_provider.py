"""
Tests for PeerTubeCatalogProvider against an in-process aiohttp server.
"""

import pytest
from aiohttp import web
from aiohttp import test_utils

from mediachat.exceptions import ProviderException
from mediachat.models import AssetState, CaptionRef
from mediachat.providers.custom_providers import PeerTubeCatalogProvider

from ..fakes import INTRO_VTT

VIDEO = {
    "id": 7,
    "uuid": "v1",
    "shortUUID": "s1",
    "name": "Intro to the platform",
    "description": "A short welcome video",
    "duration": 60,
    "state": {"id": 1, "label": "Published"},
    "channel": {"displayName": "Main channel"},
    "files": [
        {"fileUrl": "http://cdn.test/v1-480.mp4", "resolution": {"id": 480}},
        {"fileUrl": "http://cdn.test/v1-720.mp4", "resolution": {"id": 720}},
    ],
    "streamingPlaylists": [
        {
            "playlistUrl": "http://cdn.test/hls/master.m3u8",
            "files": [
                {"fileUrl": "http://cdn.test/hls/v1-360.mp4", "resolution": {"id": 360}},
                {"fileUrl": "http://cdn.test/hls/v1-1080.mp4", "resolution": {"id": 1080}},
            ],
        }
    ],
}

CAPTIONS = {
    "total": 2,
    "data": [
        {"language": {"id": "fr"}, "captionPath": "/lazy-static/video-captions/v1-fr.vtt"},
        {"language": {"id": "en"}, "captionPath": "/lazy-static/video-captions/v1-en.vtt"},
    ],
}

LISTING = {
    "total": 3,
    "data": [
        {"id": 7, "uuid": "v1", "name": "Intro to the platform"},
        {"id": 8, "uuid": "v2", "name": "Advanced usage", "truncatedDescription": "Deep dive",
         "channel": {"displayName": "Main channel"}},
        {"id": 9, "uuid": "v3", "name": "Release notes"},
    ],
}


@pytest.fixture
async def server():
    app = web.Application()
    seen = []

    async def video(request):
        seen.append(dict(request.query))
        if request.match_info["id"] != "v1":
            return web.json_response({"error": "not found"}, status=404)
        return web.json_response(VIDEO)

    async def captions(request):
        return web.json_response(CAPTIONS)

    async def listing(request):
        seen.append(dict(request.query))
        if request.query.get("sort") != "-publishedAt":
            return web.json_response({}, status=400)
        return web.json_response(LISTING)

    async def caption_file(request):
        if request.match_info["name"] == "v1-en.vtt":
            return web.Response(text=INTRO_VTT, content_type="text/vtt")
        return web.Response(status=404)

    async def broken(request):
        return web.Response(status=500)

    app.router.add_get("/api/v1/videos", listing)
    app.router.add_get("/api/v1/videos/broken", broken)
    app.router.add_get("/api/v1/videos/{id}", video)
    app.router.add_get("/api/v1/videos/{id}/captions", captions)
    app.router.add_get("/lazy-static/video-captions/{name}", caption_file)

    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    test_server.seen = seen
    yield test_server
    await test_server.close()


@pytest.fixture
async def provider(server):
    provider = PeerTubeCatalogProvider({"base_url": str(server.make_url("/")), "timeout": 5})
    yield provider
    await provider.close()


async def test_get_asset_normalizes_payload(provider, server):
    asset = await provider.get_asset("v1")

    assert asset.uuid == "v1"
    assert asset.id == "7"
    assert asset.title == "Intro to the platform"
    assert asset.channel_name == "Main channel"
    assert asset.duration_seconds == 60.0
    assert asset.is_ready
    assert asset.best_media_url() == "http://cdn.test/hls/v1-1080.mp4"
    assert asset.preferred_caption("en").url == str(server.make_url("/lazy-static/video-captions/v1-en.vtt"))


async def test_get_asset_missing_returns_none(provider):
    assert await provider.get_asset("nope") is None


async def test_get_asset_server_error_raises(provider):
    with pytest.raises(ProviderException):
        await provider.get_asset("broken")


async def test_list_related_excludes_current(provider, server):
    related = await provider.list_related("v1", limit=2)

    assert [item.id for item in related] == ["v2", "v3"]
    assert related[0].description == "Deep dive"
    assert related[0].channel_name == "Main channel"
    assert server.seen[-1]["count"] == "3"


async def test_fetch_caption(provider, server):
    english = CaptionRef(language="en", url=str(server.make_url("/lazy-static/video-captions/v1-en.vtt")))
    missing = CaptionRef(language="de", url="/lazy-static/video-captions/v1-de.vtt")

    assert await provider.fetch_caption(english) == INTRO_VTT
    assert await provider.fetch_caption(missing) is None


def test_payload_without_streaming_files_uses_playlist():
    payload = {
        "id": 3,
        "uuid": "v3",
        "name": "Live replay",
        "state": {"id": AssetState.TO_TRANSCODE},
        "streamingPlaylists": [{"playlistUrl": "http://cdn.test/hls/master.m3u8", "files": []}],
        "files": [{"fileUrl": "http://cdn.test/v3.mp4", "resolution": {"id": 720}}],
    }
    asset = PeerTubeCatalogProvider._asset_from_payload(payload, [], "http://peertube.test/")

    assert asset.best_media_url() == "http://cdn.test/hls/master.m3u8"
    assert not asset.is_ready
    assert asset.captions == []


def test_payload_caption_urls_are_absolute():
    captions = [{"language": {"id": "en"}, "fileUrl": "http://cdn.test/captions/en.vtt"},
                {"language": {"id": "fr"}, "captionPath": "/lazy-static/video-captions/fr.vtt"},
                {"language": {"id": "de"}}]
    asset = PeerTubeCatalogProvider._asset_from_payload({"id": 1}, captions, "http://peertube.test/")

    assert [c.url for c in asset.captions] == [
        "http://cdn.test/captions/en.vtt",
        "http://peertube.test/lazy-static/video-captions/fr.vtt",
    ]
    assert asset.uuid == "1"
    assert asset.best_media_url() is None
