"""Test the aiohttp Web API client against a local server"""

from contextlib import asynccontextmanager

import pytest
from aiohttp import test_utils, web

from spot_reshuffle.core.exceptions import (
    NotFound,
    RateLimited,
    SpotifyApiError,
    TransientError,
    Unauthorized,
)
from spot_reshuffle.spotify.api import SpotifyWebApi, parse_retry_after

routes = web.RouteTableDef()

ADDED = web.AppKey("added", list)
REMOVED = web.AppKey("removed", list)

PLAYLIST_ITEM = {
    "is_local": False,
    "track": {"uri": "spotify:track:aaa", "is_playable": True, "name": "Song A"},
}
LOCAL_ITEM = {
    "is_local": True,
    "track": {"uri": "spotify:local:Artist:Album:Title:215", "name": "Title"},
}


class StaticTokens:
    """Token provider handing out 't1', then 't2' after invalidate()"""

    def __init__(self):
        self.token = "t1"
        self.invalidated = []

    async def get_token(self):
        return self.token

    async def invalidate(self, stale_token):
        self.invalidated.append(stale_token)
        self.token = "t2"
        return self.token


def _error(status, message):
    return web.json_response({"error": {"status": status, "message": message}}, status=status)


@routes.get("/v1/playlists/{playlist_id}/tracks")
async def playlist_tracks(request):
    playlist_id = request.match_info["playlist_id"]
    if playlist_id == "missing":
        return _error(404, "Not found.")
    if playlist_id == "private":
        return _error(403, "Forbidden.")
    assert request.query["limit"] == "100"
    next_url = f"{request.scheme}://{request.host}/v1/pages/2"
    return web.json_response({"items": [PLAYLIST_ITEM, LOCAL_ITEM], "next": next_url})


@routes.get("/v1/pages/2")
async def second_page(request):
    return web.json_response({"items": [{"track": None}], "next": None})


@routes.get("/v1/me/tracks")
async def liked_tracks(request):
    return web.json_response(
        {"error": {"status": 429, "message": "API rate limit exceeded"}},
        status=429,
        headers={"Retry-After": "3"},
    )


@routes.get("/v1/me")
async def me(request):
    if request.headers["Authorization"] != "Bearer t2":
        return _error(401, "The access token expired")
    return web.json_response({"id": "me"})


@routes.get("/v1/me/playlists")
async def own_playlists(request):
    return web.json_response({
        "items": [{
            "id": "pl1",
            "name": "Mix",
            "owner": {"id": "me"},
            "tracks": {"total": 12},
            "external_urls": {"spotify": "https://open.spotify.com/playlist/pl1"},
        }],
        "next": None,
    })


@routes.post("/v1/users/{user_id}/playlists")
async def create_playlist(request):
    body = await request.json()
    assert body["public"] is False
    return web.json_response({
        "id": "new1",
        "name": body["name"],
        "owner": {"id": request.match_info["user_id"]},
        "tracks": {"total": 0},
    }, status=201)


@routes.post("/v1/playlists/{playlist_id}/tracks")
async def add_tracks(request):
    body = await request.json()
    request.app[ADDED].append(body["uris"])
    return web.json_response({"snapshot_id": "snap-add"}, status=201)


@routes.delete("/v1/playlists/{playlist_id}/tracks")
async def remove_tracks(request):
    body = await request.json()
    request.app[REMOVED].append([entry["uri"] for entry in body["tracks"]])
    return web.json_response({"snapshot_id": "snap-remove"})


@routes.get("/v1/broken")
async def broken(request):
    return _error(502, "Bad gateway")


@routes.get("/v1/bad-request")
async def bad_request(request):
    return _error(400, "Invalid limit")


@routes.get("/v1/not-json")
async def not_json(request):
    return web.Response(text="<html>oops</html>", content_type="text/html")


@asynccontextmanager
async def spotify_server():
    app = web.Application()
    app[ADDED] = []
    app[REMOVED] = []
    app.add_routes(routes)
    async with test_utils.TestServer(app) as server:
        tokens = StaticTokens()
        base_url = str(server.make_url("/v1"))
        async with SpotifyWebApi(tokens, base_url=base_url, market=None) as api:
            yield api, tokens, app


class TestParseRetryAfter:
    """Test Retry-After parsing"""

    def test_values(self):
        """Test seconds, missing and invalid values"""
        assert parse_retry_after("3") == 3.0
        assert parse_retry_after(" 1.5 ") == 1.5
        assert parse_retry_after(None) is None
        assert parse_retry_after("soon") is None
        assert parse_retry_after("-1") is None


class TestSpotifyWebApi:
    """Test requests and status mapping"""

    @pytest.mark.asyncio
    async def test_playlist_pages_follow_cursor(self):
        """Test page decoding and the opaque next cursor"""
        async with spotify_server() as (api, _, _):
            first = await api.list_playlist_items("pl1")
            assert [item.uri for item in first.items] == [
                "spotify:track:aaa",
                "spotify:local:Artist:Album:Title:215",
            ]
            assert first.items[0].is_playable is True
            assert first.items[1].is_local is True
            assert first.next_cursor is not None

            second = await api.list_playlist_items("pl1", first.next_cursor)
            assert second.items[0].uri is None
            assert second.next_cursor is None

    @pytest.mark.asyncio
    async def test_not_found_and_forbidden(self):
        """Test 404 and 403 both map to NotFound"""
        async with spotify_server() as (api, _, _):
            with pytest.raises(NotFound) as exc_info:
                await api.list_playlist_items("missing")
            assert exc_info.value.status == 404

            with pytest.raises(NotFound) as exc_info:
                await api.list_playlist_items("private")
            assert exc_info.value.status == 403

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self):
        """Test 429 maps to RateLimited with the header value"""
        async with spotify_server() as (api, _, _):
            with pytest.raises(RateLimited) as exc_info:
                await api.list_liked_items()
            assert exc_info.value.retry_after == 3.0
            assert "rate limit" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unauthorized_refreshes_once(self):
        """Test a 401 triggers one refresh and one replay"""
        async with spotify_server() as (api, tokens, _):
            assert await api.current_user_id() == "me"
            assert tokens.invalidated == ["t1"]

    @pytest.mark.asyncio
    async def test_unauthorized_after_refresh(self):
        """Test a second 401 surfaces Unauthorized"""
        async with spotify_server() as (api, tokens, _):
            async def stale(_):
                return "t1"
            tokens.invalidate = stale
            with pytest.raises(Unauthorized):
                await api.current_user_id()

    @pytest.mark.asyncio
    async def test_server_and_client_errors(self):
        """Test 5xx is transient and other 4xx is not"""
        async with spotify_server() as (api, _, _):
            with pytest.raises(TransientError):
                await api._request("GET", "/broken")

            with pytest.raises(SpotifyApiError) as exc_info:
                await api._request("GET", "/bad-request")
            assert not isinstance(exc_info.value, TransientError)
            assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_malformed_json_is_transient(self):
        """Test a success answer that is not JSON"""
        async with spotify_server() as (api, _, _):
            with pytest.raises(TransientError):
                await api._request("GET", "/not-json")

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        """Test network failures map to TransientError"""
        async with SpotifyWebApi(StaticTokens(), base_url="http://127.0.0.1:1/v1") as api:
            with pytest.raises(TransientError):
                await api.list_liked_items()

    @pytest.mark.asyncio
    async def test_own_playlists(self):
        """Test playlist listing decoding"""
        async with spotify_server() as (api, _, _):
            page = await api.list_own_playlists()
            playlist = page.items[0]
            assert playlist.id == "pl1"
            assert playlist.owner == "me"
            assert playlist.existing_item_count == 12
            assert playlist.url == "https://open.spotify.com/playlist/pl1"

    @pytest.mark.asyncio
    async def test_create_playlist(self):
        """Test creation for the current user"""
        async with spotify_server() as (api, _, _):
            created = await api.create_playlist("Shuffled")
            assert created.id == "new1"
            assert created.name == "Shuffled"
            assert created.owner == "me"
            assert created.newly_created
            assert created.existing_item_count == 0

    @pytest.mark.asyncio
    async def test_add_and_remove_items(self):
        """Test mutation bodies"""
        async with spotify_server() as (api, _, app):
            uris = ["spotify:track:a", "spotify:track:b"]
            assert await api.add_items("pl1", uris) == "snap-add"
            assert await api.remove_items("pl1", uris) == "snap-remove"
            assert app[ADDED] == [uris]
            assert app[REMOVED] == [uris]

    @pytest.mark.asyncio
    async def test_batch_limit(self):
        """Test more than 100 items are refused before any request"""
        async with spotify_server() as (api, _, app):
            uris = [f"spotify:track:{i}" for i in range(101)]
            with pytest.raises(ValueError):
                await api.add_items("pl1", uris)
            with pytest.raises(ValueError):
                await api.remove_items("pl1", uris)
            assert app[ADDED] == []
            assert app[REMOVED] == []
