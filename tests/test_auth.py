"""Test the Spotify token provider"""

import asyncio
import time

import pytest
from spotipy.oauth2 import SpotifyOauthError

from spot_reshuffle.core.exceptions import AuthError
from spot_reshuffle.spotify.auth import SpotifyTokenProvider

NOW = 1000.0


class FakeCacheHandler:
    def __init__(self):
        self.token_info = None

    def get_cached_token(self):
        return self.token_info


class FakeAuthManager:
    """Stand-in for spotipy's SpotifyOAuth"""

    def __init__(self, lifetime=3600, error=None, token="token"):
        self.cache_handler = FakeCacheHandler()
        self.lifetime = lifetime
        self.error = error
        self.token = token
        self.access_calls = 0
        self.refresh_calls = 0

    def get_access_token(self, as_dict=False):
        self.access_calls += 1
        time.sleep(0.01)  # blocking, like the real HTTP call
        if self.error is not None:
            raise self.error
        if self.token is None:
            return None
        token = f"{self.token}{self.access_calls}"
        self.cache_handler.token_info = {
            "access_token": token,
            "refresh_token": "refresh",
            "expires_at": NOW + self.lifetime,
        }
        return token

    def refresh_access_token(self, refresh_token):
        self.refresh_calls += 1
        info = {
            "access_token": f"refreshed{self.refresh_calls}",
            "refresh_token": refresh_token,
            "expires_at": NOW + self.lifetime,
        }
        self.cache_handler.token_info = info
        return info


class TestSpotifyTokenProvider:
    """Test single-flight token handling"""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self):
        """Test concurrent get_token() calls trigger a single fetch"""
        manager = FakeAuthManager()
        provider = SpotifyTokenProvider(manager, clock=lambda: NOW)

        tokens = await asyncio.gather(*(provider.get_token() for _ in range(10)))

        assert set(tokens) == {"token1"}
        assert manager.access_calls == 1
        assert provider.refresh_count == 1

    @pytest.mark.asyncio
    async def test_fresh_token_is_reused(self):
        """Test no fetch while the token is fresh"""
        manager = FakeAuthManager()
        provider = SpotifyTokenProvider(manager, clock=lambda: NOW)

        await provider.get_token()
        await provider.get_token()

        assert manager.access_calls == 1

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self):
        """Test a token close to expiry is replaced"""
        now = [NOW]
        manager = FakeAuthManager(lifetime=3600)
        provider = SpotifyTokenProvider(manager, refresh_margin=60, clock=lambda: now[0])

        assert await provider.get_token() == "token1"
        now[0] = NOW + 3550
        assert await provider.get_token() == "token2"

    @pytest.mark.asyncio
    async def test_invalidate_forces_one_refresh(self):
        """Test callers holding the same stale token share one refresh"""
        manager = FakeAuthManager()
        provider = SpotifyTokenProvider(manager, clock=lambda: NOW)
        stale = await provider.get_token()

        tokens = await asyncio.gather(*(provider.invalidate(stale) for _ in range(5)))

        assert set(tokens) == {"refreshed1"}
        assert manager.refresh_calls == 1
        assert await provider.get_token() == "refreshed1"

    @pytest.mark.asyncio
    async def test_oauth_error_becomes_auth_error(self):
        """Test spotipy errors surface as AuthError"""
        manager = FakeAuthManager(error=SpotifyOauthError("invalid_client"))
        provider = SpotifyTokenProvider(manager, clock=lambda: NOW)

        with pytest.raises(AuthError):
            await provider.get_token()

    @pytest.mark.asyncio
    async def test_missing_token_is_auth_error(self):
        """Test an empty answer is not accepted as a token"""
        manager = FakeAuthManager(token=None)
        provider = SpotifyTokenProvider(manager, clock=lambda: NOW)

        with pytest.raises(AuthError):
            await provider.get_token()
