"""Test configuration and fixtures"""

import tempfile
from collections import defaultdict
from pathlib import Path

import pytest

from spot_reshuffle.core.context import RunContext
from spot_reshuffle.core.exceptions import NotFound
from spot_reshuffle.core.retry import RetryPolicy
from spot_reshuffle.spotify.api import MAX_ITEMS_PER_REQUEST
from spot_reshuffle.spotify.models import Page, RawTrackItem, TargetCollection


def track(name: str) -> str:
    """Track URI for a short test name"""
    return f"spotify:track:{name}"


class FakeWebApi:
    """
    In-memory Spotify Web API.

    Playlists and Liked Songs are plain lists of RawTrackItem. Listings are
    paginated with `page_size` items per page and integer-offset cursors.

    Failures are scheduled per operation in `failures[operation]`: each
    call pops the next entry and raises it unless it is None.
    """

    def __init__(self, user_id: str = "me", page_size: int = 2):
        self.user_id = user_id
        self.page_size = page_size
        self.items: dict[str, list[RawTrackItem]] = {}
        self.meta: dict[str, dict] = {}
        self.liked: list[RawTrackItem] = []
        self.failures: dict[str, list] = defaultdict(list)
        self.calls: list[tuple] = []
        self.created = 0

    # -- test setup -----------------------------------------------------------

    def add_playlist(self, playlist_id, uris, name=None, owner="someone"):
        self.items[playlist_id] = [self._item(uri) for uri in uris]
        self.meta[playlist_id] = {"name": name or playlist_id, "owner": owner}

    def set_liked(self, uris):
        self.liked = [self._item(uri) for uri in uris]

    def uris(self, playlist_id):
        return [item.uri for item in self.items[playlist_id]]

    def fail(self, operation, *errors):
        self.failures[operation].extend(errors)

    @staticmethod
    def _item(uri):
        if isinstance(uri, RawTrackItem):
            return uri
        return RawTrackItem(uri=uri, is_local=bool(uri and uri.startswith("spotify:local:")))

    # -- API ------------------------------------------------------------------

    def _call(self, operation, *args):
        self.calls.append((operation, *args))
        scheduled = self.failures[operation]
        if scheduled:
            error = scheduled.pop(0)
            if error is not None:
                raise error

    def _page(self, entries, cursor):
        offset = int(cursor) if cursor else 0
        end = offset + self.page_size
        next_cursor = str(end) if end < len(entries) else None
        return Page(items=list(entries[offset:end]), next_cursor=next_cursor)

    def _collection(self, playlist_id, newly_created=False):
        meta = self.meta[playlist_id]
        return TargetCollection(
            id=playlist_id,
            name=meta["name"],
            owner=meta["owner"],
            existing_item_count=len(self.items[playlist_id]),
            url=f"https://open.spotify.com/playlist/{playlist_id}",
            newly_created=newly_created,
        )

    async def list_playlist_items(self, playlist_id, cursor=None):
        self._call("list_playlist_items", playlist_id, cursor)
        if playlist_id not in self.items:
            raise NotFound(f"Playlist {playlist_id} not found", status=404)
        return self._page(self.items[playlist_id], cursor)

    async def list_liked_items(self, cursor=None):
        self._call("list_liked_items", cursor)
        return self._page(self.liked, cursor)

    async def list_own_playlists(self, cursor=None):
        self._call("list_own_playlists", cursor)
        collections = [self._collection(playlist_id) for playlist_id in self.meta]
        return self._page(collections, cursor)

    async def current_user_id(self):
        self._call("current_user_id")
        return self.user_id

    async def create_playlist(self, name):
        self._call("create_playlist", name)
        self.created += 1
        playlist_id = f"created{self.created}"
        self.add_playlist(playlist_id, [], name=name, owner=self.user_id)
        return self._collection(playlist_id, newly_created=True)

    async def remove_items(self, playlist_id, uris):
        self._call("remove_items", playlist_id, list(uris))
        if len(uris) > MAX_ITEMS_PER_REQUEST:
            raise ValueError("too many items")
        removed = set(uris)
        self.items[playlist_id] = [
            item for item in self.items[playlist_id] if item.entry_uri not in removed
        ]
        return "snapshot"

    async def add_items(self, playlist_id, uris):
        self._call("add_items", playlist_id, list(uris))
        if len(uris) > MAX_ITEMS_PER_REQUEST:
            raise ValueError("too many items")
        self.items[playlist_id].extend(self._item(uri) for uri in uris)
        return "snapshot"


class RecordingSleep:
    """Replacement for asyncio.sleep that records the requested delays"""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def fake_api():
    """Empty in-memory Web API for user 'me'"""
    return FakeWebApi()


@pytest.fixture
def context():
    """Fresh run counters"""
    return RunContext()


@pytest.fixture
def policy():
    """Retry policy with three attempts and no jitter"""
    return RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=8.0, jitter=0.0)


@pytest.fixture
def sleep():
    """Recording sleep, so retries never wait"""
    return RecordingSleep()
