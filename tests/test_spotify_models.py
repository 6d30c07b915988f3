"""Test Spotify data models"""

import pytest

from spot_reshuffle.core.exceptions import SyncFailure, SyncStage, TransientError
from spot_reshuffle.spotify.models import (
    RawTrackItem,
    SourceKind,
    SourceSpec,
    SourceType,
    TargetCollection,
    TrackRef,
)


class TestSpotifyModels:
    """Test Spotify data models"""

    def test_track_ref_identity(self):
        """Test equality and hashing use the URI only"""
        from_playlist = TrackRef("spotify:track:abc", SourceKind.PLAYLIST_TRACK, "playlist p1")
        from_liked = TrackRef("spotify:track:abc", SourceKind.LIKED_TRACK, "Liked Songs")

        assert from_playlist == from_liked
        assert hash(from_playlist) == hash(from_liked)
        assert len({from_playlist, from_liked}) == 1
        assert from_playlist != TrackRef("spotify:track:def")

    def test_source_spec(self):
        """Test source constructors and display names"""
        playlist = SourceSpec.playlist("spotify:playlist:37i9dQZF1DXcBWIGoYBM5M")
        assert playlist.source_type == SourceType.PLAYLIST
        assert playlist.playlist_id == "37i9dQZF1DXcBWIGoYBM5M"
        assert str(playlist) == "playlist 37i9dQZF1DXcBWIGoYBM5M"
        assert playlist.track_kind == SourceKind.PLAYLIST_TRACK

        liked = SourceSpec.liked()
        assert liked.is_liked
        assert liked.playlist_id is None
        assert str(liked) == "Liked Songs"
        assert liked.track_kind == SourceKind.LIKED_TRACK

    def test_source_spec_rejects_other_objects(self):
        """Test album URLs are not playlist sources"""
        with pytest.raises(ValueError):
            SourceSpec.playlist("https://open.spotify.com/album/4iV5W9uYEdYUVa79Axb7Rh")

    def test_raw_track_item_from_playlist_item(self):
        """Test playlist item decoding"""
        item = RawTrackItem.from_spotify_api({
            "is_local": False,
            "track": {"uri": "spotify:track:abc", "is_playable": False, "name": "Song"},
        })
        assert item.uri == "spotify:track:abc"
        assert item.is_playable is False
        assert not item.is_local
        assert item.name == "Song"

    def test_raw_track_item_relinked(self):
        """Test the entry URI of a track relinked for the market"""
        item = RawTrackItem.from_spotify_api({
            "track": {
                "uri": "spotify:track:new",
                "linked_from": {"uri": "spotify:track:old"},
            },
        })
        assert item.uri == "spotify:track:new"
        assert item.entry_uri == "spotify:track:old"
        assert RawTrackItem("spotify:track:abc").entry_uri == "spotify:track:abc"

    def test_raw_track_item_edge_cases(self):
        """Test deleted tracks and local files"""
        deleted = RawTrackItem.from_spotify_api({"track": None})
        assert deleted.uri is None

        local = RawTrackItem.from_spotify_api({
            "is_local": True,
            "track": {"uri": "spotify:local:a:b:c:1"},
        })
        assert local.is_local
        assert local.is_playable is None

    def test_target_collection(self):
        """Test playlist object decoding, old and new item totals"""
        data = {
            "id": "pl1",
            "name": "Mix",
            "owner": {"id": "me"},
            "tracks": {"total": 42},
            "external_urls": {"spotify": "https://open.spotify.com/playlist/pl1"},
        }
        target = TargetCollection.from_spotify_api(data)
        assert target.existing_item_count == 42
        assert target.owner == "me"
        assert not target.newly_created

        newer = TargetCollection.from_spotify_api(
            {"id": "pl2", "name": "New", "owner": {"id": "me"}, "items": {"total": 3}},
            newly_created=True,
        )
        assert newer.existing_item_count == 3
        assert newer.url is None
        assert newer.newly_created


class TestSyncFailure:
    """Test SyncFailure reporting"""

    def test_message_names_stage_and_count(self):
        """Test the message wording per stage"""
        populating = SyncFailure(SyncStage.POPULATING, 200, TransientError("503"))
        assert "populating" in str(populating)
        assert "200 tracks added" in str(populating)
        assert populating.details["items_completed"] == 200

        clearing = SyncFailure(SyncStage.CLEARING, 100, TransientError("503"))
        assert "100 tracks removed" in str(clearing)
