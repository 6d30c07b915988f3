"""
Lookup or creation of the target playlist.

The target is identified by name among the playlists *owned* by the
current user. Followed playlists owned by somebody else may carry the
same name but can never be modified, so they are never matched.

Matching rules:
    - Exact, case-sensitive name comparison
    - First match in listing order wins; further matches are reported
    - No match: a new private playlist is created
"""

import asyncio

from spot_reshuffle.core.exceptions import AuthError, ConfigError, Unauthorized
from spot_reshuffle.core.logger import get_logger
from spot_reshuffle.core.retry import RetryPolicy, with_retry
from spot_reshuffle.spotify.api import WebApi
from spot_reshuffle.spotify.models import TargetCollection

logger = get_logger(__name__)


class TargetResolver:
    """Finds the user's playlist with a given name, or creates it."""

    def __init__(
        self,
        api: WebApi,
        policy: RetryPolicy | None = None,
        sleep=asyncio.sleep
    ) -> None:
        self._api = api
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    async def resolve(self, name: str) -> TargetCollection:
        """
        Return the target playlist for a name.

        Args:
            name: Exact playlist name.

        Returns:
            The existing playlist (first match), or a newly created one
            with existing_item_count == 0 and newly_created set.

        Raises:
            ConfigError: If the name is blank.
            AuthError: If the token is rejected even after a refresh.
            SpotifyApiError: If a lookup or the creation fails for good.
        """
        if not name or not name.strip():
            raise ConfigError("Target playlist name must not be blank")

        try:
            return await self._resolve(name)
        except Unauthorized as e:
            raise AuthError(
                f"Spotify rejected the access token while resolving '{name}'",
                details={"target": name}
            ) from e

    async def _resolve(self, name: str) -> TargetCollection:
        user_id = await self._call(self._api.current_user_id, "Current user lookup")
        matches = await self._find_owned(name, user_id)

        if matches:
            target = matches[0]
            if len(matches) > 1:
                logger.warning(
                    f"{len(matches)} playlists named '{name}' found, "
                    f"using the first one ({target.id})"
                )
            logger.info(
                f"Found existing playlist '{name}' with "
                f"{target.existing_item_count} tracks"
            )
            return target

        logger.info(f"Creating new playlist '{name}'")
        target = await self._call(
            lambda: self._api.create_playlist(name),
            f"Creation of playlist '{name}'"
        )
        logger.info(f"Created playlist '{name}' ({target.id})")
        return target

    async def _find_owned(self, name: str, user_id: str) -> list[TargetCollection]:
        matches: list[TargetCollection] = []
        cursor: str | None = None

        while True:
            page = await self._call(
                lambda: self._api.list_own_playlists(cursor),
                "Page of the user's playlists"
            )
            matches.extend(
                playlist for playlist in page.items
                if playlist.name == name and playlist.owner == user_id
            )
            if page.next_cursor is None:
                return matches
            cursor = page.next_cursor

    async def _call(self, call, description: str):
        return await with_retry(call, self._policy, description=description, sleep=self._sleep)
