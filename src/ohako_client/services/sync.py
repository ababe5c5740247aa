"""Coordinates optimistic membership edits with the remote gateway."""

import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from ohako_client.adapters.remote_gateway import RemoteGateway
from ohako_client.domain.errors import (
    GatewayError,
    NotAuthenticatedError,
    StaleMutationError,
)
from ohako_client.domain.models import (
    FollowData,
    MutationResult,
    OptimisticWrite,
    Recommendations,
    RelationKind,
    Track,
    UserIdentity,
    UserPlaylist,
)
from ohako_client.services.membership import MembershipCache
from ohako_client.services.notifications import Notifier
from ohako_client.services.session_store import SessionStore

_TRACK = RelationKind.TRACK_IN_PLAYLIST
_FOLLOW = RelationKind.USER_IS_FOLLOWED

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


class SearchMode(str, Enum):
    SEARCH = "search"
    BY_KEY = "by_key"
    BY_TEMPO = "by_tempo"


@dataclass
class SyncCoordinator:
    """Keeps playlist membership and follow state consistent across views.

    Mutations are applied to the cache before the gateway call and rolled
    back if it fails. Batch loads overwrite the cache from server snapshots,
    skipping keys that still have a mutation in flight so an optimistic value
    is never replaced by a response that predates it.
    """

    gateway: RemoteGateway
    session_store: SessionStore
    cache: MembershipCache
    notifier: Notifier
    _in_flight: Counter[tuple[RelationKind, str]] = field(
        default_factory=Counter, init=False
    )

    async def add_track(self, track_id: str) -> MutationResult:
        """Add a track to the current user's playlist."""
        return await self._mutate_track(track_id, True)

    async def remove_track(self, track_id: str) -> MutationResult:
        """Remove a track from the current user's playlist."""
        return await self._mutate_track(track_id, False)

    async def toggle_track(self, track_id: str) -> MutationResult:
        """Flip playlist membership, treating an unknown state as absent."""
        current = self.cache.get(_TRACK, track_id) or False
        return await self._mutate_track(track_id, not current)

    async def follow_user(self, user_id: int) -> MutationResult:
        """Follow another user."""
        return await self._mutate_follow(user_id, True)

    async def unfollow_user(self, user_id: int) -> MutationResult:
        """Unfollow another user."""
        return await self._mutate_follow(user_id, False)

    async def toggle_follow(self, user_id: int) -> MutationResult:
        """Flip follow state, treating an unknown state as not followed."""
        current = self.cache.get(_FOLLOW, user_id) or False
        return await self._mutate_follow(user_id, not current)

    async def hydrate_playlist_membership(self, track_ids: Iterable[str]) -> None:
        """Resolve playlist membership for the given tracks in one call."""
        ids = {str(track_id) for track_id in track_ids}
        if not ids:
            return
        token = self._require_token("playlist membership hydration")
        playlist = await self._hydrate(
            _TRACK,
            ids,
            lambda: self.gateway.fetch_playlist(token),
            failure="Failed to fetch playlist",
        )
        in_playlist = {track.id for track in playlist}
        self._overwrite(
            _TRACK, {track_id: track_id in in_playlist for track_id in ids}
        )

    async def hydrate_follow_status(self, user_ids: Iterable[int]) -> None:
        """Resolve follow state for the given users in one call."""
        ids = set(user_ids)
        if not ids:
            return
        token = self._require_token("follow status hydration")
        followed = await self._hydrate(
            _FOLLOW,
            ids,
            lambda: self.gateway.fetch_follow_status(token, sorted(ids)),
            failure="Failed to fetch follow status",
        )
        self._overwrite(_FOLLOW, {user_id: user_id in followed for user_id in ids})

    async def load_home(self) -> tuple[Track, ...]:
        """Fetch the user's playlist and treat it as the complete membership set."""
        token = self._require_token("home playlist load")
        tracks = await self._load(
            lambda: self.gateway.fetch_playlist(token),
            failure="Failed to fetch playlist",
        )
        self._reconcile_full(_TRACK, {track.id for track in tracks})
        return tracks

    async def load_search_results(
        self, query: str, mode: SearchMode = SearchMode.BY_KEY
    ) -> Recommendations:
        """Fetch search results and the membership state of each result."""
        token = self._require_token("search")
        if mode is SearchMode.SEARCH:
            tracks = await self._load(
                lambda: self.gateway.search_tracks(token, query),
                failure="Search failed",
            )
            results = Recommendations(reference_track=None, tracks=tracks)
        elif mode is SearchMode.BY_TEMPO:
            results = await self._load(
                lambda: self.gateway.recommend_by_tempo(token, query),
                failure="Search failed",
            )
        else:
            results = await self._load(
                lambda: self.gateway.recommend_by_key(token, query),
                failure="Search failed",
            )
        await self._hydrate_shown(
            self.hydrate_playlist_membership(track.id for track in results.tracks)
        )
        return results

    async def suggest(self, query: str) -> tuple[Track, ...]:
        """Return autocomplete suggestions; failures yield no suggestions."""
        if not query:
            return ()
        token = self._require_token("search suggestions")
        try:
            return await self.gateway.search_tracks(token, query)
        except GatewayError as exc:
            _logger.warning("Suggestion lookup failed for %r: %s", query, exc)
            return ()

    async def load_user_playlist(self, user_id: int) -> UserPlaylist:
        """Fetch another user's playlist and, when logged in, own membership."""
        playlist = await self._load(
            lambda: self.gateway.fetch_user_playlist(user_id),
            failure="Failed to fetch user playlist",
        )
        if self.session_store.current.is_authenticated:
            await self._hydrate_shown(
                self.hydrate_playlist_membership(track.id for track in playlist.tracks)
            )
        return playlist

    async def load_track_listeners(self, track_id: str) -> tuple[UserIdentity, ...]:
        """Fetch users who have a track, excluding the current user."""
        token = self._require_token("track listeners load")
        listeners = await self._load(
            lambda: self.gateway.fetch_track_listeners(token, track_id),
            failure="Failed to fetch listeners",
        )
        me = self.session_store.current.user
        others = tuple(user for user in listeners if user != me)
        await self._hydrate_shown(
            self.hydrate_follow_status(user.id for user in others)
        )
        return others

    async def load_follow_data(self) -> FollowData:
        """Fetch follow lists; the following list is the complete followed set."""
        token = self._require_token("follow data load")
        data = await self._load(
            lambda: self.gateway.fetch_follow_data(token),
            failure="Failed to fetch follow data",
        )
        followed = {str(user.id) for user in data.following}
        extra = {str(user.id) for user in data.followers}
        self._reconcile_full(_FOLLOW, followed, extra)
        return data

    async def load_followed_users(self) -> tuple[UserIdentity, ...]:
        """Fetch the users the current user follows."""
        token = self._require_token("followed users load")
        users = await self._load(
            lambda: self.gateway.fetch_followed_users(token),
            failure="Failed to fetch followed users",
        )
        self._reconcile_full(_FOLLOW, {str(user.id) for user in users})
        return users

    def release_view(self, kind: RelationKind, subject_ids: Iterable[object]) -> None:
        """Forget entries for a view that is no longer shown."""
        self.cache.release(kind, subject_ids)

    async def _mutate_track(self, track_id: str, value: bool) -> MutationResult:
        token = self._require_token("playlist edit")
        call = self.gateway.add_track if value else self.gateway.remove_track
        verb = "added to" if value else "removed from"
        write, baseline = self._apply(_TRACK, track_id, value)
        try:
            playlist = await call(token, track_id)
        except GatewayError as exc:
            self._settle(write)
            self._revert(write, baseline, exc)
            action = "add track to" if value else "remove track from"
            self.notifier.error(f"Failed to {action} playlist")
            return MutationResult(
                subject_id=write.subject_id, value=value, succeeded=False
            )
        self._settle(write)
        if playlist is not None:
            self._reconcile_full(_TRACK, {track.id for track in playlist})
        _logger.info("Track %s %s playlist", track_id, verb)
        self.notifier.success(f"Track {verb} playlist")
        return MutationResult(subject_id=write.subject_id, value=value, succeeded=True)

    async def _mutate_follow(self, user_id: int, value: bool) -> MutationResult:
        token = self._require_token("follow edit")
        call = self.gateway.follow_user if value else self.gateway.unfollow_user
        verb = "follow" if value else "unfollow"
        write, baseline = self._apply(_FOLLOW, user_id, value)
        try:
            await call(token, user_id)
        except GatewayError as exc:
            self._settle(write)
            self._revert(write, baseline, exc)
            self.notifier.error(f"Failed to {verb} user")
            return MutationResult(
                subject_id=write.subject_id, value=value, succeeded=False
            )
        self._settle(write)
        _logger.info("User %s: %s succeeded", user_id, verb)
        self.notifier.success("Followed user" if value else "Unfollowed user")
        return MutationResult(subject_id=write.subject_id, value=value, succeeded=True)

    def _apply(
        self, kind: RelationKind, subject_id: object, value: bool
    ) -> tuple[OptimisticWrite, bool]:
        baseline = self.cache.get(kind, subject_id) or False
        write = self.cache.set_optimistic(kind, subject_id, value)
        self._in_flight[(kind, write.subject_id)] += 1
        return write, baseline

    def _settle(self, write: OptimisticWrite) -> None:
        key = (write.kind, write.subject_id)
        self._in_flight[key] -= 1
        if self._in_flight[key] <= 0:
            del self._in_flight[key]

    def _revert(self, write: OptimisticWrite, baseline: bool, exc: Exception) -> None:
        try:
            self.cache.rollback(
                write.kind, write.subject_id, baseline, version=write.version
            )
        except StaleMutationError as stale:
            _logger.debug("Rollback suppressed: %s", stale)
            return
        _logger.warning(
            "Rolled back %s:%s to %s after failure: %s",
            write.kind.value,
            write.subject_id,
            baseline,
            exc,
        )

    async def _hydrate(
        self,
        kind: RelationKind,
        ids: set[Any],
        fetch: Callable[[], Awaitable[_T]],
        *,
        failure: str,
    ) -> _T:
        self.cache.hydrate(kind, ids)
        waiting = [
            subject_id for subject_id in ids if self.cache.is_pending(kind, subject_id)
        ]
        try:
            return await fetch()
        except GatewayError as exc:
            self.cache.release(
                kind,
                [
                    subject_id
                    for subject_id in waiting
                    if self.cache.is_pending(kind, subject_id)
                ],
            )
            _logger.warning("%s: %s", failure, exc)
            self.notifier.error(failure)
            raise

    async def _hydrate_shown(self, hydration: Awaitable[None]) -> None:
        try:
            await hydration
        except GatewayError:
            _logger.info("Showing results without membership state")

    async def _load(self, fetch: Callable[[], Awaitable[_T]], *, failure: str) -> _T:
        try:
            return await fetch()
        except GatewayError as exc:
            _logger.warning("%s: %s", failure, exc)
            self.notifier.error(failure)
            raise

    def _overwrite(self, kind: RelationKind, mapping: dict[Any, bool]) -> None:
        settled = {
            subject_id: value
            for subject_id, value in mapping.items()
            if (kind, str(subject_id)) not in self._in_flight
        }
        self.cache.set_many(kind, settled)

    def _reconcile_full(
        self,
        kind: RelationKind,
        members: set[str],
        extra: Iterable[str] = (),
    ) -> None:
        """Apply a complete snapshot; known subjects outside it become False."""
        subjects = set(self.cache.known(kind)) | set(extra) | members
        self._overwrite(
            kind, {subject_id: subject_id in members for subject_id in subjects}
        )

    def _require_token(self, action: str) -> str:
        token = self.session_store.current.token
        if token is None:
            _logger.error("%s attempted without a session", action)
            raise NotAuthenticatedError(f"{action} requires a session")
        return token
