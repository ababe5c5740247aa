"""Shared test fixtures."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from ohako_client.adapters.remote_gateway import RemoteGateway
from ohako_client.config import Settings
from ohako_client.domain.errors import (
    InvalidCredentialsError,
    NetworkError,
    NotFoundError,
    UsernameTakenError,
)
from ohako_client.domain.models import (
    FollowData,
    Recommendations,
    Track,
    UserIdentity,
    UserPlaylist,
)
from ohako_client.services.membership import MembershipCache
from ohako_client.services.notifications import RecordingNotifier
from ohako_client.services.session_store import SessionStorage, SessionStore
from ohako_client.services.sync import SyncCoordinator

ME = UserIdentity(id=1, username="me", profile_image_ref=None)
ALICE = UserIdentity(id=2, username="alice", profile_image_ref="alice.png")
BOB = UserIdentity(id=3, username="bob", profile_image_ref=None)


def make_track(track_id: str, name: str | None = None) -> Track:
    return Track(
        id=track_id,
        name=name or f"Song {track_id}",
        artists=("Artist",),
        album_name="Album",
        album_image_ref=None,
    )


@dataclass
class InMemorySessionStorage(SessionStorage):
    """In-memory durable storage for tests."""

    records: dict[str, str] = field(default_factory=dict)
    fail_reads: bool = False

    def read(self, name: str) -> str | None:
        if self.fail_reads:
            raise OSError("storage unavailable")
        return self.records.get(name)

    def write(self, name: str, value: str) -> None:
        self.records[name] = value

    def delete(self, name: str) -> None:
        self.records.pop(name, None)


@dataclass
class FakeRemoteGateway(RemoteGateway):
    """Fake gateway backed by in-memory server state."""

    playlist: list[Track] = field(default_factory=list)
    followed: set[int] = field(default_factory=set)
    followers: list[UserIdentity] = field(default_factory=list)
    users: dict[int, UserIdentity] = field(
        default_factory=lambda: {user.id: user for user in (ME, ALICE, BOB)}
    )
    listeners: dict[str, list[UserIdentity]] = field(default_factory=dict)
    user_playlists: dict[int, UserPlaylist] = field(default_factory=dict)
    catalog: list[Track] = field(default_factory=list)
    reference_track: Track | None = None
    return_playlist_on_mutation: bool = False
    failing: set[str] = field(default_factory=set)
    calls: list[tuple[str, object]] = field(default_factory=list)

    def _record(self, operation: str, argument: object = None) -> None:
        self.calls.append((operation, argument))
        if operation in self.failing:
            raise NetworkError(f"{operation} failed")

    async def authenticate(
        self, username: str, password: str
    ) -> tuple[str, UserIdentity]:
        self._record("authenticate", username)
        if password != "secret":
            raise InvalidCredentialsError("bad credentials")
        user = next(u for u in self.users.values() if u.username == username)
        return f"token-{user.id}", user

    async def register(self, username: str, password: str) -> tuple[str, UserIdentity]:
        self._record("register", username)
        if any(u.username == username for u in self.users.values()):
            raise UsernameTakenError(username)
        user = UserIdentity(id=max(self.users) + 1, username=username)
        self.users[user.id] = user
        return f"token-{user.id}", user

    async def fetch_playlist(self, token: str) -> tuple[Track, ...]:
        self._record("fetch_playlist")
        return tuple(self.playlist)

    async def add_track(self, token: str, track_id: str) -> tuple[Track, ...] | None:
        self._record("add_track", track_id)
        if all(track.id != track_id for track in self.playlist):
            self.playlist.append(make_track(track_id))
        return tuple(self.playlist) if self.return_playlist_on_mutation else None

    async def remove_track(
        self, token: str, track_id: str
    ) -> tuple[Track, ...] | None:
        self._record("remove_track", track_id)
        self.playlist = [track for track in self.playlist if track.id != track_id]
        return tuple(self.playlist) if self.return_playlist_on_mutation else None

    async def fetch_follow_status(
        self, token: str, user_ids: Iterable[int]
    ) -> frozenset[int]:
        ids = list(user_ids)
        self._record("fetch_follow_status", ids)
        return frozenset(user_id for user_id in ids if user_id in self.followed)

    async def follow_user(self, token: str, user_id: int) -> None:
        self._record("follow_user", user_id)
        self.followed.add(user_id)

    async def unfollow_user(self, token: str, user_id: int) -> None:
        self._record("unfollow_user", user_id)
        self.followed.discard(user_id)

    async def fetch_followed_users(self, token: str) -> tuple[UserIdentity, ...]:
        self._record("fetch_followed_users")
        return tuple(self.users[user_id] for user_id in sorted(self.followed))

    async def fetch_follow_data(self, token: str) -> FollowData:
        self._record("fetch_follow_data")
        following = tuple(self.users[user_id] for user_id in sorted(self.followed))
        return FollowData(
            following=following,
            followers=tuple(self.followers),
            following_count=len(following),
            followers_count=len(self.followers),
        )

    async def fetch_track_listeners(
        self, token: str, track_id: str
    ) -> tuple[UserIdentity, ...]:
        self._record("fetch_track_listeners", track_id)
        return tuple(self.listeners.get(track_id, []))

    async def fetch_user_playlist(self, user_id: int) -> UserPlaylist:
        self._record("fetch_user_playlist", user_id)
        if user_id not in self.user_playlists:
            raise NotFoundError(f"no playlist for {user_id}")
        return self.user_playlists[user_id]

    async def search_tracks(self, token: str, query: str) -> tuple[Track, ...]:
        self._record("search_tracks", query)
        return tuple(track for track in self.catalog if query in track.name)

    async def recommend_by_key(self, token: str, query: str) -> Recommendations:
        self._record("recommend_by_key", query)
        return Recommendations(
            reference_track=self.reference_track, tracks=tuple(self.catalog)
        )

    async def recommend_by_tempo(self, token: str, query: str) -> Recommendations:
        self._record("recommend_by_tempo", query)
        return Recommendations(
            reference_track=self.reference_track, tracks=tuple(self.catalog)
        )

    async def update_profile(
        self, token: str, fields: Mapping[str, object]
    ) -> UserIdentity:
        self._record("update_profile", dict(fields))
        user = self.users[ME.id]
        image = fields.get("profile_image", user.profile_image_ref)
        updated = UserIdentity(
            id=user.id,
            username=str(fields.get("username", user.username)),
            profile_image_ref=image if isinstance(image, str) else None,
        )
        self.users[user.id] = updated
        return updated


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_base_url="https://api.test/",
        state_dir=tmp_path / "state",
    )


@pytest.fixture
def storage() -> InMemorySessionStorage:
    return InMemorySessionStorage()


@pytest.fixture
def session_store(storage: InMemorySessionStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def logged_in_store(session_store: SessionStore) -> SessionStore:
    session_store.login("token-1", ME)
    return session_store


@pytest.fixture
def gateway() -> FakeRemoteGateway:
    return FakeRemoteGateway()


@pytest.fixture
def cache() -> MembershipCache:
    return MembershipCache()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def coordinator(
    gateway: FakeRemoteGateway,
    logged_in_store: SessionStore,
    cache: MembershipCache,
    notifier: RecordingNotifier,
) -> SyncCoordinator:
    return SyncCoordinator(
        gateway=gateway,
        session_store=logged_in_store,
        cache=cache,
        notifier=notifier,
    )
