"""Domain models for the Ohako client."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class UserIdentity:
    """Represents a user as seen by the client."""

    id: int
    username: str = field(compare=False)
    profile_image_ref: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Track:
    """Represents a track returned by the backend."""

    id: str
    name: str = field(compare=False)
    artists: tuple[str, ...] = field(default=(), compare=False)
    album_name: str = field(default="", compare=False)
    album_image_ref: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Session:
    """Authentication state for the current process."""

    token: str | None = None
    user: UserIdentity | None = None

    def __post_init__(self) -> None:
        if (self.token is None) != (self.user is None):
            raise ValueError("Session token and user must be set together")

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


class RelationKind(str, Enum):
    """Boolean relations tracked by the membership cache."""

    TRACK_IN_PLAYLIST = "track_in_playlist"
    USER_IS_FOLLOWED = "user_is_followed"


@dataclass(frozen=True)
class UserPlaylist:
    """A playlist owned by some user."""

    id: int | None
    name: str
    tracks: tuple[Track, ...]


@dataclass(frozen=True)
class Recommendations:
    """Search or recommendation results, with the track they were derived from."""

    reference_track: Track | None
    tracks: tuple[Track, ...]


@dataclass(frozen=True)
class FollowData:
    """Follow lists and counts for the current user."""

    following: tuple[UserIdentity, ...]
    followers: tuple[UserIdentity, ...]
    following_count: int
    followers_count: int


@dataclass(frozen=True)
class OptimisticWrite:
    """Receipt for an optimistic cache write, used to roll it back."""

    kind: RelationKind
    subject_id: str
    previous: bool | None
    value: bool
    version: int


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a user-triggered membership mutation."""

    subject_id: str
    value: bool
    succeeded: bool
