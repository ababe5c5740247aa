"""Pydantic models for Ohako backend payloads."""

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ohako_client.domain.models import (
    FollowData,
    Recommendations,
    Track,
    UserIdentity,
    UserPlaylist,
)


class UserPayload(BaseModel):
    """User payload."""

    id: int
    username: str
    profile_image: str | None = None

    def to_domain(self) -> UserIdentity:
        return UserIdentity(
            id=self.id,
            username=self.username,
            profile_image_ref=self.profile_image,
        )


class TrackPayload(BaseModel):
    """Track payload.

    Search endpoints send ``id`` and a list of artists; playlist endpoints
    send ``spotify_id`` and a comma-joined artist string.
    """

    id: str = Field(validation_alias=AliasChoices("id", "spotify_id"))
    name: str
    artists: list[str] = Field(default_factory=list)
    album_name: str = ""
    album_image: str | None = None

    @field_validator("artists", mode="before")
    @classmethod
    def _split_artists(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    def to_domain(self) -> Track:
        return Track(
            id=self.id,
            name=self.name,
            artists=tuple(self.artists),
            album_name=self.album_name,
            album_image_ref=self.album_image,
        )


class TokenPayload(BaseModel):
    """Login/register response payload."""

    access: str
    user: UserPayload


class PlaylistPayload(BaseModel):
    """Playlist payload, used for both own and other users' playlists."""

    id: int | None = None
    name: str = ""
    tracks: list[TrackPayload] = Field(default_factory=list)

    def to_domain(self) -> UserPlaylist:
        return UserPlaylist(
            id=self.id,
            name=self.name,
            tracks=tuple(track.to_domain() for track in self.tracks),
        )


class TrackMutationPayload(BaseModel):
    """Add/remove track acknowledgement, optionally carrying the playlist."""

    tracks: list[TrackPayload] | None = None


class RecommendationsPayload(BaseModel):
    """Recommendation payload with its reference track."""

    reference_track: TrackPayload | None = None
    tracks: list[TrackPayload] = Field(default_factory=list)

    def to_domain(self) -> Recommendations:
        return Recommendations(
            reference_track=(
                self.reference_track.to_domain() if self.reference_track else None
            ),
            tracks=tuple(track.to_domain() for track in self.tracks),
        )


class FollowStatusPayload(BaseModel):
    """Follow status payload listing followed user ids."""

    following: list[int] = Field(default_factory=list)


class FollowDataPayload(BaseModel):
    """Follow lists and counts payload."""

    following: list[UserPayload] = Field(default_factory=list)
    followers: list[UserPayload] = Field(default_factory=list)
    following_count: int | None = None
    followers_count: int | None = None

    def to_domain(self) -> FollowData:
        following = tuple(user.to_domain() for user in self.following)
        followers = tuple(user.to_domain() for user in self.followers)
        return FollowData(
            following=following,
            followers=followers,
            following_count=(
                self.following_count
                if self.following_count is not None
                else len(following)
            ),
            followers_count=(
                self.followers_count
                if self.followers_count is not None
                else len(followers)
            ),
        )
