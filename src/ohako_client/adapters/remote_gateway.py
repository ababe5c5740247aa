"""Ohako backend API client."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ohako_client.adapters.api_models import (
    FollowDataPayload,
    FollowStatusPayload,
    PlaylistPayload,
    RecommendationsPayload,
    TokenPayload,
    TrackMutationPayload,
    TrackPayload,
    UserPayload,
)
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

_T = TypeVar("_T")
_ModelT = TypeVar("_ModelT", bound=BaseModel)

_TRACK_LIST = TypeAdapter(list[TrackPayload])
_USER_LIST = TypeAdapter(list[UserPayload])

_logger = logging.getLogger(__name__)


class RemoteGateway(Protocol):
    """Network operations the client core depends on."""

    async def authenticate(
        self, username: str, password: str
    ) -> tuple[str, UserIdentity]:
        """Exchange credentials for a token and the user's identity."""

    async def register(self, username: str, password: str) -> tuple[str, UserIdentity]:
        """Create an account and return a token and identity."""

    async def fetch_playlist(self, token: str) -> tuple[Track, ...]:
        """Return the current user's playlist."""

    async def add_track(self, token: str, track_id: str) -> tuple[Track, ...] | None:
        """Add a track; may return the full playlist afterwards."""

    async def remove_track(
        self, token: str, track_id: str
    ) -> tuple[Track, ...] | None:
        """Remove a track; may return the full playlist afterwards."""

    async def fetch_follow_status(
        self, token: str, user_ids: Iterable[int]
    ) -> frozenset[int]:
        """Return the subset of user ids the current user follows."""

    async def follow_user(self, token: str, user_id: int) -> None:
        """Follow a user."""

    async def unfollow_user(self, token: str, user_id: int) -> None:
        """Unfollow a user."""

    async def fetch_followed_users(self, token: str) -> tuple[UserIdentity, ...]:
        """Return users the current user follows."""

    async def fetch_follow_data(self, token: str) -> FollowData:
        """Return follow lists and counts for the current user."""

    async def fetch_track_listeners(
        self, token: str, track_id: str
    ) -> tuple[UserIdentity, ...]:
        """Return users who have a track in their playlist."""

    async def fetch_user_playlist(self, user_id: int) -> UserPlaylist:
        """Return another user's public playlist."""

    async def search_tracks(self, token: str, query: str) -> tuple[Track, ...]:
        """Search tracks by free text."""

    async def recommend_by_key(self, token: str, query: str) -> Recommendations:
        """Return tracks in a similar key to the named track."""

    async def recommend_by_tempo(self, token: str, query: str) -> Recommendations:
        """Return tracks at a similar tempo to the named track."""

    async def update_profile(
        self, token: str, fields: Mapping[str, object]
    ) -> UserIdentity:
        """Update profile fields and return the stored identity."""


@dataclass
class HttpxRemoteGateway(RemoteGateway):
    """Remote gateway implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(cls, base_url: str, timeout: float = 10.0) -> "HttpxRemoteGateway":
        """Create a gateway with a managed httpx session."""
        return cls(base_url=base_url, http_client=httpx.AsyncClient(), timeout=timeout)

    async def authenticate(
        self, username: str, password: str
    ) -> tuple[str, UserIdentity]:
        """Log in using the backend's /login/ endpoint."""
        response = await self._send(
            "POST", "/login/", json={"username": username, "password": password}
        )
        if response.is_client_error:
            raise InvalidCredentialsError("Username or password is incorrect")
        _raise_for_status(response)
        payload = _parse(TokenPayload, response)
        return payload.access, payload.user.to_domain()

    async def register(self, username: str, password: str) -> tuple[str, UserIdentity]:
        """Sign up using the backend's /register/ endpoint."""
        response = await self._send(
            "POST", "/register/", json={"username": username, "password": password}
        )
        if response.is_client_error and "username" in _error_body(response):
            raise UsernameTakenError(f"Username {username!r} is already taken")
        _raise_for_status(response)
        payload = _parse(TokenPayload, response)
        return payload.access, payload.user.to_domain()

    async def fetch_playlist(self, token: str) -> tuple[Track, ...]:
        """Fetch the current user's playlist."""
        response = await self._send("GET", "/playlists/", token=token)
        _raise_for_status(response)
        return _parse(PlaylistPayload, response).to_domain().tracks

    async def add_track(self, token: str, track_id: str) -> tuple[Track, ...] | None:
        """Add a track to the current user's playlist."""
        return await self._mutate_track("/add_track/", token, track_id)

    async def remove_track(
        self, token: str, track_id: str
    ) -> tuple[Track, ...] | None:
        """Remove a track from the current user's playlist."""
        return await self._mutate_track("/remove_track/", token, track_id)

    async def fetch_follow_status(
        self, token: str, user_ids: Iterable[int]
    ) -> frozenset[int]:
        """Ask which of the given users are followed."""
        response = await self._send(
            "POST",
            "/follow_status/",
            token=token,
            json={"user_ids": list(user_ids)},
        )
        _raise_for_status(response)
        return frozenset(_parse(FollowStatusPayload, response).following)

    async def follow_user(self, token: str, user_id: int) -> None:
        """Follow a user."""
        response = await self._send(
            "POST", "/follow_user/", token=token, json={"user_id": user_id}
        )
        _raise_for_status(response)

    async def unfollow_user(self, token: str, user_id: int) -> None:
        """Unfollow a user."""
        response = await self._send(
            "POST", "/unfollow_user/", token=token, json={"user_id": user_id}
        )
        _raise_for_status(response)

    async def fetch_followed_users(self, token: str) -> tuple[UserIdentity, ...]:
        """Fetch users the current user follows."""
        response = await self._send("GET", "/followed_users/", token=token)
        _raise_for_status(response)
        users = _parse_list(_USER_LIST, response)
        return tuple(user.to_domain() for user in users)

    async def fetch_follow_data(self, token: str) -> FollowData:
        """Fetch follow lists and counts."""
        response = await self._send("GET", "/follow_data/", token=token)
        _raise_for_status(response)
        return _parse(FollowDataPayload, response).to_domain()

    async def fetch_track_listeners(
        self, token: str, track_id: str
    ) -> tuple[UserIdentity, ...]:
        """Fetch users whose playlist contains a track."""
        response = await self._send("GET", f"/track_users/{track_id}/", token=token)
        _raise_for_status(response)
        users = _parse_list(_USER_LIST, response)
        return tuple(user.to_domain() for user in users)

    async def fetch_user_playlist(self, user_id: int) -> UserPlaylist:
        """Fetch a user's playlist; this endpoint is public."""
        response = await self._send("GET", f"/user_playlist/{user_id}/")
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(f"No playlist for user {user_id}")
        _raise_for_status(response)
        return _parse(PlaylistPayload, response).to_domain()

    async def search_tracks(self, token: str, query: str) -> tuple[Track, ...]:
        """Search tracks for autocomplete suggestions."""
        response = await self._send(
            "GET", "/search/", token=token, params={"query": query}
        )
        _raise_for_status(response)
        return tuple(track.to_domain() for track in _parse_list(_TRACK_LIST, response))

    async def recommend_by_key(self, token: str, query: str) -> Recommendations:
        """Fetch tracks in a similar key."""
        return await self._recommend("/recommendations/", token, query)

    async def recommend_by_tempo(self, token: str, query: str) -> Recommendations:
        """Fetch tracks at a similar tempo."""
        return await self._recommend("/recommendations_by_tempo/", token, query)

    async def update_profile(
        self, token: str, fields: Mapping[str, object]
    ) -> UserIdentity:
        """Update the current user's profile."""
        response = await self._send(
            "POST", "/update_user/", token=token, json=dict(fields)
        )
        _raise_for_status(response)
        return _parse(UserPayload, response).to_domain()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _mutate_track(
        self, path: str, token: str, track_id: str
    ) -> tuple[Track, ...] | None:
        response = await self._send(
            "POST", path, token=token, json={"track_id": track_id}
        )
        _raise_for_status(response)
        if not response.content:
            return None
        payload = _parse(TrackMutationPayload, response)
        if payload.tracks is None:
            return None
        return tuple(track.to_domain() for track in payload.tracks)

    async def _recommend(self, path: str, token: str, query: str) -> Recommendations:
        response = await self._send(
            "GET", path, token=token, params={"track_name": query}
        )
        _raise_for_status(response)
        body = _json(response)
        if isinstance(body, list):
            tracks = _validate(_TRACK_LIST, body)
            return Recommendations(
                reference_track=None,
                tracks=tuple(track.to_domain() for track in tracks),
            )
        return _validate(TypeAdapter(RecommendationsPayload), body).to_domain()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json: object | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            return await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            _logger.warning("Request %s %s failed: %s", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise NetworkError(
        f"{response.request.method} {response.request.url.path} "
        f"returned {response.status_code}",
        status_code=response.status_code,
    )


def _json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise NetworkError(
            f"{response.request.url.path} returned a non-JSON body"
        ) from exc


def _validate(adapter: TypeAdapter[_T], body: object) -> _T:
    try:
        return adapter.validate_python(body)
    except ValidationError as exc:
        raise NetworkError(f"Unexpected response shape: {exc}") from exc


def _parse(model: type[_ModelT], response: httpx.Response) -> _ModelT:
    return _validate(TypeAdapter(model), _json(response))


def _parse_list(adapter: TypeAdapter[list[_T]], response: httpx.Response) -> list[_T]:
    return _validate(adapter, _json(response))


def _error_body(response: httpx.Response) -> dict[str, object]:
    """Return a JSON error body, or an empty dict if there is none."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
