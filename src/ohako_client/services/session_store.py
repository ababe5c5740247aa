"""Session state and its durable persistence."""

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Protocol

from ohako_client.domain.errors import NotAuthenticatedError
from ohako_client.domain.models import Session, UserIdentity

TOKEN_RECORD = "token"
USER_RECORD = "user"

_logger = logging.getLogger(__name__)


class SessionStorage(Protocol):
    """Durable storage for named string records."""

    def read(self, name: str) -> str | None:
        """Return a stored record, if present."""

    def write(self, name: str, value: str) -> None:
        """Store a record, replacing any previous value."""

    def delete(self, name: str) -> None:
        """Remove a record if it exists."""


@dataclass
class SessionStore:
    """Single source of truth for whether the user is logged in."""

    storage: SessionStorage
    _session: Session = field(default_factory=Session, init=False)

    @property
    def current(self) -> Session:
        return self._session

    def restore(self) -> Session:
        """Rebuild the session from storage, discarding partial or corrupt data."""
        try:
            token = self.storage.read(TOKEN_RECORD)
            raw_user = self.storage.read(USER_RECORD)
        except UnicodeDecodeError:
            _logger.warning("Discarding undecodable stored session")
            self._erase()
            self._session = Session()
            return self._session
        except OSError:
            _logger.warning("Session storage unreadable; starting logged out")
            self._session = Session()
            return self._session

        if token is None and raw_user is None:
            self._session = Session()
            return self._session

        user = _decode_user(raw_user) if raw_user is not None else None
        if not token or user is None:
            _logger.warning("Discarding incomplete stored session")
            self._erase()
            self._session = Session()
            return self._session

        self._session = Session(token=token, user=user)
        return self._session

    def login(self, token: str, user: UserIdentity) -> Session:
        """Mark the user as authenticated and persist the session."""
        self._session = Session(token=token, user=user)
        self.storage.write(TOKEN_RECORD, token)
        self.storage.write(USER_RECORD, _encode_user(user))
        return self._session

    def logout(self) -> Session:
        """Clear the session and its durable copy."""
        self._session = Session()
        self._erase()
        return self._session

    def update_identity(
        self,
        *,
        username: str | None = None,
        profile_image_ref: str | None = None,
    ) -> Session:
        """Merge profile fields into the current user."""
        session = self._session
        if session.user is None:
            raise NotAuthenticatedError("Cannot update identity without a session")
        changes: dict[str, object] = {}
        if username is not None:
            changes["username"] = username
        if profile_image_ref is not None:
            changes["profile_image_ref"] = profile_image_ref
        user = replace(session.user, **changes)
        self._session = Session(token=session.token, user=user)
        self.storage.write(USER_RECORD, _encode_user(user))
        return self._session

    def _erase(self) -> None:
        self.storage.delete(TOKEN_RECORD)
        self.storage.delete(USER_RECORD)


def _encode_user(user: UserIdentity) -> str:
    return json.dumps(
        {
            "id": user.id,
            "username": user.username,
            "profile_image_ref": user.profile_image_ref,
        }
    )


def _decode_user(raw: str) -> UserIdentity | None:
    """Parse a stored user record, returning None when it is malformed."""
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    user_id = payload.get("id")
    username = payload.get("username")
    image = payload.get("profile_image_ref")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return None
    if not isinstance(username, str):
        return None
    if image is not None and not isinstance(image, str):
        return None
    return UserIdentity(id=user_id, username=username, profile_image_ref=image)
