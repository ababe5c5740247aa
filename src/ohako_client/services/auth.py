"""Login, signup, logout and profile edits."""

import logging
from dataclasses import dataclass

from ohako_client.adapters.remote_gateway import RemoteGateway
from ohako_client.domain.errors import (
    GatewayError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    UsernameTakenError,
)
from ohako_client.domain.models import Session, UserIdentity
from ohako_client.services.membership import MembershipCache
from ohako_client.services.notifications import Notifier
from ohako_client.services.route_guard import LoginPrompt
from ohako_client.services.session_store import SessionStore

_logger = logging.getLogger(__name__)


@dataclass
class AuthService:
    """Application service for the session lifecycle."""

    gateway: RemoteGateway
    session_store: SessionStore
    cache: MembershipCache
    notifier: Notifier
    login_prompt: LoginPrompt

    async def login(self, username: str, password: str) -> Session:
        """Authenticate and start a session."""
        try:
            token, user = await self.gateway.authenticate(username, password)
        except InvalidCredentialsError:
            self.notifier.error("Username or password is incorrect")
            raise
        except GatewayError as exc:
            _logger.warning("Login failed: %s", exc)
            self.notifier.error("An error occurred while logging in")
            raise
        return self._start(token, user)

    async def register(self, username: str, password: str) -> Session:
        """Create an account and start a session."""
        try:
            token, user = await self.gateway.register(username, password)
        except UsernameTakenError:
            self.notifier.error("This username is already taken")
            raise
        except GatewayError as exc:
            _logger.warning("Signup failed: %s", exc)
            self.notifier.error("Signup failed")
            raise
        return self._start(token, user)

    def logout(self) -> Session:
        """End the session and forget cached membership."""
        self.cache.clear()
        return self.session_store.logout()

    async def update_profile(
        self,
        *,
        username: str | None = None,
        profile_image_ref: str | None = None,
    ) -> Session:
        """Push profile changes and merge the stored identity."""
        token = self.session_store.current.token
        if token is None:
            _logger.error("Profile update attempted without a session")
            raise NotAuthenticatedError("Profile update requires a session")
        fields: dict[str, object] = {}
        if username is not None:
            fields["username"] = username
        if profile_image_ref is not None:
            fields["profile_image"] = profile_image_ref
        try:
            updated = await self.gateway.update_profile(token, fields)
        except GatewayError as exc:
            _logger.warning("Profile update failed: %s", exc)
            self.notifier.error("Failed to update profile")
            raise
        return self.session_store.update_identity(
            username=updated.username,
            profile_image_ref=updated.profile_image_ref,
        )

    def _start(self, token: str, user: UserIdentity) -> Session:
        previous = self.session_store.current.user
        if previous is not None and previous != user:
            self.cache.clear()
        session = self.session_store.login(token, user)
        self.login_prompt.close_login()
        _logger.info("Logged in as %s", user.username)
        return session
