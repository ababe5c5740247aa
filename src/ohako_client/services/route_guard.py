"""Authentication gate evaluated on every navigation."""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ohako_client.services.session_store import SessionStore


class GuardDecision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


class LoginSurface(Protocol):
    """Whatever presents the login form to the user."""

    def open_login(self) -> None:
        """Ask the user to log in."""


@dataclass
class LoginPrompt(LoginSurface):
    """In-process login surface state."""

    is_login_open: bool = False

    def open_login(self) -> None:
        self.is_login_open = True

    def close_login(self) -> None:
        self.is_login_open = False


@dataclass
class RouteGuard:
    """Allows guarded views only while a session exists."""

    session_store: SessionStore
    login_surface: LoginSurface

    def evaluate(self) -> GuardDecision:
        """Decide whether the current navigation may proceed."""
        if self.session_store.current.is_authenticated:
            return GuardDecision.ALLOWED
        self.login_surface.open_login()
        return GuardDecision.DENIED
