"""Dependency container wiring for the client."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ohako_client.adapters.file_session_storage import FileSessionStorage
from ohako_client.adapters.remote_gateway import HttpxRemoteGateway, RemoteGateway
from ohako_client.app_logging import configure_logging
from ohako_client.config import Settings, normalize_base_url
from ohako_client.services.auth import AuthService
from ohako_client.services.membership import MembershipCache
from ohako_client.services.notifications import RecordingNotifier
from ohako_client.services.route_guard import LoginPrompt, RouteGuard
from ohako_client.services.session_store import SessionStore
from ohako_client.services.sync import SyncCoordinator


@dataclass
class AppContainer:
    """Holds client-wide dependencies."""

    settings: Settings
    gateway: RemoteGateway
    session_store: SessionStore
    membership_cache: MembershipCache
    notifier: RecordingNotifier
    login_prompt: LoginPrompt
    route_guard: RouteGuard
    sync_coordinator: SyncCoordinator
    auth_service: AuthService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container with a restored session."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    gateway = HttpxRemoteGateway.create(
        base_url=normalize_base_url(resolved_settings.api_base_url),
        timeout=resolved_settings.http_timeout_seconds,
    )
    session_store = SessionStore(
        FileSessionStorage(resolved_settings.resolved_state_dir())
    )
    session_store.restore()
    membership_cache = MembershipCache()
    notifier = RecordingNotifier(history=resolved_settings.notification_history)
    login_prompt = LoginPrompt()
    route_guard = RouteGuard(session_store=session_store, login_surface=login_prompt)
    sync_coordinator = SyncCoordinator(
        gateway=gateway,
        session_store=session_store,
        cache=membership_cache,
        notifier=notifier,
    )
    auth_service = AuthService(
        gateway=gateway,
        session_store=session_store,
        cache=membership_cache,
        notifier=notifier,
        login_prompt=login_prompt,
    )

    async def close_resources() -> None:
        await gateway.close()

    return AppContainer(
        settings=resolved_settings,
        gateway=gateway,
        session_store=session_store,
        membership_cache=membership_cache,
        notifier=notifier,
        login_prompt=login_prompt,
        route_guard=route_guard,
        sync_coordinator=sync_coordinator,
        auth_service=auth_service,
        close_resources=close_resources,
    )
