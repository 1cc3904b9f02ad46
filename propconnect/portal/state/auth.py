"""Authentication actions.

One flow serves all three principal kinds; everything that differs between
them (endpoints, response keys, follow-up loads, acceptance rules) lives in
``PRINCIPAL_STRATEGIES``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from propconnect.shared.core import events
from propconnect.shared.core.errors import (
    ApiError,
    AuthError,
    ErrorKind,
    NotAuthenticatedError,
    PropConnectError,
)
from propconnect.shared.domain.models import Admin, Agent, PrincipalKind, User

from .app_state import Identity

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrincipalStrategy:
    """Endpoints and rules for one principal kind."""

    kind: PrincipalKind
    login_path: str
    identity_key: str
    model: Type[BaseModel]
    login_error: str
    register_path: Optional[str] = None
    register_error: str = "Registration failed"
    # Registration signs the principal in straight away
    register_signs_in: bool = False
    # None means the stored identity is trusted on restore
    me_path: Optional[str] = None


PRINCIPAL_STRATEGIES: Dict[PrincipalKind, PrincipalStrategy] = {
    PrincipalKind.SEEKER: PrincipalStrategy(
        kind=PrincipalKind.SEEKER,
        login_path="/api/auth/login",
        identity_key="user",
        model=User,
        login_error="Login failed",
        register_path="/api/auth/register",
        register_error="Registration failed",
        register_signs_in=True,
        me_path="/api/users/me",
    ),
    PrincipalKind.AGENT: PrincipalStrategy(
        kind=PrincipalKind.AGENT,
        login_path="/api/auth/agent/login",
        identity_key="agent",
        model=Agent,
        login_error="Agent login failed",
        register_path="/api/auth/agent/register",
        register_error="Agent registration failed",
        register_signs_in=False,
        me_path="/api/agents/me",
    ),
    PrincipalKind.ADMIN: PrincipalStrategy(
        kind=PrincipalKind.ADMIN,
        login_path="/api/auth/admin/login",
        identity_key="admin",
        model=Admin,
        login_error="Admin login failed",
    ),
}

AGENT_NOT_APPROVED = "Agent account is not approved yet. Please wait for admin approval."
AGENT_REJECTED = "Agent application was not approved."
AGENT_SUSPENDED = "Agent account is suspended. Please contact support."


def check_agent_acceptable(agent: Agent) -> None:
    """Reject an agent session the backend handed out but the client must not keep.

    Raises:
        AuthError: If the agent is suspended or not approved
    """
    if agent.account_status == "suspended":
        raise AuthError(AGENT_SUSPENDED, kind=ErrorKind.ACCOUNT_SUSPENDED)
    if agent.approval_status == "rejected":
        raise AuthError(AGENT_REJECTED, kind=ErrorKind.APPROVAL_REJECTED)
    if not agent.is_approved:
        raise AuthError(AGENT_NOT_APPROVED, kind=ErrorKind.APPROVAL_PENDING)


def _identity_payload(body: Any, key: str) -> Any:
    """Identity dict from ``{key: {...}}`` or a bare record."""
    if isinstance(body, dict) and isinstance(body.get(key), dict):
        return body[key]
    return body


class AuthActions:
    """Login, registration, logout and session restore for every principal kind."""

    def __init__(self, store: Store) -> None:
        self.store = store

    @property
    def _auth(self):
        return self.store.state.auth

    def _changed(self) -> None:
        self.store.state.notify(events.TOPIC_AUTH_CHANGED)

    def _follow_up_loads(self, kind: PrincipalKind) -> List[Callable[[], Awaitable[None]]]:
        if kind is PrincipalKind.SEEKER:
            return [
                self.store.favorites.load_favorites,
                self.store.preferences.load_user_notification_preferences,
            ]
        if kind is PrincipalKind.AGENT:
            return [
                self.store.preferences.load_agent_notification_preferences,
                self.store.dashboard.load_agent_dashboard_stats,
            ]
        return []

    async def _fan_out(self, kind: PrincipalKind) -> None:
        # Loads handle their own failures, run them in order like a page would
        for load in self._follow_up_loads(kind):
            await load()

    def _parse_identity(self, strategy: PrincipalStrategy, body: Any) -> Identity:
        try:
            identity = strategy.model.model_validate(_identity_payload(body, strategy.identity_key))
        except ValidationError as e:
            raise AuthError(
                f"Unexpected {strategy.identity_key} record from server",
                kind=ErrorKind.SERVER,
            ) from e
        if strategy.kind is PrincipalKind.AGENT:
            check_agent_acceptable(identity)
        return identity

    def _fail(self, message: str) -> None:
        self._auth.is_loading = False
        self._auth.error_message = message
        self._changed()

    def _reject_login(self, kind: PrincipalKind, error: AuthError, fallback: str) -> None:
        logger.info(f"{kind.value} login rejected ({error.kind.value})")
        self.store.state.clear_session()
        self._fail(error.with_fallback(fallback))

    # --- Login / registration ---

    async def login(self, kind: PrincipalKind, email: str, password: str) -> Identity:
        """Sign in as ``kind``.

        On success the identity and token replace any other principal and the
        kind's follow-up data is loaded. On failure the store is left as a
        guest with ``error_message`` set.

        Raises:
            AuthError: On missing credentials, backend rejection, or an agent
                that is not approved
        """
        strategy = PRINCIPAL_STRATEGIES[kind]
        if not email or not password:
            message = "Email and password are required"
            self._fail(message)
            raise AuthError(message, kind=ErrorKind.VALIDATION)

        self._auth.is_loading = True
        self._auth.error_message = None
        self._changed()

        try:
            body = await self.store.api.post(
                strategy.login_path, {"email": email, "password": password}
            )
            token = body.get("token") if isinstance(body, dict) else None
            if not token:
                raise AuthError(strategy.login_error, kind=ErrorKind.SERVER)
            identity = self._parse_identity(strategy, body)
        except AuthError as error:
            self._reject_login(kind, error, strategy.login_error)
            raise
        except ApiError as exc:
            error = AuthError.from_api_error(exc, strategy.login_error)
            self._reject_login(kind, error, strategy.login_error)
            raise error from exc

        self._auth.set_principal(kind, identity, token)
        self._changed()
        logger.info(f"{kind.value} login succeeded")
        await self._fan_out(kind)
        return identity

    async def register(self, kind: PrincipalKind, fields: Dict[str, Any]) -> Optional[Identity]:
        """Create an account.

        Property seekers are signed in with the returned token. Agent
        applications wait for approval: the current session is left alone
        and only a confirmation toast is shown.

        Raises:
            AuthError: If the backend rejects the registration
            ValueError: For kinds that cannot self-register
        """
        strategy = PRINCIPAL_STRATEGIES[kind]
        if strategy.register_path is None:
            raise ValueError(f"{kind.value} accounts cannot self-register")

        self._auth.is_loading = True
        self._auth.error_message = None
        self._changed()

        try:
            body = await self.store.api.post(strategy.register_path, fields)
        except ApiError as exc:
            error = AuthError.from_api_error(exc, strategy.register_error)
            self._fail(error.message)
            raise error from exc

        if not strategy.register_signs_in:
            self._auth.is_loading = False
            self._changed()
            self.store.ui.show_toast(
                f"Application submitted! Check {fields.get('email', '')} for approval notification.",
                "success",
                5000,
            )
            return None

        try:
            token = body.get("token") if isinstance(body, dict) else None
            if not token:
                raise AuthError(strategy.register_error, kind=ErrorKind.SERVER)
            identity = self._parse_identity(strategy, body)
        except AuthError as error:
            self._fail(error.message)
            raise

        self._auth.set_principal(kind, identity, token)
        self._changed()
        await self._fan_out(kind)
        return identity

    # --- Session lifecycle ---

    async def restore_session(self) -> None:
        """Re-validate a persisted session at startup. Never raises.

        The most likely principal (user, then agent, then admin) is checked
        against its ``/me`` endpoint. Any failure resets every principal
        field to guest.
        """
        kind = self._auth.kind
        if kind is None:
            self._auth.is_loading = False
            self._changed()
            return

        strategy = PRINCIPAL_STRATEGIES[kind]
        token = self._auth.token_for(kind)
        self._auth.is_loading = True
        self._changed()

        try:
            if strategy.me_path is None:
                identity = self._auth.identity_for(kind)
                if identity is None:
                    raise AuthError("Stored session is incomplete", kind=ErrorKind.UNAUTHORIZED)
            else:
                body = await self.store.api.get(strategy.me_path, token=token)
                identity = self._parse_identity(strategy, body)
        except PropConnectError as exc:
            logger.warning(f"Stored {kind.value} session rejected, continuing as guest: {exc}")
            self.store.state.clear_session()
            self.store.bus.publish_nowait(
                events.TOPIC_SESSION_RESTORED, events.create_session_event(self._auth.user_type.value)
            )
            return

        self._auth.set_principal(kind, identity, token)
        self._changed()
        logger.info(f"Restored {kind.value} session")
        await self._fan_out(kind)
        self.store.bus.publish_nowait(
            events.TOPIC_SESSION_RESTORED, events.create_session_event(self._auth.user_type.value)
        )

    def logout(self) -> None:
        """Clear the session locally and tell the backend in the background."""
        kind = self._auth.kind
        token = self._auth.token_for(kind) if kind else None

        self.store.state.clear_session()
        if token:
            self.store.spawn(self.store.api.post("/api/auth/logout", {}, token=token), "logout")
        self.store.bus.publish_nowait(events.TOPIC_LOGGED_OUT, events.create_session_event("guest"))
        self.store.ui.show_toast("Logged out successfully", "success")

    # --- Account maintenance ---

    async def verify_email(self, token: str) -> None:
        try:
            body = await self.store.api.post("/api/auth/verify-email", {"token": token})
        except ApiError as exc:
            message = exc.with_fallback("Email verification failed")
            self.store.ui.show_toast(message, "error")
            raise AuthError.from_api_error(exc, message) from exc

        self.store.ui.show_toast("Email verified successfully!", "success")
        # Some backends sign the user in on verification
        if isinstance(body, dict) and body.get("token") and isinstance(body.get("user"), dict):
            identity = self._parse_identity(PRINCIPAL_STRATEGIES[PrincipalKind.SEEKER], body)
            self._auth.set_principal(PrincipalKind.SEEKER, identity, body["token"])
            self._changed()
            await self._fan_out(PrincipalKind.SEEKER)

    async def request_password_reset(self, email: str) -> None:
        await self._simple_post(
            "/api/auth/forgot-password",
            {"email": email},
            success="If an account exists, a password reset email has been sent",
            fallback="Password reset request failed",
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        await self._simple_post(
            "/api/auth/reset-password",
            {"token": token, "new_password": new_password},
            success="Password reset successfully. You can now login.",
            fallback="Password reset failed",
        )

    async def change_password(self, current_password: str, new_password: str) -> None:
        token = self._auth.user_auth_token or self._auth.agent_auth_token
        if not token:
            raise NotAuthenticatedError("Not authenticated")
        await self._simple_post(
            "/api/auth/change-password",
            {"current_password": current_password, "new_password": new_password},
            success="Password changed successfully",
            fallback="Password change failed",
            token=token,
        )

    async def _simple_post(
        self,
        path: str,
        payload: Dict[str, Any],
        success: str,
        fallback: str,
        token: Optional[str] = None,
    ) -> None:
        try:
            await self.store.api.post(path, payload, token=token)
        except ApiError as exc:
            message = exc.with_fallback(fallback)
            self.store.ui.show_toast(message, "error")
            raise AuthError.from_api_error(exc, message) from exc
        self.store.ui.show_toast(success, "success")

    def update_user_profile(self, user: User) -> None:
        self._auth.update_identity(PrincipalKind.SEEKER, user)
        self._changed()

    def update_agent_profile(self, agent: Agent) -> None:
        self._auth.update_identity(PrincipalKind.AGENT, agent)
        self._changed()

    def clear_auth_error(self) -> None:
        self._auth.error_message = None
        self._changed()
