"""Notification preference actions for seekers and agents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from propconnect.shared.core import events
from propconnect.shared.core.errors import ApiError, ErrorKind, NotAuthenticatedError, PropConnectError
from propconnect.shared.domain.models import (
    AgentNotificationPreferences,
    PrincipalKind,
    UserNotificationPreferences,
)
from propconnect.shared.domain.optimistic import OptimisticCommand, SingleFlight

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreferenceTarget:
    kind: PrincipalKind
    path: str
    model: Type[BaseModel]
    # Attribute on PreferencesState
    slot: str
    not_ready: str


PREFERENCE_TARGETS = {
    PrincipalKind.SEEKER: PreferenceTarget(
        kind=PrincipalKind.SEEKER,
        path="/api/users/notification-preferences",
        model=UserNotificationPreferences,
        slot="user",
        not_ready="User not authenticated or preferences not loaded",
    ),
    PrincipalKind.AGENT: PreferenceTarget(
        kind=PrincipalKind.AGENT,
        path="/api/agents/notification-preferences",
        model=AgentNotificationPreferences,
        slot="agent",
        not_ready="Agent not authenticated or preferences not loaded",
    ),
}


class UpdatePreferences(OptimisticCommand[BaseModel, Any]):
    name = "update_notification_preferences"

    def __init__(
        self,
        actions: PreferencesActions,
        target: PreferenceTarget,
        updates: Dict[str, Any],
        token: str,
    ) -> None:
        super().__init__(actions.flights[target.kind])
        self.actions = actions
        self.target = target
        self.updates = updates
        self.token = token

    def _read(self) -> BaseModel:
        return getattr(self.actions.store.state.preferences, self.target.slot)

    def _write(self, prefs: Optional[BaseModel]) -> None:
        setattr(self.actions.store.state.preferences, self.target.slot, prefs)
        self.actions.changed()

    def capture(self) -> BaseModel:
        return self._read().model_copy(deep=True)

    def apply(self) -> None:
        # Validate through the model so a bad value fails before any I/O
        merged = {**self._read().model_dump(), **self.updates}
        self._write(self.target.model.model_validate(merged))

    async def send(self) -> Any:
        return await self.actions.store.api.put(self.target.path, self.updates, token=self.token)

    async def commit(self, result: Any) -> None:
        if self.actions.store.state.auth.token_for(self.target.kind) != self.token:
            return
        try:
            self._write(self.target.model.model_validate(result))
        except ValidationError as e:
            raise ApiError("Unexpected preferences record from server", kind=ErrorKind.SERVER) from e

    def restore(self, snapshot: BaseModel) -> None:
        if self.actions.store.state.auth.token_for(self.target.kind) != self.token:
            return
        self._write(snapshot)

    def revert(self) -> None:
        if self.actions.store.state.auth.token_for(self.target.kind) != self.token:
            return
        previous = {key: getattr(self._snapshot, key) for key in self.updates if hasattr(self._snapshot, key)}
        self._write(self._read().model_copy(update=previous))

    async def reconcile(self) -> None:
        await self.actions._load(self.target.kind)

    def on_success(self, result: Any) -> None:
        self.actions.store.ui.show_toast("Notification preferences updated", "success")

    def on_failure(self, error: Exception) -> None:
        fallback = "Failed to update preferences"
        message = error.with_fallback(fallback) if isinstance(error, ApiError) else fallback
        self.actions.store.ui.show_toast(message, "error")


class PreferencesActions:
    def __init__(self, store: Store) -> None:
        self.store = store
        self.flights = {kind: SingleFlight(f"preferences.{kind.value}") for kind in PREFERENCE_TARGETS}

    def changed(self) -> None:
        self.store.state.notify(events.TOPIC_PREFERENCES_CHANGED)

    async def _load(self, kind: PrincipalKind) -> None:
        target = PREFERENCE_TARGETS[kind]
        token = self.store.state.auth.token_for(kind)
        if not token:
            return
        try:
            body = await self.store.api.get(target.path, token=token)
            prefs = target.model.model_validate(body)
        except (PropConnectError, ValidationError) as exc:
            logger.warning(f"Failed to load {kind.value} notification preferences: {exc}")
            return
        setattr(self.store.state.preferences, target.slot, prefs)
        self.changed()

    async def load_user_notification_preferences(self) -> None:
        await self._load(PrincipalKind.SEEKER)

    async def load_agent_notification_preferences(self) -> None:
        await self._load(PrincipalKind.AGENT)

    async def _update(self, kind: PrincipalKind, updates: Dict[str, Any]) -> Any:
        target = PREFERENCE_TARGETS[kind]
        token = self.store.state.auth.token_for(kind)
        if not token or getattr(self.store.state.preferences, target.slot) is None:
            raise NotAuthenticatedError(target.not_ready)
        return await UpdatePreferences(self, target, dict(updates), token).run()

    async def update_user_notification_preferences(self, updates: Dict[str, Any]) -> Any:
        """Optimistically change seeker notification toggles.

        Raises:
            NotAuthenticatedError: If no seeker is signed in or nothing is loaded yet
            ApiError: If the backend rejects the change (previous record restored)
        """
        return await self._update(PrincipalKind.SEEKER, updates)

    async def update_agent_notification_preferences(self, updates: Dict[str, Any]) -> Any:
        return await self._update(PrincipalKind.AGENT, updates)
