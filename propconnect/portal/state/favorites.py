"""Favorites actions for property seekers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from propconnect.shared.core import events
from propconnect.shared.core.errors import ApiError, NotAuthenticatedError, PropConnectError
from propconnect.shared.domain.optimistic import OptimisticCommand, SingleFlight
from propconnect.shared.infrastructure.http.api_client import unwrap_list

from .app_state import utc_now_iso

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)

FAVORITES_PAGE = {"limit": 1000, "offset": 0}

# (saved_properties, last_updated)
FavoritesSnapshot = Tuple[List[str], Optional[str]]


class _FavoriteCommand(OptimisticCommand[FavoritesSnapshot, Any]):
    """Shared capture/restore/commit for favorite toggles."""

    success_message = ""
    failure_message = ""

    def __init__(self, actions: FavoritesActions, property_id: str, token: str) -> None:
        super().__init__(actions.flight)
        self.actions = actions
        self.property_id = property_id
        self.token = token

    @property
    def _slice(self):
        return self.actions.store.state.favorites

    def capture(self) -> FavoritesSnapshot:
        return list(self._slice.saved_properties), self._slice.last_updated

    def _owns_session(self) -> bool:
        # Nothing to roll back into once the session is gone
        return self.actions.store.state.auth.user_auth_token == self.token

    def restore(self, snapshot: FavoritesSnapshot) -> None:
        if not self._owns_session():
            return
        saved, last_updated = snapshot
        self._slice.saved_properties = list(saved)
        self._slice.last_updated = last_updated
        self.actions.changed()

    async def reconcile(self) -> None:
        await self.actions.refresh_after_mutation(self.token)

    def _write(self, saved: List[str]) -> None:
        self._slice.saved_properties = saved
        self._slice.last_updated = utc_now_iso()
        self.actions.changed()

    async def commit(self, result: Any) -> None:
        await self.actions.refresh_after_mutation(self.token)

    def on_success(self, result: Any) -> None:
        self.actions.store.ui.show_toast(self.success_message, "success")

    def on_failure(self, error: Exception) -> None:
        message = error.with_fallback(self.failure_message) if isinstance(error, ApiError) else self.failure_message
        self.actions.store.ui.show_toast(message, "error")


class AddFavorite(_FavoriteCommand):
    name = "add_favorite"
    success_message = "Property saved to favorites"
    failure_message = "Failed to save property"

    def apply(self) -> None:
        saved = list(self._slice.saved_properties)
        if self.property_id not in saved:
            saved.append(self.property_id)
        self._write(saved)

    def revert(self) -> None:
        saved, _ = self._snapshot
        if not self._owns_session() or self.property_id in saved:
            return
        self._write([p for p in self._slice.saved_properties if p != self.property_id])

    async def send(self) -> Any:
        return await self.actions.store.api.post(
            "/api/favorites", {"property_id": self.property_id}, token=self.token
        )


class RemoveFavorite(_FavoriteCommand):
    name = "remove_favorite"
    success_message = "Property removed from favorites"
    failure_message = "Failed to remove property"

    def apply(self) -> None:
        self._write([p for p in self._slice.saved_properties if p != self.property_id])

    def revert(self) -> None:
        saved, _ = self._snapshot
        current = list(self._slice.saved_properties)
        if not self._owns_session() or self.property_id not in saved or self.property_id in current:
            return
        current.insert(min(saved.index(self.property_id), len(current)), self.property_id)
        self._write(current)

    async def send(self) -> Any:
        return await self.actions.store.api.delete(
            f"/api/favorites/{self.property_id}", token=self.token
        )


class FavoritesActions:
    """Load and toggle the signed-in seeker's saved properties."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self.flight = SingleFlight("favorites")

    def changed(self) -> None:
        self.store.state.notify(events.TOPIC_FAVORITES_CHANGED)

    def _require_seeker(self, message: str) -> str:
        auth = self.store.state.auth
        if auth.current_user is None or not auth.user_auth_token:
            raise NotAuthenticatedError(message)
        return auth.user_auth_token

    def is_property_saved(self, property_id: str) -> bool:
        return property_id in self.store.state.favorites.saved_properties

    async def _fetch(self, token: str) -> List[str]:
        body = await self.store.api.get("/api/favorites", token=token, params=FAVORITES_PAGE)
        return [str(row["property_id"]) for row in unwrap_list(body) if row.get("property_id")]

    async def load_favorites(self) -> None:
        """Replace the saved list with the server's. Failures are logged only."""
        auth = self.store.state.auth
        if auth.current_user is None or not auth.user_auth_token:
            return
        favorites = self.store.state.favorites
        favorites.is_loading = True
        self.changed()
        try:
            saved = await self._fetch(auth.user_auth_token)
        except PropConnectError as exc:
            logger.warning(f"Failed to load favorites: {exc}")
            favorites.is_loading = False
            self.changed()
            return
        favorites.saved_properties = saved
        favorites.last_updated = utc_now_iso()
        favorites.is_loading = False
        self.changed()

    async def refresh_after_mutation(self, token: str) -> None:
        """Reconcile with the server after a successful toggle.

        If the re-read fails the optimistic list stays; the mutation itself
        already succeeded.
        """
        # The session may have ended while the request was in flight
        if self.store.state.auth.user_auth_token != token:
            return
        try:
            saved = await self._fetch(token)
        except PropConnectError as exc:
            logger.warning(f"Favorites refresh failed, keeping local list: {exc}")
            return
        self.store.state.favorites.saved_properties = saved
        self.store.state.favorites.last_updated = utc_now_iso()
        self.changed()

    async def add_favorite(self, property_id: str) -> Any:
        """Save a property, optimistically.

        Raises:
            NotAuthenticatedError: If no property seeker is signed in
            ApiError: If the backend rejects the change (local state restored)
        """
        token = self._require_seeker("Must be logged in to save favorites")
        return await AddFavorite(self, property_id, token).run()

    async def remove_favorite(self, property_id: str) -> Any:
        """Unsave a property, optimistically.

        The DELETE is sent even when the id is not in the local list.
        """
        token = self._require_seeker("Must be logged in to manage favorites")
        return await RemoveFavorite(self, property_id, token).run()
