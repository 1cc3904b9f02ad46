"""Admin page for curating the homepage's featured listings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import ValidationError

from propconnect.shared.core import events
from propconnect.shared.core.errors import PropConnectError
from propconnect.shared.domain.models import PropertySummary
from propconnect.shared.infrastructure.http.api_client import unwrap_list

from .base import PageController, move_item

if TYPE_CHECKING:
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

FEATURED_PATH = "/api/admin/featured-listings"
SEARCH_LIMIT = 10


def _parse_properties(body) -> List[PropertySummary]:
    rows = []
    for row in unwrap_list(body):
        try:
            rows.append(PropertySummary.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed property row: {e}")
    return rows


class FeaturedListingsController(PageController):
    """Featured listing order, kept locally and mirrored to the backend.

    Reordering is shown immediately; if the backend refuses it the list is
    reloaded from the server.
    """

    subscriptions = {events.TOPIC_LOGGED_OUT: "on_logged_out"}

    def __init__(self, store: Store) -> None:
        super().__init__(store)
        self.featured: List[PropertySummary] = []
        self.search_query = ""
        self.search_results: List[PropertySummary] = []
        self.is_loading = False

    @property
    def _token(self) -> Optional[str]:
        return self.store.state.auth.admin_auth_token

    async def on_logged_out(self, payload: Dict[str, Any]) -> None:
        self.featured = []
        self.search_results = []
        self.search_query = ""

    async def load(self) -> List[PropertySummary]:
        if not self._token:
            return self.featured
        self.is_loading = True
        try:
            body = await self.store.api.get(FEATURED_PATH, token=self._token)
        except PropConnectError as e:
            self.toast_error(e, "Failed to load featured listings")
            return self.featured
        finally:
            self.is_loading = False
        self.featured = sorted(_parse_properties(body), key=lambda p: p.featured_order or 0)
        return self.featured

    async def search(self, query: str = "") -> List[PropertySummary]:
        """Active listings that are not featured yet."""
        self.search_query = query
        try:
            body = await self.store.api.get(
                "/api/properties",
                token=self._token,
                params={
                    "query": query or None,
                    "status": "active",
                    "is_featured": "false",
                    "limit": SEARCH_LIMIT,
                    "sort_by": "created_at",
                    "sort_order": "desc",
                },
            )
        except PropConnectError as e:
            self.toast_error(e, "Failed to search properties")
            return self.search_results
        featured_ids = {p.property_id for p in self.featured}
        self.search_results = [p for p in _parse_properties(body) if p.property_id not in featured_ids]
        return self.search_results

    async def add(self, property_id: str) -> bool:
        if self.submitting:
            return False
        self.submitting = True
        try:
            await self.store.api.post(
                FEATURED_PATH,
                {
                    "property_id": property_id,
                    "featured_until": None,
                    "featured_order": len(self.featured) + 1,
                },
                token=self._token,
            )
        except PropConnectError as e:
            self.toast_error(e, "Failed to add property to featured listings")
            return False
        finally:
            self.submitting = False

        self.store.ui.show_toast("Property added to featured listings", "success")
        self.search_results = [p for p in self.search_results if p.property_id != property_id]
        await self.load()
        return True

    async def remove(self, property_id: str) -> bool:
        try:
            await self.store.api.delete(f"{FEATURED_PATH}/{property_id}", token=self._token)
        except PropConnectError as e:
            self.toast_error(e, "Failed to remove property from featured listings")
            return False
        self.store.ui.show_toast("Property removed from featured listings", "success")
        await self.load()
        return True

    async def reorder(self, from_index: int, to_index: int) -> bool:
        """Move one listing, show the new order at once, then persist it.

        Out-of-range indices leave the list alone and return False.
        """
        ordered = move_item(self.featured, from_index, to_index)
        if ordered is None:
            logger.debug(f"Ignoring featured reorder {from_index} -> {to_index} of {len(self.featured)}")
            return False
        for index, prop in enumerate(ordered):
            prop.featured_order = index + 1
        self.featured = ordered

        listing_order = [{"property_id": p.property_id, "featured_order": p.featured_order} for p in ordered]
        try:
            await self.store.api.put(
                f"{FEATURED_PATH}/reorder", {"listing_order": listing_order}, token=self._token
            )
        except PropConnectError as e:
            self.toast_error(e, "Failed to reorder featured listings")
            await self.load()
            return False
        self.store.ui.show_toast("Featured listings reordered successfully", "success")
        return True
