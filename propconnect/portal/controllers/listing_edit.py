"""Edit listing page: ownership check, update, photo management and history."""

from __future__ import annotations

import logging
from dataclasses import asdict, fields
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import ValidationError

from propconnect.shared.core.errors import PropConnectError
from propconnect.shared.domain.models import PriceHistoryEntry, PropertyPhoto, StatusHistoryEntry
from propconnect.shared.domain.validation import (
    MAX_UPLOAD_BYTES,
    PHOTO_CONTENT_TYPES,
    ListingForm,
    price_per_sqft,
    validate_listing_update,
)
from propconnect.shared.infrastructure.http.api_client import unwrap_list

from .base import PageController, SelectedFile, move_item

if TYPE_CHECKING:
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

_INT_FIELDS = {"bedrooms", "square_footage", "year_built"}
_FLOAT_FIELDS = {"price", "bathrooms", "lot_size", "hoa_fee", "property_tax"}


def _number(value: Any, cast) -> Any:
    if value is None or value == "":
        return None
    try:
        return cast(float(value))
    except (TypeError, ValueError):
        return None


def listing_form_from_record(record: Dict[str, Any]) -> ListingForm:
    """Build an edit form from a backend property row (DECIMALs arrive as text)."""
    form = ListingForm()
    for f in fields(ListingForm):
        if f.name not in record or record[f.name] is None:
            continue
        value = record[f.name]
        if f.name in _INT_FIELDS:
            value = _number(value, int)
        elif f.name in _FLOAT_FIELDS:
            value = _number(value, float)
        setattr(form, f.name, value)
    return form


class EditListingController(PageController):
    """Edits one of the signed-in agent's listings."""

    def __init__(self, store: Store, property_id: str) -> None:
        super().__init__(store)
        self.property_id = property_id
        self.form: Optional[ListingForm] = None
        self.status = "draft"
        self.updated_at: Optional[str] = None
        self.photos: List[PropertyPhoto] = []
        self.price_history: List[PriceHistoryEntry] = []
        self.status_history: List[StatusHistoryEntry] = []
        self.permission_denied = False
        self.uploading_photos = False

    @property
    def _token(self) -> Optional[str]:
        return self.store.state.auth.agent_auth_token

    @property
    def _base(self) -> str:
        return f"/api/properties/{self.property_id}"

    # --- Loading ---

    async def load(self) -> bool:
        """Load the listing, refusing listings owned by another agent."""
        try:
            record = await self.store.api.get(self._base, token=self._token)
        except PropConnectError as e:
            self.toast_error(e, "Failed to load listing")
            return False

        record = record or {}
        if record.get("agent_id") != self._current_agent_id():
            self.permission_denied = True
            self.store.ui.show_toast("You do not have permission to edit this listing", "error")
            return False

        self.form = listing_form_from_record(record)
        self.status = record.get("status") or "draft"
        self.updated_at = record.get("updated_at")
        await self.load_photos()
        await self.load_history()
        return True

    async def load_photos(self) -> None:
        try:
            body = await self.store.api.get(f"{self._base}/photos", token=self._token)
            photos = [PropertyPhoto.model_validate(row) for row in unwrap_list(body)]
        except (PropConnectError, ValidationError) as e:
            logger.warning(f"Failed to load photos for {self.property_id}: {e}")
            return
        self.photos = sorted(photos, key=lambda p: p.display_order)

    async def load_history(self) -> None:
        try:
            prices = await self.store.api.get(f"{self._base}/price-history", token=self._token)
            statuses = await self.store.api.get(f"{self._base}/status-history", token=self._token)
            self.price_history = [PriceHistoryEntry.model_validate(row) for row in unwrap_list(prices)]
            self.status_history = [StatusHistoryEntry.model_validate(row) for row in unwrap_list(statuses)]
        except (PropConnectError, ValidationError) as e:
            logger.warning(f"Failed to load history for {self.property_id}: {e}")

    # --- Update ---

    def build_payload(self) -> Dict[str, Any]:
        payload = asdict(self.form)
        payload["status"] = self.status
        payload["price_per_sqft"] = price_per_sqft(self.form.price, self.form.square_footage)
        return payload

    async def save(self) -> bool:
        if self.submitting or self.form is None:
            return False
        if not self._check(validate_listing_update(self.form)):
            return False

        self.submitting = True
        try:
            body = await self.store.api.put(self._base, self.build_payload(), token=self._token)
        except PropConnectError as e:
            self.toast_error(e, "Failed to update listing")
            return False
        finally:
            self.submitting = False

        self.updated_at = (body or {}).get("updated_at", self.updated_at)
        self.store.ui.show_toast("Listing updated successfully", "success")
        # Price and status changes add history rows
        await self.load_history()
        return True

    # --- Photos ---

    async def upload_photos(self, files: List[SelectedFile]) -> int:
        """Upload and attach photos one by one. Returns how many were added."""
        valid = []
        for file in files:
            if file.size > MAX_UPLOAD_BYTES:
                self.store.ui.show_toast(f"{file.name} exceeds 10MB", "error")
            elif file.content_type not in PHOTO_CONTENT_TYPES:
                self.store.ui.show_toast(f"{file.name} must be JPG or PNG", "error")
            else:
                valid.append(file)
        if not valid:
            return 0

        added = 0
        self.uploading_photos = True
        try:
            for file in valid:
                if await self._upload_one(file):
                    added += 1
        finally:
            self.uploading_photos = False
        return added

    async def _upload_one(self, file: SelectedFile) -> bool:
        try:
            uploaded = await self.store.api.upload(
                "/api/upload/photo",
                file.name,
                file.content,
                file.content_type,
                token=self._token,
                data={"photo_type": "property", "agent_id": self._current_agent_id() or ""},
            ) or {}
            await self.store.api.post(
                f"{self._base}/photos",
                {
                    "image_url": uploaded.get("image_url"),
                    "thumbnail_url": uploaded.get("thumbnail_url"),
                    "display_order": len(self.photos) + 1,
                    "is_primary": not self.photos,
                },
                token=self._token,
            )
        except PropConnectError as e:
            self.toast_error(e, "Failed to upload photo")
            return False
        self.store.ui.show_toast("Photo uploaded successfully", "success")
        await self.load_photos()
        return True

    async def delete_photo(self, photo_id: str) -> bool:
        try:
            await self.store.api.delete(f"{self._base}/photos/{photo_id}", token=self._token)
        except PropConnectError as e:
            self.toast_error(e, "Failed to delete photo")
            return False
        self.store.ui.show_toast("Photo deleted successfully", "success")
        await self.load_photos()
        return True

    async def reorder_photos(self, from_index: int, to_index: int) -> bool:
        ordered = move_item(self.photos, from_index, to_index)
        if ordered is None:
            return False
        photo_order = [{"photo_id": p.photo_id, "display_order": i + 1} for i, p in enumerate(ordered)]
        try:
            await self.store.api.put(
                f"{self._base}/photos/reorder", {"photo_order": photo_order}, token=self._token
            )
        except PropConnectError as e:
            self.toast_error(e, "Failed to reorder photos")
            return False
        self.store.ui.show_toast("Photos reordered successfully", "success")
        await self.load_photos()
        return True
