"""Create listing page: form, photo queue, geocoding, draft and publish."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from itertools import count
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from propconnect.shared.core.errors import PropConnectError
from propconnect.shared.domain.validation import (
    MAX_LISTING_PHOTOS,
    MAX_UPLOAD_BYTES,
    PHOTO_CONTENT_TYPES,
    ListingForm,
    price_per_sqft,
    validate_listing_for_publish,
)

from .base import PageController, SelectedFile, error_message, move_item

if TYPE_CHECKING:
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

_temp_ids = count(1)


@dataclass
class PhotoUpload:
    """One photo in the listing's queue, uploaded or on its way."""

    photo_id: str
    filename: str
    display_order: int
    is_primary: bool = False
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    uploading: bool = True
    upload_error: Optional[str] = None


def renumber(photos: List[PhotoUpload]) -> None:
    """1-based display order; the first photo is the primary one."""
    for index, photo in enumerate(photos):
        photo.display_order = index + 1
        photo.is_primary = index == 0


class CreateListingController(PageController):
    """New listing form for the signed-in agent."""

    def __init__(self, store: Store) -> None:
        super().__init__(store)
        self.form = ListingForm()
        self.photos: List[PhotoUpload] = []
        self.geocoding = False
        self.created_property_id: Optional[str] = None

    @property
    def _token(self) -> Optional[str]:
        return self.store.state.auth.agent_auth_token

    @property
    def photos_uploading(self) -> bool:
        return any(p.uploading for p in self.photos)

    @property
    def price_per_sqft(self) -> Optional[int]:
        return price_per_sqft(self.form.price, self.form.square_footage)

    # --- Photos ---

    def _accept(self, files: List[SelectedFile]) -> List[SelectedFile]:
        if len(self.photos) + len(files) > MAX_LISTING_PHOTOS:
            self.store.ui.show_toast(f"Maximum {MAX_LISTING_PHOTOS} photos allowed", "error")
            return []
        accepted = []
        for file in files:
            if file.size > MAX_UPLOAD_BYTES:
                self.store.ui.show_toast(f"{file.name} exceeds 10MB", "error")
                continue
            if file.content_type not in PHOTO_CONTENT_TYPES:
                self.store.ui.show_toast(f"{file.name} must be JPG or PNG", "error")
                continue
            accepted.append(file)
        return accepted

    async def add_photos(self, files: List[SelectedFile]) -> List[PhotoUpload]:
        """Queue and upload the acceptable files concurrently."""
        accepted = self._accept(files)
        queued = []
        for file in accepted:
            photo = PhotoUpload(
                photo_id=f"temp_{next(_temp_ids)}",
                filename=file.name,
                display_order=len(self.photos) + 1,
                is_primary=not self.photos,
            )
            self.photos.append(photo)
            queued.append(photo)
        await asyncio.gather(*(self._upload(photo, file) for photo, file in zip(queued, accepted)))
        return queued

    async def _upload(self, photo: PhotoUpload, file: SelectedFile) -> None:
        try:
            body = await self.store.api.upload(
                "/api/upload/photo",
                file.name,
                file.content,
                file.content_type,
                token=self._token,
                data={"photo_type": "property", "agent_id": self._current_agent_id() or ""},
            )
        except PropConnectError as e:
            photo.uploading = False
            photo.upload_error = error_message(e, "Upload failed")
            return
        body = body or {}
        photo.image_url = body.get("image_url")
        photo.thumbnail_url = body.get("thumbnail_url")
        photo.uploading = False

    def remove_photo(self, photo_id: str) -> None:
        self.photos = [p for p in self.photos if p.photo_id != photo_id]
        renumber(self.photos)

    def reorder_photos(self, from_index: int, to_index: int) -> bool:
        ordered = move_item(self.photos, from_index, to_index)
        if ordered is None:
            return False
        self.photos = ordered
        renumber(self.photos)
        return True

    # --- Geocoding ---

    async def geocode(self) -> bool:
        """Fill latitude/longitude from the address. Needs street, city and state."""
        form = self.form
        if not (form.address_street and form.address_city and form.address_state):
            return False
        address = f"{form.address_street}, {form.address_city}, {form.address_state} {form.address_zip}"

        self.geocoding = True
        try:
            body = await self.store.api.get("/api/geocode", token=self._token, params={"address": address})
        except PropConnectError as e:
            logger.info(f"Geocoding failed for '{address}': {e}")
            self.store.ui.show_toast("Could not verify address. Please check and try again.", "warning")
            return False
        finally:
            self.geocoding = False

        body = body or {}
        form.latitude = body.get("latitude")
        form.longitude = body.get("longitude")
        return True

    # --- Save ---

    def build_payload(self, publish: bool) -> Dict[str, Any]:
        payload = asdict(self.form)
        payload["agent_id"] = self._current_agent_id() or ""
        payload["status"] = "active" if publish else "draft"
        payload["price_per_sqft"] = self.price_per_sqft
        return payload

    def photos_payload(self) -> List[Dict[str, Any]]:
        return [
            {
                "image_url": p.image_url,
                "thumbnail_url": p.thumbnail_url,
                "display_order": p.display_order,
                "is_primary": p.is_primary,
                "caption": None,
            }
            for p in self.photos
            if p.image_url
        ]

    async def save(self, publish: bool = False) -> Optional[str]:
        """Create the listing as a draft or publish it.

        Drafts skip validation. Returns the new property id.
        """
        if self.submitting:
            return None
        if publish:
            errors = validate_listing_for_publish(self.form, len(self.photos), self.photos_uploading)
        else:
            errors = {}
        if not self._check(errors):
            self.store.ui.show_toast("Please fix validation errors before saving", "error")
            return None

        self.submitting = True
        try:
            try:
                body = await self.store.api.post("/api/properties", self.build_payload(publish), token=self._token)
            except PropConnectError as e:
                self.toast_error(e, "Failed to save listing")
                return None

            property_id = str((body or {}).get("property_id") or "")
            self.created_property_id = property_id or None
            photos = self.photos_payload()
            if property_id and photos:
                try:
                    await self.store.api.post(
                        f"/api/properties/{property_id}/photos", {"photos": photos}, token=self._token
                    )
                except PropConnectError as e:
                    logger.error(f"Failed to save photos for {property_id}: {e}")
        finally:
            self.submitting = False

        if publish:
            self.store.ui.show_toast("Listing published successfully!", "success", 5000)
        else:
            self.store.ui.show_toast("Listing saved as draft", "success")
        return self.created_property_id
