"""Property detail page: listing, gallery, agent card, inquiries and reports."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import ValidationError

from propconnect.shared.config.templates import render_template
from propconnect.shared.core.errors import ApiError, ErrorKind, PropConnectError
from propconnect.shared.domain.models import Agent, PropertyPhoto, PropertySummary
from propconnect.shared.domain.validation import InquiryForm, is_valid_email, validate_inquiry
from propconnect.shared.infrastructure.http.api_client import unwrap_list

from .base import PageController
from .login import AUTH_MODAL

if TYPE_CHECKING:
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

SIMILAR_LIMIT = 6
SIMILAR_PRICE_BAND = 0.2

REPORT_REASONS = (
    "Incorrect Information",
    "Suspicious Listing",
    "Inappropriate Content",
    "Spam",
    "Other",
)


class PropertyDetailController(PageController):
    """Backs the public property page.

    ``load()`` fetches the listing and then, best effort, its photos, agent
    and similar listings. The view is reported at most once per session.
    """

    def __init__(self, store: Store, property_id: str) -> None:
        super().__init__(store)
        self.property_id = property_id
        self.property: Optional[PropertySummary] = None
        self.photos: List[PropertyPhoto] = []
        self.agent: Optional[Agent] = None
        self.similar: List[PropertySummary] = []
        self.not_found = False
        self.current_image = 0

        self.inquiry_form = InquiryForm()
        self.inquiry_sent = False

        self.report_reason = ""
        self.report_details = ""
        self.report_submitting = False

    # --- Loading ---

    async def load(self) -> Optional[PropertySummary]:
        try:
            body = await self.store.api.get(f"/api/properties/{self.property_id}")
            self.property = PropertySummary.model_validate(body)
        except (ApiError, ValidationError) as e:
            logger.warning(f"Failed to load property {self.property_id}: {e}")
            self.not_found = isinstance(e, ValidationError) or e.kind is ErrorKind.NOT_FOUND
            self.property = None
            return None

        await self.load_photos()
        await self.load_agent()
        await self.load_similar()
        self.track_view()
        self.prefill_inquiry()
        return self.property

    async def load_photos(self) -> None:
        try:
            body = await self.store.api.get(f"/api/properties/{self.property_id}/photos")
            photos = [PropertyPhoto.model_validate(row) for row in unwrap_list(body)]
        except (PropConnectError, ValidationError) as e:
            logger.warning(f"Failed to load photos for {self.property_id}: {e}")
            return
        self.photos = sorted(photos, key=lambda p: p.display_order)
        self.current_image = 0

    async def load_agent(self) -> None:
        if self.property is None or not self.property.agent_id:
            return
        try:
            body = await self.store.api.get(f"/api/agents/{self.property.agent_id}")
            self.agent = Agent.model_validate(body)
        except (PropConnectError, ValidationError) as e:
            logger.warning(f"Failed to load agent {self.property.agent_id}: {e}")

    def similar_params(self) -> Dict[str, Any]:
        prop = self.property
        return {
            "city": prop.address_city,
            "listing_type": prop.listing_type,
            "property_type": [prop.property_type] if prop.property_type else None,
            "min_price": math.floor(prop.price * (1 - SIMILAR_PRICE_BAND)),
            "max_price": math.ceil(prop.price * (1 + SIMILAR_PRICE_BAND)),
            "status": ["active"],
            "limit": SIMILAR_LIMIT,
            "sort_by": "created_at",
            "sort_order": "desc",
        }

    async def load_similar(self) -> None:
        if self.property is None:
            return
        try:
            body = await self.store.api.get("/api/properties", params=self.similar_params())
            rows = [PropertySummary.model_validate(row) for row in unwrap_list(body)]
        except (PropConnectError, ValidationError) as e:
            logger.warning(f"Failed to load similar properties: {e}")
            return
        self.similar = [p for p in rows if p.property_id != self.property_id][:SIMILAR_LIMIT]

    def track_view(self) -> None:
        """Report a view once per session, without waiting for the backend."""
        viewed = self.store.state.ui.viewed_properties
        if self.property_id in viewed:
            return
        viewed.add(self.property_id)
        user = self.store.state.auth.current_user
        self.store.spawn(
            self.store.api.post(
                f"/api/properties/{self.property_id}/view",
                {
                    "property_id": self.property_id,
                    "user_id": user.user_id if user else None,
                    "session_id": self.store.state.ui.session_id,
                },
            ),
            f"track_view:{self.property_id}",
        )

    # --- Gallery ---

    def next_image(self) -> None:
        if self.photos:
            self.current_image = (self.current_image + 1) % len(self.photos)

    def previous_image(self) -> None:
        if self.photos:
            self.current_image = (self.current_image - 1) % len(self.photos)

    # --- Favorites ---

    @property
    def is_saved(self) -> bool:
        return self.store.favorites.is_property_saved(self.property_id)

    async def toggle_favorite(self) -> None:
        """Save or unsave the listing; guests get the sign-in modal instead."""
        auth = self.store.state.auth
        if auth.current_user is None or not auth.user_auth_token:
            self.store.ui.open_modal(AUTH_MODAL)
            return
        try:
            if self.is_saved:
                await self.store.favorites.remove_favorite(self.property_id)
            else:
                await self.store.favorites.add_favorite(self.property_id)
        except PropConnectError as e:
            # The store already restored state and showed a toast
            logger.info(f"Favorite toggle for {self.property_id} failed: {e}")

    # --- Inquiry ---

    def default_inquiry_message(self) -> str:
        if self.property is None:
            return ""
        return render_template(
            "property_inquiry",
            street=self.property.address_street,
            city=self.property.address_city,
            state=self.property.address_state,
        )

    def prefill_inquiry(self) -> None:
        """Reset the inquiry form to the signed-in user's details."""
        user = self.store.state.auth.current_user
        self.inquiry_form = InquiryForm(
            inquirer_name=user.full_name if user else "",
            inquirer_email=user.email if user else "",
            inquirer_phone=(user.phone_number or "") if user else "",
            message=self.default_inquiry_message(),
        )

    def build_inquiry_payload(self) -> Dict[str, Any]:
        form = self.inquiry_form
        user = self.store.state.auth.current_user
        payload: Dict[str, Any] = {
            "property_id": self.property_id,
            "agent_id": self.property.agent_id if self.property else None,
            "user_id": user.user_id if user else None,
            "inquirer_name": form.inquirer_name.strip(),
            "inquirer_email": form.inquirer_email.strip(),
            "inquirer_phone": form.inquirer_phone or None,
            "message": form.message.strip(),
            "viewing_requested": form.viewing_requested,
        }
        if form.viewing_requested:
            payload["preferred_viewing_date"] = form.preferred_viewing_date
            payload["preferred_viewing_time"] = form.preferred_viewing_time
        return payload

    async def submit_inquiry(self) -> bool:
        if self.submitting:
            return False
        if not self._check(validate_inquiry(self.inquiry_form)):
            return False

        self.submitting = True
        try:
            await self.store.api.post(
                "/api/inquiries",
                self.build_inquiry_payload(),
                token=self.store.state.auth.user_auth_token,
            )
        except PropConnectError as e:
            self.toast_error(e, "Failed to send inquiry. Please try again.")
            return False
        finally:
            self.submitting = False

        self.store.ui.show_toast("Inquiry sent successfully! The agent will contact you soon.", "success")
        self.inquiry_sent = True
        self.prefill_inquiry()
        return True

    # --- Report ---

    def open_report(self) -> None:
        self.report_reason = ""
        self.report_details = ""
        self.store.ui.open_modal("report_listing", {"property_id": self.property_id})

    async def submit_report(self) -> bool:
        if self.report_submitting or self.report_reason not in REPORT_REASONS:
            return False
        user = self.store.state.auth.current_user
        reporter_email = None
        if user is None:
            reporter_email = self.inquiry_form.inquirer_email.strip() or None
            if reporter_email and not is_valid_email(reporter_email):
                self.validation_errors["reporter_email"] = "Please enter a valid email address"
                return False

        self.report_submitting = True
        try:
            await self.store.api.post(
                "/api/property-reports",
                {
                    "property_id": self.property_id,
                    "reporter_user_id": user.user_id if user else None,
                    "reporter_email": reporter_email,
                    "reason": self.report_reason,
                    "details": self.report_details or None,
                },
                token=self.store.state.auth.user_auth_token,
            )
        except PropConnectError as e:
            logger.warning(f"Report for {self.property_id} failed: {e}")
            self.store.ui.show_toast("Failed to submit report. Please try again.", "error")
            return False
        finally:
            self.report_submitting = False

        self.store.ui.show_toast("Thank you for your report. We will review this listing.", "success")
        self.store.ui.close_modal()
        self.report_reason = ""
        self.report_details = ""
        return True
