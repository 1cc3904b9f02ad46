"""Domain records for PropConnect clients.

Identity, preference and toast records are owned by the store; property,
photo and inquiry records are shallow projections of backend rows. Backend
records tolerate unknown fields and coerce numeric strings (DECIMAL columns
arrive as text).
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserType(str, Enum):
    GUEST = "guest"
    PROPERTY_SEEKER = "property_seeker"
    AGENT = "agent"
    ADMIN = "admin"


class PrincipalKind(str, Enum):
    """Kinds of principal that can sign in."""

    SEEKER = "user"
    AGENT = "agent"
    ADMIN = "admin"

    @property
    def user_type(self) -> UserType:
        return _KIND_USER_TYPES[self]


_KIND_USER_TYPES = {
    PrincipalKind.SEEKER: UserType.PROPERTY_SEEKER,
    PrincipalKind.AGENT: UserType.AGENT,
    PrincipalKind.ADMIN: UserType.ADMIN,
}


class BackendRecord(BaseModel):
    """Base for records decoded from backend JSON."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)


# --- Identities ---


class User(BackendRecord):
    user_id: str
    email: str
    full_name: str
    phone_number: Optional[str] = None
    email_verified: bool = False
    profile_photo_url: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Agent(BackendRecord):
    agent_id: str
    email: str
    full_name: str
    phone_number: Optional[str] = None
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    agency_name: Optional[str] = None
    office_address_street: Optional[str] = None
    office_address_city: Optional[str] = None
    office_address_state: Optional[str] = None
    office_address_zip: Optional[str] = None
    years_experience: Optional[str] = None
    profile_photo_url: Optional[str] = None
    professional_title: Optional[str] = None
    bio: Optional[str] = None
    specializations: Optional[Any] = None
    service_areas: Optional[Any] = None
    languages_spoken: Optional[Any] = None
    social_media_links: Optional[Any] = None
    certifications: Optional[Any] = None
    email_signature: Optional[str] = None
    approved: bool = False
    approval_status: Literal["pending", "approved", "rejected"] = "pending"
    rejection_reason: Optional[str] = None
    email_verified: bool = False
    account_status: Literal["active", "inactive", "suspended"] = "active"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_approved(self) -> bool:
        return self.approved and self.approval_status == "approved"


class Admin(BackendRecord):
    admin_id: str
    email: str
    full_name: str
    role: Literal["admin", "moderator"] = "moderator"


# --- Notification preferences ---


class UserNotificationPreferences(BackendRecord):
    preference_id: Optional[str] = None
    user_id: Optional[str] = None
    saved_property_price_change: bool = True
    saved_property_status_change: bool = True
    new_matching_properties: bool = True
    agent_reply_received: bool = True
    platform_updates: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AgentNotificationPreferences(BackendRecord):
    preference_id: Optional[str] = None
    agent_id: Optional[str] = None
    new_inquiry_received: bool = True
    inquirer_replied: bool = True
    property_view_milestones: bool = True
    monthly_report: bool = True
    platform_updates: bool = True
    notification_frequency: Literal["instant", "daily", "weekly"] = "instant"
    browser_notifications_enabled: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# --- Transient UI ---


ToastSeverity = Literal["success", "error", "info", "warning"]


def generate_toast_id() -> str:
    return f"toast_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class ToastMessage(BaseModel):
    id: str = Field(default_factory=generate_toast_id)
    message: str
    type: ToastSeverity = "info"
    duration: int = Field(default=3000, ge=0, description="Lifetime in milliseconds")
    created_at: float = Field(default_factory=time.time)


# --- Backend projections ---


class PropertySummary(BackendRecord):
    property_id: str
    agent_id: Optional[str] = None
    title: str = ""
    description: str = ""
    listing_type: Optional[str] = None
    property_type: Optional[str] = None
    status: str = "draft"
    price: float = 0
    currency: str = "USD"
    price_per_sqft: Optional[float] = None
    address_street: str = ""
    address_unit: Optional[str] = None
    address_city: str = ""
    address_state: str = ""
    address_zip: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    square_footage: Optional[int] = None
    lot_size: Optional[float] = None
    hoa_fee: Optional[float] = None
    property_tax: Optional[float] = None
    view_count: int = 0
    inquiry_count: int = 0
    favorite_count: int = 0
    is_featured: bool = False
    featured_until: Optional[str] = None
    featured_order: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator(
        "latitude", "longitude", "price_per_sqft", "lot_size", "hoa_fee", "property_tax",
        "bedrooms", "bathrooms", "square_footage",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PropertyPhoto(BackendRecord):
    photo_id: str
    property_id: Optional[str] = None
    image_url: str
    thumbnail_url: Optional[str] = None
    display_order: int = 0
    is_primary: bool = False
    caption: Optional[str] = None


class InquiryReply(BackendRecord):
    reply_id: str
    inquiry_id: Optional[str] = None
    sender_type: str = "agent"
    sender_id: Optional[str] = None
    message: str
    include_signature: bool = True
    created_at: Optional[str] = None


InquiryStatus = Literal["new", "responded", "scheduled", "completed", "closed"]


class Inquiry(BackendRecord):
    inquiry_id: str
    property_id: Optional[str] = None
    agent_id: Optional[str] = None
    user_id: Optional[str] = None
    inquirer_name: str
    inquirer_email: str
    inquirer_phone: Optional[str] = None
    message: str
    viewing_requested: bool = False
    preferred_viewing_date: Optional[str] = None
    preferred_viewing_time: Optional[str] = None
    status: InquiryStatus = "new"
    agent_read: bool = False
    agent_read_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    replies: List[InquiryReply] = Field(default_factory=list)


class PriceHistoryEntry(BackendRecord):
    history_id: str
    property_id: str
    old_price: float
    new_price: float
    price_change_amount: float = 0
    price_change_percentage: float = 0
    changed_at: Optional[str] = None


class StatusHistoryEntry(BackendRecord):
    history_id: str
    property_id: str
    old_status: str
    new_status: str
    changed_by_agent_id: Optional[str] = None
    notes: Optional[str] = None
    changed_at: Optional[str] = None
