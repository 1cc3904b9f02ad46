"""Client-side form state and validation.

Every validator returns a ``field -> message`` map; an empty map means the
form may be sent. Messages are shown next to the offending field and never
travel over the wire.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
PHOTO_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png")
DOCUMENT_CONTENT_TYPES = ("application/pdf",) + PHOTO_CONTENT_TYPES
MAX_LISTING_PHOTOS = 50
MIN_LISTING_PHOTOS = 1

ValidationErrors = Dict[str, str]


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def _check_email(errors: ValidationErrors, email: str, key: str = "email") -> None:
    if not (email or "").strip():
        errors[key] = "Email is required"
    elif not is_valid_email(email):
        errors[key] = "Please enter a valid email address"


# --- Authentication forms ---


@dataclass
class LoginForm:
    email: str = ""
    password: str = ""
    remember_me: bool = False


def validate_login(form: LoginForm) -> ValidationErrors:
    errors: ValidationErrors = {}
    _check_email(errors, form.email)
    if not form.password:
        errors["password"] = "Password is required"
    return errors


@dataclass
class RegistrationForm:
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    full_name: str = ""
    phone_number: str = ""
    terms_accepted: bool = False


def validate_registration(form: RegistrationForm) -> ValidationErrors:
    """Property seeker sign-up rules."""
    errors: ValidationErrors = {}
    _check_email(errors, form.email)

    if not form.password:
        errors["password"] = "Password is required"
    elif len(form.password) < 8:
        errors["password"] = "Password must be at least 8 characters"
    elif len(form.password) > 100:
        errors["password"] = "Password must be less than 100 characters"

    if not form.confirm_password:
        errors["confirm_password"] = "Please confirm your password"
    elif form.password != form.confirm_password:
        errors["confirm_password"] = "Passwords do not match"

    if not form.full_name.strip():
        errors["full_name"] = "Full name is required"
    elif len(form.full_name) > 255:
        errors["full_name"] = "Name must be less than 255 characters"

    if form.phone_number and len(form.phone_number) > 20:
        errors["phone_number"] = "Phone number must be less than 20 characters"

    if not form.terms_accepted:
        errors["terms_accepted"] = "You must accept the Terms and Privacy Policy to continue"
    return errors


@dataclass
class AgentRegistrationForm:
    # Step 1: account
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    full_name: str = ""
    phone_number: str = ""
    # Step 2: license and office
    license_number: str = ""
    license_state: str = ""
    agency_name: str = ""
    office_address_street: str = ""
    office_address_city: str = ""
    office_address_state: str = ""
    office_address_zip: str = ""
    years_experience: str = ""
    license_document_url: str = ""
    # Step 3: profile and terms
    profile_photo_url: str = ""
    bio: str = ""
    specializations: List[str] = field(default_factory=list)
    service_areas: List[str] = field(default_factory=list)
    languages_spoken: List[str] = field(default_factory=list)
    terms_accepted: bool = False


AGENT_REGISTRATION_STEPS = 3


def validate_agent_registration_step(form: AgentRegistrationForm, step: int) -> ValidationErrors:
    """Validate one step of the three-step agent application."""
    errors: ValidationErrors = {}
    if step == 1:
        _check_email(errors, form.email)
        if not form.password:
            errors["password"] = "Password is required"
        elif len(form.password) < 8:
            errors["password"] = "Password must be at least 8 characters"
        if form.password != form.confirm_password:
            errors["confirm_password"] = "Passwords do not match"
        if not form.full_name.strip():
            errors["full_name"] = "Full name is required"
        if not form.phone_number:
            errors["phone_number"] = "Phone number is required"
    elif step == 2:
        required = {
            "license_number": "License number is required",
            "license_state": "License state is required",
            "agency_name": "Agency name is required",
            "office_address_street": "Office street address is required",
            "office_address_city": "City is required",
        }
        for key, message in required.items():
            if not getattr(form, key):
                errors[key] = message
        if not form.office_address_state:
            errors["office_address_state"] = "State is required"
        elif len(form.office_address_state) != 2:
            errors["office_address_state"] = "State must be 2 characters (e.g., CA)"
        if not form.office_address_zip:
            errors["office_address_zip"] = "ZIP code is required"
        elif len(form.office_address_zip) < 5:
            errors["office_address_zip"] = "ZIP code must be at least 5 characters"
        if not form.years_experience:
            errors["years_experience"] = "Years of experience is required"
        if not form.license_document_url:
            errors["license_document"] = "Please upload your license documentation"
    elif step == 3:
        if not form.terms_accepted:
            errors["terms_accepted"] = "You must agree to the Terms of Service and Commission Agreement"
    else:
        raise ValueError(f"Unknown registration step: {step}")
    return errors


# --- Uploads ---


def validate_upload(
    size: int,
    content_type: str,
    allowed_types: tuple = DOCUMENT_CONTENT_TYPES,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> Optional[str]:
    """Return an error message for an unacceptable file, else None."""
    if size > max_bytes:
        return "File size must be less than 10MB"
    if content_type not in allowed_types:
        if allowed_types == PHOTO_CONTENT_TYPES:
            return "File must be JPG or PNG"
        return "File must be PDF, JPG, or PNG"
    return None


# --- Contact and inquiries ---


@dataclass
class ContactForm:
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    subject: str = ""
    message: str = ""
    inquiry_category: str = "general"
    attachment_url: Optional[str] = None


def _check_message(errors: ValidationErrors, message: str) -> None:
    if not message.strip():
        errors["message"] = "Message is required"
    elif len(message.strip()) < 10:
        errors["message"] = "Message must be at least 10 characters"


def validate_contact(form: ContactForm) -> ValidationErrors:
    errors: ValidationErrors = {}
    if not form.contact_name.strip():
        errors["contact_name"] = "Name is required"
    _check_email(errors, form.contact_email, key="contact_email")
    if not form.subject.strip():
        errors["subject"] = "Subject is required"
    _check_message(errors, form.message)
    return errors


@dataclass
class InquiryForm:
    inquirer_name: str = ""
    inquirer_email: str = ""
    inquirer_phone: str = ""
    message: str = ""
    viewing_requested: bool = False
    preferred_viewing_date: str = ""
    preferred_viewing_time: str = ""


def validate_inquiry(form: InquiryForm) -> ValidationErrors:
    errors: ValidationErrors = {}
    if not form.inquirer_name.strip():
        errors["inquirer_name"] = "Name is required"
    _check_email(errors, form.inquirer_email, key="inquirer_email")
    _check_message(errors, form.message)
    if form.viewing_requested:
        if not form.preferred_viewing_date:
            errors["preferred_viewing_date"] = "Please select a preferred date"
        if not form.preferred_viewing_time:
            errors["preferred_viewing_time"] = "Please select a preferred time"
    return errors


# --- Listings ---


@dataclass
class ListingForm:
    title: str = ""
    description: str = ""
    listing_type: str = "sale"
    property_type: str = "house"
    price: Optional[float] = None
    currency: str = "USD"
    rent_frequency: Optional[str] = None
    address_street: str = ""
    address_unit: str = ""
    address_city: str = ""
    address_state: str = ""
    address_zip: str = ""
    address_country: str = "United States"
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    neighborhood: str = ""
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    square_footage: Optional[int] = None
    lot_size: Optional[float] = None
    year_built: Optional[int] = None
    hoa_fee: Optional[float] = None
    property_tax: Optional[float] = None
    amenities: List[str] = field(default_factory=list)
    highlights: List[str] = field(default_factory=list)
    furnished: bool = False
    pet_friendly: bool = False


def price_per_sqft(price: Optional[float], square_footage: Optional[int]) -> Optional[int]:
    if price and square_footage and square_footage > 0:
        return round(price / square_footage)
    return None


def validate_listing_for_publish(
    form: ListingForm,
    photo_count: int,
    photos_uploading: bool,
) -> ValidationErrors:
    """Rules a new listing must satisfy before it goes live.

    Drafts are saved without validation.
    """
    errors: ValidationErrors = {}
    if len(form.title) < 10:
        errors["title"] = "Title must be at least 10 characters"
    if len(form.description) < 50:
        errors["description"] = "Description must be at least 50 characters"
    if not form.price or form.price <= 0:
        errors["price"] = "Price is required and must be greater than 0"
    if not form.address_street:
        errors["address_street"] = "Street address is required"
    if not form.address_city:
        errors["address_city"] = "City is required"
    if not form.address_state:
        errors["address_state"] = "State is required"
    if not form.address_zip:
        errors["address_zip"] = "ZIP code is required"
    if photo_count < MIN_LISTING_PHOTOS:
        errors["photos"] = "At least 1 photo is required"
    if photos_uploading:
        errors["photos"] = "Please wait for all photos to finish uploading"
    return errors


def validate_listing_update(form: ListingForm) -> ValidationErrors:
    """Rules for editing an existing listing."""
    errors: ValidationErrors = {}
    if len(form.title) < 10:
        errors["title"] = "Title must be at least 10 characters"
    elif len(form.title) > 200:
        errors["title"] = "Title must not exceed 200 characters"
    if len(form.description) < 50:
        errors["description"] = "Description must be at least 50 characters"
    elif len(form.description) > 5000:
        errors["description"] = "Description must not exceed 5000 characters"
    if not form.price or form.price <= 0:
        errors["price"] = "Price must be greater than 0"
    if not form.address_street:
        errors["address_street"] = "Street address is required"
    if not form.address_city:
        errors["address_city"] = "City is required"
    if form.bedrooms is None or form.bedrooms < 0:
        errors["bedrooms"] = "Bedrooms must be 0 or greater"
    if not form.bathrooms or form.bathrooms <= 0:
        errors["bathrooms"] = "Bathrooms must be greater than 0"
    if not form.square_footage or form.square_footage <= 0:
        errors["square_footage"] = "Square footage must be greater than 0"
    return errors
