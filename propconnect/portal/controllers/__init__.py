"""Page controllers. Each takes the application store explicitly."""

from .base import PageController, SelectedFile
from .contact import CONTACT_CATEGORIES, ContactController
from .featured_listings import FeaturedListingsController
from .inquiries import AgentInquiriesController, UserInquiriesController
from .listing_create import CreateListingController, PhotoUpload
from .listing_edit import EditListingController
from .login import LoginController
from .property_detail import REPORT_REASONS, PropertyDetailController
from .register import AgentRegisterController, RegisterController

__all__ = [
    "PageController",
    "SelectedFile",
    "CONTACT_CATEGORIES",
    "ContactController",
    "FeaturedListingsController",
    "AgentInquiriesController",
    "UserInquiriesController",
    "CreateListingController",
    "PhotoUpload",
    "EditListingController",
    "LoginController",
    "REPORT_REASONS",
    "PropertyDetailController",
    "AgentRegisterController",
    "RegisterController",
]
