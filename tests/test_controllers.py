"""Tests for page controllers against a scripted backend."""

import pytest

from conftest import admin_record, agent_login, property_record, seeker_login
from propconnect.portal.controllers import (
    AgentInquiriesController,
    AgentRegisterController,
    ContactController,
    CreateListingController,
    EditListingController,
    FeaturedListingsController,
    LoginController,
    PropertyDetailController,
    RegisterController,
    SelectedFile,
)
from propconnect.portal.controllers.login import AUTH_MODAL, CREDENTIAL_MESSAGES
from propconnect.portal.controllers.register import EMAIL_TAKEN
from propconnect.shared.core.errors import ErrorKind
from propconnect.shared.domain.models import PrincipalKind


def toast_messages(store):
    return [t.message for t in store.state.ui.toasts]


def png(name="photo.png", size=1024):
    return SelectedFile(name=name, content=b"\x89PNG" + b"0" * size, content_type="image/png")


def inquiry_record(inquiry_id, **overrides):
    record = {
        "inquiry_id": inquiry_id,
        "property_id": "prop_1",
        "agent_id": "agent_1",
        "inquirer_name": "Sam Seeker",
        "inquirer_email": "sam@example.com",
        "message": "Is this home still available?",
        "status": "new",
        "agent_read": False,
    }
    record.update(overrides)
    return record


# --- Login and registration ---


@pytest.mark.asyncio
async def test_login_form_shows_friendly_pending_message(store, backend):
    backend.error("POST", "/api/auth/agent/login", 403, "Your application is under review", "APPROVAL_PENDING")
    controller = LoginController(store, PrincipalKind.AGENT)
    controller.set_email("alex@realty.com")
    controller.set_password("secret123")

    assert await controller.submit() is None

    assert controller.validation_errors["credentials"] == CREDENTIAL_MESSAGES[ErrorKind.APPROVAL_PENDING]
    assert controller.form.password == ""
    assert controller.submitting is False


@pytest.mark.asyncio
async def test_login_form_validates_before_sending(store, backend):
    controller = LoginController(store)
    controller.set_email("not-an-email")

    assert await controller.submit() is None
    assert set(controller.validation_errors) == {"email", "password"}
    assert backend.requests == []


@pytest.mark.asyncio
async def test_login_success_closes_auth_modal(store, backend):
    seeker_login(backend)
    store.ui.open_modal(AUTH_MODAL)
    controller = LoginController(store)
    controller.set_email("sam@example.com")
    controller.set_password("secret123")

    identity = await controller.submit()

    assert identity.user_id == "user_1"
    assert store.state.ui.active_modal is None


@pytest.mark.asyncio
async def test_register_marks_taken_email(store, backend):
    backend.error("POST", "/api/auth/register", 409, "Email already registered", "EMAIL_ALREADY_EXISTS")
    controller = RegisterController(store)
    form = controller.form
    form.email = "sam@example.com"
    form.password = form.confirm_password = "secret123"
    form.full_name = "Sam Seeker"
    form.terms_accepted = True

    assert await controller.submit() is None
    assert controller.validation_errors == {"email": EMAIL_TAKEN}
    assert controller.submit_success is False


@pytest.mark.asyncio
async def test_agent_application_steps_and_submit(store, backend):
    backend.json("POST", "/api/upload/document", {"document_url": "https://cdn.test/license.pdf"})
    backend.json("POST", "/api/auth/agent/register", {"agent": {"agent_id": "agent_9"}})
    controller = AgentRegisterController(store)

    assert controller.next_step() is False
    assert "email" in controller.validation_errors

    form = controller.form
    form.email = "alex@realty.com"
    form.password = form.confirm_password = "secret123"
    form.full_name = "Alex Agent"
    form.phone_number = "555-0200"
    assert controller.next_step() is True

    form.license_number = "CA-123"
    form.license_state = "CA"
    form.agency_name = "Sunset Realty"
    form.office_address_street = "1 Main St"
    form.office_address_city = "Los Angeles"
    form.office_address_state = "CA"
    form.office_address_zip = "90001"
    form.years_experience = "3-5"
    url = await controller.upload_license_document(
        SelectedFile("license.pdf", b"%PDF-1.4", "application/pdf")
    )
    assert url == "https://cdn.test/license.pdf"
    assert controller.next_step() is True

    form.terms_accepted = True
    assert await controller.submit() is True
    assert controller.submitted
    payload = backend.last_json("POST", "/api/auth/agent/register")
    assert payload["license_document_url"] == "https://cdn.test/license.pdf"
    assert store.state.auth.is_agent_authenticated is False


@pytest.mark.asyncio
async def test_profile_photo_rejects_large_files(store, backend):
    controller = AgentRegisterController(store)

    assert await controller.upload_profile_photo(png(size=6 * 1024 * 1024)) is None
    assert controller.photo_error == "Image must be less than 5MB"
    assert backend.requests == []


# --- Property detail ---


def script_property_page(backend):
    backend.json("GET", "/api/properties/prop_1", property_record())
    backend.json(
        "GET",
        "/api/properties/prop_1/photos",
        [
            {"photo_id": "ph_2", "image_url": "https://cdn.test/2.jpg", "display_order": 2},
            {"photo_id": "ph_1", "image_url": "https://cdn.test/1.jpg", "display_order": 1, "is_primary": True},
        ],
    )
    backend.json("GET", "/api/agents/agent_1", {"agent_id": "agent_1", "email": "alex@realty.com", "full_name": "Alex Agent"})
    backend.json(
        "GET",
        "/api/properties",
        {"data": [property_record(), property_record(property_id="prop_2"), property_record(property_id="prop_3")]},
    )
    backend.json("POST", "/api/properties/prop_1/view", {"success": True})


@pytest.mark.asyncio
async def test_property_page_loads_related_data(store, backend):
    script_property_page(backend)
    controller = PropertyDetailController(store, "prop_1")

    prop = await controller.load()

    assert prop.price == 500000
    assert [p.photo_id for p in controller.photos] == ["ph_1", "ph_2"]
    assert controller.agent.full_name == "Alex Agent"
    assert [p.property_id for p in controller.similar] == ["prop_2", "prop_3"]

    params = backend.calls("GET", "/api/properties")[0].url.params
    assert params["min_price"] == "400000"
    assert params["max_price"] == "600000"
    assert params["city"] == "Austin"
    assert params["status"] == "active"

    controller.next_image()
    controller.next_image()
    assert controller.current_image == 0


@pytest.mark.asyncio
async def test_view_is_reported_once_per_session(store, backend):
    script_property_page(backend)

    await PropertyDetailController(store, "prop_1").load()
    await PropertyDetailController(store, "prop_1").load()
    await store.wait_background()

    views = backend.calls("POST", "/api/properties/prop_1/view")
    assert len(views) == 1
    assert backend.last_json("POST", "/api/properties/prop_1/view")["session_id"] == store.state.ui.session_id


@pytest.mark.asyncio
async def test_missing_property_sets_not_found(store, backend):
    controller = PropertyDetailController(store, "prop_404")

    assert await controller.load() is None
    assert controller.not_found is True


@pytest.mark.asyncio
async def test_guest_favorite_opens_sign_in(store, backend):
    script_property_page(backend)
    controller = PropertyDetailController(store, "prop_1")
    await controller.load()

    await controller.toggle_favorite()

    assert store.state.ui.active_modal == AUTH_MODAL
    assert backend.calls("POST", "/api/favorites") == []


@pytest.mark.asyncio
async def test_inquiry_prefilled_and_sent(store, backend):
    seeker_login(backend)
    await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "secret123")
    script_property_page(backend)
    backend.json("POST", "/api/inquiries", {"inquiry_id": "inq_1"})
    controller = PropertyDetailController(store, "prop_1")
    await controller.load()

    form = controller.inquiry_form
    assert form.inquirer_name == "Sam Seeker"
    assert form.message == (
        "Hi, I'm interested in 12 Oak St, Austin, TX. Is it still available? I'd like to schedule a viewing."
    )

    assert await controller.submit_inquiry() is True
    payload = backend.last_json("POST", "/api/inquiries")
    assert payload["agent_id"] == "agent_1"
    assert payload["user_id"] == "user_1"
    assert "preferred_viewing_date" not in payload
    assert "Inquiry sent successfully! The agent will contact you soon." in toast_messages(store)


@pytest.mark.asyncio
async def test_report_requires_known_reason(store, backend):
    script_property_page(backend)
    backend.json("POST", "/api/property-reports", {"success": True})
    controller = PropertyDetailController(store, "prop_1")
    await controller.load()
    controller.open_report()

    controller.report_reason = "Because"
    assert await controller.submit_report() is False

    controller.report_reason = "Spam"
    assert await controller.submit_report() is True
    assert backend.last_json("POST", "/api/property-reports")["reason"] == "Spam"
    assert store.state.ui.active_modal is None


# --- Listings ---


@pytest.mark.asyncio
async def test_draft_saves_without_validation(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("POST", "/api/properties", {"property_id": "prop_new"})
    controller = CreateListingController(store)
    controller.form.title = "Draft"

    assert await controller.save(publish=False) == "prop_new"

    payload = backend.last_json("POST", "/api/properties")
    assert payload["status"] == "draft"
    assert payload["agent_id"] == "agent_1"
    assert "Listing saved as draft" in toast_messages(store)


@pytest.mark.asyncio
async def test_publish_blocks_invalid_listing(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    controller = CreateListingController(store)

    assert await controller.save(publish=True) is None

    assert controller.validation_errors["photos"] == "At least 1 photo is required"
    assert "Please fix validation errors before saving" in toast_messages(store)
    assert backend.calls("POST", "/api/properties") == []


@pytest.mark.asyncio
async def test_photo_queue_filters_and_renumbers(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("POST", "/api/upload/photo", {"image_url": "https://cdn.test/p.jpg", "thumbnail_url": "https://cdn.test/t.jpg"})
    controller = CreateListingController(store)
    gif = SelectedFile("anim.gif", b"GIF89a", "image/gif")

    queued = await controller.add_photos([png("a.png"), gif, png("b.png"), png("c.png")])

    assert [p.filename for p in queued] == ["a.png", "b.png", "c.png"]
    assert "anim.gif must be JPG or PNG" in toast_messages(store)
    assert not controller.photos_uploading

    controller.remove_photo(queued[0].photo_id)
    assert [(p.filename, p.display_order, p.is_primary) for p in controller.photos] == [
        ("b.png", 1, True),
        ("c.png", 2, False),
    ]
    assert controller.reorder_photos(1, 0) is True
    assert controller.photos[0].filename == "c.png" and controller.photos[0].is_primary
    assert controller.reorder_photos(2, 0) is False
    assert controller.reorder_photos(-1, 0) is False
    assert [p.filename for p in controller.photos] == ["c.png", "b.png"]


@pytest.mark.asyncio
async def test_publish_sends_listing_then_photos(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("POST", "/api/upload/photo", {"image_url": "https://cdn.test/p.jpg"})
    backend.json("POST", "/api/properties", {"property_id": "prop_new"})
    backend.json("POST", "/api/properties/prop_new/photos", {"success": True})
    controller = CreateListingController(store)
    form = controller.form
    form.title = "Sunny craftsman near the park"
    form.description = "A" * 60
    form.price = 500000
    form.square_footage = 2000
    form.address_street = "12 Oak St"
    form.address_city = "Austin"
    form.address_state = "TX"
    form.address_zip = "78701"
    await controller.add_photos([png()])

    assert await controller.save(publish=True) == "prop_new"

    listing = backend.last_json("POST", "/api/properties")
    assert listing["status"] == "active"
    assert listing["price_per_sqft"] == 250
    photos = backend.last_json("POST", "/api/properties/prop_new/photos")["photos"]
    assert photos == [
        {"image_url": "https://cdn.test/p.jpg", "thumbnail_url": None, "display_order": 1, "is_primary": True, "caption": None}
    ]
    assert "Listing published successfully!" in toast_messages(store)


@pytest.mark.asyncio
async def test_edit_refuses_another_agents_listing(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("GET", "/api/properties/prop_1", property_record(agent_id="agent_2"))
    controller = EditListingController(store, "prop_1")

    assert await controller.load() is False
    assert controller.permission_denied
    assert "You do not have permission to edit this listing" in toast_messages(store)


@pytest.mark.asyncio
async def test_edit_loads_numeric_text_fields(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("GET", "/api/properties/prop_1", property_record(bedrooms=0))
    backend.json("PUT", "/api/properties/prop_1", {"success": True})
    controller = EditListingController(store, "prop_1")

    assert await controller.load() is True
    assert controller.form.price == 500000.0
    assert controller.form.bathrooms == 2.5
    assert controller.form.bedrooms == 0
    assert await controller.save() is True
    assert "Listing updated successfully" in toast_messages(store)


@pytest.mark.asyncio
async def test_edit_photo_reorder_out_of_range_sends_nothing(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    controller = EditListingController(store, "prop_1")

    assert await controller.reorder_photos(0, 0) is False
    assert await controller.reorder_photos(-1, 0) is False
    assert backend.calls("PUT", "/api/properties/prop_1/photos/reorder") == []


# --- Contact ---


@pytest.mark.asyncio
async def test_contact_message_is_composed_from_template(store, backend):
    backend.json("POST", "/api/upload/document", {"document_url": "https://cdn.test/shot.png"})
    backend.json("POST", "/api/inquiries", {"inquiry_id": "inq_9"})
    controller = ContactController(store)
    form = controller.form
    form.contact_name = "Pat"
    form.contact_email = "pat@example.com"
    form.subject = "Search is broken"
    form.message = "Filtering by city returns nothing."
    controller.select_category("technical")
    await controller.attach(png("shot.png"))

    assert await controller.submit() is True

    payload = backend.last_json("POST", "/api/inquiries")
    assert payload["property_id"] is None and payload["agent_id"] is None
    assert payload["message"] == (
        "Subject: Search is broken\n"
        "Category: Technical Issues\n"
        "\n"
        "Message:\n"
        "Filtering by city returns nothing.\n"
        "\n"
        "Attachment: https://cdn.test/shot.png"
    )
    assert "Message sent successfully! We'll get back to you soon." in toast_messages(store)


@pytest.mark.asyncio
async def test_unknown_category_falls_back_to_general(store):
    controller = ContactController(store)
    controller.select_category("billing")
    assert controller.category.id == "general"


# --- Inquiries ---


@pytest.mark.asyncio
async def test_opening_unread_inquiry_decrements_counter(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json(
        "GET",
        "/api/inquiries/agent/my-inquiries",
        {"data": [inquiry_record("inq_1"), inquiry_record("inq_2", agent_read=True)]},
    )
    backend.json("PUT", "/api/inquiries/inq_1/mark-read", {"success": True})
    controller = AgentInquiriesController(store)
    await controller.load()
    assert controller.unread_count == 1

    await controller.open_inquiry("inq_1")
    await controller.open_inquiry("inq_1")
    await controller.open_inquiry("inq_2")

    assert len(backend.calls("PUT", "/api/inquiries/inq_1/mark-read")) == 1
    assert backend.calls("PUT", "/api/inquiries/inq_2/mark-read") == []
    assert store.state.dashboard.unread_inquiry_count == 2
    assert controller.unread_count == 0
    assert store.state.ui.active_modal == "inquiry_detail"


@pytest.mark.asyncio
async def test_bound_inbox_is_cleared_on_logout(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("GET", "/api/inquiries/agent/my-inquiries", {"data": [inquiry_record("inq_1")]})
    bound = AgentInquiriesController(store).bind()
    unbound = AgentInquiriesController(store).bind()
    unbound.unbind()
    for controller in (bound, unbound):
        await controller.load()
        controller.toggle_select_all()
    bound.reply_message = "Draft reply"

    store.auth.logout()
    await store.bus.wait_until_idle()

    assert bound.inquiries == [] and bound.selected_ids == []
    assert bound.reply_message == ""
    assert [i.inquiry_id for i in unbound.inquiries] == ["inq_1"]


@pytest.mark.asyncio
async def test_inquiry_filters_become_query_params(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("GET", "/api/inquiries/agent/my-inquiries", {"data": []})
    controller = AgentInquiriesController(store)

    await controller.apply_filters(status=["new", "responded"], viewing_requested=True)

    params = backend.calls("GET", "/api/inquiries/agent/my-inquiries")[-1].url.params
    assert params["status"] == "new,responded"
    assert params["viewing_requested"] == "true"
    assert params["limit"] == "100"
    assert "property_id" not in params


@pytest.mark.asyncio
async def test_reply_marks_inquiry_responded(store, backend):
    agent_login(backend)
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")
    backend.json("GET", "/api/inquiries/agent/my-inquiries", {"data": [inquiry_record("inq_1")]})
    backend.json("POST", "/api/inquiries/inq_1/reply", {"reply_id": "rep_1"})
    controller = AgentInquiriesController(store)
    await controller.load()

    assert await controller.send_reply("inq_1") is None
    assert controller.reply_error == "Please enter a message"

    controller.apply_template("schedule_viewing")
    reply = await controller.send_reply("inq_1")

    assert reply.reply_id == "rep_1"
    assert reply.sender_id == "agent_1"
    assert controller.inquiries[0].status == "responded"
    assert controller.reply_message == ""
    assert "Reply sent successfully" in toast_messages(store)


# --- Featured listings ---


async def admin_signed_in(store, backend):
    backend.json("POST", "/api/auth/admin/login", {"token": "admin-token", "admin": admin_record()})
    await store.auth.login(PrincipalKind.ADMIN, "root@propconnect.com", "secret123")


@pytest.mark.asyncio
async def test_featured_reorder_failure_reloads_server_order(store, backend):
    await admin_signed_in(store, backend)
    backend.json(
        "GET",
        "/api/admin/featured-listings",
        {
            "data": [
                property_record(property_id="prop_b", featured_order=2),
                property_record(property_id="prop_a", featured_order=1),
                property_record(property_id="prop_c", featured_order=3),
            ]
        },
    )
    backend.error("PUT", "/api/admin/featured-listings/reorder", 500, "Reorder failed")
    controller = FeaturedListingsController(store)
    await controller.load()
    assert [p.property_id for p in controller.featured] == ["prop_a", "prop_b", "prop_c"]

    assert await controller.reorder(0, 2) is False

    sent = backend.last_json("PUT", "/api/admin/featured-listings/reorder")["listing_order"]
    assert [row["property_id"] for row in sent] == ["prop_b", "prop_c", "prop_a"]
    assert [p.property_id for p in controller.featured] == ["prop_a", "prop_b", "prop_c"]
    assert "Reorder failed" in toast_messages(store)


@pytest.mark.asyncio
async def test_featured_reorder_ignores_out_of_range_indices(store, backend):
    await admin_signed_in(store, backend)
    controller = FeaturedListingsController(store)

    assert await controller.reorder(0, 0) is False

    backend.json(
        "GET",
        "/api/admin/featured-listings",
        {
            "data": [
                property_record(property_id="prop_a", featured_order=1),
                property_record(property_id="prop_b", featured_order=2),
            ]
        },
    )
    await controller.load()

    assert await controller.reorder(-1, 0) is False
    assert await controller.reorder(0, 2) is False
    assert [p.property_id for p in controller.featured] == ["prop_a", "prop_b"]
    assert [p.featured_order for p in controller.featured] == [1, 2]
    assert backend.calls("PUT", "/api/admin/featured-listings/reorder") == []


@pytest.mark.asyncio
async def test_bound_featured_page_forgets_listings_on_logout(store, backend):
    await admin_signed_in(store, backend)
    backend.json("GET", "/api/admin/featured-listings", {"data": [property_record(property_id="prop_a", featured_order=1)]})
    controller = FeaturedListingsController(store).bind()
    await controller.load()

    store.auth.logout()
    await store.bus.wait_until_idle()

    assert controller.featured == []
    controller.unbind()


@pytest.mark.asyncio
async def test_featured_search_hides_already_featured(store, backend):
    await admin_signed_in(store, backend)
    backend.json("GET", "/api/admin/featured-listings", {"data": [property_record(property_id="prop_a", featured_order=1)]})
    backend.json("GET", "/api/properties", {"data": [property_record(property_id="prop_a"), property_record(property_id="prop_z")]})
    controller = FeaturedListingsController(store)
    await controller.load()

    results = await controller.search("craftsman")

    assert [p.property_id for p in results] == ["prop_z"]
    assert backend.calls("GET", "/api/properties")[0].url.params["is_featured"] == "false"
