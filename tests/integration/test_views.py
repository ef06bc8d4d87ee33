"""
Page-level tests for the citizen portal.

Every test drives the Flask test client against the fake backend, so the
full path from form submission through the application store and the
transport layer to the rendered page (or redirect) is exercised.

Key SDET Concepts Demonstrated:
- Session seeding through ``session_transaction``
- Asserting on flash messages kept in the session cookie
- Recording and inspecting outbound HTTP calls
- Degraded-mode rendering when the backend is unreachable
"""

import io

import pytest
import requests

from portal_app.api import CONNECTION_ERROR_MESSAGE
from portal_app.auth_store import ADMIN_DENIED_MESSAGE
from portal_app.routes.views import DRAFT_TOO_LARGE_MESSAGE, SESSION_EXPIRED_MESSAGE
from portal_app.storage import DRAFTS_KEY, TOKEN_KEY, USER_KEY
from portal_app.uploads import REJECTED_FILES_MESSAGE
from shared.test_helpers import make_user
from tests.conftest import fake

pytestmark = pytest.mark.integration

OFFLINE_BANNER = "Some information may be missing or out of date"
# Largest cookie browsers are required to keep.
MAX_COOKIE_BYTES = 4093


def _flashes(client):
    with client.session_transaction() as session:
        return list(session.get("_flashes", []))


def _session_value(client, key):
    with client.session_transaction() as session:
        return session.get(key)


class TestPublicPages:
    """Tests for pages that need no sign-in."""

    def test_health_does_not_call_backend(self, client, backend):
        # Act
        response = client.get("/health")

        # Assert
        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy", "service": "portal"}
        assert backend.calls == []

    def test_home_lists_announcements_and_services(self, client, backend):
        # Arrange
        backend.on("GET", "/announcements", {"data": {"announcements": [
            {"_id": "n1", "title": "Gram Sabha on Sunday"},
            {"_id": "n2", "title": "Water tanker schedule", "isPinned": True},
        ]}})
        backend.on("GET", "/services", {"services": [{"id": "s1", "name": "Birth certificate"}]})

        # Act
        response = client.get("/")

        # Assert
        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert body.index("Water tanker schedule") < body.index("Gram Sabha on Sunday")
        assert "Birth certificate" in body
        assert OFFLINE_BANNER not in body

    def test_home_renders_degraded_when_backend_is_down(self, client, backend):
        """
        Arrange: Every backend call fails at the network level
        Act: Load the home page
        Assert: Page renders with the offline banner and no error flash
        """
        backend.on("GET", "/announcements", raises=requests.ConnectionError("refused"))
        backend.on("GET", "/services", raises=requests.Timeout("slow"))

        response = client.get("/")

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert OFFLINE_BANNER in body
        assert "flash-error" not in body
        assert "No announcements right now." in body

    def test_schemes_are_filtered_and_paginated(self, client, backend, scheme_factory):
        schemes = [scheme_factory(name=f"Health scheme {n}", category="health") for n in range(7)]
        schemes.append(scheme_factory(name="Kisan credit", category="agriculture"))
        backend.on("GET", "/schemes", {"schemes": schemes})

        response = client.get("/schemes?category=health&page=2")

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "Health scheme 5" in body
        assert "Health scheme 6" in body
        assert "Health scheme 0" not in body
        assert "Kisan credit" not in body

    def test_unknown_scheme_is_404(self, client, backend):
        backend.on("GET", "/schemes/nope", {"message": "Scheme not found"}, status=404)

        response = client.get("/schemes/nope")

        assert response.status_code == 404


class TestLogin:
    """Tests for the shared citizen/admin login handler."""

    def test_successful_login_stores_session(self, client, backend):
        # Arrange
        user = make_user(name="Asha Devi")
        backend.on("POST", "/auth/login", {"success": True, "data": {"token": "tok", "user": user}})

        # Act
        response = client.post("/login", data={"email": user["email"], "password": "secret"})

        # Assert
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/dashboard")
        assert _session_value(client, TOKEN_KEY) == "tok"
        assert _session_value(client, USER_KEY) == user
        assert backend.json_body("POST", "/auth/login") == {"email": user["email"], "password": "secret"}

    def test_login_follows_safe_next(self, client, backend):
        backend.on("POST", "/auth/login", {"token": "tok", "user": make_user()})

        response = client.post("/login", data={"email": "a@b.c", "password": "x", "next": "/grievances"})

        assert response.headers["Location"].endswith("/grievances")

    def test_login_ignores_offsite_next(self, client, backend):
        backend.on("POST", "/auth/login", {"token": "tok", "user": make_user()})

        response = client.post("/login", data={"email": "a@b.c", "password": "x", "next": "//evil.test/"})

        assert response.headers["Location"].endswith("/dashboard")

    def test_admin_form_refuses_citizen(self, client, backend):
        backend.on("POST", "/auth/login", {"token": "tok", "user": make_user(role="citizen")})

        response = client.post("/login", data={"email": "a@b.c", "password": "x", "admin": "1"})

        assert response.status_code == 403
        assert ADMIN_DENIED_MESSAGE in response.get_data(as_text=True)
        assert _session_value(client, TOKEN_KEY) is None

    def test_admin_form_signs_in_staff(self, client, backend):
        backend.on("POST", "/auth/login", {"token": "tok", "user": make_user(role="admin")})

        response = client.post("/login", data={"email": "a@b.c", "password": "x", "admin": "1"})

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/admin")

    def test_invalid_credentials(self, client, backend):
        backend.on("POST", "/auth/login", {"success": False, "message": "Invalid credentials"}, status=401)

        response = client.post("/login", data={"email": "a@b.c", "password": "wrong"})

        assert response.status_code == 401
        assert "Invalid credentials" in response.get_data(as_text=True)

    def test_backend_unreachable(self, client, backend):
        backend.on("POST", "/auth/login", raises=requests.ConnectionError("refused"))

        response = client.post("/login", data={"email": "a@b.c", "password": "x"})

        assert response.status_code == 503
        assert CONNECTION_ERROR_MESSAGE in response.get_data(as_text=True)

    def test_missing_fields(self, client, backend):
        response = client.post("/login", data={"email": "", "password": ""})

        assert response.status_code == 400
        assert backend.calls == []

    def test_logout_clears_session(self, client, backend, login_as):
        login_as()
        backend.on("POST", "/auth/logout", {"success": True})

        response = client.post("/logout")

        assert response.status_code == 302
        assert _session_value(client, TOKEN_KEY) is None
        assert _session_value(client, USER_KEY) is None


class TestRegistration:
    def test_unverified_registration_goes_to_otp(self, client, backend):
        backend.on("POST", "/auth/register", {"data": {"token": "new", "user": make_user(verified=False)}}, status=201)

        response = client.post("/register", data={
            "name": "Ravi Kumar",
            "email": "ravi@example.com",
            "password": "secret",
            "confirmPassword": "secret",
        })

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/verify-otp")

    def test_password_mismatch(self, client, backend):
        response = client.post("/register", data={
            "name": "Ravi Kumar",
            "email": "ravi@example.com",
            "password": "secret",
            "confirmPassword": "other",
        })

        assert response.status_code == 400
        assert backend.calls == []

    def test_resend_otp(self, client, backend):
        backend.on("POST", "/auth/resend-otp", {"success": True})

        response = client.post("/verify-otp", data={"email": "ravi@example.com", "action": "resend"})

        assert response.status_code == 302
        assert backend.json_body("POST", "/auth/resend-otp") == {"email": "ravi@example.com"}

    def test_wrong_otp_keeps_user_unverified(self, client, backend, login_as):
        # Arrange
        user = login_as(verified=False)
        backend.on("POST", "/auth/verify-otp", {"success": False, "message": "Invalid OTP"})

        # Act
        response = client.post("/verify-otp", data={"email": user["email"], "otp": "000000"})

        # Assert
        assert response.status_code == 400
        assert "Invalid OTP" in response.get_data(as_text=True)
        assert _session_value(client, USER_KEY)["isVerified"] is False


class TestAccessControl:
    def test_anonymous_user_is_sent_to_login(self, client, backend):
        response = client.get("/dashboard")

        assert response.status_code == 302
        location = response.headers["Location"]
        assert "/login" in location
        assert "next=" in location
        assert backend.calls == []

    def test_expired_token_is_cleared(self, client, backend, login_as):
        login_as(expired=True)

        response = client.get("/dashboard")

        assert response.status_code == 302
        assert "/login" in response.headers["Location"]
        assert ("error", SESSION_EXPIRED_MESSAGE) in _flashes(client)
        assert _session_value(client, TOKEN_KEY) is None
        assert backend.calls == []

    def test_backend_401_clears_session(self, client, backend, login_as):
        # Arrange
        login_as()
        backend.on("GET", "/applications", {"message": "jwt expired"}, status=401)
        backend.on("GET", "/grievances", {"grievances": []})

        # Act
        response = client.get("/applications")

        # Assert
        assert response.status_code == 302
        assert "/login" in response.headers["Location"]
        assert _session_value(client, TOKEN_KEY) is None
        assert ("error", SESSION_EXPIRED_MESSAGE) in _flashes(client)


class TestDashboard:
    def test_dashboard_uses_backend_stats(self, client, backend, login_as, application_factory):
        login_as()
        backend.on("GET", "/applications", {"applications": [application_factory(title="Tap connection")]})
        backend.on("GET", "/grievances", {"grievances": []})
        backend.on("GET", "/dashboard/stats", {"data": {"stats": {"totalApplications": 12}}})
        backend.on("GET", "/dashboard/activity", {"data": {"activities": []}})

        response = client.get("/dashboard")

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "Tap connection" in body
        assert "<span>12</span> Applications" in body

    def test_dashboard_falls_back_to_local_summary(self, client, backend, login_as, application_factory):
        login_as()
        backend.on("GET", "/applications", {"applications": [
            application_factory(status="approved"),
            application_factory(status="pending"),
            application_factory(status="rejected"),
        ]})
        backend.on("GET", "/grievances", {"grievances": []})

        response = client.get("/dashboard")

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "<span>3</span> Applications" in body
        assert "<span>1</span> Approved" in body


class TestSubmissions:
    def test_combined_table(self, client, backend, login_as, application_factory, grievance_factory):
        login_as()
        backend.on("GET", "/applications", {"applications": [application_factory(title="Tap connection")]})
        backend.on("GET", "/grievances", {"grievances": [grievance_factory(title="Broken streetlight")]})

        response = client.get("/applications")

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "Tap connection" in body
        assert "Broken streetlight" in body

    def test_grievance_tab(self, client, backend, login_as, application_factory, grievance_factory):
        login_as()
        backend.on("GET", "/applications", {"applications": [application_factory(title="Tap connection")]})
        backend.on("GET", "/grievances", {"grievances": [grievance_factory(title="Broken streetlight")]})

        response = client.get("/grievances")

        body = response.get_data(as_text=True)
        assert "Broken streetlight" in body
        assert "Tap connection" not in body

    def test_status_filter_uses_display_vocabulary(self, client, backend, login_as, application_factory, grievance_factory):
        login_as()
        backend.on("GET", "/applications", {"applications": [
            application_factory(title="Approved one", status="approved"),
            application_factory(title="Waiting one", status="pending"),
        ]})
        backend.on("GET", "/grievances", {"grievances": [grievance_factory(title="Closed one", status="closed")]})

        response = client.get("/applications?status=resolved")

        body = response.get_data(as_text=True)
        assert "Approved one" in body
        assert "Closed one" in body
        assert "Waiting one" not in body

    def test_one_failing_collection_does_not_hide_the_other(self, client, backend, login_as, grievance_factory):
        login_as()
        backend.on("GET", "/applications", {"message": "Database busy"}, status=503)
        backend.on("GET", "/grievances", {"grievances": [grievance_factory(title="Broken streetlight")]})

        response = client.get("/applications")

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "Broken streetlight" in body
        assert "Database busy" in body


class TestApplications:
    @pytest.fixture
    def application_form(self):
        return {
            "applicantName": "Asha Devi",
            "applicationType": "Water Connection",
            "title": "New tap",
            "description": "Household tap connection",
            "urgencyLevel": "medium",
        }

    def test_create_with_uploads_skips_rejected_files(self, app, client, backend, login_as, application_form, monkeypatch):
        """
        Arrange: Two files over the size limit and one valid PDF
        Act: Submit the application form
        Assert: The application is created, only the PDF is uploaded and
                the rejection warning is shown exactly once
        """
        # Arrange
        monkeypatch.setitem(app.config, "MAX_UPLOAD_BYTES", 1024)
        login_as()
        backend.on("POST", "/applications", {"success": True, "data": {"application": {
            "id": "app-1", "title": "New tap", "status": "pending",
        }}}, status=201)
        backend.on("POST", "/applications/app-1/documents", {"success": True})
        form = dict(application_form, documents=[
            (io.BytesIO(b"x" * 2048), "scan-1.png", "image/png"),
            (io.BytesIO(b"%PDF-1.4"), "proof.pdf", "application/pdf"),
            (io.BytesIO(b"x" * 4096), "scan-2.jpg", "image/jpeg"),
        ])

        # Act
        response = client.post("/applications", data=form, content_type="multipart/form-data")

        # Assert
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/applications/app-1")

        payload = backend.json_body("POST", "/applications")
        assert payload["type"] == "Water Connection"
        assert payload["status"] == "pending"

        uploads = backend.calls_to("POST", "/applications/app-1/documents")
        assert len(uploads) == 1
        assert [part[1][0] for part in uploads[0]["files"]] == ["proof.pdf"]

        flashes = _flashes(client)
        assert [message for _, message in flashes].count(REJECTED_FILES_MESSAGE) == 1
        assert ("success", "Application submitted successfully!") in flashes

    def test_unverified_user_is_redirected_to_profile(self, client, backend, login_as, application_form):
        login_as(verified=False)

        response = client.post("/applications", data=application_form)

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/profile")
        assert backend.calls_to("POST", "/applications") == []

    def test_missing_fields_are_reported(self, client, backend, login_as):
        login_as()

        response = client.post("/applications", data={"applicantName": "", "applicationType": ""})

        body = response.get_data(as_text=True)
        assert response.status_code == 400
        assert "Applicant name is required" in body
        assert "Application type is required" in body
        assert backend.calls == []

    def test_backend_rejection_is_flashed(self, client, backend, login_as, application_form):
        login_as()
        backend.on("POST", "/applications", {"success": False, "message": "Duplicate application"}, status=409)

        response = client.post("/applications", data=application_form)

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/applications/new")
        assert ("error", "Duplicate application") in _flashes(client)

    def test_save_and_restore_draft(self, client, backend, login_as):
        login_as()

        response = client.post("/applications/draft", data={"title": "Half done", "applicationType": "Other"})

        assert response.status_code == 302
        draft = _session_value(client, DRAFTS_KEY)["application"]
        assert draft["title"] == "Half done"
        assert draft["uploadedFiles"] == []

        page = client.get("/applications/new")
        assert "Restored draft saved at" in page.get_data(as_text=True)
        assert 'value="Half done"' in page.get_data(as_text=True)

    def test_oversized_draft_is_refused(self, client, backend, login_as):
        # Arrange
        login_as()

        # Act
        response = client.post("/applications/draft", data={"title": "Long", "description": "x" * 4000})

        # Assert
        assert response.status_code == 302
        assert ("error", DRAFT_TOO_LARGE_MESSAGE) in _flashes(client)
        assert _session_value(client, DRAFTS_KEY) is None
        assert _session_value(client, TOKEN_KEY)
        assert all(len(cookie) <= MAX_COOKIE_BYTES for cookie in response.headers.getlist("Set-Cookie"))

    def test_drafts_at_the_limit_fit_in_the_session_cookie(self, client, backend, login_as):
        # Arrange
        login_as()
        text = fake.pystr(min_chars=500, max_chars=500)

        # Act
        first = client.post("/applications/draft", data={"title": "Road", "description": text})
        second = client.post("/grievances/draft", data={"title": "Drain", "description": text[::-1]})

        # Assert
        assert set(_session_value(client, DRAFTS_KEY)) == {"application", "grievance"}
        for response in (first, second):
            assert all(len(cookie) <= MAX_COOKIE_BYTES for cookie in response.headers.getlist("Set-Cookie"))

    def test_apply_for_scheme(self, client, backend, login_as, scheme_factory):
        login_as()
        scheme = scheme_factory(id="sch-1", name="PM Awas")
        backend.on("GET", "/schemes/sch-1", {"data": {"scheme": scheme}})
        backend.on("POST", "/schemes/sch-1/apply", {"data": {"application": {"id": "app-9", "status": "pending"}}})

        response = client.post("/schemes/sch-1/apply", data={"applicantName": "Asha Devi", "urgencyLevel": "high"})

        assert response.status_code == 302
        payload = backend.json_body("POST", "/schemes/sch-1/apply")
        assert payload["type"] == "Scheme Application - PM Awas"
        assert payload["schemeId"] == "sch-1"
        assert payload["priority"] == "high"

    def test_detail_page(self, client, backend, login_as, application_factory):
        login_as()
        backend.on("GET", "/applications/a1", {"data": {"application": application_factory(
            id="a1", title="Tap connection", status="in-progress",
        )}})

        response = client.get("/applications/a1")

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "Tap connection" in body
        assert "In progress" in body

    def test_unknown_application_is_404(self, client, backend, login_as):
        login_as()

        response = client.get("/applications/missing")

        assert response.status_code == 404

    def test_delete(self, client, backend, login_as):
        login_as()
        backend.on("DELETE", "/applications/a1", {"success": True})

        response = client.post("/applications/a1/delete")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/applications")
        assert ("success", "Application deleted successfully!") in _flashes(client)

    def test_empty_comment_is_not_sent(self, client, backend, login_as):
        login_as()

        response = client.post("/applications/a1/comments", data={"comment": "   "})

        assert response.status_code == 302
        assert backend.calls == []


class TestGrievances:
    @pytest.fixture
    def grievance_form(self):
        return {
            "title": "Broken pipe",
            "description": "Water leaking near the school",
            "category": "water_supply",
            "address": "Ward 4, Main road",
            "village": "Rampur",
            "priority": "high",
        }

    def test_validation_errors(self, client, backend, login_as):
        login_as()

        response = client.post("/grievances", data={"description": "Something"})

        body = response.get_data(as_text=True)
        assert response.status_code == 400
        assert "Title is required" in body
        assert "Location address is required" in body
        assert backend.calls_to("POST", "/grievances") == []

    def test_create(self, client, backend, login_as, grievance_form):
        login_as()
        backend.on("POST", "/grievances", {"data": {"grievance": {"_id": "g1", "status": "open"}}}, status=201)

        response = client.post("/grievances", data=grievance_form)

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/grievances/g1")
        payload = backend.json_body("POST", "/grievances")
        assert payload["location"]["address"] == "Ward 4, Main road"
        assert payload["location"]["village"] == "Rampur"
        assert payload["metadata"]["source"] == "web"
        assert ("success", "Grievance submitted successfully!") in _flashes(client)

    def test_detail_falls_back_to_embedded_timeline(self, client, backend, login_as, grievance_factory):
        login_as()
        grievance = grievance_factory(_id="g1", timeline=[{"status": "open", "comment": "Complaint registered"}])
        backend.on("GET", "/grievances/g1", {"data": {"grievance": grievance}})
        backend.on("GET", "/grievances/g1/timeline", {"message": "Not available"}, status=500)

        response = client.get("/grievances/g1")

        assert response.status_code == 200
        assert "Complaint registered" in response.get_data(as_text=True)


class TestFiles:
    def test_download(self, client, backend, login_as):
        login_as()
        backend.on("GET", "/files/f1", content=b"%PDF-1.4 data", headers={"Content-Type": "application/pdf"})

        response = client.get("/files/f1")

        assert response.status_code == 200
        assert response.data == b"%PDF-1.4 data"
        assert response.mimetype == "application/pdf"

    def test_failed_download_returns_to_page(self, client, backend, login_as):
        login_as()
        backend.on("GET", "/files/f1", {"message": "gone"}, status=404)

        response = client.get("/files/f1?next=/grievances/g1")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/grievances/g1")
        assert ("error", "File download failed") in _flashes(client)
