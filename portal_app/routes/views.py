"""
HTML view routes for the citizen-facing portal.

Every handler works through the per-request application store returned
by :func:`get_store`; pages never call the transport layer directly.
The module is organised into four sections:

1. **Helper functions**: store construction, notification draining,
   form-to-payload builders and shared failure handling.
2. **Public routes**: home, schemes, services, announcements.
3. **Authentication routes**: login, registration, OTP verification
   and logout.
4. **Citizen routes**: dashboard, profile, applications, grievances and
   file downloads, all protected by ``login_required``.

Failures surface in one of two ways.  Backend rejections are flashed (the
store queues its own notifications, which are drained into ``flash``
before each render and after each request).  Connectivity failures switch
the store into degraded mode and the base template shows a banner instead
of a per-request error message.

Key Concepts Demonstrated:
- Backend-for-Frontend (BFF) over a reducer-style state store
- Decorator-based access control (``login_required``)
- Concurrent per-kind fetches inside a request context
- Flash-message feedback for form submissions
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any

from flask import (
    Blueprint,
    Response,
    abort,
    copy_current_request_context,
    current_app,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)

from ..api import CONNECTION_ERROR_MESSAGE, ApiError, ApiService, ConnectivityError
from ..auth_store import AuthError, AuthStore
from ..envelopes import record_id
from ..listing import filter_records, filter_submissions, paginate, split_pinned, status_counts, to_submissions
from ..models import (
    AnnouncementCategory,
    DisplayStatus,
    GrievanceCategory,
    GrievancePriority,
    Priority,
    ResourceKind,
    display_status,
)
from ..storage import TOKEN_KEY, USER_KEY, DraftTooLarge, SessionStorage, discard_draft, load_draft, save_draft
from ..store import AppStore, Notifier
from ..uploads import REJECTED_FILES_MESSAGE, describe, to_multipart, validate_uploads

logger = logging.getLogger(__name__)

views_bp = Blueprint("views", __name__)

SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."
APPLICATION_DRAFT = "application"
GRIEVANCE_DRAFT = "grievance"
DRAFT_TOO_LARGE_MESSAGE = "Draft is too large to save. Shorten long fields or submit the form instead."

APPLICATION_TYPES = (
    "Birth Certificate",
    "Death Certificate",
    "Property Tax",
    "Water Connection",
    "Road Maintenance",
    "Community Hall Booking",
    "Sanitation Services",
    "Building Permit",
    "Electricity Connection",
    "Other",
)


# =====================================================================
# Helper Functions
# =====================================================================


def _forget_session(storage: SessionStorage) -> None:
    storage.remove(TOKEN_KEY)
    storage.remove(USER_KEY)


def get_store() -> AppStore:
    """
    Return the application store for the current request.

    The store, its transport layer and the auth store are built once per
    request and cached on ``g``.  All three share one
    :class:`SessionStorage`, so a login or a 401-triggered logout is seen
    by every later call in the same request.

    Returns:
        The request's :class:`AppStore`.
    """
    if "store" not in g:
        storage = SessionStorage()
        api = ApiService(
            current_app.config["API_BASE_URL"],
            storage,
            timeout=current_app.config["API_TIMEOUT"],
            on_unauthorized=lambda: _forget_session(storage),
        )
        g.storage = storage
        g.notifier = Notifier()
        g.auth = AuthStore(api, storage)
        g.store = AppStore(
            api,
            g.notifier,
            max_workers=current_app.config["FETCH_WORKERS"],
            context_wrapper=copy_current_request_context,
        )
    return g.store


def get_auth() -> AuthStore:
    get_store()
    return g.auth


def _flush_notifications() -> None:
    """Move queued store notifications into Flask's flash messages."""
    notifier = g.get("notifier")
    if notifier is None:
        return
    for category, message in notifier.drain():
        flash(message, category)


@views_bp.after_app_request
def _flush_after_request(response):
    _flush_notifications()
    return response


def _render(template: str, status_code: int = 200, **context: Any):
    """
    Render *template* with the store state and signed-in user attached.

    Queued notifications are flashed first so they appear on this page
    rather than the next one.
    """
    store = get_store()
    _flush_notifications()
    return (
        render_template(
            template,
            state=store.state,
            current_user=get_auth().user,
            **context,
        ),
        status_code,
    )


def _session_expired():
    _forget_session(g.storage)
    flash(SESSION_EXPIRED_MESSAGE, "error")
    return redirect(url_for("views.login"))


def _session_lost() -> bool:
    """True when a backend 401 during this request cleared the session."""
    return not get_auth().token


def _failure_redirect(error: ApiError, endpoint: str, **values: Any):
    """
    Redirect after a failed store call.

    The store has already queued the error notification (or switched to
    degraded mode), so only a 401 needs special handling here.
    """
    if error.status_code == 401:
        return _session_expired()
    return redirect(url_for(endpoint, **values))


def _load_or_fail(loader: Callable[[], dict[str, Any] | None], fallback_endpoint: str):
    """
    Fetch one record for a detail page.

    Returns:
        ``(record, None)`` on success, or ``(None, response)`` where
        *response* is the redirect to send instead.  Aborts with 404 when
        the backend does not know the record.
    """
    try:
        record = loader()
    except ApiError as error:
        if error.status_code == 404:
            abort(404)
        if error.status_code == 401:
            return None, _session_expired()
        flash(error.message, "error")
        return None, redirect(url_for(fallback_endpoint))
    if record is None:
        abort(404)
    return record, None


def _page_arg() -> int:
    return request.args.get("page", 1, type=int) or 1


def _safe_next(target: str | None) -> str | None:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return None


def _accepted_uploads() -> list[Any]:
    """
    Validate the ``documents`` files of the current form.

    Flashes a single warning when any file is rejected.

    Returns:
        The files that passed validation.
    """
    check = validate_uploads(
        request.files.getlist("documents"),
        current_app.config["MAX_UPLOAD_BYTES"],
        current_app.config["ALLOWED_UPLOAD_TYPES"],
    )
    if check.rejected:
        flash(REJECTED_FILES_MESSAGE, "warning")
    return check.accepted


def _upload_documents(upload: Callable[[str, Any], Any], item_id: Any, files: list[Any]) -> None:
    if not files or item_id is None:
        return
    try:
        upload(str(item_id), to_multipart(files))
    except ApiError as error:
        logger.warning("Document upload for %s failed: %s", item_id, error.message)


def _form_values(form: Mapping[str, str]) -> dict[str, str]:
    return dict(form.items())


def _save_draft(name: str, saved_message: str, endpoint: str):
    try:
        save_draft(
            g.storage,
            name,
            _form_values(request.form),
            describe(request.files.getlist("documents")),
            max_bytes=current_app.config["MAX_DRAFT_BYTES"],
        )
    except DraftTooLarge as error:
        logger.info("Refusing %s draft: %s", name, error)
        flash(DRAFT_TOO_LARGE_MESSAGE, "error")
    else:
        flash(saved_message, "success")
    return redirect(url_for(endpoint))


def _application_payload(
    form: Mapping[str, str],
    scheme: dict[str, Any] | None = None,
) -> tuple[dict[str, Any], list[str]]:
    """
    Build an application request body from submitted form fields.

    Returns:
        ``(payload, errors)``; *errors* is empty when the form is valid.
    """
    errors = []
    applicant_name = form.get("applicantName", "").strip()
    if not applicant_name:
        errors.append("Applicant name is required")

    if scheme is not None:
        scheme_name = scheme.get("name") or scheme.get("title") or "Scheme"
        application_type = f"Scheme Application - {scheme_name}"
        title = f"{scheme_name} Application"
        description = form.get("description", "").strip() or f"Application for {scheme_name}"
    else:
        application_type = form.get("applicationType", "").strip()
        if not application_type:
            errors.append("Application type is required")
        title = form.get("title", "").strip() or f"{application_type} Application"
        description = form.get("description", "").strip()

    urgency = form.get("urgencyLevel", "") or Priority.MEDIUM.value
    if urgency not in {priority.value for priority in Priority}:
        errors.append("Invalid urgency level")

    payload = {
        "type": application_type,
        "title": title,
        "description": description,
        "applicantName": applicant_name,
        "email": form.get("email", "").strip(),
        "phone": form.get("phone", "").strip(),
        "address": form.get("address", "").strip(),
        "dateOfBirth": form.get("dateOfBirth") or None,
        "gender": form.get("gender") or None,
        "preferredLanguage": form.get("preferredLanguage") or None,
        "urgencyLevel": urgency,
        "specialRequirements": form.get("specialRequirements", "").strip(),
        "status": "pending",
        "priority": urgency,
    }
    if scheme is not None:
        payload["schemeId"] = record_id(scheme)
        payload["schemeName"] = scheme.get("name") or scheme.get("title")
    return payload, errors


def _grievance_payload(form: Mapping[str, str]) -> tuple[dict[str, Any], list[str]]:
    """
    Build a grievance request body from submitted form fields.

    Returns:
        ``(payload, errors)``; *errors* is empty when the form is valid.
    """
    errors = []
    title = form.get("title", "").strip()
    description = form.get("description", "").strip()
    category = form.get("category", "")
    address = form.get("address", "").strip()
    priority = form.get("priority", "")

    if not title:
        errors.append("Title is required")
    if not description:
        errors.append("Description is required")
    if not category:
        errors.append("Category is required")
    if not address:
        errors.append("Location address is required")
    if priority not in {level.value for level in GrievancePriority}:
        errors.append("Priority is required")

    payload = {
        "title": title,
        "description": description,
        "category": category,
        "subCategory": category,
        "location": {
            "address": address,
            "village": form.get("village", "").strip(),
            "district": form.get("district", "").strip(),
            "state": form.get("state", "").strip(),
            "pincode": form.get("pincode", "").strip(),
        },
        "priority": priority,
        "metadata": {
            "source": "web",
            "contactPhone": form.get("contactPhone", ""),
            "contactTime": form.get("contactTime", ""),
        },
    }
    return payload, errors


def login_required(view_func):
    """
    Decorator that requires a stored, unexpired session token.

    A missing session redirects to the login page (remembering where the
    user was going).  An expired token is cleared first and flashed as an
    expired session.  The signed-in user is placed on ``g.user``.
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        auth = get_auth()
        if not auth.is_authenticated():
            auth.clear()
            return redirect(url_for("views.login", next=request.path))
        if auth.token_expired():
            return _session_expired()
        g.user = auth.user
        return view_func(*args, **kwargs)

    return wrapper


# =====================================================================
# Public Routes
# =====================================================================


@views_bp.route("/health", methods=["GET"])
def health_check():
    """Liveness check; does not touch the backend."""
    return {"status": "healthy", "service": "portal"}, 200


@views_bp.route("/")
def home():
    """Landing page: latest announcements and the service catalogue."""
    store = get_store()
    results = store.fetch_many(ResourceKind.ANNOUNCEMENTS, ResourceKind.SERVICES)
    pinned, regular = split_pinned(results["announcements"])
    return _render(
        "home.html",
        announcements=(pinned + regular)[:5],
        services=results["services"][:6],
    )


@views_bp.route("/schemes")
def schemes():
    store = get_store()
    search = request.args.get("search", "")
    category = request.args.get("category", "all")

    items = store.fetch_schemes()
    categories = sorted({item["category"] for item in items if item.get("category")})
    matches = filter_records(items, search, category=category)
    page = paginate(matches, _page_arg(), current_app.config["PAGE_SIZE"])
    return _render(
        "schemes.html",
        page=page,
        categories=categories,
        search=search,
        current_category=category,
    )


@views_bp.route("/schemes/<scheme_id>")
def scheme_detail(scheme_id: str):
    scheme, failure = _load_or_fail(lambda: get_store().get_scheme(scheme_id), "views.schemes")
    if failure is not None:
        return failure
    return _render("scheme_detail.html", scheme=scheme)


@views_bp.route("/services")
def services():
    store = get_store()
    search = request.args.get("search", "")
    category = request.args.get("category", "all")

    items = store.fetch_services()
    categories = sorted({item["category"] for item in items if item.get("category")})
    return _render(
        "services.html",
        services=filter_records(items, search, category=category),
        categories=categories,
        search=search,
        current_category=category,
    )


@views_bp.route("/announcements")
def announcements():
    """Announcements list, pinned items first, optionally filtered by category."""
    store = get_store()
    category = request.args.get("category", "all")

    items = filter_records(store.fetch_announcements(), category=category)
    pinned, regular = split_pinned(items)
    return _render(
        "announcements.html",
        pinned=pinned,
        announcements=regular,
        categories=AnnouncementCategory,
        current_category=category,
    )


# =====================================================================
# Authentication Routes
# =====================================================================


@views_bp.route("/login", methods=["GET"])
def login():
    auth = get_auth()
    if auth.is_authenticated() and not auth.token_expired():
        return redirect(url_for("views.dashboard"))
    return _render("login.html", admin=False, next=request.args.get("next", ""))


@views_bp.route("/login", methods=["POST"])
def login_submit():
    """
    Handle login form submission.

    A hidden ``admin`` field marks the admin login form; a citizen
    account is refused there without being signed in.

    Returns:
        A redirect on success, or the re-rendered form with a flash
        message and an error status on failure.
    """
    email = request.form.get("email", "").strip()
    password = request.form.get("password", "")
    is_admin = request.form.get("admin") == "1"
    next_url = _safe_next(request.form.get("next"))

    if not email or not password:
        flash("Email and password are required.", "error")
        return _render("login.html", 400, admin=is_admin, next=next_url or "")

    try:
        user = get_auth().login({"email": email, "password": password}, is_admin=is_admin)
    except AuthError as error:
        flash(error.message, "error")
        return _render("login.html", 403, admin=is_admin, next=next_url or "")
    except ConnectivityError:
        flash(CONNECTION_ERROR_MESSAGE, "error")
        return _render("login.html", 503, admin=is_admin, next=next_url or "")
    except ApiError as error:
        if error.status_code in (400, 401):
            flash(error.message or "Invalid email or password", "error")
            return _render("login.html", 401, admin=is_admin, next=next_url or "")
        flash(error.message or "Login failed", "error")
        return _render("login.html", 502, admin=is_admin, next=next_url or "")

    flash(f"Welcome back, {user.get('name') or email}!", "success")
    if is_admin:
        return redirect(url_for("admin.dashboard"))
    return redirect(next_url or url_for("views.dashboard"))


@views_bp.route("/register", methods=["GET"])
def register():
    if get_auth().is_authenticated():
        return redirect(url_for("views.dashboard"))
    return _render("register.html", form={})


@views_bp.route("/register", methods=["POST"])
def register_submit():
    """Create an account; unverified accounts continue to OTP verification."""
    form = _form_values(request.form)
    name = form.get("name", "").strip()
    email = form.get("email", "").strip()
    phone = form.get("phone", "").strip()
    password = form.get("password", "")

    if not name or not email or not password:
        flash("Name, email and password are required.", "error")
        return _render("register.html", 400, form=form)
    if password != form.get("confirmPassword", ""):
        flash("Passwords do not match.", "error")
        return _render("register.html", 400, form=form)

    try:
        user = get_auth().register({"name": name, "email": email, "phone": phone, "password": password})
    except ConnectivityError:
        flash(CONNECTION_ERROR_MESSAGE, "error")
        return _render("register.html", 503, form=form)
    except ApiError as error:
        flash(error.message or "Registration failed", "error")
        return _render("register.html", error.status_code or 400, form=form)

    if user.get("isVerified"):
        flash("Registration successful.", "success")
        return redirect(url_for("views.dashboard"))
    flash("Registration successful. Enter the verification code sent to your email.", "success")
    return redirect(url_for("views.verify_otp"))


@views_bp.route("/verify-otp", methods=["GET", "POST"])
def verify_otp():
    auth = get_auth()
    email = request.form.get("email") or (auth.user or {}).get("email", "")

    if request.method == "GET":
        return _render("verify_otp.html", email=email)

    if not email:
        flash("Email is required.", "error")
        return _render("verify_otp.html", 400, email=email)

    try:
        if request.form.get("action") == "resend":
            auth.resend_otp(email)
            flash("A new verification code has been sent.", "success")
            return redirect(url_for("views.verify_otp"))

        otp = request.form.get("otp", "").strip()
        if not otp:
            flash("Verification code is required.", "error")
            return _render("verify_otp.html", 400, email=email)
        auth.verify_otp(email, otp)
    except ApiError as error:
        flash(error.message or "Verification failed", "error")
        return _render("verify_otp.html", error.status_code or 400, email=email)

    flash("Account verified successfully.", "success")
    return redirect(url_for("views.dashboard"))


@views_bp.route("/logout", methods=["POST"])
def logout():
    get_auth().logout()
    flash("Logged out successfully.", "success")
    return redirect(url_for("views.home"))


# =====================================================================
# Citizen Routes
# =====================================================================


@views_bp.route("/dashboard")
@login_required
def dashboard():
    """
    Citizen dashboard: summary counters, recent submissions and activity.

    Applications and grievances are fetched concurrently; the counters
    come from the backend when available and are otherwise computed from
    the fetched collections.
    """
    store = get_store()
    results = store.fetch_many(ResourceKind.APPLICATIONS, ResourceKind.GRIEVANCES)
    if _session_lost():
        return _session_expired()

    stats = store.fetch_dashboard_stats()
    activity = store.fetch_recent_activity()
    rows = to_submissions(results["applications"], results["grievances"])
    return _render("dashboard.html", stats=stats, recent=rows[:5], activity=activity[:10])


@views_bp.route("/profile", methods=["GET"])
@login_required
def profile():
    auth = get_auth()
    try:
        auth.refresh_user()
    except ApiError as error:
        if error.status_code == 401:
            return _session_expired()
        logger.info("Using stored profile: %s", error.message)
    return _render("profile.html", user=auth.user or {})


@views_bp.route("/profile", methods=["POST"])
@login_required
def update_profile():
    data = {
        key: request.form.get(key, "").strip()
        for key in ("name", "phone", "address", "village", "district")
        if key in request.form
    }
    try:
        get_auth().update_profile(data)
    except ApiError as error:
        if error.status_code == 401:
            return _session_expired()
        flash(error.message or "Profile update failed", "error")
        return redirect(url_for("views.profile"))
    flash("Profile updated successfully.", "success")
    return redirect(url_for("views.profile"))


@views_bp.route("/profile/password", methods=["POST"])
@login_required
def change_password():
    current = request.form.get("currentPassword", "")
    new = request.form.get("newPassword", "")
    if not current or not new:
        flash("Current and new passwords are required.", "error")
        return redirect(url_for("views.profile"))
    if new != request.form.get("confirmPassword", ""):
        flash("Passwords do not match.", "error")
        return redirect(url_for("views.profile"))

    try:
        get_auth().change_password(current, new)
    except ApiError as error:
        if error.status_code == 401:
            return _session_expired()
        flash(error.message or "Password change failed", "error")
        return redirect(url_for("views.profile"))
    flash("Password changed successfully.", "success")
    return redirect(url_for("views.profile"))


def _render_submissions(default_tab: str):
    """
    Render the combined "my submissions" table.

    Reads ``tab``, ``search``, ``status`` and ``page`` from the query
    string.  Counts reflect the active tab before search and status
    filters are applied.
    """
    store = get_store()
    store.fetch_many(ResourceKind.APPLICATIONS, ResourceKind.GRIEVANCES)
    if _session_lost():
        return _session_expired()

    state = store.state
    rows = to_submissions(state.applications, state.grievances)
    tab = request.args.get("tab", default_tab)
    search = request.args.get("search", "")
    status = request.args.get("status", "all")

    counts = status_counts(filter_submissions(rows, tab))
    matches = filter_submissions(rows, tab, search, status)
    page = paginate(matches, _page_arg(), current_app.config["PAGE_SIZE"])
    return _render(
        "submissions.html",
        page=page,
        counts=counts,
        tab=tab,
        search=search,
        current_status=status,
        statuses=DisplayStatus,
    )


@views_bp.route("/applications")
@login_required
def applications():
    return _render_submissions("all")


@views_bp.route("/grievances")
@login_required
def grievances():
    return _render_submissions(ResourceKind.GRIEVANCES.value)


@views_bp.route("/applications/new", methods=["GET"])
@login_required
def new_application():
    draft = load_draft(g.storage, APPLICATION_DRAFT) or {}
    return _render(
        "application_form.html",
        form=draft,
        scheme=None,
        application_types=APPLICATION_TYPES,
        priorities=Priority,
        form_action=url_for("views.create_application"),
    )


def _verified_or_redirect():
    if get_auth().is_verified():
        return None
    flash("Please verify your account before submitting applications.", "warning")
    return redirect(url_for("views.profile"))


@views_bp.route("/applications", methods=["POST"])
@login_required
def create_application():
    """
    Submit a new application, then upload any accepted documents.

    Rejected files are reported once and skipped; the application itself
    is still submitted.
    """
    blocked = _verified_or_redirect()
    if blocked is not None:
        return blocked

    payload, errors = _application_payload(request.form)
    if errors:
        for message in errors:
            flash(message, "error")
        return _render(
            "application_form.html",
            400,
            form=_form_values(request.form),
            scheme=None,
            application_types=APPLICATION_TYPES,
            priorities=Priority,
            form_action=url_for("views.create_application"),
        )

    store = get_store()
    files = _accepted_uploads()
    try:
        application = store.create_application(payload)
    except ApiError as error:
        return _failure_redirect(error, "views.new_application")

    application_id = record_id(application)
    _upload_documents(store.upload_application_documents, application_id, files)
    discard_draft(g.storage, APPLICATION_DRAFT)
    if application_id is None:
        return redirect(url_for("views.applications"))
    return redirect(url_for("views.application_detail", application_id=application_id))


@views_bp.route("/applications/draft", methods=["POST"])
@login_required
def save_application_draft():
    return _save_draft(APPLICATION_DRAFT, "Application saved as draft", "views.new_application")


@views_bp.route("/schemes/<scheme_id>/apply", methods=["GET", "POST"])
@login_required
def apply_for_scheme(scheme_id: str):
    """Scheme application form and its submission."""
    store = get_store()
    scheme, failure = _load_or_fail(lambda: store.get_scheme(scheme_id), "views.schemes")
    if failure is not None:
        return failure

    form_context = {
        "scheme": scheme,
        "application_types": APPLICATION_TYPES,
        "priorities": Priority,
        "form_action": url_for("views.apply_for_scheme", scheme_id=scheme_id),
    }
    if request.method == "GET":
        return _render("application_form.html", form={}, **form_context)

    blocked = _verified_or_redirect()
    if blocked is not None:
        return blocked

    payload, errors = _application_payload(request.form, scheme=scheme)
    if errors:
        for message in errors:
            flash(message, "error")
        return _render("application_form.html", 400, form=_form_values(request.form), **form_context)

    files = _accepted_uploads()
    try:
        application = store.apply_for_scheme(scheme_id, payload)
    except ApiError as error:
        return _failure_redirect(error, "views.apply_for_scheme", scheme_id=scheme_id)

    _upload_documents(store.upload_application_documents, record_id(application), files)
    return redirect(url_for("views.applications"))


@views_bp.route("/applications/<application_id>")
@login_required
def application_detail(application_id: str):
    application, failure = _load_or_fail(
        lambda: get_store().get_application(application_id), "views.applications"
    )
    if failure is not None:
        return failure
    return _render(
        "application_detail.html",
        application=application,
        display=display_status(application.get("status"), ResourceKind.APPLICATIONS),
    )


@views_bp.route("/applications/<application_id>/comments", methods=["POST"])
@login_required
def add_application_comment(application_id: str):
    comment = request.form.get("comment", "").strip()
    if not comment:
        flash("Comment cannot be empty", "error")
        return redirect(url_for("views.application_detail", application_id=application_id))
    try:
        get_store().add_application_comment(application_id, comment)
    except ApiError as error:
        return _failure_redirect(error, "views.application_detail", application_id=application_id)
    return redirect(url_for("views.application_detail", application_id=application_id))


@views_bp.route("/applications/<application_id>/documents", methods=["POST"])
@login_required
def upload_application_documents(application_id: str):
    files = _accepted_uploads()
    if not files:
        if not request.files.getlist("documents"):
            flash("Select at least one file to upload", "error")
        return redirect(url_for("views.application_detail", application_id=application_id))
    try:
        get_store().upload_application_documents(application_id, to_multipart(files))
    except ApiError as error:
        return _failure_redirect(error, "views.application_detail", application_id=application_id)
    return redirect(url_for("views.application_detail", application_id=application_id))


@views_bp.route("/applications/<application_id>/delete", methods=["POST"])
@login_required
def delete_application(application_id: str):
    try:
        get_store().delete_application(application_id)
    except ApiError as error:
        return _failure_redirect(error, "views.applications")
    return redirect(url_for("views.applications"))


@views_bp.route("/grievances/new", methods=["GET"])
@login_required
def new_grievance():
    draft = load_draft(g.storage, GRIEVANCE_DRAFT) or {}
    return _render(
        "grievance_form.html",
        form=draft,
        categories=GrievanceCategory,
        priorities=GrievancePriority,
    )


@views_bp.route("/grievances", methods=["POST"])
@login_required
def create_grievance():
    payload, errors = _grievance_payload(request.form)
    if errors:
        for message in errors:
            flash(message, "error")
        return _render(
            "grievance_form.html",
            400,
            form=_form_values(request.form),
            categories=GrievanceCategory,
            priorities=GrievancePriority,
        )

    store = get_store()
    files = _accepted_uploads()
    try:
        grievance = store.create_grievance(payload)
    except ApiError as error:
        return _failure_redirect(error, "views.new_grievance")

    grievance_id = record_id(grievance)
    _upload_documents(store.upload_grievance_documents, grievance_id, files)
    discard_draft(g.storage, GRIEVANCE_DRAFT)
    if grievance_id is None:
        return redirect(url_for("views.grievances"))
    return redirect(url_for("views.grievance_detail", grievance_id=grievance_id))


@views_bp.route("/grievances/draft", methods=["POST"])
@login_required
def save_grievance_draft():
    return _save_draft(GRIEVANCE_DRAFT, "Grievance saved as draft", "views.new_grievance")


@views_bp.route("/grievances/<grievance_id>")
@login_required
def grievance_detail(grievance_id: str):
    """Grievance detail with its status timeline."""
    store = get_store()
    grievance, failure = _load_or_fail(lambda: store.get_grievance(grievance_id), "views.grievances")
    if failure is not None:
        return failure

    try:
        timeline = store.get_grievance_timeline(grievance_id)
    except ApiError as error:
        logger.warning("Timeline unavailable for grievance %s: %s", grievance_id, error.message)
        timeline = grievance.get("timeline") or []
    return _render(
        "grievance_detail.html",
        grievance=grievance,
        timeline=timeline,
        display=display_status(grievance.get("status"), ResourceKind.GRIEVANCES),
    )


@views_bp.route("/grievances/<grievance_id>/comments", methods=["POST"])
@login_required
def add_grievance_comment(grievance_id: str):
    comment = request.form.get("comment", "").strip()
    if not comment:
        flash("Comment cannot be empty", "error")
        return redirect(url_for("views.grievance_detail", grievance_id=grievance_id))
    try:
        get_store().add_grievance_comment(grievance_id, comment)
    except ApiError as error:
        return _failure_redirect(error, "views.grievance_detail", grievance_id=grievance_id)
    return redirect(url_for("views.grievance_detail", grievance_id=grievance_id))


@views_bp.route("/grievances/<grievance_id>/documents", methods=["POST"])
@login_required
def upload_grievance_documents(grievance_id: str):
    files = _accepted_uploads()
    if not files:
        if not request.files.getlist("documents"):
            flash("Select at least one file to upload", "error")
        return redirect(url_for("views.grievance_detail", grievance_id=grievance_id))
    try:
        get_store().upload_grievance_documents(grievance_id, to_multipart(files))
    except ApiError as error:
        return _failure_redirect(error, "views.grievance_detail", grievance_id=grievance_id)
    return redirect(url_for("views.grievance_detail", grievance_id=grievance_id))


@views_bp.route("/grievances/<grievance_id>/delete", methods=["POST"])
@login_required
def delete_grievance(grievance_id: str):
    try:
        get_store().delete_grievance(grievance_id)
    except ApiError as error:
        return _failure_redirect(error, "views.grievances")
    return redirect(url_for("views.grievances"))


@views_bp.route("/files/<file_id>")
@login_required
def download_file(file_id: str):
    """Stream a stored attachment back to the browser."""
    try:
        content, content_type = get_store().download_file(file_id)
    except ApiError as error:
        if error.status_code == 401:
            return _session_expired()
        flash(error.message, "error")
        return redirect(_safe_next(request.args.get("next")) or url_for("views.dashboard"))
    return Response(content, mimetype=content_type)
