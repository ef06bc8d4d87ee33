"""
Admin routes: overview statistics, status management for applications
and grievances, and upkeep of the scheme, announcement and service
catalogs.

Only staff and admin accounts get through ``admin_required``; everyone
else is sent back to their own dashboard.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import wraps
from typing import Any, NamedTuple

from flask import Blueprint, current_app, flash, redirect, request, url_for

from ..api import ApiError
from ..auth_store import ADMIN_DENIED_MESSAGE
from ..envelopes import record_id
from ..listing import filter_records, paginate, summarize
from ..models import (
    AnnouncementStatus,
    AnnouncementType,
    ApplicationStatus,
    Department,
    GrievancePriority,
    GrievanceStatus,
    ResourceKind,
    SchemeCategory,
    SchemeLevel,
    ServiceCategory,
    ServiceStatus,
)
from .views import (
    _failure_redirect,
    _page_arg,
    _render,
    _session_expired,
    _session_lost,
    get_auth,
    get_store,
    login_required,
)

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

# The hyphenated spelling is accepted on read but never written.
APPLICATION_STATUSES = tuple(
    status.value for status in ApplicationStatus if status is not ApplicationStatus.IN_PROGRESS_HYPHEN
)
GRIEVANCE_STATUSES = tuple(status.value for status in GrievanceStatus)


def admin_required(view_func):
    """Like ``login_required``, and additionally demand a staff or admin role."""

    @login_required
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        if not get_auth().is_staff():
            flash(ADMIN_DENIED_MESSAGE, "error")
            return redirect(url_for("views.dashboard"))
        return view_func(*args, **kwargs)

    return wrapper


@admin_bp.route("/login", methods=["GET"])
def login():
    """Admin variant of the login form; submits to the shared login handler."""
    return _render("login.html", admin=True, next="")


@admin_bp.route("")
@admin_required
def dashboard():
    """
    Admin overview.  Applications and grievances are fetched concurrently
    and independently, so one failing listing leaves the other on screen.
    """
    store = get_store()
    results = store.fetch_many(ResourceKind.APPLICATIONS, ResourceKind.GRIEVANCES, admin=True)
    if _session_lost():
        return _session_expired()

    applications, grievances = results["applications"], results["grievances"]
    stats = store.fetch_admin_stats() or summarize(applications, grievances)
    return _render(
        "admin_dashboard.html",
        stats=stats,
        summary=summarize(applications, grievances),
        recent_applications=applications[:5],
        recent_grievances=grievances[:5],
    )


def _render_admin_list(kind: str, fetch, statuses: tuple[str, ...]):
    search = request.args.get("search", "")
    status = request.args.get("status", "all")
    try:
        records = fetch(admin=True)
    except ApiError as error:
        if error.status_code == 401:
            return _session_expired()
        records = []

    matches = filter_records(records, search, fields=("title", "applicantName", "type", "description"), status=status)
    page = paginate(matches, _page_arg(), current_app.config["PAGE_SIZE"])
    return _render(
        "admin_list.html",
        kind=kind,
        page=page,
        statuses=statuses,
        search=search,
        current_status=status,
    )


@admin_bp.route("/applications")
@admin_required
def applications():
    return _render_admin_list("applications", get_store().fetch_applications, APPLICATION_STATUSES)


@admin_bp.route("/grievances")
@admin_required
def grievances():
    return _render_admin_list("grievances", get_store().fetch_grievances, GRIEVANCE_STATUSES)


@admin_bp.route("/applications/<application_id>/status", methods=["POST"])
@admin_required
def update_application_status(application_id: str):
    status = request.form.get("status", "")
    if status not in APPLICATION_STATUSES:
        flash("Invalid status", "error")
        return redirect(url_for("admin.applications"))
    try:
        get_store().update_application_status(application_id, status, request.form.get("comment") or None)
    except ApiError as error:
        return _failure_redirect(error, "admin.applications")
    return redirect(url_for("admin.applications"))


@admin_bp.route("/grievances/<grievance_id>/status", methods=["POST"])
@admin_required
def update_grievance_status(grievance_id: str):
    status = request.form.get("status", "")
    if status not in GRIEVANCE_STATUSES:
        flash("Invalid status", "error")
        return redirect(url_for("admin.grievances"))
    try:
        get_store().update_grievance_status(grievance_id, status, request.form.get("comment") or None)
    except ApiError as error:
        return _failure_redirect(error, "admin.grievances")
    return redirect(url_for("admin.grievances"))


# =====================================================================
# Catalog management: schemes, announcements and services
# =====================================================================


class FormField(NamedTuple):
    """One input of a catalog form and the rule used to read it back."""

    name: str
    label: str
    widget: str = "text"
    options: tuple[str, ...] = ()
    required: bool = False
    default: str = ""


class CatalogSection(NamedTuple):
    kind: ResourceKind
    noun: str
    title_field: str
    fields: tuple[FormField, ...]
    fixed: dict[str, Any]


def _values(vocabulary) -> tuple[str, ...]:
    return tuple(member.value for member in vocabulary)


PRIORITY_LEVELS = _values(GrievancePriority)

CATALOGS = {
    "schemes": CatalogSection(
        kind=ResourceKind.SCHEMES,
        noun="scheme",
        title_field="name",
        fields=(
            FormField("name", "Name", required=True),
            FormField("nameHindi", "Name (Hindi)"),
            FormField("description", "Description", "textarea", required=True),
            FormField("descriptionHindi", "Description (Hindi)", "textarea"),
            FormField("category", "Category", "select", _values(SchemeCategory)),
            FormField("department", "Department", "select", _values(Department)),
            FormField("ministry", "Ministry"),
            FormField("level", "Level", "select", _values(SchemeLevel)),
            FormField("featured", "Featured", "checkbox"),
        ),
        fixed={},
    ),
    "announcements": CatalogSection(
        kind=ResourceKind.ANNOUNCEMENTS,
        noun="announcement",
        title_field="title",
        fields=(
            FormField("title", "Title", required=True),
            FormField("titleHindi", "Title (Hindi)"),
            FormField("content", "Content", "textarea", required=True),
            FormField("contentHindi", "Content (Hindi)", "textarea"),
            FormField("type", "Type", "select", _values(AnnouncementType)),
            FormField("priority", "Priority", "select", PRIORITY_LEVELS, default=GrievancePriority.MEDIUM.value),
            FormField(
                "status", "Status", "select", _values(AnnouncementStatus), default=AnnouncementStatus.PUBLISHED.value
            ),
            FormField("featured", "Featured", "checkbox"),
            FormField("pinned", "Pinned", "checkbox"),
        ),
        fixed={"category": "general", "targetAudience": "all", "language": "en"},
    ),
    "services": CatalogSection(
        kind=ResourceKind.SERVICES,
        noun="service",
        title_field="name",
        fields=(
            FormField("name", "Name", required=True),
            FormField("nameHindi", "Name (Hindi)"),
            FormField("description", "Description", "textarea", required=True),
            FormField("descriptionHindi", "Description (Hindi)", "textarea"),
            FormField("category", "Category", "select", _values(ServiceCategory)),
            FormField("department", "Department", "select", _values(Department)),
            FormField("status", "Status", "select", _values(ServiceStatus)),
            FormField("priority", "Priority", "select", PRIORITY_LEVELS, default=GrievancePriority.MEDIUM.value),
            FormField("processingTime", "Processing time (days)", "number"),
            FormField("featured", "Featured", "checkbox"),
        ),
        fixed={},
    ),
}

CATALOG_RULE = f"/<any({', '.join(CATALOGS)}):catalog>"


def catalog_payload(section: CatalogSection, form: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """
    Build a catalog request body from submitted form fields.

    Blank selects fall back to the field default (or the first option);
    any other value must be one of the listed options.  A blank number
    field is left out of the body.

    Returns:
        ``(payload, errors)``; *errors* is empty when the form is valid.
    """
    errors = []
    payload: dict[str, Any] = dict(section.fixed)
    for field in section.fields:
        raw = form.get(field.name, "")
        if field.widget == "checkbox":
            payload[field.name] = bool(raw)
            continue

        value = str(raw).strip()
        if field.widget == "select":
            value = value or field.default or field.options[0]
            if value not in field.options:
                errors.append(f"Invalid {field.label.lower()}")
        elif field.widget == "number":
            if not value:
                continue
            try:
                payload[field.name] = int(value)
            except ValueError:
                errors.append(f"{field.label} must be a whole number")
            continue
        elif field.required and not value:
            errors.append(f"{field.label} is required")
        payload[field.name] = value
    return payload, errors


def _section(catalog: str) -> CatalogSection:
    return CATALOGS[catalog]


def _catalog_records(section: CatalogSection) -> list[dict[str, Any]]:
    fetch = getattr(get_store(), f"fetch_{section.kind.value}")
    try:
        return fetch(admin=True)
    except ApiError:
        return []


def _render_catalog_form(catalog: str, form: Mapping[str, Any], item_id: str | None = None, status_code: int = 200):
    return _render(
        "admin_catalog_form.html",
        status_code,
        catalog=catalog,
        section=_section(catalog),
        form=form,
        item_id=item_id,
    )


@admin_bp.route(CATALOG_RULE)
@admin_required
def catalog_list(catalog: str):
    section = _section(catalog)
    search = request.args.get("search", "")
    records = _catalog_records(section)
    if _session_lost():
        return _session_expired()

    matches = filter_records(records, search, fields=(section.title_field, "description", "content", "category"))
    page = paginate(matches, _page_arg(), current_app.config["PAGE_SIZE"])
    return _render("admin_catalog.html", catalog=catalog, section=section, page=page, search=search)


@admin_bp.route(f"{CATALOG_RULE}/new")
@admin_required
def catalog_new(catalog: str):
    return _render_catalog_form(catalog, {})


@admin_bp.route(CATALOG_RULE, methods=["POST"])
@admin_required
def catalog_create(catalog: str):
    section = _section(catalog)
    payload, errors = catalog_payload(section, request.form)
    if errors:
        for message in errors:
            flash(message, "error")
        return _render_catalog_form(catalog, request.form, status_code=400)

    try:
        getattr(get_store(), f"create_{section.noun}")(payload)
    except ApiError as error:
        if error.status_code == 401:
            return _session_expired()
        return _render_catalog_form(catalog, request.form, status_code=error.status_code or 400)
    return redirect(url_for("admin.catalog_list", catalog=catalog))


@admin_bp.route(f"{CATALOG_RULE}/<item_id>/edit")
@admin_required
def catalog_edit(catalog: str, item_id: str):
    section = _section(catalog)
    records = _catalog_records(section)
    if _session_lost():
        return _session_expired()

    record = next((item for item in records if str(record_id(item)) == item_id), None)
    if record is None:
        flash(f"{section.noun.capitalize()} not found", "error")
        return redirect(url_for("admin.catalog_list", catalog=catalog))
    return _render_catalog_form(catalog, record, item_id)


@admin_bp.route(f"{CATALOG_RULE}/<item_id>/update", methods=["POST"])
@admin_required
def catalog_update(catalog: str, item_id: str):
    section = _section(catalog)
    payload, errors = catalog_payload(section, request.form)
    if errors:
        for message in errors:
            flash(message, "error")
        return _render_catalog_form(catalog, request.form, item_id, status_code=400)

    try:
        getattr(get_store(), f"update_{section.noun}")(item_id, payload)
    except ApiError as error:
        if error.status_code == 401:
            return _session_expired()
        return _render_catalog_form(catalog, request.form, item_id, status_code=error.status_code or 400)
    return redirect(url_for("admin.catalog_list", catalog=catalog))


@admin_bp.route(f"{CATALOG_RULE}/<item_id>/delete", methods=["POST"])
@admin_required
def catalog_delete(catalog: str, item_id: str):
    section = _section(catalog)
    try:
        getattr(get_store(), f"delete_{section.noun}")(item_id)
    except ApiError as error:
        return _failure_redirect(error, "admin.catalog_list", catalog=catalog)
    return redirect(url_for("admin.catalog_list", catalog=catalog))
