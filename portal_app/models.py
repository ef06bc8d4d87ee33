"""
Portal data vocabularies.

Records fetched from the backend stay plain dictionaries.  They are
transient, re-fetchable copies of backend-owned rows, not authoritative
state.  This module only defines the enums that describe their fields and
the helpers that translate those fields into display terms.

Applications and grievances use *different* status vocabularies.  Pages
show both in one table, so :func:`display_status` folds either vocabulary
into :class:`DisplayStatus` while the record keeps its original value.

All enums inherit from ``str`` as well as ``Enum`` so that their values
compare directly against the plain strings returned by the backend.
"""

from __future__ import annotations

from enum import Enum


class ResourceKind(str, Enum):
    """Collections held by the application store."""

    SCHEMES = "schemes"
    APPLICATIONS = "applications"
    GRIEVANCES = "grievances"
    ANNOUNCEMENTS = "announcements"
    SERVICES = "services"


class ApplicationStatus(str, Enum):
    """
    Application statuses as emitted by the backend.

    The backend has used both hyphenated and underscored spellings of
    "in progress", and both "approved" and "resolved" for the positive
    outcome, so every variant is listed.
    """

    PENDING = "pending"
    IN_PROGRESS_HYPHEN = "in-progress"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class GrievanceStatus(str, Enum):
    """Grievance lifecycle statuses."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    CLOSED = "closed"


class Priority(str, Enum):
    """Application priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GrievancePriority(str, Enum):
    """Grievance priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class GrievanceCategory(str, Enum):
    INFRASTRUCTURE = "infrastructure"
    WATER_SUPPLY = "water_supply"
    SANITATION = "sanitation"
    ELECTRICITY = "electricity"
    ROADS = "roads"
    HEALTH = "health"
    EDUCATION = "education"
    OTHER = "other"


class AnnouncementCategory(str, Enum):
    GENERAL = "general"
    MEETING = "meeting"
    SCHEME = "scheme"
    EVENT = "event"
    EMERGENCY = "emergency"


class AnnouncementType(str, Enum):
    GENERAL = "general"
    SCHEME_LAUNCH = "scheme_launch"
    DEADLINE_REMINDER = "deadline_reminder"
    POLICY_UPDATE = "policy_update"
    EVENT_NOTIFICATION = "event_notification"
    EMERGENCY = "emergency"
    MAINTENANCE = "maintenance"
    HOLIDAY = "holiday"
    OTHER = "other"


class AnnouncementStatus(str, Enum):
    """Publication state of an announcement; only published ones are public."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SchemeCategory(str, Enum):
    AGRICULTURE = "agriculture"
    EDUCATION = "education"
    HEALTHCARE = "healthcare"
    HOUSING = "housing"
    EMPLOYMENT = "employment"
    WOMEN_WELFARE = "women_welfare"
    SENIOR_CITIZENS = "senior_citizens"
    DISABLED_WELFARE = "disabled_welfare"
    SOCIAL_SECURITY = "social_security"
    INFRASTRUCTURE = "infrastructure"
    ENVIRONMENT = "environment"
    OTHER = "other"


class SchemeLevel(str, Enum):
    """Tier of government that runs a scheme."""

    CENTRAL = "central"
    STATE = "state"
    DISTRICT = "district"
    LOCAL = "local"


class Department(str, Enum):
    """Owning department of a scheme or service."""

    AGRICULTURE = "agriculture"
    EDUCATION = "education"
    HEALTH = "health"
    RURAL_DEVELOPMENT = "rural_development"
    WOMEN_CHILD_DEVELOPMENT = "women_child_development"
    SOCIAL_JUSTICE = "social_justice"
    LABOUR = "labour"
    HOUSING = "housing"
    FINANCE = "finance"
    OTHER = "other"


class ServiceCategory(str, Enum):
    ESSENTIAL = "essential"
    WELFARE = "welfare"
    COMMUNITY = "community"
    INFRASTRUCTURE = "infrastructure"
    ENVIRONMENT = "environment"
    EMERGENCY = "emergency"
    SANITATION = "sanitation"
    SECURITY = "security"
    CONSTRUCTION = "construction"
    MAINTENANCE = "maintenance"
    INFORMATION = "information"
    OTHER = "other"


class ServiceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    DISCONTINUED = "discontinued"


class DisplayStatus(str, Enum):
    """
    Unified status vocabulary used by list pages and badges.

    Attributes:
        PENDING: Submitted, nobody has picked it up yet.
        IN_PROGRESS: Being worked on by the Panchayat office.
        RESOLVED: Approved, resolved or closed.
        REJECTED: Turned down.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


_APPLICATION_DISPLAY = {
    ApplicationStatus.PENDING.value: DisplayStatus.PENDING,
    ApplicationStatus.IN_PROGRESS_HYPHEN.value: DisplayStatus.IN_PROGRESS,
    ApplicationStatus.IN_PROGRESS.value: DisplayStatus.IN_PROGRESS,
    ApplicationStatus.APPROVED.value: DisplayStatus.RESOLVED,
    ApplicationStatus.RESOLVED.value: DisplayStatus.RESOLVED,
    ApplicationStatus.REJECTED.value: DisplayStatus.REJECTED,
}

_GRIEVANCE_DISPLAY = {
    GrievanceStatus.OPEN.value: DisplayStatus.PENDING,
    # Older grievance records were created with "pending".
    "pending": DisplayStatus.PENDING,
    GrievanceStatus.IN_PROGRESS.value: DisplayStatus.IN_PROGRESS,
    "in-progress": DisplayStatus.IN_PROGRESS,
    GrievanceStatus.RESOLVED.value: DisplayStatus.RESOLVED,
    GrievanceStatus.CLOSED.value: DisplayStatus.RESOLVED,
    GrievanceStatus.REJECTED.value: DisplayStatus.REJECTED,
}

_STATUS_BADGES = {
    DisplayStatus.PENDING: "badge-yellow",
    DisplayStatus.IN_PROGRESS: "badge-blue",
    DisplayStatus.RESOLVED: "badge-green",
    DisplayStatus.REJECTED: "badge-red",
}

_PRIORITY_BADGES = {
    "urgent": "badge-red",
    "high": "badge-red",
    "medium": "badge-yellow",
    "low": "badge-green",
}

DEFAULT_BADGE = "badge-grey"


def display_status(raw: str | None, kind: ResourceKind | str) -> DisplayStatus:
    """
    Translate a backend status into the unified display vocabulary.

    Unknown or missing values are shown as pending rather than dropped, so
    a record with a status the portal has never seen still appears in the
    "all" listing.

    Args:
        raw: Status string exactly as stored on the record.
        kind: Which vocabulary *raw* belongs to.

    Returns:
        The matching :class:`DisplayStatus`.
    """
    table = _GRIEVANCE_DISPLAY if ResourceKind(kind) is ResourceKind.GRIEVANCES else _APPLICATION_DISPLAY
    return table.get((raw or "").strip().lower(), DisplayStatus.PENDING)


def status_badge(status: DisplayStatus | str | None) -> str:
    """Return the badge CSS class for a display status."""
    try:
        return _STATUS_BADGES[DisplayStatus(status)]
    except ValueError:
        return DEFAULT_BADGE


def priority_badge(priority: str | None) -> str:
    """Return the badge CSS class for a priority value."""
    return _PRIORITY_BADGES.get((priority or "").lower(), DEFAULT_BADGE)


def status_label(raw: str | None) -> str:
    """Humanise a raw status value (``"in-progress"`` -> ``"In progress"``)."""
    if not raw:
        return "Unknown"
    text = raw.replace("-", " ").replace("_", " ")
    return text[:1].upper() + text[1:]
