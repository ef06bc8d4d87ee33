"""
Application state store.

The store owns the single in-memory copy of every fetched collection for
one page session and brokers every backend call through the same
success/error/loading protocol, so pages never talk to the transport layer
directly and never duplicate loading-state bookkeeping.

State transitions are named :class:`Action` values applied by the pure
:func:`app_reducer`.  :class:`AppStore` is the only writer: it wraps each
transport call in :meth:`AppStore.handle_api_call`, which

1. raises the loading flag for the resource kind and clears the error,
2. runs the call,
3. on success commits the result and issues the success notification,
4. on failure records the error and notifies, except for connectivity
   failures, which switch the store into degraded mode instead,
5. always lowers the loading flag in a ``finally`` path.

Every call also bumps a per-kind generation counter.  A wholesale
replacement of a collection is only committed while its generation is
still the latest one, so an older fetch that resolves late cannot
overwrite newer data.

Key Concepts Demonstrated:
- Reducer over a tagged-union action type
- Dependency-injected store (no module-level singleton)
- Generation counters for stale-response suppression
- Concurrent per-kind fetches on a thread pool with a single writer
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import partial
from typing import Any, TypeVar

from . import envelopes
from .api import ApiError, ApiService, is_connectivity_error
from .envelopes import record_id
from .listing import summarize
from .models import ResourceKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAT_FIELDS = {
    "total_applications": "totalApplications",
    "pending_applications": "pendingApplications",
    "approved_applications": "approvedApplications",
    "total_grievances": "totalGrievances",
    "pending_grievances": "pendingGrievances",
    "resolved_grievances": "resolvedGrievances",
}


def _empty_loading() -> dict[str, bool]:
    return {kind.value: False for kind in ResourceKind}


def _empty_stats() -> dict[str, int]:
    return {name: 0 for name in STAT_FIELDS}


# =====================================================================
# State and actions
# =====================================================================


@dataclass(frozen=True)
class AppState:
    """
    Snapshot of everything the pages may read.

    Collections are replaced, never mutated in place; each reducer step
    builds new lists.

    Attributes:
        loading: One flag per :class:`ResourceKind` value.
        error: Message of the last failed call, or ``None``.
        stats: Dashboard summary counters.
        degraded: True while the backend is unreachable.
    """

    schemes: list[dict[str, Any]] = field(default_factory=list)
    applications: list[dict[str, Any]] = field(default_factory=list)
    grievances: list[dict[str, Any]] = field(default_factory=list)
    announcements: list[dict[str, Any]] = field(default_factory=list)
    services: list[dict[str, Any]] = field(default_factory=list)
    loading: dict[str, bool] = field(default_factory=_empty_loading)
    error: str | None = None
    stats: dict[str, int] = field(default_factory=_empty_stats)
    degraded: bool = False

    def collection(self, kind: ResourceKind | str) -> list[dict[str, Any]]:
        return getattr(self, ResourceKind(kind).value)

    def is_loading(self, kind: ResourceKind | str) -> bool:
        return self.loading.get(ResourceKind(kind).value, False)


class ActionType(str, Enum):
    SET_LOADING = "SET_LOADING"
    SET_ERROR = "SET_ERROR"
    CLEAR_ERROR = "CLEAR_ERROR"
    SET_COLLECTION = "SET_COLLECTION"
    ADD_ITEM = "ADD_ITEM"
    UPDATE_ITEM = "UPDATE_ITEM"
    REMOVE_ITEM = "REMOVE_ITEM"
    SET_STATS = "SET_STATS"
    SET_DEGRADED = "SET_DEGRADED"


@dataclass(frozen=True)
class Action:
    """
    One state transition.

    Attributes:
        type: Which transition to apply.
        kind: Target collection for per-resource actions.
        payload: Transition data (flag, message, list, record or id).
    """

    type: ActionType
    kind: ResourceKind | None = None
    payload: Any = None


def set_loading(kind: ResourceKind, loading: bool) -> Action:
    return Action(ActionType.SET_LOADING, ResourceKind(kind), loading)


def set_error(message: str | None) -> Action:
    return Action(ActionType.SET_ERROR, payload=message)


def clear_error() -> Action:
    return Action(ActionType.CLEAR_ERROR)


def set_collection(kind: ResourceKind, items: Iterable[dict[str, Any]]) -> Action:
    return Action(ActionType.SET_COLLECTION, ResourceKind(kind), list(items))


def add_item(kind: ResourceKind, item: dict[str, Any]) -> Action:
    return Action(ActionType.ADD_ITEM, ResourceKind(kind), item)


def update_item(kind: ResourceKind, item: dict[str, Any]) -> Action:
    return Action(ActionType.UPDATE_ITEM, ResourceKind(kind), item)


def remove_item(kind: ResourceKind, item_id: Any) -> Action:
    return Action(ActionType.REMOVE_ITEM, ResourceKind(kind), item_id)


def set_stats(stats: dict[str, int]) -> Action:
    return Action(ActionType.SET_STATS, payload=dict(stats))


def set_degraded(degraded: bool) -> Action:
    return Action(ActionType.SET_DEGRADED, payload=degraded)


def set_schemes(items):
    return set_collection(ResourceKind.SCHEMES, items)


def set_applications(items):
    return set_collection(ResourceKind.APPLICATIONS, items)


def set_grievances(items):
    return set_collection(ResourceKind.GRIEVANCES, items)


def set_announcements(items):
    return set_collection(ResourceKind.ANNOUNCEMENTS, items)


def set_services(items):
    return set_collection(ResourceKind.SERVICES, items)


def add_application(item):
    return add_item(ResourceKind.APPLICATIONS, item)


def update_application(item):
    return update_item(ResourceKind.APPLICATIONS, item)


def remove_application(item_id):
    return remove_item(ResourceKind.APPLICATIONS, item_id)


def add_grievance(item):
    return add_item(ResourceKind.GRIEVANCES, item)


def update_grievance(item):
    return update_item(ResourceKind.GRIEVANCES, item)


def remove_grievance(item_id):
    return remove_item(ResourceKind.GRIEVANCES, item_id)


def add_scheme(item):
    return add_item(ResourceKind.SCHEMES, item)


def update_scheme(item):
    return update_item(ResourceKind.SCHEMES, item)


def remove_scheme(item_id):
    return remove_item(ResourceKind.SCHEMES, item_id)


def add_announcement(item):
    return add_item(ResourceKind.ANNOUNCEMENTS, item)


def update_announcement(item):
    return update_item(ResourceKind.ANNOUNCEMENTS, item)


def remove_announcement(item_id):
    return remove_item(ResourceKind.ANNOUNCEMENTS, item_id)


def add_service(item):
    return add_item(ResourceKind.SERVICES, item)


def update_service(item):
    return update_item(ResourceKind.SERVICES, item)


def remove_service(item_id):
    return remove_item(ResourceKind.SERVICES, item_id)


def _same_id(record: dict[str, Any], item_id: Any) -> bool:
    current = record_id(record)
    return current is not None and str(current) == str(item_id)


def app_reducer(state: AppState, action: Action) -> AppState:
    """
    Apply *action* to *state* and return the new state.

    Pure: never mutates *state* or the action payload.  Unknown actions
    return *state* unchanged.
    """
    kind = action.kind.value if action.kind is not None else None

    if action.type is ActionType.SET_LOADING:
        return replace(state, loading={**state.loading, kind: bool(action.payload)})

    if action.type is ActionType.SET_ERROR:
        return replace(state, error=action.payload)

    if action.type is ActionType.CLEAR_ERROR:
        return replace(state, error=None)

    if action.type is ActionType.SET_COLLECTION:
        return replace(
            state,
            loading={**state.loading, kind: False},
            **{kind: list(action.payload)},
        )

    if action.type is ActionType.ADD_ITEM:
        return replace(state, **{kind: [action.payload, *getattr(state, kind)]})

    if action.type is ActionType.UPDATE_ITEM:
        updated_id = record_id(action.payload)
        items = [
            action.payload if _same_id(record, updated_id) else record
            for record in getattr(state, kind)
        ]
        return replace(state, **{kind: items})

    if action.type is ActionType.REMOVE_ITEM:
        items = [record for record in getattr(state, kind) if not _same_id(record, action.payload)]
        return replace(state, **{kind: items})

    if action.type is ActionType.SET_STATS:
        return replace(state, stats=action.payload)

    if action.type is ActionType.SET_DEGRADED:
        return replace(state, degraded=bool(action.payload))

    return state


# =====================================================================
# Notifications
# =====================================================================


class Notifier:
    """
    Thread-safe collector of transient user notifications.

    The store may run fetches on worker threads, where Flask's ``flash``
    is not available, so notifications are queued here and drained by the
    view on the request thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages: list[tuple[str, str]] = []

    def __call__(self, category: str, message: str) -> None:
        with self._lock:
            self._messages.append((category, message))

    def drain(self) -> list[tuple[str, str]]:
        with self._lock:
            messages, self._messages = self._messages, []
        return messages

    @property
    def messages(self) -> list[tuple[str, str]]:
        with self._lock:
            return list(self._messages)


@dataclass(frozen=True)
class _Ticket:
    kind: ResourceKind
    generation: int


def coerce_stats(raw: dict[str, Any]) -> dict[str, int]:
    """Map a server statistics payload (snake or camel case) onto the summary fields."""
    result = {}
    for name, camel in STAT_FIELDS.items():
        value = raw.get(name, raw.get(camel, 0))
        try:
            result[name] = int(value or 0)
        except (TypeError, ValueError):
            result[name] = 0
    return result


# =====================================================================
# Store
# =====================================================================


class AppStore:
    """
    Single writer of :class:`AppState` for one page session.

    Args:
        api: Transport layer used for every backend call.
        notify: ``notify(category, message)`` sink for user notifications.
            Defaults to a fresh :class:`Notifier`.
        max_workers: Thread-pool size for :meth:`fetch_many`.
        context_wrapper: Applied to every callable handed to a worker
            thread (e.g. ``flask.copy_current_request_context``).
    """

    def __init__(
        self,
        api: ApiService,
        notify: Callable[[str, str], None] | None = None,
        max_workers: int = 4,
        context_wrapper: Callable[[Callable[[], Any]], Callable[[], Any]] | None = None,
    ) -> None:
        self.api = api
        self.notify = notify if notify is not None else Notifier()
        self.max_workers = max(1, max_workers)
        self._context_wrapper = context_wrapper
        self._state = AppState()
        self._lock = threading.RLock()
        self._generations = {kind.value: 0 for kind in ResourceKind}

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        with self._lock:
            self._state = app_reducer(self._state, action)
            return self._state

    def clear_error(self) -> None:
        self.dispatch(clear_error())

    # -----------------------------------------------------------------
    # Call protocol
    # -----------------------------------------------------------------

    def _begin(self, kind: ResourceKind) -> _Ticket:
        with self._lock:
            self._generations[kind.value] += 1
            ticket = _Ticket(kind, self._generations[kind.value])
            self.dispatch(set_loading(kind, True))
            self.dispatch(clear_error())
        return ticket

    def _is_current(self, ticket: _Ticket) -> bool:
        return self._generations[ticket.kind.value] == ticket.generation

    def _commit_if_current(self, ticket: _Ticket, action: Action) -> bool:
        with self._lock:
            if not self._is_current(ticket):
                logger.debug(
                    "Discarding stale %s response (generation %s, latest %s)",
                    ticket.kind.value,
                    ticket.generation,
                    self._generations[ticket.kind.value],
                )
                return False
            self.dispatch(action)
            return True

    def _run(
        self,
        ticket: _Ticket,
        operation: Callable[[], T],
        success_message: str | None = None,
        commit: Callable[[T], None] | None = None,
    ) -> T:
        try:
            result = operation()
        except ApiError as error:
            message = error.message or "An error occurred"
            self.dispatch(set_error(message))
            if is_connectivity_error(error):
                self.dispatch(set_degraded(True))
            else:
                self.notify("error", message)
            raise
        else:
            if commit is not None:
                commit(result)
            if self._state.degraded:
                self.dispatch(set_degraded(False))
            if success_message:
                self.notify("success", success_message)
            return result
        finally:
            with self._lock:
                if self._is_current(ticket):
                    self.dispatch(set_loading(ticket.kind, False))

    def handle_api_call(
        self,
        operation: Callable[[], T],
        kind: ResourceKind | str,
        success_message: str | None = None,
    ) -> T:
        """
        Run one transport call under the loading/error/notification protocol.

        Args:
            operation: Zero-argument callable performing the call.
            kind: Resource kind whose loading flag tracks the call.
            success_message: Notification issued when the call succeeds.

        Returns:
            Whatever *operation* returned.

        Raises:
            ApiError: Re-raised after the failure has been recorded.
        """
        return self._run(self._begin(ResourceKind(kind)), operation, success_message)

    def _mutate(
        self,
        kind: ResourceKind,
        operation: Callable[[], T],
        success_message: str,
        to_action: Callable[[T], Action | None],
    ) -> T:
        """Run a mutation and apply its item-level slice update."""

        def commit(result: T) -> None:
            action = to_action(result)
            if action is not None:
                self.dispatch(action)

        return self._run(self._begin(kind), operation, success_message, commit)

    # -----------------------------------------------------------------
    # Collection fetches
    # -----------------------------------------------------------------

    def _fetch(
        self,
        kind: ResourceKind,
        operation: Callable[[], list[dict[str, Any]]],
        fallback_to_empty: bool,
    ) -> list[dict[str, Any]]:
        ticket = self._begin(kind)
        try:
            return self._run(
                ticket,
                operation,
                commit=lambda items: self._commit_if_current(ticket, set_collection(kind, items)),
            )
        except ApiError as error:
            if not fallback_to_empty:
                raise
            logger.warning("Error fetching %s: %s", kind.value, error.message)
            self._commit_if_current(ticket, set_collection(kind, []))
            return []

    def fetch_schemes(
        self, params: dict[str, Any] | None = None, admin: bool = False
    ) -> list[dict[str, Any]]:
        source = self.api.get_admin_schemes if admin else self.api.get_schemes
        return self._fetch(
            ResourceKind.SCHEMES,
            lambda: envelopes.schemes(source(params)),
            fallback_to_empty=not admin,
        )

    def fetch_applications(
        self, params: dict[str, Any] | None = None, admin: bool = False
    ) -> list[dict[str, Any]]:
        source = self.api.get_admin_applications if admin else self.api.get_applications
        return self._fetch(
            ResourceKind.APPLICATIONS,
            lambda: envelopes.applications(source(params)),
            fallback_to_empty=False,
        )

    def fetch_grievances(
        self, params: dict[str, Any] | None = None, admin: bool = False
    ) -> list[dict[str, Any]]:
        source = self.api.get_admin_grievances if admin else self.api.get_grievances
        return self._fetch(
            ResourceKind.GRIEVANCES,
            lambda: envelopes.grievances(source(params)),
            fallback_to_empty=False,
        )

    def fetch_announcements(
        self, params: dict[str, Any] | None = None, admin: bool = False
    ) -> list[dict[str, Any]]:
        source = self.api.get_admin_announcements if admin else self.api.get_announcements
        return self._fetch(
            ResourceKind.ANNOUNCEMENTS,
            lambda: envelopes.announcements(source(params)),
            fallback_to_empty=not admin,
        )

    def fetch_services(
        self, params: dict[str, Any] | None = None, admin: bool = False
    ) -> list[dict[str, Any]]:
        source = self.api.get_admin_services if admin else self.api.get_services
        return self._fetch(
            ResourceKind.SERVICES,
            lambda: envelopes.services(source(params)),
            fallback_to_empty=not admin,
        )

    def _fetcher(self, kind: ResourceKind, admin: bool = False) -> Callable[[], list[dict[str, Any]]]:
        fetch = {
            ResourceKind.SCHEMES: self.fetch_schemes,
            ResourceKind.APPLICATIONS: self.fetch_applications,
            ResourceKind.GRIEVANCES: self.fetch_grievances,
            ResourceKind.ANNOUNCEMENTS: self.fetch_announcements,
            ResourceKind.SERVICES: self.fetch_services,
        }[kind]
        return partial(fetch, admin=admin)

    def fetch_many(self, *kinds: ResourceKind | str, admin: bool = False) -> dict[str, list[dict[str, Any]]]:
        """
        Fetch several resource kinds concurrently.

        Each kind has its own loading flag and slice, so there is no
        ordering between them.  A kind whose fetch propagates an error is
        reported as an empty list; the error itself is already recorded
        in the store.  With ``admin`` set every kind is read from its
        ``/admin`` listing.

        Returns:
            ``{kind value: collection}`` for every requested kind.
        """
        targets = [ResourceKind(kind) for kind in dict.fromkeys(kinds)]
        if not targets:
            return {}

        wrap = self._context_wrapper or (lambda fn: fn)
        results: dict[str, list[dict[str, Any]]] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(targets))) as pool:
            futures = {kind: pool.submit(wrap(self._fetcher(kind, admin))) for kind in targets}
            for kind, future in futures.items():
                try:
                    results[kind.value] = future.result()
                except ApiError:
                    results[kind.value] = []
        return results

    # -----------------------------------------------------------------
    # Single-record reads
    # -----------------------------------------------------------------

    def get_scheme(self, scheme_id: str) -> dict[str, Any] | None:
        return envelopes.scheme(self.api.get_scheme(scheme_id))

    def get_application(self, application_id: str) -> dict[str, Any] | None:
        return envelopes.application(self.api.get_application(application_id))

    def get_grievance(self, grievance_id: str) -> dict[str, Any] | None:
        return envelopes.grievance(self.api.get_grievance(grievance_id))

    def get_grievance_timeline(self, grievance_id: str) -> list[dict[str, Any]]:
        return envelopes.timeline(self.api.get_grievance_timeline(grievance_id))

    def get_announcement(self, announcement_id: str) -> dict[str, Any] | None:
        return envelopes.announcement(self.api.get_announcement(announcement_id))

    def get_service(self, service_id: str) -> dict[str, Any] | None:
        return envelopes.service(self.api.get_service(service_id))

    def download_file(self, file_id: str) -> tuple[bytes, str]:
        return self.api.download_file(file_id)

    # -----------------------------------------------------------------
    # Applications
    # -----------------------------------------------------------------

    def apply_for_scheme(self, scheme_id: str, application_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.APPLICATIONS
        return self._mutate(
            kind,
            lambda: envelopes.application(self.api.apply_for_scheme(scheme_id, application_data)),
            "Application submitted successfully!",
            lambda item: add_item(kind, item) if item else None,
        )

    def create_application(self, application_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.APPLICATIONS
        return self._mutate(
            kind,
            lambda: envelopes.application(self.api.create_application(application_data)),
            "Application submitted successfully!",
            lambda item: add_item(kind, item) if item else None,
        )

    def update_application(self, application_id: str, application_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.APPLICATIONS
        return self._mutate(
            kind,
            lambda: envelopes.application(self.api.update_application(application_id, application_data)),
            "Application updated successfully!",
            lambda item: update_item(kind, item) if item else None,
        )

    def delete_application(self, application_id: str) -> None:
        kind = ResourceKind.APPLICATIONS
        self._mutate(
            kind,
            lambda: self.api.delete_application(application_id),
            "Application deleted successfully!",
            lambda _: remove_item(kind, application_id),
        )

    def upload_application_documents(self, application_id: str, files: Any) -> Any:
        kind = ResourceKind.APPLICATIONS
        return self._mutate(
            kind,
            lambda: self.api.upload_application_documents(application_id, files),
            "Documents uploaded successfully!",
            lambda body: update_item(kind, item) if (item := envelopes.application(body)) else None,
        )

    def add_application_comment(self, application_id: str, comment: str) -> Any:
        return self._mutate(
            ResourceKind.APPLICATIONS,
            lambda: self.api.add_application_comment(application_id, comment),
            "Comment added successfully!",
            lambda _: None,
        )

    def update_application_status(self, application_id: str, status: str, comment: str | None = None) -> dict[str, Any] | None:
        kind = ResourceKind.APPLICATIONS
        return self._mutate(
            kind,
            lambda: envelopes.application(self.api.update_application_status(application_id, status, comment)),
            "Application status updated successfully!",
            lambda item: update_item(kind, item) if item else None,
        )

    # -----------------------------------------------------------------
    # Grievances
    # -----------------------------------------------------------------

    def create_grievance(self, grievance_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.GRIEVANCES
        return self._mutate(
            kind,
            lambda: envelopes.grievance(self.api.create_grievance(grievance_data)),
            "Grievance submitted successfully!",
            lambda item: add_item(kind, item) if item else None,
        )

    def update_grievance(self, grievance_id: str, grievance_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.GRIEVANCES
        return self._mutate(
            kind,
            lambda: envelopes.grievance(self.api.update_grievance(grievance_id, grievance_data)),
            "Grievance updated successfully!",
            lambda item: update_item(kind, item) if item else None,
        )

    def delete_grievance(self, grievance_id: str) -> None:
        kind = ResourceKind.GRIEVANCES
        self._mutate(
            kind,
            lambda: self.api.delete_grievance(grievance_id),
            "Grievance deleted successfully!",
            lambda _: remove_item(kind, grievance_id),
        )

    def upload_grievance_documents(self, grievance_id: str, files: Any) -> Any:
        kind = ResourceKind.GRIEVANCES
        return self._mutate(
            kind,
            lambda: self.api.upload_grievance_documents(grievance_id, files),
            "Documents uploaded successfully!",
            lambda body: update_item(kind, item) if (item := envelopes.grievance(body)) else None,
        )

    def add_grievance_comment(self, grievance_id: str, comment: str) -> Any:
        return self._mutate(
            ResourceKind.GRIEVANCES,
            lambda: self.api.add_grievance_comment(grievance_id, comment),
            "Comment added successfully!",
            lambda _: None,
        )

    def update_grievance_status(self, grievance_id: str, status: str, comment: str | None = None) -> dict[str, Any] | None:
        kind = ResourceKind.GRIEVANCES
        return self._mutate(
            kind,
            lambda: envelopes.grievance(self.api.update_grievance_status(grievance_id, status, comment)),
            "Grievance status updated successfully!",
            lambda item: update_item(kind, item) if item else None,
        )

    # -----------------------------------------------------------------
    # Catalog management (staff only)
    # -----------------------------------------------------------------

    def create_scheme(self, scheme_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.SCHEMES
        return self._mutate(
            kind,
            lambda: envelopes.scheme(self.api.create_scheme(scheme_data)),
            "Scheme created successfully!",
            lambda item: add_item(kind, item) if item else None,
        )

    def update_scheme(self, scheme_id: str, scheme_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.SCHEMES
        return self._mutate(
            kind,
            lambda: envelopes.scheme(self.api.update_scheme(scheme_id, scheme_data)),
            "Scheme updated successfully!",
            lambda item: update_item(kind, item) if item else None,
        )

    def delete_scheme(self, scheme_id: str) -> None:
        kind = ResourceKind.SCHEMES
        self._mutate(
            kind,
            lambda: self.api.delete_scheme(scheme_id),
            "Scheme deleted successfully!",
            lambda _: remove_item(kind, scheme_id),
        )

    def create_announcement(self, announcement_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.ANNOUNCEMENTS
        return self._mutate(
            kind,
            lambda: envelopes.announcement(self.api.create_announcement(announcement_data)),
            "Announcement created successfully!",
            lambda item: add_item(kind, item) if item else None,
        )

    def update_announcement(self, announcement_id: str, announcement_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.ANNOUNCEMENTS
        return self._mutate(
            kind,
            lambda: envelopes.announcement(self.api.update_announcement(announcement_id, announcement_data)),
            "Announcement updated successfully!",
            lambda item: update_item(kind, item) if item else None,
        )

    def delete_announcement(self, announcement_id: str) -> None:
        kind = ResourceKind.ANNOUNCEMENTS
        self._mutate(
            kind,
            lambda: self.api.delete_announcement(announcement_id),
            "Announcement deleted successfully!",
            lambda _: remove_item(kind, announcement_id),
        )

    def create_service(self, service_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.SERVICES
        return self._mutate(
            kind,
            lambda: envelopes.service(self.api.create_service(service_data)),
            "Service created successfully!",
            lambda item: add_item(kind, item) if item else None,
        )

    def update_service(self, service_id: str, service_data: dict[str, Any]) -> dict[str, Any] | None:
        kind = ResourceKind.SERVICES
        return self._mutate(
            kind,
            lambda: envelopes.service(self.api.update_service(service_id, service_data)),
            "Service updated successfully!",
            lambda item: update_item(kind, item) if item else None,
        )

    def delete_service(self, service_id: str) -> None:
        kind = ResourceKind.SERVICES
        self._mutate(
            kind,
            lambda: self.api.delete_service(service_id),
            "Service deleted successfully!",
            lambda _: remove_item(kind, service_id),
        )

    # -----------------------------------------------------------------
    # Dashboard
    # -----------------------------------------------------------------

    def _note_unreachable(self, error: ApiError) -> None:
        if is_connectivity_error(error):
            self.dispatch(set_degraded(True))

    def fetch_dashboard_stats(self) -> dict[str, int]:
        """
        Refresh the statistics summary.

        When the backend cannot supply it, the summary is computed from
        the collections already held by the store.
        """
        try:
            summary = coerce_stats(envelopes.stats(self.api.get_dashboard_stats()))
        except ApiError as error:
            logger.warning("Error fetching dashboard stats: %s", error.message)
            self._note_unreachable(error)
            summary = summarize(self._state.applications, self._state.grievances)
        self.dispatch(set_stats(summary))
        return summary

    def fetch_recent_activity(self) -> list[dict[str, Any]]:
        try:
            return envelopes.activity(self.api.get_recent_activity())
        except ApiError as error:
            logger.warning("Error fetching recent activity: %s", error.message)
            self._note_unreachable(error)
            return []

    def fetch_admin_stats(self) -> dict[str, Any]:
        """Return the admin overview, falling back to a locally computed summary."""
        try:
            return envelopes.stats(self.api.get_admin_stats())
        except ApiError as error:
            logger.warning("Error fetching admin stats: %s", error.message)
            self._note_unreachable(error)
            return summarize(self._state.applications, self._state.grievances)
