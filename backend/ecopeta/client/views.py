"""Role-scoped dashboard views.

Each role gets one view object. Local rule checks run before any request and
raise ``ValidationError``. Backend failures are turned into a ``Notice`` and
the action returns ``None``, leaving previously loaded state untouched.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ecopeta.client.api import ApiError
from ecopeta.client.session import SessionContext
from ecopeta.core.location_moderation import can_moderate_location, validate_rejection_reason
from ecopeta.core.pickup_lifecycle import can_cancel_pickup, can_update_pickup
from ecopeta.core.review_moderation import (
    can_moderate_review,
    validate_comment,
    validate_rating,
    validate_response,
)
from ecopeta.core.roles import ViewVariant, view_for_role

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    pass


@dataclass
class Notice:
    level: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    def __init__(self, limit: int = 20):
        self.limit = limit
        self.notices: list[Notice] = []

    def notify(self, level: str, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        self.notices.append(notice)
        del self.notices[:-self.limit]
        log = logger.error if level == "error" else logger.info
        log("%s", message)
        return notice

    def error(self, message: str) -> Notice:
        return self.notify("error", message)

    def success(self, message: str) -> Notice:
        return self.notify("success", message)

    @property
    def latest(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None

    def clear(self) -> None:
        self.notices.clear()


def _checked(check: Callable[..., Any], *args: Any) -> Any:
    try:
        return check(*args)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


class BaseDashboard:
    variant = ViewVariant.ANONYMOUS

    def __init__(self, session: SessionContext, notifier: Optional[Notifier] = None):
        self.session = session
        self.notifier = notifier or Notifier()

    @property
    def api(self):
        return self.session.api

    def _call(self, failure_message: str, action: Callable[[], Any], success_message: Optional[str] = None):
        try:
            result = action()
        except ApiError as exc:
            self.notifier.error(f"{failure_message}: {exc.message}")
            return None
        if success_message:
            self.notifier.success(success_message)
        return result

    def _data(self, failure_message: str, action: Callable[[], Any], success_message: Optional[str] = None):
        payload = self._call(failure_message, action, success_message)
        if payload is None:
            return None
        return payload.get("data")


class PublicDashboard(BaseDashboard):
    variant = ViewVariant.PUBLIC_DASHBOARD

    def __init__(self, session: SessionContext, notifier: Optional[Notifier] = None):
        super().__init__(session, notifier)
        self.pickups: list[dict] = []

    def load_pickups(self, status: Optional[str] = None, page: int = 1, limit: int = 100):
        params = {"page": page, "limit": limit}
        if status and status != "all":
            params["status"] = status
        rows = self._data("Failed to load pickups", lambda: self.api.get("/pickups/my-pickups", params=params))
        if rows is not None:
            self.pickups = rows
        return rows

    def load_locations(self, **filters: Any):
        return self._data("Failed to load locations", lambda: self.api.get("/locations/", params=filters or None))

    def load_points_history(self, page: int = 1, limit: int = 20):
        params = {"page": page, "limit": limit}
        return self._data("Failed to load points history", lambda: self.api.get("/auth/points-history", params=params))

    def cancel_pickup(self, pickup: dict, reason: Optional[str] = None):
        if not can_cancel_pickup(pickup.get("status")):
            raise ValidationError(f"Pickup cannot be cancelled while {pickup.get('status')}")
        body = {"reason": reason} if reason else {}
        updated = self._data(
            "Failed to cancel pickup",
            lambda: self.api.put(f"/pickups/{pickup['id']}/cancel", json=body),
            "Pickup cancelled",
        )
        if updated is not None:
            self.pickups = [updated if row.get("id") == updated.get("id") else row for row in self.pickups]
        return updated

    def load_reviews(self):
        return self._data("Failed to load reviews", lambda: self.api.get("/reviews/"))

    def create_review(
        self,
        location_id: int,
        rating: int,
        comment: str,
        title: Optional[str] = None,
        pickup_id: Optional[int] = None,
    ):
        body = {
            "rating": _checked(validate_rating, rating),
            "comment": _checked(validate_comment, comment),
            "title": title,
            "pickup_id": pickup_id,
        }
        return self._data(
            "Failed to submit review",
            lambda: self.api.post(f"/locations/{location_id}/reviews/", json=body),
            "Review submitted",
        )


class MitraDashboard(BaseDashboard):
    variant = ViewVariant.MITRA_DASHBOARD

    def __init__(self, session: SessionContext, notifier: Optional[Notifier] = None):
        super().__init__(session, notifier)
        self.schedule: list[dict] = []

    def load_overview(self):
        return self._data("Failed to load overview", lambda: self.api.get("/dashboard/overview"))

    def load_locations(self, status: Optional[str] = None):
        params = {"status": status} if status else None
        return self._data("Failed to load locations", lambda: self.api.get("/locations/dashboard", params=params))

    def load_schedule(self, date: Optional[str] = None, status: Optional[str] = None):
        params = {}
        if date:
            params["date"] = date
        if status:
            params["status"] = status
        rows = self._data("Failed to load schedule", lambda: self.api.get("/pickups/schedule", params=params or None))
        if rows is not None:
            self.schedule = rows
        return rows

    def advance_pickup(
        self,
        pickup: dict,
        new_status: str,
        driver_notes: Optional[str] = None,
        actual_weight_items: Optional[list[dict]] = None,
        photos: Optional[list[str]] = None,
    ):
        if new_status == "cancelled":
            raise ValidationError("Only the requester can cancel a pickup")
        if not can_update_pickup(pickup.get("status"), new_status):
            raise ValidationError(f"Cannot change status from {pickup.get('status')} to {new_status}")
        if new_status == "completed" and not actual_weight_items:
            raise ValidationError("Please provide actual weight for completion")

        body: dict[str, Any] = {"status": new_status}
        if driver_notes:
            body["driver_notes"] = driver_notes
        if actual_weight_items:
            body["actual_weight_items"] = actual_weight_items
        if photos:
            body["photos"] = photos
        updated = self._data(
            "Failed to update pickup status",
            lambda: self.api.put(f"/pickups/{pickup['id']}/status", json=body),
            "Pickup status updated",
        )
        if updated is not None:
            self.schedule = [updated if row.get("id") == updated.get("id") else row for row in self.schedule]
        return updated

    def load_reviews(self):
        return self._data("Failed to load reviews", lambda: self.api.get("/reviews/"))

    def respond_to_review(self, review_id: int, response: str):
        body = {"response": _checked(validate_response, response)}
        return self._data(
            "Failed to send response",
            lambda: self.api.put(f"/reviews/{review_id}/response", json=body),
            "Response sent",
        )


class AdminDashboard(BaseDashboard):
    variant = ViewVariant.ADMIN_DASHBOARD

    def __init__(self, session: SessionContext, notifier: Optional[Notifier] = None):
        super().__init__(session, notifier)
        self.locations: list[dict] = []

    def load_stats(self):
        return self._data("Failed to load statistics", lambda: self.api.get("/admin/stats"))

    def load_location_stats(self):
        return self._data("Failed to load location statistics", lambda: self.api.get("/locations/admin/stats"))

    def load_locations(self, status: Optional[str] = None, type: Optional[str] = None):
        params = {}
        if status:
            params["status"] = status
        if type:
            params["type"] = type
        rows = self._data(
            "Failed to load locations",
            lambda: self.api.get("/locations/dashboard", params=params or None),
        )
        if rows is not None:
            self.locations = rows
        return rows

    def _replace_location(self, updated: Optional[dict]) -> None:
        if updated is None:
            return
        self.locations = [updated if row.get("id") == updated.get("id") else row for row in self.locations]

    def approve_location(self, location: dict):
        if not can_moderate_location(location.get("status"), "approved"):
            raise ValidationError(f"Cannot approve a location that is {location.get('status')}")
        updated = self._data(
            "Failed to approve location",
            lambda: self.api.put(f"/locations/{location['id']}/approve"),
            "Location approved",
        )
        self._replace_location(updated)
        return updated

    def reject_location(self, location: dict, reason: Optional[str]):
        cleaned = _checked(validate_rejection_reason, reason)
        if not can_moderate_location(location.get("status"), "rejected"):
            raise ValidationError(f"Cannot reject a location that is {location.get('status')}")
        updated = self._data(
            "Failed to reject location",
            lambda: self.api.put(f"/locations/{location['id']}/reject", json={"reason": cleaned}),
            "Location rejected",
        )
        self._replace_location(updated)
        return updated

    def load_pending_reviews(self):
        return self._data("Failed to load reviews", lambda: self.api.get("/reviews/moderate/pending"))

    def moderate_review(self, review_id: int, status: str, moderation_note: Optional[str] = None):
        if not can_moderate_review(status):
            raise ValidationError("Please provide valid status (active/hidden)")
        body = {"status": status, "moderation_note": moderation_note}
        return self._data(
            "Failed to moderate review",
            lambda: self.api.put(f"/reviews/{review_id}/moderate", json=body),
            "Review moderated",
        )

    def delete_review(self, review_id: int):
        return self._call(
            "Failed to delete review",
            lambda: self.api.delete(f"/reviews/{review_id}"),
            "Review deleted",
        )

    def load_users(self, page: int = 1, limit: int = 10):
        params = {"page": page, "limit": limit}
        return self._data("Failed to load users", lambda: self.api.get("/admin/users", params=params))

    def load_pickups(self, status: Optional[str] = None):
        params = {"status": status} if status else None
        return self._data("Failed to load pickups", lambda: self.api.get("/pickups/", params=params))


DASHBOARDS = {
    ViewVariant.PUBLIC_DASHBOARD: PublicDashboard,
    ViewVariant.MITRA_DASHBOARD: MitraDashboard,
    ViewVariant.ADMIN_DASHBOARD: AdminDashboard,
}


def dashboard_for_role(session: SessionContext, notifier: Optional[Notifier] = None) -> Optional[BaseDashboard]:
    """The dashboard matching the signed-in user's role, or ``None``."""
    if not session.is_authenticated:
        return None
    view_class = DASHBOARDS.get(view_for_role(session.role))
    if view_class is None:
        return None
    return view_class(session, notifier)
