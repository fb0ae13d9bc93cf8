"""Pickup request lifecycle.

Statuses move forward along pending -> accepted -> scheduled -> in_progress ->
completed. ``completed`` and ``cancelled`` are terminal. These tables back both
the server-side validation in ``routes.pickups`` and the affordances offered
by the client views.
"""
import math
from typing import Iterable, Mapping

PICKUP_STATUSES = ("pending", "accepted", "scheduled", "in_progress", "completed", "cancelled")
INITIAL_STATUS = "pending"
TERMINAL_STATUSES = frozenset({"completed", "cancelled"})
ACTIVE_STATUSES = ("pending", "accepted", "scheduled", "in_progress")

VALID_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"accepted", "cancelled"}),
    "accepted": frozenset({"scheduled", "cancelled"}),
    "scheduled": frozenset({"in_progress", "cancelled"}),
    "in_progress": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

# Requester self-service cancellation stops once the partner is on the way.
CANCELLABLE_STATUSES = frozenset({"pending", "accepted", "scheduled"})

STATUS_LABELS = {
    "pending": "Menunggu Konfirmasi",
    "accepted": "Diterima Mitra",
    "scheduled": "Dijadwalkan",
    "in_progress": "Dalam Perjalanan",
    "completed": "Selesai",
    "cancelled": "Dibatalkan",
}

STATUS_COLORS = {
    "pending": "bg-yellow-100 text-yellow-800 border-yellow-300",
    "accepted": "bg-blue-100 text-blue-800 border-blue-300",
    "scheduled": "bg-blue-100 text-blue-800 border-blue-300",
    "in_progress": "bg-indigo-100 text-indigo-800 border-indigo-300",
    "completed": "bg-green-100 text-green-800 border-green-300",
    "cancelled": "bg-red-100 text-red-800 border-red-300",
}

TIME_SLOTS = ("morning", "afternoon", "evening")
TIME_SLOT_LABELS = {
    "morning": "Pagi (08:00 - 12:00)",
    "afternoon": "Siang (12:00 - 16:00)",
    "evening": "Sore (16:00 - 18:00)",
}

WASTE_UNITS = ("kg", "pcs", "liter")


def _key(value: object) -> str:
    return str(value or "").strip().lower()


def pickup_status_label(status: str) -> str:
    return STATUS_LABELS.get(_key(status), "")


def pickup_status_color(status: str) -> str:
    return STATUS_COLORS.get(_key(status), "")


def time_slot_label(slot: str) -> str:
    return TIME_SLOT_LABELS.get(_key(slot), "")


def next_statuses(status: str) -> frozenset[str]:
    return VALID_TRANSITIONS.get(_key(status), frozenset())


def can_update_pickup(current_status: str, new_status: str) -> bool:
    """Whether ``current_status -> new_status`` is in the transition table.

    Unknown statuses are never an error, they are simply not permitted.
    Moves into ``cancelled`` also require ``can_cancel_pickup``.
    """
    proposed = _key(new_status)
    if proposed == "cancelled" and not can_cancel_pickup(current_status):
        return False
    return proposed in next_statuses(current_status)


def partner_next_statuses(status: str) -> list[str]:
    """Forward steps the owning partner may take. Cancelling is the requester's call."""
    return [
        candidate
        for candidate in PICKUP_STATUSES
        if candidate != "cancelled" and can_update_pickup(status, candidate)
    ]


def can_cancel_pickup(status: str) -> bool:
    return _key(status) in CANCELLABLE_STATUSES


def is_terminal(status: str) -> bool:
    return _key(status) in TERMINAL_STATUSES


def round_points(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def calculate_points(items: Iterable[Mapping[str, object]], weight_key: str = "actual_weight") -> float:
    """Sum of ``weight * points_per_kg`` over the given waste items.

    Each item must provide ``points_per_kg`` and the weight under ``weight_key``.
    Items without a weight contribute nothing.
    """
    total = 0.0
    for item in items:
        weight = item.get(weight_key)
        rate = item.get("points_per_kg")
        if weight is None or rate is None:
            continue
        total += float(weight) * float(rate)
    return total


def calculate_total_weight(items: Iterable[Mapping[str, object]], weight_key: str = "actual_weight") -> float:
    return sum(float(item.get(weight_key) or 0) for item in items)
