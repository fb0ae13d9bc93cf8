LOCATION_TYPES = ("bank_sampah", "jasa_angkut")
LOCATION_STATUSES = ("pending", "approved", "rejected", "suspended")
INITIAL_LOCATION_STATUS = "pending"

MODERATION_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"approved", "rejected"}),
    "approved": frozenset(),
    "rejected": frozenset(),
    "suspended": frozenset(),
}

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def can_moderate_location(current_status: str, new_status: str) -> bool:
    current = str(current_status or "").strip().lower()
    proposed = str(new_status or "").strip().lower()
    return proposed in MODERATION_TRANSITIONS.get(current, frozenset())


def validate_rejection_reason(reason: object) -> str:
    cleaned = str(reason or "").strip()
    if not cleaned:
        raise ValueError("Please provide rejection reason")
    return cleaned


def default_operating_hours() -> dict[str, dict]:
    return {
        day: {"open": "08:00", "close": "17:00", "is_closed": day == "sunday"}
        for day in WEEKDAYS
    }


def normalize_operating_hours(raw_hours: object) -> dict[str, dict] | None:
    if raw_hours is None:
        return None
    if not isinstance(raw_hours, dict):
        raise ValueError("Operating hours must be an object keyed by weekday")

    result: dict[str, dict] = {}
    for day in WEEKDAYS:
        entry = raw_hours.get(day)
        if entry is None:
            continue
        if not isinstance(entry, dict):
            raise ValueError(f"Invalid operating hours for {day}")
        is_closed = bool(entry.get("is_closed", entry.get("isClosed", False)))
        result[day] = {
            "open": str(entry.get("open") or ""),
            "close": str(entry.get("close") or ""),
            "is_closed": is_closed,
        }
    unknown = set(raw_hours.keys()) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown weekday in operating hours: {', '.join(sorted(unknown))}")
    return result
