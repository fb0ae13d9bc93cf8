from enum import Enum

from ecopeta.models.user import User

ROLE_DEFINITIONS = [
    {"code": "public", "label": "Public user"},
    {"code": "mitra", "label": "Partner (waste bank / hauler)"},
    {"code": "admin", "label": "Administrator"},
]
VALID_ROLES = {item["code"] for item in ROLE_DEFINITIONS}
SELF_REGISTER_ROLES = {"public", "mitra"}


class ViewVariant(str, Enum):
    PUBLIC_DASHBOARD = "public_dashboard"
    MITRA_DASHBOARD = "mitra_dashboard"
    ADMIN_DASHBOARD = "admin_dashboard"
    ANONYMOUS = "anonymous"


ROLE_VIEWS = {
    "public": ViewVariant.PUBLIC_DASHBOARD,
    "mitra": ViewVariant.MITRA_DASHBOARD,
    "admin": ViewVariant.ADMIN_DASHBOARD,
}


def normalize_role(raw_role: object) -> str:
    return str(raw_role or "").strip().lower()


def view_for_role(raw_role: object) -> ViewVariant:
    return ROLE_VIEWS.get(normalize_role(raw_role), ViewVariant.ANONYMOUS)


def has_role(user: User | None, *roles: str) -> bool:
    if not user:
        return False
    return normalize_role(getattr(user, "role", "")) in {normalize_role(role) for role in roles}


def is_admin(user: User | None) -> bool:
    return has_role(user, "admin")
