import pytest
from fastapi import HTTPException

from ecopeta.core.auth import get_current_admin, get_current_user
from ecopeta.core.security import verify_password
from ecopeta.models.user import User
from ecopeta.routes.auth import (
    delete_account,
    login,
    points_history,
    register,
    update_business,
    update_details,
    update_password,
    user_stats,
)
from ecopeta.routes.users import create_user, delete_user, list_roles, list_users, update_user
from ecopeta.schemas.user import (
    AccountDelete,
    AddressIn,
    AdminUserCreate,
    AdminUserUpdate,
    BusinessUpdate,
    PasswordUpdate,
    UserCreate,
    UserDetailsUpdate,
    UserLogin,
)

PASSWORD = "secret123"


def test_register_normalizes_email_and_returns_token(db_session):
    result = register(
        payload=UserCreate(
            name="Siti Aminah",
            email="  Siti@Example.COM ",
            password=PASSWORD,
            address=AddressIn(street="Jl. Riau 5", city="Bandung", coordinates=[107.61, -6.91]),
        ),
        db=db_session,
    )
    assert result["success"] is True
    assert result["user"].email == "siti@example.com"
    assert result["user"].role == "public"
    assert result["user"].address.coordinates == [107.61, -6.91]

    user = get_current_user(token=result["token"], db=db_session)
    assert user.email == "siti@example.com"

    with pytest.raises(HTTPException) as exc_info:
        register(payload=UserCreate(name="Lagi", email="siti@example.com", password=PASSWORD), db=db_session)
    assert exc_info.value.detail == "User with this email already exists"


@pytest.mark.parametrize(
    "fields,detail",
    [
        ({"role": "admin"}, "Invalid role"),
        ({"email": "not-an-email"}, "Please provide a valid email"),
        ({"password": "123"}, "Password must be at least 6 characters"),
    ],
)
def test_register_rejects_bad_input(db_session, fields, detail):
    data = {"name": "Budi", "email": "budi@example.com", "password": PASSWORD}
    data.update(fields)
    with pytest.raises(HTTPException) as exc_info:
        register(payload=UserCreate(**data), db=db_session)
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == detail


def test_login_checks_password_and_active_flag(db_session, make_user):
    user = make_user("mitra", email="mitra@example.com")

    result = login(credentials=UserLogin(email="MITRA@example.com", password=PASSWORD), db=db_session)
    assert result["user"].id == user.id
    assert result["user"].last_login is not None

    with pytest.raises(HTTPException) as exc_info:
        login(credentials=UserLogin(email="mitra@example.com", password="wrong-pass"), db=db_session)
    assert exc_info.value.status_code == 401

    user.is_active = False
    db_session.commit()
    with pytest.raises(HTTPException) as exc_info:
        login(credentials=UserLogin(email="mitra@example.com", password="wrong-pass"), db=db_session)
    assert exc_info.value.detail == "Invalid credentials"

    with pytest.raises(HTTPException) as exc_info:
        login(credentials=UserLogin(email="mitra@example.com", password=PASSWORD), db=db_session)
    assert exc_info.value.detail == "Your account has been deactivated"


def test_invalid_token_is_unauthorized(db_session):
    with pytest.raises(HTTPException) as exc_info:
        get_current_user(token="not-a-jwt", db=db_session)
    assert exc_info.value.status_code == 401


def test_profile_updates_never_touch_role(db_session, make_user):
    user = make_user("public")
    updated = update_details(
        payload=UserDetailsUpdate(name="Nama Baru", phone="0812"),
        db=db_session,
        current_user=user,
    )["data"]
    assert updated.name == "Nama Baru"
    assert updated.role == "public"

    with pytest.raises(HTTPException) as exc_info:
        update_business(payload=BusinessUpdate(business_name="CV Hijau"), db=db_session, current_user=user)
    assert exc_info.value.status_code == 403


def test_update_password_and_business(db_session, make_user):
    partner = make_user("mitra")
    with pytest.raises(HTTPException) as exc_info:
        update_password(
            payload=PasswordUpdate(currentPassword="bad-guess", newPassword="another1"),
            db=db_session,
            current_user=partner,
        )
    assert exc_info.value.status_code == 401

    update_password(
        payload=PasswordUpdate(currentPassword=PASSWORD, newPassword="another1"),
        db=db_session,
        current_user=partner,
    )
    assert verify_password("another1", partner.password)

    result = update_business(
        payload=BusinessUpdate(business_name="CV Hijau Lestari", business_type="Bank Sampah"),
        db=db_session,
        current_user=partner,
    )["data"]
    assert result.business_name == "CV Hijau Lestari"


def test_stats_and_points_history_start_empty(db_session, make_user):
    user = make_user("public")
    stats = user_stats(db=db_session, current_user=user)["data"]
    assert stats.total_pickups == 0
    assert stats.current_points == 0
    assert stats.badge == "bronze"

    history = points_history(page=1, limit=20, db=db_session, current_user=user)
    assert history["data"] == []
    assert history["total"] == 0


def test_delete_account_deactivates(db_session, make_user):
    user = make_user("public")
    with pytest.raises(HTTPException) as exc_info:
        delete_account(payload=AccountDelete(password="nope"), db=db_session, current_user=user)
    assert exc_info.value.status_code == 401

    delete_account(payload=AccountDelete(password=PASSWORD), db=db_session, current_user=user)
    db_session.expire_all()
    stored = db_session.get(User, user.id)
    assert stored.is_active is False
    assert stored.email == f"deleted_{user.id}@deleted.com"


def test_admin_dependency_rejects_other_roles(db_session, make_user):
    with pytest.raises(HTTPException) as exc_info:
        get_current_admin(current_user=make_user("mitra"))
    assert exc_info.value.status_code == 403


def test_admin_user_management(db_session, make_user):
    admin = make_user("admin")
    created = create_user(
        payload=AdminUserCreate(name="Mitra Baru", email="baru@example.com", password=PASSWORD, role="mitra"),
        db=db_session,
        current_user=admin,
    )["data"]
    assert created.role == "mitra"

    with pytest.raises(HTTPException) as exc_info:
        create_user(
            payload=AdminUserCreate(name="X", email="x@example.com", password=PASSWORD, role="superuser"),
            db=db_session,
            current_user=admin,
        )
    assert exc_info.value.detail == "Invalid role"

    listing = list_users(page=1, limit=10, db=db_session, current_user=admin)
    assert listing["total"] == 2
    assert {item["code"] for item in list_roles(current_user=admin)["data"]} == {"public", "mitra", "admin"}

    promoted = update_user(
        user_id=created.id,
        payload=AdminUserUpdate(role="admin"),
        db=db_session,
        current_user=admin,
    )["data"]
    assert promoted.role == "admin"

    delete_user(user_id=created.id, db=db_session, current_user=admin)
    with pytest.raises(HTTPException) as exc_info:
        update_user(user_id=created.id, payload=AdminUserUpdate(name="Hantu"), db=db_session, current_user=admin)
    assert exc_info.value.status_code == 404
    assert exc_info.value.detail == f"User not found with id {created.id}"


def test_admin_cannot_lock_themselves_out(db_session, make_user):
    admin = make_user("admin")
    with pytest.raises(HTTPException) as exc_info:
        update_user(user_id=admin.id, payload=AdminUserUpdate(role="public"), db=db_session, current_user=admin)
    assert exc_info.value.detail == "You cannot remove your own admin role"

    with pytest.raises(HTTPException) as exc_info:
        update_user(user_id=admin.id, payload=AdminUserUpdate(is_active=False), db=db_session, current_user=admin)
    assert exc_info.value.status_code == 400

    with pytest.raises(HTTPException) as exc_info:
        delete_user(user_id=admin.id, db=db_session, current_user=admin)
    assert exc_info.value.detail == "You cannot delete your own account"

    db_session.expire_all()
    assert db_session.get(User, admin.id).role == "admin"
