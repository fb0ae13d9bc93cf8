import re
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ecopeta.core.auth import get_current_user
from ecopeta.core.roles import SELF_REGISTER_ROLES, normalize_role
from ecopeta.core.security import create_access_token, get_password_hash, verify_password
from ecopeta.database.deps import get_db
from ecopeta.models.pickup import PickupRequest
from ecopeta.models.points import PointsHistory
from ecopeta.models.review import Review
from ecopeta.models.user import User
from ecopeta.schemas.common import build_pagination, envelope
from ecopeta.schemas.user import (
    AccountDelete,
    AddressIn,
    BusinessUpdate,
    PasswordUpdate,
    PointsHistoryOut,
    UserCreate,
    UserDetailsUpdate,
    UserLogin,
    UserStatsOut,
)
from ecopeta.services.serializers import build_user_out
from ecopeta.services.uploads import build_upload_url, relative_from_url, remove_upload, save_avatar

router = APIRouter(prefix="/auth", tags=["Auth"])
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def is_valid_email(value: str) -> bool:
    if not value:
        return False
    return bool(EMAIL_PATTERN.match(value))


def normalize_email(value: str) -> str:
    return str(value or "").strip().lower()


def issue_token(user: User) -> str:
    return create_access_token({
        "sub": str(user.id),
        "role": user.role,
        "name": user.name,
        "email": user.email,
    })


def apply_address(user: User, address: AddressIn) -> None:
    data = address.model_dump(exclude_unset=True)
    for field in ("street", "city", "province", "postal_code"):
        if field in data:
            setattr(user, field, data[field])
    coordinates = data.get("coordinates")
    if coordinates and len(coordinates) == 2:
        user.longitude, user.latitude = float(coordinates[0]), float(coordinates[1])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    name = (payload.name or "").strip()
    email = normalize_email(payload.email)
    if not name or not email or not payload.password:
        raise HTTPException(status_code=400, detail="Please provide name, email and password")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Please provide a valid email")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    role = normalize_role(payload.role) or "public"
    if role not in SELF_REGISTER_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=400, detail="User with this email already exists")

    user = User(
        name=name,
        email=email,
        password=get_password_hash(payload.password),
        role=role,
        phone=payload.phone,
    )
    if payload.address:
        apply_address(user, payload.address)
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"success": True, "token": issue_token(user), "user": build_user_out(user)}


@router.post("/login")
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    email = normalize_email(credentials.email)
    if not email or not credentials.password:
        raise HTTPException(status_code=400, detail="Please provide email and password")

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(credentials.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Your account has been deactivated")

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return {"success": True, "token": issue_token(user), "user": build_user_out(user)}


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return envelope(build_user_out(current_user))


@router.get("/logout")
def logout(current_user: User = Depends(get_current_user)):
    return {"success": True, "message": "User logged out successfully"}


@router.put("/updatedetails")
def update_details(
    payload: UserDetailsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = payload.model_dump(exclude_unset=True)
    if "email" in data and data["email"] is not None:
        email = normalize_email(data["email"])
        if not is_valid_email(email):
            raise HTTPException(status_code=400, detail="Please provide a valid email")
        if email != current_user.email:
            taken = db.query(User).filter(User.email == email, User.id != current_user.id).first()
            if taken:
                raise HTTPException(status_code=400, detail="Email already in use")
        current_user.email = email

    for field in ("name", "phone", "avatar_url"):
        if field in data and data[field] is not None:
            setattr(current_user, field, data[field])
    if payload.address is not None:
        apply_address(current_user, payload.address)

    db.commit()
    db.refresh(current_user)
    return envelope(build_user_out(current_user))


@router.put("/updatepassword")
def update_password(
    payload: PasswordUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not payload.currentPassword or not payload.newPassword:
        raise HTTPException(status_code=400, detail="Please provide current and new password")
    if len(payload.newPassword) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="New password must be at least 6 characters")
    if not verify_password(payload.currentPassword, current_user.password):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    current_user.password = get_password_hash(payload.newPassword)
    db.commit()
    return {"success": True, "message": "Password updated successfully"}


@router.put("/updatebusiness")
def update_business(
    payload: BusinessUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role not in ("mitra", "admin"):
        raise HTTPException(status_code=403, detail="Only mitra can update business information")

    updates = {key: value for key, value in payload.model_dump().items() if value}
    if not updates:
        raise HTTPException(status_code=400, detail="Please provide business information to update")

    for field, value in updates.items():
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)
    return envelope(build_user_out(current_user))


@router.post("/upload-avatar")
def upload_avatar(
    avatar: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    previous = relative_from_url(current_user.avatar_url)
    relative_path = save_avatar(avatar, current_user.id)
    current_user.avatar_url = build_upload_url(relative_path)
    db.commit()
    db.refresh(current_user)
    if previous and previous != relative_path:
        remove_upload(previous)
    return envelope(build_user_out(current_user))


@router.get("/stats")
def user_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pickups = db.query(PickupRequest).filter(PickupRequest.user_id == current_user.id).all()
    reviews_count = db.query(func.count(Review.id)).filter(Review.user_id == current_user.id).scalar() or 0
    stats = UserStatsOut(
        total_pickups=len(pickups),
        completed_pickups=sum(1 for row in pickups if row.status == "completed"),
        pending_pickups=sum(1 for row in pickups if row.status == "pending"),
        total_weight_collected=sum(float(row.actual_total_weight or 0) for row in pickups),
        total_points_earned=sum(int(row.actual_points or 0) for row in pickups),
        total_reviews=reviews_count,
        current_points=current_user.points or 0,
        badge=current_user.badge,
        member_since=current_user.created_at,
    )
    return envelope(stats)


@router.get("/points-history")
def points_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(PointsHistory).filter(PointsHistory.user_id == current_user.id)
    total = query.count()
    rows = (
        query.order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return envelope(
        [PointsHistoryOut.model_validate(row) for row in rows],
        count=len(rows),
        total=total,
        pagination=build_pagination(page, limit, total),
    )


@router.delete("/delete-account")
def delete_account(
    payload: AccountDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not payload.password:
        raise HTTPException(status_code=400, detail="Please provide password to confirm")
    if not verify_password(payload.password, current_user.password):
        raise HTTPException(status_code=401, detail="Incorrect password")

    current_user.is_active = False
    current_user.email = f"deleted_{current_user.id}@deleted.com"
    db.commit()
    return {"success": True, "message": "Account deleted successfully"}
