from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ecopeta.core.auth import get_current_admin
from ecopeta.core.roles import ROLE_DEFINITIONS, VALID_ROLES, normalize_role
from ecopeta.core.security import get_password_hash
from ecopeta.database.deps import get_db
from ecopeta.models.pickup import PickupRequest
from ecopeta.models.user import User
from ecopeta.routes.auth import is_valid_email, normalize_email
from ecopeta.schemas.common import build_pagination, envelope
from ecopeta.schemas.dashboard import AdminStatsOut
from ecopeta.schemas.user import AdminUserCreate, AdminUserUpdate
from ecopeta.services.serializers import build_user_out

router = APIRouter(prefix="/admin", tags=["Admin"])


def _month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail=f"User not found with id {user_id}")
    return user


@router.get("/stats")
def dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    start, end = _month_bounds(datetime.now(timezone.utc))
    total_users = db.query(func.count(User.id)).scalar() or 0
    total_mitra = db.query(func.count(User.id)).filter(User.role == "mitra").scalar() or 0
    completed_this_month = (
        db.query(func.count(PickupRequest.id))
        .filter(
            PickupRequest.status == "completed",
            PickupRequest.completed_at >= start,
            PickupRequest.completed_at < end,
        )
        .scalar()
        or 0
    )
    return envelope(AdminStatsOut(
        totalUsers=total_users,
        totalMitra=total_mitra,
        totalPickupsThisMonth=completed_this_month,
    ))


@router.get("/roles")
def list_roles(current_user: User = Depends(get_current_admin)):
    return envelope(ROLE_DEFINITIONS)


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    total = db.query(func.count(User.id)).scalar() or 0
    rows = (
        db.query(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return envelope(
        [build_user_out(row) for row in rows],
        count=len(rows),
        total=total,
        pagination=build_pagination(page, limit, total),
    )


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: AdminUserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    email = normalize_email(payload.email)
    role = normalize_role(payload.role)
    if not payload.name.strip() or not email or not payload.password or not role:
        raise HTTPException(status_code=400, detail="Please provide name, email, password, and role")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Please provide a valid email")
    if role not in VALID_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=400, detail="User with this email already exists")

    user = User(
        name=payload.name.strip(),
        email=email,
        password=get_password_hash(payload.password),
        role=role,
        is_active=payload.is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return envelope(build_user_out(user))


@router.get("/users/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    return envelope(build_user_out(_get_user_or_404(db, user_id)))


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="Please provide fields to update")

    user = _get_user_or_404(db, user_id)
    if "role" in data:
        role = normalize_role(data["role"])
        if role not in VALID_ROLES:
            raise HTTPException(status_code=400, detail="Invalid role")
        if current_user.id == user.id and role != "admin":
            raise HTTPException(status_code=400, detail="You cannot remove your own admin role")
        user.role = role
    if "is_active" in data and data["is_active"] is not None:
        if current_user.id == user.id and not data["is_active"]:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
        user.is_active = data["is_active"]
    if data.get("name"):
        user.name = data["name"].strip()

    db.commit()
    db.refresh(user)
    return envelope(build_user_out(user))


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    if current_user.id == user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = _get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
    return {"success": True, "message": "User deleted successfully"}
