import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case
from sqlalchemy.orm import Query as OrmQuery, Session

from ecopeta.core.auth import get_current_user, require_roles
from ecopeta.core.pickup_lifecycle import (
    ACTIVE_STATUSES,
    INITIAL_STATUS,
    PICKUP_STATUSES,
    TIME_SLOTS,
    WASTE_UNITS,
    calculate_points,
    calculate_total_weight,
    can_cancel_pickup,
    can_update_pickup,
    round_points,
)
from ecopeta.core.roles import is_admin
from ecopeta.database.deps import get_db
from ecopeta.models.location import Location
from ecopeta.models.pickup import PickupRequest, PickupWasteItem
from ecopeta.models.points import PointsHistory
from ecopeta.models.user import User
from ecopeta.models.waste_category import WasteCategory
from ecopeta.schemas.common import build_pagination, envelope
from ecopeta.schemas.pickup import PickupCancel, PickupCreate, PickupStatsOut, PickupStatusUpdate
from ecopeta.services.notifications import send_notification
from ecopeta.services.serializers import build_pickup_out

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/pickups", tags=["Pickups"])

get_public_user = require_roles("public")
get_mitra_user = require_roles("mitra")

TIME_SLOT_ORDER = case(
    {slot: index for index, slot in enumerate(TIME_SLOTS)},
    value=PickupRequest.time_slot,
    else_=len(TIME_SLOTS),
)


def parse_status_list(value: Optional[str]) -> list[str]:
    if not value or value == "all":
        return []
    statuses = [item.strip().lower() for item in value.split(",") if item.strip()]
    invalid = [item for item in statuses if item not in PICKUP_STATUSES]
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid status: {', '.join(invalid)}")
    return statuses


def scoped_pickups(db: Session, user: User) -> OrmQuery:
    query = db.query(PickupRequest)
    if is_admin(user):
        return query
    if user.role == "mitra":
        return query.join(Location, PickupRequest.location_id == Location.id).filter(Location.owner_id == user.id)
    return query.filter(PickupRequest.user_id == user.id)


def get_pickup_or_404(db: Session, pickup_id: int) -> PickupRequest:
    pickup = db.query(PickupRequest).filter(PickupRequest.id == pickup_id).first()
    if not pickup:
        raise HTTPException(status_code=404, detail="Pickup request not found")
    return pickup


def award_points(db: Session, pickup: PickupRequest, points: int) -> None:
    """Credit ``points`` to the requester once per pickup."""
    if pickup.points_awarded:
        return
    user = db.query(User).filter(User.id == pickup.user_id).first()
    if user is not None:
        user.points = (user.points or 0) + points
    db.add(PointsHistory(
        user_id=pickup.user_id,
        points=points,
        type="earned",
        source="pickup",
        source_id=pickup.id,
        description="Penjemputan sampah selesai",
    ))
    pickup.points_awarded = True
    logger.info("Awarded %s points to user %s for pickup %s", points, pickup.user_id, pickup.id)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_pickup(
    payload: PickupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_public_user),
):
    if payload.time_slot not in TIME_SLOTS:
        raise HTTPException(status_code=400, detail=f"Invalid time slot: {payload.time_slot}")
    if not payload.waste_items:
        raise HTTPException(status_code=400, detail="At least one waste item is required")
    address = payload.pickup_address
    if not (address.street or "").strip() or not (address.city or "").strip():
        raise HTTPException(status_code=400, detail="Pickup address must include street and city")
    if payload.scheduled_date < date.today() + timedelta(days=1):
        raise HTTPException(status_code=400, detail="Scheduled date must be at least tomorrow")

    location = (
        db.query(Location)
        .filter(
            Location.id == payload.location_id,
            Location.status == "approved",
            Location.is_active.is_(True),
        )
        .first()
    )
    if not location:
        raise HTTPException(status_code=404, detail="Location not found or not available")
    if not location.pickup_service:
        raise HTTPException(status_code=400, detail="This location does not offer pickup service")

    category_ids = {item.category_id for item in payload.waste_items}
    categories = {
        row.id: row
        for row in db.query(WasteCategory)
        .filter(WasteCategory.id.in_(category_ids), WasteCategory.is_active.is_(True))
        .all()
    }

    priced_items = []
    for item in payload.waste_items:
        if item.estimated_weight is None or item.estimated_weight <= 0:
            raise HTTPException(status_code=400, detail="All waste items must have valid category and weight > 0")
        category = categories.get(item.category_id)
        if category is None:
            raise HTTPException(status_code=400, detail=f"Invalid category: {item.category_id}")
        if item.unit not in WASTE_UNITS:
            raise HTTPException(status_code=400, detail=f"Invalid unit: {item.unit}")
        priced_items.append({
            "category_id": category.id,
            "estimated_weight": item.estimated_weight,
            "unit": item.unit,
            "points_per_kg": category.points_per_kg,
        })

    pickup = PickupRequest(
        user_id=current_user.id,
        location_id=location.id,
        status=INITIAL_STATUS,
        scheduled_date=payload.scheduled_date,
        time_slot=payload.time_slot,
        pickup_street=address.street.strip(),
        pickup_city=address.city.strip(),
        pickup_province=address.province,
        pickup_latitude=address.latitude,
        pickup_longitude=address.longitude,
        pickup_notes=address.notes,
        user_notes=payload.user_notes,
        estimated_total_weight=calculate_total_weight(priced_items, "estimated_weight"),
        estimated_points=round_points(calculate_points(priced_items, "estimated_weight")),
        points_awarded=False,
    )
    pickup.waste_items = [
        PickupWasteItem(
            category_id=item["category_id"],
            estimated_weight=item["estimated_weight"],
            unit=item["unit"],
        )
        for item in priced_items
    ]
    db.add(pickup)
    db.commit()
    db.refresh(pickup)

    send_notification(
        location.owner_id,
        "Permintaan Penjemputan Baru",
        f"Permintaan penjemputan baru dari {current_user.name}",
        related_id=pickup.id,
    )
    send_notification(
        current_user.id,
        "Permintaan Penjemputan Dibuat",
        f"Permintaan penjemputan ke {location.name} berhasil dibuat",
        related_id=pickup.id,
    )
    return {
        "success": True,
        "message": "Pickup request created successfully",
        "data": build_pickup_out(pickup, current_user),
    }


@router.get("/")
def list_pickups(
    status_filter: Optional[str] = Query(None, alias="status"),
    date_filter: Optional[date] = Query(None, alias="date"),
    location_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = scoped_pickups(db, current_user)
    statuses = parse_status_list(status_filter)
    if statuses:
        query = query.filter(PickupRequest.status.in_(statuses))
    if date_filter:
        query = query.filter(PickupRequest.scheduled_date == date_filter)
    if location_id:
        query = query.filter(PickupRequest.location_id == location_id)

    rows = query.order_by(PickupRequest.created_at.desc(), PickupRequest.id.desc()).all()
    return envelope([build_pickup_out(row, current_user) for row in rows], count=len(rows))


@router.get("/my-pickups")
def my_pickups(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_public_user),
):
    query = db.query(PickupRequest).filter(PickupRequest.user_id == current_user.id)
    statuses = parse_status_list(status_filter)
    if statuses:
        query = query.filter(PickupRequest.status.in_(statuses))

    total = query.count()
    rows = (
        query.order_by(PickupRequest.created_at.desc(), PickupRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return envelope(
        [build_pickup_out(row, current_user) for row in rows],
        count=len(rows),
        total=total,
        pagination=build_pagination(page, limit, total),
    )


@router.get("/schedule")
def mitra_schedule(
    status_filter: Optional[str] = Query(",".join(ACTIVE_STATUSES), alias="status"),
    date_filter: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_mitra_user),
):
    statuses = parse_status_list(status_filter) or list(ACTIVE_STATUSES)
    query = (
        db.query(PickupRequest)
        .join(Location, PickupRequest.location_id == Location.id)
        .filter(Location.owner_id == current_user.id, PickupRequest.status.in_(statuses))
    )
    if date_filter:
        query = query.filter(PickupRequest.scheduled_date == date_filter)

    rows = query.order_by(PickupRequest.scheduled_date.asc(), TIME_SLOT_ORDER, PickupRequest.id.asc()).all()
    return envelope([build_pickup_out(row, current_user) for row in rows], count=len(rows))


@router.get("/stats")
def pickup_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = scoped_pickups(db, current_user).all()
    counts = {name: 0 for name in PICKUP_STATUSES}
    for row in rows:
        counts[row.status] = counts.get(row.status, 0) + 1
    stats = PickupStatsOut(
        total=len(rows),
        **counts,
        total_weight=sum(float(row.actual_total_weight or 0) for row in rows),
        total_points_earned=sum(int(row.actual_points or 0) for row in rows if row.points_awarded),
    )
    return envelope(stats)


@router.get("/{pickup_id}")
def get_pickup(
    pickup_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pickup = get_pickup_or_404(db, pickup_id)
    is_requester = pickup.user_id == current_user.id
    is_partner = pickup.location is not None and pickup.location.owner_id == current_user.id
    if not (is_requester or is_partner or is_admin(current_user)):
        raise HTTPException(status_code=403, detail="Not authorized to view this pickup")
    return envelope(build_pickup_out(pickup, current_user))


@router.put("/{pickup_id}/status")
def update_pickup_status(
    pickup_id: int,
    payload: PickupStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pickup = get_pickup_or_404(db, pickup_id)
    if pickup.location is None or pickup.location.owner_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to update this pickup")

    new_status = (payload.status or "").strip().lower()
    if new_status == "cancelled":
        raise HTTPException(status_code=403, detail="Only the requester can cancel this pickup")
    if not can_update_pickup(pickup.status, new_status):
        raise HTTPException(status_code=400, detail=f"Cannot change status from {pickup.status} to {new_status}")

    now = datetime.now(timezone.utc)
    if payload.driver_notes is not None:
        pickup.driver_notes = payload.driver_notes

    if new_status == "completed":
        if not payload.actual_weight_items:
            raise HTTPException(status_code=400, detail="Please provide actual weight for completion")
        items_by_category = {item.category_id: item for item in pickup.waste_items}
        weights = {}
        for entry in payload.actual_weight_items:
            if entry.category_id not in items_by_category:
                raise HTTPException(status_code=400, detail=f"Invalid category: {entry.category_id}")
            if entry.category_id in weights:
                raise HTTPException(status_code=400, detail=f"Duplicate actual weight for category {entry.category_id}")
            weights[entry.category_id] = entry.actual_weight
        missing = [category_id for category_id in items_by_category if category_id not in weights]
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing actual weight for category {missing[0]}")

        weighed = []
        for item in pickup.waste_items:
            item.actual_weight = weights[item.category_id]
            weighed.append({
                "actual_weight": item.actual_weight,
                "points_per_kg": item.category.points_per_kg if item.category else 0,
            })
        points = round_points(calculate_points(weighed))
        pickup.actual_total_weight = calculate_total_weight(weighed)
        pickup.actual_points = points
        pickup.completed_at = now
        pickup.after_photos = payload.photos or []
        award_points(db, pickup, points)
        message = f"Penjemputan selesai! Anda mendapatkan {points} poin"
    else:
        message = f"Status penjemputan Anda telah diubah menjadi: {new_status}"

    pickup.status = new_status
    db.commit()
    db.refresh(pickup)
    send_notification(pickup.user_id, "Status Penjemputan Diupdate", message, related_id=pickup.id)
    return envelope(build_pickup_out(pickup, current_user))


@router.put("/{pickup_id}/cancel")
def cancel_pickup(
    pickup_id: int,
    payload: Optional[PickupCancel] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pickup = get_pickup_or_404(db, pickup_id)
    if pickup.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to cancel this pickup")
    if not can_cancel_pickup(pickup.status):
        raise HTTPException(status_code=400, detail="Cannot cancel pickup at this stage")

    reason = (payload.reason if payload else None) or "Cancelled by user"
    pickup.status = "cancelled"
    pickup.cancelled_at = datetime.now(timezone.utc)
    pickup.cancellation_reason = reason
    db.commit()
    db.refresh(pickup)
    if pickup.location is not None:
        send_notification(
            pickup.location.owner_id,
            "Penjemputan Dibatalkan",
            f"Permintaan penjemputan #{pickup.id} dibatalkan oleh pengguna: {reason}",
            related_id=pickup.id,
        )
    return envelope(build_pickup_out(pickup, current_user))
