import math
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ecopeta.core.auth import get_current_admin, get_current_user, get_optional_user, require_roles
from ecopeta.core.location_moderation import (
    INITIAL_LOCATION_STATUS,
    LOCATION_STATUSES,
    LOCATION_TYPES,
    can_moderate_location,
    default_operating_hours,
    normalize_operating_hours,
    validate_rejection_reason,
)
from ecopeta.core.review_moderation import publicly_visible_clause
from ecopeta.core.roles import is_admin
from ecopeta.database.deps import get_db
from ecopeta.models.location import Location
from ecopeta.models.review import Review
from ecopeta.models.user import User
from ecopeta.models.waste_category import WasteCategory
from ecopeta.schemas.common import build_pagination, envelope
from ecopeta.schemas.dashboard import LocationStatsOut
from ecopeta.schemas.location import (
    LocationCreate,
    LocationDetailOut,
    LocationReject,
    LocationReviewOut,
    LocationUpdate,
)
from ecopeta.schemas.waste_category import WasteCategoryOut
from ecopeta.services.serializers import build_location_out, build_user_summary

router = APIRouter(prefix="/locations", tags=["Locations"])

EARTH_RADIUS_KM = 6371.0
SORTABLE_FIELDS = {
    "rating": Location.rating,
    "total_reviews": Location.total_reviews,
    "created_at": Location.created_at,
    "name": Location.name,
    "city": Location.city,
}
LOCATION_EDITABLE_FIELDS = (
    "name",
    "description",
    "type",
    "phone",
    "email",
    "website",
    "street",
    "city",
    "province",
    "postal_code",
    "latitude",
    "longitude",
    "accepted_waste_types",
    "pickup_service",
    "dropoff_service",
    "price_list",
    "images",
)
REQUIRED_CREATE_FIELDS = ("name", "type", "street", "city", "latitude", "longitude")

get_location_manager = require_roles("mitra", "admin")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def parse_sort(sort: Optional[str]):
    raw = (sort or "-rating").strip()
    descending = raw.startswith("-")
    field = raw.lstrip("-")
    column = SORTABLE_FIELDS.get(field)
    if column is None:
        raise HTTPException(status_code=400, detail=f"Invalid sort field: {field}")
    return column.desc() if descending else column.asc()


def get_location_or_404(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


def _validate_type(value: Optional[str]) -> None:
    if value is not None and value not in LOCATION_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid location type: {value}")


def _clean_hours(raw_hours):
    try:
        return normalize_operating_hours(raw_hours)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/")
def list_locations(
    type: Optional[str] = None,
    city: Optional[str] = None,
    province: Optional[str] = None,
    verified: Optional[bool] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: float = 10,
    sort: str = "-rating",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(Location).filter(Location.status == "approved")
    if type:
        query = query.filter(Location.type == type)
    if city:
        query = query.filter(Location.city.ilike(f"%{city}%"))
    if province:
        query = query.filter(Location.province.ilike(f"%{province}%"))
    if verified:
        query = query.filter(Location.verified.is_(True))

    total = query.count()
    rows = (
        query.order_by(parse_sort(sort), Location.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    data = []
    for row in rows:
        distance = None
        if lat is not None and lng is not None:
            computed = round(haversine_km(lat, lng, row.latitude, row.longitude), 2)
            distance = computed if computed <= radius else None
        data.append(build_location_out(row, distance_km=distance))

    return envelope(
        data,
        count=len(data),
        total=total,
        pagination=build_pagination(page, limit, total),
    )


@router.get("/dashboard")
def dashboard_locations(
    status_filter: Optional[str] = Query(None, alias="status"),
    type: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role == "admin":
        query = db.query(Location)
    elif current_user.role == "mitra":
        query = db.query(Location).filter(Location.owner_id == current_user.id)
    else:
        return envelope([], count=0, total=0)

    if status_filter and status_filter != "all":
        query = query.filter(Location.status == status_filter)
    if type and type != "all":
        query = query.filter(Location.type == type)

    rows = query.order_by(Location.created_at.desc(), Location.id.desc()).all()
    return envelope([build_location_out(row) for row in rows], count=len(rows), total=len(rows))


@router.get("/admin/stats")
def location_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    by_status = {name: 0 for name in LOCATION_STATUSES}
    for value, count in db.query(Location.status, func.count(Location.id)).group_by(Location.status).all():
        by_status[value] = count
    by_status["total"] = sum(by_status.values())

    by_type = {name: 0 for name in LOCATION_TYPES}
    for value, count in db.query(Location.type, func.count(Location.id)).group_by(Location.type).all():
        by_type[value] = count

    top_rated = (
        db.query(Location)
        .filter(Location.status == "approved")
        .order_by(Location.rating.desc(), Location.total_reviews.desc())
        .limit(5)
        .all()
    )
    return envelope(LocationStatsOut(
        byStatus=by_status,
        byType=by_type,
        topRated=[
            {"id": row.id, "name": row.name, "rating": row.rating, "total_reviews": row.total_reviews}
            for row in top_rated
        ],
    ))


@router.get("/{location_id}")
def get_location(
    location_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    location = get_location_or_404(db, location_id)
    if location.status != "approved":
        is_owner = current_user is not None and location.owner_id == current_user.id
        if not (is_owner or is_admin(current_user)):
            raise HTTPException(status_code=404, detail="Location not found")

    reviews = (
        db.query(Review)
        .filter(Review.location_id == location.id, publicly_visible_clause(Review.status, Review.flagged_count))
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(10)
        .all()
    )
    categories = []
    if location.accepted_waste_types:
        categories = (
            db.query(WasteCategory)
            .filter(
                WasteCategory.id.in_(location.accepted_waste_types),
                WasteCategory.is_active.is_(True),
            )
            .all()
        )

    base = build_location_out(location)
    detail = LocationDetailOut(
        **base.model_dump(),
        reviews=[
            LocationReviewOut(
                id=review.id,
                rating=review.rating,
                title=review.title,
                comment=review.comment,
                photos=review.photos or [],
                helpful_count=review.helpful_count or 0,
                created_at=review.created_at,
                user=build_user_summary(review.user),
            )
            for review in reviews
        ],
        accepted_categories=[WasteCategoryOut.model_validate(row) for row in categories],
    )
    return envelope(detail)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_location(
    payload: LocationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_location_manager),
):
    data = payload.model_dump(exclude_unset=True)
    for field in REQUIRED_CREATE_FIELDS:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise HTTPException(status_code=400, detail="Please provide all required fields")
    _validate_type(data["type"])

    location = Location(
        owner_id=current_user.id,
        status=INITIAL_LOCATION_STATUS,
        verified=False,
        operating_hours=_clean_hours(data.get("operating_hours")) or default_operating_hours(),
    )
    for field in LOCATION_EDITABLE_FIELDS:
        if field in data and data[field] is not None:
            setattr(location, field, data[field])

    db.add(location)
    db.commit()
    db.refresh(location)
    return envelope(build_location_out(location))


@router.put("/{location_id}")
def update_location(
    location_id: int,
    payload: LocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    location = get_location_or_404(db, location_id)
    admin = is_admin(current_user)
    if location.owner_id != current_user.id and not admin:
        raise HTTPException(status_code=403, detail="Not authorized to update this location")

    data = payload.model_dump(exclude_unset=True)
    _validate_type(data.get("type"))
    new_status = data.get("status") if admin else None
    reason = None
    if new_status is not None:
        if new_status not in LOCATION_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid location status: {new_status}")
        if new_status == "rejected":
            try:
                reason = validate_rejection_reason(data.get("rejection_reason"))
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc

    for field in LOCATION_EDITABLE_FIELDS:
        if field in data and data[field] is not None:
            setattr(location, field, data[field])
    if "operating_hours" in data:
        location.operating_hours = _clean_hours(data["operating_hours"])

    if admin:
        if new_status is not None:
            location.status = new_status
            location.rejection_reason = reason
            if new_status == "approved":
                location.verified = True
                location.verification_date = datetime.now(timezone.utc)
            elif new_status == "rejected":
                location.verified = False
        if data.get("verified") is not None:
            location.verified = data["verified"]
            if location.verified and location.verification_date is None:
                location.verification_date = datetime.now(timezone.utc)
    else:
        location.status = INITIAL_LOCATION_STATUS
        location.verified = False

    db.commit()
    db.refresh(location)
    return envelope(build_location_out(location))


@router.delete("/{location_id}")
def delete_location(
    location_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    location = get_location_or_404(db, location_id)
    if location.owner_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Not authorized to delete this location")
    db.delete(location)
    db.commit()
    return envelope({})


@router.put("/{location_id}/approve")
def approve_location(
    location_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    location = get_location_or_404(db, location_id)
    if not can_moderate_location(location.status, "approved"):
        raise HTTPException(status_code=400, detail=f"Cannot approve a location that is {location.status}")

    location.status = "approved"
    location.verified = True
    location.verification_date = datetime.now(timezone.utc)
    location.rejection_reason = None
    db.commit()
    db.refresh(location)
    return envelope(build_location_out(location))


@router.put("/{location_id}/reject")
def reject_location(
    location_id: int,
    payload: LocationReject,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    try:
        reason = validate_rejection_reason(payload.reason)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    location = get_location_or_404(db, location_id)
    if not can_moderate_location(location.status, "rejected"):
        raise HTTPException(status_code=400, detail=f"Cannot reject a location that is {location.status}")

    location.status = "rejected"
    location.verified = False
    location.rejection_reason = reason
    db.commit()
    db.refresh(location)
    return envelope(build_location_out(location))
