from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecopeta.core.auth import require_roles
from ecopeta.core.pickup_lifecycle import ACTIVE_STATUSES
from ecopeta.database.deps import get_db
from ecopeta.models.location import Location
from ecopeta.models.pickup import PickupRequest
from ecopeta.models.user import User
from ecopeta.schemas.common import envelope
from ecopeta.schemas.dashboard import (
    MitraLocationCounts,
    MitraOverviewOut,
    MitraPerformance,
    MitraPickupCounts,
)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

get_mitra_user = require_roles("mitra")


def weighted_average_rating(locations: list[Location]) -> float:
    rating_sum = 0.0
    rating_count = 0
    for location in locations:
        if location.rating and location.total_reviews:
            rating_sum += float(location.rating) * location.total_reviews
            rating_count += location.total_reviews
    return rating_sum / rating_count if rating_count else 0.0


@router.get("/overview")
def mitra_overview(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_mitra_user),
):
    locations = db.query(Location).filter(Location.owner_id == current_user.id).all()
    location_ids = [location.id for location in locations]

    pickups: list[PickupRequest] = []
    if location_ids:
        pickups = db.query(PickupRequest).filter(PickupRequest.location_id.in_(location_ids)).all()

    today = date.today()
    completed = [row for row in pickups if row.status == "completed"]
    weighed = [row for row in completed if row.actual_total_weight is not None]

    overview = MitraOverviewOut(
        locations=MitraLocationCounts(
            total=len(locations),
            active=sum(1 for row in locations if row.status == "approved" and row.is_active),
            verified=sum(1 for row in locations if row.verified),
            pending=sum(1 for row in locations if row.status == "pending"),
        ),
        pickups=MitraPickupCounts(
            total=len(pickups),
            pending=sum(1 for row in pickups if row.status == "pending"),
            today=sum(1 for row in pickups if row.scheduled_date == today and row.status in ACTIVE_STATUSES),
            completed=len(completed),
        ),
        performance=MitraPerformance(
            totalWasteCollected=round(sum(float(row.actual_total_weight) for row in weighed), 2),
            averageRating=round(weighted_average_rating(locations), 2),
            totalTransactions=len(weighed),
        ),
    )
    return envelope(overview)
