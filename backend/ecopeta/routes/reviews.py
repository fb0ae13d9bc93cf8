from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Query as OrmQuery, Session

from ecopeta.core.auth import get_current_admin, get_current_user, get_optional_user
from ecopeta.core.review_moderation import (
    INITIAL_REVIEW_STATUS,
    can_moderate_review,
    needs_moderation_clause,
    publicly_visible_clause,
    status_after_flag,
    validate_comment,
    validate_rating,
    validate_response,
)
from ecopeta.core.roles import is_admin
from ecopeta.database.deps import get_db
from ecopeta.models.location import Location
from ecopeta.models.pickup import PickupRequest
from ecopeta.models.review import Review, ReviewHelpful
from ecopeta.models.user import User
from ecopeta.schemas.common import build_pagination, envelope
from ecopeta.schemas.review import (
    HelpfulOut,
    ReviewCreate,
    ReviewModerate,
    ReviewResponseIn,
    ReviewUpdate,
)
from ecopeta.services.serializers import build_review_out

router = APIRouter(prefix="/reviews", tags=["Reviews"])
location_reviews_router = APIRouter(prefix="/locations/{location_id}/reviews", tags=["Reviews"])

SORT_ALIASES = {
    "recent": "-created_at",
    "rating": "-rating",
    "helpful": "-helpful_count",
}
SORTABLE_FIELDS = {
    "created_at": Review.created_at,
    "rating": Review.rating,
    "helpful_count": Review.helpful_count,
    "flagged_count": Review.flagged_count,
}

ACTIVE_FILTER = publicly_visible_clause(Review.status, Review.flagged_count)
PENDING_MODERATION_FILTER = needs_moderation_clause(Review.status, Review.flagged_count)


def parse_sort(sort: Optional[str]):
    raw = SORT_ALIASES.get((sort or "").strip(), (sort or "-created_at").strip())
    descending = raw.startswith("-")
    field = raw.lstrip("-")
    column = SORTABLE_FIELDS.get(field)
    if column is None:
        raise HTTPException(status_code=400, detail=f"Invalid sort field: {field}")
    return column.desc() if descending else column.asc()


def _apply_status_filter(query: OrmQuery, status_value: str) -> OrmQuery:
    if status_value == "active":
        return query.filter(ACTIVE_FILTER)
    return query.filter(Review.status == status_value)


def _to_http(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def get_review_or_404(db: Session, review_id: int) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


def helpful_ids_for(db: Session, user: Optional[User], reviews: list[Review]) -> Optional[set[int]]:
    if user is None:
        return None
    review_ids = [review.id for review in reviews]
    if not review_ids:
        return set()
    rows = (
        db.query(ReviewHelpful.review_id)
        .filter(ReviewHelpful.user_id == user.id, ReviewHelpful.review_id.in_(review_ids))
        .all()
    )
    return {row[0] for row in rows}


def recalculate_location_rating(db: Session, location_id: int) -> None:
    average, total = (
        db.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.location_id == location_id, Review.status != "hidden")
        .one()
    )
    location = db.query(Location).filter(Location.id == location_id).first()
    if location is None:
        return
    location.rating = round(float(average), 2) if average is not None else 0
    location.total_reviews = int(total or 0)


def _paginated(db: Session, query: OrmQuery, current_user: Optional[User], sort: str, page: int, limit: int):
    total = query.count()
    rows = (
        query.order_by(parse_sort(sort), Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    helpful = helpful_ids_for(db, current_user, rows)
    return envelope(
        [build_review_out(row, helpful) for row in rows],
        count=len(rows),
        total=total,
        pagination=build_pagination(page, limit, total),
    )


@location_reviews_router.get("/")
def list_location_reviews(
    location_id: int,
    sort: str = "-created_at",
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    query = db.query(Review).filter(Review.location_id == location_id)
    if is_admin(current_user) and status_filter and status_filter != "all":
        query = _apply_status_filter(query, status_filter)
    elif not is_admin(current_user):
        query = query.filter(ACTIVE_FILTER)
    return _paginated(db, query, current_user, sort, page, limit)


@location_reviews_router.post("/", status_code=status.HTTP_201_CREATED)
def create_review(
    location_id: int,
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role != "public":
        raise HTTPException(status_code=403, detail="Only public users can create reviews")
    try:
        rating = validate_rating(payload.rating)
        comment = validate_comment(payload.comment)
    except ValueError as exc:
        raise _to_http(exc) from exc

    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    if location.status != "approved":
        raise HTTPException(status_code=400, detail="Cannot review unapproved location")
    if location.owner_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot review your own location")

    if payload.pickup_id is not None:
        pickup = db.query(PickupRequest).filter(PickupRequest.id == payload.pickup_id).first()
        if not pickup:
            raise HTTPException(status_code=404, detail="Pickup not found")
        if pickup.user_id != current_user.id:
            raise HTTPException(status_code=403, detail="Not authorized to review this pickup")
        if pickup.location_id != location.id:
            raise HTTPException(status_code=400, detail="Pickup does not belong to this location")
        if pickup.status != "completed":
            raise HTTPException(status_code=400, detail="Can only review completed pickups")
        already = (
            db.query(Review)
            .filter(Review.pickup_id == pickup.id, Review.user_id == current_user.id)
            .first()
        )
        if already:
            raise HTTPException(status_code=400, detail="You have already reviewed this pickup")

    review = Review(
        location_id=location.id,
        user_id=current_user.id,
        pickup_id=payload.pickup_id,
        rating=rating,
        title=payload.title,
        comment=comment,
        photos=payload.photos or [],
        status=INITIAL_REVIEW_STATUS,
        flagged_count=0,
        helpful_count=0,
    )
    db.add(review)
    db.flush()
    recalculate_location_rating(db, location.id)
    db.commit()
    db.refresh(review)
    return envelope(build_review_out(review))


@router.get("/")
def list_reviews(
    sort: str = "-created_at",
    status_filter: Optional[str] = Query(None, alias="status"),
    location_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    query = db.query(Review)
    if location_id:
        query = query.filter(Review.location_id == location_id)

    if current_user is None:
        query = query.filter(ACTIVE_FILTER)
    else:
        if current_user.role == "public":
            query = query.filter(Review.user_id == current_user.id)
        elif current_user.role == "mitra":
            owned = select(Location.id).where(Location.owner_id == current_user.id)
            query = query.filter(Review.location_id.in_(owned))

        if status_filter and status_filter != "all":
            query = _apply_status_filter(query, status_filter)
        elif not is_admin(current_user):
            query = query.filter(Review.status != "hidden")

    return _paginated(db, query, current_user, sort, page, limit)


@router.get("/moderate/pending")
def pending_moderation(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    rows = (
        db.query(Review)
        .filter(PENDING_MODERATION_FILTER)
        .order_by(Review.flagged_count.desc(), Review.id.asc())
        .all()
    )
    return envelope([build_review_out(row) for row in rows], count=len(rows))


@router.get("/{review_id}")
def get_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    review = get_review_or_404(db, review_id)
    helpful = helpful_ids_for(db, current_user, [review])
    return envelope(build_review_out(review, helpful))


@router.put("/{review_id}")
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to update this review")
    if review.status != "active":
        raise HTTPException(status_code=400, detail="Cannot edit flagged or hidden reviews")

    data = payload.model_dump(exclude_unset=True)
    try:
        if data.get("rating") is not None:
            review.rating = validate_rating(data["rating"])
        if data.get("comment") is not None:
            review.comment = validate_comment(data["comment"])
    except ValueError as exc:
        raise _to_http(exc) from exc
    if "title" in data:
        review.title = data["title"]
    if data.get("photos") is not None:
        review.photos = data["photos"]

    db.flush()
    recalculate_location_rating(db, review.location_id)
    db.commit()
    db.refresh(review)
    return envelope(build_review_out(review))


@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review.user_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Not authorized to delete this review")

    location_id = review.location_id
    db.query(ReviewHelpful).filter(ReviewHelpful.review_id == review.id).delete()
    db.delete(review)
    db.flush()
    recalculate_location_rating(db, location_id)
    db.commit()
    return envelope({})


@router.put("/{review_id}/helpful")
def toggle_helpful(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review.user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot mark your own review as helpful")
    if review.status != "active":
        raise HTTPException(status_code=400, detail="Cannot mark this review as helpful")

    existing = (
        db.query(ReviewHelpful)
        .filter(ReviewHelpful.review_id == review.id, ReviewHelpful.user_id == current_user.id)
        .first()
    )
    if existing:
        db.delete(existing)
        review.helpful_count = max((review.helpful_count or 0) - 1, 0)
        message = "Helpful mark removed"
    else:
        db.add(ReviewHelpful(review_id=review.id, user_id=current_user.id))
        review.helpful_count = (review.helpful_count or 0) + 1
        message = "Marked as helpful"

    db.commit()
    db.refresh(review)
    return {
        "success": True,
        "message": message,
        "data": HelpfulOut(
            id=review.id,
            helpful_count=review.helpful_count,
            is_helpful_by_me=existing is None,
        ),
    }


@router.put("/{review_id}/flag")
def flag_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review.user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot flag your own review")
    if review.status != "active":
        raise HTTPException(status_code=400, detail="This review is already flagged or hidden")

    review.flagged_count = (review.flagged_count or 0) + 1
    review.status = status_after_flag(review.flagged_count)
    db.commit()
    db.refresh(review)
    message = (
        "Review has been flagged for moderation"
        if review.status == "flagged"
        else "Your report has been recorded"
    )
    return {"success": True, "message": message, "data": build_review_out(review)}


@router.put("/{review_id}/response")
def respond_to_review(
    review_id: int,
    payload: ReviewResponseIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        response = validate_response(payload.response)
    except ValueError as exc:
        raise _to_http(exc) from exc

    review = get_review_or_404(db, review_id)
    owns_location = review.location is not None and review.location.owner_id == current_user.id
    if not (owns_location and current_user.role == "mitra") and not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Not authorized to respond to this review")
    if review.status != "active":
        raise HTTPException(status_code=400, detail="Cannot respond to this review")

    review.response = response
    review.response_date = datetime.now(timezone.utc)
    db.commit()
    db.refresh(review)
    return envelope(build_review_out(review))


@router.put("/{review_id}/moderate")
def moderate_review(
    review_id: int,
    payload: ReviewModerate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    if not can_moderate_review(payload.status):
        raise HTTPException(status_code=400, detail="Please provide valid status (active/hidden)")

    review = get_review_or_404(db, review_id)
    review.status = payload.status.strip().lower()
    review.moderation_note = payload.moderation_note or None
    review.moderated_by = current_user.id
    review.moderated_at = datetime.now(timezone.utc)
    review.flagged_count = 0
    db.flush()
    recalculate_location_rating(db, review.location_id)
    db.commit()
    db.refresh(review)
    action = "approved" if review.status == "active" else "hidden"
    return {"success": True, "message": f"Review has been {action}", "data": build_review_out(review)}
