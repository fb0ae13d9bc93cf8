from typing import Iterable, Optional

from ecopeta.core.location_moderation import normalize_operating_hours
from ecopeta.core.pickup_lifecycle import (
    can_cancel_pickup,
    partner_next_statuses,
    pickup_status_color,
    pickup_status_label,
    time_slot_label,
)
from ecopeta.models.location import Location
from ecopeta.models.pickup import PickupRequest
from ecopeta.models.review import Review
from ecopeta.models.user import User
from ecopeta.schemas.location import LocationOut
from ecopeta.schemas.pickup import PickupLocationOut, PickupOut, PickupWasteItemOut
from ecopeta.schemas.review import ReviewLocationOut, ReviewOut
from ecopeta.schemas.user import AddressOut, UserOut, UserSummaryOut


def build_user_out(user: User) -> UserOut:
    coordinates = None
    if user.longitude is not None and user.latitude is not None:
        coordinates = [user.longitude, user.latitude]
    return UserOut(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        phone=user.phone,
        points=user.points or 0,
        badge=user.badge,
        avatar_url=user.avatar_url,
        is_verified=bool(user.is_verified),
        is_active=bool(user.is_active),
        business_name=user.business_name,
        business_license=user.business_license,
        business_type=user.business_type,
        address=AddressOut(
            street=user.street,
            city=user.city,
            province=user.province,
            postal_code=user.postal_code,
            coordinates=coordinates,
        ),
        created_at=user.created_at,
        last_login=user.last_login,
    )


def build_user_summary(user: Optional[User]) -> Optional[UserSummaryOut]:
    if not user:
        return None
    return UserSummaryOut(
        id=user.id,
        name=user.name,
        phone=user.phone,
        email=user.email,
        avatar_url=user.avatar_url,
        badge=user.badge,
    )


def _safe_hours(raw_hours):
    try:
        return normalize_operating_hours(raw_hours)
    except ValueError:
        return None


def build_location_out(location: Location, distance_km: Optional[float] = None) -> LocationOut:
    return LocationOut(
        id=location.id,
        owner_id=location.owner_id,
        name=location.name,
        description=location.description,
        type=location.type,
        status=location.status,
        phone=location.phone,
        email=location.email,
        website=location.website,
        street=location.street,
        city=location.city,
        province=location.province,
        postal_code=location.postal_code,
        latitude=location.latitude,
        longitude=location.longitude,
        operating_hours=_safe_hours(location.operating_hours),
        accepted_waste_types=location.accepted_waste_types or [],
        pickup_service=bool(location.pickup_service),
        dropoff_service=bool(location.dropoff_service),
        price_list=location.price_list,
        images=location.images or [],
        rating=float(location.rating or 0),
        total_reviews=location.total_reviews or 0,
        verified=bool(location.verified),
        verification_date=location.verification_date,
        rejection_reason=location.rejection_reason,
        is_active=bool(location.is_active),
        created_at=location.created_at,
        updated_at=location.updated_at,
        owner=build_user_summary(location.owner),
        distance_km=distance_km,
    )


def build_pickup_out(pickup: PickupRequest, viewer: Optional[User] = None) -> PickupOut:
    allowed: list[str] = []
    if viewer is not None and pickup.location is not None and pickup.location.owner_id == viewer.id:
        allowed = partner_next_statuses(pickup.status)
    is_requester = viewer is not None and viewer.id == pickup.user_id
    return PickupOut(
        id=pickup.id,
        user_id=pickup.user_id,
        location_id=pickup.location_id,
        status=pickup.status,
        status_label=pickup_status_label(pickup.status),
        status_color=pickup_status_color(pickup.status),
        scheduled_date=pickup.scheduled_date,
        time_slot=pickup.time_slot,
        time_slot_label=time_slot_label(pickup.time_slot),
        pickup_street=pickup.pickup_street,
        pickup_city=pickup.pickup_city,
        pickup_province=pickup.pickup_province,
        pickup_latitude=pickup.pickup_latitude,
        pickup_longitude=pickup.pickup_longitude,
        pickup_notes=pickup.pickup_notes,
        estimated_total_weight=pickup.estimated_total_weight,
        actual_total_weight=pickup.actual_total_weight,
        estimated_points=pickup.estimated_points or 0,
        actual_points=pickup.actual_points,
        points_awarded=bool(pickup.points_awarded),
        completed_at=pickup.completed_at,
        cancelled_at=pickup.cancelled_at,
        cancellation_reason=pickup.cancellation_reason,
        after_photos=pickup.after_photos or [],
        driver_notes=pickup.driver_notes,
        user_notes=pickup.user_notes,
        created_at=pickup.created_at,
        updated_at=pickup.updated_at,
        allowed_next_statuses=allowed,
        can_cancel=is_requester and can_cancel_pickup(pickup.status),
        user=build_user_summary(pickup.user),
        location=PickupLocationOut.model_validate(pickup.location) if pickup.location else None,
        waste_items=[PickupWasteItemOut.model_validate(item) for item in pickup.waste_items],
    )


def build_review_out(review: Review, helpful_ids: Optional[Iterable[int]] = None) -> ReviewOut:
    is_helpful = None
    if helpful_ids is not None:
        is_helpful = review.id in set(helpful_ids)
    return ReviewOut(
        id=review.id,
        location_id=review.location_id,
        user_id=review.user_id,
        pickup_id=review.pickup_id,
        rating=review.rating,
        title=review.title,
        comment=review.comment,
        photos=review.photos or [],
        status=review.status,
        flagged_count=review.flagged_count or 0,
        helpful_count=review.helpful_count or 0,
        response=review.response,
        response_date=review.response_date,
        moderation_note=review.moderation_note,
        moderated_by=review.moderated_by,
        moderated_at=review.moderated_at,
        created_at=review.created_at,
        updated_at=review.updated_at,
        is_helpful_by_me=is_helpful,
        user=build_user_summary(review.user),
        location=ReviewLocationOut.model_validate(review.location) if review.location else None,
    )
