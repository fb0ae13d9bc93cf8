from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ecopeta.schemas.user import UserSummaryOut
from ecopeta.schemas.waste_category import WasteCategoryOut


class DayHours(BaseModel):
    open: str = ""
    close: str = ""
    is_closed: bool = False


class LocationBase(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    operating_hours: Optional[dict[str, Any]] = None
    accepted_waste_types: Optional[list[int]] = None
    pickup_service: Optional[bool] = None
    dropoff_service: Optional[bool] = None
    price_list: Optional[Any] = None
    images: Optional[list[str]] = None


class LocationCreate(LocationBase):
    pass


class LocationUpdate(LocationBase):
    status: Optional[str] = None
    verified: Optional[bool] = None
    rejection_reason: Optional[str] = None


class LocationReject(BaseModel):
    reason: Optional[str] = None


class LocationOut(BaseModel):
    id: int
    owner_id: int
    name: str
    description: Optional[str] = None
    type: str
    status: str
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    street: str
    city: str
    province: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: float
    longitude: float
    operating_hours: Optional[dict[str, DayHours]] = None
    accepted_waste_types: Optional[list[int]] = None
    pickup_service: bool = False
    dropoff_service: bool = True
    price_list: Optional[Any] = None
    images: list[str] = []
    rating: float = 0
    total_reviews: int = 0
    verified: bool = False
    verification_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[UserSummaryOut] = None
    distance_km: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class LocationReviewOut(BaseModel):
    id: int
    rating: int
    title: Optional[str] = None
    comment: str
    photos: list[str] = []
    helpful_count: int = 0
    created_at: Optional[datetime] = None
    user: Optional[UserSummaryOut] = None


class LocationDetailOut(LocationOut):
    reviews: list[LocationReviewOut] = []
    accepted_categories: list[WasteCategoryOut] = []
