from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ecopeta.schemas.user import UserSummaryOut


class PickupAddressIn(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None


class WasteItemIn(BaseModel):
    category_id: int
    estimated_weight: float
    unit: str = "kg"


class PickupCreate(BaseModel):
    location_id: int
    scheduled_date: date
    time_slot: str
    pickup_address: PickupAddressIn
    waste_items: list[WasteItemIn] = Field(default_factory=list)
    user_notes: Optional[str] = None


class ActualWeightItem(BaseModel):
    category_id: int
    actual_weight: float = Field(ge=0)


class PickupStatusUpdate(BaseModel):
    status: str
    driver_notes: Optional[str] = None
    actual_weight_items: list[ActualWeightItem] = Field(default_factory=list)
    photos: list[str] = Field(default_factory=list)


class PickupCancel(BaseModel):
    reason: Optional[str] = None


class PickupCategoryOut(BaseModel):
    id: int
    name: str
    icon_url: Optional[str] = None
    points_per_kg: int

    model_config = ConfigDict(from_attributes=True)


class PickupWasteItemOut(BaseModel):
    id: int
    pickup_id: int
    category_id: int
    estimated_weight: float
    actual_weight: Optional[float] = None
    unit: str = "kg"
    category: Optional[PickupCategoryOut] = None

    model_config = ConfigDict(from_attributes=True)


class PickupLocationOut(BaseModel):
    id: int
    name: str
    type: str
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    owner_id: int

    model_config = ConfigDict(from_attributes=True)


class PickupOut(BaseModel):
    id: int
    user_id: int
    location_id: int
    status: str
    status_label: str = ""
    status_color: str = ""
    scheduled_date: date
    time_slot: str
    time_slot_label: str = ""
    pickup_street: str
    pickup_city: str
    pickup_province: Optional[str] = None
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None
    pickup_notes: Optional[str] = None
    estimated_total_weight: Optional[float] = None
    actual_total_weight: Optional[float] = None
    estimated_points: int = 0
    actual_points: Optional[int] = None
    points_awarded: bool = False
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    after_photos: list[str] = []
    driver_notes: Optional[str] = None
    user_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    allowed_next_statuses: list[str] = []
    can_cancel: bool = False
    user: Optional[UserSummaryOut] = None
    location: Optional[PickupLocationOut] = None
    waste_items: list[PickupWasteItemOut] = []


class PickupStatsOut(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    scheduled: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    total_weight: float = 0
    total_points_earned: int = 0
