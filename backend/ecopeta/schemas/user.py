from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AddressIn(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    coordinates: Optional[list[float]] = Field(default=None, description="[longitude, latitude]")


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None
    role: str = "public"
    address: Optional[AddressIn] = None


class UserLogin(BaseModel):
    email: str
    password: str


class UserDetailsUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    address: Optional[AddressIn] = None


class PasswordUpdate(BaseModel):
    currentPassword: str
    newPassword: str


class BusinessUpdate(BaseModel):
    business_name: Optional[str] = None
    business_license: Optional[str] = None
    business_type: Optional[str] = None


class AdminUserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: str
    is_active: bool = True


class AdminUserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None


class AddressOut(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    coordinates: Optional[list[float]] = None


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    points: int = 0
    badge: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: bool = False
    is_active: bool = True
    business_name: Optional[str] = None
    business_license: Optional[str] = None
    business_type: Optional[str] = None
    address: AddressOut = Field(default_factory=AddressOut)
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserSummaryOut(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    badge: Optional[str] = None


class PointsHistoryOut(BaseModel):
    id: int
    points: int
    type: str
    source: str
    source_id: Optional[int] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserStatsOut(BaseModel):
    total_pickups: int = 0
    completed_pickups: int = 0
    pending_pickups: int = 0
    total_weight_collected: float = 0
    total_points_earned: int = 0
    total_reviews: int = 0
    current_points: int = 0
    badge: Optional[str] = None
    member_since: Optional[datetime] = None


class AccountDelete(BaseModel):
    password: Optional[str] = None
