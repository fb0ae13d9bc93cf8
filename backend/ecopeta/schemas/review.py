from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ecopeta.schemas.user import UserSummaryOut


class ReviewCreate(BaseModel):
    rating: int
    comment: str
    title: Optional[str] = None
    photos: list[str] = []
    pickup_id: Optional[int] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    title: Optional[str] = None
    comment: Optional[str] = None
    photos: Optional[list[str]] = None


class ReviewResponseIn(BaseModel):
    response: Optional[str] = None


class ReviewModerate(BaseModel):
    status: Optional[str] = None
    moderation_note: Optional[str] = None


class ReviewLocationOut(BaseModel):
    id: int
    name: str
    type: str
    owner_id: int

    model_config = ConfigDict(from_attributes=True)


class ReviewOut(BaseModel):
    id: int
    location_id: int
    user_id: int
    pickup_id: Optional[int] = None
    rating: int
    title: Optional[str] = None
    comment: str
    photos: list[str] = []
    status: str
    flagged_count: int = 0
    helpful_count: int = 0
    response: Optional[str] = None
    response_date: Optional[datetime] = None
    moderation_note: Optional[str] = None
    moderated_by: Optional[int] = None
    moderated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_helpful_by_me: Optional[bool] = None
    user: Optional[UserSummaryOut] = None
    location: Optional[ReviewLocationOut] = None


class HelpfulOut(BaseModel):
    id: int
    helpful_count: int
    is_helpful_by_me: bool
