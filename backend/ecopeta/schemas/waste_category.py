from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WasteCategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    icon_url: Optional[str] = None
    points_per_kg: Optional[int] = None


class WasteCategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon_url: Optional[str] = None
    points_per_kg: Optional[int] = None
    is_active: Optional[bool] = None


class WasteCategoryOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    points_per_kg: int
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)
