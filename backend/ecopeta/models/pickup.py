from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ecopeta.database.base import Base


class PickupRequest(Base):
    __tablename__ = "pickup_requests"
    __table_args__ = (
        Index("ix_pickup_requests_location_status", "location_id", "status"),
        Index("ix_pickup_requests_scheduled", "scheduled_date", "time_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    scheduled_date = Column(Date, nullable=False)
    time_slot = Column(String(20), nullable=False)

    pickup_street = Column(String(255), nullable=False)
    pickup_city = Column(String(120), nullable=False)
    pickup_province = Column(String(120), nullable=True)
    pickup_latitude = Column(Float, nullable=True)
    pickup_longitude = Column(Float, nullable=True)
    pickup_notes = Column(Text, nullable=True)

    estimated_total_weight = Column(Float, nullable=True)
    actual_total_weight = Column(Float, nullable=True)
    estimated_points = Column(Integer, nullable=False, default=0)
    actual_points = Column(Integer, nullable=True)
    points_awarded = Column(Boolean, nullable=False, default=False)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    after_photos = Column(JSON, nullable=True)
    driver_notes = Column(Text, nullable=True)
    user_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    location = relationship("Location", foreign_keys=[location_id])
    waste_items = relationship(
        "PickupWasteItem",
        back_populates="pickup",
        cascade="all, delete-orphan",
        order_by="PickupWasteItem.id",
    )


class PickupWasteItem(Base):
    __tablename__ = "pickup_waste_items"

    id = Column(Integer, primary_key=True, index=True)
    pickup_id = Column(Integer, ForeignKey("pickup_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("waste_categories.id"), nullable=False, index=True)
    estimated_weight = Column(Float, nullable=False)
    actual_weight = Column(Float, nullable=True)
    unit = Column(String(10), nullable=False, default="kg")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    pickup = relationship("PickupRequest", back_populates="waste_items")
    category = relationship("WasteCategory")
