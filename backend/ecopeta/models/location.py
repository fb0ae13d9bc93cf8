from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from ecopeta.database.base import Base


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        Index("ix_locations_status_type", "status", "type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default="bank_sampah")
    status = Column(String(20), nullable=False, default="pending", index=True)

    phone = Column(String(40), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)

    street = Column(String(255), nullable=False)
    city = Column(String(120), nullable=False)
    province = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    operating_hours = Column(JSON, nullable=True)
    accepted_waste_types = Column(JSON, nullable=True)
    pickup_service = Column(Boolean, nullable=False, default=False)
    dropoff_service = Column(Boolean, nullable=False, default=True)
    price_list = Column(JSON, nullable=True)
    images = Column(JSON, nullable=True)

    rating = Column(Float, nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)
    verified = Column(Boolean, nullable=False, default=False)
    verification_date = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    owner = relationship("User", foreign_keys=[owner_id])
