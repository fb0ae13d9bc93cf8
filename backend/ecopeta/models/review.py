from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship

from ecopeta.database.base import Base


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("location_id", "user_id", "pickup_id", name="uq_reviews_location_user_pickup"),
    )

    id = Column(Integer, primary_key=True, index=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pickup_id = Column(Integer, ForeignKey("pickup_requests.id", ondelete="SET NULL"), nullable=True)

    rating = Column(Integer, nullable=False)   # 1..5
    title = Column(String(255), nullable=True)
    comment = Column(Text, nullable=False)
    photos = Column(JSON, nullable=True)

    status = Column(String(20), nullable=False, default="active", index=True)
    flagged_count = Column(Integer, nullable=False, default=0)
    helpful_count = Column(Integer, nullable=False, default=0)

    response = Column(Text, nullable=True)
    response_date = Column(DateTime(timezone=True), nullable=True)

    moderation_note = Column(Text, nullable=True)
    moderated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    moderated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    location = relationship("Location", foreign_keys=[location_id])


class ReviewHelpful(Base):
    __tablename__ = "review_helpful"
    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_review_helpful_review_user"),
    )

    id = Column(Integer, primary_key=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
