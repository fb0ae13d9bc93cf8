from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from ecopeta.database.base import Base


class PointsHistory(Base):
    __tablename__ = "points_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False, default="earned")
    source = Column(String(20), nullable=False, default="pickup")
    source_id = Column(Integer, nullable=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
