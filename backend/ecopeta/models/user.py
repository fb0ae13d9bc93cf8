from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, func

from ecopeta.database.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="public", index=True)
    phone = Column(String(40), nullable=True)
    avatar_url = Column(String(255), nullable=True)

    points = Column(Integer, nullable=False, default=0)
    badge = Column(String(20), nullable=False, default="bronze")
    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    business_name = Column(String(255), nullable=True)
    business_license = Column(String(120), nullable=True)
    business_type = Column(String(120), nullable=True)

    street = Column(String(255), nullable=True)
    city = Column(String(120), nullable=True)
    province = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
