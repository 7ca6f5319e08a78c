# app/db/models/provider.py
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Float, Integer, String, func
from sqlalchemy.orm import relationship
from app.db.base import Base

SERVICE_TYPES = ("cleaning", "babysitting", "cooking")


class Provider(Base):
    __tablename__ = "providers"
    __table_args__ = (
        CheckConstraint("hourly_rate > 0", name="ck_providers_hourly_rate_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)

    service_type = Column(String, nullable=False, index=True)   # one of SERVICE_TYPES
    hourly_rate = Column(Float, nullable=False)
    description = Column(String, nullable=True)
    availability = Column(JSON, nullable=False, default=list)   # free-form strings, e.g. "Mon 9-12"

    # derived from the reviews table, see app.services.rating
    aggregate_rating = Column(Float, nullable=False, default=0.0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    reservations = relationship("Reservation", back_populates="provider", lazy="select")
