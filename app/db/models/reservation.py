# app/db/models/reservation.py
from sqlalchemy import CheckConstraint, Column, Date, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship
from app.db.base import Base


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("duration_hours > 0", name="ck_reservations_duration_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)

    service_date = Column(Date, nullable=False)
    duration_hours = Column(Float, nullable=False)

    street = Column(String, nullable=True)
    city = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    note = Column(String, nullable=True)

    # hourly_rate x duration_hours at creation time, never recomputed
    price = Column(Float, nullable=False)

    status = Column(String, nullable=False, default="pending")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # relationships
    client = relationship("Client", back_populates="reservations")
    provider = relationship("Provider", back_populates="reservations")
