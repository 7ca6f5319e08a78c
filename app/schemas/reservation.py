# app/schemas/reservation.py
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Literal, Optional

from app.schemas.user import Address, ClientSummary, ProviderSummary

ReservationStatus = Literal["pending", "confirmed", "done", "cancelled"]


# --- CREATE ---
class ReservationCreate(BaseModel):
    provider_id: int
    service_date: date
    duration_hours: float = Field(..., gt=0, description="Length of the service in hours")
    address: Optional[Address] = None
    note: Optional[str] = None


# --- STATUS UPDATE (client or provider party to the reservation) ---
class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus = Field(
        ...,
        description="pending -> confirmed -> done, or pending/confirmed -> cancelled",
    )


# --- RESPONSE ---
class ReservationResponse(BaseModel):
    id: int
    client_id: int
    provider_id: int
    service_date: date
    duration_hours: float
    price: float
    status: ReservationStatus
    address: Optional[Address] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # counterpart of the requesting user, only on listings
    client: Optional[ClientSummary] = None
    provider: Optional[ProviderSummary] = None
