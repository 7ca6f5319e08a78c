# app/schemas/provider.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.schemas.user import ServiceType


class ProviderResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    service_type: ServiceType
    hourly_rate: float
    description: Optional[str] = None
    availability: List[str] = []
    aggregate_rating: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProviderProfileUpdate(BaseModel):
    hourly_rate: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None


class ProviderAvailabilityUpdate(BaseModel):
    availability: List[str]
