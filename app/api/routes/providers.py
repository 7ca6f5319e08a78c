# app/api/routes/providers.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.db.base import get_db
from app.core.security import ProviderPrincipal, require_provider
from app.schemas.provider import ProviderAvailabilityUpdate, ProviderProfileUpdate, ProviderResponse
from app.services import providers as provider_service

router = APIRouter(prefix="/api/providers", tags=["providers"])


# Public directory
@router.get("", response_model=List[ProviderResponse])
def list_providers(
    service_type: Optional[str] = Query(None, description="cleaning | babysitting | cooking"),
    db: Session = Depends(get_db),
):
    return provider_service.list_providers(db, service_type)


# declared before /{provider_id} so "search" isn't parsed as an id
@router.get("/search", response_model=List[ProviderResponse])
def search_providers(
    service_type: Optional[str] = Query(None, description="cleaning | babysitting | cooking"),
    max_rate: Optional[float] = Query(None, gt=0, description="Maximum hourly rate"),
    db: Session = Depends(get_db),
):
    return provider_service.search_providers(db, service_type, max_rate)


@router.get("/{provider_id}", response_model=ProviderResponse)
def get_provider(provider_id: int, db: Session = Depends(get_db)):
    return provider_service.get_provider(db, provider_id)


# Provider manages own profile
@router.put("/profile", response_model=ProviderResponse)
def update_profile(
    data: ProviderProfileUpdate,
    db: Session = Depends(get_db),
    current_provider: ProviderPrincipal = Depends(require_provider),
):
    return provider_service.update_provider_profile(
        db, current_provider, hourly_rate=data.hourly_rate, description=data.description
    )


@router.put("/availability", response_model=ProviderResponse)
def update_availability(
    data: ProviderAvailabilityUpdate,
    db: Session = Depends(get_db),
    current_provider: ProviderPrincipal = Depends(require_provider),
):
    return provider_service.update_provider_availability(db, current_provider, data.availability)
