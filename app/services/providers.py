# app/services/providers.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import Forbidden, InvalidInput, NotFound
from app.core.security import Principal, ProviderPrincipal
from app.db.base import commit_or_raise
from app.db.models.provider import SERVICE_TYPES, Provider

logger = logging.getLogger(__name__)


def _check_service_type(service_type: Optional[str]):
    if service_type is not None and service_type not in SERVICE_TYPES:
        raise InvalidInput("Invalid service type")


def list_providers(db: Session, service_type: Optional[str] = None) -> List[Provider]:
    _check_service_type(service_type)

    query = db.query(Provider)
    if service_type:
        query = query.filter(Provider.service_type == service_type)
    return query.order_by(Provider.id).all()


def get_provider(db: Session, provider_id: int) -> Provider:
    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if not provider:
        raise NotFound("Provider not found")
    return provider


def search_providers(
    db: Session, service_type: Optional[str] = None, max_rate: Optional[float] = None
) -> List[Provider]:
    """Providers matching the filters, best rated first."""
    _check_service_type(service_type)

    query = db.query(Provider)
    if service_type:
        query = query.filter(Provider.service_type == service_type)
    if max_rate is not None:
        query = query.filter(Provider.hourly_rate <= max_rate)

    return query.order_by(Provider.aggregate_rating.desc(), Provider.id).all()


def _own_profile(db: Session, principal: Principal) -> Provider:
    if not isinstance(principal, ProviderPrincipal):
        raise Forbidden("Providers only")
    return get_provider(db, principal.id)


def update_provider_profile(
    db: Session,
    principal: Principal,
    hourly_rate: Optional[float] = None,
    description: Optional[str] = None,
) -> Provider:
    provider = _own_profile(db, principal)

    if hourly_rate is not None:
        if hourly_rate <= 0:
            raise InvalidInput("hourly_rate must be positive")
        # existing reservations keep the price they were booked at
        provider.hourly_rate = hourly_rate
    if description is not None:
        provider.description = description

    commit_or_raise(db, "update provider profile")
    db.refresh(provider)

    logger.info(f"Provider {provider.id} profile updated")
    return provider


def update_provider_availability(db: Session, principal: Principal, availability: List[str]) -> Provider:
    provider = _own_profile(db, principal)

    provider.availability = list(availability)
    commit_or_raise(db, "update provider availability")
    db.refresh(provider)

    logger.info(f"Provider {provider.id} availability set to {len(provider.availability)} slots")
    return provider
