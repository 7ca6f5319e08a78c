# app/api/routes/reservations.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional, Union

from app.db.base import get_db
from app.db.models.client import Client
from app.db.models.provider import Provider
from app.db.models.reservation import Reservation
from app.core.security import ClientPrincipal, Principal, get_current_principal, require_client
from app.schemas.reservation import ReservationCreate, ReservationResponse, ReservationStatusUpdate
from app.schemas.user import Address, ClientSummary, ProviderSummary
from app.services import reservations as reservation_service

router = APIRouter(prefix="/api/reservations", tags=["reservations"])


def _to_response(reservation: Reservation, counterpart: Optional[Union[Client, Provider]] = None) -> ReservationResponse:
    address = None
    if reservation.street or reservation.city or reservation.postal_code:
        address = Address(street=reservation.street, city=reservation.city, postal_code=reservation.postal_code)

    response = ReservationResponse(
        id=reservation.id,
        client_id=reservation.client_id,
        provider_id=reservation.provider_id,
        service_date=reservation.service_date,
        duration_hours=reservation.duration_hours,
        price=reservation.price,
        status=reservation.status,
        address=address,
        note=reservation.note,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
    )
    if isinstance(counterpart, Provider):
        response.provider = ProviderSummary.model_validate(counterpart)
    elif isinstance(counterpart, Client):
        response.client = ClientSummary.model_validate(counterpart)
    return response


# Client books a provider
@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    db: Session = Depends(get_db),
    current_client: ClientPrincipal = Depends(require_client),
):
    reservation = reservation_service.create_reservation(
        db,
        client_id=current_client.id,
        provider_id=data.provider_id,
        service_date=data.service_date,
        duration_hours=data.duration_hours,
        address=data.address,
        note=data.note,
    )
    return _to_response(reservation)


# Client or provider views their reservations
@router.get("/me", response_model=List[ReservationResponse])
def my_reservations(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows = reservation_service.list_reservations_for_user(db, principal)
    return [_to_response(reservation, counterpart) for reservation, counterpart in rows]


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _to_response(reservation_service.get_reservation(db, reservation_id, principal))


# Either party moves the reservation along its lifecycle
@router.put("/{reservation_id}/status", response_model=ReservationResponse)
def update_status(
    reservation_id: int,
    data: ReservationStatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    reservation = reservation_service.transition_reservation(db, reservation_id, principal, data.status)
    return _to_response(reservation)
