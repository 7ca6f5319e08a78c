# app/services/reservations.py
import logging
from datetime import date
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session, joinedload

from app.core.errors import Forbidden, InvalidInput, NotFound, PreconditionFailed
from app.core.security import ClientPrincipal, Principal, ProviderPrincipal
from app.db.base import commit_or_raise
from app.db.models.client import Client
from app.db.models.provider import Provider
from app.db.models.reservation import Reservation
from app.schemas.user import Address

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
DONE = "done"
CANCELLED = "cancelled"

STATUSES = (PENDING, CONFIRMED, DONE, CANCELLED)

# The only legal moves; done and cancelled are terminal.
ALLOWED_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {DONE, CANCELLED},
    DONE: set(),
    CANCELLED: set(),
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def create_reservation(
    db: Session,
    client_id: int,
    provider_id: int,
    service_date: date,
    duration_hours: float,
    address: Optional[Address] = None,
    note: Optional[str] = None,
) -> Reservation:
    if duration_hours is None or duration_hours <= 0:
        raise InvalidInput("duration_hours must be positive")

    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if not provider:
        raise NotFound("Provider not found")

    address = address or Address()
    reservation = Reservation(
        client_id=client_id,
        provider_id=provider.id,
        service_date=service_date,
        duration_hours=duration_hours,
        street=address.street,
        city=address.city,
        postal_code=address.postal_code,
        note=note,
        # fixed at booking time, later rate changes don't apply
        price=provider.hourly_rate * duration_hours,
        status=PENDING,
    )

    db.add(reservation)
    commit_or_raise(db, "create reservation")
    db.refresh(reservation)

    logger.info(
        f"Reservation {reservation.id} created: client={client_id} provider={provider.id} "
        f"date={service_date} price={reservation.price}"
    )
    return reservation


def list_reservations_for_user(
    db: Session, principal: Principal
) -> List[Tuple[Reservation, Union[Client, Provider]]]:
    """Reservations the principal is party to, newest first, each with its counterpart."""
    if isinstance(principal, ClientPrincipal):
        rows = (
            db.query(Reservation)
            .options(joinedload(Reservation.provider))
            .filter(Reservation.client_id == principal.id)
            .order_by(Reservation.created_at.desc(), Reservation.id.desc())
            .all()
        )
        return [(r, r.provider) for r in rows]

    rows = (
        db.query(Reservation)
        .options(joinedload(Reservation.client))
        .filter(Reservation.provider_id == principal.id)
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        .all()
    )
    return [(r, r.client) for r in rows]


def _is_party(reservation: Reservation, principal: Principal) -> bool:
    if isinstance(principal, ClientPrincipal):
        return reservation.client_id == principal.id
    if isinstance(principal, ProviderPrincipal):
        return reservation.provider_id == principal.id
    return False


def get_reservation(db: Session, reservation_id: int, principal: Principal) -> Reservation:
    reservation = db.query(Reservation).filter(Reservation.id == reservation_id).first()
    if not reservation:
        raise NotFound("Reservation not found")

    if not _is_party(reservation, principal):
        raise Forbidden("Not your reservation")

    return reservation


def transition_reservation(
    db: Session, reservation_id: int, principal: Principal, new_status: str
) -> Reservation:
    reservation = get_reservation(db, reservation_id, principal)

    if new_status not in STATUSES:
        raise InvalidInput(f"Unknown status '{new_status}'")

    if not can_transition(reservation.status, new_status):
        logger.warning(
            f"Rejected transition of reservation {reservation.id}: {reservation.status} -> {new_status} "
            f"by {principal.role} {principal.id}"
        )
        raise PreconditionFailed(f"Cannot move reservation from {reservation.status} to {new_status}")

    previous = reservation.status
    reservation.status = new_status
    commit_or_raise(db, "update reservation status")
    db.refresh(reservation)

    logger.info(f"Reservation {reservation.id}: {previous} -> {new_status} by {principal.role} {principal.id}")
    return reservation
