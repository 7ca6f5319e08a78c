# app/services/accounts.py
import logging

from sqlalchemy.orm import Session

from app.core.errors import Conflict, InvalidInput, Unauthenticated
from app.core.security import ClientPrincipal, ProviderPrincipal, create_access_token, hash_password, verify_password
from app.db.base import commit_or_raise
from app.db.models.client import Client
from app.db.models.provider import SERVICE_TYPES, Provider
from app.schemas.user import ClientCreate, ProviderCreate

logger = logging.getLogger(__name__)


def register_client(db: Session, data: ClientCreate) -> str:
    """Create a client account and return an access token for it."""
    existing = db.query(Client).filter(Client.email == data.email).first()
    if existing:
        raise Conflict("Email already registered")

    address = data.address
    client = Client(
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
        password_hash=hash_password(data.password),
        phone=data.phone,
        street=address.street if address else None,
        city=address.city if address else None,
        postal_code=address.postal_code if address else None,
    )

    db.add(client)
    commit_or_raise(db, "register client")
    db.refresh(client)

    logger.info(f"Client {client.id} registered")
    return create_access_token(ClientPrincipal(id=client.id))


def register_provider(db: Session, data: ProviderCreate) -> str:
    """Create a provider account and return an access token for it."""
    if data.service_type not in SERVICE_TYPES:
        raise InvalidInput("Invalid service type")
    if data.hourly_rate <= 0:
        raise InvalidInput("hourly_rate must be positive")

    existing = db.query(Provider).filter(Provider.email == data.email).first()
    if existing:
        raise Conflict("Email already registered")

    provider = Provider(
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
        password_hash=hash_password(data.password),
        service_type=data.service_type,
        hourly_rate=data.hourly_rate,
        description=data.description,
        availability=[],
        aggregate_rating=0.0,
    )

    db.add(provider)
    commit_or_raise(db, "register provider")
    db.refresh(provider)

    logger.info(f"Provider {provider.id} registered ({provider.service_type})")
    return create_access_token(ProviderPrincipal(id=provider.id))


def authenticate(db: Session, email: str, password: str, role: str) -> str:
    model, principal_cls = (Client, ClientPrincipal) if role == "client" else (Provider, ProviderPrincipal)

    user = db.query(model).filter(model.email == email).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Failed {role} login for {email}")
        raise Unauthenticated("Invalid credentials")

    return create_access_token(principal_cls(id=user.id))
