import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.security import ProviderPrincipal, hash_password
from app.db.base import Base, get_db
from app.db.models.client import Client
from app.db.models.provider import Provider
from app.services.reservations import create_reservation, transition_reservation


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def http(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_client(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "email": f"client{counter['n']}@example.com",
            "first_name": "Alice",
            "last_name": f"Client{counter['n']}",
            "password_hash": hash_password("secret123"),
        }
        data.update(overrides)
        client = Client(**data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    return _make


@pytest.fixture()
def make_provider(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "email": f"provider{counter['n']}@example.com",
            "first_name": "Paul",
            "last_name": f"Provider{counter['n']}",
            "password_hash": hash_password("secret123"),
            "service_type": "cleaning",
            "hourly_rate": 20.0,
            "availability": [],
        }
        data.update(overrides)
        provider = Provider(**data)
        db.add(provider)
        db.commit()
        db.refresh(provider)
        return provider

    return _make


@pytest.fixture()
def completed_service(db):
    """Book and complete a service so the client is allowed to review it."""

    def _complete(client, provider, service_date=date(2024, 1, 10), duration_hours=3):
        reservation = create_reservation(db, client.id, provider.id, service_date, duration_hours)
        provider_principal = ProviderPrincipal(id=provider.id)
        transition_reservation(db, reservation.id, provider_principal, "confirmed")
        transition_reservation(db, reservation.id, provider_principal, "done")
        return reservation

    return _complete

