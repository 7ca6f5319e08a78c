from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.user import ClientCreate, LoginRequest, ProviderCreate, TokenResponse
from app.services.accounts import authenticate, register_client, register_provider

router = APIRouter(tags=["auth"])


@router.post("/register/client", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register_client_account(data: ClientCreate, db: Session = Depends(get_db)):
    token = register_client(db, data)
    return TokenResponse(access_token=token, role="client")


@router.post("/register/provider", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register_provider_account(data: ProviderCreate, db: Session = Depends(get_db)):
    token = register_provider(db, data)
    return TokenResponse(access_token=token, role="provider")


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    token = authenticate(db, data.email, data.password, data.role)
    return TokenResponse(access_token=token, role=data.role)
