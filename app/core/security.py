# app/core/security.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from app.core.errors import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class ClientPrincipal:
    id: int
    role = "client"


@dataclass(frozen=True)
class ProviderPrincipal:
    id: int
    role = "provider"


Principal = Union[ClientPrincipal, ProviderPrincipal]

_PRINCIPALS = {
    ClientPrincipal.role: ClientPrincipal,
    ProviderPrincipal.role: ProviderPrincipal,
}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(principal: Principal, expires_minutes: Optional[int] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(principal.id), "role": principal.role, "exp": expire}
    return jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Principal:
    """
    Turn a bearer token into a principal.
    The role claim is resolved here once; handlers only see the typed principal.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise Unauthenticated("Invalid or expired token")

    principal_cls = _PRINCIPALS.get(payload.get("role"))
    sub = payload.get("sub")
    if principal_cls is None or sub is None or not str(sub).isdigit():
        logger.warning(f"Rejected token with malformed claims: role={payload.get('role')!r}")
        raise Unauthenticated("Invalid or expired token")

    return principal_cls(id=int(sub))


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None:
        raise Unauthenticated("Missing access token")
    return decode_access_token(credentials.credentials)


def require_client(principal: Principal = Depends(get_current_principal)) -> ClientPrincipal:
    if not isinstance(principal, ClientPrincipal):
        raise Forbidden("Clients only")
    return principal


def require_provider(principal: Principal = Depends(get_current_principal)) -> ProviderPrincipal:
    if not isinstance(principal, ProviderPrincipal):
        raise Forbidden("Providers only")
    return principal
