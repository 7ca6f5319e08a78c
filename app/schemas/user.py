from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional

ServiceType = Literal["cleaning", "babysitting", "cooking"]
Role = Literal["client", "provider"]


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None


class ClientCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    address: Optional[Address] = None


class ProviderCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    service_type: ServiceType
    hourly_rate: float = Field(..., gt=0)
    description: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    role: Role


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role


# Public name fields only, safe to embed in other responses
class ClientSummary(BaseModel):
    id: int
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class ProviderSummary(BaseModel):
    id: int
    first_name: str
    last_name: str

    class Config:
        from_attributes = True
