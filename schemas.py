"""
Database Schemas for the StyleDecor booking service

MongoDB collections are described below using Pydantic models. Each model
maps to one collection in the ``styleDecorDB`` database:
- users: customers, decorators and admins
- services: decoration packages offered in the catalog
- bookings: service bookings made by users
- payments: records of charges completed on the client
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, validate_email

Role = Literal["user", "decorator", "admin"]

ASSIGNED = "Assigned"


def _check_email(value: str) -> str:
    # lookups match the raw path value, so store the address as sent
    validate_email(value)
    return value


Email = Annotated[str, AfterValidator(_check_email)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    email: Email
    name: Optional[str] = Field(None, max_length=120)
    photoURL: Optional[str] = None
    phone: Optional[str] = None
    role: Role = Field("user")
    createdAt: datetime = Field(default_factory=utcnow)


class Service(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(..., ge=0, description="Price in major currency units")
    unit: Optional[str] = Field(None, description="e.g. per room, per sq-ft")
    image: Optional[str] = None
    createdAt: datetime = Field(default_factory=utcnow)


class Booking(BaseModel):
    userEmail: Email
    userName: Optional[str] = None
    serviceId: Optional[str] = Field(None, description="Reference to services _id")
    serviceName: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    date: Optional[str] = None
    location: Optional[str] = None
    status: str = Field(ASSIGNED)
    createdAt: datetime = Field(default_factory=utcnow)


class Payment(BaseModel):
    email: Email
    amount: float = Field(..., ge=0)
    transactionId: Optional[str] = None
    bookingId: Optional[str] = None
    serviceName: Optional[str] = None
    createdAt: datetime = Field(default_factory=utcnow)
