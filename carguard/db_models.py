"""
Database models using SQLModel
Provides type-safe ORM with Pydantic validation
"""

from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current UTC time for timestamp columns"""
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """Owner of cars and services"""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(max_length=255, unique=True, index=True)
    reminder_days: int = Field(default=30, ge=1, le=365)
    reminders_enabled: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    cars: List["Car"] = Relationship(
        back_populates="owner",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class Car(SQLModel, table=True):
    """A registered vehicle"""

    __tablename__ = "cars"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    brand: str = Field(max_length=100)
    model: str = Field(max_length=100)
    year: int
    license_plate: Optional[str] = Field(default=None, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    owner: Optional[User] = Relationship(back_populates="cars")
    services: List["Service"] = Relationship(
        back_populates="car",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class Service(SQLModel, table=True):
    """Dated record attached to a car (insurance, tax, refuel, repair...)"""

    __tablename__ = "services"

    id: Optional[int] = Field(default=None, primary_key=True)
    car_id: int = Field(foreign_key="cars.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    service_type: str = Field(max_length=32, index=True)
    expiry_date: date = Field(index=True)
    reminder_sent: bool = Field(default=False, index=True)

    # Informational fields, used by refuel/expense records only
    cost: Optional[float] = Field(default=None)
    liters: Optional[float] = Field(default=None)
    price_per_liter: Optional[float] = Field(default=None)
    fuel_type: Optional[str] = Field(default=None, max_length=32)
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Relationships
    car: Optional[Car] = Relationship(back_populates="services")
