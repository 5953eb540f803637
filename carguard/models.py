"""
Type-safe domain models for the reminder service
Uses dataclasses and enums for better type safety and IDE support
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union


class ServiceType(str, Enum):
    """Every kind of record a user can attach to a car"""

    CIVIL_LIABILITY = "civil_liability"
    VIGNETTE = "vignette"
    INSPECTION = "inspection"
    CASCO = "casco"
    TAX = "tax"
    FIRE_EXTINGUISHER = "fire_extinguisher"
    REPAIR = "repair"
    MAINTENANCE = "maintenance"
    TIRES = "tires"
    REFUEL = "refuel"
    OTHER = "other"


# Expiry-driven kinds; only these ever produce a reminder email
REMINDER_SERVICE_TYPES = frozenset(
    {
        ServiceType.CIVIL_LIABILITY,
        ServiceType.VIGNETTE,
        ServiceType.INSPECTION,
        ServiceType.CASCO,
        ServiceType.TAX,
        ServiceType.FIRE_EXTINGUISHER,
    }
)

SERVICE_TYPE_LABELS = {
    ServiceType.CIVIL_LIABILITY: "Civil liability insurance",
    ServiceType.VIGNETTE: "Vignette",
    ServiceType.INSPECTION: "Technical inspection",
    ServiceType.CASCO: "Casco insurance",
    ServiceType.TAX: "Vehicle tax",
    ServiceType.FIRE_EXTINGUISHER: "Fire extinguisher check",
    ServiceType.REPAIR: "Repair",
    ServiceType.MAINTENANCE: "Maintenance",
    ServiceType.TIRES: "Tires",
    ServiceType.REFUEL: "Refuel",
    ServiceType.OTHER: "Other",
}


def parse_service_type(value: Union[str, ServiceType]) -> ServiceType:
    """Convert a stored or user-supplied value into a ServiceType"""
    try:
        return ServiceType(value)
    except ValueError:
        raise ValueError(f"Unknown service type: {value!r}") from None


def is_reminder_type(service_type: Union[str, ServiceType]) -> bool:
    """True if the kind is expiry-driven"""
    try:
        return ServiceType(service_type) in REMINDER_SERVICE_TYPES
    except ValueError:
        return False


@dataclass(frozen=True)
class CarInfo:
    """Car details shown in a reminder email"""
    id: int
    user_id: int
    brand: str
    model: str
    year: int

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model}"


@dataclass(frozen=True)
class UserSettings:
    """The parts of a user the scheduler needs"""
    id: int
    email: str
    reminder_days: int = 30
    reminders_enabled: bool = True

    @property
    def normalized_email(self) -> str:
        return self.email.strip().lower()


@dataclass(frozen=True)
class Obligation:
    """Shared base of every record stored against a car"""
    id: int
    car_id: int
    user_id: int
    service_type: ServiceType
    expiry_date: date
    sent: bool = False


@dataclass(frozen=True)
class ReminderObligation(Obligation):
    """Insurance, tax, inspection and other records that expire"""

    def __post_init__(self):
        if self.service_type not in REMINDER_SERVICE_TYPES:
            raise ValueError(
                f"{self.service_type.value} is not a reminder service type"
            )


@dataclass(frozen=True)
class RefuelRecord(Obligation):
    """A fuel stop; informational only"""
    liters: Optional[float] = None
    price_per_liter: Optional[float] = None
    fuel_type: Optional[str] = None
    cost: Optional[float] = None

    @property
    def total_cost(self) -> Optional[float]:
        if self.cost is not None:
            return self.cost
        if self.liters is not None and self.price_per_liter is not None:
            return round(self.liters * self.price_per_liter, 2)
        return None


@dataclass(frozen=True)
class ExpenseRecord(Obligation):
    """Repair, maintenance, tires or a free-text entry"""
    cost: Optional[float] = None
    notes: Optional[str] = None


AnyObligation = Union[ReminderObligation, RefuelRecord, ExpenseRecord]


def obligation_from_record(record) -> AnyObligation:
    """
    Build the matching obligation variant from a `services` row

    Args:
        record: Any object with the columns of the services table

    Returns:
        ReminderObligation, RefuelRecord or ExpenseRecord
    """
    service_type = parse_service_type(record.service_type)
    base = dict(
        id=record.id,
        car_id=record.car_id,
        user_id=record.user_id,
        service_type=service_type,
        expiry_date=record.expiry_date,
        sent=bool(record.reminder_sent),
    )

    if service_type in REMINDER_SERVICE_TYPES:
        return ReminderObligation(**base)
    if service_type == ServiceType.REFUEL:
        return RefuelRecord(
            **base,
            liters=record.liters,
            price_per_liter=record.price_per_liter,
            fuel_type=record.fuel_type,
            cost=record.cost,
        )
    return ExpenseRecord(**base, cost=record.cost, notes=record.notes)
