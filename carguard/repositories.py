"""
Repository pattern for database access
Provides clean separation between business logic and data access
"""

from sqlmodel import Session, select, update
from typing import List, Optional, Union
from datetime import date, datetime, timezone

from carguard.config import get_config
from carguard.db_models import User, Car, Service, utc_now
from carguard.models import ServiceType, parse_service_type

MIN_REMINDER_DAYS = 1
MAX_REMINDER_DAYS = 365


def _check_reminder_days(reminder_days: int) -> int:
    if not MIN_REMINDER_DAYS <= reminder_days <= MAX_REMINDER_DAYS:
        raise ValueError(
            f"reminder_days must be between {MIN_REMINDER_DAYS} and {MAX_REMINDER_DAYS}"
        )
    return reminder_days


class UserRepository:
    """Repository for User operations"""

    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)"""
        statement = select(User).where(User.email == email.strip().lower())
        return self.session.exec(statement).first()

    def create_user(
        self,
        name: str,
        email: str,
        reminder_days: Optional[int] = None,
        reminders_enabled: bool = True,
    ) -> User:
        """Create new user; reminder_days defaults to DEFAULT_REMINDER_DAYS"""
        if reminder_days is None:
            reminder_days = get_config().default_reminder_days

        user = User(
            name=name,
            email=email.strip().lower(),
            reminder_days=_check_reminder_days(reminder_days),
            reminders_enabled=reminders_enabled,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def set_reminder_settings(
        self,
        user_id: int,
        reminder_days: Optional[int] = None,
        reminders_enabled: Optional[bool] = None,
    ) -> Optional[User]:
        """Update the lookahead window and/or the reminder switch"""
        user = self.get_user(user_id)
        if user is None:
            return None

        if reminder_days is not None:
            user.reminder_days = _check_reminder_days(reminder_days)
        if reminders_enabled is not None:
            user.reminders_enabled = reminders_enabled

        self.session.commit()
        self.session.refresh(user)
        return user

    def update_email(self, user_id: int, email: str) -> Optional[User]:
        """Change a user's email address"""
        user = self.get_user(user_id)
        if user is None:
            return None
        user.email = email.strip().lower()
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_all_users(self) -> List[User]:
        """Get all users"""
        statement = select(User)
        return list(self.session.exec(statement))

    def delete_user(self, user_id: int) -> bool:
        """Delete user together with their cars and services"""
        user = self.get_user(user_id)
        if user:
            self.session.delete(user)
            self.session.commit()
            return True
        return False


class CarRepository:
    """Repository for Car operations"""

    def __init__(self, session: Session):
        self.session = session

    def get_car(self, car_id: int) -> Optional[Car]:
        """Get car by ID"""
        return self.session.get(Car, car_id)

    def create_car(
        self,
        user_id: int,
        brand: str,
        model: str,
        year: int,
        license_plate: Optional[str] = None,
    ) -> Car:
        """Register a car for a user"""
        max_year = datetime.now(timezone.utc).year + 1
        if not 1900 <= year <= max_year:
            raise ValueError(f"year must be between 1900 and {max_year}")

        car = Car(
            user_id=user_id,
            brand=brand,
            model=model,
            year=year,
            license_plate=license_plate,
        )
        self.session.add(car)
        self.session.commit()
        self.session.refresh(car)
        return car

    def get_user_cars(self, user_id: int) -> List[Car]:
        """Get all cars owned by a user"""
        statement = select(Car).where(Car.user_id == user_id)
        return list(self.session.exec(statement))

    def update_car(
        self,
        car_id: int,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        year: Optional[int] = None,
        license_plate: Optional[str] = None,
    ) -> Optional[Car]:
        """Update car details"""
        car = self.get_car(car_id)
        if not car:
            return None

        if brand:
            car.brand = brand
        if model:
            car.model = model
        if year:
            car.year = year
        if license_plate:
            car.license_plate = license_plate

        self.session.commit()
        self.session.refresh(car)
        return car

    def delete_car(self, car_id: int) -> bool:
        """Delete car and all its services"""
        car = self.get_car(car_id)
        if car:
            self.session.delete(car)
            self.session.commit()
            return True
        return False


class ServiceRepository:
    """Repository for Service (obligation) operations"""

    def __init__(self, session: Session):
        self.session = session

    def get_service(self, service_id: int) -> Optional[Service]:
        """Get service by ID"""
        return self.session.get(Service, service_id)

    def create_service(
        self,
        car_id: int,
        user_id: int,
        service_type: Union[str, ServiceType],
        expiry_date: date,
        cost: Optional[float] = None,
        liters: Optional[float] = None,
        price_per_liter: Optional[float] = None,
        fuel_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Service:
        """Add a service record to a car; reminders start un-sent"""
        service = Service(
            car_id=car_id,
            user_id=user_id,
            service_type=parse_service_type(service_type).value,
            expiry_date=expiry_date,
            reminder_sent=False,
            cost=cost,
            liters=liters,
            price_per_liter=price_per_liter,
            fuel_type=fuel_type,
            notes=notes,
        )
        self.session.add(service)
        self.session.commit()
        self.session.refresh(service)
        return service

    def get_car_services(self, car_id: int) -> List[Service]:
        """Get all services for a car, latest expiry first"""
        statement = (
            select(Service)
            .where(Service.car_id == car_id)
            .order_by(Service.expiry_date.desc())
        )
        return list(self.session.exec(statement))

    def update_service(
        self,
        service_id: int,
        service_type: Optional[Union[str, ServiceType]] = None,
        expiry_date: Optional[date] = None,
        cost: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> Optional[Service]:
        """
        Update a service record

        A new expiry date invalidates any reminder already sent, so the
        record is re-armed (reminder_sent reset to False).
        """
        service = self.get_service(service_id)
        if not service:
            return None

        if service_type is not None:
            service.service_type = parse_service_type(service_type).value
        if expiry_date is not None and expiry_date != service.expiry_date:
            service.expiry_date = expiry_date
            service.reminder_sent = False
        if cost is not None:
            service.cost = cost
        if notes is not None:
            service.notes = notes

        service.updated_at = utc_now()
        self.session.commit()
        self.session.refresh(service)
        return service

    def delete_service(self, service_id: int) -> bool:
        """Delete service"""
        service = self.get_service(service_id)
        if service:
            self.session.delete(service)
            self.session.commit()
            return True
        return False

    def get_unsent_services(self) -> List[Service]:
        """Get every service whose reminder has not been sent yet"""
        statement = (
            select(Service)
            .where(Service.reminder_sent == False)  # noqa: E712
            .order_by(Service.id)
        )
        return list(self.session.exec(statement))

    def mark_reminder_sent(self, service_id: int) -> int:
        """
        Flag one service as reminded

        Single-row update; writing True over True changes nothing.

        Returns:
            Number of rows matched (0 if the service is gone)
        """
        statement = (
            update(Service)
            .where(Service.id == service_id)
            .values(reminder_sent=True)
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount
