"""
Obligation store - the narrow query surface the reminder sweep runs against.
Each call opens its own short-lived session so a sweep never holds a
connection across email sends.
"""

import logging
from typing import List, Optional, Protocol

from sqlalchemy.engine import Engine

from carguard.database import get_session
from carguard.models import AnyObligation, CarInfo, UserSettings, obligation_from_record
from carguard.repositories import CarRepository, ServiceRepository, UserRepository

logger = logging.getLogger(__name__)


class ObligationStore(Protocol):
    """What the sweeper needs from persistence"""

    def list_unsent(self) -> List[AnyObligation]: ...

    def get_car(self, car_id: int) -> Optional[CarInfo]: ...

    def get_user(self, user_id: int) -> Optional[UserSettings]: ...

    def mark_sent(self, obligation_id: int) -> None: ...


class SqlObligationStore:
    """ObligationStore backed by the SQLModel tables"""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_unsent(self) -> List[AnyObligation]:
        """All services with reminder_sent == False, in storage order"""
        with get_session(self.engine) as session:
            rows = ServiceRepository(session).get_unsent_services()
            obligations = []
            for row in rows:
                try:
                    obligations.append(obligation_from_record(row))
                except ValueError as e:
                    logger.warning(f"Skipping service {row.id}: {e}")
            return obligations

    def get_car(self, car_id: int) -> Optional[CarInfo]:
        with get_session(self.engine) as session:
            car = CarRepository(session).get_car(car_id)
            if car is None:
                return None
            return CarInfo(
                id=car.id,
                user_id=car.user_id,
                brand=car.brand,
                model=car.model,
                year=car.year,
            )

    def get_user(self, user_id: int) -> Optional[UserSettings]:
        with get_session(self.engine) as session:
            user = UserRepository(session).get_user(user_id)
            if user is None:
                return None
            return UserSettings(
                id=user.id,
                email=user.email,
                reminder_days=user.reminder_days,
                reminders_enabled=user.reminders_enabled,
            )

    def mark_sent(self, obligation_id: int) -> None:
        with get_session(self.engine) as session:
            matched = ServiceRepository(session).mark_reminder_sent(obligation_id)
        if not matched:
            logger.warning(
                f"Service {obligation_id} disappeared before it could be marked sent"
            )
