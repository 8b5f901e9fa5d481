import logging
import random
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.config import settings
from app.db import SessionLocal
from app.models.ra_sequence import RaSequence
from app.models.return_request import ReturnRequest
from app.utils.transactions import smart_transaction

log = logging.getLogger(__name__)

RA_MAX_COUNTER = 99999


class SequenceExhausted(Exception):
    pass


class RaNumberGenerator:
    """
    Issues Return Authorization numbers shaped RA-yyyymmdd-NNNNN.

    The per-day counter in `ra_sequences` is incremented in its own short
    transaction, so concurrent approvals never share a number. When that path
    is disabled or fails, a random suffix is drawn and checked against issued
    numbers a bounded number of times; that path can still collide.
    """

    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        clock: Optional[Callable[[], datetime]] = None,
        use_sequence: Optional[bool] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.use_sequence = settings.RA_SEQUENCE_ENABLED if use_sequence is None else use_sequence

    def _day(self) -> str:
        return self.clock().strftime("%Y%m%d")

    @staticmethod
    def _bump(s, day: str) -> int:
        bumped = s.execute(
            update(RaSequence)
            .where(RaSequence.day == day)
            .values(last_value=RaSequence.last_value + 1)
        ).rowcount
        if not bumped:
            s.add(RaSequence(day=day, last_value=1))
            s.flush()
        return s.query(RaSequence.last_value).filter(RaSequence.day == day).scalar()

    def _next_value(self, day: str) -> int:
        with self.session_factory() as s:
            try:
                with smart_transaction(s):
                    value = self._bump(s, day)
            except IntegrityError:
                # another worker created today's row first
                with smart_transaction(s):
                    value = self._bump(s, day)
        if value > RA_MAX_COUNTER:
            raise SequenceExhausted(f"RA sequence for {day} passed {RA_MAX_COUNTER}")
        return value

    def from_sequence(self) -> str:
        day = self._day()
        return f"RA-{day}-{self._next_value(day):05d}"

    def _issued(self, code: str) -> bool:
        with self.session_factory() as s:
            return (
                s.query(ReturnRequest.id)
                .filter(ReturnRequest.return_authorization_number == code)
                .first()
                is not None
            )

    def fallback(self) -> str:
        day = self._day()
        code = None
        for _ in range(max(1, settings.RA_FALLBACK_ATTEMPTS)):
            code = f"RA-{day}-{random.randint(0, RA_MAX_COUNTER):05d}"
            try:
                if not self._issued(code):
                    return code
            except SQLAlchemyError as e:
                log.warning("could not check RA %s for collisions: %s", code, e)
                return code
            log.warning("fallback RA %s already issued, drawing again", code)
        return code

    def generate(self) -> str:
        if self.use_sequence:
            try:
                return self.from_sequence()
            except (SQLAlchemyError, SequenceExhausted) as e:
                log.error("RA sequence unavailable, using fallback: %s", e)
        return self.fallback()
