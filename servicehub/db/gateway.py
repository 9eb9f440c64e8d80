"""Persistence gateway for tracking records."""

import logging
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from servicehub.core.errors import DuplicateCheckInError, PersistenceError
from servicehub.db.models import BookingTracking, TrackingPing

logger = logging.getLogger(__name__)


class TrackingGateway(Protocol):
    """Record-oriented store; each call is atomic for a single record."""

    async def create(
        self, record: BookingTracking, ping: Optional[TrackingPing] = None
    ) -> BookingTracking:
        ...

    async def update(
        self, record: BookingTracking, ping: Optional[TrackingPing] = None
    ) -> BookingTracking:
        ...

    async def replace(self, old: BookingTracking, new: BookingTracking) -> BookingTracking:
        ...

    async def get(self, tracking_id: str) -> Optional[BookingTracking]:
        ...

    async def get_by_booking(self, booking_id: str) -> Optional[BookingTracking]:
        ...

    async def list_by_bookings(self, booking_ids: list[str]) -> list[BookingTracking]:
        ...


class SqlTrackingGateway:
    """TrackingGateway over an async SQLModel session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self, record: BookingTracking, ping: Optional[TrackingPing] = None
    ) -> BookingTracking:
        """Insert a new record. A second record for the same booking is refused."""
        self._session.add(record)
        if ping is not None:
            self._session.add(ping)
        try:
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            logger.warning(f"Duplicate tracking record: booking={record.booking_id}")
            raise DuplicateCheckInError(
                f"Tracking already exists for booking {record.booking_id}"
            )
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Tracking insert failed: {type(e).__name__}: {e}")
            raise PersistenceError(str(e)) from e

        await self._session.refresh(record)
        return record

    async def update(
        self, record: BookingTracking, ping: Optional[TrackingPing] = None
    ) -> BookingTracking:
        """Write changes to an existing record, optionally with a new ping."""
        self._session.add(record)
        if ping is not None:
            self._session.add(ping)
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Tracking update failed: {type(e).__name__}: {e}")
            raise PersistenceError(str(e)) from e

        await self._session.refresh(record)
        return record

    async def replace(self, old: BookingTracking, new: BookingTracking) -> BookingTracking:
        """
        Swap a booking's record for a new one in a single transaction.

        The old record and its pings are deleted before the insert, so the
        booking never has two records and a failure leaves the old one intact.
        """
        try:
            pings = await self._session.exec(
                select(TrackingPing).where(TrackingPing.tracking_id == old.id)
            )
            for ping in list(pings):
                await self._session.delete(ping)
            await self._session.flush()
            await self._session.delete(old)
            # booking_id is unique: the old row must be gone before the insert
            await self._session.flush()
            self._session.add(new)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Tracking replace failed: {type(e).__name__}: {e}")
            raise PersistenceError(str(e)) from e

        await self._session.refresh(new)
        return new

    async def get(self, tracking_id: str) -> Optional[BookingTracking]:
        result = await self._session.exec(
            select(BookingTracking).where(BookingTracking.id == tracking_id)
        )
        return result.one_or_none()

    async def get_by_booking(self, booking_id: str) -> Optional[BookingTracking]:
        result = await self._session.exec(
            select(BookingTracking).where(BookingTracking.booking_id == booking_id)
        )
        return result.one_or_none()

    async def list_by_bookings(self, booking_ids: list[str]) -> list[BookingTracking]:
        if not booking_ids:
            return []
        result = await self._session.exec(
            select(BookingTracking).where(col(BookingTracking.booking_id).in_(booking_ids))
        )
        return list(result)
