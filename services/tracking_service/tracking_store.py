"""Persistence operations for trackings and their stopovers."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from shared.exceptions import NotFoundError, StorageError, ValidationError

from .identifiers import generate_tracking_id
from .models import Stopover, Tracking

logger = logging.getLogger(__name__)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _require(message: str, **values):
    missing = [name for name, value in values.items() if value is None or value == ""]
    if missing:
        raise ValidationError(message, fields=missing)


class TrackingStore:
    """Creates, reads and updates trackings within one session."""

    def __init__(
        self,
        session: AsyncSession,
        max_id_attempts: int = 3,
        id_generator: Callable[[], str] = generate_tracking_id,
    ):
        self.session = session
        self.max_id_attempts = max_id_attempts
        self.id_generator = id_generator

    async def create_tracking(
        self,
        from_address: Optional[str],
        from_date: Optional[datetime],
        tracking_status: Optional[str],
        delivery_address: Optional[str] = None,
        delivery_date: Optional[datetime] = None,
    ) -> Tracking:
        """
        Create a tracking under a freshly generated identifier.

        An identifier rejected by the unique constraint is replaced and the
        insert retried, up to max_id_attempts times.

        Raises:
            ValidationError: a required field is missing or empty
            StorageError: the insert failed
        """
        _require(
            "From address, from date, and tracking status are required",
            fromAddress=from_address,
            fromDate=from_date,
            trackingStatus=tracking_status,
        )

        fields = dict(
            from_address=from_address,
            delivery_address=delivery_address,
            from_date=to_utc_naive(from_date),
            delivery_date=to_utc_naive(delivery_date),
            tracking_status=tracking_status,
        )

        async with self._storage_errors("Error creating tracking"):
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_id_attempts),
                retry=retry_if_exception_type(IntegrityError),
                reraise=True,
            ):
                with attempt:
                    tracking = await self._insert_tracking(fields)

        logger.info(f"Created tracking {tracking.tracking_id}")
        return tracking

    async def get_tracking(self, tracking_id: str) -> Tracking:
        """Get a tracking with its stopovers loaded."""
        async with self._storage_errors("Error fetching tracking information"):
            result = await self.session.execute(
                select(Tracking)
                .options(selectinload(Tracking.stopovers))
                .where(Tracking.tracking_id == tracking_id)
                .execution_options(populate_existing=True)
            )
            tracking = result.scalar_one_or_none()

        if not tracking:
            raise NotFoundError(tracking_id)
        return tracking

    async def add_stopover(
        self,
        tracking_id: str,
        stopover_address: Optional[str],
        stopover_date: Optional[datetime],
    ) -> Stopover:
        """Append a stopover to an existing tracking."""
        _require(
            "Stopover address and date are required",
            stopoverAddress=stopover_address,
            stopoverDate=stopover_date,
        )

        async with self._storage_errors("Error adding stopover"):
            tracking = await self._find(tracking_id)

            stopover = Stopover(
                tracking_pk=tracking.id,
                stopover_address=stopover_address,
                stopover_date=to_utc_naive(stopover_date),
            )
            self.session.add(stopover)
            await self.session.commit()

        logger.info(f"Added stopover to tracking {tracking_id}")
        return stopover

    async def update_status(self, tracking_id: str, tracking_status: Optional[str]) -> Tracking:
        """Overwrite the status of a tracking. Any text is accepted."""
        _require("Tracking status is required", trackingStatus=tracking_status)

        async with self._storage_errors("Error updating tracking status"):
            tracking = await self._find(tracking_id)

            tracking.tracking_status = tracking_status
            tracking.updated_at = datetime.utcnow()
            await self.session.commit()

        logger.info(f"Tracking {tracking_id} status updated to {tracking_status!r}")
        return tracking

    async def delete_tracking(self, tracking_id: str):
        """Delete a tracking; its stopovers go with it."""
        async with self._storage_errors("Error deleting tracking"):
            tracking = await self._find(tracking_id)
            await self.session.delete(tracking)
            await self.session.commit()

        logger.info(f"Deleted tracking {tracking_id}")

    async def _find(self, tracking_id: str) -> Tracking:
        result = await self.session.execute(
            select(Tracking).where(Tracking.tracking_id == tracking_id)
        )
        tracking = result.scalar_one_or_none()
        if not tracking:
            raise NotFoundError(tracking_id)
        return tracking

    async def _insert_tracking(self, fields: dict) -> Tracking:
        tracking = Tracking(tracking_id=self.id_generator(), stopovers=[], **fields)
        self.session.add(tracking)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.warning(f"Tracking ID {tracking.tracking_id} rejected by the database")
            raise
        return tracking

    @asynccontextmanager
    async def _storage_errors(self, message: str):
        """Roll back and re-raise database and connection failures as StorageError."""
        try:
            yield
        except (SQLAlchemyError, OSError) as e:
            await self.session.rollback()
            logger.error(f"{message}: {str(e)}", exc_info=True)
            raise StorageError(message, e) from e
