"""
Application services for consultation availability and booking.

The service coordinates provider and booking lookups via a store adapter and
delegates the slot computation to the domain-level ``SlotResolver``. The
store is described by a small protocol so tests can substitute a stub.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, List, Optional, Protocol, Union

import pendulum
from pendulum import DateTime

from ..domain.exceptions import (
    BookingNotFoundError,
    InvalidSlotRequestError,
    ProviderNotFoundError,
    ProviderUnavailableError,
    SlotUnavailableError,
)
from ..domain.models import (
    DEFAULT_DURATION_MINUTES,
    STATUS_CANCELLED,
    STATUS_PENDING_PAYMENT,
    Booking,
    SlotRequest,
    SlotResult,
    parse_duration,
    parse_status,
)
from ..domain.provider import ProviderProfile
from ..domain.slot_resolver import SlotResolver

logger = logging.getLogger(__name__)

PROVIDER_OFF_NOTE = "Provider is currently unavailable"


class BookingStoreProtocol(Protocol):
    """Protocol describing the persistence behaviour needed by the service."""

    async def get_provider(self, provider_id: int) -> Optional[ProviderProfile]:
        """Return the provider or None if it does not exist."""

    async def list_providers(self) -> List[ProviderProfile]:
        """Return every provider."""

    async def list_bookings(
        self,
        provider_id: int,
        start: DateTime,
        end: DateTime,
    ) -> List[Booking]:
        """Return non-cancelled bookings starting in ``[start, end)``."""

    async def add_booking(self, booking: Booking) -> Booking:
        """Persist a booking and return it with its assigned id."""

    async def update_booking_status(self, booking_id: int, status: str) -> Optional[Booking]:
        """Set a booking's status; return the updated booking or None if it does not exist."""

    async def list_provider_bookings(
        self,
        provider_id: int,
        status: Optional[str] = None,
    ) -> List[Booking]:
        """Return a provider's bookings of any status, newest first."""

    async def save_provider(self, provider: ProviderProfile) -> ProviderProfile:
        """Persist an updated provider profile."""


class AvailabilityService:
    """
    Orchestrates provider lookup, booking retrieval and slot resolution.

    Returned slots are advisory. ``book`` re-runs the resolution against
    freshly loaded bookings and inserts inside the same critical section, so
    two bookings created through one service cannot overlap.
    """

    def __init__(
        self,
        store: BookingStoreProtocol,
        slot_resolver: SlotResolver,
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> None:
        self._store = store
        self._slot_resolver = slot_resolver
        self._default_duration = default_duration_minutes
        self._write_lock = asyncio.Lock()

    @property
    def timezone(self) -> str:
        return self._slot_resolver.timezone

    async def find_slots(
        self,
        *,
        provider_id: int,
        target_date: Union[str, date],
        duration_minutes: Union[int, str, None] = None,
    ) -> SlotResult:
        """
        Resolve bookable start times for a provider on one date.

        Bookings are only loaded when the date is a working, non-leave day.
        """
        request = SlotRequest.parse(
            target_date,
            duration_minutes,
            default_duration=self._default_duration,
        )
        provider = await self._get_provider(provider_id)

        if not provider.available:
            return SlotResult(note=PROVIDER_OFF_NOTE)

        return await self._resolve_for(provider, request)

    async def book(
        self,
        *,
        provider_id: int,
        start: Union[str, DateTime],
        duration_minutes: Union[int, str, None] = None,
        pet_id: Optional[int] = None,
    ) -> Booking:
        """
        Create a booking after re-validating the slot at write time.

        Raises:
            ProviderNotFoundError: If the provider does not exist
            ProviderUnavailableError: If the provider or the date takes no bookings
            SlotUnavailableError: If the start time is not a free slot
        """
        duration = parse_duration(duration_minutes, default=self._default_duration)
        start_at = self._parse_start(start)
        request = SlotRequest(target_date=start_at.date(), duration_minutes=duration)

        async with self._write_lock:
            provider = await self._get_provider(provider_id)
            if not provider.available:
                raise ProviderUnavailableError(PROVIDER_OFF_NOTE)

            closed = self._slot_resolver.check_day(
                provider.schedule(),
                provider.window(),
                provider.leave_set(),
                request.target_date,
            )
            if closed is not None:
                raise ProviderUnavailableError(closed.note or "Provider has no schedule configured")

            result = await self._resolve_for(provider, request)
            if start_at not in result.slots:
                logger.warning(
                    "Rejected booking for provider %s at %s (%d min): slot not free",
                    provider.id, start_at.isoformat(), duration,
                )
                raise SlotUnavailableError(
                    f"{start_at.format('YYYY-MM-DD HH:mm')} is not an available "
                    f"{duration} minute slot for {provider.name}"
                )

            booking = await self._store.add_booking(
                Booking(
                    start=start_at,
                    duration_minutes=duration,
                    provider_id=provider.id,
                    status=STATUS_PENDING_PAYMENT,
                    pet_id=pet_id,
                )
            )

        logger.info(
            "Booked provider %s at %s for %d minute(s) (booking %s)",
            provider.id, start_at.isoformat(), duration, booking.booking_id,
        )
        return booking

    async def update_availability(
        self,
        provider_id: int,
        *,
        days: Optional[List[str]] = None,
        hours: Optional[Any] = None,
        available: Optional[bool] = None,
        leave_days: Optional[List[str]] = None,
    ) -> ProviderProfile:
        """Replace the given availability settings and persist the profile."""
        async with self._write_lock:
            provider = await self._get_provider(provider_id)
            updated = provider.with_availability(
                days=days,
                hours=hours,
                available=available,
                leave_days=leave_days,
            )
            saved = await self._store.save_provider(updated)

        logger.info("Updated availability for provider %s", provider_id)
        return saved

    async def list_providers(
        self,
        *,
        available_only: bool = False,
        specialization: Optional[str] = None,
    ) -> List[ProviderProfile]:
        """List providers, optionally filtered by availability and specialization."""
        providers = await self._store.list_providers()

        if available_only:
            providers = [p for p in providers if p.available]

        if specialization:
            needle = specialization.lower()
            providers = [p for p in providers if needle in p.specialization.lower()]

        return sorted(providers, key=lambda p: p.id)

    async def list_bookings(
        self,
        provider_id: int,
        *,
        status: Optional[str] = None,
    ) -> List[Booking]:
        """List a provider's bookings, newest first, optionally by status."""
        wanted = parse_status(status) if status is not None else None
        provider = await self._get_provider(provider_id)
        return await self._store.list_provider_bookings(provider.id, wanted)

    async def update_booking_status(self, booking_id: int, status: str) -> Booking:
        """
        Move a booking to a new status.

        A cancelled booking no longer occupies its slot.

        Raises:
            BookingNotFoundError: If the booking does not exist
            ValueError: If the status is not a known booking status
        """
        new_status = parse_status(status)

        async with self._write_lock:
            booking = await self._store.update_booking_status(booking_id, new_status)

        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        logger.info("Booking %s is now %s", booking_id, new_status)
        return booking

    async def cancel_booking(self, booking_id: int) -> Booking:
        return await self.update_booking_status(booking_id, STATUS_CANCELLED)

    async def _resolve_for(self, provider: ProviderProfile, request: SlotRequest) -> SlotResult:
        schedule = provider.schedule()
        window = provider.window()
        leave_dates = provider.leave_set()

        closed = self._slot_resolver.check_day(schedule, window, leave_dates, request.target_date)
        if closed is not None:
            return closed

        bookings = await self._load_day_bookings(provider.id, request.target_date)

        return self._slot_resolver.resolve(
            schedule,
            window,
            leave_dates,
            bookings,
            request.target_date,
            request.duration_minutes,
        )

    async def _load_day_bookings(self, provider_id: int, day: date) -> List[Booking]:
        """Load bookings in ``[start of day, start of next day)`` local time."""
        day_start = pendulum.datetime(day.year, day.month, day.day, tz=self.timezone)
        next_day = day_start.add(days=1)
        return await self._store.list_bookings(provider_id, day_start, next_day)

    async def _get_provider(self, provider_id: int) -> ProviderProfile:
        provider = await self._store.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFoundError(f"Provider {provider_id} not found")
        return provider

    def _parse_start(self, start: Union[str, DateTime]) -> DateTime:
        if isinstance(start, DateTime):
            return start.in_timezone(self.timezone)
        if not isinstance(start, str):
            raise InvalidSlotRequestError(f"Start time must be an ISO timestamp, got {start!r}")

        try:
            parsed = pendulum.parse(start, tz=self.timezone)
        except ValueError as exc:
            raise InvalidSlotRequestError(f"Invalid start time {start!r}") from exc

        if not isinstance(parsed, DateTime):
            raise InvalidSlotRequestError(f"Start time must include a date and a time, got {start!r}")
        return parsed.in_timezone(self.timezone)
