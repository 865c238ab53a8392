"""
JSON-file backed provider and booking store.

The document mirrors the clinic backend's tables::

    {
        "providers": [{"id": 1, "name": "...", "availableDays": [...], ...}],
        "bookings": [{"id": 1, "doctorId": 1, "appointmentDate": "...", "duration": 30}]
    }
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime
from pydantic import ValidationError

from ..domain.exceptions import StoreError
from ..domain.models import STATUS_ACTIVE, STATUS_CANCELLED, Booking
from ..domain.provider import ProviderProfile

logger = logging.getLogger(__name__)


class JsonBookingStore:
    """
    Store implementation reading and writing a single JSON document.

    A missing file is treated as an empty clinic. Every write rewrites the
    whole document through a temporary file; in-memory state only changes
    once that write has succeeded.

    File I/O is synchronous, so the async methods block the event loop
    while reading or writing. That suits the single-command CLI; a
    long-running server should use a store backed by an async driver.
    """

    def __init__(self, path: Path, timezone: str = "UTC"):
        """
        Initialize the store.

        Args:
            path: Location of the JSON document
            timezone: IANA timezone that naive timestamps are interpreted in
        """
        self.path = Path(path)
        self.timezone = timezone
        self._providers: Dict[int, ProviderProfile] = {}
        self._bookings: List[Booking] = []
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug("Store file %s does not exist; starting empty", self.path)
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Invalid JSON in {self.path}: {exc}") from exc
        except OSError as exc:
            raise StoreError(f"Could not read {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError(f"{self.path} must contain a mapping at the root level.")

        for record in data.get("providers", []):
            try:
                provider = ProviderProfile.model_validate(record)
            except ValidationError as exc:
                raise StoreError(f"Invalid provider record {record!r}: {exc}") from exc
            self._providers[provider.id] = provider

        for record in data.get("bookings", []):
            self._bookings.append(self._parse_booking(record))

        logger.debug(
            "Loaded %d provider(s) and %d booking(s) from %s",
            len(self._providers), len(self._bookings), self.path,
        )

    def _parse_booking(self, record: Dict[str, Any]) -> Booking:
        try:
            start = pendulum.parse(record["appointmentDate"], tz=self.timezone)
            if not isinstance(start, DateTime):
                raise ValueError(f"not a timestamp: {record['appointmentDate']!r}")
            return Booking(
                start=start.in_timezone(self.timezone),
                duration_minutes=record.get("duration"),
                provider_id=int(record["doctorId"]),
                booking_id=record.get("id"),
                status=record.get("status", STATUS_ACTIVE),
                pet_id=record.get("petId"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"Invalid booking record {record!r}: {exc}") from exc

    @staticmethod
    def _booking_record(booking: Booking) -> Dict[str, Any]:
        return {
            "id": booking.booking_id,
            "doctorId": booking.provider_id,
            "appointmentDate": booking.start.isoformat(),
            "duration": booking.duration_minutes,
            "status": booking.status,
            "petId": booking.pet_id,
        }

    def _save(self, providers: Dict[int, ProviderProfile], bookings: List[Booking]) -> None:
        """Write the given snapshot; callers adopt it only if this succeeds."""
        document = {
            "providers": [
                provider.to_record()
                for provider in sorted(providers.values(), key=lambda p: p.id)
            ],
            "bookings": [self._booking_record(booking) for booking in bookings],
        }
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            temp_path.replace(self.path)
        except OSError as exc:
            raise StoreError(f"Could not write {self.path}: {exc}") from exc

    async def get_provider(self, provider_id: int) -> Optional[ProviderProfile]:
        return self._providers.get(provider_id)

    async def list_providers(self) -> List[ProviderProfile]:
        return list(self._providers.values())

    async def list_bookings(
        self,
        provider_id: int,
        start: DateTime,
        end: DateTime,
    ) -> List[Booking]:
        return [
            booking
            for booking in self._bookings
            if booking.provider_id == provider_id
            and booking.status != STATUS_CANCELLED
            and start <= booking.start < end
        ]

    async def list_provider_bookings(
        self,
        provider_id: int,
        status: Optional[str] = None,
    ) -> List[Booking]:
        """Every booking of a provider, newest appointment first."""
        found = [
            booking
            for booking in self._bookings
            if booking.provider_id == provider_id
            and (status is None or booking.status == status)
        ]
        return sorted(found, key=lambda b: b.start, reverse=True)

    async def add_booking(self, booking: Booking) -> Booking:
        next_id = max((b.booking_id or 0 for b in self._bookings), default=0) + 1
        stored = dataclasses.replace(booking, booking_id=next_id)
        bookings = [*self._bookings, stored]
        self._save(self._providers, bookings)
        self._bookings = bookings
        return stored

    async def update_booking_status(self, booking_id: int, status: str) -> Optional[Booking]:
        for index, booking in enumerate(self._bookings):
            if booking.booking_id == booking_id:
                break
        else:
            return None

        updated = dataclasses.replace(booking, status=status)
        bookings = list(self._bookings)
        bookings[index] = updated
        self._save(self._providers, bookings)
        self._bookings = bookings
        return updated

    async def save_provider(self, provider: ProviderProfile) -> ProviderProfile:
        providers = {**self._providers, provider.id: provider}
        self._save(providers, self._bookings)
        self._providers = providers
        return provider
