"""
Tests for the JSON-file store adapter.
"""

import asyncio
import json

import pendulum
import pytest

from vetslots.adapters.json_store import JsonBookingStore
from vetslots.domain.exceptions import StoreError
from vetslots.domain.models import STATUS_ACTIVE, STATUS_CANCELLED, STATUS_PENDING_PAYMENT, Booking

TZ = "Asia/Kathmandu"

DOCUMENT = {
    "providers": [
        {
            "id": 1,
            "name": "Dr. Sita Sharma",
            "specialization": "Small animal surgery",
            "availableDays": ["Monday"],
            "availableHours": {"start": "09:00", "end": "17:00"},
            "leaveDays": [],
        },
        {
            "id": 2,
            "name": "Dr. Ram Thapa",
            "availableDays": '["Tuesday"]',
            "availableHours": '{"start": "10:00", "end": "14:00"}',
        },
    ],
    "bookings": [
        {"id": 1, "doctorId": 1, "appointmentDate": "2024-11-25T09:00:00", "duration": 30, "status": "ACTIVE"},
        {"id": 2, "doctorId": 1, "appointmentDate": "2024-11-25T11:00:00", "duration": None},
        {"id": 3, "doctorId": 1, "appointmentDate": "2024-11-25T14:00:00", "status": "CANCELLED"},
        {"id": 4, "doctorId": 1, "appointmentDate": "2024-11-26T09:00:00+05:45"},
        {"id": 5, "doctorId": 2, "appointmentDate": "2024-11-25T10:00:00"},
    ],
}


@pytest.fixture
def store_path(tmp_path):
    path = tmp_path / "clinic.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    return path


def _day(day: int):
    start = pendulum.datetime(2024, 11, day, tz=TZ)
    return start, start.add(days=1)


class TestJsonBookingStore:
    """Tests for JsonBookingStore."""

    def test_loads_providers(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)

        providers = asyncio.run(store.list_providers())
        second = asyncio.run(store.get_provider(2))

        assert {p.id for p in providers} == {1, 2}
        assert second.available_days == ["Tuesday"]
        assert str(second.available_hours) == "10:00-14:00"
        assert asyncio.run(store.get_provider(99)) is None

    def test_list_bookings_for_day(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)

        bookings = asyncio.run(store.list_bookings(1, *_day(25)))

        assert [b.booking_id for b in bookings] == [1, 2]
        assert bookings[0].start == pendulum.datetime(2024, 11, 25, 9, 0, tz=TZ)
        assert bookings[1].duration_minutes is None
        assert bookings[1].effective_duration == 30

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonBookingStore(tmp_path / "missing.json", timezone=TZ)

        assert asyncio.run(store.list_providers()) == []

    def test_add_booking_persists_with_next_id(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)
        booking = Booking(
            start=pendulum.datetime(2024, 11, 25, 9, 30, tz=TZ),
            duration_minutes=45,
            provider_id=1,
            status=STATUS_PENDING_PAYMENT,
            pet_id=3,
        )

        stored = asyncio.run(store.add_booking(booking))

        assert stored.booking_id == 6
        reloaded = JsonBookingStore(store_path, timezone=TZ)
        day_bookings = asyncio.run(reloaded.list_bookings(1, *_day(25)))
        assert [b.booking_id for b in day_bookings] == [1, 2, 6]
        assert day_bookings[-1].duration_minutes == 45
        assert day_bookings[-1].pet_id == 3
        assert not store_path.with_name("clinic.json.tmp").exists()

    def test_save_provider_round_trips_camel_case(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)
        provider = asyncio.run(store.get_provider(1))

        asyncio.run(store.save_provider(provider.with_availability(leave_days=["2024-12-25"])))

        raw = json.loads(store_path.read_text(encoding="utf-8"))
        saved = next(p for p in raw["providers"] if p["id"] == 1)
        assert saved["leaveDays"] == ["2024-12-25"]
        assert saved["availableHours"] == {"start": "09:00", "end": "17:00"}

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "[1, 2, 3]",
            json.dumps({"providers": [{"id": 1}]}),
            json.dumps({"bookings": [{"id": 1, "appointmentDate": "2024-11-25T09:00:00"}]}),
            json.dumps({"bookings": [{"id": 1, "doctorId": 1, "appointmentDate": "someday"}]}),
        ],
    )
    def test_malformed_documents_raise_store_error(self, tmp_path, content):
        path = tmp_path / "clinic.json"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(StoreError):
            JsonBookingStore(path, timezone=TZ)

    def test_list_provider_bookings_includes_cancelled_newest_first(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)

        every = asyncio.run(store.list_provider_bookings(1))
        cancelled = asyncio.run(store.list_provider_bookings(1, STATUS_CANCELLED))

        assert [b.booking_id for b in every] == [4, 3, 2, 1]
        assert [b.booking_id for b in cancelled] == [3]

    def test_update_booking_status_persists(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)

        updated = asyncio.run(store.update_booking_status(1, STATUS_CANCELLED))

        assert updated.status == STATUS_CANCELLED
        assert [b.booking_id for b in asyncio.run(store.list_bookings(1, *_day(25)))] == [2]
        reloaded = JsonBookingStore(store_path, timezone=TZ)
        assert [b.booking_id for b in asyncio.run(reloaded.list_bookings(1, *_day(25)))] == [2]

    def test_update_unknown_booking_returns_none(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)

        assert asyncio.run(store.update_booking_status(99, STATUS_CANCELLED)) is None


class TestJsonBookingStoreFailedWrites:
    """A write that cannot reach the disk leaves the in-memory state untouched."""

    @pytest.fixture
    def unwritable_store(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        return JsonBookingStore(blocker / "clinic.json", timezone=TZ)

    def test_failed_add_booking_keeps_no_record(self, unwritable_store):
        booking = Booking(start=pendulum.datetime(2024, 11, 25, 9, 0, tz=TZ), provider_id=1)

        with pytest.raises(StoreError):
            asyncio.run(unwritable_store.add_booking(booking))

        assert asyncio.run(unwritable_store.list_bookings(1, *_day(25))) == []
        assert asyncio.run(unwritable_store.list_provider_bookings(1)) == []

    def test_failed_save_provider_keeps_no_record(self, unwritable_store, store_path):
        provider = asyncio.run(JsonBookingStore(store_path, timezone=TZ).get_provider(1))

        with pytest.raises(StoreError):
            asyncio.run(unwritable_store.save_provider(provider))

        assert asyncio.run(unwritable_store.list_providers()) == []
        assert asyncio.run(unwritable_store.get_provider(1)) is None

    def test_failed_status_update_keeps_old_status(self, store_path):
        store = JsonBookingStore(store_path, timezone=TZ)
        store.path = store_path.parent / "blocker" / "clinic.json"
        (store_path.parent / "blocker").write_text("not a directory", encoding="utf-8")

        with pytest.raises(StoreError):
            asyncio.run(store.update_booking_status(1, STATUS_CANCELLED))

        day_bookings = asyncio.run(store.list_bookings(1, *_day(25)))
        assert [b.booking_id for b in day_bookings] == [1, 2]
        assert day_bookings[0].status == STATUS_ACTIVE
