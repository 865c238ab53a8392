"""
Domain-specific exception hierarchy for the vetslots application.
"""


class VetSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidSlotRequestError(VetSlotsError, ValueError):
    """Raised when a caller supplies an unparseable date or a bad duration."""


class ProviderNotFoundError(VetSlotsError):
    """Raised when no provider exists for the requested id."""


class ProviderUnavailableError(VetSlotsError):
    """Raised when a booking targets a provider or day that takes no appointments."""


class BookingNotFoundError(VetSlotsError):
    """Raised when no booking exists for the requested id."""


class SlotUnavailableError(VetSlotsError):
    """Raised when the requested start time is not (or no longer) bookable."""


class StoreError(VetSlotsError):
    """Raised when provider or booking data cannot be read or written."""
