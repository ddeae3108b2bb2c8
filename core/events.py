"""
Domain events for the appointment back-office.

Immutable event objects published after a state change has been written.
Events carry the full domain object so handlers don't need to re-fetch.

Event Categories:
- AppointmentEvent: status changes (confirm, complete, cancel) and deletion
- CompletionEvent: completion record created or updated
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class BackOfficeEvent:
    """Base class for all domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# APPOINTMENT EVENTS
# =============================================================================


@dataclass(frozen=True)
class AppointmentEvent(BackOfficeEvent):
    """Events related to the appointment lifecycle."""
    appointment: Any = None  # Appointment; Any avoids a models import cycle

    @classmethod
    def create(cls, appointment: Any):
        return cls(appointment=appointment)


@dataclass(frozen=True)
class AppointmentConfirmed(AppointmentEvent):
    """Appointment moved to CONFIRMED (with its staff assignment)."""


@dataclass(frozen=True)
class AppointmentCompleted(AppointmentEvent):
    """Appointment moved to COMPLETED."""


@dataclass(frozen=True)
class AppointmentCancelled(AppointmentEvent):
    """Appointment moved to CANCELLED."""


@dataclass(frozen=True)
class AppointmentDeleted(AppointmentEvent):
    """Appointment was removed. Carries its last stored state."""


# =============================================================================
# COMPLETION EVENTS
# =============================================================================


@dataclass(frozen=True)
class CompletionEvent(BackOfficeEvent):
    """Events related to completion records."""
    record: Any = None  # CompletionRecord

    @classmethod
    def create(cls, record: Any):
        return cls(record=record)


@dataclass(frozen=True)
class CompletionRecorded(CompletionEvent):
    """A completion record was created and its appointment completed."""


@dataclass(frozen=True)
class CompletionRevised(CompletionEvent):
    """An existing completion record's ledger and notes were replaced."""


@dataclass(frozen=True)
class CompletionRemoved(CompletionEvent):
    """A completion record was deleted; its appointment stays completed."""
