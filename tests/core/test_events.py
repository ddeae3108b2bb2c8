"""Tests for domain event objects."""

from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from core.events import AppointmentCompleted, AppointmentEvent, CompletionEvent, CompletionRemoved, CompletionRevised
from core.models import AppointmentStatus
from factories import make_appointment


class TestEventConstruction:

    def test_create_sets_payload_and_metadata(self):
        appointment = make_appointment(status=AppointmentStatus.COMPLETED)

        event = AppointmentCompleted.create(appointment)

        assert event.appointment is appointment
        assert isinstance(event.occurred_at, datetime)
        assert event.occurred_at.tzinfo is not None
        assert event.event_id

    def test_event_ids_are_unique(self):
        appointment = make_appointment()

        first = AppointmentCompleted.create(appointment)
        second = AppointmentCompleted.create(appointment)

        assert first.event_id != second.event_id

    def test_events_are_immutable(self):
        event = AppointmentCompleted.create(make_appointment())

        with pytest.raises(FrozenInstanceError):
            event.appointment = None

    def test_subclass_relationships(self):
        assert issubclass(AppointmentCompleted, AppointmentEvent)
        assert not issubclass(CompletionRevised, AppointmentEvent)
        assert issubclass(CompletionRemoved, CompletionEvent)
