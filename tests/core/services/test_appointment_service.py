"""Tests for AppointmentService against a mocked PostgresClient."""

from unittest.mock import Mock

import pytest

from clients.postgres_client import PostgresClient
from core.audit import AuditAction, AuditLogger
from core.event_bus import EventBus
from core.events import AppointmentConfirmed, AppointmentDeleted
from core.models import AppointmentStatus, Role
from core.services.appointment_service import AppointmentService
from factories import make_appointment


def _row(status, **overrides):
    row = make_appointment(status=status).model_dump()
    row.update(overrides)
    return row


@pytest.fixture
def postgres():
    return Mock(spec=PostgresClient)


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def events():
    bus = EventBus()
    received = []
    bus.subscribe(AppointmentConfirmed, received.append)
    bus.subscribe(AppointmentDeleted, received.append)
    bus.received = received
    return bus


@pytest.fixture
def service(postgres, audit, events):
    return AppointmentService(postgres, audit, events)


class TestListForRole:

    def test_admin_sees_everything(self, service, postgres):
        postgres.execute.return_value = [_row(AppointmentStatus.PENDING)]

        appointments = service.list_for_role(Role.ADMIN, 1)

        query, params = postgres.execute.call_args[0]
        assert "WHERE" not in query.split("LEFT JOIN staff")[1]
        assert params == (200,)
        assert appointments[0].status == AppointmentStatus.PENDING

    def test_owner_scoped_to_owned_companies(self, service, postgres):
        postgres.execute.return_value = []

        service.list_for_role(Role.OWNER, 10, limit=50)

        query, params = postgres.execute.call_args[0]
        assert "c.owner_id = %s" in query
        assert params == (10, 50)

    @pytest.mark.parametrize("role, clause", [
        (Role.STAFF, "staff WHERE user_id = %s"),
        (Role.USER, "a.user_id = %s"),
    ])
    def test_staff_and_user_scopes(self, service, postgres, role, clause):
        postgres.execute.return_value = []

        service.list_for_role(role, 20)

        assert clause in postgres.execute.call_args[0][0]



class TestGetForRole:

    def test_owner_lookup_is_scoped(self, service, postgres):
        postgres.execute_single.return_value = _row(AppointmentStatus.CONFIRMED, id=250)

        appointment = service.get_for_role(250, Role.OWNER, 10)

        query, params = postgres.execute_single.call_args[0]
        assert "WHERE a.id = %s AND c.owner_id = %s" in query
        assert params == (250, 10)
        assert appointment.id == 250

    def test_hidden_appointment_is_none(self, service, postgres):
        postgres.execute_single.return_value = None

        assert service.get_for_role(3, Role.USER, 21) is None
        assert "a.user_id = %s" in postgres.execute_single.call_args[0][0]

    def test_admin_looks_up_unscoped(self, service, postgres):
        postgres.execute_single.return_value = _row(AppointmentStatus.PENDING)

        service.get_for_role(1, Role.ADMIN, 1)

        query, params = postgres.execute_single.call_args[0]
        assert query.endswith("WHERE a.id = %s")
        assert params == (1,)

class TestChangeStatus:

    def test_confirms_with_staff(self, service, postgres, audit, events):
        postgres.execute_single.side_effect = [
            _row(AppointmentStatus.PENDING),
            _row(AppointmentStatus.CONFIRMED, staff_id=7),
        ]
        postgres.execute_returning.return_value = [{"id": 1}]

        updated = service.change_status(1, AppointmentStatus.CONFIRMED, staff_id=7, actor_id=10, actor_role=Role.OWNER)

        assert updated.status == AppointmentStatus.CONFIRMED
        assert updated.staff_id == 7

        params = postgres.execute_returning.call_args[0][1]
        assert params[0] == AppointmentStatus.CONFIRMED
        assert params[1] == 7
        assert params[3:] == (1, AppointmentStatus.PENDING)

        kwargs = audit.log_change.call_args.kwargs
        assert kwargs["action"] == AuditAction.STATUS_CHANGE
        assert kwargs["changes"]["status"] == {"old": "pending", "new": "confirmed"}
        assert kwargs["changes"]["staff_id"] == {"old": None, "new": 7}
        assert kwargs["actor_id"] == 10

        assert len(events.received) == 1
        assert events.received[0].appointment.id == 1

    def test_missing_appointment(self, service, postgres):
        postgres.execute_single.return_value = None

        with pytest.raises(ValueError, match="not found"):
            service.change_status(1, AppointmentStatus.CONFIRMED)

    def test_disallowed_transition_writes_nothing(self, service, postgres, audit):
        postgres.execute_single.return_value = _row(AppointmentStatus.COMPLETED)

        with pytest.raises(ValueError, match="Invalid status transition"):
            service.change_status(1, AppointmentStatus.PENDING)

        postgres.execute_returning.assert_not_called()
        audit.log_change.assert_not_called()

    def test_concurrent_change_detected(self, service, postgres, audit):
        postgres.execute_single.return_value = _row(AppointmentStatus.PENDING)
        postgres.execute_returning.return_value = []

        with pytest.raises(ValueError, match="in flight"):
            service.change_status(1, AppointmentStatus.CONFIRMED)

        audit.log_change.assert_not_called()

    def test_works_without_event_bus(self, postgres, audit):
        service = AppointmentService(postgres, audit)
        postgres.execute_single.side_effect = [
            _row(AppointmentStatus.CONFIRMED),
            _row(AppointmentStatus.CANCELLED),
        ]
        postgres.execute_returning.return_value = [{"id": 1}]

        updated = service.change_status(1, AppointmentStatus.CANCELLED)

        assert updated.status == AppointmentStatus.CANCELLED


class TestDelete:

    def test_delete_audits_and_publishes(self, service, postgres, audit, events):
        postgres.execute_single.return_value = _row(AppointmentStatus.CANCELLED)
        postgres.execute_returning.return_value = [{"id": 1}]

        assert service.delete(1, actor_id=10, actor_role=Role.OWNER) is True

        assert audit.log_change.call_args.kwargs["action"] == AuditAction.DELETE
        assert isinstance(events.received[0], AppointmentDeleted)

    def test_delete_missing_returns_false(self, service, postgres, audit):
        postgres.execute_single.return_value = None

        assert service.delete(1) is False
        audit.log_change.assert_not_called()
