"""Tests for advance routing and staff assignment."""

import pytest

from core.exceptions import InvalidTransition, LedgerValidationError, PersistFailure
from core.interception import AdvanceRoute, StaffAssignment, intercepted_route, route_advance
from core.models import AppointmentStatus, Role
from factories import make_appointment


class TestRouteAdvance:

    def test_owner_confirm_goes_through_assignment(self):
        assert route_advance(Role.OWNER, AppointmentStatus.PENDING) == AdvanceRoute.ASSIGN_STAFF

    def test_owner_complete_goes_through_workflow(self):
        assert route_advance(Role.OWNER, AppointmentStatus.CONFIRMED) == AdvanceRoute.COMPLETE

    @pytest.mark.parametrize("status", [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED])
    def test_admin_advances_directly(self, status):
        assert route_advance(Role.ADMIN, status) == AdvanceRoute.DIRECT

    @pytest.mark.parametrize("role", list(Role))
    @pytest.mark.parametrize("status", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED])
    def test_terminal_states_are_blocked(self, role, status):
        assert route_advance(role, status) == AdvanceRoute.BLOCKED


class TestInterceptedRoute:

    def test_owner_targets_map_to_side_flows(self):
        assert intercepted_route(Role.OWNER, AppointmentStatus.CONFIRMED) == AdvanceRoute.ASSIGN_STAFF
        assert intercepted_route(Role.OWNER, AppointmentStatus.COMPLETED) == AdvanceRoute.COMPLETE

    def test_owner_cancel_not_intercepted(self):
        assert intercepted_route(Role.OWNER, AppointmentStatus.CANCELLED) is None

    @pytest.mark.parametrize("status", [AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED])
    def test_admin_never_intercepted(self, status):
        assert intercepted_route(Role.ADMIN, status) is None


class TestDefaultSelection:

    def test_current_assignment_preferred(self, gateway, staff_members):
        appointment = make_appointment(staff_id=8, staff_preferences=[7])

        assignment = StaffAssignment(appointment, gateway, staff=staff_members)

        assert assignment.default_selection() == 8

    def test_first_available_preference(self, gateway):
        assignment = StaffAssignment(gateway.appointments[1], gateway)
        assignment.load_staff()

        # preference 9 is inactive, so it is not in the loaded list
        assert assignment.default_selection() == 8

    def test_nothing_selected_without_match(self, gateway):
        appointment = make_appointment(staff_preferences=[99])
        assignment = StaffAssignment(appointment, gateway)
        assignment.load_staff()

        assert assignment.default_selection() is None

    def test_nothing_selected_before_staff_loaded(self, gateway):
        assignment = StaffAssignment(gateway.appointments[1], gateway)

        assert assignment.default_selection() is None
        assert assignment.staff == []


class TestConfirm:

    def test_confirm_assigns_and_confirms(self, gateway):
        assignment = StaffAssignment(gateway.appointments[1], gateway)
        assignment.load_staff()

        updated = assignment.confirm(7)

        assert updated.status == AppointmentStatus.CONFIRMED
        assert updated.staff_id == 7
        assert assignment.confirmed
        assert gateway.calls[-1] == ("request_status_change", 1, AppointmentStatus.CONFIRMED, 7)

    @pytest.mark.parametrize("staff_id", [None, 0])
    def test_empty_selection_rejected_without_request(self, gateway, staff_id):
        assignment = StaffAssignment(gateway.appointments[1], gateway)
        assignment.load_staff()

        with pytest.raises(LedgerValidationError, match="Please select a staff member"):
            assignment.confirm(staff_id)

        assert "request_status_change" not in gateway.call_names()
        assert gateway.appointments[1].status == AppointmentStatus.PENDING

    def test_staff_outside_loaded_list_rejected(self, gateway):
        assignment = StaffAssignment(gateway.appointments[1], gateway)
        assignment.load_staff()

        with pytest.raises(LedgerValidationError):
            assignment.confirm(9)

    def test_not_pending_rejected_before_request(self, gateway, staff_members):
        assignment = StaffAssignment(gateway.appointments[2], gateway, staff=staff_members)

        with pytest.raises(InvalidTransition):
            assignment.confirm(7)

        assert "request_status_change" not in gateway.call_names()

    def test_failure_leaves_appointment_pending(self, gateway):
        assignment = StaffAssignment(gateway.appointments[1], gateway)
        assignment.load_staff()
        gateway.fail_with = "Staff member is not available"

        with pytest.raises(PersistFailure, match="not available"):
            assignment.confirm(7)

        assert assignment.appointment.status == AppointmentStatus.PENDING
        assert not assignment.confirmed
