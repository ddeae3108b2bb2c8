"""Typed exceptions for the appointment workflow."""


class WorkflowError(Exception):
    """Base class for appointment workflow errors."""


class InvalidTransition(WorkflowError):
    """
    Requested status change is not in the transition table.

    Raised before any persistence call; the caller must not apply the change.
    """

    def __init__(self, current, target):
        self.current = current
        self.target = target
        current_name = getattr(current, "value", current)
        target_name = getattr(target, "value", target)
        super().__init__(f"Cannot move appointment from {current_name} to {target_name}")


class LedgerValidationError(WorkflowError):
    """A ledger line or assignment input failed validation. Nothing was mutated."""


class ReadOnlyWorkflow(WorkflowError):
    """Mutation attempted on a completion workflow opened in view mode."""


class PersistFailure(WorkflowError):
    """
    The persistence collaborator reported a failure.

    The message is the collaborator's own; local state is left as it was
    before the attempt so the caller can retry.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class CompletionRecordNotFound(WorkflowError):
    """
    No completion record exists for the appointment.

    Callers treat this as "no history yet", not as a failure.
    """

    def __init__(self, appointment_id: int):
        self.appointment_id = appointment_id
        super().__init__(f"No completion record for appointment {appointment_id}")


class SideFlowRequired(WorkflowError):
    """
    The role must reach this status through a side flow.

    An owner confirms through staff assignment and completes through the
    completion workflow; a plain status change to either target is refused.
    """

    def __init__(self, target, flow: str):
        self.target = target
        self.flow = flow
        target_name = getattr(target, "value", target)
        super().__init__(f"Moving an appointment to {target_name} requires {flow}")
