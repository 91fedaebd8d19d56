from datetime import datetime
from typing import List

from common.errors import ForbiddenError, InvalidStateError
from dispatch.models import Assignment, AssignmentStatus

#courier-driven moves after the claim; completion only happens through the delivery code
COURIER_STEPS = {
    AssignmentStatus.ASSIGNED: AssignmentStatus.PICKED_UP,
    AssignmentStatus.PICKED_UP: AssignmentStatus.EN_ROUTE,
}


def claim_assignment(assignment: Assignment, courier_id: str, now: datetime) -> List[str]:
    """
    Called when a courier hits "Accept" on a broadcasted offer.
    Flips the assignment to ASSIGNED for that courier, clears the candidate set,
    and returns the candidate set as it was before the claim.
    """
    if assignment.status != AssignmentStatus.BROADCASTED:
        raise InvalidStateError(f"Assignment {assignment.id} is not in broadcasted state")

    if courier_id not in assignment.broadcasted_to:
        raise ForbiddenError(f"Courier {courier_id} is not authorized to accept assignment {assignment.id}")

    previous_candidates = list(assignment.broadcasted_to)

    assignment.status = AssignmentStatus.ASSIGNED
    assignment.assigned_to = courier_id
    assignment.accepted_at = now
    assignment.broadcasted_to = []

    return previous_candidates


def advance_assignment(assignment: Assignment, new_status: AssignmentStatus) -> Assignment:
    """
    assigned -> picked-up -> en-route, one step at a time.
    """
    expected = COURIER_STEPS.get(assignment.status)
    if expected is None or new_status != expected:
        raise InvalidStateError(
            f"Cannot move assignment {assignment.id} from {assignment.status.value} to {new_status.value}"
        )
    assignment.status = new_status
    return assignment


def complete_assignment(assignment: Assignment, now: datetime) -> Assignment:
    """
    Closes the delivery once the customer's code has been verified.
    The courier is released, so they show up as free in the next broadcast.
    """
    if not assignment.is_active:
        raise InvalidStateError(f"Assignment {assignment.id} is not active ({assignment.status.value})")

    assignment.status = AssignmentStatus.COMPLETED
    assignment.completed_at = now
    assignment.assigned_to = None
    return assignment
