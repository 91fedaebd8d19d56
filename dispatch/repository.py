"""
Purpose: In-memory Assignment storage.
What it does:
- Stores assignments by id, copy-in / copy-out like the order repository
- save() is a compare-and-set on status when expected_status is given
- Answers the busy-courier query for a whole candidate set in one call
- Finds offers for a courier and a courier's active delivery
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Iterable, List, Optional, Set

from collaborators.ports import BusyAssignments
from common.errors import NotFoundError, StaleStateError
from .models import ACTIVE_STATUSES, Assignment, AssignmentStatus

logger = logging.getLogger(__name__)


@dataclass
class AssignmentRepository(BusyAssignments):
    _assignments: Dict[str, Assignment] = field(default_factory=dict)
    _guard: Lock = field(default_factory=Lock, repr=False)

    def add(self, assignment: Assignment) -> None:
        with self._guard:
            if assignment.id in self._assignments:
                return
            self._assignments[assignment.id] = copy.deepcopy(assignment)

    def get(self, assignment_id: str) -> Optional[Assignment]:
        with self._guard:
            assignment = self._assignments.get(assignment_id)
            return copy.deepcopy(assignment) if assignment else None

    def require(self, assignment_id: str) -> Assignment:
        assignment = self.get(assignment_id)
        if assignment is None:
            raise NotFoundError(f"Assignment {assignment_id} not found")
        return assignment

    def save(self, assignment: Assignment, expected_status: Optional[AssignmentStatus] = None) -> None:
        """
        Stores the assignment. With expected_status, only succeeds if the stored
        copy still has that status (compare-and-set), else StaleStateError.
        """
        with self._guard:
            current = self._assignments.get(assignment.id)
            if current is None:
                raise NotFoundError(f"Assignment {assignment.id} not found")
            if expected_status is not None and current.status != expected_status:
                raise StaleStateError(
                    f"Assignment {assignment.id} is {current.status.value}, expected {expected_status.value}"
                )
            self._assignments[assignment.id] = copy.deepcopy(assignment)

    def delete(self, assignment_id: str) -> None:
        with self._guard:
            self._assignments.pop(assignment_id, None)

    def restore(self, snapshot: Assignment, cause: Exception) -> None:
        """
        Puts a pre-update snapshot back after the paired order write failed.
        Never raises, so the caller can surface the original error.
        """
        logger.error("Order update failed for assignment %s, restoring it: %s", snapshot.id, cause)
        try:
            self.save(snapshot)
        except NotFoundError:
            logger.warning("Assignment %s was withdrawn before it could be restored", snapshot.id)
        except Exception:
            logger.critical("Could not restore assignment %s", snapshot.id, exc_info=True)

    # --- Queries ---

    def list_assigned_couriers(
        self,
        candidate_ids: Iterable[str],
        active_statuses: Iterable[AssignmentStatus] = ACTIVE_STATUSES,
    ) -> Set[str]:
        """
        Which of candidate_ids currently hold an assignment in active_statuses.
        """
        wanted = set(candidate_ids)
        statuses = set(active_statuses)
        if not wanted:
            return set()
        with self._guard:
            return {
                a.assigned_to for a in self._assignments.values()
                if a.assigned_to in wanted and a.status in statuses
            }

    def list_broadcasted_for(self, courier_id: str) -> List[Assignment]:
        with self._guard:
            found = [
                copy.deepcopy(a) for a in self._assignments.values()
                if a.status == AssignmentStatus.BROADCASTED and courier_id in a.broadcasted_to
            ]
        return sorted(found, key=lambda a: a.created_at)

    def find_active_for(self, courier_id: str) -> Optional[Assignment]:
        with self._guard:
            for assignment in self._assignments.values():
                if assignment.assigned_to == courier_id and assignment.status in ACTIVE_STATUSES:
                    return copy.deepcopy(assignment)
        return None

    def __len__(self) -> int:
        with self._guard:
            return len(self._assignments)
