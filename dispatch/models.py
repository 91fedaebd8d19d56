"""
Purpose: The Assignment aggregate (one delivery offer for one ShopOrder).
What it does:
Defines the Assignment record and its status set.
broadcasted -> assigned -> picked-up -> en-route -> completed, never backward.
Orders are referenced by id only; deleting an Order leaves its Assignments alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional

from orders.models import new_id, utcnow


class AssignmentStatus(str, Enum):
    BROADCASTED = "broadcasted"
    ASSIGNED = "assigned"
    PICKED_UP = "picked-up"
    EN_ROUTE = "en-route"
    COMPLETED = "completed"


#couriers holding one of these are busy and skipped by new broadcasts
ACTIVE_STATUSES: FrozenSet[AssignmentStatus] = frozenset({
    AssignmentStatus.ASSIGNED,
    AssignmentStatus.PICKED_UP,
    AssignmentStatus.EN_ROUTE,
})


@dataclass
class Assignment:
    order_id: str
    shop_id: str
    shop_order_id: str
    broadcasted_to: List[str]

    id: str = field(default_factory=new_id)
    status: AssignmentStatus = AssignmentStatus.BROADCASTED
    assigned_to: Optional[str] = None

    created_at: datetime = field(default_factory=utcnow)
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order": self.order_id,
            "shop": self.shop_id,
            "shopOrderId": self.shop_order_id,
            "status": self.status.value,
            "broadcastedTo": list(self.broadcasted_to),
            "assignedTo": self.assigned_to,
            "acceptedAt": self.accepted_at.isoformat() if self.accepted_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }
