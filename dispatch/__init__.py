#Expose the delivery pipeline pieces:
#Assignment records + their repository
#Dispatcher (broadcast, first-accept-wins)
#CourierDesk (courier progress + drop-off confirmation)

from .models import Assignment, AssignmentStatus, ACTIVE_STATUSES
from .repository import AssignmentRepository
from .dispatcher import Dispatcher, AcceptResult #the entry point for broadcast and accept
from .delivery import CourierDesk, DeliveryResult

__all__ = [
    "Assignment",
    "AssignmentStatus",
    "ACTIVE_STATUSES",
    "AssignmentRepository",
    "Dispatcher",
    "AcceptResult",
    "CourierDesk",
    "DeliveryResult",
]
