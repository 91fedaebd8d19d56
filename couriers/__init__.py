"""
Couriers domain package.

Public API:
- Courier model
- BroadcastPolicy and its factories
- nearby search with fallback ring, busy filtering
"""
from .models import Courier
from .policy import BroadcastPolicy, default_broadcast_policy, broadcast_policy_from_env
from .selection import find_nearby_couriers, filter_busy_couriers, haversine_m

__all__ = ["Courier",
           "BroadcastPolicy",
             "default_broadcast_policy",
             "broadcast_policy_from_env",
               "find_nearby_couriers",
               "filter_busy_couriers",
               "haversine_m",
               ]
