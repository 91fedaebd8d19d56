"""
Purpose: Business rules and distance math for choosing who gets a delivery offer.
What it does:
Queries the nearby-courier collaborator in two rings (primary, then fallback),
removes couriers already busy with another delivery, and returns the rest
in the order the lookup produced them.
"""

import logging
import math
from typing import Iterable, List, Optional, Set, Tuple

from .models import Courier
from .policy import BroadcastPolicy, default_broadcast_policy

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0


def haversine_m(origin: Tuple[float, float], target: Tuple[float, float]) -> float:
    """
    Great-circle distance in meters between two (lat, lon) points.
    """
    lat1, lon1 = map(math.radians, origin)
    lat2, lon2 = map(math.radians, target)
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def find_nearby_couriers(
    nearby_couriers,
    drop_off: Tuple[float, float],
    policy: Optional[BroadcastPolicy] = None,
) -> List[Courier]:
    """
    Asks the collaborator for couriers inside the primary ring and widens to the
    fallback ring only if the first answer is empty.
    """
    policy = policy or default_broadcast_policy()
    latitude, longitude = drop_off

    for radius_m in policy.radii:
        found = nearby_couriers.find(latitude, longitude, radius_m)
        if found:
            logger.debug("Found %d couriers within %sm of %s", len(found), radius_m, drop_off)
            return list(found)
        logger.info("No couriers within %sm of %s", radius_m, drop_off)

    return []


def filter_busy_couriers(candidates: Iterable[Courier], busy_ids: Set[str]) -> List[Courier]:
    """
    Returns only couriers who are not already carrying an active delivery.
    Duplicate ids from the lookup are collapsed to their first occurrence.
    """
    eligible = []
    seen = set()

    for courier in candidates:
        if courier.id in busy_ids or courier.id in seen:
            continue
        seen.add(courier.id)
        eligible.append(courier)

    return eligible
