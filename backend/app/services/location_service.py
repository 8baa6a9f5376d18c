"""Reviewer hotspots: where recent reviews cluster geographically.

Clustering is a greedy single pass. Each review not yet assigned seeds a new
cluster at its own coordinates and absorbs every later unassigned review
within the proximity threshold of that seed. The seed stays the cluster's
representative point (there is no re-centering), so output is fully
determined by the input order.

Cost is O(n^2) in the number of reviews in the window, which is fine for
days-to-a-month of activity on a modest service.
"""

import calendar
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

import structlog

from app.config import settings
from app.schemas.review import LatLng, LocationWindow, LocationWithCount
from app.services.review_store import ReviewStore

logger = structlog.get_logger(__name__)


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    radius: float = settings.EARTH_RADIUS_METERS,
) -> float:
    """Great-circle distance in meters on a spherical Earth."""
    a = (
        0.5
        - math.cos(math.radians(lat2 - lat1)) / 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * (1 - math.cos(math.radians(lon2 - lon1)))
        / 2
    )
    # Rounding can push the term slightly outside [0, 1] near antipodal points
    a = min(1.0, max(0.0, a))
    return radius * 2.0 * math.asin(math.sqrt(a))


def cluster_by_proximity(
    points: Sequence[Tuple[float, float]],
    threshold_meters: float = settings.REVIEW_PROXIMITY_METERS,
) -> List[LocationWithCount]:
    """Group (lat, lng) points into seed-anchored clusters.

    Args:
        points: Coordinates in input order
        threshold_meters: A point joins a cluster when strictly closer than
            this to the cluster's seed

    Returns:
        One entry per cluster, in order of first appearance of its seed
    """
    assigned = [False] * len(points)
    clusters: List[LocationWithCount] = []

    for i, (lat, lng) in enumerate(points):
        if assigned[i]:
            continue
        assigned[i] = True
        count = 1

        for j in range(i + 1, len(points)):
            if assigned[j]:
                continue
            other_lat, other_lng = points[j]
            if haversine_distance(lat, lng, other_lat, other_lng) < threshold_meters:
                assigned[j] = True
                count += 1

        clusters.append(LocationWithCount(location=LatLng(lat=lat, lng=lng), count=count))

    return clusters


def _subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping to the last valid day."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_cutoff(
    window: LocationWindow,
    value: int = 1,
    now: Optional[datetime] = None,
) -> datetime:
    """Start of the recency window ``value`` units of ``window`` before now.

    A value of 0 counts as 1.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if value == 0:
        value = 1

    if window == LocationWindow.WEEK:
        return now - timedelta(days=7 * value)
    if window == LocationWindow.MONTH:
        return _subtract_months(now, value)
    return now - timedelta(days=value)


class LocationService:
    """Answers "where are recent reviewers clustered, and how many"."""

    def __init__(self, store: ReviewStore, threshold_meters: float = settings.REVIEW_PROXIMITY_METERS):
        self.store = store
        self.threshold_meters = threshold_meters
        self.logger = logger.bind(service="location_service")

    async def get_locations(
        self,
        window: LocationWindow = LocationWindow.DAY,
        value: int = 1,
        now: Optional[datetime] = None,
    ) -> List[LocationWithCount]:
        """Cluster the locations of every review created within the window."""
        cutoff = window_cutoff(window, value, now)
        reviews = await self.store.get_reviews_since(cutoff)

        clusters = cluster_by_proximity(
            [(r.latitude, r.longitude) for r in reviews],
            self.threshold_meters,
        )

        self.logger.info(
            "reviewer_locations_clustered",
            window=window.value,
            value=value,
            reviews=len(reviews),
            clusters=len(clusters),
        )
        return clusters
