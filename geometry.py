"""
Geometry service boundary and the deferred work queue.

Territory math is an external concern. The core only asks for conquest areas,
merges and subtractions, and treats a missing result as "no land changes hands".
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Any
import logging
import numpy as np

from errors import GeometryError

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Region:
    code: str
    area_km2: float
    centroid: Optional[Tuple[float, float]] = None  # (lat, lon)


class GeometryService:
    """Interface for territory computation. Every method may return None."""

    def region(self, code: str) -> Optional[Region]:
        return None

    def set_region(self, code: str, region: Region):
        pass

    def merge_territory(self, a: Region, b: Region) -> Optional[Region]:
        raise NotImplementedError

    def subtract_territory(self, a: Region, b: Region) -> Optional[Region]:
        raise NotImplementedError

    def calculate_conquest(self, winner: Region, loser: Region, decisiveness: float,
                           claim=None, plan=None, location=None) -> Optional[Region]:
        raise NotImplementedError

    def centroid_distance(self, code_a: str, code_b: str) -> Optional[float]:
        return None


class NullGeometryService(GeometryService):
    """No territory model: every computation yields no change."""

    def merge_territory(self, a, b):
        return None

    def subtract_territory(self, a, b):
        return None

    def calculate_conquest(self, winner, loser, decisiveness, claim=None, plan=None, location=None):
        return None


class AreaGeometryService(GeometryService):
    """
    Regions as abstract areas with a centroid.

    Conquest takes a slice of the loser's area that grows with decisiveness,
    capped at `max_conquest_share` per resolution.
    """

    def __init__(self, max_conquest_share: float = 0.05):
        self.regions: Dict[str, Region] = {}
        self.max_conquest_share = max_conquest_share

    @classmethod
    def from_reference(cls, reference_data, codes) -> "AreaGeometryService":
        service = cls()
        for code in codes:
            profile = reference_data.get(code)
            if profile is not None:
                service.regions[code] = Region(code, profile.area_km2, profile.centroid)
        return service

    def region(self, code):
        return self.regions.get(code)

    def set_region(self, code, region):
        self.regions[code] = region

    def merge_territory(self, a, b):
        return Region(a.code, a.area_km2 + b.area_km2, a.centroid)

    def subtract_territory(self, a, b):
        if b.area_km2 > a.area_km2:
            raise GeometryError(f"Cannot subtract {b.area_km2:.0f} km2 from {a.code} ({a.area_km2:.0f} km2)")
        return Region(a.code, a.area_km2 - b.area_km2, a.centroid)

    def calculate_conquest(self, winner, loser, decisiveness, claim=None, plan=None, location=None):
        if loser.area_km2 <= 0:
            return None
        share = min(self.max_conquest_share, 0.01 + 0.04 * max(0.0, min(1.0, decisiveness)))
        return Region(loser.code, loser.area_km2 * share, loser.centroid)

    def centroid_distance(self, code_a, code_b):
        a = self.regions.get(code_a)
        b = self.regions.get(code_b)
        if a is None or b is None or a.centroid is None or b.centroid is None:
            return None
        lat1, lon1, lat2, lon2 = np.radians([a.centroid[0], a.centroid[1], b.centroid[0], b.centroid[1]])
        h = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
        return float(2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(h)))


@dataclass
class WorkItem:
    issued_tick: int
    description: str
    apply: Callable[[], Any]


class DeferredWorkQueue:
    """
    FIFO of follow-up effects issued during a tick.

    Items are drained at the start of the next tick, in issue order. A geometry
    failure drops only that item.
    """

    def __init__(self):
        self._items: List[WorkItem] = []
        self.completed = 0
        self.failed = 0

    def __len__(self):
        return len(self._items)

    def enqueue(self, issued_tick: int, description: str, apply: Callable[[], Any]) -> WorkItem:
        item = WorkItem(issued_tick, description, apply)
        self._items.append(item)
        return item

    def drain(self) -> List[Any]:
        items, self._items = self._items, []
        results = []
        for item in items:
            try:
                results.append(item.apply())
                self.completed += 1
            except GeometryError as e:
                self.failed += 1
                logger.warning(f"Deferred work dropped ({item.description}, tick {item.issued_tick}): {e}")
        return results
