"""
Tests for the area geometry service and the deferred work queue.
"""

import pytest

from errors import GeometryError
from geometry import AreaGeometryService, DeferredWorkQueue, NullGeometryService, Region
from reference_data import StaticReferenceData


@pytest.fixture
def geometry():
    reference = StaticReferenceData()
    return AreaGeometryService.from_reference(reference, reference.codes())


class TestAreaGeometry:

    def test_centroid_distance(self, geometry):
        distance = geometry.centroid_distance("GBR", "FRA")
        assert 800 < distance < 1000
        assert geometry.centroid_distance("GBR", "ZZZ") is None

    def test_conquest_share_capped(self, geometry):
        winner, loser = geometry.region("DEU"), geometry.region("POL")
        small = geometry.calculate_conquest(winner, loser, 0.0)
        large = geometry.calculate_conquest(winner, loser, 5.0)
        assert small.area_km2 == pytest.approx(loser.area_km2 * 0.01)
        assert large.area_km2 == pytest.approx(loser.area_km2 * 0.05)

    def test_subtract_more_than_held(self):
        service = AreaGeometryService()
        with pytest.raises(GeometryError):
            service.subtract_territory(Region("A", 10.0), Region("B", 20.0))

    def test_null_service_changes_nothing(self):
        service = NullGeometryService()
        region = Region("A", 10.0)
        assert service.region("A") is None
        assert service.calculate_conquest(region, region, 1.0) is None
        assert service.merge_territory(region, region) is None


class TestDeferredWorkQueue:

    def test_drains_in_issue_order(self):
        queue = DeferredWorkQueue()
        order = []
        queue.enqueue(0, "first", lambda: order.append("first"))
        queue.enqueue(0, "second", lambda: order.append("second"))

        queue.drain()

        assert order == ["first", "second"]
        assert len(queue) == 0
        assert queue.completed == 2

    def test_failure_drops_only_that_item(self):
        queue = DeferredWorkQueue()

        def broken():
            raise GeometryError("self-intersecting border")

        queue.enqueue(3, "broken", broken)
        queue.enqueue(3, "fine", lambda: 42)

        assert queue.drain() == [42]
        assert queue.failed == 1
        assert queue.completed == 1

    def test_items_added_while_draining_wait(self):
        queue = DeferredWorkQueue()
        queue.enqueue(0, "outer", lambda: queue.enqueue(1, "inner", lambda: None))
        queue.drain()
        assert len(queue) == 1, "Follow-up work lands on the next drain"
