"""
Latency tracking helpers.
"""

import pytest

from realsingles.api.middleware.timing import LatencyTracker, area_for_path


@pytest.mark.parametrize(
    "path,area",
    [
        ("/api/matches/likes", "matches"),
        ("/api/discover", "discover"),
        ("/health", "health"),
        ("/", "root"),
        ("/api", "root"),
    ],
)
def test_area_for_path(path, area):
    assert area_for_path(path) == area


def test_tracker_stats():
    tracker = LatencyTracker(window_size=10)
    assert tracker.get_stats()["count"] == 0

    for ms in (10.0, 20.0, 30.0):
        tracker.record(ms, area="discover")
    tracker.record(500.0, area="matches", slow=True)

    stats = tracker.get_stats()
    assert stats["count"] == 4
    assert stats["max"] == 500.0
    assert stats["slow_requests"] == 1

    areas = tracker.get_area_stats()
    assert areas["discover"]["count"] == 3
    assert areas["discover"]["mean"] == 20.0
    assert list(areas) == ["discover", "matches"]

    tracker.reset()
    assert tracker.get_stats()["count"] == 0
    assert tracker.get_area_stats() == {}
