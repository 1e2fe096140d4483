"""
Tests for click analytics aggregates.
"""
from datetime import datetime

import pytest

from shortlink_app.models import ClickEvent
from shortlink_app.services.analytics import ClickAnalytics, percentage_of

NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture
def mapping_id(allocator):
    return allocator.allocate("https://example.org", "owner-1", quota=10).mapping.id


def add_click(db, mapping_id, clicked_at=NOW, referrer=None, country=None, device="desktop", visitor="a"):
    db.add(ClickEvent(
        mapping_id=mapping_id,
        clicked_at=clicked_at,
        referrer_host=referrer,
        country_code=country,
        device_class=device,
        visitor_fingerprint=visitor * 64,
    ))
    db.commit()


class TestClickAnalytics:
    """Test per-mapping aggregates"""

    def test_empty_summary(self, db_session, mapping_id):
        summary = ClickAnalytics(db_session).summary(mapping_id)
        assert summary == {"total_clicks": 0, "unique_visitors": 0, "last_click": None}

    def test_summary(self, db_session, mapping_id):
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 9, 8, 0), visitor="a")
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 10, 9, 0), visitor="a")
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 10, 11, 0), visitor="b")

        summary = ClickAnalytics(db_session).summary(mapping_id)

        assert summary["total_clicks"] == 3
        assert summary["unique_visitors"] == 2
        assert summary["last_click"] == datetime(2026, 3, 10, 11, 0)

    def test_timeline_is_zero_filled(self, db_session, mapping_id):
        """Test every day of the window is present, oldest first, ending today"""
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 1, 1, 8, 0))  # outside the window
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 8, 8, 0), visitor="a")
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 10, 8, 0), visitor="a")
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 10, 9, 0), visitor="a")
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 10, 10, 0), visitor="b")

        timeline = ClickAnalytics(db_session, clock=lambda: NOW).timeline(mapping_id, days=30)

        assert len(timeline) == 30
        assert timeline[0] == {"date": "2026-02-09", "clicks": 0, "unique_visitors": 0}
        assert timeline[-3] == {"date": "2026-03-08", "clicks": 1, "unique_visitors": 1}
        assert timeline[-2] == {"date": "2026-03-09", "clicks": 0, "unique_visitors": 0}
        assert timeline[-1] == {"date": "2026-03-10", "clicks": 3, "unique_visitors": 2}
        assert sum(day["clicks"] for day in timeline) == 4

    def test_short_timeline_window(self, db_session, mapping_id):
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 9, 23, 59))

        timeline = ClickAnalytics(db_session, clock=lambda: NOW).timeline(mapping_id, days=1)

        assert timeline == [{"date": "2026-03-10", "clicks": 0, "unique_visitors": 0}]

    def test_activity_heatmap(self, db_session, mapping_id):
        """Test clicks are bucketed by weekday (0 = Sunday) and hour"""
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 8, 8, 15))  # Sunday
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 8, 8, 45))  # Sunday
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 3, 10, 11, 0))  # Tuesday
        add_click(db_session, mapping_id, clicked_at=datetime(2026, 1, 4, 8, 0))  # outside the window

        heatmap = ClickAnalytics(db_session, clock=lambda: NOW).activity_heatmap(mapping_id)

        assert heatmap == [
            {"day_of_week": 0, "hour": 8, "clicks": 2},
            {"day_of_week": 2, "hour": 11, "clicks": 1},
        ]

    def test_top_referrers_with_direct_bucket(self, db_session, mapping_id):
        add_click(db_session, mapping_id, referrer="twitter.com")
        add_click(db_session, mapping_id, referrer="twitter.com")
        add_click(db_session, mapping_id, referrer=None)

        referrers = ClickAnalytics(db_session).top_referrers(mapping_id)

        assert referrers == [
            {"source": "twitter.com", "clicks": 2, "percentage": 67},
            {"source": "Direct / None", "clicks": 1, "percentage": 33},
        ]

    def test_top_referrers_limited_to_five(self, db_session, mapping_id):
        for i in range(7):
            add_click(db_session, mapping_id, referrer=f"site{i}.example")

        assert len(ClickAnalytics(db_session).top_referrers(mapping_id)) == 5

    def test_breakdowns_empty_without_clicks(self, db_session, mapping_id):
        analytics = ClickAnalytics(db_session)

        assert analytics.top_referrers(mapping_id) == []
        assert analytics.device_breakdown(mapping_id) == []
        assert analytics.country_breakdown(mapping_id) == []

    def test_device_and_country_breakdown(self, db_session, mapping_id):
        add_click(db_session, mapping_id, device="mobile", country="DE")
        add_click(db_session, mapping_id, device="mobile", country=None)
        add_click(db_session, mapping_id, device="tablet", country="DE")
        add_click(db_session, mapping_id, device="desktop", country="US")

        analytics = ClickAnalytics(db_session)

        assert analytics.device_breakdown(mapping_id) == [
            {"device": "mobile", "clicks": 2, "percentage": 50},
            {"device": "desktop", "clicks": 1, "percentage": 25},
            {"device": "tablet", "clicks": 1, "percentage": 25},
        ]
        assert analytics.country_breakdown(mapping_id) == [
            {"country": "DE", "clicks": 2, "percentage": 50},
            {"country": "US", "clicks": 1, "percentage": 25},
            {"country": "Unknown", "clicks": 1, "percentage": 25},
        ]

    def test_total_clicks_for_owner(self, db_session, allocator, mapping_id):
        second = allocator.allocate("https://example.org/2", "owner-1", quota=10).mapping.id
        foreign = allocator.allocate("https://example.org/3", "owner-2", quota=10).mapping.id
        add_click(db_session, mapping_id)
        add_click(db_session, second)
        add_click(db_session, second)
        add_click(db_session, foreign)

        analytics = ClickAnalytics(db_session)

        assert analytics.total_clicks_for_owner("owner-1") == 3
        assert analytics.total_clicks_for_owner("owner-2") == 1
        assert analytics.total_clicks_for_owner("nobody") == 0

    def test_other_mappings_are_excluded(self, db_session, allocator, mapping_id):
        other = allocator.allocate("https://example.org/other", "owner-1", quota=10).mapping.id
        add_click(db_session, other)

        assert ClickAnalytics(db_session).summary(mapping_id)["total_clicks"] == 0


def test_percentage_of():
    assert percentage_of(1, 3) == 33
    assert percentage_of(2, 3) == 67
    assert percentage_of(1, 8) == 13
    assert percentage_of(5, 0) == 0
