"""
Read-only click aggregates for a single mapping (and one per owner).

All queries go through the ORM against url_clicks and never write.
Windows are whole UTC days ending today.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import desc, extract, func, select
from sqlalchemy.orm import Session

from shortlink_app.database.connection import utc_now
from shortlink_app.models.click import ClickEvent
from shortlink_app.models.mapping import Mapping

logger = logging.getLogger(__name__)

DIRECT_REFERRER = "Direct / None"
UNKNOWN_COUNTRY = "Unknown"
DEFAULT_WINDOW_DAYS = 30
TOP_ENTRIES = 5


def percentage_of(part: int, total: int) -> int:
    """Whole-number share of `total`, 0 when there is nothing to share."""
    if not total:
        return 0
    return int(100 * part / total + 0.5)


class ClickAnalytics:
    """
    Dashboard queries over recorded clicks.

    Args:
        db: Database session
        clock: Returns naive UTC "now"; anchors the day windows
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def summary(self, mapping_id: int) -> Dict:
        """
        Totals for one mapping.

        Returns:
            {"total_clicks": int, "unique_visitors": int, "last_click": datetime | None}
        """
        total, unique, last = (
            self.db.query(
                func.count(ClickEvent.id),
                func.count(func.distinct(ClickEvent.visitor_fingerprint)),
                func.max(ClickEvent.clicked_at),
            )
            .filter(ClickEvent.mapping_id == mapping_id)
            .one()
        )
        return {
            "total_clicks": total or 0,
            "unique_visitors": unique or 0,
            "last_click": last,
        }

    def timeline(self, mapping_id: int, days: int = DEFAULT_WINDOW_DAYS) -> List[Dict]:
        """
        One entry per UTC day for the last `days` days (today included), oldest first.

        Days without clicks are present with zeros so charts show gaps as
        flat, not missing.
        """
        first_day = self._first_day(days)
        day = func.date(ClickEvent.clicked_at).label("day")

        rows = (
            self.db.query(
                day,
                func.count(ClickEvent.id),
                func.count(func.distinct(ClickEvent.visitor_fingerprint)),
            )
            .filter(
                ClickEvent.mapping_id == mapping_id,
                ClickEvent.clicked_at >= datetime.combine(first_day, datetime.min.time()),
            )
            .group_by(day)
            .all()
        )
        by_day = {str(d): (clicks, unique) for d, clicks, unique in rows}

        timeline = []
        for offset in range(days):
            key = (first_day + timedelta(days=offset)).isoformat()
            clicks, unique = by_day.get(key, (0, 0))
            timeline.append({"date": key, "clicks": clicks, "unique_visitors": unique})
        return timeline

    def activity_heatmap(self, mapping_id: int, days: int = DEFAULT_WINDOW_DAYS) -> List[Dict]:
        """
        Clicks bucketed by UTC weekday (0 = Sunday) and hour over the window.

        Only non-empty cells are returned, ordered by weekday then hour.
        """
        first_day = self._first_day(days)
        weekday = extract("dow", ClickEvent.clicked_at).label("day_of_week")
        hour = extract("hour", ClickEvent.clicked_at).label("hour")

        rows = (
            self.db.query(weekday, hour, func.count(ClickEvent.id))
            .filter(
                ClickEvent.mapping_id == mapping_id,
                ClickEvent.clicked_at >= datetime.combine(first_day, datetime.min.time()),
            )
            .group_by(weekday, hour)
            .order_by(weekday, hour)
            .all()
        )
        return [
            {"day_of_week": int(dow), "hour": int(h), "clicks": count}
            for dow, h, count in rows
        ]

    def top_referrers(self, mapping_id: int, limit: int = TOP_ENTRIES) -> List[Dict]:
        """Referrer hostnames by click count; clicks without one are grouped as "Direct / None"."""
        source = func.coalesce(ClickEvent.referrer_host, DIRECT_REFERRER).label("source")
        return self._breakdown(mapping_id, source, "source", limit)

    def device_breakdown(self, mapping_id: int) -> List[Dict]:
        return self._breakdown(mapping_id, ClickEvent.device_class, "device", None)

    def country_breakdown(self, mapping_id: int, limit: int = TOP_ENTRIES) -> List[Dict]:
        country = func.coalesce(ClickEvent.country_code, UNKNOWN_COUNTRY).label("country")
        return self._breakdown(mapping_id, country, "country", limit)

    def total_clicks_for_owner(self, owner_id: str) -> int:
        """Clicks across every mapping the owner holds."""
        owned = select(Mapping.id).where(Mapping.owner_id == owner_id)
        return (
            self.db.query(func.count(ClickEvent.id))
            .filter(ClickEvent.mapping_id.in_(owned))
            .scalar()
        ) or 0

    def _first_day(self, days: int) -> date:
        return self.clock().date() - timedelta(days=days - 1)

    def _breakdown(self, mapping_id: int, column, name: str, limit: Optional[int]) -> List[Dict]:
        total = (
            self.db.query(func.count(ClickEvent.id))
            .filter(ClickEvent.mapping_id == mapping_id)
            .scalar()
        )
        if not total:
            return []

        clicks = func.count(ClickEvent.id).label("clicks")
        query = (
            self.db.query(column, clicks)
            .filter(ClickEvent.mapping_id == mapping_id)
            .group_by(column)
            .order_by(desc(clicks), column)
        )
        if limit is not None:
            query = query.limit(limit)
        return [
            {name: value, "clicks": count, "percentage": percentage_of(count, total)}
            for value, count in query.all()
        ]
