"""
Best-effort click recording.

Runs after the redirect response has been sent (FastAPI BackgroundTasks).
The helpers below are pure; ClickRecorder.record() is the only part that
touches the store, and it never raises.
"""

import hashlib
import logging
from datetime import date
from typing import Callable, Optional
from urllib.parse import urlsplit

from sqlalchemy.orm import Session

from shortlink_app.models.click import ClickEvent
from shortlink_app.schemas.click import ClickObservation

logger = logging.getLogger(__name__)

DEVICE_DESKTOP = "desktop"
DEVICE_MOBILE = "mobile"
DEVICE_TABLET = "tablet"


def parse_device_class(user_agent: Optional[str]) -> str:
    """
    Coarse device class from a user-agent string.

    Tablet is checked before mobile: some tablets also say "Mobile".
    Anything unrecognised, bots included, counts as desktop.
    """
    if not user_agent:
        return DEVICE_DESKTOP

    ua = user_agent.lower()

    if "ipad" in ua or "tablet" in ua or ("android" in ua and "mobile" not in ua):
        return DEVICE_TABLET

    if "mobile" in ua or "iphone" in ua:
        return DEVICE_MOBILE

    return DEVICE_DESKTOP


def clean_referrer(referrer: Optional[str]) -> Optional[str]:
    """
    Reduce a Referer header to its hostname.

    "https://twitter.com/a/b?c=d" -> "twitter.com". Paths and query strings
    are dropped; blank or malformed values become None.
    """
    if not referrer or not referrer.strip():
        return None

    try:
        hostname = urlsplit(referrer.strip()).hostname
    except ValueError:
        return None

    return hostname or None


def extract_country(country_hint: Optional[str]) -> Optional[str]:
    """Two-letter country code from the edge geo header; "XX"/"T1" style placeholders dropped."""
    if not country_hint:
        return None

    code = country_hint.strip().upper()
    if len(code) != 2 or not code.isalpha() or code == "XX":
        return None
    return code


def hash_visitor(source_address: str, salt: str, day: date) -> str:
    """
    SHA-256 of "address:YYYY-MM-DD:salt" as hex.

    The date rotates the fingerprint daily, so visitors can be counted
    within a day but not followed across days. The secret salt stops
    anyone from brute-forcing the IPv4 space back out of the hash.
    """
    payload = f"{source_address}:{day.isoformat()}:{salt}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_click_event(mapping_id: int, observation: ClickObservation, salt: str) -> ClickEvent:
    return ClickEvent(
        mapping_id=mapping_id,
        clicked_at=observation.timestamp,
        referrer_host=clean_referrer(observation.referrer),
        country_code=extract_country(observation.country_hint),
        device_class=parse_device_class(observation.user_agent),
        visitor_fingerprint=hash_visitor(
            observation.source_address, salt, observation.timestamp.date()
        ),
    )


class ClickRecorder:
    """
    Writes click events in their own session.

    Args:
        session_factory: Creates a fresh Session; the request's session is
                         already closed when this runs
        salt: Server-side secret mixed into visitor fingerprints
    """

    def __init__(self, session_factory: Callable[[], Session], salt: str):
        self.session_factory = session_factory
        self.salt = salt

    def record(self, mapping_id: int, observation: ClickObservation) -> bool:
        """
        Store one click. Any failure is logged and dropped.

        Returns:
            True if the event was written
        """
        try:
            event = build_click_event(mapping_id, observation, self.salt)
        except Exception:
            logger.warning("Discarding malformed click for mapping %s", mapping_id, exc_info=True)
            return False

        try:
            db = self.session_factory()
        except Exception:
            logger.warning("Click store unavailable, dropping click for mapping %s", mapping_id, exc_info=True)
            return False

        try:
            db.add(event)
            db.commit()
            return True
        except Exception:
            db.rollback()
            logger.warning("Click tracking failed for mapping %s", mapping_id, exc_info=True)
            return False
        finally:
            db.close()
