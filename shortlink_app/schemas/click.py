"""
Data models for click observations.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shortlink_app.database.connection import utc_now


class ClickObservation(BaseModel):
    """
    Request metadata captured when a redirect is served.

    Built synchronously inside the request handler (the request object is
    gone by the time the background task runs) and turned into a
    ClickEvent row afterwards. The raw address is only used for hashing
    and is never stored.
    """

    timestamp: datetime = Field(default_factory=utc_now, description="When the redirect was served (naive UTC)")

    # Request metadata
    source_address: str = Field("127.0.0.1", description="Client address from the trusted edge header")
    user_agent: Optional[str] = Field(None, description="User agent string")
    referrer: Optional[str] = Field(None, description="HTTP referer, full URL as sent")
    country_hint: Optional[str] = Field(None, description="Country code from the edge network")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": "2026-02-15T10:30:00",
                "source_address": "203.0.113.45",
                "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148",
                "referrer": "https://twitter.com/someone/status/1",
                "country_hint": "DE",
            }
        }
    )
