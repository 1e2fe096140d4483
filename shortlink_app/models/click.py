from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from shortlink_app.database.connection import Base, utc_now


class ClickEvent(Base):
    """
    One redirect observation. Append-only.

    No raw visitor address is stored: visitor_fingerprint is a salted,
    daily-rotated SHA-256 hash (see services.click_recorder.hash_visitor).
    """
    __tablename__ = "url_clicks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mapping_id = Column(
        Integer,
        ForeignKey("urls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    clicked_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    referrer_host = Column(String(255), nullable=True)
    country_code = Column(String(2), nullable=True)
    device_class = Column(String(16), nullable=False, default="desktop")
    visitor_fingerprint = Column(String(64), nullable=False)

    mapping = relationship("Mapping", back_populates="clicks")
