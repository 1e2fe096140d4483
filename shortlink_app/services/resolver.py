from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from shortlink_app.services.mapping_store import MappingStore


@dataclass(frozen=True)
class ResolvedMapping:
    """What a redirect needs: the target, and the id to attribute the click to."""
    mapping_id: int
    destination: str


class MappingResolver:
    """
    Lookup for redirects.

    One store round-trip, no writes. Expired and missing mappings look the
    same to the caller: both come back as None.
    """

    def __init__(self, db: Session):
        self.store = MappingStore(db)

    def resolve(
        self,
        identifier: str,
        partition: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ResolvedMapping]:
        """
        Find the live mapping for (partition, identifier).

        Args:
            identifier: Shortcode from the request path
            partition: Subdomain label, or None for the global namespace
            now: Pin the expiry comparison (naive UTC); defaults to the store clock
        """
        mapping = self.store.find_live_mapping(identifier, partition, now=now)
        if mapping is None:
            return None
        return ResolvedMapping(mapping_id=mapping.id, destination=mapping.destination)
