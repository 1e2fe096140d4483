from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shortlink_app.database.connection import Base

# The global namespace is a real value, never NULL. Most SQL engines treat
# NULL as distinct from NULL inside a unique index, which would let two
# global mappings share an identifier.
GLOBAL_PARTITION = ""


def normalize_partition(partition: Optional[str]) -> str:
    """Map an absent partition (None or "") to the global sentinel."""
    return partition or GLOBAL_PARTITION


class Mapping(Base):
    """
    A shortcode mapping: (partition, identifier) -> destination.

    Never mutated in place. Deleting a mapping deletes its click events;
    an expired mapping is simply treated as absent by the resolver.
    """
    __tablename__ = "urls"
    __table_args__ = (
        UniqueConstraint("partition", "identifier", name="uq_urls_partition_identifier"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    identifier = Column(String(30), nullable=False)
    partition = Column(String(63), nullable=False, default=GLOBAL_PARTITION, server_default="")
    # Stored exactly as submitted (trimmed), no URL re-serialization
    destination = Column(Text, nullable=False)
    owner_id = Column(String(255), nullable=True, index=True)  # None = anonymous
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    expires_at = Column(DateTime, nullable=True)

    clicks = relationship(
        "ClickEvent",
        back_populates="mapping",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_global(self) -> bool:
        return self.partition == GLOBAL_PARTITION

    def short_path(self, root_domain: str) -> str:
        """Display form: "root/id" or "partition.root/id"."""
        if self.is_global:
            return f"{root_domain}/{self.identifier}"
        return f"{self.partition}.{root_domain}/{self.identifier}"

    def __repr__(self) -> str:
        return f"<Mapping id={self.id} partition={self.partition!r} identifier={self.identifier!r}>"
