"""
Store queries for mappings.

Every query the engine runs against the relational store lives here, so the
allocator and resolver stay free of SQL details. Partitions are normalized
to the global sentinel before they reach a WHERE clause.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text, func, insert, literal, or_, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlink_app.database.connection import utcnow
from shortlink_app.models.mapping import GLOBAL_PARTITION, Mapping, normalize_partition

logger = logging.getLogger(__name__)

# Substrings drivers put in unique-violation messages
UNIQUE_VIOLATION_MARKERS = (
    "unique constraint failed",  # SQLite
    "duplicate key value violates unique constraint",  # PostgreSQL
)
UNIQUE_VIOLATION_SQLSTATE = "23505"

# Held until the transaction ends; serializes quota inserts per owner
PG_OWNER_LOCK = text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))")


def owner_lock_statement(dialect_name: str):
    """
    Statement that must run before the quota insert on this backend, or None.

    SQLite takes its write lock before the insert reads the owner count, so
    it needs nothing extra. PostgreSQL under READ COMMITTED would let two
    transactions count the same snapshot, so the owner is locked first.
    """
    if dialect_name == "sqlite":
        return None
    if dialect_name == "postgresql":
        return PG_OWNER_LOCK
    raise ValueError(f"No quota lock for database backend {dialect_name!r}")


def is_unique_violation(error: IntegrityError) -> bool:
    """Tell a uniqueness conflict apart from other integrity failures (NOT NULL, FK...)."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "pgcode", None) or getattr(original, "sqlstate", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True

    message = str(original if original is not None else error).lower()
    return any(marker in message for marker in UNIQUE_VIOLATION_MARKERS)


class MappingStore:
    """Query shapes over the `urls` table, bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    def find_mapping(self, identifier: str, partition: Optional[str]) -> Optional[Mapping]:
        """Any mapping with this (partition, identifier), expired or not."""
        return self.db.execute(
            select(Mapping).where(
                Mapping.partition == normalize_partition(partition),
                Mapping.identifier == identifier,
            ).limit(1)
        ).scalar_one_or_none()

    def identifier_exists(self, identifier: str, partition: Optional[str]) -> bool:
        """Expired mappings still hold their identifier."""
        row = self.db.execute(
            select(Mapping.id).where(
                Mapping.partition == normalize_partition(partition),
                Mapping.identifier == identifier,
            ).limit(1)
        ).first()
        return row is not None

    def find_live_mapping(
        self,
        identifier: str,
        partition: Optional[str],
        now: Optional[datetime] = None,
    ) -> Optional[Mapping]:
        """
        Mapping that has not expired.

        Expiry is strict: expires_at must be later than now. Without an
        explicit `now` the comparison uses the store's clock.
        """
        reference = now if now is not None else utcnow()
        return self.db.execute(
            select(Mapping).where(
                Mapping.partition == normalize_partition(partition),
                Mapping.identifier == identifier,
                or_(Mapping.expires_at.is_(None), Mapping.expires_at > reference),
            ).limit(1)
        ).scalar_one_or_none()

    def find_owned_by_destination(
        self,
        owner_id: str,
        destination: str,
        partition: Optional[str] = GLOBAL_PARTITION,
    ) -> Optional[Mapping]:
        return self.db.execute(
            select(Mapping).where(
                Mapping.owner_id == owner_id,
                Mapping.destination == destination,
                Mapping.partition == normalize_partition(partition),
            ).order_by(Mapping.id).limit(1)
        ).scalar_one_or_none()

    def get_owned(self, mapping_id: int, owner_id: str) -> Optional[Mapping]:
        return self.db.execute(
            select(Mapping).where(Mapping.id == mapping_id, Mapping.owner_id == owner_id)
        ).scalar_one_or_none()

    def count_for_owner(self, owner_id: str) -> int:
        return self.db.execute(
            select(func.count(Mapping.id)).where(Mapping.owner_id == owner_id)
        ).scalar_one()

    def insert_mapping_if_under_quota(
        self,
        identifier: str,
        partition: Optional[str],
        destination: str,
        owner_id: str,
        quota: int,
        expires_at: Optional[datetime] = None,
    ) -> int:
        """
        Insert a mapping only if the owner currently holds fewer than `quota`.

        One statement:

            INSERT INTO urls (...)
            SELECT :identifier, :partition, ...
            WHERE (SELECT COUNT(*) FROM urls AS owned WHERE owned.owner_id = :owner) < :quota

        The count is evaluated by the engine inside the insert, so two
        concurrent requests cannot both squeeze under the ceiling. On
        PostgreSQL a transaction-scoped advisory lock on the owner is taken
        in the same transaction first (see owner_lock_statement).

        Returns:
            Rows inserted (1, or 0 when the quota is already used up)

        Raises:
            IntegrityError: on a (partition, identifier) uniqueness violation
        """
        owned = Mapping.__table__.alias("owned")
        owned_count = (
            select(func.count())
            .select_from(owned)
            .where(owned.c.owner_id == owner_id)
            .scalar_subquery()
        )

        source = select(
            literal(identifier, String),
            literal(normalize_partition(partition), String),
            literal(destination, Text),
            literal(owner_id, String),
            literal(expires_at, DateTime),
        ).where(owned_count < quota)

        statement = insert(Mapping).from_select(
            ["identifier", "partition", "destination", "owner_id", "expires_at"],
            source,
        )

        lock = owner_lock_statement(self.db.get_bind().dialect.name)

        try:
            if lock is not None:
                self.db.execute(lock, {"lock_key": f"quota:{owner_id}"})
            result = self.db.execute(statement)
            inserted = result.rowcount
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return inserted

    def insert_mapping(
        self,
        identifier: str,
        partition: Optional[str],
        destination: str,
        owner_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Mapping:
        """Unconditional insert (no quota predicate). Raises IntegrityError on conflict."""
        mapping = Mapping(
            identifier=identifier,
            partition=normalize_partition(partition),
            destination=destination,
            owner_id=owner_id,
            expires_at=expires_at,
        )
        self.db.add(mapping)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(mapping)
        return mapping

    def delete_mapping(self, mapping_id: int, owner_id: str) -> bool:
        """
        Delete a mapping the caller owns. Click events go with it
        (ON DELETE CASCADE).

        Returns:
            True if deleted, False if not found or owned by someone else
        """
        mapping = self.get_owned(mapping_id, owner_id)
        if mapping is None:
            return False

        self.db.delete(mapping)
        self.db.commit()
        logger.info("Deleted mapping %s for owner %s", mapping_id, owner_id)
        return True
