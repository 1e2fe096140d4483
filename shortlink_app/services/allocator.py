"""
Mapping allocation.

Creates mappings while holding two invariants against concurrent requests:
the (partition, identifier) pair is unique, and an owner never holds more
mappings than their quota. Both are enforced by the store in a single
conditional INSERT; the Python-side checks before it only reject early.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlink_app.database.connection import utc_now
from shortlink_app.models.mapping import Mapping, normalize_partition
from shortlink_app.services.identifier_strategies import (
    IdentifierStrategy,
    SecureRandomIdentifierStrategy,
)
from shortlink_app.services.mapping_store import MappingStore, is_unique_violation
from shortlink_app.services.reserved import RESERVED_PATHS
from shortlink_app.services.results import (
    Allocated,
    AllocationErrorKind,
    AllocationFailure,
    AllocationResult,
)
from shortlink_app.services.validators import (
    clean_identifier,
    validate_custom_identifier,
    validate_destination,
    validate_partition_label,
)

logger = logging.getLogger(__name__)

EXHAUSTED_MESSAGE = "Failed to generate a unique shortcode after multiple attempts. Please try again."
GENERATED_CONFLICT_MESSAGE = "Shortcode conflict. Please try again."


def quota_message(quota: int) -> str:
    return f"You've reached the limit of {quota} URLs. Delete an existing URL to create a new one."


def shortest_quota_message(quota: int) -> str:
    return f"You've reached the {quota}-URL limit. Delete a URL before auto-creating a short version."


class MappingAllocator:
    """
    Allocation service with the store and generator injected.

    Args:
        db: Database session for this unit of work
        strategy: Shortcode generator (defaults to secure random, 6 chars)
        root_domain: Used to describe partitions in conflict messages
        clock: Returns naive UTC "now" for anonymous expiry dates
    """

    def __init__(
        self,
        db: Session,
        strategy: Optional[IdentifierStrategy] = None,
        root_domain: str = "localhost",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = MappingStore(db)
        self.strategy = strategy or SecureRandomIdentifierStrategy()
        self.root_domain = root_domain
        self.clock = clock

    def allocate(
        self,
        destination: str,
        owner_id: str,
        quota: int,
        partition: Optional[str] = None,
        custom_identifier: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> AllocationResult:
        """
        Create a mapping for an owner.

        Process:
        1. Validate destination, partition label and custom shortcode
        2. Fast-reject if the owner is already at quota (not authoritative)
        3. Pick the shortcode: custom (checked for conflicts) or generated
        4. Conditional insert; zero rows means quota exceeded

        Returns:
            Allocated(mapping) or AllocationFailure(kind, message)
        """
        checked = validate_destination(destination)
        if not checked.is_valid:
            return AllocationFailure(AllocationErrorKind.VALIDATION, checked.error)

        # Only an absent partition means global; a blank label is an input error
        if partition is not None:
            label = validate_partition_label(partition)
            if not label.is_valid:
                return AllocationFailure(AllocationErrorKind.VALIDATION, label.error)
            partition = clean_identifier(partition)
        partition = normalize_partition(partition)

        identifier = None
        if custom_identifier is not None:
            identifier = clean_identifier(custom_identifier)
            validation = validate_custom_identifier(identifier)
            if not validation.is_valid:
                return AllocationFailure(AllocationErrorKind.VALIDATION, validation.error)

        if self.store.count_for_owner(owner_id) >= quota:
            return AllocationFailure(AllocationErrorKind.QUOTA_EXCEEDED, quota_message(quota))

        if identifier is not None:
            if self.store.identifier_exists(identifier, partition):
                return self._conflict(identifier, partition)
        else:
            identifier = self._generate(partition)
            if identifier is None:
                return AllocationFailure(AllocationErrorKind.EXHAUSTED, EXHAUSTED_MESSAGE)

        return self._insert_under_quota(
            identifier=identifier,
            partition=partition,
            destination=checked.normalized_url,
            owner_id=owner_id,
            quota=quota,
            expires_at=expires_at,
            custom=custom_identifier is not None,
            quota_text=quota_message(quota),
        )

    def allocate_anonymous(self, destination: str, expires_in_days: int = 365) -> AllocationResult:
        """
        Create an ownerless, expiring mapping in the global partition.

        No quota predicate applies; anonymous creation is bounded by the
        per-source rate limiter instead.
        """
        checked = validate_destination(destination)
        if not checked.is_valid:
            return AllocationFailure(AllocationErrorKind.VALIDATION, checked.error)

        identifier = self._generate(None)
        if identifier is None:
            return AllocationFailure(AllocationErrorKind.EXHAUSTED, EXHAUSTED_MESSAGE)

        try:
            mapping = self.store.insert_mapping(
                identifier=identifier,
                partition=None,
                destination=checked.normalized_url,
                owner_id=None,
                expires_at=self.clock() + timedelta(days=expires_in_days),
            )
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            return AllocationFailure(AllocationErrorKind.CONFLICT, GENERATED_CONFLICT_MESSAGE)

        logger.info("Allocated anonymous mapping %s", mapping.identifier)
        return Allocated(mapping)

    def ensure_global_mapping(self, source: Mapping, owner_id: str, quota: int) -> AllocationResult:
        """
        Resolve or create the global-partition equivalent of a mapping.

        step.root/my-page is longer than root/my-page, so for QR codes and
        similar uses the owner wants a global mapping with the same
        destination:

        1. source already global -> return it
        2. owner already has a global mapping to that destination -> reuse it
        3. otherwise allocate one, keeping the source's shortcode when it is
           free globally, else a generated one
        4. the insert goes through the same quota-checked statement as
           allocate(), so quota and uniqueness hold here too
        """
        if source.is_global:
            return Allocated(source, created=False)

        existing = self.store.find_owned_by_destination(owner_id, source.destination)
        if existing is not None:
            return Allocated(existing, created=False)

        if self.store.count_for_owner(owner_id) >= quota:
            return AllocationFailure(AllocationErrorKind.QUOTA_EXCEEDED, shortest_quota_message(quota))

        if self.store.identifier_exists(source.identifier, None):
            identifier = self._generate(None)
            if identifier is None:
                return AllocationFailure(AllocationErrorKind.EXHAUSTED, EXHAUSTED_MESSAGE)
        else:
            identifier = source.identifier

        return self._insert_under_quota(
            identifier=identifier,
            partition=None,
            destination=source.destination,
            owner_id=owner_id,
            quota=quota,
            expires_at=None,
            custom=False,
            quota_text=shortest_quota_message(quota),
        )

    def get_owned(self, mapping_id: int, owner_id: str) -> Optional[Mapping]:
        return self.store.get_owned(mapping_id, owner_id)

    def delete_mapping(self, mapping_id: int, owner_id: str) -> bool:
        return self.store.delete_mapping(mapping_id, owner_id)

    def _generate(self, partition: Optional[str]) -> Optional[str]:
        def unavailable(candidate: str) -> bool:
            # A reserved path is never routed to the resolver, so it counts as taken
            if candidate.lower() in RESERVED_PATHS:
                return True
            return self.store.identifier_exists(candidate, partition)

        return self.strategy.generate_unique(unavailable)

    def _insert_under_quota(
        self,
        identifier: str,
        partition: str,
        destination: str,
        owner_id: str,
        quota: int,
        expires_at: Optional[datetime],
        custom: bool,
        quota_text: str,
    ) -> AllocationResult:
        try:
            inserted = self.store.insert_mapping_if_under_quota(
                identifier=identifier,
                partition=partition,
                destination=destination,
                owner_id=owner_id,
                quota=quota,
                expires_at=expires_at,
            )
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            if custom:
                return self._conflict(identifier, partition)
            return AllocationFailure(AllocationErrorKind.CONFLICT, GENERATED_CONFLICT_MESSAGE)

        if inserted == 0:
            logger.info("Quota of %d reached for owner %s", quota, owner_id)
            return AllocationFailure(AllocationErrorKind.QUOTA_EXCEEDED, quota_text)

        mapping = self.store.find_mapping(identifier, partition)
        logger.info("Allocated %s for owner %s", mapping.short_path(self.root_domain), owner_id)
        return Allocated(mapping)

    def _conflict(self, identifier: str, partition: str) -> AllocationFailure:
        scope = "globally" if not partition else f"under {partition}.{self.root_domain}"
        return AllocationFailure(
            AllocationErrorKind.CONFLICT,
            f'Shortcode "{identifier}" is already taken {scope}.',
        )
