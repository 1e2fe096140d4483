"""
Shortcode generation strategies.
Uses Strategy Pattern so the allocator does not care how candidates are made.
"""

import logging
import secrets
import string
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# 62 characters; 62^6 ~= 56.8 billion six-character codes
ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits

AUTO_LENGTH = 6
MAX_COLLISION_RETRIES = 5


class IdentifierStrategy(ABC):
    """Abstract base class for shortcode generation strategies"""

    @abstractmethod
    def generate_unique(self, exists: Callable[[str], bool]) -> Optional[str]:
        """
        Produce a shortcode that is free in the target partition.

        Args:
            exists: Returns True if a candidate is already taken. The caller
                    binds it to the partition being allocated into.

        Returns:
            A free shortcode, or None if the retry budget ran out
        """
        pass


class SecureRandomIdentifierStrategy(IdentifierStrategy):
    """
    Random fixed-length codes from a cryptographically secure source.

    Predictable codes would let anyone enumerate other owners' links, so
    this uses `secrets`, never `random`.

    Collision handling: check, retry up to max_retries, then give up.
    With 62^6 candidates a retry is a theoretical safeguard.
    """

    def __init__(self, length: int = AUTO_LENGTH, max_retries: int = MAX_COLLISION_RETRIES):
        self.length = length
        self.max_retries = max_retries
        self.characters = ALPHABET

    def generate_unique(self, exists: Callable[[str], bool]) -> Optional[str]:
        """Generate random shortcode with collision checking"""
        for attempt in range(1, self.max_retries + 1):
            candidate = self._candidate()

            if not exists(candidate):
                return candidate

            logger.info("Shortcode collision on attempt %d/%d", attempt, self.max_retries)

        logger.warning("Shortcode generation exhausted after %d attempts", self.max_retries)
        return None

    def _candidate(self) -> str:
        """Generate a random string of the configured length"""
        return "".join(secrets.choice(self.characters) for _ in range(self.length))
