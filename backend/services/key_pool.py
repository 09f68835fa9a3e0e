"""Credential pool with round-robin failover and a permanent dead-key set."""
import logging
import random
import threading
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Message fragments that mean the credential itself is revoked or invalid
DEAD_KEY_MARKERS = (
    "leaked",
    "api key not valid",
    "invalid api key",
    "invalid credentials",
    "invalid username or password",
)

# Message fragments for rate limiting and quota exhaustion
ROTATABLE_MARKERS = ("429", "rate", "quota", "resource_exhausted", "limit")


class KeyFailure(Enum):
    """How a failed call reflects on the credential that made it."""
    ROTATABLE = "rotatable"
    DEAD = "dead"
    UNCLASSIFIED = "unclassified"


class KeyPoolError(Exception):
    """Base class for failures after every credential has been tried."""


class AllKeysDeadError(KeyPoolError):
    """Every credential in the pool has been permanently excluded."""

    def __init__(self, pool_name: str, key_count: int):
        self.pool_name = pool_name
        self.key_count = key_count
        super().__init__(
            f"All {key_count} configured {pool_name} API keys have been marked as "
            f"permanently dead (invalid or leaked). Rotate the credentials."
        )


class KeysExhaustedError(KeyPoolError):
    """Every live credential failed for this call."""

    def __init__(self, pool_name: str, key_count: int, last_error: Optional[BaseException]):
        self.pool_name = pool_name
        self.key_count = key_count
        self.last_error = last_error
        super().__init__(
            f"All {key_count} {pool_name} API keys exhausted. Last error: {last_error}"
        )


def _status_code(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def classify_failure(error: BaseException) -> KeyFailure:
    """
    Decide whether a provider error should rotate to the next key or
    permanently retire the current one.

    Args:
        error: Exception raised by a provider call

    Returns:
        KeyFailure classification
    """
    message = str(error).lower()
    status = _status_code(error)

    if status == 403 or any(marker in message for marker in DEAD_KEY_MARKERS):
        return KeyFailure.DEAD
    if status in (401, 429) or any(marker in message for marker in ROTATABLE_MARKERS):
        return KeyFailure.ROTATABLE
    return KeyFailure.UNCLASSIFIED


class ApiKeyPool:
    """
    Ordered set of credentials for one backend plus the keys retired from it.

    The dead set only ever grows. Concurrent callers may race to retire the
    same key; adding is idempotent and guarded by a lock, and a key retired
    mid-flight by another caller is simply skipped on the next attempt.
    """

    def __init__(
        self,
        keys: Iterable[str],
        name: str = "provider",
        rng: Optional[random.Random] = None
    ):
        unique_keys: List[str] = []
        for key in keys:
            if key and key not in unique_keys:
                unique_keys.append(key)
        if not unique_keys:
            raise ValueError(f"At least one {name} API key must be configured")

        self.name = name
        self._keys = unique_keys
        self._dead: Set[str] = set()
        self._lock = threading.Lock()
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    def is_dead(self, key: str) -> bool:
        with self._lock:
            return key in self._dead

    def mark_dead(self, key: str) -> None:
        with self._lock:
            self._dead.add(key)

    @property
    def dead_count(self) -> int:
        with self._lock:
            return len(self._dead)

    def all_dead(self) -> bool:
        with self._lock:
            return len(self._dead) >= len(self._keys)

    def rotation(self) -> List[int]:
        """Key positions for one call, starting at a random offset."""
        start = self._rng.randrange(len(self._keys))
        return [(start + step) % len(self._keys) for step in range(len(self._keys))]

    def call(self, operation: Callable[[str], T]) -> T:
        """
        Run `operation` with each live key in rotation until one succeeds.

        Args:
            operation: Callable taking a credential and performing one request

        Returns:
            The first successful result

        Raises:
            AllKeysDeadError: If every key is (or becomes) permanently dead
            KeysExhaustedError: If every live key failed for this call
        """
        if self.all_dead():
            raise AllKeysDeadError(self.name, len(self._keys))

        last_error: Optional[BaseException] = None
        total = len(self._keys)

        for position in self.rotation():
            key = self._keys[position]
            if self.is_dead(key):
                continue

            try:
                return operation(key)
            except Exception as e:
                last_error = e
                failure = classify_failure(e)
                logger.warning(
                    f"[{self.name}] Key {position + 1}/{total} failed ({failure.value}): {e}",
                    extra={"provider": self.name, "key_index": position + 1},
                )
                if failure is KeyFailure.DEAD:
                    logger.warning(
                        f"[{self.name}] Marking key {position + 1} as permanently dead",
                        extra={"provider": self.name, "key_index": position + 1},
                    )
                    self.mark_dead(key)

        if self.all_dead():
            logger.error(f"[{self.name}] All {total} API keys are dead")
            raise AllKeysDeadError(self.name, total)

        logger.error(f"[{self.name}] All {total} API keys exhausted. Last error: {last_error}")
        raise KeysExhaustedError(self.name, total, last_error)
