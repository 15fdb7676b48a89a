"""Per-consumer enable/disable flags consulted before each delivery."""

from __future__ import annotations

import logging
import threading

__all__ = ["ConsumerStatusGate"]

logger = logging.getLogger(__name__)


class ConsumerStatusGate:
    """Thread-safe map of consumer name to active flag.

    Consumers are active until switched off. When ``known_consumers`` is
    given, names outside it are rejected by :meth:`is_known`.

    Example:
        >>> gate = ConsumerStatusGate(known_consumers=["apolo", "artemis"])
        >>> gate.set_active("apolo", False)
        >>> gate.is_active("apolo")
        False
    """

    def __init__(
        self,
        known_consumers: list[str] | None = None,
        default_active: bool = True,
    ) -> None:
        self._known = {name.lower() for name in known_consumers or []}
        self._default_active = default_active
        self._status: dict[str, bool] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(consumer: str) -> str:
        return consumer.lower()

    @property
    def restricted(self) -> bool:
        """Whether a known-consumer list is configured."""
        return bool(self._known)

    def is_known(self, consumer: str) -> bool:
        """Whether deliveries for this consumer name are routed at all."""
        return not self._known or self._key(consumer) in self._known

    def is_active(self, consumer: str) -> bool:
        with self._lock:
            return self._status.get(self._key(consumer), self._default_active)

    def set_active(self, consumer: str, active: bool) -> None:
        with self._lock:
            self._status[self._key(consumer)] = active
        logger.info(
            f"Consumer {consumer} {'enabled' if active else 'disabled'} for deliveries"
        )

    def snapshot(self) -> dict[str, bool]:
        """Explicitly set flags, plus defaults for known consumers."""
        with self._lock:
            result = {name: self._default_active for name in sorted(self._known)}
            result.update(self._status)
            return result
