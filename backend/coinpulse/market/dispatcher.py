"""Synchronous fan-out of UpdateEvents to registered consumers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import ConsumerFailure
from .models import UpdateEvent
from .store import AssetStore

logger = logging.getLogger(__name__)

Consumer = Callable[[UpdateEvent], object]


@dataclass(frozen=True, slots=True)
class Registration:
    name: str
    callback: Consumer
    active_only: bool = False


class FanoutDispatcher:
    """Invokes each registered consumer, in registration order, once per event.

    Consumers flagged `active_only` only see events for the store's active
    asset. A consumer that raises is logged and skipped; the others still run.
    """

    def __init__(self, store: AssetStore) -> None:
        self._store = store
        self._registrations: list[Registration] = []

    def register(self, name: str, callback: Consumer, active_only: bool = False) -> None:
        if any(r.name == name for r in self._registrations):
            raise ValueError(f"consumer {name!r} already registered")
        self._registrations.append(Registration(name, callback, active_only))
        logger.debug("Registered consumer %s (active_only=%s)", name, active_only)

    def unregister(self, name: str) -> None:
        """Remove a consumer. No-op if not registered."""
        self._registrations = [r for r in self._registrations if r.name != name]

    @property
    def consumers(self) -> list[str]:
        return [r.name for r in self._registrations]

    def dispatch(self, event: UpdateEvent) -> list[ConsumerFailure]:
        """Deliver `event` to every eligible consumer. Returns the failures."""
        # Read once so every consumer of this event agrees on the filter
        active = self._store.active_asset
        failures: list[ConsumerFailure] = []
        for registration in list(self._registrations):
            if registration.active_only and event.asset != active:
                continue
            try:
                registration.callback(event)
            except Exception as e:
                failure = ConsumerFailure(registration.name, event, e)
                logger.exception("Consumer %s failed on %s", registration.name, event.asset.value)
                failures.append(failure)
        return failures
