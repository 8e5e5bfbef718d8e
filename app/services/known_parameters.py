# Known Parameter Registry
# Thread-safe set of (parameter, location) pairs that have been resolved

import threading
from typing import Callable, FrozenSet, Optional

from app.helpers.logger import get_logger
from app.models.parameter_manager import KnownParameterEntry


class KnownParameterRegistry:
    """
    Idempotent set of parameters resolved at least once.

    Adding a duplicate or removing a non-member is a no-op. Every
    operation runs under a single per-instance lock so concurrent
    resolutions never lose an update. ``on_change`` receives a snapshot
    whenever the set actually changed, which lets a host persist it.
    """

    def __init__(
        self,
        on_change: Optional[Callable[[FrozenSet[KnownParameterEntry]], None]] = None,
    ):
        self.logger = get_logger("app.services.known_parameters")
        self._entries = set()
        self._lock = threading.Lock()
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(frozenset(self._entries))

    def add(self, entry: KnownParameterEntry) -> bool:
        """Add an entry. Returns True if it was not present before."""
        with self._lock:
            if entry in self._entries:
                return False
            self._entries.add(entry)
            self._changed()

        self.logger.debug(
            "Known parameter added",
            extra={"parameter_name": entry.parameter, "location": entry.location},
        )
        return True

    def remove(self, entry: KnownParameterEntry) -> bool:
        """Remove an entry. Returns True if it was present."""
        with self._lock:
            if entry not in self._entries:
                return False
            self._entries.discard(entry)
            self._changed()

        self.logger.debug(
            "Known parameter removed",
            extra={"parameter_name": entry.parameter, "location": entry.location},
        )
        return True

    def remove_all_matching(self, parameter_name: str, location: str) -> int:
        """
        Evict every entry for a parameter at a location.

        Used when the backend confirms the parameter no longer exists there.

        Returns:
            Number of evicted entries
        """
        with self._lock:
            stale = {
                entry
                for entry in self._entries
                if entry.parameter == parameter_name and entry.location == location
            }
            if stale:
                self._entries -= stale
                self._changed()

        self.logger.info(
            "Known parameter entries evicted",
            extra={
                "parameter_name": parameter_name,
                "location": location,
                "evicted_count": len(stale),
            },
        )
        return len(stale)

    def list(self) -> FrozenSet[KnownParameterEntry]:
        with self._lock:
            return frozenset(self._entries)

    def __contains__(self, entry: object) -> bool:
        with self._lock:
            return entry in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
