"""Defines EndpointTracker, the snapshot state owned by a prober."""

import logging
from typing import Dict, Optional, Tuple

from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint
from lanbeacon.discovery.snapshot import (
    EMPTY_SNAPSHOT,
    Snapshot,
    build_snapshot,
    snapshots_equal,
)

logger = logging.getLogger(__name__)


class EndpointTracker:
    """Merges replies into, and prunes stale entries from, a snapshot.

    Not thread-safe: the owning `Prober` serializes every call. Each
    mutating method returns the new snapshot when a subscriber would see a
    difference, and None otherwise, so the caller knows whether to notify.
    """

    def __init__(self, timeout_seconds: float) -> None:
        """
        Args:
            timeout_seconds: Endpoints with `now - last_seen` at or above
                this are removed by `prune`.
        """
        if timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {timeout_seconds}."
            )
        self.__timeout_seconds = timeout_seconds
        self.__endpoints: Dict[Tuple[str, int], DiscoveredEndpoint] = {}
        self.__snapshot: Snapshot = EMPTY_SNAPSHOT

    @property
    def snapshot(self) -> Snapshot:
        return self.__snapshot

    @property
    def timeout_seconds(self) -> float:
        return self.__timeout_seconds

    def __len__(self) -> int:
        return len(self.__endpoints)

    def merge(self, endpoint: DiscoveredEndpoint) -> Optional[Snapshot]:
        """Adds |endpoint| or replaces the entry with the same identity.

        The timestamp is always refreshed, even when nothing observable
        changed.
        """
        self.__endpoints[endpoint.identity] = endpoint
        return self.__publish()

    def prune(self, now: float) -> Optional[Snapshot]:
        """Drops every endpoint last seen |timeout_seconds| or more ago."""
        stale = [
            identity
            for identity, endpoint in self.__endpoints.items()
            if now - endpoint.last_seen >= self.__timeout_seconds
        ]
        for identity in stale:
            logger.debug("Pruning stale endpoint %s", self.__endpoints[identity])
            del self.__endpoints[identity]
        return self.__publish()

    def clear(self) -> Optional[Snapshot]:
        self.__endpoints.clear()
        return self.__publish()

    def __publish(self) -> Optional[Snapshot]:
        new_snapshot = build_snapshot(self.__endpoints.values())
        changed = not snapshots_equal(self.__snapshot, new_snapshot)
        # Stored even when unchanged so readers see fresh timestamps.
        self.__snapshot = new_snapshot
        return new_snapshot if changed else None
