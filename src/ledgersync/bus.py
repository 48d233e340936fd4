"""
Publish/subscribe channel keyed by domain type.

Producers (domain services) publish snapshots; consumers subscribe per
domain. Each publish invokes every live subscriber of that domain exactly
once, synchronously, in subscription order. A subscriber that raises is
logged and does not prevent delivery to the others.
"""

import itertools
import logging
from typing import Callable, Dict

from ledgersync.models import DomainSnapshot, DomainType

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[DomainSnapshot], None]


class DataBus:
    def __init__(self) -> None:
        # Per domain: subscription id -> callback, insertion ordered
        self._subscribers: Dict[DomainType, Dict[int, SnapshotCallback]] = {
            domain: {} for domain in DomainType
        }
        self._latest: Dict[DomainType, DomainSnapshot] = {}
        self._ids = itertools.count(1)

    def publish(self, domain: DomainType, snapshot: DomainSnapshot) -> int:
        """
        Store `snapshot` as the domain's current value and notify subscribers.

        ## Returns
        - Number of subscribers invoked

        ## Raises
        - `ValueError` if the snapshot belongs to another domain
        """
        if snapshot.domain is not domain:
            raise ValueError(
                f"Snapshot for {snapshot.domain.value} published on {domain.value}"
            )

        self._latest[domain] = snapshot

        delivered = 0
        for sub_id, callback in list(self._subscribers[domain].items()):
            # Skip subscribers removed by an earlier callback of this round
            if sub_id not in self._subscribers[domain]:
                continue
            delivered += 1
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(
                    f"Subscriber {sub_id} failed on {domain.value} snapshot: {e}",
                    exc_info=True,
                )
        return delivered

    def subscribe(
        self, domain: DomainType, callback: SnapshotCallback, replay: bool = True
    ) -> Callable[[], None]:
        """
        Register `callback` for `domain`.

        ## Parameters
        - `replay`: Immediately deliver the current snapshot, if there is one

        ## Returns
        - Zero-argument function removing the subscription (idempotent)
        """
        sub_id = next(self._ids)
        self._subscribers[domain][sub_id] = callback

        if replay and domain in self._latest:
            try:
                callback(self._latest[domain])
            except Exception as e:
                logger.error(
                    f"Subscriber {sub_id} failed on {domain.value} replay: {e}",
                    exc_info=True,
                )

        def unsubscribe() -> None:
            self._subscribers[domain].pop(sub_id, None)

        return unsubscribe

    def latest(self, domain: DomainType) -> DomainSnapshot | None:
        return self._latest.get(domain)

    def subscriber_count(self, domain: DomainType) -> int:
        return len(self._subscribers[domain])
