"""Applies queued discovery events to the catalog on the render thread."""

import logging

from .events import EventChannel, DiscoveryEvent, Removed, Resolved, SearchStopped
from .model import Catalog, UpsertResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 256


class EventAggregator:
    """Sole owner and mutator of the catalog.

    Only the render loop calls into this class, so the catalog needs no
    locking; the channel is the hand-off point with the discovery threads.
    """

    def __init__(
        self,
        channel: EventChannel,
        catalog: Catalog | None = None,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
    ):
        """Initialize the aggregator.

        Args:
            channel: Channel filled by the discovery source.
            catalog: Catalog to mutate. A new one is created if omitted.
            batch_limit: Maximum events applied per drain. Anything beyond
                stays queued for the next tick.
        """
        self.channel = channel
        self.catalog = catalog if catalog is not None else Catalog()
        self.batch_limit = max(1, batch_limit)

    def apply(self, event: DiscoveryEvent) -> bool:
        """Apply one event to the catalog.

        Returns:
            True if the catalog changed.
        """
        if isinstance(event, Resolved):
            view = self.catalog.ensure_view(event.service_type)
            result = view.upsert(event.record)
            if result is UpsertResult.INSERTED:
                logger.debug(f"New service {event.record.identity_key}")
            return True

        if isinstance(event, Removed):
            view = self.catalog.view(event.service_type)
            if view is None:
                return False
            return view.mark_dead(event.identity_key)

        if isinstance(event, SearchStopped):
            view = self.catalog.view(event.service_type)
            if view is not None:
                view.searching = False
            if event.reason:
                self.catalog.last_error = f"{event.service_type}: {event.reason}"
                return True
            return view is not None

        logger.debug(f"Ignoring unknown event {event!r}")
        return False

    def drain_available(self) -> bool:
        """Apply queued events without blocking.

        Returns:
            True if any applied event changed the catalog.
        """
        changed = False
        for _ in range(self.batch_limit):
            event = self.channel.get_nowait()
            if event is None:
                break
            if self.apply(event):
                changed = True
        return changed

    def purge_dead(self, active_type: str | None) -> int:
        """Permanently remove dead records from one service type.

        Returns:
            Number of records removed.
        """
        if active_type is None:
            return 0
        view = self.catalog.view(active_type)
        if view is None:
            return 0
        removed = view.purge_dead()
        if removed:
            logger.info(f"Purged {removed} dead services from {active_type}")
        return removed
