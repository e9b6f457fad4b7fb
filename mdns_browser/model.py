"""Service records and the per-type catalog they live in."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class UpsertResult(Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


@dataclass
class ServiceRecord:
    """A single discovered service instance."""

    identity_key: str  # Full DNS-SD name: "Printer._ipp._tcp.local."
    name: str  # Instance label: "Printer"
    service_type: str  # "_ipp._tcp.local."
    host: str = ""  # SRV target: "printer.local."
    addresses: list[str] = field(default_factory=list)
    port: int = 0
    txt: dict[str, str] = field(default_factory=dict)
    alive: bool = True
    last_seen: datetime = field(default_factory=datetime.now)

    def refresh_from(self, other: "ServiceRecord") -> None:
        """Copy resolved fields from a newer snapshot and revive the record."""
        self.name = other.name
        self.host = other.host
        self.addresses = list(other.addresses)
        self.port = other.port
        self.txt = dict(other.txt)
        self.last_seen = other.last_seen
        self.alive = True

    def die_at(self, when: datetime) -> None:
        self.alive = False
        self.last_seen = when


class ServiceTypeView:
    """Insertion-ordered records of one service type.

    Updates mutate records in place so a record never moves until it is
    purged. Alive and dead counts are kept in step with every mutation.
    """

    def __init__(self, service_type: str):
        self.service_type = service_type
        self.searching = True
        self.alive_count = 0
        self.dead_count = 0
        self._records: list[ServiceRecord] = []
        self._index: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __getitem__(self, index: int) -> ServiceRecord:
        return self._records[index]

    def get(self, identity_key: str) -> ServiceRecord | None:
        position = self._index.get(identity_key)
        if position is None:
            return None
        return self._records[position]

    def upsert(self, incoming: ServiceRecord) -> UpsertResult:
        """Insert a new record or refresh an existing one in place.

        Args:
            incoming: Snapshot from a resolve. It is stored as-is on insert.

        Returns:
            Whether the record was inserted or updated.
        """
        existing = self.get(incoming.identity_key)
        if existing is None:
            incoming.alive = True
            self._index[incoming.identity_key] = len(self._records)
            self._records.append(incoming)
            self.alive_count += 1
            return UpsertResult.INSERTED

        if not existing.alive:
            self.dead_count -= 1
            self.alive_count += 1
        existing.refresh_from(incoming)
        return UpsertResult.UPDATED

    def mark_dead(self, identity_key: str, when: datetime | None = None) -> bool:
        """Mark a record dead without moving it.

        Unknown keys are ignored; the record may already have been purged.

        Returns:
            True if a live record changed state.
        """
        record = self.get(identity_key)
        if record is None or not record.alive:
            return False
        record.die_at(when or datetime.now())
        self.alive_count -= 1
        self.dead_count += 1
        return True

    def purge_dead(self) -> int:
        """Drop every dead record, keeping the order of the survivors.

        Returns:
            Number of records removed.
        """
        if not self.dead_count:
            return 0
        survivors = [record for record in self._records if record.alive]
        removed = len(self._records) - len(survivors)
        self._records = survivors
        self._index = {record.identity_key: i for i, record in enumerate(survivors)}
        self.dead_count = 0
        return removed

    def visible(self, show_dead: bool = True) -> list[ServiceRecord]:
        if show_dead:
            return list(self._records)
        return [record for record in self._records if record.alive]


class Catalog:
    """Service type -> view mapping, plus tab order in discovery order."""

    def __init__(self):
        self._views: dict[str, ServiceTypeView] = {}
        self.tabs: list[str] = []
        self.last_error: str | None = None

    def __len__(self) -> int:
        return len(self.tabs)

    def __contains__(self, service_type: str) -> bool:
        return service_type in self._views

    def view(self, service_type: str) -> ServiceTypeView | None:
        return self._views.get(service_type)

    def ensure_view(self, service_type: str) -> ServiceTypeView:
        view = self._views.get(service_type)
        if view is None:
            view = ServiceTypeView(service_type)
            self._views[service_type] = view
            self.tabs.append(service_type)
        return view

    def tab_at(self, index: int) -> str | None:
        if 0 <= index < len(self.tabs):
            return self.tabs[index]
        return None

    @property
    def alive_count(self) -> int:
        return sum(view.alive_count for view in self._views.values())

    @property
    def dead_count(self) -> int:
        return sum(view.dead_count for view in self._views.values())

    def clear_error(self) -> None:
        self.last_error = None
