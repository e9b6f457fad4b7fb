"""Tests for service records, per-type views and the catalog."""

from datetime import datetime, timedelta

import pytest

from mdns_browser.model import Catalog, ServiceRecord, ServiceTypeView, UpsertResult

HTTP = "_http._tcp.local."


def make_record(key: str, port: int = 80, **kwargs) -> ServiceRecord:
    return ServiceRecord(
        identity_key=f"{key}.{HTTP}",
        name=key,
        service_type=HTTP,
        host=f"{key.lower()}.local.",
        addresses=kwargs.pop("addresses", ["192.168.1.10"]),
        port=port,
        **kwargs,
    )


@pytest.fixture
def view():
    return ServiceTypeView(HTTP)


class TestUpsert:
    """Tests for ServiceTypeView.upsert."""

    def test_insert_appends(self, view):
        assert view.upsert(make_record("A")) is UpsertResult.INSERTED
        assert view.upsert(make_record("B")) is UpsertResult.INSERTED

        assert [r.name for r in view] == ["A", "B"]
        assert view.alive_count == 2
        assert view.dead_count == 0

    def test_same_event_twice_is_idempotent(self, view):
        view.upsert(make_record("A"))
        view.upsert(make_record("B"))
        result = view.upsert(make_record("A"))

        assert result is UpsertResult.UPDATED
        assert len(view) == 2
        assert [r.name for r in view] == ["A", "B"]
        assert view.alive_count == 2

    def test_update_refreshes_fields_in_place(self, view):
        view.upsert(make_record("A", port=80))
        first = view[0]
        later = datetime.now() + timedelta(seconds=5)
        view.upsert(
            make_record("A", port=8080, addresses=["10.0.0.2"], txt={"path": "/"}, last_seen=later)
        )

        assert view[0] is first
        assert first.port == 8080
        assert first.addresses == ["10.0.0.2"]
        assert first.txt == {"path": "/"}
        assert first.last_seen == later

    def test_dead_record_revives_without_moving(self, view):
        for key in ("A", "B", "C"):
            view.upsert(make_record(key))
        view.mark_dead(f"B.{HTTP}")

        view.upsert(make_record("B", port=9000))

        assert [r.name for r in view] == ["A", "B", "C"]
        assert view[1].alive
        assert view[1].port == 9000
        assert view.alive_count == 3
        assert view.dead_count == 0


class TestMarkDead:
    """Tests for ServiceTypeView.mark_dead."""

    def test_marks_in_place(self, view):
        view.upsert(make_record("A"))
        view.upsert(make_record("B"))
        when = datetime(2024, 1, 1, 12, 0, 0)

        assert view.mark_dead(f"A.{HTTP}", when) is True

        assert [r.name for r in view] == ["A", "B"]
        assert view[0].alive is False
        assert view[0].last_seen == when
        assert view.alive_count == 1
        assert view.dead_count == 1

    def test_unknown_key_is_noop(self, view):
        view.upsert(make_record("A"))

        assert view.mark_dead("missing._http._tcp.local.") is False
        assert view.alive_count == 1

    def test_already_dead_is_noop(self, view):
        view.upsert(make_record("A"))
        view.mark_dead(f"A.{HTTP}")

        assert view.mark_dead(f"A.{HTTP}") is False
        assert view.dead_count == 1

    def test_position_stable_across_cycles(self, view):
        for key in ("A", "B", "C"):
            view.upsert(make_record(key))

        for _ in range(3):
            view.mark_dead(f"B.{HTTP}")
            assert view[1].name == "B"
            view.upsert(make_record("B"))
            assert view[1].name == "B"


class TestPurgeDead:
    """Tests for ServiceTypeView.purge_dead."""

    def test_keeps_alive_in_order(self, view):
        for key in ("A", "B", "C", "D", "E"):
            view.upsert(make_record(key))
        view.mark_dead(f"B.{HTTP}")
        view.mark_dead(f"D.{HTTP}")

        assert view.purge_dead() == 2

        assert [r.name for r in view] == ["A", "C", "E"]
        assert view.dead_count == 0
        assert view.alive_count == 3

    def test_index_rebuilt_after_purge(self, view):
        for key in ("A", "B", "C"):
            view.upsert(make_record(key))
        view.mark_dead(f"A.{HTTP}")
        view.purge_dead()

        assert view.get(f"C.{HTTP}") is view[1]
        assert view.get(f"A.{HTTP}") is None
        assert view.upsert(make_record("A")) is UpsertResult.INSERTED
        assert [r.name for r in view] == ["B", "C", "A"]

    def test_nothing_dead(self, view):
        view.upsert(make_record("A"))

        assert view.purge_dead() == 0
        assert len(view) == 1

    def test_visible_filters_dead(self, view):
        view.upsert(make_record("A"))
        view.upsert(make_record("B"))
        view.mark_dead(f"A.{HTTP}")

        assert [r.name for r in view.visible(show_dead=True)] == ["A", "B"]
        assert [r.name for r in view.visible(show_dead=False)] == ["B"]


class TestCatalog:
    """Tests for the Catalog."""

    def test_tabs_in_discovery_order(self):
        catalog = Catalog()
        catalog.ensure_view("_ssh._tcp.local.")
        catalog.ensure_view(HTTP)
        catalog.ensure_view("_ssh._tcp.local.")

        assert catalog.tabs == ["_ssh._tcp.local.", HTTP]
        assert len(catalog) == 2
        assert HTTP in catalog

    def test_tab_at_bounds(self):
        catalog = Catalog()
        catalog.ensure_view(HTTP)

        assert catalog.tab_at(0) == HTTP
        assert catalog.tab_at(1) is None
        assert catalog.tab_at(-1) is None

    def test_counts_across_views(self):
        catalog = Catalog()
        catalog.ensure_view(HTTP).upsert(make_record("A"))
        ssh = catalog.ensure_view("_ssh._tcp.local.")
        ssh.upsert(
            ServiceRecord(identity_key="box._ssh._tcp.local.", name="box", service_type="_ssh._tcp.local.")
        )
        ssh.mark_dead("box._ssh._tcp.local.")

        assert catalog.alive_count == 1
        assert catalog.dead_count == 1

    def test_clear_error(self):
        catalog = Catalog()
        catalog.last_error = "boom"
        catalog.clear_error()

        assert catalog.last_error is None
