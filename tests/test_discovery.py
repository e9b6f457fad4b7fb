"""Tests for the zeroconf-backed ServiceBrowser."""

from unittest.mock import MagicMock, patch

import pytest
from zeroconf import BadTypeInNameException, ServiceStateChange

from mdns_browser.discovery import META_QUERY, ServiceBrowser, normalize_service_type
from mdns_browser.events import EventChannel, Removed, Resolved, SearchStopped
from mdns_browser.exceptions import DiscoveryError

HTTP = "_http._tcp.local."


@pytest.fixture
def mock_zeroconf():
    with patch("mdns_browser.discovery.mdns.Zeroconf") as zc_cls:
        yield zc_cls


@pytest.fixture
def mock_browser_cls():
    with patch("mdns_browser.discovery.mdns.ZeroconfServiceBrowser") as browser_cls:
        yield browser_cls


@pytest.fixture
def channel():
    return EventChannel()


def drain(channel):
    events = []
    while (event := channel.get_nowait()) is not None:
        events.append(event)
    return events


def make_info(port=8080, addresses=("192.168.1.7",), properties=None, server="web.local."):
    info = MagicMock()
    info.port = port
    info.server = server
    info.parsed_addresses.return_value = list(addresses)
    info.properties = properties if properties is not None else {b"path": b"/"}
    return info


class TestNormalizeServiceType:
    """Tests for normalize_service_type."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("_http._tcp", HTTP),
            ("_http._tcp.", HTTP),
            ("_http._tcp.local", HTTP),
            (HTTP, HTTP),
            ("  _ipp._tcp  ", "_ipp._tcp.local."),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_service_type(raw) == expected


class TestStart:
    """Tests for starting and stopping the browser."""

    def test_browses_configured_types(self, channel, mock_zeroconf, mock_browser_cls):
        browser = ServiceBrowser(channel, service_types=["_http._tcp", "_ssh._tcp"], auto_detect=False)
        browser.start()

        browsed = [c.args[1] for c in mock_browser_cls.call_args_list]
        assert browsed == [HTTP, "_ssh._tcp.local."]
        assert browser.browsed_types == [HTTP, "_ssh._tcp.local."]

    def test_auto_detect_browses_meta_query(self, channel, mock_zeroconf, mock_browser_cls):
        browser = ServiceBrowser(channel, auto_detect=True)
        browser.start()

        assert mock_browser_cls.call_args.args[1] == META_QUERY

    def test_zeroconf_failure_raises(self, channel, mock_zeroconf):
        mock_zeroconf.side_effect = OSError("no multicast")
        browser = ServiceBrowser(channel)

        with pytest.raises(DiscoveryError):
            browser.start()

    def test_meta_browse_failure_raises(self, channel, mock_zeroconf, mock_browser_cls):
        mock_browser_cls.side_effect = RuntimeError("The event loop is not running")
        browser = ServiceBrowser(channel, auto_detect=True)

        with pytest.raises(DiscoveryError):
            browser.start()
        mock_zeroconf.return_value.close.assert_called_once()

    def test_bad_type_posts_search_stopped(self, channel, mock_zeroconf, mock_browser_cls):
        mock_browser_cls.side_effect = BadTypeInNameException("bad")
        browser = ServiceBrowser(channel, service_types=["_bogus"], auto_detect=False)
        browser.start()

        events = drain(channel)
        assert len(events) == 1
        assert isinstance(events[0], SearchStopped)
        assert events[0].reason

    def test_type_browsed_once(self, channel, mock_zeroconf, mock_browser_cls):
        browser = ServiceBrowser(channel, auto_detect=False)
        browser.start()

        assert browser.browse(HTTP) is True
        assert browser.browse(HTTP) is False
        assert mock_browser_cls.call_count == 1

    def test_subtypes_skipped(self, channel, mock_zeroconf, mock_browser_cls):
        browser = ServiceBrowser(channel, auto_detect=False)
        browser.start()

        assert browser.browse("_printer._sub._http._tcp.local.") is False
        mock_browser_cls.assert_not_called()

    def test_browse_before_start(self, channel):
        assert ServiceBrowser(channel).browse(HTTP) is False

    def test_stop_cancels_and_posts(self, channel, mock_zeroconf, mock_browser_cls):
        browser = ServiceBrowser(channel, service_types=[HTTP], auto_detect=False)
        browser.start()
        browser.stop()

        mock_browser_cls.return_value.cancel.assert_called_once()
        mock_zeroconf.return_value.close.assert_called_once()
        assert drain(channel) == [SearchStopped(HTTP)]
        assert browser.browsed_types == []

    def test_stop_without_start(self, channel):
        ServiceBrowser(channel).stop()


class TestStateChanges:
    """Tests for the zeroconf state change handlers."""

    @pytest.fixture
    def browser(self, channel, mock_zeroconf, mock_browser_cls):
        browser = ServiceBrowser(channel, auto_detect=False, resolve_timeout_ms=500)
        browser.start()
        return browser

    def test_added_resolves_and_posts(self, browser, channel):
        zc = MagicMock()
        zc.get_service_info.return_value = make_info()

        browser._on_service_state_change(
            zeroconf=zc,
            service_type=HTTP,
            name=f"Web.{HTTP}",
            state_change=ServiceStateChange.Added,
        )

        zc.get_service_info.assert_called_once_with(HTTP, f"Web.{HTTP}", timeout=500)
        events = drain(channel)
        assert len(events) == 1
        assert isinstance(events[0], Resolved)
        record = events[0].record
        assert record.name == "Web"
        assert record.host == "web.local."
        assert record.addresses == ["192.168.1.7"]
        assert record.port == 8080
        assert record.txt == {"path": "/"}

    def test_updated_resolves_again(self, browser, channel):
        zc = MagicMock()
        zc.get_service_info.return_value = make_info(port=9090)

        browser._on_service_state_change(
            zeroconf=zc,
            service_type=HTTP,
            name=f"Web.{HTTP}",
            state_change=ServiceStateChange.Updated,
        )

        assert drain(channel)[0].record.port == 9090

    def test_unresolvable_is_skipped(self, browser, channel):
        zc = MagicMock()
        zc.get_service_info.return_value = None

        browser._on_service_state_change(
            zeroconf=zc,
            service_type=HTTP,
            name=f"Web.{HTTP}",
            state_change=ServiceStateChange.Added,
        )

        assert drain(channel) == []

    def test_removed_posts_removed(self, browser, channel):
        browser._on_service_state_change(
            zeroconf=MagicMock(),
            service_type=HTTP,
            name=f"Web.{HTTP}",
            state_change=ServiceStateChange.Removed,
        )

        assert drain(channel) == [Removed(HTTP, f"Web.{HTTP}")]

    def test_meta_added_browses_type(self, browser, mock_browser_cls):
        browser._on_type_state_change(
            zeroconf=MagicMock(),
            service_type=META_QUERY,
            name="_ipp._tcp.local.",
            state_change=ServiceStateChange.Added,
        )

        assert "_ipp._tcp.local." in browser.browsed_types

    def test_meta_removed_keeps_browsing(self, browser):
        browser._on_type_state_change(
            zeroconf=MagicMock(),
            service_type=META_QUERY,
            name="_ipp._tcp.local.",
            state_change=ServiceStateChange.Added,
        )
        browser._on_type_state_change(
            zeroconf=MagicMock(),
            service_type=META_QUERY,
            name="_ipp._tcp.local.",
            state_change=ServiceStateChange.Removed,
        )

        assert "_ipp._tcp.local." in browser.browsed_types
