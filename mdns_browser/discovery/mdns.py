"""mDNS/Zeroconf browsing that feeds discovery events into a channel.

Zeroconf runs its own I/O threads and calls the state change handlers from
the browser threads. Handlers never touch UI state; they only post payloads
to the EventChannel, which the render loop drains.
"""

import logging
import threading
from datetime import datetime

from zeroconf import BadTypeInNameException, ServiceStateChange, Zeroconf
from zeroconf import ServiceBrowser as ZeroconfServiceBrowser

from ..events import EventChannel, instance_name
from ..exceptions import DiscoveryError

logger = logging.getLogger(__name__)

# DNS-SD meta query listing every service type advertised on the link
META_QUERY = "_services._dns-sd._udp.local."


def normalize_service_type(service_type: str) -> str:
    """Return a fully qualified service type: "_http._tcp" -> "_http._tcp.local."."""
    service_type = service_type.strip().rstrip(".")
    if not service_type.endswith(".local"):
        service_type = f"{service_type}.local"
    return f"{service_type}."


def is_browsable_type(service_type: str) -> bool:
    return "._sub." not in service_type


class ServiceBrowser:
    """Browses mDNS service types and posts their events to a channel."""

    def __init__(
        self,
        channel: EventChannel,
        service_types: list[str] | None = None,
        auto_detect: bool = True,
        resolve_timeout_ms: int = 3000,
    ):
        """Initialize the service browser.

        Args:
            channel: Channel receiving resolved/removed/stopped events.
            service_types: Service types to browse from the start.
            auto_detect: Also browse every type reported by the DNS-SD
                meta query.
            resolve_timeout_ms: Timeout for resolving one instance.
        """
        self.channel = channel
        self.service_types = [normalize_service_type(t) for t in service_types or []]
        self.auto_detect = auto_detect
        self.resolve_timeout_ms = resolve_timeout_ms
        self._zeroconf: Zeroconf | None = None
        self._meta_browser: ZeroconfServiceBrowser | None = None
        self._browsers: dict[str, ZeroconfServiceBrowser] = {}
        self._lock = threading.Lock()

    @property
    def browsed_types(self) -> list[str]:
        with self._lock:
            return list(self._browsers)

    def start(self) -> None:
        """Start browsing.

        Raises:
            DiscoveryError: If the mDNS sockets cannot be set up.
        """
        try:
            self._zeroconf = Zeroconf()
        except OSError as e:
            raise DiscoveryError(f"Could not start mDNS: {e}") from e

        for service_type in self.service_types:
            self.browse(service_type)

        if self.auto_detect:
            try:
                self._meta_browser = ZeroconfServiceBrowser(
                    self._zeroconf,
                    META_QUERY,
                    handlers=[self._on_type_state_change],
                )
            except (BadTypeInNameException, RuntimeError, OSError) as e:
                self.stop()
                raise DiscoveryError(f"Could not browse service types: {e}") from e
            logger.info("Auto-detecting service types")

    def browse(self, service_type: str) -> bool:
        """Start browsing one service type, once per session.

        Returns:
            True if a new browser was started.
        """
        if self._zeroconf is None or not is_browsable_type(service_type):
            return False

        with self._lock:
            if service_type in self._browsers:
                return False
            try:
                browser = ZeroconfServiceBrowser(
                    self._zeroconf,
                    service_type,
                    handlers=[self._on_service_state_change],
                )
            except (BadTypeInNameException, RuntimeError, OSError) as e:
                logger.info(f"Cannot browse {service_type}: {e}")
                self.channel.post(
                    {"type": "search_stopped", "service_type": service_type, "reason": str(e)}
                )
                return False
            self._browsers[service_type] = browser

        logger.info(f"Browsing for {service_type} services")
        return True

    def _on_type_state_change(
        self,
        zeroconf: Zeroconf,
        service_type: str,
        name: str,
        state_change: ServiceStateChange,
    ) -> None:
        """Handle a service type appearing in the meta query."""
        # Types that disappear keep their tab; only new ones matter here
        if state_change is ServiceStateChange.Added:
            self.browse(normalize_service_type(name))

    def _on_service_state_change(
        self,
        zeroconf: Zeroconf,
        service_type: str,
        name: str,
        state_change: ServiceStateChange,
    ) -> None:
        """Handle service state changes (add/remove/update)."""
        if state_change in (ServiceStateChange.Added, ServiceStateChange.Updated):
            self._resolve(zeroconf, service_type, name)
        elif state_change is ServiceStateChange.Removed:
            self.channel.post(
                {"type": "removed", "service_type": service_type, "identity_key": name}
            )

    def _resolve(self, zeroconf: Zeroconf, service_type: str, name: str) -> None:
        """Resolve an instance and post it."""
        try:
            info = zeroconf.get_service_info(
                service_type, name, timeout=self.resolve_timeout_ms
            )
        except (BadTypeInNameException, OSError) as e:
            logger.debug(f"Resolve failed for {name}: {e}")
            return

        if info is None:
            logger.debug(f"No answer resolving {name}")
            return

        self.channel.post(
            {
                "type": "resolved",
                "service_type": service_type,
                "identity_key": name,
                "name": instance_name(name, service_type),
                "host": info.server or "",
                "addresses": info.parsed_addresses(),
                "port": info.port,
                "txt": info.properties,
                "timestamp": datetime.now(),
            }
        )

    def stop(self) -> None:
        """Stop all browsers and close zeroconf."""
        if self._meta_browser:
            self._meta_browser.cancel()
            self._meta_browser = None

        with self._lock:
            browsers = dict(self._browsers)
            self._browsers.clear()

        for service_type, browser in browsers.items():
            browser.cancel()
            self.channel.post({"type": "search_stopped", "service_type": service_type})

        if self._zeroconf:
            self._zeroconf.close()
            self._zeroconf = None
        logger.info("Service browsing stopped")
