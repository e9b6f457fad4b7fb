"""mDNS/Zeroconf service discovery feeding the browser's event channel."""

from .mdns import META_QUERY, ServiceBrowser, normalize_service_type

__all__ = ["META_QUERY", "ServiceBrowser", "normalize_service_type"]
