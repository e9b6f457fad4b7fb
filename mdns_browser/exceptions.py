"""Exception types raised by mdns_browser."""


class BrowserError(Exception):
    """Base class for all mdns_browser errors."""


class ConfigError(BrowserError):
    """Configuration file or environment override could not be applied."""


class DiscoveryError(BrowserError):
    """mDNS discovery could not be started."""
