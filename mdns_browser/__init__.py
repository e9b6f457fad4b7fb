"""Terminal browser for mDNS / DNS-SD services on the local network."""

__version__ = "0.3.0"
