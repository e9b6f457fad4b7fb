"""Discovery events and the channel that carries them to the UI thread.

Producers are zeroconf browser threads; the single consumer is the render
loop. Raw payloads are decoded into one of three event types at the
boundary so nothing loosely typed reaches the catalog.
"""

import ipaddress
import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from .model import ServiceRecord

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 4096


@dataclass(frozen=True)
class Resolved:
    record: ServiceRecord

    @property
    def service_type(self) -> str:
        return self.record.service_type


@dataclass(frozen=True)
class Removed:
    service_type: str
    identity_key: str


@dataclass(frozen=True)
class SearchStopped:
    service_type: str
    reason: str | None = None  # Set when browsing failed rather than ended


DiscoveryEvent = Union[Resolved, Removed, SearchStopped]


def instance_name(identity_key: str, service_type: str) -> str:
    """Strip the service type suffix from a full DNS-SD name."""
    suffix = "." + service_type
    if identity_key.endswith(suffix):
        return identity_key[: -len(suffix)]
    return identity_key.rstrip(".")


def _format_address(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return str(ipaddress.ip_address(bytes(raw)))
    return str(ipaddress.ip_address(str(raw)))


def _decode_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _decode_txt(raw: Any) -> dict[str, str]:
    if not raw:
        return {}
    pairs = {_decode_text(key): _decode_text(value) for key, value in dict(raw).items()}
    return {key: pairs[key] for key in sorted(pairs)}


def _optional(payload: dict[str, Any], key: str, kind: type) -> Any:
    value = payload.get(key)
    if value is not None and not isinstance(value, kind):
        raise TypeError(f"{key} must be {kind.__name__}, got {type(value).__name__}")
    return value


def decode_event(payload: dict[str, Any]) -> DiscoveryEvent | None:
    """Decode a raw discovery payload into a typed event.

    Args:
        payload: Dict with a "type" of "resolved", "removed" or
            "search_stopped", a "service_type", and for record events an
            "identity_key". Resolved payloads may carry "name", "host",
            "addresses", "port", "txt" and a "timestamp" datetime.

    Returns:
        The decoded event, or None if the payload is unusable.
    """
    kind = payload.get("type")
    service_type = payload.get("service_type")
    if not service_type or not isinstance(service_type, str):
        logger.debug(f"Dropping event without service type: {payload!r}")
        return None

    if kind == "search_stopped":
        reason = payload.get("reason")
        return SearchStopped(service_type, str(reason) if reason else None)

    identity_key = payload.get("identity_key")
    if not identity_key or not isinstance(identity_key, str):
        logger.debug(f"Dropping {kind} event without identity key for {service_type}")
        return None

    if kind == "removed":
        return Removed(service_type, identity_key)

    if kind != "resolved":
        logger.debug(f"Dropping unrecognised event type {kind!r}")
        return None

    try:
        addresses = sorted({_format_address(a) for a in payload.get("addresses") or ()})
        port = int(payload.get("port") or 0)
        if not 0 <= port <= 65535:
            raise ValueError(f"port {port} out of range")
        txt = _decode_txt(payload.get("txt"))
        name = _optional(payload, "name", str)
        host = _optional(payload, "host", str)
        timestamp = _optional(payload, "timestamp", datetime)
    except (TypeError, ValueError) as e:
        logger.debug(f"Dropping malformed resolve for {identity_key}: {e}")
        return None

    record = ServiceRecord(
        identity_key=identity_key,
        name=name or instance_name(identity_key, service_type),
        service_type=service_type,
        host=host or "",
        addresses=addresses,
        port=port,
        txt=txt,
        last_seen=timestamp or datetime.now(),
    )
    return Resolved(record)


class EventChannel:
    """Bounded multi-producer, single-consumer queue of discovery events.

    When full, the oldest queued event is discarded to make room. A later
    resolve for the same instance supersedes anything that was dropped.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self.dropped = 0
        self._queue: queue.Queue[DiscoveryEvent] = queue.Queue(maxsize)
        self._put_lock = threading.Lock()

    def __len__(self) -> int:
        return self._queue.qsize()

    def put(self, event: DiscoveryEvent) -> None:
        """Enqueue without blocking, evicting the oldest event on overflow."""
        with self._put_lock:
            while True:
                try:
                    self._queue.put_nowait(event)
                    return
                except queue.Full:
                    pass
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    continue
                self.dropped += 1
                if self.dropped == 1 or self.dropped % 1000 == 0:
                    logger.warning(
                        f"Event channel full ({self.maxsize}); "
                        f"{self.dropped} events dropped so far"
                    )

    def post(self, payload: dict[str, Any]) -> bool:
        """Decode a raw payload and enqueue it.

        Returns:
            False if the payload was malformed and discarded.
        """
        event = decode_event(payload)
        if event is None:
            return False
        self.put(event)
        return True

    def get_nowait(self) -> DiscoveryEvent | None:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None
