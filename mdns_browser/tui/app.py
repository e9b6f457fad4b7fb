"""Render loop: poll keys, drain discovery events, paint a frame."""

import logging

from blessed import Terminal
from blessed.keyboard import Keystroke

from ..aggregator import EventAggregator
from ..config import Config
from ..discovery import ServiceBrowser
from ..events import EventChannel
from ..navigation import Navigator
from .keys import action_for_key
from .render import Frame, list_viewport_height, render_frame

logger = logging.getLogger(__name__)


class BrowserApp:
    """Single-threaded driver owning the catalog and navigation state."""

    def __init__(
        self,
        config: Config,
        term: Terminal | None = None,
        browser: ServiceBrowser | None = None,
    ):
        """Initialize the app.

        Args:
            config: Loaded configuration.
            term: Terminal to draw on. A new one is created if omitted.
            browser: Discovery source. Built from config if omitted.
        """
        self.config = config
        self.term = term or Terminal()
        self.channel = browser.channel if browser else EventChannel(config.discovery.queue_size)
        self.aggregator = EventAggregator(self.channel, batch_limit=config.ui.batch_limit)
        self.navigator = Navigator(self.aggregator, show_dead=config.ui.show_dead)
        self.browser = browser or ServiceBrowser(
            self.channel,
            service_types=config.discovery.service_types,
            auto_detect=config.discovery.auto_detect,
            resolve_timeout_ms=config.discovery.resolve_timeout_ms,
        )
        self.running = True
        self._size = (0, 0)

    @property
    def viewport(self) -> int:
        return list_viewport_height(self.term.height)

    def tick(self, key: Keystroke | None) -> None:
        """Advance one frame's worth of state: one key, then queued events."""
        viewport = self.viewport
        if key:
            action = action_for_key(key)
            if action is None:
                logger.debug(f"Unbound key {key!r}")
            if not self.navigator.handle(action, viewport):
                self.running = False
                return

        changed = self.aggregator.drain_available()
        size = (self.term.width, self.term.height)
        if changed or size != self._size:
            self._size = size
            self.navigator.reclamp(viewport)

    def frame(self) -> Frame:
        return render_frame(
            self.term,
            self.navigator,
            self.term.width,
            self.term.height,
            dropped=self.channel.dropped,
        )

    def paint(self) -> None:
        term = self.term
        frame = self.frame()
        out = [term.move_xy(0, y) + line + term.clear_eol for y, line in enumerate(frame.lines)]
        out.extend(term.move_xy(x, y) + text for x, y, text in frame.overlay)
        print("".join(out), end="", flush=True)

    def run(self) -> None:
        """Browse and drive the UI until the user quits.

        Discovery is started before the terminal is touched so a startup
        failure is reported on a normal screen. The terminal modes are
        context managers and are restored on every exit path.

        Raises:
            DiscoveryError: If mDNS browsing cannot start.
        """
        self.browser.start()
        try:
            with self.term.fullscreen(), self.term.raw(), self.term.hidden_cursor():
                self.paint()
                while self.running:
                    key = self.term.inkey(timeout=self.config.ui.poll_timeout_seconds)
                    self.tick(key)
                    if self.running:
                        self.paint()
        finally:
            self.browser.stop()
