"""Navigation state: active tab, selected row, scroll offset and popups."""

from dataclasses import dataclass
from enum import Enum, auto

from .aggregator import EventAggregator
from .model import ServiceRecord, ServiceTypeView


class Action(Enum):
    DOWN = auto()
    UP = auto()
    NEXT_TAB = auto()
    PREV_TAB = auto()
    PAGE_DOWN = auto()
    PAGE_UP = auto()
    FIRST = auto()
    LAST = auto()
    PURGE_DEAD = auto()
    TOGGLE_DEAD = auto()
    CLEAR_ERROR = auto()
    HELP = auto()
    QUIT = auto()


ROW_ACTIONS = {
    Action.DOWN,
    Action.UP,
    Action.PAGE_DOWN,
    Action.PAGE_UP,
    Action.FIRST,
    Action.LAST,
}


@dataclass
class NavState:
    tab_index: int = 0
    row_index: int = 0
    scroll_offset: int = 0
    help_visible: bool = False
    show_dead: bool = True


def recompute_scroll(row_index: int, scroll_offset: int, length: int, viewport: int) -> int:
    """Return the scroll offset that keeps row_index inside the viewport."""
    viewport = max(1, viewport)
    scroll_offset = max(0, min(scroll_offset, length - viewport))
    if row_index < scroll_offset:
        scroll_offset = row_index
    elif row_index >= scroll_offset + viewport:
        scroll_offset = row_index - viewport + 1
    return scroll_offset


def move_row(action: Action, row_index: int, length: int, viewport: int) -> int:
    """Apply a row-relative action to row_index for a list of `length` rows."""
    if length <= 0:
        return 0
    last = length - 1
    if action is Action.DOWN:
        return min(row_index + 1, last)
    if action is Action.UP:
        return max(row_index - 1, 0)
    if action is Action.PAGE_DOWN:
        return min(row_index + max(1, viewport), last)
    if action is Action.PAGE_UP:
        return max(row_index - max(1, viewport), 0)
    if action is Action.FIRST:
        return 0
    if action is Action.LAST:
        return last
    return row_index


class Navigator:
    """Applies key actions to a NavState against the aggregator's catalog."""

    def __init__(self, aggregator: EventAggregator, show_dead: bool = True):
        self.aggregator = aggregator
        self.state = NavState(show_dead=show_dead)

    @property
    def catalog(self):
        return self.aggregator.catalog

    @property
    def active_type(self) -> str | None:
        return self.catalog.tab_at(self.state.tab_index)

    @property
    def active_view(self) -> ServiceTypeView | None:
        active = self.active_type
        return self.catalog.view(active) if active else None

    def rows(self) -> list[ServiceRecord]:
        """Records shown in the list for the active tab."""
        view = self.active_view
        if view is None:
            return []
        return view.visible(self.state.show_dead)

    def selected(self) -> ServiceRecord | None:
        rows = self.rows()
        if not rows:
            return None
        return rows[min(self.state.row_index, len(rows) - 1)]

    def handle(self, action: Action | None, viewport: int) -> bool:
        """Apply one key action.

        Args:
            action: Decoded key, or None for an unrecognised key.
            viewport: Number of list rows visible on screen.

        Returns:
            False when the application should exit.
        """
        state = self.state
        if state.help_visible:
            state.help_visible = False
            return True
        if action is None:
            return True

        if action is Action.QUIT:
            return False
        if action is Action.HELP:
            state.help_visible = True
            return True

        tab_count = len(self.catalog)
        if action in (Action.NEXT_TAB, Action.PREV_TAB):
            if tab_count:
                step = 1 if action is Action.NEXT_TAB else -1
                state.tab_index = (state.tab_index + step + tab_count) % tab_count
                state.row_index = 0
                state.scroll_offset = 0
        elif action in ROW_ACTIONS:
            state.row_index = move_row(action, state.row_index, len(self.rows()), viewport)
        elif action is Action.PURGE_DEAD:
            self.aggregator.purge_dead(self.active_type)
        elif action is Action.TOGGLE_DEAD:
            self._toggle_dead()
        elif action is Action.CLEAR_ERROR:
            self.catalog.clear_error()

        self.reclamp(viewport)
        return True

    def _toggle_dead(self) -> None:
        current = self.selected()
        self.state.show_dead = not self.state.show_dead
        if current is None:
            return
        # Same record if still shown, otherwise the first visible one after it
        index = 0
        for record in self.active_view:
            if record is current:
                break
            if record.alive or self.state.show_dead:
                index += 1
        self.state.row_index = index

    def reclamp(self, viewport: int) -> None:
        """Bring indices back into range after a move or a data change."""
        state = self.state
        tab_count = len(self.catalog)
        state.tab_index = min(max(state.tab_index, 0), max(tab_count - 1, 0))
        length = len(self.rows())
        state.row_index = min(max(state.row_index, 0), max(length - 1, 0))
        state.scroll_offset = recompute_scroll(
            state.row_index, state.scroll_offset, length, viewport
        )
