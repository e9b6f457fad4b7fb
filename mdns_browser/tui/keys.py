"""Map blessed keystrokes to navigation actions."""

from blessed.keyboard import Keystroke

from ..navigation import Action

KEY_NAMES = {
    "KEY_DOWN": Action.DOWN,
    "KEY_UP": Action.UP,
    "KEY_RIGHT": Action.NEXT_TAB,
    "KEY_LEFT": Action.PREV_TAB,
    "KEY_PGDOWN": Action.PAGE_DOWN,
    "KEY_PGUP": Action.PAGE_UP,
    "KEY_HOME": Action.FIRST,
    "KEY_END": Action.LAST,
}

KEY_CHARS = {
    "j": Action.DOWN,
    "k": Action.UP,
    "l": Action.NEXT_TAB,
    "h": Action.PREV_TAB,
    "f": Action.PAGE_DOWN,
    " ": Action.PAGE_DOWN,
    "\x04": Action.PAGE_DOWN,  # Ctrl-D
    "b": Action.PAGE_UP,
    "\x15": Action.PAGE_UP,  # Ctrl-U
    "g": Action.FIRST,
    "G": Action.LAST,
    "d": Action.PURGE_DEAD,
    "s": Action.TOGGLE_DEAD,
    "c": Action.CLEAR_ERROR,
    "?": Action.HELP,
    "q": Action.QUIT,
    "\x03": Action.QUIT,  # Ctrl-C
}


def action_for_key(key: Keystroke | str) -> Action | None:
    """Return the action bound to a keystroke, or None if it is unbound."""
    name = getattr(key, "name", None)
    if name in KEY_NAMES:
        return KEY_NAMES[name]
    return KEY_CHARS.get(str(key))
