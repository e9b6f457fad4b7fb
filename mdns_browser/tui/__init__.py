"""Terminal front end: key decoding, frame painting and the render loop."""

from .app import BrowserApp
from .keys import action_for_key

__all__ = ["BrowserApp", "action_for_key"]
