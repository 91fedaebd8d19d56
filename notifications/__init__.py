#Real-time fanout: event names, room keys and the Fanout service.

from .fanout import Fanout, NullNotifier
from . import events

__all__ = ["Fanout", "NullNotifier", "events"]
