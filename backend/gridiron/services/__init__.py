"""Game domain services: lobby, football drives, trivia rounds and timers.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics. Services raise :class:`ActionError` when a
caller may not perform an action right now.
"""

from .errors import ActionError

__all__ = ['ActionError']
