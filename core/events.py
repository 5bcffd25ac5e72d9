"""
Event channel between the engine and its observers.

Replaces per-component callback hooks with a single subscription point.
Events for one bar are published in the order
BarChange, narration, MetronomeBeat... before the next bar's events.
"""
import traceback
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type

from core.models import NoteTrigger


@dataclass(frozen=True)
class BarChange:
    bar_index: int
    chord: str
    beats: int
    hint: str
    measure_number: Optional[int]
    duration: float


@dataclass(frozen=True)
class MetronomeBeat:
    beat_index: int
    is_accent: bool
    total_beats: int


@dataclass(frozen=True)
class StateChange:
    state: str  # "playing" | "stopped"
    is_playing: bool
    progression_key: Optional[str]


@dataclass(frozen=True)
class NoteTriggered:
    trigger: NoteTrigger


@dataclass(frozen=True)
class OctaveToggled:
    octave_up: bool


@dataclass(frozen=True)
class Notice:
    """User-visible, non-blocking message."""
    message: str
    level: str = "info"  # "info" | "warning" | "error"


class EventBus:
    """Type-keyed publish/subscribe channel."""

    def __init__(self):
        self._handlers: Dict[type, List[Callable]] = {}

    def subscribe(self, event_type: Type, handler: Callable) -> Callable[[], None]:
        """
        Register handler for events of event_type.

        Returns:
            Callable that removes the subscription
        """
        self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe():
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event):
        """Deliver event to every handler subscribed to its type."""
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception as e:
                # An observer must not break the timer chain that published
                print(f"[EVENTS] Handler error for {type(event).__name__}: {e}")
                traceback.print_exc()

    def clear(self):
        self._handlers.clear()
