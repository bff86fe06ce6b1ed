"""Unlock real audio output on the first user gesture."""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, List, Optional, Sequence

from spectroscape.errors import PlaybackEngineError

logger = logging.getLogger(__name__)

# matplotlib reports touches as button presses
QUALIFYING_EVENTS = ("button_press_event", "key_press_event")


class PlaybackState(enum.Enum):
    LOCKED = "locked"
    UNLOCKING = "unlocking"
    RUNNING = "running"


class MatplotlibEventSource:
    """Adapter exposing a canvas' ``mpl_connect`` as connect/disconnect."""

    def __init__(self, canvas) -> None:
        self.canvas = canvas

    def connect(self, event: str, handler: Callable[[Any], None]) -> int:
        return self.canvas.mpl_connect(event, handler)

    def disconnect(self, token: int) -> None:
        self.canvas.mpl_disconnect(token)


class PlaybackGestureGate:
    """Locked -> Unlocking -> Running state machine for the audio engine.

    The first qualifying event moves the gate to ``UNLOCKING`` and tries to
    resume the engine and start the source at ``offset_fn()``. A failure is
    logged and the gate stays ``UNLOCKING`` so the next gesture retries. Once
    ``RUNNING`` every listener is removed and later events do nothing.
    """

    def __init__(
        self,
        engine,
        offset_fn: Callable[[], float],
        events: Sequence[str] = QUALIFYING_EVENTS,
    ) -> None:
        self.engine = engine
        self.offset_fn = offset_fn
        self.events = tuple(events)
        self.state = PlaybackState.LOCKED
        self._source = None
        self._tokens: List[Any] = []
        self.attempts = 0

    @property
    def attached(self) -> bool:
        return bool(self._tokens)

    def attach(self, source) -> None:
        if self.state is PlaybackState.RUNNING:
            return
        self.detach()
        self._source = source
        self._tokens = [source.connect(name, self.handle_event) for name in self.events]

    def detach(self) -> None:
        if self._source is not None:
            for token in self._tokens:
                self._source.disconnect(token)
        self._tokens = []
        self._source = None

    def handle_event(self, event: Optional[Any] = None) -> PlaybackState:
        if self.state is PlaybackState.RUNNING:
            return self.state
        if self.state is PlaybackState.LOCKED:
            self.state = PlaybackState.UNLOCKING
            logger.debug("Unlocking audio after %s", getattr(event, "name", "gesture"))
        self.attempts += 1
        try:
            self.engine.resume()
            if self.engine.state != "running":
                logger.warning(
                    "Audio engine still %s; waiting for next gesture",
                    self.engine.state,
                )
                return self.state
            self.engine.start_source(self.offset_fn())
        except PlaybackEngineError as exc:
            logger.warning("Audio unlock failed: %s", exc)
            return self.state
        self.state = PlaybackState.RUNNING
        self.detach()
        logger.info("Audio playback running")
        return self.state

    def unlock(self) -> PlaybackState:
        """Programmatic gesture, e.g. from the mute toggle."""
        return self.handle_event(None)


__all__ = [
    "MatplotlibEventSource",
    "PlaybackGestureGate",
    "PlaybackState",
    "QUALIFYING_EVENTS",
]
