"""Sequential playback with explicit per-session state."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

logger = logging.getLogger(__name__)


class PlaybackError(Exception):
    """A single segment failed to play; the sequence moves on."""


@dataclass
class PlaybackSession:
    """State of one playback run.

    Each run owns its session, so several audiobooks can be played (or
    tested) independently.
    """
    current_index: int = 0
    completed: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


def play_sequentially(
    items: Sequence,
    play_one: Callable,
    session: PlaybackSession,
    pause_ms: int,
    error_pause_ms: int,
    sleep: Callable[[float], None] = time.sleep,
) -> PlaybackSession:
    """Play items in order, one at a time.

    ``play_one(item)`` blocks until the item's terminal event. A PlaybackError
    is logged and the item recorded as failed; the next item still plays.
    """
    total = len(items)
    while session.current_index < total and not session.cancelled:
        index = session.current_index
        try:
            play_one(items[index])
        except PlaybackError as e:
            logger.error("Playback error for segment %d/%d: %s", index + 1, total, e)
            session.failed.append(index)
            pause = error_pause_ms
        else:
            session.completed.append(index)
            pause = pause_ms

        session.current_index += 1
        if session.current_index < total and not session.cancelled:
            sleep(pause / 1000)

    return session
