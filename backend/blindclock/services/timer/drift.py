"""Fast-forward a stored clock snapshot to what it should read right now.

The store only ever holds the value the creator last wrote. Every reader
(creator on its first load, viewers on every fetch) replays the wall-clock
time since ``last_update`` over the blind structure, rolling through as
many expired levels as needed.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from .state import TimerState, utcnow
from .structure import BlindLevel

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriftCorrection:
    level_index: int
    seconds_remaining: Optional[int]
    running: bool
    paused: bool
    transitions: int = 0
    # Running on the last level with nothing left on the clock
    exhausted: bool = False

    @property
    def level_changed(self) -> bool:
        return self.transitions > 0

    def to_state(self, last_update: Optional[datetime] = None) -> TimerState:
        return TimerState(
            level_index=self.level_index,
            seconds_remaining=self.seconds_remaining,
            running=self.running,
            paused=self.paused,
            last_update=last_update,
        )


def elapsed_seconds(since: Optional[datetime], now: datetime) -> int:
    if since is None:
        return 0
    elapsed = math.floor((now - since).total_seconds())
    # A reader whose clock runs behind the store never gains time
    return max(0, elapsed)


def correct_timer_state(state: TimerState, structure: Sequence[BlindLevel], now: Optional[datetime] = None) -> DriftCorrection:
    """Return the corrected level and remaining seconds as of ``now``.

    A stopped, paused or uninitialised clock is returned as stored. The
    structure must be non-empty.
    """
    last_index = len(structure) - 1
    level = min(max(state.level_index, 0), last_index)

    if not state.ticking:
        return DriftCorrection(level, state.seconds_remaining, state.running, state.paused)

    now = now or utcnow()
    remaining = state.seconds_remaining - elapsed_seconds(state.last_update, now)
    start = level
    while remaining <= 0 and level < last_index:
        level += 1
        # Breaks consume time like any other level
        remaining += structure[level].duration_seconds
    remaining = max(0, remaining)

    return DriftCorrection(
        level, remaining, state.running, state.paused,
        transitions=level - start,
        exhausted=remaining == 0 and level == last_index,
    )


def load_timer_state(state: TimerState, structure: Optional[Sequence[BlindLevel]], gate=None, now: Optional[datetime] = None) -> Optional[DriftCorrection]:
    """Correct a freshly fetched snapshot and publish any rollover.

    Returns ``None`` when there is no usable structure. When the level moved
    during the gap the corrected state is flushed through ``gate`` before
    returning, so the next reader starts from the same level. The gate
    ignores this for viewers.
    """
    if not structure:
        return None
    correction = correct_timer_state(state, structure, now)
    if correction.level_changed:
        # Viewers redo this on every poll; only the writer's catch-up is news
        writer = gate is not None and gate.enabled
        log.log(
            logging.INFO if writer else logging.DEBUG,
            f"[timer-catchup] level {state.level_index} -> {correction.level_index} "
            f"transitions={correction.transitions} remaining={correction.seconds_remaining}",
        )
        if writer:
            gate.flush(correction.to_state(), reason='catchup')
    return correction
