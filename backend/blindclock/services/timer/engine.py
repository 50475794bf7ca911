import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .drift import DriftCorrection
from .gate import PersistenceGate
from .state import TimerState
from .structure import BlindLevel

log = logging.getLogger(__name__)


class Phase(str, Enum):
    STOPPED = 'stopped'
    RUNNING = 'running'
    PAUSED = 'paused'


@dataclass
class _ClockState:
    level_index: int = 0
    seconds_remaining: Optional[int] = None
    phase: Phase = Phase.STOPPED


class ClockEngine:
    """Creator-side countdown for one game.

    The in-flight level and seconds live in a plain mutable object so that a
    teardown flush always sees the latest tick. ``tick`` is meant to be
    called once per real second by the host loop.
    """

    def __init__(self, structure: Sequence[BlindLevel], gate: PersistenceGate):
        if not structure:
            raise ValueError("a clock needs at least one blind level")
        self.structure = tuple(structure)
        self.gate = gate
        self._state = _ClockState()
        self.finished = False

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def level_index(self) -> int:
        return self._state.level_index

    @property
    def seconds_remaining(self) -> Optional[int]:
        return self._state.seconds_remaining

    @property
    def is_last_level(self) -> bool:
        return self._state.level_index >= len(self.structure) - 1

    def snapshot(self) -> TimerState:
        s = self._state
        return TimerState(
            level_index=s.level_index,
            seconds_remaining=s.seconds_remaining,
            running=s.phase != Phase.STOPPED,
            paused=s.phase == Phase.PAUSED,
        )

    def seed(self) -> TimerState:
        """Fresh start: level 0 at full duration."""
        s = self._state
        s.level_index = 0
        s.seconds_remaining = self.structure[0].duration_seconds
        s.phase = Phase.RUNNING
        log.info(f"[timer-seed] game={self.gate.game_code} level=0 remaining={s.seconds_remaining}")
        return self._publish()

    def adopt(self, correction: DriftCorrection) -> TimerState:
        """Take over a corrected snapshot loaded from the store."""
        s = self._state
        s.level_index = correction.level_index
        s.seconds_remaining = correction.seconds_remaining
        if not correction.running:
            s.phase = Phase.STOPPED
        elif correction.paused:
            s.phase = Phase.PAUSED
        else:
            s.phase = Phase.RUNNING
        if correction.exhausted:
            return self._exhaust()
        return self._publish()

    def tick(self) -> TimerState:
        s = self._state
        if s.phase != Phase.RUNNING or s.seconds_remaining is None or self.finished:
            return self.snapshot()
        s.seconds_remaining -= 1
        if s.seconds_remaining <= 0:
            return self._advance()
        return self._publish()

    def toggle_pause(self) -> TimerState:
        s = self._state
        if s.phase == Phase.RUNNING:
            s.phase = Phase.PAUSED
        elif s.phase == Phase.PAUSED:
            s.phase = Phase.RUNNING
        else:
            return self.snapshot()
        log.info(f"[timer-{s.phase.value}] game={self.gate.game_code} level={s.level_index} remaining={s.seconds_remaining}")
        return self._publish()

    def stop(self) -> None:
        """Tournament finished: the clock goes dormant for good."""
        self.finished = True

    def flush(self) -> bool:
        if self._state.seconds_remaining is None:
            return False
        return self.gate.flush(self.snapshot(), reason='teardown')

    def _advance(self) -> TimerState:
        s = self._state
        if self.is_last_level:
            return self._exhaust()
        s.level_index += 1
        s.seconds_remaining = self.structure[s.level_index].duration_seconds
        log.info(f"[timer-level] game={self.gate.game_code} level={s.level_index} remaining={s.seconds_remaining}")
        return self._publish()

    def _exhaust(self) -> TimerState:
        s = self._state
        s.seconds_remaining = 0
        s.phase = Phase.STOPPED
        log.info(f"[timer-exhausted] game={self.gate.game_code} level={s.level_index}")
        return self._publish()

    def _publish(self) -> TimerState:
        state = self.snapshot()
        self.gate.offer(state)
        return state
