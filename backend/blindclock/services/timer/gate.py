import logging
from typing import Optional

from config import Config

from .authority import Role
from .state import TimerState
from .store import TimerStoreError

log = logging.getLogger(__name__)


class PersistenceGate:
    """Decide which clock states are written to the store.

    Level, pause and running changes are written immediately. Plain
    countdown ticks are written at most once per ``save_every_ticks``.
    A viewer's gate never touches the store.
    """

    def __init__(self, store, game_code: str, role: Role = Role.VIEWER, save_every_ticks: Optional[int] = None):
        self.store = store
        self.game_code = game_code
        self.role = role
        if save_every_ticks is None:
            save_every_ticks = int(getattr(Config, 'TIMER_SAVE_EVERY_TICKS', 10))
        self.save_every_ticks = max(1, save_every_ticks)
        self.writes = 0
        self.failures = 0
        self._last_written: Optional[TimerState] = None
        self._ticks_since_write = 0

    @property
    def enabled(self) -> bool:
        return self.role == Role.CREATOR

    def is_critical(self, state: TimerState) -> bool:
        last = self._last_written
        if last is None:
            return True
        return (
            state.level_index != last.level_index
            or state.paused != last.paused
            or state.running != last.running
        )

    def offer(self, state: TimerState) -> bool:
        """Called for every engine transition and every tick."""
        if not self.enabled:
            return False
        if self.is_critical(state):
            return self._write(state, reason='critical')
        self._ticks_since_write += 1
        if self._ticks_since_write >= self.save_every_ticks:
            return self._write(state, reason='periodic')
        return False

    def flush(self, state: TimerState, reason: str = 'flush') -> bool:
        if not self.enabled:
            return False
        return self._write(state, reason=reason)

    def reset(self) -> None:
        self._last_written = None
        self._ticks_since_write = 0

    def _write(self, state: TimerState, reason: str) -> bool:
        # Dropped writes still become the baseline; the countdown never waits on the store
        self._last_written = state
        self._ticks_since_write = 0
        try:
            self.store.save(self.game_code, state)
        except TimerStoreError as exc:
            self.failures += 1
            log.warning(f"[timer-save-failed] game={self.game_code} reason={reason} level={state.level_index} error={exc}")
            return False
        self.writes += 1
        log.debug(f"[timer-save] game={self.game_code} reason={reason} level={state.level_index} remaining={state.seconds_remaining}")
        return True
