import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config import Config

from .authority import Role, resolve_role
from .drift import correct_timer_state, load_timer_state
from .engine import ClockEngine
from .gate import PersistenceGate
from .polling import poll_interval
from .state import FINISHED, IN_PROGRESS, REGISTERING, TimerState, utcnow
from .store import GameSnapshot, TimerStoreError
from .structure import BlindLevel, BlindStructure, level_at

log = logging.getLogger(__name__)


def format_time(seconds: Optional[int]) -> str:
    if seconds is None:
        return '--:--'
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


@dataclass(frozen=True)
class TimerView:
    """What a display needs to render the clock right now."""

    available: bool
    status: str
    role: Role
    level_index: Optional[int] = None
    level: Optional[BlindLevel] = None
    next_level: Optional[BlindLevel] = None
    seconds_remaining: Optional[int] = None
    running: bool = False
    paused: bool = False
    poll_interval: int = 0

    @property
    def formatted(self) -> str:
        return format_time(self.seconds_remaining) if self.available else '--:--'

    @property
    def can_control(self) -> bool:
        return self.available and self.role == Role.CREATOR and self.status == IN_PROGRESS


class TournamentClock:
    """Client-side blind clock for one game at a time.

    Call :meth:`refresh` on the polling schedule and :meth:`tick` once per
    second, or let :meth:`run` do both on the current thread. Only the
    creator's clock ever counts down locally or writes to the store;
    viewers re-derive their display from the last fetched snapshot.
    """

    def __init__(self, store, game_code: str, identity: Optional[str] = None, *,
                 clock: Callable[[], datetime] = utcnow, config=Config):
        self.store = store
        self.identity = identity
        self.clock = clock
        self.config = config
        self._reset(game_code)

    def _reset(self, game_code: str) -> None:
        self.game_code = game_code
        self.snapshot: Optional[GameSnapshot] = None
        self.status = REGISTERING
        self.role = Role.VIEWER
        self.structure: Optional[BlindStructure] = None
        self.gate: Optional[PersistenceGate] = None
        self.engine: Optional[ClockEngine] = None
        self.last_error: Optional[TimerStoreError] = None
        self._viewer_timer: Optional[TimerState] = None
        self._closed = False

    # -- polling -----------------------------------------------------------

    def refresh(self) -> bool:
        """Fetch the game record and fold it into the local clock.

        A failed fetch leaves the previous state on display.
        """
        try:
            snapshot = self.store.fetch(self.game_code)
        except TimerStoreError as exc:
            self.last_error = exc
            log.warning(f"[timer-fetch-failed] game={self.game_code} error={exc}")
            return False
        self.last_error = None
        self._apply(snapshot)
        return True

    def _apply(self, snapshot: GameSnapshot) -> None:
        self.snapshot = snapshot
        self.status = snapshot.status
        role = resolve_role(self.identity, snapshot.creator)
        if role != self.role:
            log.info(f"[timer-role] game={self.game_code} role={role.value}")
            self.role = role
            if self.gate is not None:
                self.gate.role = role

        # The structure is frozen once the creator's engine has taken over
        if self.engine is None:
            self.structure = snapshot.structure
        if not self.structure:
            return

        if self.status == FINISHED:
            if self.engine is not None and not self.engine.finished:
                log.info(f"[timer-finished] game={self.game_code}")
                self.engine.stop()
            return
        if self.status != IN_PROGRESS:
            return

        if self.role == Role.CREATOR:
            if self.engine is None:
                self._start_engine(snapshot.timer)
            return
        load_timer_state(snapshot.timer, self.structure, self._gate(), now=self.clock())
        self._viewer_timer = snapshot.timer

    def _gate(self) -> PersistenceGate:
        if self.gate is None:
            self.gate = PersistenceGate(
                self.store,
                self.game_code,
                self.role,
                save_every_ticks=int(getattr(self.config, 'TIMER_SAVE_EVERY_TICKS', 10)),
            )
        return self.gate

    def _start_engine(self, timer: TimerState) -> None:
        gate = self._gate()
        engine = ClockEngine(self.structure, gate)
        # Enter Running from scratch only when the store holds no prior clock
        if timer.is_initialized:
            correction = load_timer_state(timer, self.structure, gate, now=self.clock())
            engine.adopt(correction)
        else:
            engine.seed()
        self.engine = engine

    # -- clock -------------------------------------------------------------

    def tick(self) -> Optional[TimerState]:
        if self._closed or self.engine is None or self.role != Role.CREATOR or self.status != IN_PROGRESS:
            return None
        return self.engine.tick()

    def toggle_pause(self) -> bool:
        """Pause or resume. Viewers get a silent no-op."""
        if self._closed or self.engine is None or self.role != Role.CREATOR or self.status != IN_PROGRESS:
            return False
        before = self.engine.phase
        self.engine.toggle_pause()
        return self.engine.phase != before

    def _current(self):
        """(level_index, seconds_remaining, running, paused) for display."""
        if self.engine is not None and self.role == Role.CREATOR:
            state = self.engine.snapshot()
            return state.level_index, state.seconds_remaining, state.running, state.paused
        if self.status == IN_PROGRESS:
            timer = self._viewer_timer
            if timer is None or not timer.is_initialized:
                # Creator has not written yet: show the opening level
                timer = TimerState(seconds_remaining=self.structure[0].duration_seconds, running=True)
            c = correct_timer_state(timer, self.structure, self.clock())
            return c.level_index, c.seconds_remaining, c.running, c.paused
        return 0, self.structure[0].duration_seconds, False, False

    def is_paused(self) -> bool:
        if not self.structure or self.status != IN_PROGRESS:
            return False
        return self._current()[3]

    def poll_interval(self) -> int:
        return poll_interval(self.status, self.is_paused(), config=self.config)

    def view(self) -> TimerView:
        interval = self.poll_interval()
        if not self.structure or self.status == FINISHED:
            return TimerView(available=False, status=self.status, role=self.role, poll_interval=interval)
        index, seconds, running, paused = self._current()
        return TimerView(
            available=True,
            status=self.status,
            role=self.role,
            level_index=index,
            level=level_at(self.structure, index),
            next_level=level_at(self.structure, index + 1),
            seconds_remaining=seconds,
            running=running,
            paused=paused,
            poll_interval=interval,
        )

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Final flush of the creator's in-flight state. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self.engine is not None and self.role == Role.CREATOR and not self.engine.finished:
            self.engine.flush()

    def switch_game(self, game_code: str) -> None:
        previous = self.game_code
        self.close()
        forget = getattr(self.store, 'forget', None)
        if forget is not None:
            forget(previous)
        self._reset(game_code)
        log.info(f"[timer-switch] game={previous} -> {game_code}")

    def run(self, should_stop: Optional[Callable[[], bool]] = None, *,
            sleep: Callable[[float], None] = time.sleep,
            monotonic: Callable[[], float] = time.monotonic,
            on_tick: Optional[Callable[[TimerView], None]] = None) -> None:
        """Drive ticks and polls cooperatively until ``should_stop`` is true."""
        should_stop = should_stop or (lambda: False)
        start = monotonic()
        next_tick = start + 1.0
        next_poll = start
        try:
            while not should_stop():
                now = monotonic()
                if now >= next_poll:
                    self.refresh()
                    next_poll = now + self.poll_interval()
                if now >= next_tick:
                    self.tick()
                    next_tick += 1.0
                    if on_tick is not None:
                        on_tick(self.view())
                sleep(max(0.0, min(next_tick, next_poll) - monotonic()))
        finally:
            self.close()
