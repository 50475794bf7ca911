"""Tournament blind clock: the replicated countdown shared by a game's viewers.

Only the game's creator counts down locally and writes the clock back to
the store; everyone else re-derives the current level and remaining time
from the last stored snapshot. Nothing here talks HTTP except ``store``.
"""

from .authority import Role, resolve_role
from .drift import DriftCorrection, correct_timer_state, load_timer_state
from .engine import ClockEngine, Phase
from .gate import PersistenceGate
from .polling import poll_interval
from .session import TimerView, TournamentClock, format_time
from .state import FINISHED, IN_PROGRESS, REGISTERING, TOURNAMENT_STATUSES, TimerState
from .store import GameSnapshot, HttpTimerStore, StaleTimerWrite, TimerStoreError
from .structure import BlindLevel, BlindStructureError, load_blind_structure, parse_blind_structure

__all__ = [
    'BlindLevel',
    'BlindStructureError',
    'ClockEngine',
    'DriftCorrection',
    'FINISHED',
    'GameSnapshot',
    'HttpTimerStore',
    'IN_PROGRESS',
    'PersistenceGate',
    'Phase',
    'REGISTERING',
    'Role',
    'StaleTimerWrite',
    'TOURNAMENT_STATUSES',
    'TimerState',
    'TimerStoreError',
    'TimerView',
    'TournamentClock',
    'correct_timer_state',
    'format_time',
    'load_blind_structure',
    'load_timer_state',
    'parse_blind_structure',
    'poll_interval',
    'resolve_role',
]
