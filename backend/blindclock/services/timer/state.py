from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

REGISTERING = 'Registering'
IN_PROGRESS = 'In Progress'
FINISHED = 'Finished'
TOURNAMENT_STATUSES = (REGISTERING, IN_PROGRESS, FINISHED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            ts = datetime.fromisoformat(text)
        except ValueError:
            return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class TimerState:
    """One game's replicated clock record as last written to the store.

    ``seconds_remaining`` is only exact when the clock is paused or not
    running; otherwise it is relative to ``last_update``.
    """

    level_index: int = 0
    seconds_remaining: Optional[int] = None
    running: bool = False
    paused: bool = False
    last_update: Optional[datetime] = None
    version: Optional[int] = None

    def __post_init__(self):
        if self.paused and not self.running:
            object.__setattr__(self, 'paused', False)

    @property
    def is_initialized(self) -> bool:
        return self.seconds_remaining is not None

    @property
    def ticking(self) -> bool:
        return self.running and not self.paused and self.is_initialized

    def with_changes(self, **changes) -> 'TimerState':
        return replace(self, **changes)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> 'TimerState':
        return cls(
            level_index=max(0, _optional_int(data.get('currentBlindLevel')) or 0),
            seconds_remaining=_optional_int(data.get('timeRemainingSeconds')),
            running=bool(data.get('timerRunning') or False),
            paused=bool(data.get('timerPaused') or False),
            last_update=parse_timestamp(data.get('timerLastUpdate')),
            version=_optional_int(data.get('timerVersion')),
        )

    def to_payload(self) -> dict:
        return {
            'currentBlindLevel': self.level_index,
            'timeRemainingSeconds': self.seconds_remaining,
            'timerRunning': self.running,
            'timerPaused': self.paused,
        }
