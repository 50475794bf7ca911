import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

log = logging.getLogger(__name__)


class BlindStructureError(ValueError):
    """Raised when a blind structure payload cannot be used for a clock."""


@dataclass(frozen=True)
class BlindLevel:
    index: int
    duration_minutes: int
    is_break: bool = False
    small_blind: Optional[float] = None
    big_blind: Optional[float] = None
    big_blind_ante: Optional[float] = None

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60

    def to_dict(self) -> dict:
        data = {
            'duration': self.duration_minutes,
            'isBreak': self.is_break,
        }
        if not self.is_break:
            data['smallBlind'] = self.small_blind
            data['bigBlind'] = self.big_blind
            data['bigBlindAnte'] = self.big_blind_ante
        return data


BlindStructure = Tuple[BlindLevel, ...]


def _number(value: Any, field: str, index: int) -> Optional[float]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise BlindStructureError(f"level {index}: {field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise BlindStructureError(f"level {index}: {field} must be a number") from None
    return int(number) if number.is_integer() else number


def parse_blind_level(raw: Any, index: int) -> BlindLevel:
    if not isinstance(raw, dict):
        raise BlindStructureError(f"level {index}: expected an object")

    duration = _number(raw.get('duration'), 'duration', index)
    if duration is None or duration <= 0 or not float(duration).is_integer():
        raise BlindStructureError(f"level {index}: duration must be a positive whole number of minutes")

    is_break = bool(raw.get('isBreak', False))
    if is_break:
        return BlindLevel(index=index, duration_minutes=int(duration), is_break=True)

    small = _number(raw.get('smallBlind'), 'smallBlind', index)
    big = _number(raw.get('bigBlind'), 'bigBlind', index)
    ante = _number(raw.get('bigBlindAnte'), 'bigBlindAnte', index)
    if small is None or small <= 0 or big is None or big <= 0:
        raise BlindStructureError(f"level {index}: play levels need positive smallBlind and bigBlind")
    if ante is not None and ante < 0:
        raise BlindStructureError(f"level {index}: bigBlindAnte cannot be negative")
    return BlindLevel(
        index=index,
        duration_minutes=int(duration),
        small_blind=small,
        big_blind=big,
        big_blind_ante=ante,
    )


def parse_blind_structure(raw: Any) -> BlindStructure:
    """Parse the ``blindStructure`` list of a game config.

    Raises :class:`BlindStructureError` for anything that is not a list of
    valid levels. An empty list parses to an empty tuple.
    """
    if not isinstance(raw, (list, tuple)):
        raise BlindStructureError("blind structure must be a list of levels")
    return tuple(parse_blind_level(item, i) for i, item in enumerate(raw))


def load_blind_structure(raw: Any) -> Optional[BlindStructure]:
    """Lenient variant used by clock clients: ``None`` means timer unavailable."""
    if raw is None:
        return None
    try:
        structure = parse_blind_structure(raw)
    except BlindStructureError as exc:
        log.warning(f"[structure-invalid] {exc}")
        return None
    return structure or None


def level_at(structure: Optional[Sequence[BlindLevel]], index: int) -> Optional[BlindLevel]:
    if not structure or index < 0 or index >= len(structure):
        return None
    return structure[index]
