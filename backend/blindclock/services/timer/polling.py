from config import Config

from .state import FINISHED, IN_PROGRESS


def poll_interval(status, paused=False, config=Config) -> int:
    """Seconds to wait before the next fetch of the game record."""
    if status == IN_PROGRESS:
        if paused:
            return int(getattr(config, 'POLL_PAUSED_SEC', 30))
        return int(getattr(config, 'POLL_IN_PROGRESS_SEC', 2))
    if status == FINISHED:
        return int(getattr(config, 'POLL_FINISHED_SEC', 30))
    # Registering and anything unknown: safety net only
    return int(getattr(config, 'POLL_REGISTERING_SEC', 12 * 60 * 60))
