import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests

from config import Config

from .state import REGISTERING, TimerState
from .structure import BlindStructure, load_blind_structure

log = logging.getLogger(__name__)


class TimerStoreError(RuntimeError):
    """Raised when the game store cannot be read or written."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StaleTimerWrite(TimerStoreError):
    """The store refused a timer write carrying an outdated version."""


@dataclass(frozen=True)
class GameSnapshot:
    """The slice of a game record the clock cares about."""

    game_code: str
    creator: Optional[str]
    status: str
    structure: Optional[BlindStructure]
    timer: TimerState = field(default_factory=TimerState)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> 'GameSnapshot':
        if not isinstance(data, Mapping):
            raise TimerStoreError("game payload is not a JSON object")
        config = data.get('config')
        if not isinstance(config, Mapping):
            config = {}
        return cls(
            game_code=str(data.get('id') or ''),
            creator=data.get('createdBy'),
            status=config.get('tournamentStatus') or REGISTERING,
            structure=load_blind_structure(config.get('blindStructure')),
            timer=TimerState.from_payload(data),
        )


class HttpTimerStore:
    """Game store client speaking the JSON API of :mod:`blindclock.api.games`.

    ``session`` only needs ``get``/``post`` returning objects with
    ``status_code`` and ``json()``; a :class:`requests.Session` by default.
    """

    def __init__(self, base_url: Optional[str] = None, session=None, timeout: Optional[float] = None):
        self.base_url = (Config.CLOCK_API_BASE if base_url is None else base_url).rstrip('/')
        self.session = session if session is not None else requests.Session()
        self.timeout = Config.CLOCK_HTTP_TIMEOUT_SEC if timeout is None else timeout
        self._versions: Dict[str, int] = {}

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs):
        try:
            response = getattr(self.session, method)(self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise TimerStoreError(f"{method.upper()} {path} failed: {exc}") from exc
        try:
            body = response.json()
        except ValueError:
            body = None
        if response.status_code >= 400:
            detail = body.get('error') if isinstance(body, dict) else None
            message = f"{method.upper()} {path} returned {response.status_code}: {detail or 'no detail'}"
            if response.status_code == 409:
                raise StaleTimerWrite(message, response.status_code)
            raise TimerStoreError(message, response.status_code)
        # Proxies and captive portals answer with anything; only a JSON object is ours
        if not isinstance(body, dict):
            raise TimerStoreError(f"{method.upper()} {path} did not return a JSON object", response.status_code)
        return body

    def login(self, username: str, password: str) -> dict:
        return self._request('post', '/login', json={'username': username, 'password': password})

    def fetch(self, game_code: str) -> GameSnapshot:
        snapshot = GameSnapshot.from_payload(self._request('get', f'/api/games/{game_code}'))
        # Only the first read seeds the version; afterwards it follows our own writes.
        # With stale-write rejection on, a session that loses a 409 keeps losing:
        # the first writer holds the clock until the loser forgets the game.
        if snapshot.timer.version is not None:
            self._versions.setdefault(game_code, snapshot.timer.version)
        return snapshot

    def save(self, game_code: str, state: TimerState) -> TimerState:
        body = state.to_payload()
        known = self._versions.get(game_code)
        if known is not None:
            body['expectedVersion'] = known
        data = self._request('post', f'/api/games/{game_code}/timer-state', json=body)
        timer = data.get('timerState')
        saved = TimerState.from_payload(timer if isinstance(timer, dict) else {})
        if saved.version is not None:
            self._versions[game_code] = saved.version
        log.debug(f"[timer-save] game={game_code} level={saved.level_index} remaining={saved.seconds_remaining} version={saved.version}")
        return saved

    def forget(self, game_code: str) -> None:
        self._versions.pop(game_code, None)
