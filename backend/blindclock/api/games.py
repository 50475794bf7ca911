from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
import json

from blindclock import db
from blindclock.models import Game
from blindclock.socketio_events import emit_state_update
from blindclock.services.timer.state import FINISHED, IN_PROGRESS, REGISTERING, TOURNAMENT_STATUSES
from blindclock.services.timer.structure import BlindStructureError, parse_blind_structure


games = Blueprint('games', __name__)


def _get_game_or_404(game_code):
    return Game.query.filter_by(game_code=game_code.upper()).first_or_404()


def _creator_only(game, action):
    """Return an error response unless the caller created the game."""
    if not current_user.is_authenticated:
        return jsonify({'error': 'User authentication required'}), 401
    if not game.is_created_by(current_user):
        return jsonify({'error': f'Only the game creator can {action}'}), 403
    return None


def _validated_structure(raw):
    """JSON text for a blindStructure payload; raises BlindStructureError."""
    if raw is None:
        return None
    parse_blind_structure(raw)
    return json.dumps(raw)


def _parse_game_date(value):
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None


def _commit(game, event):
    try:
        db.session.add(game)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[{event}-failed] game={game.game_code} error={exc}")
        return False
    return True


@games.route('', methods=['POST'])
@login_required
def create_game():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Name is required'}), 400

    config = data.get('config') or {}
    try:
        structure = _validated_structure(config.get('blindStructure'))
    except BlindStructureError as exc:
        return jsonify({'error': f'Invalid blind structure: {exc}'}), 400

    status = config.get('tournamentStatus') or REGISTERING
    if status != REGISTERING:
        return jsonify({'error': 'New games start in Registering'}), 400

    new_game = Game(
        name=name,
        note=data.get('note'),
        game_date_time=_parse_game_date(data.get('gameDateTime')),
        created_by_id=current_user.id,
        blind_structure=structure,
    )
    if not _commit(new_game, 'create'):
        return jsonify({'error': 'Failed to create game'}), 500
    current_app.logger.info(f"[game-create] game={new_game.game_code} creator={current_user.username}")
    return jsonify({'message': 'Game created successfully', 'game': new_game.to_dict()}), 201


@games.route('', methods=['GET'])
@login_required
def list_games():
    rows = Game.query.filter_by(created_by_id=current_user.id).order_by(Game.created_at.desc()).all()
    return jsonify([game.to_dict() for game in rows])


@games.route('/<string:game_code>', methods=['GET'])
def get_game(game_code):
    # Public read: viewers need no account
    game = _get_game_or_404(game_code)
    return jsonify(game.to_dict())


@games.route('/<string:game_code>', methods=['DELETE'])
def delete_game(game_code):
    game = _get_game_or_404(game_code)
    denied = _creator_only(game, 'delete this game')
    if denied:
        return denied
    db.session.delete(game)
    db.session.commit()
    current_app.logger.info(f"[game-delete] game={game.game_code}")
    return jsonify({'message': 'Game deleted successfully'})


@games.route('/<string:game_code>/config', methods=['POST'])
def update_config(game_code):
    game = _get_game_or_404(game_code)
    denied = _creator_only(game, 'change the blind structure')
    if denied:
        return denied
    if game.tournament_status != REGISTERING:
        return jsonify({'error': 'The blind structure is locked once the tournament has started'}), 400

    data = request.get_json(silent=True) or {}
    try:
        game.blind_structure = _validated_structure(data.get('blindStructure'))
    except BlindStructureError as exc:
        return jsonify({'error': f'Invalid blind structure: {exc}'}), 400
    if not _commit(game, 'config'):
        return jsonify({'error': 'Failed to update blind structure'}), 500
    emit_state_update(game.game_code, 'config')
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/status', methods=['POST'])
def update_status(game_code):
    game = _get_game_or_404(game_code)
    denied = _creator_only(game, 'update tournament status')
    if denied:
        return denied

    status = (request.get_json(silent=True) or {}).get('status')
    if status not in TOURNAMENT_STATUSES:
        return jsonify({'error': f'Status must be one of {", ".join(TOURNAMENT_STATUSES)}'}), 400
    if game.tournament_status == FINISHED:
        return jsonify({'error': 'Cannot change status from Finished. Tournament is complete.'}), 400
    if status == IN_PROGRESS and not game.blind_levels:
        return jsonify({'error': 'A blind structure is required before the tournament starts'}), 400

    previous = game.tournament_status
    game.tournament_status = status
    if not _commit(game, 'status'):
        return jsonify({'error': 'Failed to update tournament status'}), 500
    current_app.logger.info(f"[game-status] game={game.game_code} {previous} -> {status}")
    emit_state_update(game.game_code, 'status')
    return jsonify({'success': True, 'status': status})


@games.route('/<string:game_code>/timer-state', methods=['POST'])
def save_timer_state(game_code):
    """Store the creator's clock. Partial updates; the store stamps the time."""
    game = _get_game_or_404(game_code)
    denied = _creator_only(game, 'update timer state')
    if denied:
        return denied

    data = request.get_json(silent=True) or {}

    expected = data.get('expectedVersion')
    if expected is not None and current_app.config.get('TIMER_REJECT_STALE_WRITES'):
        try:
            expected = int(expected)
        except (TypeError, ValueError):
            return jsonify({'error': 'expectedVersion must be an integer'}), 400
        if expected != (game.timer_version or 0):
            current_app.logger.info(
                f"[timer-stale] game={game.game_code} expected={expected} actual={game.timer_version}"
            )
            return jsonify({'error': 'Timer state was updated by another session',
                            'timerState': game.timer_state_dict()}), 409

    changes = {}
    if 'currentBlindLevel' in data:
        try:
            level = int(data['currentBlindLevel'])
        except (TypeError, ValueError):
            return jsonify({'error': 'currentBlindLevel must be an integer'}), 400
        levels = game.blind_levels
        if level < 0 or (levels and level >= len(levels)):
            return jsonify({'error': 'currentBlindLevel is outside the blind structure'}), 400
        changes['current_blind_level'] = level

    if 'timeRemainingSeconds' in data:
        seconds = data['timeRemainingSeconds']
        if seconds is not None:
            try:
                seconds = int(seconds)
            except (TypeError, ValueError):
                return jsonify({'error': 'timeRemainingSeconds must be an integer'}), 400
            if seconds < 0:
                return jsonify({'error': 'timeRemainingSeconds cannot be negative'}), 400
        changes['time_remaining_seconds'] = seconds
    if 'timerRunning' in data:
        changes['timer_running'] = bool(data['timerRunning'])
    if 'timerPaused' in data:
        changes['timer_paused'] = bool(data['timerPaused'])

    for column, value in changes.items():
        setattr(game, column, value)
    if game.timer_paused and not game.timer_running:
        game.timer_paused = False

    game.timer_last_update = datetime.now(timezone.utc)
    game.timer_version = (game.timer_version or 0) + 1
    if not _commit(game, 'timer-save'):
        return jsonify({'error': 'Failed to save timer state'}), 500

    current_app.logger.info(
        f"[timer-save] game={game.game_code} level={game.current_blind_level} "
        f"remaining={game.time_remaining_seconds} running={game.timer_running} "
        f"paused={game.timer_paused} version={game.timer_version}"
    )
    emit_state_update(game.game_code, 'timer')
    return jsonify({'success': True, 'timerState': game.timer_state_dict()})
