from flask_socketio import join_room, leave_room, emit
from blindclock import socketio

NAMESPACE = '/ws'


def room_for(game_code: str) -> str:
    return f"game:{game_code.upper()}"


def emit_state_update(game_code: str, reason: str) -> None:
    """Hint to viewers in the game room that the record changed.

    Clients still poll; this only lets them refresh early.
    """
    socketio.emit('state_update', {'game_code': game_code, 'reason': reason}, to=room_for(game_code), namespace=NAMESPACE)


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = room_for(game_code)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = room_for(game_code)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('join_game', handle_join_game, namespace=NAMESPACE)
    socketio.on_event('leave_game', handle_leave_game, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
