from blindclock import db
from blindclock.models import Game

from conftest import create_game, make_levels, register


def test_register_login_and_check(client):
    register(client, 'alice')
    assert client.get('/check_login').get_json()['user']['username'] == 'alice'
    client.post('/logout')
    assert client.get('/check_login').status_code == 401
    res = client.post('/login', json={'username': 'alice', 'password': 'wrong'})
    assert res.status_code == 401
    res = client.post('/login', json={'username': 'alice', 'password': 'password'})
    assert res.get_json()['success'] is True


def test_create_game_requires_login(client):
    res = client.post('/api/games', json={'name': 'Nope'})
    assert res.status_code == 401


def test_create_and_read_game(director, client):
    code = create_game(director)
    game = client.get(f'/api/games/{code}').get_json()
    assert game['id'] == code
    assert game['createdBy'] == 'director'
    assert game['config']['tournamentStatus'] == 'Registering'
    assert len(game['config']['blindStructure']) == 2
    assert game['currentBlindLevel'] == 0
    assert game['timeRemainingSeconds'] is None
    assert game['timerRunning'] is False
    assert game['timerPaused'] is False
    assert game['timerLastUpdate'] is None
    # Codes are case-insensitive
    assert client.get(f'/api/games/{code.lower()}').status_code == 200


def test_create_game_rejects_bad_structure(director):
    res = director.post('/api/games', json={
        'name': 'Broken',
        'config': {'blindStructure': [{'smallBlind': 10, 'bigBlind': 20, 'duration': 0}]},
    })
    assert res.status_code == 400
    assert 'Invalid blind structure' in res.get_json()['error']


def test_list_games_only_returns_mine(director, player):
    create_game(director, name='Mine')
    create_game(player, name='Theirs')
    names = [g['name'] for g in director.get('/api/games').get_json()]
    assert names == ['Mine']
    active = director.get('/games/active').get_json()
    assert [g['name'] for g in active] == ['Mine']


def test_unknown_game_is_404(client):
    assert client.get('/api/games/NOPE99').status_code == 404


def test_status_lifecycle(director, player, client):
    code = create_game(director)
    assert player.post(f'/api/games/{code}/status', json={'status': 'In Progress'}).status_code == 403
    assert client.post(f'/api/games/{code}/status', json={'status': 'In Progress'}).status_code == 401
    assert director.post(f'/api/games/{code}/status', json={'status': 'Paused'}).status_code == 400

    res = director.post(f'/api/games/{code}/status', json={'status': 'In Progress'})
    assert res.get_json() == {'success': True, 'status': 'In Progress'}
    assert director.post(f'/api/games/{code}/status', json={'status': 'Finished'}).status_code == 200
    res = director.post(f'/api/games/{code}/status', json={'status': 'In Progress'})
    assert res.status_code == 400
    assert 'Finished' in res.get_json()['error']


def test_cannot_start_without_structure(director):
    res = director.post('/api/games', json={'name': 'No blinds'})
    code = res.get_json()['game']['id']
    res = director.post(f'/api/games/{code}/status', json={'status': 'In Progress'})
    assert res.status_code == 400


def test_structure_locked_after_start(director):
    code = create_game(director)
    res = director.post(f'/api/games/{code}/config', json={'blindStructure': make_levels(15, 15, 15)})
    assert len(res.get_json()['config']['blindStructure']) == 3
    director.post(f'/api/games/{code}/status', json={'status': 'In Progress'})
    res = director.post(f'/api/games/{code}/config', json={'blindStructure': make_levels(5)})
    assert res.status_code == 400


def test_timer_state_write_by_creator(director, client):
    code = create_game(director)
    res = director.post(f'/api/games/{code}/timer-state', json={
        'currentBlindLevel': 1,
        'timeRemainingSeconds': 420,
        'timerRunning': True,
        'timerPaused': False,
    })
    assert res.status_code == 200
    timer = res.get_json()['timerState']
    assert timer['currentBlindLevel'] == 1
    assert timer['timeRemainingSeconds'] == 420
    assert timer['timerVersion'] == 1
    assert timer['timerLastUpdate'] is not None

    game = client.get(f'/api/games/{code}').get_json()
    assert game['currentBlindLevel'] == 1
    assert game['timerRunning'] is True


def test_timer_state_partial_update(director):
    code = create_game(director)
    director.post(f'/api/games/{code}/timer-state', json={
        'currentBlindLevel': 0, 'timeRemainingSeconds': 300, 'timerRunning': True, 'timerPaused': False,
    })
    res = director.post(f'/api/games/{code}/timer-state', json={'timerPaused': True})
    timer = res.get_json()['timerState']
    assert timer['timeRemainingSeconds'] == 300
    assert timer['timerPaused'] is True
    assert timer['timerVersion'] == 2


def test_paused_without_running_is_normalised(director):
    code = create_game(director)
    res = director.post(f'/api/games/{code}/timer-state', json={
        'timeRemainingSeconds': 300, 'timerRunning': False, 'timerPaused': True,
    })
    assert res.get_json()['timerState']['timerPaused'] is False


def test_timer_state_rejects_non_creator(director, player, client):
    code = create_game(director)
    body = {'currentBlindLevel': 0, 'timeRemainingSeconds': 10, 'timerRunning': True, 'timerPaused': False}
    assert player.post(f'/api/games/{code}/timer-state', json=body).status_code == 403
    assert client.post(f'/api/games/{code}/timer-state', json=body).status_code == 401
    assert director.post('/api/games/NOPE99/timer-state', json=body).status_code == 404
    assert client.get(f'/api/games/{code}').get_json()['timeRemainingSeconds'] is None


def test_timer_state_validation(director):
    code = create_game(director)
    url = f'/api/games/{code}/timer-state'
    assert director.post(url, json={'currentBlindLevel': 2}).status_code == 400
    assert director.post(url, json={'currentBlindLevel': -1}).status_code == 400
    assert director.post(url, json={'currentBlindLevel': 'two'}).status_code == 400
    assert director.post(url, json={'timeRemainingSeconds': -3}).status_code == 400
    assert director.post(url, json={'timeRemainingSeconds': None}).status_code == 200


def test_stale_writes_are_last_write_wins_by_default(director):
    code = create_game(director)
    url = f'/api/games/{code}/timer-state'
    director.post(url, json={'timeRemainingSeconds': 300})
    director.post(url, json={'timeRemainingSeconds': 290})
    res = director.post(url, json={'timeRemainingSeconds': 500, 'expectedVersion': 0})
    assert res.status_code == 200
    assert res.get_json()['timerState']['timeRemainingSeconds'] == 500


def test_stale_writes_rejected_when_enabled(flask_app, director):
    flask_app.config['TIMER_REJECT_STALE_WRITES'] = True
    code = create_game(director)
    url = f'/api/games/{code}/timer-state'
    assert director.post(url, json={'timeRemainingSeconds': 300, 'expectedVersion': 0}).status_code == 200
    res = director.post(url, json={'timeRemainingSeconds': 500, 'expectedVersion': 0})
    assert res.status_code == 409
    assert res.get_json()['timerState']['timeRemainingSeconds'] == 300
    assert director.post(url, json={'timeRemainingSeconds': 290, 'expectedVersion': 1}).status_code == 200


def test_delete_game(flask_app, director, player):
    code = create_game(director)
    assert player.delete(f'/api/games/{code}').status_code == 403
    assert director.delete(f'/api/games/{code}').status_code == 200
    with flask_app.app_context():
        assert db.session.query(Game).filter_by(game_code=code).first() is None


def test_other_user_cannot_touch_the_clock(director, player):
    code = create_game(director)
    director.post(f'/api/games/{code}/status', json={'status': 'In Progress'})
    director.post(f'/api/games/{code}/timer-state', json={'timeRemainingSeconds': 300, 'timerRunning': True})
    assert player.get('/check_login').get_json()['user']['username'] == 'player1'
    res = player.post(f'/api/games/{code}/timer-state', json={'timeRemainingSeconds': 5})
    assert res.status_code == 403
    assert player.post(f'/api/games/{code}/status', json={'status': 'Finished'}).status_code == 403
    game = player.get(f'/api/games/{code}').get_json()
    assert game['timeRemainingSeconds'] == 300
    assert game['config']['tournamentStatus'] == 'In Progress'


def test_saved_blind_structures(director, player):
    levels = make_levels(20, 20, 30)
    res = director.post('/api/blind-structures', json={'name': 'Turbo', 'levels': levels, 'enableBBAntes': True})
    assert res.status_code == 201
    saved = res.get_json()['structure']
    assert saved['enableBBAntes'] is True
    assert saved['levels'] == levels

    dup = director.post('/api/blind-structures', json={'name': 'Turbo', 'levels': levels})
    assert dup.status_code == 400
    bad = director.post('/api/blind-structures', json={'name': 'Bad', 'levels': [{'duration': 'x'}]})
    assert bad.status_code == 400

    assert [s['name'] for s in director.get('/api/blind-structures').get_json()] == ['Turbo']
    assert player.get('/api/blind-structures').get_json() == []
    assert player.delete(f"/api/blind-structures/{saved['id']}").status_code == 404
    assert director.delete(f"/api/blind-structures/{saved['id']}").status_code == 200
    assert director.get('/api/blind-structures').get_json() == []
