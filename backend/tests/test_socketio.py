def _events(sio, name):
    return [pkt['args'][0] for pkt in sio.get_received('/ws') if pkt['name'] == name]


def _create_and_join(client, game_type='tictactoe'):
    code = client.post('/api/games', json={'playerId': 'p1', 'playerName': 'Alice', 'gameType': game_type}).get_json()['id']
    client.post('/api/games/join', json={'gameId': code, 'playerId': 'p2', 'playerName': 'Bob'})
    return code


def _attach(sio, code, player_id):
    sio.emit('join', {'gameId': code, 'playerId': player_id}, namespace='/ws')
    updates = _events(sio, 'gameUpdate')
    assert updates and updates[-1]['id'] == code
    return updates[-1]


def test_socket_connect_and_ping(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'connected' for pkt in received)

    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert _events(sio_client, 'pong') == [{'n': 1}]


def test_join_unknown_game_reports_error(make_sio_client):
    sio = make_sio_client()
    sio.emit('join', {'gameId': 'NOPE00', 'playerId': 'p1'}, namespace='/ws')
    errors = _events(sio, 'error')
    assert errors[0]['code'] == 'not_found'


def test_join_as_stranger_reports_error(client, make_sio_client):
    code = _create_and_join(client)
    sio = make_sio_client()
    sio.emit('join', {'gameId': code, 'playerId': 'p9'}, namespace='/ws')
    assert _events(sio, 'error')[0]['code'] == 'not_a_player'


def test_moves_broadcast_to_both_players(client, make_sio_client):
    code = _create_and_join(client)
    alice, bob = make_sio_client(), make_sio_client()
    _attach(alice, code, 'p1')
    _attach(bob, code, 'p2')

    moves = [(0, 'p1', alice), (3, 'p2', bob), (1, 'p1', alice), (4, 'p2', bob), (2, 'p1', alice)]
    for pos, pid, sio in moves:
        sio.emit('move', {'gameId': code, 'playerId': pid, 'position': pos}, namespace='/ws')

    alice_updates = _events(alice, 'gameUpdate')
    bob_updates = _events(bob, 'gameUpdate')
    assert len(alice_updates) == len(bob_updates) == 5
    assert bob_updates[-1]['status'] == 'finished'
    assert bob_updates[-1]['winner'] == 'X'


def test_error_only_reaches_requester(client, make_sio_client):
    code = _create_and_join(client)
    alice, bob = make_sio_client(), make_sio_client()
    _attach(alice, code, 'p1')
    _attach(bob, code, 'p2')

    bob.emit('move', {'gameId': code, 'playerId': 'p2', 'position': 0}, namespace='/ws')
    bob_received = bob.get_received('/ws')
    assert [p['name'] for p in bob_received] == ['error']
    assert bob_received[0]['args'][0]['code'] == 'not_your_turn'
    assert alice.get_received('/ws') == []


def test_malformed_messages_are_skipped(client, make_sio_client):
    code = _create_and_join(client)
    alice = make_sio_client()
    _attach(alice, code, 'p1')

    alice.emit('move', 'garbage', namespace='/ws')
    alice.emit('move', {'gameId': code, 'playerId': 'p1', 'position': '4'}, namespace='/ws')
    alice.emit('attack', {'gameId': code}, namespace='/ws')
    assert alice.get_received('/ws') == []
    assert client.get(f'/api/games/{code}').get_json()['board'] == [''] * 9


def test_http_join_notifies_waiting_creator(client, make_sio_client):
    code = client.post('/api/games', json={'playerId': 'p1', 'playerName': 'Alice'}).get_json()['id']
    alice = make_sio_client()
    _attach(alice, code, 'p1')

    client.post('/api/games/join', json={'gameId': code, 'playerId': 'p2', 'playerName': 'Bob'})
    updates = _events(alice, 'gameUpdate')
    assert updates[-1]['status'] == 'playing'


def test_battleship_flow_over_socket(client, make_sio_client, fleet_payload):
    code = _create_and_join(client, game_type='battleship')
    alice, bob = make_sio_client(), make_sio_client()
    _attach(alice, code, 'p1')
    _attach(bob, code, 'p2')

    alice.emit('placeShips', {'gameId': code, 'playerId': 'p1', 'ships': fleet_payload}, namespace='/ws')
    # 'orientation' is accepted as well as 'direction'
    bob_ships = [
        {'x': s['x'], 'y': s['y'], 'length': s['length'], 'orientation': s['direction']}
        for s in fleet_payload
    ]
    bob.emit('placeShips', {'gameId': code, 'playerId': 'p2', 'ships': bob_ships}, namespace='/ws')
    assert _events(alice, 'gameUpdate')[-1]['status'] == 'playing'
    bob.get_received('/ws')

    alice.emit('attack', {'gameId': code, 'playerId': 'p1', 'x': 9, 'y': 9}, namespace='/ws')
    update = _events(bob, 'gameUpdate')[-1]
    assert update['boards'][1]['grid'][9][9] == 'miss'
    assert update['turn'] == 1
    alice.get_received('/ws')

    bob.emit('attack', {'gameId': code, 'playerId': 'p2', 'x': 0, 'y': 0}, namespace='/ws')
    update = _events(alice, 'gameUpdate')[-1]
    assert update['boards'][0]['grid'][0][0] == 'hit'
    assert update['turn'] == 1


def test_bad_fleet_rejected_over_socket(client, make_sio_client, fleet_payload):
    code = _create_and_join(client, game_type='battleship')
    alice = make_sio_client()
    _attach(alice, code, 'p1')

    alice.emit('placeShips', {'gameId': code, 'playerId': 'p1', 'ships': fleet_payload[:-1]}, namespace='/ws')
    assert _events(alice, 'error')[0]['code'] == 'invalid_placement'

    alice.emit('placeShips', {'gameId': code, 'playerId': 'p1', 'ships': [{'x': 'a'}]}, namespace='/ws')
    assert _events(alice, 'error')[0]['code'] == 'invalid_input'
    assert client.get(f'/api/games/{code}').get_json()['boards'][0]['ready'] is False


def test_restart_vote_over_socket(client, make_sio_client):
    code = _create_and_join(client)
    alice, bob = make_sio_client(), make_sio_client()
    _attach(alice, code, 'p1')
    _attach(bob, code, 'p2')
    for pos, pid in [(0, 'p1'), (3, 'p2'), (1, 'p1'), (4, 'p2'), (2, 'p1')]:
        alice.emit('move', {'gameId': code, 'playerId': pid, 'position': pos}, namespace='/ws')
    bob.get_received('/ws')

    alice.emit('restartVote', {'gameId': code, 'playerId': 'p1'}, namespace='/ws')
    assert _events(bob, 'gameUpdate')[-1]['status'] == 'restart_requested'
    bob.emit('restartVote', {'gameId': code, 'playerId': 'p2'}, namespace='/ws')
    update = _events(alice, 'gameUpdate')[-1]
    assert update['status'] == 'playing'
    assert update['board'] == [''] * 9


def test_reconnect_replaces_connection(flask_app, client, make_sio_client):
    code = _create_and_join(client)
    first, alice_again, bob = make_sio_client(), make_sio_client(), make_sio_client()
    _attach(first, code, 'p1')
    _attach(alice_again, code, 'p1')
    _attach(bob, code, 'p2')
    first.get_received('/ws')

    bob.emit('move', {'gameId': code, 'playerId': 'p1', 'position': 4}, namespace='/ws')
    assert _events(alice_again, 'gameUpdate')
    assert first.get_received('/ws') == []
    presence = flask_app.extensions['duelhub.presence']
    assert len(presence.connections(code)) == 2


def test_disconnect_detaches_presence(flask_app, client, make_sio_client):
    code = _create_and_join(client)
    alice = make_sio_client()
    _attach(alice, code, 'p1')
    presence = flask_app.extensions['duelhub.presence']
    assert [pid for pid, _ in presence.connections(code)] == ['p1']

    alice.disconnect(namespace='/ws')
    assert presence.connections(code) == []
    # game state is untouched by the disconnect
    assert len(client.get(f'/api/games/{code}').get_json()['players']) == 2
