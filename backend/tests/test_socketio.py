from conftest import events
from quizduel import room_store, users


def _user(name):
    return users.register(None, name)


def test_socket_connect_and_ping(sio_factory):
    sio_client = sio_factory()
    assert sio_client.is_connected('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert events(sio_client, 'pong') == [{'n': 1}]


def test_unregistered_connection_must_reauthenticate(sio_factory):
    sio_client = sio_factory()
    sio_client.emit('registerConnection', {'userId': 'missing'}, namespace='/ws')
    assert any(pkt['name'] == 'forceReauthenticate' for pkt in sio_client.get_received('/ws'))

    sio_client.emit('createRoom', {'difficulty': 'easy'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'forceReauthenticate' in names
    errors = [pkt['args'][0] for pkt in received if pkt['name'] == 'error']
    assert errors[0]['kind'] == 'Unauthenticated'


def test_room_updates_reach_both_players(sio_factory):
    hana, piotr = _user('Hana'), _user('Piotr')
    host_client = sio_factory(hana.id)
    guest_client = sio_factory(piotr.id)

    host_client.emit('createRoom', {'difficulty': 'easy'}, namespace='/ws')
    code = events(host_client, 'roomCreated')[0]['roomCode']

    guest_client.emit('joinRoom', {'roomCode': code.lower()}, namespace='/ws')
    assert events(guest_client, 'roomJoined') == [{'roomCode': code}]
    updates = events(host_client, 'roomUpdate')
    assert [p['displayName'] for p in updates[-1]['players']] == ['Hana', 'Piotr']

    host_client.emit('startGame', {'roomCode': code}, namespace='/ws')
    update = events(guest_client, 'roomUpdate')[-1]
    assert update['status'] == 'playing'
    assert update['currentRoundNumber'] == 1
    assert 'correctAnswers' not in update['currentQuestion']
    host_client.get_received('/ws')

    guest_client.emit('submitAnswer', {'roomCode': code, 'round': 1, 'answers': ['paris', 'Paris']},
                      namespace='/ws')
    confirmations = events(guest_client, 'answerSubmittedConfirmation')
    assert confirmations == [{'roomCode': code, 'roundNumber': 1, 'scoreEarned': 1}]
    # point-to-point only
    assert events(host_client, 'answerSubmittedConfirmation') == []


def test_socket_errors_are_reported_to_caller(sio_factory):
    hana, piotr = _user('Hana'), _user('Piotr')
    host_client = sio_factory(hana.id)
    guest_client = sio_factory(piotr.id)
    host_client.emit('createRoom', {'difficulty': 'easy'}, namespace='/ws')
    code = events(host_client, 'roomCreated')[0]['roomCode']
    guest_client.emit('joinRoom', {'roomCode': code}, namespace='/ws')
    guest_client.get_received('/ws')

    guest_client.emit('startGame', {'roomCode': code}, namespace='/ws')
    assert events(guest_client, 'error')[0]['kind'] == 'NotHost'
    guest_client.emit('nextRound', {'roomCode': code}, namespace='/ws')
    assert events(guest_client, 'error')[0]['kind'] == 'NotHost'
    guest_client.emit('joinRoom', {}, namespace='/ws')
    assert events(guest_client, 'error')[0]['kind'] == 'InvalidInput'


def test_host_disconnect_mid_game_promotes_guest(sio_factory):
    hana, piotr = _user('Hana'), _user('Piotr')
    host_client = sio_factory(hana.id)
    guest_client = sio_factory(piotr.id)
    host_client.emit('createRoom', {'difficulty': 'easy'}, namespace='/ws')
    code = events(host_client, 'roomCreated')[0]['roomCode']
    guest_client.emit('joinRoom', {'roomCode': code}, namespace='/ws')
    host_client.emit('startGame', {'roomCode': code}, namespace='/ws')
    guest_client.get_received('/ws')

    host_client.disconnect(namespace='/ws')
    update = events(guest_client, 'roomUpdate')[-1]
    assert update['hostUserId'] == piotr.id
    assert update['status'] == 'finished'
    assert [p['userId'] for p in update['players']] == [piotr.id]
    assert users.connection_of(hana.id) is None


def test_leaving_last_player_deletes_room(sio_factory):
    hana = _user('Hana')
    host_client = sio_factory(hana.id)
    host_client.emit('createRoom', {'difficulty': 'hard'}, namespace='/ws')
    code = events(host_client, 'roomCreated')[0]['roomCode']

    host_client.emit('leaveRoom', {'roomCode': code}, namespace='/ws')
    received = host_client.get_received('/ws')
    deleted = [pkt['args'][0] for pkt in received if pkt['name'] == 'roomDeleted']
    assert deleted == [{'roomCode': code, 'reason': 'empty'}]
    assert any(pkt['name'] == 'roomLeft' for pkt in received)
    assert room_store.find(code) is None


def test_reconnect_rejoins_room_channel(sio_factory, client):
    hana, piotr = _user('Hana'), _user('Piotr')
    res = client.post('/api/rooms/create', json={'difficulty': 'easy'}, headers={'X-User-Id': hana.id})
    code = res.get_json()['roomCode']

    # a connection registered after the REST call still gets the room's updates
    host_client = sio_factory()
    host_client.emit('registerConnection', {'userId': hana.id}, namespace='/ws')
    received = host_client.get_received('/ws')
    assert any(pkt['name'] == 'registered' for pkt in received)
    assert any(pkt['name'] == 'roomUpdate' for pkt in received)

    client.post(f'/api/rooms/join/{code}', headers={'X-User-Id': piotr.id})
    updates = events(host_client, 'roomUpdate')
    assert [p['displayName'] for p in updates[-1]['players']] == ['Hana', 'Piotr']


def test_non_object_payloads_are_rejected(sio_factory):
    hana = _user('Hana')
    sio_client = sio_factory(hana.id)
    for event, payload in [('joinRoom', 'ABCDEF'), ('createRoom', ['easy']),
                           ('submitAnswer', 42), ('leaveRoom', 'ABCDEF')]:
        sio_client.emit(event, payload, namespace='/ws')
        assert events(sio_client, 'error') == [
            {'kind': 'InvalidInput', 'message': 'Event payload must be a JSON object.'}
        ]

    fresh_client = sio_factory()
    fresh_client.emit('registerConnection', ['x'], namespace='/ws')
    received = fresh_client.get_received('/ws')
    assert [pkt['args'][0]['kind'] for pkt in received if pkt['name'] == 'error'] == ['InvalidInput']


def test_new_connection_replaces_old_one_in_room_channels(sio_factory, client):
    hana, piotr = _user('Hana'), _user('Piotr')
    old_client = sio_factory(hana.id)
    old_client.emit('createRoom', {'difficulty': 'easy'}, namespace='/ws')
    code = events(old_client, 'roomCreated')[0]['roomCode']

    new_client = sio_factory(hana.id)
    old_client.get_received('/ws')

    client.post(f'/api/rooms/join/{code}', headers={'X-User-Id': piotr.id})
    assert events(old_client, 'roomUpdate') == []
    updates = events(new_client, 'roomUpdate')
    assert [p['displayName'] for p in updates[-1]['players']] == ['Hana', 'Piotr']
