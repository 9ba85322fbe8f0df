import time

from codebreak.models import Role, Team

NS = '/ws'


def received(client, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in client.get_received(NS) if pkt['name'] == name]


def latest_game(client):
    updates = received(client, 'update_game')
    assert updates, 'expected an update_game event'
    return updates[-1]


def seat(client, room_code, team, role, name=None):
    client.emit('join_game', {'room_code': room_code}, namespace=NS)
    client.emit('set_role', {'team': team, 'role': role}, namespace=NS)
    if name:
        client.emit('set_name', {'name': name}, namespace=NS)


def seat_four(connect, room_code='ABCD'):
    clients = {
        'r_caller': connect(), 'b_caller': connect(), 'r_recv': connect(), 'b_recv': connect(),
    }
    clients['r_caller'].emit('join_game', {'room_code': room_code}, namespace=NS)
    clients['r_caller'].emit('create_game', {'room_code': room_code}, namespace=NS)
    seat(clients['r_caller'], room_code, 'RED', 'CALLER', 'Rita')
    seat(clients['b_caller'], room_code, 'BLUE', 'CALLER', 'Bea')
    seat(clients['r_recv'], room_code, 'RED', 'RECEIVER', 'Rob')
    seat(clients['b_recv'], room_code, 'BLUE', 'RECEIVER', 'Bo')
    for client in clients.values():
        client.get_received(NS)
    return clients


def test_socket_connect(connect):
    client = connect()
    assert client.is_connected(NS)
    events = received(client, 'connected')
    assert events and events[0]['reconnected'] is False


def test_ping_pong(connect):
    client = connect()
    client.get_received(NS)
    client.emit('ping', {'n': 1}, namespace=NS)
    assert received(client, 'pong') == [{'n': 1}]


def test_join_seats_spectator_and_projects(connect):
    clients = seat_four(connect)
    watcher = connect()
    watcher.emit('join_game', {'room_code': 'ABCD'}, namespace=NS)
    game = latest_game(watcher)
    assert game['me'] == {'team': 'SPECTATORS', 'role': 'RECEIVER'}
    assert game['state'] == 'GAME_INIT'
    assert game['teams']['RED']['caller'] == 'Rita'
    assert game['teams']['BLUE']['receivers'] == ['Bo']


def test_waiting_viewers_are_seated_when_game_is_created(connect):
    waiting = connect()
    waiting.emit('join_game', {'room_code': 'LATER'}, namespace=NS)
    waiting.get_received(NS)
    creator = connect()
    creator.emit('create_game', {'room_code': 'LATER'}, namespace=NS)
    packets = waiting.get_received(NS)
    names = [pkt['name'] for pkt in packets]
    assert 'game_created' in names
    updates = [pkt['args'][0] for pkt in packets if pkt['name'] == 'update_game']
    assert updates[-1]['me'] == {'team': 'SPECTATORS', 'role': 'RECEIVER'}


def test_full_first_round(connect, lobby):
    clients = seat_four(connect)
    clients['r_caller'].emit('start_game', namespace=NS)

    red_caller_view = latest_game(clients['r_caller'])
    blue_caller_view = latest_game(clients['b_caller'])
    red_recv_view = latest_game(clients['r_recv'])
    assert red_caller_view['state'] == 'CREATE_HINTS'
    assert red_caller_view['round_count'] == 1
    red_card = red_caller_view['teams']['RED']['active_card']
    assert len(red_card) == 3
    assert 'active_card' not in red_recv_view['teams']['RED']
    assert 'active_card' not in blue_caller_view['teams']['RED']
    assert 'target_words' not in blue_caller_view['teams']['RED']
    assert len(blue_caller_view['teams']['BLUE']['target_words']) == 4

    clients['r_caller'].emit('hint_submit', {'hint': ['sky', 'river', 'coin']}, namespace=NS)
    clients['b_caller'].emit('hint_submit', {'hint': ['salt', 'bark', 'tide']}, namespace=NS)
    game = latest_game(clients['b_recv'])
    assert game['state'] == 'RED_REVEAL'
    assert game['teams']['BLUE']['active_guess_submitted'] is True
    assert game['teams']['RED']['hint_history'] == [['sky', 'river', 'coin']]

    clients['r_recv'].emit('guess_change', {'guess': red_card}, namespace=NS)
    clients['r_recv'].emit('guess_submit', namespace=NS)
    game = latest_game(clients['r_recv'])
    assert game['state'] == 'BLUE_REVEAL'
    assert game['teams']['RED']['error_count'] == 0
    assert game['teams']['RED']['card_history'] == [red_card]

    clients['b_recv'].emit('guess_submit', namespace=NS)
    game = latest_game(clients['r_caller'])
    assert game['state'] == 'CREATE_HINTS'
    assert game['round_count'] == 2
    assert lobby.registry.get('ABCD').round_count == 2


def test_rejected_actions_produce_no_update(connect, lobby):
    clients = seat_four(connect)
    clients['r_caller'].emit('hint_submit', {'hint': ['a', 'b', 'c']}, namespace=NS)
    assert received(clients['r_caller'], 'update_game') == []

    clients['r_caller'].emit('start_game', namespace=NS)
    for client in clients.values():
        client.get_received(NS)
    clients['r_caller'].emit('hint_submit', {'hint': ['a', 'b']}, namespace=NS)
    clients['r_recv'].emit('hint_submit', {'hint': ['a', 'b', 'c']}, namespace=NS)
    clients['r_caller'].emit('hint_submit', 'not a dict', namespace=NS)
    clients['r_caller'].emit('start_game', namespace=NS)
    for client in clients.values():
        assert received(client, 'update_game') == []
    session = lobby.registry.get('ABCD')
    assert session.teams[Team.RED].active_hint is None


def test_actions_outside_a_room_are_ignored(connect):
    client = connect()
    client.get_received(NS)
    client.emit('start_game', namespace=NS)
    client.emit('set_role', {'team': 'RED', 'role': 'CALLER'}, namespace=NS)
    client.emit('leave_game', namespace=NS)
    assert received(client, 'update_game') == []


def test_caller_seat_conflict(connect, lobby):
    clients = seat_four(connect)
    clients['r_recv'].emit('set_role', {'team': 'RED', 'role': 'CALLER'}, namespace=NS)
    session = lobby.registry.get('ABCD')
    assert session.get_role(session.teams[Team.RED].caller) == Role.CALLER
    assert lobby.directory.name_of(session.teams[Team.RED].caller) == 'Rita'
    assert received(clients['r_recv'], 'update_game') == []


def test_leave_game(connect, lobby):
    clients = seat_four(connect)
    clients['b_recv'].emit('leave_game', namespace=NS)
    assert received(clients['b_recv'], 'update_game')[-1] is None
    game = latest_game(clients['b_caller'])
    assert game['teams']['BLUE']['receivers'] == []
    session = lobby.registry.get('ABCD')
    assert len(session.members()) == 3


def test_rename_is_broadcast(connect):
    clients = seat_four(connect)
    clients['b_recv'].emit('set_name', {'name': '  Bobby  '}, namespace=NS)
    assert latest_game(clients['r_caller'])['teams']['BLUE']['receivers'] == ['Bobby']


def test_disconnect_without_token_frees_the_seat(connect, lobby):
    clients = seat_four(connect)
    clients['b_caller'].disconnect(namespace=NS)
    session = lobby.registry.get('ABCD')
    assert session.teams[Team.BLUE].caller is None
    assert latest_game(clients['r_caller'])['teams']['BLUE']['caller'] is None


def test_reconnect_restores_seat(connect, lobby):
    first = connect(token='tok-1')
    first.emit('join_game', {'room_code': 'ABCD'}, namespace=NS)
    first.emit('create_game', {'room_code': 'ABCD'}, namespace=NS)
    seat(first, 'ABCD', 'RED', 'CALLER', 'Rita')
    other = connect()
    seat(other, 'ABCD', 'BLUE', 'RECEIVER', 'Bo')
    first.disconnect(namespace=NS)

    session = lobby.registry.get('ABCD')
    assert session.teams[Team.RED].caller is not None
    assert lobby.continuity.saved('tok-1').role == Role.CALLER

    second = connect(token='tok-1')
    packets = second.get_received(NS)
    connected = [pkt['args'][0] for pkt in packets if pkt['name'] == 'connected']
    assert connected[-1]['reconnected'] is True
    updates = [pkt['args'][0] for pkt in packets if pkt['name'] == 'update_game']
    assert updates[-1]['me'] == {'team': 'RED', 'role': 'CALLER'}
    assert updates[-1]['teams']['RED']['caller'] == 'Rita'
    assert len(session.members()) == 2
    assert lobby.continuity.saved('tok-1') is None


def test_reconnect_with_unknown_token_starts_fresh(connect):
    client = connect(token='never-seen')
    events = received(client, 'connected')
    assert events[-1]['reconnected'] is False


def test_seat_released_after_grace_period(flask_app, connect, lobby):
    flask_app.config['ENABLE_SCHEDULER_IN_TESTS'] = True
    flask_app.config['RECONNECT_GRACE_SEC'] = 0.05
    first = connect(token='tok-2')
    first.emit('join_game', {'room_code': 'GRACE'}, namespace=NS)
    first.emit('create_game', {'room_code': 'GRACE'}, namespace=NS)
    seat(first, 'GRACE', 'BLUE', 'CALLER', 'Bea')
    watcher = connect()
    watcher.emit('join_game', {'room_code': 'GRACE'}, namespace=NS)
    first.disconnect(namespace=NS)

    session = lobby.registry.get('GRACE')
    deadline = time.time() + 3.0
    while time.time() < deadline and lobby.continuity.saved('tok-2') is not None:
        time.sleep(0.05)
    with lobby.lock:
        assert lobby.continuity.saved('tok-2') is None
        assert session.teams[Team.BLUE].caller is None

    late = connect(token='tok-2')
    assert received(late, 'connected')[-1]['reconnected'] is False
    assert session.teams[Team.BLUE].caller is None
    assert len(session.members()) == 1


def test_tabs_sharing_a_token_do_not_pin_a_seat(connect, lobby):
    tab_a = connect(token='shared')
    tab_a.emit('join_game', {'room_code': 'TABS'}, namespace=NS)
    tab_a.emit('create_game', {'room_code': 'TABS'}, namespace=NS)
    seat(tab_a, 'TABS', 'RED', 'CALLER', 'Rita')
    tab_b = connect(token='shared')
    seat(tab_b, 'TABS', 'RED', 'RECEIVER')
    watcher = connect()
    watcher.emit('join_game', {'room_code': 'TABS'}, namespace=NS)

    tab_a.disconnect(namespace=NS)
    watcher.get_received(NS)
    tab_b.disconnect(namespace=NS)

    session = lobby.registry.get('TABS')
    assert session.teams[Team.RED].caller is None
    assert latest_game(watcher)['teams']['RED']['caller'] is None
    assert lobby.continuity.saved('shared').role == Role.RECEIVER
