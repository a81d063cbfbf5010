from typing import Any, Dict, List, Optional

from flask import current_app, request
from flask_socketio import emit

from duelhub import socketio
from duelhub.models import Ship
from duelhub.services.games import get_presence, get_registry, publish_update
from duelhub.services.games.errors import GameError, InvalidInput, NotAPlayer


def _connection():
    # request.sid exists in Socket.IO context and is scoped to the namespace
    return (request.sid, request.namespace)  # type: ignore


def _is_type(value, kind) -> bool:
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, kind)


def _decode(event: str, data: Any, fields: Dict[str, type]) -> Optional[Dict[str, Any]]:
    """Return the payload when every field is present with the right type.

    Malformed messages are logged and skipped; they never reach the registry.
    """
    if not isinstance(data, dict):
        current_app.logger.warning(f"[ws-skip] event={event} payload is not an object")
        return None
    for name, kind in fields.items():
        if not _is_type(data.get(name), kind):
            current_app.logger.warning(f"[ws-skip] event={event} bad field={name}")
            return None
    return data


def _parse_ships(raw) -> List[Ship]:
    if not isinstance(raw, list):
        raise InvalidInput('ships must be a list')
    ships = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidInput('Each ship must be an object')
        direction = item.get('direction', item.get('orientation'))
        coords = [item.get('x'), item.get('y'), item.get('length')]
        if not all(_is_type(v, int) for v in coords) or not isinstance(direction, str):
            raise InvalidInput('Each ship needs integer x, y, length and a direction')
        ships.append(Ship(x=item['x'], y=item['y'], length=item['length'], direction=direction))
    return ships


def _reject(event: str, data: dict, exc: GameError) -> None:
    current_app.logger.info(
        f"[ws-reject] event={event} game={data.get('gameId')} player={data.get('playerId')} code={exc.code}"
    )
    emit('error', exc.to_dict())


def _dispatch(event: str, data: Any, fields: Dict[str, type], operation) -> None:
    payload = _decode(event, data, fields)
    if payload is None:
        return
    try:
        snapshot = operation(get_registry(), payload)
    except GameError as exc:
        _reject(event, payload, exc)
        return
    # Registry locks are released by now; sending may block on slow peers
    publish_update(snapshot)


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    for game_id, player_id in get_presence().detach_connection(_connection()):
        current_app.logger.info(f"[presence-leave] game={game_id} player={player_id}")


def handle_join(data):
    payload = _decode('join', data, {'gameId': str, 'playerId': str})
    if payload is None:
        return
    try:
        snapshot = get_registry().lookup(payload['gameId'])
        if not any(p['id'] == payload['playerId'] for p in snapshot['players']):
            raise NotAPlayer()
    except GameError as exc:
        _reject('join', payload, exc)
        return
    get_presence().attach(snapshot['id'], payload['playerId'], _connection())
    current_app.logger.info(f"[presence-join] game={snapshot['id']} player={payload['playerId']}")
    # Bring a (re)connecting client up to date
    emit('gameUpdate', snapshot)


def handle_move(data):
    _dispatch(
        'move', data, {'gameId': str, 'playerId': str, 'position': int},
        lambda registry, p: registry.move(p['gameId'], p['playerId'], p['position']),
    )


def handle_attack(data):
    _dispatch(
        'attack', data, {'gameId': str, 'playerId': str, 'x': int, 'y': int},
        lambda registry, p: registry.attack(p['gameId'], p['playerId'], p['x'], p['y']),
    )


def handle_place_ships(data):
    _dispatch(
        'placeShips', data, {'gameId': str, 'playerId': str, 'ships': list},
        lambda registry, p: registry.place_ships(p['gameId'], p['playerId'], _parse_ships(p['ships'])),
    )


def handle_restart_vote(data):
    _dispatch(
        'restartVote', data, {'gameId': str, 'playerId': str},
        lambda registry, p: registry.vote_restart(p['gameId'], p['playerId']),
    )


def handle_ping(data=None):
    emit('pong', data or {})


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'join': handle_join,
    'move': handle_move,
    'attack': handle_attack,
    'placeShips': handle_place_ships,
    'restartVote': handle_restart_vote,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in HANDLERS.items():
            socketio.on_event(event, handler, namespace=namespace)
