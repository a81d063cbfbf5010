from flask import Blueprint, current_app, jsonify, request

from duelhub.models import GameKind
from duelhub.services.games import get_registry, publish_update
from duelhub.services.games.errors import GameError

games = Blueprint('games', __name__)


@games.errorhandler(GameError)
def handle_game_error(exc):
    current_app.logger.info(f"[http-reject] path={request.path} code={exc.code} reason={exc.message}")
    return jsonify({'error': exc.message, 'code': exc.code}), exc.status_code


@games.route('', methods=['POST'])
def create_game():
    """
    Opens a new game with the caller seated first.
    """
    data = request.get_json(silent=True) or {}
    player_id = data.get('playerId')
    player_name = data.get('playerName')
    game_type = data.get('gameType') or GameKind.TICTACTOE.value

    if not all([player_id, player_name]):
        return jsonify({'error': 'Player ID and player name are required'}), 400
    if not isinstance(game_type, str) or game_type not in {k.value for k in GameKind}:
        return jsonify({'error': 'Unknown game type'}), 400

    snapshot = get_registry().create(str(player_id), str(player_name), game_type)
    return jsonify(snapshot), 201


@games.route('/join', methods=['POST'])
def join_game():
    """
    Seats a second player using the shared game code.
    """
    data = request.get_json(silent=True) or {}
    game_id = data.get('gameId')
    player_id = data.get('playerId')
    player_name = data.get('playerName')
    if not all([game_id, player_id, player_name]):
        return jsonify({'error': 'Game ID, player ID and player name are required'}), 400

    snapshot = get_registry().join(str(game_id), str(player_id), str(player_name))
    # Let the player already waiting know the seat is taken
    publish_update(snapshot)
    return jsonify(snapshot), 200


@games.route('/<string:game_id>', methods=['GET'])
def get_game(game_id):
    return jsonify(get_registry().lookup(game_id))
