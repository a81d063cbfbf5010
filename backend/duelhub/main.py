import time

from flask import Blueprint, jsonify

from duelhub.services.games import get_registry

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the DuelHub game server!'})


@main.route('/health')
def health():
    return jsonify({
        'status': 'ok',
        'games': get_registry().count(),
        'time': int(time.time()),
    })
