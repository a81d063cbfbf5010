"""Game domain services: board rules, the session registry, presence and
the expiry sweeper.

Rules and registry are plain Python and can be used without Flask. The
accessors below resolve the per-app registry and presence table created by
``create_app`` so HTTP routes and socket handlers share them.
"""

from flask import current_app

REGISTRY_KEY = 'duelhub.registry'
PRESENCE_KEY = 'duelhub.presence'


def get_registry():
    return current_app.extensions[REGISTRY_KEY]


def get_presence():
    return current_app.extensions[PRESENCE_KEY]


def publish_update(snapshot: dict) -> int:
    """Push a fresh session snapshot to everyone attached to that game."""
    return get_presence().publish(snapshot['id'], 'gameUpdate', snapshot)
