from typing import List

from duelhub import socketio
from . import get_presence, get_registry


def sweep_expired(app) -> List[str]:
    """Evict sessions older than the retention window. No client is notified."""
    retention = int(app.config.get('SESSION_RETENTION_SEC', 7200))
    with app.app_context():
        registry = get_registry()
        presence = get_presence()
        evicted = registry.evict_expired(retention)
        for game_id in evicted:
            presence.drop_game(game_id)
        if evicted:
            app.logger.info(f"[sweep] evicted={len(evicted)} remaining={registry.count()}")
    return evicted


def start_sweeper(app) -> bool:
    """Start the periodic eviction loop for ``app``.

    - No-ops in TESTING mode unless ENABLE_SWEEPER_IN_TESTS is set
    - Ensures a single loop per app
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SWEEPER_IN_TESTS'):
        return False
    if app.extensions.get('duelhub.sweeper'):
        return False
    app.extensions['duelhub.sweeper'] = True

    interval = int(app.config.get('SWEEP_INTERVAL_SEC', 600))

    def _worker():
        while True:
            socketio.sleep(interval)
            try:
                sweep_expired(app)
            except Exception as exc:
                app.logger.warning(f"[sweep-error] {exc!r}")

    socketio.start_background_task(_worker)
    app.logger.info(f"[sweep-start] interval={interval}s retention={app.config.get('SESSION_RETENTION_SEC')}s")
    return True
