import logging
import threading
from typing import Any, Callable, Dict, Hashable, List, Tuple

log = logging.getLogger(__name__)

Sender = Callable[[str, Any, Hashable], None]


class Presence:
    """Which live connection currently speaks for which seat.

    Associations are keyed by (game code, player id) and hold an opaque
    connection handle. Presence is best effort and never touches game
    state: losing a connection only stops pushes to that seat until the
    client attaches again.

    ``sender(event, payload, connection)`` performs the actual delivery and
    is always called without any lock held.
    """

    def __init__(self, sender: Sender):
        self._sender = sender
        self._lock = threading.Lock()
        self._by_game: Dict[str, Dict[str, Hashable]] = {}

    def attach(self, game_id: str, player_id: str, connection: Hashable) -> None:
        """Associate ``connection`` with a seat, replacing any older one (reconnect)."""
        with self._lock:
            self._by_game.setdefault(game_id, {})[player_id] = connection

    def detach(self, game_id: str, player_id: str, connection: Hashable = None) -> bool:
        """Forget a seat's connection.

        When ``connection`` is given, only detach if it is still the current
        one, so a stale failure cannot undo a fresh reconnect.
        """
        with self._lock:
            seats = self._by_game.get(game_id)
            if not seats or player_id not in seats:
                return False
            if connection is not None and seats[player_id] != connection:
                return False
            del seats[player_id]
            if not seats:
                self._by_game.pop(game_id, None)
            return True

    def detach_connection(self, connection: Hashable) -> List[Tuple[str, str]]:
        """Drop every association held by a closed connection."""
        dropped = []
        with self._lock:
            for game_id, seats in list(self._by_game.items()):
                for player_id, conn in list(seats.items()):
                    if conn == connection:
                        del seats[player_id]
                        dropped.append((game_id, player_id))
                if not seats:
                    self._by_game.pop(game_id, None)
        return dropped

    def drop_game(self, game_id: str) -> None:
        with self._lock:
            self._by_game.pop(game_id, None)

    def connections(self, game_id: str) -> List[Tuple[str, Hashable]]:
        with self._lock:
            return list(self._by_game.get(game_id, {}).items())

    def publish(self, game_id: str, event: str, payload: Any) -> int:
        """Deliver ``event`` to every attached connection of a game.

        A failed delivery detaches that connection only; the rest still
        receive the event. Returns the number of successful deliveries.
        """
        delivered = 0
        for player_id, connection in self.connections(game_id):
            try:
                self._sender(event, payload, connection)
            except Exception as exc:
                log.warning(f"[presence-drop] game={game_id} player={player_id} error={exc!r}")
                self.detach(game_id, player_id, connection)
                continue
            delivered += 1
        return delivered
