import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence

from duelhub.models import (
    DIRECTIONS,
    DRAW,
    HIT,
    MISS,
    SHIP,
    TICTACTOE_CELLS,
    GameKind,
    GameSession,
    SessionStatus,
    Ship,
    empty_grid,
    generate_game_code,
)
from . import board as rules
from .errors import (
    AlreadyAttacked,
    AlreadyStarted,
    CellOccupied,
    Full,
    IllegalState,
    InvalidInput,
    InvalidPlacement,
    NotAPlayer,
    NotFound,
    NotYourTurn,
)

log = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class _Slot:
    __slots__ = ('session', 'lock')

    def __init__(self, session: GameSession):
        self.session = session
        self.lock = threading.Lock()


class SessionRegistry:
    """In-memory map of game code -> session.

    Invariants:
    - Structural changes to the map (insert, delete, sweep) are serialized
      by the registry lock
    - Every operation on a session runs under that session's own lock, so
      mutations of one session are totally ordered
    - Operations return a snapshot taken while the lock is held; callers
      broadcast it after the lock is released
    - A rejected operation leaves the session exactly as it was
    """

    def __init__(self, clock=time.time):
        self._slots: Dict[str, _Slot] = {}
        self._lock = threading.Lock()
        self._clock = clock

    @staticmethod
    def _key(session_id) -> str:
        if not isinstance(session_id, str):
            raise NotFound()
        return session_id.strip().upper()

    @contextmanager
    def _locked(self, session_id) -> Iterator[GameSession]:
        key = self._key(session_id)
        with self._lock:
            slot = self._slots.get(key)
        if slot is None:
            raise NotFound()
        with slot.lock:
            yield slot.session

    # -------------------------------------------------
    # Lifecycle
    # -------------------------------------------------

    def create(self, player_id: str, name: str, kind) -> dict:
        try:
            kind = GameKind(kind)
        except ValueError:
            raise InvalidInput('Unknown game type') from None
        if not player_id or not name:
            raise InvalidInput('Player id and name are required')
        with self._lock:
            code = generate_game_code(self._slots)
            session = GameSession.open(code, kind, player_id, name, created_at=self._clock())
            self._slots[code] = _Slot(session)
            snapshot = session.to_dict()
        log.info(f"[create] game={code} kind={kind.value} player={player_id}")
        return snapshot

    def join(self, session_id: str, player_id: str, name: str) -> dict:
        with self._locked(session_id) as session:
            if session.find_player(player_id):
                # Re-join is idempotent
                return session.to_dict()
            if not player_id or not name:
                raise InvalidInput('Player id and name are required')
            if session.is_full:
                raise Full()
            if session.status is not SessionStatus.WAITING:
                raise AlreadyStarted()
            session.add_player(player_id, name)
            if session.is_full:
                if session.kind is GameKind.TICTACTOE:
                    session.status = SessionStatus.PLAYING
                else:
                    session.status = SessionStatus.SETUP
                log.info(
                    f"[start] game={session.id} kind={session.kind.value} "
                    f"{session.players[0].name} vs {session.players[1].name}"
                )
            return session.to_dict()

    def lookup(self, session_id: str) -> dict:
        with self._locked(session_id) as session:
            return session.to_dict()

    def count(self) -> int:
        with self._lock:
            return len(self._slots)

    def evict_expired(self, max_age: float, now: Optional[float] = None) -> List[str]:
        """Drop every session older than ``max_age`` seconds, whatever its status."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [
                key for key, slot in self._slots.items()
                if now - slot.session.created_at > max_age
            ]
            for key in expired:
                del self._slots[key]
        for key in expired:
            log.info(f"[evict] game={key}")
        return expired

    # -------------------------------------------------
    # Tic-tac-toe
    # -------------------------------------------------

    def move(self, session_id: str, player_id: str, position: int) -> dict:
        with self._locked(session_id) as session:
            if session.kind is not GameKind.TICTACTOE:
                raise IllegalState('Wrong game type')
            if session.status is not SessionStatus.PLAYING:
                raise IllegalState()
            if not _is_int(position) or not 0 <= position < TICTACTOE_CELLS:
                raise InvalidInput('Invalid position')
            cells = session.state.board
            if cells[position]:
                raise CellOccupied()
            player = session.current_player
            if player is None or player.id != player_id:
                raise NotYourTurn()

            cells[position] = player.symbol
            winner = rules.tic_tac_toe_winner(cells)
            if winner:
                session.finish(winner)
                log.info(f"[finish] game={session.id} winner={winner}")
            elif rules.is_full(cells):
                session.finish(DRAW)
                log.info(f"[finish] game={session.id} draw")
            else:
                session.turn = 1 - session.turn
            return session.to_dict()

    # -------------------------------------------------
    # Battleship
    # -------------------------------------------------

    def place_ships(self, session_id: str, player_id: str, ships: Sequence[Ship]) -> dict:
        with self._locked(session_id) as session:
            if session.kind is not GameKind.BATTLESHIP:
                raise IllegalState('Wrong game type')
            if session.status is not SessionStatus.SETUP:
                raise IllegalState('Ship placement is over')
            player = session.find_player(player_id)
            if player is None:
                raise NotAPlayer()
            for ship in ships:
                if not _is_int(ship.length) or ship.length not in rules.FLEET:
                    raise InvalidInput(f'Invalid ship length: {ship.length}')
                if ship.direction not in DIRECTIONS:
                    raise InvalidInput(f'Unknown ship direction: {ship.direction}')
                if not rules.ship_in_bounds(ship):
                    raise InvalidInput('Ship is outside the grid')
            if not rules.validate_placement(ships):
                raise InvalidPlacement()

            fleet = [Ship(x=s.x, y=s.y, length=s.length, direction=s.direction) for s in ships]
            target = session.state.boards[player.seat]
            target.grid = empty_grid()
            for ship in fleet:
                for x, y in rules.ship_cells(ship):
                    target.grid[y][x] = SHIP
            target.ships = fleet
            target.ready = True
            log.info(f"[ships] game={session.id} seat={player.seat_label} ready")

            if session.is_full and all(b.ready for b in session.state.boards):
                session.status = SessionStatus.PLAYING
                log.info(f"[start] game={session.id} battle begins")
            return session.to_dict()

    def attack(self, session_id: str, player_id: str, x: int, y: int) -> dict:
        with self._locked(session_id) as session:
            if session.kind is not GameKind.BATTLESHIP:
                raise IllegalState('Wrong game type')
            if session.status is not SessionStatus.PLAYING:
                raise IllegalState()
            if not (_is_int(x) and _is_int(y)) or not rules.in_bounds(x, y):
                raise InvalidInput('Invalid coordinates')
            player = session.current_player
            if player is None or player.id != player_id:
                raise NotYourTurn()

            target = session.state.boards[1 - session.turn]
            cell = target.grid[y][x]
            if cell in (HIT, MISS):
                raise AlreadyAttacked()

            if cell == SHIP:
                target.grid[y][x] = HIT
                for ship in target.ships:
                    if rules.ship_covers(ship, x, y):
                        ship.hits += 1
                        if ship.sunk:
                            log.info(f"[sunk] game={session.id} length={ship.length}")
                        break
                if rules.all_sunk(target.ships):
                    session.finish(player.seat_label)
                    log.info(f"[finish] game={session.id} winner={player.seat_label}")
            else:
                # Only a miss hands the turn over
                target.grid[y][x] = MISS
                session.turn = 1 - session.turn
            return session.to_dict()

    # -------------------------------------------------
    # Rematch
    # -------------------------------------------------

    def vote_restart(self, session_id: str, player_id: str) -> dict:
        with self._locked(session_id) as session:
            if not session.is_finished:
                raise IllegalState('Game is not finished')
            if session.find_player(player_id) is None:
                raise NotAPlayer()
            if player_id not in session.restart_votes:
                session.restart_votes.append(player_id)

            voters = set(session.restart_votes)
            if all(p.id in voters for p in session.players):
                session.reset()
                log.info(f"[restart] game={session.id}")
            else:
                session.status = SessionStatus.RESTART_REQUESTED
            return session.to_dict()
