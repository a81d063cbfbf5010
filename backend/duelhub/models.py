from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union
import random
import string
import time

GRID_SIZE = 10
TICTACTOE_CELLS = 9

EMPTY = ''
SHIP = 'ship'
HIT = 'hit'
MISS = 'miss'

HORIZONTAL = 'horizontal'
VERTICAL = 'vertical'
DIRECTIONS = (HORIZONTAL, VERTICAL)

SYMBOLS = ('X', 'O')
SEAT_LABELS = ('player1', 'player2')
DRAW = 'draw'
MAX_PLAYERS = 2


class GameKind(str, Enum):
    TICTACTOE = 'tictactoe'
    BATTLESHIP = 'battleship'


class SessionStatus(str, Enum):
    WAITING = 'waiting'
    SETUP = 'setup'  # battleship only: ship placement
    PLAYING = 'playing'
    FINISHED = 'finished'
    RESTART_REQUESTED = 'restart_requested'


@dataclass
class Player:
    id: str
    name: str
    seat: int
    symbol: str = ''

    @property
    def seat_label(self) -> str:
        return SEAT_LABELS[self.seat]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'symbol': self.symbol,
            'seat': self.seat_label,
        }


@dataclass
class Ship:
    x: int
    y: int
    length: int
    direction: str = HORIZONTAL
    hits: int = 0

    @property
    def sunk(self) -> bool:
        return self.hits >= self.length

    def to_dict(self):
        return {
            'x': self.x,
            'y': self.y,
            'length': self.length,
            'direction': self.direction,
            'hits': self.hits,
        }


def empty_grid() -> List[List[str]]:
    return [[EMPTY] * GRID_SIZE for _ in range(GRID_SIZE)]


@dataclass
class BattleshipBoard:
    """One player's waters. ``grid`` is indexed ``grid[y][x]``."""
    grid: List[List[str]] = field(default_factory=empty_grid)
    ships: List[Ship] = field(default_factory=list)
    ready: bool = False

    def to_dict(self):
        return {
            'grid': [list(row) for row in self.grid],
            'ships': [s.to_dict() for s in self.ships],
            'ready': self.ready,
        }


@dataclass
class TicTacToeState:
    board: List[str] = field(default_factory=lambda: [EMPTY] * TICTACTOE_CELLS)

    def to_dict(self):
        return {'board': list(self.board)}


@dataclass
class BattleshipState:
    boards: List[BattleshipBoard] = field(
        default_factory=lambda: [BattleshipBoard() for _ in range(MAX_PLAYERS)]
    )

    def to_dict(self):
        return {'boards': [b.to_dict() for b in self.boards]}


GameState = Union[TicTacToeState, BattleshipState]


def new_state(kind: GameKind) -> GameState:
    if kind is GameKind.TICTACTOE:
        return TicTacToeState()
    return BattleshipState()


def generate_game_code(taken, length=6):
    """Generate a short game code not present in ``taken``."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


@dataclass
class GameSession:
    id: str
    kind: GameKind
    state: GameState
    players: List[Player] = field(default_factory=list)
    turn: int = 0
    status: SessionStatus = SessionStatus.WAITING
    winner: str = ''
    created_at: float = field(default_factory=time.time)
    restart_votes: List[str] = field(default_factory=list)

    @classmethod
    def open(cls, session_id: str, kind: GameKind, player_id: str, name: str, created_at=None):
        session = cls(id=session_id, kind=kind, state=new_state(kind))
        if created_at is not None:
            session.created_at = created_at
        session.add_player(player_id, name)
        return session

    @property
    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    @property
    def is_finished(self) -> bool:
        # A pending rematch vote is still a finished game
        return self.status in (SessionStatus.FINISHED, SessionStatus.RESTART_REQUESTED)

    @property
    def current_player(self) -> Optional[Player]:
        if self.turn < len(self.players):
            return self.players[self.turn]
        return None

    def find_player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def add_player(self, player_id: str, name: str) -> Player:
        seat = len(self.players)
        symbol = SYMBOLS[seat] if self.kind is GameKind.TICTACTOE else ''
        player = Player(id=player_id, name=name, seat=seat, symbol=symbol)
        self.players.append(player)
        return player

    def finish(self, winner: str) -> None:
        self.status = SessionStatus.FINISHED
        self.winner = winner

    def reset(self) -> None:
        """Clear the boards for a rematch, keeping the same seats."""
        self.state = new_state(self.kind)
        self.turn = 0
        self.winner = ''
        self.restart_votes = []
        if self.kind is GameKind.TICTACTOE:
            self.status = SessionStatus.PLAYING
        else:
            self.status = SessionStatus.SETUP

    def to_dict(self):
        payload = {
            'id': self.id,
            'type': self.kind.value,
            'players': [p.to_dict() for p in self.players],
            'turn': self.turn,
            'status': self.status.value,
            'winner': self.winner,
            'created': int(self.created_at),
            'restartVotes': list(self.restart_votes),
        }
        payload.update(self.state.to_dict())
        return payload
