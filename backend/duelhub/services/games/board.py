from collections import Counter
from typing import Iterable, List, Sequence, Set, Tuple

from duelhub.models import EMPTY, GRID_SIZE, HORIZONTAL, Ship

# Required fleet: ship length -> number of ships
FLEET = {4: 1, 3: 2, 2: 3, 1: 4}

WIN_LINES = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
    (0, 4, 8), (2, 4, 6),
)


def tic_tac_toe_winner(board: Sequence[str]) -> str:
    """Return the symbol holding a full line, or '' when nobody does."""
    for a, b, c in WIN_LINES:
        if board[a] != EMPTY and board[a] == board[b] == board[c]:
            return board[a]
    return EMPTY


def is_full(board: Sequence[str]) -> bool:
    return all(cell != EMPTY for cell in board)


def ship_cells(ship: Ship) -> List[Tuple[int, int]]:
    if ship.direction == HORIZONTAL:
        return [(ship.x + i, ship.y) for i in range(ship.length)]
    return [(ship.x, ship.y + i) for i in range(ship.length)]


def ship_covers(ship: Ship, x: int, y: int) -> bool:
    return (x, y) in ship_cells(ship)


def all_sunk(ships: Iterable[Ship]) -> bool:
    return all(s.hits >= s.length for s in ships)


def in_bounds(x: int, y: int) -> bool:
    return 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE


def ship_in_bounds(ship: Ship) -> bool:
    """Check both ends of the ship without building its footprint."""
    if ship.length < 1:
        return False
    span = ship.length - 1
    if ship.direction == HORIZONTAL:
        return in_bounds(ship.x, ship.y) and in_bounds(ship.x + span, ship.y)
    return in_bounds(ship.x, ship.y) and in_bounds(ship.x, ship.y + span)


def validate_placement(ships: Sequence[Ship]) -> bool:
    """Check a whole fleet for legality.

    The fleet must be exactly one 4-decker, two 3-deckers, three 2-deckers
    and four 1-deckers, every cell must be on the 10x10 grid, and no two
    ships may overlap or touch, diagonals included.
    """
    if Counter(s.length for s in ships) != Counter(FLEET):
        return False

    occupied: Set[Tuple[int, int]] = set()
    for ship in ships:
        cells = ship_cells(ship)
        for x, y in cells:
            if not in_bounds(x, y):
                return False
            # Any occupied cell in the 3x3 neighbourhood belongs to another ship,
            # since the current ship's cells are only added afterwards.
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    if (x + dx, y + dy) in occupied:
                        return False
        occupied.update(cells)
    return True
