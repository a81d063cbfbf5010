"""
Game rule violations raised by the session registry.

Hierarchy:
- GameError (base, carries a stable ``code`` and an HTTP status)
  - NotFound, Full, AlreadyStarted
  - InvalidInput, InvalidPlacement
  - IllegalState, NotYourTurn, NotAPlayer
  - CellOccupied, AlreadyAttacked

None of these are fatal: a rejected operation leaves the session untouched
and the message is relayed to the requesting client only.
"""


class GameError(Exception):
    """Base exception for all rejected game operations."""
    code = 'error'
    status_code = 400
    default_message = 'Invalid request'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class NotFound(GameError):
    code = 'not_found'
    status_code = 404
    default_message = 'Game not found'


class Full(GameError):
    code = 'full'
    status_code = 409
    default_message = 'Game is already full'


class AlreadyStarted(GameError):
    code = 'already_started'
    status_code = 409
    default_message = 'Game has already started'


class InvalidInput(GameError):
    code = 'invalid_input'
    status_code = 400
    default_message = 'Invalid input'


class IllegalState(GameError):
    code = 'illegal_state'
    status_code = 409
    default_message = 'Game is not active'


class NotYourTurn(GameError):
    code = 'not_your_turn'
    status_code = 403
    default_message = 'Not your turn'


class NotAPlayer(GameError):
    code = 'not_a_player'
    status_code = 403
    default_message = 'Player is not in this game'


class CellOccupied(GameError):
    code = 'cell_occupied'
    status_code = 409
    default_message = 'Cell is already taken'


class AlreadyAttacked(GameError):
    code = 'already_attacked'
    status_code = 409
    default_message = 'Cell has already been attacked'


class InvalidPlacement(GameError):
    code = 'invalid_placement'
    status_code = 400
    default_message = 'Invalid ship placement'
