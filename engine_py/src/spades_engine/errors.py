# engine_py/src/spades_engine/errors.py

class GameError(Exception):
    """Raised when an engine mutator is called on input validation should have rejected."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Rejection codes reported to the acting client
NOT_YOUR_TURN = "NOT_YOUR_TURN"
INVALID_BID = "INVALID_BID"
INVALID_PLAY = "INVALID_PLAY"
ROOM_FULL = "ROOM_FULL"
GAME_ALREADY_STARTED = "GAME_ALREADY_STARTED"
WRONG_PHASE = "WRONG_PHASE"
NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
INVALID_CONFIG = "INVALID_CONFIG"
NOT_IN_ROOM = "NOT_IN_ROOM"
ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
INVALID_EVENT = "INVALID_EVENT"

# Not-found codes
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"

# Structural codes
CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
DECK_EXHAUSTED = "DECK_EXHAUSTED"
INTERNAL_ERROR = "INTERNAL"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
