"""Domain errors for the assassins engine.

Every error carries the ids involved so the HTTP layer can render a useful
message. The five families map one-to-one to response codes.
"""


class AssassinsError(Exception):
    """Base class of all game errors."""
    code = 'error'
    http_status = 500

    def __init__(self, message, **context):
        self.context = context
        super().__init__(message)

    def to_dict(self):
        payload = {'error': str(self), 'code': self.code}
        payload.update({k: v for k, v in self.context.items() if v is not None})
        return payload


# ============ NotFound ============

class NotFound(AssassinsError):
    code = 'not_found'
    http_status = 404


class GameNotFound(NotFound):
    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found", game_id=game_id)


class PlayerNotFound(NotFound):
    def __init__(self, player_id=None, user_id=None, game_id=None):
        self.player_id = player_id
        if player_id is not None:
            message = f"Player {player_id} not found"
        else:
            message = f"User {user_id} is not registered in game {game_id}"
        super().__init__(message, player_id=player_id, user_id=user_id, game_id=game_id)


class TargetNotFound(NotFound):
    def __init__(self, assignment_id):
        self.assignment_id = assignment_id
        super().__init__(f"Target assignment {assignment_id} not found", assignment_id=assignment_id)


# ============ InvalidState ============

class InvalidState(AssassinsError):
    code = 'invalid_state'
    http_status = 400


class InvalidEdgeState(InvalidState):
    """The assignment is not PENDING (or not part of the game)."""
    def __init__(self, assignment_id, status):
        self.assignment_id = assignment_id
        self.status = status
        super().__init__(
            f"Target assignment {assignment_id} is {status}, expected PENDING",
            assignment_id=assignment_id, status=status,
        )


class InvalidPlayerState(InvalidState):
    def __init__(self, player_id, status):
        self.player_id = player_id
        self.status = status
        super().__init__(f"Player {player_id} has status {status}", player_id=player_id, status=status)


class InvalidGameState(InvalidState):
    def __init__(self, game_id, status):
        self.game_id = game_id
        self.status = status
        super().__init__(f"Game {game_id} has status {status}", game_id=game_id, status=status)


class InvalidInvite(InvalidState):
    """Partner invitation that cannot be sent, accepted or rejected."""
    pass


class EmailNotWhitelisted(InvalidState):
    def __init__(self, user_id, game_id):
        super().__init__(
            f"User {user_id} is not on the whitelist of game {game_id}",
            user_id=user_id, game_id=game_id,
        )


# ============ Unauthorized ============

class Unauthorized(AssassinsError):
    code = 'unauthorized'
    http_status = 403

    def __init__(self, user_id, game_id, role):
        self.user_id = user_id
        self.role = role
        super().__init__(
            f"User {user_id} with role {role} may not do this in game {game_id}",
            user_id=user_id, game_id=game_id, role=role,
        )


# ============ Contention ============

class Contention(AssassinsError):
    """Concurrent write on the same game. Safe to retry."""
    code = 'contention'
    http_status = 409
    retryable = True

    def __init__(self, game_id, reason='concurrent update'):
        self.game_id = game_id
        super().__init__(f"Game {game_id} is busy: {reason}", game_id=game_id, retryable=True)


# ============ Unprocessable ============

class Unprocessable(AssassinsError):
    code = 'unprocessable'
    http_status = 422


class InvalidIdentifier(Unprocessable):
    def __init__(self, kind, raw):
        self.kind = kind
        super().__init__(f"Invalid {kind} id: {raw!r}", kind=kind)


class NoTeamsToMatch(Unprocessable):
    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(f"Game {game_id} has no eligible teams to match", game_id=game_id)
