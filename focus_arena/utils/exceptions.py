"""
Error types raised by the scoring core

Validation errors are raised before anything is persisted. Storage failures
are raised by the score store and abort the whole submission.
"""


class ScoringError(Exception):
    """Base class for all scoring errors"""

    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class UnknownGameError(ScoringError):
    """Unknown game"""

    def __init__(self, game_id):
        super().__init__(f"Unknown game: {game_id!r}")
        self.game_id = game_id


class InvalidScoreError(ScoringError):
    """Invalid score"""

    def __init__(self, raw_score, reason="score must be a non-negative number"):
        super().__init__(f"Invalid score {raw_score!r}: {reason}")
        self.raw_score = raw_score
        self.reason = reason


class StorageUnavailable(ScoringError):
    """Score storage is temporarily unavailable, please retry"""

    status_code = 503


class UnknownUserError(ScoringError):
    """Unknown user"""

    status_code = 404

    def __init__(self, user_id):
        super().__init__(f"Unknown user: {user_id!r}")
        self.user_id = user_id
