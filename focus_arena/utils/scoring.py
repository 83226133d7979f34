"""
Point Calculator for Focus Arena

This module turns a raw game measurement into a point award.
For leaderboards built from awarded points, see focus_arena/utils/ranking.py
"""

import math
import numbers

from focus_arena.utils.exceptions import InvalidScoreError
from focus_arena.utils.game_catalog import resolve_game


def validate_score(raw_score):
    """
    Validate a raw score and return it as a float.

    Booleans, non-numbers, NaN, infinities and negative values are rejected.
    """
    if isinstance(raw_score, bool) or not isinstance(raw_score, numbers.Real):
        raise InvalidScoreError(raw_score, "score must be a number")

    value = float(raw_score)
    if math.isnan(value) or math.isinf(value):
        raise InvalidScoreError(raw_score, "score must be finite")
    if value < 0:
        raise InvalidScoreError(raw_score, "score cannot be negative")

    return value


def calculate_points(game_id, raw_score):
    """
    Calculate the points for a single submission.

    Returns:
        100, 80, 60 or 40 for the first tier the score reaches,
        otherwise the game's floor (20)

    Raises:
        UnknownGameError: game_id is not in the catalog
        InvalidScoreError: raw_score is not a valid measurement
    """
    game = resolve_game(game_id)
    score = validate_score(raw_score)

    for boundary, points in game.point_thresholds:
        if game.meets(score, boundary):
            return points

    return game.floor_points
