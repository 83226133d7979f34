"""
Game Catalog for Focus Arena

Static registry of every playable game: how its raw score is compared
(time-based games are lower-is-better, score-based games higher-is-better)
and the point tiers a submission can land in.
"""

import enum
from dataclasses import dataclass
from typing import Tuple

from focus_arena.utils.exceptions import UnknownGameError


class Direction(enum.Enum):
    LOWER_BETTER = "lower_better"
    HIGHER_BETTER = "higher_better"


@dataclass(frozen=True)
class GameDefinition:
    id: str
    name: str
    direction: Direction
    # (boundary, points) pairs, strictest tier first
    point_thresholds: Tuple[Tuple[float, int], ...]
    unit: str = "points"
    floor_points: int = 20

    @property
    def lower_is_better(self) -> bool:
        return self.direction is Direction.LOWER_BETTER

    def meets(self, raw_score, boundary) -> bool:
        """Check a raw score against a tier boundary (strict for timed games)"""
        if self.lower_is_better:
            return raw_score < boundary
        return raw_score >= boundary

    def is_better(self, raw_score, other_score) -> bool:
        """True if raw_score is strictly better than other_score"""
        if self.lower_is_better:
            return raw_score < other_score
        return raw_score > other_score

    def sort_key(self, raw_score):
        """Key that sorts best scores first"""
        return raw_score if self.lower_is_better else -raw_score

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "direction": self.direction.value,
            "unit": self.unit,
            "point_thresholds": [
                {"boundary": boundary, "points": points}
                for boundary, points in self.point_thresholds
            ],
            "floor_points": self.floor_points,
        }


def _schulte(size, thresholds, game_id=None):
    return GameDefinition(
        id=game_id or f"schulte_grid_{size}",
        name=f"Schulte Grid {size}x{size}",
        direction=Direction.LOWER_BETTER,
        point_thresholds=tuple(zip(thresholds, (100, 80, 60, 40))),
        unit="seconds",
    )


_SCHULTE_5_THRESHOLDS = (20, 30, 40, 50)

GAMES = (
    GameDefinition(
        id="f1_reaction",
        name="F1 Reaction Test",
        direction=Direction.LOWER_BETTER,
        point_thresholds=((0.200, 100), (0.230, 80), (0.250, 60), (0.300, 40)),
        unit="seconds",
    ),
    _schulte(3, (12, 18, 24, 30)),
    _schulte(4, (16, 24, 32, 40)),
    _schulte(5, _SCHULTE_5_THRESHOLDS),
    # Legacy id from before grid sizes were selectable, always 5x5
    _schulte(5, _SCHULTE_5_THRESHOLDS, game_id="schulte_grid"),
    GameDefinition(
        id="snake",
        name="Snake",
        direction=Direction.HIGHER_BETTER,
        point_thresholds=((500, 100), (300, 80), (200, 60), (100, 40)),
    ),
    GameDefinition(
        id="breakout",
        name="Breakout",
        direction=Direction.HIGHER_BETTER,
        point_thresholds=((2000, 100), (1500, 80), (1000, 60), (500, 40)),
    ),
)

GAME_CATALOG = {game.id: game for game in GAMES}


def resolve_game(game_id) -> GameDefinition:
    """Return the definition for game_id or raise UnknownGameError"""
    try:
        return GAME_CATALOG[game_id]
    except (KeyError, TypeError):
        raise UnknownGameError(game_id) from None


def list_games():
    return list(GAMES)
