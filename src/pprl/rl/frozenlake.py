"""
FrozenLake layouts.

``o`` is frozen surface, ``x`` a hole. The agent starts top-left and the
goal is bottom-right on every map.
"""

from dataclasses import dataclass
from typing import Dict, List, NamedTuple


class Position(NamedTuple):
    y: int
    x: int

    def __str__(self) -> str:
        return f"{{X: {self.x}, Y: {self.y}}}"


@dataclass(frozen=True)
class FrozenLake:
    lake_map: List[str]
    start: Position = Position(0, 0)

    @property
    def height(self) -> int:
        return len(self.lake_map)

    @property
    def width(self) -> int:
        return len(self.lake_map[0])

    @property
    def goal(self) -> Position:
        return Position(self.height - 1, self.width - 1)

    def is_hole(self, pos: Position) -> bool:
        return self.lake_map[pos.y][pos.x] == "x"


LAKES: Dict[str, FrozenLake] = {
    "3x3": FrozenLake(["oxx", "ooo", "xxo"]),
    "4x4": FrozenLake(["ooxx", "oxox", "oooo", "oxxo"]),
    "5x5": FrozenLake(["ooxxo", "oooxx", "xxooo", "xooox", "ooxoo"]),
    "6x6": FrozenLake(["ooxxoo", "oooxxo", "xxoooo", "oooxxo", "oxxxoo", "oxoooo"]),
}


def get_lake(size: str) -> FrozenLake:
    try:
        return LAKES[size]
    except KeyError:
        raise ValueError(f"Unknown lake size '{size}'; choose from {', '.join(LAKES)}") from None
