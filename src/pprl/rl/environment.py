"""FrozenLake environment with the shaped rewards used for secure training."""

from typing import Tuple

from .frozenlake import FrozenLake, Position

SURFACE_REWARD = 0
GOAL_REWARD = 10
HOLE_PENALTY = -10
OUTSIDE_PENALTY = -10
STEP_PENALTY = 1

# 0: up, 1: down, 2: left, 3: right
ACTION_MOVES = [Position(-1, 0), Position(1, 0), Position(0, -1), Position(0, 1)]
ACTION_SYMBOLS = ["↑", "↓", "←", "→"]


class Environment:
    def __init__(self, lake: FrozenLake):
        self.lake = lake
        self.action_space = list(range(len(ACTION_MOVES)))
        self.state = lake.start

    @property
    def height(self) -> int:
        return self.lake.height

    @property
    def width(self) -> int:
        return self.lake.width

    @property
    def n_states(self) -> int:
        return self.height * self.width

    @property
    def n_actions(self) -> int:
        return len(self.action_space)

    def to_index(self, pos: Position) -> int:
        return pos.y * self.width + pos.x

    def reset(self) -> Position:
        self.state = self.lake.start
        return self.state

    def next_state(self, state: Position, action: int) -> Position:
        move = ACTION_MOVES[action]
        nxt = Position(state.y + move.y, state.x + move.x)
        # Moving off the grid leaves the agent in place
        if not (0 <= nxt.y < self.height and 0 <= nxt.x < self.width):
            return state
        return nxt

    def reward(self, state: Position, nxt: Position) -> int:
        if state == nxt:
            return OUTSIDE_PENALTY
        if nxt == self.lake.goal:
            return GOAL_REWARD
        if self.lake.is_hole(nxt):
            return HOLE_PENALTY
        return SURFACE_REWARD

    def step(self, action: int) -> Tuple[Position, int, bool]:
        state = self.state
        nxt = self.next_state(state, action)
        reward = self.reward(state, nxt) - STEP_PENALTY
        done = self.lake.is_hole(nxt) or nxt == self.lake.goal
        self.state = nxt
        return nxt, reward, done
