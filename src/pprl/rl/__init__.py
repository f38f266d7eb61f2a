"""FrozenLake reference driver for the secure Q-table protocol."""

from .agent import SecureAgent
from .environment import Environment
from .frozenlake import LAKES, FrozenLake, Position, get_lake
from .trainer import Trainer, TrainingResult, qtable_mse, write_success_csv

__all__ = [
    "Environment",
    "FrozenLake",
    "LAKES",
    "Position",
    "SecureAgent",
    "Trainer",
    "TrainingResult",
    "get_lake",
    "qtable_mse",
    "write_success_csv",
]
