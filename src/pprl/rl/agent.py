"""
Q-learning agent whose shared Q-table lives encrypted.

The agent keeps its own plaintext Q-table for computing TD targets. Each
learned value is then written into the encrypted table through the secure
Update, and greedy actions are read back through the secure Select.
"""

import logging
from typing import Optional

import numpy as np

from ..protocol.qtable import EncryptedQtable
from ..protocol.secure import SecureQtableProtocol
from .environment import ACTION_SYMBOLS, Environment
from .frozenlake import Position

logger = logging.getLogger(__name__)

INITIAL_VAL_Q = 0.0
EPSILON = 0.1
ALPHA = 0.1
GAMMA = 0.9


class SecureAgent:
    def __init__(
        self,
        env: Environment,
        protocol: SecureQtableProtocol,
        epsilon: float = EPSILON,
        alpha: float = ALPHA,
        gamma: float = GAMMA,
        rng: Optional[np.random.Generator] = None,
    ):
        self.env = env
        self.protocol = protocol
        self.epsilon = epsilon
        self.alpha = alpha
        self.gamma = gamma
        self.rng = rng or np.random.default_rng()
        self.qtable = np.full((env.n_states, env.n_actions), INITIAL_VAL_Q)

    def reset(self) -> None:
        self.qtable.fill(INITIAL_VAL_Q)

    def random_action(self) -> int:
        return int(self.rng.integers(self.env.n_actions))

    def greedy_action(self, state: Position) -> int:
        """Greedy action from the plaintext shadow table."""
        return int(np.argmax(self.qtable[self.env.to_index(state)]))

    def act(self, state: Position, table: EncryptedQtable) -> int:
        """Epsilon-greedy over the encrypted table."""
        if self.rng.random() < self.epsilon:
            return self.random_action()
        return self.protocol.select_action(table, self.env.to_index(state))

    def learn(
        self,
        state: Position,
        action: int,
        reward: float,
        next_state: Position,
        table: EncryptedQtable,
    ) -> float:
        s = self.env.to_index(state)
        s_next = self.env.to_index(next_state)

        target = reward + self.gamma * float(np.max(self.qtable[s_next]))
        q_new = (1 - self.alpha) * self.qtable[s, action] + self.alpha * target
        self.qtable[s, action] = q_new

        self.protocol.update_value(table, s, action, q_new)
        return q_new

    def format_qtable(self) -> str:
        lines = ["Qtable:"]
        for index, actions in enumerate(self.qtable):
            y, x = divmod(index, self.env.width)
            cells = " ".join(f"{ACTION_SYMBOLS[a]}: {q:.2f}" for a, q in enumerate(actions))
            lines.append(f"State [Y: {y}, X: {x}]: {cells}")
        return "\n".join(lines)
