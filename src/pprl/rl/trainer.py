"""
Trial/episode loop for secure FrozenLake training.

Each trial starts from a fresh zero table (both the encrypted one and the
agent's shadow). Success rate per episode is the running fraction of
episodes that ended on the goal; rates are averaged across trials and can
be written to CSV.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from ..protocol.qtable import EncryptedQtable
from ..protocol.secure import SecureQtableProtocol
from .agent import SecureAgent
from .environment import Environment

logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    success_rates: List[List[float]] = field(default_factory=list)  # [trial][episode]
    final_mse: Optional[float] = None

    @property
    def average_success_rates(self) -> List[float]:
        if not self.success_rates:
            return []
        return np.mean(np.array(self.success_rates), axis=0).tolist()


def qtable_mse(
    protocol: SecureQtableProtocol,
    table: EncryptedQtable,
    shadow: np.ndarray,
    confidentiality_waiver: bool = False,
) -> float:
    """Mean squared error between a plaintext Q-table and the decrypted encrypted one."""
    decrypted = protocol.decrypt_table(table, confidentiality_waiver=confidentiality_waiver)
    return float(np.mean((shadow - decrypted) ** 2))


class Trainer:
    def __init__(
        self,
        env: Environment,
        protocol: SecureQtableProtocol,
        agent: Optional[SecureAgent] = None,
        max_steps: int = 100,
    ):
        self.env = env
        self.protocol = protocol
        self.agent = agent or SecureAgent(env, protocol)
        self.max_steps = max_steps
        self.table = protocol.new_table(env.n_states, env.n_actions)

    def run_episode(self) -> bool:
        """Play one episode; True when it ends on the goal."""
        state = self.env.reset()
        for _ in range(self.max_steps):
            action = self.agent.act(state, self.table)
            next_state, reward, done = self.env.step(action)
            self.agent.learn(state, action, reward, next_state, self.table)
            if done:
                return next_state == self.env.lake.goal
            state = next_state
        return False

    def run(self, trials: int, episodes: int, measure_mse: bool = False) -> TrainingResult:
        result = TrainingResult()
        for trial in range(trials):
            self.agent.reset()
            self.table.reset()

            goals = 0
            rates = []
            for episode in range(episodes):
                if self.run_episode():
                    goals += 1
                rates.append(goals / (episode + 1))
            result.success_rates.append(rates)
            logger.info(f"Trial {trial + 1}/{trials}: final success rate {rates[-1]:.2f}")

        if measure_mse:
            result.final_mse = qtable_mse(self.protocol, self.table, self.agent.qtable, confidentiality_waiver=True)
        return result


def write_success_csv(path: Union[str, Path], rates: List[float], header: str = "Success Rate") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Episode", header])
        for episode, rate in enumerate(rates):
            writer.writerow([episode, f"{rate:.2f}"])
    return path
