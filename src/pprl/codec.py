"""
Fixed-point integer codec for BFV plaintext slots.

Q-values are real numbers; BFV slots hold integers modulo the plaintext
modulus t. A value q is scaled to ``round(q * coeff)`` and the signed result
in ``[-N, N)`` is folded into the unsigned range ``[0, 2N)``:

    x >= 0  ->  x
    x <  0  ->  x + 2N

Because additions and subtractions of folded values happen modulo t, the
fold is only invertible while ``2N <= t``.
"""

import logging
from typing import Iterable, Optional

import numpy as np

from .errors import ConfigurationError, EncodingRangeError

logger = logging.getLogger(__name__)

DEFAULT_MAP_BOUND = 10000
DEFAULT_Q_INT_COEFF = 1000.0


class IntegerCodec:
    """Signed/unsigned fixed-point mapping for plaintext slots."""

    def __init__(
        self,
        bound: int = DEFAULT_MAP_BOUND,
        coeff: float = DEFAULT_Q_INT_COEFF,
        plain_modulus: Optional[int] = None,
    ):
        if bound <= 0:
            raise ConfigurationError(f"Codec bound must be positive, got {bound}")
        if coeff <= 0:
            raise ConfigurationError(f"Codec coefficient must be positive, got {coeff}")
        if plain_modulus is not None and 2 * bound > plain_modulus:
            raise ConfigurationError(
                "Codec range does not fit the plaintext modulus",
                details={"two_n": 2 * bound, "plain_modulus": plain_modulus},
            )
        self.bound = int(bound)
        self.coeff = float(coeff)

    @property
    def tolerance(self) -> float:
        """Largest rounding error introduced by encode/decode."""
        return 1.0 / self.coeff

    def map(self, x: int) -> int:
        x = int(x)
        if not -self.bound <= x < self.bound:
            raise EncodingRangeError(x, -self.bound, self.bound)
        if x < 0:
            return x + 2 * self.bound
        return x

    def unmap(self, u: int) -> int:
        u = int(u)
        if not 0 <= u < 2 * self.bound:
            raise EncodingRangeError(u, 0, 2 * self.bound)
        if u >= self.bound:
            return u - 2 * self.bound
        return u

    def encode(self, q: float) -> int:
        return int(round(q * self.coeff))

    def decode(self, v: int) -> float:
        return v / self.coeff

    def to_slot(self, q: float) -> int:
        """Real Q-value -> unsigned slot value."""
        return self.map(self.encode(q))

    def from_slot(self, u: int) -> float:
        """Unsigned slot value -> real Q-value."""
        return self.decode(self.unmap(u))

    def to_slots(self, values: Iterable[float]) -> np.ndarray:
        return np.array([self.to_slot(q) for q in values], dtype=np.uint64)

    def from_slots(self, slots: Iterable[int]) -> np.ndarray:
        return np.array([self.from_slot(u) for u in slots], dtype=np.float64)

    def __repr__(self) -> str:
        return f"IntegerCodec(bound={self.bound}, coeff={self.coeff})"
