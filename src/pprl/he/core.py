"""
BFV scheme core types.

Defines the parameter set, the ciphertext wrapper passed between PPRL
components, and the abstract backend interface that concrete BFV libraries
implement. Backends only see opaque handles; invariants such as
"relinearize before the next multiply" are enforced one level up, in
:class:`pprl.he.adapter.SchemeAdapter`.
"""

import hashlib
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

# SEAL's BFVDefault coefficient moduli at 128-bit security
DEFAULT_COEFF_MOD_BIT_SIZES = {
    4096: [36, 36, 37],
    8192: [43, 43, 44, 44, 44],
    16384: [48, 48, 48, 49, 49, 49, 49, 49, 49],
}


@dataclass
class BFVParams:
    """
    BFV parameter set.

    ``plain_modulus`` must be a prime congruent to 1 modulo
    ``2 * poly_modulus_degree`` so that slots can be batched.
    """

    poly_modulus_degree: int = 8192
    plain_modulus: int = 65537
    coeff_mod_bit_sizes: Optional[List[int]] = field(default=None)

    def __post_init__(self):
        if self.plain_modulus % (2 * self.poly_modulus_degree) != 1:
            raise ValueError(
                f"plain_modulus {self.plain_modulus} does not support batching "
                f"for poly_modulus_degree {self.poly_modulus_degree}"
            )

    @property
    def slot_count(self) -> int:
        return self.poly_modulus_degree

    @property
    def coeff_bits(self) -> List[int]:
        """Coefficient modulus chain, falling back to the SEAL default."""
        if self.coeff_mod_bit_sizes:
            return list(self.coeff_mod_bit_sizes)
        return list(DEFAULT_COEFF_MOD_BIT_SIZES.get(self.poly_modulus_degree, [60, 60, 60]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "poly_modulus_degree": self.poly_modulus_degree,
            "plain_modulus": self.plain_modulus,
            "coeff_mod_bit_sizes": self.coeff_bits,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BFVParams":
        return cls(
            poly_modulus_degree=data.get("poly_modulus_degree", 8192),
            plain_modulus=data.get("plain_modulus", 65537),
            coeff_mod_bit_sizes=data.get("coeff_mod_bit_sizes"),
        )

    def get_hash(self) -> str:
        """Compute deterministic hash of parameters."""
        canonical = json.dumps(self.to_dict(), sort_keys=True).encode()
        return f"sha256:{hashlib.sha256(canonical).hexdigest()}"

    def digest(self) -> bytes:
        """Raw 32-byte parameter digest, used in ciphertext frames."""
        return hashlib.sha256(json.dumps(self.to_dict(), sort_keys=True).encode()).digest()


@dataclass
class Ciphertext:
    """
    Encrypted vector of ``size`` plaintext slots.

    ``handle`` is the backend object. A ciphertext produced by a multiply
    carries ``needs_relin=True`` until it is relinearized.
    """

    handle: Any
    size: int
    params_hash: str
    needs_relin: bool = False

    def __repr__(self) -> str:
        state = "unrelinearized" if self.needs_relin else "ready"
        return f"Ciphertext(size={self.size}, {state})"


class BFVScheme(ABC):
    """
    Abstract BFV backend.

    Values handed to :meth:`encrypt` are integers already reduced modulo the
    plaintext modulus. :meth:`decrypt` may return them signed or unsigned;
    the adapter normalises to ``[0, t)``.
    """

    params: BFVParams
    name: str = "abstract"

    @abstractmethod
    def keygen(self) -> None:
        """Generate secret, public and relinearization keys."""

    @property
    @abstractmethod
    def has_secret_key(self) -> bool:
        """Whether this backend can decrypt."""

    @abstractmethod
    def make_public(self) -> None:
        """Drop the secret key, keeping encryption and evaluation keys."""

    @abstractmethod
    def encrypt(self, values: np.ndarray) -> Any:
        pass

    @abstractmethod
    def decrypt(self, handle: Any) -> np.ndarray:
        pass

    @abstractmethod
    def multiply(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def relinearize(self, handle: Any) -> Any:
        pass

    @abstractmethod
    def add(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def sub(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def serialize(self, handle: Any) -> bytes:
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        pass


def toy_mode_enabled() -> bool:
    """Whether the insecure toy backend was opted into via PPRL_TOY_HE."""
    return os.environ.get("PPRL_TOY_HE", "0").lower() in ("1", "true", "yes")


def create_scheme(backend: str = "tenseal", params: Optional[BFVParams] = None) -> BFVScheme:
    """
    Factory for BFV backends with fresh keys.

    Args:
        backend: "tenseal" (SEAL via TenSEAL) or "toy" (insecure simulation)
        params: BFV parameter set

    Raises:
        ToyModeNotEnabledError: If toy mode requested without PPRL_TOY_HE=1
        ValueError: Unknown backend name
    """
    params = params or BFVParams()

    if backend == "tenseal":
        from .seal import TenSEALBFVScheme

        scheme: BFVScheme = TenSEALBFVScheme(params)
    elif backend == "toy":
        from .toy import ToyBFVScheme

        scheme = ToyBFVScheme(params)
    else:
        raise ValueError(f"Unsupported BFV backend: {backend}")

    scheme.keygen()
    logger.info(f"Using {scheme.name} BFV backend (n={params.poly_modulus_degree}, t={params.plain_modulus})")
    return scheme
