"""
TOY BFV scheme for development and testing ONLY.

WARNING: THIS IS NOT CRYPTOGRAPHICALLY SECURE!

Slots are kept in clear, reduced modulo t, next to a simulated noise level
that grows the way BFV noise does: additions combine noise magnitudes,
multiplications add roughly ``log2(t) + log2(n)/2`` bits, and decryption
fails once the noise reaches the budget implied by the coefficient modulus.
This reproduces why the Q-table protocol needs its decrypt/re-encrypt
refresh, without the cost of real lattice arithmetic.

Opt in with PPRL_TOY_HE=1 (or ``_force_enable=True`` from tests).
"""

import logging
import math
import secrets
import struct
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..errors import NoiseBudgetExhaustedError, SchemeError, SchemeSerializationError, ToyModeNotEnabledError
from .core import BFVParams, BFVScheme, toy_mode_enabled

logger = logging.getLogger(__name__)

MAGIC = b"PPTY"
FORMAT_VERSION = 1
# magic, version, key id, slot count, noise bits, relinearized flag
_HEADER = struct.Struct(">4sB16sIdB")

FRESH_NOISE_BITS = 8.0
RELIN_NOISE_BITS = 1.0


@dataclass
class ToyCiphertext:
    values: np.ndarray  # uint64, reduced mod t
    noise_bits: float
    key_id: bytes
    relinearized: bool = True


class ToyBFVScheme(BFVScheme):
    """
    Insecure BFV simulation with noise accounting.

    DO NOT USE IN PRODUCTION.
    """

    name = "toy"

    def __init__(self, params: Optional[BFVParams] = None, _force_enable: bool = False):
        if not _force_enable and not toy_mode_enabled():
            raise ToyModeNotEnabledError()

        self.params = params or BFVParams()
        self._key_id: Optional[bytes] = None
        self._has_secret = False

        t_bits = math.log2(self.params.plain_modulus)
        q_bits = sum(self.params.coeff_bits[:-1]) if len(self.params.coeff_bits) > 1 else self.params.coeff_bits[0]
        self.noise_capacity_bits = q_bits - t_bits - 1
        self.mult_growth_bits = t_bits + math.log2(self.params.poly_modulus_degree) / 2

        logger.warning("*** USING ToyBFVScheme - NOT CRYPTOGRAPHICALLY SECURE! ***")

    def keygen(self) -> None:
        self._key_id = secrets.token_bytes(16)
        self._has_secret = True

    @property
    def has_secret_key(self) -> bool:
        return self._has_secret

    def make_public(self) -> None:
        self._has_secret = False

    def _require_keys(self) -> bytes:
        if self._key_id is None:
            raise SchemeError("keys not generated")
        return self._key_id

    def _check_key(self, ct: ToyCiphertext) -> None:
        if ct.key_id != self._require_keys():
            raise SchemeError("ciphertext was encrypted under a different key")

    def encrypt(self, values: np.ndarray) -> ToyCiphertext:
        key_id = self._require_keys()
        t = self.params.plain_modulus
        reduced = np.mod(np.asarray(values, dtype=np.int64), t).astype(np.uint64)
        return ToyCiphertext(values=reduced, noise_bits=FRESH_NOISE_BITS, key_id=key_id)

    def decrypt(self, handle: ToyCiphertext) -> np.ndarray:
        if not self._has_secret:
            raise SchemeError("secret key not available for decryption")
        self._check_key(handle)
        if handle.noise_bits >= self.noise_capacity_bits:
            raise NoiseBudgetExhaustedError(self.noise_capacity_bits - handle.noise_bits)
        return handle.values.copy()

    def _combine(self, a: ToyCiphertext, b: ToyCiphertext) -> float:
        # |e_a + e_b| <= |e_a| + |e_b|
        return math.log2(2.0**a.noise_bits + 2.0**b.noise_bits)

    def multiply(self, a: ToyCiphertext, b: ToyCiphertext) -> ToyCiphertext:
        self._check_key(a)
        self._check_key(b)
        t = self.params.plain_modulus
        # Python ints avoid uint64 overflow for t close to 2**32
        product = np.array([(int(x) * int(y)) % t for x, y in zip(a.values, b.values)], dtype=np.uint64)
        return ToyCiphertext(
            values=product,
            noise_bits=max(a.noise_bits, b.noise_bits) + self.mult_growth_bits,
            key_id=a.key_id,
            relinearized=False,
        )

    def relinearize(self, handle: ToyCiphertext) -> ToyCiphertext:
        if handle.relinearized:
            return handle
        return ToyCiphertext(
            values=handle.values,
            noise_bits=handle.noise_bits + RELIN_NOISE_BITS,
            key_id=handle.key_id,
        )

    def add(self, a: ToyCiphertext, b: ToyCiphertext) -> ToyCiphertext:
        self._check_key(a)
        self._check_key(b)
        t = np.uint64(self.params.plain_modulus)
        return ToyCiphertext(
            values=(a.values + b.values) % t,
            noise_bits=self._combine(a, b),
            key_id=a.key_id,
            relinearized=a.relinearized and b.relinearized,
        )

    def sub(self, a: ToyCiphertext, b: ToyCiphertext) -> ToyCiphertext:
        self._check_key(a)
        self._check_key(b)
        t = np.uint64(self.params.plain_modulus)
        return ToyCiphertext(
            values=(a.values + (t - b.values)) % t,
            noise_bits=self._combine(a, b),
            key_id=a.key_id,
            relinearized=a.relinearized and b.relinearized,
        )

    def serialize(self, handle: ToyCiphertext) -> bytes:
        header = _HEADER.pack(
            MAGIC,
            FORMAT_VERSION,
            handle.key_id,
            len(handle.values),
            handle.noise_bits,
            1 if handle.relinearized else 0,
        )
        return header + handle.values.astype(">u8").tobytes()

    def deserialize(self, data: bytes) -> ToyCiphertext:
        if len(data) < _HEADER.size:
            raise SchemeSerializationError("truncated toy ciphertext header")
        magic, version, key_id, n, noise_bits, relinearized = _HEADER.unpack_from(data)
        if magic != MAGIC or version != FORMAT_VERSION:
            raise SchemeSerializationError("not a toy BFV ciphertext")
        body = data[_HEADER.size :]
        if len(body) != n * 8:
            raise SchemeSerializationError(f"expected {n * 8} body bytes, got {len(body)}")
        if key_id != self._require_keys():
            raise SchemeSerializationError("ciphertext belongs to a different key context")
        values = np.frombuffer(body, dtype=">u8").astype(np.uint64)
        return ToyCiphertext(values=values, noise_bits=noise_bits, key_id=key_id, relinearized=bool(relinearized))
