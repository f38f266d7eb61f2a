"""
Scheme Adapter: the capability surface the Q-table protocol computes with.

Wraps a :class:`BFVScheme` backend and enforces the invariants the protocol
relies on:

- operands share a parameter set and slot count
- a multiply result is relinearized before it feeds another multiply
- ciphertexts cross process boundaries in a framed format that carries the
  parameter digest, so foreign ciphertexts are rejected on arrival

Backend exceptions are re-raised as :class:`SchemeError`.
"""

import logging
import struct
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Sequence

import numpy as np

from ..errors import (
    PPRLError,
    RelinearizationRequiredError,
    SchemeError,
    SchemeParameterMismatchError,
    SchemeSerializationError,
)
from .core import BFVParams, BFVScheme, Ciphertext

logger = logging.getLogger(__name__)

FRAME_MAGIC = b"PPCT"
FRAME_VERSION = 1
# magic, version, params digest, slot count, needs-relin flag
_FRAME = struct.Struct(">4sB32sIB")


class SchemeAdapter:
    """
    Invariant-checking front end over a BFV backend.

    Args:
        scheme: Backend with keys already generated
    """

    def __init__(self, scheme: BFVScheme):
        self.scheme = scheme
        self.params: BFVParams = scheme.params
        self.params_hash = self.params.get_hash()
        self._digest = self.params.digest()
        self._operations: Dict[str, int] = {}
        self._metrics_lock = threading.Lock()

    @property
    def plain_modulus(self) -> int:
        return self.params.plain_modulus

    @property
    def can_decrypt(self) -> bool:
        return self.scheme.has_secret_key

    @contextmanager
    def _backend_call(self, operation: str) -> Iterator[None]:
        with self._metrics_lock:
            self._operations[operation] = self._operations.get(operation, 0) + 1
        try:
            yield
        except PPRLError:
            raise
        except Exception as e:
            raise SchemeError(f"{operation}: {e}") from e

    def _check_operands(self, a: Ciphertext, b: Ciphertext) -> None:
        for ct in (a, b):
            if ct.params_hash != self.params_hash:
                raise SchemeParameterMismatchError(self.params_hash, ct.params_hash)
        if a.size != b.size:
            raise SchemeParameterMismatchError(f"size={a.size}", f"size={b.size}")

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def encrypt(self, values: Sequence[int]) -> Ciphertext:
        """Encrypt a vector of integers (reduced modulo t)."""
        arr = np.asarray(values, dtype=np.int64)
        if arr.ndim != 1 or arr.size == 0:
            raise SchemeError(f"expected a non-empty 1-D vector, got shape {arr.shape}")
        if arr.size > self.params.slot_count:
            raise SchemeError(f"{arr.size} values exceed {self.params.slot_count} slots")
        with self._backend_call("encrypt"):
            handle = self.scheme.encrypt(arr)
        return Ciphertext(handle=handle, size=int(arr.size), params_hash=self.params_hash)

    def encrypt_zeros(self, size: int) -> Ciphertext:
        return self.encrypt(np.zeros(size, dtype=np.int64))

    def decrypt(self, ct: Ciphertext) -> np.ndarray:
        """Decrypt to unsigned slot values in ``[0, t)``, truncated to ``ct.size``."""
        if ct.params_hash != self.params_hash:
            raise SchemeParameterMismatchError(self.params_hash, ct.params_hash)
        with self._backend_call("decrypt"):
            raw = np.asarray(self.scheme.decrypt(ct.handle), dtype=np.int64)[: ct.size]
        return np.mod(raw, self.plain_modulus).astype(np.uint64)

    def refresh(self, ct: Ciphertext) -> Ciphertext:
        """
        Decrypt and re-encrypt ``ct``, resetting its accumulated noise.

        Stands in for bootstrapping. Requires the secret key, which is why
        the Q-table protocol runs at a single trusted party.
        """
        if not self.can_decrypt:
            raise SchemeError("refresh requires the secret key", code="PPRL_HE_REFRESH_FORBIDDEN")
        if ct.needs_relin:
            ct = self.relinearize(ct)
        logger.debug("Refreshing ciphertext noise via decrypt/re-encrypt (secret key holder)")
        return self.encrypt(self.decrypt(ct).astype(np.int64))

    # ------------------------------------------------------------------
    # Homomorphic arithmetic
    # ------------------------------------------------------------------

    def multiply(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        """Slot-wise product; the result must be relinearized before reuse in a multiply."""
        self._check_operands(a, b)
        if a.needs_relin or b.needs_relin:
            raise RelinearizationRequiredError()
        with self._backend_call("multiply"):
            handle = self.scheme.multiply(a.handle, b.handle)
        return Ciphertext(handle=handle, size=a.size, params_hash=self.params_hash, needs_relin=True)

    def relinearize(self, ct: Ciphertext) -> Ciphertext:
        if not ct.needs_relin:
            return ct
        with self._backend_call("relinearize"):
            handle = self.scheme.relinearize(ct.handle)
        return Ciphertext(handle=handle, size=ct.size, params_hash=self.params_hash)

    def add(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        self._check_operands(a, b)
        with self._backend_call("add"):
            handle = self.scheme.add(a.handle, b.handle)
        return Ciphertext(
            handle=handle,
            size=a.size,
            params_hash=self.params_hash,
            needs_relin=a.needs_relin or b.needs_relin,
        )

    def sub(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        self._check_operands(a, b)
        with self._backend_call("sub"):
            handle = self.scheme.sub(a.handle, b.handle)
        return Ciphertext(
            handle=handle,
            size=a.size,
            params_hash=self.params_hash,
            needs_relin=a.needs_relin or b.needs_relin,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self, ct: Ciphertext) -> bytes:
        """Frame the backend bytes with the parameter digest and slot count."""
        if ct.params_hash != self.params_hash:
            raise SchemeParameterMismatchError(self.params_hash, ct.params_hash)
        with self._backend_call("serialize"):
            body = self.scheme.serialize(ct.handle)
        header = _FRAME.pack(FRAME_MAGIC, FRAME_VERSION, self._digest, ct.size, 1 if ct.needs_relin else 0)
        return header + body

    def deserialize(self, data: bytes) -> Ciphertext:
        if len(data) < _FRAME.size:
            raise SchemeSerializationError("truncated ciphertext frame")
        magic, version, digest, size, needs_relin = _FRAME.unpack_from(data)
        if magic != FRAME_MAGIC or version != FRAME_VERSION:
            raise SchemeSerializationError("unrecognised ciphertext frame")
        if digest != self._digest:
            raise SchemeParameterMismatchError(self._digest.hex(), digest.hex())
        try:
            handle = self.scheme.deserialize(data[_FRAME.size :])
        except PPRLError:
            raise
        except Exception as e:
            raise SchemeSerializationError(str(e)) from e
        return Ciphertext(handle=handle, size=size, params_hash=self.params_hash, needs_relin=bool(needs_relin))

    def _operation_counts(self) -> Dict[str, int]:
        with self._metrics_lock:
            return dict(self._operations)

    def get_metrics(self) -> Dict[str, Any]:
        """Operation counts for monitoring."""
        return {
            "backend": self.scheme.name,
            "operations": self._operation_counts(),
            "scheme_params_hash": self.params_hash,
            "can_decrypt": self.can_decrypt,
        }
