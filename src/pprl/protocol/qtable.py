"""
Encrypted Q-table store.

One BFV ciphertext per state, each holding the action-values of that state
as folded fixed-point slots. The length never changes after construction,
and entries are only ever replaced wholesale through :meth:`commit`, so a
failed update cannot leave the table half written.
"""

import logging
import threading
from typing import List, Mapping

import numpy as np

from ..codec import IntegerCodec
from ..errors import ConfidentialityWaiverError, SchemeError
from ..he.adapter import SchemeAdapter
from ..he.core import Ciphertext

logger = logging.getLogger(__name__)


class EncryptedQtable:
    """
    Owned mutable array of ``n_states`` ciphertexts of ``n_actions`` slots.

    The table's re-entrant ``lock`` serialises read-modify-write access;
    the protocol holds it for the whole of an Update or Select.
    """

    def __init__(self, adapter: SchemeAdapter, n_states: int, n_actions: int):
        if n_states < 1 or n_actions < 1:
            raise ValueError(f"Q-table needs at least one state and action, got {n_states}x{n_actions}")
        self.adapter = adapter
        self.n_states = n_states
        self.n_actions = n_actions
        self.lock = threading.RLock()
        self._entries: List[Ciphertext] = self._zeros()

    def _zeros(self) -> List[Ciphertext]:
        return [self.adapter.encrypt_zeros(self.n_actions) for _ in range(self.n_states)]

    def __len__(self) -> int:
        return self.n_states

    def __getitem__(self, index: int) -> Ciphertext:
        with self.lock:
            return self._entries[index]

    def entries(self) -> List[Ciphertext]:
        """Snapshot of the current ciphertexts."""
        with self.lock:
            return list(self._entries)

    def commit(self, staged: Mapping[int, Ciphertext]) -> None:
        """Replace every staged entry at once, or none of them."""
        for index, ct in staged.items():
            if not 0 <= index < self.n_states:
                raise IndexError(f"state index {index} out of range [0, {self.n_states})")
            if ct.size != self.n_actions:
                raise SchemeError(f"entry {index} has {ct.size} slots, table expects {self.n_actions}")
            if ct.needs_relin:
                raise SchemeError(f"entry {index} is not relinearized")
        with self.lock:
            for index, ct in staged.items():
                self._entries[index] = ct

    def reset(self) -> None:
        """Re-zero the table (trial boundary)."""
        fresh = self._zeros()
        with self.lock:
            self._entries = fresh
        logger.debug(f"Reset encrypted Q-table ({self.n_states}x{self.n_actions})")

    def decrypt_all(self, codec: IntegerCodec, confidentiality_waiver: bool = False) -> np.ndarray:
        """
        Debug-only plaintext dump of the whole table.

        Raises:
            ConfidentialityWaiverError: unless ``confidentiality_waiver`` is True
        """
        if not confidentiality_waiver:
            raise ConfidentialityWaiverError("EncryptedQtable.decrypt_all")
        logger.warning("Decrypting the full Q-table under a confidentiality waiver")
        with self.lock:
            rows = [codec.from_slots(self.adapter.decrypt(ct)) for ct in self._entries]
        return np.vstack(rows)
