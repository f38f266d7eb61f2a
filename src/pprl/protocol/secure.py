"""
Secure Q-table Update and Action Selection.

Both operations index into the encrypted table with one-hot selection
vectors, so whoever holds the ciphertexts computes over every state without
learning which one is touched.

Update, for each state i with one-hot state vector v and action vector w:

    mask_i   = v[i] * w                       (all-ones iff i is the target)
    new_i    = refresh(mask_i * Q_new)
    old_i    = refresh(mask_i * Q[i])
    Q[i]    <- Q[i] + new_i - old_i

Select sums ``v[i] * Q[i]`` over all states, which equals the target row.

Every product is relinearized before it is used again. The refresh step
(decrypt and re-encrypt) resets noise that would otherwise build up across
repeated multiply chains; it needs the BFV secret key, so the protocol runs
at the single trusted key holder.
"""

import logging
import threading
from typing import Optional, Sequence

import numpy as np

from ..codec import IntegerCodec
from ..config import get_settings
from ..errors import ConfigurationError, EncodingRangeError
from ..he.adapter import SchemeAdapter
from ..transport.channel import CiphertextChannel, ChunkStore
from ..transport.chunked import ChunkedTransport
from .keys import KeyMaterial
from .qtable import EncryptedQtable

logger = logging.getLogger(__name__)

STATE_VECTOR_NAME = "v_t"
ACTION_VECTOR_NAME = "w_t"
Q_NEW_NAME = "q_new"
SELECT_STATE_NAME = "select_v_t"
SELECT_RESULT_NAME = "select_result"


def one_hot(index: int, length: int) -> np.ndarray:
    """Length-``length`` selection vector with a single 1 at ``index``."""
    if not 0 <= index < length:
        raise ValueError(f"index {index} out of range [0, {length})")
    vec = np.zeros(length, dtype=np.int64)
    vec[index] = 1
    return vec


def broadcast(value: int, length: int) -> np.ndarray:
    return np.full(length, int(value), dtype=np.int64)


def _check_one_hot(vec: Sequence[int], length: int, label: str) -> np.ndarray:
    # Checked before the int cast so 0.5 cannot truncate into a valid bit
    raw = np.asarray(vec)
    if raw.shape != (length,):
        raise ValueError(f"{label} vector must have length {length}, got shape {raw.shape}")
    if not np.isin(raw, (0, 1)).all() or raw.sum() != 1:
        raise ValueError(f"{label} vector must be one-hot")
    return raw.astype(np.int64)


class SecureQtableProtocol:
    """
    Update/Select over an :class:`EncryptedQtable`.

    Operands travel under fixed channel names, so one Update or Select is in
    flight per protocol at a time, whichever table it targets.

    Args:
        keys: Transport and BFV key material of the trusted agent
        codec: Fixed-point codec for Q-values (default: ``PPRL_MAP_BOUND`` and
            ``PPRL_Q_INT_COEFF`` from settings)
        transport: Chunked RSA transport (default: SHA-256 OAEP)
        store: Chunk store for the channel (default: in memory)
    """

    def __init__(
        self,
        keys: KeyMaterial,
        codec: Optional[IntegerCodec] = None,
        transport: Optional[ChunkedTransport] = None,
        store: Optional[ChunkStore] = None,
    ):
        self.keys = keys
        self.adapter = SchemeAdapter(keys.scheme)
        if codec is None:
            settings = get_settings()
            codec = IntegerCodec(
                bound=settings.MAP_BOUND,
                coeff=settings.Q_INT_COEFF,
                plain_modulus=self.adapter.plain_modulus,
            )
        self.codec = codec
        if 2 * self.codec.bound > self.adapter.plain_modulus:
            raise ConfigurationError(
                "Codec range does not fit the plaintext modulus",
                details={"two_n": 2 * self.codec.bound, "plain_modulus": self.adapter.plain_modulus},
            )
        self.channel = CiphertextChannel(self.adapter, keys.transport, transport=transport, store=store)
        self._lock = threading.Lock()
        self._updates = 0
        self._selects = 0

    def new_table(self, n_states: int, n_actions: int) -> EncryptedQtable:
        """Zero-initialised table bound to this protocol's keys."""
        return EncryptedQtable(self.adapter, n_states, n_actions)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, table: EncryptedQtable, v: Sequence[int], w: Sequence[int], q_new: int) -> None:
        """
        Overwrite slot ``w`` of state ``v`` with the folded value ``q_new``.

        All per-state results are staged and committed together; if any
        step fails the table is left exactly as it was and no sealed operand
        is left behind in the chunk store.
        """
        n_states, n_actions = table.n_states, table.n_actions
        v = _check_one_hot(v, n_states, "state")
        w = _check_one_hot(w, n_actions, "action")
        if not 0 <= int(q_new) < 2 * self.codec.bound:
            raise EncodingRangeError(int(q_new), 0, 2 * self.codec.bound)

        adapter = self.adapter
        channel = self.channel
        state_names = [f"{STATE_VECTOR_NAME}_{i}" for i in range(n_states)]

        with self._lock, table.lock:
            try:
                # Agent side: seal the broadcast state bits, w and Q_new.
                for i, name in enumerate(state_names):
                    channel.post(name, adapter.encrypt(broadcast(v[i], n_actions)))
                channel.post(ACTION_VECTOR_NAME, adapter.encrypt(w))
                channel.post(Q_NEW_NAME, adapter.encrypt(broadcast(q_new, n_actions)))

                w_ct = channel.fetch(ACTION_VECTOR_NAME)
                q_ct = channel.fetch(Q_NEW_NAME)

                staged = {}
                for i, name in enumerate(state_names):
                    v_ct = channel.fetch(name)
                    entry = table[i]

                    mask = adapter.relinearize(adapter.multiply(v_ct, w_ct))
                    new_part = adapter.relinearize(adapter.multiply(mask, q_ct))
                    old_part = adapter.relinearize(adapter.multiply(mask, entry))

                    new_part = adapter.refresh(new_part)
                    old_part = adapter.refresh(old_part)

                    staged[i] = adapter.sub(adapter.add(entry, new_part), old_part)

                table.commit(staged)
            finally:
                channel.discard(state_names + [ACTION_VECTOR_NAME, Q_NEW_NAME])

            self._updates += 1
        logger.debug(f"Secure update committed across {n_states} states")

    def update_value(self, table: EncryptedQtable, state: int, action: int, q: float) -> None:
        """Driver-facing update: encode ``q`` and build the selection vectors."""
        self.update(
            table,
            one_hot(state, table.n_states),
            one_hot(action, table.n_actions),
            self.codec.to_slot(q),
        )

    # ------------------------------------------------------------------
    # Select
    # ------------------------------------------------------------------

    def select(self, table: EncryptedQtable, v: Sequence[int]) -> np.ndarray:
        """Decoded action-values of the state selected by one-hot ``v``."""
        n_states, n_actions = table.n_states, table.n_actions
        v = _check_one_hot(v, n_states, "state")

        adapter = self.adapter
        channel = self.channel
        state_names = [f"{SELECT_STATE_NAME}_{i}" for i in range(n_states)]

        with self._lock, table.lock:
            try:
                for i, name in enumerate(state_names):
                    channel.post(name, adapter.encrypt(broadcast(v[i], n_actions)))

                result = adapter.encrypt_zeros(n_actions)
                for i, name in enumerate(state_names):
                    v_ct = channel.fetch(name)
                    term = adapter.relinearize(adapter.multiply(v_ct, table[i]))
                    result = adapter.add(result, term)

                channel.post(SELECT_RESULT_NAME, result)
                result = channel.fetch(SELECT_RESULT_NAME)
            finally:
                channel.discard(state_names + [SELECT_RESULT_NAME])

            self._selects += 1
        return self.codec.from_slots(adapter.decrypt(result))

    def select_values(self, table: EncryptedQtable, state: int) -> np.ndarray:
        return self.select(table, one_hot(state, table.n_states))

    def select_action(self, table: EncryptedQtable, state: int) -> int:
        """Greedy action for ``state``; ties go to the lowest index."""
        values = self.select_values(table, state)
        return int(np.argmax(values))

    # ------------------------------------------------------------------
    # Debug
    # ------------------------------------------------------------------

    def decrypt_table(self, table: EncryptedQtable, confidentiality_waiver: bool = False) -> np.ndarray:
        return table.decrypt_all(self.codec, confidentiality_waiver=confidentiality_waiver)

    def get_metrics(self):
        metrics = self.adapter.get_metrics()
        metrics.update({"updates": self._updates, "selects": self._selects})
        return metrics
