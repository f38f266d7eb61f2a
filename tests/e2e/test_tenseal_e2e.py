"""
End-to-end runs of the secure protocol on real BFV (SEAL via TenSEAL).

Real ciphertexts are a few hundred kilobytes, so every transfer is thousands
of RSA chunks. Tables here are kept small.
"""

import numpy as np
import pytest

tenseal = pytest.importorskip("tenseal", reason="tenseal (FHE library) not installed")

from pprl.codec import IntegerCodec  # noqa: E402
from pprl.he import BFVParams, SchemeAdapter, create_scheme  # noqa: E402
from pprl.protocol import KeyMaterial, SecureQtableProtocol  # noqa: E402
from pprl.transport import CiphertextChannel  # noqa: E402

pytestmark = pytest.mark.slow


@pytest.fixture(scope="module")
def seal_scheme():
    return create_scheme("tenseal", BFVParams(poly_modulus_degree=8192, plain_modulus=65537))


@pytest.fixture
def seal_protocol(transport_keys, seal_scheme):
    keys = KeyMaterial(transport=transport_keys, scheme=seal_scheme)
    return SecureQtableProtocol(keys, codec=IntegerCodec(bound=10000, coeff=1000, plain_modulus=65537))


class TestSchemeAdapterOnSEAL:
    def test_slotwise_arithmetic(self, seal_scheme):
        adapter = SchemeAdapter(seal_scheme)
        a = adapter.encrypt([1, 2, 3, 65536])
        b = adapter.encrypt([5, 0, 7, 2])

        assert adapter.decrypt(adapter.add(a, b)).tolist() == [6, 2, 10, 1]
        assert adapter.decrypt(adapter.sub(b, a)).tolist() == [4, 65535, 4, 3]
        product = adapter.relinearize(adapter.multiply(a, b))
        assert adapter.decrypt(product).tolist() == [5, 0, 21, 65535]

    def test_refresh_preserves_plaintext(self, seal_scheme):
        adapter = SchemeAdapter(seal_scheme)
        ct = adapter.relinearize(adapter.multiply(adapter.encrypt([3, 4]), adapter.encrypt([5, 6])))
        assert adapter.decrypt(adapter.refresh(ct)).tolist() == [15, 24]

    def test_serialized_ciphertext_spans_many_chunks(self, transport_keys, seal_scheme):
        adapter = SchemeAdapter(seal_scheme)
        channel = CiphertextChannel(adapter, transport_keys)
        ct = adapter.encrypt([11, 22, 33, 44])

        assert channel.post("big", ct) > 100
        assert adapter.decrypt(channel.fetch("big")).tolist() == [11, 22, 33, 44]


class TestSecureProtocolOnSEAL:
    def test_update_then_select(self, seal_protocol):
        table = seal_protocol.new_table(n_states=2, n_actions=4)

        seal_protocol.update_value(table, state=1, action=2, q=1.5)

        np.testing.assert_allclose(seal_protocol.select_values(table, 1), [0.0, 0.0, 1.5, 0.0], atol=1e-3)
        np.testing.assert_allclose(seal_protocol.select_values(table, 0), [0.0, 0.0, 0.0, 0.0], atol=1e-3)
        assert seal_protocol.select_action(table, 1) == 2

    def test_overwrite_negative_value(self, seal_protocol):
        table = seal_protocol.new_table(n_states=2, n_actions=2)

        seal_protocol.update_value(table, state=0, action=1, q=2.0)
        seal_protocol.update_value(table, state=0, action=1, q=-0.75)

        np.testing.assert_allclose(
            seal_protocol.decrypt_table(table, confidentiality_waiver=True),
            [[0.0, -0.75], [0.0, 0.0]],
            atol=1e-3,
        )
