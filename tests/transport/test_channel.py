"""
Tests for the addressed ciphertext channel and chunk stores.
"""

import numpy as np
import pytest

from pprl.errors import SchemeParameterMismatchError, SchemeSerializationError, TransportError
from pprl.he import BFVParams, SchemeAdapter, ToyBFVScheme
from pprl.transport import CiphertextChannel, DirectoryChunkStore, MemoryChunkStore


@pytest.fixture
def adapter(toy_scheme):
    return SchemeAdapter(toy_scheme)


class TestMemoryChannel:
    def test_post_fetch_round_trip(self, adapter, transport_keys):
        channel = CiphertextChannel(adapter, transport_keys)
        ct = adapter.encrypt([1, 2, 3, 4])

        chunks = channel.post("w_t", ct)
        assert chunks >= 1
        received = channel.fetch("w_t")

        assert received.size == 4
        assert adapter.decrypt(received).tolist() == [1, 2, 3, 4]

    def test_fetch_consumes(self, adapter, transport_keys):
        channel = CiphertextChannel(adapter, transport_keys)
        channel.post("once", adapter.encrypt([5]))
        channel.fetch("once")
        with pytest.raises(TransportError) as exc_info:
            channel.fetch("once")
        assert exc_info.value.code == "PPRL_TRANSPORT_NOT_FOUND"

    def test_fetch_keep(self, adapter, transport_keys):
        channel = CiphertextChannel(adapter, transport_keys)
        channel.post("kept", adapter.encrypt([5]))
        channel.fetch("kept", consume=False)
        assert channel.store.names() == ["kept"]

    def test_large_ciphertext_spans_many_chunks(self, adapter, transport_keys):
        channel = CiphertextChannel(adapter, transport_keys)
        values = np.arange(512) % 97
        assert channel.post("big", adapter.encrypt(values)) > 1
        assert adapter.decrypt(channel.fetch("big")).tolist() == values.tolist()


class TestForeignCiphertexts:
    def test_other_parameter_set_rejected(self, adapter, transport_keys):
        other_scheme = ToyBFVScheme(BFVParams(poly_modulus_degree=4096), _force_enable=True)
        other_scheme.keygen()
        other = SchemeAdapter(other_scheme)

        sender = CiphertextChannel(other, transport_keys, store=MemoryChunkStore())
        sender.post("x", other.encrypt([1, 2]))
        receiver = CiphertextChannel(adapter, transport_keys, store=sender.store)

        with pytest.raises(SchemeParameterMismatchError):
            receiver.fetch("x")

    def test_other_key_rejected(self, adapter, transport_keys):
        other_scheme = ToyBFVScheme(BFVParams(), _force_enable=True)
        other_scheme.keygen()
        other = SchemeAdapter(other_scheme)

        sender = CiphertextChannel(other, transport_keys)
        sender.post("x", other.encrypt([1, 2]))
        receiver = CiphertextChannel(adapter, transport_keys, store=sender.store)

        with pytest.raises(SchemeSerializationError):
            receiver.fetch("x")


class TestDirectoryChunkStore:
    def test_layout(self, adapter, transport_keys, tmp_path):
        store = DirectoryChunkStore(tmp_path)
        channel = CiphertextChannel(adapter, transport_keys, store=store)

        count = channel.post("v_t_3", adapter.encrypt(np.arange(300) % 11))
        files = sorted(p.name for p in (tmp_path / "v_t_3").iterdir())

        assert len(files) == count
        assert "v_t_3_0.bin" in files
        assert f"v_t_3_{count - 1}.bin" in files

    def test_round_trip_and_delete(self, adapter, transport_keys, tmp_path):
        store = DirectoryChunkStore(tmp_path)
        channel = CiphertextChannel(adapter, transport_keys, store=store)

        channel.post("q_new", adapter.encrypt([7, 7, 7, 7]))
        assert store.names() == ["q_new"]
        assert adapter.decrypt(channel.fetch("q_new")).tolist() == [7, 7, 7, 7]
        assert store.names() == []

    def test_overwrite_drops_stale_chunks(self, tmp_path):
        store = DirectoryChunkStore(tmp_path)
        store.put("name", [b"a", b"b", b"c"])
        store.put("name", [b"d"])
        assert store.get("name") == [b"d"]

    def test_missing_name(self, tmp_path):
        with pytest.raises(TransportError):
            DirectoryChunkStore(tmp_path).get("absent")

    def test_unsafe_name_rejected(self, tmp_path):
        with pytest.raises(TransportError):
            DirectoryChunkStore(tmp_path).put("../escape", [b"x"])
