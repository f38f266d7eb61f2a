"""
Tests for the encrypted Q-table store.
"""

import numpy as np
import pytest

from pprl.errors import ConfidentialityWaiverError, SchemeError
from pprl.he import SchemeAdapter
from pprl.protocol import EncryptedQtable


@pytest.fixture
def adapter(toy_scheme):
    return SchemeAdapter(toy_scheme)


@pytest.fixture
def table(adapter):
    return EncryptedQtable(adapter, n_states=6, n_actions=4)


class TestShape:
    def test_zero_initialised(self, table, adapter):
        assert len(table) == 6
        for ct in table.entries():
            assert ct.size == 4
            assert adapter.decrypt(ct).tolist() == [0, 0, 0, 0]

    def test_empty_dimensions_rejected(self, adapter):
        with pytest.raises(ValueError):
            EncryptedQtable(adapter, 0, 4)
        with pytest.raises(ValueError):
            EncryptedQtable(adapter, 4, 0)


class TestCommit:
    def test_commit_replaces_entries(self, table, adapter):
        new = adapter.encrypt([1, 2, 3, 4])
        table.commit({2: new})
        assert table[2] is new
        assert adapter.decrypt(table[3]).tolist() == [0, 0, 0, 0]

    def test_wrong_slot_count_rejected(self, table, adapter):
        before = table.entries()
        with pytest.raises(SchemeError):
            table.commit({0: adapter.encrypt([1, 1, 1, 1]), 1: adapter.encrypt([1, 2])})
        assert all(a is b for a, b in zip(before, table.entries()))

    def test_index_out_of_range(self, table, adapter):
        with pytest.raises(IndexError):
            table.commit({6: adapter.encrypt([0, 0, 0, 0])})

    def test_unrelinearized_entry_rejected(self, table, adapter):
        a = adapter.encrypt([1, 1, 1, 1])
        with pytest.raises(SchemeError):
            table.commit({0: adapter.multiply(a, a)})

    def test_length_fixed(self, table, adapter):
        table.commit({i: adapter.encrypt([i, 0, 0, 0]) for i in range(6)})
        assert len(table.entries()) == 6


class TestReset:
    def test_reset_rezeroes(self, table, adapter, codec):
        table.commit({1: adapter.encrypt(codec.to_slots([1.0, -2.0, 0.0, 0.5]))})
        table.reset()
        np.testing.assert_array_equal(table.decrypt_all(codec, confidentiality_waiver=True), np.zeros((6, 4)))


class TestDebugDump:
    def test_waiver_required(self, table, codec):
        with pytest.raises(ConfidentialityWaiverError) as exc_info:
            table.decrypt_all(codec)
        assert exc_info.value.code == "PPRL_TABLE_WAIVER_REQUIRED"

    def test_dump_decodes(self, table, adapter, codec):
        table.commit({4: adapter.encrypt(codec.to_slots([1.0, -2.0, 0.0, 0.5]))})
        dump = table.decrypt_all(codec, confidentiality_waiver=True)
        assert dump.shape == (6, 4)
        np.testing.assert_allclose(dump[4], [1.0, -2.0, 0.0, 0.5])
