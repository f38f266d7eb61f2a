"""
Tests for the toy BFV backend.
"""

import numpy as np
import pytest

from pprl.errors import NoiseBudgetExhaustedError, SchemeError, SchemeSerializationError, ToyModeNotEnabledError
from pprl.he import BFVParams, ToyBFVScheme, create_scheme


class TestOptIn:
    def test_requires_opt_in(self, monkeypatch):
        monkeypatch.setenv("PPRL_TOY_HE", "0")
        with pytest.raises(ToyModeNotEnabledError):
            ToyBFVScheme(BFVParams())

    def test_env_opt_in(self, monkeypatch):
        monkeypatch.setenv("PPRL_TOY_HE", "1")
        scheme = create_scheme("toy")
        assert scheme.has_secret_key

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_scheme("paillier")


class TestArithmetic:
    def test_encrypt_reduces_mod_t(self, toy_scheme):
        ct = toy_scheme.encrypt(np.array([-1, 65537, 3]))
        assert toy_scheme.decrypt(ct).tolist() == [65536, 0, 3]

    def test_add_sub_multiply(self, toy_scheme):
        a = toy_scheme.encrypt(np.array([2, 3, 4]))
        b = toy_scheme.encrypt(np.array([5, 0, 1]))
        assert toy_scheme.decrypt(toy_scheme.add(a, b)).tolist() == [7, 3, 5]
        assert toy_scheme.decrypt(toy_scheme.sub(b, a)).tolist() == [3, 65534, 65534]
        product = toy_scheme.relinearize(toy_scheme.multiply(a, b))
        assert toy_scheme.decrypt(product).tolist() == [10, 0, 4]

    def test_serialize_round_trip(self, toy_scheme):
        ct = toy_scheme.encrypt(np.array([9, 8, 7]))
        restored = toy_scheme.deserialize(toy_scheme.serialize(ct))
        assert toy_scheme.decrypt(restored).tolist() == [9, 8, 7]
        assert restored.noise_bits == ct.noise_bits

    def test_malformed_bytes(self, toy_scheme):
        with pytest.raises(SchemeSerializationError):
            toy_scheme.deserialize(b"garbage")

    def test_public_only_cannot_decrypt(self, toy_scheme):
        ct = toy_scheme.encrypt(np.array([1]))
        toy_scheme.make_public()
        with pytest.raises(SchemeError):
            toy_scheme.decrypt(ct)


class TestNoise:
    """Multiply chains consume the simulated budget."""

    @pytest.fixture
    def small(self):
        scheme = ToyBFVScheme(BFVParams(poly_modulus_degree=4096), _force_enable=True)
        scheme.keygen()
        return scheme

    def test_depth_three_chain_exhausts_small_params(self, small):
        ct = small.encrypt(np.array([1, 1]))
        one = small.encrypt(np.array([1, 1]))
        for _ in range(3):
            ct = small.relinearize(small.multiply(ct, one))
        with pytest.raises(NoiseBudgetExhaustedError):
            small.decrypt(ct)

    def test_reencryption_resets_noise(self, small):
        ct = small.encrypt(np.array([3, 4]))
        one = small.encrypt(np.array([1, 1]))
        ct = small.relinearize(small.multiply(ct, one))
        ct = small.relinearize(small.multiply(ct, one))
        fresh = small.encrypt(small.decrypt(ct).astype(np.int64))
        assert fresh.noise_bits < ct.noise_bits
        ct = small.relinearize(small.multiply(fresh, one))
        assert small.decrypt(ct).tolist() == [3, 4]

    def test_additions_grow_slowly(self, toy_scheme):
        acc = toy_scheme.encrypt(np.array([0]))
        one = toy_scheme.encrypt(np.array([1]))
        for _ in range(1000):
            acc = toy_scheme.add(acc, one)
        assert toy_scheme.decrypt(acc).tolist() == [1000]
        assert acc.noise_bits < 20
