"""
Pytest configuration and fixtures.

Adds ``src`` to the import path and opts into the toy BFV backend, which
keeps protocol tests fast. End-to-end runs on TenSEAL live under ``e2e``.
"""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

os.environ.setdefault("PPRL_TOY_HE", "1")

from pprl.codec import IntegerCodec  # noqa: E402
from pprl.he.core import BFVParams  # noqa: E402
from pprl.he.toy import ToyBFVScheme  # noqa: E402
from pprl.protocol import KeyMaterial, SecureQtableProtocol  # noqa: E402
from pprl.transport import TransportKeyPair  # noqa: E402


@pytest.fixture(scope="session")
def transport_keys():
    """One RSA-2048 keypair for the whole session; generation is slow."""
    return TransportKeyPair.generate(2048)


@pytest.fixture
def toy_scheme():
    scheme = ToyBFVScheme(BFVParams(), _force_enable=True)
    scheme.keygen()
    return scheme


@pytest.fixture
def key_material(transport_keys, toy_scheme):
    return KeyMaterial(transport=transport_keys, scheme=toy_scheme)


@pytest.fixture
def codec():
    return IntegerCodec(bound=10000, coeff=1000)


@pytest.fixture
def protocol(key_material, codec):
    return SecureQtableProtocol(key_material, codec=codec)
