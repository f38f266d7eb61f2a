"""
PPRL - Privacy-Preserving Reinforcement Learning.

Q-learning against a Q-table that an untrusted party stores as BFV
ciphertexts, one per state:

- codec: fixed-point mapping of Q-values into the plaintext ring
- transport: chunked RSA-OAEP sealing of serialized ciphertexts
- he: BFV backends and the invariant-checking scheme adapter
- protocol: the encrypted table and the secure Update/Select operations
- rl: a FrozenLake reference driver
"""

__version__ = "0.1.0"

from .codec import IntegerCodec
from .errors import (
    ConfidentialityWaiverError,
    ConfigurationError,
    EncodingRangeError,
    PPRLError,
    SchemeError,
    TransportError,
)
from .protocol import EncryptedQtable, KeyMaterial, SecureQtableProtocol

__all__ = [
    "__version__",
    "IntegerCodec",
    "EncryptedQtable",
    "KeyMaterial",
    "SecureQtableProtocol",
    "PPRLError",
    "EncodingRangeError",
    "TransportError",
    "SchemeError",
    "ConfigurationError",
    "ConfidentialityWaiverError",
]
