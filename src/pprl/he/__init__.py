"""
Homomorphic encryption layer for PPRL.

Provides the BFV parameter set, the ciphertext wrapper, the abstract
backend interface and its two implementations (TenSEAL and an insecure toy
simulation), and the invariant-checking :class:`SchemeAdapter` that the
Q-table protocol computes with.

The TenSEAL backend is imported lazily by :func:`create_scheme`.
"""

from .adapter import SchemeAdapter
from .core import BFVParams, BFVScheme, Ciphertext, create_scheme, toy_mode_enabled
from .toy import ToyBFVScheme

__all__ = [
    "BFVParams",
    "BFVScheme",
    "Ciphertext",
    "SchemeAdapter",
    "ToyBFVScheme",
    "create_scheme",
    "toy_mode_enabled",
]
