"""
Key material held by the trusted agent.

Two independent keypairs are involved: the RSA pair that seals ciphertext
chunks in transit, and the BFV keys (secret, public, relinearization) that
live inside the scheme backend.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import PPRLSettings, get_settings
from ..he.core import BFVParams, BFVScheme, create_scheme
from ..transport.chunked import TransportKeyPair

logger = logging.getLogger(__name__)


@dataclass
class KeyMaterial:
    transport: TransportKeyPair
    scheme: BFVScheme

    @classmethod
    def generate(
        cls,
        settings: Optional[PPRLSettings] = None,
        backend: Optional[str] = None,
        params: Optional[BFVParams] = None,
        key_bits: Optional[int] = None,
    ) -> "KeyMaterial":
        """
        Generate fresh transport and BFV keys.

        Explicit arguments override the corresponding settings.
        """
        settings = settings or get_settings()
        params = params or BFVParams(
            poly_modulus_degree=settings.POLY_MODULUS_DEGREE,
            plain_modulus=settings.PLAIN_MODULUS,
            coeff_mod_bit_sizes=settings.COEFF_MOD_BIT_SIZES,
        )
        backend = backend or ("toy" if settings.TOY_HE else settings.HE_BACKEND)

        scheme = create_scheme(backend, params)
        transport = TransportKeyPair.generate(key_bits or settings.RSA_KEY_BITS)
        return cls(transport=transport, scheme=scheme)
