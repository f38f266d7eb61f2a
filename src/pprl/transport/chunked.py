"""
Chunked RSA-OAEP transport for oversized homomorphic ciphertexts.

A serialized BFV ciphertext is hundreds of kilobytes, while one RSA-OAEP
operation can only carry

    chunk_max = key_bytes - 2 * hash_bytes - 2

bytes (190 for a 2048-bit key with SHA-256). The byte stream is therefore
split into contiguous chunks that are encrypted independently. Each sealed
chunk is self-contained, so opening decrypts them in parallel and joins the
results by chunk index, never by completion order.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_KEY_BITS = 2048
PUBLIC_EXPONENT = 65537


def oaep_chunk_max(key_bits: int, hash_algorithm: Optional[hashes.HashAlgorithm] = None) -> int:
    """Largest plaintext one OAEP operation accepts for the given key size."""
    hash_algorithm = hash_algorithm or hashes.SHA256()
    return key_bits // 8 - 2 * hash_algorithm.digest_size - 2


@dataclass
class TransportKeyPair:
    """RSA keypair used to seal ciphertext chunks."""

    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey

    @classmethod
    def generate(cls, key_bits: int = DEFAULT_KEY_BITS) -> "TransportKeyPair":
        private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_bits)
        logger.info(f"Generated RSA-{key_bits} transport keypair")
        return cls(private_key=private_key, public_key=private_key.public_key())

    @property
    def key_bits(self) -> int:
        return self.public_key.key_size

    def public_pem(self) -> bytes:
        """Export the public half for the sealing party."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )


class ChunkedTransport:
    """
    Seals byte streams into RSA-OAEP chunks and opens them again.

    Args:
        hash_algorithm: OAEP hash (default SHA-256, also used for MGF1)
        max_workers: Thread pool size for parallel chunk decryption
    """

    def __init__(
        self,
        hash_algorithm: Optional[hashes.HashAlgorithm] = None,
        max_workers: Optional[int] = None,
    ):
        self.hash_algorithm = hash_algorithm or hashes.SHA256()
        self.max_workers = max_workers

    def _padding(self) -> padding.OAEP:
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=self.hash_algorithm),
            algorithm=self.hash_algorithm,
            label=None,
        )

    def chunk_max(self, key: rsa.RSAPublicKey) -> int:
        limit = oaep_chunk_max(key.key_size, self.hash_algorithm)
        if limit <= 0:
            raise ConfigurationError(
                f"RSA-{key.key_size} cannot carry OAEP/{self.hash_algorithm.name} payloads",
                details={"key_bits": key.key_size},
            )
        return limit

    def split(self, data: bytes, chunk_max: int) -> List[bytes]:
        """Split into ceil(len/chunk_max) contiguous chunks; the last may be short."""
        total_chunks = math.ceil(len(data) / chunk_max)
        return [data[i * chunk_max : (i + 1) * chunk_max] for i in range(total_chunks)]

    def seal(self, data: bytes, public_key: rsa.RSAPublicKey) -> List[bytes]:
        """
        Encrypt ``data`` chunk by chunk.

        Returns:
            Sealed chunks; list position is the chunk index
        """
        chunks = self.split(data, self.chunk_max(public_key))
        oaep = self._padding()

        sealed = []
        for index, chunk in enumerate(chunks):
            try:
                sealed.append(public_key.encrypt(chunk, oaep))
            except ValueError as e:
                raise TransportError(str(e), chunk_index=index, code="PPRL_TRANSPORT_SEAL_FAILED") from e

        logger.debug(f"Sealed {len(data)} bytes into {len(sealed)} chunks")
        return sealed

    def open(self, chunks: Sequence[bytes], private_key: rsa.RSAPrivateKey) -> bytes:
        """
        Decrypt all chunks and rebuild the original byte stream.

        Any chunk failing to decrypt fails the whole call; no partial stream
        is returned.
        """
        if not chunks:
            return b""

        oaep = self._padding()

        def _decrypt(item):
            index, chunk = item
            try:
                return private_key.decrypt(chunk, oaep)
            except ValueError as e:
                raise TransportError(
                    "chunk decryption failed (wrong key or corrupted chunk)",
                    chunk_index=index,
                    code="PPRL_TRANSPORT_OPEN_FAILED",
                ) from e

        # Executor.map yields in submission order, so the join follows chunk index.
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            parts = list(pool.map(_decrypt, enumerate(chunks)))

        data = b"".join(parts)
        logger.debug(f"Opened {len(chunks)} chunks into {len(data)} bytes")
        return data
