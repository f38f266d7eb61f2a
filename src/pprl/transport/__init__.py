"""
Ciphertext transport: chunked RSA-OAEP sealing and the addressed channel.
"""

from .channel import ChunkStore, CiphertextChannel, DirectoryChunkStore, MemoryChunkStore
from .chunked import ChunkedTransport, TransportKeyPair, oaep_chunk_max

__all__ = [
    "ChunkStore",
    "ChunkedTransport",
    "CiphertextChannel",
    "DirectoryChunkStore",
    "MemoryChunkStore",
    "TransportKeyPair",
    "oaep_chunk_max",
]
