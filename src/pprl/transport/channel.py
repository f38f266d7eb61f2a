"""
Addressed channel for double-encrypted ciphertexts.

A ciphertext is serialized by the scheme adapter, sealed into RSA-OAEP
chunks by :class:`ChunkedTransport`, and parked in a chunk store under a
logical name. Each sealed chunk is an opaque blob addressed by
``(name, index)``. The receiving side fetches the chunks in index order,
opens them and deserializes the ciphertext.
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..errors import TransportError
from ..he.adapter import SchemeAdapter
from ..he.core import Ciphertext
from .chunked import ChunkedTransport, TransportKeyPair

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.\-]+$")


class ChunkStore(ABC):
    """Storage for sealed chunk sequences keyed by logical name."""

    @abstractmethod
    def put(self, name: str, chunks: List[bytes]) -> None:
        """Store ``chunks`` under ``name``, replacing any previous sequence."""

    @abstractmethod
    def get(self, name: str) -> List[bytes]:
        """Return the chunk sequence for ``name`` in index order."""

    @abstractmethod
    def delete(self, name: str) -> None:
        pass

    @abstractmethod
    def names(self) -> List[str]:
        pass


class MemoryChunkStore(ChunkStore):
    """In-process chunk store."""

    def __init__(self):
        self._chunks: Dict[str, List[bytes]] = {}

    def put(self, name: str, chunks: List[bytes]) -> None:
        self._chunks[name] = list(chunks)

    def get(self, name: str) -> List[bytes]:
        if name not in self._chunks:
            raise TransportError(f"no sealed ciphertext named '{name}'", code="PPRL_TRANSPORT_NOT_FOUND")
        return list(self._chunks[name])

    def delete(self, name: str) -> None:
        self._chunks.pop(name, None)

    def names(self) -> List[str]:
        return sorted(self._chunks)


class DirectoryChunkStore(ChunkStore):
    """
    Stages sealed chunks on disk for audit.

    Layout: ``<root>/<name>/<name>_<index>.bin`` with zero-based indices.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _dir(self, name: str) -> Path:
        if not _SAFE_NAME.match(name):
            raise TransportError(f"invalid channel name '{name}'", code="PPRL_TRANSPORT_BAD_NAME")
        return self.root / name

    def put(self, name: str, chunks: List[bytes]) -> None:
        directory = self._dir(name)
        if directory.exists():
            for stale in directory.glob("*.bin"):
                stale.unlink()
        directory.mkdir(parents=True, exist_ok=True)
        for index, chunk in enumerate(chunks):
            (directory / f"{name}_{index}.bin").write_bytes(chunk)

    def get(self, name: str) -> List[bytes]:
        directory = self._dir(name)
        if not directory.is_dir():
            raise TransportError(f"no sealed ciphertext named '{name}'", code="PPRL_TRANSPORT_NOT_FOUND")
        count = len(list(directory.glob("*.bin")))
        chunks = []
        for index in range(count):
            path = directory / f"{name}_{index}.bin"
            if not path.exists():
                raise TransportError(f"missing chunk for '{name}'", chunk_index=index)
            chunks.append(path.read_bytes())
        return chunks

    def delete(self, name: str) -> None:
        directory = self._dir(name)
        if directory.is_dir():
            for path in directory.glob("*.bin"):
                path.unlink()
            directory.rmdir()

    def names(self) -> List[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())


class CiphertextChannel:
    """
    Moves ciphertexts across the untrusted boundary under double encryption.

    Args:
        adapter: Scheme adapter used to (de)serialize ciphertexts
        keys: RSA transport keypair
        transport: Chunked RSA-OAEP transport
        store: Where sealed chunks wait between post and fetch
    """

    def __init__(
        self,
        adapter: SchemeAdapter,
        keys: TransportKeyPair,
        transport: Optional[ChunkedTransport] = None,
        store: Optional[ChunkStore] = None,
    ):
        self.adapter = adapter
        self.keys = keys
        self.transport = transport or ChunkedTransport()
        self.store = store or MemoryChunkStore()

    def post(self, name: str, ciphertext: Ciphertext) -> int:
        """Seal ``ciphertext`` under ``name``. Returns the chunk count."""
        chunks = self.transport.seal(self.adapter.serialize(ciphertext), self.keys.public_key)
        self.store.put(name, chunks)
        return len(chunks)

    def fetch(self, name: str, consume: bool = True) -> Ciphertext:
        """Open the ciphertext posted under ``name``."""
        data = self.transport.open(self.store.get(name), self.keys.private_key)
        if consume:
            self.store.delete(name)
        return self.adapter.deserialize(data)

    def discard(self, names: Iterable[str]) -> None:
        """Drop any chunks still parked under ``names``."""
        for name in names:
            self.store.delete(name)

    def round_trip(self, name: str, ciphertext: Ciphertext) -> Ciphertext:
        self.post(name, ciphertext)
        return self.fetch(name)
