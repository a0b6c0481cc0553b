"""
Artifact store interface.

Defines the abstract interface for intermediate artifact storage used by the
pipeline stages, so that stages never build filesystem paths themselves.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from pathlib import Path


class ArtifactStore(ABC):
    """Abstract artifact store interface."""

    @abstractmethod
    async def store_bytes(self, key: str, data: bytes) -> str:
        """Store raw bytes and return the storage key.

        Args:
            key: Storage key/path
            data: Raw bytes to store

        Returns:
            The final storage key
        """
        ...

    @abstractmethod
    async def store_text(self, key: str, content: str) -> str:
        """Store UTF-8 text and return the storage key."""
        ...

    @abstractmethod
    async def load_bytes(self, key: str) -> bytes:
        """Load raw bytes from storage.

        Raises:
            FileNotFoundError: If the key does not exist.
        """
        ...

    @abstractmethod
    async def load_text(self, key: str) -> str:
        """Load UTF-8 text from storage.

        Raises:
            FileNotFoundError: If the key does not exist.
        """
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key from storage.

        Returns:
            True if the key was deleted, False if it did not exist.
        """
        ...

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        ...

    @abstractmethod
    def path_for(self, key: str) -> Path:
        """Get the filesystem path for a key, whether or not it exists yet.

        External tools write their output directly, so stages need a path
        to hand them.
        """
        ...

    @staticmethod
    def compute_hash(data: bytes) -> str:
        """Compute SHA-256 hash of data.

        Args:
            data: Raw bytes to hash.

        Returns:
            Hexadecimal string representation of the SHA-256 hash.
        """
        return hashlib.sha256(data).hexdigest()
