"""
Local filesystem artifact store.

Every key maps to a file below one base directory. The temporary workspace
and the diagnostics directory both use this store.
"""

from __future__ import annotations

from pathlib import Path

import aiofiles
import aiofiles.os

from .interface import ArtifactStore


class LocalArtifactStore(ArtifactStore):
    """Local filesystem artifact store."""

    def __init__(self, base_path: Path) -> None:
        """Initialize local storage.

        Args:
            base_path: Base directory for all storage operations
        """
        self.base_path = base_path.resolve()

    async def _ensure_parent(self, path: Path) -> None:
        parent = path.parent
        if not parent.exists():
            parent.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Get full filesystem path for a key.

        Normalizes the key so that the resulting path always stays inside
        the base directory.

        Args:
            key: The storage key to convert to a filesystem path.

        Returns:
            The resolved absolute path within the base storage directory.
        """
        clean_key = key.lstrip("/\\").replace("..", "").replace(":", "")
        full_path = (self.base_path / clean_key).resolve()

        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            clean_key = clean_key.replace("/", "_").replace("\\", "_")
            full_path = self.base_path / clean_key

        return full_path

    async def store_bytes(self, key: str, data: bytes) -> str:
        full_path = self.path_for(key)
        await self._ensure_parent(full_path)

        async with aiofiles.open(full_path, "wb") as f:
            await f.write(data)

        return key

    async def store_text(self, key: str, content: str) -> str:
        full_path = self.path_for(key)
        await self._ensure_parent(full_path)

        # newline="" keeps the bundle byte-exact on every platform
        async with aiofiles.open(full_path, "w", encoding="utf-8", newline="") as f:
            await f.write(content)

        return key

    async def load_bytes(self, key: str) -> bytes:
        full_path = self.path_for(key)

        if not full_path.exists():
            raise FileNotFoundError(f"Key not found: {key}")

        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()

    async def load_text(self, key: str) -> str:
        full_path = self.path_for(key)

        if not full_path.exists():
            raise FileNotFoundError(f"Key not found: {key}")

        async with aiofiles.open(full_path, "r", encoding="utf-8", newline="") as f:
            return await f.read()

    async def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    async def delete(self, key: str) -> bool:
        full_path = self.path_for(key)
        if full_path.exists():
            await aiofiles.os.remove(full_path)
            return True
        return False

    async def list_keys(self, prefix: str = "") -> list[str]:
        """List all keys with prefix.

        Args:
            prefix: Optional prefix to filter keys. If empty, lists all keys.

        Returns:
            A sorted list of storage keys matching the prefix.
        """
        search_path = self.path_for(prefix) if prefix else self.base_path

        if not search_path.exists():
            return []

        keys = []
        for path in search_path.rglob("*"):
            if path.is_file():
                keys.append(path.relative_to(self.base_path).as_posix())

        return sorted(keys)
