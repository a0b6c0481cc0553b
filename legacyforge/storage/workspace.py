"""
Temporary workspace and atomic publishing.

The workspace holds every intermediate bundle of a run and is removed on all
exit paths. Final artifacts are staged as hidden siblings of their target and
moved into place with ``os.replace``, so a failed run never leaves a
half-written file where a good one used to be.
"""

from __future__ import annotations

import shutil
import tempfile
import uuid
from pathlib import Path
from types import TracebackType

import aiofiles
import aiofiles.os

from ..core.logging import get_logger
from ..models.artifacts import FinalArtifact
from .local import LocalArtifactStore

logger = get_logger(__name__)


class TemporaryWorkspace:
    """Scoped temporary directory exposed as an artifact store.

    Usage::

        async with TemporaryWorkspace(temp_root) as workspace:
            await workspace.store_text("bundle.js", code)
    """

    def __init__(self, temp_root: Path | None = None, prefix: str = "legacyforge-") -> None:
        self.temp_root = temp_root
        self.prefix = prefix
        self.path: Path | None = None

    async def __aenter__(self) -> LocalArtifactStore:
        if self.temp_root is not None:
            self.temp_root.mkdir(parents=True, exist_ok=True)
        self.path = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.temp_root))
        logger.debug("Workspace created", path=str(self.path))
        return LocalArtifactStore(self.path)

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.path is None:
            return
        shutil.rmtree(self.path, ignore_errors=True)
        logger.debug("Workspace removed", path=str(self.path), failed=exc is not None)
        self.path = None


def _sibling(target: Path, suffix: str = "tmp") -> Path:
    return target.with_name(f".{target.name}.{uuid.uuid4().hex[:8]}.{suffix}")


async def _remove_staged(staged: list[tuple[Path, Path]]) -> None:
    for staging, _ in staged:
        if staging.exists():
            await aiofiles.os.remove(staging)


async def _roll_back(replaced: list[Path], backups: dict[Path, Path]) -> None:
    for target in reversed(replaced):
        if target not in backups:
            await aiofiles.os.remove(target)
    for target, backup in backups.items():
        await aiofiles.os.replace(backup, target)
        logger.warning("Restored previous artifact", path=str(target))


async def publish_atomically(artifacts: list[FinalArtifact]) -> list[Path]:
    """Write final artifacts (and their source maps) with write-then-rename.

    Every file is staged before any file is replaced. Existing files are moved
    to backups while they are replaced. If staging or any replacement fails,
    the backups are restored and every new or staged file is removed.

    Args:
        artifacts: Final artifacts to publish.

    Returns:
        Paths of every file that was put in place.
    """
    staged: list[tuple[Path, Path]] = []
    try:
        for artifact in artifacts:
            files = [(artifact.path, artifact.content)]
            if artifact.source_map is not None:
                files.append((artifact.source_map_path, artifact.source_map))
            for target, content in files:
                target.parent.mkdir(parents=True, exist_ok=True)
                staging = _sibling(target)
                staged.append((staging, target))
                async with aiofiles.open(staging, "w", encoding="utf-8", newline="") as f:
                    await f.write(content)
    except BaseException:
        await _remove_staged(staged)
        raise

    backups: dict[Path, Path] = {}
    published: list[Path] = []
    try:
        for staging, target in staged:
            if target.is_file():
                backup = _sibling(target, "bak")
                await aiofiles.os.replace(target, backup)
                backups[target] = backup
            await aiofiles.os.replace(staging, target)
            published.append(target)
    except BaseException:
        await _roll_back(published, backups)
        await _remove_staged(staged)
        raise

    for backup in backups.values():
        await aiofiles.os.remove(backup)
    for target in published:
        logger.info("Published artifact", path=str(target))
    return published
