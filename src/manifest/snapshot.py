"""Byte-level backup and restore of the manifest and lock files."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from errors import UnreadableArtifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Exact bytes of both artifacts taken before any mutation."""
    manifest_path: str
    manifest_bytes: bytes
    lock_path: str
    lock_bytes: bytes


class SnapshotGuard:
    """Captures both artifacts and puts them back verbatim on failure."""

    def __init__(self, manifest_path: str, lock_path: str):
        self.manifest_path = manifest_path
        self.lock_path = lock_path

    @staticmethod
    def _read_bytes(path: str) -> bytes:
        try:
            with open(path, "rb") as handle:
                return handle.read()
        except OSError as e:
            raise UnreadableArtifact(f"{path} is not readable: {e}") from e

    def capture(self) -> Snapshot:
        """Read both artifacts.

        Raises:
            UnreadableArtifact: if either file is missing or unreadable.
        """
        logger.info("Backing up %s and %s...", self.manifest_path, self.lock_path)
        return Snapshot(
            manifest_path=self.manifest_path,
            manifest_bytes=self._read_bytes(self.manifest_path),
            lock_path=self.lock_path,
            lock_bytes=self._read_bytes(self.lock_path),
        )

    def restore(self, snapshot: Snapshot) -> bool:
        """Write the captured bytes back to both artifacts.

        Never raises: each file is attempted independently and failures are
        logged. Returns True only if both files were restored.
        """
        logger.info("Reverting %s and %s...", snapshot.manifest_path, snapshot.lock_path)
        restored = True
        for path, content in (
            (snapshot.manifest_path, snapshot.manifest_bytes),
            (snapshot.lock_path, snapshot.lock_bytes),
        ):
            try:
                with open(path, "wb") as handle:
                    handle.write(content)
            except OSError as e:
                logger.error("Could not restore %s: %s", path, e)
                restored = False
        if restored:
            logger.info("Composer files reverted successfully.")
        return restored
