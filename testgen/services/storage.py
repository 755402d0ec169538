"""Filesystem blob storage for uploaded PDFs."""

import logging
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """Stores raw files under a root directory, one folder per owner."""

    def __init__(self, root: Path):
        """
        Initialize storage.

        Args:
            root: Directory that holds every stored file
        """
        self.root = Path(root)

    def save(self, owner_id: str, filename: str, data: bytes) -> str:
        """
        Store file bytes.

        Args:
            owner_id: Owner of the file
            filename: Original file name (only its suffix is kept)
            data: File content

        Returns:
            Storage path relative to the root
        """
        suffix = Path(filename).suffix.lower() or ".pdf"
        relative = Path(owner_id) / f"{uuid.uuid4().hex}{suffix}"
        target = self._resolve(str(relative))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info(f"Stored {len(data)} bytes at {relative}")
        return relative.as_posix()

    def read(self, storage_path: str) -> bytes:
        """
        Read stored bytes.

        Raises:
            FileNotFoundError: If nothing is stored at the path
        """
        target = self._resolve(storage_path)
        if not target.is_file():
            raise FileNotFoundError(f"Stored file not found: {storage_path}")
        return target.read_bytes()

    def delete(self, storage_path: str) -> None:
        target = self._resolve(storage_path)
        if target.exists():
            target.unlink()

    def _resolve(self, storage_path: str) -> Path:
        root = self.root.resolve()
        target = (root / storage_path).resolve()
        if root not in target.parents:
            raise ValueError(f"Storage path escapes storage root: {storage_path}")
        return target
