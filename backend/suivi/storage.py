"""Local filesystem storage for record attachments.

Storage layout:
    <upload_dir>/<epoch_ms>-<9 random digits><.ext>

The stored name is generated, never derived from the client's filename
beyond its extension, so it can neither collide with another upload nor
escape the upload directory.
"""
import logging
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,10}$")


@dataclass
class StoredFile:
    """Result of storing a single file on disk."""

    stored_name: str
    path: Path
    size_bytes: int


def _extension(filename: str) -> str:
    """Lower-cased extension of a client filename, or '' if it looks unsafe."""
    suffix = Path(filename or "").suffix.lower()
    return suffix if _EXTENSION_RE.match(suffix) else ""


def generate_stored_name(original_name: str) -> str:
    """Collision-resistant on-disk name that keeps the original extension."""
    stamp = int(time.time() * 1000)
    suffix = secrets.randbelow(10**9)
    return f"{stamp}-{suffix:09d}{_extension(original_name)}"


class LocalFileStorage:
    """Infrastructure adapter for the attachment directory."""

    def __init__(self, upload_dir: str | Path):
        self._upload_dir = Path(upload_dir).resolve()
        self._upload_dir.mkdir(parents=True, exist_ok=True)

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    def save(self, content: bytes, original_name: str) -> StoredFile:
        """Write ``content`` under a freshly generated name."""
        while True:
            stored_name = generate_stored_name(original_name)
            dest_path = self._upload_dir / stored_name
            if not dest_path.exists():
                break

        dest_path.write_bytes(content)
        logger.info("Stored file %s (%d bytes) for '%s'", stored_name, len(content), original_name)
        return StoredFile(stored_name=stored_name, path=dest_path, size_bytes=len(content))

    def path_for(self, stored_name: str) -> Path:
        """Absolute path of a stored file; rejects names outside the upload dir."""
        path = (self._upload_dir / stored_name).resolve()
        if path.parent != self._upload_dir:
            raise ValueError(f"Stored name escapes upload directory: {stored_name!r}")
        return path

    def exists(self, stored_name: str) -> bool:
        return self.path_for(stored_name).is_file()

    def delete(self, stored_name: str) -> bool:
        """Delete a stored file. Returns False if it was already gone."""
        path = self.path_for(stored_name)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("File %s already missing from disk", stored_name)
            return False
        logger.info("Deleted file from disk: %s", stored_name)
        return True
