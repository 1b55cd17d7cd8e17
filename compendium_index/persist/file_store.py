"""
Directory-backed flat store.

Writes go to a temporary sibling file that is fsynced and then renamed over
the target, so readers see either the old artifact or the new one.
"""

import os
import tempfile
from pathlib import Path

from compendium_index.errors import PersistenceReadError, PersistenceWriteError


class FileStore:
    """Flat key/bytes store rooted at a directory; keys are relative paths."""

    def __init__(self, root: Path | str):
        """
        Args:
            root: Directory that all keys are resolved against
        """
        self.root = Path(root)

    def _path(self, key: str, error: type = PersistenceReadError) -> Path:
        path = (self.root / key).resolve()
        root = self.root.resolve()
        if path != root and root not in path.parents:
            raise error(f"Key escapes store root: {key}")
        return path

    def exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except OSError as e:
            raise PersistenceReadError(f"Cannot stat {key}: {e}") from e

    def read(self, key: str) -> bytes:
        try:
            with open(self._path(key), "rb") as f:
                return f.read()
        except OSError as e:
            raise PersistenceReadError(f"Cannot read {key}: {e}") from e

    def write(self, key: str, data: bytes) -> None:
        path = self._path(key, PersistenceWriteError)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise PersistenceWriteError(f"Cannot write {key}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def delete(self, key: str) -> bool:
        path = self._path(key, PersistenceWriteError)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceWriteError(f"Cannot delete {key}: {e}") from e

    def list(self, prefix: str = "") -> list[str]:
        """Keys under ``prefix``, relative to the root, sorted."""
        root = self.root.resolve()
        base = self._path(prefix) if prefix else root
        if not base.exists():
            return []
        return sorted(
            str(p.relative_to(root)).replace(os.sep, "/")
            for p in base.rglob("*")
            if p.is_file() and not p.name.endswith(".tmp")
        )
