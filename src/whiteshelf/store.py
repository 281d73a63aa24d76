"""Filesystem storage for shelf documents."""

import hashlib
import os
import re
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Union

from .config import ShelfConfig
from .errors import AlreadyExists, Conflict, InvalidInput, NotFound, StorageError

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class DocumentEntry:
    """One document found by DocumentStore.list."""

    name: str
    path: Path
    modified: float


def normalize_name(name: str, extension: str) -> str:
    """Turn a user-supplied name into a safe file name.

    Characters outside [A-Za-z0-9_.-] become underscores and the extension
    is appended if missing.
    """
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Missing filename")
    name = _UNSAFE_RE.sub("_", name)
    if not name.endswith(extension):
        name += extension
    return name


def content_version(text: str) -> str:
    """Version token for a document's content."""
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


class DocumentStore:
    """Loads and saves raw document text under the configured directories.

    Saves are atomic: content goes to a temporary file in the target
    directory and is renamed into place, so readers see either the old or
    the new file.
    """

    def __init__(self, config: ShelfConfig):
        self.config = config
        self._locks: Dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def papers_dir(self) -> Path:
        return self.config.papers_path

    @property
    def roadmaps_dir(self) -> Path:
        return self.config.roadmaps_path

    def ensure_directories(self) -> None:
        for directory in (self.papers_dir, self.roadmaps_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot create {directory}: {e}") from e

    def resolve(self, directory: Union[str, Path], name: str) -> Path:
        """Map a logical document name to its path. Touches nothing on disk."""
        return Path(directory) / normalize_name(name, self.config.extension)

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).is_file()

    def load(self, path: Union[str, Path]) -> str:
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            raise NotFound(f"File not found: {path.name}") from None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path.name}: {e}") from e

    def version(self, path: Union[str, Path]) -> Optional[str]:
        """Version token of the file on disk, or None if it does not exist."""
        try:
            return content_version(self.load(path))
        except NotFound:
            return None

    def save(
        self,
        path: Union[str, Path],
        text: str,
        expected_version: Optional[str] = None,
    ) -> None:
        """Atomically replace the file at path with text.

        If expected_version is given, the file on disk must still have that
        version, otherwise Conflict is raised and nothing is written.
        """
        path = Path(path)
        if expected_version is not None:
            current = self.version(path)
            if current != expected_version:
                raise Conflict(f"{path.name} was modified by another writer")
        self._write(path, text, os.replace)

    def create(self, path: Union[str, Path], text: str) -> None:
        """Write a new document; AlreadyExists if the name is taken.

        The file is published with a hard link, which fails rather than
        replacing a document another writer created after the check.
        """
        path = Path(path)
        if self.exists(path):
            raise AlreadyExists(f"File already exists: {path.name}")
        self._write(path, text, os.link)

    def _write(
        self, path: Path, text: str, publish: Callable[[str, Path], None]
    ) -> None:
        """Write text to a temporary file beside path, then publish it."""
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            publish(temp_path, path)
        except FileExistsError:
            raise AlreadyExists(f"File already exists: {path.name}") from None
        except OSError as e:
            raise StorageError(f"Cannot write {path.name}: {e}") from e
        finally:
            # Left behind by a failed write or by os.link
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)

    def delete(self, path: Union[str, Path]) -> None:
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFound(f"File not found: {path.name}") from None
        except OSError as e:
            raise StorageError(f"Cannot delete {path.name}: {e}") from e

    def list(
        self, directory: Union[str, Path], extension: Optional[str] = None
    ) -> Iterator[DocumentEntry]:
        """Yield the documents in directory, in name order."""
        directory = Path(directory)
        if extension is None:
            extension = self.config.extension
        if not directory.is_dir():
            return

        names = sorted(
            p.name
            for p in directory.iterdir()
            if p.name.endswith(extension) and not p.name.startswith(".")
        )
        for name in names:
            path = directory / name
            try:
                modified = path.stat().st_mtime
            except FileNotFoundError:
                # Deleted since the directory was read
                continue
            yield DocumentEntry(name=name, path=path, modified=modified)

    @contextmanager
    def lock(self, path: Union[str, Path]) -> Iterator[None]:
        """Hold the per-document lock for a load/mutate/save cycle."""
        key = Path(path).resolve()
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield
