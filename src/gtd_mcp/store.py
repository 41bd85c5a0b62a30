"""Filesystem document store for the markdown vault.

The vault directory is the source of truth. Documents are addressed by their
POSIX path relative to the vault root (e.g. "Projects/launch.md"). Reads always
hit the disk; nothing here caches document text.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from weakref import WeakValueDictionary

if TYPE_CHECKING:
    from gtd_mcp.core.models import TaskScope

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class DocumentStoreError(Exception):
    """Raised when a document cannot be read or written."""

    pass


class DocumentNotFoundError(DocumentStoreError):
    """Raised when a document does not exist."""

    pass


@dataclass
class DocumentInfo:
    """A markdown document discovered in the vault."""

    path: str  # Relative to the vault root, POSIX separators
    mtime: float
    content_hash: str


def compute_hash(content: bytes) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content).hexdigest()


def in_scope(path: str, scope: TaskScope) -> bool:
    """
    Check whether a document path belongs to a task scope.

    Args:
        path: Vault-relative document path
        scope: "vault" matches every markdown file, "folders" matches by
            folder prefix, "files" matches exact paths

    Returns:
        True if the document should be scanned for tasks
    """
    if not path.endswith(MARKDOWN_SUFFIX):
        return False

    if scope.type == "vault":
        return True
    if scope.type == "folders":
        return any(path.startswith(p.rstrip("/") + "/") for p in scope.paths)
    if scope.type == "files":
        return path in scope.paths
    return False


class DocumentStore:
    """
    Read, list and atomically modify markdown documents under a vault root.

    Thread Safety:
        ``modify`` holds a per-document lock across read, transform and write,
        so two writers never interleave on the same document. Writes go to a
        temporary file that replaces the original, so readers never see a
        half-written document.
    """

    def __init__(self, root: Path):
        """
        Args:
            root: Vault directory
        """
        self.root = root
        # An entry lives only while some writer holds its lock
        self._locks: WeakValueDictionary[str, threading.Lock] = WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(path, threading.Lock())

    def resolve(self, path: str) -> Path:
        """
        Resolve a vault-relative path to an absolute one.

        Raises:
            ValueError: If the path escapes the vault root
        """
        if ".." in Path(path).parts:
            raise ValueError(f"Path traversal not allowed: {path}")

        full_path = (self.root / path).resolve()
        root_resolved = self.root.resolve()
        try:
            full_path.relative_to(root_resolved)
        except ValueError as e:
            raise ValueError(f"Path outside vault: {path}") from e
        return full_path

    def walk(self, scope: TaskScope) -> Iterator[DocumentInfo]:
        """Yield every in-scope markdown document, sorted by path.

        Hidden files and directories (".obsidian", ".gtd", ...) are skipped.
        """
        if not self.root.exists():
            return

        for file_path in sorted(self.root.rglob(f"*{MARKDOWN_SUFFIX}")):
            if not file_path.is_file():
                continue

            relative_parts = file_path.relative_to(self.root).parts
            if any(part.startswith(".") for part in relative_parts):
                continue

            relative_path = "/".join(relative_parts)
            if not in_scope(relative_path, scope):
                continue

            try:
                stat = file_path.stat()
                content = file_path.read_bytes()
            except OSError as e:
                logger.warning("Cannot read %s: %s", relative_path, e)
                continue

            yield DocumentInfo(
                path=relative_path,
                mtime=stat.st_mtime,
                content_hash=compute_hash(content),
            )

    def list_documents(self, scope: TaskScope) -> list[str]:
        """Paths of every in-scope document, sorted."""
        return [info.path for info in self.walk(scope)]

    def exists(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except ValueError:
            return False

    def read(self, path: str) -> str:
        """
        Read the current text of a document.

        Line endings are preserved as stored.

        Raises:
            DocumentNotFoundError: If the document does not exist
            DocumentStoreError: If it cannot be read or is not valid UTF-8
        """
        full_path = self.resolve(path)
        if not full_path.is_file():
            raise DocumentNotFoundError(f"File not found: {path}")

        try:
            return full_path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentStoreError(f"Invalid UTF-8 in {path}: {e}") from e
        except OSError as e:
            raise DocumentStoreError(f"Error reading {path}: {e}") from e

    def modify(self, path: str, transform: Callable[[str], str]) -> bool:
        """
        Apply ``transform`` to the current text of a document, exactly once.

        The document is re-read under its lock, so the transform always sees
        the latest content. Nothing is written if the text is unchanged.

        Args:
            path: Vault-relative document path
            transform: Pure function from old text to new text; any exception
                it raises propagates and leaves the document untouched

        Returns:
            True if the document was rewritten

        Raises:
            DocumentNotFoundError: If the document does not exist
            DocumentStoreError: If it cannot be read or written
        """
        full_path = self.resolve(path)
        with self._lock_for(path):
            current = self.read(path)
            updated = transform(current)
            if updated == current:
                return False
            self._write_atomic(full_path, updated)
            logger.debug("Modified %s", path)
            return True

    def _write_atomic(self, full_path: Path, content: str) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=full_path.parent, prefix=f".{full_path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "wb") as tmp:
                    tmp.write(content.encode("utf-8"))
                if full_path.exists():
                    os.chmod(tmp_name, full_path.stat().st_mode & 0o777)
                os.replace(tmp_name, full_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise DocumentStoreError(f"Error writing {full_path.name}: {e}") from e
