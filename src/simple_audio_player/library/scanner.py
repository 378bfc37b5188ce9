"""Audio file discovery and folder scanning."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from simple_audio_player.config import DEFAULT_EXTENSIONS
from simple_audio_player.errors import ErrorKind, classify_os_error

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = DEFAULT_EXTENSIONS


class ScanError:
    """Record of a directory or file that was skipped."""

    def __init__(self, path: Path | str, kind: ErrorKind, message: str) -> None:
        self.path = str(path)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return (
            f"ScanError(path={self.path!r}, kind={self.kind.value!r}, "
            f"message={self.message!r})"
        )


class AudioScanner:
    """Discovers audio files under a directory, one directory at a time.

    The walk keeps an explicit stack of pending directories. A directory
    that cannot be listed (permission denied, vanished, I/O error) is
    skipped whole and recorded in ``errors``; the walk carries on with the
    rest of the stack.
    """

    def __init__(
        self,
        folder_path: Path | str,
        extensions: frozenset[str] | set[str] = SUPPORTED_EXTENSIONS,
        follow_symlinks: bool = True,
    ) -> None:
        self.folder_path = Path(os.path.abspath(folder_path))
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self.follow_symlinks = follow_symlinks
        self.errors: list[ScanError] = []

    def scan(self) -> list[Path]:
        """Return absolute paths of every audio file reachable from the root.

        Order is unspecified. A missing or unreadable root yields an empty
        list with the failure recorded in ``errors``.
        """
        self.errors = []
        files: list[Path] = []
        visited: set[tuple[int, int]] = set()
        pending: list[Path] = [self.folder_path]

        while pending:
            directory = pending.pop()
            try:
                identity = _directory_identity(directory)
                if identity is not None:
                    if identity in visited:
                        logger.debug("Already visited %s, skipping", directory)
                        continue
                    visited.add(identity)
                found, subdirs = self._list_directory(directory)
            except OSError as exc:
                kind = classify_os_error(exc)
                logger.warning("Skipping directory %s (%s): %s", directory, kind.value, exc)
                self.errors.append(ScanError(directory, kind, str(exc)))
                continue

            files.extend(found)
            pending.extend(subdirs)

        logger.debug(
            "Scanned %s: %d audio files, %d directories skipped",
            self.folder_path, len(files), len(self.errors),
        )
        return files

    def _list_directory(self, directory: Path) -> tuple[list[Path], list[Path]]:
        """List one directory; raises OSError without partial results."""
        found: list[Path] = []
        subdirs: list[Path] = []
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=self.follow_symlinks):
                    subdirs.append(Path(entry.path))
                elif entry.is_file() and self._is_audio(entry.name):
                    found.append(Path(entry.path))
        return found, subdirs

    def _is_audio(self, name: str) -> bool:
        return os.path.splitext(name)[1].lower() in self.extensions


def _directory_identity(directory: Path) -> tuple[int, int] | None:
    """(device, inode) of a directory, or None where inodes are not reported."""
    st = os.stat(directory)
    if st.st_ino == 0:
        return None
    return st.st_dev, st.st_ino
