"""Library indexing: directory walk followed by parallel metadata extraction."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable

from simple_audio_player.config import PlayerSettings
from simple_audio_player.errors import ErrorKind
from simple_audio_player.library.metadata import MetadataExtractor, ProbeResult
from simple_audio_player.library.scanner import AudioScanner, ScanError
from simple_audio_player.models import AudioEntry

logger = logging.getLogger(__name__)


class IndexResult:
    """Result of one index run: entries plus everything that was skipped."""

    def __init__(
        self,
        entries: list[AudioEntry],
        errors: list[ScanError],
        skipped_directories: int = 0,
    ) -> None:
        self.entries = entries
        self.errors = errors
        self.skipped_directories = skipped_directories

    def sorted_by_name(self) -> list[AudioEntry]:
        """Entries ordered by file name (case-insensitive), then path."""
        return sorted(self.entries, key=lambda e: (e.file_name.lower(), e.path))

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return (
            f"IndexResult(entries={len(self.entries)}, "
            f"errors={len(self.errors)})"
        )


# callback(file_name, completed, total)
ProgressCallback = Callable[[str, int, int], None]


class LibraryIndexer:
    """Builds the collection of AudioEntry records for a directory tree."""

    def __init__(
        self,
        settings: PlayerSettings | None = None,
        extractor: MetadataExtractor | None = None,
    ) -> None:
        self.settings = settings or PlayerSettings()
        self.extractor = extractor or MetadataExtractor()

    def index(
        self,
        root: Path | str,
        progress_callback: ProgressCallback | None = None,
    ) -> IndexResult:
        """Walk ``root`` and extract metadata for every audio file found.

        Never raises for filesystem or file-content problems: unreadable
        directories are skipped and failing files become entries with an
        empty description and zero duration.
        """
        scanner = AudioScanner(
            root,
            extensions=self.settings.extensions,
            follow_symlinks=self.settings.follow_symlinks,
        )
        file_paths = scanner.scan()
        errors: list[ScanError] = list(scanner.errors)
        skipped_directories = len(scanner.errors)

        entries = self._extract_all(file_paths, errors, progress_callback)

        logger.info(
            "Indexed %s: %d entries, %d directories skipped, %d file errors",
            scanner.folder_path,
            len(entries),
            skipped_directories,
            len(errors) - skipped_directories,
        )
        return IndexResult(entries, errors, skipped_directories)

    def index_directory(self, root: Path | str) -> list[AudioEntry]:
        """Plain entry list for ``root``; see index() for the full report."""
        return self.index(root).entries

    def _extract_all(
        self,
        file_paths: list[Path],
        errors: list[ScanError],
        progress_callback: ProgressCallback | None,
    ) -> list[AudioEntry]:
        """Run the extractor over a bounded thread pool.

        Results are merged on this thread as futures complete, so workers
        never touch a shared collection.
        """
        total = len(file_paths)
        if total == 0:
            return []

        max_workers = min(self.settings.resolved_max_workers(), total)
        entries: list[AudioEntry] = []
        completed = 0

        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="metadata"
        ) as executor:
            future_to_path = {
                executor.submit(self.extractor.probe, path): path
                for path in file_paths
            }

            for future in as_completed(future_to_path):
                path = future_to_path[future]
                completed += 1
                try:
                    result = future.result()
                except Exception as exc:
                    # probe() is no-fail; a substituted extractor may not be
                    logger.warning("Extraction raised for %s: %s", path, exc)
                    result = ProbeResult(error=ErrorKind.IO_ERROR)

                if result.error is not None:
                    errors.append(
                        ScanError(path, result.error, "metadata extraction failed")
                    )
                entries.append(
                    AudioEntry(
                        path=str(path),
                        description=result.description,
                        duration_seconds=result.duration_seconds,
                    )
                )
                if progress_callback:
                    try:
                        progress_callback(path.name, completed, total)
                    except Exception:
                        logger.exception("Progress callback failed for %s", path)

        return entries
