"""Description and duration extraction using mutagen, with a BEXT fallback."""

from __future__ import annotations

import logging
from pathlib import Path

import mutagen
from mutagen import MutagenError

from simple_audio_player.errors import ErrorKind, classify_os_error
from simple_audio_player.library.bext import read_description

logger = logging.getLogger(__name__)

WAVE_EXTENSION = ".wav"

# Comment-like keys across tag flavours, in lookup order:
# Vorbis/FLAC, MP4 atoms, APEv2
_COMMENT_KEYS = ("comment", "description", "\xa9cmt", "desc", "Comment")


class ProbeResult:
    """Outcome of reading one file: what was found and what went wrong."""

    def __init__(
        self,
        description: str = "",
        duration_seconds: float = 0.0,
        error: ErrorKind | None = None,
    ) -> None:
        self.description = description
        self.duration_seconds = duration_seconds
        self.error = error

    def __repr__(self) -> str:
        return (
            f"ProbeResult(description={self.description!r}, "
            f"duration_seconds={self.duration_seconds!r}, error={self.error!r})"
        )


class MetadataExtractor:
    """Extracts comment and duration via mutagen, BEXT for bare WAV files."""

    def extract(self, file_path: Path | str) -> tuple[str, float]:
        """Return (description, duration_seconds); ("", 0.0) on any failure."""
        result = self.probe(file_path)
        return result.description, result.duration_seconds

    def probe(self, file_path: Path | str) -> ProbeResult:
        """Read a file's metadata, recording the failure kind instead of raising.

        The duration comes only from mutagen. A WAV file with an empty
        comment (or one mutagen rejects) is re-read for a BEXT description.
        """
        file_path = Path(file_path)
        description = ""
        duration = 0.0
        error: ErrorKind | None = None

        try:
            audio = mutagen.File(str(file_path))
            if audio is not None:
                description = _comment_from_tags(audio.tags)
                duration = _duration_from_info(audio.info)
        except MutagenError as exc:
            error = _classify_mutagen_error(exc)
            logger.warning("Tag read failed for %s: %s", file_path, exc)
        except OSError as exc:
            error = classify_os_error(exc)
            logger.warning("Cannot read %s: %s", file_path, exc)
        except Exception as exc:
            # Corrupt files can trip arbitrary errors inside tag parsers
            error = ErrorKind.MALFORMED_CONTAINER
            logger.warning("Metadata extraction failed for %s: %s", file_path, exc)

        if not description and file_path.suffix.lower() == WAVE_EXTENSION:
            try:
                description = read_description(file_path)
            except OSError as exc:
                error = error or classify_os_error(exc)
                logger.warning("BEXT read failed for %s: %s", file_path, exc)

        return ProbeResult(description, duration, error)


def _comment_from_tags(tags: object) -> str:
    """Return the first non-empty comment-like value from any tag flavour."""
    if tags is None:
        return ""

    # ID3 (MP3, WAV id3 chunk, AIFF)
    getall = getattr(tags, "getall", None)
    if callable(getall):
        for frame in getall("COMM"):
            text = _first_text(getattr(frame, "text", None))
            if text:
                return text
        return ""

    for key in _COMMENT_KEYS:
        try:
            value = tags[key]  # type: ignore[index]
        except (KeyError, ValueError, TypeError):
            continue
        text = _first_text(value)
        if text:
            return text
    return ""


def _first_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        for item in value:
            text = _first_text(item)
            if text:
                return text
        return ""
    return str(value).strip("\x00").strip()


def _duration_from_info(info: object) -> float:
    length = getattr(info, "length", None)
    try:
        length = float(length) if length is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    if length != length or length < 0:  # NaN or negative
        return 0.0
    return length


def _classify_mutagen_error(exc: MutagenError) -> ErrorKind:
    """mutagen wraps IOError in MutagenError; recover the OS-level kind."""
    cause = exc.__cause__ or exc.__context__
    if cause is None and exc.args:
        cause = exc.args[0]
    if isinstance(cause, OSError):
        return classify_os_error(cause)
    return ErrorKind.MALFORMED_CONTAINER
