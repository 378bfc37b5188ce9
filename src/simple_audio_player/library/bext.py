"""Broadcast-wave (BEXT) description reader for RIFF/WAVE files.

Layout consumed::

    "RIFF" <u32le size> "WAVE" { <id[4]> <u32le size> <payload> [pad] }*

Chunks are word-aligned: a chunk with an odd payload size is followed by a
single pad byte. The ``bext`` chunk starts with a fixed 256-byte,
NUL-padded description field.
"""

from __future__ import annotations

import io
import logging
import os
import struct
from pathlib import Path
from typing import BinaryIO

from simple_audio_player.errors import MalformedContainerError

logger = logging.getLogger(__name__)

RIFF_TAG = b"RIFF"
WAVE_TAG = b"WAVE"
BEXT_CHUNK_ID = b"bext"
DESCRIPTION_SIZE = 256

_U32LE = struct.Struct("<I")


def find_description(stream: BinaryIO) -> str | None:
    """Locate the BEXT description in a RIFF/WAVE stream.

    Returns the description with trailing NULs removed, or None when the
    container is well formed but has no ``bext`` chunk.
    Raises MalformedContainerError on tag mismatch or a truncated read.
    """
    if _read_exact(stream, 4, "RIFF tag") != RIFF_TAG:
        raise MalformedContainerError("Missing RIFF tag")
    _read_exact(stream, 4, "RIFF size")
    if _read_exact(stream, 4, "WAVE tag") != WAVE_TAG:
        raise MalformedContainerError("Missing WAVE tag")

    stream_length = _stream_length(stream)

    while True:
        chunk_id = stream.read(4)
        if len(chunk_id) < 4:
            # Clean end of stream (or trailing garbage shorter than a header)
            return None
        (chunk_size,) = _U32LE.unpack(_read_exact(stream, 4, "chunk size"))

        if chunk_id == BEXT_CHUNK_ID:
            field = _read_exact(stream, DESCRIPTION_SIZE, "bext description")
            return _decode_description(field)

        skip = chunk_size + (chunk_size & 1)
        if stream_length is not None:
            remaining = stream_length - stream.tell()
            if skip > remaining:
                logger.debug(
                    "Chunk %r claims %d bytes, only %d remain", chunk_id, skip, remaining
                )
                skip = remaining
        stream.seek(skip, os.SEEK_CUR)


def extract_description(stream: BinaryIO) -> str:
    """Return the BEXT description, or an empty string if absent or malformed.

    Never raises.
    """
    try:
        return find_description(stream) or ""
    except MalformedContainerError as exc:
        logger.debug("Not a usable RIFF/WAVE stream: %s", exc)
    except (OSError, ValueError, struct.error) as exc:
        logger.debug("BEXT parse failed: %s", exc)
    return ""


def read_description(file_path: Path | str) -> str:
    """Open a file and return its BEXT description (empty if none).

    Raises OSError if the file itself cannot be opened; parse problems are
    absorbed.
    """
    with open(file_path, "rb") as f:
        return extract_description(f)


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) < size:
        raise MalformedContainerError(
            f"Truncated {what}: wanted {size} bytes, got {len(data)}"
        )
    return data


def _stream_length(stream: BinaryIO) -> int | None:
    """Total stream length, or None for non-seekable streams."""
    try:
        if not stream.seekable():
            return None
        here = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(here)
        return end
    except (OSError, AttributeError):
        return None


def _decode_description(field: bytes) -> str:
    raw = field.rstrip(b"\x00")
    try:
        return raw.decode("ascii")
    except UnicodeDecodeError:
        return raw.decode("latin-1")
