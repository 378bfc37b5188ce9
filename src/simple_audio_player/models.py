"""Pydantic v2 data models for indexed entries and playback state."""

import os
from enum import Enum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------

class AudioEntry(BaseModel):
    """One discovered audio file, produced by a single index run."""

    path: str = Field(description="Absolute path, unique within one index run")
    description: str = Field("", description="Comment tag or BEXT description")
    duration_seconds: float = Field(0.0, ge=0.0, description="0 means unknown")

    model_config = {"frozen": True}

    @property
    def file_name(self) -> str:
        """Last path component, derived from path on every read."""
        return os.path.basename(self.path)

    @property
    def duration_string(self) -> str:
        """Duration formatted as mm:ss (minutes are not wrapped at 60)."""
        total = int(self.duration_seconds)
        minutes, seconds = divmod(total, 60)
        return f"{minutes:02d}:{seconds:02d}"


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------

class PlaybackState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class EndReason(str, Enum):
    """Why a playback session returned to STOPPED."""

    STOPPED = "stopped"
    END_OF_STREAM = "end_of_stream"
    SEGMENT_END = "segment_end"


class PlaybackSession(BaseModel):
    """Snapshot of the controller's single playback session."""

    state: PlaybackState = PlaybackState.STOPPED
    current_path: str | None = None
    position_seconds: float = 0.0
    total_seconds: float = 0.0
    segment_bound_seconds: float | None = None

    model_config = {"frozen": True}


class PlaybackEnded(BaseModel):
    """Payload delivered to the playback-ended listener."""

    path: str
    reason: EndReason

    model_config = {"frozen": True}
