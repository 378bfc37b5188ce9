"""Protocol definitions for the audio backend used by PlaybackController."""

from typing import Callable, Protocol


class AudioSource(Protocol):
    """A decodable audio resource with a movable read position."""

    @property
    def total_seconds(self) -> float:
        """Total duration of the resource in seconds."""
        ...

    @property
    def position_seconds(self) -> float:
        """Current decode position in seconds."""
        ...

    @position_seconds.setter
    def position_seconds(self, value: float) -> None: ...

    @property
    def volume(self) -> float:
        """Linear gain in [0.0, 1.0] applied to decoded samples."""
        ...

    @volume.setter
    def volume(self, value: float) -> None: ...

    def close(self) -> None:
        """Release the underlying file handle. Must be idempotent."""
        ...


class AudioDevice(Protocol):
    """An output stream bound to one AudioSource."""

    def play(self) -> None:
        """Start or restart pulling samples from the source."""
        ...

    def pause(self) -> None:
        """Stop pulling samples without releasing the source."""
        ...

    def stop(self) -> None:
        """Stop output. Must not invoke the finished callback."""
        ...

    def close(self) -> None:
        """Release the device handle. Must be idempotent."""
        ...


class AudioBackend(Protocol):
    """Factory for sources and devices."""

    def open_source(self, path: str) -> AudioSource:
        """Open ``path`` for decoding.

        Raises:
            Any exception if the file cannot be opened or decoded; the
            controller converts it to ResourceOpenError.
        """
        ...

    def create_device(
        self, source: AudioSource, on_finished: Callable[[], None]
    ) -> AudioDevice:
        """Bind an output device to ``source``.

        Args:
            source: The source to play from.
            on_finished: Called, possibly from an audio thread, when the
                source is exhausted during playback.
        """
        ...
