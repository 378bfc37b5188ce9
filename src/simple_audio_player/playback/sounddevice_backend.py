"""Default audio backend: soundfile for decoding, sounddevice for output.

- Decode: libsndfile via soundfile, read block-by-block from the stream callback
- Output: sounddevice (PortAudio) callback stream, float32
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_BLOCKSIZE = 2048


class SoundFileSource:
    """Seekable float32 reader over one audio file."""

    def __init__(self, path: str) -> None:
        import soundfile as sf

        self.path = path
        self._file = sf.SoundFile(path)
        self._lock = threading.Lock()
        self._volume = 1.0
        self._closed = False
        self.samplerate = self._file.samplerate
        self.channels = self._file.channels
        self.frames = self._file.frames

    @property
    def total_seconds(self) -> float:
        if self.samplerate <= 0:
            return 0.0
        return self.frames / self.samplerate

    @property
    def position_seconds(self) -> float:
        with self._lock:
            if self._closed:
                return 0.0
            return self._file.tell() / self.samplerate

    @position_seconds.setter
    def position_seconds(self, value: float) -> None:
        frame = int(round(value * self.samplerate))
        frame = max(0, min(frame, self.frames))
        with self._lock:
            if not self._closed:
                self._file.seek(frame)

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = float(np.clip(value, 0.0, 1.0))

    def read_into(self, outdata: np.ndarray) -> int:
        """Fill ``outdata`` (frames x channels) and return frames decoded.

        The unfilled tail is zeroed.
        """
        with self._lock:
            if self._closed:
                outdata.fill(0)
                return 0
            data = self._file.read(len(outdata), dtype="float32", always_2d=True)
        filled = len(data)
        outdata[:filled] = data * self._volume
        outdata[filled:] = 0
        return filled

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._file.close()


class SoundDeviceOutput:
    """PortAudio output stream pulling from a SoundFileSource."""

    def __init__(
        self,
        source: SoundFileSource,
        on_finished: Callable[[], None],
        device: int | str | None = None,
        blocksize: int = DEFAULT_BLOCKSIZE,
    ) -> None:
        import sounddevice as sd

        self._sd = sd
        self._source = source
        self._on_finished = on_finished
        self._exhausted = False
        self._stream = sd.OutputStream(
            samplerate=source.samplerate,
            channels=source.channels,
            dtype="float32",
            blocksize=blocksize,
            device=device,
            callback=self._callback,
            finished_callback=self._finished,
        )

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status and getattr(status, "output_underflow", False):
            logger.debug("Output underflow on %s", self._source.path)
        filled = self._source.read_into(outdata)
        if filled < frames:
            self._exhausted = True
            raise self._sd.CallbackStop

    def _finished(self) -> None:
        # Also called after abort(); only a drained source counts as the end
        if self._exhausted:
            self._exhausted = False
            self._on_finished()

    def play(self) -> None:
        if self._stream.active:
            return
        if not self._stream.stopped:
            self._stream.abort()
        self._exhausted = False
        self._stream.start()

    def pause(self) -> None:
        self._stream.abort()

    def stop(self) -> None:
        self._exhausted = False
        self._stream.abort()

    def close(self) -> None:
        self._exhausted = False
        self._stream.close(ignore_errors=True)


class SoundDeviceBackend:
    """AudioBackend backed by soundfile + sounddevice."""

    def __init__(
        self, device: int | str | None = None, blocksize: int = DEFAULT_BLOCKSIZE
    ) -> None:
        self.device = device
        self.blocksize = blocksize

    def open_source(self, path: str) -> SoundFileSource:
        return SoundFileSource(path)

    def create_device(
        self, source: SoundFileSource, on_finished: Callable[[], None]
    ) -> SoundDeviceOutput:
        return SoundDeviceOutput(
            source, on_finished, device=self.device, blocksize=self.blocksize
        )
