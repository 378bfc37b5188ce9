"""Shared test fixtures for simple-audio-player."""

import struct
from pathlib import Path

import pytest

from simple_audio_player.playback.controller import PlaybackController

# ===================================================================
# RIFF/WAVE builders
# ===================================================================


def riff_chunk(chunk_id: bytes, payload: bytes, pad: bool = True) -> bytes:
    """Encode one chunk; odd payloads get a pad byte unless pad=False."""
    data = chunk_id + struct.pack("<I", len(payload)) + payload
    if pad and len(payload) % 2 == 1:
        data += b"\x00"
    return data


def riff_container(*chunks: bytes, form: bytes = b"WAVE") -> bytes:
    body = form + b"".join(chunks)
    return b"RIFF" + struct.pack("<I", len(body)) + body


def fmt_chunk(sample_rate: int = 8000, channels: int = 1, bits: int = 16) -> bytes:
    block_align = channels * bits // 8
    payload = struct.pack(
        "<HHIIHH", 1, channels, sample_rate, sample_rate * block_align, block_align, bits
    )
    return riff_chunk(b"fmt ", payload)


def bext_chunk(description: bytes | str) -> bytes:
    """A minimal BEXT chunk: 256-byte description plus the fixed v0 tail."""
    if isinstance(description, str):
        description = description.encode("ascii")
    field = description.ljust(256, b"\x00")[:256]
    # originator(32) + reference(32) + date(10) + time(8) + timeref(8)
    # + version(2) + UMID(64) + reserved(190)
    tail = b"\x00" * (32 + 32 + 10 + 8 + 8 + 2 + 64 + 190)
    return riff_chunk(b"bext", field + tail)


def data_chunk(seconds: float = 1.0, sample_rate: int = 8000) -> bytes:
    frames = int(seconds * sample_rate)
    return riff_chunk(b"data", b"\x00\x00" * frames)


def wave_bytes(description: str | None = None, seconds: float = 1.0) -> bytes:
    """A playable 16-bit mono WAV, with a BEXT chunk when description is given."""
    chunks = [fmt_chunk()]
    if description is not None:
        chunks.append(bext_chunk(description))
    chunks.append(data_chunk(seconds))
    return riff_container(*chunks)


@pytest.fixture
def riff():
    """Namespace of RIFF builders for tests that assemble containers by hand."""

    class _Riff:
        chunk = staticmethod(riff_chunk)
        container = staticmethod(riff_container)
        fmt = staticmethod(fmt_chunk)
        bext = staticmethod(bext_chunk)
        data = staticmethod(data_chunk)
        wave = staticmethod(wave_bytes)

    return _Riff


@pytest.fixture
def write_file():
    """Create a file (and parents) with given content and return its path."""

    def _write(path: Path, content: bytes = b"dummy") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _write


# ===================================================================
# Audio backend test doubles
# ===================================================================


class FakeSource:
    """AudioSource double with a settable position."""

    def __init__(self, path: str, total_seconds: float) -> None:
        self.path = path
        self._total = total_seconds
        self._position = 0.0
        self.volume = 1.0
        self.close_calls = 0

    @property
    def total_seconds(self) -> float:
        return self._total

    @property
    def position_seconds(self) -> float:
        return self._position

    @position_seconds.setter
    def position_seconds(self, value: float) -> None:
        self._position = max(0.0, min(value, self._total))

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def advance(self, seconds: float) -> None:
        """Test helper: simulate decoding ``seconds`` of audio."""
        self.position_seconds = self._position + seconds

    def close(self) -> None:
        self.close_calls += 1


class FakeDevice:
    """AudioDevice double recording transport calls."""

    def __init__(self, source: FakeSource, on_finished) -> None:
        self.source = source
        self._on_finished = on_finished
        self.calls: list[str] = []
        self.playing = False
        self.closed = False

    def play(self) -> None:
        self.calls.append("play")
        self.playing = True

    def pause(self) -> None:
        self.calls.append("pause")
        self.playing = False

    def stop(self) -> None:
        self.calls.append("stop")
        self.playing = False

    def close(self) -> None:
        self.calls.append("close")
        self.closed = True

    def finish(self) -> None:
        """Test helper: simulate the stream draining naturally."""
        self.playing = False
        self._on_finished()


class FakeBackend:
    """AudioBackend double; unknown paths open as 20-second files."""

    def __init__(self) -> None:
        self.durations: dict[str, float] = {}
        self.unopenable: set[str] = set()
        self.fail_device = False
        self.sources: list[FakeSource] = []
        self.devices: list[FakeDevice] = []

    def open_source(self, path: str) -> FakeSource:
        if path in self.unopenable:
            raise FileNotFoundError(path)
        source = FakeSource(path, self.durations.get(path, 20.0))
        self.sources.append(source)
        return source

    def create_device(self, source: FakeSource, on_finished) -> FakeDevice:
        if self.fail_device:
            raise RuntimeError("no output device")
        device = FakeDevice(source, on_finished)
        self.devices.append(device)
        return device

    def open_sources(self) -> list[FakeSource]:
        return [s for s in self.sources if not s.closed]

    def open_devices(self) -> list[FakeDevice]:
        return [d for d in self.devices if not d.closed]


class ManualTimer:
    """threading.Timer double that fires only when the test says so."""

    def __init__(self, interval, function, args=None, kwargs=None) -> None:
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback, as a real timer would unless it won the cancel race."""
        self.function(*self.args, **self.kwargs)


class TimerRecorder:
    """Timer factory that keeps every timer it creates."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None) -> ManualTimer:
        timer = ManualTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> ManualTimer:
        return self.timers[-1]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def timers() -> TimerRecorder:
    return TimerRecorder()


@pytest.fixture
def ended() -> list:
    """Collects PlaybackEnded events from the controller fixture."""
    return []


@pytest.fixture
def controller(backend, timers, ended) -> PlaybackController:
    """Controller wired to fakes, with background events run inline."""
    ctrl = PlaybackController(
        backend=backend, dispatch=lambda fn: fn(), timer_factory=timers
    )
    ctrl.set_playback_ended_listener(ended.append)
    return ctrl
