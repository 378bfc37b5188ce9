"""PlaybackController: single-stream transport state machine.

States are STOPPED, PLAYING and PAUSED. Every teardown bumps a generation
counter; device end-of-stream callbacks and segment timers carry the
generation they were created for and do nothing once it is stale, so a
late callback can never stop a session that replaced theirs.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from simple_audio_player.errors import ResourceOpenError
from simple_audio_player.models import (
    EndReason,
    PlaybackEnded,
    PlaybackSession,
    PlaybackState,
)
from simple_audio_player.playback.protocols import AudioBackend, AudioDevice, AudioSource

logger = logging.getLogger(__name__)

PlaybackEndedListener = Callable[[PlaybackEnded], None]
Dispatcher = Callable[[Callable[[], None]], None]
TimerFactory = Callable[..., threading.Timer]


def _dispatch_on_thread(fn: Callable[[], None]) -> None:
    """Run ``fn`` on a fresh daemon thread, off the audio/timer thread."""
    threading.Thread(target=fn, name="playback-event", daemon=True).start()


class PlaybackController:
    """Owns the output device and decoder source for one playback stream."""

    def __init__(
        self,
        backend: AudioBackend | None = None,
        dispatch: Dispatcher | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        """
        Args:
            backend: Audio backend; defaults to SoundDeviceBackend.
            dispatch: Runs background-originated state changes (device
                end-of-stream, segment expiry) on the caller's preferred
                execution context. Defaults to a daemon thread.
            timer_factory: ``threading.Timer``-compatible factory used for
                segment auto-stop.
        """
        if backend is None:
            from simple_audio_player.playback.sounddevice_backend import SoundDeviceBackend

            backend = SoundDeviceBackend()
        self._backend = backend
        self._dispatch = dispatch or _dispatch_on_thread
        self._timer_factory = timer_factory or threading.Timer

        self._lock = threading.RLock()
        self._listener: PlaybackEndedListener | None = None

        self._state = PlaybackState.STOPPED
        self._path: str | None = None
        self._source: AudioSource | None = None
        self._device: AudioDevice | None = None
        self._paused_position = 0.0
        self._segment_end: float | None = None
        self._timer: threading.Timer | None = None
        self._timer_token = 0
        self._generation = 0

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state == PlaybackState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self._state == PlaybackState.PAUSED

    @property
    def current_path(self) -> str | None:
        return self._path

    @property
    def position_seconds(self) -> float:
        with self._lock:
            if self._source is None:
                return 0.0
            if self._state == PlaybackState.PAUSED:
                return self._paused_position
            return self._source.position_seconds

    @property
    def total_seconds(self) -> float:
        with self._lock:
            if self._source is None:
                return 0.0
            return self._source.total_seconds

    @property
    def session(self) -> PlaybackSession:
        """Consistent snapshot of the current session."""
        with self._lock:
            return PlaybackSession(
                state=self._state,
                current_path=self._path,
                position_seconds=self.position_seconds,
                total_seconds=self.total_seconds,
                segment_bound_seconds=self._segment_end,
            )

    def set_playback_ended_listener(self, listener: PlaybackEndedListener | None) -> None:
        """Register the single listener for PlaybackEnded (replaces any other)."""
        with self._lock:
            self._listener = listener

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def play(self, path: str) -> None:
        """Play ``path`` from the beginning, replacing any current session.

        A replaced session ends silently when the new one starts. If the
        new one fails, the replaced session is reported as STOPPED.

        Raises:
            ResourceOpenError: the file cannot be opened or the device cannot
                start. The controller is left STOPPED.
        """
        replaced = None
        try:
            with self._lock:
                replaced = self._replace_session()
                generation = self._generation
                source = self._open_source(path)
                device = self._start_device(path, source, generation)
                self._attach(path, source, device)
                replaced = None
                logger.info("Playing %s", path)
        finally:
            if replaced is not None:
                self._notify(replaced, EndReason.STOPPED)

    def play_segment(self, path: str, start: float, end: float) -> bool:
        """Play ``[start, end)`` of ``path``, stopping automatically at the end.

        A negative ``start`` is clamped to 0 first. Returns False (and stays
        STOPPED) when ``start`` is at or beyond the end of the file; a session
        replaced by that no-op is reported as STOPPED.

        Raises:
            ValueError: ``end <= start`` after clamping.
            ResourceOpenError: as for play().
        """
        start = max(0.0, start)
        if end <= start:
            raise ValueError(f"Segment end ({end}) must be after start ({start})")

        replaced = None
        try:
            with self._lock:
                replaced = self._replace_session()
                generation = self._generation
                source = self._open_source(path)

                total = source.total_seconds
                if start >= total:
                    _release(source.close, "source")
                    logger.info(
                        "Segment start %.2fs is beyond end of %s (%.2fs), not playing",
                        start, path, total,
                    )
                    return False

                try:
                    source.position_seconds = start
                except Exception as exc:
                    _release(source.close, "source")
                    raise ResourceOpenError(path, f"seek failed: {exc}") from exc

                length = min(end - start, total - start)
                device = self._start_device(path, source, generation)
                self._attach(path, source, device)
                self._segment_end = start + length
                self._schedule_segment_stop(length)
                replaced = None
                logger.info("Playing %s segment %.2fs-%.2fs", path, start, start + length)
                return True
        finally:
            if replaced is not None:
                self._notify(replaced, EndReason.STOPPED)

    def pause(self) -> bool:
        """Pause while PLAYING; returns False (no-op) in any other state."""
        with self._lock:
            if self._state != PlaybackState.PLAYING:
                return False
            self._paused_position = self._source.position_seconds
            self._cancel_timer()
            self._device.pause()
            self._state = PlaybackState.PAUSED
            logger.debug("Paused %s at %.2fs", self._path, self._paused_position)
            return True

    def resume(self) -> bool:
        """Resume from the captured position; returns False unless PAUSED.

        Raises:
            ResourceOpenError: the output could not be restarted. The session
                is ended (STOPPED) before this is raised.
        """
        with self._lock:
            if self._state != PlaybackState.PAUSED:
                return False
            path = self._path
            generation = self._generation
            try:
                self._source.position_seconds = self._paused_position
                self._device.play()
            except Exception as exc:
                logger.warning("Cannot resume %s: %s", path, exc)
                failure = exc
            else:
                self._state = PlaybackState.PLAYING
                if self._segment_end is not None:
                    self._schedule_segment_stop(self._segment_end - self._paused_position)
                logger.debug("Resumed %s at %.2fs", path, self._paused_position)
                return True

        self._end_session(EndReason.STOPPED, generation)
        raise ResourceOpenError(path, f"resume failed: {failure}") from failure

    def stop(self) -> None:
        """Release device and source. Safe to call in any state."""
        self._end_session(EndReason.STOPPED)

    def seek(self, seconds: float) -> None:
        """Move the decode position, clamped to ``[0, total]``; no-op when STOPPED."""
        with self._lock:
            if self._source is None:
                return
            target = min(max(seconds, 0.0), self._source.total_seconds)
            self._source.position_seconds = target
            if self._state == PlaybackState.PAUSED:
                self._paused_position = target
            elif self._segment_end is not None:
                self._schedule_segment_stop(self._segment_end - target)

    def seek_relative(self, delta: float) -> None:
        """Seek ``delta`` seconds from the current position."""
        with self._lock:
            if self.total_seconds <= 0:
                return
            self.seek(self.position_seconds + delta)

    def set_volume(self, volume: float) -> None:
        """Set gain in [0, 1] on the loaded source; no-op when nothing is loaded."""
        with self._lock:
            if self._source is None:
                return
            self._source.volume = min(max(volume, 0.0), 1.0)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open_source(self, path: str) -> AudioSource:
        try:
            return self._backend.open_source(path)
        except Exception as exc:
            logger.warning("Cannot open %s: %s", path, exc)
            raise ResourceOpenError(path, str(exc)) from exc

    def _start_device(self, path: str, source: AudioSource, generation: int) -> AudioDevice:
        """Create and start a device; closes everything on failure."""
        device = None
        try:
            device = self._backend.create_device(
                source, lambda: self._on_device_finished(generation)
            )
            device.play()
            return device
        except Exception as exc:
            logger.warning("Cannot start output for %s: %s", path, exc)
            if device is not None:
                _release(device.close, "device")
            _release(source.close, "source")
            raise ResourceOpenError(path, str(exc)) from exc

    def _attach(self, path: str, source: AudioSource, device: AudioDevice) -> None:
        self._path = path
        self._source = source
        self._device = device
        self._paused_position = 0.0
        self._segment_end = None
        self._state = PlaybackState.PLAYING

    def _teardown(self) -> bool:
        """Release everything and return to STOPPED.

        Returns True if a session was active. Bumps the generation so that
        callbacks belonging to the released session become inert.
        """
        self._generation += 1
        self._cancel_timer()
        had_session = self._source is not None

        device, source = self._device, self._source
        self._device = None
        self._source = None
        if device is not None:
            _release(device.stop, "device")
            _release(device.close, "device")
        if source is not None:
            _release(source.close, "source")

        self._path = None
        self._paused_position = 0.0
        self._segment_end = None
        self._state = PlaybackState.STOPPED
        return had_session

    def _end_session(
        self,
        reason: EndReason,
        generation: int | None = None,
        timer_token: int | None = None,
    ) -> None:
        """Tear down and notify once, unless the caller's tokens are stale."""
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug("Ignoring stale %s for generation %d", reason.value, generation)
                return
            if timer_token is not None and timer_token != self._timer_token:
                logger.debug("Ignoring rescheduled segment timer")
                return
            path = self._path
            had_session = self._teardown()

        if had_session:
            self._notify(path, reason)

    def _replace_session(self) -> str | None:
        """Tear down for a new session; return the path that was active, if any."""
        path = self._path
        return path if self._teardown() else None

    def _notify(self, path: str, reason: EndReason) -> None:
        """Deliver PlaybackEnded; must be called without holding the lock."""
        with self._lock:
            listener = self._listener
        logger.info("Playback of %s ended (%s)", path, reason.value)
        if listener is not None:
            try:
                listener(PlaybackEnded(path=path, reason=reason))
            except Exception:
                logger.exception("PlaybackEnded listener failed")

    def _on_device_finished(self, generation: int) -> None:
        self._dispatch(lambda: self._end_session(EndReason.END_OF_STREAM, generation))

    def _schedule_segment_stop(self, delay: float) -> None:
        self._cancel_timer()
        self._timer_token += 1
        timer = self._timer_factory(
            max(0.0, delay),
            self._on_segment_elapsed,
            args=(self._generation, self._timer_token),
        )
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_segment_elapsed(self, generation: int, token: int) -> None:
        self._dispatch(
            lambda: self._end_session(EndReason.SEGMENT_END, generation, token)
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._timer_token += 1


def _release(close: Callable[[], None], what: str) -> None:
    """Run a release call; teardown must continue even if one step fails."""
    try:
        close()
    except Exception as exc:
        logger.warning("Error releasing %s: %s", what, exc)
