"""
Recording Session for MockVoice

Owns the microphone for the lifetime of a session and captures one answer at
a time. A capture runs until the candidate signals they are done (`stop()`)
or until the maximum answer length is reached.
"""

import asyncio
import io
import logging
import wave
from collections.abc import Callable

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.exceptions import RecordingBlockedError, RecordingInProgressError
from mockvoice.core.interfaces import Microphone
from mockvoice.models.session import RecordingState

logger = logging.getLogger(__name__)


class RecordingSession:
    """
    Single-capture recorder over a long-lived microphone stream.

    `is_blocked` is consulted before every capture; the session controller
    wires it to the audio gate so the coach's own voice is never recorded.
    """

    def __init__(
        self,
        microphone: Microphone,
        settings: Settings | None = None,
        is_blocked: Callable[[], bool] | None = None,
    ):
        self.settings = settings or get_settings()
        self.microphone = microphone
        self.is_blocked = is_blocked or (lambda: False)

        self._state = RecordingState.IDLE
        self._acquired = False
        self._pending: asyncio.Future | None = None

    @property
    def state(self) -> RecordingState:
        return self._state

    def is_recording(self) -> bool:
        return self._state == RecordingState.RECORDING

    async def acquire(self) -> None:
        """Open the microphone once; later calls are no-ops."""
        if self._acquired:
            return
        await asyncio.wait_for(
            self.microphone.open(),
            timeout=self.settings.microphone_timeout,
        )
        self._acquired = True
        logger.info(f"Microphone acquired ({self.microphone.sample_rate} Hz)")

    async def start_recording(self) -> bytes:
        """
        Capture one answer.

        Returns:
            WAV bytes, or b"" when nothing was captured

        Raises:
            RecordingInProgressError: a capture is already running
            RecordingBlockedError: the coach is still speaking
        """
        await self.acquire()

        if self.is_recording():
            raise RecordingInProgressError("A recording is already in progress")
        if self.is_blocked():
            raise RecordingBlockedError("Cannot record while the coach is speaking")

        pending = asyncio.get_running_loop().create_future()
        self._pending = pending
        self._state = RecordingState.RECORDING
        self.microphone.begin_capture()
        logger.info("Recording started")

        try:
            return await asyncio.wait_for(
                asyncio.shield(pending),
                timeout=self.settings.max_recording_seconds,
            )
        except asyncio.TimeoutError:
            logger.info(
                f"Maximum answer length ({self.settings.max_recording_seconds:.0f}s) reached"
            )
            self.stop()
            return pending.result()
        except asyncio.CancelledError:
            if self._pending is pending:
                self._discard()
            raise

    def stop(self) -> None:
        """Finish the active capture; no-op when nothing is recording."""
        if not self.is_recording():
            logger.debug("stop() called with no active recording")
            return

        pcm = self.microphone.end_capture()
        audio = self._to_wav(pcm)
        logger.info(f"Recording stopped ({len(pcm)} bytes of PCM)")
        self._finish(audio)

    def close(self) -> None:
        """Abort any capture and release the microphone."""
        if self.is_recording():
            self._discard()
        if self._acquired:
            try:
                self.microphone.close()
            except Exception as e:
                logger.warning(f"Microphone release failed: {e}")
            self._acquired = False
            logger.info("Microphone released")

    def _discard(self) -> None:
        try:
            self.microphone.end_capture()
        except Exception as e:
            logger.warning(f"Failed to end capture cleanly: {e}")
        self._finish(b"")

    def _finish(self, audio: bytes) -> None:
        self._state = RecordingState.IDLE
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.set_result(audio)

    def _to_wav(self, pcm: bytes) -> bytes:
        """Wrap 16-bit PCM in a WAV container."""
        if not pcm:
            return b""

        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav:
            wav.setnchannels(self.settings.audio_channels)
            wav.setsampwidth(2)
            wav.setframerate(self.microphone.sample_rate)
            wav.writeframes(pcm)
        return buffer.getvalue()
