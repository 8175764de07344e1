"""
Local audio devices for MockVoice

Microphone capture and speaker playback on the host machine, built on
sounddevice (PortAudio) with numpy buffers. Coach audio arrives as MP3/WAV
and is decoded with pydub before playback.
"""

import asyncio
import io
import logging
import threading

import numpy as np

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.exceptions import AudioDeviceError, DeviceErrorKind

logger = logging.getLogger(__name__)


def classify_device_error(message: str) -> DeviceErrorKind:
    """Map a PortAudio/OS error message onto a device error kind."""
    text = (message or "").lower()

    if any(marker in text for marker in ("permission", "access denied", "not permitted", "-9986")):
        return DeviceErrorKind.PERMISSION_DENIED
    if any(marker in text for marker in ("unavailable", "busy", "in use", "-9985")):
        return DeviceErrorKind.IN_USE
    if any(
        marker in text
        for marker in ("no default", "no input device", "no output device",
                       "invalid device", "not found", "-9996", "-9998")
    ):
        return DeviceErrorKind.NOT_FOUND
    return DeviceErrorKind.UNKNOWN


class SoundDeviceMicrophone:
    """
    Always-open input stream that only keeps frames while capturing.

    The stream is started once when the session warms up so each answer
    begins recording instantly.
    """

    def __init__(self, settings: Settings | None = None, device: int | str | None = None):
        self.settings = settings or get_settings()
        self.device = device
        self.sample_rate = self.settings.audio_sample_rate
        self.channels = self.settings.audio_channels

        self._stream = None
        self._frames: list[bytes] = []
        self._capturing = False
        self._lock = threading.Lock()

    async def open(self) -> None:
        if self._stream is not None:
            return

        loop = asyncio.get_running_loop()
        opening = loop.run_in_executor(None, self._open_stream)
        try:
            self._stream = await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The worker thread keeps opening the stream; close it when it lands
            opening.add_done_callback(self._release_abandoned)
            raise
        except AudioDeviceError:
            raise
        except Exception as e:
            logger.error(f"Microphone unavailable: {e}")
            raise AudioDeviceError(classify_device_error(str(e)), str(e)) from e

        logger.info(f"Microphone stream open ({self.sample_rate} Hz, {self.channels} ch)")

    def _open_stream(self):
        import sounddevice as sd

        stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="int16",
            blocksize=self.settings.audio_block_size,
            device=self.device,
            callback=self._on_audio,
        )
        stream.start()
        return stream

    def _release_abandoned(self, opening: asyncio.Future) -> None:
        if opening.cancelled() or opening.exception() is not None:
            return
        stream = opening.result()
        logger.warning("Microphone opened after the caller gave up, closing it")
        try:
            stream.stop()
            stream.close()
        except Exception as e:
            logger.warning(f"Failed to close abandoned microphone stream: {e}")

    def _on_audio(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        """PortAudio callback (audio thread)."""
        if status:
            logger.debug(f"Input stream status: {status}")
        if self._capturing:
            with self._lock:
                self._frames.append(indata.copy().tobytes())

    def begin_capture(self) -> None:
        with self._lock:
            self._frames = []
        self._capturing = True

    def end_capture(self) -> bytes:
        self._capturing = False
        with self._lock:
            pcm = b"".join(self._frames)
            self._frames = []
        return pcm

    def close(self) -> None:
        self._capturing = False
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        finally:
            self._stream = None
        logger.info("Microphone stream closed")


class SoundDevicePlayer:
    """Plays synthesized speech on the default output device."""

    def __init__(self, device: int | str | None = None):
        self.device = device

    async def open(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            info = await loop.run_in_executor(None, self._query_output)
        except Exception as e:
            logger.error(f"Audio output unavailable: {e}")
            raise AudioDeviceError(
                classify_device_error(str(e)), str(e), device="speaker"
            ) from e
        logger.info(f"Audio output: {info.get('name', 'default')}")

    def _query_output(self) -> dict:
        import sounddevice as sd

        if self.device is not None:
            return sd.query_devices(self.device)
        return sd.query_devices(kind="output")

    async def play(self, audio: bytes) -> None:
        loop = asyncio.get_running_loop()
        samples, sample_rate = await loop.run_in_executor(None, self._decode, audio)
        await loop.run_in_executor(None, self._play_blocking, samples, sample_rate)

    def _decode(self, audio: bytes) -> tuple[np.ndarray, int]:
        """Decode MP3/WAV bytes to int16 samples."""
        from pydub import AudioSegment

        segment = AudioSegment.from_file(io.BytesIO(audio)).set_sample_width(2)
        samples = np.array(segment.get_array_of_samples(), dtype=np.int16)
        if segment.channels > 1:
            samples = samples.reshape((-1, segment.channels))
        return samples, segment.frame_rate

    def _play_blocking(self, samples: np.ndarray, sample_rate: int) -> None:
        import sounddevice as sd

        sd.play(samples, samplerate=sample_rate, device=self.device)
        sd.wait()

    def stop(self) -> None:
        import sounddevice as sd

        try:
            sd.stop()
        except Exception as e:
            logger.debug(f"sd.stop() failed: {e}")

    def close(self) -> None:
        self.stop()
