"""
Audio Gate for MockVoice

Serializes every piece of coach speech into a strict one-at-a-time FIFO and
exposes the busy signal the microphone must respect: capture never starts
while the coach is talking, otherwise the microphone records the coach.
"""

import asyncio
import logging
from dataclasses import dataclass

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.interfaces import AudioPlayer, TextToSpeech

logger = logging.getLogger(__name__)


@dataclass
class _SpeakRequest:
    text: str
    generation: int
    done: asyncio.Future


class AudioGate:
    """
    FIFO speech queue drained by a single worker task.

    Each `speak()` call resolves only after its audio has finished playing,
    or after a logged failure; synthesis and playback errors never
    propagate to the caller. `close()` abandons the queue, so requests that
    belong to a superseded session are dropped instead of played.
    """

    def __init__(
        self,
        tts: TextToSpeech,
        player: AudioPlayer,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.tts = tts
        self.player = player

        self._queue: asyncio.Queue[_SpeakRequest] | None = None
        self._worker: asyncio.Task | None = None
        self._generation = 0
        self._speaking = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._opened = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def open(self) -> None:
        """Prepare the audio output once."""
        if self._opened:
            return
        await asyncio.wait_for(
            self.player.open(),
            timeout=self.settings.audio_output_timeout,
        )
        self._opened = True
        logger.info("Audio output ready")

    def close(self) -> None:
        """Abandon pending speech, stop playback and release the output."""
        self._generation += 1

        if self._worker is not None:
            self._worker.cancel()
            self._worker = None

        abandoned = 0
        if self._queue is not None:
            while not self._queue.empty():
                request = self._queue.get_nowait()
                if not request.done.done():
                    request.done.set_result(None)
                abandoned += 1
            self._queue = None

        self._speaking = False
        self._idle.set()

        try:
            self.player.stop()
            self.player.close()
        except Exception as e:
            logger.warning(f"Audio output teardown failed: {e}")
        self._opened = False

        logger.info(f"Audio gate closed ({abandoned} pending request(s) dropped)")

    # =========================================================================
    # SPEECH
    # =========================================================================

    async def speak(self, text: str) -> None:
        """Queue text for playback and wait until it has been spoken."""
        if not text or not text.strip():
            return

        loop = asyncio.get_running_loop()
        request = _SpeakRequest(
            text=text.strip(),
            generation=self._generation,
            done=loop.create_future(),
        )

        self._ensure_worker()
        self._idle.clear()
        self._queue.put_nowait(request)

        await request.done

    def is_speaking(self) -> bool:
        """Check if speech is currently being synthesized or played."""
        return self._speaking

    async def wait_until_idle(self) -> None:
        """Wait until nothing is playing and nothing is queued."""
        await self._idle.wait()

    # =========================================================================
    # WORKER
    # =========================================================================

    def _ensure_worker(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._drain(self._queue),
                name="audio-gate-worker",
            )

    async def _drain(self, queue: asyncio.Queue) -> None:
        while True:
            request = await queue.get()
            try:
                if request.generation != self._generation:
                    logger.debug(f"Dropping superseded speech: '{request.text[:40]}'")
                    continue
                await self._play(request)
            finally:
                if not request.done.done():
                    request.done.set_result(None)
                if queue.empty() and not self._speaking:
                    self._idle.set()

    async def _play(self, request: _SpeakRequest) -> None:
        """Synthesize and play one request; failures are logged, not raised."""
        self._speaking = True
        logger.debug(f"Speaking: '{request.text[:60]}'")
        try:
            audio = await asyncio.wait_for(
                self.tts.synthesize(request.text),
                timeout=self.settings.tts_timeout,
            )
            if request.generation != self._generation:
                return
            if not audio:
                logger.warning("Speech synthesis returned no audio, skipping playback")
                return

            try:
                await asyncio.wait_for(
                    self.player.play(audio),
                    timeout=self.settings.playback_timeout,
                )
            except asyncio.TimeoutError:
                self.player.stop()
                raise

        except asyncio.TimeoutError:
            logger.warning(f"Speech timed out, continuing: '{request.text[:40]}'")
        except Exception as e:
            logger.warning(f"Speech failed, continuing without audio: {e}")
        finally:
            self._speaking = False
