"""
Speech Services for MockVoice

Handles:
- Text-to-Speech for the coach voice (OpenAI speech API or Edge-TTS)
- Speech-to-Text for candidate answers (Whisper API or local Whisper)
"""

import asyncio
import logging
import math
import tempfile
from pathlib import Path

import httpx

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.exceptions import SynthesisError, TranscriptionError
from mockvoice.models.evaluation import Transcript

logger = logging.getLogger(__name__)


def confidence_from_segments(segments: list[dict]) -> float | None:
    """
    Estimate transcript confidence from Whisper segments.

    Whisper reports an average token log-probability per segment; the
    exponential of its duration-weighted mean lands in [0, 1].
    """
    weighted = 0.0
    total = 0.0
    for segment in segments or []:
        logprob = segment.get("avg_logprob")
        if logprob is None:
            continue
        duration = max(float(segment.get("end", 0)) - float(segment.get("start", 0)), 0.01)
        weighted += float(logprob) * duration
        total += duration

    if total == 0:
        return None
    return max(0.0, min(1.0, math.exp(weighted / total)))


class SpeechServices:
    """
    TTS and STT behind one HTTP client.

    TTS: OpenAI speech endpoint, or Edge-TTS (no key needed)
    STT: Whisper API, or local Whisper via openai-whisper
    """

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or get_settings()

        # Lazy-loaded model
        self._whisper_model = None

        # HTTP client for API-based services
        self.client = client or httpx.AsyncClient(
            base_url=self.settings.openai_base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {self.settings.openai_api_key}"},
            timeout=60.0,
        )

    async def close(self):
        """Clean up resources."""
        await self.client.aclose()

    # =========================================================================
    # SPEECH-TO-TEXT (Whisper)
    # =========================================================================

    async def transcribe(self, audio: bytes) -> Transcript:
        """
        Transcribe one recorded answer.

        Args:
            audio: WAV bytes

        Returns:
            Transcript with text and, when available, a confidence

        Raises:
            TranscriptionError: the backend failed or timed out
        """
        if self.settings.stt_backend == "local":
            return await self._transcribe_local(audio)
        return await self._transcribe_api(audio)

    async def _transcribe_api(self, audio: bytes) -> Transcript:
        """Transcribe using the Whisper API."""
        files = {
            "file": ("answer.wav", audio, "audio/wav"),
        }
        data = {
            "model": self.settings.stt_model,
            "language": self.settings.language,
            "response_format": "verbose_json",
        }

        try:
            response = await self.client.post("/audio/transcriptions", files=files, data=data)
            response.raise_for_status()
            result = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Whisper API timed out: {e}")
            raise TranscriptionError("Transcription timed out", timed_out=True) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Whisper API error: {e}")
            raise TranscriptionError(f"Transcription failed: {e}") from e

        return Transcript(
            text=(result.get("text") or "").strip(),
            confidence=confidence_from_segments(result.get("segments")),
        )

    async def _transcribe_local(self, audio: bytes) -> Transcript:
        """Transcribe using a local Whisper model."""
        try:
            # Lazy load the model
            if self._whisper_model is None:
                await self._load_whisper_model()

            # Save audio to temp file
            with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as f:
                f.write(audio)
                temp_path = f.name

            try:
                # Run transcription in thread pool to avoid blocking
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(
                    None,
                    self._run_whisper_transcription,
                    temp_path,
                )
            finally:
                Path(temp_path).unlink(missing_ok=True)

        except Exception as e:
            logger.error(f"Local transcription failed: {e}")
            raise TranscriptionError(f"Local transcription failed: {e}") from e

        return Transcript(
            text=(result.get("text") or "").strip(),
            confidence=confidence_from_segments(result.get("segments")),
        )

    async def _load_whisper_model(self):
        """Load Whisper model lazily."""
        import whisper

        logger.info(f"Loading Whisper model: {self.settings.local_whisper_model}")

        # Run model loading in thread pool
        loop = asyncio.get_running_loop()
        self._whisper_model = await loop.run_in_executor(
            None,
            whisper.load_model,
            self.settings.local_whisper_model,
        )

        logger.info("Whisper model loaded successfully")

    def _run_whisper_transcription(self, audio_path: str) -> dict:
        """Run Whisper transcription (blocking, runs in thread pool)."""
        return self._whisper_model.transcribe(
            audio_path,
            language=self.settings.language,
            fp16=False,  # Use FP32 for better compatibility
        )

    # =========================================================================
    # TEXT-TO-SPEECH
    # =========================================================================

    async def synthesize(self, text: str) -> bytes:
        """
        Convert text to speech.

        Returns:
            MP3 audio bytes

        Raises:
            SynthesisError: the backend failed
        """
        if self.settings.tts_backend == "edge-tts":
            return await self._tts_edge(text)
        return await self._tts_openai(text)

    async def _tts_openai(self, text: str) -> bytes:
        """Generate speech using the OpenAI speech endpoint."""
        payload = {
            "model": self.settings.tts_model,
            "voice": self.settings.tts_voice,
            "input": text,
            "response_format": "mp3",
            "speed": self.settings.tts_speed,
        }

        try:
            response = await self.client.post("/audio/speech", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Speech API error: {e}")
            raise SynthesisError(f"Speech synthesis failed: {e}") from e

        return response.content

    async def _tts_edge(self, text: str) -> bytes:
        """Generate speech using Edge TTS (Microsoft)."""
        import edge_tts

        try:
            communicate = edge_tts.Communicate(text, self.settings.edge_tts_voice)

            # Collect audio chunks
            audio_chunks = []
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio_chunks.append(chunk["data"])

        except Exception as e:
            logger.error(f"Edge TTS failed: {e}")
            raise SynthesisError(f"Edge TTS failed: {e}") from e

        return b"".join(audio_chunks)
