"""Protocol interfaces for the external collaborators of the session controller."""

from __future__ import annotations

from typing import Protocol

from mockvoice.models.evaluation import AnswerEvaluation, GeneratedQuestion, Transcript
from mockvoice.models.session import SessionHistory


class TextToSpeech(Protocol):
    """Turns text into playable audio."""

    async def synthesize(self, text: str) -> bytes:
        """Return encoded audio (MP3 or WAV). Raises SynthesisError."""


class SpeechToText(Protocol):
    """Transcribes recorded answers."""

    async def transcribe(self, audio: bytes) -> Transcript:
        """Return the transcript. Raises TranscriptionError."""


class LanguageModel(Protocol):
    """Coach reasoning: context, questions, evaluation and summary."""

    async def sanitize_context(self, raw: str) -> str:
        """Condense a job description into a short neutral text."""

    async def generate_question(
        self, topic: str, asked: list[str], context: str
    ) -> GeneratedQuestion:
        """Propose the next question for a topic, or report it is done."""

    async def evaluate_answer(self, question: str, answer: str) -> AnswerEvaluation:
        """Score an answer and produce coach feedback."""

    async def generate_summary(self, history: SessionHistory) -> str:
        """Return a markdown summary of the whole interview."""


class Microphone(Protocol):
    """A live input stream that can capture frames on demand."""

    sample_rate: int

    async def open(self) -> None:
        """Acquire the device. Raises AudioDeviceError."""

    def begin_capture(self) -> None:
        """Start keeping incoming frames."""

    def end_capture(self) -> bytes:
        """Stop keeping frames and return the raw 16-bit PCM captured."""

    def close(self) -> None:
        """Release the device."""


class AudioPlayer(Protocol):
    """Plays encoded audio to the speaker."""

    async def open(self) -> None:
        """Prepare the output device. Raises AudioDeviceError."""

    async def play(self, audio: bytes) -> None:
        """Play audio and return once playback has finished."""

    def stop(self) -> None:
        """Abort the current playback."""

    def close(self) -> None:
        """Release the output device."""
