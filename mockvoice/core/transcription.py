"""
Transcription Boundary for MockVoice

Wraps the speech-to-text service so that every outcome, including failures,
comes back as a value the session controller can branch on, and classifies
transcripts that are not real answers (repeat/clarify requests and
recognizer hallucinations).
"""

import asyncio
import logging
import re
from enum import Enum

from pydantic import BaseModel

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.exceptions import TranscriptionError
from mockvoice.core.interfaces import SpeechToText

logger = logging.getLogger(__name__)


class TranscriptStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    LOW_CONFIDENCE = "low_confidence"
    FAILED = "failed"
    TIMEOUT = "timeout"


class TranscriptIntent(str, Enum):
    ANSWER = "answer"
    REPEAT = "repeat"  # "pode repetir?"
    CLARIFY = "clarify"  # "não entendi a pergunta"
    ARTIFACT = "artifact"  # too short, or a known recognizer hallucination


class TranscriptionResult(BaseModel):
    """Outcome of one transcription attempt."""

    status: TranscriptStatus
    text: str = ""
    confidence: float | None = None

    @property
    def ok(self) -> bool:
        return self.status == TranscriptStatus.OK


class TranscriptionBoundary:
    """
    Speech-to-text with bounded latency and no exceptions.

    Intent detection only applies to short utterances: a long answer that
    happens to contain "não entendi" is still an answer.
    """

    INTENT_MAX_WORDS = 15
    MIN_TRANSCRIPT_CHARS = 5

    REPEAT_PATTERNS = [
        r"\brepet(e|ir|ia|ea)\b",
        r"\bde novo\b",
        r"\boutra vez\b",
        r"\bnão (ouvi|escutei)\b",
        r"\bqual (era|foi|é) a pergunta\b",
        r"\brepeat\b",
        r"\bsay (that |it )?again\b",
        r"\bwhat was the question\b",
        r"\bdidn'?t (hear|catch)\b",
        r"\bpardon\b",
        r"\bone more time\b",
    ]

    CLARIFY_PATTERNS = [
        r"\bnão entendi\b",
        r"\bnão ficou claro\b",
        r"\bo que (você )?quer dizer\b",
        r"\b(pode|poderia) (explicar|esclarecer|reformular)\b",
        r"\besclarec",
        r"\breformul",
        r"\bconfus[oa]\b",
        r"\bclarify\b",
        r"\bwhat do you mean\b",
        r"\bi don'?t understand\b",
        r"\bnot clear\b",
        r"\bconfused\b",
    ]

    # Phrases speech recognizers emit on silence or noise
    ARTIFACT_PHRASES = [
        "thanks for watching",
        "thank you for watching",
        "obrigado por assistir",
        "obrigada por assistir",
        "legendas pela comunidade amara.org",
        "inscreva-se no canal",
    ]

    def __init__(self, stt: SpeechToText, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.stt = stt

        self._repeat_re = re.compile("|".join(self.REPEAT_PATTERNS), re.IGNORECASE)
        self._clarify_re = re.compile("|".join(self.CLARIFY_PATTERNS), re.IGNORECASE)

    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        """Transcribe one recorded answer."""
        if not audio:
            return TranscriptionResult(status=TranscriptStatus.EMPTY)

        try:
            transcript = await asyncio.wait_for(
                self.stt.transcribe(audio),
                timeout=self.settings.stt_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Transcription timed out after {self.settings.stt_timeout}s")
            return TranscriptionResult(status=TranscriptStatus.TIMEOUT)
        except TranscriptionError as e:
            logger.warning(f"Transcription failed: {e}")
            status = TranscriptStatus.TIMEOUT if e.timed_out else TranscriptStatus.FAILED
            return TranscriptionResult(status=status)
        except Exception as e:
            logger.error(f"Unexpected transcription error: {e}")
            return TranscriptionResult(status=TranscriptStatus.FAILED)

        text = (transcript.text or "").strip()
        if not text:
            logger.info("Transcript is empty")
            return TranscriptionResult(status=TranscriptStatus.EMPTY)

        confidence = transcript.confidence
        if confidence is not None and confidence < self.settings.min_transcript_confidence:
            logger.info(f"Low transcript confidence ({confidence:.2f}): '{text[:60]}'")
            return TranscriptionResult(
                status=TranscriptStatus.LOW_CONFIDENCE,
                text=text,
                confidence=confidence,
            )

        logger.info(f"Transcript: '{text[:80]}'")
        return TranscriptionResult(
            status=TranscriptStatus.OK,
            text=text,
            confidence=confidence,
        )

    def classify(self, text: str) -> TranscriptIntent:
        """Decide whether a transcript is an answer or something else."""
        cleaned = (text or "").strip()
        lowered = cleaned.lower()

        if len(cleaned.split()) <= self.INTENT_MAX_WORDS:
            if self._repeat_re.search(lowered):
                return TranscriptIntent.REPEAT
            if self._clarify_re.search(lowered):
                return TranscriptIntent.CLARIFY

        if self.is_artifact(cleaned):
            return TranscriptIntent.ARTIFACT
        return TranscriptIntent.ANSWER

    def is_artifact(self, text: str) -> bool:
        """Check for transcripts that are too short or known hallucinations."""
        cleaned = (text or "").strip()
        if len(cleaned) < self.MIN_TRANSCRIPT_CHARS:
            return True
        lowered = cleaned.lower()
        return any(phrase in lowered for phrase in self.ARTIFACT_PHRASES)
