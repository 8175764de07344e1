"""
Interview session and state models for MockVoice
"""

import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def normalize_question(text: str) -> str:
    """Normalize question text for duplicate detection."""
    text = text.lower()
    text = re.sub(r"[^\w\s]", " ", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


class SessionPhase(str, Enum):
    """Coarse session lifecycle phase."""

    IDLE = "idle"
    WARMING = "warming"  # Acquiring microphone and audio output
    INTRODUCTION = "introduction"  # Coach introduces itself
    RUNNING = "running"  # Question loop
    ENDED = "ended"


class ControllerState(str, Enum):
    """Session controller state machine states."""

    # Start-up
    INITIALIZING = "initializing"
    WARMING = "warming"
    INTRODUCTION = "introduction"

    # Question loop
    ASKING = "asking"  # Coach is speaking a question
    LISTENING = "listening"  # Recording the candidate
    PROCESSING = "processing"  # Transcribing and evaluating
    FEEDBACK = "feedback"  # Coach is speaking feedback

    # Terminal
    COMPLETE = "complete"
    ERROR = "error"


class RecordingState(str, Enum):
    """Microphone capture state."""

    IDLE = "idle"
    RECORDING = "recording"


class Topic(BaseModel):
    """An interview topic and the questions already asked on it."""

    label: str
    asked: list[str] = Field(
        default_factory=list,
        description="Normalized question texts already asked on this topic"
    )
    max_questions: int = Field(default=2, ge=1)

    @property
    def questions_asked(self) -> int:
        return len(self.asked)

    @property
    def is_exhausted(self) -> bool:
        return self.questions_asked >= self.max_questions

    def has_asked(self, question_text: str) -> bool:
        """Check if an equivalent question was already asked on this topic."""
        return normalize_question(question_text) in self.asked

    def record_question(self, question_text: str) -> None:
        """Commit a question against the per-topic budget."""
        if self.is_exhausted:
            raise ValueError(
                f"Topic '{self.label}' already has {self.max_questions} questions"
            )
        self.asked.append(normalize_question(question_text))

    def progress(self, pending: int = 0) -> str:
        """Progress label such as '1/2'."""
        return f"{self.questions_asked + pending}/{self.max_questions}"


class Exchange(BaseModel):
    """A question-answer pair with its evaluation."""

    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    score: int = Field(..., ge=0, le=100)
    strengths: tuple[str, ...] = ()
    fixes: tuple[str, ...] = ()
    feedback: str = ""
    topic: str = ""
    question_number: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionHistory(BaseModel):
    """Ordered, append-only record of the interview."""

    exchanges: list[Exchange] = Field(default_factory=list)

    def append(self, exchange: Exchange) -> None:
        self.exchanges.append(exchange)

    def __len__(self) -> int:
        return len(self.exchanges)

    @property
    def average_score(self) -> float:
        if not self.exchanges:
            return 0.0
        return sum(e.score for e in self.exchanges) / len(self.exchanges)

    def to_summary_payload(self) -> list[dict]:
        """History in the shape the summary prompt expects."""
        return [
            {
                "pergunta": e.question,
                "resposta": e.answer,
                "pontuacao": e.score,
                "pontos_fortes": list(e.strengths),
                "melhorias": list(e.fixes),
            }
            for e in self.exchanges
        ]


class Session(BaseModel):
    """Complete interview session state."""

    version: int = 0
    phase: SessionPhase = SessionPhase.IDLE

    topics: list[Topic] = Field(default_factory=list)
    raw_context: str = ""
    job_context: str = Field(
        default="",
        description="Sanitized company/job context"
    )
    history: SessionHistory = Field(default_factory=SessionHistory)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    @classmethod
    def create(
        cls,
        topics: list[str],
        job_context: str,
        version: int,
        max_questions_per_topic: int = 2,
    ) -> "Session":
        """Build a fresh session with zeroed per-topic counters."""
        return cls(
            version=version,
            topics=[
                Topic(label=label, max_questions=max_questions_per_topic)
                for label in topics
            ],
            raw_context=job_context,
        )

    def get_topic(self, label: str) -> Topic | None:
        for topic in self.topics:
            if topic.label == label:
                return topic
        return None

    @property
    def total_questions(self) -> int:
        """Number of answered (committed) questions."""
        return len(self.history)

    def is_active(self) -> bool:
        return self.phase not in (SessionPhase.IDLE, SessionPhase.ENDED)
