"""
Data models and schemas for MockVoice

Contains Pydantic models for:
- Sessions, topics and history
- Service results (transcripts, questions, evaluations)
- Outbound session events
"""

from mockvoice.models.evaluation import (
    AnswerEvaluation,
    FollowUpDecision,
    GeneratedQuestion,
    Transcript,
)
from mockvoice.models.events import (
    AnswerEvaluated,
    Listening,
    NewQuestion,
    Processing,
    RetryNeeded,
    SessionEnd,
    SessionError,
    SessionEvent,
    SessionStarted,
    SessionWarming,
)
from mockvoice.models.session import (
    ControllerState,
    Exchange,
    RecordingState,
    Session,
    SessionHistory,
    SessionPhase,
    Topic,
    normalize_question,
)

__all__ = [
    # Session
    "Session",
    "SessionPhase",
    "ControllerState",
    "RecordingState",
    "Topic",
    "Exchange",
    "SessionHistory",
    "normalize_question",
    # Service results
    "Transcript",
    "GeneratedQuestion",
    "AnswerEvaluation",
    "FollowUpDecision",
    # Events
    "SessionEvent",
    "SessionWarming",
    "SessionStarted",
    "NewQuestion",
    "Listening",
    "Processing",
    "RetryNeeded",
    "AnswerEvaluated",
    "SessionEnd",
    "SessionError",
]
