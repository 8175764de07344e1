"""
Outbound session events for MockVoice

Every phase transition of the session controller is pushed to the caller
as one of these models. Callers treat the event stream as the only source
of truth for UI state.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class SessionWarming(BaseModel):
    type: Literal["session_warming"] = "session_warming"
    message: str = ""


class SessionStarted(BaseModel):
    type: Literal["session_started"] = "session_started"


class NewQuestion(BaseModel):
    type: Literal["new_question"] = "new_question"
    question: str
    question_number: int
    topic: str
    topic_progress: str = Field(..., description="e.g. '1/2'")


class Listening(BaseModel):
    type: Literal["listening"] = "listening"


class Processing(BaseModel):
    type: Literal["processing"] = "processing"


class RetryNeeded(BaseModel):
    type: Literal["retry_needed"] = "retry_needed"
    message: str


class AnswerEvaluated(BaseModel):
    type: Literal["answer_evaluated"] = "answer_evaluated"
    question: str
    answer: str
    feedback: str
    score: int
    question_number: int


class SessionEnd(BaseModel):
    type: Literal["session_end"] = "session_end"
    total_questions: int
    final_summary: str | None = None


class SessionError(BaseModel):
    type: Literal["error"] = "error"
    message: str


SessionEvent = Annotated[
    Union[
        SessionWarming,
        SessionStarted,
        NewQuestion,
        Listening,
        Processing,
        RetryNeeded,
        AnswerEvaluated,
        SessionEnd,
        SessionError,
    ],
    Field(discriminator="type"),
]
