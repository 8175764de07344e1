"""
Evaluation and boundary result models for MockVoice

Defines what the external services hand back to the orchestrator:
transcripts, generated questions and answer evaluations.
"""

from pydantic import BaseModel, Field, field_validator


class Transcript(BaseModel):
    """Speech-to-text output for one recorded answer."""

    text: str = ""
    confidence: float | None = Field(
        default=None, ge=0, le=1,
        description="Recognizer confidence when the backend reports one"
    )


class GeneratedQuestion(BaseModel):
    """Result of a question generation call."""

    question: str | None = None
    done: bool = Field(
        default=False,
        description="The model has nothing more to ask for this topic"
    )


class AnswerEvaluation(BaseModel):
    """Coach evaluation of a single answer."""

    score: int = Field(..., ge=0, le=100, description="Overall score (0-100)")
    strengths: list[str] = Field(
        default_factory=list,
        description="What the candidate did well"
    )
    fixes: list[str] = Field(
        default_factory=list,
        description="Concrete improvements"
    )
    short_feedback: str = Field(
        default="",
        description="Short coach tip spoken back to the candidate"
    )

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value):
        """Models sometimes answer 105 or -3; clamp instead of failing."""
        try:
            return max(0, min(100, int(round(float(value)))))
        except (TypeError, ValueError):
            return value


class FollowUpDecision(BaseModel):
    """Decision about whether to ask a second question on the same topic."""

    low_score: bool
    short_answer: bool
    needs_elaboration: bool

    @property
    def should_follow_up(self) -> bool:
        return self.low_score or self.short_answer or self.needs_elaboration

    @property
    def reasons(self) -> list[str]:
        """Names of the checks that fired."""
        checks = {
            "low_score": self.low_score,
            "short_answer": self.short_answer,
            "needs_elaboration": self.needs_elaboration,
        }
        return [name for name, fired in checks.items() if fired]
