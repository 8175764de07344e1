"""
Dialog Planner for MockVoice

Decides what the coach asks next:
- generates one question per call for a topic, rejecting duplicates and
  off-language output
- decides whether an answer earns a follow-up on the same topic

The planner never mutates a topic; questions are committed by the session
controller once they have been answered.
"""

import asyncio
import logging
import re

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.interfaces import LanguageModel
from mockvoice.models.evaluation import FollowUpDecision
from mockvoice.models.session import Topic

logger = logging.getLogger(__name__)


class LanguageGuard:
    """
    Detects questions generated in English instead of Portuguese.

    A plain keyword heuristic; replace it with a real language detector by
    passing a different guard to DialogPlanner.
    """

    ENGLISH_MARKERS = re.compile(
        r"\b(the|you|your|what|how|when|why|describe|tell|give|example|please)\b",
        re.IGNORECASE,
    )

    def violates(self, text: str) -> bool:
        return bool(self.ENGLISH_MARKERS.search(text or ""))


class DialogPlanner:
    """Question generation and follow-up policy."""

    # Feedback that asks the candidate to go deeper
    ELABORATION_MARKERS = re.compile(r"aprofund|explique|detalhe|mais exemplos", re.IGNORECASE)

    def __init__(
        self,
        language_model: LanguageModel,
        settings: Settings | None = None,
        language_guard: LanguageGuard | None = None,
    ):
        self.settings = settings or get_settings()
        self.language_model = language_model
        self.language_guard = language_guard or LanguageGuard()

    def is_duplicate(self, topic: Topic, question: str) -> bool:
        return topic.has_asked(question)

    def violates_language(self, question: str) -> bool:
        return self.language_guard.violates(question)

    async def next_question(self, topic: Topic, job_context: str) -> str | None:
        """
        Generate the next question for a topic.

        Returns:
            The question text, or None when the topic should be skipped
            (budget spent, the model is done, or no acceptable question
            after the allowed attempts)
        """
        if topic.is_exhausted:
            logger.info(f"Topic '{topic.label}' has no question budget left")
            return None

        attempts = self.settings.max_generation_attempts
        for attempt in range(1, attempts + 1):
            try:
                result = await asyncio.wait_for(
                    self.language_model.generate_question(
                        topic.label, list(topic.asked), job_context
                    ),
                    timeout=self.settings.llm_timeout,
                )
            except Exception as e:
                logger.warning(
                    f"Question generation failed for '{topic.label}' "
                    f"(attempt {attempt}/{attempts}): {e}"
                )
                continue

            if result.done:
                logger.info(f"Model has nothing more to ask on '{topic.label}'")
                return None

            question = (result.question or "").strip()
            if not question:
                logger.warning(f"Empty question for '{topic.label}' (attempt {attempt}/{attempts})")
                continue
            if self.violates_language(question):
                logger.warning(f"Rejected non-Portuguese question: '{question}'")
                continue
            if self.is_duplicate(topic, question):
                logger.warning(f"Rejected duplicate question: '{question}'")
                continue

            return question

        logger.warning(f"Skipping topic '{topic.label}' after {attempts} generation attempts")
        return None

    def should_follow_up(self, score: int, answer: str, feedback: str) -> FollowUpDecision:
        """Follow up when the score is low, the answer short, or feedback asks for depth."""
        return FollowUpDecision(
            low_score=score < self.settings.follow_up_score_threshold,
            short_answer=len(answer.split()) < self.settings.follow_up_min_words,
            needs_elaboration=bool(self.ELABORATION_MARKERS.search(feedback or "")),
        )
