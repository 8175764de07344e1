"""
Language Model Client for MockVoice

Coach reasoning over an OpenAI-compatible chat completions API:
- Job context sanitization
- Question generation
- Answer evaluation
- Final summary

Integrated with Langfuse for observability and tracing.
"""

import json
import logging

import httpx
from langfuse import Langfuse

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.exceptions import LanguageModelError
from mockvoice.models.evaluation import AnswerEvaluation, GeneratedQuestion
from mockvoice.models.session import SessionHistory
from mockvoice.prompts.coach import CoachPrompts

logger = logging.getLogger(__name__)


class OpenAILanguageModel:
    """
    Chat-completions client that speaks the coach's prompts.

    Every failure surfaces as LanguageModelError; fallbacks are the
    caller's business.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()

        self.client = client or httpx.AsyncClient(
            base_url=self.settings.openai_base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {self.settings.openai_api_key}",
                "Content-Type": "application/json",
            },
            timeout=60.0,
        )

        self.prompts = CoachPrompts(
            context_max_length=self.settings.context_max_length,
            question_max_words=self.settings.question_max_words,
            feedback_max_length=self.settings.feedback_max_length,
            summary_max_length=self.settings.summary_max_length,
        )

        # Initialize Langfuse for observability
        self.langfuse = None
        if self.settings.langfuse_enabled:
            if self.settings.langfuse_secret_key and self.settings.langfuse_public_key:
                try:
                    self.langfuse = Langfuse(
                        secret_key=self.settings.langfuse_secret_key,
                        public_key=self.settings.langfuse_public_key,
                        host=self.settings.langfuse_base_url,
                    )
                    logger.info("Langfuse initialized for LLM observability")
                except Exception as e:
                    logger.warning(f"Failed to initialize Langfuse: {e}")
            else:
                logger.info("Langfuse keys not configured, tracing disabled")

    async def close(self):
        """Close the HTTP client and flush Langfuse."""
        await self.client.aclose()
        if self.langfuse:
            try:
                self.langfuse.flush()
            except Exception as e:
                logger.warning(f"Failed to flush Langfuse: {e}")

    # =========================================================================
    # CORE CALL
    # =========================================================================

    def _extract_content(self, result: dict) -> str:
        """Extract text content from API response, handling list/dict formats."""
        choices = result.get("choices") or [{}]
        content = choices[0].get("message", {}).get("content", "")

        # Handle case where content is a list (multi-part response)
        if isinstance(content, list):
            text_parts = []
            for part in content:
                if isinstance(part, str):
                    text_parts.append(part)
                elif isinstance(part, dict) and "text" in part:
                    text_parts.append(part["text"])
            content = "".join(text_parts)

        return content if isinstance(content, str) else str(content)

    async def _chat(
        self,
        system: str,
        user: str,
        max_tokens: int,
        trace_name: str,
        json_mode: bool = False,
    ) -> str:
        """
        Run one chat completion.

        Args:
            system: System prompt
            user: User message
            max_tokens: Maximum tokens in response
            trace_name: Name for the Langfuse span
            json_mode: Ask the API for a JSON object

        Returns:
            Model response text
        """
        payload = {
            "model": self.settings.llm_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens,
            "temperature": self.settings.llm_temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        span = None
        if self.langfuse:
            try:
                span = self.langfuse.start_span(
                    name=trace_name,
                    input={"system": system, "user": user},
                    metadata={"model": self.settings.llm_model},
                )
            except Exception as lf_err:
                logger.warning(f"Langfuse span start failed: {lf_err}")
                span = None

        try:
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
            content = self._extract_content(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Chat completion error ({trace_name}): {e}")
            self._end_span(span, {"error": str(e)})
            raise LanguageModelError(f"{trace_name} failed: {e}") from e

        self._end_span(span, {"content": content})
        return content

    def _end_span(self, span, output: dict) -> None:
        if not span:
            return
        try:
            span.update(output=output)
            span.end()
        except Exception as lf_err:
            logger.warning(f"Langfuse span end failed: {lf_err}")

    # =========================================================================
    # COACH OPERATIONS
    # =========================================================================

    async def sanitize_context(self, raw: str) -> str:
        """Condense the job description into a short neutral text."""
        system, user = self.prompts.sanitize_context_prompt(raw)
        content = await self._chat(system, user, max_tokens=120, trace_name="sanitize_context")
        return content.strip()[: self.settings.context_max_length]

    async def generate_question(
        self, topic: str, asked: list[str], context: str
    ) -> GeneratedQuestion:
        """Generate one short question on a single topic."""
        system, user = self.prompts.question_prompt(topic, asked, context)
        content = await self._chat(system, user, max_tokens=50, trace_name="generate_question")

        question = content.strip().strip("\"'“”").strip()
        if not question:
            return GeneratedQuestion(done=True)

        logger.info(f"Generated question on '{topic}': {question}")
        return GeneratedQuestion(question=question)

    async def evaluate_answer(self, question: str, answer: str) -> AnswerEvaluation:
        """Score an answer and produce the spoken coach tip."""
        system, user = self.prompts.evaluation_prompt(question, answer)
        content = await self._chat(
            system, user, max_tokens=200, trace_name="evaluate_answer", json_mode=True
        )

        evaluation = self._parse_evaluation_response(content)
        logger.info(f"Evaluation complete: score={evaluation.score}")

        # Log score to Langfuse
        if self.langfuse:
            try:
                self.langfuse.create_score(
                    name="answer_score",
                    value=evaluation.score,
                    comment=question[:200],
                )
            except Exception as lf_err:
                logger.warning(f"Langfuse score failed: {lf_err}")

        return evaluation

    def _parse_evaluation_response(self, response: str) -> AnswerEvaluation:
        """Parse the model's JSON reply into an AnswerEvaluation."""
        json_start = response.find("{")
        json_end = response.rfind("}") + 1
        if json_start < 0 or json_end <= json_start:
            raise LanguageModelError("Evaluation response contained no JSON object")

        try:
            data = json.loads(response[json_start:json_end])
        except json.JSONDecodeError as e:
            raise LanguageModelError(f"Failed to parse evaluation JSON: {e}") from e

        if "score" not in data:
            raise LanguageModelError("Evaluation response has no score")

        try:
            return AnswerEvaluation(
                score=data["score"],
                strengths=[str(s) for s in data.get("strengths") or []][:2],
                fixes=[str(f) for f in data.get("fixes") or []][:2],
                short_feedback=str(data.get("tts") or "").strip()[: self.settings.feedback_max_length],
            )
        except ValueError as e:
            raise LanguageModelError(f"Invalid evaluation payload: {e}") from e

    async def generate_summary(self, history: SessionHistory) -> str:
        """Return the closing markdown summary."""
        system, user = self.prompts.summary_prompt(history.to_summary_payload())
        content = await self._chat(system, user, max_tokens=400, trace_name="generate_summary")
        return content.strip()
