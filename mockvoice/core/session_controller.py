"""
Session Controller - turn-taking loop for a spoken mock interview.

This is the central coordinator for a session. It owns the audio gate,
the recording session, the transcription boundary and the dialog planner,
runs the interview from warm-up to summary, and reports progress through a
single event callback.

Every async continuation is tagged with the version of the session that
started it. Ending or restarting a session bumps the version, so stale
continuations stop at their next checkpoint and never emit events or touch
devices on behalf of the session that replaced them.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from mockvoice.config.settings import Settings, get_settings
from mockvoice.core.audio_gate import AudioGate
from mockvoice.core.dialog_planner import DialogPlanner
from mockvoice.core.exceptions import (
    AudioDeviceError,
    DeviceErrorKind,
    InitializationTimeoutError,
    RecordingBlockedError,
    RecordingInProgressError,
    StateTransitionError,
)
from mockvoice.core.interfaces import (
    AudioPlayer,
    LanguageModel,
    Microphone,
    SpeechToText,
    TextToSpeech,
)
from mockvoice.core.recording import RecordingSession
from mockvoice.core.transcription import TranscriptIntent, TranscriptionBoundary
from mockvoice.models.evaluation import AnswerEvaluation
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
    Session,
    SessionPhase,
    Topic,
)
from mockvoice.prompts import messages

logger = logging.getLogger(__name__)

EventCallback = Callable[[SessionEvent], Awaitable[None] | None]


class SessionSuperseded(Exception):
    """The session a continuation belongs to has been ended or replaced."""
    pass


class SessionController:
    """
    Runs one interview session at a time using a state machine.

    States:
        INITIALIZING → WARMING → INTRODUCTION → ASKING → LISTENING → PROCESSING → FEEDBACK
                                                   ↑__________________________________|
                                                                                      ↓
                                                                                  COMPLETE

    ERROR is reachable from every non-terminal state on a fatal failure.
    """

    # Valid state transitions
    # Note: COMPLETE is allowed from every active state to support user-initiated ending
    VALID_TRANSITIONS: dict[ControllerState, list[ControllerState]] = {
        ControllerState.INITIALIZING: [ControllerState.WARMING, ControllerState.ERROR, ControllerState.COMPLETE],
        ControllerState.WARMING: [ControllerState.INTRODUCTION, ControllerState.ERROR, ControllerState.COMPLETE],
        ControllerState.INTRODUCTION: [ControllerState.ASKING, ControllerState.ERROR, ControllerState.COMPLETE],
        ControllerState.ASKING: [ControllerState.LISTENING, ControllerState.ERROR, ControllerState.COMPLETE],
        ControllerState.LISTENING: [ControllerState.PROCESSING, ControllerState.ASKING, ControllerState.ERROR, ControllerState.COMPLETE],
        ControllerState.PROCESSING: [ControllerState.FEEDBACK, ControllerState.ASKING, ControllerState.ERROR, ControllerState.COMPLETE],
        ControllerState.FEEDBACK: [ControllerState.ASKING, ControllerState.ERROR, ControllerState.COMPLETE],
        ControllerState.COMPLETE: [],  # Terminal state
        ControllerState.ERROR: [],  # Terminal state
    }

    def __init__(
        self,
        language_model: LanguageModel,
        tts: TextToSpeech,
        stt: SpeechToText,
        microphone: Microphone,
        player: AudioPlayer,
        settings: Settings | None = None,
    ):
        """
        Initialize the controller with its external collaborators.

        Args:
            language_model: Question generation, evaluation and summary
            tts: Text-to-speech for the coach voice
            stt: Speech-to-text for candidate answers
            microphone: Input device
            player: Output device
        """
        self.settings = settings or get_settings()
        self.language_model = language_model

        self.audio_gate = AudioGate(tts, player, self.settings)
        self.recording = RecordingSession(
            microphone,
            self.settings,
            is_blocked=self.audio_gate.is_speaking,
        )
        self.transcription = TranscriptionBoundary(stt, self.settings)
        self.planner = DialogPlanner(language_model, self.settings)

        self._version = 0
        self._session: Session | None = None
        self._state = ControllerState.INITIALIZING
        self._on_update: EventCallback | None = None
        self._waiting_for_user_done = False

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def version(self) -> int:
        return self._version

    def is_session_active(self) -> bool:
        return self._session is not None and self._session.is_active()

    def is_recording(self) -> bool:
        return self.recording.is_recording()

    def is_tts_speaking(self) -> bool:
        return self.audio_gate.is_speaking()

    def is_waiting_for_user_done(self) -> bool:
        return self._waiting_for_user_done

    def questions_asked_for_topic(self, label: str) -> int:
        if self._session is None:
            return 0
        topic = self._session.get_topic(label)
        return topic.questions_asked if topic else 0

    async def start_session(
        self,
        topics: list[str],
        job_context: str,
        on_update: EventCallback,
    ) -> None:
        """
        Run a complete interview session.

        Returns when the session finishes, fails, or is ended/replaced.
        Progress is reported only through `on_update`.
        """
        try:
            version = self.begin_session(topics, job_context, on_update)
        except ValueError as e:
            await self._deliver(on_update, SessionError(message=str(e)))
            return
        await self.run_session(version)

    def begin_session(
        self,
        topics: list[str],
        job_context: str,
        on_update: EventCallback,
    ) -> int:
        """
        Reserve a new session without running it.

        Any active session is ended first. The new session is active as soon
        as this returns, so callers can check `is_session_active()` before
        scheduling `run_session()` elsewhere.

        Returns:
            The version of the new session

        Raises:
            ValueError: no topics or no job context (message is user-facing)
        """
        labels = [t.strip() for t in topics or [] if t and t.strip()]
        if not labels:
            logger.error("Session not started: no topics provided")
            raise ValueError(messages.NO_TOPICS)
        if not job_context or not job_context.strip():
            logger.error("Session not started: no job context provided")
            raise ValueError(messages.NO_CONTEXT)

        if self.is_session_active():
            logger.warning("A session is already active, ending it before starting a new one")
            self.end_session()

        self._version += 1
        version = self._version
        self._session = Session.create(
            labels,
            job_context.strip(),
            version=version,
            max_questions_per_topic=self.settings.max_questions_per_topic,
        )
        self._session.phase = SessionPhase.WARMING
        self._state = ControllerState.INITIALIZING
        self._on_update = on_update
        self._waiting_for_user_done = False

        logger.info(f"Starting session v{version} with topics: {labels}")
        return version

    async def run_session(self, version: int) -> None:
        """Run the loop of a session reserved by `begin_session()`."""
        if version != self._version:
            logger.info(f"Session v{version} was replaced before it started")
            return

        try:
            await self._warm_up(version)
            await self._introduce(version)
            for topic in self._session.topics:
                await self._run_topic(version, topic)
            await self._finish(version)

        except SessionSuperseded:
            logger.info(f"Session v{version} superseded, stopping its loop")
        except AudioDeviceError as e:
            logger.error(f"Session v{version} device failure: {e}")
            await self._fail(version, self._device_error_message(e))
        except InitializationTimeoutError as e:
            logger.error(f"Session v{version} start-up timed out: {e}")
            await self._fail(version, messages.INIT_TIMEOUT)
        except Exception as e:
            logger.exception(f"Session v{version} failed")
            await self._fail(version, messages.SESSION_FAILED.format(detail=e))
        finally:
            if self._version == version:
                self.end_session()

    def user_done(self) -> None:
        """The candidate finished answering: stop the active recording."""
        if not self.recording.is_recording():
            logger.warning("user_done() called with no active recording")
            return
        self._waiting_for_user_done = False
        self.recording.stop()

    def end_session(self) -> None:
        """Tear the session down; safe to call at any time, any number of times."""
        session = self._session
        if session is None or session.phase == SessionPhase.ENDED:
            return

        logger.info(f"Ending session v{self._version}")
        self._version += 1
        session.version = self._version
        session.phase = SessionPhase.ENDED
        session.completed_at = session.completed_at or datetime.now(timezone.utc)

        self._on_update = None
        self._waiting_for_user_done = False
        if self._state not in (ControllerState.COMPLETE, ControllerState.ERROR):
            self._state = ControllerState.COMPLETE

        self.recording.close()
        self.audio_gate.close()

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def _ensure_current(self, version: int) -> None:
        if version != self._version:
            raise SessionSuperseded(f"session v{version} is no longer live")

    def _transition(self, version: int, new_state: ControllerState) -> None:
        """
        Move to a new state.

        Raises:
            SessionSuperseded: the session is no longer live
            StateTransitionError: If transition is invalid
        """
        self._ensure_current(version)

        old_state = self._state
        valid_next_states = self.VALID_TRANSITIONS.get(old_state, [])
        if new_state not in valid_next_states:
            raise StateTransitionError(
                f"Invalid transition from {old_state} to {new_state}. "
                f"Valid transitions: {valid_next_states}"
            )

        self._state = new_state
        logger.info(f"Session v{version}: {old_state.value} → {new_state.value}")

    # =========================================================================
    # EVENTS
    # =========================================================================

    async def _emit(self, version: int, event: SessionEvent) -> None:
        """Deliver an event only if it belongs to the live session."""
        if version != self._version or self._on_update is None:
            return
        await self._deliver(self._on_update, event)
        self._ensure_current(version)

    async def _deliver(self, callback: EventCallback, event: SessionEvent) -> None:
        try:
            result = callback(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Event callback error ({event.type}): {e}")

    async def _fail(self, version: int, message: str) -> None:
        if version != self._version:
            return
        if self._state not in (ControllerState.COMPLETE, ControllerState.ERROR):
            self._state = ControllerState.ERROR
        await self._deliver_if_current(version, SessionError(message=message))

    async def _deliver_if_current(self, version: int, event: SessionEvent) -> None:
        if version == self._version and self._on_update is not None:
            await self._deliver(self._on_update, event)

    def _device_error_message(self, error: AudioDeviceError) -> str:
        if error.device == "speaker":
            return messages.AUDIO_OUTPUT_FAILED
        return {
            DeviceErrorKind.PERMISSION_DENIED: messages.MIC_PERMISSION_DENIED,
            DeviceErrorKind.NOT_FOUND: messages.MIC_NOT_FOUND,
            DeviceErrorKind.IN_USE: messages.MIC_IN_USE,
        }.get(error.kind, messages.MIC_UNKNOWN)

    # =========================================================================
    # START-UP
    # =========================================================================

    async def _warm_up(self, version: int) -> None:
        """Acquire devices, let them settle, and condense the job context."""
        self._transition(version, ControllerState.WARMING)
        await self._emit(version, SessionWarming(message=messages.WARMING_MICROPHONE))

        try:
            await asyncio.wait_for(
                self._acquire_devices(),
                timeout=self.settings.start_timeout,
            )
        except asyncio.TimeoutError as e:
            raise InitializationTimeoutError(
                f"Devices not ready after {self.settings.start_timeout}s"
            ) from e
        self._ensure_current(version)

        if self.settings.session_warmup > 0:
            await asyncio.sleep(self.settings.session_warmup)
            self._ensure_current(version)

        self._session.job_context = await self._sanitize_context(version, self._session.raw_context)
        await self._emit(version, SessionStarted())

    async def _acquire_devices(self) -> None:
        await self.audio_gate.open()
        await self.recording.acquire()

    async def _sanitize_context(self, version: int, raw: str) -> str:
        try:
            sanitized = await asyncio.wait_for(
                self.language_model.sanitize_context(raw),
                timeout=self.settings.llm_timeout,
            )
        except Exception as e:
            logger.warning(f"Context sanitization failed, using raw context: {e}")
            sanitized = ""
        self._ensure_current(version)

        sanitized = (sanitized or "").strip() or raw.strip()
        return sanitized[: self.settings.context_max_length]

    async def _introduce(self, version: int) -> None:
        self._transition(version, ControllerState.INTRODUCTION)
        self._session.phase = SessionPhase.INTRODUCTION
        await self._speak(version, messages.INTRODUCTION)
        self._session.phase = SessionPhase.RUNNING

    # =========================================================================
    # INTERVIEW LOOP
    # =========================================================================

    async def _run_topic(self, version: int, topic: Topic) -> None:
        """Ask a topic's first question and, when warranted, one follow-up."""
        self._ensure_current(version)
        logger.info(f"Topic '{topic.label}' ({topic.progress()})")

        question = await self.planner.next_question(topic, self._session.job_context)
        self._ensure_current(version)

        while question is not None:
            exchange = await self._ask_until_answered(version, topic, question)
            if exchange is None:
                logger.warning(f"No usable answer on '{topic.label}', moving on")
                return
            if topic.is_exhausted:
                return

            decision = self.planner.should_follow_up(
                exchange.score, exchange.answer, exchange.feedback
            )
            if not decision.should_follow_up:
                logger.info(f"No follow-up needed on '{topic.label}'")
                return

            logger.info(f"Follow-up on '{topic.label}': {', '.join(decision.reasons)}")
            question = await self.planner.next_question(topic, self._session.job_context)
            self._ensure_current(version)

    async def _ask_until_answered(
        self, version: int, topic: Topic, question: str
    ) -> Exchange | None:
        """
        Ask one question until it gets a usable answer.

        Failed captures and unusable transcripts re-ask the same question;
        repeat and clarify requests have their own budget. The question only
        counts against the topic once it has been answered.

        Returns:
            The committed exchange, or None when attempts ran out
        """
        number = self._session.total_questions + 1
        max_attempts = self.settings.max_answer_attempts
        failures = 0
        requests = 0
        spoken = question

        while failures < max_attempts and requests < max_attempts:
            self._transition(version, ControllerState.ASKING)
            await self._emit(
                version,
                NewQuestion(
                    question=question,
                    question_number=number,
                    topic=topic.label,
                    topic_progress=topic.progress(pending=1),
                ),
            )
            await self._speak(version, spoken)
            spoken = question

            audio = await self._listen(version)
            if not audio:
                logger.warning(f"No audio captured for question #{number}")
                failures += 1
                await self._emit(version, RetryNeeded(message=messages.NO_AUDIO))
                continue

            self._transition(version, ControllerState.PROCESSING)
            await self._emit(version, Processing())

            result = await self.transcription.transcribe(audio)
            self._ensure_current(version)
            if not result.ok:
                logger.warning(f"Transcription unusable ({result.status.value}) for question #{number}")
                failures += 1
                await self._emit(version, RetryNeeded(message=messages.UNCLEAR_AUDIO))
                continue

            intent = self.transcription.classify(result.text)
            if intent == TranscriptIntent.REPEAT:
                logger.info(f"Candidate asked to repeat question #{number}")
                requests += 1
                spoken = f"{messages.REPEAT_ACKNOWLEDGEMENT} {question}"
                continue
            if intent == TranscriptIntent.CLARIFY:
                logger.info(f"Candidate asked to clarify question #{number}")
                requests += 1
                spoken = messages.CLARIFY_TEMPLATE.format(question=question)
                continue
            if intent == TranscriptIntent.ARTIFACT:
                logger.warning(f"Discarding transcription artifact: '{result.text}'")
                failures += 1
                await self._emit(version, RetryNeeded(message=messages.FALSE_TRANSCRIPTION))
                continue

            return await self._commit_answer(version, topic, question, number, result.text)

        return None

    async def _listen(self, version: int) -> bytes:
        """Record one answer once the coach has finished speaking."""
        await self.audio_gate.wait_until_idle()
        self._transition(version, ControllerState.LISTENING)
        await self._emit(version, Listening())

        self._waiting_for_user_done = True
        try:
            audio = await self.recording.start_recording()
        except (RecordingInProgressError, RecordingBlockedError) as e:
            logger.error(f"Could not start recording: {e}")
            audio = b""
        finally:
            if self._version == version:
                self._waiting_for_user_done = False

        self._ensure_current(version)
        return audio

    async def _commit_answer(
        self, version: int, topic: Topic, question: str, number: int, answer: str
    ) -> Exchange:
        """Evaluate an answer, record the exchange and speak the feedback."""
        evaluation = await self._evaluate(version, question, answer)

        topic.record_question(question)
        exchange = Exchange(
            question=question,
            answer=answer,
            score=evaluation.score,
            strengths=tuple(evaluation.strengths or messages.FALLBACK_STRENGTHS),
            fixes=tuple(evaluation.fixes or messages.FALLBACK_FIXES),
            feedback=evaluation.short_feedback or messages.FALLBACK_FEEDBACK,
            topic=topic.label,
            question_number=number,
        )
        self._session.history.append(exchange)
        logger.info(f"Question #{number} on '{topic.label}' scored {exchange.score}")

        await self._emit(
            version,
            AnswerEvaluated(
                question=question,
                answer=answer,
                feedback=exchange.feedback,
                score=exchange.score,
                question_number=number,
            ),
        )

        self._transition(version, ControllerState.FEEDBACK)
        await self._speak(version, exchange.feedback)
        return exchange

    async def _evaluate(self, version: int, question: str, answer: str) -> AnswerEvaluation:
        try:
            evaluation = await asyncio.wait_for(
                self.language_model.evaluate_answer(question, answer),
                timeout=self.settings.llm_timeout,
            )
        except Exception as e:
            logger.error(f"Evaluation failed, using fallback: {e}")
            evaluation = AnswerEvaluation(
                score=messages.FALLBACK_SCORE,
                strengths=list(messages.FALLBACK_STRENGTHS),
                fixes=list(messages.FALLBACK_FIXES),
                short_feedback=messages.FALLBACK_FEEDBACK,
            )
        self._ensure_current(version)
        return evaluation

    async def _speak(self, version: int, text: str) -> None:
        self._ensure_current(version)
        await self.audio_gate.speak(text)
        self._ensure_current(version)
        await self.audio_gate.wait_until_idle()
        self._ensure_current(version)

    # =========================================================================
    # COMPLETION
    # =========================================================================

    async def _finish(self, version: int) -> None:
        """Summarize the interview and report the end of the session."""
        self._ensure_current(version)
        history = self._session.history

        summary = None
        if len(history) > 0:
            summary = await self._summarize(version)

        self._transition(version, ControllerState.COMPLETE)
        self._session.completed_at = datetime.now(timezone.utc)
        logger.info(
            f"Session v{version} complete: {self._session.total_questions} question(s), "
            f"average score {history.average_score:.0f}"
        )
        await self._emit(
            version,
            SessionEnd(total_questions=self._session.total_questions, final_summary=summary),
        )

    async def _summarize(self, version: int) -> str:
        try:
            summary = await asyncio.wait_for(
                self.language_model.generate_summary(self._session.history),
                timeout=self.settings.llm_timeout,
            )
        except Exception as e:
            logger.error(f"Summary generation failed, using fallback: {e}")
            summary = ""
        self._ensure_current(version)
        return (summary or "").strip() or messages.FALLBACK_SUMMARY
