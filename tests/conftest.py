"""Shared fakes and fixtures for MockVoice tests."""

import asyncio

import pytest

from mockvoice.config.settings import Settings
from mockvoice.core.session_controller import SessionController
from mockvoice.models.evaluation import AnswerEvaluation, GeneratedQuestion, Transcript
from mockvoice.models.session import SessionHistory

LONG_ANSWER = (
    "Liderei uma equipe de cinco pessoas durante uma migração crítica e "
    "entregamos o projeto duas semanas antes do prazo combinado"
)


def make_settings(**overrides) -> Settings:
    values = {
        "session_warmup": 0,
        "start_timeout": 2,
        "audio_output_timeout": 1,
        "microphone_timeout": 1,
        "tts_timeout": 1,
        "playback_timeout": 1,
        "stt_timeout": 1,
        "llm_timeout": 1,
        "max_recording_seconds": 5,
        "langfuse_enabled": False,
        "openai_api_key": "test-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeTTS:
    def __init__(self, fail_on: set[str] | None = None):
        self.requests: list[str] = []
        self.fail_on = fail_on or set()

    async def synthesize(self, text: str) -> bytes:
        self.requests.append(text)
        await asyncio.sleep(0)
        if text in self.fail_on:
            raise RuntimeError("synthesis backend down")
        return f"audio:{text}".encode()


class FakePlayer:
    def __init__(self, delay: float = 0.005, open_error: Exception | None = None):
        self.delay = delay
        self.open_error = open_error
        self.played: list[bytes] = []
        self.active = 0
        self.max_active = 0
        self.stopped = 0
        self.closed = 0

    async def open(self) -> None:
        if self.open_error:
            raise self.open_error

    async def play(self, audio: bytes) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            self.played.append(audio)
        finally:
            self.active -= 1

    def stop(self) -> None:
        self.stopped += 1

    def close(self) -> None:
        self.closed += 1

    @property
    def spoken(self) -> list[str]:
        return [a.decode().removeprefix("audio:") for a in self.played]


class FakeMicrophone:
    sample_rate = 16000

    def __init__(self, captures: list[bytes] | None = None, open_error: Exception | None = None):
        self.captures = list(captures or [])
        self.open_error = open_error
        self.opened = 0
        self.closed = 0
        self.capturing = False

    async def open(self) -> None:
        if self.open_error:
            raise self.open_error
        self.opened += 1

    def begin_capture(self) -> None:
        self.capturing = True

    def end_capture(self) -> bytes:
        self.capturing = False
        if self.captures:
            return self.captures.pop(0)
        return b"\x01\x00" * 1600

    def close(self) -> None:
        self.closed += 1


class FakeSTT:
    def __init__(self, transcripts: list | None = None):
        self.transcripts = list(transcripts or [])
        self.calls = 0

    async def transcribe(self, audio: bytes) -> Transcript:
        self.calls += 1
        if self.transcripts:
            item = self.transcripts.pop(0)
        else:
            item = LONG_ANSWER
        if isinstance(item, Exception):
            raise item
        if isinstance(item, Transcript):
            return item
        return Transcript(text=item, confidence=0.9)


class FakeLanguageModel:
    def __init__(
        self,
        questions: list | None = None,
        evaluations: list | None = None,
        summary: str | Exception = "## Resumo\nBom trabalho.",
    ):
        self.questions = list(questions or [])
        self.evaluations = list(evaluations or [])
        self.summary = summary
        self.question_calls: list[tuple[str, list[str]]] = []
        self.evaluation_calls: list[tuple[str, str]] = []
        self.summary_calls = 0

    async def sanitize_context(self, raw: str) -> str:
        return raw[:100]

    async def generate_question(self, topic: str, asked: list[str], context: str) -> GeneratedQuestion:
        self.question_calls.append((topic, list(asked)))
        if not self.questions:
            return GeneratedQuestion(done=True)
        item = self.questions.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, GeneratedQuestion):
            return item
        return GeneratedQuestion(question=item)

    async def evaluate_answer(self, question: str, answer: str) -> AnswerEvaluation:
        self.evaluation_calls.append((question, answer))
        item = self.evaluations.pop(0) if self.evaluations else 85
        if isinstance(item, Exception):
            raise item
        if isinstance(item, AnswerEvaluation):
            return item
        return AnswerEvaluation(
            score=item,
            strengths=["Exemplo concreto"],
            fixes=["Cite números"],
            short_feedback="Ótimo uso de exemplo concreto.",
        )

    async def generate_summary(self, history: SessionHistory) -> str:
        self.summary_calls += 1
        if isinstance(self.summary, Exception):
            raise self.summary
        return self.summary


class Harness:
    """A controller wired to fakes, plus the events it emitted."""

    def __init__(self, controller, language_model, tts, stt, microphone, player):
        self.controller = controller
        self.language_model = language_model
        self.tts = tts
        self.stt = stt
        self.microphone = microphone
        self.player = player
        self.events: list = []
        self.overlaps = 0

    def on_update(self, event) -> None:
        self.events.append(event)

    @property
    def event_types(self) -> list[str]:
        return [e.type for e in self.events]

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.type == event_type]

    async def auto_answer(self) -> None:
        """Press 'done' whenever a recording is running."""
        while True:
            await asyncio.sleep(0.002)
            if self.controller.is_recording() and self.controller.is_tts_speaking():
                self.overlaps += 1
            if self.controller.is_recording():
                self.controller.user_done()

    async def run(self, topics, job_context="Empresa de tecnologia, vaga de gerente", timeout=5.0):
        answerer = asyncio.create_task(self.auto_answer())
        try:
            await asyncio.wait_for(
                self.controller.start_session(topics, job_context, self.on_update),
                timeout=timeout,
            )
        finally:
            answerer.cancel()


def build_harness(
    questions=None,
    evaluations=None,
    transcripts=None,
    captures=None,
    summary="## Resumo\nBom trabalho.",
    microphone=None,
    player=None,
    **settings_overrides,
) -> Harness:
    language_model = FakeLanguageModel(questions, evaluations, summary)
    tts = FakeTTS()
    stt = FakeSTT(transcripts)
    microphone = microphone or FakeMicrophone(captures)
    player = player or FakePlayer()
    controller = SessionController(
        language_model=language_model,
        tts=tts,
        stt=stt,
        microphone=microphone,
        player=player,
        settings=make_settings(**settings_overrides),
    )
    return Harness(controller, language_model, tts, stt, microphone, player)


@pytest.fixture
def settings() -> Settings:
    return make_settings()
