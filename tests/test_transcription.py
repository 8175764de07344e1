"""Tests for the transcription boundary and intent detection."""

import asyncio

import pytest

from conftest import FakeSTT, make_settings
from mockvoice.core.exceptions import TranscriptionError
from mockvoice.core.transcription import (
    TranscriptIntent,
    TranscriptionBoundary,
    TranscriptStatus,
)
from mockvoice.models.evaluation import Transcript


class HangingSTT:
    async def transcribe(self, audio: bytes) -> Transcript:
        await asyncio.sleep(10)
        return Transcript(text="tarde demais")


@pytest.fixture
def boundary() -> TranscriptionBoundary:
    return TranscriptionBoundary(FakeSTT(), make_settings())


class TestTranscribe:

    @pytest.mark.asyncio
    async def test_ok(self):
        boundary = TranscriptionBoundary(FakeSTT(["  Minha resposta completa.  "]), make_settings())

        result = await boundary.transcribe(b"RIFF....")

        assert result.status == TranscriptStatus.OK
        assert result.text == "Minha resposta completa."
        assert result.ok

    @pytest.mark.asyncio
    async def test_empty_audio_skips_service(self):
        stt = FakeSTT()
        boundary = TranscriptionBoundary(stt, make_settings())

        result = await boundary.transcribe(b"")

        assert result.status == TranscriptStatus.EMPTY
        assert stt.calls == 0

    @pytest.mark.asyncio
    async def test_blank_transcript(self):
        boundary = TranscriptionBoundary(FakeSTT(["   "]), make_settings())

        result = await boundary.transcribe(b"audio")

        assert result.status == TranscriptStatus.EMPTY

    @pytest.mark.asyncio
    async def test_low_confidence(self):
        stt = FakeSTT([Transcript(text="algo", confidence=0.3)])
        boundary = TranscriptionBoundary(stt, make_settings())

        result = await boundary.transcribe(b"audio")

        assert result.status == TranscriptStatus.LOW_CONFIDENCE
        assert result.text == "algo"
        assert not result.ok

    @pytest.mark.asyncio
    async def test_missing_confidence_is_accepted(self):
        stt = FakeSTT([Transcript(text="Resposta sem confiança informada")])
        boundary = TranscriptionBoundary(stt, make_settings())

        result = await boundary.transcribe(b"audio")

        assert result.ok

    @pytest.mark.asyncio
    async def test_service_error_is_failed(self):
        boundary = TranscriptionBoundary(
            FakeSTT([TranscriptionError("backend down")]), make_settings()
        )

        result = await boundary.transcribe(b"audio")

        assert result.status == TranscriptStatus.FAILED

    @pytest.mark.asyncio
    async def test_service_timeout_flag(self):
        boundary = TranscriptionBoundary(
            FakeSTT([TranscriptionError("slow", timed_out=True)]), make_settings()
        )

        result = await boundary.transcribe(b"audio")

        assert result.status == TranscriptStatus.TIMEOUT

    @pytest.mark.asyncio
    async def test_deadline(self):
        boundary = TranscriptionBoundary(HangingSTT(), make_settings(stt_timeout=0.05))

        result = await asyncio.wait_for(boundary.transcribe(b"audio"), timeout=1)

        assert result.status == TranscriptStatus.TIMEOUT


class TestClassify:

    @pytest.mark.parametrize("text", [
        "Pode repetir?",
        "Repete a pergunta, por favor",
        "Não ouvi, fala de novo",
        "Could you repeat that?",
        "Sorry, say that again",
    ])
    def test_repeat(self, boundary, text):
        assert boundary.classify(text) == TranscriptIntent.REPEAT

    @pytest.mark.parametrize("text", [
        "Não entendi a pergunta",
        "O que você quer dizer com isso?",
        "Pode esclarecer?",
        "I don't understand",
    ])
    def test_clarify(self, boundary, text):
        assert boundary.classify(text) == TranscriptIntent.CLARIFY

    @pytest.mark.parametrize("text", [
        "ok",
        "Obrigado por assistir!",
        "Thanks for watching",
        "Legendas pela comunidade Amara.org",
    ])
    def test_artifact(self, boundary, text):
        assert boundary.classify(text) == TranscriptIntent.ARTIFACT

    def test_long_answer_with_intent_words_is_an_answer(self, boundary):
        text = (
            "No começo eu não entendi o problema, mas depois organizei a equipe, "
            "dividi as tarefas e entregamos a migração no prazo com qualidade"
        )
        assert boundary.classify(text) == TranscriptIntent.ANSWER

    def test_plain_answer(self, boundary):
        assert boundary.classify("Eu liderei um time de dados.") == TranscriptIntent.ANSWER
