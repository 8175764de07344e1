"""Tests for the chat-completions client, with HTTP mocked at the transport."""

import json

import httpx
import pytest

from conftest import make_settings
from mockvoice.core.exceptions import LanguageModelError
from mockvoice.core.language_model import OpenAILanguageModel
from mockvoice.models.session import Exchange, SessionHistory


def chat_reply(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_model(handler, **overrides) -> tuple[OpenAILanguageModel, list[dict]]:
    requests: list[dict] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return handler(request)

    settings = make_settings(**overrides)
    client = httpx.AsyncClient(
        base_url=settings.openai_base_url,
        transport=httpx.MockTransport(recording_handler),
    )
    return OpenAILanguageModel(settings, client=client), requests


class TestOpenAILanguageModel:

    @pytest.mark.asyncio
    async def test_generate_question_strips_quotes(self):
        model, requests = make_model(
            lambda request: httpx.Response(200, json=chat_reply('"Descreva um desafio de liderança."'))
        )

        result = await model.generate_question("Liderança", [], "Empresa de tecnologia")

        assert result.question == "Descreva um desafio de liderança."
        assert not result.done
        assert requests[0]["model"] == "gpt-4o-mini"
        assert requests[0]["messages"][0]["role"] == "system"
        assert "Liderança" in requests[0]["messages"][1]["content"]
        await model.close()

    @pytest.mark.asyncio
    async def test_empty_question_means_done(self):
        model, _ = make_model(lambda request: httpx.Response(200, json=chat_reply("   ")))

        result = await model.generate_question("Liderança", [], "")

        assert result.done
        await model.close()

    @pytest.mark.asyncio
    async def test_multipart_content_is_joined(self):
        content = [{"type": "text", "text": "Como você "}, {"type": "text", "text": "delega tarefas?"}]
        model, _ = make_model(lambda request: httpx.Response(200, json=chat_reply(content)))

        result = await model.generate_question("Liderança", [], "")

        assert result.question == "Como você delega tarefas?"
        await model.close()

    @pytest.mark.asyncio
    async def test_evaluate_answer_parses_json(self):
        reply = json.dumps({
            "score": 82,
            "strengths": ["Estrutura clara", "Bom exemplo", "Extra"],
            "fixes": ["Cite números"],
            "tts": "Boa estrutura; traga números na próxima.",
        })
        model, requests = make_model(
            lambda request: httpx.Response(200, json=chat_reply(f"Aqui está:\n{reply}"))
        )

        evaluation = await model.evaluate_answer("Pergunta?", "Resposta.")

        assert evaluation.score == 82
        assert evaluation.strengths == ["Estrutura clara", "Bom exemplo"]
        assert evaluation.fixes == ["Cite números"]
        assert evaluation.short_feedback == "Boa estrutura; traga números na próxima."
        assert requests[0]["response_format"] == {"type": "json_object"}
        await model.close()

    @pytest.mark.asyncio
    async def test_evaluate_clamps_score(self):
        model, _ = make_model(
            lambda request: httpx.Response(200, json=chat_reply('{"score": 130, "tts": "ok"}'))
        )

        evaluation = await model.evaluate_answer("Pergunta?", "Resposta.")

        assert evaluation.score == 100
        await model.close()

    @pytest.mark.asyncio
    async def test_evaluate_without_json_raises(self):
        model, _ = make_model(lambda request: httpx.Response(200, json=chat_reply("sem json")))

        with pytest.raises(LanguageModelError):
            await model.evaluate_answer("Pergunta?", "Resposta.")
        await model.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        model, _ = make_model(lambda request: httpx.Response(500, json={"error": "boom"}))

        with pytest.raises(LanguageModelError):
            await model.generate_summary(SessionHistory())
        await model.close()

    @pytest.mark.asyncio
    async def test_sanitize_context_is_truncated(self):
        model, _ = make_model(
            lambda request: httpx.Response(200, json=chat_reply("x" * 500)),
            context_max_length=50,
        )

        context = await model.sanitize_context("Empresa enorme com descrição longa")

        assert context == "x" * 50
        await model.close()

    @pytest.mark.asyncio
    async def test_summary_sends_history(self):
        model, requests = make_model(
            lambda request: httpx.Response(200, json=chat_reply("  ## Resumo  "))
        )
        history = SessionHistory()
        history.append(Exchange(question="Pergunta?", answer="Resposta.", score=80))

        summary = await model.generate_summary(history)

        assert summary == "## Resumo"
        payload = json.loads(requests[0]["messages"][1]["content"])
        assert payload[0]["pergunta"] == "Pergunta?"
        assert payload[0]["pontuacao"] == 80
        await model.close()
