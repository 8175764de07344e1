"""
Interview Coach Prompt Templates

Contains structured prompts for:
- Job context sanitization
- Short question generation
- Answer evaluation
- Final summary

All outputs must be Brazilian Portuguese; the coach speaks them aloud, so
everything is kept short.
"""

import json
import re


class CoachPrompts:
    """
    Prompt templates for the spoken interview coach.

    Key principles:
    - Brazilian Portuguese only
    - Short, speakable sentences
    - One question at a time, never repeated
    - Empathetic but direct feedback
    """

    LANGUAGE_RULE = (
        "IMPORTANTE: Responda EXCLUSIVAMENTE em português do Brasil (pt-BR). "
        "Evite anglicismos desnecessários."
    )

    # Corporate jargon stripped from the job context before question generation
    JARGON_PATTERN = re.compile(
        r"\b(empresa|corporativo|stakeholder|sinergia|pipeline|mindset|disruptivo|"
        r"core business|benchmark|KPI|OKR|framework|roadmap|deliverable|ownership|"
        r"empowerment|lean|agile|squad|tribo|cross-functional|end-to-end|touchpoint|"
        r"pain point|value proposition|business case|blueprint|canvas|pivot|sprint|"
        r"retrospectiva|standup|workflow|backlog|product owner|scrum master|"
        r"B2B|B2C|B2G|UX|UI|CX)\b",
        re.IGNORECASE,
    )

    def __init__(
        self,
        context_max_length: int = 280,
        question_max_words: int = 14,
        feedback_max_length: int = 120,
        summary_max_length: int = 600,
    ):
        self.context_max_length = context_max_length
        self.question_max_words = question_max_words
        self.feedback_max_length = feedback_max_length
        self.summary_max_length = summary_max_length

    def sanitize_context_prompt(self, company: str, role: str = "") -> tuple[str, str]:
        """Prompt for condensing the company/job description."""
        system = (
            f"{self.LANGUAGE_RULE} Resuma esta empresa+cargo em um texto neutro "
            f"≤{self.context_max_length} caracteres. Sem links, sem listas. "
            "Retorne apenas a frase resumida."
        )
        user = f"{company} | {role}"[:4000]
        return system, user

    def question_context(self, context: str) -> str:
        """Job context trimmed of jargon for question generation (≤180 chars)."""
        cleaned = self.JARGON_PATTERN.sub("", context or "")
        cleaned = re.sub(r"\s+", " ", cleaned).strip()
        return cleaned[:180]

    def question_prompt(self, topic: str, asked: list[str], context: str) -> tuple[str, str]:
        """Prompt for one short interview question on a single topic."""
        system = f"""{self.LANGUAGE_RULE}
Papel: Entrevistador para um tópico específico de entrevista.
Input: UM tópico específico, perguntas já feitas, contexto da empresa.

CRÍTICO: Gere **APENAS** perguntas de entrevista sobre o tópico "{topic}". NÃO pergunte sobre outros tópicos.

Output: **1 pergunta de entrevista em português brasileiro**, **≤{self.question_max_words} palavras**, clara, direta.
Comece com Como/Por que/Qual/Fale sobre/Descreva/Conte. **Sem duplicatas.**
**Retorne apenas a pergunta.**"""

        asked_csv = ", ".join(asked)[:200]
        user = f"""TÓPICO ESPECÍFICO: "{topic}"
Perguntas já feitas: {asked_csv or "nenhuma"}
Pontos relevantes da vaga: {self.question_context(context)}

Gere uma pergunta APENAS sobre "{topic}". Não pergunte sobre outros tópicos."""
        return system, user

    def evaluation_prompt(self, question: str, answer: str) -> tuple[str, str]:
        """Prompt for scoring an answer; the model must reply with JSON."""
        system = f"""{self.LANGUAGE_RULE}
Papel: Coach de Entrevistas Profissionais. Input: pergunta, resposta.
Avalie **clareza, relevância, estrutura, confiança**.
Retorne **JSON** apenas:
{{"score":0-100,"strengths":["..."],"fixes":["..."],"tts":"<={self.feedback_max_length} chars dica do coach"}}

* tts fala **1 força + 1 melhoria** em tom empático mas direto, em português brasileiro.
* Máx 2 itens em cada lista.
* Seja específico (ex.: "use método STAR", "dê números/resultados")."""

        user = json.dumps(
            {"question": question[:200], "answer": answer[:1000]},
            ensure_ascii=False,
        )
        return system, user

    def summary_prompt(self, history_payload: list[dict]) -> tuple[str, str]:
        """Prompt for the closing markdown summary."""
        system = f"""{self.LANGUAGE_RULE}
Papel: Coach de Entrevistas. Input: array de QA (cada item tem pergunta, resposta, pontuação, pontos fortes, melhorias).
Output Markdown **≤{self.summary_max_length} caracteres**:

* Pontuação Geral: X/100 (média)
* **3 pontos fortes** (bullets)
* **3 melhorias** (bullets)
* **1 dica prática** (1 linha)
Retorne apenas o markdown em português brasileiro."""

        user = json.dumps(history_payload, ensure_ascii=False)[:3000]
        return system, user
