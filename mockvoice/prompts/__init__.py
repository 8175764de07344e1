"""
Prompt templates and spoken lines for MockVoice

Contains:
- Coach prompts (context, question, evaluation, summary)
- Scripted pt-BR messages and fallbacks
"""

from mockvoice.prompts.coach import CoachPrompts

__all__ = [
    "CoachPrompts",
]
