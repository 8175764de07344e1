"""
Core modules for MockVoice

Contains:
- Session Controller: Turn-taking loop and session lifecycle
- Audio Gate: Serialized coach speech
- Recording Session: One-answer-at-a-time microphone capture
- Transcription Boundary: Speech-to-text outcomes and intent detection
- Dialog Planner: Question generation and follow-up policy
- Language Model / Speech Services: External service clients
"""

from mockvoice.core.audio_gate import AudioGate
from mockvoice.core.dialog_planner import DialogPlanner, LanguageGuard
from mockvoice.core.recording import RecordingSession
from mockvoice.core.session_controller import SessionController
from mockvoice.core.transcription import (
    TranscriptIntent,
    TranscriptionBoundary,
    TranscriptionResult,
    TranscriptStatus,
)

__all__ = [
    "SessionController",
    "AudioGate",
    "RecordingSession",
    "TranscriptionBoundary",
    "TranscriptionResult",
    "TranscriptStatus",
    "TranscriptIntent",
    "DialogPlanner",
    "LanguageGuard",
]
