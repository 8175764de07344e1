"""
Error taxonomy for MockVoice.

Device and start-up failures end the session; everything raised by the
external services is recovered locally by the session controller.
"""

from enum import Enum


class DeviceErrorKind(str, Enum):
    """Why the microphone or speaker could not be used."""

    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    IN_USE = "in_use"
    UNKNOWN = "unknown"


class MockVoiceError(Exception):
    """Base class for all MockVoice errors."""
    pass


class StateTransitionError(MockVoiceError):
    """Raised when an invalid state transition is attempted."""
    pass


class AudioDeviceError(MockVoiceError):
    """Microphone or audio output failure."""

    def __init__(self, kind: DeviceErrorKind, detail: str = "", device: str = "microphone"):
        self.kind = kind
        self.detail = detail
        self.device = device
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class InitializationTimeoutError(MockVoiceError):
    """Session start-up did not complete in time."""
    pass


class RecordingInProgressError(MockVoiceError):
    """A recording is already active."""
    pass


class RecordingBlockedError(MockVoiceError):
    """Capture was requested while the coach is still speaking."""
    pass


class SynthesisError(MockVoiceError):
    """Text-to-speech failed."""
    pass


class TranscriptionError(MockVoiceError):
    """Speech-to-text failed."""

    def __init__(self, message: str, timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(message)


class LanguageModelError(MockVoiceError):
    """Language model call failed or returned an unusable payload."""
    pass
