"""
API Dependencies

Provides dependency injection for API endpoints.
Manages singleton instances of core components.
"""

import logging

from mockvoice.api.broadcaster import EventBroadcaster
from mockvoice.config.settings import get_settings
from mockvoice.core.devices import SoundDeviceMicrophone, SoundDevicePlayer
from mockvoice.core.language_model import OpenAILanguageModel
from mockvoice.core.session_controller import SessionController
from mockvoice.core.speech import SpeechServices

logger = logging.getLogger(__name__)


# ============================================================================
# SINGLETON INSTANCES
# ============================================================================

_controller: SessionController | None = None
_broadcaster: EventBroadcaster | None = None
_language_model: OpenAILanguageModel | None = None
_speech: SpeechServices | None = None


def get_controller() -> SessionController:
    """
    Get the session controller singleton.

    Lazily initializes the service clients and local audio devices.
    """
    global _controller, _language_model, _speech

    if _controller is None:
        settings = get_settings()
        _language_model = OpenAILanguageModel(settings)
        _speech = SpeechServices(settings)

        _controller = SessionController(
            language_model=_language_model,
            tts=_speech,
            stt=_speech,
            microphone=SoundDeviceMicrophone(settings),
            player=SoundDevicePlayer(),
            settings=settings,
        )

    return _controller


def get_broadcaster() -> EventBroadcaster:
    """Get the event broadcaster singleton."""
    global _broadcaster

    if _broadcaster is None:
        _broadcaster = EventBroadcaster()

    return _broadcaster


async def cleanup():
    """Cleanup resources on shutdown."""
    global _controller, _broadcaster, _language_model, _speech

    if _controller:
        _controller.end_session()
        _controller = None

    if _language_model:
        await _language_model.close()
        _language_model = None

    if _speech:
        await _speech.close()
        _speech = None

    _broadcaster = None
    logger.info("API resources released")
