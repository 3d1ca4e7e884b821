"""Per-tenant wiring of the drafting pipeline."""

from fastapi import Request

from voiceprint.config import Settings, get_settings
from voiceprint.core.engine import ResponseEngine
from voiceprint.core.llm_client import LLMClient
from voiceprint.schemas.message import ResponseConfig
from voiceprint.services.channels import ChannelAdapter
from voiceprint.services.draft_generator import DraftGenerator
from voiceprint.services.inbox import MessageInbox
from voiceprint.services.message_analyzer import MessageAnalyzer
from voiceprint.services.profile_store import StyleProfileStore
from voiceprint.services.style_refiner import StyleRefiner
from voiceprint.services.voice_learning import VoiceLearningService


def config_from_settings(settings: Settings) -> ResponseConfig:
    """Initial response config taken from settings."""
    return ResponseConfig(
        user_name=settings.user_name,
        user_role=settings.user_role,
        company_name=settings.company_name,
        custom_instructions=settings.custom_instructions,
        include_signature=settings.include_signature,
        max_response_length=settings.max_response_length,
        org_context=settings.org_context,
    )


class VoiceContext:
    """
    Owns every piece of mutable state for one user: the contact style
    store, the voice profile, the response config and the inbox.

    Create one per tenant and pass it down; nothing here is module-global.
    """

    def __init__(
        self,
        llm: LLMClient | None = None,
        adapters: list[ChannelAdapter] | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.llm = llm or LLMClient()
        self.adapters = adapters or []

        self.refiner = StyleRefiner(self.llm)
        self.store = StyleProfileStore()
        self.voice = VoiceLearningService(adapters=self.adapters, refiner=self.refiner, settings=self.settings)
        self.engine = ResponseEngine(
            analyzer=MessageAnalyzer(self.llm),
            generator=DraftGenerator(self.llm, config_from_settings(self.settings)),
            store=self.store,
            voice=self.voice,
            refiner=self.refiner,
            settings=self.settings,
        )
        self.inbox = MessageInbox(self.engine, adapters=self.adapters, settings=self.settings)


def get_voice_context(request: Request) -> VoiceContext:
    """FastAPI dependency returning the application's context."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        context = VoiceContext()
        request.app.state.context = context
    return context
