"""Provider registry and the supported chat model catalog."""
import logging
from typing import Callable, Dict, List, Optional

from google import genai
from openai import AsyncOpenAI
from pydantic import BaseModel

from app.config import Settings
from app.errors import ConfigurationError
from app.services.providers.base import ChatProvider, InterviewProvider
from app.services.providers.gemini_provider import GeminiChatProvider
from app.services.providers.openai_provider import OpenAIChatProvider, OpenAIInterviewProvider

logger = logging.getLogger(__name__)


class ModelConfig(BaseModel):
    name: str
    max_tokens: int
    temperature: float = 0.7
    supports_streaming: bool = True


CHAT_MODELS: Dict[str, Dict[str, ModelConfig]] = {
    "gemini": {
        "gemini-2.0-flash": ModelConfig(name="gemini-2.0-flash", max_tokens=8192),
        "gemini-2.5-flash": ModelConfig(name="gemini-2.5-flash", max_tokens=8192),
        "gemini-1.5-pro": ModelConfig(name="gemini-1.5-pro", max_tokens=8192),
    },
    "openai": {
        "gpt-4o-mini": ModelConfig(name="gpt-4o-mini", max_tokens=4096),
        "gpt-4o": ModelConfig(name="gpt-4o", max_tokens=4096),
    },
}


class ModelCatalog:
    """Allow-list of chat models for the configured chat provider."""

    def __init__(self, provider: str, models: Optional[Dict[str, ModelConfig]] = None):
        if models is None:
            models = CHAT_MODELS.get(provider)
        if not models:
            raise ConfigurationError(f"No chat models known for provider '{provider}'")
        self.provider = provider
        self.models = models

    @property
    def default_model(self) -> str:
        return next(iter(self.models))

    def validate_model(self, name: str) -> bool:
        return name in self.models

    def supported_models(self) -> List[str]:
        return list(self.models)

    def get(self, name: str) -> Optional[ModelConfig]:
        return self.models.get(name)


def _openai_interview(settings: Settings) -> InterviewProvider:
    return OpenAIInterviewProvider(
        AsyncOpenAI(api_key=settings.openai_api_key),
        model=settings.interview_model,
        transcription_model=settings.transcription_model,
    )


def _groq_interview(settings: Settings) -> InterviewProvider:
    return OpenAIInterviewProvider(
        AsyncOpenAI(api_key=settings.groq_api_key, base_url=settings.groq_base_url),
        model=settings.interview_model,
        transcription_model=settings.transcription_model,
        name="groq",
    )


def _openai_chat(settings: Settings) -> ChatProvider:
    return OpenAIChatProvider(AsyncOpenAI(api_key=settings.openai_api_key))


def _gemini_chat(settings: Settings) -> ChatProvider:
    return GeminiChatProvider(genai.Client(api_key=settings.gemini_api_key))


INTERVIEW_PROVIDERS: Dict[str, Callable[[Settings], InterviewProvider]] = {
    "openai": _openai_interview,
    "groq": _groq_interview,
}

CHAT_PROVIDERS: Dict[str, Callable[[Settings], ChatProvider]] = {
    "openai": _openai_chat,
    "gemini": _gemini_chat,
}


def create_interview_provider(settings: Settings) -> InterviewProvider:
    factory = INTERVIEW_PROVIDERS.get(settings.interview_provider)
    if factory is None:
        raise ConfigurationError(f"Unknown interview provider '{settings.interview_provider}'")
    logger.info("Using interview provider: %s", settings.interview_provider)
    return factory(settings)


def create_chat_provider(settings: Settings) -> ChatProvider:
    factory = CHAT_PROVIDERS.get(settings.chat_provider)
    if factory is None:
        raise ConfigurationError(f"Unknown chat provider '{settings.chat_provider}'")
    logger.info("Using chat provider: %s", settings.chat_provider)
    return factory(settings)
