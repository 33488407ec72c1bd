"""Generation providers."""
from ..config import Settings, settings as default_settings
from .base import GenerationProvider, ProviderError
from .echo import EchoProvider
from .gemini import GeminiProvider


def get_provider(settings: Settings | None = None) -> GenerationProvider:
    """Build the provider named by ``settings.provider``."""
    settings = settings or default_settings
    if settings.provider == "echo":
        return EchoProvider()
    if settings.provider == "gemini":
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            text_model=settings.text_model,
            image_model=settings.image_model,
            api_base=settings.gemini_api_base,
            timeout=settings.provider_timeout,
        )
    raise ValueError(f"Unknown provider: {settings.provider}")


__all__ = [
    "EchoProvider",
    "GeminiProvider",
    "GenerationProvider",
    "ProviderError",
    "get_provider",
]
