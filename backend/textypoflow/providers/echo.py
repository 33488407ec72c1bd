"""Offline provider for development: deterministic, no network."""
from .base import GenerationProvider

# 1x1 transparent PNG
_PLACEHOLDER_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)


class EchoProvider(GenerationProvider):
    """Echoes text back and returns a placeholder image."""

    async def generate_text(self, prompt: str, system_instruction: str) -> str:
        if system_instruction:
            return f"[{system_instruction}]\n{prompt}"
        return prompt

    async def generate_image(self, prompt: str, aspect_ratio: str) -> str:
        return _PLACEHOLDER_PNG
