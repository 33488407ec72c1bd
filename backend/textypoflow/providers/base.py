"""Generation provider abstraction for pluggable text/image backends."""
from abc import ABC, abstractmethod


class ProviderError(Exception):
    """A generation call failed. The message is shown on the failing node."""


class GenerationProvider(ABC):
    """
    Abstract generation provider - plug in any text/image backend.

    Both calls are single-shot: no retries, no caching. Implementations
    raise ProviderError with a user-facing message on any failure
    (missing credential, network error, empty or malformed response).
    """

    @abstractmethod
    async def generate_text(self, prompt: str, system_instruction: str) -> str:
        """
        Generate text for ``prompt`` under ``system_instruction``.

        Returns:
            The generated text (never empty)
        """
        ...

    @abstractmethod
    async def generate_image(self, prompt: str, aspect_ratio: str) -> str:
        """
        Generate an image for ``prompt``.

        Args:
            prompt: Image description
            aspect_ratio: One of graph.ASPECT_RATIOS, e.g. "16:9"

        Returns:
            Base64-encoded raster image
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
