from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """Abstract base class for completion providers."""

    name: str

    @abstractmethod
    async def complete(
        self, messages: list[dict], model: str, api_token: str, **kwargs
    ) -> str:
        """Send ``[{role, content}]`` messages and return the reply text."""
        ...
