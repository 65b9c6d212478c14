"""
LLM factory for creating chat model instances based on configuration.

Provides a unified interface for chat and model-runner clients regardless of
backend (Workers AI, custom OpenAI-compatible endpoint, etc.).
"""

from typing import Any, Protocol


class ChatModel(Protocol):
    """Protocol that all chat clients must implement."""

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Call the model with a message list and return the reply text."""
        ...


class ModelRunner(Protocol):
    """Protocol for remote model invocation (`run(model, inputs) -> payload`)."""

    def run(self, model: str, inputs: dict[str, Any]) -> Any:
        ...

    async def arun(self, model: str, inputs: dict[str, Any]) -> Any:
        ...


def create_llm() -> ChatModel:
    """
    Create a chat client based on configuration settings.

    Returns:
        Chat client that implements the ChatModel protocol

    The function checks settings in this order:
        1. use_custom_endpoint → CustomEndpointLLM
        2. default → WorkersAIChatModel
    """
    from repochat.config import settings

    if settings.use_custom_endpoint:
        from repochat.llm.custom_endpoint import CustomEndpointLLM

        return CustomEndpointLLM(
            endpoint_url=settings.custom_endpoint_url,
            timeout=120,
            max_retries=5,  # Retry up to 5 times for serverless cold starts
            retry_delay=5.0,
        )

    from repochat.llm.workers_ai import WorkersAIChatModel

    return WorkersAIChatModel(model=settings.llm_model)
