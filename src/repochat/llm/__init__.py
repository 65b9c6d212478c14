"""LLM clients for repochat."""

from repochat.llm.custom_endpoint import CustomEndpointLLM
from repochat.llm.factory import ChatModel, ModelRunner, create_llm
from repochat.llm.workers_ai import WorkersAIChatModel, WorkersAIClient

__all__ = [
    "ChatModel",
    "CustomEndpointLLM",
    "ModelRunner",
    "WorkersAIChatModel",
    "WorkersAIClient",
    "create_llm",
]
