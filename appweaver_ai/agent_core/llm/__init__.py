"""Language-model client abstraction and its pydantic-ai implementation."""

from .base import ModelClient
from .pydantic_ai_client import PydanticAIModelClient, build_model

__all__ = ["ModelClient", "PydanticAIModelClient", "build_model"]
