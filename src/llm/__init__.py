"""LLM clients."""

from src.llm.openai_client import OpenAICompatibleClient

__all__ = ["OpenAICompatibleClient"]
