"""OpenRouter infrastructure package."""

from .openrouter_embedding_provider import OpenRouterEmbeddingProvider, classify_status

__all__ = ["OpenRouterEmbeddingProvider", "classify_status"]
