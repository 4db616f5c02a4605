"""Third-party service clients."""

from seo_analyzer.integrations.llm_client import LLMClient

__all__ = ["LLMClient"]
