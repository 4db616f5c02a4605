"""Recommendation Provider: turns a failed check into concrete, actionable advice.

Contract: ``await provider.generate(check_title, keyphrase, context) -> str``.
The provider never raises to its caller; any failure of the underlying LLM is
converted into a descriptive fallback string.
"""

import logging
from typing import Any, Optional, Protocol

from seo_analyzer.modules.onpage_seo.checks import CheckId

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Unable to generate recommendation. Please try again later."
EMPTY_RESPONSE_MESSAGE = "Unable to generate recommendation at this time."

_SYSTEM_PROMPT = (
    "You are an SEO expert providing actionable recommendations. "
    "Always provide a concrete example incorporating the keyphrase. "
    "Format your response as: \"Here is a better [element]: [concrete example]\". "
    "Keep responses under 155 characters for meta descriptions. "
    "Do not use quotation marks around the example. "
    "Focus on being specific and immediately actionable."
)

_MAX_CONTEXT_CHARS = 1500

# Used when AI advice is switched off or no API key is configured.
_STATIC_ADVICE: dict[CheckId, str] = {
    CheckId.KEYPHRASE_IN_TITLE: (
        "Rewrite the page title so it starts with or naturally includes "
        "\"{keyphrase}\", keeping it under 60 characters."
    ),
    CheckId.KEYPHRASE_IN_META_DESCRIPTION: (
        "Write a 120-155 character meta description that mentions "
        "\"{keyphrase}\" and ends with a clear call to action."
    ),
    CheckId.KEYPHRASE_IN_URL: (
        "Use a short, readable slug that contains the keyphrase, e.g. /{slug}."
    ),
    CheckId.KEYPHRASE_IN_INTRODUCTION: (
        "Mention \"{keyphrase}\" in the first sentence of your opening paragraph."
    ),
    CheckId.KEYPHRASE_IN_H1: (
        "Use exactly one H1 heading and include \"{keyphrase}\" in it."
    ),
    CheckId.KEYPHRASE_IN_H2: (
        "Add at least one H2 subheading that includes \"{keyphrase}\" or its main words."
    ),
    CheckId.IMAGE_ALT_ATTRIBUTES: (
        "Describe at least one relevant image with alt text that includes \"{keyphrase}\"."
    ),
    CheckId.INTERNAL_LINKS: (
        "Link to two or three related pages on your own site using descriptive anchor text."
    ),
    CheckId.OUTBOUND_LINKS: (
        "Cite at least one authoritative external source related to \"{keyphrase}\"."
    ),
    CheckId.OG_TITLE_AND_DESCRIPTION: (
        "Add og:title (10-70 characters) and og:description (100-200 characters) "
        "meta tags that mention \"{keyphrase}\"."
    ),
}


class RecommendationProvider(Protocol):
    async def generate(
        self, check_title: str, keyphrase: str, context: Optional[str] = None
    ) -> str:
        ...


def static_advice(check_title: str, keyphrase: str) -> str:
    """Canned advice for *check_title*, used when generated advice is unavailable."""
    try:
        template = _STATIC_ADVICE[CheckId(check_title)]
    except (ValueError, KeyError):
        return f"Review the page and address the \"{check_title}\" issue for \"{keyphrase}\"."
    slug = "-".join(keyphrase.lower().split())
    return template.format(keyphrase=keyphrase, slug=slug)


class StaticRecommendationProvider:
    """Offline provider returning canned advice per check."""

    async def generate(
        self, check_title: str, keyphrase: str, context: Optional[str] = None
    ) -> str:
        return static_advice(check_title, keyphrase)


class LLMRecommendationProvider:
    """Phrase recommendations with an :class:`~seo_analyzer.integrations.llm_client.LLMClient`.

    When *enabled* is False or the client has no API key configured, canned
    advice is returned instead of calling out.
    """

    def __init__(
        self,
        llm_client: Optional[Any] = None,
        enabled: bool = True,
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> None:
        self._llm = llm_client
        self._enabled = enabled
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def uses_llm(self) -> bool:
        if not self._enabled or self._llm is None:
            return False
        return getattr(self._llm, "is_configured", True)

    async def generate(
        self, check_title: str, keyphrase: str, context: Optional[str] = None
    ) -> str:
        if not self.uses_llm:
            return static_advice(check_title, keyphrase)

        prompt = (
            f"Generate a specific example for fixing this SEO issue: \"{check_title}\" "
            f"for keyphrase \"{keyphrase}\".\n"
            f"Current content: {(context or 'none')[:_MAX_CONTEXT_CHARS]}\n"
            "Remember to format as \"Here is a better [element]:\" followed by your "
            "concrete example without quotation marks."
        )
        try:
            text = await self._llm.generate_text(
                prompt,
                system_prompt=_SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except Exception as exc:
            logger.warning("Recommendation for %r failed: %s", check_title, exc)
            return UNAVAILABLE_MESSAGE

        text = (text or "").strip()
        return text or EMPTY_RESPONSE_MESSAGE
