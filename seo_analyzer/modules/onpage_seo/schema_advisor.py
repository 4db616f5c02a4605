"""Local structured-data advice for pages without schema markup.

Inspects cheap page signals and suggests schema.org types; no external call.
"""

import logging

from seo_analyzer.modules.onpage_seo.document import Document
from seo_analyzer.utils.validators import is_homepage

logger = logging.getLogger(__name__)

_PRODUCT_KEYWORDS = ("product", "price", "buy")
_ORGANIZATION_KEYWORDS = ("about us", "contact us", "our team")

_ARTICLE_MIN_PARAGRAPHS = 3
_ARTICLE_MIN_AVG_PARAGRAPH_CHARS = 200
_ARTICLE_MANY_PARAGRAPHS = 5

_REASONS: dict[str, str] = {
    "Organization": "describe your business name, logo and contact details",
    "WebSite": "enable sitelinks search box and site name in results",
    "Product": "show price, availability and ratings in search results",
    "Article": "qualify for article rich results with headline, author and date",
    "FAQPage": "display your questions and answers directly in search results",
    "WebPage": "describe the page name, description and main topic",
}


def _looks_like_article(document: Document) -> bool:
    paragraphs = document.paragraphs
    if len(paragraphs) >= _ARTICLE_MANY_PARAGRAPHS:
        return True
    if len(paragraphs) < _ARTICLE_MIN_PARAGRAPHS:
        return False
    avg_length = sum(len(p) for p in paragraphs) / len(paragraphs)
    return avg_length >= _ARTICLE_MIN_AVG_PARAGRAPH_CHARS


def _looks_like_faq(document: Document) -> bool:
    for heading in document.headings:
        text = heading.text.lower()
        if text.endswith("?") or "faq" in text:
            return True
    return "frequently asked" in document.body_text.lower()


def suggest_schema_types(document: Document, url: str) -> list[str]:
    """Return suggested schema.org types, most specific first.

    Falls back to ``WebPage`` when no signal matches.
    """
    suggestions: list[str] = []
    title = document.title.lower()
    body = document.body_text.lower()

    if is_homepage(url):
        suggestions.extend(["Organization", "WebSite"])

    if any(kw in title or kw in body for kw in _PRODUCT_KEYWORDS):
        suggestions.append("Product")

    if _looks_like_article(document):
        suggestions.append("Article")

    if _looks_like_faq(document):
        suggestions.append("FAQPage")

    if any(kw in body for kw in _ORGANIZATION_KEYWORDS) and "Organization" not in suggestions:
        suggestions.append("Organization")

    if not suggestions:
        suggestions.append("WebPage")

    logger.debug("Schema suggestions for %s: %s", url, suggestions)
    return suggestions


def schema_recommendation(document: Document, url: str) -> str:
    """Numbered, human-readable schema advice for *document*."""
    lines = ["Add JSON-LD structured data to this page. Recommended schema types:"]
    for number, schema_type in enumerate(suggest_schema_types(document, url), start=1):
        lines.append(f"{number}. {schema_type} schema to {_REASONS[schema_type]}.")
    return "\n".join(lines)
