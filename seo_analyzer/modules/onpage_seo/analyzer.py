"""On-Page Analyzer: keyphrase-focused SEO analysis of a single page.

Fetches and extracts the page, runs the check pipeline, and scores the
result.  Recommendations for failed checks come from a pluggable provider
(LLM-backed by default).
"""

import dataclasses
import logging
import time
from typing import Any, Optional

from seo_analyzer.exceptions import InvalidInputError
from seo_analyzer.modules.onpage_seo.document import AnalysisResult, Document
from seo_analyzer.modules.onpage_seo.extractor import PageExtractor
from seo_analyzer.modules.onpage_seo.pipeline import run_checks
from seo_analyzer.modules.onpage_seo.recommendations import (
    LLMRecommendationProvider,
    RecommendationProvider,
)
from seo_analyzer.modules.onpage_seo.scoring import rating_for, score
from seo_analyzer.utils.validators import validate_keyphrase, validate_url

logger = logging.getLogger(__name__)

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


class OnPageAnalyzer:
    """Analyse one URL against a target keyphrase.

    Usage::

        analyzer = OnPageAnalyzer(llm_client=llm)
        result = await analyzer.analyze("https://example.com/blue-widgets", "blue widgets")
        report = analyzer.generate_report(result)

    Every call builds its own document and pipeline run; nothing is cached
    between analyses.
    """

    def __init__(
        self,
        llm_client: Optional[Any] = None,
        provider: Optional[RecommendationProvider] = None,
        extractor: Optional[PageExtractor] = None,
        timeout: float = 30,
    ) -> None:
        self._provider = provider or LLMRecommendationProvider(llm_client)
        self._extractor = extractor or PageExtractor(timeout=timeout)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def analyze(self, url: str, keyphrase: str) -> AnalysisResult:
        """Fetch *url* and evaluate it against *keyphrase*.

        Raises:
            InvalidInputError: URL or keyphrase missing or malformed.
            FetchError: the page could not be downloaded.
            ParseError: the page could not be parsed.
        """
        url, keyphrase = self.validate(url, keyphrase)
        start = time.monotonic()
        logger.info("Starting on-page analysis for %s (keyphrase: %s)", url, keyphrase)

        document = await self._extractor.extract(url)
        result = await self.analyze_document(document, url, keyphrase)

        elapsed = round(time.monotonic() - start, 2)
        logger.info(
            "On-page analysis complete for %s: score=%d (%s), %d passed / %d failed in %.2fs",
            url, result.score, result.rating, result.passed_checks, result.failed_checks, elapsed,
        )
        return dataclasses.replace(result, elapsed_seconds=elapsed)

    async def analyze_document(
        self, document: Document, url: str, keyphrase: str
    ) -> AnalysisResult:
        """Run the check pipeline and scoring over an already extracted document."""
        result = await run_checks(document, keyphrase, url, provider=self._provider)
        value = score(result.checks)
        return dataclasses.replace(result, score=value, rating=rating_for(value))

    @staticmethod
    def validate(url: str, keyphrase: str) -> tuple[str, str]:
        """Reject missing or malformed input before any processing."""
        ok, error = validate_url(url)
        if not ok:
            raise InvalidInputError(error)
        ok, error = validate_keyphrase(keyphrase)
        if not ok:
            raise InvalidInputError(error)
        return url.strip(), keyphrase.strip()

    # ------------------------------------------------------------------
    # Report generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_report(result: AnalysisResult) -> dict[str, Any]:
        """Compile the checks into a prioritized issue report."""
        issues = [
            {
                "title": c.title,
                "priority": c.priority.value,
                "description": c.description,
                "recommendation": c.recommendation or "",
            }
            for c in result.checks
            if not c.passed
        ]
        issues.sort(key=lambda i: _PRIORITY_ORDER.get(i["priority"], 3))

        return {
            "url": result.url,
            "keyphrase": result.keyphrase,
            "score": result.score,
            "rating": result.rating,
            "issues_summary": {
                "total": len(issues),
                "high_priority": sum(1 for i in issues if i["priority"] == "high"),
                "medium_priority": sum(1 for i in issues if i["priority"] == "medium"),
                "low_priority": sum(1 for i in issues if i["priority"] == "low"),
            },
            "issues": issues,
            "passed": [c.title for c in result.checks if c.passed],
        }
