"""On-Page SEO module: page extraction, keyphrase checks, and scoring."""

from seo_analyzer.modules.onpage_seo.analyzer import OnPageAnalyzer
from seo_analyzer.modules.onpage_seo.checks import CheckId, REGISTRY, canonical_checks
from seo_analyzer.modules.onpage_seo.document import AnalysisResult, CheckResult, Document
from seo_analyzer.modules.onpage_seo.extractor import PageExtractor, is_minified
from seo_analyzer.modules.onpage_seo.pipeline import run_checks
from seo_analyzer.modules.onpage_seo.recommendations import (
    LLMRecommendationProvider,
    StaticRecommendationProvider,
)
from seo_analyzer.modules.onpage_seo.scoring import rating_for, score

__all__ = [
    "OnPageAnalyzer",
    "PageExtractor",
    "is_minified",
    "run_checks",
    "score",
    "rating_for",
    "CheckId",
    "REGISTRY",
    "canonical_checks",
    "Document",
    "CheckResult",
    "AnalysisResult",
    "LLMRecommendationProvider",
    "StaticRecommendationProvider",
]
