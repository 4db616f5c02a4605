"""Check Pipeline: evaluates every registered check against one document.

The run is a fold over the canonical check list: each step evaluates one
check, optionally asks the recommendation provider for advice, and returns a
new tally of ``(results, passed, failed)``.  A check that raises is recorded
as failed; the batch always completes.
"""

import logging
from typing import NamedTuple, Optional, Sequence

from seo_analyzer.exceptions import CheckEvaluationError
from seo_analyzer.modules.onpage_seo.checks import (
    AdviceKind,
    CheckContext,
    CheckDescriptor,
    canonical_checks,
)
from seo_analyzer.modules.onpage_seo.document import AnalysisResult, CheckResult, Document
from seo_analyzer.modules.onpage_seo.recommendations import (
    UNAVAILABLE_MESSAGE,
    RecommendationProvider,
    StaticRecommendationProvider,
)

logger = logging.getLogger(__name__)

EVALUATION_ERROR_DESCRIPTION = (
    "This check could not be evaluated because of an unexpected error while "
    "reading the page. Review this element manually."
)


class Tally(NamedTuple):
    results: tuple[CheckResult, ...] = ()
    passed: int = 0
    failed: int = 0


def fold(tally: Tally, result: CheckResult) -> Tally:
    """Append *result* to *tally* and bump the matching counter."""
    if result.passed:
        return Tally(tally.results + (result,), tally.passed + 1, tally.failed)
    return Tally(tally.results + (result,), tally.passed, tally.failed + 1)


async def _advise(
    provider: RecommendationProvider, title: str, keyphrase: str, context: str
) -> str:
    try:
        advice = await provider.generate(title, keyphrase, context)
    except Exception as exc:
        logger.warning("Recommendation provider raised for %r: %s", title, exc)
        return UNAVAILABLE_MESSAGE
    return advice or UNAVAILABLE_MESSAGE


async def evaluate_check(
    descriptor: CheckDescriptor,
    ctx: CheckContext,
    provider: RecommendationProvider,
) -> CheckResult:
    """Evaluate one check and build its immutable result."""
    try:
        outcome = descriptor.evaluate(ctx)
        description = descriptor.describe(outcome, ctx.keyphrase)
    except Exception as exc:
        error = CheckEvaluationError(descriptor.title, exc)
        logger.error("%s", error, exc_info=True)
        recommendation = None
        if descriptor.advice is AdviceKind.NEEDS_EXTERNAL_ADVICE:
            recommendation = UNAVAILABLE_MESSAGE
        return CheckResult(
            title=descriptor.title,
            description=EVALUATION_ERROR_DESCRIPTION,
            passed=False,
            priority=descriptor.priority,
            recommendation=recommendation,
        )

    recommendation: Optional[str] = None
    if not outcome.passed:
        if descriptor.advice is AdviceKind.NEEDS_EXTERNAL_ADVICE:
            recommendation = await _advise(provider, descriptor.title, ctx.keyphrase, outcome.context)
        else:
            recommendation = outcome.recommendation

    return CheckResult(
        title=descriptor.title,
        description=description,
        passed=outcome.passed,
        priority=descriptor.priority,
        recommendation=recommendation,
    )


async def run_checks(
    document: Document,
    keyphrase: str,
    source_url: str,
    provider: Optional[RecommendationProvider] = None,
    checks: Optional[Sequence[CheckDescriptor]] = None,
) -> AnalysisResult:
    """Run every check in canonical order and aggregate pass/fail counts."""
    provider = provider or StaticRecommendationProvider()
    checks = canonical_checks() if checks is None else checks
    ctx = CheckContext(document, keyphrase, source_url)

    tally = Tally()
    for descriptor in checks:
        result = await evaluate_check(descriptor, ctx, provider)
        logger.debug("%s: %s", result.title, "passed" if result.passed else "failed")
        tally = fold(tally, result)

    return AnalysisResult(
        checks=tally.results,
        passed_checks=tally.passed,
        failed_checks=tally.failed,
        url=source_url,
        keyphrase=keyphrase,
    )
