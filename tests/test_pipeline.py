"""Tests for the check pipeline, recommendation providers, scoring and the analyzer."""

from unittest.mock import AsyncMock

import pytest

from seo_analyzer.exceptions import FetchError, InvalidInputError, RecommendationProviderError
from seo_analyzer.modules.onpage_seo.analyzer import OnPageAnalyzer
from seo_analyzer.modules.onpage_seo.checks import (
    REGISTRY,
    AdviceKind,
    CheckDescriptor,
    CheckId,
    canonical_checks,
)
from seo_analyzer.modules.onpage_seo.document import (
    AnalysisResult,
    CheckResult,
    Document,
    Priority,
)
from seo_analyzer.modules.onpage_seo.extractor import PageExtractor
from seo_analyzer.modules.onpage_seo.pipeline import (
    EVALUATION_ERROR_DESCRIPTION,
    Tally,
    fold,
    run_checks,
)
from seo_analyzer.modules.onpage_seo.recommendations import (
    EMPTY_RESPONSE_MESSAGE,
    UNAVAILABLE_MESSAGE,
    LLMRecommendationProvider,
    StaticRecommendationProvider,
    static_advice,
)
from seo_analyzer.modules.onpage_seo.scoring import rating_for, score, weight_for

URL = "https://example.com/blue-widgets"
KEYPHRASE = "blue widgets"


class FailingProvider:
    async def generate(self, check_title, keyphrase, context=None):
        raise RecommendationProviderError("service down")


class EmptyProvider:
    async def generate(self, check_title, keyphrase, context=None):
        return ""


def _document(page_builder, internal_links=False):
    return PageExtractor().parse(page_builder(internal_links=internal_links), URL)


def _exploding(ctx):
    raise AttributeError("'NoneType' object has no attribute 'lower'")


# ===========================================================================
# 1. Pipeline invariants
# ===========================================================================
class TestPipelineInvariants:

    @pytest.mark.asyncio
    async def test_counts_match_checks_on_empty_document(self):
        result = await run_checks(Document(), KEYPHRASE, URL)
        assert len(result.checks) == 17
        assert result.passed_checks + result.failed_checks == len(result.checks)

    @pytest.mark.asyncio
    async def test_results_follow_canonical_order(self):
        result = await run_checks(Document(), KEYPHRASE, URL)
        assert [c.title for c in result.checks] == [d.title for d in canonical_checks()]

    @pytest.mark.asyncio
    async def test_passed_checks_have_no_recommendation(self, page_builder):
        result = await run_checks(_document(page_builder), KEYPHRASE, URL)
        for check in result.checks:
            if check.passed:
                assert check.recommendation is None
                assert "recommendation" not in check.to_dict()

    @pytest.mark.asyncio
    async def test_failed_external_advice_checks_carry_recommendation(self):
        result = await run_checks(Document(), KEYPHRASE, URL)
        external = {
            d.title for d in canonical_checks() if d.advice is AdviceKind.NEEDS_EXTERNAL_ADVICE
        }
        failed_external = [c for c in result.checks if not c.passed and c.title in external]
        assert failed_external
        for check in failed_external:
            assert check.recommendation

    @pytest.mark.asyncio
    async def test_self_describing_checks_skip_provider(self, mock_llm_client):
        provider = LLMRecommendationProvider(mock_llm_client)
        result = await run_checks(Document(), KEYPHRASE, URL, provider=provider)
        by_title = {c.title: c for c in result.checks}
        assert by_title["Content Length"].recommendation is None
        assert by_title["Heading Hierarchy"].recommendation is None
        prompts = [call.args[0] for call in mock_llm_client.generate_text.call_args_list]
        assert not any('"Content Length"' in p for p in prompts)
        assert any('"Keyphrase in Title"' in p for p in prompts)

    @pytest.mark.asyncio
    async def test_priorities_attached(self):
        result = await run_checks(Document(), KEYPHRASE, URL)
        for check in result.checks:
            assert check.priority is REGISTRY[CheckId(check.title)].priority

    def test_fold_accumulates(self):
        tally = Tally()
        tally = fold(tally, CheckResult("a", "", True, Priority.HIGH))
        tally = fold(tally, CheckResult("b", "", False, Priority.LOW))
        tally = fold(tally, CheckResult("c", "", False, Priority.LOW))
        assert (tally.passed, tally.failed, len(tally.results)) == (1, 2, 3)


# ===========================================================================
# 2. Error recovery
# ===========================================================================
class TestErrorRecovery:

    @pytest.mark.asyncio
    async def test_provider_error_becomes_fallback_text(self):
        result = await run_checks(Document(), KEYPHRASE, URL, provider=FailingProvider())
        title_check = result.checks[0]
        assert title_check.title == "Keyphrase in Title"
        assert not title_check.passed
        assert title_check.recommendation == UNAVAILABLE_MESSAGE

    @pytest.mark.asyncio
    async def test_provider_error_never_changes_pass_status(self, page_builder):
        document = _document(page_builder)
        baseline = await run_checks(document, KEYPHRASE, URL)
        degraded = await run_checks(document, KEYPHRASE, URL, provider=FailingProvider())
        assert [c.passed for c in baseline.checks] == [c.passed for c in degraded.checks]

    @pytest.mark.asyncio
    async def test_empty_advice_becomes_fallback_text(self):
        result = await run_checks(Document(), KEYPHRASE, URL, provider=EmptyProvider())
        assert result.checks[0].recommendation == UNAVAILABLE_MESSAGE

    @pytest.mark.asyncio
    async def test_raising_check_recorded_as_failed(self, page_builder):
        checks = []
        for descriptor in canonical_checks():
            if descriptor.check_id is CheckId.KEYPHRASE_IN_TITLE:
                descriptor = CheckDescriptor(
                    check_id=descriptor.check_id,
                    priority=descriptor.priority,
                    advice=descriptor.advice,
                    success_message=descriptor.success_message,
                    failure_template=descriptor.failure_template,
                    evaluate=_exploding,
                )
            checks.append(descriptor)

        result = await run_checks(_document(page_builder), KEYPHRASE, URL, checks=checks)
        broken = result.checks[0]
        assert not broken.passed
        assert broken.description == EVALUATION_ERROR_DESCRIPTION
        assert broken.priority is Priority.HIGH
        assert broken.recommendation == UNAVAILABLE_MESSAGE
        assert len(result.checks) == 17
        assert result.passed_checks + result.failed_checks == 17


# ===========================================================================
# 3. Recommendation providers
# ===========================================================================
class TestRecommendationProviders:

    @pytest.mark.asyncio
    async def test_llm_provider_uses_client(self, mock_llm_client):
        provider = LLMRecommendationProvider(mock_llm_client, max_tokens=150)
        text = await provider.generate("Keyphrase in Title", KEYPHRASE, "Shop Widgets")
        assert text.startswith("Here is a better title")
        prompt = mock_llm_client.generate_text.call_args.args[0]
        assert '"Keyphrase in Title"' in prompt
        assert "Current content: Shop Widgets" in prompt
        assert mock_llm_client.generate_text.call_args.kwargs["max_tokens"] == 150

    @pytest.mark.asyncio
    async def test_llm_provider_never_raises(self, mock_llm_client):
        mock_llm_client.generate_text = AsyncMock(side_effect=RecommendationProviderError("quota"))
        provider = LLMRecommendationProvider(mock_llm_client)
        assert await provider.generate("Keyphrase in Title", KEYPHRASE) == UNAVAILABLE_MESSAGE

    @pytest.mark.asyncio
    async def test_llm_provider_empty_response(self, mock_llm_client):
        mock_llm_client.generate_text = AsyncMock(return_value="   ")
        provider = LLMRecommendationProvider(mock_llm_client)
        assert await provider.generate("Keyphrase in Title", KEYPHRASE) == EMPTY_RESPONSE_MESSAGE

    @pytest.mark.asyncio
    async def test_disabled_provider_uses_static_advice(self, mock_llm_client):
        provider = LLMRecommendationProvider(mock_llm_client, enabled=False)
        text = await provider.generate("Keyphrase in URL", KEYPHRASE)
        assert not provider.uses_llm
        assert "/blue-widgets" in text
        mock_llm_client.generate_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_client_uses_static_advice(self, mock_llm_client):
        mock_llm_client.is_configured = False
        provider = LLMRecommendationProvider(mock_llm_client)
        text = await provider.generate("Internal Links", KEYPHRASE)
        assert text == static_advice("Internal Links", KEYPHRASE)
        mock_llm_client.generate_text.assert_not_called()

    def test_static_advice_covers_every_external_advice_check(self):
        for descriptor in canonical_checks():
            if descriptor.advice is not AdviceKind.NEEDS_EXTERNAL_ADVICE:
                continue
            text = static_advice(descriptor.title, KEYPHRASE)
            assert not text.startswith("Review the page"), descriptor.title

    def test_static_url_advice_uses_slug(self):
        assert "/blue-widgets" in static_advice(CheckId.KEYPHRASE_IN_URL.value, KEYPHRASE)

    @pytest.mark.asyncio
    async def test_static_provider_unknown_title(self):
        text = await StaticRecommendationProvider().generate("Something New", KEYPHRASE)
        assert '"Something New"' in text


# ===========================================================================
# 4. Scoring
# ===========================================================================
def _checks(*flags_and_priorities):
    return [
        CheckResult(title=f"c{i}", description="", passed=passed, priority=priority)
        for i, (passed, priority) in enumerate(flags_and_priorities)
    ]


class TestScoring:

    def test_all_passed_scores_100(self):
        assert score(_checks((True, Priority.HIGH), (True, Priority.LOW))) == 100

    def test_all_failed_scores_0(self):
        assert score(_checks((False, Priority.HIGH), (False, Priority.MEDIUM))) == 0

    def test_empty_scores_0(self):
        assert score([]) == 0

    def test_weighted(self):
        # earned 3 of 3 + 2 + 1
        assert score(_checks(
            (True, Priority.HIGH), (False, Priority.MEDIUM), (False, Priority.LOW),
        )) == 50

    def test_half_points_round_up(self):
        # earned 1 of 1 + 2 + 2 + 3 -> 12.5
        assert score(_checks(
            (True, Priority.LOW), (False, Priority.MEDIUM),
            (False, Priority.MEDIUM), (False, Priority.HIGH),
        )) == 13

    def test_unknown_priority_weighs_as_medium(self):
        assert weight_for("urgent") == weight_for(Priority.MEDIUM) == 2

    @pytest.mark.parametrize("value, rating", [
        (100, "Excellent"),
        (90, "Excellent"),
        (89, "Very Good"),
        (75, "Good"),
        (60, "Fair"),
        (55, "Needs Work"),
        (49, "Poor"),
        (0, "Poor"),
    ])
    def test_rating_bands(self, value, rating):
        assert rating_for(value) == rating


# ===========================================================================
# 5. Analyzer end to end
# ===========================================================================
class StubExtractor:
    def __init__(self, html=None, error=None):
        self._html = html
        self._error = error
        self.calls = 0

    async def extract(self, url):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return PageExtractor().parse(self._html, url)


class TestAnalyzer:

    @pytest.mark.asyncio
    async def test_only_internal_links_fails(self, page_builder):
        extractor = StubExtractor(html=page_builder())
        analyzer = OnPageAnalyzer(provider=StaticRecommendationProvider(), extractor=extractor)
        result = await analyzer.analyze(URL, KEYPHRASE)

        failed = [c.title for c in result.checks if not c.passed]
        assert failed == ["Internal Links"]
        assert result.failed_checks == 1
        assert result.passed_checks == 16
        assert result.checks[10].recommendation
        # (36 - 2) / 36 weighted points
        assert result.score == 94
        assert result.rating == "Excellent"
        assert result.url == URL
        assert result.keyphrase == KEYPHRASE

    @pytest.mark.asyncio
    async def test_fully_optimized_page_scores_100(self, page_builder):
        extractor = StubExtractor(html=page_builder(internal_links=True))
        analyzer = OnPageAnalyzer(provider=StaticRecommendationProvider(), extractor=extractor)
        result = await analyzer.analyze(URL, KEYPHRASE)
        assert result.failed_checks == 0
        assert result.score == 100

    @pytest.mark.asyncio
    async def test_bare_page(self, bare_page_html):
        extractor = StubExtractor(html=bare_page_html)
        analyzer = OnPageAnalyzer(provider=StaticRecommendationProvider(), extractor=extractor)
        result = await analyzer.analyze(URL, KEYPHRASE)
        assert result.failed_checks > result.passed_checks
        assert result.rating == "Poor"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url, keyphrase", [
        ("", KEYPHRASE),
        ("ftp://example.com/file", KEYPHRASE),
        ("not a url", KEYPHRASE),
        (URL, ""),
        (URL, "   "),
        (URL, "x" * 201),
    ])
    async def test_invalid_input_rejected_before_fetch(self, url, keyphrase):
        extractor = StubExtractor(html="<html></html>")
        analyzer = OnPageAnalyzer(provider=StaticRecommendationProvider(), extractor=extractor)
        with pytest.raises(InvalidInputError):
            await analyzer.analyze(url, keyphrase)
        assert extractor.calls == 0

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self):
        extractor = StubExtractor(error=FetchError(URL, "HTTP 404", status=404))
        analyzer = OnPageAnalyzer(provider=StaticRecommendationProvider(), extractor=extractor)
        with pytest.raises(FetchError):
            await analyzer.analyze(URL, KEYPHRASE)

    @pytest.mark.asyncio
    async def test_generate_report(self, bare_page_html):
        extractor = StubExtractor(html=bare_page_html)
        analyzer = OnPageAnalyzer(provider=StaticRecommendationProvider(), extractor=extractor)
        result = await analyzer.analyze(URL, KEYPHRASE)
        report = analyzer.generate_report(result)

        priorities = [issue["priority"] for issue in report["issues"]]
        order = {"high": 0, "medium": 1, "low": 2}
        assert priorities == sorted(priorities, key=order.get)
        summary = report["issues_summary"]
        assert summary["total"] == result.failed_checks
        assert summary["high_priority"] + summary["medium_priority"] + summary["low_priority"] == summary["total"]
        assert len(report["passed"]) == result.passed_checks
        assert report["score"] == result.score

    def test_to_dict_shape(self):
        check = CheckResult("Internal Links", "none", False, Priority.MEDIUM, "Add links")
        result = AnalysisResult(
            checks=(check,), passed_checks=0, failed_checks=1,
            url=URL, keyphrase=KEYPHRASE, score=0, rating="Poor",
        )
        assert result.to_dict() == {
            "url": URL,
            "keyphrase": KEYPHRASE,
            "checks": [{
                "title": "Internal Links",
                "description": "none",
                "passed": False,
                "priority": "medium",
                "recommendation": "Add links",
            }],
            "passedChecks": 0,
            "failedChecks": 1,
            "score": 0,
            "rating": "Poor",
        }
