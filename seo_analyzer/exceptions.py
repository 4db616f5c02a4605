"""Exception hierarchy for the keyphrase SEO analyzer.

Fatal errors (``FetchError``, ``ParseError``) abort an analysis and are
surfaced to the caller.  ``CheckEvaluationError`` and
``RecommendationProviderError`` are recovered inside the pipeline and the
recommendation provider respectively.
"""


class SEOAnalyzerError(Exception):
    """Base class for every error raised by this package."""


class InvalidInputError(SEOAnalyzerError, ValueError):
    """The URL or keyphrase supplied by the caller is missing or invalid."""


class FetchError(SEOAnalyzerError):
    """The target page could not be downloaded (network, DNS, timeout, HTTP status)."""

    def __init__(self, url: str, reason: str, status: int = 0):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Failed to fetch {url}: {reason}")


class ParseError(SEOAnalyzerError):
    """The downloaded body could not be parsed as HTML."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to parse {url}: {reason}")


class CheckEvaluationError(SEOAnalyzerError):
    """A single check raised while evaluating its predicate."""

    def __init__(self, check_title: str, cause: BaseException):
        self.check_title = check_title
        self.cause = cause
        super().__init__(f"Check {check_title!r} failed to evaluate: {cause}")


class RecommendationProviderError(SEOAnalyzerError):
    """The external text-generation service could not produce advice."""
