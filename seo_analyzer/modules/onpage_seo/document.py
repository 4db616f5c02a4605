"""Immutable data model shared by the extractor, check pipeline and scoring."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ---------------------------------------------------------------------------
# Extracted page structure
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class Image:
    src: str
    alt: str


@dataclass(frozen=True)
class OpenGraph:
    title: str = ""
    description: str = ""
    image: str = ""
    image_width: str = ""
    image_height: str = ""


@dataclass(frozen=True)
class Resource:
    """A JavaScript or CSS resource referenced by the page.

    Inline blocks carry the sentinel url ``inline-script`` / ``inline-style``
    and their raw content.
    """

    url: str
    is_minified: bool
    inline_content: Optional[str] = None

    @property
    def is_inline(self) -> bool:
        return self.inline_content is not None


@dataclass(frozen=True)
class Resources:
    scripts: tuple[Resource, ...] = ()
    stylesheets: tuple[Resource, ...] = ()

    @property
    def all(self) -> tuple[Resource, ...]:
        return self.scripts + self.stylesheets


@dataclass(frozen=True)
class SchemaInfo:
    detected: bool = False
    types: tuple[str, ...] = ()


@dataclass(frozen=True)
class Document:
    """Normalized view of one fetched page.  Built once per analysis."""

    title: str = ""
    meta_description: str = ""
    body_text: str = ""
    paragraphs: tuple[str, ...] = ()
    headings: tuple[Heading, ...] = ()
    images: tuple[Image, ...] = ()
    internal_links: tuple[str, ...] = ()
    outbound_links: tuple[str, ...] = ()
    open_graph: OpenGraph = field(default_factory=OpenGraph)
    resources: Resources = field(default_factory=Resources)
    schema: SchemaInfo = field(default_factory=SchemaInfo)

    @property
    def subheadings(self) -> tuple[str, ...]:
        """Heading texts with levels erased (keyword presence only)."""
        return tuple(h.text for h in self.headings)

    @property
    def introduction(self) -> Optional[str]:
        return self.paragraphs[0] if self.paragraphs else None

    def headings_at(self, level: int) -> list[Heading]:
        return [h for h in self.headings if h.level == level]


# ---------------------------------------------------------------------------
# Check results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckResult:
    title: str
    description: str
    passed: bool
    priority: Priority
    recommendation: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "passed": self.passed,
            "priority": self.priority.value,
        }
        if self.recommendation:
            data["recommendation"] = self.recommendation
        return data


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one pipeline run.

    ``passed_checks + failed_checks == len(checks)`` holds by construction
    (see ``pipeline.run_checks``).
    """

    checks: tuple[CheckResult, ...]
    passed_checks: int
    failed_checks: int
    url: str = ""
    keyphrase: str = ""
    score: int = 0
    rating: str = ""
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "keyphrase": self.keyphrase,
            "checks": [c.to_dict() for c in self.checks],
            "passedChecks": self.passed_checks,
            "failedChecks": self.failed_checks,
            "score": self.score,
            "rating": self.rating,
        }
