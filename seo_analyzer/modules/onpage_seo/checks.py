"""Check registry: every on-page SEO rule, its metadata and its evaluator.

Each check is registered once against a :class:`CheckId` with its priority,
advice capability, success message and failure template.  Evaluators are pure
functions of a :class:`CheckContext` returning an :class:`Outcome`; they never
call out to the network.  Canonical evaluation order is the order of the
``CheckId`` members.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Callable, Optional
from urllib.parse import unquote, urlparse

from seo_analyzer.modules.onpage_seo.document import Document, Priority
from seo_analyzer.modules.onpage_seo.schema_advisor import schema_recommendation
from seo_analyzer.utils.text_processing import (
    calculate_keyword_density,
    contains_phrase,
    count_words,
    normalize_whitespace,
    significant_words,
)
from seo_analyzer.utils.validators import is_homepage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

MIN_WORD_COUNT = 300
DENSITY_MIN_PCT = 0.5
DENSITY_MAX_PCT = 2.5
NEXT_GEN_EXTENSIONS = (".webp", ".avif", ".svg")
OG_IMAGE_MIN_WIDTH = 1200
OG_IMAGE_MIN_HEIGHT = 630
OG_TITLE_LENGTH = (10, 70)
OG_DESCRIPTION_LENGTH = (100, 200)
MIN_MINIFIED_PCT = 40.0


class CheckId(str, Enum):
    KEYPHRASE_IN_TITLE = "Keyphrase in Title"
    KEYPHRASE_IN_META_DESCRIPTION = "Keyphrase in Meta Description"
    KEYPHRASE_IN_URL = "Keyphrase in URL"
    CONTENT_LENGTH = "Content Length"
    KEYPHRASE_DENSITY = "Keyphrase Density"
    KEYPHRASE_IN_INTRODUCTION = "Keyphrase in Introduction"
    KEYPHRASE_IN_H1 = "Keyphrase in H1 Heading"
    KEYPHRASE_IN_H2 = "Keyphrase in H2 Headings"
    HEADING_HIERARCHY = "Heading Hierarchy"
    IMAGE_ALT_ATTRIBUTES = "Image Alt Attributes"
    INTERNAL_LINKS = "Internal Links"
    OUTBOUND_LINKS = "Outbound Links"
    NEXT_GEN_IMAGE_FORMATS = "Next-Gen Image Formats"
    OG_IMAGE = "OG Image"
    OG_TITLE_AND_DESCRIPTION = "OG Title and Description"
    CODE_MINIFICATION = "Code Minification"
    SCHEMA_MARKUP = "Schema Markup"


class AdviceKind(Enum):
    # Failure advice is phrased by the external recommendation provider.
    NEEDS_EXTERNAL_ADVICE = "external"
    # The failure description already says what to do; no provider call.
    SELF_DESCRIBING = "self"


class CheckContext:
    """Inputs shared by every evaluator in one pipeline run."""

    def __init__(self, document: Document, keyphrase: str, url: str) -> None:
        self.document = document
        self.keyphrase = normalize_whitespace(keyphrase)
        self.url = url.strip()

    @cached_property
    def word_count(self) -> int:
        return count_words(self.document.body_text)

    @cached_property
    def keyphrase_words(self) -> list[str]:
        return significant_words(self.keyphrase)


@dataclass(frozen=True)
class Outcome:
    """Result of one evaluator.

    ``context`` is the page content handed to the recommendation provider.
    ``details`` fill the descriptor's message templates.  ``message``, when
    set, replaces the template entirely.  ``recommendation`` is only used by
    self-describing checks that generate their own advice.
    """

    passed: bool
    context: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    recommendation: Optional[str] = None


Evaluator = Callable[[CheckContext], Outcome]


@dataclass(frozen=True)
class CheckDescriptor:
    check_id: CheckId
    priority: Priority
    advice: AdviceKind
    success_message: str
    failure_template: str
    evaluate: Evaluator

    @property
    def title(self) -> str:
        return self.check_id.value

    def describe(self, outcome: Outcome, keyphrase: str) -> str:
        if outcome.message:
            return outcome.message
        template = self.success_message if outcome.passed else self.failure_template
        return template.format(keyphrase=keyphrase, **outcome.details)


REGISTRY: dict[CheckId, CheckDescriptor] = {}


def register(
    check_id: CheckId,
    priority: Priority,
    advice: AdviceKind,
    success: str,
    failure: str,
) -> Callable[[Evaluator], Evaluator]:
    """Decorator binding an evaluator to its static descriptor."""

    def decorator(func: Evaluator) -> Evaluator:
        if check_id in REGISTRY:
            raise ValueError(f"Check already registered: {check_id.value}")
        REGISTRY[check_id] = CheckDescriptor(
            check_id=check_id,
            priority=priority,
            advice=advice,
            success_message=success,
            failure_template=failure,
            evaluate=func,
        )
        return func

    return decorator


def canonical_checks() -> list[CheckDescriptor]:
    """Registered checks in canonical evaluation order."""
    return [REGISTRY[check_id] for check_id in CheckId if check_id in REGISTRY]


def priority_for(title: str) -> Priority:
    """Priority for a check title; unknown titles default to medium."""
    try:
        return REGISTRY[CheckId(title)].priority
    except (ValueError, KeyError):
        logger.warning("No priority registered for check %r; using medium", title)
        return Priority.MEDIUM


# ---------------------------------------------------------------------------
# Keyphrase placement
# ---------------------------------------------------------------------------

@register(
    CheckId.KEYPHRASE_IN_TITLE, Priority.HIGH, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The focus keyphrase appears in the page title.",
    failure="The page title does not contain the focus keyphrase \"{keyphrase}\".",
)
def check_title(ctx: CheckContext) -> Outcome:
    title = ctx.document.title
    return Outcome(
        passed=contains_phrase(title, ctx.keyphrase),
        context=title or "No title tag found",
    )


@register(
    CheckId.KEYPHRASE_IN_META_DESCRIPTION, Priority.HIGH, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The meta description contains the focus keyphrase.",
    failure="The meta description does not contain the focus keyphrase \"{keyphrase}\".",
)
def check_meta_description(ctx: CheckContext) -> Outcome:
    description = ctx.document.meta_description
    if not description:
        return Outcome(
            passed=False,
            context="No meta description found",
            message="The page has no meta description. Add one that contains the focus keyphrase.",
        )
    return Outcome(
        passed=contains_phrase(description, ctx.keyphrase),
        context=description,
    )


@register(
    CheckId.KEYPHRASE_IN_URL, Priority.MEDIUM, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The URL contains the focus keyphrase.",
    failure="The URL does not contain the focus keyphrase \"{keyphrase}\".",
)
def check_url(ctx: CheckContext) -> Outcome:
    if is_homepage(ctx.url):
        return Outcome(
            passed=True,
            context=ctx.url,
            message=(
                "This is the homepage. Homepage URLs do not need to contain "
                "the focus keyphrase."
            ),
        )
    url = unquote(ctx.url).lower()
    words = ctx.keyphrase.lower().split()
    variants = {" ".join(words), "-".join(words), "_".join(words)}
    return Outcome(
        passed=bool(words) and any(v in url for v in variants),
        context=ctx.url,
    )


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

@register(
    CheckId.CONTENT_LENGTH, Priority.HIGH, AdviceKind.SELF_DESCRIBING,
    success="The page contains {word_count} words, meeting the recommended minimum of 300.",
    failure=(
        "The page contains {word_count} words. Add at least {missing} more words of "
        "useful content about \"{keyphrase}\" to reach the recommended minimum of 300."
    ),
)
def check_content_length(ctx: CheckContext) -> Outcome:
    word_count = ctx.word_count
    return Outcome(
        passed=word_count >= MIN_WORD_COUNT,
        context=f"Current word count: {word_count}",
        details={"word_count": word_count, "missing": max(0, MIN_WORD_COUNT - word_count)},
    )


@register(
    CheckId.KEYPHRASE_DENSITY, Priority.MEDIUM, AdviceKind.SELF_DESCRIBING,
    success="Keyphrase density is {density:.1f}%, within the recommended 0.5%-2.5% range.",
    failure=(
        "Keyphrase density is {density:.1f}% ({count} occurrences in {total_words} words). "
        "{advice}"
    ),
)
def check_keyphrase_density(ctx: CheckContext) -> Outcome:
    stats = calculate_keyword_density(ctx.document.body_text, ctx.keyphrase)
    density = stats["density_pct"]
    if density < DENSITY_MIN_PCT:
        advice = "Use the keyphrase more often to reach at least 0.5%."
    else:
        advice = "Use the keyphrase less often to stay below 2.5% and avoid keyword stuffing."
    return Outcome(
        passed=DENSITY_MIN_PCT <= density <= DENSITY_MAX_PCT,
        context=f"Current density: {density:.1f}%",
        details={
            "density": density,
            "count": stats["count"],
            "total_words": stats["total_words"],
            "advice": advice,
        },
    )


@register(
    CheckId.KEYPHRASE_IN_INTRODUCTION, Priority.MEDIUM, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The focus keyphrase appears in the first paragraph.",
    failure="The first paragraph does not mention the focus keyphrase \"{keyphrase}\".",
)
def check_introduction(ctx: CheckContext) -> Outcome:
    intro = ctx.document.introduction
    if intro is None:
        return Outcome(
            passed=False,
            context="No introduction paragraph found",
            message=(
                "No introductory paragraph was found. Open the page with a "
                "paragraph that mentions the focus keyphrase."
            ),
        )
    normalized_intro = normalize_whitespace(intro).lower()
    normalized_keyphrase = ctx.keyphrase.lower()
    return Outcome(
        passed=bool(normalized_keyphrase) and normalized_keyphrase in normalized_intro,
        context=intro,
    )


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------

def _all_words_in(text: str, words: list[str]) -> bool:
    lower = text.lower()
    return bool(words) and all(w in lower for w in words)


@register(
    CheckId.KEYPHRASE_IN_H1, Priority.HIGH, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The H1 heading contains the focus keyphrase.",
    failure="The H1 heading does not contain the focus keyphrase \"{keyphrase}\".",
)
def check_h1(ctx: CheckContext) -> Outcome:
    h1s = ctx.document.headings_at(1)
    if len(h1s) != 1:
        found = "No H1 heading was found" if not h1s else f"Found {len(h1s)} H1 headings"
        return Outcome(
            passed=False,
            context="\n".join(h.text for h in h1s) or "No H1 heading found",
            message=f"{found}. Use exactly one H1 heading that contains the focus keyphrase.",
        )
    text = h1s[0].text
    if contains_phrase(text, ctx.keyphrase):
        return Outcome(passed=True, context=text)
    if _all_words_in(text, ctx.keyphrase_words):
        return Outcome(
            passed=True,
            context=text,
            message="The H1 heading contains every word of the focus keyphrase.",
        )
    return Outcome(passed=False, context=text)


@register(
    CheckId.KEYPHRASE_IN_H2, Priority.MEDIUM, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The focus keyphrase appears in the H2 subheadings.",
    failure="None of the H2 subheadings contain the focus keyphrase \"{keyphrase}\".",
)
def check_h2(ctx: CheckContext) -> Outcome:
    h2_texts = [h.text for h in ctx.document.headings_at(2)]
    if not h2_texts:
        return Outcome(
            passed=False,
            context="No H2 headings found",
            message="No H2 subheadings were found. Add H2 subheadings that include the focus keyphrase.",
        )
    context = "\n".join(h2_texts)
    if any(contains_phrase(t, ctx.keyphrase) for t in h2_texts):
        return Outcome(passed=True, context=context)

    words = ctx.keyphrase_words
    if any(_all_words_in(t, words) for t in h2_texts):
        return Outcome(
            passed=True,
            context=context,
            message="An H2 subheading contains every word of the focus keyphrase.",
        )
    combined = [t.lower() for t in h2_texts]
    if words and all(any(w in t for t in combined) for w in words):
        return Outcome(
            passed=True,
            context=context,
            message="Every word of the focus keyphrase appears across the H2 subheadings.",
        )
    return Outcome(passed=False, context=context)


def find_heading_skips(levels: list[int]) -> list[str]:
    """Return ``"H<a> → H<b>"`` for every step that goes more than one level deeper."""
    skips: list[str] = []
    for previous, current in zip(levels, levels[1:]):
        if current > previous + 1:
            skips.append(f"H{previous} → H{current}")
    return skips


@register(
    CheckId.HEADING_HIERARCHY, Priority.HIGH, AdviceKind.SELF_DESCRIBING,
    success="The heading structure is well organized: one H1, H2 sections and no skipped levels.",
    failure="Heading structure issues: {problems}.",
)
def check_heading_hierarchy(ctx: CheckContext) -> Outcome:
    headings = ctx.document.headings
    levels = [h.level for h in headings]
    h1_count = levels.count(1)
    problems: list[str] = []

    if h1_count == 0:
        problems.append("the page has no H1 heading")
    elif h1_count > 1:
        problems.append(f"the page has {h1_count} H1 headings instead of one")
    if 2 not in levels:
        problems.append("the page has no H2 subheadings")
    skips = find_heading_skips(levels)
    if skips:
        problems.append("heading levels are skipped (" + ", ".join(skips) + ")")

    outline = "\n".join(f"H{h.level}: {h.text}" for h in headings) or "No headings found"
    if problems:
        logger.debug("Heading hierarchy problems: %s", problems)
    return Outcome(
        passed=not problems,
        context=outline,
        details={"problems": "; ".join(problems), "skips": skips},
    )


# ---------------------------------------------------------------------------
# Images and links
# ---------------------------------------------------------------------------

@register(
    CheckId.IMAGE_ALT_ATTRIBUTES, Priority.LOW, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="At least one image has alt text containing the focus keyphrase.",
    failure="No image alt text contains the focus keyphrase \"{keyphrase}\".",
)
def check_image_alt(ctx: CheckContext) -> Outcome:
    images = ctx.document.images
    if not images:
        return Outcome(
            passed=False,
            context="No images found",
            message=(
                "The page has no images. Add a relevant image with alt text that "
                "contains the focus keyphrase."
            ),
        )
    context = json.dumps([{"src": i.src, "alt": i.alt} for i in images[:20]])
    return Outcome(
        passed=any(contains_phrase(i.alt, ctx.keyphrase) for i in images),
        context=context,
    )


@register(
    CheckId.INTERNAL_LINKS, Priority.MEDIUM, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The page links to {count} other pages on the same site.",
    failure="The page has no internal links. Link to related pages on your own site.",
)
def check_internal_links(ctx: CheckContext) -> Outcome:
    count = len(ctx.document.internal_links)
    return Outcome(
        passed=count > 0,
        context=f"Found {count} internal links",
        details={"count": count},
    )


@register(
    CheckId.OUTBOUND_LINKS, Priority.LOW, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="The page links to {count} external resources.",
    failure="The page has no outbound links. Link to authoritative external sources.",
)
def check_outbound_links(ctx: CheckContext) -> Outcome:
    count = len(ctx.document.outbound_links)
    return Outcome(
        passed=count > 0,
        context=f"Found {count} outbound links",
        details={"count": count},
    )


def _is_next_gen(src: str) -> bool:
    try:
        path = urlparse(src).path.lower()
    except ValueError:
        return False
    return path.endswith(NEXT_GEN_EXTENSIONS)


@register(
    CheckId.NEXT_GEN_IMAGE_FORMATS, Priority.LOW, AdviceKind.SELF_DESCRIBING,
    success="All images use modern formats (WebP, AVIF or SVG).",
    failure=(
        "{legacy_count} of {total} images use legacy formats ({examples}). "
        "Convert them to WebP or AVIF for smaller, faster-loading files."
    ),
)
def check_next_gen_images(ctx: CheckContext) -> Outcome:
    sources = [i.src for i in ctx.document.images if i.src]
    legacy = [src for src in sources if not _is_next_gen(src)]
    if not sources:
        return Outcome(passed=True, context="No images found", message="No images to check.")
    return Outcome(
        passed=not legacy,
        context="\n".join(legacy),
        details={
            "legacy_count": len(legacy),
            "total": len(sources),
            "examples": ", ".join(legacy[:3]),
        },
    )


# ---------------------------------------------------------------------------
# Open Graph
# ---------------------------------------------------------------------------

def _as_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except (ValueError, AttributeError):
        return None


@register(
    CheckId.OG_IMAGE, Priority.MEDIUM, AdviceKind.SELF_DESCRIBING,
    success="An Open Graph image is set.",
    failure=(
        "No og:image meta tag found. Add an Open Graph image of at least "
        "1200x630 pixels so shared links display a preview."
    ),
)
def check_og_image(ctx: CheckContext) -> Outcome:
    og = ctx.document.open_graph
    if not og.image:
        return Outcome(passed=False, context="No og:image found")

    # Dimensions only change the wording; presence alone passes.
    width, height = _as_int(og.image_width), _as_int(og.image_height)
    if width is None or height is None:
        message = (
            "An Open Graph image is set, but og:image:width and og:image:height "
            "are not declared. Declare them and use at least 1200x630 pixels."
        )
    elif width >= OG_IMAGE_MIN_WIDTH and height >= OG_IMAGE_MIN_HEIGHT:
        message = f"An Open Graph image is set with recommended dimensions ({width}x{height})."
    else:
        message = (
            f"An Open Graph image is set, but its size ({width}x{height}) is below "
            "the recommended 1200x630 pixels."
        )
    return Outcome(passed=True, context=og.image, message=message)


@register(
    CheckId.OG_TITLE_AND_DESCRIPTION, Priority.MEDIUM, AdviceKind.NEEDS_EXTERNAL_ADVICE,
    success="Open Graph title and description are present with recommended lengths.",
    failure="Open Graph issues: {problems}.",
)
def check_og_title_description(ctx: CheckContext) -> Outcome:
    og = ctx.document.open_graph
    problems: list[str] = []
    title_min, title_max = OG_TITLE_LENGTH
    desc_min, desc_max = OG_DESCRIPTION_LENGTH

    if not og.title:
        problems.append("og:title is missing")
    elif not title_min <= len(og.title) <= title_max:
        problems.append(
            f"og:title is {len(og.title)} characters (recommended {title_min}-{title_max})"
        )
    if not og.description:
        problems.append("og:description is missing")
    elif not desc_min <= len(og.description) <= desc_max:
        problems.append(
            f"og:description is {len(og.description)} characters "
            f"(recommended {desc_min}-{desc_max})"
        )
    return Outcome(
        passed=not problems,
        context=f"og:title: {og.title or 'missing'}\nog:description: {og.description or 'missing'}",
        details={"problems": "; ".join(problems)},
    )


# ---------------------------------------------------------------------------
# Technical
# ---------------------------------------------------------------------------

@register(
    CheckId.CODE_MINIFICATION, Priority.MEDIUM, AdviceKind.SELF_DESCRIBING,
    success="{percent:.0f}% of JavaScript and CSS resources are minified.",
    failure=(
        "Only {percent:.0f}% of JavaScript and CSS resources are minified "
        "({minified} of {total}). Minify scripts and stylesheets to reduce page weight. "
        "Unminified: {examples}."
    ),
)
def check_code_minification(ctx: CheckContext) -> Outcome:
    resources = ctx.document.resources.all
    if not resources:
        return Outcome(
            passed=True,
            context="No JavaScript or CSS resources found",
            details={"percent": 100.0, "minified": 0, "total": 0, "examples": ""},
        )
    minified = sum(1 for r in resources if r.is_minified)
    percent = minified / len(resources) * 100
    unminified = [r.url for r in resources if not r.is_minified]
    return Outcome(
        passed=percent >= MIN_MINIFIED_PCT,
        context="\n".join(unminified),
        details={
            "percent": percent,
            "minified": minified,
            "total": len(resources),
            "examples": ", ".join(unminified[:5]),
        },
    )


@register(
    CheckId.SCHEMA_MARKUP, Priority.MEDIUM, AdviceKind.SELF_DESCRIBING,
    success="Structured data detected ({types}).",
    failure="No structured data (schema markup) was detected on the page.",
)
def check_schema_markup(ctx: CheckContext) -> Outcome:
    schema = ctx.document.schema
    if schema.detected:
        return Outcome(
            passed=True,
            context=", ".join(schema.types),
            details={"types": ", ".join(schema.types) or "type not declared"},
        )
    return Outcome(
        passed=False,
        context="No structured data found",
        recommendation=schema_recommendation(ctx.document, ctx.url),
    )
