"""Shared pytest fixtures for Keyphrase SEO Analyzer tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure project root is on sys.path so 'seo_analyzer' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Autouse fixture: reset the global DB engine before and after every test.

    This prevents cross-test pollution when tests create their own in-memory
    databases.
    """
    from seo_analyzer.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture(autouse=True)
def _no_gpt_env(monkeypatch):
    """Keep analyses offline unless a test opts in explicitly."""
    monkeypatch.delenv("USE_GPT_RECOMMENDATIONS", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


@pytest.fixture()
def test_db():
    """Provide an in-memory SQLite database with all tables created.

    Yields a database URL string. The engine is automatically torn down
    after the test by the autouse ``_reset_db_engine`` fixture.
    """
    from seo_analyzer.database import reset_engine, init_db
    reset_engine()
    db_url = "sqlite:///:memory:"
    init_db(database_url=db_url, echo=False)
    yield db_url


@pytest.fixture()
def mock_llm_client():
    """Return a mock LLMClient that returns canned responses."""
    client = MagicMock()
    client.is_configured = True
    client.generate_text = AsyncMock(
        return_value="Here is a better title: Blue Widgets for Every Workshop"
    )
    client.get_usage_summary = MagicMock(return_value={
        "total_requests": 0,
        "cache_hits": 0,
    })
    return client


# ---------------------------------------------------------------------------
# Sample pages
# ---------------------------------------------------------------------------

def _filler(words: int) -> str:
    base = (
        "sturdy reliable useful practical durable handy simple modern classic "
        "quality tools parts designs colors sizes shapes options choices"
    ).split()
    return " ".join(base[i % len(base)] for i in range(words))


def build_optimized_page(internal_links: bool = False) -> str:
    """HTML for a page that passes every check except, optionally, Internal Links.

    The body holds exactly 400 visible words with four "blue widgets"
    occurrences: density = 4 x 2 / 400 = 2.0%.
    """
    internal = '<a href="/shop">Shop</a>' if internal_links else ""
    intro = "Blue widgets make every workshop tidier and they last for many years."
    paragraph_two = "Choose blue widgets in any size for your next project today."
    h2 = "Why Blue Widgets?"
    fixed = "Blue Widgets Guide " + h2 + " " + intro + " " + paragraph_two
    if internal_links:
        fixed += " Shop"
    fixed += " Sources"
    remaining = 400 - len(fixed.split())
    filler = _filler(remaining)
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>Blue Widgets | Widget Co</title>
  <meta name="description" content="Shop blue widgets built to last, in every size and shade.">
  <meta property="og:title" content="Blue Widgets for Every Workshop">
  <meta property="og:description" content="{_og_description()}">
  <meta property="og:image" content="https://example.com/img/og.webp">
  <meta property="og:image:width" content="1200">
  <meta property="og:image:height" content="630">
  <link rel="stylesheet" href="/static/site.min.css">
  <script src="/static/app.min.js"></script>
  <script type="application/ld+json">{{"@context": "https://schema.org", "@type": "Product", "name": "Blue Widget"}}</script>
</head>
<body>
  <h1>Blue Widgets Guide</h1>
  <p>{intro}</p>
  <h2>{h2}</h2>
  <p>{paragraph_two}</p>
  <div>{filler}</div>
  <img src="/img/blue-widget.webp" alt="A blue widgets set on a bench">
  {internal}
  <a href="https://en.wikipedia.org/wiki/Widget">Sources</a>
</body>
</html>"""


def _og_description() -> str:
    # 140 characters
    return (
        "Blue widgets for every workshop: durable, affordable and available in "
        "a range of sizes. Compare models and pick the right blue widget today."
    )


@pytest.fixture()
def optimized_page_html():
    return build_optimized_page()


@pytest.fixture()
def bare_page_html():
    """A minimal page that fails most checks."""
    return """<html><head><title>Home</title></head>
<body><p>Welcome to our site.</p></body></html>"""


@pytest.fixture()
def page_builder():
    """Factory fixture: ``page_builder(internal_links=True)`` returns page HTML."""
    return build_optimized_page
