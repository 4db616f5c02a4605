"""Document Extractor: fetches one page and normalizes its SEO-relevant structure.

The extractor issues a single GET, parses the body with a tolerant HTML
parser and returns an immutable :class:`Document`.  It never follows links.
"""

import asyncio
import json
import logging
import re
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

import aiohttp
from bs4 import BeautifulSoup, Comment

from seo_analyzer.exceptions import FetchError, ParseError
from seo_analyzer.modules.onpage_seo.document import (
    Document,
    Heading,
    Image,
    OpenGraph,
    Resource,
    Resources,
    SchemaInfo,
)
from seo_analyzer.utils.text_processing import normalize_whitespace

logger = logging.getLogger(__name__)

INLINE_SCRIPT = "inline-script"
INLINE_STYLE = "inline-style"

_INVISIBLE_TAGS = {"script", "style", "noscript", "template"}
_BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "body", "dd", "details", "div",
    "dl", "dt", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4",
    "h5", "h6", "header", "li", "main", "nav", "ol", "p", "pre", "section",
    "summary", "table", "td", "th", "tr", "ul",
}
_HEADING_RE = re.compile(r"^h([1-6])$")


# ---------------------------------------------------------------------------
# Minification heuristic
# ---------------------------------------------------------------------------

def is_minified(code: str) -> bool:
    """Heuristically decide whether a JS/CSS snippet is minified.

    Snippets shorter than 50 characters are too short to judge and count as
    minified.  Otherwise the code is minified when it has almost no newlines
    and little whitespace, or when its non-blank lines average more than 500
    characters.  False positives and negatives are expected.
    """
    if not code or len(code) < 50:
        return True

    length = len(code)
    newline_ratio = code.count("\n") / length
    whitespace_ratio = len(re.findall(r"\s", code)) / length

    lines = [line for line in code.split("\n") if line.strip()]
    avg_line_length = length / len(lines) if lines else 0.0

    return (newline_ratio < 0.01 and whitespace_ratio < 0.15) or avg_line_length > 500


def _looks_minified_url(url: str) -> bool:
    """External resources are not downloaded; trust the ``.min.`` naming convention."""
    filename = urlparse(url).path.rsplit("/", 1)[-1].lower()
    return ".min." in filename


# ---------------------------------------------------------------------------
# PageExtractor
# ---------------------------------------------------------------------------

class PageExtractor:
    """Fetch a URL and build its :class:`Document`.

    Usage::

        extractor = PageExtractor(timeout=30)
        document = await extractor.extract("https://example.com/widgets")
    """

    _HEADERS = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/121.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }

    def __init__(self, timeout: float = 30, verify_ssl: bool = True) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._verify_ssl = verify_ssl

    async def extract(self, url: str) -> Document:
        """Fetch *url* and return its normalized document."""
        html = await self.fetch(url)
        return self.parse(html, url)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch(self, url: str) -> str:
        """GET *url* and return the body as text.

        Raises:
            FetchError: on connection errors, timeouts or HTTP status >= 400.
        """
        try:
            async with aiohttp.ClientSession(
                timeout=self._timeout, headers=self._HEADERS
            ) as session:
                async with session.get(url, allow_redirects=True, ssl=self._verify_ssl) as resp:
                    if resp.status >= 400:
                        raise FetchError(url, f"HTTP {resp.status}", status=resp.status)
                    html = await resp.text(errors="replace")
        except FetchError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error("Timed out fetching %s", url)
            raise FetchError(url, "request timed out") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            logger.error("Failed to fetch %s: %s", url, exc)
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc

        logger.debug("Fetched %s (%d chars)", url, len(html))
        return html

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, html: str, url: str) -> Document:
        """Build a :class:`Document` from raw HTML fetched from *url*.

        Raises:
            ParseError: if the markup cannot be turned into a tree.
        """
        if not isinstance(html, str):
            raise ParseError(url, "response body is not text")
        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as exc:
            logger.error("Failed to parse HTML from %s: %s", url, exc)
            raise ParseError(url, str(exc)) from exc

        internal, outbound = self._extract_links(soup, url)
        document = Document(
            title=self._extract_title(soup),
            meta_description=self._meta_content(soup, name="description"),
            body_text=self._visible_text(soup),
            paragraphs=self._extract_paragraphs(soup),
            headings=self._extract_headings(soup),
            images=self._extract_images(soup),
            internal_links=internal,
            outbound_links=outbound,
            open_graph=self._extract_open_graph(soup),
            resources=self._extract_resources(soup, url),
            schema=self._extract_schema(soup),
        )
        logger.debug(
            "Parsed %s: %d paragraphs, %d headings, %d images, %d/%d links",
            url, len(document.paragraphs), len(document.headings),
            len(document.images), len(internal), len(outbound),
        )
        return document

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str:
        title_tag = soup.find("title")
        return title_tag.get_text().strip() if title_tag else ""

    @staticmethod
    def _meta_content(
        soup: BeautifulSoup, name: str = "", prop: str = ""
    ) -> str:
        tag = None
        if prop:
            tag = soup.find("meta", attrs={"property": prop})
            if tag is None:
                tag = soup.find("meta", attrs={"name": prop})
        else:
            tag = soup.find("meta", attrs={"name": re.compile("^" + re.escape(name) + "$", re.I)})
        if tag is None:
            return ""
        return (tag.get("content") or "").strip()

    def _extract_open_graph(self, soup: BeautifulSoup) -> OpenGraph:
        return OpenGraph(
            title=self._meta_content(soup, prop="og:title"),
            description=self._meta_content(soup, prop="og:description"),
            image=self._meta_content(soup, prop="og:image"),
            image_width=self._meta_content(soup, prop="og:image:width"),
            image_height=self._meta_content(soup, prop="og:image:height"),
        )

    @staticmethod
    def _visible_text(soup: BeautifulSoup) -> str:
        """All text under <body> excluding scripts, styles and comments.

        Text nodes inside the same block are concatenated as-is, so inline
        markup (``wid<em>get</em>s``) does not split words; a space separates
        text from different blocks.
        """
        root = soup.body or soup
        parts: list[str] = []
        last_block = None
        for node in root.find_all(string=True):
            if isinstance(node, Comment):
                continue
            if any(parent.name in _INVISIBLE_TAGS for parent in node.parents):
                continue
            block = next(
                (p for p in node.parents if p is root or p.name in _BLOCK_TAGS), root
            )
            if parts and block is not last_block:
                parts.append(" ")
            parts.append(str(node))
            last_block = block
        return normalize_whitespace("".join(parts))

    @staticmethod
    def _extract_paragraphs(soup: BeautifulSoup) -> tuple[str, ...]:
        # Every <p>, not only those inside article/main: real markup is inconsistent.
        texts = (p.get_text().strip() for p in soup.find_all("p"))
        return tuple(t for t in texts if t)

    @staticmethod
    def _extract_headings(soup: BeautifulSoup) -> tuple[Heading, ...]:
        headings: list[Heading] = []
        for tag in soup.find_all(_HEADING_RE):
            text = tag.get_text().strip()
            if not text:
                continue
            level = int(_HEADING_RE.match(tag.name).group(1))
            headings.append(Heading(level=level, text=text))
        return tuple(headings)

    @staticmethod
    def _extract_images(soup: BeautifulSoup) -> tuple[Image, ...]:
        return tuple(
            Image(src=(img.get("src") or "").strip(), alt=(img.get("alt") or "").strip())
            for img in soup.find_all("img")
        )

    @staticmethod
    def _resolve(base: str, href: str) -> Optional[str]:
        """Resolve *href* against *base*; None when it is not an http(s) URL."""
        try:
            full_url = urljoin(base, href.strip())
            parsed = urlparse(full_url)
            hostname = parsed.hostname
        except ValueError:
            return None
        if parsed.scheme not in ("http", "https") or not hostname:
            return None
        return full_url

    def _extract_links(
        self, soup: BeautifulSoup, page_url: str
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        parsed = urlparse(page_url)
        origin = parsed.scheme + "://" + parsed.netloc
        source_host = (parsed.hostname or "").lower()

        internal: list[str] = []
        outbound: list[str] = []
        for a in soup.find_all("a", href=True):
            full_url = self._resolve(origin, a["href"])
            if full_url is None:
                continue
            if (urlparse(full_url).hostname or "").lower() == source_host:
                internal.append(full_url)
            else:
                outbound.append(full_url)
        return tuple(internal), tuple(outbound)

    def _extract_resources(self, soup: BeautifulSoup, page_url: str) -> Resources:
        parsed = urlparse(page_url)
        origin = parsed.scheme + "://" + parsed.netloc

        scripts: list[Resource] = []
        stylesheets: list[Resource] = []

        for script in soup.find_all("script"):
            src = script.get("src")
            if src:
                full_url = self._resolve(origin, src)
                if full_url:
                    scripts.append(Resource(url=full_url, is_minified=_looks_minified_url(full_url)))
                continue
            if script.get("type", "").lower() == "application/ld+json":
                continue
            content = (script.string or script.get_text() or "").strip()
            if content:
                scripts.append(Resource(
                    url=INLINE_SCRIPT, is_minified=is_minified(content), inline_content=content,
                ))

        for link in soup.find_all("link", href=True):
            rel = [r.lower() for r in link.get("rel", [])]
            if "stylesheet" not in rel:
                continue
            full_url = self._resolve(origin, link["href"])
            if full_url:
                stylesheets.append(Resource(url=full_url, is_minified=_looks_minified_url(full_url)))

        for style in soup.find_all("style"):
            content = (style.string or style.get_text() or "").strip()
            if content:
                stylesheets.append(Resource(
                    url=INLINE_STYLE, is_minified=is_minified(content), inline_content=content,
                ))

        return Resources(scripts=tuple(scripts), stylesheets=tuple(stylesheets))

    @staticmethod
    def _extract_schema(soup: BeautifulSoup) -> SchemaInfo:
        """Detect JSON-LD and microdata structured data."""
        types: list[str] = []
        found = False

        for script in soup.find_all("script", attrs={"type": re.compile(r"^application/ld\+json$", re.I)}):
            raw = (script.string or script.get_text() or "").strip()
            if not raw:
                continue
            found = True
            try:
                data = json.loads(raw)
            except (ValueError, TypeError, RecursionError):
                # Deeply nested arrays exceed the recursion limit.
                logger.debug("Invalid JSON-LD block found")
                types.append("Unknown")
                continue
            types.extend(_jsonld_types(data))

        for elem in soup.find_all(attrs={"itemtype": True}):
            found = True
            item_type = elem.get("itemtype", "").strip().rstrip("/")
            types.append(item_type.split("/")[-1] if item_type else "Unknown")

        unique = tuple(dict.fromkeys(types))
        return SchemaInfo(detected=found, types=unique)


def _jsonld_types(data: Any) -> list[str]:
    """Every ``@type`` in a JSON-LD payload (lists and ``@graph`` included)."""
    types: list[str] = []
    stack = [data]
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            stack.extend(reversed(node))
        elif isinstance(node, dict):
            item_type = node.get("@type")
            if isinstance(item_type, list):
                types.extend(str(t) for t in item_type)
            elif item_type:
                types.append(str(item_type))
            if "@graph" in node:
                stack.append(node["@graph"])
    return types
