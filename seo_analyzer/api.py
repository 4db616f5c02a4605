"""HTTP API: ``POST /api/analyze`` and ``GET /api/health`` (aiohttp.web)."""

import json
import logging
from typing import Awaitable, Callable

from aiohttp import web

from seo_analyzer.exceptions import InvalidInputError, SEOAnalyzerError
from seo_analyzer.modules.onpage_seo.analyzer import OnPageAnalyzer
from seo_analyzer.modules.onpage_seo.document import AnalysisResult

logger = logging.getLogger(__name__)

AnalyzeFunc = Callable[[str, str], Awaitable[AnalysisResult]]

ANALYZE_FUNC = web.AppKey("analyze_func", AnalyzeFunc)

routes = web.RouteTableDef()


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"message": message}, status=status)


@routes.get("/api/health")
async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


@routes.post("/api/analyze")
async def analyze(request: web.Request) -> web.Response:
    """Analyse ``{url, keyphrase}``.

    The URL may instead be supplied as the ``url`` query parameter when the
    caller (e.g. a design-tool plugin) knows the page separately.
    ``?report=1`` adds a prioritized issue report to the response.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError):
        return _error("Request body must be valid JSON", 400)
    if not isinstance(body, dict):
        return _error("Request body must be a JSON object", 400)

    url = body.get("url") or request.query.get("url", "")
    keyphrase = body.get("keyphrase") or ""
    if not isinstance(url, str) or not isinstance(keyphrase, str):
        return _error("URL and keyphrase must be strings", 400)
    if not url.strip() or not keyphrase.strip():
        return _error("URL and keyphrase are required", 400)

    logger.info("Analyzing SEO for URL: %s with keyphrase: %s", url, keyphrase)
    try:
        result = await request.app[ANALYZE_FUNC](url, keyphrase)
    except InvalidInputError as exc:
        return _error(str(exc), 400)
    except SEOAnalyzerError as exc:
        logger.error("Error analyzing SEO: %s", exc)
        return _error(str(exc), 500)
    except Exception as exc:
        logger.exception("Unhandled error analyzing %s", url)
        return _error(str(exc) or "Internal server error", 500)

    payload = result.to_dict()
    if request.query.get("report", "").lower() in ("1", "true", "yes"):
        payload["report"] = OnPageAnalyzer.generate_report(result)
    return web.json_response(payload)


def create_app(analyze_func: AnalyzeFunc) -> web.Application:
    """Application factory; *analyze_func* performs one analysis per request."""
    app = web.Application()
    app[ANALYZE_FUNC] = analyze_func
    app.add_routes(routes)
    return app


def run_server(analyze_func: AnalyzeFunc, host: str = "0.0.0.0", port: int = 5000) -> None:
    logger.info("Serving SEO analyzer API on %s:%d", host, port)
    web.run_app(create_app(analyze_func), host=host, port=port, print=None)
