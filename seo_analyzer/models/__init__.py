"""SQLAlchemy ORM models; import every model so Base.metadata is populated."""

from seo_analyzer.models.analysis import (
    AnalysisRecord,
    CheckRecord,
    recent_analyses,
    save_analysis,
)

__all__ = [
    "AnalysisRecord",
    "CheckRecord",
    "recent_analyses",
    "save_analysis",
]
