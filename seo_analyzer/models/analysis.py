"""Analysis history SQLAlchemy models and helpers.

History is write-only from the analyzer's point of view: stored analyses are
listed for reporting but never reused in place of a fresh fetch.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seo_analyzer.database import Base, get_session
from seo_analyzer.modules.onpage_seo.document import AnalysisResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisRecord(Base):
    """One completed keyphrase analysis of a URL."""

    __tablename__ = "analyses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False, index=True)
    keyphrase: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0)
    rating: Mapped[str] = mapped_column(String(50), default="")
    passed_checks: Mapped[int] = mapped_column(Integer, default=0)
    failed_checks: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    checks: Mapped[list["CheckRecord"]] = relationship(
        back_populates="analysis", cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<AnalysisRecord id={self.id} url={self.url[:60]!r} score={self.score}>"


class CheckRecord(Base):
    """Individual check result within an analysis."""

    __tablename__ = "analysis_checks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    analysis_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("analyses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    priority: Mapped[str] = mapped_column(String(50), default="medium", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    recommendation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    analysis: Mapped["AnalysisRecord"] = relationship(back_populates="checks")

    def __repr__(self) -> str:
        status = "passed" if self.passed else "failed"
        return f"<CheckRecord id={self.id} title={self.title!r} {status}>"


def save_analysis(result: AnalysisResult) -> int:
    """Persist *result* and return the new record id."""
    record = AnalysisRecord(
        url=result.url,
        keyphrase=result.keyphrase,
        score=result.score,
        rating=result.rating,
        passed_checks=result.passed_checks,
        failed_checks=result.failed_checks,
        checks=[
            CheckRecord(
                position=position,
                title=check.title,
                passed=check.passed,
                priority=check.priority.value,
                description=check.description,
                recommendation=check.recommendation,
            )
            for position, check in enumerate(result.checks)
        ],
    )
    with get_session() as session:
        session.add(record)
        session.flush()
        return record.id


def recent_analyses(limit: int = 20, url: Optional[str] = None) -> list[AnalysisRecord]:
    """Most recent analyses first, optionally filtered by URL."""
    stmt = select(AnalysisRecord).order_by(AnalysisRecord.created_at.desc(), AnalysisRecord.id.desc())
    if url:
        stmt = stmt.where(AnalysisRecord.url == url)
    with get_session() as session:
        return list(session.scalars(stmt.limit(limit)))
