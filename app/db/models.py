"""
Database Models
===============
Company = current stage (snapshot)
CompanyEvent = immutable history of actions
StageTransitionRecord = immutable history of stage moves
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase


def utcnow():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Company(Base):
    """
    Where is this company in the pipeline RIGHT NOW?
    """
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    # THE SINGLE SOURCE OF TRUTH for pipeline position
    stage = Column(String(2), nullable=False, default="C0", index=True)
    stage_entered_at = Column(DateTime(timezone=True), default=utcnow)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False, index=True)


class CompanyEvent(Base):
    """
    Append-only. Never updated or deleted.
    """
    __tablename__ = "company_events"
    __table_args__ = (
        Index("idx_events_company_type", "company_id", "event_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    event_type = Column(String(50), nullable=False)
    event_data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class StageTransitionRecord(Base):
    """
    Append-only audit of accepted advances: to_stage is always next(from_stage).
    """
    __tablename__ = "stage_transitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    from_stage = Column(String(2), nullable=False)
    to_stage = Column(String(2), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
