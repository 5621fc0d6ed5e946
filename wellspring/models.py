from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Chapter(Base):
    """One (report state x chapter type) work item"""

    __tablename__ = "geode_chapters"

    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(String(100), unique=True, index=True, nullable=False)  # "{state}_{chapterType}"
    report_state = Column(String(50), index=True, nullable=False)
    chapter_type = Column(String(100), nullable=False)
    workflow_type = Column(String(20), nullable=False)  # ch101, subsurface, standard

    current_step = Column(String(100), nullable=False, default="not_started")
    current_step_started_at = Column(DateTime, nullable=False)
    current_owner = Column(String(255), nullable=True)

    notes = Column(Text, nullable=True)
    blockers = Column(Text, nullable=True)
    google_doc_url = Column(String(500), nullable=True)

    # Bylined author
    author_name = Column(String(255), nullable=True)
    author_email = Column(String(255), nullable=True)
    contract_signed = Column(Boolean, default=False)
    contract_signed_date = Column(Date, nullable=True)
    grant_amount = Column(Numeric(10, 2), nullable=False, default=5000)

    # stepId -> ISO date
    contract_deadlines = Column(JSON, nullable=False, default=dict)

    # Monday.com item IDs
    monday_item_id = Column(String(50), nullable=True)  # Reports Progress board
    payment_contributor_id = Column(String(50), nullable=True)  # Payments board

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    history = relationship(
        "ChapterHistoryEntry",
        back_populates="chapter",
        order_by="ChapterHistoryEntry.id",
        cascade="all, delete-orphan",
    )


class ChapterHistoryEntry(Base):
    __tablename__ = "geode_chapter_history"

    id = Column(Integer, primary_key=True, index=True)
    chapter_pk = Column(Integer, ForeignKey("geode_chapters.id"), nullable=False, index=True)
    step_id = Column(String(100), nullable=False)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    owner = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    duration_days = Column(Integer, nullable=True)
    forced = Column(Boolean, default=False)  # Entered through an override transition

    chapter = relationship("Chapter", back_populates="history")


class CustomChapterType(Base):
    """User-created chapter types; always follow the standard workflow"""

    __tablename__ = "geode_custom_chapter_types"

    id = Column(Integer, primary_key=True, index=True)
    value = Column(String(100), unique=True, nullable=False)
    label = Column(String(255), nullable=False)
    chapter_num = Column(String(20), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class DoeDeadline(Base):
    """Editable DOE final-draft deadline per report state"""

    __tablename__ = "geode_doe_deadlines"

    report_state = Column(String(50), primary_key=True)
    deadline = Column(Date, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class GoogleIntegration(Base):
    """Google OAuth tokens for Gmail + Drive access"""

    __tablename__ = "google_integrations"

    id = Column(Integer, primary_key=True, index=True)

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=False)

    google_user_email = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
