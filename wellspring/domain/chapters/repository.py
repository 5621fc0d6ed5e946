"""Chapter repository - Database operations for GEODE chapters"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ...models import Chapter, ChapterHistoryEntry, CustomChapterType, DoeDeadline

# Universal Chapter 1 was finished for every state before tracking began
CH101_COMPLETED_HISTORY = [
    ("not_started", datetime(2025, 10, 1), datetime(2025, 10, 1), "", None, 0),
    ("drafting", datetime(2025, 10, 1), datetime(2025, 11, 15), "Drew, Dani, Maria, Trent", "Universal chapter drafted", 45),
    ("internal_review", datetime(2025, 11, 15), datetime(2025, 11, 30), "Trent", None, 15),
    ("final_edit", datetime(2025, 11, 30), datetime(2025, 12, 1), "Maria", None, 1),
    ("done", datetime(2025, 12, 1), datetime(2025, 12, 1), "", "Complete for all 6 states", 0),
]
CH101_DONE_AT = datetime(2025, 12, 1)


class ChapterRepository:
    """Repository for chapter database operations"""

    @staticmethod
    def get_all_chapters(db: Session) -> list[Chapter]:
        return db.query(Chapter).options(selectinload(Chapter.history)).order_by(Chapter.id).all()

    @staticmethod
    def get_chapter(db: Session, chapter_id: str) -> Optional[Chapter]:
        """Get a chapter by its composite "{state}_{chapterType}" id"""
        return db.query(Chapter).filter(Chapter.chapter_id == chapter_id).first()

    @staticmethod
    def get_chapters_for_state(db: Session, state: str) -> list[Chapter]:
        return db.query(Chapter).filter(Chapter.report_state == state).order_by(Chapter.id).all()

    @staticmethod
    def get_active_chapters(db: Session) -> list[Chapter]:
        """Chapters that are neither done nor not started"""
        return (
            db.query(Chapter)
            .filter(Chapter.current_step.notin_(["done", "not_started"]))
            .order_by(Chapter.id)
            .all()
        )

    @staticmethod
    def get_chapters_by_owner(db: Session, owner_name: str) -> list[Chapter]:
        pattern = f"%{owner_name.lower()}%"
        return (
            db.query(Chapter)
            .filter(
                func.lower(Chapter.current_owner).like(pattern),
                Chapter.current_step.notin_(["done", "not_started"]),
            )
            .order_by(Chapter.id)
            .all()
        )

    @staticmethod
    def get_chapters_with_blockers(db: Session) -> list[Chapter]:
        return (
            db.query(Chapter)
            .filter(Chapter.blockers.isnot(None), Chapter.blockers != "")
            .order_by(Chapter.id)
            .all()
        )

    @staticmethod
    def existing_chapter_ids(db: Session) -> set[str]:
        return {row[0] for row in db.query(Chapter.chapter_id).all()}

    @staticmethod
    def build_chapter(state: str, chapter_type: str, workflow_type: str, owner: str) -> Chapter:
        """Initial chapter row; ch1_101 starts done with its completed history"""
        if chapter_type == "ch1_101":
            chapter = Chapter(
                chapter_id=f"{state}_{chapter_type}",
                report_state=state,
                chapter_type=chapter_type,
                workflow_type=workflow_type,
                current_step="done",
                current_step_started_at=CH101_DONE_AT,
                current_owner="",
                contract_deadlines={},
            )
            chapter.history = [
                ChapterHistoryEntry(
                    step_id=step_id,
                    started_at=started_at,
                    completed_at=completed_at,
                    owner=entry_owner,
                    notes=notes,
                    duration_days=duration,
                )
                for step_id, started_at, completed_at, entry_owner, notes, duration in CH101_COMPLETED_HISTORY
            ]
            return chapter

        return Chapter(
            chapter_id=f"{state}_{chapter_type}",
            report_state=state,
            chapter_type=chapter_type,
            workflow_type=workflow_type,
            current_step="not_started",
            current_step_started_at=datetime.utcnow(),
            current_owner=owner,
            contract_deadlines={},
        )

    @staticmethod
    def add_chapters(db: Session, chapters: list[Chapter]) -> int:
        db.add_all(chapters)
        db.commit()
        return len(chapters)

    @staticmethod
    def update_chapter(db: Session, chapter: Chapter, **updates) -> Chapter:
        """Update a chapter; None values are written (clearing notes and blockers is allowed)"""
        for key, value in updates.items():
            if hasattr(chapter, key):
                setattr(chapter, key, value)
        db.commit()
        db.refresh(chapter)
        return chapter

    @staticmethod
    def record_transition(
        db: Session,
        chapter: Chapter,
        new_step: str,
        owner: Optional[str],
        notes: Optional[str],
        now: datetime,
        duration_days: Optional[int],
        forced: bool,
    ) -> Chapter:
        """Close the open history entry for the current step and open one for the new step"""
        open_entry = next(
            (h for h in reversed(chapter.history) if h.step_id == chapter.current_step and h.completed_at is None),
            None,
        )
        if open_entry:
            open_entry.completed_at = now
            open_entry.duration_days = duration_days

        chapter.history.append(
            ChapterHistoryEntry(step_id=new_step, started_at=now, owner=owner, notes=notes, forced=forced)
        )
        chapter.current_step = new_step
        chapter.current_step_started_at = now
        chapter.current_owner = owner

        db.commit()
        db.refresh(chapter)
        return chapter

    @staticmethod
    def delete_chapter(db: Session, chapter: Chapter) -> None:
        db.delete(chapter)
        db.commit()

    @staticmethod
    def delete_chapters_of_type(db: Session, chapter_type: str) -> int:
        chapters = db.query(Chapter).filter(Chapter.chapter_type == chapter_type).all()
        for chapter in chapters:
            db.delete(chapter)
        db.commit()
        return len(chapters)

    # Custom chapter types

    @staticmethod
    def get_custom_chapter_types(db: Session) -> list[CustomChapterType]:
        return db.query(CustomChapterType).order_by(CustomChapterType.id).all()

    @staticmethod
    def get_custom_chapter_type(db: Session, value: str) -> Optional[CustomChapterType]:
        return db.query(CustomChapterType).filter(CustomChapterType.value == value).first()

    @staticmethod
    def create_custom_chapter_type(db: Session, value: str, label: str, chapter_num: str) -> CustomChapterType:
        custom = CustomChapterType(value=value, label=label, chapter_num=chapter_num)
        db.add(custom)
        db.commit()
        db.refresh(custom)
        return custom

    @staticmethod
    def delete_custom_chapter_type(db: Session, custom: CustomChapterType) -> None:
        db.delete(custom)
        db.commit()

    # DOE deadlines

    @staticmethod
    def get_doe_deadlines(db: Session) -> dict[str, date]:
        return {row.report_state: row.deadline for row in db.query(DoeDeadline).all()}

    @staticmethod
    def upsert_doe_deadline(db: Session, state: str, deadline: date) -> DoeDeadline:
        row = db.query(DoeDeadline).filter(DoeDeadline.report_state == state).first()
        if row:
            row.deadline = deadline
        else:
            row = DoeDeadline(report_state=state, deadline=deadline)
            db.add(row)
        db.commit()
        db.refresh(row)
        return row
