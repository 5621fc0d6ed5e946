"""Chapter domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator


class HistoryEntryResponse(BaseModel):
    stepId: str
    startedAt: datetime
    completedAt: Optional[datetime] = None
    owner: Optional[str] = None
    notes: Optional[str] = None
    durationDays: Optional[int] = None
    forced: bool = False

    class Config:
        from_attributes = True


class ChapterResponse(BaseModel):
    """Schema for chapter response"""

    chapterId: str
    reportState: str
    chapterType: str
    chapterLabel: Optional[str] = None
    workflowType: str
    currentStep: str
    currentStepLabel: Optional[str] = None
    currentStepStartedAt: datetime
    currentOwner: Optional[str] = None
    daysOnStep: int
    overdue: bool
    progress: int
    notes: Optional[str] = None
    blockers: Optional[str] = None
    googleDocUrl: Optional[str] = None
    authorName: Optional[str] = None
    authorEmail: Optional[str] = None
    contractSigned: bool = False
    contractSignedDate: Optional[date] = None
    grantAmount: Decimal
    contractDeadlines: dict[str, str] = {}
    mondayItemId: Optional[str] = None
    paymentContributorId: Optional[str] = None
    history: list[HistoryEntryResponse] = []

    class Config:
        from_attributes = True


class AdvanceStepRequest(BaseModel):
    """Schema for moving a chapter to another workflow step"""

    targetStep: str
    owner: Optional[str] = None
    notes: Optional[str] = None
    force: bool = False


class AdvanceStepResponse(BaseModel):
    chapter: ChapterResponse
    completedStep: str
    newStep: str
    forced: bool
    sync: dict


class NotesUpdate(BaseModel):
    notes: Optional[str] = None


class BlockerUpdate(BaseModel):
    blocker: Optional[str] = None


class AuthorInfoUpdate(BaseModel):
    """Schema for recording the bylined author"""

    authorName: str
    authorEmail: EmailStr
    contractSigned: bool = False
    contractSignedDate: Optional[date] = None


class ContractDeadlineUpdate(BaseModel):
    stepId: str
    deadline: date


class DoeDeadlineUpdate(BaseModel):
    deadline: date


class BoardItemUpdate(BaseModel):
    itemId: str

    @field_validator("itemId")
    @classmethod
    def validate_item_id(cls, v):
        if not v.strip().isdigit():
            raise ValueError("Monday.com item IDs are numeric")
        return v.strip()


class CustomChapterTypeCreate(BaseModel):
    """Schema for a user-created chapter type"""

    value: str
    label: str
    chapterNum: str

    @field_validator("value")
    @classmethod
    def validate_value(cls, v):
        slug = v.strip().lower()
        if not slug or not all(ch.isalnum() or ch == "_" for ch in slug):
            raise ValueError("Chapter type value must be a lowercase slug (letters, digits, underscores)")
        return slug


class ChapterTypeResponse(BaseModel):
    value: str
    label: str
    chapterNum: str
    custom: bool = False


class ProgressResponse(BaseModel):
    chapterId: str
    currentStep: str
    progress: int
    daysOnStep: int
    overdue: bool
    nextStep: Optional[str] = None
    nextOwner: Optional[str] = None
    allowedTargets: list[str]


class InitializeResponse(BaseModel):
    created: int
    total: int


class TimelineResponse(BaseModel):
    state: str
    effectiveDate: str
    expertQDate: str
    firstDraftDate: str
    reviewReturnDate: str
    grammarProofDate: str
    finalApprovalDate: str
    doeDeadline: str
    bufferDays: int
    timelineType: str
    bufferWarning: bool


class PaymentStatusRequest(BaseModel):
    """Milestone booleans from the Payments board"""

    drafted: bool = False
    sentForReview: bool = False
    draftApproved: bool = False
    sentBoxSignature: bool = False
    distribution1: bool = False
    payment1: bool = False
    processInvoice1: bool = False
    roughDraftReceived: bool = False
    roughDraftDue: Optional[str] = None


class PaymentStatusResponse(BaseModel):
    status: str
    label: str


class NudgeResponse(BaseModel):
    chapterId: str
    channel: str
    success: bool
    title: str
    message: str
