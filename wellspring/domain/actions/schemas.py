"""Action domain schemas - confirmation tasks, suggested actions and execution results"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

WorkflowPreset = Literal["author_outreach", "author_agreement", "contract_signed"]
ArtifactType = Literal["draft", "status_update", "log_entry"]


class SuggestedAction(BaseModel):
    """One pending side effect of a confirmation task"""

    id: str
    actionType: str
    title: str = ""
    description: str = ""
    priority: str = "normal"
    requiresConfirmation: bool = False
    autoExecutable: bool = False
    params: dict[str, str] = Field(default_factory=dict)


class ContractAttachmentRef(BaseModel):
    """Gmail attachment that carried the contract to the author"""

    sourceEmailId: str
    attachmentId: str
    filename: str
    mimeType: str


class ConfirmationTask(BaseModel):
    id: str
    emailEventId: Optional[str] = None
    title: str = ""
    description: str = ""
    category: str = "other"
    priority: str = "normal"
    state: Optional[str] = None
    chapterType: Optional[str] = None
    authorName: Optional[str] = None
    authorEmail: Optional[str] = None
    paymentAmount: Optional[float] = None
    contractAttachment: Optional[ContractAttachmentRef] = None
    pendingActions: list[SuggestedAction] = Field(default_factory=list)
    status: str = "pending"
    createdAt: Optional[datetime] = None
    expiresAt: Optional[datetime] = None


class EmailEvent(BaseModel):
    """A classified inbound email that may need a confirmation task"""

    id: str
    eventType: str
    subject: str = ""
    fromName: Optional[str] = None
    detectedState: Optional[str] = None
    detectedChapter: Optional[str] = None
    detectedAuthorName: Optional[str] = None
    detectedAuthorEmail: Optional[str] = None
    paymentAmount: Optional[float] = None
    suggestedActions: list[SuggestedAction] = Field(default_factory=list)


class Artifact(BaseModel):
    type: ArtifactType
    id: Optional[str] = None
    url: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class ActionExecutionResult(BaseModel):
    actionId: str
    success: bool
    message: str
    artifacts: list[Artifact] = Field(default_factory=list)


class TaskExecutionResult(BaseModel):
    taskId: str
    success: bool
    results: list[ActionExecutionResult]
    summary: str


class ExecutionReadiness(BaseModel):
    ready: bool
    issues: list[str]


class InferWorkflowRequest(BaseModel):
    title: str = ""
    description: str = ""
    hasAuthorConfirmation: Optional[bool] = None
    chapterStatus: Optional[str] = None


class InferWorkflowResponse(BaseModel):
    workflowType: WorkflowPreset
    actions: list[SuggestedAction]
