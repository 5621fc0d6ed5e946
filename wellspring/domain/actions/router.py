"""Action router - FastAPI endpoints for GEODE confirmation tasks"""

import logging

from fastapi import APIRouter, Depends

from ...dependencies import get_drive_service, get_file_reader, get_gmail_service, get_monday_service
from ...services.drive_service import DriveService
from ...services.file_access import FileReader
from ...services.gmail_service import GmailService
from ...services.monday_service import MondayService
from ..chapters.router import get_chapter_service
from ..chapters.service import ChapterService
from .executor import ActionExecutor
from .presets import create_confirmation_task, get_actions_for_workflow, infer_workflow_type
from .schemas import (
    ConfirmationTask,
    EmailEvent,
    ExecutionReadiness,
    InferWorkflowRequest,
    InferWorkflowResponse,
    SuggestedAction,
    TaskExecutionResult,
    WorkflowPreset,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geode/tasks", tags=["GEODE Tasks"])


def get_action_executor(
    gmail: GmailService = Depends(get_gmail_service),
    drive: DriveService = Depends(get_drive_service),
    monday: MondayService = Depends(get_monday_service),
    chapters: ChapterService = Depends(get_chapter_service),
    file_reader: FileReader = Depends(get_file_reader),
) -> ActionExecutor:
    """Dependency injection for ActionExecutor"""
    return ActionExecutor(gmail, drive=drive, monday=monday, chapters=chapters, file_reader=file_reader)


@router.post("/execute", response_model=TaskExecutionResult)
async def execute_task(task: ConfirmationTask, executor: ActionExecutor = Depends(get_action_executor)):
    """Run all pending actions of a confirmed task"""
    return await executor.execute_task_actions(task)


@router.get("/readiness", response_model=ExecutionReadiness)
async def execution_readiness(executor: ActionExecutor = Depends(get_action_executor)):
    return ExecutionReadiness(**await executor.can_execute_actions())


@router.get("/workflow/{workflow_type}", response_model=list[SuggestedAction])
async def workflow_actions(workflow_type: WorkflowPreset):
    return get_actions_for_workflow(workflow_type)


@router.post("/workflow/infer", response_model=InferWorkflowResponse)
async def infer_workflow(data: InferWorkflowRequest):
    workflow_type = infer_workflow_type(data.title, data.description, data.hasAuthorConfirmation, data.chapterStatus)
    return InferWorkflowResponse(workflowType=workflow_type, actions=get_actions_for_workflow(workflow_type))


@router.post("/from-email", response_model=ConfirmationTask)
async def task_from_email(event: EmailEvent):
    """Build a confirmation task from a classified email event"""
    return create_confirmation_task(event)
