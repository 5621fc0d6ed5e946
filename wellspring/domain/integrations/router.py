"""Integration router - connection status and Google token storage"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...dependencies import get_credentials, get_file_reader, get_monday_service, get_slack_service
from ...services.file_access import FileReader, NullFileReader
from ...services.google_auth import GoogleCredentialProvider
from ...services.monday_service import MondayService
from ...services.slack_service import SlackService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["Integrations"])


class GoogleTokensRequest(BaseModel):
    accessToken: str
    refreshToken: Optional[str] = None
    expiresIn: int = 3600
    email: Optional[str] = None


class IntegrationStatus(BaseModel):
    google: bool
    googleEmail: Optional[str] = None
    monday: bool
    slack: bool
    localContracts: bool


@router.get("/status", response_model=IntegrationStatus)
async def integration_status(
    credentials: GoogleCredentialProvider = Depends(get_credentials),
    monday: MondayService = Depends(get_monday_service),
    slack: SlackService = Depends(get_slack_service),
    file_reader: FileReader = Depends(get_file_reader),
):
    return IntegrationStatus(
        google=credentials.is_configured(),
        googleEmail=credentials.connected_email(),
        monday=monday.is_configured(),
        slack=slack.is_configured(),
        localContracts=not isinstance(file_reader, NullFileReader),
    )


@router.post("/google/tokens")
async def save_google_tokens(
    data: GoogleTokensRequest,
    credentials: GoogleCredentialProvider = Depends(get_credentials),
):
    """Store OAuth tokens obtained by the frontend consent flow"""
    integration = credentials.save_tokens(data.accessToken, data.refreshToken, data.expiresIn, data.email)
    return {"success": True, "email": integration.google_user_email, "expiresAt": integration.token_expires_at}


@router.post("/monday/clear-cache")
async def clear_monday_cache(monday: MondayService = Depends(get_monday_service)):
    """Drop cached Payments board state groups after board changes"""
    monday.clear_state_group_cache()
    return {"success": True}
