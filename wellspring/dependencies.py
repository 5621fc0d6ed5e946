"""FastAPI dependency providers for the integration clients"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import LOCAL_CONTRACTS_DIR
from .database import get_db
from .services.drive_service import DriveService
from .services.file_access import FileReader, build_file_reader
from .services.gmail_service import GmailService
from .services.google_auth import GoogleCredentialProvider
from .services.monday_service import MondayService
from .services.slack_service import SlackService


def get_credentials(db: Session = Depends(get_db)) -> GoogleCredentialProvider:
    return GoogleCredentialProvider(db)


def get_gmail_service(credentials: GoogleCredentialProvider = Depends(get_credentials)) -> GmailService:
    return GmailService(credentials)


def get_drive_service(credentials: GoogleCredentialProvider = Depends(get_credentials)) -> DriveService:
    return DriveService(credentials)


@lru_cache
def get_monday_service() -> MondayService:
    """One client per process so the state group cache is shared between requests"""
    return MondayService()


@lru_cache
def get_slack_service() -> SlackService:
    return SlackService()


@lru_cache
def get_file_reader() -> FileReader:
    return build_file_reader(LOCAL_CONTRACTS_DIR)
