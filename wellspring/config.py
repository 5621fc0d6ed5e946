import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./wellspring.db")

# Security - key used to encrypt stored OAuth tokens
# (generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())")
TOKEN_ENCRYPTION_KEY = os.getenv("TOKEN_ENCRYPTION_KEY")

# Google OAuth Configuration (Gmail + Drive)
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")

# Drive folder holding generated and signed contributor agreements
CONTRACTS_FOLDER_ID = os.getenv("CONTRACTS_FOLDER_ID", "1su4hSG2DDjJ-t2Oi7q_39HeaYQD8IIfj")

# Optional local directory with signature-ready contracts (read-only)
LOCAL_CONTRACTS_DIR = os.getenv("LOCAL_CONTRACTS_DIR")

# Monday.com Configuration
MONDAY_API_TOKEN = os.getenv("MONDAY_API_TOKEN")
MONDAY_API_URL = os.getenv("MONDAY_API_URL", "https://api.monday.com/v2")
MONDAY_API_VERSION = os.getenv("MONDAY_API_VERSION", "2024-01")
# GEODE Payments: Report Contributors board (groups are state reports)
PAYMENTS_BOARD_ID = os.getenv("PAYMENTS_BOARD_ID", "5640622226")
PAYMENTS_BOARD_URL = os.getenv(
    "PAYMENTS_BOARD_URL", f"https://projectinnerspace.monday.com/boards/{PAYMENTS_BOARD_ID}"
)
# Reports Progress board (one item per chapter)
REPORTS_PROGRESS_BOARD_ID = os.getenv("REPORTS_PROGRESS_BOARD_ID")

# Slack Configuration
SLACK_BOT_TOKEN = os.getenv("SLACK_BOT_TOKEN")
SLACK_GEODE_CHANNEL = os.getenv("SLACK_GEODE_CHANNEL", "#geode")
GEODE_TEAM_EMAIL_DOMAIN = os.getenv("GEODE_TEAM_EMAIL_DOMAIN", "projectinnerspace.org")

# GEODE defaults
GEODE_DEFAULT_GRANT = int(os.getenv("GEODE_DEFAULT_GRANT", "5000"))
ACCOUNTING_EMAIL = os.getenv("ACCOUNTING_EMAIL", "accounting@projectinnerspace.org")
GEODE_INVOICE_EMAIL = os.getenv("GEODE_INVOICE_EMAIL", "GEODE@projectinnerspace.org")
CONTRACT_PROCESSOR_EMAIL = os.getenv("CONTRACT_PROCESSOR_EMAIL", "dani@projectinnerspace.org")
CONTRACT_PROCESSOR_NAME = os.getenv("CONTRACT_PROCESSOR_NAME", "Dani")
SENDER_NAME = os.getenv("SENDER_NAME", "Trent McFadyen")
SENDER_TITLE = os.getenv("SENDER_TITLE", "Director of Strategic Initiatives | Project InnerSpace")


@dataclass(frozen=True)
class BoardColumnConfig:
    """Column IDs on the Payments board: one per payment milestone key, plus the author detail columns"""

    drafted: str = "checkbox"
    sentForReview: str = "checkbox__1"
    draftApproved: str = "checkbox__2"
    sentBoxSignature: str = "checkbox__3"
    distribution1: str = "checkbox__4"
    payment1: str = "checkbox__5"
    processInvoice1: str = "checkbox__6"
    roughDraftDue: str = "date"
    roughDraftReceived: str = "checkbox__7"
    totalGrantAmount: str = "numbers"
    status: str = "status"

    # Author details written when an author is added to the board
    authorEmail: str = "email"
    chapterInfo: str = "text"
    contractSignedDate: str = "date"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        missing = [f.name for f in fields(self) if not (getattr(self, f.name) or "").strip()]
        if missing:
            raise ConfigurationError(
                f"Payments board column IDs not configured for: {', '.join(missing)}"
            )

    def column_for(self, milestone: str) -> str:
        try:
            return getattr(self, milestone)
        except AttributeError:
            raise ConfigurationError(f"Unknown payment milestone column: {milestone}") from None

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "BoardColumnConfig":
        """Build from defaults plus MONDAY_COLUMN_<KEY> overrides, e.g. MONDAY_COLUMN_PAYMENT1"""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            env_key = f"MONDAY_COLUMN_{f.name.upper()}"
            if env_key in environ:
                overrides[f.name] = environ[env_key]
        return cls(**overrides)


# Fails fast at import time when a column override is blank
PAYMENTS_COLUMN_IDS = BoardColumnConfig.from_env()
