"""
Google credential provider
Stores encrypted OAuth tokens and hands out valid access tokens to Gmail and Drive
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Protocol

import httpx
from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, TOKEN_ENCRYPTION_KEY
from ..exceptions import ConfigurationError
from ..models import GoogleIntegration

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class CredentialProvider(Protocol):
    async def get_access_token(self) -> Optional[str]: ...

    async def refresh_access_token_now(self) -> Optional[str]: ...


def build_cipher(key: Optional[str] = None) -> Fernet:
    key = key or TOKEN_ENCRYPTION_KEY
    if not key:
        raise ConfigurationError("TOKEN_ENCRYPTION_KEY is not set")
    return Fernet(key.encode())


class GoogleCredentialProvider:
    """Credential provider backed by the google_integrations table"""

    def __init__(
        self,
        db: Session,
        cipher: Optional[Fernet] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self._cipher = cipher
        self.transport = transport

    @property
    def cipher(self) -> Fernet:
        if self._cipher is None:
            self._cipher = build_cipher()
        return self._cipher

    def _integration(self) -> Optional[GoogleIntegration]:
        return self.db.query(GoogleIntegration).order_by(GoogleIntegration.id.desc()).first()

    def is_configured(self) -> bool:
        return self._integration() is not None

    def connected_email(self) -> Optional[str]:
        integration = self._integration()
        return integration.google_user_email if integration else None

    def save_tokens(
        self,
        access_token: str,
        refresh_token: Optional[str],
        expires_in: int = 3600,
        google_user_email: Optional[str] = None,
    ) -> GoogleIntegration:
        integration = self._integration() or GoogleIntegration()
        integration.access_token = self.cipher.encrypt(access_token.encode()).decode()
        if refresh_token:
            integration.refresh_token = self.cipher.encrypt(refresh_token.encode()).decode()
        integration.token_expires_at = datetime.utcnow() + timedelta(seconds=expires_in)
        if google_user_email:
            integration.google_user_email = google_user_email
        self.db.add(integration)
        self.db.commit()
        self.db.refresh(integration)
        logger.info("✅ Google tokens saved")
        return integration

    async def get_access_token(self) -> Optional[str]:
        """
        Get a valid access token, refreshing if it expires within 5 minutes
        Returns None if not connected or refresh fails
        """
        integration = self._integration()
        if not integration:
            logger.info("ℹ️ Google account not connected")
            return None

        if integration.token_expires_at <= datetime.utcnow() + timedelta(minutes=5):
            logger.info("🔄 Google token expired, refreshing...")
            return await self.refresh_access_token_now()

        return self.cipher.decrypt(integration.access_token.encode()).decode()

    async def refresh_access_token_now(self) -> Optional[str]:
        """Force a refresh through the OAuth token endpoint"""
        integration = self._integration()
        if not integration or not integration.refresh_token:
            logger.error("❌ No refresh token available")
            return None

        refresh_token = self.cipher.decrypt(integration.refresh_token.encode()).decode()
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=30.0) as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": GOOGLE_CLIENT_ID,
                        "client_secret": GOOGLE_CLIENT_SECRET,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Token refresh request failed: {str(e)}")
            return None

        if response.status_code == 400 and "invalid_grant" in response.text:
            # Refresh token revoked - user must reconnect
            logger.error("❌ Refresh token revoked (invalid_grant), clearing it")
            integration.refresh_token = None
            self.db.commit()
            return None

        if response.status_code != 200:
            logger.error(f"❌ Token refresh failed: {response.text}")
            return None

        tokens = response.json()
        new_access_token = tokens.get("access_token")
        if not new_access_token:
            logger.error("❌ No access token in refresh response")
            return None

        integration.access_token = self.cipher.encrypt(new_access_token.encode()).decode()
        integration.token_expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))
        self.db.commit()
        logger.info("✅ Google token refreshed successfully")
        return new_access_token
