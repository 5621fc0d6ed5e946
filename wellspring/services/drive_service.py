"""
Google Drive Service
Lists, downloads and uploads contract documents in the contracts folder
"""
import json
import logging
from typing import Optional

import httpx

from ..config import CONTRACTS_FOLDER_ID
from ..exceptions import UpstreamError
from .file_access import PDF_MIME, Attachment, DOCX_MIME, pick_contract_file
from .google_auth import CredentialProvider

logger = logging.getLogger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files?uploadType=multipart&fields=id,webViewLink"


class DriveService:
    def __init__(
        self,
        credentials: CredentialProvider,
        folder_id: str = CONTRACTS_FOLDER_ID,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.folder_id = folder_id
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=60.0)

    async def list_files_in_folder(self, token: str, folder_id: Optional[str] = None) -> list[dict]:
        params = {
            "q": f"'{folder_id or self.folder_id}' in parents and trashed = false",
            "fields": "files(id,name,mimeType,size)",
            "pageSize": 100,
        }
        async with self._client() as client:
            response = await client.get(
                f"{DRIVE_API_BASE}/files", params=params, headers={"Authorization": f"Bearer {token}"}
            )
        if response.status_code != 200:
            raise UpstreamError("Google Drive", response.status_code, response.text)
        return response.json().get("files", [])

    async def download_file(self, token: str, file: dict) -> Attachment:
        async with self._client() as client:
            response = await client.get(
                f"{DRIVE_API_BASE}/files/{file['id']}",
                params={"alt": "media"},
                headers={"Authorization": f"Bearer {token}"},
            )
        if response.status_code != 200:
            raise UpstreamError("Google Drive", response.status_code, f"download failed for {file['name']}")

        mime_type = PDF_MIME if file["name"].endswith(".pdf") else (file.get("mimeType") or DOCX_MIME)
        logger.info(f"📥 Downloaded {file['name']} ({len(response.content) // 1024}KB)")
        return Attachment(filename=file["name"], mime_type=mime_type, content=response.content)

    async def find_contract(self, state_abbrev: str, author_name: str, chapter_title: str) -> Optional[Attachment]:
        """Search the contracts folder for the best-matching agreement; None if absent or on error"""
        token = await self.credentials.get_access_token()
        if not token:
            logger.info("ℹ️ No Google token available for Drive lookup")
            return None

        try:
            files = await self.list_files_in_folder(token)
            if not files:
                logger.info("ℹ️ No files in contracts folder")
                return None

            names = [f["name"] for f in files]
            chosen = pick_contract_file(names, state_abbrev, author_name, chapter_title)
            if not chosen:
                logger.info(f"ℹ️ No matching contract in Drive for {author_name} ({state_abbrev})")
                return None

            logger.info(f"✅ Best Drive match: {chosen}")
            file = next(f for f in files if f["name"] == chosen)
            return await self.download_file(token, file)
        except (UpstreamError, httpx.HTTPError) as e:
            logger.error(f"❌ Drive contract lookup failed: {str(e)}")
            return None

    async def upload_file(
        self,
        content: bytes,
        filename: str,
        mime_type: str = DOCX_MIME,
        folder_id: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Multipart upload into the folder. On a 401 the token is refreshed once and
        the upload retried once. Returns {fileId, webViewLink} or None
        """
        token = await self.credentials.get_access_token()
        if not token:
            logger.error("❌ No Google token available for Drive upload")
            return None

        metadata = {"name": filename, "parents": [folder_id or self.folder_id], "mimeType": mime_type}

        async def try_upload(access_token: str) -> httpx.Response:
            async with self._client() as client:
                return await client.post(
                    DRIVE_UPLOAD_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                    files={
                        "metadata": (None, json.dumps(metadata), "application/json"),
                        "file": (filename, content, mime_type),
                    },
                )

        try:
            logger.info(f"📤 Uploading to Drive: {filename}")
            response = await try_upload(token)

            if response.status_code == 401:
                logger.warning("🔄 Drive upload got 401, refreshing token and retrying once")
                refreshed = await self.credentials.refresh_access_token_now()
                if refreshed:
                    response = await try_upload(refreshed)

            if response.status_code not in (200, 201):
                logger.error(f"❌ Drive upload failed: {response.status_code} {response.text}")
                return None

            result = response.json()
            file_id = result.get("id")
            if not file_id:
                logger.error(f"❌ Drive upload response had no file id: {result}")
                return None
            return {
                "fileId": file_id,
                "webViewLink": result.get("webViewLink") or f"https://drive.google.com/file/d/{file_id}/view",
            }
        except httpx.HTTPError as e:
            logger.error(f"❌ Drive upload error: {str(e)}")
            return None
