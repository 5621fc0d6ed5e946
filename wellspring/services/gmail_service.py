"""
Gmail Service
Creates drafts (optionally with one attachment) and searches sent mail for
previously attached contract documents
"""
import base64
import logging
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import httpx

from ..exceptions import UpstreamError
from .file_access import Attachment
from .google_auth import CredentialProvider

logger = logging.getLogger(__name__)

GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"
GMAIL_DRAFTS_URL = "https://mail.google.com/mail/u/0/#drafts"

DOCUMENT_MIME_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "application/vnd.oasis.opendocument.text",
}
DOCUMENT_EXTENSIONS = (".pdf", ".docx", ".doc", ".odt")


def is_document_attachment(filename: str, mime_type: str) -> bool:
    return filename.lower().endswith(DOCUMENT_EXTENSIONS) or mime_type in DOCUMENT_MIME_TYPES


def extract_attachments(message: dict) -> list[dict]:
    """Walk the MIME tree and collect {filename, mimeType, attachmentId, size}"""
    found = []

    def walk(part: dict):
        body = part.get("body") or {}
        if part.get("filename") and body.get("attachmentId"):
            found.append(
                {
                    "filename": part["filename"],
                    "mimeType": part.get("mimeType", ""),
                    "attachmentId": body["attachmentId"],
                    "size": body.get("size", 0),
                }
            )
        for child in part.get("parts") or []:
            walk(child)

    walk(message.get("payload") or {})
    return found


def build_raw_message(
    to: list[str],
    subject: str,
    body: str,
    cc: Optional[list[str]] = None,
    attachment: Optional[Attachment] = None,
) -> str:
    """RFC 2822 message encoded as unpadded base64url, as Gmail expects in `raw`"""
    if attachment:
        msg = MIMEMultipart("mixed")
        msg.attach(MIMEText(body, "plain"))
        maintype, _, subtype = attachment.mime_type.partition("/")
        part = MIMEBase(maintype or "application", subtype or "octet-stream")
        part.set_payload(attachment.content)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        msg.attach(part)
    else:
        msg = MIMEText(body, "plain")

    msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    msg["Subject"] = subject

    return base64.urlsafe_b64encode(msg.as_bytes()).decode().rstrip("=")


class GmailService:
    def __init__(self, credentials: CredentialProvider, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.credentials = credentials
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=30.0)

    async def is_connected(self) -> bool:
        return bool(await self.credentials.get_access_token())

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        token = await self.credentials.get_access_token()
        if not token:
            raise UpstreamError("Gmail", 401, "not connected")
        async with self._client() as client:
            response = await client.request(
                method, f"{GMAIL_API_BASE}{path}", headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        if response.status_code not in (200, 201):
            raise UpstreamError("Gmail", response.status_code, response.text)
        return response.json()

    async def create_draft(
        self,
        to: list[str],
        subject: str,
        body: str,
        cc: Optional[list[str]] = None,
        attachment: Optional[Attachment] = None,
    ) -> dict:
        """Returns {success, draftId} or {success: False, error}"""
        raw = build_raw_message(to, subject, body, cc, attachment)
        try:
            result = await self._request("POST", "/drafts", json={"message": {"raw": raw}})
        except (UpstreamError, httpx.HTTPError) as e:
            logger.error(f"❌ Failed to create Gmail draft: {str(e)}")
            return {"success": False, "error": f"Failed to create draft: {str(e)}"}

        logger.info(f"📝 Gmail draft created: {subject}")
        return {"success": True, "draftId": result.get("id")}

    async def create_draft_with_attachment(
        self,
        to: list[str],
        subject: str,
        body: str,
        attachment: Attachment,
        cc: Optional[list[str]] = None,
    ) -> dict:
        return await self.create_draft(to, subject, body, cc=cc, attachment=attachment)

    async def list_messages(self, query: str, max_results: int = 10) -> list[dict]:
        result = await self._request("GET", "/messages", params={"q": query, "maxResults": max_results})
        return result.get("messages") or []

    async def get_message(self, message_id: str) -> dict:
        return await self._request("GET", f"/messages/{message_id}")

    async def get_attachment(self, message_id: str, attachment_id: str) -> bytes:
        result = await self._request("GET", f"/messages/{message_id}/attachments/{attachment_id}")
        data = result.get("data", "")
        return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))

    async def find_email_with_attachment(
        self, query: str, filename: Optional[str] = None, document_only: bool = False
    ) -> dict:
        """First message (of up to 10) matching the query that carries a suitable attachment"""
        empty = {"message": None, "attachment": None}
        try:
            refs = await self.list_messages(query, max_results=10)
            for ref in refs:
                message = await self.get_message(ref["id"])
                attachments = extract_attachments(message)
                if document_only:
                    attachments = [a for a in attachments if is_document_attachment(a["filename"], a["mimeType"])]
                if not attachments:
                    continue
                if filename:
                    match = next((a for a in attachments if filename.lower() in a["filename"].lower()), None)
                    if match:
                        return {"message": message, "attachment": match}
                else:
                    return {"message": message, "attachment": attachments[0]}
        except (UpstreamError, httpx.HTTPError) as e:
            logger.error(f"❌ Gmail search failed for '{query}': {str(e)}")
        return empty
