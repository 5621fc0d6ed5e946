import base64
import email
import json

import httpx
import pytest

from wellspring.services.file_access import PDF_MIME, Attachment
from wellspring.services.gmail_service import GmailService, build_raw_message, extract_attachments


def decode_raw(raw: str):
    return email.message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))


def test_raw_message_with_attachment():
    attachment = Attachment(filename="agreement.pdf", mime_type=PDF_MIME, content=b"%PDF-1.7")
    raw = build_raw_message(["dani@example.org"], "Contract", "Please process", ["karine@example.org"], attachment)

    assert "=" not in raw
    message = decode_raw(raw)
    assert message["To"] == "dani@example.org"
    assert message["Cc"] == "karine@example.org"
    assert message["Subject"] == "Contract"
    parts = list(message.walk())
    pdf = next(p for p in parts if p.get_filename() == "agreement.pdf")
    assert pdf.get_content_type() == PDF_MIME
    assert pdf.get_payload(decode=True) == b"%PDF-1.7"


def test_extract_attachments_walks_nested_parts():
    message = {
        "payload": {
            "parts": [
                {"mimeType": "text/plain", "body": {"size": 10}},
                {
                    "mimeType": "multipart/mixed",
                    "parts": [
                        {"filename": "a.pdf", "mimeType": PDF_MIME, "body": {"attachmentId": "att-1", "size": 99}},
                    ],
                },
            ]
        }
    }
    assert extract_attachments(message) == [
        {"filename": "a.pdf", "mimeType": PDF_MIME, "attachmentId": "att-1", "size": 99}
    ]


@pytest.mark.anyio
async def test_create_draft(credentials):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "r-123"})

    gmail = GmailService(credentials, transport=httpx.MockTransport(handler))
    result = await gmail.create_draft(["author@example.edu"], "Hello", "Body text")

    assert result == {"success": True, "draftId": "r-123"}
    assert captured["path"] == "/gmail/v1/users/me/drafts"
    assert captured["auth"] == "Bearer test-token"
    assert decode_raw(captured["body"]["message"]["raw"])["Subject"] == "Hello"


@pytest.mark.anyio
async def test_create_draft_failure_is_a_result(credentials):
    gmail = GmailService(credentials, transport=httpx.MockTransport(lambda request: httpx.Response(403, text="forbidden")))
    result = await gmail.create_draft(["author@example.edu"], "Hello", "Body")

    assert result["success"] is False
    assert "403" in result["error"]


@pytest.mark.anyio
async def test_not_connected(credentials):
    credentials.token = None
    gmail = GmailService(credentials, transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    assert await gmail.is_connected() is False
    assert (await gmail.create_draft(["a@example.org"], "s", "b"))["success"] is False


@pytest.mark.anyio
async def test_find_email_with_document_attachment(credentials):
    messages = {
        "m1": {"id": "m1", "payload": {"parts": [{"filename": "photo.png", "mimeType": "image/png", "body": {"attachmentId": "img"}}]}},
        "m2": {"id": "m2", "payload": {"parts": [{"filename": "Agreement.docx", "mimeType": "application/msword", "body": {"attachmentId": "doc"}}]}},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/messages"):
            assert request.url.params["q"] == "to:jane@example.edu has:attachment in:sent"
            return httpx.Response(200, json={"messages": [{"id": "m1"}, {"id": "m2"}]})
        return httpx.Response(200, json=messages[path.rsplit("/", 1)[-1]])

    gmail = GmailService(credentials, transport=httpx.MockTransport(handler))
    found = await gmail.find_email_with_attachment("to:jane@example.edu has:attachment in:sent", None, True)

    assert found["message"]["id"] == "m2"
    assert found["attachment"]["attachmentId"] == "doc"


@pytest.mark.anyio
async def test_find_email_search_error_returns_empty(credentials):
    gmail = GmailService(credentials, transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    assert await gmail.find_email_with_attachment("subject:contract") == {"message": None, "attachment": None}


@pytest.mark.anyio
async def test_get_attachment_decodes_unpadded_base64url(credentials):
    data = base64.urlsafe_b64encode(b"%PDF-1.7 contract").decode().rstrip("=")
    gmail = GmailService(credentials, transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"data": data})))

    assert await gmail.get_attachment("m1", "att-1") == b"%PDF-1.7 contract"
