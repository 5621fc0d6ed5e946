"""
File access capability
Attachment lookup reads local contract files only through an injected FileReader,
chosen once at startup
"""
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass
class Attachment:
    filename: str
    mime_type: str
    content: bytes

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME


def guess_mime_type(filename: str) -> str:
    lower = filename.lower()
    if lower.endswith(".pdf"):
        return PDF_MIME
    if lower.endswith(".docx"):
        return DOCX_MIME
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


class FileReader(Protocol):
    def list_files(self) -> list[str]: ...

    def read(self, filename: str) -> Optional[Attachment]: ...


class NullFileReader:
    """No local filesystem access"""

    def list_files(self) -> list[str]:
        return []

    def read(self, filename: str) -> Optional[Attachment]:
        return None


class LocalFileReader:
    """Read-only access to files directly inside one directory"""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def list_files(self) -> list[str]:
        if not self.root.is_dir():
            logger.warning(f"⚠️ Local contracts directory not found: {self.root}")
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file())

    def read(self, filename: str) -> Optional[Attachment]:
        path = (self.root / filename).resolve()
        if path.parent != self.root or not path.is_file():
            return None
        return Attachment(filename=path.name, mime_type=guess_mime_type(path.name), content=path.read_bytes())


def build_file_reader(local_dir: Optional[str]) -> FileReader:
    if local_dir:
        logger.info(f"📁 Local contract lookup enabled: {local_dir}")
        return LocalFileReader(local_dir)
    return NullFileReader()


def contract_name_matcher(state_abbrev: str, author_name: str, chapter_title: str):
    """
    Build a filename predicate for contract lookup. A name must contain the state
    abbreviation, then one of: author initials, chapter letters, or a last name
    longer than 2 characters
    """
    initials = "".join(word[0] for word in author_name.split() if word).lower()
    chapter_letters = "".join(ch for ch in chapter_title if ch.isalpha()).lower()
    parts = author_name.split()
    last_name = parts[-1].lower() if parts else ""
    abbrev = state_abbrev.lower()

    def matches(filename: str) -> bool:
        lower = filename.lower()
        if abbrev not in lower:
            return False
        if initials and initials in lower:
            return True
        if chapter_letters and chapter_letters in lower:
            return True
        return len(last_name) > 2 and last_name in lower

    return matches


def pick_contract_file(names: list[str], state_abbrev: str, author_name: str, chapter_title: str) -> Optional[str]:
    """Best contract filename: PDF before Word; falls back to a state-only match"""
    matches = contract_name_matcher(state_abbrev, author_name, chapter_title)
    pdfs = [n for n in names if n.lower().endswith(".pdf")]
    docs = [n for n in names if n.lower().endswith((".docx", ".doc"))]

    for candidates in (pdfs, docs):
        for name in candidates:
            if matches(name):
                return name

    abbrev = state_abbrev.lower()
    for candidates in (pdfs, docs):
        for name in candidates:
            if abbrev in name.lower():
                return name
    return None


def find_local_contract(
    reader: FileReader, state_abbrev: str, author_name: str, chapter_title: str
) -> Optional[Attachment]:
    name = pick_contract_file(reader.list_files(), state_abbrev, author_name, chapter_title)
    if not name:
        return None
    logger.info(f"📁 Found local contract: {name}")
    return reader.read(name)
