"""
Text extraction for uploaded documents.

PDFs are converted to Markdown with pymupdf4llm so the text keeps its headings
and tables; any other upload is decoded as UTF-8. The result is capped so it
can be pasted into a chat prompt.
"""

import pymupdf
import pymupdf4llm  # type: ignore[import-untyped]
from loguru import logger
from pydantic import BaseModel

MAX_EXTRACTED_CHARS = 5000


class ExtractedDocument(BaseModel):
    text: str
    filename: str
    size: int


def _is_pdf(filename: str, data: bytes) -> bool:
    return filename.lower().endswith(".pdf") or data.startswith(b"%PDF")


def _pdf_to_markdown(data: bytes) -> str:
    with pymupdf.open(stream=data, filetype="pdf") as document:
        return pymupdf4llm.to_markdown(document)


def extract_document_text(filename: str, data: bytes, max_chars: int = MAX_EXTRACTED_CHARS) -> ExtractedDocument:
    if _is_pdf(filename, data):
        text = _pdf_to_markdown(data)
        logger.debug(f"Converted PDF {filename!r} ({len(data)} bytes) to {len(text)} characters")
    else:
        text = data.decode("utf-8", errors="replace")
    return ExtractedDocument(text=text[:max_chars], filename=filename, size=len(data))
