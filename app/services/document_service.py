"""Resume text extraction."""
import asyncio
import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from app.errors import InvalidInput

logger = logging.getLogger(__name__)

MAX_PAGES = 50


class DocumentService:
    """Turns an uploaded PDF into plain text."""

    async def extract_text(self, data: bytes) -> str:
        # pypdf is synchronous and CPU bound
        return await asyncio.to_thread(self._extract, data)

    def _extract(self, data: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
        except (PdfReadError, ValueError) as e:
            raise InvalidInput("Uploaded file is not a readable PDF.") from e

        if reader.is_encrypted:
            raise InvalidInput("Encrypted PDF files are not supported.")
        if len(reader.pages) > MAX_PAGES:
            raise InvalidInput(f"PDF exceeds maximum page limit ({MAX_PAGES}).")

        pages = []
        for page in reader.pages:
            text = (page.extract_text() or "").strip()
            if text:
                pages.append(text)

        full_text = "\n\n".join(pages)
        logger.debug("Extracted %s characters from %s pages", len(full_text), len(reader.pages))
        return full_text
