"""
Document Rasterizer

Statements that are not spreadsheets go to the extraction oracle as
JPEG page images:

- PDF: the first `max_document_pages` pages, rendered with pypdfium2
  at `render_scale` (2.0 keeps small print legible) and re-encoded as
  JPEG to keep the request payload small
- Images: decoded with Pillow and re-encoded the same way, which also
  rejects corrupt uploads before they cost an API call
"""

import io
import mimetypes
from pathlib import PurePath
from typing import Optional

import pypdfium2 as pdfium
import structlog
from PIL import Image, UnidentifiedImageError

from wealthdash.config import AppSettings, get_settings
from wealthdash.models.imports import FileKind
from wealthdash.services.parsing.errors import EmptyFileError, ParseError, UnsupportedFileError


logger = structlog.get_logger(__name__)

EXTENSION_KINDS = {
    ".xlsx": FileKind.SPREADSHEET,
    ".xlsm": FileKind.SPREADSHEET,
    ".csv": FileKind.SPREADSHEET,
    ".pdf": FileKind.DOCUMENT,
    ".jpg": FileKind.IMAGE,
    ".jpeg": FileKind.IMAGE,
    ".png": FileKind.IMAGE,
    ".webp": FileKind.IMAGE,
}

SPREADSHEET_MIME_TYPES = {
    "text/csv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def detect_file_kind(filename: str, mime_type: Optional[str] = None) -> FileKind:
    """
    Decide how a file is read, by extension first and MIME type second.

    Raises:
        UnsupportedFileError: Neither the extension nor the MIME type is known
    """
    extension = PurePath(filename or "").suffix.lower()
    if extension in EXTENSION_KINDS:
        return EXTENSION_KINDS[extension]

    mime = (mime_type or mimetypes.guess_type(filename or "")[0] or "").lower()
    if mime == "application/pdf":
        return FileKind.DOCUMENT
    if mime.startswith("image/"):
        return FileKind.IMAGE
    if mime in SPREADSHEET_MIME_TYPES:
        return FileKind.SPREADSHEET

    raise UnsupportedFileError(
        f"Unsupported file type: {filename or 'unnamed file'}. "
        "Please upload a PDF, an image, or an .xlsx/.csv spreadsheet."
    )


class DocumentRasterizer:
    """Renders PDFs and normalizes images into JPEG bytes for the oracle."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _to_jpeg(self, image: Image.Image) -> bytes:
        if image.mode != "RGB":
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=self._settings.jpeg_quality)
        return buffer.getvalue()

    def rasterize(self, data: bytes) -> list[bytes]:
        """
        Render the leading pages of a PDF.

        Raises:
            ParseError: The bytes are not a readable PDF
            EmptyFileError: The PDF has no pages
        """
        try:
            pdf = pdfium.PdfDocument(data)
        except pdfium.PdfiumError as e:
            raise ParseError(f"Could not open PDF: {e}")

        pages: list[bytes] = []
        total_pages = 0
        try:
            total_pages = len(pdf)
            page_count = min(total_pages, self._settings.max_document_pages)
            for index in range(page_count):
                page = pdf[index]
                try:
                    bitmap = page.render(scale=self._settings.render_scale)
                    pages.append(self._to_jpeg(bitmap.to_pil()))
                finally:
                    page.close()
        except pdfium.PdfiumError as e:
            raise ParseError(f"Could not render PDF page: {e}")
        finally:
            pdf.close()

        if not pages:
            raise EmptyFileError("The PDF has no pages.")

        logger.info("document_rasterized", page_count=len(pages), total_pages=total_pages)
        return pages

    def prepare_image(self, data: bytes) -> list[bytes]:
        """
        Decode an uploaded image and re-encode it as a single JPEG page.

        Raises:
            ParseError: The bytes are not a readable image
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return [self._to_jpeg(image)]
        except (UnidentifiedImageError, OSError) as e:
            raise ParseError(f"Could not read image: {e}")
