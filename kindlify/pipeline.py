"""
Conversion orchestration: OCR -> markdown -> HTML -> EPUB.
"""

import logging
import time
from dataclasses import dataclass

from .config import KindlifyConfig, safe_filename
from .epub_builder import EPUBBuilder, EPUBMetadata
from .markdown_html import convert
from .ocr import MistralOCRClient, OCRResult

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Result of converting one document to EPUB."""

    title: str
    filename: str
    epub: bytes
    page_count: int


class ConversionPipeline:
    """Turns a document URL or uploaded file into an EPUB.

    Usage:
        config = KindlifyConfig.from_env()
        pipeline = ConversionPipeline(config)
        result = pipeline.convert_url("https://example.com/paper.pdf", title="Paper")
    """

    def __init__(self, config: KindlifyConfig, ocr: MistralOCRClient | None = None) -> None:
        """Initialize the pipeline.

        Args:
            config: Service configuration
            ocr: OCR client. If None, one is created from config.
        """
        self.config = config
        self.ocr = ocr or MistralOCRClient(config)

    def close(self) -> None:
        self.ocr.close()

    def convert_url(self, url: str, title: str | None = None) -> ConversionResult:
        """Run OCR on a remote document and package it as EPUB."""
        if not url or not url.strip():
            raise ValueError("URL is required")

        logger.info(f"Converting URL: {url}")
        start_time = time.time()
        result = self.ocr.process(url.strip())
        return self._package(result, title, start_time)

    def convert_upload(self, filename: str, content: bytes, title: str | None = None) -> ConversionResult:
        """Upload a document for OCR and package the result as EPUB."""
        if not content:
            raise ValueError("File is required")

        logger.info(f"Converting upload: {filename}")
        start_time = time.time()
        result = self.ocr.process_upload(filename or "document", content)
        return self._package(result, title, start_time)

    def build_epub(self, title: str, markdown: str) -> bytes:
        """Convert markdown to HTML and package it as a single-section EPUB."""
        html = convert(markdown)

        metadata = EPUBMetadata(
            title=title,
            author=self.config.author,
            language=self.config.language,
        )
        builder = EPUBBuilder(metadata, cover_size=self.config.cover_size)
        builder.add_section(title, html)
        return builder.build()

    def _package(self, result: OCRResult, title: str | None, start_time: float) -> ConversionResult:
        book_title = self.config.resolve_title(title)
        markdown = result.markdown
        logger.debug(f"Total markdown length: {len(markdown)} characters")

        epub = self.build_epub(book_title, markdown)

        elapsed = time.time() - start_time
        logger.info(
            f"Converted {result.page_count} pages to EPUB "
            f"({len(epub)} bytes) in {elapsed:.1f}s"
        )
        return ConversionResult(
            title=book_title,
            filename=f"{safe_filename(book_title)}.epub",
            epub=epub,
            page_count=result.page_count,
        )
