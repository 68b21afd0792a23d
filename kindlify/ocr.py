"""
OCR client for the Mistral OCR API.

Documents are either referenced by URL or uploaded first, in which case the
uploaded file is signed, processed and then deleted again.
"""

import logging
import re
from dataclasses import dataclass, field

import httpx

from .config import KindlifyConfig

logger = logging.getLogger(__name__)

# Pages are joined as a thematic break on its own paragraph
PAGE_SEPARATOR = "\n\n---\n\n"

IMAGE_URL_PATTERN = re.compile(r'\.(png|jpg|jpeg|avif|webp)$', re.IGNORECASE)


class OCRError(RuntimeError):
    """Raised when the OCR service fails or returns something unusable."""


@dataclass
class OCRPage:
    """Markdown extracted from a single page."""

    index: int
    markdown: str


@dataclass
class OCRResult:
    """Result from OCR processing of a whole document."""

    pages: list[OCRPage] = field(default_factory=list)
    model: str = ""
    document_type: str = "document_url"

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def markdown(self) -> str:
        """All pages joined with the page separator."""
        return join_pages(page.markdown for page in self.pages)


def detect_document_type(url: str) -> str:
    """Pick the OCR document type from the URL's file extension.

    Returns:
        'image_url' for image files, 'document_url' for PDFs and everything else
    """
    if IMAGE_URL_PATTERN.search(url.lower()):
        return "image_url"
    return "document_url"


def join_pages(pages) -> str:
    """Join page markdown into one document, pages separated by '---'."""
    return PAGE_SEPARATOR.join(pages)


class MistralOCRClient:
    """Thin wrapper around the Mistral files and OCR endpoints.

    Usage:
        with MistralOCRClient(config) as ocr:
            result = ocr.process("https://example.com/paper.pdf")
    """

    def __init__(self, config: KindlifyConfig, client: httpx.Client | None = None) -> None:
        """Initialize OCR client.

        Args:
            config: Service configuration (API key, model, timeout)
            client: Optional preconfigured httpx client. If None, one is created
                and closed with this object.
        """
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.request_timeout)
        self._headers = {"Authorization": f"Bearer {config.api_key}"}

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request to the API, turning every failure into OCRError."""
        url = f"{self.config.api_base_url}{path}"
        try:
            response = self._client.request(method, url, headers=self._headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise OCRError(
                f"OCR API {method} {path} failed with status "
                f"{e.response.status_code}: {e.response.text[:500]}"
            ) from e
        except httpx.HTTPError as e:
            raise OCRError(f"OCR API {method} {path} failed: {e}") from e
        return response

    def _json(self, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise OCRError(f"OCR API returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise OCRError(f"OCR API returned unexpected payload: {type(data).__name__}")
        return data

    def upload(self, filename: str, content: bytes) -> str:
        """Upload a file for OCR.

        Returns:
            ID of the uploaded file
        """
        response = self._request(
            "POST",
            "/files",
            data={"purpose": "ocr"},
            files={"file": (filename, content)},
        )
        file_id = self._json(response).get("id")
        if not file_id:
            raise OCRError("OCR API upload response has no file id")

        logger.info(f"Uploaded {filename} ({len(content)} bytes) as {file_id}")
        return file_id

    def get_signed_url(self, file_id: str) -> str:
        """Get a temporary URL the OCR endpoint can read the file from."""
        response = self._request("GET", f"/files/{file_id}/url")
        url = self._json(response).get("url")
        if not url:
            raise OCRError(f"OCR API returned no signed URL for {file_id}")
        return url

    def delete(self, file_id: str) -> None:
        self._request("DELETE", f"/files/{file_id}")
        logger.debug(f"Deleted uploaded file {file_id}")

    def process(self, url: str) -> OCRResult:
        """Run OCR on a document or image URL.

        Args:
            url: Public or signed URL of the document

        Returns:
            OCRResult with pages in page order
        """
        document_type = detect_document_type(url)
        if document_type == "image_url":
            document = {"type": "image_url", "image_url": url}
        else:
            document = {"type": "document_url", "document_url": url}

        logger.info(f"Running OCR ({self.config.ocr_model}, {document_type})")

        response = self._request(
            "POST",
            "/ocr",
            json={
                "model": self.config.ocr_model,
                "document": document,
                "table_format": self.config.table_format,
                "include_image_base64": False,
            },
        )
        data = self._json(response)

        raw_pages = data.get("pages")
        if not isinstance(raw_pages, list):
            raise OCRError("OCR API response has no pages")

        pages = []
        for position, raw in enumerate(raw_pages):
            if not isinstance(raw, dict):
                raise OCRError(f"OCR API returned malformed page at position {position}")
            try:
                index = int(raw.get("index", position))
            except (TypeError, ValueError) as e:
                raise OCRError(f"OCR API returned invalid page index at position {position}: {e}") from e
            pages.append(OCRPage(
                index=index,
                markdown=raw.get("markdown") or "",
            ))
        pages.sort(key=lambda p: p.index)

        logger.info(f"OCR complete: {len(pages)} pages")
        return OCRResult(
            pages=pages,
            model=data.get("model", self.config.ocr_model),
            document_type=document_type,
        )

    def process_upload(self, filename: str, content: bytes) -> OCRResult:
        """Upload a file, run OCR on it, then delete the upload.

        Deletion is attempted even when OCR fails. A failed deletion is
        logged and does not fail the conversion.
        """
        file_id = self.upload(filename, content)
        try:
            url = self.get_signed_url(file_id)
            return self.process(url)
        finally:
            try:
                self.delete(file_id)
            except OCRError as e:
                logger.error(f"Error deleting uploaded file {file_id}: {e}")
