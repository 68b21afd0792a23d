"""
Kindlify - Convert documents to EPUB with OCR

1. Accept an uploaded file or a document URL
2. Run OCR via the Mistral OCR API
3. Join the pages and convert their markdown to HTML
4. Package the HTML as an EPUB for download
"""

__version__ = "1.0.0"
__author__ = "Kindlify"

from .config import KindlifyConfig
from .markdown_html import convert
from .pipeline import ConversionPipeline

__all__ = ["ConversionPipeline", "KindlifyConfig", "convert"]
