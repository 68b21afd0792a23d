"""
Kindlify HTTP service.

Accepts a document upload or URL, runs OCR on it and returns an EPUB.

Run with:
    uvicorn kindlify.server:create_app --factory --port 8787
"""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import KindlifyConfig
from .pipeline import ConversionPipeline, ConversionResult

logger = logging.getLogger(__name__)

EPUB_MEDIA_TYPE = "application/epub+zip"


class ConvertURLRequest(BaseModel):
    url: str | None = None
    title: str | None = None


def create_app(
    config: KindlifyConfig | None = None,
    pipeline: ConversionPipeline | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Service configuration. If None, read from the environment,
            which fails immediately when MISTRAL_API_KEY is missing.
        pipeline: Conversion pipeline. If None, one is built from config.
    """
    if pipeline is None:
        config = config or KindlifyConfig.from_env()
        pipeline = ConversionPipeline(config)
    config = pipeline.config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        pipeline.close()

    app = FastAPI(title="Kindlify", lifespan=lifespan)
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def bad_request(request: Request, exc: ValueError):
        return JSONResponse({"error": str(exc) or "Bad request"}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Error: {exc}", exc_info=exc)
        return JSONResponse({"error": str(exc) or "An error occurred"}, status_code=500)

    @app.post("/api/convert")
    async def convert_document(request: Request):
        """Convert an uploaded file or a document URL to EPUB."""
        content_type = request.headers.get("content-type", "")

        if "multipart/form-data" in content_type:
            form = await request.form()
            upload = form.get("file")
            title = form.get("title")
            if not isinstance(title, str):
                title = None

            if not isinstance(upload, UploadFile):
                raise HTTPException(status_code=400, detail="File is required")

            content = await upload.read()
            if not content:
                raise HTTPException(status_code=400, detail="File is required")

            result = await run_in_threadpool(
                pipeline.convert_upload, upload.filename or "document", content, title
            )
        else:
            try:
                body = ConvertURLRequest.model_validate(await request.json())
            except (json.JSONDecodeError, ValueError):
                raise HTTPException(status_code=400, detail="Invalid JSON body")

            if not body.url or not body.url.strip():
                raise HTTPException(status_code=400, detail="URL is required")

            result = await run_in_threadpool(pipeline.convert_url, body.url, body.title)

        return _epub_response(result)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "model": config.ocr_model,
        }

    return app


def _epub_response(result: ConversionResult) -> Response:
    return Response(
        content=result.epub,
        media_type=EPUB_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
