#!/usr/bin/env python3
"""
Command-line interface for Kindlify.

Usage:
    # Convert a remote document to EPUB
    kindlify convert https://example.com/paper.pdf --title "Paper"

    # Convert a local file (uploaded for OCR, then deleted)
    kindlify convert ./scan.pdf --title "Scan" --output ./scan.epub

    # Render OCR markdown to HTML without calling the OCR service
    kindlify html ./book.md --output ./book.html

    # Run the HTTP service
    kindlify serve --port 8787
"""

import argparse
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def cmd_convert(args: argparse.Namespace) -> int:
    """Run OCR on a URL or file and write an EPUB."""
    from .config import ConfigError, KindlifyConfig
    from .ocr import OCRError
    from .pipeline import ConversionPipeline

    try:
        config = KindlifyConfig.from_env()
    except ConfigError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    pipeline = ConversionPipeline(config)
    try:
        if _is_url(args.source):
            result = pipeline.convert_url(args.source, title=args.title)
        else:
            input_path = Path(args.source)
            if not input_path.exists():
                print(f"Input file not found: {input_path}", file=sys.stderr)
                return 1
            result = pipeline.convert_upload(
                input_path.name,
                input_path.read_bytes(),
                title=args.title or input_path.stem,
            )
    except (OCRError, ValueError) as e:
        print(f"\n✗ Failed: {e}", file=sys.stderr)
        return 1
    finally:
        pipeline.close()

    output_path = Path(args.output) if args.output else Path(result.filename)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.epub)

    print(f"✓ EPUB created: {output_path} ({result.page_count} pages)")
    return 0


def cmd_html(args: argparse.Namespace) -> int:
    """Convert a markdown file to an HTML fragment."""
    from .markdown_html import convert

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return 1

    html = convert(input_path.read_text(encoding="utf-8"))

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html, encoding="utf-8")
        print(f"✓ HTML written: {output_path}")
    else:
        print(html)

    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP service."""
    import uvicorn

    from .config import ConfigError, KindlifyConfig
    from .server import create_app

    try:
        config = KindlifyConfig.from_env()
    except ConfigError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    host = args.host or config.host
    port = args.port or config.port

    logger.info(f"Starting server on {host}:{port} (model: {config.ocr_model})")
    uvicorn.run(create_app(config), host=host, port=port)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="kindlify",
        description="Convert documents to EPUB with OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # convert command
    p_convert = subparsers.add_parser(
        "convert",
        help="Convert a document URL or file to EPUB",
    )
    p_convert.add_argument("source", help="Document URL or local file path")
    p_convert.add_argument("-t", "--title", help="Book title (default: Document, or the file name)")
    p_convert.add_argument("-o", "--output", help="Output EPUB file (default: <title>.epub)")
    p_convert.set_defaults(func=cmd_convert)

    # html command
    p_html = subparsers.add_parser(
        "html",
        help="Convert a markdown file to HTML",
    )
    p_html.add_argument("input", help="Input markdown file")
    p_html.add_argument("-o", "--output", help="Output HTML file (default: stdout)")
    p_html.set_defaults(func=cmd_html)

    # serve command
    p_serve = subparsers.add_parser(
        "serve",
        help="Run the HTTP service",
    )
    p_serve.add_argument("--host", help="Bind address (default: KINDLIFY_HOST or 0.0.0.0)")
    p_serve.add_argument("--port", type=int, help="Port (default: KINDLIFY_PORT or 8787)")
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
