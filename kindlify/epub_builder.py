"""
EPUB generation from HTML sections.
"""

import io
import logging
import re
import uuid
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

# Void elements the converter emits in HTML form; XHTML needs them self-closed
VOID_TAG_PATTERN = re.compile(r'<(br|hr)\s*>', re.IGNORECASE)

# Ampersands that do not already start an entity reference
BARE_AMPERSAND_PATTERN = re.compile(r"&(?!#?\w+;)")


@dataclass
class EPUBMetadata:
    """Metadata for EPUB file."""

    title: str
    author: str = "Kindlify"
    language: str = "en"
    identifier: str = ""
    date: str = ""

    def __post_init__(self) -> None:
        if not self.identifier:
            self.identifier = f"urn:uuid:{uuid.uuid4()}"
        if not self.date:
            self.date = datetime.now().strftime("%Y-%m-%d")


@dataclass
class Section:
    """One titled chunk of HTML in the book body and table of contents."""

    title: str
    html: str


class EPUBBuilder:
    """Builds EPUB files from HTML sections.

    Usage:
        builder = EPUBBuilder(EPUBMetadata(title="My Book"))
        builder.add_section("My Book", "<p>Hello</p>")
        epub_bytes = builder.build()
    """

    def __init__(self, metadata: EPUBMetadata, cover_size: tuple[int, int] = (600, 800)) -> None:
        """Initialize EPUB builder.

        Args:
            metadata: Book metadata
            cover_size: Cover image size in pixels (width, height)
        """
        self.metadata = metadata
        self.cover_size = cover_size
        self.sections: list[Section] = []

    def add_section(self, title: str, html: str) -> None:
        """Append a section to the book.

        Args:
            title: Section title shown in the table of contents
            html: HTML fragment for the section body
        """
        self.sections.append(Section(title=title, html=html))

    def build(self) -> bytes:
        """Build the EPUB archive.

        Returns:
            EPUB file contents
        """
        if not self.sections:
            raise ValueError("EPUB needs at least one section")

        section_ids = [f"section{i}" for i in range(len(self.sections))]

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as epub:
            # Mimetype must be first and uncompressed
            epub.writestr('mimetype', 'application/epub+zip', compress_type=zipfile.ZIP_STORED)

            epub.writestr('META-INF/container.xml', self._container_xml())
            epub.writestr('OEBPS/content.opf', self._content_opf(section_ids))
            epub.writestr('OEBPS/toc.ncx', self._toc_ncx())
            epub.writestr('OEBPS/nav.xhtml', self._nav_xhtml())
            epub.writestr('OEBPS/stylesheet.css', self._stylesheet())
            epub.writestr('OEBPS/cover.png', self.render_cover())
            epub.writestr('OEBPS/cover.xhtml', self._cover_xhtml())

            for section_id, section in zip(section_ids, self.sections):
                epub.writestr(f'OEBPS/{section_id}.xhtml', self._section_xhtml(section))

        logger.info(f"Created EPUB with {len(self.sections)} sections: {self.metadata.title}")
        return buffer.getvalue()

    def write(self, output_path: Path) -> Path:
        """Build the EPUB and save it to disk."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.build())
        return output_path

    def render_cover(self) -> bytes:
        """Render a plain PNG cover with the book title and author."""
        width, height = self.cover_size
        image = Image.new("RGB", (width, height), (250, 248, 242))
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default()

        margin = max(width // 12, 1)
        draw.rectangle(
            [margin // 2, margin // 2, width - margin // 2, height - margin // 2],
            outline=(60, 60, 60),
            width=2,
        )

        y = height // 3
        for line in self._wrap_title(self.metadata.title, draw, font, width - 2 * margin):
            line_width = draw.textlength(line, font=font)
            draw.text(((width - line_width) / 2, y), line, fill=(20, 20, 20), font=font)
            y += 16

        author_width = draw.textlength(self.metadata.author, font=font)
        draw.text(
            ((width - author_width) / 2, height - 2 * margin),
            self.metadata.author,
            fill=(90, 90, 90),
            font=font,
        )

        out = io.BytesIO()
        image.save(out, format="PNG")
        return out.getvalue()

    @staticmethod
    def _wrap_title(title: str, draw: ImageDraw.ImageDraw, font, max_width: int) -> list[str]:
        """Greedy word wrap of the title to fit the cover width."""
        lines: list[str] = []
        current = ""
        for word in title.split():
            candidate = f"{current} {word}".strip()
            if current and draw.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        if current:
            lines.append(current)
        return lines

    def _section_xhtml(self, section: Section) -> str:
        """Wrap an HTML fragment in an XHTML document."""
        body = VOID_TAG_PATTERN.sub(r'<\1/>', section.html)
        body = BARE_AMPERSAND_PATTERN.sub("&amp;", body)

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{self.metadata.language}">
<head>
    <meta charset="UTF-8"/>
    <title>{self._escape_xml(section.title)}</title>
    <link rel="stylesheet" type="text/css" href="stylesheet.css"/>
</head>
<body>
{body}
</body>
</html>'''

    def _cover_xhtml(self) -> str:
        return f'''<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" xml:lang="{self.metadata.language}">
<head>
    <meta charset="UTF-8"/>
    <title>{self._escape_xml(self.metadata.title)}</title>
</head>
<body epub:type="cover">
    <img src="cover.png" alt="{self._escape_xml(self.metadata.title)}"/>
</body>
</html>'''

    def _container_xml(self) -> str:
        """Generate META-INF/container.xml."""
        return '''<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
    <rootfiles>
        <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
    </rootfiles>
</container>'''

    def _content_opf(self, section_ids: list[str]) -> str:
        """Generate OEBPS/content.opf (package document)."""
        manifest_items = [
            '<item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>',
            '<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>',
            '<item id="css" href="stylesheet.css" media-type="text/css"/>',
            '<item id="cover-image" href="cover.png" media-type="image/png" properties="cover-image"/>',
            '<item id="cover" href="cover.xhtml" media-type="application/xhtml+xml"/>',
        ]
        spine_items = ['<itemref idref="cover" linear="no"/>']

        for section_id in section_ids:
            manifest_items.append(
                f'<item id="{section_id}" href="{section_id}.xhtml" media-type="application/xhtml+xml"/>'
            )
            spine_items.append(f'<itemref idref="{section_id}"/>')

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="BookId">
    <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
        <dc:identifier id="BookId">{self._escape_xml(self.metadata.identifier)}</dc:identifier>
        <dc:title>{self._escape_xml(self.metadata.title)}</dc:title>
        <dc:creator>{self._escape_xml(self.metadata.author)}</dc:creator>
        <dc:language>{self.metadata.language}</dc:language>
        <dc:date>{self.metadata.date}</dc:date>
        <meta name="cover" content="cover-image"/>
        <meta property="dcterms:modified">{datetime.now().strftime("%Y-%m-%dT%H:%M:%SZ")}</meta>
    </metadata>
    <manifest>
        {chr(10).join(manifest_items)}
    </manifest>
    <spine toc="ncx">
        {chr(10).join(spine_items)}
    </spine>
</package>'''

    def _toc_ncx(self) -> str:
        """Generate OEBPS/toc.ncx (for EPUB2 compatibility)."""
        nav_points = []
        for i, section in enumerate(self.sections):
            nav_points.append(f'''
        <navPoint id="navpoint{i}" playOrder="{i+1}">
            <navLabel><text>{self._escape_xml(section.title)}</text></navLabel>
            <content src="section{i}.xhtml"/>
        </navPoint>''')

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
    <head>
        <meta name="dtb:uid" content="{self._escape_xml(self.metadata.identifier)}"/>
        <meta name="dtb:depth" content="1"/>
        <meta name="dtb:totalPageCount" content="0"/>
        <meta name="dtb:maxPageNumber" content="0"/>
    </head>
    <docTitle><text>{self._escape_xml(self.metadata.title)}</text></docTitle>
    <navMap>
        {''.join(nav_points)}
    </navMap>
</ncx>'''

    def _nav_xhtml(self) -> str:
        """Generate OEBPS/nav.xhtml (EPUB3 navigation)."""
        nav_items = [
            f'<li><a href="section{i}.xhtml">{self._escape_xml(section.title)}</a></li>'
            for i, section in enumerate(self.sections)
        ]

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" xml:lang="{self.metadata.language}">
<head>
    <meta charset="UTF-8"/>
    <title>Table of Contents</title>
    <link rel="stylesheet" type="text/css" href="stylesheet.css"/>
</head>
<body>
    <nav epub:type="toc">
        <h1>Table of Contents</h1>
        <ol>
            {chr(10).join(nav_items)}
        </ol>
    </nav>
</body>
</html>'''

    def _stylesheet(self) -> str:
        """Generate default stylesheet."""
        return '''body {
    font-family: Georgia, serif;
    line-height: 1.6;
    margin: 1em;
    text-align: justify;
}

h1, h2, h3 {
    font-family: Helvetica, Arial, sans-serif;
    line-height: 1.3;
    margin-top: 1.5em;
    margin-bottom: 0.5em;
}

h1 { font-size: 1.8em; }
h2 { font-size: 1.5em; }
h3 { font-size: 1.3em; }

p {
    margin: 0.5em 0;
}

hr {
    border: none;
    border-top: 1px solid #ccc;
    margin: 2em 0;
}

img {
    max-width: 100%;
}
'''

    def _escape_xml(self, text: str) -> str:
        """Escape special XML characters."""
        return (
            text
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&apos;")
        )
