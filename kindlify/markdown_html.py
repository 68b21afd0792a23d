"""
Markdown to HTML conversion for OCR output.

A fixed, ordered list of regex substitutions. Each step takes the previous
step's output, so the order of STEPS matters. The result is an HTML fragment
(no document tags) meant to be used as the body of an EPUB section.

This is not a markdown parser: nesting, tables and escaping are not handled,
and running the converter on its own output is not stable.
"""

import re
from typing import Callable

# Headers, most specific first so "#" never swallows "##" or "###"
H3_PATTERN = re.compile(r'^### (.*)$', re.MULTILINE | re.IGNORECASE)
H2_PATTERN = re.compile(r'^## (.*)$', re.MULTILINE | re.IGNORECASE)
H1_PATTERN = re.compile(r'^# (.*)$', re.MULTILINE | re.IGNORECASE)

STRONG_STAR_PATTERN = re.compile(r'\*\*(.*?)\*\*')
STRONG_UNDERSCORE_PATTERN = re.compile(r'__(.*?)__')
EM_STAR_PATTERN = re.compile(r'\*(.*?)\*')
EM_UNDERSCORE_PATTERN = re.compile(r'_(.*?)_')

# Links skip image syntax so the image step still sees "![alt](src)"
LINK_PATTERN = re.compile(r'(?<!!)\[([^\]]+)\]\(([^)]+)\)')
IMAGE_PATTERN = re.compile(r'!\[([^\]]*)\]\(([^)]+)\)')

# A heading always sits on its own line, so a line break next to it is a block edge
BREAK_BEFORE_HEADING = re.compile(r'<br>(?=<h[1-6]>)')
BREAK_AFTER_HEADING = re.compile(r'(?<=</h[1-6]>)<br>')
WRAPPED_HEADING = re.compile(r'<p>(<h([1-6])>.*?</h\2>)</p>')

# List items start a paragraph or follow a line break, and end at the next one
UNORDERED_ITEM = re.compile(r'(?:(?<=<p>)|(?<=<br>))- (.*?)(?=<br>|</p>)')
ORDERED_ITEM = re.compile(r'(?:(?<=<p>)|(?<=<br>))\d+\. (.*?)(?=<br>|</p>)')

HORIZONTAL_RULE = re.compile(r'<p>---</p>')

Step = Callable[[str], str]


def convert_headers(text: str) -> str:
    """Turn "# ", "## " and "### " lines into h1/h2/h3."""
    text = H3_PATTERN.sub(r'<h3>\1</h3>', text)
    text = H2_PATTERN.sub(r'<h2>\1</h2>', text)
    return H1_PATTERN.sub(r'<h1>\1</h1>', text)


def convert_strong(text: str) -> str:
    text = STRONG_STAR_PATTERN.sub(r'<strong>\1</strong>', text)
    return STRONG_UNDERSCORE_PATTERN.sub(r'<strong>\1</strong>', text)


def convert_emphasis(text: str) -> str:
    """Single-marker emphasis. Must run after convert_strong."""
    text = EM_STAR_PATTERN.sub(r'<em>\1</em>', text)
    return EM_UNDERSCORE_PATTERN.sub(r'<em>\1</em>', text)


def convert_links(text: str) -> str:
    return LINK_PATTERN.sub(r'<a href="\2">\1</a>', text)


def convert_images(text: str) -> str:
    return IMAGE_PATTERN.sub(r'<img src="\2" alt="\1" />', text)


def convert_breaks(text: str) -> str:
    """Blank lines become paragraph boundaries, single newlines become <br>."""
    text = text.replace('\n\n', '</p><p>')
    return text.replace('\n', '<br>')


def wrap_paragraphs(text: str) -> str:
    return f'<p>{text}</p>'


def unwrap_headings(text: str) -> str:
    """Lift headings out of the paragraphs they were wrapped in.

    A heading joined to its neighbours by line breaks splits the paragraph
    around it first, then any paragraph holding only a heading is dropped.
    """
    text = BREAK_BEFORE_HEADING.sub('</p><p>', text)
    text = BREAK_AFTER_HEADING.sub('</p><p>', text)
    return WRAPPED_HEADING.sub(r'\1', text)


def _convert_list(text: str, pattern: re.Pattern, tag: str) -> str:
    """Wrap each matching line in a one-item list, then merge neighbours.

    Only items separated by a single line break are merged. Items separated
    by a blank line stay in separate lists.
    """
    text = pattern.sub(rf'<{tag}><li>\1</li></{tag}>', text)
    text = text.replace(f'</{tag}><br><{tag}>', '')

    # Close or reopen the surrounding paragraph around the list
    text = text.replace(f'<p><{tag}>', f'<{tag}>')
    text = text.replace(f'</{tag}></p>', f'</{tag}>')
    text = text.replace(f'<br><{tag}>', f'</p><{tag}>')
    return text.replace(f'</{tag}><br>', f'</{tag}><p>')


def convert_unordered_lists(text: str) -> str:
    return _convert_list(text, UNORDERED_ITEM, 'ul')


def convert_ordered_lists(text: str) -> str:
    return _convert_list(text, ORDERED_ITEM, 'ol')


def convert_horizontal_rules(text: str) -> str:
    return HORIZONTAL_RULE.sub('<hr>', text)


STEPS: tuple[Step, ...] = (
    convert_headers,
    convert_strong,
    convert_emphasis,
    convert_links,
    convert_images,
    convert_breaks,
    wrap_paragraphs,
    unwrap_headings,
    convert_unordered_lists,
    convert_ordered_lists,
    convert_horizontal_rules,
)


def convert(markdown: str) -> str:
    """Convert markdown text to an HTML fragment.

    Never raises: malformed markdown comes out as literal text or
    mis-wrapped tags.

    Args:
        markdown: Markdown text, usually several OCR pages joined together

    Returns:
        HTML fragment without document tags
    """
    html = markdown or ''
    for step in STEPS:
        html = step(html)
    return html
