"""
HTML/Text Normalizer

Turns raw scraped or pasted legal HTML into plain text while keeping the
paragraph structure the article chunker relies on.

Two entry points:
- normalize_html(): regex pipeline, no parser, never raises
- extract_main_content(): BeautifulSoup pass that keeps only the main content
  container of a full web page (used for scraped pages)
"""

import re
import logging

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Callers reject normalized text shorter than this
MIN_CONTENT_LENGTH = 100

_REMOVED_ELEMENTS = ("script", "style", "head", "nav", "footer", "header")
_BLOCK_TAGS = r"div|p|br|li|tr|h[1-6]"

# Tag interior; quoted attribute values may contain ">"
_TAG_BODY = r"""(?:[^>"']|"[^"]*"|'[^']*')"""

_REMOVED_ELEMENT_PATTERNS = [
    re.compile(rf"<{tag}\b{_TAG_BODY}*>.*?</{tag}\s*>", re.IGNORECASE | re.DOTALL)
    for tag in _REMOVED_ELEMENTS
]
_BLOCK_TAG_PATTERN = re.compile(rf"</?(?:{_BLOCK_TAGS})\b{_TAG_BODY}*>", re.IGNORECASE)
_ANY_TAG_PATTERN = re.compile(rf"<{_TAG_BODY}+>")
# Unpaired angle brackets left after tag stripping
_STRAY_ANGLE_PATTERN = re.compile(r"[<>]")
_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)

_NAMED_ENTITIES = {
    "&nbsp;": " ",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
}
_NUMERIC_ENTITY = re.compile(r"&#(\d+);")
_HEX_ENTITY = re.compile(r"&#[xX]([0-9a-fA-F]+);")

_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")

# Page chrome dropped before choosing the main content container
_CHROME_SELECTORS = (
    "nav, header, footer, aside, .sidebar, .navigation, .menu, .footer, "
    ".header, script, style, noscript, iframe"
)
_CONTENT_SELECTORS = [
    "article",
    ".content",
    ".main-content",
    "#content",
    "#main",
    ".post-content",
    ".article-content",
    ".entry-content",
    "main",
    ".container .row",
    "body",
]


def _decode_codepoint(value: str, base: int) -> str:
    try:
        return chr(int(value, base))
    except (ValueError, OverflowError):
        return ""


def decode_entities(text: str) -> str:
    """Decode the minimal entity set found in legal source pages."""
    for entity, char in _NAMED_ENTITIES.items():
        text = text.replace(entity, char)
    text = _NUMERIC_ENTITY.sub(lambda m: _decode_codepoint(m.group(1), 10), text)
    text = _HEX_ENTITY.sub(lambda m: _decode_codepoint(m.group(1), 16), text)
    # &amp; last so "&amp;lt;" decodes to the literal "&lt;"
    return text.replace("&amp;", "&")


def collapse_whitespace(text: str) -> str:
    """Collapse spaces, keep at most one blank line between paragraphs, trim."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def normalize_html(html: str) -> str:
    """
    Convert raw HTML into plain text.

    Args:
        html: Raw HTML (a full page or a pasted fragment)

    Returns:
        Plain text with paragraph breaks preserved. May be empty.
    """
    if not html:
        return ""

    text = _COMMENT_PATTERN.sub("", html)
    for pattern in _REMOVED_ELEMENT_PATTERNS:
        text = pattern.sub("", text)

    text = _BLOCK_TAG_PATTERN.sub("\n", text)
    text = _ANY_TAG_PATTERN.sub("", text)
    text = _STRAY_ANGLE_PATTERN.sub("", text)
    text = decode_entities(text)
    return collapse_whitespace(text)


def has_sufficient_content(text: str) -> bool:
    return len(text) >= MIN_CONTENT_LENGTH


def extract_main_content(html: str) -> str:
    """
    Keep only the main content container of a scraped page.

    Removes navigation chrome, then returns the inner HTML of whichever
    common content container holds the most text.

    Args:
        html: Full page HTML

    Returns:
        HTML fragment for normalize_html(); the input itself if no
        container matched
    """
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(_CHROME_SELECTORS):
        element.decompose()

    best_html = ""
    best_length = 0
    for selector in _CONTENT_SELECTORS:
        for element in soup.select(selector):
            length = len(element.get_text(strip=True))
            if length > best_length:
                best_length = length
                best_html = element.decode_contents()

    if not best_html:
        logger.debug("No content container matched, using full document")
        return str(soup)

    logger.debug(f"Main content selected ({best_length} text chars)")
    return best_html
