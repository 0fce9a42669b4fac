"""
Content Cleaner
===============

HTML to plain-text conversion for changelog descriptions.

Descriptions arrive as HTML fragments, sometimes still wrapped in a second
CDATA section. Output is the visible text only, entities decoded and
whitespace collapsed to single spaces.
"""

import re

from bs4 import BeautifulSoup, Comment

# Elements whose content is never shown to a reader
INVISIBLE_TAGS = ("script", "style", "noscript", "template", "iframe", "object", "embed")

_CDATA = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def looks_like_markup(text: str) -> bool:
    """True when ``text`` contains a tag or an entity reference."""
    return "<" in text or "&" in text


def extract_plain_text(html_content: str) -> str:
    """Visible text of an HTML fragment.

    Args:
        html_content: HTML, plain text or empty

    Returns:
        Text with markup removed, entities decoded and whitespace collapsed
    """
    if not html_content or not html_content.strip():
        return ""

    content = _CDATA.sub(r"\1", html_content)
    if not looks_like_markup(content):
        return collapse_whitespace(content)

    soup = BeautifulSoup(content, "html.parser")
    for element in soup(list(INVISIBLE_TAGS)):
        element.decompose()
    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()

    return collapse_whitespace(soup.get_text(separator=" "))
