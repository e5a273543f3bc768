#!/usr/bin/env python3
"""
WordprocessingML Helpers
Common XML tokens and small string-level helpers for document.xml markup
"""

import re
from typing import List, Optional, Tuple

# Paragraphs
PARAGRAPH_CLOSE = '</w:p>'

# Tables
TABLE_OPEN = '<w:tbl>'
TABLE_CLOSE = '</w:tbl>'

# Document body
BODY_OPEN = '<w:body>'
BODY_CLOSE = '</w:body>'

# Run-level line and tab elements as produced for substituted values
TAB_XML = '</w:t><w:tab/><w:t xml:space="preserve">'
NEWLINE_XML = '<w:br/>'
# Line break inside a text node: close the text, break, reopen
BREAK_XML = '</w:t>' + NEWLINE_XML + '<w:t xml:space="preserve">'

# <w:p> or <w:p ...>, never <w:pPr>
PARAGRAPH_START_RE = re.compile(r'<w:p(?=[\s>/])[^>]*>')
PARAGRAPH_PROPS_RE = re.compile(r'<w:pPr(?:\s[^>]*)?/>|<w:pPr(?:\s[^>]*)?>.*?</w:pPr>', re.DOTALL)
TEXT_NODE_RE = re.compile(r'<w:t(?:\s[^>]*)?>(.*?)</w:t>', re.DOTALL)
TABLE_START_RE = re.compile(r'<w:tbl(?=[\s>])[^>]*>')
TABLE_CLOSE_RE = re.compile(r'</w:tbl>')

_XML_ESCAPES = [
    ('&', '&amp;'),
    ('<', '&lt;'),
    ('>', '&gt;'),
    ('"', '&quot;'),
    ("'", '&apos;'),
]


def xml_escape(text: str) -> str:
    """Escape &, <, >, and quotes for insertion into XML text"""
    if not text:
        return text
    # & must go first
    for char, entity in _XML_ESCAPES:
        text = text.replace(char, entity)
    return text


_MARKER_CHAR_REFS = [
    ('{', '&#123;'),
    ('}', '&#125;'),
    ('[', '&#91;'),
    (']', '&#93;'),
]


def escape_value(text: str) -> str:
    """
    Escape data for insertion into template markup

    On top of xml_escape, marker delimiters become character references so a
    substituted value is never read as a marker by later stages.
    """
    text = xml_escape(text)
    for char, ref in _MARKER_CHAR_REFS:
        text = text.replace(char, ref)
    return text


def xml_unescape(text: str) -> str:
    """Reverse xml_escape, plus numeric character references"""
    if not text or '&' not in text:
        return text

    def _numeric(match):
        ref = match.group(1)
        try:
            if ref[:1] in ('x', 'X'):
                return chr(int(ref[1:], 16))
            return chr(int(ref))
        except ValueError:
            return match.group(0)

    text = re.sub(r'&#([xX]?[0-9a-fA-F]+);', _numeric, text)
    for char, entity in reversed(_XML_ESCAPES):
        text = text.replace(entity, char)
    return text


def extract_paragraph_text(paragraph_xml: str) -> str:
    """Concatenate the (still XML-escaped) contents of every <w:t> in a paragraph"""
    return ''.join(TEXT_NODE_RE.findall(paragraph_xml))


def paragraph_properties(paragraph_xml: str) -> str:
    """Return the <w:pPr> block of a paragraph, or '' when it has none"""
    match = PARAGRAPH_PROPS_RE.search(paragraph_xml)
    return match.group(0) if match else ''


def text_paragraph(escaped_text: str, properties: str = '') -> str:
    """Build a one-run paragraph around already-escaped text"""
    return (
        f'<w:p>{properties}<w:r><w:t xml:space="preserve">{escaped_text}</w:t></w:r></w:p>'
    )


def find_paragraphs(body: str) -> List[Tuple[int, int]]:
    """
    Locate top-level paragraph spans in document order

    Returns:
        List of (start, end) offsets; end points just past </w:p>
    """
    spans = []
    pos = 0
    while True:
        match = PARAGRAPH_START_RE.search(body, pos)
        if not match:
            break
        start = match.start()
        if match.group(0).endswith('/>'):
            # Empty self-closing paragraph
            spans.append((start, match.end()))
            pos = match.end()
            continue
        end = body.find(PARAGRAPH_CLOSE, match.end())
        if end < 0:
            break
        end += len(PARAGRAPH_CLOSE)
        spans.append((start, end))
        pos = end
    return spans


def enclosing_paragraph_start(markup: str, offset: int) -> Optional[int]:
    """Start offset of the paragraph that contains offset, or None"""
    pos = offset
    while True:
        start = markup.rfind('<w:p', 0, pos)
        if start < 0:
            return None
        match = PARAGRAPH_START_RE.match(markup, start)
        if match:
            close = markup.find(PARAGRAPH_CLOSE, match.end())
            if close < 0 or close + len(PARAGRAPH_CLOSE) <= offset:
                return None
            return start
        pos = start


def find_table_end(markup: str, table_start: int) -> Optional[int]:
    """
    Find the end offset of the table opening at table_start, honouring nested tables

    Returns:
        Offset just past the matching </w:tbl>, or None when unbalanced
    """
    depth = 0
    pos = table_start
    while True:
        open_match = TABLE_START_RE.search(markup, pos)
        close_match = TABLE_CLOSE_RE.search(markup, pos)
        if not close_match:
            return None
        if open_match and open_match.start() < close_match.start():
            depth += 1
            pos = open_match.end()
            continue
        depth -= 1
        pos = close_match.end()
        if depth == 0:
            return pos
