#!/usr/bin/env python3
"""
Paragraph Unwrap
Replaces a marker together with its enclosing paragraph by arbitrary markup
"""

import logging
from typing import Optional

from marker_grammar import STAR_TAG_RE
from wordml import (
    enclosing_paragraph_start,
    extract_paragraph_text,
    find_paragraphs,
    paragraph_properties,
    text_paragraph,
)

logger = logging.getLogger(__name__)


def replace_tag_with_paragraph(body: str, tag: str, content: str, count: Optional[int] = None) -> str:
    """
    Replace the paragraph holding tag with content

    A paragraph whose text is exactly the tag is swapped for content as a
    whole, so block markup (tables, other paragraphs) never ends up nested in
    a <w:p>. When the tag shares the paragraph with other text, the paragraph
    is split into a pre-text paragraph, the content and a post-text paragraph;
    blank halves are dropped and both halves keep the original <w:pPr>.

    Args:
        body: Part markup
        tag: Marker text as it appears in the joined paragraph text
        content: Replacement markup, inserted verbatim
        count: Maximum number of paragraphs to replace (None for all)

    Returns:
        New markup
    """
    if not tag or tag not in body:
        return body

    out = []
    pos = 0
    replaced = 0

    for start, end in find_paragraphs(body):
        if count is not None and replaced >= count:
            break

        paragraph = body[start:end]
        text = extract_paragraph_text(paragraph)
        if tag not in text:
            continue

        out.append(body[pos:start])
        if text.strip() == tag:
            out.append(content)
        else:
            before, after = text.split(tag, 1)
            props = paragraph_properties(paragraph)
            if before.strip():
                out.append(text_paragraph(before.strip(), props))
            out.append(content)
            if after.strip():
                out.append(text_paragraph(after.strip(), props))

        pos = end
        replaced += 1

    out.append(body[pos:])
    return ''.join(out)


def unwrap_star_tags(body: str) -> str:
    """Expand every {*name*} into a bare {name}, dropping the paragraph around it"""
    while True:
        match = STAR_TAG_RE.search(body)
        if not match:
            return body

        star_tag = match.group(0)
        plain = '{' + match.group(1) + '}'
        updated = replace_tag_with_paragraph(body, star_tag, plain, count=1)
        if updated == body:
            # Not inside any paragraph text: rewrite in place
            logger.debug("Star marker %s outside paragraph text", star_tag)
            updated = body.replace(star_tag, plain, 1)
        body = updated


def replace_directive(body: str, offset: int, tag: str, content: str) -> str:
    """Replace the directive found at offset together with its paragraph"""
    para_start = enclosing_paragraph_start(body, offset)
    if para_start is not None:
        head, tail = body[:para_start], body[para_start:]
        replaced = replace_tag_with_paragraph(tail, tag, content, count=1)
        if replaced != tail:
            return head + replaced
    return body[:offset] + content + body[offset + len(tag):]
