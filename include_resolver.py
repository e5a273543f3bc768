#!/usr/bin/env python3
"""
Include Resolver
Parses [include/...] directives and extracts fragments from other documents

Supported forms:
    [include/file.docx]            whole body
    [include/file.docx/body]       whole body
    [include/file.docx/table/2]    second table
    [include/dir/file.docx/p/3]    third paragraph
"""

import logging
import os
import posixpath
import re
from dataclasses import dataclass

from errors import DirectiveError, IncludeError
from wordml import (
    BODY_CLOSE,
    BODY_OPEN,
    TABLE_START_RE,
    find_paragraphs,
    find_table_end,
)

logger = logging.getLogger(__name__)

INCLUDE_EXTENSIONS = ('.docx', '.dotx')
FRAGMENTS = {'body': 'body', 'table': 'table', 'p': 'p', 'paragraph': 'p'}

# The body's own <w:sectPr> belongs to the included document, not to the host
TRAILING_SECTION_RE = re.compile(r'<w:sectPr(?:\s[^>]*)?(?:/>|>(?:(?!<w:sectPr[\s>/]).)*?</w:sectPr>)\s*$', re.DOTALL)


@dataclass
class IncludeSpec:
    raw_tag: str
    file: str
    fragment: str = 'body'
    index: int = 1


def parse_include_tag(tag: str) -> IncludeSpec:
    """
    Parse an include directive

    Raises:
        DirectiveError: not an include marker, no document segment,
            unknown fragment or a non-positive index
    """
    text = tag.strip()
    if not text.startswith('[include/') or not text.endswith(']'):
        raise DirectiveError(f"not an include marker: {tag!r}")

    parts = text[1:-1].split('/')
    doc_index = None
    for i in range(1, len(parts)):
        if parts[i].lower().endswith(INCLUDE_EXTENSIONS):
            doc_index = i
            break
    if doc_index is None:
        raise DirectiveError(f"include: document name not found in {tag!r}")

    file_path = posixpath.normpath(posixpath.join(*parts[1:doc_index + 1]))
    if file_path in ('', '.'):
        raise DirectiveError(f"include: empty file path in {tag!r}")

    spec = IncludeSpec(raw_tag=tag, file=file_path)
    rest = parts[doc_index + 1:]
    if not rest:
        return spec

    fragment = FRAGMENTS.get(rest[0].strip().lower())
    if fragment is None:
        raise DirectiveError(f"include: unknown fragment {rest[0]!r}")
    spec.fragment = fragment

    if fragment != 'body' and len(rest) >= 2:
        try:
            index = int(rest[1].strip())
        except ValueError:
            raise DirectiveError(f"include: bad {fragment} index {rest[1]!r}")
        if index <= 0:
            raise DirectiveError(f"include: bad {fragment} index {index}")
        spec.index = index

    return spec


def get_body_fragment(content: str) -> str:
    """Everything between <w:body> and </w:body> except the closing section properties"""
    start = content.find(BODY_OPEN)
    if start < 0:
        raise IncludeError("include: body open not found")
    start += len(BODY_OPEN)
    end = content.find(BODY_CLOSE, start)
    if end < 0:
        raise IncludeError("include: body close not found")
    return TRAILING_SECTION_RE.sub('', content[start:end])


def get_table_n(content: str, n: int) -> str:
    """The n-th (1-based) top-level table of a document part"""
    if n <= 0:
        raise IncludeError("include: bad table index")
    pos = 0
    count = 0
    while True:
        match = TABLE_START_RE.search(content, pos)
        if not match:
            break
        end = find_table_end(content, match.start())
        if end is None:
            break
        count += 1
        if count == n:
            return content[match.start():end]
        pos = end
    raise IncludeError(f"include: table {n} not found")


def get_paragraph_n(content: str, n: int) -> str:
    """The n-th (1-based) paragraph of a document part, counted in document order"""
    if n <= 0:
        raise IncludeError("include: bad paragraph index")
    spans = find_paragraphs(content)
    if n > len(spans):
        raise IncludeError(f"include: paragraph {n} not found")
    start, end = spans[n - 1]
    return content[start:end]


def extract_fragment(content: str, spec: IncludeSpec) -> str:
    if spec.fragment == 'table':
        return get_table_n(content, spec.index)
    if spec.fragment == 'p':
        return get_paragraph_n(content, spec.index)
    return get_body_fragment(content)


def safe_join(base: str, relative: str) -> str:
    """
    Join relative onto base, refusing anything that resolves outside base

    Raises:
        IncludeError: absolute paths or paths escaping the base directory
    """
    if os.path.isabs(relative) or relative.startswith(('/', '\\')):
        raise IncludeError(f"forbidden include path: {relative}")

    base_real = os.path.realpath(base)
    full = os.path.realpath(os.path.join(base_real, relative))
    if os.path.commonpath([base_real, full]) != base_real:
        raise IncludeError(f"forbidden include path: {relative}")
    return full


def check_extension(path: str):
    if not path.lower().endswith(INCLUDE_EXTENSIONS):
        raise IncludeError(f"unsupported include extension: {path}")
