#!/usr/bin/env python3
"""
Marker Grammar
Lexical definitions of the template marker families found in document markup
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class MarkerKind(Enum):
    FIELD = 'field'
    FIELD_WITH_PIPELINE = 'field_with_pipeline'
    STAR_BLOCK = 'star_block'
    INCLUDE = 'include'
    TABLE_OPEN = 'table_open'
    TABLE_CLOSE = 'table_close'


@dataclass
class Pipeline:
    name: str
    args: List[str] = field(default_factory=list)


@dataclass
class Marker:
    """A template marker located in plain text"""
    kind: MarkerKind
    raw: str
    name: str = ''
    pipeline: Optional[Pipeline] = None


# Named markers: {fio}, {dep.team}, {fio|...}, {dep.team | ...}
NAME_RE = re.compile(r'\{[ \t]*([A-Za-z0-9_.]+)[ \t]*[|}]')

# Positional placeholder %[N]s, 1-based
POSITIONAL_RE = re.compile(r'%\[\s*(\d+)\s*]s')

STAR_TAG_RE = re.compile(r'\{\*\s*([^{}*<>]*?)\s*\*\}')

TABLE_OPEN_PREFIX = '[table/'
TABLE_CLOSE_TAG = '[/table]'
INCLUDE_PREFIX = '[include/'

TABLE_OPEN_RE = re.compile(r'\[table/([^\]\[/<>]+)\]')
INCLUDE_RE = re.compile(r'\[include/[^\]\[]*\]')

# Trim decoration around a marker
TRIM_MARKER_RE = re.compile(r'\{[~-]|[~-]\}')


def split_pipeline(body: str) -> Tuple[List[str], bool]:
    """
    Split a marker body on '|' and ':' outside backtick spans

    Returns:
        (tokens, unterminated) where closed backtick spans become
        '"..."' tokens and unterminated is True when a span never closed
    """
    tokens = []
    buf = []
    in_quote = False

    for ch in body:
        if ch == '`':
            if in_quote:
                tokens.append('"' + _quote_escape(''.join(buf)) + '"')
                buf = []
                in_quote = False
            else:
                pending = ''.join(buf)
                if pending.strip():
                    tokens.append(pending)
                buf = []
                in_quote = True
        elif ch in '|:' and not in_quote:
            pending = ''.join(buf)
            if pending.strip():
                tokens.append(pending)
            buf = []
        else:
            buf.append(ch)

    if buf:
        pending = ''.join(buf)
        if in_quote:
            tokens.append('"' + _quote_escape(pending) + '"')
        elif pending.strip():
            tokens.append(pending)

    return tokens, in_quote


def _quote_escape(text: str) -> str:
    return text.replace('\\', '\\\\').replace('"', '\\"')


def parse_marker(raw: str) -> Optional[Marker]:
    """
    Classify a single marker string

    Returns:
        Marker, or None when raw is not a recognized marker
    """
    text = raw.strip()

    if text == TABLE_CLOSE_TAG:
        return Marker(MarkerKind.TABLE_CLOSE, raw)
    if text.startswith(TABLE_OPEN_PREFIX) and text.endswith(']'):
        name = text[len(TABLE_OPEN_PREFIX):-1].strip()
        return Marker(MarkerKind.TABLE_OPEN, raw, name=name) if name else None
    if text.startswith(INCLUDE_PREFIX) and text.endswith(']'):
        return Marker(MarkerKind.INCLUDE, raw, name=text[len(INCLUDE_PREFIX):-1])

    if not (text.startswith('{') and text.endswith('}')):
        return None

    star = STAR_TAG_RE.fullmatch(text)
    if star:
        return Marker(MarkerKind.STAR_BLOCK, raw, name=star.group(1))

    body = TRIM_MARKER_RE.sub(lambda m: m.group(0).replace('~', '').replace('-', ''), text)[1:-1]
    tokens, _ = split_pipeline(body)
    if not tokens:
        return None

    name = tokens[0].strip()
    if len(tokens) == 1:
        return Marker(MarkerKind.FIELD, raw, name=name)

    pipeline = Pipeline(tokens[1].strip(), [t.strip() for t in tokens[2:]])
    return Marker(MarkerKind.FIELD_WITH_PIPELINE, raw, name=name, pipeline=pipeline)


def find_markers(text: str) -> List[Marker]:
    """List every curly and bracket marker in plain (already joined) text"""
    markers = []
    for match in re.finditer(r'\{(?:`[^`]*`|[^{}`])*\}|\[[^\[\]]*\]', text):
        marker = parse_marker(match.group(0))
        if marker is not None:
            markers.append(marker)
    return markers
