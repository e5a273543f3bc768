#!/usr/bin/env python3
"""
Whitespace Trim Engine
Removes whitespace nodes next to trim-decorated markers: {~name~}, {-name-}, {name-}
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List

from wordml import find_paragraphs, xml_unescape

logger = logging.getLogger(__name__)


class WhitespaceKind(Enum):
    NONE = 0          # carries visible text
    SPACES_TABS = 1   # spaces and tabs only
    HAS_NEWLINE = 2   # spaces, tabs and at least one line break


class TrimStrength(Enum):
    NONE = 0
    WEAK = 1    # '-': spaces and tabs
    STRONG = 2  # '~': spaces, tabs and line breaks


RUN_RE = re.compile(r'(<w:r(?=[\s>])[^>]*>)(.*?)(</w:r>)', re.DOTALL)

NODE_RE = re.compile(
    r'(?P<t><w:t(?:\s[^>]*)?>)(?P<text>.*?)</w:t>'
    r'|(?P<empty><w:t(?:\s[^>]*)?/>)'
    r'|(?P<tab><w:tab(?:\s[^>]*)?/>)'
    r'|(?P<br><w:br(?:\s[^>]*)?/>)'
    r'|(?P<cr><w:cr(?:\s[^>]*)?/>)',
    re.DOTALL,
)

DECORATION_TOKENS = ('{~', '{-', '~}', '-}')
LEFT_DECORATION_RE = re.compile(r'\{[~-]')
RIGHT_DECORATION_RE = re.compile(r'[~-]\}')
LAYOUT_BREAK_RE = re.compile(r'w:type="(?:page|column)"')


@dataclass
class TextNode:
    start: int
    end: int
    text: str            # unescaped text, '\t' / '\n' for tab and break elements
    open_tag: str = ''   # set for <w:t> nodes only
    raw_text: str = ''
    removed: bool = False
    changed: bool = False


def has_trim_markers(text: str) -> bool:
    return any(token in text for token in DECORATION_TOKENS)


def classify_whitespace(text: str) -> WhitespaceKind:
    """Classify a node's text for trimming; empty text counts as spaces"""
    if all(ch in ' \t' for ch in text):
        return WhitespaceKind.SPACES_TABS
    if all(ch in ' \t\n' for ch in text):
        return WhitespaceKind.HAS_NEWLINE
    return WhitespaceKind.NONE


def compute_masks(text: str):
    """
    Read trim strength for each side from a node holding a decorated marker

    Returns:
        (left, right) TrimStrength pair
    """
    left = right = TrimStrength.NONE
    if '{~' in text:
        left = TrimStrength.STRONG
    elif '{-' in text:
        left = TrimStrength.WEAK
    if '~}' in text:
        right = TrimStrength.STRONG
    elif '-}' in text:
        right = TrimStrength.WEAK
    return left, right


def can_eat(kind: WhitespaceKind, strength: TrimStrength) -> bool:
    if strength is TrimStrength.NONE or kind is WhitespaceKind.NONE:
        return False
    if strength is TrimStrength.WEAK:
        return kind is WhitespaceKind.SPACES_TABS
    return True


def strip_decoration(text: str) -> str:
    """{~name~} / {-name-} / {name-} and friends become {name}"""
    text = LEFT_DECORATION_RE.sub('{', text)
    return RIGHT_DECORATION_RE.sub('}', text)


def _parse_nodes(run_content: str) -> List[TextNode]:
    nodes = []
    for match in NODE_RE.finditer(run_content):
        if match.group('t') is not None:
            raw = match.group('text')
            nodes.append(TextNode(match.start(), match.end(), xml_unescape(raw),
                                  open_tag=match.group('t'), raw_text=raw))
        elif match.group('empty') is not None:
            nodes.append(TextNode(match.start(), match.end(), ''))
        elif match.group('tab') is not None:
            nodes.append(TextNode(match.start(), match.end(), '\t'))
        elif match.group('br') is not None:
            # Page and column breaks are layout, not whitespace
            text = '\f' if LAYOUT_BREAK_RE.search(match.group('br')) else '\n'
            nodes.append(TextNode(match.start(), match.end(), text))
        else:
            nodes.append(TextNode(match.start(), match.end(), '\n'))
    return nodes


def _trim_run(run_content: str) -> str:
    nodes = _parse_nodes(run_content)
    if not any(node.open_tag and has_trim_markers(node.raw_text) for node in nodes):
        return run_content

    for index, node in enumerate(nodes):
        if node.removed or not node.open_tag or not has_trim_markers(node.raw_text):
            continue

        left, right = compute_masks(node.raw_text)

        j = index - 1
        while j >= 0:
            if nodes[j].removed:
                j -= 1
                continue
            if not can_eat(classify_whitespace(nodes[j].text), left):
                break
            nodes[j].removed = True
            j -= 1

        j = index + 1
        while j < len(nodes):
            if not can_eat(classify_whitespace(nodes[j].text), right):
                break
            nodes[j].removed = True
            j += 1

        node.raw_text = strip_decoration(node.raw_text)
        node.changed = True

    out = []
    pos = 0
    for node in nodes:
        out.append(run_content[pos:node.start])
        if node.removed:
            pass
        elif node.changed:
            out.append(f'{node.open_tag}{node.raw_text}</w:t>')
        else:
            out.append(run_content[node.start:node.end])
        pos = node.end
    out.append(run_content[pos:])
    return ''.join(out)


def _trim_paragraph(paragraph: str) -> str:
    return RUN_RE.sub(lambda m: m.group(1) + _trim_run(m.group(2)) + m.group(3), paragraph)


def process_trim_tags(body: str) -> str:
    """
    Trim whitespace around decorated markers in every paragraph that has one

    Whitespace is removed node by node inside the marker's own run: strong
    trim eats spaces, tabs and line breaks, weak trim only spaces and tabs.
    Paragraphs without decoration are left byte-for-byte.
    """
    if not has_trim_markers(body):
        return body

    out = []
    pos = 0
    for start, end in find_paragraphs(body):
        paragraph = body[start:end]
        if not has_trim_markers(paragraph):
            continue
        out.append(body[pos:start])
        out.append(_trim_paragraph(paragraph))
        pos = end
    out.append(body[pos:])

    result = ''.join(out)
    if result != body:
        logger.debug("Trimmed whitespace around decorated markers")
    return result
