#!/usr/bin/env python3
"""
Tag Repair
Reassembles {markers} and [directives] that the word processor split across runs
"""

import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)


class ScanState(Enum):
    OUTSIDE = 0
    IN_CURLY = 1
    IN_SQUARE = 2


# Structure a marker may never span; meeting one aborts the candidate
BLOCK_ELEMENTS = {
    'p', 'pPr', 'tbl', 'tblPr', 'tblGrid', 'tr', 'trPr', 'tc', 'tcPr',
    'body', 'document', 'hdr', 'ftr', 'sectPr', 'sdt', 'sdtPr', 'sdtContent',
    'txbxContent', 'footnote', 'endnote', 'comment',
}

# Run content that carries data of its own
CONTENT_ELEMENTS = {
    'tab', 'br', 'cr', 'sym', 'drawing', 'pict', 'object', 'fldChar',
    'instrText', 'delText', 'del', 'footnoteReference', 'endnoteReference',
    'ptab', 'noBreakHyphen', 'softHyphen',
}

TAG_NAME_RE = re.compile(r'</?(w\d*):([A-Za-z]+)')

OPENERS = {'{': ScanState.IN_CURLY, '[': ScanState.IN_SQUARE}
CLOSERS = {ScanState.IN_CURLY: '}', ScanState.IN_SQUARE: ']'}


def is_run_boundary(tag: str) -> bool:
    """
    Check whether an XML tag is run-level formatting that may sit inside a marker

    Returns:
        True for <w:r>, <w:t>, <w:rPr> and its children, proofing and bookmark
        marks; False for block structure, run content and foreign namespaces
    """
    match = TAG_NAME_RE.match(tag)
    if not match:
        return False
    local_name = match.group(2)
    return local_name not in BLOCK_ELEMENTS and local_name not in CONTENT_ELEMENTS


def repair_tags(body: str) -> str:
    """
    Repair markers fragmented across runs

    Outside a marker everything is copied verbatim, whole XML tags included.
    Inside a marker run-boundary tags are dropped so the marker text becomes
    contiguous. Anything that cannot belong to a marker aborts the candidate
    and its original source is written back unchanged.
    """
    out = []
    state = ScanState.OUTSIDE
    candidate = []
    candidate_start = 0
    in_backtick = False
    i = 0
    n = len(body)

    def abort(at: int):
        out.append(body[candidate_start:at])

    while i < n:
        ch = body[i]

        if state is ScanState.OUTSIDE:
            if ch == '<':
                end = body.find('>', i)
                if end < 0:
                    out.append(body[i:])
                    break
                out.append(body[i:end + 1])
                i = end + 1
                continue
            if ch in OPENERS:
                state = OPENERS[ch]
                candidate = [ch]
                candidate_start = i
                in_backtick = False
            else:
                out.append(ch)
            i += 1
            continue

        if ch == '<':
            end = body.find('>', i)
            if end < 0:
                logger.debug("Unterminated tag inside marker at offset %d", i)
                abort(i)
                state = ScanState.OUTSIDE
                continue
            tag = body[i:end + 1]
            if is_run_boundary(tag):
                i = end + 1
                continue
            logger.debug("Marker candidate at offset %d crosses %s, left as is", candidate_start, tag)
            abort(i)
            state = ScanState.OUTSIDE
            continue

        if state is ScanState.IN_CURLY and ch == '`':
            in_backtick = not in_backtick
        elif ch == CLOSERS[state] and not in_backtick:
            candidate.append(ch)
            out.append(''.join(candidate))
            state = ScanState.OUTSIDE
            i += 1
            continue
        elif ch in OPENERS and not in_backtick and OPENERS[ch] in (state, ScanState.IN_CURLY):
            # A second opener, or a '{' after an open '[', means the first one was prose
            abort(i)
            state = OPENERS[ch]
            candidate = [ch]
            candidate_start = i
            in_backtick = False
            i += 1
            continue

        candidate.append(ch)
        i += 1

    if state is not ScanState.OUTSIDE:
        logger.debug("Unterminated marker at offset %d", candidate_start)
        abort(n)

    return ''.join(out)
