#!/usr/bin/env python3
"""
Template Transform
Rewrites {name|mod:arg} markers into evaluator calls: {.name | mod "arg"}
"""

import re
from typing import List

from marker_grammar import split_pipeline

NUMBER_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')
CONTROL_KEYWORD_RE = re.compile(r'^(if|else|end|range|with)\b')
NATIVE_PREFIXES = ('.', '`', '"', '$')
# Field name, then the pipeline or the end of the marker
FIELD_HEAD_RE = re.compile(r'^\s*[A-Za-z0-9_.]+\s*(\||$)')


def _is_quoted(token: str) -> bool:
    return len(token) >= 2 and token.startswith('"') and token.endswith('"')


def coerce_argument(token: str) -> str:
    """Literal strings and numbers pass through, everything else is quoted"""
    if _is_quoted(token):
        return token
    token = token.strip()
    if NUMBER_RE.match(token):
        return token
    return '"' + token.replace('\\', '\\\\').replace('"', '\\"') + '"'


def _render_call(tokens: List[str]) -> str:
    parts = [tokens[1].strip()]
    parts.extend(coerce_argument(arg) for arg in tokens[2:])
    return ' '.join(parts)


def transform_tag(tag: str) -> str:
    """
    Convert one marker to evaluator syntax

    {fio} -> {.fio}
    {title|truncate:10:`...`} -> {.title | truncate 10 "..."}
    """
    body = tag
    if body.startswith('{'):
        body = body[1:]
    if body.endswith('}'):
        body = body[:-1]

    tokens, _ = split_pipeline(body)
    if not tokens:
        return '{}'

    out = '{.' + tokens[0].strip()
    if len(tokens) > 1:
        out += ' | ' + _render_call(tokens)
    return out + '}'


def transform_pipeline(tail: str) -> str:
    """
    Convert a bare modifier tail such as "truncate:10:`...`" to "truncate 10 \"...\""

    Returns:
        The converted tail, or '' when there is nothing to call
    """
    tokens, _ = split_pipeline(tail)
    if not tokens:
        return ''
    return _render_call([''] + tokens)


def is_native(tag: str) -> bool:
    """Check whether a marker is already in evaluator syntax"""
    body = tag.strip()
    if body.startswith('{'):
        body = body[1:]
    if body.endswith('}'):
        body = body[:-1]
    body = body.strip()

    if body.startswith(NATIVE_PREFIXES):
        return True
    return bool(CONTROL_KEYWORD_RE.match(body))


def is_field_marker(tag: str) -> bool:
    """Check whether a marker starts with a field name; prose in braces does not"""
    body = tag[1:-1] if tag.startswith('{') and tag.endswith('}') else tag
    return bool(FIELD_HEAD_RE.match(body))


def transform_template(text: str) -> str:
    """
    Transform every complete non-native marker in a markup string

    Braces whose body does not open with a field name are prose and are
    copied as is. XML tags outside markers are copied whole so braces in attribute values
    are never read as markers. A '}' inside a backtick span does not close
    its marker. An unterminated trailing marker is copied as is.
    """
    out = []
    token = []
    in_tag = False
    in_quote = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if not in_tag:
            if ch == '<':
                end = text.find('>', i)
                if end < 0:
                    out.append(text[i:])
                    break
                out.append(text[i:end + 1])
                i = end + 1
                continue
            if ch == '{':
                in_tag = True
                in_quote = False
                token = [ch]
            else:
                out.append(ch)
            i += 1
            continue

        token.append(ch)
        if ch == '`':
            in_quote = not in_quote
        elif ch == '}' and not in_quote:
            marker = ''.join(token)
            if is_native(marker) or not is_field_marker(marker):
                out.append(marker)
            else:
                out.append(transform_tag(marker))
            in_tag = False
        i += 1

    if in_tag:
        out.append(''.join(token))

    return ''.join(out)
