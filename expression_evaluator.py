#!/usr/bin/env python3
"""
Expression Evaluator
Evaluates native markers ({.field | mod "arg"}, {if ...}, {range ...}) in document markup

Native markers are compiled into a Jinja2 template: every stretch of markup
between markers becomes a constant, every marker becomes an expression or a
control block. Markup inside XML tags is never read as a marker.
"""

import logging
import operator
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from jinja2 import Environment, StrictUndefined, TemplateError

from data_values import is_truthy, resolve_path, to_text
from errors import TemplateRenderError
from modifiers import Modifier, RawXML, build_registry
from wordml import BREAK_XML, TAB_XML, xml_escape, xml_unescape

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r'''
    (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<raw>`[^`]*`)
  | (?P<field>\$?(?:\.[A-Za-z0-9_]+)+|\$|\.)
  | (?P<number>[+-]?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<pipe>\|)
''', re.VERBOSE | re.DOTALL)

INTEGER_RE = re.compile(r'^[+-]?\d+$')
BACKSLASH_RE = re.compile(r'\\(.)', re.DOTALL)
BACKSLASH_CODES = {'n': '\n', 't': '\t', 'r': '\r'}

CONTROL_WORDS = ('if', 'else', 'end', 'range', 'with')
LITERAL_WORDS = {'true': True, 'false': False, 'nil': None}


class MarkerSyntaxError(ValueError):
    """A marker could not be parsed; it is kept as literal text"""


class UnknownModifierError(MarkerSyntaxError):
    pass


# ---- functions usable as the first command or as a pipeline stage ----

def _numeric_pair(a: Any, b: Any) -> Tuple[Any, Any]:
    """Compare numbers with numeric strings as numbers"""
    def is_number(x):
        return isinstance(x, (int, float)) and not isinstance(x, bool)

    if is_number(a) and is_number(b):
        return a, b
    if is_number(a) or is_number(b):
        try:
            return float(to_text(a)), float(to_text(b))
        except ValueError:
            pass
    return to_text(a), to_text(b)


def _equal(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is b
    if isinstance(a, (bool, list, dict)) or isinstance(b, (bool, list, dict)):
        return a == b
    x, y = _numeric_pair(a, b)
    return x == y


def _length(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (str, list, dict)):
        return len(value)
    return len(to_text(value))


def _and(*values):
    for value in values:
        if not is_truthy(value):
            return value
    return values[-1] if values else None


def _or(*values):
    for value in values:
        if is_truthy(value):
            return value
    return values[-1] if values else None


def _comparison(op: Callable) -> Callable:
    def compare(a, b):
        x, y = _numeric_pair(a, b)
        return op(x, y)
    return compare


FUNCTIONS: Dict[str, Callable] = {
    'not': lambda value: not is_truthy(value),
    'and': _and,
    'or': _or,
    'eq': lambda a, *others: any(_equal(a, b) for b in others),
    'ne': lambda a, b: not _equal(a, b),
    'lt': _comparison(operator.lt),
    'le': _comparison(operator.le),
    'gt': _comparison(operator.gt),
    'ge': _comparison(operator.ge),
    'len': _length,
}


# ---- runtime helpers exposed to the compiled template ----

def _lookup(scope: Any, path: str) -> Any:
    _, value = resolve_path(scope, path)
    return value


def _range_items(value: Any) -> List[Any]:
    """Lists iterate as is, maps by value in key order, anything else is empty"""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, dict):
        return [value[key] for key in sorted(value)]
    return []


def _with_items(value: Any) -> List[Any]:
    return [value] if is_truthy(value) else []


def finalize_output(value: Any) -> str:
    """Turn an expression result into WordprocessingML text"""
    if isinstance(value, RawXML):
        return str(value)
    text = xml_escape(to_text(value))
    text = text.replace('\r\n', '\n').replace('\n', BREAK_XML)
    return text.replace('\t', TAB_XML)


def _decode_string(token: str) -> str:
    body = token[1:-1]
    body = BACKSLASH_RE.sub(lambda m: BACKSLASH_CODES.get(m.group(1), m.group(1)), body)
    return xml_unescape(body)


def tokenize(body: str) -> List[Tuple[str, str]]:
    """
    Split a marker body into (kind, text) tokens

    Raises:
        MarkerSyntaxError: on any character sequence outside the grammar
    """
    tokens = []
    pos = 0
    while pos < len(body):
        if body[pos].isspace():
            pos += 1
            continue
        match = TOKEN_RE.match(body, pos)
        if not match:
            raise MarkerSyntaxError(f"unexpected text {body[pos:pos + 10]!r}")
        tokens.append((match.lastgroup, match.group(0)))
        pos = match.end()
    return tokens


class _Compiler:
    """Builds Jinja2 source for one markup string"""

    def __init__(self, modifiers: Dict[str, Modifier]):
        self.modifiers = modifiers
        self.constants: List[Any] = []
        self.parts: List[str] = []
        self.blocks: List[List[str]] = []   # [kind, state]

    def constant(self, value: Any) -> str:
        self.constants.append(value)
        return f'_k[{len(self.constants) - 1}]'

    def literal(self, text: str):
        if text:
            self.parts.append('{{ ' + self.constant(RawXML(text)) + ' }}')

    # -- expressions --

    def operand(self, kind: str, text: str) -> str:
        if kind == 'string':
            return self.constant(_decode_string(text))
        if kind == 'raw':
            return self.constant(xml_unescape(text[1:-1]))
        if kind == 'number':
            if INTEGER_RE.match(text):
                return self.constant(int(text))
            return self.constant(float(text))
        if kind == 'field':
            if text == '.':
                return '_dot'
            if text == '$':
                return '_root'
            if text.startswith('$'):
                return f'_get(_root, {self.constant(text[2:])})'
            return f'_get(_dot, {self.constant(text[1:])})'
        if kind == 'ident' and text in LITERAL_WORDS:
            return self.constant(LITERAL_WORDS[text])
        raise MarkerSyntaxError(f"unexpected {text!r}")

    def call(self, name: str, args: List[str], piped: Optional[str] = None) -> str:
        if name in self.modifiers:
            # Modifiers take the pipeline value first
            values = [piped] + args if piped is not None else args or [self.constant(None)]
            return f'_mod({self.constant(name)}, {", ".join(values)})'
        if name in FUNCTIONS:
            values = args + [piped] if piped is not None else args
            return f'_fn({", ".join([self.constant(name)] + values)})'
        raise UnknownModifierError(f"unknown modifier {name!r}")

    def command(self, tokens: List[Tuple[str, str]]) -> str:
        if not tokens:
            raise MarkerSyntaxError("empty command")
        kind, text = tokens[0]
        if kind == 'ident' and text not in LITERAL_WORDS:
            return self.call(text, [self.operand(k, t) for k, t in tokens[1:]])
        if len(tokens) > 1:
            raise MarkerSyntaxError(f"unexpected {tokens[1][1]!r} after operand")
        return self.operand(kind, text)

    def expression(self, tokens: List[Tuple[str, str]]) -> str:
        stages = [[]]
        for token in tokens:
            if token[0] == 'pipe':
                stages.append([])
            else:
                stages[-1].append(token)

        value = self.command(stages[0])
        for stage in stages[1:]:
            if not stage or stage[0][0] != 'ident':
                raise MarkerSyntaxError("pipeline stage must name a modifier")
            args = [self.operand(k, t) for k, t in stage[1:]]
            value = self.call(stage[0][1], args, piped=value)
        return value

    # -- markers --

    def marker(self, body: str):
        tokens = tokenize(body)
        if not tokens:
            raise MarkerSyntaxError("empty marker")

        kind, word = tokens[0]
        if kind != 'ident' or word not in CONTROL_WORDS:
            self.parts.append('{{ ' + self.expression(tokens) + ' }}')
            return

        if word == 'if':
            self.parts.append('{% if _truthy(' + self.expression(tokens[1:]) + ') %}')
            self.blocks.append(['if', 'open'])
        elif word == 'range':
            self.parts.append('{% for _dot in _items(' + self.expression(tokens[1:]) + ') %}')
            self.blocks.append(['range', 'open'])
        elif word == 'with':
            self.parts.append('{% for _dot in _with(' + self.expression(tokens[1:]) + ') %}')
            self.blocks.append(['with', 'open'])
        elif word == 'else':
            self.else_branch(tokens[1:])
        elif word == 'end':
            if len(tokens) > 1:
                raise MarkerSyntaxError("unexpected text after end")
            if not self.blocks:
                raise TemplateRenderError("{end} without an open block")
            kind, _ = self.blocks.pop()
            self.parts.append('{% endif %}' if kind == 'if' else '{% endfor %}')

    def else_branch(self, rest: List[Tuple[str, str]]):
        if not self.blocks:
            raise TemplateRenderError("{else} without an open block")
        block = self.blocks[-1]
        if block[1] == 'else':
            raise TemplateRenderError("{else} after {else}")

        if rest:
            if rest[0] != ('ident', 'if') or block[0] != 'if':
                raise MarkerSyntaxError("else must be followed by if inside an if block")
            self.parts.append('{% elif _truthy(' + self.expression(rest[1:]) + ') %}')
            return
        self.parts.append('{% else %}')
        block[1] = 'else'

    def compile(self, markup: str) -> Optional[str]:
        """
        Returns:
            Jinja2 source, or None when the markup holds no markers
        """
        found = False
        text_start = 0
        i = 0
        n = len(markup)

        while i < n:
            ch = markup[i]
            if ch == '<':
                end = markup.find('>', i)
                i = n if end < 0 else end + 1
                continue
            if ch != '{':
                i += 1
                continue

            end = find_marker_end(markup, i)
            if end is None:
                i += 1
                continue

            raw = markup[i:end + 1]
            saved = (len(self.parts), len(self.constants))
            pending = markup[text_start:i]
            self.literal(pending)
            try:
                self.marker(raw[1:-1])
            except UnknownModifierError as e:
                logger.warning("Marker %s kept as text: %s", raw, e)
                del self.parts[saved[0]:]
                del self.constants[saved[1]:]
                i += 1
                continue
            except MarkerSyntaxError as e:
                logger.warning("Marker %s does not parse, kept as text: %s", raw, e)
                del self.parts[saved[0]:]
                del self.constants[saved[1]:]
                i += 1
                continue
            found = True
            text_start = i = end + 1

        if not found:
            return None
        self.literal(markup[text_start:])
        if self.blocks:
            raise TemplateRenderError(f"{{{self.blocks[-1][0]}}} block is never closed")
        return ''.join(self.parts)


def find_marker_end(markup: str, start: int) -> Optional[int]:
    """
    Offset of the '}' closing the marker that opens at start

    Quoted and backtick strings may hold '}'. A '<' or another '{' outside
    a string means there is no marker here.
    """
    i = start + 1
    n = len(markup)
    while i < n:
        ch = markup[i]
        if ch == '"':
            i += 1
            while i < n and markup[i] != '"':
                if markup[i] == '\\':
                    i += 1
                i += 1
        elif ch == '`':
            close = markup.find('`', i + 1)
            if close < 0:
                return None
            i = close
        elif ch == '}':
            return i
        elif ch in '{<':
            return None
        i += 1
    return None


class ExpressionEvaluator:
    """Renders native markers of a markup string against a data environment"""

    def __init__(self, modifiers: Optional[Dict[str, Modifier]] = None):
        self.extra_modifiers = dict(modifiers or {})
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
            finalize=finalize_output,
        )

    def render(self, markup: str, data: Dict[str, Any]) -> str:
        """
        Evaluate every native marker in markup

        Raises:
            TemplateRenderError: unbalanced control blocks or a failing modifier
        """
        registry = build_registry(data, self.extra_modifiers)
        compiler = _Compiler(registry)
        source = compiler.compile(markup)
        if source is None:
            return markup

        def call_modifier(name, value, *args):
            return registry[name](value, *args)

        def call_function(name, *args):
            return FUNCTIONS[name](*args)

        try:
            template = self.env.from_string(source)
            return template.render(
                _k=compiler.constants,
                _dot=data,
                _root=data,
                _get=_lookup,
                _items=_range_items,
                _with=_with_items,
                _truthy=is_truthy,
                _mod=call_modifier,
                _fn=call_function,
            )
        except (TemplateError, TypeError, ValueError, ArithmeticError) as e:
            raise TemplateRenderError(f"template evaluation failed: {e}") from e


def evaluate(markup: str, data: Dict[str, Any], modifiers: Optional[Dict[str, Modifier]] = None) -> str:
    """Shortcut for ExpressionEvaluator(modifiers).render(markup, data)"""
    return ExpressionEvaluator(modifiers).render(markup, data)
