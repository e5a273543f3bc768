#!/usr/bin/env python3
"""
Smart Table Engine
Renders a table template against a heterogeneous list of data items

The table is read as a small library of row templates ("forms"):
- Header: rows before the first form, emitted once
- Forms: rows with positional placeholders (%[1]s) or known field markers ({fio})
- Footer: rows after the last form, emitted once

Each data item is bound to one form and produces exactly one row, in data order.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from data_values import to_text
from errors import TableStructureError
from marker_grammar import NAME_RE, POSITIONAL_RE
from template_transform import transform_pipeline
from wordml import TABLE_CLOSE, TABLE_OPEN, TABLE_START_RE, escape_value

logger = logging.getLogger(__name__)

# One pass over both marker shapes so substituted text is never rescanned
NAMED_MARKER_RE = re.compile(r'\{[ \t]*([A-Za-z0-9_.]+)[ \t]*(?:\|((?:`[^`]*`|[^`}])*))?\}')
POSITIONAL_MARKER_RE = re.compile(
    r'\{[ \t]*`(?P<literal>[^`]*)`[ \t]*\|(?P<tail>(?:`[^`]*`|[^`}])*)\}'
    r'|%\[\s*(?P<index>\d+)\s*]s',
    re.DOTALL,
)
ROW_STRUCTURE_RE = re.compile(r'<w:tbl(?=[\s>])[^>]*>|</w:tbl>|<w:tr(?=[\s>])[^>]*>|</w:tr>')


class ItemKind(Enum):
    MAP = 'map'
    SLICE = 'slice'
    OTHER = 'other'


class RowKind(Enum):
    POSITIONAL = 'positional'
    NAMED = 'named'
    STATIC = 'static'


@dataclass
class DataItem:
    kind: ItemKind
    raw: Any = None
    group_key: str = ''
    fields: Dict[str, Any] = field(default_factory=dict)
    values: List[Any] = field(default_factory=list)


@dataclass
class TemplateRow:
    index: int
    xml: str
    names: List[str]
    placeholder_count: int
    kind: RowKind = RowKind.STATIC


@dataclass
class TableTemplate:
    open_tag: str
    prefix: str          # <w:tblPr>, <w:tblGrid> and anything else before the first row
    rows: List[TemplateRow]
    suffix: str
    header: List[TemplateRow] = field(default_factory=list)
    forms: List[TemplateRow] = field(default_factory=list)
    footer: List[TemplateRow] = field(default_factory=list)


@dataclass
class TableMatch:
    assigned: List[Optional[int]]          # form index per item, None = skipped
    buckets: List[List[int]]               # item indexes per form
    unions: List[Set[str]]                 # field names seen per named form
    group_bindings: Dict[str, int] = field(default_factory=dict)


def _has_nested_collection(mapping: Dict[str, Any]) -> bool:
    return any(isinstance(value, (dict, list)) for value in mapping.values())


def normalize_item(value: Any) -> DataItem:
    """
    Classify one input item

    {label: {...}} -> MAP bound to group "label"
    {label: [...]} -> SLICE bound to group "label"
    flat {k: scalar, ...} -> MAP without group
    anything else -> OTHER
    """
    if isinstance(value, dict):
        if len(value) == 1:
            group_key, inner = next(iter(value.items()))
            if isinstance(inner, dict):
                return DataItem(ItemKind.MAP, value, group_key=str(group_key), fields=inner)
            if isinstance(inner, list):
                return DataItem(ItemKind.SLICE, value, group_key=str(group_key), values=inner)
        if not _has_nested_collection(value):
            return DataItem(ItemKind.MAP, value, fields=value)
    return DataItem(ItemKind.OTHER, value)


def collect_local_keys(items: List[DataItem]) -> Set[str]:
    """Field names supplied by any MAP item in the table's data"""
    keys = set()
    for item in items:
        if item.kind is ItemKind.MAP:
            keys.update(item.fields)
    return keys


def split_table(table_xml: str) -> TableTemplate:
    """
    Cut a <w:tbl> into its top-level rows; rows of nested tables stay inside their cell

    Raises:
        TableStructureError: when the table has no rows
    """
    markup = table_xml.strip()
    open_tag = TABLE_OPEN
    match = TABLE_START_RE.match(markup)
    if match and markup.endswith(TABLE_CLOSE):
        open_tag = match.group(0)
        markup = markup[match.end():-len(TABLE_CLOSE)]

    spans = []
    depth = 0
    row_start = None
    for token in ROW_STRUCTURE_RE.finditer(markup):
        text = token.group(0)
        if text.startswith('<w:tbl'):
            depth += 1
        elif text == '</w:tbl>':
            depth -= 1
        elif depth == 0 and text.startswith('<w:tr'):
            if row_start is None:
                row_start = token.start()
        elif depth == 0 and text == '</w:tr>' and row_start is not None:
            spans.append((row_start, token.end()))
            row_start = None

    if not spans:
        raise TableStructureError("smart table: no rows found")

    rows = []
    previous_end = spans[0][0]
    for index, (_, end) in enumerate(spans):
        row_xml = markup[previous_end:end]
        rows.append(TemplateRow(
            index=index,
            xml=row_xml,
            names=NAME_RE.findall(row_xml),
            placeholder_count=len(POSITIONAL_RE.findall(row_xml)),
        ))
        previous_end = end

    return TableTemplate(
        open_tag=open_tag,
        prefix=markup[:spans[0][0]],
        rows=rows,
        suffix=markup[spans[-1][1]:],
    )


def classify_rows(template: TableTemplate, local_keys: Set[str]) -> TableTemplate:
    """Mark each row positional / named / static and segment header, forms, footer"""
    first = last = None
    for row in template.rows:
        if row.placeholder_count > 0:
            row.kind = RowKind.POSITIONAL
        elif any(name in local_keys for name in row.names):
            row.kind = RowKind.NAMED
        else:
            row.kind = RowKind.STATIC
        if row.kind is not RowKind.STATIC:
            if first is None:
                first = row.index
            last = row.index

    if first is None:
        template.header, template.forms, template.footer = list(template.rows), [], []
        return template

    template.header = template.rows[:first]
    template.forms = [row for row in template.rows[first:last + 1] if row.kind is not RowKind.STATIC]
    template.footer = template.rows[last + 1:]
    return template


def score_form(item: DataItem, form: TemplateRow) -> int:
    """
    Score how well an item fits a form

    Named: number of distinct form names present in the item.
    Positional: 1000 + k on exact cardinality, otherwise 100 - |k - n|.
    """
    if item.kind is ItemKind.MAP and form.kind is RowKind.NAMED:
        return len({name for name in form.names if name in item.fields})
    if item.kind is ItemKind.SLICE and form.kind is RowKind.POSITIONAL:
        wanted = form.placeholder_count
        supplied = len(item.values)
        if wanted == supplied:
            return 1000 + wanted
        return 100 - abs(wanted - supplied)
    return 0


def best_form(item: DataItem, forms: List[TemplateRow]) -> Optional[int]:
    """Index of the highest scoring form; the first form wins a tie, score <= 0 is no match"""
    best_index = None
    best_score = 0
    for index, form in enumerate(forms):
        score = score_form(item, form)
        if score > best_score:
            best_index, best_score = index, score
    return best_index


def match_items(forms: List[TemplateRow], items: List[DataItem]) -> TableMatch:
    """
    Bind items to forms in three passes

    Pass 1: group binding if one exists, otherwise best score; misses wait.
    Pass 2: the waiting items are retried once, leftovers are skipped.
    Pass 3: field-name union per named form bucket.
    """
    match = TableMatch(
        assigned=[None] * len(items),
        buckets=[[] for _ in forms],
        unions=[set() for _ in forms],
    )

    def bind(item_index: int) -> bool:
        item = items[item_index]
        form_index = match.group_bindings.get(item.group_key) if item.group_key else None
        if form_index is None:
            form_index = best_form(item, forms)
            if form_index is None:
                return False
            if item.group_key:
                match.group_bindings[item.group_key] = form_index
        match.assigned[item_index] = form_index
        match.buckets[form_index].append(item_index)
        return True

    waiting = [index for index in range(len(items)) if not bind(index)]
    for index in waiting:
        if not bind(index):
            logger.debug("Table item %d matches no row template, skipped", index)

    for form_index, form in enumerate(forms):
        if form.kind is not RowKind.NAMED:
            continue
        for item_index in match.buckets[form_index]:
            match.unions[form_index].update(items[item_index].fields)

    return match


def _quote_literal(escaped_text: str) -> str:
    return '"' + escaped_text.replace('\\', '\\\\').replace('"', '\\"') + '"'


def _pipeline_call(escaped_value: str, tail: str) -> str:
    call = transform_pipeline(tail)
    if not call:
        return escaped_value
    return '{ ' + _quote_literal(escaped_value) + ' | ' + call + ' }'


def render_named_row(row_xml: str, fields: Dict[str, Any], union: Set[str]) -> str:
    """
    Substitute a named form for one item

    Own field value first; an empty string when another item of the same
    bucket has the field; otherwise the marker stays for the global pass.
    """
    def substitute(match):
        name, tail = match.group(1), match.group(2)
        if name in fields:
            value = escape_value(to_text(fields[name]))
        elif name in union:
            value = ''
        else:
            return match.group(0)
        if tail is None:
            return value
        return _pipeline_call(value, tail)

    return NAMED_MARKER_RE.sub(substitute, row_xml)


def render_positional_row(row_xml: str, values: List[Any]) -> str:
    """Substitute %[N]s placeholders, padding missing values with empty text"""
    def value_at(raw_index: str) -> str:
        index = int(raw_index) - 1
        if 0 <= index < len(values):
            return escape_value(to_text(values[index]))
        return ''

    def substitute(match):
        if match.group('index') is not None:
            return value_at(match.group('index'))
        literal = POSITIONAL_RE.sub(lambda m: value_at(m.group(1)), match.group('literal'))
        return _pipeline_call(literal, match.group('tail'))

    return POSITIONAL_MARKER_RE.sub(substitute, row_xml)


def render_smart_table(table_xml: str, items: List[Any]) -> str:
    """
    Render a table template for a list of data items

    Args:
        table_xml: Full <w:tbl>...</w:tbl> markup
        items: Raw dataset entries, see normalize_item

    Returns:
        Rendered table markup

    Raises:
        TableStructureError: when the table has no rows
    """
    template = split_table(table_xml)
    data_items = [normalize_item(item) for item in items]
    classify_rows(template, collect_local_keys(data_items))

    if not template.forms:
        logger.debug("Table has no row templates, left unchanged")
        return table_xml

    usable = [item for item in data_items if item.kind is not ItemKind.OTHER]
    skipped = len(data_items) - len(usable)
    if skipped:
        logger.debug("Ignored %d table item(s) of unsupported shape", skipped)

    match = match_items(template.forms, usable)

    rows = [row.xml for row in template.header]
    for item_index, item in enumerate(usable):
        form_index = match.assigned[item_index]
        if form_index is None:
            continue
        form = template.forms[form_index]
        if form.kind is RowKind.POSITIONAL:
            rows.append(render_positional_row(form.xml, item.values))
        else:
            rows.append(render_named_row(form.xml, item.fields, match.unions[form_index]))
    rows.extend(row.xml for row in template.footer)

    return template.open_tag + template.prefix + ''.join(rows) + template.suffix + TABLE_CLOSE

