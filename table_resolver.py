#!/usr/bin/env python3
"""
Table Resolver
Resolves [table/name] ... [/table] blocks and builds fixed row-template tables
"""

import logging
from typing import Any, Dict, List

from errors import TableStructureError
from marker_grammar import TABLE_CLOSE_TAG, TABLE_OPEN_PREFIX, TABLE_OPEN_RE
from paragraph_unwrap import replace_directive
from smart_table import render_smart_table, split_table
from wordml import TABLE_CLOSE, TABLE_START_RE, find_table_end, xml_escape

logger = logging.getLogger(__name__)


def resolve_tables(body: str, data: Dict[str, Any]) -> str:
    """
    Render every [table/name] block against data[name]

    When data[name] is a list the rendered table takes the place of the
    opening-marker paragraph, and the original table and the closing-marker
    paragraph are removed. Without usable data the original table stays and
    only the marker paragraphs go. Broken directives lose their markers.
    """
    while True:
        start = body.find(TABLE_OPEN_PREFIX)
        if start < 0:
            return body

        open_match = TABLE_OPEN_RE.match(body, start)
        if not open_match:
            logger.warning("Malformed table directive at offset %d, marker removed", start)
            body = replace_directive(body, start, TABLE_OPEN_PREFIX, '')
            continue
        open_end = open_match.end()
        open_tag = open_match.group(0)
        name = open_match.group(1).strip()

        close_start = body.find(TABLE_CLOSE_TAG, open_end)
        if close_start < 0:
            logger.warning("Table directive %s has no closing [/table], marker removed", open_tag)
            body = replace_directive(body, start, open_tag, '')
            continue

        table_match = TABLE_START_RE.search(body, open_end, close_start)
        table_end = find_table_end(body, table_match.start()) if table_match else None
        if table_end is None or table_end > close_start:
            logger.warning("Table directive %s encloses no table, markers removed", open_tag)
            body = replace_directive(body, close_start, TABLE_CLOSE_TAG, '')
            body = replace_directive(body, start, open_tag, '')
            continue

        table_start = table_match.start()
        rendered = None
        dataset = data.get(name)
        if isinstance(dataset, list):
            try:
                rendered = render_smart_table(body[table_start:table_end], dataset)
            except TableStructureError as e:
                logger.warning("Table %s kept as is: %s", name, e)
        elif name in data:
            logger.debug("Data for table %s is not a list, table kept", name)
        else:
            logger.debug("No data for table %s, table kept", name)

        # Edit back to front so earlier offsets stay valid
        body = replace_directive(body, close_start, TABLE_CLOSE_TAG, '')
        if rendered is None or not rendered.strip():
            body = replace_directive(body, start, open_tag, '')
            continue

        body = body[:table_start] + body[table_end:]
        body = replace_directive(body, start, open_tag, rendered)
        logger.debug("Rendered table %s with %d item(s)", name, len(dataset))


class RowTemplateTable:
    """
    Table builder driven by row indexes

    The row at row_index is the repeating template; rows before it form the
    header and rows after it the footer. Optional sub-row and title-row
    templates are picked by index as well. Placeholders are %1, %2, ...
    """

    def __init__(self, table_xml: str, row_index: int, sub_row_index: int = -1, title_index: int = -1):
        template = split_table(table_xml)
        rows = [row.xml for row in template.rows]

        if row_index < 0 or row_index >= len(rows):
            raise TableStructureError(f"row index {row_index} out of range")

        self.open_tag = template.open_tag
        self.prefix = template.prefix
        self.suffix = template.suffix
        self.row_template = rows[row_index]
        self.header_part = ''.join(rows[:row_index])
        self.footer_part = ''.join(rows[row_index + 1:])
        self.sub_row_template = rows[sub_row_index] if 0 <= sub_row_index < len(rows) else ''
        self.title_row_template = rows[title_index] if 0 <= title_index < len(rows) else ''
        self.rows: List[str] = []

    @staticmethod
    def _fill(template: str, values) -> str:
        # Highest index first so %1 never eats the start of %10
        for position in range(len(values), 0, -1):
            template = template.replace(f'%{position}', xml_escape(str(values[position - 1])))
        return template

    def add_row(self, *values):
        self.rows.append(self._fill(self.row_template, values))

    def add_sub_row(self, *values):
        if not self.sub_row_template:
            return
        self.rows.append(self._fill(self.sub_row_template, values))

    def add_title_row(self, *values):
        if not self.title_row_template:
            return
        self.rows.append(self._fill(self.title_row_template, values))

    def render(self) -> str:
        return (
            self.open_tag + self.prefix + self.header_part + ''.join(self.rows)
            + self.footer_part + self.suffix + TABLE_CLOSE
        )
