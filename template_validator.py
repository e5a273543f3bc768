#!/usr/bin/env python3
"""
Template Validator
Checks marker syntax in a .docx template before it is rendered
"""

import re
from collections import Counter
from typing import Dict, List, Tuple

from docx import Document

from docx_document import DocxDocument
from errors import DirectiveError, DocumentError
from include_resolver import parse_include_tag
from marker_grammar import (
    INCLUDE_RE,
    TABLE_CLOSE_TAG,
    TABLE_OPEN_PREFIX,
    TABLE_OPEN_RE,
    MarkerKind,
    find_markers,
)
from modifiers import build_registry
from wordml import TEXT_NODE_RE, xml_unescape

TABLE_TOKEN_RE = re.compile(r'\[table/[^\]]*\]?|\[/table\]')
CANDIDATE_MARKER_RE = re.compile(r'\{[^{}]*\}')


def document_text(xml_content: str) -> str:
    """Plain text of a part: every <w:t> joined, entities decoded"""
    return xml_unescape(''.join(TEXT_NODE_RE.findall(xml_content)))


class TemplateValidator:
    """
    Validates marker syntax of docxfill templates
    """

    def __init__(self):
        self.errors = []
        self.warnings = []
        self.info = []

    def validate_template(self, docx_path: str) -> Dict:
        """
        Validate a template file

        Returns:
            dict with validation results
        """
        self._reset()
        try:
            document = DocxDocument.open(docx_path)
        except DocumentError as e:
            self.errors.append(f"Failed to read template: {e}")
            return self._build_result()
        return self.validate_document(document)

    def validate_bytes(self, data: bytes, name: str = 'template.docx') -> Dict:
        """Validate a template held in memory"""
        self._reset()
        try:
            document = DocxDocument.from_bytes(data, name)
        except DocumentError as e:
            self.errors.append(f"Failed to read template: {e}")
            return self._build_result()
        return self.validate_document(document)

    def validate_document(self, document: DocxDocument) -> Dict:
        """Run every check over the body and the connected headers and footers"""
        for part in ['document'] + document.list_header_footer_parts():
            try:
                text = document_text(document.content_part(part))
            except DocumentError:
                self.warnings.append(f"Referenced part {part} is missing")
                continue

            self._check_brace_balance(text, part)
            self._check_backtick_literals(text, part)
            self._check_table_directives(text, part)
            self._check_include_directives(text, part)
            self._check_modifiers(text, part)
            self._collect_info(text, part)

        return self._build_result()

    def _reset(self):
        self.errors = []
        self.warnings = []
        self.info = []

    def _build_result(self) -> Dict:
        """Build validation result dictionary"""
        is_valid = len(self.errors) == 0

        return {
            'valid': is_valid,
            'errors': self.errors,
            'warnings': self.warnings,
            'info': self.info,
            'error_count': len(self.errors),
            'warning_count': len(self.warnings)
        }

    def _check_brace_balance(self, text: str, part: str):
        """Check that every { has a matching }"""
        open_count = text.count('{')
        close_count = text.count('}')

        if open_count != close_count:
            self.errors.append(
                f"{part}: unbalanced markers: {open_count} opening '{{' but {close_count} closing '}}'"
            )

    def _check_backtick_literals(self, text: str, part: str):
        for match in CANDIDATE_MARKER_RE.finditer(text):
            if match.group(0).count('`') % 2:
                self.errors.append(f"{part}: unterminated backtick literal in {match.group(0)}")

    def _check_table_directives(self, text: str, part: str):
        """Check that every [table/name] is closed by [/table] before the next one opens"""
        open_tag = None
        for match in TABLE_TOKEN_RE.finditer(text):
            token = match.group(0)
            if token == TABLE_CLOSE_TAG:
                if open_tag is None:
                    self.errors.append(f"{part}: {TABLE_CLOSE_TAG} without an opening [table/...]")
                open_tag = None
                continue

            if not TABLE_OPEN_RE.fullmatch(token):
                self.errors.append(f"{part}: malformed table directive: {token}")
                continue
            if open_tag is not None:
                self.errors.append(f"{part}: {open_tag} is not closed before {token}")
            open_tag = token

        if open_tag is not None:
            self.errors.append(f"{part}: {open_tag} is never closed")

    def _check_include_directives(self, text: str, part: str):
        for match in INCLUDE_RE.finditer(text):
            try:
                parse_include_tag(match.group(0))
            except DirectiveError as e:
                self.errors.append(f"{part}: {e}")

    def _check_modifiers(self, text: str, part: str):
        """Warn about modifiers that are not registered"""
        known = build_registry()
        unknown = Counter()
        for marker in find_markers(text):
            if marker.pipeline and marker.pipeline.name not in known:
                unknown[marker.pipeline.name] += 1

        for name, count in sorted(unknown.items()):
            self.warnings.append(f"{part}: unknown modifier '{name}' used {count} time(s)")

    def _collect_info(self, text: str, part: str):
        markers = find_markers(text)
        kinds = Counter(marker.kind for marker in markers)
        fields = kinds[MarkerKind.FIELD] + kinds[MarkerKind.FIELD_WITH_PIPELINE]
        if not markers and TABLE_OPEN_PREFIX not in text:
            return
        self.info.append(
            f"{part}: {fields} field marker(s), {kinds[MarkerKind.TABLE_OPEN]} table(s), "
            f"{kinds[MarkerKind.INCLUDE]} include(s), {kinds[MarkerKind.STAR_BLOCK]} block marker(s)"
        )

    def get_summary(self) -> str:
        """Get a human-readable summary of validation results"""
        lines = []

        if len(self.errors) == 0 and len(self.warnings) == 0:
            lines.append("✅ Template validation passed!")
            if self.info:
                lines.append("\nℹ️  Information:")
                for info in self.info:
                    lines.append(f"  • {info}")
            return '\n'.join(lines)

        if self.errors:
            lines.append(f"❌ Validation failed with {len(self.errors)} error(s):")
            for error in self.errors:
                lines.append(f"  • {error}")

        if self.warnings:
            lines.append(f"\n⚠️  {len(self.warnings)} warning(s):")
            for warning in self.warnings:
                lines.append(f"  • {warning}")

        if self.info:
            lines.append("\nℹ️  Information:")
            for info in self.info:
                lines.append(f"  • {info}")

        return '\n'.join(lines)


def _table_paragraphs(tables, location: str):
    for t_index, table in enumerate(tables, 1):
        for r_index, row in enumerate(table.rows, 1):
            for c_index, cell in enumerate(row.cells, 1):
                cell_location = f"{location}table {t_index} row {r_index} cell {c_index}"
                for paragraph in cell.paragraphs:
                    yield cell_location, paragraph
                yield from _table_paragraphs(cell.tables, cell_location + ' / ')


def extract_markers(docx_path: str) -> List[Dict]:
    """
    List the markers of every paragraph, including table cells, headers and footers

    python-docx joins the runs of a paragraph, so the markers are read the
    way they appear on the page regardless of how Word split them.

    Returns:
        List of {'location', 'marker', 'kind', 'name'} dicts in document order
    """
    doc = Document(docx_path)

    sources = []
    for p_index, paragraph in enumerate(doc.paragraphs, 1):
        sources.append((f"paragraph {p_index}", paragraph))
    sources.extend(_table_paragraphs(doc.tables, ''))
    for s_index, section in enumerate(doc.sections, 1):
        for paragraph in section.header.paragraphs:
            sources.append((f"section {s_index} header", paragraph))
        for paragraph in section.footer.paragraphs:
            sources.append((f"section {s_index} footer", paragraph))

    markers = []
    for location, paragraph in sources:
        for marker in find_markers(paragraph.text):
            markers.append({
                'location': location,
                'marker': marker.raw,
                'kind': marker.kind.value,
                'name': marker.name,
            })
    return markers


def validate_template(docx_path: str) -> Tuple[bool, str]:
    """
    Validate a template and return result

    Args:
        docx_path: Path to the .docx template

    Returns:
        Tuple of (is_valid, summary_message)
    """
    validator = TemplateValidator()
    result = validator.validate_template(docx_path)

    return result['valid'], validator.get_summary()
