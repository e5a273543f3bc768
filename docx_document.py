#!/usr/bin/env python3
"""
Docx Document
Reads a .docx container, renders its content parts and writes the result
"""

import io
import logging
import os
import posixpath
import re
import zipfile
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, List, Optional

from data_values import normalize_data
from errors import DirectiveError, DocumentError, IncludeError
from expression_evaluator import ExpressionEvaluator
from include_resolver import check_extension, extract_fragment, parse_include_tag, safe_join
from marker_grammar import INCLUDE_PREFIX
from modifiers import Modifier
from paragraph_unwrap import replace_directive, unwrap_star_tags
from table_resolver import resolve_tables
from tag_repair import repair_tags
from template_transform import transform_template
from whitespace_trim import process_trim_tags

logger = logging.getLogger(__name__)

DOCUMENT_PART = 'word/document.xml'
DOCUMENT_RELS = 'word/_rels/document.xml.rels'
RELS_NAMESPACE = '{http://schemas.openxmlformats.org/package/2006/relationships}'

HEADER_FOOTER_REF_RE = re.compile(r'<w:(?:headerReference|footerReference)[^>]+r:id="([^"]+)"')

# Guards against include chains that keep pulling in more includes
MAX_INCLUDES = 100


def part_name(part: str) -> str:
    """'document' -> 'word/document.xml'"""
    name = part.replace('\\', '/').lstrip('/')
    if not name.startswith('word/'):
        name = 'word/' + name
    if not name.endswith('.xml'):
        name += '.xml'
    return name


class DocxDocument:
    """
    In-memory .docx container

    Every archive entry is held as bytes. The main document part gets its
    markers repaired and its {*star*} markers unwrapped on load.
    """

    def __init__(self, files: Dict[str, bytes], source_path: Optional[str] = None,
                 include_base: Optional[str] = None):
        self.files = files
        self.source_path = source_path
        if include_base is None and source_path:
            include_base = os.path.dirname(os.path.abspath(source_path))
        self.include_base = include_base
        self.modifiers: Dict[str, Modifier] = {}

        if DOCUMENT_PART not in self.files:
            raise DocumentError(f"no {DOCUMENT_PART} in {source_path or 'docx'}")

        body = self.content_part('document')
        body = repair_tags(body)
        body = unwrap_star_tags(body)
        self.update_content_part('document', body)

    @classmethod
    def open(cls, path: str) -> 'DocxDocument':
        """
        Load a .docx file

        Raises:
            DocumentError: the file is missing, not a zip archive or has no main part
        """
        try:
            with zipfile.ZipFile(path, 'r') as zip_ref:
                files = {item: zip_ref.read(item) for item in zip_ref.namelist()}
        except FileNotFoundError:
            raise DocumentError(f"file not found: {path}")
        except zipfile.BadZipFile as e:
            raise DocumentError(f"not a docx file: {path}: {e}")
        return cls(files, source_path=path)

    @classmethod
    def from_bytes(cls, data: bytes, name: str = 'template.docx',
                   include_base: Optional[str] = None) -> 'DocxDocument':
        """Load a .docx held in memory; includes resolve against include_base when given"""
        try:
            with zipfile.ZipFile(io.BytesIO(data), 'r') as zip_ref:
                files = {item: zip_ref.read(item) for item in zip_ref.namelist()}
        except zipfile.BadZipFile as e:
            raise DocumentError(f"not a docx file: {name}: {e}")
        document = cls(files, include_base=include_base)
        document.source_path = name
        return document

    # ---- parts ----

    def content_part(self, part: str) -> str:
        """
        XML of the document body, a header or a footer

        Raises:
            DocumentError: the part does not exist
        """
        name = part_name(part)
        if name not in self.files:
            raise DocumentError(f"no {name} in docx")
        return self.files[name].decode('utf-8')

    def update_content_part(self, part: str, content: str):
        self.files[part_name(part)] = content.encode('utf-8')

    def list_header_footer_parts(self) -> List[str]:
        """
        Header and footer parts referenced from the main document

        Returns:
            Part names such as ['header1', 'footer2'], in reference order
        """
        if DOCUMENT_PART not in self.files or DOCUMENT_RELS not in self.files:
            return []

        ids = HEADER_FOOTER_REF_RE.findall(self.content_part('document'))
        if not ids:
            return []

        try:
            root = ET.fromstring(self.files[DOCUMENT_RELS])
        except ET.ParseError as e:
            logger.warning("Unreadable %s: %s", DOCUMENT_RELS, e)
            return []

        targets = {}
        for rel in root.iter(f'{RELS_NAMESPACE}Relationship'):
            rel_type = rel.get('Type', '')
            if rel_type.endswith('/header') or rel_type.endswith('/footer'):
                targets[rel.get('Id')] = rel.get('Target', '')

        parts = []
        for rel_id in ids:
            target = targets.get(rel_id)
            if not target:
                continue
            name = posixpath.splitext(posixpath.basename(target))[0]
            if name not in parts:
                parts.append(name)
        return parts

    # ---- modifiers ----

    def add_modifier(self, name: str, func: Callable, arity: int = 0, variadic: bool = False):
        """Register a modifier for this document; it overrides a built-in of the same name"""
        self.modifiers[name] = Modifier(func, arity, variadic)

    # ---- rendering ----

    def execute_template(self, data: Optional[Dict[str, Any]] = None):
        """
        Render every connected header and footer, then the document body

        Raises:
            DocumentError: the main document part is missing
            TemplateRenderError: expression evaluation failed
        """
        data = normalize_data(data)
        evaluator = ExpressionEvaluator(self.modifiers)

        for part in self.list_header_footer_parts() + ['document']:
            try:
                content = self.content_part(part)
            except DocumentError:
                if part == 'document':
                    raise
                logger.warning("Referenced part %s is missing, skipped", part)
                continue

            content = self.render_part(content, data, evaluator)
            self.update_content_part(part, content)
            logger.debug("Rendered part %s", part)

    def render_part(self, content: str, data: Dict[str, Any], evaluator: ExpressionEvaluator) -> str:
        content = repair_tags(content)
        content = self.resolve_includes(content)
        content = resolve_tables(content, data)
        content = repair_tags(content)
        content = unwrap_star_tags(content)
        content = process_trim_tags(content)
        content = transform_template(content)
        return evaluator.render(content, data)

    def resolve_includes(self, body: str) -> str:
        """
        Replace every [include/...] directive with the referenced fragment

        A directive that cannot be parsed or resolved is removed.
        """
        resolved = 0
        while True:
            start = body.find(INCLUDE_PREFIX)
            if start < 0:
                return body
            end = body.find(']', start)
            if end < 0:
                logger.warning("Unterminated include directive at offset %d, removed", start)
                body = body[:start] + body[start + len(INCLUDE_PREFIX):]
                continue

            raw_tag = body[start:end + 1]
            if resolved >= MAX_INCLUDES:
                logger.warning("Include limit reached, %s removed", raw_tag)
                body = replace_directive(body, start, raw_tag, '')
                continue

            try:
                fragment = self._load_include(raw_tag)
            except (DirectiveError, IncludeError, DocumentError) as e:
                logger.warning("Include %s removed: %s", raw_tag, e)
                body = replace_directive(body, start, raw_tag, '')
                continue

            body = replace_directive(body, start, raw_tag, fragment)
            resolved += 1
            logger.debug("Included %s", raw_tag)

    def _load_include(self, raw_tag: str) -> str:
        spec = parse_include_tag(raw_tag)
        if not self.include_base:
            raise IncludeError("include: no base directory for relative paths")
        check_extension(spec.file)
        full_path = safe_join(self.include_base, spec.file)
        if not os.path.isfile(full_path):
            raise IncludeError(f"include: file not found: {spec.file}")
        child = DocxDocument.open(full_path)
        return extract_fragment(child.content_part('document'), spec)

    # ---- output ----

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as output_zip:
            for name, content in self.files.items():
                output_zip.writestr(name, content)
        return buffer.getvalue()

    def save(self, path: str):
        with open(path, 'wb') as f:
            f.write(self.to_bytes())
        logger.info("Saved %s", path)
