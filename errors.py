#!/usr/bin/env python3
"""
docxfill Errors
Exception types raised by the template pipeline
"""


class DocxFillError(Exception):
    """Base class for every error raised by docxfill"""


class DocumentError(DocxFillError):
    """The .docx container could not be read or lacks a required part"""


class DirectiveError(DocxFillError, ValueError):
    """A bracket directive ([table/...], [include/...]) is malformed"""


class TableStructureError(DocxFillError, ValueError):
    """Table markup cannot be split into rows"""


class IncludeError(DocxFillError):
    """An include target cannot be opened or the fragment does not exist"""


class TemplateRenderError(DocxFillError):
    """Expression evaluation of the transformed markup failed"""
