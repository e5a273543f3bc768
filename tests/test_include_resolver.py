"""
Unit tests for include_resolver.py

Tests include directive parsing, fragment extraction and path checks.
"""

import os

import pytest

from conftest import paragraph, table, wrap_document
from errors import DirectiveError, IncludeError
from include_resolver import (
    IncludeSpec,
    check_extension,
    extract_fragment,
    get_body_fragment,
    get_paragraph_n,
    get_table_n,
    parse_include_tag,
    safe_join,
)


class TestParseIncludeTag:
    """Test include directive parsing."""

    @pytest.mark.parametrize('tag,file,fragment,index', [
        ('[include/a.docx]', 'a.docx', 'body', 1),
        ('[include/a.docx/body]', 'a.docx', 'body', 1),
        ('[include/a.docx/table]', 'a.docx', 'table', 1),
        ('[include/a.docx/table/3]', 'a.docx', 'table', 3),
        ('[include/x/y/z.docx/p/2]', 'x/y/z.docx', 'p', 2),
        ('[include/a.dotx/paragraph/4]', 'a.dotx', 'p', 4),
        ('[include/A.DOCX/TABLE/2]', 'A.DOCX', 'table', 2),
    ])
    def test_parse_ok(self, tag, file, fragment, index):
        spec = parse_include_tag(tag)
        assert (spec.file, spec.fragment, spec.index) == (file, fragment, index)
        assert spec.raw_tag == tag

    @pytest.mark.parametrize('tag', [
        '[include]', '[include/]', '[include/noext]', '[include/a.docx/zzz]',
        '[include/a.docx/table/0]', '[include/a.docx/p/-1]', '[include/a.docx/p/x]', 'random',
    ])
    def test_parse_fail(self, tag):
        with pytest.raises(DirectiveError):
            parse_include_tag(tag)


class TestFragments:
    """Test fragment extraction from document markup."""

    def test_body_without_section_properties(self):
        content = wrap_document(paragraph('one') + '<w:sectPr><w:pgSz w:w="11906"/></w:sectPr>')
        assert get_body_fragment(content) == paragraph('one')

    def test_body_missing(self):
        with pytest.raises(IncludeError):
            get_body_fragment('<w:document/>')

    def test_table_n_skips_nested_tables(self):
        content = table(['a']) + paragraph('x') + table([table(['inner'])]) + table(['c'])
        assert '>c<' in get_table_n(content, 3)
        assert 'inner' in get_table_n(content, 2)
        with pytest.raises(IncludeError):
            get_table_n(content, 4)

    def test_paragraph_n(self):
        content = paragraph('one') + paragraph('two')
        assert get_paragraph_n(content, 2) == paragraph('two')
        with pytest.raises(IncludeError):
            get_paragraph_n(content, 3)
        with pytest.raises(IncludeError):
            get_paragraph_n(content, 0)

    def test_extract_fragment_dispatch(self):
        content = wrap_document(paragraph('one') + table(['t']))
        assert extract_fragment(content, IncludeSpec('[include/a.docx]', 'a.docx')) == paragraph('one') + table(['t'])
        assert extract_fragment(content, IncludeSpec('', 'a.docx', 'table', 1)) == table(['t'])
        assert extract_fragment(content, IncludeSpec('', 'a.docx', 'p', 1)) == paragraph('one')


class TestPaths:
    """Test include path checks."""

    def test_safe_join_inside_base(self, tmp_path):
        assert safe_join(str(tmp_path), 'sub/a.docx') == os.path.join(os.path.realpath(tmp_path), 'sub', 'a.docx')

    @pytest.mark.parametrize('relative', ['../a.docx', 'sub/../../a.docx', '/etc/a.docx'])
    def test_safe_join_escape(self, tmp_path, relative):
        with pytest.raises(IncludeError):
            safe_join(str(tmp_path), relative)

    def test_check_extension(self):
        check_extension('a.DOCX')
        with pytest.raises(IncludeError):
            check_extension('a.txt')
