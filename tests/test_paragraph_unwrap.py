"""
Unit tests for paragraph_unwrap.py

Tests replacing a marker's paragraph with block content and
unwrapping {*name*} markers.
"""

import pytest

from paragraph_unwrap import replace_directive, replace_tag_with_paragraph, unwrap_star_tags


class TestReplaceTagWithParagraph:
    """Test paragraph replacement around a marker."""

    @pytest.mark.parametrize('body,expected', [
        (
            '<w:body><w:p><w:r><w:t>{tag}</w:t></w:r></w:p></w:body>',
            '<w:body>CONTENT</w:body>',
        ),
        (
            '<w:body><w:p><w:r><w:t>AAA {tag} BBB</w:t></w:r></w:p></w:body>',
            '<w:body><w:p><w:r><w:t xml:space="preserve">AAA</w:t></w:r></w:p>CONTENT'
            '<w:p><w:r><w:t xml:space="preserve">BBB</w:t></w:r></w:p></w:body>',
        ),
        (
            '<w:body><w:p><w:r><w:t>AAA</w:t><w:t>{tag}</w:t><w:t>BBB</w:t></w:r></w:p></w:body>',
            '<w:body><w:p><w:r><w:t xml:space="preserve">AAA</w:t></w:r></w:p>CONTENT'
            '<w:p><w:r><w:t xml:space="preserve">BBB</w:t></w:r></w:p></w:body>',
        ),
        (
            '<w:body><w:p><w:r><w:t>{tag} BBB</w:t></w:r></w:p></w:body>',
            '<w:body>CONTENT<w:p><w:r><w:t xml:space="preserve">BBB</w:t></w:r></w:p></w:body>',
        ),
        (
            '<w:body><w:p><w:r><w:t>AAA {tag}</w:t></w:r></w:p></w:body>',
            '<w:body><w:p><w:r><w:t xml:space="preserve">AAA</w:t></w:r></w:p>CONTENT</w:body>',
        ),
        (
            '<w:body><w:p><w:r><w:t>AAA</w:t></w:r></w:p><w:p><w:r><w:t>{tag}</w:t></w:r></w:p>'
            '<w:p><w:r><w:t>CCC</w:t></w:r></w:p></w:body>',
            '<w:body><w:p><w:r><w:t>AAA</w:t></w:r></w:p>CONTENT<w:p><w:r><w:t>CCC</w:t></w:r></w:p></w:body>',
        ),
    ])
    def test_replacement(self, body, expected):
        assert replace_tag_with_paragraph(body, '{tag}', 'CONTENT') == expected

    def test_no_matching_paragraph(self):
        body = '<w:body><w:p><w:r><w:t>AAA BBB CCC</w:t></w:r></w:p></w:body>'
        assert replace_tag_with_paragraph(body, '{tag}', 'CONTENT') == body

    def test_broken_marker_is_not_replaced(self):
        body = '<w:body><w:p><w:r><w:t>AAA {tag BBB</w:t></w:r></w:p></w:body>'
        assert replace_tag_with_paragraph(body, '{tag}', 'CONTENT') == body

    def test_split_halves_keep_paragraph_properties(self):
        """Verify pre and post paragraphs keep the original <w:pPr>."""
        body = '<w:p><w:pPr><w:jc w:val="right"/></w:pPr><w:r><w:t>AAA {tag} BBB</w:t></w:r></w:p>'
        result = replace_tag_with_paragraph(body, '{tag}', 'CONTENT')
        assert result.count('<w:jc w:val="right"/>') == 2

    def test_escaped_text_is_not_escaped_twice(self):
        body = '<w:p><w:r><w:t>A &amp; B {tag}</w:t></w:r></w:p>'
        result = replace_tag_with_paragraph(body, '{tag}', 'CONTENT')
        assert 'A &amp; B' in result
        assert '&amp;amp;' not in result

    def test_paragraph_with_attributes_is_found(self):
        body = '<w:p w14:paraId="1A2B3C4D"><w:r><w:t>{tag}</w:t></w:r></w:p>'
        assert replace_tag_with_paragraph(body, '{tag}', 'CONTENT') == 'CONTENT'

    def test_count_limits_replacements(self):
        body = '<w:p><w:r><w:t>{tag}</w:t></w:r></w:p><w:p><w:r><w:t>{tag}</w:t></w:r></w:p>'
        result = replace_tag_with_paragraph(body, '{tag}', 'X', count=1)
        assert result == 'X<w:p><w:r><w:t>{tag}</w:t></w:r></w:p>'


class TestReplaceDirective:
    """Test replacement of a directive located by offset."""

    def test_replaces_enclosing_paragraph(self):
        body = '<w:p><w:r><w:t>before</w:t></w:r></w:p><w:p><w:r><w:t>[x]</w:t></w:r></w:p>'
        offset = body.index('[x]')
        assert replace_directive(body, offset, '[x]', 'NEW') == '<w:p><w:r><w:t>before</w:t></w:r></w:p>NEW'

    def test_outside_paragraph_replaces_in_place(self):
        body = '<w:sdtContent>[x]</w:sdtContent>'
        assert replace_directive(body, body.index('[x]'), '[x]', '') == '<w:sdtContent></w:sdtContent>'


class TestUnwrapStarTags:
    """Test {*name*} markers."""

    def test_star_marker_replaces_paragraph(self):
        body = '<w:p><w:r><w:t>{*clients*}</w:t></w:r></w:p>'
        assert unwrap_star_tags(body) == '{clients}'

    def test_star_marker_with_text_splits_paragraph(self):
        body = '<w:p><w:r><w:t>List: {*clients*}</w:t></w:r></w:p>'
        result = unwrap_star_tags(body)
        assert '{clients}' in result
        assert '{*' not in result
        assert '<w:t xml:space="preserve">List:</w:t>' in result

    def test_star_marker_outside_paragraph_terminates(self):
        body = '<w:sdtContent><w:t>{*a*}</w:t></w:sdtContent>'
        assert unwrap_star_tags(body) == '<w:sdtContent><w:t>{a}</w:t></w:sdtContent>'

    def test_several_star_markers(self):
        body = '<w:p><w:r><w:t>{*a*}</w:t></w:r></w:p><w:p><w:r><w:t>{*b*}</w:t></w:r></w:p>'
        assert unwrap_star_tags(body) == '{a}{b}'
