"""
Unit tests for tag_repair.py

Tests reassembly of markers that Word split across runs:
- curly markers, pipelines and backtick literals
- bracket directives
- fail-open behaviour on structure and prose braces
"""

import pytest

from tag_repair import is_run_boundary, repair_tags


class TestRunBoundaries:
    """Test classification of XML tags met inside a marker."""

    @pytest.mark.parametrize('tag', [
        '<w:r>', '</w:r>', '<w:t>', '<w:t xml:space="preserve">', '</w:t>',
        '<w:rPr>', '<w:b/>', '<w:proofErr w:type="spellStart"/>', '<w:bookmarkStart w:id="0" w:name="x"/>',
    ])
    def test_run_level_tags_are_boundaries(self, tag):
        assert is_run_boundary(tag)

    @pytest.mark.parametrize('tag', [
        '<w:p>', '</w:p>', '<w:tc>', '<w:tbl>', '<w:tab/>', '<w:br/>', '<w:drawing>', '<mc:AlternateContent>',
    ])
    def test_structure_and_content_are_not_boundaries(self, tag):
        assert not is_run_boundary(tag)


class TestRepairTags:
    """Test marker reassembly."""

    def test_split_marker_is_joined(self):
        """Verify a marker split over two runs collapses into the first."""
        markup = '<w:p><w:r><w:t>{f</w:t></w:r><w:r><w:t>io}</w:t></w:r></w:p>'
        assert repair_tags(markup) == '<w:p><w:r><w:t>{fio}</w:t></w:r></w:p>'

    def test_split_pipeline_is_joined(self):
        markup = (
            '<w:p><w:r><w:t>{ti</w:t></w:r>'
            '<w:r><w:t>tle|truncate:15:`...`}</w:t></w:r></w:p>'
        )
        assert repair_tags(markup) == '<w:p><w:r><w:t>{title|truncate:15:`...`}</w:t></w:r></w:p>'

    def test_backtick_literal_split_across_runs(self):
        """Verify text inside backticks survives, including Cyrillic."""
        markup = (
            '<w:p><w:r><w:t>{fi</w:t></w:r>'
            '<w:r><w:t>o|declension:`genitive`:`фамилия </w:t></w:r><w:r><w:t>имя отчество`}</w:t></w:r></w:p>'
        )
        expected = '<w:p><w:r><w:t>{fio|declension:`genitive`:`фамилия имя отчество`}</w:t></w:r></w:p>'
        assert repair_tags(markup) == expected

    def test_formatting_and_proofing_marks_are_dropped(self, sample_split_marker_xml):
        repaired = repair_tags(sample_split_marker_xml)
        assert '{client_name}' in repaired
        assert 'spellStart' not in repaired
        assert 'Dear ' in repaired
        assert '<w:t>,</w:t>' in repaired

    def test_bracket_directive_is_joined(self):
        markup = '<w:p><w:r><w:t>[table/</w:t></w:r><w:r><w:t>items]</w:t></w:r></w:p>'
        assert repair_tags(markup) == '<w:p><w:r><w:t>[table/items]</w:t></w:r></w:p>'

    def test_well_formed_marker_is_unchanged(self):
        markup = '<w:p><w:r><w:t>Hello {name}, [/table]</w:t></w:r></w:p>'
        assert repair_tags(markup) == markup

    def test_markup_without_markers_is_unchanged(self):
        markup = '<w:p><w:pPr><w:jc w:val="center"/></w:pPr><w:r><w:t>Plain text</w:t></w:r></w:p>'
        assert repair_tags(markup) == markup

    def test_marker_never_spans_paragraphs(self):
        """Verify an opener in one paragraph is not closed by a brace in the next."""
        markup = '<w:p><w:r><w:t>a { b</w:t></w:r></w:p><w:p><w:r><w:t>c } d</w:t></w:r></w:p>'
        assert repair_tags(markup) == markup

    def test_tab_inside_candidate_aborts(self):
        markup = '<w:p><w:r><w:t>{a</w:t><w:tab/><w:t>b}</w:t></w:r></w:p>'
        assert repair_tags(markup) == markup

    def test_braces_in_attributes_are_ignored(self):
        markup = '<w:sdt><w:sdtPr><w:id w:val="{1234-ABCD}"/></w:sdtPr></w:sdt><w:p><w:r><w:t>{x}</w:t></w:r></w:p>'
        assert repair_tags(markup) == markup

    def test_second_opener_restarts_candidate(self):
        """Verify prose '{' before a real marker does not swallow it."""
        markup = '<w:p><w:r><w:t>a { b </w:t></w:r><w:r><w:t>{na</w:t></w:r><w:r><w:t>me}</w:t></w:r></w:p>'
        repaired = repair_tags(markup)
        assert 'a { b ' in repaired
        assert '{name}' in repaired

    def test_open_bracket_does_not_hide_split_marker(self):
        """Verify prose '[' before a split marker leaves the marker repairable."""
        markup = '<w:p><w:r><w:t>see [note {na</w:t></w:r><w:r><w:t>me} end</w:t></w:r></w:p>'
        assert repair_tags(markup) == '<w:p><w:r><w:t>see [note {name} end</w:t></w:r></w:p>'

    def test_bracket_closed_after_marker(self):
        markup = '<w:p><w:r><w:t>[see {na</w:t></w:r><w:r><w:t>me}]</w:t></w:r></w:p>'
        assert repair_tags(markup) == '<w:p><w:r><w:t>[see {name}]</w:t></w:r></w:p>'

    def test_independent_markers_are_not_merged(self):
        markup = '<w:p><w:r><w:t>{a}</w:t></w:r><w:r><w:t>{b}</w:t></w:r></w:p>'
        assert repair_tags(markup) == markup

    def test_unterminated_marker_is_kept(self):
        markup = '<w:p><w:r><w:t>AAA {tag BBB</w:t></w:r></w:p>'
        assert repair_tags(markup) == markup
