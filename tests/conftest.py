"""
Pytest fixtures for docxfill tests.
"""

import pytest
import zipfile

W_NS = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'
R_NS = 'http://schemas.openxmlformats.org/officeDocument/2006/relationships'


def wrap_document(body_xml):
    """Wrap body content into a complete word/document.xml."""
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}" xmlns:r="{R_NS}">'
        f'<w:body>{body_xml}</w:body>'
        '</w:document>'
    )


def paragraph(text):
    """One-run paragraph with literal (already escaped) text."""
    return f'<w:p><w:r><w:t xml:space="preserve">{text}</w:t></w:r></w:p>'


def table(*rows):
    """Table whose rows each hold one cell per given text."""
    columns = max((len(cells) for cells in rows), default=1)
    xml = (
        '<w:tbl><w:tblPr><w:tblW w:w="0" w:type="auto"/></w:tblPr><w:tblGrid>'
        + '<w:gridCol w:w="4000"/>' * columns
        + '</w:tblGrid>'
    )
    for cells in rows:
        xml += '<w:tr>'
        for text in cells:
            xml += f'<w:tc><w:p><w:r><w:t xml:space="preserve">{text}</w:t></w:r></w:p></w:tc>'
        xml += '</w:tr>'
    return xml + '</w:tbl>'


@pytest.fixture
def sample_split_marker_xml():
    """Paragraph where Word split {client_name} across three runs."""
    return (
        '<w:p><w:r><w:t xml:space="preserve">Dear </w:t></w:r>'
        '<w:r><w:rPr><w:b/></w:rPr><w:t>{client</w:t></w:r>'
        '<w:proofErr w:type="spellStart"/>'
        '<w:r><w:t>_na</w:t></w:r>'
        '<w:r><w:t>me}</w:t></w:r>'
        '<w:r><w:t>,</w:t></w:r></w:p>'
    )


@pytest.fixture
def sample_table_xml():
    """Table with a header row, a named form row and a footer row."""
    return table(['No', 'Price'], ['{n}', '{price|money}'], ['Total'])


@pytest.fixture
def temp_docx(tmp_path):
    """Create a temporary .docx file with test content."""
    def _create_docx(document_xml_content, name="test_template.docx", headers=None, directory=None):
        """
        headers: optional {part name: xml}, e.g. {'header1': '<w:hdr>...</w:hdr>'};
        each is registered in the relationships and referenced from the body.
        """
        headers = headers or {}
        docx_path = (directory or tmp_path) / name

        # Create minimal docx structure
        with zipfile.ZipFile(docx_path, 'w', zipfile.ZIP_DEFLATED) as zf:
            overrides = ''.join(
                f'<Override PartName="/word/{part}.xml" ContentType="application/vnd.openxmlformats-officedocument.'
                f'wordprocessingml.{"header" if part.startswith("header") else "footer"}+xml"/>'
                for part in headers
            )
            # [Content_Types].xml
            content_types = f'''<?xml version="1.0" encoding="UTF-8"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
  {overrides}
</Types>'''
            zf.writestr('[Content_Types].xml', content_types)

            # _rels/.rels
            rels = '''<?xml version="1.0" encoding="UTF-8"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
</Relationships>'''
            zf.writestr('_rels/.rels', rels)

            # word/_rels/document.xml.rels
            relationships = ''
            references = ''
            for index, part in enumerate(headers, start=10):
                kind = 'header' if part.startswith('header') else 'footer'
                relationships += (
                    f'<Relationship Id="rId{index}" '
                    f'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/{kind}" '
                    f'Target="{part}.xml"/>'
                )
                references += f'<w:{kind}Reference w:type="default" r:id="rId{index}"/>'
            doc_rels = f'''<?xml version="1.0" encoding="UTF-8"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
{relationships}
</Relationships>'''
            zf.writestr('word/_rels/document.xml.rels', doc_rels)

            # word/document.xml
            if references:
                document_xml_content = document_xml_content.replace(
                    '</w:body>', f'<w:sectPr>{references}</w:sectPr></w:body>'
                )
            zf.writestr('word/document.xml', document_xml_content)

            for part, xml in headers.items():
                zf.writestr(f'word/{part}.xml', xml)

        return str(docx_path)

    return _create_docx


@pytest.fixture
def temp_output_path(tmp_path):
    """Provide a temporary output path for rendered documents."""
    return str(tmp_path / "output.docx")


def read_part(docx_path, part='word/document.xml'):
    """Read one part of a .docx as text."""
    with zipfile.ZipFile(docx_path, 'r') as zf:
        return zf.read(part).decode('utf-8')
